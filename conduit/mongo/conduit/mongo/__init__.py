from conduit.mongo.client import Document, IndexOrder, MongoClient, MongoClientImpl, WriteConcern, fields_set
from conduit.mongo.connector import MongoConnector
from conduit.mongo.exceptions import DocumentNotFoundError
from conduit.mongo.transformers import document_to_json, documents_to_json, json_to_document
from conduit.mongo.utils import LazyIterable, lazy

__all__ = [
    "Document",
    "DocumentNotFoundError",
    "document_to_json",
    "documents_to_json",
    "fields_set",
    "IndexOrder",
    "json_to_document",
    "lazy",
    "LazyIterable",
    "MongoClient",
    "MongoClientImpl",
    "MongoConnector",
    "WriteConcern",
]
