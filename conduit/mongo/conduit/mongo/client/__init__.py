from conduit.mongo.client.fields import fields_set
from conduit.mongo.client.index_order import IndexOrder
from conduit.mongo.client.mongo_client import Document, MongoClient
from conduit.mongo.client.mongo_client_impl import MongoClientImpl
from conduit.mongo.client.write_concern import WriteConcern

__all__ = ["Document", "fields_set", "IndexOrder", "MongoClient", "MongoClientImpl", "WriteConcern"]
