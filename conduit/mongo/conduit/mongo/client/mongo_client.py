from abc import abstractmethod
from typing import Any, BinaryIO, Iterable, List, Mapping, Optional

from pymongo.database import Database

from conduit.core import ConduitABC
from conduit.mongo.client.index_order import IndexOrder
from conduit.mongo.client.write_concern import WriteConcern

Document = Mapping[str, Any]


class MongoClient(ConduitABC):
    """
    Operations the MongoDB connector exposes on a single database.

    Documents, queries and projections are plain driver types (``dict``/``bson.SON``) passed through to pymongo.
    Operations returning several documents return lazy iterables: iterating them fetches documents from the
    server. Sizing them with ``size()`` forces every document to be fetched.

    Missing required arguments raise ``ValueError``. Queries that must match something but match nothing raise
    `DocumentNotFoundError`. Driver errors propagate unchanged.
    """

    # Collections

    @abstractmethod
    def list_collections(self) -> List[str]:
        """
        List the names of the collections in the database.

        Returns:
            List[str]: The collection names.
        """
        raise NotImplementedError

    @abstractmethod
    def exists_collection(self, collection: str) -> bool:
        """
        Check whether a collection exists.

        Args:
            collection (str): The collection name.

        Returns:
            bool: True if the database holds a collection with that name.
        """
        raise NotImplementedError

    @abstractmethod
    def create_collection(
        self, collection: str, capped: bool = False, max_objects: Optional[int] = None, size: Optional[int] = None
    ) -> None:
        """
        Create a collection.

        Args:
            collection (str): The collection name.
            capped (bool): Whether the collection is capped.
            max_objects (int, optional): Maximum number of documents of a capped collection.
            size (int, optional): Maximum size in bytes of a capped collection.
        """
        raise NotImplementedError

    @abstractmethod
    def drop_collection(self, collection: str) -> None:
        """Drop a collection, along with its documents and indices."""
        raise NotImplementedError

    # Documents

    @abstractmethod
    def count_objects(self, collection: str, query: Optional[Document] = None) -> int:
        """
        Count the documents of a collection, optionally only those matching a query.

        Args:
            collection (str): The collection name.
            query (Mapping, optional): The filter. Counts every document when omitted.

        Returns:
            int: The number of documents.
        """
        raise NotImplementedError

    @abstractmethod
    def find_objects(
        self, collection: str, query: Optional[Document] = None, fields: Optional[List[str]] = None
    ) -> Iterable:
        """
        Find the documents matching a query.

        Args:
            collection (str): The collection name.
            query (Mapping, optional): The filter. Matches every document when omitted.
            fields (List[str], optional): Fields to return. Every field is returned when omitted.

        Returns:
            Iterable: A lazy iterable of the matching documents.
        """
        raise NotImplementedError

    @abstractmethod
    def find_one_object(
        self, collection: str, query: Optional[Document] = None, fields: Optional[List[str]] = None
    ) -> Document:
        """
        Find the first document matching a query.

        Args:
            collection (str): The collection name.
            query (Mapping, optional): The filter.
            fields (List[str], optional): Fields to return.

        Returns:
            Mapping: The document.

        Raises:
            DocumentNotFoundError: If no document matches.
        """
        raise NotImplementedError

    @abstractmethod
    def insert_object(self, collection: str, document: Document, write_concern: WriteConcern) -> Any:
        """
        Insert a document.

        Args:
            collection (str): The collection name.
            document (Mapping): The document. An ``_id`` is generated when missing.
            write_concern (WriteConcern): The acknowledgement level.

        Returns:
            The ``_id`` of the inserted document.
        """
        raise NotImplementedError

    @abstractmethod
    def save_object(self, collection: str, document: Document, write_concern: WriteConcern) -> Any:
        """
        Insert a document, or replace the stored one with the same ``_id``.

        Returns:
            The ``_id`` of the saved document.
        """
        raise NotImplementedError

    @abstractmethod
    def update_objects(
        self,
        collection: str,
        query: Optional[Document],
        document: Document,
        upsert: bool = False,
        multi: bool = True,
        write_concern: WriteConcern = WriteConcern.DATABASE_DEFAULT,
    ) -> int:
        """
        Update the documents matching a query.

        Args:
            collection (str): The collection name.
            query (Mapping, optional): The filter. Matches every document when omitted.
            document (Mapping): Either update operators (``{"$set": ...}``) or a replacement document.
            upsert (bool): Insert a document when nothing matches.
            multi (bool): Update every match rather than only the first. Requires update operators.
            write_concern (WriteConcern): The acknowledgement level.

        Returns:
            int: The number of modified documents, or 0 for unacknowledged writes.
        """
        raise NotImplementedError

    @abstractmethod
    def remove_objects(self, collection: str, query: Optional[Document], write_concern: WriteConcern) -> int:
        """
        Remove the documents matching a query, or every document when the query is omitted.

        Returns:
            int: The number of removed documents, or 0 for unacknowledged writes.
        """
        raise NotImplementedError

    @abstractmethod
    def map_reduce_objects(
        self, collection: str, map_function: str, reduce_function: str, output_collection: Optional[str] = None
    ) -> Iterable:
        """
        Run a map-reduce over a collection.

        Args:
            collection (str): The collection name.
            map_function (str): JavaScript map function.
            reduce_function (str): JavaScript reduce function.
            output_collection (str, optional): Collection replaced with the results. Results are returned inline
                when omitted.

        Returns:
            Iterable: The results.
        """
        raise NotImplementedError

    # Indices

    @abstractmethod
    def create_index(self, collection: str, field: str, order: IndexOrder = IndexOrder.ASC) -> str:
        """
        Create a single-field index.

        Returns:
            str: The name of the index.
        """
        raise NotImplementedError

    @abstractmethod
    def drop_index(self, collection: str, name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_indices(self, collection: str) -> List[Document]:
        raise NotImplementedError

    # Files

    @abstractmethod
    def create_file(
        self,
        content: BinaryIO | bytes,
        filename: str,
        content_type: Optional[str] = None,
        metadata: Optional[Document] = None,
    ) -> Document:
        """
        Store a file.

        Args:
            content (BinaryIO | bytes): The file contents, as bytes or a readable binary stream.
            filename (str): The file name.
            content_type (str, optional): The MIME type.
            metadata (Mapping, optional): Additional metadata stored with the file.

        Returns:
            Mapping: The stored file document.
        """
        raise NotImplementedError

    @abstractmethod
    def find_files(self, query: Optional[Document] = None) -> Iterable:
        raise NotImplementedError

    @abstractmethod
    def find_one_file(self, query: Document) -> Any:
        """
        Find the first stored file matching a query.

        Raises:
            DocumentNotFoundError: If no file matches.
        """
        raise NotImplementedError

    @abstractmethod
    def get_file_content(self, query: Document) -> BinaryIO:
        """Return a readable binary stream over the first stored file matching a query."""
        raise NotImplementedError

    @abstractmethod
    def list_files(self, query: Optional[Document] = None) -> Iterable:
        """List the file documents matching a query, sorted by filename."""
        raise NotImplementedError

    @abstractmethod
    def remove_files(self, query: Optional[Document] = None) -> int:
        """Remove the stored files matching a query, or every file when omitted. Returns how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def get_db(self) -> Database:
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources held by the client."""

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return super().__exit__(exc_type, exc_val, exc_tb)

