from typing import Any, BinaryIO, Iterable, List, Optional

import pymongo
from pymongo.errors import ConfigurationError, ConnectionFailure, OperationFailure, PyMongoError

from conduit.core import Connector, ifnone, processor
from conduit.core.connector import ConnectionException, ConnectionExceptionCode
from conduit.mongo import transformers
from conduit.mongo.client import Document, IndexOrder, MongoClient, MongoClientImpl, WriteConcern

# Server error codes reported for rejected credentials
AUTH_ERROR_CODES = frozenset({13, 18})


class MongoConnector(Connector):
    """
    MongoDB connector for integration host frameworks.

    Exposes the `MongoClient` operations as processors. Connection parameters default to the ``CONDUIT_MONGO``
    settings (``CONDUIT_MONGO__HOST``, ``CONDUIT_MONGO__PORT``, ... environment variables, or the bundled
    ``config.ini``).

    Args:
        host (str, optional): Server host.
        port (int, optional): Server port.
        database (str, optional): Database name.
        username (str, optional): User to authenticate as. No authentication when empty.
        password (str, optional): The user's password.
        uri (str, optional): A full ``mongodb://`` connection string, used instead of host and port.

    Example:
        .. code-block:: python

            from conduit.mongo import MongoConnector

            with MongoConnector(host="localhost", database="inventory") as connector:
                connector.invoke("insert-object", collection="items", document={"sku": "A-1"})
                items = connector.invoke("find-objects", collection="items", query={"sku": "A-1"})
                for item in items:
                    print(item)
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        uri: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        settings = self.config.CONDUIT_MONGO
        self.host = host or settings.HOST
        self.port = int(ifnone(port, settings.PORT))
        self.database = database or settings.DATABASE
        self.username = ifnone(username, settings.USERNAME) or None
        self._password = ifnone(password, self.config.get_secret("CONDUIT_MONGO", "PASSWORD")) or None
        self.uri = ifnone(uri, settings.URI) or None
        self.auth_source = settings.AUTH_SOURCE
        self.gridfs_bucket = settings.GRIDFS_BUCKET
        self.connect_timeout_ms = int(settings.CONNECT_TIMEOUT_MS)
        self.server_selection_timeout_ms = int(settings.SERVER_SELECTION_TIMEOUT_MS)

        self._mongo: Optional[pymongo.MongoClient] = None
        self.client: Optional[MongoClient] = None

    # Connection management

    def connect(
        self, username: Optional[str] = None, password: Optional[str] = None, database: Optional[str] = None
    ) -> None:
        """
        Connect to the server and select the database.

        Args:
            username (str, optional): Overrides the configured user.
            password (str, optional): Overrides the configured password.
            database (str, optional): Overrides the configured database.

        Raises:
            ConnectionException: If the server cannot be reached, rejects the credentials, or the host configuration
                is invalid.
        """
        if self.is_connected():
            self.disconnect()
        username = ifnone(username, self.username)
        password = ifnone(password, self._password)
        self.database = ifnone(database, self.database)
        key = self.connection_id()

        options = {
            "connectTimeoutMS": self.connect_timeout_ms,
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
        }
        if username:
            options.update(username=username, password=password, authSource=self.auth_source)

        try:
            if self.uri:
                mongo = pymongo.MongoClient(self.uri, **options)
            else:
                mongo = pymongo.MongoClient(self.host, self.port, **options)
        except ConfigurationError as e:
            raise ConnectionException(ConnectionExceptionCode.UNKNOWN_HOST, str(e), key) from e

        try:
            mongo.admin.command("ping")
        except OperationFailure as e:
            mongo.close()
            code = (
                ConnectionExceptionCode.INCORRECT_CREDENTIALS
                if e.code in AUTH_ERROR_CODES
                else ConnectionExceptionCode.UNKNOWN
            )
            raise ConnectionException(code, str(e), key) from e
        except ConnectionFailure as e:
            mongo.close()
            raise ConnectionException(ConnectionExceptionCode.CANNOT_REACH, str(e), key) from e

        self._mongo = mongo
        self.client = MongoClientImpl(mongo[self.database], gridfs_bucket=self.gridfs_bucket)
        self.logger.info(f"Connected to {key}.")

    def disconnect(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
        if self._mongo is not None:
            self._mongo.close()
            self._mongo = None
            self.logger.info(f"Disconnected from {self.connection_id()}.")

    def is_connected(self) -> bool:
        return self.client is not None

    def validate_connection(self) -> bool:
        if not self.is_connected():
            return False
        try:
            self._mongo.admin.command("ping")
        except PyMongoError as e:
            self.logger.warning(f"Connection to {self.connection_id()} failed validation: {e}")
            return False
        return True

    def connection_id(self) -> str:
        if self.uri:
            authority = self.uri.split("://", 1)[-1].split("/", 1)[0].split("?", 1)[0]
            hosts = authority.rsplit("@", 1)[-1]
        else:
            hosts = f"{self.host}:{self.port}"
        return f"mongodb://{hosts}/{self.database}"

    def _client(self) -> MongoClient:
        if self.client is None:
            raise ConnectionException(ConnectionExceptionCode.UNKNOWN, "Not connected", self.connection_id())
        return self.client

    # Collections

    @processor()
    def list_collections(self) -> List[str]:
        return self._client().list_collections()

    @processor()
    def exists_collection(self, collection: str) -> bool:
        return self._client().exists_collection(collection)

    @processor()
    def create_collection(
        self, collection: str, capped: bool = False, max_objects: Optional[int] = None, size: Optional[int] = None
    ) -> None:
        self._client().create_collection(collection, capped, max_objects, size)

    @processor()
    def drop_collection(self, collection: str) -> None:
        self._client().drop_collection(collection)

    # Documents

    @processor()
    def insert_object(
        self, collection: str, document: Document, write_concern: WriteConcern | str = WriteConcern.DATABASE_DEFAULT
    ) -> Any:
        return self._client().insert_object(collection, document, WriteConcern.parse(write_concern))

    @processor()
    def update_objects(
        self,
        collection: str,
        query: Optional[Document],
        document: Document,
        upsert: bool = False,
        multi: bool = True,
        write_concern: WriteConcern | str = WriteConcern.DATABASE_DEFAULT,
    ) -> int:
        return self._client().update_objects(
            collection, query, document, upsert, multi, WriteConcern.parse(write_concern)
        )

    @processor()
    def save_object(
        self, collection: str, document: Document, write_concern: WriteConcern | str = WriteConcern.DATABASE_DEFAULT
    ) -> Any:
        return self._client().save_object(collection, document, WriteConcern.parse(write_concern))

    @processor()
    def remove_objects(
        self,
        collection: str,
        query: Optional[Document] = None,
        write_concern: WriteConcern | str = WriteConcern.DATABASE_DEFAULT,
    ) -> int:
        return self._client().remove_objects(collection, query, WriteConcern.parse(write_concern))

    @processor()
    def map_reduce_objects(
        self, collection: str, map_function: str, reduce_function: str, output_collection: Optional[str] = None
    ) -> Iterable:
        return self._client().map_reduce_objects(collection, map_function, reduce_function, output_collection)

    @processor()
    def count_objects(self, collection: str, query: Optional[Document] = None) -> int:
        return self._client().count_objects(collection, query)

    @processor()
    def find_objects(
        self, collection: str, query: Optional[Document] = None, fields: Optional[List[str]] = None
    ) -> Iterable:
        return self._client().find_objects(collection, query, fields)

    @processor()
    def find_one_object(
        self, collection: str, query: Optional[Document] = None, fields: Optional[List[str]] = None
    ) -> Document:
        return self._client().find_one_object(collection, query, fields)

    # Indices

    @processor()
    def create_index(self, collection: str, field: str, order: IndexOrder | str = IndexOrder.ASC) -> str:
        return self._client().create_index(collection, field, IndexOrder.parse(order))

    @processor()
    def drop_index(self, collection: str, index: str) -> None:
        self._client().drop_index(collection, index)

    @processor()
    def list_indices(self, collection: str) -> List[Document]:
        return self._client().list_indices(collection)

    # Files

    @processor()
    def create_file(
        self,
        content: BinaryIO | bytes,
        filename: str,
        content_type: Optional[str] = None,
        metadata: Optional[Document] = None,
    ) -> Document:
        return self._client().create_file(content, filename, content_type, metadata)

    @processor()
    def find_files(self, query: Optional[Document] = None) -> Iterable:
        return self._client().find_files(query)

    @processor()
    def find_one_file(self, query: Document) -> Any:
        return self._client().find_one_file(query)

    @processor()
    def get_file_content(self, query: Document) -> BinaryIO:
        return self._client().get_file_content(query)

    @processor()
    def list_files(self, query: Optional[Document] = None) -> Iterable:
        return self._client().list_files(query)

    @processor()
    def remove_files(self, query: Optional[Document] = None) -> int:
        return self._client().remove_files(query)

    # Transformers

    @processor()
    def json_to_document(self, text: str | bytes) -> Any:
        return transformers.json_to_document(text)

    @processor()
    def document_to_json(self, document: Document) -> str:
        return transformers.document_to_json(document)
