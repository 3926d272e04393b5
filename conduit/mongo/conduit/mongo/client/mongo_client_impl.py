import threading
from typing import Any, BinaryIO, Dict, Iterable, List, Optional

import gridfs
import pymongo
from bson.code import Code
from bson.son import SON
from pymongo.client_session import ClientSession
from pymongo.collection import Collection as MongoCollection
from pymongo.database import Database

from conduit.core import check_not_empty, check_not_none
from conduit.mongo.client.fields import fields_set
from conduit.mongo.client.index_order import IndexOrder
from conduit.mongo.client.mongo_client import Document, MongoClient
from conduit.mongo.client.write_concern import WriteConcern
from conduit.mongo.exceptions import DocumentNotFoundError
from conduit.mongo.utils import lazy


def _is_operator_document(document: Document) -> bool:
    return bool(document) and all(str(key).startswith("$") for key in document)


class MongoClientImpl(MongoClient):
    """
    pymongo implementation of `MongoClient`.

    Every operation runs within the calling thread's session (see `open_session`), so that a flow reads its own
    writes even when consecutive operations are served by different members of a replica set.

    Args:
        database (Database): The pymongo database to operate on.
        gridfs_bucket (str): Root collection name of the file store. Defaults to ``CONDUIT_MONGO.GRIDFS_BUCKET``.

    Example:
        .. code-block:: python

            import pymongo
            from conduit.mongo import MongoClientImpl, WriteConcern

            client = MongoClientImpl(pymongo.MongoClient("mongodb://localhost:27017")["inventory"])
            client.insert_object("items", {"sku": "A-1", "qty": 5}, WriteConcern.SAFE)
            for item in client.find_objects("items", {"qty": {"$gt": 0}}, ["sku"]):
                print(item["sku"])
    """

    def __init__(self, database: Database, gridfs_bucket: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.db = check_not_none(database, "database")
        self.gridfs_bucket = gridfs_bucket or self.config.CONDUIT_MONGO.GRIDFS_BUCKET
        self._sessions: Dict[threading.Thread, ClientSession] = {}
        self._sessions_lock = threading.Lock()

    # Sessions

    def open_session(self) -> ClientSession:
        """
        Return the calling thread's causally consistent session, starting it on first use.

        Sessions are not ended per operation. A thread's session lives until the thread has finished (it is ended on
        the next call from any thread) or until `close`.
        """
        thread = threading.current_thread()
        with self._sessions_lock:
            finished = self._pop_finished_thread_sessions()
            session = self._sessions.get(thread)
            if session is None or session.has_ended:
                session = self.db.client.start_session(causal_consistency=True)
                self._sessions[thread] = session
                self.logger.debug(f"Started session for thread {thread.name}.")
        self._end_sessions(finished)
        return session

    def _pop_finished_thread_sessions(self) -> List[ClientSession]:
        finished = [thread for thread in self._sessions if not thread.is_alive()]
        return [self._sessions.pop(thread) for thread in finished]

    def _end_sessions(self, sessions: List[ClientSession]) -> None:
        for session in sessions:
            session.end_session()
        if sessions:
            self.logger.debug(f"Ended {len(sessions)} session(s).")

    def _write_session(self, write_concern: pymongo.WriteConcern) -> Optional[ClientSession]:
        # pymongo rejects explicit sessions for unacknowledged writes
        return self.open_session() if write_concern.acknowledged else None

    def close(self) -> None:
        with self._sessions_lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        self._end_sessions(sessions)

    def get_db(self) -> Database:
        return self.db

    def _collection(self, collection: str, write_concern: Optional[pymongo.WriteConcern] = None) -> MongoCollection:
        return self.db.get_collection(check_not_none(collection, "collection"), write_concern=write_concern)

    # Collections

    def list_collections(self) -> List[str]:
        return self.db.list_collection_names(session=self.open_session())

    def exists_collection(self, collection: str) -> bool:
        check_not_none(collection, "collection")
        names = self.db.list_collection_names(session=self.open_session(), filter={"name": collection})
        return collection in names

    def create_collection(
        self, collection: str, capped: bool = False, max_objects: Optional[int] = None, size: Optional[int] = None
    ) -> None:
        check_not_none(collection, "collection")
        options = {"capped": capped}
        if max_objects is not None:
            options["max"] = max_objects
        if size is not None:
            options["size"] = size
        self.db.create_collection(collection, session=self.open_session(), **options)

    def drop_collection(self, collection: str) -> None:
        self._collection(collection).drop(session=self.open_session())

    # Documents

    def count_objects(self, collection: str, query: Optional[Document] = None) -> int:
        target = self._collection(collection)
        if query is None:
            # collection metadata count; the command takes no session
            return target.estimated_document_count()
        return target.count_documents(query, session=self.open_session())

    def find_objects(
        self, collection: str, query: Optional[Document] = None, fields: Optional[List[str]] = None
    ) -> Iterable:
        target = self._collection(collection)
        return lazy(target.find(query or {}, fields_set(fields), session=self.open_session()))

    def find_one_object(
        self, collection: str, query: Optional[Document] = None, fields: Optional[List[str]] = None
    ) -> Document:
        target = self._collection(collection)
        element = target.find_one(query, fields_set(fields), session=self.open_session())
        if element is None:
            raise DocumentNotFoundError(f"No object found for query {query}", query)
        return element

    def insert_object(self, collection: str, document: Document, write_concern: WriteConcern) -> Any:
        check_not_none(collection, "collection")
        check_not_none(document, "document")
        concern = check_not_none(write_concern, "write_concern").to_mongo_write_concern(self.db)
        result = self._collection(collection, concern).insert_one(document, session=self._write_session(concern))
        return result.inserted_id

    def save_object(self, collection: str, document: Document, write_concern: WriteConcern) -> Any:
        check_not_none(collection, "collection")
        check_not_none(document, "document")
        concern = check_not_none(write_concern, "write_concern").to_mongo_write_concern(self.db)
        target = self._collection(collection, concern)
        session = self._write_session(concern)
        if "_id" not in document:
            return target.insert_one(document, session=session).inserted_id
        target.replace_one({"_id": document["_id"]}, document, upsert=True, session=session)
        return document["_id"]

    def update_objects(
        self,
        collection: str,
        query: Optional[Document],
        document: Document,
        upsert: bool = False,
        multi: bool = True,
        write_concern: WriteConcern = WriteConcern.DATABASE_DEFAULT,
    ) -> int:
        check_not_none(collection, "collection")
        check_not_none(document, "document")
        concern = check_not_none(write_concern, "write_concern").to_mongo_write_concern(self.db)
        target = self._collection(collection, concern)
        session = self._write_session(concern)
        query = query or {}
        if multi:
            result = target.update_many(query, document, upsert=upsert, session=session)
        elif _is_operator_document(document):
            result = target.update_one(query, document, upsert=upsert, session=session)
        else:
            result = target.replace_one(query, document, upsert=upsert, session=session)
        return result.modified_count if result.acknowledged else 0

    def remove_objects(self, collection: str, query: Optional[Document], write_concern: WriteConcern) -> int:
        check_not_none(collection, "collection")
        concern = check_not_none(write_concern, "write_concern").to_mongo_write_concern(self.db)
        target = self._collection(collection, concern)
        result = target.delete_many(query or {}, session=self._write_session(concern))
        return result.deleted_count if result.acknowledged else 0

    def map_reduce_objects(
        self, collection: str, map_function: str, reduce_function: str, output_collection: Optional[str] = None
    ) -> Iterable:
        check_not_none(collection, "collection")
        check_not_empty(map_function, "map_function")
        check_not_empty(reduce_function, "reduce_function")
        session = self.open_session()
        out = {"replace": output_collection} if output_collection is not None else {"inline": 1}
        command = SON(
            [
                ("mapReduce", collection),
                ("map", Code(map_function)),
                ("reduce", Code(reduce_function)),
                ("out", out),
            ]
        )
        response = self.db.command(command, session=session)
        if output_collection is None:
            return lazy(response["results"])
        return lazy(self.db.get_collection(output_collection).find(session=session))

    # Indices

    def create_index(self, collection: str, field: str, order: IndexOrder = IndexOrder.ASC) -> str:
        check_not_none(field, "field")
        order = IndexOrder.parse(check_not_none(order, "order"))
        return self._collection(collection).create_index([(field, order.value)], session=self.open_session())

    def drop_index(self, collection: str, name: str) -> None:
        check_not_none(name, "name")
        self._collection(collection).drop_index(name, session=self.open_session())

    def list_indices(self, collection: str) -> List[Document]:
        return list(self._collection(collection).list_indexes(session=self.open_session()))

    # Files

    def _grid_fs(self) -> gridfs.GridFS:
        return gridfs.GridFS(self.db, collection=self.gridfs_bucket)

    def _files_collection(self) -> MongoCollection:
        return self.db.get_collection(f"{self.gridfs_bucket}.files")

    def create_file(
        self,
        content: BinaryIO | bytes,
        filename: str,
        content_type: Optional[str] = None,
        metadata: Optional[Document] = None,
    ) -> Document:
        check_not_none(filename, "filename")
        check_not_none(content, "content")
        session = self.open_session()
        attributes = {"filename": filename}
        if content_type is not None:
            attributes["contentType"] = content_type
        if metadata is not None:
            attributes["metadata"] = metadata
        file_id = self._grid_fs().put(content, session=session, **attributes)
        self.logger.debug(f"Stored file {filename} with id {file_id}.")
        return self._files_collection().find_one({"_id": file_id}, session=session)

    def find_files(self, query: Optional[Document] = None) -> Iterable:
        return lazy(self._grid_fs().find(query or {}, session=self.open_session()))

    def find_one_file(self, query: Document) -> gridfs.GridOut:
        check_not_none(query, "query")
        file = self._grid_fs().find_one(query, session=self.open_session())
        if file is None:
            raise DocumentNotFoundError(f"No file found for query {query}", query)
        return file

    def get_file_content(self, query: Document) -> BinaryIO:
        check_not_none(query, "query")
        return self.find_one_file(query)

    def list_files(self, query: Optional[Document] = None) -> Iterable:
        cursor = self._files_collection().find(query or {}, session=self.open_session())
        return lazy(cursor.sort("filename", pymongo.ASCENDING))

    def remove_files(self, query: Optional[Document] = None) -> int:
        session = self.open_session()
        fs = self._grid_fs()
        file_ids = [file["_id"] for file in self._files_collection().find(query or {}, {"_id": 1}, session=session)]
        for file_id in file_ids:
            fs.delete(file_id, session=session)
        return len(file_ids)
