import threading
from unittest.mock import MagicMock, patch

import pytest
from bson.code import Code
from pymongo import WriteConcern as MongoWriteConcern

from conduit.mongo import DocumentNotFoundError, LazyIterable, MongoClientImpl
from conduit.mongo.client import IndexOrder, WriteConcern


@pytest.fixture
def database():
    database = MagicMock()
    database.client.start_session.side_effect = lambda **kwargs: MagicMock(has_ended=False)
    database.write_concern = MongoWriteConcern(w=1)
    return database


@pytest.fixture
def collection(database):
    return database.get_collection.return_value


@pytest.fixture
def client(database):
    return MongoClientImpl(database)


@pytest.fixture
def grid_fs():
    with patch("conduit.mongo.client.mongo_client_impl.gridfs.GridFS") as grid_fs_cls:
        yield grid_fs_cls


class TestSessions:
    def test_requires_database(self):
        with pytest.raises(ValueError, match="database must not be None"):
            MongoClientImpl(None)

    def test_default_gridfs_bucket_from_config(self, client):
        assert client.gridfs_bucket == "fs"
        assert MongoClientImpl(MagicMock(), gridfs_bucket="attachments").gridfs_bucket == "attachments"

    def test_session_is_causally_consistent_and_reused(self, client, database):
        session = client.open_session()
        assert client.open_session() is session
        database.client.start_session.assert_called_once_with(causal_consistency=True)

    def test_ended_session_is_replaced(self, client):
        session = client.open_session()
        session.has_ended = True
        assert client.open_session() is not session

    def test_each_thread_gets_its_own_session(self, client):
        sessions = []
        thread = threading.Thread(target=lambda: sessions.append(client.open_session()))
        thread.start()
        thread.join()
        assert sessions[0] is not client.open_session()

    def test_finished_threads_sessions_are_ended(self, client):
        sessions = []
        threads = [threading.Thread(target=lambda: sessions.append(client.open_session())) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        own = client.open_session()

        assert len(sessions) == 20
        for session in sessions:
            session.end_session.assert_called_once()
        assert list(client._sessions.values()) == [own]
        own.end_session.assert_not_called()

    def test_running_threads_keep_their_session(self, client):
        opened = threading.Event()
        release = threading.Event()
        sessions = []

        def worker():
            sessions.append(client.open_session())
            opened.set()
            release.wait(5)

        thread = threading.Thread(target=worker)
        thread.start()
        opened.wait(5)
        try:
            client.open_session()
            sessions[0].end_session.assert_not_called()
            assert len(client._sessions) == 2
        finally:
            release.set()
            thread.join()

    def test_close_ends_all_sessions(self, client):
        opened = threading.Event()
        release = threading.Event()
        sessions = [client.open_session()]

        def worker():
            sessions.append(client.open_session())
            opened.set()
            release.wait(5)

        thread = threading.Thread(target=worker)
        thread.start()
        opened.wait(5)
        client.close()
        release.set()
        thread.join()

        for session in sessions:
            session.end_session.assert_called_once()
        assert client._sessions == {}

    def test_context_manager_closes(self, client):
        session = client.open_session()
        with client:
            pass
        session.end_session.assert_called_once()

    def test_get_db(self, client, database):
        assert client.get_db() is database


class TestCollections:
    def test_list_collections(self, client, database):
        database.list_collection_names.return_value = ["a", "b"]
        assert client.list_collections() == ["a", "b"]
        database.list_collection_names.assert_called_once_with(session=client.open_session())

    def test_exists_collection(self, client, database):
        database.list_collection_names.return_value = ["items"]
        assert client.exists_collection("items") is True
        database.list_collection_names.assert_called_with(session=client.open_session(), filter={"name": "items"})
        database.list_collection_names.return_value = []
        assert client.exists_collection("items") is False

    def test_exists_collection_requires_name(self, client):
        with pytest.raises(ValueError):
            client.exists_collection(None)

    def test_create_collection(self, client, database):
        client.create_collection("plain")
        database.create_collection.assert_called_with("plain", session=client.open_session(), capped=False)

        client.create_collection("log", capped=True, max_objects=100, size=4096)
        database.create_collection.assert_called_with(
            "log", session=client.open_session(), capped=True, max=100, size=4096
        )

    def test_drop_collection(self, client, database, collection):
        client.drop_collection("items")
        database.get_collection.assert_called_with("items", write_concern=None)
        collection.drop.assert_called_once_with(session=client.open_session())


class TestDocuments:
    def test_count_without_query_uses_estimate(self, client, database, collection):
        collection.estimated_document_count.return_value = 7
        assert client.count_objects("items") == 7
        collection.count_documents.assert_not_called()
        database.client.start_session.assert_not_called()

    def test_count_with_query(self, client, collection):
        collection.count_documents.return_value = 2
        assert client.count_objects("items", {"qty": 0}) == 2
        collection.count_documents.assert_called_once_with({"qty": 0}, session=client.open_session())

    def test_find_objects_is_lazy(self, client, collection):
        collection.find.return_value = iter([{"sku": "A"}, {"sku": "B"}])
        results = client.find_objects("items", {"qty": {"$gt": 0}}, ["sku"])
        assert isinstance(results, LazyIterable)
        assert [d["sku"] for d in results] == ["A", "B"]
        collection.find.assert_called_once_with({"qty": {"$gt": 0}}, {"sku": 1}, session=client.open_session())

    def test_find_objects_defaults(self, client, collection):
        collection.find.return_value = iter([])
        client.find_objects("items")
        collection.find.assert_called_once_with({}, None, session=client.open_session())

    def test_find_one_object(self, client, collection):
        collection.find_one.return_value = {"sku": "A"}
        assert client.find_one_object("items", {"sku": "A"}) == {"sku": "A"}

    def test_find_one_object_not_found(self, client, collection):
        collection.find_one.return_value = None
        with pytest.raises(DocumentNotFoundError, match="No object found for query") as excinfo:
            client.find_one_object("items", {"sku": "missing"})
        assert excinfo.value.query == {"sku": "missing"}

    def test_insert_object(self, client, database, collection):
        collection.insert_one.return_value.inserted_id = "new-id"
        assert client.insert_object("items", {"sku": "A"}, WriteConcern.SAFE) == "new-id"
        database.get_collection.assert_called_with("items", write_concern=MongoWriteConcern(w=1))
        collection.insert_one.assert_called_once_with({"sku": "A"}, session=client.open_session())

    def test_unacknowledged_insert_runs_without_session(self, client, collection):
        client.insert_object("items", {"sku": "A"}, WriteConcern.NONE)
        collection.insert_one.assert_called_once_with({"sku": "A"}, session=None)

    def test_insert_object_requires_arguments(self, client):
        with pytest.raises(ValueError, match="document must not be None"):
            client.insert_object("items", None, WriteConcern.SAFE)
        with pytest.raises(ValueError, match="write_concern must not be None"):
            client.insert_object("items", {}, None)

    def test_save_object_without_id_inserts(self, client, collection):
        collection.insert_one.return_value.inserted_id = "generated"
        assert client.save_object("items", {"sku": "A"}, WriteConcern.DATABASE_DEFAULT) == "generated"
        collection.replace_one.assert_not_called()

    def test_save_object_with_id_upserts(self, client, collection):
        document = {"_id": 5, "sku": "A"}
        assert client.save_object("items", document, WriteConcern.SAFE) == 5
        collection.replace_one.assert_called_once_with(
            {"_id": 5}, document, upsert=True, session=client.open_session()
        )

    def test_update_many(self, client, collection):
        collection.update_many.return_value.modified_count = 3
        update = {"$set": {"qty": 0}}
        assert client.update_objects("items", {"sku": "A"}, update) == 3
        collection.update_many.assert_called_once_with(
            {"sku": "A"}, update, upsert=False, session=client.open_session()
        )

    def test_update_single_with_operators(self, client, collection):
        client.update_objects("items", None, {"$inc": {"qty": 1}}, upsert=True, multi=False)
        collection.update_one.assert_called_once_with(
            {}, {"$inc": {"qty": 1}}, upsert=True, session=client.open_session()
        )

    def test_update_single_with_replacement(self, client, collection):
        client.update_objects("items", {"sku": "A"}, {"sku": "A", "qty": 1}, multi=False)
        collection.replace_one.assert_called_once()
        collection.update_one.assert_not_called()

    def test_update_requires_document(self, client, collection):
        with pytest.raises(ValueError, match="document must not be None"):
            client.update_objects("items", {"sku": "A"}, None)
        collection.update_many.assert_not_called()

    def test_unacknowledged_update_returns_zero(self, client, collection):
        collection.update_many.return_value.acknowledged = False
        assert client.update_objects("items", {}, {"$set": {"a": 1}}, write_concern=WriteConcern.NORMAL) == 0

    def test_remove_objects(self, client, collection):
        collection.delete_many.return_value.deleted_count = 4
        assert client.remove_objects("items", None, WriteConcern.SAFE) == 4
        collection.delete_many.assert_called_once_with({}, session=client.open_session())

    def test_map_reduce_inline(self, client, database):
        database.command.return_value = {"results": [{"_id": "A", "value": 2}]}
        results = client.map_reduce_objects("items", "function() {}", "function(k, v) {}")
        assert list(results) == [{"_id": "A", "value": 2}]

        command = database.command.call_args.args[0]
        assert list(command) == ["mapReduce", "map", "reduce", "out"]
        assert command["mapReduce"] == "items"
        assert command["map"] == Code("function() {}")
        assert command["out"] == {"inline": 1}

    def test_map_reduce_to_collection(self, client, database, collection):
        database.command.return_value = {"result": "totals", "ok": 1}
        collection.find.return_value = iter([{"_id": "A", "value": 2}])
        results = client.map_reduce_objects("items", "function() {}", "function(k, v) {}", "totals")
        assert database.command.call_args.args[0]["out"] == {"replace": "totals"}
        database.get_collection.assert_called_with("totals")
        assert list(results) == [{"_id": "A", "value": 2}]

    def test_map_reduce_requires_functions(self, client):
        with pytest.raises(ValueError, match="map_function must not be empty"):
            client.map_reduce_objects("items", "", "function(k, v) {}")


class TestIndices:
    def test_create_index(self, client, collection):
        collection.create_index.return_value = "sku_-1"
        assert client.create_index("items", "sku", IndexOrder.DESC) == "sku_-1"
        collection.create_index.assert_called_once_with([("sku", -1)], session=client.open_session())

    def test_drop_index(self, client, collection):
        client.drop_index("items", "sku_1")
        collection.drop_index.assert_called_once_with("sku_1", session=client.open_session())

    def test_list_indices(self, client, collection):
        collection.list_indexes.return_value = iter([{"name": "_id_"}])
        assert client.list_indices("items") == [{"name": "_id_"}]


class TestFiles:
    def test_create_file(self, client, database, collection, grid_fs):
        grid_fs.return_value.put.return_value = "file-id"
        collection.find_one.return_value = {"_id": "file-id", "filename": "a.txt"}

        stored = client.create_file(b"hello", "a.txt", "text/plain", {"owner": "me"})

        assert stored == {"_id": "file-id", "filename": "a.txt"}
        grid_fs.assert_called_with(database, collection="fs")
        grid_fs.return_value.put.assert_called_once_with(
            b"hello",
            session=client.open_session(),
            filename="a.txt",
            contentType="text/plain",
            metadata={"owner": "me"},
        )
        database.get_collection.assert_called_with("fs.files")

    def test_create_file_requires_filename(self, client, grid_fs):
        with pytest.raises(ValueError, match="filename must not be None"):
            client.create_file(b"hello", None)

    def test_find_files(self, client, grid_fs):
        grid_fs.return_value.find.return_value = iter(["file"])
        assert list(client.find_files()) == ["file"]
        grid_fs.return_value.find.assert_called_once_with({}, session=client.open_session())

    def test_find_one_file_not_found(self, client, grid_fs):
        grid_fs.return_value.find_one.return_value = None
        with pytest.raises(DocumentNotFoundError, match="No file found for query"):
            client.find_one_file({"filename": "missing"})

    def test_get_file_content(self, client, grid_fs):
        grid_out = MagicMock()
        grid_fs.return_value.find_one.return_value = grid_out
        assert client.get_file_content({"filename": "a.txt"}) is grid_out

    def test_list_files_sorted_by_filename(self, client, collection):
        collection.find.return_value.sort.return_value = iter([{"filename": "a"}, {"filename": "b"}])
        assert [f["filename"] for f in client.list_files()] == ["a", "b"]
        collection.find.return_value.sort.assert_called_once_with("filename", 1)

    def test_remove_files(self, client, collection, grid_fs):
        collection.find.return_value = [{"_id": 1}, {"_id": 2}]
        assert client.remove_files({"filename": "a"}) == 2
        session = client.open_session()
        collection.find.assert_called_once_with({"filename": "a"}, {"_id": 1}, session=session)
        assert [c.args[0] for c in grid_fs.return_value.delete.call_args_list] == [1, 2]
