import os

import pymongo
import pytest
from pymongo.errors import PyMongoError

from conduit.mongo import MongoConnector

# MongoDB connection settings
MONGO_HOST = os.environ.get("CONDUIT_MONGO__HOST", "localhost")
MONGO_PORT = int(os.environ.get("CONDUIT_MONGO__PORT", "27017"))
MONGO_DB = "conduit_integration_test"


@pytest.fixture(scope="session")
def mongo_available():
    """Skip the calling test when no MongoDB server is reachable."""
    client = pymongo.MongoClient(MONGO_HOST, MONGO_PORT, serverSelectionTimeoutMS=2000)
    try:
        client.admin.command("ping")
    except PyMongoError as e:
        pytest.skip(f"MongoDB is not available at {MONGO_HOST}:{MONGO_PORT}: {e}")
    finally:
        client.close()


@pytest.fixture(scope="function")
def connector(mongo_available):
    """Create a connected MongoConnector and drop its database after the test."""
    connector = MongoConnector(host=MONGO_HOST, port=MONGO_PORT, database=MONGO_DB)
    connector.connect()
    try:
        yield connector
    finally:
        connector.client.get_db().client.drop_database(MONGO_DB)
        connector.disconnect()
