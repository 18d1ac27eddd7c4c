import os
import pytest
import mongomock
from unittest.mock import MagicMock
from pymongo import MongoClient

from tracura_budget.adapters.mongodb_adapter import MongoDBAdapter


@pytest.fixture
def mongo_client():
    """Fixture for MongoDB client (mock or real based on env var)."""
    if os.environ.get("MONGODB_REAL") == "1":
        # Use real MongoDB for integration tests
        client = MongoClient("mongodb://localhost:27017/")
        db = client["test_db"]
        yield client, db
        # Cleanup after tests
        client.drop_database("test_db")
    else:
        # Use mongomock for unit tests
        client = mongomock.MongoClient()
        db = client["test_db"]
        yield client, db


@pytest.fixture
def mongodb_adapter(mongo_client):
    """Fixture for MongoDB adapter."""
    client, _ = mongo_client
    adapter = MongoDBAdapter(
        connection_string=client.HOST, database_name="test_db", use_transactions=False)
    # Replace the real client with our fixture
    adapter.client = client
    adapter.db = client["test_db"]
    return adapter


@pytest.fixture
def phases(mongodb_adapter):
    """Fixture seeding three phases of one project."""
    collection = mongodb_adapter.db["phases"]
    collection.insert_many([
        {"_id": "B", "projectId": "proj-1", "phaseNumber": 2, "departments": {"Costumes": 5000}},
        {"_id": "A", "projectId": "proj-1", "phaseNumber": 1, "departments": {"A_Costumes": 10000}},
        {"_id": "C", "projectId": "proj-2", "phaseNumber": 1, "departments": {}},
    ])
    return collection


class TestMongoDBAdapter:
    """Test suite for MongoDB adapter."""

    def test_init(self, mongo_client):
        """Test initializing the adapter."""
        client, _ = mongo_client
        adapter = MongoDBAdapter(connection_string=client.HOST, database_name="test_db")
        assert adapter.db.name == "test_db"
        assert adapter.use_transactions is True

    def test_init_without_transactions(self, mongo_client):
        """Transactions can be switched off for a standalone server."""
        client, _ = mongo_client
        adapter = MongoDBAdapter(
            connection_string=client.HOST, database_name="test_db", use_transactions=False)
        assert adapter.use_transactions is False

    def test_create_collection(self, mongodb_adapter):
        """Test creating a collection."""
        mongodb_adapter.create_collection("expenses")
        assert "expenses" in mongodb_adapter.db.list_collection_names()

    def test_create_collection_twice(self, mongodb_adapter):
        """Creating an existing collection is a no-op."""
        mongodb_adapter.create_collection("expenses")
        mongodb_adapter.create_collection("expenses")
        assert mongodb_adapter.db.list_collection_names().count("expenses") == 1

    def test_replace_one_upserts(self, mongodb_adapter):
        """Test replacing a missing document inserts it."""
        assert mongodb_adapter.replace_one(
            "departments", {"_id": "d1"}, {"_id": "d1", "name": "Props"}) is True
        assert mongodb_adapter.replace_one(
            "departments", {"_id": "d1"}, {"_id": "d1", "name": "Sound"}) is True
        stored = list(mongodb_adapter.db["departments"].find({}))
        assert stored == [{"_id": "d1", "name": "Sound"}]

    def test_replace_one_without_upsert(self, mongodb_adapter):
        """Test replacing a missing document without upsert."""
        assert mongodb_adapter.replace_one(
            "departments", {"_id": "d1"}, {"_id": "d1"}, upsert=False) is False

    def test_find_one(self, mongodb_adapter, phases):
        """Test finding a single document."""
        assert mongodb_adapter.find_one("phases", {"_id": "A"})["phaseNumber"] == 1
        assert mongodb_adapter.find_one("phases", {"_id": "Z"}) is None

    def test_find_sorted(self, mongodb_adapter, phases):
        """Test finding documents sorted by phase number."""
        results = mongodb_adapter.find("phases", {"projectId": "proj-1"}, sort=[("phaseNumber", 1)])
        assert [doc["_id"] for doc in results] == ["A", "B"]

    def test_find_limit_and_skip(self, mongodb_adapter, phases):
        """Test paging through documents."""
        results = mongodb_adapter.find(
            "phases", {"projectId": "proj-1"}, sort=[("phaseNumber", 1)], limit=1, skip=1)
        assert [doc["_id"] for doc in results] == ["B"]

    def test_update_one_nested_field(self, mongodb_adapter, phases):
        """Test setting a key inside the departments map."""
        matched = mongodb_adapter.update_one(
            "phases", {"_id": "B"}, {"$set": {"departments.B_Costumes": 6000}})
        assert matched is True
        departments = phases.find_one({"_id": "B"})["departments"]
        assert departments == {"Costumes": 5000, "B_Costumes": 6000}

    def test_update_one_unset(self, mongodb_adapter, phases):
        """Test removing a key from the departments map."""
        mongodb_adapter.update_one(
            "phases", {"_id": "B"}, {"$unset": {"departments.Costumes": ""}})
        assert phases.find_one({"_id": "B"})["departments"] == {}

    def test_update_one_set_and_unset(self, mongodb_adapter, phases):
        """Test renaming a departments key in a single update."""
        mongodb_adapter.update_one(
            "phases",
            {"_id": "B"},
            {"$set": {"departments.B_Costumes": 5000}, "$unset": {"departments.Costumes": ""}},
        )
        assert phases.find_one({"_id": "B"})["departments"] == {"B_Costumes": 5000}

    def test_update_one_no_match(self, mongodb_adapter, phases):
        """Test updating a missing document reports no match."""
        assert mongodb_adapter.update_one("phases", {"_id": "Z"}, {"$set": {"x": 1}}) is False

    def test_update_many(self, mongodb_adapter):
        """Test updating several documents in one batch."""
        collection = mongodb_adapter.db["expenses"]
        collection.insert_many([
            {"_id": "e1", "department": "Props"},
            {"_id": "e2", "department": "Props"},
            {"_id": "e3", "department": "Sound"},
        ])
        matched = mongodb_adapter.update_many(
            "expenses", {"_id": {"$in": ["e1", "e2"]}}, {"$set": {"isAnonymous": True}})
        assert matched == 2
        assert collection.count_documents({"isAnonymous": True}) == 2
        assert "isAnonymous" not in collection.find_one({"_id": "e3"})

    def test_update_many_no_match(self, mongodb_adapter):
        """A batch matching nothing reports zero."""
        assert mongodb_adapter.update_many(
            "expenses", {"_id": {"$in": ["missing"]}}, {"$set": {"x": 1}}) == 0

    def test_update_many_in_transaction_by_default(self, mongo_client):
        """Test batches run inside a session transaction unless switched off."""
        client, _ = mongo_client
        adapter = MongoDBAdapter(connection_string=client.HOST, database_name="test_db")
        adapter.client = MagicMock()
        adapter.db = MagicMock()
        session = adapter.client.start_session.return_value.__enter__.return_value
        collection = adapter.db.__getitem__.return_value
        collection.update_many.return_value.matched_count = 2

        matched = adapter.update_many(
            "expenses", {"_id": {"$in": ["e1", "e2"]}}, {"$set": {"isAnonymous": True}})

        assert matched == 2
        adapter.client.start_session.assert_called_once()
        session.start_transaction.assert_called_once()
        collection.update_many.assert_called_once_with(
            {"_id": {"$in": ["e1", "e2"]}}, {"$set": {"isAnonymous": True}}, session=session)

    def test_delete_many(self, mongodb_adapter):
        """Test deleting matching documents."""
        collection = mongodb_adapter.db["departments"]
        collection.insert_many([
            {"_id": "d1", "phaseId": "A", "name": "Props"},
            {"_id": "d2", "phaseId": "B", "name": "Props"},
        ])
        assert mongodb_adapter.delete_many("departments", {"phaseId": "A", "name": "Props"}) == 1
        assert mongodb_adapter.delete_many("departments", {"phaseId": "A"}) == 0
        assert collection.count_documents({}) == 1

    def test_create_index(self, mongodb_adapter):
        """Test creating a compound index."""
        mongodb_adapter.create_collection("phases")
        mongodb_adapter.create_index("phases", [("projectId", 1), ("phaseNumber", 1)])
        indexes = mongodb_adapter.db["phases"].index_information()
        assert "projectId_1_phaseNumber_1" in indexes
