from types import SimpleNamespace

import pytest
from pymongo import ReturnDocument

from global311.core import database
from global311.core.database import DatabaseManager
from global311.core.exceptions import ConcurrentModificationError, NotFound, ServiceUnavailable
from global311.pins.store import InMemoryDocumentStore, MongoDocumentStore


@pytest.mark.asyncio
async def test_create_assigns_id_and_revision():
    store = InMemoryDocumentStore()

    record = await store.create("pins", {"title": "Pothole", "created_at": 1})

    assert record["id"]
    assert record["revision"] == 0
    assert await store.get("pins", record["id"]) == record


@pytest.mark.asyncio
async def test_returned_records_are_copies():
    store = InMemoryDocumentStore()
    record = await store.create("pins", {"approvals": [], "created_at": 1})

    record["approvals"].append("mallory")

    assert (await store.get("pins", record["id"]))["approvals"] == []


@pytest.mark.asyncio
async def test_conditional_update_checks_revision():
    store = InMemoryDocumentStore()
    record = await store.create("pins", {"status": "active", "created_at": 1})

    updated = await store.update("pins", record["id"], {"status": "resolved"}, expected_revision=0)
    assert updated["revision"] == 1

    with pytest.raises(ConcurrentModificationError):
        await store.update("pins", record["id"], {"status": "active"}, expected_revision=0)
    assert (await store.get("pins", record["id"]))["status"] == "resolved"


@pytest.mark.asyncio
async def test_missing_records_raise_not_found():
    store = InMemoryDocumentStore()

    with pytest.raises(NotFound):
        await store.get("pins", "nope")
    with pytest.raises(NotFound):
        await store.update("pins", "nope", {"title": "x"})
    with pytest.raises(NotFound):
        await store.delete("pins", "nope")


@pytest.mark.asyncio
async def test_list_filters_orders_and_limits():
    store = InMemoryDocumentStore()
    for index, category in enumerate(["pot", "flood", "pot", "pot"]):
        await store.create("pins", {"category_id": category, "created_at": index})

    records = await store.list("pins", filters={"category_id": "pot"}, limit=2)

    assert [record["created_at"] for record in records] == [3, 2]


@pytest.mark.asyncio
async def test_mongo_store_without_connection_is_unavailable():
    store = MongoDocumentStore(manager=DatabaseManager())

    with pytest.raises(ServiceUnavailable):
        await store.get("pins", "pin-1")


class FakeCursor:
    def __init__(self, documents):
        self.documents = documents

    def sort(self, key, direction):
        self.documents.sort(key=lambda document: document[key], reverse=direction < 0)
        return self

    def limit(self, count):
        self.documents = self.documents[:count]
        return self

    async def to_list(self, length):
        return self.documents[:length]


class FakeCollection:
    """Just enough of motor's collection API for the pin store."""

    def __init__(self):
        self.documents = {}

    @staticmethod
    def _matches(document, query):
        return all(document.get(key) == value for key, value in query.items())

    async def insert_one(self, document):
        self.documents[document["_id"]] = dict(document)

    async def find_one(self, query):
        for document in self.documents.values():
            if self._matches(document, query):
                return dict(document)
        return None

    async def find_one_and_update(self, query, update, return_document=None):
        assert return_document == ReturnDocument.AFTER
        for document in self.documents.values():
            if self._matches(document, query):
                document.update(update["$set"])
                for key, step in update.get("$inc", {}).items():
                    document[key] = document.get(key, 0) + step
                return dict(document)
        return None

    async def count_documents(self, query, limit=0):
        return sum(1 for document in self.documents.values() if self._matches(document, query))

    async def delete_one(self, query):
        for key, document in list(self.documents.items()):
            if self._matches(document, query):
                del self.documents[key]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    def find(self, query):
        return FakeCursor([dict(document) for document in self.documents.values() if self._matches(document, query)])


@pytest.fixture
def mongo_pins():
    collection = FakeCollection()
    manager = SimpleNamespace(mongodb={"global311": {"pins": collection}})
    return MongoDocumentStore(manager=manager, database="global311"), collection


@pytest.mark.asyncio
async def test_mongo_store_maps_ids(mongo_pins):
    store, collection = mongo_pins

    record = await store.create("pins", {"id": "ignored", "title": "Pothole", "created_at": 1})

    assert record["id"] != "ignored"
    assert record["revision"] == 0
    assert "_id" not in record
    assert collection.documents[record["id"]]["title"] == "Pothole"
    assert await store.get("pins", record["id"]) == record


@pytest.mark.asyncio
async def test_mongo_conditional_update(mongo_pins):
    store, collection = mongo_pins
    record = await store.create("pins", {"status": "active", "created_at": 1})

    updated = await store.update("pins", record["id"], {"status": "resolved"}, expected_revision=0)
    assert updated["revision"] == 1
    assert updated["id"] == record["id"]

    with pytest.raises(ConcurrentModificationError):
        await store.update("pins", record["id"], {"status": "active"}, expected_revision=0)
    assert collection.documents[record["id"]]["status"] == "resolved"

    with pytest.raises(NotFound):
        await store.update("pins", "missing", {"status": "active"}, expected_revision=0)


@pytest.mark.asyncio
async def test_mongo_delete_and_list(mongo_pins):
    store, _ = mongo_pins
    for index, category in enumerate(["pot", "flood", "pot", "pot"]):
        await store.create("pins", {"category_id": category, "created_at": index})

    records = await store.list("pins", filters={"category_id": "pot"}, limit=2)
    assert [record["created_at"] for record in records] == [3, 2]

    oldest = await store.list("pins", descending=False, limit=1)
    assert oldest[0]["created_at"] == 0

    await store.delete("pins", oldest[0]["id"])
    with pytest.raises(NotFound):
        await store.delete("pins", oldest[0]["id"])


@pytest.mark.asyncio
async def test_mongo_client_returns_aware_datetimes(monkeypatch):
    calls = []

    class RecordingClient:
        def __init__(self, *args, **kwargs):
            calls.append(kwargs)

        def close(self):
            pass

    monkeypatch.setattr(database, "AsyncIOMotorClient", RecordingClient)
    manager = DatabaseManager()

    await manager.initialize()
    await manager.close()

    assert calls == [{"tz_aware": True}]
