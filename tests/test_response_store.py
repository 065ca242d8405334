"""
Response store tests - in-memory store and the MongoDB store over a fake collection
"""
import asyncio
from datetime import datetime

import bson
import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError, WriteError
from pymongo.results import InsertOneResult
from fastapi.testclient import TestClient

from app.database.response_store import InMemoryResponseStore, MongoResponseStore, create_store
from app.main import create_app
from app.services.ingestion import IngestionService
from app.utils.errors import InvalidPayload, StorageUnavailable


class FakeDatabase:
    def __init__(self, error=None):
        self.error = error

    async def command(self, name):
        if self.error:
            raise self.error
        return {"ok": 1.0}


class FakeCollection:
    """Just enough of a motor collection for MongoResponseStore"""

    def __init__(self, error=None, delay=0, acknowledged=True):
        self.error = error
        self.delay = delay
        self.acknowledged = acknowledged
        self.documents = {}
        self.database = FakeDatabase(error)

    async def _maybe_fail(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error

    async def insert_one(self, document):
        await self._maybe_fail()
        # motor returns naive UTC datetimes on read
        stored = dict(document)
        stored["submittedAt"] = document["submittedAt"].replace(tzinfo=None)
        self.documents[document["_id"]] = stored
        return InsertOneResult(document["_id"], self.acknowledged)

    async def find_one(self, query):
        await self._maybe_fail()
        return self.documents.get(query["_id"])

    async def count_documents(self, query):
        await self._maybe_fail()
        return len(self.documents)


class EncodingCollection(FakeCollection):
    """Encodes to BSON before storing, as the driver does before sending"""

    async def insert_one(self, document):
        bson.encode(document)
        return await super().insert_one(document)


def test_memory_save_assigns_id_and_timestamp():
    store = InMemoryResponseStore()
    saved = asyncio.run(store.save({"q1": "yes"}, survey_id="customer-feedback"))

    assert ObjectId.is_valid(saved.id)
    assert isinstance(saved.submittedAt, datetime)
    assert saved.submittedAt.tzinfo is not None
    assert saved.data == {"q1": "yes"}
    assert saved.surveyId == "customer-feedback"


def test_memory_save_keeps_its_own_copy():
    store = InMemoryResponseStore()
    answers = {"tags": ["a", "b"]}
    saved = asyncio.run(store.save(answers))
    answers["tags"].append("c")

    stored = asyncio.run(store.get(saved.id))
    assert stored.data == {"tags": ["a", "b"]}


def test_memory_get_unknown_or_malformed_id():
    store = InMemoryResponseStore()
    asyncio.run(store.save({"q1": 1}))

    assert asyncio.run(store.get(str(ObjectId()))) is None
    assert asyncio.run(store.get("not-an-id")) is None


def test_memory_concurrent_saves_are_independent():
    store = InMemoryResponseStore()

    async def save_many(n):
        return await asyncio.gather(*(store.save({"index": i}) for i in range(n)))

    saved = asyncio.run(save_many(100))

    assert len({record.id for record in saved}) == 100
    assert asyncio.run(store.count()) == 100
    for i, record in enumerate(saved):
        assert record.data == {"index": i}


def test_memory_unavailable_store_writes_nothing():
    store = InMemoryResponseStore(available=False)

    with pytest.raises(StorageUnavailable):
        asyncio.run(store.save({"q1": "yes"}))
    assert asyncio.run(store.ping()) is False

    store.available = True
    assert asyncio.run(store.count()) == 0


def test_mongo_save_and_read_back():
    collection = FakeCollection()
    store = MongoResponseStore(collection, timeout_seconds=1)

    saved = asyncio.run(store.save({"nested": {"a": [1, 2]}}, survey_id=7))
    fetched = asyncio.run(store.get(saved.id))

    assert fetched == saved
    assert fetched.surveyId == 7
    assert asyncio.run(store.count()) == 1
    assert asyncio.run(store.ping()) is True


def test_mongo_unreachable_raises_storage_unavailable():
    collection = FakeCollection(error=ServerSelectionTimeoutError("no servers"))
    store = MongoResponseStore(collection, timeout_seconds=1)

    with pytest.raises(StorageUnavailable) as exc_info:
        asyncio.run(store.save({"q1": "yes"}))

    assert isinstance(exc_info.value.__cause__, ServerSelectionTimeoutError)
    assert collection.documents == {}
    assert asyncio.run(store.ping()) is False


def test_mongo_write_error_raises_storage_unavailable():
    store = MongoResponseStore(FakeCollection(error=WriteError("write failed")), timeout_seconds=1)

    with pytest.raises(StorageUnavailable):
        asyncio.run(store.save({"q1": "yes"}))


def test_mongo_deadline_expiry_raises_storage_unavailable():
    collection = FakeCollection(delay=0.5)
    store = MongoResponseStore(collection, timeout_seconds=0.01)

    with pytest.raises(StorageUnavailable):
        asyncio.run(store.save({"q1": "yes"}))
    assert collection.documents == {}


def test_mongo_unacknowledged_write_is_a_failure():
    store = MongoResponseStore(FakeCollection(acknowledged=False), timeout_seconds=1)

    with pytest.raises(StorageUnavailable):
        asyncio.run(store.save({"q1": "yes"}))


def test_mongo_concurrent_saves_get_distinct_ids():
    collection = FakeCollection()
    store = MongoResponseStore(collection, timeout_seconds=1)

    async def save_many(n):
        return await asyncio.gather(*(store.save({"index": i}) for i in range(n)))

    saved = asyncio.run(save_many(50))

    assert len({record.id for record in saved}) == 50
    assert len(collection.documents) == 50


def test_create_store_memory_backend():
    store = asyncio.run(create_store("memory"))
    assert isinstance(store, InMemoryResponseStore)


def test_create_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        asyncio.run(create_store("redis"))


def test_explicit_zero_timeout_is_kept():
    store = MongoResponseStore(FakeCollection(), timeout_seconds=0)
    assert store.timeout_seconds == 0


@pytest.mark.parametrize("answers", [
    {"rating": 2 ** 70},
    {"bad\x00key": 1},
    {"nested": {"big": -(2 ** 64)}},
])
def test_unencodable_answers_are_invalid_payload(answers):
    collection = EncodingCollection()
    store = MongoResponseStore(collection, timeout_seconds=1)

    with pytest.raises(InvalidPayload):
        asyncio.run(IngestionService(store).submit(answers))
    assert collection.documents == {}


def test_encodable_answers_pass_through_encoding():
    collection = EncodingCollection()
    store = MongoResponseStore(collection, timeout_seconds=1)

    receipt = asyncio.run(IngestionService(store).submit({"rating": 2 ** 62, "tags": ["a"]}))

    assert receipt.saved.data == {"rating": 2 ** 62, "tags": ["a"]}
    assert len(collection.documents) == 1


def test_unencodable_answers_get_a_json_400():
    collection = EncodingCollection()
    with TestClient(create_app(store=MongoResponseStore(collection, timeout_seconds=1))) as client:
        resp = client.post("/api/submissions", json={"answers": {"rating": 2 ** 70}})

    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidPayload"
    assert collection.documents == {}
