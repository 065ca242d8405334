"""
Response store - append-only persistence for survey submissions

Every store assigns the id and timestamp itself and exposes create and read
operations only. Failures of the underlying medium surface as
StorageUnavailable so callers never see a partially written record.
"""
import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import BSONError
from pymongo.errors import PyMongoError

from app.config.database import Collections, DatabaseConfig
from app.config.settings import settings
from app.models.submission import StoredResponse
from app.utils.errors import InvalidPayload, StorageUnavailable
from app.utils.helpers import to_object_id, to_utc, utc_now

logger = logging.getLogger(__name__)


def document_to_response(document: Dict) -> StoredResponse:
    """Build a StoredResponse from a raw survey_responses document"""
    return StoredResponse(
        id=str(document["_id"]),
        data=document["data"],
        surveyId=document.get("surveyId"),
        submittedAt=to_utc(document["submittedAt"]),
    )


def new_document(data: Dict[str, Any], survey_id: Any = None) -> Dict:
    return {
        "_id": ObjectId(),
        "data": copy.deepcopy(data),
        "surveyId": survey_id,
        "submittedAt": utc_now(),
    }


class ResponseStore:
    """Abstract store interface"""

    async def save(self, data: Dict[str, Any], survey_id: Any = None) -> StoredResponse:
        """Persist a submission and return the full stored record"""
        raise NotImplementedError

    async def get(self, response_id: str) -> Optional[StoredResponse]:
        """Read back a single record, None if it does not exist"""
        raise NotImplementedError

    async def count(self) -> int:
        raise NotImplementedError

    async def ping(self) -> bool:
        """True when the underlying medium is reachable"""
        raise NotImplementedError

    async def close(self) -> None:
        pass


class MongoResponseStore(ResponseStore):
    """MongoDB-backed store, one document per submission"""

    def __init__(self, collection, timeout_seconds: float = None, db_config: DatabaseConfig = None):
        self.collection = collection
        if timeout_seconds is None:
            timeout_seconds = settings.STORAGE_TIMEOUT_SECONDS
        self.timeout_seconds = timeout_seconds
        self.db_config = db_config

    @classmethod
    async def connect(cls, db_config: DatabaseConfig = None) -> "MongoResponseStore":
        """Open the MongoDB connection and bind the survey_responses collection"""
        db_config = db_config or DatabaseConfig()
        await db_config.connect_db()
        collection = db_config.get_collection(Collections.SURVEY_RESPONSES)
        return cls(collection, timeout_seconds=db_config.TIMEOUT_SECONDS, db_config=db_config)

    async def _bounded(self, operation: str, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.error("⏱️ %s timed out after %.1fs", operation, self.timeout_seconds)
            raise StorageUnavailable(f"Response store did not answer within {self.timeout_seconds}s") from exc
        except (BSONError, OverflowError) as exc:
            # Raised while encoding, before anything reaches the server; retrying cannot help
            logger.warning("⚠️ %s rejected an unencodable document: %s", operation, exc)
            raise InvalidPayload(f"answers cannot be stored: {exc}") from exc
        except PyMongoError as exc:
            logger.error("❌ %s failed: %s", operation, exc)
            raise StorageUnavailable("Response store is unavailable") from exc

    async def save(self, data: Dict[str, Any], survey_id: Any = None) -> StoredResponse:
        document = new_document(data, survey_id)
        result = await self._bounded("insert", self.collection.insert_one(document))
        if not result.acknowledged:
            raise StorageUnavailable("Response store did not acknowledge the write")
        return document_to_response(document)

    async def get(self, response_id: str) -> Optional[StoredResponse]:
        object_id = to_object_id(response_id)
        if object_id is None:
            return None
        document = await self._bounded("find", self.collection.find_one({"_id": object_id}))
        return document_to_response(document) if document else None

    async def count(self) -> int:
        return await self._bounded("count", self.collection.count_documents({}))

    async def ping(self) -> bool:
        try:
            await self._bounded("ping", self.collection.database.command("ping"))
        except StorageUnavailable:
            return False
        return True

    async def close(self) -> None:
        if self.db_config:
            await self.db_config.close_db()


class InMemoryResponseStore(ResponseStore):
    """Process-local store for tests and demos; data is lost on restart"""

    def __init__(self, available: bool = True):
        self.available = available
        self._documents: List[Dict] = []
        self._lock = asyncio.Lock()

    def _check_available(self):
        if not self.available:
            raise StorageUnavailable("Response store is unavailable")

    async def save(self, data: Dict[str, Any], survey_id: Any = None) -> StoredResponse:
        self._check_available()
        document = new_document(data, survey_id)
        async with self._lock:
            self._documents.append(document)
        return document_to_response(document)

    async def get(self, response_id: str) -> Optional[StoredResponse]:
        self._check_available()
        object_id = to_object_id(response_id)
        for document in self._documents:
            if document["_id"] == object_id:
                return document_to_response(document)
        return None

    async def count(self) -> int:
        self._check_available()
        return len(self._documents)

    async def ping(self) -> bool:
        return self.available


async def create_store(backend: str = None) -> ResponseStore:
    """Build the store selected by STORE_BACKEND"""
    backend = (backend or settings.STORE_BACKEND).lower()
    if backend == "memory":
        logger.info("✓ Response store: in-memory")
        return InMemoryResponseStore()
    if backend == "mongo":
        store = await MongoResponseStore.connect()
        logger.info("✓ Response store: MongoDB collection '%s'", Collections.SURVEY_RESPONSES)
        return store
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")
