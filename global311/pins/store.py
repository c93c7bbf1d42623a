"""Document store abstraction backing the pin collection.

Two implementations share one protocol: ``MongoDocumentStore`` talks to
MongoDB through motor, ``InMemoryDocumentStore`` keeps records in process for
tests and local development. Both expose records as plain dicts with an
``id`` key and maintain an integer ``revision`` used for conditional writes.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Protocol

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from global311.core.config import settings
from global311.core.database import DatabaseManager, database_manager
from global311.core.exceptions import ConcurrentModificationError, NotFound, ServiceUnavailable

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class DocumentStore(Protocol):
    async def create(self, collection: str, record: Mapping[str, Any]) -> Record:
        ...

    async def get(self, collection: str, record_id: str) -> Record:
        ...

    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Mapping[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Record:
        ...

    async def delete(self, collection: str, record_id: str) -> None:
        ...

    async def list(
        self,
        collection: str,
        *,
        order_by: str = "created_at",
        descending: bool = True,
        limit: int = 100,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Record]:
        ...


class InMemoryDocumentStore:
    """Process-local store. Each call completes without yielding to the loop."""

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Record]] = {}

    def _collection(self, name: str) -> Dict[str, Record]:
        return self._collections.setdefault(name, {})

    async def create(self, collection: str, record: Mapping[str, Any]) -> Record:
        record_id = str(uuid.uuid4())
        stored = copy.deepcopy(dict(record))
        stored["id"] = record_id
        stored.setdefault("revision", 0)
        self._collection(collection)[record_id] = stored
        return copy.deepcopy(stored)

    async def get(self, collection: str, record_id: str) -> Record:
        stored = self._collection(collection).get(record_id)
        if stored is None:
            raise NotFound(f"Record {record_id} not found", details={"collection": collection})
        return copy.deepcopy(stored)

    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Mapping[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Record:
        stored = self._collection(collection).get(record_id)
        if stored is None:
            raise NotFound(f"Record {record_id} not found", details={"collection": collection})
        if expected_revision is not None and stored.get("revision") != expected_revision:
            raise ConcurrentModificationError(
                f"Record {record_id} changed since it was read",
                details={"expected_revision": expected_revision, "revision": stored.get("revision")},
            )
        stored.update(copy.deepcopy(dict(fields)))
        stored["revision"] = stored.get("revision", 0) + 1
        return copy.deepcopy(stored)

    async def delete(self, collection: str, record_id: str) -> None:
        if self._collection(collection).pop(record_id, None) is None:
            raise NotFound(f"Record {record_id} not found", details={"collection": collection})

    async def list(
        self,
        collection: str,
        *,
        order_by: str = "created_at",
        descending: bool = True,
        limit: int = 100,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Record]:
        records = [
            record
            for record in self._collection(collection).values()
            if all(record.get(key) == value for key, value in (filters or {}).items())
        ]
        records.sort(key=lambda record: record[order_by], reverse=descending)
        return [copy.deepcopy(record) for record in records[:limit]]


class MongoDocumentStore:
    """Persist records in MongoDB; ``id`` is stored as ``_id``."""

    def __init__(self, manager: DatabaseManager = database_manager, database: Optional[str] = None) -> None:
        self._manager = manager
        self._database = database or settings.MONGODB_DATABASE

    def _collection(self, name: str):
        mongodb = self._manager.mongodb
        if mongodb is None:
            raise ServiceUnavailable("Pin persistence store is unavailable. Ensure MongoDB is configured.")
        return mongodb[self._database][name]

    @staticmethod
    def _decode(document: Mapping[str, Any]) -> Record:
        record = dict(document)
        record["id"] = str(record.pop("_id"))
        return record

    async def create(self, collection: str, record: Mapping[str, Any]) -> Record:
        document = {key: value for key, value in record.items() if key != "id"}
        document["_id"] = str(uuid.uuid4())
        document.setdefault("revision", 0)
        try:
            await self._collection(collection).insert_one(document)
        except PyMongoError as exc:
            logger.exception("Failed to insert record into %s", collection)
            raise ServiceUnavailable("Document store write failed") from exc
        return self._decode(document)

    async def get(self, collection: str, record_id: str) -> Record:
        try:
            document = await self._collection(collection).find_one({"_id": record_id})
        except PyMongoError as exc:
            logger.exception("Failed to read record %s from %s", record_id, collection)
            raise ServiceUnavailable("Document store read failed") from exc
        if not document:
            raise NotFound(f"Record {record_id} not found", details={"collection": collection})
        return self._decode(document)

    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Mapping[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Record:
        query: Dict[str, Any] = {"_id": record_id}
        if expected_revision is not None:
            query["revision"] = expected_revision
        target = self._collection(collection)
        try:
            document = await target.find_one_and_update(
                query,
                {"$set": dict(fields), "$inc": {"revision": 1}},
                return_document=ReturnDocument.AFTER,
            )
            if document is None:
                exists = await target.count_documents({"_id": record_id}, limit=1)
        except PyMongoError as exc:
            logger.exception("Failed to update record %s in %s", record_id, collection)
            raise ServiceUnavailable("Document store write failed") from exc

        if document is None:
            if not exists:
                raise NotFound(f"Record {record_id} not found", details={"collection": collection})
            raise ConcurrentModificationError(
                f"Record {record_id} changed since it was read",
                details={"expected_revision": expected_revision},
            )
        return self._decode(document)

    async def delete(self, collection: str, record_id: str) -> None:
        try:
            result = await self._collection(collection).delete_one({"_id": record_id})
        except PyMongoError as exc:
            logger.exception("Failed to delete record %s from %s", record_id, collection)
            raise ServiceUnavailable("Document store delete failed") from exc
        if result.deleted_count == 0:
            raise NotFound(f"Record {record_id} not found", details={"collection": collection})

    async def list(
        self,
        collection: str,
        *,
        order_by: str = "created_at",
        descending: bool = True,
        limit: int = 100,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Record]:
        try:
            cursor = (
                self._collection(collection)
                .find(dict(filters or {}))
                .sort(order_by, -1 if descending else 1)
                .limit(limit)
            )
            documents = await cursor.to_list(length=limit)
        except PyMongoError as exc:
            logger.exception("Failed to list records from %s", collection)
            raise ServiceUnavailable("Document store query failed") from exc
        return [self._decode(document) for document in documents]


def build_document_store(backend: Optional[str] = None) -> DocumentStore:
    backend = (backend or settings.STORE_BACKEND).lower()
    if backend == "memory":
        logger.warning("Using in-memory document store; pins will not survive a restart.")
        return InMemoryDocumentStore()
    return MongoDocumentStore()


__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
    "Record",
    "build_document_store",
]
