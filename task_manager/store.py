"""Task document stores.

Both backends hold plain documents keyed by ``_id`` (a BSON ObjectId) with
the fields ``title``, ``description``, ``status``, ``dueDate`` and
``createdAt``. The store assigns ``_id`` and ``createdAt`` on insert.
Listing is newest first.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Protocol

from bson import ObjectId
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import OperationFailure, PyMongoError

from task_manager.config import Settings
from task_manager.errors import StoreConstraintError, StoreUnavailableError

logger = logging.getLogger(__name__)

# Duplicate key, document failed validation.
CONSTRAINT_ERROR_CODES = frozenset({11000, 121})


def is_valid_task_id(task_id: str) -> bool:
    """Return True if ``task_id`` has ObjectId syntax (24 hex characters)."""
    return isinstance(task_id, str) and ObjectId.is_valid(task_id)


def _now() -> datetime:
    # Stored instants carry millisecond precision, as in MongoDB.
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class TaskStore(Protocol):
    """Persistence operations used by the task repository."""

    def find_all(self) -> list[dict[str, Any]]:
        """Return every task document, newest first."""

    def find_by_id(self, task_id: ObjectId) -> dict[str, Any] | None:
        """Return the document with ``task_id`` or None."""

    def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        """Store a new document and return it with ``_id`` and ``createdAt``."""

    def replace(self, task_id: ObjectId, document: dict[str, Any]) -> dict[str, Any] | None:
        """Replace the mutable fields of a document; None if it does not exist."""

    def delete(self, task_id: ObjectId) -> dict[str, Any] | None:
        """Remove a document and return its final state; None if it does not exist."""


class MemoryTaskStore:
    """In-process task storage used when no MongoDB URI is configured."""

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._tasks: dict[ObjectId, dict[str, Any]] = {}

    def find_all(self) -> list[dict[str, Any]]:
        # Reversing first keeps equal timestamps in newest-first insertion order.
        documents = reversed(list(self._tasks.values()))
        return [dict(doc) for doc in sorted(documents, key=lambda d: d["createdAt"], reverse=True)]

    def find_by_id(self, task_id: ObjectId) -> dict[str, Any] | None:
        document = self._tasks.get(task_id)
        return dict(document) if document is not None else None

    def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        stored = {"_id": ObjectId(), **document, "createdAt": _now()}
        self._tasks[stored["_id"]] = stored
        return dict(stored)

    def replace(self, task_id: ObjectId, document: dict[str, Any]) -> dict[str, Any] | None:
        current = self._tasks.get(task_id)
        if current is None:
            return None
        updated = {**document, "_id": task_id, "createdAt": current["createdAt"]}
        self._tasks[task_id] = updated
        return dict(updated)

    def delete(self, task_id: ObjectId) -> dict[str, Any] | None:
        return self._tasks.pop(task_id, None)


class MongoTaskStore:
    """Task storage backed by a MongoDB collection.

    Driver failures are raised as ``StoreUnavailableError``; write errors
    reported by the server (document validation, duplicate keys) as
    ``StoreConstraintError``. Nothing is retried.
    """

    def __init__(self, collection: Collection) -> None:
        self._collection = collection

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoTaskStore":
        # MongoClient connects lazily, so the service starts even when the
        # server is down; requests then fail once selection times out.
        client: MongoClient = MongoClient(
            settings.mongodb_uri,
            tz_aware=True,
            serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
        )
        return cls(client[settings.mongodb_database][settings.mongodb_collection])

    def find_all(self) -> list[dict[str, Any]]:
        try:
            cursor = self._collection.find().sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            return list(cursor)
        except PyMongoError as exc:
            raise self._translate(exc, "find") from exc

    def find_by_id(self, task_id: ObjectId) -> dict[str, Any] | None:
        try:
            return self._collection.find_one({"_id": task_id})
        except PyMongoError as exc:
            raise self._translate(exc, "find_one") from exc

    def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        stored = {**document, "createdAt": _now()}
        try:
            result = self._collection.insert_one(stored)
        except PyMongoError as exc:
            raise self._translate(exc, "insert_one") from exc
        stored["_id"] = result.inserted_id
        return stored

    def replace(self, task_id: ObjectId, document: dict[str, Any]) -> dict[str, Any] | None:
        fields = {key: value for key, value in document.items() if key not in ("_id", "createdAt")}
        try:
            return self._collection.find_one_and_update(
                {"_id": task_id},
                {"$set": fields},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise self._translate(exc, "find_one_and_update") from exc

    def delete(self, task_id: ObjectId) -> dict[str, Any] | None:
        try:
            return self._collection.find_one_and_delete({"_id": task_id})
        except PyMongoError as exc:
            raise self._translate(exc, "find_one_and_delete") from exc

    @staticmethod
    def _translate(exc: PyMongoError, operation: str) -> Exception:
        if isinstance(exc, OperationFailure) and exc.code in CONSTRAINT_ERROR_CODES:
            return StoreConstraintError(str(exc), cause=exc)
        logger.warning("mongodb %s failed: %s", operation, exc, extra={"op": operation})
        return StoreUnavailableError(str(exc), cause=exc)


def create_store(settings: Settings) -> TaskStore:
    """Build the store selected by ``settings``."""
    if settings.mongodb_uri:
        logger.info("using mongodb store", extra={"op": "startup"})
        return MongoTaskStore.from_settings(settings)
    logger.info("MONGODB_URI not set; using in-memory store", extra={"op": "startup"})
    return MemoryTaskStore()
