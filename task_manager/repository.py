"""Bridge between validated requests and the task store.

Every operation returns an ``Outcome`` instead of raising, so the HTTP layer
maps a small closed set of kinds onto status codes. Writes are checked
against ``TaskDocument`` before reaching the store, independently of the
request validator.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from bson import ObjectId
from pydantic import ValidationError

from task_manager.errors import StoreConstraintError, StoreUnavailableError
from task_manager.models import Task, TaskDocument
from task_manager.store import TaskStore, is_valid_task_id

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    INVALID_IDENTIFIER_SYNTAX = "invalid_identifier_syntax"
    CONSTRAINT_VIOLATION = "constraint_violation"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True)
class Outcome:
    """Result of a repository operation."""

    kind: OutcomeKind
    value: Any = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def success(cls, value: Any) -> "Outcome":
        return cls(OutcomeKind.SUCCESS, value=value)

    @classmethod
    def not_found(cls) -> "Outcome":
        return cls(OutcomeKind.NOT_FOUND)

    @classmethod
    def invalid_identifier(cls) -> "Outcome":
        return cls(OutcomeKind.INVALID_IDENTIFIER_SYNTAX)

    @classmethod
    def constraint_violation(cls, detail: str) -> "Outcome":
        return cls(OutcomeKind.CONSTRAINT_VIOLATION, detail=detail)

    @classmethod
    def store_unavailable(cls, detail: str) -> "Outcome":
        return cls(OutcomeKind.STORE_UNAVAILABLE, detail=detail)


def describe_schema_error(exc: ValidationError) -> str:
    """Summarize a schema failure as ``Task validation failed: field: reason, ...``."""
    parts = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "task"
        parts.append(f"{field}: {error['msg']}")
    return "Task validation failed: " + ", ".join(parts)


def check_document(document: Mapping[str, Any]) -> dict[str, Any]:
    """Re-check a full task document against the store schema.

    Raises ``pydantic.ValidationError`` when the document breaks a rule.
    """
    return TaskDocument.model_validate(dict(document)).to_document()


class TaskRepository:
    """Task persistence operations returning ``Outcome`` values."""

    def __init__(self, store: TaskStore) -> None:
        self._store = store

    def list_all(self) -> Outcome:
        """All tasks, most recently created first."""
        try:
            documents = self._store.find_all()
        except StoreUnavailableError as exc:
            return Outcome.store_unavailable(exc.message)
        return Outcome.success([Task.model_validate(doc) for doc in documents])

    def get_by_id(self, task_id: str) -> Outcome:
        if not is_valid_task_id(task_id):
            return Outcome.invalid_identifier()
        try:
            document = self._store.find_by_id(ObjectId(task_id))
        except StoreUnavailableError as exc:
            return Outcome.store_unavailable(exc.message)
        if document is None:
            return Outcome.not_found()
        return Outcome.success(Task.model_validate(document))

    def create(self, fields: Mapping[str, Any]) -> Outcome:
        try:
            document = check_document(fields)
        except ValidationError as exc:
            return Outcome.constraint_violation(describe_schema_error(exc))

        try:
            stored = self._store.insert(document)
        except StoreConstraintError as exc:
            return Outcome.constraint_violation(exc.message)
        except StoreUnavailableError as exc:
            return Outcome.store_unavailable(exc.message)

        task = Task.model_validate(stored)
        logger.info("task created", extra={"op": "create", "task": task.id})
        return Outcome.success(task)

    def update_by_id(self, task_id: str, fields: Mapping[str, Any]) -> Outcome:
        """Apply ``fields`` to an existing task.

        Fields not supplied keep their stored values. The merged record is
        re-checked as a whole before it is written.
        """
        if not is_valid_task_id(task_id):
            return Outcome.invalid_identifier()
        object_id = ObjectId(task_id)

        try:
            current = self._store.find_by_id(object_id)
        except StoreUnavailableError as exc:
            return Outcome.store_unavailable(exc.message)
        if current is None:
            return Outcome.not_found()

        try:
            document = check_document({**current, **fields})
        except ValidationError as exc:
            return Outcome.constraint_violation(describe_schema_error(exc))

        try:
            stored = self._store.replace(object_id, document)
        except StoreConstraintError as exc:
            return Outcome.constraint_violation(exc.message)
        except StoreUnavailableError as exc:
            return Outcome.store_unavailable(exc.message)
        # Deleted between the read and the write.
        if stored is None:
            return Outcome.not_found()

        logger.info("task updated", extra={"op": "update", "task": task_id})
        return Outcome.success(Task.model_validate(stored))

    def delete_by_id(self, task_id: str) -> Outcome:
        if not is_valid_task_id(task_id):
            return Outcome.invalid_identifier()
        try:
            document = self._store.delete(ObjectId(task_id))
        except StoreUnavailableError as exc:
            return Outcome.store_unavailable(exc.message)
        if document is None:
            return Outcome.not_found()

        logger.info("task deleted", extra={"op": "delete", "task": task_id})
        return Outcome.success(Task.model_validate(document))
