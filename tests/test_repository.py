"""Tests for the task repository outcomes."""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pydantic import ValidationError

from task_manager.errors import StoreConstraintError, StoreUnavailableError
from task_manager.models import Task
from task_manager.repository import OutcomeKind, TaskRepository, check_document
from task_manager.store import MemoryTaskStore

FIELDS = {
    "title": "Complete project documentation",
    "description": "Write comprehensive API documentation",
    "status": "pending",
    "dueDate": datetime(2025, 11, 15, tzinfo=UTC),
}


def test_create_then_get_round_trip(repository: TaskRepository) -> None:
    created = repository.create(FIELDS)
    assert created.kind is OutcomeKind.SUCCESS
    task = created.value
    assert isinstance(task, Task)

    fetched = repository.get_by_id(task.id)
    assert fetched.ok
    assert fetched.value == task
    assert fetched.value.due_date == FIELDS["dueDate"]


def test_get_invalid_identifier_does_not_touch_store() -> None:
    store = MagicMock()
    repository = TaskRepository(store)

    outcome = repository.get_by_id("not-24-hex")
    assert outcome.kind is OutcomeKind.INVALID_IDENTIFIER_SYNTAX
    store.find_by_id.assert_not_called()


def test_get_unknown_identifier(repository: TaskRepository) -> None:
    outcome = repository.get_by_id(str(ObjectId()))
    assert outcome.kind is OutcomeKind.NOT_FOUND


def test_list_all_newest_first(repository: TaskRepository) -> None:
    first = repository.create({**FIELDS, "title": "A"}).value
    second = repository.create({**FIELDS, "title": "B"}).value

    outcome = repository.list_all()
    assert outcome.ok
    assert [task.id for task in outcome.value] == [second.id, first.id]


def test_update_changes_only_supplied_fields(repository: TaskRepository) -> None:
    task = repository.create(FIELDS).value

    outcome = repository.update_by_id(task.id, {"status": "completed"})
    assert outcome.ok
    updated = outcome.value
    assert updated.status == "completed"
    assert updated.title == task.title
    assert updated.description == task.description
    assert updated.due_date == task.due_date
    assert updated.created_at == task.created_at


def test_update_rechecks_merged_record(repository: TaskRepository) -> None:
    task = repository.create(FIELDS).value

    outcome = repository.update_by_id(task.id, {"title": "x" * 101})
    assert outcome.kind is OutcomeKind.CONSTRAINT_VIOLATION
    assert outcome.detail.startswith("Task validation failed: title")
    assert repository.get_by_id(task.id).value.title == task.title


def test_update_invalid_identifier(repository: TaskRepository) -> None:
    outcome = repository.update_by_id("123", {"status": "completed"})
    assert outcome.kind is OutcomeKind.INVALID_IDENTIFIER_SYNTAX


def test_update_unknown_identifier(repository: TaskRepository) -> None:
    outcome = repository.update_by_id(str(ObjectId()), {"status": "completed"})
    assert outcome.kind is OutcomeKind.NOT_FOUND


def test_update_of_task_deleted_mid_flight() -> None:
    store = MagicMock()
    store.find_by_id.return_value = {**FIELDS, "_id": ObjectId(), "createdAt": datetime.now(UTC)}
    store.replace.return_value = None

    outcome = TaskRepository(store).update_by_id(str(ObjectId()), {"status": "completed"})
    assert outcome.kind is OutcomeKind.NOT_FOUND


def test_create_rechecks_schema(repository: TaskRepository, store: MemoryTaskStore) -> None:
    outcome = repository.create({**FIELDS, "title": "   "})
    assert outcome.kind is OutcomeKind.CONSTRAINT_VIOLATION
    assert "title" in outcome.detail
    assert store.find_all() == []


def test_create_maps_store_constraint_error() -> None:
    store = MagicMock()
    store.insert.side_effect = StoreConstraintError("Document failed validation")

    outcome = TaskRepository(store).create(FIELDS)
    assert outcome.kind is OutcomeKind.CONSTRAINT_VIOLATION
    assert outcome.detail == "Document failed validation"


def test_delete_returns_final_state(repository: TaskRepository) -> None:
    task = repository.create(FIELDS).value

    outcome = repository.delete_by_id(task.id)
    assert outcome.ok
    assert outcome.value == task
    assert repository.get_by_id(task.id).kind is OutcomeKind.NOT_FOUND


def test_delete_unknown_and_malformed(repository: TaskRepository) -> None:
    assert repository.delete_by_id(str(ObjectId())).kind is OutcomeKind.NOT_FOUND
    assert repository.delete_by_id("zz" * 12).kind is OutcomeKind.INVALID_IDENTIFIER_SYNTAX


@pytest.mark.parametrize(
    "call",
    [
        lambda repo: repo.list_all(),
        lambda repo: repo.get_by_id(str(ObjectId())),
        lambda repo: repo.create(FIELDS),
        lambda repo: repo.update_by_id(str(ObjectId()), {"status": "completed"}),
        lambda repo: repo.delete_by_id(str(ObjectId())),
    ],
)
def test_store_unavailable(call) -> None:
    store = MagicMock()
    error = StoreUnavailableError("server selection timeout")
    for method in (store.find_all, store.find_by_id, store.insert, store.replace, store.delete):
        method.side_effect = error

    outcome = call(TaskRepository(store))
    assert outcome.kind is OutcomeKind.STORE_UNAVAILABLE
    assert outcome.detail == "server selection timeout"


def test_check_document_drops_store_assigned_fields() -> None:
    document = check_document({**FIELDS, "_id": ObjectId(), "createdAt": datetime.now(UTC)})
    assert set(document) == {"title", "description", "status", "dueDate"}


@pytest.mark.parametrize(
    "override",
    [
        {"status": "archived"},
        {"description": "x" * 501},
        {"dueDate": "soon"},
        {"title": None},
    ],
)
def test_check_document_rejects(override: dict) -> None:
    with pytest.raises(ValidationError):
        check_document({**FIELDS, **override})
