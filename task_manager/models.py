"""Pydantic models for the Task Manager API.

``TaskDocument`` is the schema a stored task must satisfy; the repository
re-checks every write against it. ``Task`` is the record as returned to
clients, using the document field names (``_id``, ``dueDate``,
``createdAt``).
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


class TaskStatus(str, Enum):
    """Allowed values for a task's status."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_instant(value: datetime) -> str:
    """Render an instant as ISO-8601 UTC with millisecond precision."""
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TaskDocument(BaseModel):
    """Store-side schema for the mutable fields of a task."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, extra="ignore")

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    status: TaskStatus = Field(default=TaskStatus.PENDING, validate_default=True)
    due_date: datetime = Field(..., alias="dueDate")

    @field_validator("title", "description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("due_date")
    @classmethod
    def _due_date_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def to_document(self) -> dict[str, Any]:
        """Dump to the field names used in the store."""
        return self.model_dump(by_alias=True)


class Task(BaseModel):
    """A task record as returned by the API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="_id", description="Store-assigned identifier (24 hex characters)")
    title: str = Field(..., description="The task title")
    description: str = Field(..., description="The task description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Task status")
    due_date: datetime = Field(..., alias="dueDate", description="When the task is due")
    created_at: datetime = Field(..., alias="createdAt", description="When the task was created")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, ObjectId):
            return str(value)
        return value

    @field_validator("due_date", "created_at")
    @classmethod
    def _instants_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_serializer("due_date", "created_at")
    def _serialize_instant(self, value: datetime) -> str:
        return format_instant(value)


class TaskListResponse(BaseModel):
    """Envelope for the list endpoint."""

    success: bool = True
    count: int
    data: list[Task]


class TaskResponse(BaseModel):
    """Envelope for a single task."""

    success: bool = True
    data: Task


class TaskMessageResponse(BaseModel):
    """Envelope for a single task after a write."""

    success: bool = True
    message: str
    data: Task


class ErrorDetail(BaseModel):
    field: str
    kind: str
    message: str


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    success: bool = False
    message: str
    error: str | None = None
    errors: list[ErrorDetail] | None = None


class HealthResponse(BaseModel):
    """Response from the health check endpoint."""

    status: str = "healthy"
    version: str = "1.0.0"
