"""FastAPI application entry point."""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from task_manager.config import Settings, get_settings
from task_manager.logging_config import configure_logging
from task_manager.models import (
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    TaskListResponse,
    TaskMessageResponse,
    TaskResponse,
)
from task_manager.repository import Outcome, OutcomeKind, TaskRepository
from task_manager.store import TaskStore, create_store, is_valid_task_id
from task_manager.validation import ValidationResult, validate_for_create, validate_for_update

logger = logging.getLogger(__name__)

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Invalid ID format or validation error"},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Task not found"},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Server error"},
}

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

TASK_BODY_OPENAPI: dict[str, Any] = {
    "requestBody": {
        "content": {
            content_type: {"schema": {"type": "object", "additionalProperties": True}}
            for content_type in ("application/json", *FORM_CONTENT_TYPES)
        }
    }
}

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


def get_repository(request: Request) -> TaskRepository:
    return request.app.state.repository


async def read_payload(request: Request) -> dict[str, Any]:
    """Return the request body as a mapping.

    JSON objects and form posts are accepted; an empty body is an empty
    payload. Anything else is rejected with 400.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    body = await request.body()
    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid request body") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid request body")
    return payload


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    body = ErrorResponse(message=message, **extra)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def validation_error_response(result: ValidationResult) -> JSONResponse:
    first = result.violations[0]
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        f"Validation error: {first.message}",
        errors=[
            ErrorDetail(field=v.field, kind=v.kind.value, message=v.message) for v in result.violations
        ],
    )


def outcome_error_response(outcome: Outcome, failure_message: str) -> JSONResponse:
    """Map a failed repository outcome onto an error response."""
    if outcome.kind is OutcomeKind.INVALID_IDENTIFIER_SYNTAX:
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid task ID format")
    if outcome.kind is OutcomeKind.NOT_FOUND:
        return error_response(status.HTTP_404_NOT_FOUND, "Task not found")
    if outcome.kind is OutcomeKind.CONSTRAINT_VIOLATION:
        return error_response(status.HTTP_400_BAD_REQUEST, "Validation error", error=outcome.detail)
    logger.warning("%s: %s", failure_message, outcome.detail)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, failure_message, error=outcome.detail)


@router.get("", response_model=TaskListResponse, responses=ERROR_RESPONSES)
def list_tasks(repository: TaskRepository = Depends(get_repository)) -> Any:
    """List all tasks, newest first."""
    outcome = repository.list_all()
    if not outcome.ok:
        return outcome_error_response(outcome, "Error retrieving tasks")
    return TaskListResponse(count=len(outcome.value), data=outcome.value)


@router.get("/{task_id}", response_model=TaskResponse, responses=ERROR_RESPONSES)
def get_task(task_id: str, repository: TaskRepository = Depends(get_repository)) -> Any:
    """Get a specific task by ID."""
    outcome = repository.get_by_id(task_id)
    if not outcome.ok:
        return outcome_error_response(outcome, "Error retrieving task")
    return TaskResponse(data=outcome.value)


@router.post(
    "",
    response_model=TaskMessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    openapi_extra=TASK_BODY_OPENAPI,
)
def create_task(
    payload: dict[str, Any] = Depends(read_payload),
    repository: TaskRepository = Depends(get_repository),
) -> Any:
    """Create a new task."""
    result = validate_for_create(payload)
    if not result.ok:
        return validation_error_response(result)

    outcome = repository.create(result.values)
    if not outcome.ok:
        return outcome_error_response(outcome, "Error creating task")
    return TaskMessageResponse(message="Task created successfully", data=outcome.value)


@router.put(
    "/{task_id}",
    response_model=TaskMessageResponse,
    responses=ERROR_RESPONSES,
    openapi_extra=TASK_BODY_OPENAPI,
)
def update_task(
    task_id: str,
    payload: dict[str, Any] = Depends(read_payload),
    repository: TaskRepository = Depends(get_repository),
) -> Any:
    """Update an existing task; only the supplied fields change."""
    if not is_valid_task_id(task_id):
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid task ID format")

    result = validate_for_update(payload)
    if not result.ok:
        return validation_error_response(result)

    outcome = repository.update_by_id(task_id, result.values)
    if not outcome.ok:
        return outcome_error_response(outcome, "Error updating task")
    return TaskMessageResponse(message="Task updated successfully", data=outcome.value)


@router.delete("/{task_id}", response_model=TaskMessageResponse, responses=ERROR_RESPONSES)
def delete_task(task_id: str, repository: TaskRepository = Depends(get_repository)) -> Any:
    """Delete a task and return its final state."""
    outcome = repository.delete_by_id(task_id)
    if not outcome.ok:
        return outcome_error_response(outcome, "Error deleting task")
    return TaskMessageResponse(message="Task deleted successfully", data=outcome.value)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unknown paths and unsupported methods both answer "Route not found".
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return error_response(status.HTTP_404_NOT_FOUND, "Route not found")
    return error_response(exc.status_code, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Something went wrong!",
        error=str(exc),
    )


def create_app(settings: Settings | None = None, store: TaskStore | None = None) -> FastAPI:
    """Build the application; ``store`` defaults to the one selected by ``settings``."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="A REST API for managing tasks backed by MongoDB.",
        version=settings.version,
        docs_url="/api-docs",
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.repository = TaskRepository(store if store is not None else create_store(settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/", tags=["System"])
    async def root() -> dict[str, Any]:
        """Describe the API."""
        return {
            "message": f"Welcome to {settings.app_name}",
            "documentation": "/api-docs",
            "endpoints": {
                "getAllTasks": "GET /api/tasks",
                "getTaskById": "GET /api/tasks/:id",
                "createTask": "POST /api/tasks",
                "updateTask": "PUT /api/tasks/:id",
                "deleteTask": "DELETE /api/tasks/:id",
            },
        }

    @app.get("/api/health", response_model=HealthResponse, tags=["System"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(version=settings.version)

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    logger.info("API documentation available at /api-docs")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
