"""Pytest fixtures for the Task Manager API tests."""

import pytest
from fastapi.testclient import TestClient

from task_manager.config import Settings
from task_manager.main import create_app
from task_manager.repository import TaskRepository
from task_manager.store import MemoryTaskStore


@pytest.fixture
def store() -> MemoryTaskStore:
    """An empty in-memory task store."""
    return MemoryTaskStore()


@pytest.fixture
def repository(store: MemoryTaskStore) -> TaskRepository:
    """A repository over the in-memory store."""
    return TaskRepository(store)


@pytest.fixture
def client(store: MemoryTaskStore) -> TestClient:
    """Create a test client for the API."""
    app = create_app(Settings(mongodb_uri=None), store=store)
    return TestClient(app)


@pytest.fixture
def task_payload() -> dict:
    """A valid creation payload."""
    return {
        "title": "Complete project documentation",
        "description": "Write comprehensive API documentation",
        "dueDate": "2025-11-15",
    }
