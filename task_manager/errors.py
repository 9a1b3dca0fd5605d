"""Exceptions raised by the task store backends.

The repository turns these into outcomes; they never reach the HTTP layer.
"""


class StoreError(Exception):
    """Base class for failures raised by a task store backend."""

    def __init__(self, message: str, *, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class StoreUnavailableError(StoreError):
    """Raised when the backing store cannot be reached or fails unexpectedly."""


class StoreConstraintError(StoreError):
    """Raised when the backing store rejects a write (document validation, duplicate key)."""
