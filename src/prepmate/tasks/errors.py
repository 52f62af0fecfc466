# src/prepmate/tasks/errors.py

from __future__ import annotations


class TaskStoreError(Exception):
    """Base class for task store failures."""


class SnapshotCorruptedError(TaskStoreError):
    """The persisted snapshot could not be decoded into tasks."""


class TaskPersistenceError(TaskStoreError):
    """
    The durable write failed after the in-memory snapshot was updated.

    The mutation is NOT rolled back: `snapshot` is what the store now holds.
    """

    def __init__(self, message: str, *, snapshot: tuple = ()) -> None:
        super().__init__(message)
        self.snapshot = snapshot


class ReorderIndexError(TaskStoreError, IndexError):
    """Reorder indices outside the current sequence."""


class TaskFieldError(TaskStoreError, ValueError):
    """Unknown or invalid field in a task payload / partial update."""
