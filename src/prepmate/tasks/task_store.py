# src/prepmate/tasks/task_store.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..core.ports import KeyValueStorage
from .errors import SnapshotCorruptedError, TaskFieldError, TaskPersistenceError
from .task_actions import (
    AddTask,
    CompleteTask,
    DeleteTask,
    EditTask,
    ReorderTasks,
    SyncTask,
    TaskAction,
    TaskSnapshot,
    reduce_tasks,
)
from .task_models import Task

logger = logging.getLogger(__name__)

TASKS_STORAGE_KEY = "allTasks"

SnapshotListener = Callable[[TaskSnapshot], None]


def encode_snapshot(tasks: TaskSnapshot) -> str:
    return json.dumps([t.to_dict() for t in tasks], ensure_ascii=False)


def decode_snapshot(raw: str) -> TaskSnapshot:
    """Parse a persisted snapshot; raises SnapshotCorruptedError on any malformed input."""
    try:
        data: Any = json.loads(raw)
    except ValueError as e:
        raise SnapshotCorruptedError(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise SnapshotCorruptedError(
            f"Snapshot must be a JSON array, got {type(data).__name__}"
        )

    tasks: list[Task] = []
    for i, item in enumerate(data):
        try:
            tasks.append(Task.from_dict(item))
        except TaskFieldError as e:
            raise SnapshotCorruptedError(f"Snapshot item #{i} is invalid: {e}") from e
    return TaskSnapshot(tasks)


class TaskStore:
    """
    Process-local task collection backed by one key-value slot.

    - reads the slot once at startup (corrupt data -> empty collection + warning)
    - every mutation goes through `dispatch`: pure transition, then one full
      synchronous write, then listener notification
    - snapshots are immutable; each mutation installs a new object

    Not thread-safe: the store is meant to be driven from a single thread.
    Two processes sharing the same slot overwrite each other (last writer wins).
    """

    def __init__(self, storage: KeyValueStorage, *, key: str = TASKS_STORAGE_KEY) -> None:
        self._storage = storage
        self._key = key
        self._listeners: list[SnapshotListener] = []
        self._tasks = self._load()
        logger.info("TaskStore ready key=%s total=%s", self._key, len(self._tasks))

    # ---- low-level helpers ----

    def _load(self) -> TaskSnapshot:
        raw = self._storage.get_item(self._key)
        if raw is None or raw == "":
            return TaskSnapshot()
        try:
            return decode_snapshot(raw)
        except SnapshotCorruptedError as e:
            logger.warning("Persisted tasks under key=%s are corrupted (%s); starting empty.", self._key, e)
            return TaskSnapshot()

    def _persist(self, tasks: TaskSnapshot) -> None:
        try:
            payload = encode_snapshot(tasks)
        except (TypeError, ValueError) as e:
            logger.warning("Task snapshot under key=%s is not serializable: %s", self._key, e)
            raise TaskPersistenceError(f"Could not encode tasks: {e}", snapshot=tasks) from e

        last_error: Exception | None = None
        # One retry, then give up and report.
        for attempt in (1, 2):
            try:
                self._storage.set_item(self._key, payload)
                return
            except Exception as e:
                last_error = e
                logger.debug("Task snapshot write failed (attempt %d): %s", attempt, e)

        logger.warning(
            "Failed to persist %d task(s) under key=%s; keeping in-memory state.",
            len(tasks),
            self._key,
        )
        raise TaskPersistenceError(
            f"Could not save tasks: {last_error}", snapshot=tasks
        ) from last_error

    def _notify(self, tasks: TaskSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(tasks)
            except Exception:
                logger.exception("Task store listener failed.")

    # ---- public API ----

    @property
    def key(self) -> str:
        return self._key

    @property
    def tasks(self) -> TaskSnapshot:
        return self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def get_task(self, task_id: str) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def contains_id(self, task_id: str) -> bool:
        return self.get_task(task_id) is not None

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: TaskAction) -> TaskSnapshot:
        """
        Apply one action.

        The new snapshot is installed before the write. If the write fails,
        TaskPersistenceError is raised but the in-memory state is kept and
        listeners are still notified.
        """
        nxt = reduce_tasks(self._tasks, action)
        self._tasks = nxt
        logger.debug("Task action %s -> %d task(s)", type(action).__name__, len(nxt))
        try:
            self._persist(nxt)
        finally:
            self._notify(nxt)
        return nxt

    def add_task(self, task: Task) -> TaskSnapshot:
        """Append `task`. Callers must supply a unique id; duplicates are not rejected."""
        return self.dispatch(AddTask(task))

    def edit_task(self, task_id: str, updates: Mapping[str, Any]) -> TaskSnapshot:
        return self.dispatch(EditTask(task_id, dict(updates)))

    def delete_task(self, task_id: str) -> TaskSnapshot:
        return self.dispatch(DeleteTask(task_id))

    def complete_task(self, task_id: str) -> TaskSnapshot:
        return self.dispatch(CompleteTask(task_id))

    def sync_task(self, task: Task) -> TaskSnapshot:
        """Upsert by id: replace wholesale if present, append otherwise."""
        return self.dispatch(SyncTask(task))

    def reorder_tasks(self, source_index: int, destination_index: int) -> TaskSnapshot:
        return self.dispatch(ReorderTasks(source_index, destination_index))

    def reload(self) -> TaskSnapshot:
        """Re-read the slot, discarding the in-memory snapshot (like a page reload)."""
        self._tasks = self._load()
        self._notify(self._tasks)
        return self._tasks
