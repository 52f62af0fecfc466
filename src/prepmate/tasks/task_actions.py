# src/prepmate/tasks/task_actions.py

"""
Task actions and the pure transition function.

Every mutation of the task collection is described by one of the action
dataclasses below and applied with `reduce_tasks`. The function has no side
effects: it never writes storage and never mutates the tuple it receives.
Persistence is applied afterwards by TaskStore.

Missing ids (edit/delete/complete) are a silent no-op: the content is
unchanged, but a new snapshot object is still returned.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .errors import ReorderIndexError
from .task_models import Task, TaskStatus


class TaskSnapshot(tuple):
    """
    Immutable ordered task collection.

    A tuple subclass so that every transition yields a distinct object, even
    for an empty collection (CPython shares the empty plain tuple). UI code
    may use identity to detect changes.
    """

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class AddTask:
    task: Task


@dataclass(frozen=True, slots=True)
class EditTask:
    task_id: str
    updates: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DeleteTask:
    task_id: str


@dataclass(frozen=True, slots=True)
class CompleteTask:
    task_id: str


@dataclass(frozen=True, slots=True)
class SyncTask:
    task: Task


@dataclass(frozen=True, slots=True)
class ReorderTasks:
    source_index: int
    destination_index: int


TaskAction = AddTask | EditTask | DeleteTask | CompleteTask | SyncTask | ReorderTasks


def _check_index(name: str, index: int, size: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int):
        raise ReorderIndexError(f"{name} must be an int, got {index!r}")
    if index < 0 or index >= size:
        raise ReorderIndexError(f"{name}={index} out of range for {size} task(s)")


def _reorder(tasks: Sequence[Task], source: int, destination: int) -> TaskSnapshot:
    _check_index("source_index", source, len(tasks))
    _check_index("destination_index", destination, len(tasks))
    items = list(tasks)
    moved = items.pop(source)
    items.insert(destination, moved)
    return TaskSnapshot(items)


def reduce_tasks(tasks: Sequence[Task], action: TaskAction) -> TaskSnapshot:
    """Return the collection that results from applying `action` to `tasks`."""
    if isinstance(action, AddTask):
        return TaskSnapshot((*tasks, action.task))

    if isinstance(action, EditTask):
        return TaskSnapshot(
            t.merged(action.updates) if t.id == action.task_id else t for t in tasks
        )

    if isinstance(action, DeleteTask):
        return TaskSnapshot(t for t in tasks if t.id != action.task_id)

    if isinstance(action, CompleteTask):
        # completed + status always change together here.
        done = {"completed": True, "status": TaskStatus.COMPLETED}
        return TaskSnapshot(t.merged(done) if t.id == action.task_id else t for t in tasks)

    if isinstance(action, SyncTask):
        incoming = action.task
        if any(t.id == incoming.id for t in tasks):
            return TaskSnapshot(incoming if t.id == incoming.id else t for t in tasks)
        return TaskSnapshot((*tasks, incoming))

    if isinstance(action, ReorderTasks):
        return _reorder(tasks, action.source_index, action.destination_index)

    raise TypeError(f"Unsupported task action: {action!r}")
