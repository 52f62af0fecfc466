# src/prepmate/planner/views.py

"""
Read-only planner views over a task snapshot.

Everything here is a pure function of the snapshot except `move_to_status`,
which goes through the store like any other collaborator.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..tasks.task_models import Task, TaskPriority, TaskStatus
from ..tasks.task_store import TaskStore

BOARD_COLUMNS: tuple[TaskStatus, ...] = (
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.COMPLETED,
)

_PRIORITY_RANK = {TaskPriority.HIGH: 0, TaskPriority.MEDIUM: 1, TaskPriority.LOW: 2}


def effective_status(task: Task) -> TaskStatus:
    """Status used for display: explicit status, else derived from `completed`."""
    if task.status is not None:
        return task.status
    if task.completed is True:
        return TaskStatus.COMPLETED
    return TaskStatus.TODO


def filter_tasks(
    tasks: Iterable[Task],
    *,
    status: str = "all",
    subject: str = "all",
    query: str | None = None,
) -> list[Task]:
    wanted_status = None if status == "all" else TaskStatus.from_raw(status)
    if status != "all" and wanted_status is None:
        raise ValueError(f"Unknown status filter: {status!r}")

    needle = (query or "").strip().lower()

    out: list[Task] = []
    for t in tasks:
        if wanted_status is not None and effective_status(t) != wanted_status:
            continue
        if subject != "all" and t.subject != subject:
            continue
        if needle:
            hay = " ".join(s for s in (t.title, t.description, t.subject) if s).lower()
            if needle not in hay:
                continue
        out.append(t)
    return out


def group_by_status(tasks: Iterable[Task]) -> dict[TaskStatus, list[Task]]:
    """Kanban columns in board order; store order is kept inside each column."""
    board: dict[TaskStatus, list[Task]] = {col: [] for col in BOARD_COLUMNS}
    for t in tasks:
        board[effective_status(t)].append(t)
    return board


def list_subjects(tasks: Iterable[Task]) -> list[str]:
    seen: list[str] = []
    for t in tasks:
        if t.subject and t.subject not in seen:
            seen.append(t.subject)
    return seen


def sort_by_priority(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=lambda t: _PRIORITY_RANK[t.priority])


@dataclass(slots=True)
class TaskStats:
    total: int = 0
    completed: int = 0
    pending: int = 0
    by_priority: dict[str, int] = field(default_factory=dict)

    @property
    def completion_rate(self) -> float:
        return self.completed / self.total if self.total else 0.0


def task_stats(tasks: Sequence[Task]) -> TaskStats:
    stats = TaskStats(by_priority={p.value: 0 for p in TaskPriority})
    for t in tasks:
        stats.total += 1
        if effective_status(t) == TaskStatus.COMPLETED:
            stats.completed += 1
        else:
            stats.pending += 1
        stats.by_priority[t.priority.value] += 1
    return stats


def move_to_status(store: TaskStore, task_id: str, status: TaskStatus | str) -> bool:
    """
    Move a task between board columns.

    Moving into "completed" uses complete_task so both completion fields agree;
    moving out of it clears `completed` together with the status.
    Returns False if the id is unknown.
    """
    target = TaskStatus.from_raw(status)
    if target is None:
        raise ValueError(f"Unknown status: {status!r}")
    if not store.contains_id(task_id):
        return False

    if target == TaskStatus.COMPLETED:
        store.complete_task(task_id)
    else:
        store.edit_task(task_id, {"status": target, "completed": False})
    return True
