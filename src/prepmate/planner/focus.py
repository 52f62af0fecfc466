# src/prepmate/planner/focus.py

"""
Focus view helpers.

The focus view owns `focus_fields` (notes, tags, pomodoros, subtasks, dueDate,
order). The store treats it as opaque; every change here builds a new dict and
hands it to the store, old snapshots are never touched.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from typing import Any

from ..tasks.task_models import Task
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _next_order(tasks: Iterable[Task]) -> int:
    orders = [
        int(t.focus_fields.get("order", 0))
        for t in tasks
        if t.in_focus and t.focus_fields and isinstance(t.focus_fields.get("order"), int)
    ]
    return max(orders) + 1 if orders else 0


def focus_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Tasks shown in the focus view, by focus order then store order."""
    items = [t for t in tasks if t.in_focus]

    # Tasks without an explicit order go last.
    def key(item: tuple[int, Task]) -> tuple[int, int, int]:
        pos, t = item
        order = (t.focus_fields or {}).get("order")
        if isinstance(order, int):
            return (0, order, pos)
        return (1, 0, pos)

    return [t for _, t in sorted(enumerate(items), key=key)]


def promote_to_focus(store: TaskStore, task_id: str) -> bool:
    """
    Copy a planner task into the focus view.

    Returns False (and writes nothing) if the id is unknown or the task is
    already in focus, so the same task is never cross-posted twice.
    """
    task = store.get_task(task_id)
    if task is None:
        return False
    if task.in_focus:
        logger.debug("Task %s already in focus", task_id)
        return False

    fields: dict[str, Any] = dict(task.focus_fields or {})
    fields.setdefault("pomodoros", 0)
    fields["order"] = _next_order(store.tasks)

    store.sync_task(dataclasses.replace(task, in_focus=True, focus_fields=fields))
    logger.info("Task %s promoted to focus (order=%s)", task_id, fields["order"])
    return True


def remove_from_focus(store: TaskStore, task_id: str) -> bool:
    task = store.get_task(task_id)
    if task is None or not task.in_focus:
        return False
    store.edit_task(task_id, {"in_focus": False})
    return True


def record_pomodoro(store: TaskStore, task_id: str) -> int | None:
    """Count one finished pomodoro; returns the new total or None for an unknown id."""
    task = store.get_task(task_id)
    if task is None:
        return None
    fields = dict(task.focus_fields or {})
    count = int(fields.get("pomodoros") or 0) + 1
    fields["pomodoros"] = count
    store.edit_task(task_id, {"focus_fields": fields})
    return count


def toggle_subtask(store: TaskStore, task_id: str, subtask_id: str) -> bool:
    task = store.get_task(task_id)
    if task is None or not task.focus_fields:
        return False

    subtasks = task.focus_fields.get("subtasks") or []
    found = False
    updated: list[Any] = []
    for sub in subtasks:
        if isinstance(sub, dict) and sub.get("id") == subtask_id:
            sub = {**sub, "completed": not bool(sub.get("completed"))}
            found = True
        updated.append(sub)

    if not found:
        return False
    store.edit_task(task_id, {"focus_fields": {**task.focus_fields, "subtasks": updated}})
    return True
