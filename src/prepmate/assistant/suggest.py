# src/prepmate/assistant/suggest.py

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from ..core.ports import LLMClient
from ..tasks.task_models import Task, TaskPriority, TaskStatus, new_task_id
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)

SUGGEST_SYSTEM_PROMPT = """
You are a study task planner for a student productivity app.

Input: a study goal, optionally with a subject.

Task:
- Break the goal into small, concrete tasks a student can finish in one sitting.

Output rules:
- Reply with ONE JSON object and nothing else:
  {"tasks": [{"title": "...", "description": "...", "priority": "High|Medium|Low",
              "dueTime": "...", "subject": "..."}]}
- "title" is required, every other key is optional.
- Keep titles under 80 characters.
- Order tasks in the sequence they should be done.
""".strip()

MAX_TITLE_CHARS = 200


class SuggestionError(RuntimeError):
    """The LLM call itself failed (as opposed to an unusable reply)."""


def _extract_json_object(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("{") and raw.endswith("}"):
        return raw
    first = raw.find("{")
    last = raw.rfind("}")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    return raw


def _clean_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _to_task(item: Any, *, subject: str | None) -> Task | None:
    if not isinstance(item, dict):
        return None
    title = _clean_str(item.get("title"))
    if not title:
        return None
    if len(title) > MAX_TITLE_CHARS:
        title = title[:MAX_TITLE_CHARS] + "…"

    return Task(
        id=new_task_id(),
        title=title,
        description=_clean_str(item.get("description")),
        due_time=_clean_str(item.get("dueTime") or item.get("due_time")),
        subject=_clean_str(item.get("subject")) or subject,
        priority=TaskPriority.from_raw(item.get("priority")),
        status=TaskStatus.TODO,
        completed=False,
        in_planner=True,
    )


def suggest_tasks(
    llm: LLMClient,
    goal: str,
    *,
    subject: str | None = None,
    limit: int = 5,
) -> list[Task]:
    """
    Ask the LLM for a task breakdown of `goal`.

    Returns new Task objects with fresh ids (not yet added to any store).
    Returns [] on unparseable output. Raises SuggestionError if the LLM call
    fails, with the original error as __cause__.
    """
    goal = (goal or "").strip()
    if not goal:
        return []

    lines = [f"Goal: {goal}"]
    if subject:
        lines.append(f"Subject: {subject}")
    lines.append(f"Maximum tasks: {int(limit)}")

    raw = ""
    try:
        for piece in llm.stream_chat(
            [{"role": "user", "content": "\n".join(lines)}],
            SUGGEST_SYSTEM_PROMPT,
        ):
            raw += piece
    except Exception as e:
        logger.warning("Task suggestion LLM call failed: %s", e)
        raise SuggestionError(str(e) or "LLM error.") from e

    raw = raw.strip()
    if not raw:
        return []

    try:
        plan = json.loads(_extract_json_object(raw))
    except ValueError:
        logger.warning("Task suggestion JSON parse failed. Raw=%r", raw[:2000])
        return []

    items = plan.get("tasks") if isinstance(plan, dict) else None
    if not isinstance(items, list):
        logger.warning("Task suggestion reply has no task list. Raw=%r", raw[:2000])
        return []

    out: list[Task] = []
    for item in items:
        task = _to_task(item, subject=subject)
        if task is not None:
            out.append(task)
        if len(out) >= limit:
            break

    logger.debug("Task suggestions produced n=%d for goal=%r", len(out), goal)
    return out


def add_suggested_tasks(store: TaskStore, tasks: Iterable[Task]) -> int:
    """Add suggestions to the store, skipping ids it already holds."""
    added = 0
    for task in tasks:
        if store.contains_id(task.id):
            continue
        store.add_task(task)
        added += 1
    if added:
        logger.info("Added %d suggested task(s)", added)
    return added
