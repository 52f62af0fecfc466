# src/prepmate/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import shlex
from collections.abc import Callable, Sequence
from typing import Any, cast

from ..assistant.suggest import SuggestionError, add_suggested_tasks, suggest_tasks
from ..core.state import AppState
from ..llm.client import friendly_llm_error_message
from ..planner.focus import focus_tasks, promote_to_focus, record_pomodoro, remove_from_focus
from ..planner.views import (
    effective_status,
    filter_tasks,
    group_by_status,
    move_to_status,
    task_stats,
)
from ..tasks.errors import ReorderIndexError, TaskFieldError, TaskPersistenceError
from ..tasks.task_models import Task, TaskStatus, field_name, new_task_id

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID_LEN = 8


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Arguments are split shell-style, so titles can be quoted.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _short(task_id: str) -> str:
    return task_id[:SHORT_ID_LEN]


def _format_task(n: int, t: Task) -> str:
    status = effective_status(t).value
    mark = "x" if status == TaskStatus.COMPLETED else " "
    extras = []
    if t.subject:
        extras.append(t.subject)
    if t.due_time:
        extras.append(f"due {t.due_time}")
    if t.in_focus:
        extras.append("focus")
    tail = f" ({', '.join(extras)})" if extras else ""
    return f"{n:>3}. [{mark}] {_short(t.id)} {t.priority.value:<6} {status:<11} {t.title}{tail}"


def _resolve_id(state: AppState, token: str) -> str | None:
    """Exact id, or a unique id prefix (as shown by /tasks)."""
    tasks = state.task_store.tasks
    for t in tasks:
        if t.id == token:
            return t.id
    matches = [t.id for t in tasks if t.id.startswith(token)]
    return matches[0] if len(matches) == 1 else None


def _split_kv(args: Sequence[str]) -> tuple[list[str], dict[str, Any]]:
    """Split ["a", "b", "priority=High", "subject="] into words and updates ("" -> None)."""
    words: list[str] = []
    updates: dict[str, Any] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key:
            updates[key] = value if value != "" else None
        else:
            words.append(a)
    return words, updates


def _run_store_op(op: Callable[[], Any], ok: str) -> str:
    try:
        op()
    except TaskPersistenceError as e:
        logger.warning("Task change kept in memory only: %s", e)
        return f"{ok}\nWarning: the change is kept for this session but was not saved ({e})."
    except (ReorderIndexError, TaskFieldError) as e:
        return f"Error: {e}"
    return ok


def _unknown_id(token: str) -> str:
    return f"No task matches id '{token}'. Use /tasks to list ids."


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    backend = getattr(s, "storage_backend", "?")
    path = getattr(s, "storage_path", "")
    llm = type(state.llm).__name__
    return (
        "Status:\n"
        f"  Tasks: {len(state.task_store)}\n"
        f"  Storage: {backend} {path} (key={state.task_store.key})\n"
        f"  LLM client: {llm}"
    )


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks                  -> all tasks in store order
    /tasks todo             -> filter by status
    /tasks all CSE          -> filter by subject
    """
    status = args[0] if args else "all"
    subject = args[1] if len(args) > 1 else "all"
    try:
        items = filter_tasks(state.task_store.tasks, status=status, subject=subject)
    except ValueError as e:
        return f"Error: {e}"
    if not items:
        return "No tasks."

    positions = {id(t): i for i, t in enumerate(state.task_store.tasks, start=1)}
    return "\n".join(_format_task(positions[id(t)], t) for t in items)


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <title> [priority=High] [subject=CSE] [due=...] [description=...]"""
    words, fields = _split_kv(args)
    title = " ".join(words).strip()
    if not title:
        return "Usage: /add <title> [priority=High|Medium|Low] [subject=...] [due=...]"

    if "due" in fields:
        fields["due_time"] = fields.pop("due")
    fields.pop("id", None)
    try:
        for key in fields:
            field_name(key)
    except TaskFieldError as e:
        return f"Error: {e}"

    record: dict[str, Any] = {
        "id": new_task_id(),
        "title": title,
        "status": TaskStatus.TODO,
        "completed": False,
        "in_planner": True,
        **fields,
    }
    try:
        task = Task.from_dict(record)
    except TaskFieldError as e:
        return f"Error: {e}"

    return _run_store_op(lambda: state.task_store.add_task(task), f"Added {_short(task.id)}: {title}")


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> key=value ... (empty value clears an optional field)"""
    if len(args) < 2:
        return "Usage: /edit <id> key=value ..."
    task_id = _resolve_id(state, args[0])
    if task_id is None:
        return _unknown_id(args[0])

    _, updates = _split_kv(args[1:])
    if not updates:
        return "Nothing to change. Use key=value pairs, e.g. priority=Low."
    if "due" in updates:
        updates["due_time"] = updates.pop("due")

    return _run_store_op(
        lambda: state.task_store.edit_task(task_id, updates), f"Updated {_short(task_id)}."
    )


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    task_id = _resolve_id(state, args[0])
    if task_id is None:
        return _unknown_id(args[0])
    return _run_store_op(
        lambda: state.task_store.complete_task(task_id), f"Completed {_short(task_id)}."
    )


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <id>"
    task_id = _resolve_id(state, args[0])
    if task_id is None:
        return _unknown_id(args[0])
    return _run_store_op(lambda: state.task_store.delete_task(task_id), f"Deleted {_short(task_id)}.")


def cmd_move(state: AppState, args: list[str]) -> str:
    """/move <from> <to> (positions as numbered by /tasks, 1-based)"""
    if len(args) != 2:
        return "Usage: /move <from> <to>"
    try:
        src, dst = int(args[0]) - 1, int(args[1]) - 1
    except ValueError:
        return "Positions must be numbers, e.g. /move 1 3"
    return _run_store_op(
        lambda: state.task_store.reorder_tasks(src, dst), f"Moved task {src + 1} to {dst + 1}."
    )


def cmd_status_set(state: AppState, args: list[str]) -> str:
    """/mark <id> todo|in-progress|completed"""
    if len(args) != 2:
        return "Usage: /mark <id> todo|in-progress|completed"
    task_id = _resolve_id(state, args[0])
    if task_id is None:
        return _unknown_id(args[0])
    target = TaskStatus.from_raw(args[1])
    if target is None:
        return f"Unknown status: {args[1]}"
    return _run_store_op(
        lambda: move_to_status(state.task_store, task_id, target),
        f"{_short(task_id)} -> {target.value}",
    )


def cmd_board(state: AppState, args: list[str]) -> str:
    board = group_by_status(state.task_store.tasks)
    lines: list[str] = []
    for column, items in board.items():
        lines.append(f"== {column.value} ({len(items)})")
        for t in items:
            lines.append(f"   {_short(t.id)} {t.priority.value:<6} {t.title}")
    return "\n".join(lines)


def cmd_focus(state: AppState, args: list[str]) -> str:
    """/focus -> list focus tasks; /focus <id> -> add a task to the focus view"""
    if not args:
        items = focus_tasks(state.task_store.tasks)
        if not items:
            return "Focus list is empty. Use /focus <id> to add a task."
        lines = ["Focus:"]
        for i, t in enumerate(items, start=1):
            pomodoros = (t.focus_fields or {}).get("pomodoros", 0)
            lines.append(f"{i:>3}. {_short(t.id)} {t.title} [{pomodoros} pomodoro(s)]")
        return "\n".join(lines)

    task_id = _resolve_id(state, args[0])
    if task_id is None:
        return _unknown_id(args[0])

    result: dict[str, bool] = {}

    def op() -> None:
        result["added"] = promote_to_focus(state.task_store, task_id)

    reply = _run_store_op(op, f"{_short(task_id)} added to focus.")
    if result.get("added") is False:
        return f"{_short(task_id)} is already in focus."
    return reply


def cmd_unfocus(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /unfocus <id>"
    task_id = _resolve_id(state, args[0])
    if task_id is None:
        return _unknown_id(args[0])
    result: dict[str, bool] = {}

    def op() -> None:
        result["removed"] = remove_from_focus(state.task_store, task_id)

    reply = _run_store_op(op, f"{_short(task_id)} removed from focus.")
    if result.get("removed") is False:
        return f"{_short(task_id)} is not in focus."
    return reply


def cmd_pomodoro(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /pomodoro <id>"
    task_id = _resolve_id(state, args[0])
    if task_id is None:
        return _unknown_id(args[0])
    return _run_store_op(
        lambda: record_pomodoro(state.task_store, task_id), f"Pomodoro recorded for {_short(task_id)}.")


def cmd_stats(state: AppState, args: list[str]) -> str:
    st = task_stats(state.task_store.tasks)
    prio = ", ".join(f"{k}: {v}" for k, v in st.by_priority.items())
    return (
        f"Tasks: {st.total} (completed {st.completed}, pending {st.pending})\n"
        f"Completion: {st.completion_rate:.0%}\n"
        f"By priority: {prio}"
    )


def cmd_suggest(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/suggest <goal> [subject=...] -> ask the assistant for tasks and add them"""
    words, opts = _split_kv(args)
    goal = " ".join(words).strip()
    if not goal:
        return "Usage: /suggest <goal> [subject=...]"

    if emit:
        with contextlib.suppress(Exception):
            emit("[AI] Thinking about a plan...")

    limit = int(getattr(state.settings, "suggest_limit", 5))
    try:
        tasks = suggest_tasks(state.llm, goal, subject=opts.get("subject"), limit=limit)
    except SuggestionError as e:
        return f"Error: {friendly_llm_error_message(e.__cause__ or e)}"
    if not tasks:
        return "The assistant did not return any tasks. Try rephrasing the goal."

    added: dict[str, int] = {}

    def op() -> None:
        added["n"] = add_suggested_tasks(state.task_store, tasks)

    lines = [f"Suggested {len(tasks)} task(s):"]
    lines.extend(f"  - {_short(t.id)} {t.priority.value:<6} {t.title}" for t in tasks)
    return _run_store_op(op, "\n".join(lines))


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage and LLM configuration.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [status|all] [subject].", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <title> [priority=..] [subject=..] [due=..].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> key=value ...")
registry.register("done", cmd_done, help_text="Complete a task: /done <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del"])
registry.register("move", cmd_move, help_text="Reorder: /move <from> <to> (positions from /tasks).")
registry.register("mark", cmd_status_set, help_text="Move between board columns: /mark <id> <status>.")
registry.register("board", cmd_board, help_text="Show the kanban board.")
registry.register("focus", cmd_focus, help_text="Focus list, or add a task: /focus [id].")
registry.register("unfocus", cmd_unfocus, help_text="Remove a task from focus: /unfocus <id>.")
registry.register("pomodoro", cmd_pomodoro, help_text="Record a finished pomodoro: /pomodoro <id>.")
registry.register("stats", cmd_stats, help_text="Show progress statistics.")
registry.register("suggest", cmd_suggest, help_text="AI task plan: /suggest <goal> [subject=..].")
