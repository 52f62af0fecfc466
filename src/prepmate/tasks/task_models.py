# src/prepmate/tasks/task_models.py

from __future__ import annotations

import dataclasses
import json
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from .errors import TaskFieldError

logger = logging.getLogger(__name__)


class TaskPriority(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def from_raw(cls, raw: Any) -> TaskPriority:
        """
        Accept case variants ("high", "HIGH", "High").

        Older snapshots stored lowercase priorities; anything unrecognised
        falls back to MEDIUM.
        """
        if isinstance(raw, TaskPriority):
            return raw
        s = str(raw or "").strip().lower()
        for p in cls:
            if p.value.lower() == s:
                return p
        logger.debug("Unknown task priority %r, using Medium", raw)
        return cls.MEDIUM


class TaskStatus(StrEnum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def from_raw(cls, raw: Any) -> TaskStatus | None:
        if raw is None or isinstance(raw, TaskStatus):
            return raw
        s = str(raw).strip().lower().replace("_", "-")
        try:
            return cls(s)
        except ValueError:
            return None


# python attribute -> persisted key
FIELD_KEYS: dict[str, str] = {
    "id": "id",
    "title": "title",
    "description": "description",
    "due_time": "dueTime",
    "subject": "subject",
    "priority": "priority",
    "status": "status",
    "completed": "completed",
    "in_planner": "inPlanner",
    "in_focus": "inFocus",
    "focus_fields": "focusFields",
}
_KEY_TO_FIELD = {v: k for k, v in FIELD_KEYS.items()}

_OPTIONAL_STR = {"description", "due_time", "subject"}
_OPTIONAL_BOOL = {"completed", "in_planner", "in_focus"}


def new_task_id() -> str:
    """Random unique id for a new task. The store itself never assigns ids."""
    return uuid.uuid4().hex


def field_name(key: str) -> str:
    """Resolve a python attribute name or a persisted key to the attribute name."""
    if key in FIELD_KEYS:
        return key
    name = _KEY_TO_FIELD.get(key)
    if name is None:
        raise TaskFieldError(f"Unknown task field: {key!r}")
    return name


def _check_json(name: str, value: Any) -> None:
    try:
        json.dumps(value)
    except (TypeError, ValueError) as e:
        raise TaskFieldError(f"{FIELD_KEYS.get(name, name)} is not JSON-serializable: {e}") from e


def coerce_field(name: str, value: Any) -> Any:
    if name == "id":
        if isinstance(value, bool) or not isinstance(value, (str, int)) or value == "":
            raise TaskFieldError(f"Task id must be a non-empty string, got {value!r}")
        return str(value)
    if name == "title":
        if not isinstance(value, str):
            raise TaskFieldError(f"Task title must be a string, got {value!r}")
        return value
    if name == "priority":
        if value is None:
            raise TaskFieldError("Task priority is required")
        return TaskPriority.from_raw(value)
    if name == "status":
        return TaskStatus.from_raw(value)
    if value is None:
        return None
    if name in _OPTIONAL_STR:
        return str(value)
    if name in _OPTIONAL_BOOL:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "y", "on"}
        return bool(value)
    if name == "focus_fields":
        if not isinstance(value, Mapping):
            raise TaskFieldError(f"focusFields must be an object, got {type(value).__name__}")
        fields = dict(value)
        _check_json(name, fields)
        return fields
    raise TaskFieldError(f"Unknown task field: {name!r}")


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    priority: TaskPriority = TaskPriority.MEDIUM

    description: str | None = None
    due_time: str | None = None
    subject: str | None = None

    status: TaskStatus | None = None
    completed: bool | None = None

    in_planner: bool | None = None
    in_focus: bool | None = None
    # Opaque to the store; owned by the focus view.
    focus_fields: dict[str, Any] | None = None

    # Persisted keys this model does not know; written back unchanged.
    extra_fields: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.priority, TaskPriority):
            object.__setattr__(self, "priority", coerce_field("priority", self.priority))
        if self.status is not None and not isinstance(self.status, TaskStatus):
            status = TaskStatus.from_raw(self.status)
            if status is None:
                raise TaskFieldError(f"Unknown task status: {self.status!r}")
            object.__setattr__(self, "status", status)
        if self.focus_fields is not None:
            object.__setattr__(self, "focus_fields", coerce_field("focus_fields", self.focus_fields))
        if self.extra_fields is not None:
            if not isinstance(self.extra_fields, Mapping):
                raise TaskFieldError("extra_fields must be a mapping")
            extra = {str(k): v for k, v in self.extra_fields.items() if k not in _KEY_TO_FIELD}
            _check_json("extra_fields", extra)
            object.__setattr__(self, "extra_fields", extra or None)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Task:
        """Build a Task from a persisted record (camelCase) or python-named mapping."""
        if not isinstance(raw, Mapping):
            raise TaskFieldError(f"Task record must be an object, got {type(raw).__name__}")
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in raw.items():
            try:
                name = field_name(str(key))
            except TaskFieldError:
                # Keys written by other views survive the next rewrite.
                extra[str(key)] = value
                continue
            kwargs[name] = coerce_field(name, value)
        if "id" not in kwargs:
            raise TaskFieldError("Task record has no id")
        if "title" not in kwargs:
            raise TaskFieldError(f"Task {kwargs['id']} has no title")
        if extra:
            logger.debug("Task %s carries unknown keys %s", kwargs["id"], sorted(extra))
            kwargs["extra_fields"] = extra
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Persisted form: camelCase keys, absent optional fields omitted."""
        out: dict[str, Any] = dict(self.extra_fields or {})
        for name, key in FIELD_KEYS.items():
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, StrEnum):
                value = value.value
            out[key] = value
        return out

    def merged(self, updates: Mapping[str, Any]) -> Task:
        """
        Shallow merge: keys present in `updates` override, everything else is kept.
        The id is immutable and is ignored if present.
        """
        changes: dict[str, Any] = {}
        for key, value in updates.items():
            name = field_name(str(key))
            if name == "id":
                continue
            coerced = coerce_field(name, value)
            if name == "status" and value is not None and coerced is None:
                raise TaskFieldError(f"Unknown task status: {value!r}")
            changes[name] = coerced
        if not changes:
            return self
        return dataclasses.replace(self, **changes)
