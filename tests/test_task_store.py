# tests/test_task_store.py

from __future__ import annotations

import json
import logging
from datetime import date

import pytest

from prepmate.storage.kv import InMemoryStorage
from prepmate.tasks.errors import ReorderIndexError, TaskFieldError, TaskPersistenceError
from prepmate.planner.views import sort_by_priority, task_stats
from prepmate.tasks.task_models import Task, TaskPriority, TaskStatus
from prepmate.tasks.task_store import TASKS_STORAGE_KEY, TaskStore, decode_snapshot

from .fakes import FlakyStorage


def _persisted(storage: InMemoryStorage, key: str = TASKS_STORAGE_KEY) -> list[dict]:
    raw = storage.get_item(key)
    assert raw is not None
    return json.loads(raw)


def test_starts_empty_without_persisted_data(store: TaskStore) -> None:
    assert store.tasks == ()
    assert len(store) == 0


def test_add_is_visible_in_fresh_read_of_slot(store: TaskStore, storage: InMemoryStorage) -> None:
    store.add_task(Task(id="1", title="Write report", priority=TaskPriority.HIGH))

    assert _persisted(storage) == [{"id": "1", "title": "Write report", "priority": "High"}]
    assert decode_snapshot(storage.get_item(TASKS_STORAGE_KEY)) == store.tasks


def test_every_mutation_writes_full_collection(storage: InMemoryStorage) -> None:
    flaky = FlakyStorage()
    store = TaskStore(flaky)
    store.add_task(Task(id="1", title="a"))
    store.add_task(Task(id="2", title="b"))
    store.edit_task("1", {"title": "a2"})
    store.delete_task("missing")

    assert flaky.write_attempts == 4
    assert [t["id"] for t in json.loads(flaky.get_item(TASKS_STORAGE_KEY))] == ["1", "2"]


def test_add_complete_delete_session(store: TaskStore, storage: InMemoryStorage) -> None:
    store.add_task(Task(id="1", title="Write report", priority=TaskPriority.HIGH))
    store.add_task(Task(id="2", title="Review PR", priority=TaskPriority.LOW))
    store.complete_task("1")
    store.delete_task("2")

    expected = [
        {
            "id": "1",
            "title": "Write report",
            "priority": "High",
            "completed": True,
            "status": "completed",
        }
    ]
    assert [t.to_dict() for t in store.tasks] == expected
    assert _persisted(storage) == expected


def test_complete_sets_both_fields(store: TaskStore) -> None:
    store.add_task(Task(id="x", title="t", status=TaskStatus.IN_PROGRESS, completed=False))
    store.complete_task("x")
    t = store.get_task("x")
    assert t is not None
    assert t.completed is True
    assert t.status == TaskStatus.COMPLETED


def test_edit_changes_only_priority(store: TaskStore) -> None:
    a = Task(id="a", title="A", subject="CSE", due_time="Today", priority=TaskPriority.HIGH)
    b = Task(id="b", title="B")
    store.add_task(a)
    store.add_task(b)

    store.edit_task("a", {"priority": "Low"})

    edited = store.get_task("a")
    assert edited is not None
    assert edited.to_dict() == {**a.to_dict(), "priority": "Low"}
    assert store.get_task("b") is b


def test_missing_ids_are_silent_noops(store: TaskStore) -> None:
    store.add_task(Task(id="a", title="A"))
    before = store.tasks

    store.edit_task("zzz", {"title": "x"})
    store.complete_task("zzz")
    store.delete_task("zzz")

    assert store.tasks == before


def test_delete_keeps_relative_order(store: TaskStore) -> None:
    for i in "abcd":
        store.add_task(Task(id=i, title=i.upper()))
    store.delete_task("b")
    assert [t.id for t in store.tasks] == ["a", "c", "d"]


def test_reorder_first_to_last(store: TaskStore, storage: InMemoryStorage) -> None:
    for i in "ABC":
        store.add_task(Task(id=i, title=i))
    store.reorder_tasks(0, 2)
    assert [t.id for t in store.tasks] == ["B", "C", "A"]
    assert [t["id"] for t in _persisted(storage)] == ["B", "C", "A"]


def test_reorder_out_of_range_leaves_state_and_slot_alone(
    store: TaskStore, storage: InMemoryStorage
) -> None:
    store.add_task(Task(id="A", title="A"))
    snapshot = store.tasks
    raw = storage.get_item(TASKS_STORAGE_KEY)

    with pytest.raises(ReorderIndexError):
        store.reorder_tasks(0, 5)

    assert store.tasks is snapshot
    assert storage.get_item(TASKS_STORAGE_KEY) == raw


def test_sync_upserts(store: TaskStore) -> None:
    store.add_task(Task(id="p", title="Plan", subject="OS", description="chapter 1"))
    store.sync_task(Task(id="p", title="Plan v2"))
    store.sync_task(Task(id="q", title="New"))

    p = store.get_task("p")
    assert p is not None
    assert p.title == "Plan v2"
    assert p.subject is None
    assert p.description is None
    assert [t.id for t in store.tasks] == ["p", "q"]


def test_duplicate_ids_are_kept(store: TaskStore) -> None:
    store.add_task(Task(id="dup", title="one"))
    store.add_task(Task(id="dup", title="two"))
    assert [t.title for t in store.tasks] == ["one", "two"]


def test_restart_restores_equal_collection(storage: InMemoryStorage) -> None:
    store = TaskStore(storage)
    store.add_task(
        Task(
            id="1",
            title="Revise graphs",
            subject="CSE",
            due_time="Today, 8:00 PM",
            priority=TaskPriority.HIGH,
            status=TaskStatus.TODO,
            in_planner=True,
            focus_fields={"notes": "BFS/DFS", "tags": ["dsa"], "subtasks": [{"id": "s1", "title": "BFS", "completed": False}]},
        )
    )
    store.add_task(Task(id="2", title="SQL joins", priority=TaskPriority.MEDIUM))
    store.add_task(Task(id="3", title="OS project", priority=TaskPriority.LOW))
    store.complete_task("2")
    store.reorder_tasks(2, 0)
    store.edit_task("1", {"description": "focus on graphs"})
    store.delete_task("2")

    before = store.tasks
    reloaded = TaskStore(storage)

    assert reloaded.tasks == before
    assert store.reload() == before


def test_snapshots_are_new_objects_on_every_mutation(store: TaskStore) -> None:
    seen = [store.tasks]
    store.delete_task("nothing")
    seen.append(store.tasks)
    store.add_task(Task(id="a", title="A"))
    seen.append(store.tasks)
    store.edit_task("a", {})
    seen.append(store.tasks)

    assert len({id(s) for s in seen}) == len(seen)


def test_old_snapshot_is_not_mutated(store: TaskStore) -> None:
    store.add_task(Task(id="a", title="A"))
    old = store.tasks
    store.add_task(Task(id="b", title="B"))
    store.complete_task("a")

    assert len(old) == 1
    assert old[0].completed is None


def test_subscribers_get_each_new_snapshot(store: TaskStore) -> None:
    received = []
    unsubscribe = store.subscribe(received.append)

    store.add_task(Task(id="a", title="A"))
    store.complete_task("a")
    unsubscribe()
    store.delete_task("a")

    assert len(received) == 2
    assert received[-1][0].status == TaskStatus.COMPLETED


def test_failing_subscriber_does_not_break_mutation(store: TaskStore, caplog) -> None:
    def boom(_snapshot) -> None:
        raise RuntimeError("listener bug")

    got = []
    store.subscribe(boom)
    store.subscribe(got.append)

    with caplog.at_level(logging.ERROR):
        store.add_task(Task(id="a", title="A"))

    assert len(store) == 1
    assert len(got) == 1
    assert "listener failed" in caplog.text


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        '{"tasks": []}',
        '[{"title": "no id"}]',
        '[{"id": "1"}]',
        "[1, 2, 3]",
    ],
)
def test_corrupt_snapshot_starts_empty(raw: str, caplog) -> None:
    storage = InMemoryStorage({TASKS_STORAGE_KEY: raw})
    with caplog.at_level(logging.WARNING):
        store = TaskStore(storage)

    assert store.tasks == ()
    assert "corrupted" in caplog.text
    # untouched until the next successful write
    assert storage.get_item(TASKS_STORAGE_KEY) == raw

    store.add_task(Task(id="n", title="new"))
    assert _persisted(storage) == [{"id": "n", "title": "new", "priority": "Medium"}]


def test_legacy_snapshot_with_lowercase_priority_loads() -> None:
    raw = json.dumps(
        [
            {"id": "1", "title": "A", "priority": "high", "status": "in-progress"},
            {"id": "2", "title": "B", "priority": "Low", "completed": True, "extra": 1},
        ]
    )
    store = TaskStore(InMemoryStorage({TASKS_STORAGE_KEY: raw}))

    assert [t.priority for t in store.tasks] == [TaskPriority.HIGH, TaskPriority.LOW]
    assert store.tasks[0].status == TaskStatus.IN_PROGRESS
    assert store.tasks[1].completed is True


def test_write_is_retried_once() -> None:
    flaky = FlakyStorage(fail_writes=1)
    store = TaskStore(flaky)
    store.add_task(Task(id="a", title="A"))

    assert flaky.write_attempts == 2
    assert flaky.get_item(TASKS_STORAGE_KEY) is not None


def test_persistence_failure_keeps_in_memory_state() -> None:
    flaky = FlakyStorage(fail_writes=-1)
    store = TaskStore(flaky)
    received = []
    store.subscribe(received.append)

    with pytest.raises(TaskPersistenceError) as exc_info:
        store.add_task(Task(id="a", title="A"))

    assert [t.id for t in store.tasks] == ["a"]
    assert exc_info.value.snapshot is store.tasks
    assert received and received[-1] is store.tasks
    assert flaky.get_item(TASKS_STORAGE_KEY) is None

    # The next mutation still works in memory.
    flaky.fail_writes = 0
    store.add_task(Task(id="b", title="B"))
    assert [t["id"] for t in json.loads(flaky.get_item(TASKS_STORAGE_KEY))] == ["a", "b"]


def test_custom_key(storage: InMemoryStorage) -> None:
    store = TaskStore(storage, key="otherTasks")
    store.add_task(Task(id="a", title="A"))
    assert storage.get_item("otherTasks") is not None
    assert storage.get_item(TASKS_STORAGE_KEY) is None


def test_unserializable_focus_fields_are_rejected_before_install(
    store: TaskStore, storage: InMemoryStorage
) -> None:
    store.add_task(Task(id="a", title="A"))
    before = store.tasks

    with pytest.raises(TaskFieldError):
        store.edit_task("a", {"focus_fields": {"dueDate": date(2026, 1, 1)}})

    assert store.tasks is before
    store.add_task(Task(id="b", title="B"))
    assert [t["id"] for t in _persisted(storage)] == ["a", "b"]


def test_unserializable_task_after_install_reports_persistence_error(
    store: TaskStore, storage: InMemoryStorage
) -> None:
    store.add_task(Task(id="a", title="A", focus_fields={"notes": "ok"}))
    # focus_fields is a plain dict; a caller can still poison it in place.
    store.tasks[0].focus_fields["dueDate"] = date(2026, 1, 1)

    with pytest.raises(TaskPersistenceError) as ei:
        store.add_task(Task(id="b", title="B"))

    assert [t.id for t in ei.value.snapshot] == ["a", "b"]
    assert [t.id for t in store.tasks] == ["a", "b"]
    assert [t["id"] for t in _persisted(storage)] == ["a"]


def test_case_variant_priority_is_normalized_end_to_end(storage: InMemoryStorage) -> None:
    store = TaskStore(storage)
    store.add_task(Task(id="a", title="A", priority="high", status="in_progress"))
    store.add_task(Task(id="b", title="B", priority="LOW"))

    assert _persisted(storage)[0] == {
        "id": "a",
        "title": "A",
        "priority": "High",
        "status": "in-progress",
    }
    assert TaskStore(storage).tasks == store.tasks
    assert task_stats(store.tasks).total == 2
    assert [t.id for t in sort_by_priority(store.tasks)] == ["a", "b"]


def test_unknown_keys_survive_a_rewrite() -> None:
    storage = InMemoryStorage(
        {TASKS_STORAGE_KEY: json.dumps([{"id": "a", "title": "A", "color": "teal"}])}
    )
    store = TaskStore(storage)
    store.edit_task("a", {"title": "A2"})

    assert _persisted(storage) == [
        {"id": "a", "title": "A2", "priority": "Medium", "color": "teal"}
    ]
