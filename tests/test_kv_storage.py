# tests/test_kv_storage.py

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from prepmate.storage.kv import (
    InMemoryStorage,
    JsonFileStorage,
    SqliteStorage,
    StorageError,
    open_storage,
)
from prepmate.tasks.task_models import Task
from prepmate.tasks.task_store import TaskStore


def test_sqlite_storage_roundtrip_and_overwrite(tmp_path: Path) -> None:
    db = tmp_path / "nested" / "storage.sqlite3"
    s = SqliteStorage(db)

    assert s.get_item("k") is None
    s.set_item("k", "v1")
    s.set_item("k", "v2")
    assert s.get_item("k") == "v2"

    # a fresh instance on the same file sees the write
    assert SqliteStorage(db).get_item("k") == "v2"

    s.remove_item("k")
    assert s.get_item("k") is None


def test_json_file_storage_persists_and_is_private(tmp_path: Path) -> None:
    path = tmp_path / "storage.json"
    s = JsonFileStorage(path)
    s.set_item("a", "1")
    s.set_item("b", "2")

    assert json.loads(path.read_text("utf-8")) == {"a": "1", "b": "2"}
    assert JsonFileStorage(path).get_item("b") == "2"
    assert (path.stat().st_mode & 0o777) == 0o600

    s.remove_item("a")
    assert JsonFileStorage(path).get_item("a") is None


def test_json_file_storage_tolerates_garbage_file(tmp_path: Path) -> None:
    path = tmp_path / "storage.json"
    path.write_text("not json", "utf-8")
    s = JsonFileStorage(path)

    assert s.get_item("x") is None
    s.set_item("x", "y")
    assert s.get_item("x") == "y"


@pytest.mark.parametrize(
    ("backend", "cls"),
    [("memory", InMemoryStorage), ("json", JsonFileStorage), ("sqlite", SqliteStorage)],
)
def test_open_storage_picks_backend(tmp_path: Path, backend: str, cls: type) -> None:
    settings = SimpleNamespace(storage_backend=backend, storage_path=tmp_path / "slot.db")
    assert isinstance(open_storage(settings), cls)


def test_open_storage_rejects_unknown_backend(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        open_storage(SimpleNamespace(storage_backend="redis", storage_path=tmp_path / "x"))


def test_task_store_survives_restart_on_sqlite(tmp_path: Path) -> None:
    db = tmp_path / "storage.sqlite3"
    store = TaskStore(SqliteStorage(db))
    store.add_task(Task(id="1", title="Revise graphs"))
    store.add_task(Task(id="2", title="SQL joins"))
    store.complete_task("1")

    restarted = TaskStore(SqliteStorage(db))
    assert restarted.tasks == store.tasks


def test_json_file_storage_read_error_does_not_clobber(tmp_path: Path) -> None:
    path = tmp_path / "storage.json"
    path.mkdir()
    (path / "keep.txt").write_text("x", "utf-8")
    s = JsonFileStorage(path)

    with pytest.raises(StorageError):
        s.get_item("a")
    with pytest.raises(StorageError):
        s.set_item("a", "1")
    assert (path / "keep.txt").read_text("utf-8") == "x"
