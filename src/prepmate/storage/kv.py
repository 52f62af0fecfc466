# src/prepmate/storage/kv.py

"""
Key-value storage backends for the task store.

- InMemoryStorage: dict-backed, process lifetime only (tests, demos).
- SqliteStorage: one `kv` table, short-lived connection per call.
- JsonFileStorage: a single JSON object on disk, replaced atomically.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import sqlite3
import time
from pathlib import Path
from typing import Any

from ..core.ports import KeyValueStorage

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Backend could not read or write the slot."""


class StorageWriteError(StorageError):
    pass


class InMemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class SqliteStorage:
    """
    SQLite key-value slot.

    The schema is a single table created on startup if missing.
    Each method opens its own connection, so there is nothing to close.
    """

    def __init__(self, db_path: str | Path = "storage.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SqliteStorage ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL DEFAULT 0
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def get_item(self, key: str) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return None if row is None else str(row[0])
        finally:
            conn.close()

    def set_item(self, key: str, value: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, str(value), time.time()),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(f"SQLite write failed for key={key!r}: {e}") from e
        finally:
            conn.close()

    def remove_item(self, key: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()


class JsonFileStorage:
    """
    Whole-file JSON object {key: value}.

    Every write rewrites the file through a temp file + os.replace, so a crash
    mid-write leaves the previous version intact.
    """

    def __init__(self, path: str | Path = "storage.json") -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as e:
            # Unreadable is not empty.
            raise StorageError(f"Failed to read {self._path}: {e}") from e
        try:
            data: Any = json.loads(raw.decode("utf-8"))
        except ValueError:
            logger.warning("Storage file %s is not valid JSON; treating as empty.", self._path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            raise StorageWriteError(f"Failed to write {self._path}: {e}") from e
        with contextlib.suppress(OSError):
            # Task notes may be personal; keep the file private on disk.
            os.chmod(self._path, 0o600)

    def get_item(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = str(value)
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)


def open_storage(settings) -> KeyValueStorage:
    """Build the backend selected by settings.storage_backend."""
    backend = str(getattr(settings, "storage_backend", "sqlite") or "sqlite").strip().lower()
    path = getattr(settings, "storage_path", None)

    if backend == "memory":
        return InMemoryStorage()
    if backend == "json":
        return JsonFileStorage(path or "storage.json")
    if backend == "sqlite":
        return SqliteStorage(path or "storage.sqlite3")
    raise ValueError(f"Unknown storage backend: {backend!r} (expected sqlite, json or memory)")
