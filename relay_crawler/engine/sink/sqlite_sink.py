"""Persist results to SQLite tables."""

from __future__ import annotations

import json
import re
import sqlite3
from pathlib import Path
from threading import Lock
from typing import Any

from ..errors import SinkError
from .base import BaseSink, to_record

_TABLE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteSink(BaseSink):
    """Persist results as JSON blobs in SQLite."""

    def __init__(self, path: Path, table: str = "records") -> None:
        if not _TABLE_PATTERN.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.path = path
        self.table = table
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                payload TEXT NOT NULL,
                stored_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        self.conn.commit()

    def persist(self, item: Any) -> None:
        try:
            payload = json.dumps(to_record(item), ensure_ascii=False)
            with self._lock:
                self.conn.execute(f"INSERT INTO {self.table}(payload) VALUES (?)", (payload,))
        except (TypeError, ValueError, sqlite3.Error) as exc:
            raise SinkError(f"SQLite insert failed: {exc}") from exc

    def flush(self) -> None:
        with self._lock:
            self.conn.commit()

    def close(self) -> None:
        with self._lock:
            self.conn.commit()
            self.conn.close()


__all__ = ["SQLiteSink"]
