"""In-memory sink collecting results into a list."""

from __future__ import annotations

from threading import Lock
from typing import Any

from .base import BaseSink


class MemorySink(BaseSink):
    """Append every persisted result to ``items``."""

    def __init__(self) -> None:
        self.items: list[Any] = []
        self._lock = Lock()

    def persist(self, item: Any) -> None:
        with self._lock:
            self.items.append(item)

    def snapshot(self) -> list[Any]:
        with self._lock:
            return list(self.items)


__all__ = ["MemorySink"]
