"""Sink Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, is_dataclass
from typing import Any, Iterable, Mapping


def to_record(item: Any) -> dict:
    """Normalise a transform result into a JSON-friendly mapping."""

    if is_dataclass(item) and not isinstance(item, type):
        return asdict(item)
    if isinstance(item, Mapping):
        return dict(item)
    if isinstance(item, (str, bytes)):
        text = item.decode("utf-8", errors="replace") if isinstance(item, bytes) else item
        return {"content": text}
    if isinstance(item, (list, tuple)):
        return {"items": list(item)}
    return {"value": item}


class BaseSink(ABC):
    """Uniform persistence contract; implementations must be thread-safe."""

    @abstractmethod
    def persist(self, item: Any) -> None:
        """Persist a single result or raise :class:`SinkError`."""

    def persist_many(self, items: Iterable[Any]) -> None:
        for item in items:
            self.persist(item)

    def flush(self) -> None:
        """Flush buffered data to destination."""

    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseSink", "to_record"]
