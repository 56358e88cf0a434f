"""Bounded, closable multi-consumer channel."""

from __future__ import annotations

from collections import deque
from threading import Condition, Lock
from typing import Deque, Generic, TypeVar

from .errors import ChannelClosedError

T = TypeVar("T")


class Channel(Generic[T]):
    """FIFO buffer shared by many producers and many consumers.

    ``send`` blocks while the buffer is full and ``receive`` blocks while it
    is empty. Once ``close`` has been called, ``receive`` keeps handing out
    buffered items and then returns ``None`` to every caller. ``None`` is
    therefore reserved as the end-of-stream marker and cannot be sent.
    """

    def __init__(self, capacity: int, name: str = "channel") -> None:
        if capacity < 1:
            raise ValueError("Channel capacity must be >= 1")
        self.capacity = capacity
        self.name = name
        self._items: Deque[T] = deque()
        self._lock = Lock()
        self._not_empty = Condition(self._lock)
        self._not_full = Condition(self._lock)
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def send(self, item: T) -> None:
        if item is None:
            raise ValueError(f"Cannot send None on channel '{self.name}'")
        with self._not_full:
            while len(self._items) >= self.capacity and not self._closed:
                self._not_full.wait()
            if self._closed:
                raise ChannelClosedError(f"Channel '{self.name}' is closed")
            self._items.append(item)
            self._not_empty.notify()

    def receive(self) -> T | None:
        with self._not_empty:
            while not self._items and not self._closed:
                self._not_empty.wait()
            if not self._items:
                return None
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            # Wake blocked consumers (to observe end-of-stream) and blocked producers (to fail).
            self._not_empty.notify_all()
            self._not_full.notify_all()


__all__ = ["Channel"]
