"""Dual-channel work queue split into producer and consumer handles."""

from __future__ import annotations

from threading import Lock
from typing import Generic, Iterable, Mapping, TypeVar

from .channel import Channel
from .errors import CapabilityTakenError
from .fetcher import FetchRequest

Req = TypeVar("Req")
Res = TypeVar("Res")


class Producer(Generic[Req, Res]):
    """Enqueue-only handle; may be shared freely between threads."""

    def __init__(self, requests: Channel[Req], results: Channel[Res]) -> None:
        self._requests = requests
        self._results = results

    def enqueue_request(self, request: Req) -> None:
        self._requests.send(request)

    def enqueue_result(self, result: Res) -> None:
        self._results.send(result)

    def add_requests(
        self, targets: Iterable[str | FetchRequest], headers: Mapping[str, str] | None = None
    ) -> int:
        """Wrap plain URLs into requests and enqueue them; returns the count."""

        count = 0
        for target in targets:
            request = target if isinstance(target, FetchRequest) else FetchRequest(target, headers)
            self._requests.send(request)  # type: ignore[arg-type]
            count += 1
        return count

    def close_requests(self) -> None:
        self._requests.close()

    def close_results(self) -> None:
        self._results.close()


class Consumer(Generic[Req, Res]):
    """Dequeue-only handle; many workers may pull from it concurrently."""

    def __init__(self, requests: Channel[Req], results: Channel[Res]) -> None:
        self._requests = requests
        self._results = results

    def dequeue_request(self) -> Req | None:
        return self._requests.receive()

    def dequeue_result(self) -> Res | None:
        return self._results.receive()


class WorkQueue(Generic[Req, Res]):
    """Pending requests and produced results, each in its own bounded channel."""

    def __init__(self, capacity: int = 10) -> None:
        self.capacity = capacity
        self._requests: Channel[Req] = Channel(capacity, name="requests")
        self._results: Channel[Res] = Channel(capacity, name="results")
        self._split = False
        self._lock = Lock()

    def split(self) -> tuple[Producer[Req, Res], Consumer[Req, Res]]:
        with self._lock:
            if self._split:
                raise CapabilityTakenError("Work queue capability already taken")
            self._split = True
        return (
            Producer(self._requests, self._results),
            Consumer(self._requests, self._results),
        )


__all__ = ["Consumer", "Producer", "WorkQueue"]
