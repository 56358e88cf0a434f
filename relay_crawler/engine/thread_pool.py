"""Fixed-size worker pools running identical loops on dedicated executors."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import Lock
from typing import Callable, List


class WorkerPool:
    """Run ``workers`` copies of one worker loop, each given its index."""

    def __init__(self, name: str, workers: int) -> None:
        if workers < 1:
            raise ValueError(f"{name} pool needs at least one worker")
        self.name = name
        self.workers = workers
        self._executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix=f"relay-{name}"
        )
        self._futures: List[Future[None]] = []
        self._lock = Lock()

    def start(self, target: Callable[[int], None]) -> List[Future[None]]:
        with self._lock:
            if self._futures:
                raise RuntimeError(f"{self.name} pool already started")
            self._futures = [self._executor.submit(target, index) for index in range(self.workers)]
            return list(self._futures)

    def join(self) -> None:
        """Wait for every worker, then re-raise the first crash if any."""

        with self._lock:
            futures = list(self._futures)
        wait(futures)
        self._executor.shutdown(wait=True)
        for future in futures:
            exc = future.exception()
            if exc is not None:
                raise exc


__all__ = ["WorkerPool"]
