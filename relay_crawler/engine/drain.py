"""Close the result channel once every fetch worker has finished."""

from __future__ import annotations

from threading import Event, Lock

import structlog

from .errors import SchedulingError
from .work_queue import Producer


class DrainCoordinator:
    """Count down fetch-worker completions and close results on the last one.

    Closing the result channel earlier would drop results that are still in
    flight; never closing it would leave persist workers blocked forever.
    """

    def __init__(
        self,
        producer: Producer,
        expected: int,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if expected < 1:
            raise ValueError("DrainCoordinator expects at least one worker")
        self.producer = producer
        self.expected = expected
        self.logger = logger or structlog.get_logger("relay_crawler.drain")
        self._remaining = expected
        self._reported: set[int] = set()
        self._lock = Lock()
        self._drained = Event()

    @property
    def drained(self) -> bool:
        return self._drained.is_set()

    def worker_done(self, worker_id: int) -> None:
        with self._lock:
            if worker_id in self._reported or self._remaining == 0:
                raise SchedulingError(f"Fetch worker {worker_id} reported completion twice")
            self._reported.add(worker_id)
            self._remaining -= 1
            remaining = self._remaining
        self.logger.debug("fetch_worker_done", worker=worker_id, remaining=remaining)
        if remaining == 0:
            self.producer.close_results()
            self._drained.set()
            self.logger.info("result_queue_closed", workers=self.expected)

    def wait(self, timeout: float | None = None) -> bool:
        return self._drained.wait(timeout)


__all__ = ["DrainCoordinator"]
