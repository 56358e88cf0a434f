"""Concurrency and rate gate in front of the network transport."""

from __future__ import annotations

import time
from threading import BoundedSemaphore

import structlog

from ..config.models import DEFAULT_USER_AGENT
from .fetcher import FetchRequest, FetchResponse, Transport


class FetchLimiter:
    """Bound simultaneous fetches to ``concurrency`` permits.

    A permit is held for the whole network call and, after a successful
    response, for an extra ``request_delay`` seconds. The delay therefore
    caps the rate at which new fetches start, while the permit count caps
    how many run at once. Failed fetches release their permit immediately.
    """

    def __init__(
        self,
        transport: Transport,
        concurrency: int = 3,
        request_delay: float = 1.0,
        user_agent: str = DEFAULT_USER_AGENT,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if request_delay < 0:
            raise ValueError("request_delay must be >= 0")
        self.transport = transport
        self.concurrency = concurrency
        self.request_delay = request_delay
        self.user_agent = user_agent
        self.logger = logger or structlog.get_logger("relay_crawler.limiter")
        # Over-release raises ValueError, surfacing permit bookkeeping bugs.
        self._permits = BoundedSemaphore(concurrency)

    def fetch(self, request: FetchRequest) -> FetchResponse:
        headers = dict(request.headers or {})
        if request.user_agent is None:
            headers["User-Agent"] = self.user_agent
        with self._permits:
            self.logger.debug("fetch_started", url=request.target)
            response = self.transport.get(request.target, headers)
            self.logger.debug(
                "fetch_completed", url=request.target, status=response.status_code
            )
            if self.request_delay:
                time.sleep(self.request_delay)
        return response

    def close(self) -> None:
        self.transport.close()


__all__ = ["FetchLimiter"]
