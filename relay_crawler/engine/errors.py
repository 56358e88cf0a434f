"""Error taxonomy shared by every pipeline stage."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for per-item and structural pipeline failures."""

    def __init__(self, message: str, *, target: str | None = None) -> None:
        super().__init__(message)
        self.target = target


class FetchError(CrawlerError):
    """Transport or network failure while retrieving a resource."""


class TransformError(CrawlerError):
    """Fetched content could not be turned into a result."""


class SinkError(CrawlerError):
    """A result could not be persisted."""


class SchedulingError(CrawlerError):
    """Structural misuse of queues, permits or coordinators."""


class CapabilityTakenError(SchedulingError):
    """Raised when a work queue is split a second time."""


class ChannelClosedError(SchedulingError):
    """Raised when enqueuing onto a channel that was already closed."""


__all__ = [
    "CapabilityTakenError",
    "ChannelClosedError",
    "CrawlerError",
    "FetchError",
    "SchedulingError",
    "SinkError",
    "TransformError",
]
