"""Engine components orchestrating fetch → transform → persist."""

from .channel import Channel
from .drain import DrainCoordinator
from .errors import (
    CapabilityTakenError,
    ChannelClosedError,
    CrawlerError,
    FetchError,
    SchedulingError,
    SinkError,
    TransformError,
)
from .fetcher import FetchRequest, FetchResponse, HttpxTransport, Transport
from .limiter import FetchLimiter
from .sink import BaseSink, FileSink, MemorySink, SQLiteSink, build_sink
from .thread_pool import WorkerPool
from .transform import (
    BaseTransform,
    HtmlTransform,
    IdentityTransform,
    JsonTransform,
    PageSummary,
    build_transform,
)
from .work_queue import Consumer, Producer, WorkQueue

__all__ = [
    "BaseSink",
    "BaseTransform",
    "CapabilityTakenError",
    "Channel",
    "ChannelClosedError",
    "Consumer",
    "CrawlerError",
    "DrainCoordinator",
    "FetchError",
    "FetchLimiter",
    "FetchRequest",
    "FetchResponse",
    "FileSink",
    "HtmlTransform",
    "HttpxTransport",
    "IdentityTransform",
    "JsonTransform",
    "MemorySink",
    "PageSummary",
    "Producer",
    "SQLiteSink",
    "SchedulingError",
    "SinkError",
    "TransformError",
    "Transport",
    "WorkQueue",
    "WorkerPool",
    "build_sink",
    "build_transform",
]
