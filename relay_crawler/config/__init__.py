"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    DEFAULT_USER_AGENT,
    FetcherSettings,
    GlobalConfig,
    JobConfig,
    PipelineSettings,
    SinkFormat,
    SinkSettings,
    TransformKind,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_USER_AGENT",
    "FetcherSettings",
    "GlobalConfig",
    "JobConfig",
    "PipelineSettings",
    "SinkFormat",
    "SinkSettings",
    "TransformKind",
]
