"""Pydantic models used across relay-crawler configuration flow."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

_DURATION_PATTERN = re.compile(r"^\s*(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s|m)?\s*$", re.IGNORECASE)
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0}


def parse_duration(value: Any) -> float:
    """Return seconds from a number or a ``"250ms"`` / ``"2s"`` / ``"1m"`` string."""

    if isinstance(value, bool):
        raise ValueError("Duration must be a number or a string like '500ms'")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _DURATION_PATTERN.match(value)
        if not match:
            raise ValueError(f"Unsupported duration: {value!r}")
        unit = (match.group("unit") or "s").lower()
        return float(match.group("value")) * _DURATION_UNITS[unit]
    raise ValueError("Duration must be a number or a string like '500ms'")


class TransformKind(str, Enum):
    """Built-in transform strategies."""

    HTML = "html"
    IDENTITY = "identity"
    JSON = "json"


class SinkFormat(str, Enum):
    """Built-in sink outputs."""

    JSONL = "jsonl"
    JSON = "json"
    CSV = "csv"
    TXT = "txt"
    SQLITE = "sqlite"


class PipelineSettings(BaseModel):
    """Flow-control knobs of the fetch -> transform -> persist pipeline."""

    concurrency: int = Field(default=3, ge=1, description="Maximum simultaneous fetches.")
    request_delay: float = Field(
        default=1.0, ge=0, description="Seconds a permit is held after a successful fetch."
    )
    queue_capacity: int = Field(default=10, ge=1)
    fetch_workers: int = Field(default=3, ge=1)
    persist_workers: int = Field(default=3, ge=1)

    @field_validator("request_delay", mode="before")
    @classmethod
    def _coerce_delay(cls, value: Any) -> float:
        return parse_duration(value)


class FetcherSettings(BaseModel):
    """HTTP transport options."""

    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = Field(default=20.0, gt=0)
    follow_redirects: bool = True
    fail_on_status: bool = True


class SinkSettings(BaseModel):
    """Where and how results are persisted."""

    format: SinkFormat = SinkFormat.JSONL
    output_dir: Path | None = None
    table: str = "records"

    @field_validator("output_dir", mode="before")
    @classmethod
    def _coerce_output_dir(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)


class JobConfig(BaseModel):
    """A named, finite batch of seed URLs with its strategies."""

    name: str
    seeds: list[str] = Field(default_factory=list)
    headers: dict[str, str] = Field(default_factory=dict)
    transform: TransformKind = TransformKind.HTML
    sink: SinkSettings = Field(default_factory=SinkSettings)
    pipeline: PipelineSettings | None = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Job name cannot be empty")
        return value

    @field_validator("seeds", mode="before")
    @classmethod
    def _validate_seeds(cls, value: Any) -> list[str]:
        if value in (None, ""):
            return []
        if isinstance(value, str):
            value = [value]
        seeds: list[str] = []
        for raw in value:
            url = str(raw).strip()
            if not url:
                continue
            if urlparse(url).scheme not in ("http", "https"):
                raise ValueError(f"Seed must be an http(s) URL: {url}")
            seeds.append(url)
        return seeds

    def effective_pipeline(self, global_config: "GlobalConfig") -> PipelineSettings:
        return self.pipeline or global_config.pipeline


class GlobalConfig(BaseModel):
    """Global controls shared across jobs."""

    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    fetcher: FetcherSettings = Field(default_factory=FetcherSettings)
    enable_progress_bar: bool = True
    outputs_dir: Path = Field(default=Path("data/outputs"))

    @field_validator("outputs_dir", mode="before")
    @classmethod
    def _coerce_dirs(cls, value: Any) -> Path:
        return Path(value)


__all__ = [
    "DEFAULT_USER_AGENT",
    "FetcherSettings",
    "GlobalConfig",
    "JobConfig",
    "PipelineSettings",
    "SinkFormat",
    "SinkSettings",
    "TransformKind",
    "parse_duration",
]
