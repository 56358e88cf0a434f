"""Sink SPI and implementations."""

from __future__ import annotations

from pathlib import Path

from ...config.models import SinkFormat, SinkSettings
from .base import BaseSink, to_record
from .file_sink import FileSink
from .memory_sink import MemorySink
from .sqlite_sink import SQLiteSink


def build_sink(settings: SinkSettings, name: str, output_dir: Path, run_tag: str | None = None) -> BaseSink:
    """Create the sink described by ``settings``; ``output_dir`` is the fallback location."""

    target_dir = settings.output_dir or output_dir
    if settings.format is SinkFormat.SQLITE:
        return SQLiteSink(target_dir / f"{name}.db", table=settings.table)
    return FileSink(target_dir, name, settings.format.value, run_tag=run_tag)


__all__ = ["BaseSink", "FileSink", "MemorySink", "SQLiteSink", "build_sink", "to_record"]
