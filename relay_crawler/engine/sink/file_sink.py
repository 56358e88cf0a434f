"""File based sink supporting JSONL/CSV/TXT and one-JSON-file-per-item."""

from __future__ import annotations

import csv
import json
import re
import time
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, Optional

from ..errors import SinkError
from .base import BaseSink, to_record

FILE_FORMATS = ("jsonl", "json", "csv", "txt")


class FileSink(BaseSink):
    """Write results to local files.

    ``jsonl``, ``csv`` and ``txt`` append to a single run file named after the
    job and run tag. ``json`` writes every result to its own pretty-printed
    file named by a nanosecond timestamp inside a per-run directory.
    """

    def __init__(self, output_dir: Path, name: str, fmt: str = "jsonl", run_tag: str | None = None) -> None:
        if fmt not in FILE_FORMATS:
            raise ValueError(f"Unsupported file format: {fmt}")
        self.output_dir = output_dir
        self.name = name
        self.format = fmt
        self.run_tag = run_tag or datetime.utcnow().strftime("%Y%m%d-%H%M%S")
        slug = re.sub(r"[^0-9A-Za-z_-]+", "_", name.strip()) or "job"
        self._lock = Lock()
        self._csv_writer: Optional[csv.DictWriter] = None
        self._counter = 0
        self._last_stamp = 0
        self._file = None
        if self.format == "json":
            self.path = self.output_dir / f"{slug}-{self.run_tag}"
            self.path.mkdir(parents=True, exist_ok=True)
        else:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self.path = self.output_dir / f"{slug}-{self.run_tag}.{self.format}"
            self._file = self.path.open("a", encoding="utf-8", newline="")

    def persist(self, item: Any) -> None:
        record = to_record(item)
        try:
            with self._lock:
                if self.format == "json":
                    self._write_item_file(record)
                elif self.format == "jsonl":
                    self._file.write(json.dumps(record, ensure_ascii=False) + "\n")
                elif self.format == "csv":
                    if not self._csv_writer:
                        fieldnames = sorted(record.keys())
                        self._csv_writer = csv.DictWriter(
                            self._file, fieldnames=fieldnames, extrasaction="ignore"
                        )
                        self._csv_writer.writeheader()
                    self._csv_writer.writerow(record)
                else:  # txt
                    self._counter += 1
                    self._file.write(self._format_txt(record, index=self._counter))
        except (OSError, TypeError, ValueError) as exc:
            raise SinkError(f"Failed to write {self.path}: {exc}") from exc

    def flush(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.flush()

    def close(self) -> None:
        with self._lock:
            if self._file is not None and not self._file.closed:
                self._file.close()

    def _write_item_file(self, record: dict) -> None:
        # Timestamps must stay unique even when two items land in the same nanosecond.
        stamp = max(time.time_ns(), self._last_stamp + 1)
        self._last_stamp = stamp
        target = self.path / f"{stamp}.json"
        target.write_text(json.dumps(record, ensure_ascii=False, indent=2), encoding="utf-8")

    def _format_txt(self, record: dict, index: int) -> str:
        title = str(record.get("title") or "(untitled)")
        lines = [f"{index}. {title}"]
        length = record.get("content_length")
        if length is not None:
            lines.append(f"length: {length}")
        links = record.get("links")
        if isinstance(links, list) and links:
            lines.append(f"links: {len(links)}")
            lines.extend(f"  - {link}" for link in links)
        content = record.get("content")
        if isinstance(content, str) and content.strip():
            lines.append(content.strip())
        # Separate records with a blank line
        return "\n".join(lines) + "\n\n"


__all__ = ["FILE_FORMATS", "FileSink"]
