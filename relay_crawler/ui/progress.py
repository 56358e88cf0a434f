"""Rich progress bar fed concurrently by pipeline workers."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    Task,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text

_URL_WIDTH = 60


@dataclass
class ProgressState:
    total: int | None
    success: int = 0
    failed: int = 0
    current_url: str | None = None

    @property
    def done(self) -> int:
        return self.success + self.failed


class ItemRateColumn(ProgressColumn):
    """Completed items per second."""

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text("")
        return Text(f"{speed:.1f} items/s", style="progress.data.speed")


def _shorten(url: str | None) -> str:
    if not url:
        return ""
    if len(url) <= _URL_WIDTH:
        return url
    return url[: _URL_WIDTH - 3] + "..."


class ProgressReporter:
    """Count outcomes per item and mirror them on a live bar when attached to a TTY.

    ``advance`` is called from fetch workers (failures) and persist workers
    (successes), so every update happens under one lock. A ``total`` of
    ``None`` renders a pulsing bar for seed iterables of unknown length.
    """

    def __init__(self, enabled: bool = True, label: str = "crawl") -> None:
        self.enabled = enabled
        self.label = label
        self.state: ProgressState | None = None
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self._lock = Lock()

    def start(self, total: int | None) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        console = Console()
        if not console.is_terminal:
            self.enabled = False
            return
        progress = self._build(console)
        try:
            progress.start()
        except LiveError:
            # Another live display owns the console.
            self.enabled = False
            return
        self._progress = progress
        self._task_id = progress.add_task(
            self.label, total=total, label=self.label, success=0, failed=0, current_url=""
        )

    @staticmethod
    def _build(console: Console) -> Progress:
        return Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[label]:<16}"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            ItemRateColumn(),
            TextColumn("[green]ok {task.fields[success]}"),
            TextColumn("[red]err {task.fields[failed]}"),
            TextColumn("[dim]{task.fields[current_url]}"),
            console=console,
            expand=True,
            transient=True,
        )

    def advance(self, success: bool = False, failed: bool = False, current_url: str | None = None) -> None:
        if self.state is None:
            raise RuntimeError("ProgressReporter.start must be called before advance")
        with self._lock:
            state = self.state
            state.success += int(success)
            state.failed += int(failed)
            if current_url:
                state.current_url = current_url
            if self._progress is not None and self._task_id is not None:
                self._progress.update(
                    self._task_id,
                    completed=state.done,
                    success=state.success,
                    failed=state.failed,
                    current_url=_shorten(state.current_url),
                )

    def close(self) -> None:
        with self._lock:
            if self._progress is not None:
                self._progress.stop()
            self._progress = None
            self._task_id = None

    def summary(self) -> dict[str, int]:
        if self.state is None:
            return {"success": 0, "failed": 0}
        return {"success": self.state.success, "failed": self.state.failed}


__all__ = ["ItemRateColumn", "ProgressReporter", "ProgressState"]
