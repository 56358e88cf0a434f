"""Pytest configuration providing fake collaborators and shared fixtures."""

from __future__ import annotations

import time
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable, Mapping

import pytest

from relay_crawler.config import ConfigLocator, ConfigRepository, GlobalConfig, PipelineSettings
from relay_crawler.engine import (
    BaseTransform,
    FetchError,
    FetchLimiter,
    FetchResponse,
    IdentityTransform,
    MemorySink,
    TransformError,
    Transport,
)
from relay_crawler.orchestrator import Pipeline


class FakeTransport(Transport):
    """Serve canned bodies while recording concurrency and call timing."""

    def __init__(
        self,
        pages: Mapping[str, str] | None = None,
        latency: float = 0.0,
        failing: Iterable[str] = (),
    ) -> None:
        self.pages = dict(pages or {})
        self.latency = latency
        self.failing = set(failing)
        self.calls: list[tuple[str, dict[str, str]]] = []
        self.starts: list[float] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False
        self._lock = Lock()

    def get(self, url: str, headers: Mapping[str, str]) -> FetchResponse:
        with self._lock:
            self.calls.append((url, dict(headers)))
            self.starts.append(time.monotonic())
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                time.sleep(self.latency)
            if url in self.failing:
                raise FetchError(f"boom: {url}", target=url)
            return FetchResponse(url=url, status_code=200, text=self.pages.get(url, url))
        finally:
            with self._lock:
                self.in_flight -= 1

    def close(self) -> None:
        self.closed = True


class FailingOnceTransform(BaseTransform[str]):
    """Identity transform that rejects one specific payload."""

    def __init__(self, bad: str, exc: Exception | None = None) -> None:
        self.bad = bad
        self.exc = exc

    def transform(self, content: str | bytes) -> str:
        text = content.decode("utf-8") if isinstance(content, bytes) else content
        if text == self.bad:
            if self.exc is not None:
                raise self.exc
            raise TransformError(f"cannot transform {text}")
        return text


@pytest.fixture
def fake_transport() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def failing_transform() -> Callable[..., FailingOnceTransform]:
    return FailingOnceTransform


@pytest.fixture
def make_pipeline() -> Callable[..., tuple[Pipeline, FakeTransport, MemorySink]]:
    def _builder(
        *,
        transport: FakeTransport | None = None,
        transform: BaseTransform | None = None,
        sink: Any = None,
        progress: Any = None,
        **settings: Any,
    ) -> tuple[Pipeline, FakeTransport, Any]:
        base: dict[str, Any] = {
            "concurrency": 2,
            "request_delay": 0,
            "queue_capacity": 4,
            "fetch_workers": 2,
            "persist_workers": 2,
        }
        base.update(settings)
        pipeline_settings = PipelineSettings(**base)
        transport = transport or FakeTransport()
        sink = sink if sink is not None else MemorySink()
        limiter = FetchLimiter(
            transport,
            concurrency=pipeline_settings.concurrency,
            request_delay=pipeline_settings.request_delay,
        )
        pipeline = Pipeline(
            limiter=limiter,
            transform=transform or IdentityTransform(),
            sink=sink,
            settings=pipeline_settings,
            progress=progress,
        )
        return pipeline, transport, sink

    return _builder


@pytest.fixture
def sample_global_config(tmp_path: Path) -> GlobalConfig:
    return GlobalConfig(
        pipeline=PipelineSettings(concurrency=2, request_delay=0, fetch_workers=2, persist_workers=1),
        outputs_dir=tmp_path / "outputs",
        enable_progress_bar=False,
    )


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("RELAY_CRAWLER_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
