from __future__ import annotations

import threading
from pathlib import Path

import pytest

from relay_crawler.config import GlobalConfig, JobConfig, PipelineSettings, SinkFormat, SinkSettings
from relay_crawler.engine import (
    BaseSink,
    BaseTransform,
    FetchRequest,
    FileSink,
    HtmlTransform,
    MemorySink,
    SinkError,
)
from relay_crawler.orchestrator import PipelineSummary, build_pipeline
from relay_crawler.ui import ProgressReporter


def _urls(count: int) -> list[str]:
    return [f"https://example.com/{i}" for i in range(count)]


@pytest.mark.parametrize(
    ("fetch_workers", "persist_workers"), [(1, 1), (1, 4), (4, 1), (3, 3), (8, 2)]
)
def test_every_seed_is_persisted_exactly_once(make_pipeline, fetch_workers, persist_workers) -> None:
    seeds = _urls(25)
    pipeline, transport, sink = make_pipeline(
        fetch_workers=fetch_workers, persist_workers=persist_workers, concurrency=2
    )

    summary = pipeline.run(seeds)

    assert sorted(sink.items) == sorted(seeds)
    assert summary.seeded == summary.fetched == summary.transformed == summary.persisted == 25
    assert summary.failed == 0
    assert transport.max_in_flight <= 2


def test_empty_seed_set_terminates_cleanly(make_pipeline) -> None:
    pipeline, transport, sink = make_pipeline(fetch_workers=3, persist_workers=3)
    summary = pipeline.run([])
    assert summary == PipelineSummary(elapsed=summary.elapsed)
    assert sink.items == []
    assert transport.calls == []


def test_single_transform_failure_is_contained(make_pipeline, failing_transform) -> None:
    seeds = _urls(6)
    pipeline, _, sink = make_pipeline(transform=failing_transform(seeds[2]))

    summary = pipeline.run(seeds)

    assert sorted(sink.items) == sorted(seeds[:2] + seeds[3:])
    assert summary.transform_failed == 1
    assert summary.persisted == 5


def test_unexpected_transform_exception_is_contained(make_pipeline, failing_transform) -> None:
    seeds = _urls(3)
    pipeline, _, sink = make_pipeline(transform=failing_transform(seeds[0], RuntimeError("bug")))
    summary = pipeline.run(seeds)
    assert len(sink.items) == 2
    assert summary.transform_failed == 1


def test_transform_returning_none_counts_as_failure(make_pipeline) -> None:
    class NothingTransform(BaseTransform):
        def transform(self, content):
            return None

    pipeline, _, sink = make_pipeline(transform=NothingTransform())
    summary = pipeline.run(_urls(2))
    assert sink.items == []
    assert summary.transform_failed == 2


def test_fetch_failures_produce_no_result(make_pipeline, fake_transport) -> None:
    seeds = _urls(5)
    transport = fake_transport(failing=[seeds[0], seeds[4]])
    pipeline, _, sink = make_pipeline(transport=transport)

    summary = pipeline.run(seeds)

    assert sorted(sink.items) == sorted(seeds[1:4])
    assert summary.fetch_failed == 2
    assert summary.fetched == 3
    assert len(transport.calls) == 5


def test_sink_failures_are_contained(make_pipeline) -> None:
    class PickySink(BaseSink):
        def __init__(self) -> None:
            self.items: list[str] = []
            self._lock = threading.Lock()

        def persist(self, item):
            if item.endswith("/1"):
                raise SinkError("disk full")
            with self._lock:
                self.items.append(item)

    pipeline, _, sink = make_pipeline(sink=PickySink())
    summary = pipeline.run(_urls(4))
    assert len(sink.items) == 3
    assert summary.persist_failed == 1
    assert summary.persisted == 3


def test_three_letter_scenario_runs_sequentially(make_pipeline) -> None:
    pipeline, transport, sink = make_pipeline(
        concurrency=1, request_delay=0, fetch_workers=3, persist_workers=2
    )
    summary = pipeline.run(["A", "B", "C"])
    assert sorted(sink.items) == ["A", "B", "C"]
    assert summary.persisted == 3
    assert transport.max_in_flight == 1


def test_seed_set_larger_than_queue_capacity(make_pipeline, fake_transport) -> None:
    seeds = _urls(60)
    pipeline, _, sink = make_pipeline(
        transport=fake_transport(latency=0.001), queue_capacity=1, fetch_workers=2, persist_workers=1
    )
    summary = pipeline.run(iter(seeds))
    assert summary.seeded == 60
    assert len(sink.items) == 60


def test_request_headers_flow_to_transport(make_pipeline) -> None:
    pipeline, transport, _ = make_pipeline()
    pipeline.run(
        [FetchRequest("https://example.com/own", {"User-Agent": "mine"}), "https://example.com/x"],
        headers={"Accept": "text/html"},
    )
    headers = {url: sent for url, sent in transport.calls}
    assert headers["https://example.com/own"] == {"User-Agent": "mine"}
    assert headers["https://example.com/x"]["Accept"] == "text/html"
    assert "User-Agent" in headers["https://example.com/x"]


def test_invalid_seed_stops_seeding_but_drains(make_pipeline) -> None:
    pipeline, _, sink = make_pipeline()
    with pytest.raises(ValueError):
        pipeline.run(["https://example.com/ok", ""])
    assert sink.items == ["https://example.com/ok"]


def test_progress_reporter_receives_outcomes(make_pipeline, failing_transform) -> None:
    seeds = _urls(4)
    progress = ProgressReporter(enabled=False)
    pipeline, _, _ = make_pipeline(transform=failing_transform(seeds[1]), progress=progress)
    pipeline.run(seeds)
    assert progress.summary() == {"success": 3, "failed": 1}
    assert progress.state.total == 4


def test_summary_as_dict() -> None:
    summary = PipelineSummary(seeded=3, fetched=2, fetch_failed=1, persisted=2)
    payload = summary.as_dict()
    assert payload["failed"] == 1
    assert payload["persisted"] == 2


def test_build_pipeline_wires_configuration(tmp_path: Path) -> None:
    global_config = GlobalConfig(pipeline=PipelineSettings(concurrency=4, request_delay="250ms"))
    job = JobConfig(
        name="docs",
        seeds=["https://example.com"],
        sink=SinkSettings(format=SinkFormat.JSONL),
        pipeline=PipelineSettings(concurrency=2, request_delay=0.5, fetch_workers=5),
    )
    pipeline = build_pipeline(global_config, job, tmp_path, run_tag="t")
    try:
        assert pipeline.limiter.concurrency == 2
        assert pipeline.limiter.request_delay == 0.5
        assert pipeline.settings.fetch_workers == 5
        assert isinstance(pipeline.transform, HtmlTransform)
        assert isinstance(pipeline.sink, FileSink)
        assert pipeline.sink.path == tmp_path / "docs-t.jsonl"
    finally:
        pipeline.limiter.close()
        pipeline.sink.close()


def test_memory_sink_default_in_fixture(make_pipeline) -> None:
    _, _, sink = make_pipeline()
    assert isinstance(sink, MemorySink)


class _Opaque:
    """Result whose attributes must not be touched by the pipeline."""

    @property
    def title(self) -> str:
        raise AssertionError("pipeline inspected a result")


class _OpaqueTransform(BaseTransform):
    def transform(self, content):
        return _Opaque()


class _BrokenProgress(ProgressReporter):
    def advance(self, success=False, failed=False, current_url=None) -> None:
        super().advance(success=success, failed=failed, current_url=current_url)
        raise RuntimeError("terminal went away")


def test_persist_worker_survives_progress_errors(make_pipeline) -> None:
    seeds = _urls(10)
    progress = _BrokenProgress(enabled=False)
    pipeline, _, sink = make_pipeline(
        transform=_OpaqueTransform(),
        progress=progress,
        fetch_workers=1,
        persist_workers=1,
        queue_capacity=1,
    )
    outcome: dict = {}
    runner = threading.Thread(target=lambda: outcome.update(summary=pipeline.run(seeds)), daemon=True)
    runner.start()
    runner.join(timeout=10)

    assert not runner.is_alive()
    assert outcome["summary"].persisted == 10
    assert len(sink.items) == 10
    assert progress.summary() == {"success": 10, "failed": 0}


def test_progress_shows_request_targets(make_pipeline) -> None:
    class TitledTransform(BaseTransform):
        def transform(self, content):
            if content.endswith("/0"):
                raise ValueError("bad page")
            return {"title": "Some Page"}

    seeds = _urls(3)
    seen: list = []

    class RecordingProgress(ProgressReporter):
        def advance(self, success=False, failed=False, current_url=None) -> None:
            seen.append(current_url)
            super().advance(success=success, failed=failed, current_url=current_url)

    pipeline, _, _ = make_pipeline(transform=TitledTransform(), progress=RecordingProgress(enabled=False))
    pipeline.run(seeds)
    assert sorted(seen) == sorted(seeds)
