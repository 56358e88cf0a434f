"""Pipeline wiring fetch workers, persist workers and the drain protocol together."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Iterable, Sized

import structlog

from .config import GlobalConfig, JobConfig, PipelineSettings
from .engine import (
    BaseSink,
    BaseTransform,
    Consumer,
    CrawlerError,
    DrainCoordinator,
    FetchLimiter,
    FetchRequest,
    HttpxTransport,
    Producer,
    TransformError,
    WorkerPool,
    WorkQueue,
    build_sink,
    build_transform,
)
from .ui import ProgressReporter


@dataclass(slots=True)
class PipelineSummary:
    """Per-run counters; failed items are dropped and only counted here."""

    seeded: int = 0
    fetched: int = 0
    fetch_failed: int = 0
    transformed: int = 0
    transform_failed: int = 0
    persisted: int = 0
    persist_failed: int = 0
    elapsed: float = 0.0

    @property
    def failed(self) -> int:
        return self.fetch_failed + self.transform_failed + self.persist_failed

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["failed"] = self.failed
        return payload


class _Counters:
    def __init__(self) -> None:
        self._lock = Lock()
        self.summary = PipelineSummary()

    def incr(self, name: str) -> None:
        with self._lock:
            setattr(self.summary, name, getattr(self.summary, name) + 1)


class Pipeline:
    """Run a finite batch of requests through fetch → transform → persist.

    Fetch workers pull requests, fetch them through the shared limiter,
    transform the content and enqueue results. Persist workers pull results
    and hand them to the sink. Request closure comes from the finite seed
    set; result closure comes from the drain coordinator once every fetch
    worker has exited.
    """

    def __init__(
        self,
        limiter: FetchLimiter,
        transform: BaseTransform,
        sink: BaseSink,
        settings: PipelineSettings | None = None,
        logger: structlog.BoundLogger | None = None,
        progress: ProgressReporter | None = None,
    ) -> None:
        self.limiter = limiter
        self.transform = transform
        self.sink = sink
        self.settings = settings or PipelineSettings()
        self.logger = logger or structlog.get_logger("relay_crawler.pipeline")
        self.progress = progress

    def run(self, seeds: Iterable[str | FetchRequest], headers: dict[str, str] | None = None) -> PipelineSummary:
        started = time.monotonic()
        counters = _Counters()
        # Results travel with their request target so progress never inspects them.
        queue: WorkQueue[FetchRequest, tuple[str, Any]] = WorkQueue(self.settings.queue_capacity)
        producer, consumer = queue.split()
        coordinator = DrainCoordinator(producer, self.settings.fetch_workers, logger=self.logger)
        fetch_pool = WorkerPool("fetch", self.settings.fetch_workers)
        persist_pool = WorkerPool("persist", self.settings.persist_workers)

        if self.progress is not None:
            self.progress.start(len(seeds) if isinstance(seeds, Sized) else None)
        self.logger.info(
            "pipeline_started",
            fetch_workers=self.settings.fetch_workers,
            persist_workers=self.settings.persist_workers,
            queue_capacity=self.settings.queue_capacity,
        )
        persist_pool.start(lambda worker_id: self._persist_loop(worker_id, consumer, counters))
        fetch_pool.start(
            lambda worker_id: self._fetch_loop(worker_id, producer, consumer, coordinator, counters)
        )
        try:
            # Seeding runs alongside the workers so backpressure cannot deadlock it.
            counters.summary.seeded = producer.add_requests(seeds, headers)
        finally:
            producer.close_requests()
            try:
                fetch_pool.join()
            finally:
                try:
                    persist_pool.join()
                finally:
                    self.sink.flush()
                    if self.progress is not None:
                        self.progress.close()

        summary = counters.summary
        summary.elapsed = time.monotonic() - started
        self.logger.info("pipeline_finished", **summary.as_dict())
        return summary

    # ------------------------------------------------------------------
    def _fetch_loop(
        self,
        worker_id: int,
        producer: Producer,
        consumer: Consumer,
        coordinator: DrainCoordinator,
        counters: _Counters,
    ) -> None:
        try:
            while True:
                request = consumer.dequeue_request()
                if request is None:
                    break
                self._process_request(request, producer, counters)
        finally:
            coordinator.worker_done(worker_id)

    def _process_request(self, request: FetchRequest, producer: Producer, counters: _Counters) -> None:
        try:
            response = self.limiter.fetch(request)
        except Exception as exc:  # noqa: BLE001
            counters.incr("fetch_failed")
            self._report_failure("fetch_failed", request.target, exc)
            return
        counters.incr("fetched")
        try:
            result = self.transform.transform(response.text)
            if result is None:
                raise TransformError("Transform produced no result", target=request.target)
        except Exception as exc:  # noqa: BLE001
            counters.incr("transform_failed")
            self._report_failure("transform_failed", request.target, exc)
            return
        counters.incr("transformed")
        producer.enqueue_result((request.target, result))

    def _persist_loop(self, worker_id: int, consumer: Consumer, counters: _Counters) -> None:
        while True:
            envelope = consumer.dequeue_result()
            if envelope is None:
                break
            target, result = envelope
            try:
                self.sink.persist(result)
            except Exception as exc:  # noqa: BLE001
                counters.incr("persist_failed")
                self._report_failure("persist_failed", target, exc)
                continue
            counters.incr("persisted")
            self._advance_progress(target, success=True)
        self.logger.debug("persist_worker_done", worker=worker_id)

    def _report_failure(self, event: str, target: str | None, exc: Exception) -> None:
        if isinstance(exc, CrawlerError):
            self.logger.warning(event, url=target or exc.target, error=str(exc))
        else:
            self.logger.error(event, url=target, error=repr(exc), exc_info=exc)
        self._advance_progress(target, failed=True)

    def _advance_progress(self, target: str | None, success: bool = False, failed: bool = False) -> None:
        if self.progress is None:
            return
        try:
            self.progress.advance(success=success, failed=failed, current_url=target)
        except Exception as exc:  # noqa: BLE001
            # Display problems must not stop a worker; the summary still counts the item.
            self.logger.warning("progress_update_failed", url=target, error=repr(exc))


def build_pipeline(
    global_config: GlobalConfig,
    job: JobConfig,
    outputs_dir: Path,
    *,
    run_tag: str | None = None,
    logger: structlog.BoundLogger | None = None,
    progress: ProgressReporter | None = None,
) -> Pipeline:
    """Assemble a pipeline with the HTTP transport and the job's strategies."""

    settings = job.effective_pipeline(global_config)
    transport = HttpxTransport(global_config.fetcher, logger=logger)
    limiter = FetchLimiter(
        transport,
        concurrency=settings.concurrency,
        request_delay=settings.request_delay,
        user_agent=global_config.fetcher.user_agent,
        logger=logger,
    )
    return Pipeline(
        limiter=limiter,
        transform=build_transform(job.transform),
        sink=build_sink(job.sink, job.name, outputs_dir, run_tag=run_tag),
        settings=settings,
        logger=logger,
        progress=progress,
    )


__all__ = ["Pipeline", "PipelineSummary", "build_pipeline"]
