from __future__ import annotations

import json
import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, List, Optional

from .admission import AdmissionGate
from .backoff import BackoffStrategy
from .errors import RetriesExhaustedError
from .metrics import MetricsCollector
from .models import BatchReport, EngineState, EventRecord, Job, JobResult, SiteScrapeConfig
from .rate_limiter import RateLimiter
from .retry import DEFAULT_MAX_ATTEMPTS
from .runner import JobRunner

logger = logging.getLogger(__name__)

WORKER_THREAD_PREFIX = "scrape-worker"

__all__ = ["EngineState", "ScrapeEngine", "WORKER_THREAD_PREFIX"]


class ScrapeEngine:
    """Scrapes a finite batch of sites on a bounded pool of worker threads.

    One job is queued per site config, workers pull jobs until the queue is
    empty, and the calling thread aggregates the published results into a
    flat event list. A failing job is logged and left out; it never aborts
    the batch. Setting the cancel event stops workers from taking new jobs,
    interrupts retry backoff and in-flight renders, and returns the events
    collected before the cancel.

    The engine holds no per-batch state, so one instance can serve several
    run() calls, including overlapping ones."""

    def __init__(
        self,
        render_client,
        backoff: Optional[BackoffStrategy] = None,
        rate_limiter: Optional[RateLimiter] = None,
        max_concurrent_fetches: Optional[int] = None,
        metrics: Optional[MetricsCollector] = None,
        poll_interval: float = 0.05,
    ) -> None:
        self._render_client = render_client
        self._backoff = backoff or BackoffStrategy()
        self._rate_limiter = rate_limiter
        self._max_concurrent = max_concurrent_fetches
        self._metrics = metrics
        self._poll_interval = poll_interval

    def run(
        self,
        site_configs: Iterable[SiteScrapeConfig],
        max_workers: Optional[int] = 0,
        max_retries: Optional[int] = DEFAULT_MAX_ATTEMPTS,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[EventRecord]:
        """Scrape every site config and return all extracted events."""
        return self.run_batch(site_configs, max_workers, max_retries, cancel_event).events

    def run_batch(
        self,
        site_configs: Iterable[SiteScrapeConfig],
        max_workers: Optional[int] = 0,
        max_retries: Optional[int] = DEFAULT_MAX_ATTEMPTS,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchReport:
        """Like run(), but return the full BatchReport including per-job results."""
        if max_workers is not None and max_workers < 0:
            raise ValueError("max_workers must be >= 0")
        if max_retries is not None and max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        configs = list(site_configs)
        cancel_event = cancel_event or threading.Event()
        report = BatchReport()
        if not configs:
            report.state = EngineState.DONE
            return report

        started = time.time()
        retries = max_retries or DEFAULT_MAX_ATTEMPTS
        worker_count = min(max_workers or len(configs), len(configs))
        gate = AdmissionGate(self._max_concurrent or worker_count, poll_interval=self._poll_interval)
        runner = JobRunner(self._render_client, gate, backoff=self._backoff, rate_limiter=self._rate_limiter)
        batch_metrics = MetricsCollector()

        report.state = EngineState.DISPATCHING
        jobs: queue.Queue[Job] = queue.Queue()
        for index, config in enumerate(configs):
            jobs.put(Job(index=index, config=config))
        results: queue.Queue[JobResult] = queue.Queue()
        logger.info(
            "Dispatched %d jobs to %d workers (fetch ceiling %d, max retries %d)",
            len(configs),
            worker_count,
            gate.limit,
            retries,
        )

        report.state = EngineState.RUNNING
        executor = ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix=WORKER_THREAD_PREFIX)
        try:
            workers = [
                executor.submit(self._worker, runner, jobs, results, cancel_event, retries)
                for _ in range(worker_count)
            ]
            report.state = EngineState.DRAINING
            self._drain(report, results, workers, len(configs), cancel_event, batch_metrics)
        finally:
            executor.shutdown(wait=True)

        # Jobs that finished while the aggregator was no longer waiting. After a
        # cancel they are counted but their events are not returned.
        late = cancel_event.is_set()
        while True:
            try:
                self._accept(report, results.get_nowait(), batch_metrics, collect_events=not late)
            except queue.Empty:
                break
        for worker in workers:
            exc = worker.exception()
            if exc is not None:
                logger.error("Worker terminated unexpectedly: %r", exc)

        report.cancelled = cancel_event.is_set()
        report.not_started = len(configs) - len(report.results)
        report.state = EngineState.DONE
        self._log_summary(report, batch_metrics, time.time() - started)
        return report

    def _worker(
        self,
        runner: JobRunner,
        jobs: "queue.Queue[Job]",
        results: "queue.Queue[JobResult]",
        cancel_event: threading.Event,
        max_retries: int,
    ) -> None:
        while not cancel_event.is_set():
            try:
                job = jobs.get_nowait()
            except queue.Empty:
                return
            logger.info("Starting extraction for site: %s", job.config.url_to_visit)
            result = runner.run(job, cancel_event, max_retries)
            results.put(result)
            logger.info(
                "Finished extraction for site: %s (%d events)", job.config.url_to_visit, len(result.events)
            )

    def _drain(
        self,
        report: BatchReport,
        results: "queue.Queue[JobResult]",
        workers: List[Future],
        expected: int,
        cancel_event: threading.Event,
        batch_metrics: MetricsCollector,
    ) -> None:
        received = 0
        while received < expected:
            if cancel_event.is_set():
                logger.warning("Cancellation requested, stopping scrape batch at %d/%d results", received, expected)
                return
            try:
                result = results.get(timeout=self._poll_interval)
            except queue.Empty:
                # done() before empty(): a worker publishes before it returns.
                if all(w.done() for w in workers) and results.empty():
                    logger.error("All workers exited after %d/%d results", received, expected)
                    return
                continue
            self._accept(report, result, batch_metrics)
            received += 1

    def _accept(
        self,
        report: BatchReport,
        result: JobResult,
        batch_metrics: MetricsCollector,
        collect_events: bool = True,
    ) -> None:
        report.results.append(result)
        batch_metrics.record_result(result)
        if self._metrics is not None:
            self._metrics.record_result(result)

        if result.success and collect_events:
            report.events.extend(result.events)
        elif result.success:
            report.discarded_events += len(result.events)
            logger.warning(
                "Job %d (%s) finished after cancellation; discarding %d events",
                result.job_index,
                result.url,
                len(result.events),
            )
        elif result.cancelled:
            logger.warning("Job %d (%s) cancelled: %s", result.job_index, result.url, result.error)
        elif isinstance(result.error, RetriesExhaustedError):
            logger.error(
                "Job %d (%s) failed after %d attempts: %s",
                result.job_index,
                result.url,
                result.error.attempts,
                result.error.last_error,
            )
        else:
            logger.error(
                "Error processing job %d (%s): %s: %s",
                result.job_index,
                result.url,
                type(result.error).__name__,
                result.error,
            )

    @staticmethod
    def _log_summary(report: BatchReport, batch_metrics: MetricsCollector, elapsed: float) -> None:
        snapshot = batch_metrics.snapshot()
        log = {
            "timestamp": snapshot.timestamp,
            "state": report.state.value,
            "cancelled": report.cancelled,
            "jobs": snapshot.total_jobs,
            "succeeded": snapshot.success_count,
            "failed": snapshot.failed_count,
            "cancelled_jobs": snapshot.cancelled_count,
            "not_started": report.not_started,
            "events": len(report.events),
            "discarded_events": report.discarded_events,
            "avg_latency_ms": snapshot.avg_latency_ms,
            "elapsed_secs": round(elapsed, 3),
        }
        logger.info(json.dumps(log, ensure_ascii=False))
