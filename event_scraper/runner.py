from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Tuple
from urllib.parse import urlsplit

from .admission import AdmissionGate
from .backoff import BackoffStrategy
from .errors import CancellationError, InvalidConfigError
from .extractor import extract_events
from .models import EventRecord, Job, JobResult, SiteScrapeConfig
from .rate_limiter import RateLimiter
from .retry import DEFAULT_MAX_ATTEMPTS, fetch_with_retry

logger = logging.getLogger(__name__)


class JobRunner:
    """Runs one job end to end: validate, fetch with retry, extract.

    Every render call first takes a slot on the admission gate and then a
    start slot from the rate limiter, so the gate bounds in-flight requests
    and the limiter bounds how fast new ones begin. run() never raises;
    failures come back as a JobResult carrying the error."""

    def __init__(
        self,
        render_client,
        gate: AdmissionGate,
        backoff: Optional[BackoffStrategy] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._render_client = render_client
        self._gate = gate
        self._backoff = backoff or BackoffStrategy()
        self._rate_limiter = rate_limiter

    def run(
        self,
        job: Job,
        cancel_event: threading.Event,
        max_retries: int = DEFAULT_MAX_ATTEMPTS,
    ) -> JobResult:
        start_ms = self._now_ms()
        config = job.config
        try:
            self.validate(config)
            html = fetch_with_retry(
                max_retries,
                lambda: self.fetch(config, cancel_event),
                cancel_event=cancel_event,
                backoff=self._backoff,
                label=config.url_to_visit,
            )
            events: Tuple[EventRecord, ...] = tuple(extract_events(html, config))
        except Exception as exc:  # noqa: BLE001
            return JobResult(
                job_index=job.index,
                url=config.url_to_visit,
                event_type=config.event_type,
                error=exc,
                latency_ms=self._now_ms() - start_ms,
            )
        return JobResult(
            job_index=job.index,
            url=config.url_to_visit,
            event_type=config.event_type,
            events=events,
            latency_ms=self._now_ms() - start_ms,
        )

    def validate(self, config: SiteScrapeConfig) -> None:
        try:
            parts = urlsplit(config.url_to_visit)
        except ValueError as exc:
            raise InvalidConfigError(f"url_to_visit is not a valid URL: {exc}") from exc
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise InvalidConfigError(f"url_to_visit must be an absolute http(s) URL, got {config.url_to_visit!r}")
        if not config.ancestor_selector:
            raise InvalidConfigError("ancestor_selector is required")

    def fetch(self, config: SiteScrapeConfig, cancel_event: threading.Event) -> str:
        with self._gate.slot(cancel_event):
            if self._rate_limiter is not None and not self._rate_limiter.acquire(cancel_event):
                raise CancellationError("cancelled while waiting for the rate limiter")
            return self._render_client.fetch_html(config.url_to_visit, config.ancestor_selector, cancel_event)

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)
