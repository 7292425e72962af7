from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Deque, Dict, List, Optional

from .models import JobResult, MetricsSnapshot


class MetricsCollector:
    """Thread-safe collector for per-job scraping outcomes.

    Records JobResult events and produces aggregated MetricsSnapshot
    objects, optionally restricted to a sliding time window."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._events: Deque[tuple[float, JobResult]] = deque(maxlen=10000)

    def record_result(self, result: JobResult) -> None:
        """Record a job result with the current timestamp."""
        with self._lock:
            self._events.append((time.time(), result))

    def snapshot(self, window_secs: Optional[int] = None) -> MetricsSnapshot:
        """Return aggregated metrics, for the last window_secs seconds if given."""
        now = time.time()
        with self._lock:
            if window_secs is None:
                results: List[JobResult] = [e for _, e in self._events]
            else:
                cutoff = now - window_secs
                results = [e for ts, e in self._events if ts >= cutoff]
        total = len(results)
        success_count = sum(1 for r in results if r.success)
        cancelled_count = sum(1 for r in results if r.cancelled)
        failed_count = total - success_count - cancelled_count
        event_count = sum(len(r.events) for r in results)
        avg_latency_ms = (sum(r.latency_ms for r in results) / total) if total else 0.0

        return MetricsSnapshot(
            window_secs=window_secs,
            total_jobs=total,
            success_count=success_count,
            failed_count=failed_count,
            cancelled_count=cancelled_count,
            event_count=event_count,
            avg_latency_ms=avg_latency_ms,
            timestamp=now,
        )

    def export_json(self) -> List[Dict]:
        """Export all recorded job outcomes as a list of dictionaries."""
        with self._lock:
            return [
                {
                    "timestamp": ts,
                    "job_index": r.job_index,
                    "url": r.url,
                    "event_type": r.event_type,
                    "success": r.success,
                    "cancelled": r.cancelled,
                    "event_count": len(r.events),
                    "error_type": type(r.error).__name__ if r.error is not None else None,
                    "latency_ms": r.latency_ms,
                }
                for ts, r in self._events
            ]
