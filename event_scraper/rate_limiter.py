from __future__ import annotations

import threading
import time
from typing import Optional


class RateLimiter:
    """Thread-safe rate limiter based on queries per second (QPS).

    Each acquire() reserves the next free start slot under the lock and then
    waits for it outside the lock, so concurrent callers are spaced by
    1/qps seconds. The wait can be interrupted through a cancel event."""

    def __init__(self, qps: float) -> None:
        self._interval = 1.0 / qps if qps > 0 else 0.0
        self._lock = threading.Lock()
        self._next_allowed = 0.0

    @property
    def enabled(self) -> bool:
        return self._interval > 0

    def acquire(self, cancel_event: Optional[threading.Event] = None) -> bool:
        """Block until the next start is permitted.

        Returns False if cancel_event was set before the slot came up."""
        if self._interval <= 0:
            return True
        with self._lock:
            now = time.monotonic()
            slot = max(self._next_allowed, now)
            self._next_allowed = slot + self._interval
        delay = slot - time.monotonic()
        if delay <= 0:
            return True
        if cancel_event is None:
            time.sleep(delay)
            return True
        return not cancel_event.wait(delay)
