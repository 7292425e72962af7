from __future__ import annotations

from typing import Optional


class BackoffStrategy:
    """Linear backoff for retry delays.

    After the k-th failed attempt the caller waits base * k seconds,
    optionally capped at a configurable maximum."""

    def __init__(self, base_seconds: float = 1.0, max_seconds: Optional[float] = None) -> None:
        if base_seconds < 0:
            raise ValueError("base_seconds must be >= 0")
        self._base = base_seconds
        self._max = max_seconds

    def get_sleep(self, attempt: int) -> float:
        """Return the wait in seconds after the given (1-based) failed attempt."""
        delay = self._base * max(attempt, 1)
        if self._max is not None:
            delay = min(self._max, delay)
        return delay
