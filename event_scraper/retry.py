from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .backoff import BackoffStrategy
from .errors import CancellationError, RenderError, RetriesExhaustedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


def fetch_with_retry(
    max_attempts: int,
    fetch_fn: Callable[[], str],
    cancel_event: Optional[threading.Event] = None,
    backoff: Optional[BackoffStrategy] = None,
    label: str = "",
) -> str:
    """Call fetch_fn until it succeeds or max_attempts is reached.

    Only RenderError subclasses are retried. The backoff wait is done on
    cancel_event, so setting it aborts the wait and raises CancellationError
    straight away. Exhausting all attempts raises RetriesExhaustedError."""
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    backoff = backoff or BackoffStrategy()
    cancel_event = cancel_event or threading.Event()

    attempt = 0
    while True:
        attempt += 1
        if cancel_event.is_set():
            raise CancellationError(f"cancelled before attempt {attempt}/{max_attempts}")
        try:
            return fetch_fn()
        except RenderError as exc:
            logger.warning(
                "Error fetching HTML %s(attempt %d/%d): %s",
                f"for {label} " if label else "",
                attempt,
                max_attempts,
                exc,
            )
            if attempt >= max_attempts:
                raise RetriesExhaustedError(max_attempts, exc) from exc
        if cancel_event.wait(backoff.get_sleep(attempt)):
            raise CancellationError(f"cancelled during backoff after attempt {attempt}/{max_attempts}")
