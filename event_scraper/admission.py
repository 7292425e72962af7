from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from .errors import CancellationError


class AdmissionGate:
    """Caps how many fetch operations may be in flight at once.

    Works independently of the worker pool size: any number of workers may
    queue here, but at most `limit` hold a slot at the same time. Waiting
    callers re-check the cancel event every `poll_interval` seconds."""

    def __init__(self, limit: int, poll_interval: float = 0.05) -> None:
        self._lock = threading.Lock()
        self._cv = threading.Condition(self._lock)
        self._limit = max(1, int(limit))
        self._active = 0
        self._poll_interval = poll_interval

    def acquire(self, cancel_event: Optional[threading.Event] = None) -> bool:
        """Take a slot, blocking while the gate is full. Returns False if cancelled first."""
        with self._cv:
            while self._active >= self._limit:
                if cancel_event is not None and cancel_event.is_set():
                    return False
                self._cv.wait(timeout=self._poll_interval)
            if cancel_event is not None and cancel_event.is_set():
                return False
            self._active += 1
            return True

    def release(self) -> None:
        with self._cv:
            self._active = max(0, self._active - 1)
            self._cv.notify()

    @contextmanager
    def slot(self, cancel_event: Optional[threading.Event] = None) -> Iterator[None]:
        if not self.acquire(cancel_event):
            raise CancellationError("cancelled while waiting for a fetch slot")
        try:
            yield
        finally:
            self.release()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        return self._active
