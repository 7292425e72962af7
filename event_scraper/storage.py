from __future__ import annotations

import json
import logging
import queue
import threading
import time
from abc import ABC, abstractmethod
from typing import IO, Iterable, List, Optional

from .models import EventRecord

logger = logging.getLogger(__name__)

_STOP = object()


class EventSink(ABC):
    """Abstract base class for destinations of extracted events."""

    @abstractmethod
    def write(self, event: EventRecord) -> None:
        """Persist a single event."""

    def write_many(self, events: Iterable[EventRecord]) -> None:
        for event in events:
            self.write(event)

    @abstractmethod
    def close(self) -> None:
        """Flush pending writes and release resources."""


class JsonlEventSink(EventSink):
    """Appends events to a JSON Lines file from a dedicated writer thread.

    The file is opened up front, so a bad path fails in the constructor.
    The writer takes every event queued so far and writes them as one
    batch, stamping each line with the time it was written. close() waits
    for the queue to empty and re-raises anything the writer failed on;
    events are never dropped silently."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._file: IO[str] = open(path, "a", encoding="utf-8")
        self._pending: queue.Queue = queue.Queue()
        self._error: Optional[BaseException] = None
        self._closed = False
        self._written = 0
        self._thread = threading.Thread(target=self._drain_to_file, name="jsonl-writer", daemon=True)
        self._thread.start()

    @property
    def written(self) -> int:
        return self._written

    def write(self, event: EventRecord) -> None:
        if self._closed:
            raise ValueError(f"sink for {self._path} is closed")
        if self._error is not None:
            raise self._error
        self._pending.put(event)

    def close(self, timeout: Optional[float] = None) -> None:
        """Wait for queued events to reach the file, then close it.

        Without a timeout this blocks until the writer is done. With one,
        TimeoutError is raised if the writer is still busy when it expires."""
        if not self._closed:
            self._closed = True
            self._pending.put(_STOP)
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise TimeoutError(
                f"writer for {self._path} still busy after {timeout}s "
                f"with {self._pending.qsize()} events queued"
            )
        if self._error is not None:
            raise self._error
        logger.debug("Wrote %d events to %s", self._written, self._path)

    def __enter__(self) -> "JsonlEventSink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _drain_to_file(self) -> None:
        try:
            stopping = False
            while not stopping:
                batch: List[EventRecord] = [self._pending.get()]
                while True:
                    try:
                        batch.append(self._pending.get_nowait())
                    except queue.Empty:
                        break
                if any(item is _STOP for item in batch):
                    stopping = True
                    batch = [item for item in batch if item is not _STOP]
                self._write_batch(batch)
        except Exception as exc:  # noqa: BLE001
            logger.error("Writing events to %s failed: %s", self._path, exc)
            self._error = exc
        finally:
            self._file.close()

    def _write_batch(self, batch: List[EventRecord]) -> None:
        if not batch:
            return
        stamp = time.time()
        lines = [json.dumps({"timestamp": stamp, **event.to_dict()}, ensure_ascii=False) for event in batch]
        self._file.write("\n".join(lines) + "\n")
        self._file.flush()
        self._written += len(batch)
