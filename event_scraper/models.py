from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import CancellationError

# Accepted spellings per field. The first entry is the snake_case name, the
# rest are the keys used by existing JSON site files (including the
# historical "Anchestor" misspelling).
_CONFIG_KEYS: Dict[str, Tuple[str, ...]] = {
    "url_to_visit": ("url_to_visit", "UrlToVisit", "urlToVisit"),
    "event_type": ("event_type", "EventType", "eventType"),
    "ancestor_selector": ("ancestor_selector", "AncestorSelector", "AnchestorSelector", "ancestorSelector"),
    "title_selector": ("title_selector", "TitleSelector", "titleSelector"),
    "date_selector": ("date_selector", "DateSelector", "dateSelector"),
    "location_selector": ("location_selector", "LocationSelector", "locationSelector"),
    "link_selector": ("link_selector", "LinkSelector", "linkSelector"),
}


@dataclass(frozen=True)
class SiteScrapeConfig:
    url_to_visit: str
    event_type: str
    ancestor_selector: str
    title_selector: str = ""
    date_selector: str = ""
    location_selector: str = ""
    link_selector: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SiteScrapeConfig":
        """Build a config from a JSON object, accepting snake_case or the legacy key names."""
        values: Dict[str, str] = {}
        for name, keys in _CONFIG_KEYS.items():
            for key in keys:
                if key in raw and raw[key] is not None:
                    values[name] = str(raw[key]).strip()
                    break
        missing = [n for n in ("url_to_visit", "event_type", "ancestor_selector") if n not in values]
        if missing:
            raise ValueError(f"site config is missing required fields: {', '.join(missing)}")
        return cls(**values)


@dataclass(frozen=True)
class EventRecord:
    title: str
    date: str
    location: str
    link: str
    event_type: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "date": self.date,
            "location": self.location,
            "link": self.link,
            "eventType": self.event_type,
        }


@dataclass(frozen=True)
class Job:
    index: int
    config: SiteScrapeConfig


@dataclass(frozen=True)
class JobResult:
    job_index: int
    url: str
    event_type: str
    events: Tuple[EventRecord, ...] = ()
    error: Optional[BaseException] = None
    latency_ms: int = 0

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, CancellationError)


@dataclass(frozen=True)
class MetricsSnapshot:
    window_secs: Optional[int]
    total_jobs: int
    success_count: int
    failed_count: int
    cancelled_count: int
    event_count: int
    avg_latency_ms: float
    timestamp: float


class EngineState(str, Enum):
    """Lifecycle of one engine invocation."""

    IDLE = "idle"
    DISPATCHING = "dispatching"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


@dataclass
class BatchReport:
    events: List[EventRecord] = field(default_factory=list)
    results: List[JobResult] = field(default_factory=list)
    state: EngineState = EngineState.IDLE
    cancelled: bool = False
    not_started: int = 0
    discarded_events: int = 0

    @property
    def failed(self) -> List[JobResult]:
        return [r for r in self.results if not r.success and not r.cancelled]
