"""Shared fixtures for the scraper tests."""

import threading
import time
from urllib.parse import urlsplit

from event_scraper.errors import TransportError
from event_scraper.models import SiteScrapeConfig


def make_config(index: int, event_type: str = "concert", **overrides) -> SiteScrapeConfig:
    """Build a SiteScrapeConfig pointing at a unique fake site."""
    values = dict(
        url_to_visit=f"https://site{index}.example.com/events/",
        event_type=event_type,
        ancestor_selector="div.event",
        title_selector="h2.title",
        date_selector="span.date",
        location_selector="span.place",
        link_selector="a.more",
    )
    values.update(overrides)
    return SiteScrapeConfig(**values)


def make_page(prefix: str, count: int = 2) -> str:
    """Render a listing page with `count` event cards."""
    cards = "".join(
        f"""
        <div class="event">
          <h2 class="title"> {prefix} event {i} </h2>
          <span class="date">2024-05-{i + 1:02d}</span>
          <span class="place">Hall {i}</span>
          <a class="more" href="/events/{prefix}-{i}">more</a>
        </div>
        """
        for i in range(count)
    )
    return f"<html><body><main>{cards}</main></body></html>"


class StubRenderClient:
    """In-process stand-in for RenderClient.

    Returns a generated page per URL unless the URL is listed in `failing`,
    and keeps track of call counts and peak concurrency."""

    def __init__(self, failing=(), delay: float = 0.0, events_per_page: int = 2) -> None:
        self._failing = set(failing)
        self._delay = delay
        self._events_per_page = events_per_page
        self._lock = threading.Lock()
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    def fetch_html(self, url: str, selector: str, cancel_event=None) -> str:
        with self._lock:
            self.calls.append(url)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                time.sleep(self._delay)
            if url in self._failing:
                raise TransportError(f"connection refused for {url}")
            return make_page(urlsplit(url).hostname.split(".")[0], self._events_per_page)
        finally:
            with self._lock:
                self.in_flight -= 1
