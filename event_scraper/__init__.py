"""Event scraper package.

Renders event listing pages through an external renderer, extracts event
records with CSS selectors, and runs many sites concurrently under a shared
concurrency and rate budget.

Key modules:
    models          -- SiteScrapeConfig, EventRecord, Job, JobResult dataclasses
    errors          -- ScrapeError hierarchy
    render_client   -- RenderClient for the headless-browser render service
    retry           -- fetch_with_retry with cancellable linear backoff
    backoff         -- BackoffStrategy for retry delays
    rate_limiter    -- RateLimiter for QPS throttling
    admission       -- AdmissionGate capping in-flight fetches
    extractor       -- extract_events selector-driven field extraction
    runner          -- JobRunner processing a single job
    engine          -- ScrapeEngine worker pool and aggregation
    metrics         -- MetricsCollector for per-job outcomes
    config          -- load_site_configs from JSON
    storage         -- JsonlEventSink for persisting events
"""
from __future__ import annotations

from .engine import EngineState, ScrapeEngine
from .models import BatchReport, EventRecord, JobResult, SiteScrapeConfig
from .render_client import RenderClient

__all__ = [
    "BatchReport",
    "EngineState",
    "EventRecord",
    "JobResult",
    "RenderClient",
    "ScrapeEngine",
    "SiteScrapeConfig",
]
