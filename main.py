from __future__ import annotations

import argparse
import logging
import signal
import threading
from typing import List, Optional

from event_scraper.backoff import BackoffStrategy
from event_scraper.config import load_site_configs
from event_scraper.engine import ScrapeEngine
from event_scraper.metrics import MetricsCollector
from event_scraper.rate_limiter import RateLimiter
from event_scraper.render_client import DEFAULT_RENDERER_URL, DEFAULT_TIMEOUT, RenderClient
from event_scraper.retry import DEFAULT_MAX_ATTEMPTS
from event_scraper.storage import JsonlEventSink

DEFAULT_SITES_PATH = "sites.json"
DEFAULT_RESULTS_PATH = "events.jsonl"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def run_batch(
    sites_path: str,
    results_path: str,
    renderer_url: str,
    timeout: float,
    max_workers: int,
    max_retries: int,
    max_concurrent: int,
    qps: float,
    backoff_base: float,
) -> int:
    configs = load_site_configs(sites_path)

    cancel_event = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: cancel_event.set())

    metrics = MetricsCollector()
    try:
        with RenderClient(endpoint=renderer_url, timeout=timeout) as client:
            engine = ScrapeEngine(
                client,
                backoff=BackoffStrategy(base_seconds=backoff_base),
                rate_limiter=RateLimiter(qps=qps),
                max_concurrent_fetches=max_concurrent or None,
                metrics=metrics,
            )
            report = engine.run_batch(
                configs,
                max_workers=max_workers,
                max_retries=max_retries,
                cancel_event=cancel_event,
            )
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    with JsonlEventSink(results_path) as sink:
        sink.write_many(report.events)

    snap = metrics.snapshot()
    print(
        f"\nDONE: events={len(report.events)} success={snap.success_count} "
        f"fail={snap.failed_count} cancelled={snap.cancelled_count} "
        f"not_started={report.not_started} total={len(configs)}"
    )
    return 0 if not report.failed else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Scrape event listings from JavaScript-rendered sites")
    parser.add_argument("--sites", default=DEFAULT_SITES_PATH, help="Path to the JSON site config file")
    parser.add_argument("--output", default=DEFAULT_RESULTS_PATH, help="Output JSONL file path")

    parser.add_argument("--renderer-url", default=DEFAULT_RENDERER_URL, help="Render service endpoint")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Per-request render timeout (seconds)")
    parser.add_argument("--max-workers", type=int, default=0, help="Worker threads (0 = one per site)")
    parser.add_argument("--max-retries", type=int, default=DEFAULT_MAX_ATTEMPTS, help="Fetch attempts per site")
    parser.add_argument("--max-concurrent", type=int, default=0, help="Ceiling on in-flight renders (0 = worker count)")
    parser.add_argument("--qps", type=float, default=0.0, help="Max render starts per second (0 = unlimited)")
    parser.add_argument("--backoff-base", type=float, default=1.0, help="Linear retry backoff step (seconds)")

    parser.add_argument("--log-level", default="INFO", help="Logging level")

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    return run_batch(
        sites_path=args.sites,
        results_path=args.output,
        renderer_url=args.renderer_url,
        timeout=args.timeout,
        max_workers=args.max_workers,
        max_retries=args.max_retries,
        max_concurrent=args.max_concurrent,
        qps=args.qps,
        backoff_base=args.backoff_base,
    )


if __name__ == "__main__":
    raise SystemExit(main())
