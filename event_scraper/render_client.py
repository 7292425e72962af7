from __future__ import annotations

import logging
import threading
from concurrent import futures
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter

from .errors import CancellationError, EmptyContentError, MalformedResponseError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_RENDERER_URL = "http://localhost:3000/scrape"
DEFAULT_TIMEOUT = 30.0


class RenderClient:
    """Client for the headless-browser render service.

    Sends {"url", "selector"} and expects {"html"} back. A single pooled
    requests.Session is shared by every worker thread; nothing about an
    individual call is kept on the instance."""

    def __init__(
        self,
        endpoint: str = DEFAULT_RENDERER_URL,
        timeout: float = DEFAULT_TIMEOUT,
        pool_maxsize: int = 20,
        session: Optional[requests.Session] = None,
        cancel_poll: float = 0.05,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = float(timeout)
        self._cancel_poll = cancel_poll
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=1, pool_maxsize=pool_maxsize)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self._session = session

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def timeout(self) -> float:
        return self._timeout

    def fetch_html(
        self,
        url: str,
        selector: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Ask the renderer for the fully rendered HTML of url.

        With a cancel_event the round trip runs on a short-lived background
        thread and the caller returns as soon as the event is set; the
        abandoned response is closed when it arrives. Raises TransportError,
        MalformedResponseError, EmptyContentError or CancellationError."""
        if cancel_event is None:
            resp = self._post(url, selector)
        else:
            resp = self._post_cancellable(url, selector, cancel_event)

        if not 200 <= resp.status_code < 300:
            detail = _error_detail(resp)
            raise TransportError(
                f"render service returned HTTP {resp.status_code} for {url}: {detail}",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise MalformedResponseError(f"render response for {url} is not JSON") from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("html"), str):
            raise MalformedResponseError(f"render response for {url} has no 'html' string")

        html = payload["html"]
        if not html.strip():
            raise EmptyContentError(f"render service returned empty content for {url}")
        logger.debug("Rendered %s (%d chars)", url, len(html))
        return html

    def _post(self, url: str, selector: str) -> requests.Response:
        try:
            return self._session.post(
                self._endpoint,
                json={"url": url, "selector": selector},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"error making request to render service: {exc}") from exc

    def _post_cancellable(self, url: str, selector: str, cancel_event: threading.Event) -> requests.Response:
        if cancel_event.is_set():
            raise CancellationError(f"cancelled before rendering {url}")

        call: futures.Future = futures.Future()

        def run() -> None:
            if not call.set_running_or_notify_cancel():
                return
            try:
                resp = self._post(url, selector)
            except BaseException as exc:  # noqa: BLE001
                call.set_exception(exc)
            else:
                call.set_result(resp)

        threading.Thread(target=run, name="render-call", daemon=True).start()
        while True:
            done, _ = futures.wait([call], timeout=self._cancel_poll)
            if done:
                return call.result()
            if cancel_event.is_set():
                call.add_done_callback(_close_abandoned)
                logger.info("Abandoned in-flight render of %s after cancellation", url)
                raise CancellationError(f"cancelled while rendering {url}")

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "RenderClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def _error_detail(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or "")[:200]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return str(body)[:200]


def _close_abandoned(call: futures.Future) -> None:
    if call.exception() is None:
        call.result().close()
