from __future__ import annotations

import logging
from typing import List, Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, ParserRejectedMarkup, Tag
from soupsieve import SelectorSyntaxError

from .errors import DocumentParseError, FieldExtractionError
from .models import EventRecord, SiteScrapeConfig

logger = logging.getLogger(__name__)

HTML_PARSER = "lxml"


def parse_document(html: Union[str, bytes]) -> BeautifulSoup:
    """Parse rendered HTML into a queryable tree.

    Raises DocumentParseError if the payload is not markup at all."""
    if not isinstance(html, (str, bytes)):
        raise DocumentParseError(f"expected HTML text, got {type(html).__name__}")
    try:
        doc = BeautifulSoup(html, HTML_PARSER)
    except (ParserRejectedMarkup, ValueError, TypeError) as exc:
        raise DocumentParseError(f"error parsing HTML: {exc}") from exc
    if doc.find() is None:
        raise DocumentParseError("document contains no elements")
    return doc


def extract_events(html: Union[str, bytes], config: SiteScrapeConfig) -> List[EventRecord]:
    """Extract one EventRecord per element matching config.ancestor_selector.

    Elements are processed in document order. An element whose fields cannot
    be extracted is logged and skipped without affecting the others."""
    doc = parse_document(html)
    try:
        ancestors = doc.select(config.ancestor_selector)
    except SelectorSyntaxError as exc:
        raise DocumentParseError(f"invalid ancestor selector {config.ancestor_selector!r}: {exc}") from exc

    events: List[EventRecord] = []
    for position, element in enumerate(ancestors):
        try:
            events.append(extract_event(element, config))
        except FieldExtractionError as exc:
            logger.warning(
                "Skipping element %d on %s: %s", position, config.url_to_visit, exc
            )
    return events


def extract_event(element: Tag, config: SiteScrapeConfig) -> EventRecord:
    return EventRecord(
        title=_text_of(element, config.title_selector),
        date=_text_of(element, config.date_selector),
        location=_text_of(element, config.location_selector),
        link=_link_of(element, config),
        event_type=config.event_type,
    )


def resolve_link(base_url: str, href: Optional[str]) -> str:
    """Resolve href against base_url, falling back to base_url when href is missing."""
    if href is None or not href.strip():
        return base_url
    try:
        return urljoin(base_url, href.strip())
    except ValueError as exc:
        raise FieldExtractionError(f"error parsing link URL {href!r}: {exc}") from exc


def _select_first(element: Tag, selector: str) -> Optional[Tag]:
    if not selector:
        return None
    try:
        return element.select_one(selector)
    except SelectorSyntaxError as exc:
        raise FieldExtractionError(f"invalid selector {selector!r}: {exc}") from exc


def _text_of(element: Tag, selector: str) -> str:
    match = _select_first(element, selector)
    if match is None:
        return ""
    return match.get_text().strip()


def _link_of(element: Tag, config: SiteScrapeConfig) -> str:
    href = None
    match = _select_first(element, config.link_selector)
    if match is not None:
        href = match.get("href")
    if href is None:
        href = element.get("href")
    if isinstance(href, list):
        href = " ".join(href)
    return resolve_link(config.url_to_visit, href)
