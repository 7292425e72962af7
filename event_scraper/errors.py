from __future__ import annotations

from typing import Optional


class ScrapeError(Exception):
    """Base class for every error raised while scraping a site."""


class RenderError(ScrapeError):
    """A render request failed in a way worth retrying."""


class TransportError(RenderError):
    """The renderer was unreachable or answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(RenderError):
    """The renderer's response body was not the expected JSON object."""


class EmptyContentError(RenderError):
    """The renderer returned no HTML."""


class RetriesExhaustedError(ScrapeError):
    """Every fetch attempt failed; carries the attempt count and the last cause."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"failed to fetch HTML after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class DocumentParseError(ScrapeError):
    """Rendered HTML could not be parsed into a queryable document."""


class FieldExtractionError(ScrapeError):
    """A single ancestor element could not be turned into an event record."""


class InvalidConfigError(ScrapeError):
    """A site configuration cannot be scraped as given."""


class CancellationError(ScrapeError):
    """The operation was aborted because the caller cancelled the batch."""
