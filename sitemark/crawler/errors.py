"""Exception taxonomy for crawl input, per-page, and crawl-wide failures."""

from __future__ import annotations

from .types import RenderErrorKind


class CrawlError(Exception):
    """Base class for crawler errors."""


class InvalidURL(CrawlError, ValueError):
    """Malformed URL or a scheme other than http/https."""


class InvalidStartURL(InvalidURL):
    """The seed URL failed normalization; the crawl never starts."""


class RenderFailure(CrawlError):
    """Rendering one page failed.

    `kind` tells the retry executor whether another attempt can help.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: RenderErrorKind = RenderErrorKind.PERMANENT,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.url = url

    @property
    def retryable(self) -> bool:
        return self.kind in {RenderErrorKind.TIMEOUT, RenderErrorKind.NETWORK}


class ExtractionFailure(CrawlError):
    """No usable content block could be selected from a page."""


class ConversionFailure(CrawlError):
    """HTML to Markdown conversion failed for a page."""


class Cancelled(CrawlError):
    """The crawl-level cancellation signal fired during a wait."""


__all__ = [
    "Cancelled",
    "ConversionFailure",
    "CrawlError",
    "ExtractionFailure",
    "InvalidStartURL",
    "InvalidURL",
    "RenderFailure",
]
