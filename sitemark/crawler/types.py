"""Core type definitions for the crawler pipeline.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class CrawlStage(str, Enum):
    """Pipeline stage names for error reporting."""

    FRONTIER = "frontier"
    RATE_LIMIT = "rate_limit"
    RENDER = "render"
    EXTRACT = "extract"
    CONVERT = "convert"
    LINKS = "links"


class CrawlState(str, Enum):
    """Lifecycle of a single crawl run."""

    SEEDED = "seeded"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


class FetchBackend(str, Enum):
    """Backend used to render page content."""

    REQUESTS = "requests"
    SELENIUM = "selenium"


class RenderErrorKind(str, Enum):
    """Structured classification carried by render failures."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    PERMANENT = "permanent"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for reports."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True, slots=True)
class FrontierItem:
    """A crawl candidate tracked by the frontier."""

    url: str
    depth: int
    referrer: str | None = None
    discovered_at: str = field(default_factory=utc_now_iso)


@dataclass(frozen=True, slots=True)
class PageResult:
    """One successfully processed page."""

    url: str
    markdown: str
    depth: int

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "markdown": self.markdown,
            "depth": self.depth,
        }


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    """One dropped page and the stage that dropped it."""

    stage: CrawlStage
    url: str
    message: str
    error_type: str | None = None
    depth: int | None = None
    created_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_exception(
        cls,
        *,
        stage: CrawlStage,
        url: str,
        exc: BaseException,
        **kwargs: Any,
    ) -> "ErrorRecord":
        return cls(
            stage=stage,
            url=url,
            message=str(exc),
            error_type=exc.__class__.__name__,
            **kwargs,
        )

    def to_json(self) -> JSONDict:
        return {
            "stage": self.stage.value,
            "url": self.url,
            "message": self.message,
            "error_type": self.error_type,
            "depth": self.depth,
            "created_at": self.created_at,
        }


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for crawl summary reporting."""

    frontier_enqueued: int = 0
    frontier_skipped_seen: int = 0
    dispatched: int = 0

    rendered_ok: int = 0
    render_error: int = 0
    render_retries: int = 0
    extract_error: int = 0
    convert_error: int = 0
    cache_hits: int = 0

    pages_recorded: int = 0
    pages_discarded: int = 0

    links_found: int = 0
    links_enqueued: int = 0

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "frontier_enqueued": self.frontier_enqueued,
            "frontier_skipped_seen": self.frontier_skipped_seen,
            "dispatched": self.dispatched,
            "rendered_ok": self.rendered_ok,
            "render_error": self.render_error,
            "render_retries": self.render_retries,
            "extract_error": self.extract_error,
            "convert_error": self.convert_error,
            "cache_hits": self.cache_hits,
            "pages_recorded": self.pages_recorded,
            "pages_discarded": self.pages_discarded,
            "links_found": self.links_found,
            "links_enqueued": self.links_enqueued,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "CrawlStage",
    "CrawlState",
    "CrawlStats",
    "ErrorRecord",
    "FetchBackend",
    "FrontierItem",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "PageResult",
    "RenderErrorKind",
    "utc_now_iso",
]
