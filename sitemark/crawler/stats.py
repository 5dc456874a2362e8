"""Thread-safe crawl statistics aggregation utilities."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timezone
import threading
from typing import Any, Mapping

from .types import CrawlStage, CrawlStats, ErrorRecord


class StatsCollector:
    """Collect and summarize crawl runtime statistics.

    The collector is thread-safe and shared by the dispatch loop and every
    crawl worker.
    """

    def __init__(self, base: CrawlStats | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or CrawlStats()

        self._frontier_snapshot: dict[str, int] = {}
        self._error_stage_counts: dict[str, int] = defaultdict(int)
        self._error_type_counts: dict[str, int] = defaultdict(int)
        self._render_elapsed_ms_total = 0
        self._render_elapsed_samples = 0
        self._markdown_chars_total = 0

    def reset(self) -> None:
        """Drop every counter and restart the clock for a new crawl."""

        with self._lock:
            self._core = CrawlStats()
            self._frontier_snapshot = {}
            self._error_stage_counts = defaultdict(int)
            self._error_type_counts = defaultdict(int)
            self._render_elapsed_ms_total = 0
            self._render_elapsed_samples = 0
            self._markdown_chars_total = 0

    def record_enqueue(self, enqueued: bool) -> None:
        """Record one frontier `add` outcome."""

        with self._lock:
            if enqueued:
                self._core.frontier_enqueued += 1
            else:
                self._core.frontier_skipped_seen += 1

    def record_frontier_snapshot(self, snapshot: Mapping[str, int]) -> None:
        """Attach latest frontier snapshot for diagnostics."""

        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def record_dispatch(self) -> None:
        with self._lock:
            self._core.dispatched += 1

    def record_render(self, elapsed_ms: int | None = None) -> None:
        """Record one successful render."""

        with self._lock:
            self._core.rendered_ok += 1
            if elapsed_ms is not None:
                self._render_elapsed_ms_total += int(elapsed_ms)
                self._render_elapsed_samples += 1

    def record_retry(self) -> None:
        with self._lock:
            self._core.render_retries += 1

    def record_cache_hit(self) -> None:
        with self._lock:
            self._core.cache_hits += 1

    def record_error(self, record: ErrorRecord) -> None:
        """Count one dropped page under its stage and error type."""

        with self._lock:
            if record.stage == CrawlStage.RENDER:
                self._core.render_error += 1
            elif record.stage == CrawlStage.EXTRACT:
                self._core.extract_error += 1
            elif record.stage == CrawlStage.CONVERT:
                self._core.convert_error += 1

            self._error_stage_counts[record.stage.value] += 1
            self._error_type_counts[record.error_type or "Unknown"] += 1

    def record_page(self, recorded: bool, markdown_chars: int = 0) -> None:
        """Record whether a finished page made it into the result list."""

        with self._lock:
            if recorded:
                self._core.pages_recorded += 1
                self._markdown_chars_total += max(0, markdown_chars)
            else:
                self._core.pages_discarded += 1

    def record_links(self, found: int, enqueued: int) -> None:
        with self._lock:
            self._core.links_found += max(0, found)
            self._core.links_enqueued += max(0, enqueued)

    def finish(self) -> None:
        """Mark crawl as finished."""

        with self._lock:
            self._core.finish()

    def core(self) -> CrawlStats:
        """Return a copy of the core `CrawlStats` record."""

        with self._lock:
            return replace(self._core)

    def duration_seconds(self) -> float:
        with self._lock:
            return self._duration_seconds_locked()

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            core = self._core.to_json()
            duration_seconds = self._duration_seconds_locked()

            render_elapsed_avg = (
                self._render_elapsed_ms_total / self._render_elapsed_samples
                if self._render_elapsed_samples > 0
                else 0.0
            )

            return {
                **core,
                "duration_seconds": duration_seconds,
                "throughput": {
                    "dispatched_per_second": (
                        self._core.dispatched / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                    "pages_per_second": (
                        self._core.pages_recorded / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                },
                "frontier": dict(self._frontier_snapshot),
                "render": {
                    "elapsed_ms_total": self._render_elapsed_ms_total,
                    "elapsed_ms_samples": self._render_elapsed_samples,
                    "elapsed_ms_avg": render_elapsed_avg,
                },
                "errors": {
                    "by_stage": dict(self._error_stage_counts),
                    "by_type": dict(self._error_type_counts),
                },
                "markdown_chars_total": self._markdown_chars_total,
            }

    def _duration_seconds_locked(self) -> float:
        start = _parse_iso_utc(self._core.started_at)
        end = (
            _parse_iso_utc(self._core.finished_at)
            if self._core.finished_at
            else datetime.now(timezone.utc)
        )
        return max(0.0, (end - start).total_seconds())


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
