"""Thread-safe FIFO frontier with a visited set keyed on canonical URLs."""

from __future__ import annotations

import threading
from collections import deque

from .errors import InvalidURL
from .types import FrontierItem
from .url import normalize_url


class Frontier:
    """Frontier queue shared by the dispatch loop and crawl workers.

    - `add` deduplicates against both pending and visited URLs.
    - Depth is fixed by the first `add`; later rediscoveries are rejected.
    - URLs are marked visited at dispatch time, before a worker sees them.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: deque[FrontierItem] = deque()
        self._pending_urls: set[str] = set()
        self._visited: set[str] = set()

        self._enqueued_count = 0
        self._dequeued_count = 0
        self._skipped_seen_count = 0
        self._skipped_invalid_count = 0

    def add(self, url: str, depth: int = 0, referrer: str | None = None) -> bool:
        """Enqueue `url` unless it is invalid, visited, or already pending."""

        try:
            normalized = normalize_url(url)
        except InvalidURL:
            with self._lock:
                self._skipped_invalid_count += 1
            return False

        with self._lock:
            if normalized in self._visited or normalized in self._pending_urls:
                self._skipped_seen_count += 1
                return False

            self._pending.append(FrontierItem(url=normalized, depth=depth, referrer=referrer))
            self._pending_urls.add(normalized)
            self._enqueued_count += 1
        return True

    def pop(self) -> FrontierItem | None:
        """Remove and return the head item, or None when empty."""

        with self._lock:
            return self._pop_locked()

    def claim(self) -> FrontierItem | None:
        """Pop the next unvisited item and mark it visited in one step.

        The dispatch loop uses this so no concurrent `add` can slip the same
        URL back in between the pop and the visited mark.
        """

        with self._lock:
            while True:
                item = self._pop_locked()
                if item is None:
                    return None
                if item.url in self._visited:
                    continue
                self._visited.add(item.url)
                return item

    def mark_visited(self, url: str) -> bool:
        """Mark `url` visited. Returns True only when newly marked."""

        try:
            normalized = normalize_url(url)
        except InvalidURL:
            return False

        with self._lock:
            if normalized in self._visited:
                return False
            self._visited.add(normalized)
            return True

    def is_visited(self, url: str) -> bool:
        try:
            normalized = normalize_url(url)
        except InvalidURL:
            return False

        with self._lock:
            return normalized in self._visited

    def size(self) -> int:
        """Number of pending URLs."""

        with self._lock:
            return len(self._pending)

    def visited_count(self) -> int:
        with self._lock:
            return len(self._visited)

    def empty(self) -> bool:
        with self._lock:
            return not self._pending

    def snapshot(self) -> dict[str, int]:
        """Return frontier counters for logs/stats reporting."""

        with self._lock:
            return {
                "queue_size": len(self._pending),
                "visited": len(self._visited),
                "enqueued": self._enqueued_count,
                "dequeued": self._dequeued_count,
                "skipped_seen": self._skipped_seen_count,
                "skipped_invalid": self._skipped_invalid_count,
            }

    def _pop_locked(self) -> FrontierItem | None:
        if not self._pending:
            return None
        item = self._pending.popleft()
        self._pending_urls.discard(item.url)
        self._dequeued_count += 1
        return item


__all__ = ["Frontier"]
