"""In-memory, thread-safe response cache with per-entry expiry."""

from __future__ import annotations

import threading
import time
from typing import Callable

from .constants import DEFAULT_CACHE_TTL_SECONDS


class ResponseCache:
    """Map of string keys to string values that expire after a TTL.

    Expired entries are dropped lazily on access and by `purge_expired`.
    A TTL of 0 stores the entry without expiry.
    """

    def __init__(
        self,
        default_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_ttl_seconds < 0:
            raise ValueError("default_ttl_seconds must be >= 0")

        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[str, float | None]] = {}

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl < 0:
            raise ValueError("ttl_seconds must be >= 0")

        expires_at = self._clock() + ttl if ttl > 0 else None
        with self._lock:
            self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop expired entries now. Returns the number removed."""

        with self._lock:
            now = self._clock()
            expired = [
                key
                for key, (_, expires_at) in self._entries.items()
                if expires_at is not None and now >= expires_at
            ]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None


__all__ = ["ResponseCache"]
