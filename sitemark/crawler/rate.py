"""Shared request pacing: a token bucket plus a fixed per-request delay."""

from __future__ import annotations

import threading
import time

from .errors import Cancelled


class TokenBucket:
    """Token bucket whose capacity and refill rate default to `rate`.

    The bucket starts full, so the first `capacity` acquisitions pass
    immediately and later ones are spaced `1 / rate` seconds apart.
    """

    def __init__(self, rate: float, capacity: float | None = None) -> None:
        if rate <= 0:
            raise ValueError("rate must be > 0")
        self.rate = float(rate)
        self.capacity = float(capacity) if capacity is not None else max(1.0, self.rate)
        if self.capacity < 1:
            raise ValueError("capacity must be >= 1")

        self._lock = threading.Lock()
        self._tokens = self.capacity
        self._updated_at = time.monotonic()

    def try_acquire(self) -> float:
        """Take one token if available.

        Returns 0.0 on success, otherwise the seconds until a token is due.
        """

        with self._lock:
            now = time.monotonic()
            elapsed = max(0.0, now - self._updated_at)
            self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
            self._updated_at = now

            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return 0.0
            return (1.0 - self._tokens) / self.rate

    def wait(self, cancel_event: threading.Event | None = None) -> None:
        """Block until a token is taken; raise `Cancelled` if the event fires."""

        event = cancel_event or threading.Event()
        while True:
            if event.is_set():
                raise Cancelled("Rate limiter wait cancelled")
            sleep_for = self.try_acquire()
            if sleep_for <= 0:
                return
            if event.wait(sleep_for):
                raise Cancelled("Rate limiter wait cancelled")


class RateController:
    """Applies the token bucket (when enabled) and then the fixed delay."""

    def __init__(self, rate_limit_rps: float = 0.0, delay_seconds: float = 0.0) -> None:
        if rate_limit_rps < 0:
            raise ValueError("rate_limit_rps must be >= 0")
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")

        self.rate_limit_rps = rate_limit_rps
        self.delay_seconds = delay_seconds
        self._bucket = TokenBucket(rate_limit_rps) if rate_limit_rps > 0 else None

    @property
    def enabled(self) -> bool:
        return self._bucket is not None or self.delay_seconds > 0

    def wait(self, cancel_event: threading.Event | None = None) -> None:
        """Pace one request. Raises `Cancelled` when interrupted."""

        if self._bucket is not None:
            self._bucket.wait(cancel_event)

        if self.delay_seconds > 0:
            event = cancel_event or threading.Event()
            if event.wait(self.delay_seconds):
                raise Cancelled("Inter-request delay cancelled")


__all__ = ["RateController", "TokenBucket"]
