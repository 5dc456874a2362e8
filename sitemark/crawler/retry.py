"""Bounded retry with exponential backoff and error classification."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, TypeVar

from .constants import (
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_MULTIPLIER,
    DEFAULT_RETRY_INITIAL_DELAY_SECONDS,
    DEFAULT_RETRY_MAX_DELAY_SECONDS,
)
from .errors import Cancelled, RenderFailure

if TYPE_CHECKING:
    from .config import CrawlConfig


LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_MESSAGE_PATTERNS = (
    "timeout",
    "connection",
    "network",
    "temporary",
    "temporarily unavailable",
)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Attempt budget and backoff curve for one retried operation."""

    max_retries: int = DEFAULT_RETRIES
    initial_delay: float = DEFAULT_RETRY_INITIAL_DELAY_SECONDS
    max_delay: float = DEFAULT_RETRY_MAX_DELAY_SECONDS
    backoff_multiplier: float = DEFAULT_RETRY_BACKOFF_MULTIPLIER

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")
        if self.max_delay < 0:
            raise ValueError("max_delay must be >= 0")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")

    @classmethod
    def from_config(cls, config: "CrawlConfig") -> "RetryPolicy":
        return cls(
            max_retries=config.retries,
            initial_delay=config.retry_initial_delay_seconds,
            max_delay=config.retry_max_delay_seconds,
            backoff_multiplier=config.retry_backoff_multiplier,
        )

    def delays(self) -> list[float]:
        """Sleep durations between consecutive attempts."""

        out: list[float] = []
        delay = self.initial_delay
        for _ in range(self.max_retries):
            out.append(delay)
            delay = min(delay * self.backoff_multiplier, self.max_delay)
        return out


def is_retryable(exc: BaseException) -> bool:
    """Classify an error as transient (retry) or permanent (give up)."""

    if isinstance(exc, Cancelled):
        return False
    if isinstance(exc, RenderFailure):
        return exc.retryable
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True

    message = str(exc).lower()
    return any(pattern in message for pattern in RETRYABLE_MESSAGE_PATTERNS)


def retry(
    operation: Callable[[], T],
    policy: RetryPolicy | None = None,
    cancel_event: threading.Event | None = None,
    *,
    classify: Callable[[BaseException], bool] = is_retryable,
    on_retry: Callable[[int, BaseException, float], None] | None = None,
) -> T:
    """Run `operation`, retrying transient failures with exponential backoff.

    Permanent errors are raised at once, without waiting out the remaining
    attempts. After the final attempt the last error is raised. Backoff
    sleeps wake up early and raise `Cancelled` when `cancel_event` fires.
    `on_retry(attempt, exc, delay)` is called before each backoff sleep.
    """

    policy = policy or RetryPolicy()
    event = cancel_event or threading.Event()
    delay = policy.initial_delay
    total_attempts = policy.max_retries + 1

    for attempt in range(1, total_attempts + 1):
        if event.is_set():
            raise Cancelled("Operation cancelled before attempt")

        try:
            return operation()
        except Exception as exc:
            if not classify(exc):
                raise
            if attempt == total_attempts:
                raise

            if on_retry is not None:
                on_retry(attempt, exc, delay)
            LOGGER.debug(
                "Attempt %d/%d failed (%s); retrying in %.2fs",
                attempt,
                total_attempts,
                exc,
                delay,
            )

        if event.wait(delay):
            raise Cancelled("Retry backoff cancelled")
        delay = min(delay * policy.backoff_multiplier, policy.max_delay)

    raise AssertionError("unreachable")


__all__ = [
    "RETRYABLE_MESSAGE_PATTERNS",
    "RetryPolicy",
    "is_retryable",
    "retry",
]
