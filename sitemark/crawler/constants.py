"""Default values shared by config, CLI, and pipeline components."""

from __future__ import annotations

from .types import FetchBackend

DEFAULT_MAX_DEPTH = 2
DEFAULT_MAX_PAGES = 10
DEFAULT_CONCURRENCY = 5

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_RATE_LIMIT_RPS = 2.0
DEFAULT_DELAY_SECONDS = 0.5

DEFAULT_RETRIES = 3
DEFAULT_RETRY_INITIAL_DELAY_SECONDS = 1.0
DEFAULT_RETRY_MAX_DELAY_SECONDS = 10.0
DEFAULT_RETRY_BACKOFF_MULTIPLIER = 2.0

DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60.0

DEFAULT_FETCH_BACKEND = FetchBackend.SELENIUM
DEFAULT_HEADLESS = True
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_HTTP_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# Lazy-loaded pages get time to hydrate, then one scroll round-trip.
DEFAULT_SETTLE_SECONDS = 2.0
DEFAULT_SCROLL_PAUSE_SECONDS = 1.0

DEFAULT_POLL_INTERVAL_SECONDS = 0.2

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
