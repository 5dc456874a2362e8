"""Typed crawl configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_CONCURRENCY,
    DEFAULT_DELAY_SECONDS,
    DEFAULT_FETCH_BACKEND,
    DEFAULT_HEADLESS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RATE_LIMIT_RPS,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_MULTIPLIER,
    DEFAULT_RETRY_INITIAL_DELAY_SECONDS,
    DEFAULT_RETRY_MAX_DELAY_SECONDS,
    DEFAULT_SCROLL_PAUSE_SECONDS,
    DEFAULT_SETTLE_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import FetchBackend, JSONDict


def normalize_domain(domain_or_url: str) -> str:
    """Lower-case a bare host or pull the host out of a URL string."""

    raw = domain_or_url.strip().lower()
    if not raw:
        return ""
    if "://" in raw:
        raw = raw.split("://", 1)[1]
    return raw.split("/", 1)[0].strip(".")


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _to_backend(value: Any) -> FetchBackend:
    if isinstance(value, FetchBackend):
        return value
    if isinstance(value, str):
        try:
            return FetchBackend(value.strip().lower())
        except ValueError as exc:
            raise ValueError(f"Invalid backend value: {value!r}") from exc
    raise ValueError(f"Invalid backend value: {value!r}")


def _coerce_domains(values: Iterable[Any] | str | None) -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]

    dedup: dict[str, None] = {}
    for item in values:
        domain = normalize_domain(str(item))
        if domain:
            dedup[domain] = None
    return tuple(dedup)


@dataclass(frozen=True, slots=True)
class CrawlConfig:
    """Immutable crawl parameters shared by the pipeline and its components."""

    max_depth: int = DEFAULT_MAX_DEPTH
    max_pages: int = DEFAULT_MAX_PAGES
    allowed_domains: tuple[str, ...] = ()
    concurrency: int = DEFAULT_CONCURRENCY

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    rate_limit_rps: float = DEFAULT_RATE_LIMIT_RPS
    delay_seconds: float = DEFAULT_DELAY_SECONDS

    retries: int = DEFAULT_RETRIES
    retry_initial_delay_seconds: float = DEFAULT_RETRY_INITIAL_DELAY_SECONDS
    retry_max_delay_seconds: float = DEFAULT_RETRY_MAX_DELAY_SECONDS
    retry_backoff_multiplier: float = DEFAULT_RETRY_BACKOFF_MULTIPLIER

    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS

    backend: FetchBackend = DEFAULT_FETCH_BACKEND
    headless: bool = DEFAULT_HEADLESS
    browser_binary: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    settle_seconds: float = DEFAULT_SETTLE_SECONDS
    scroll_pause_seconds: float = DEFAULT_SCROLL_PAUSE_SECONDS

    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_domains", _coerce_domains(self.allowed_domains))
        object.__setattr__(self, "backend", _to_backend(self.backend))

        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if self.max_pages <= 0:
            raise ValueError("max_pages must be > 0")
        if self.concurrency <= 0:
            raise ValueError("concurrency must be > 0")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.rate_limit_rps < 0:
            raise ValueError("rate_limit_rps must be >= 0")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.retry_initial_delay_seconds < 0:
            raise ValueError("retry_initial_delay_seconds must be >= 0")
        if self.retry_max_delay_seconds < 0:
            raise ValueError("retry_max_delay_seconds must be >= 0")
        if self.retry_backoff_multiplier < 1:
            raise ValueError("retry_backoff_multiplier must be >= 1")
        if self.cache_ttl_seconds < 0:
            raise ValueError("cache_ttl_seconds must be >= 0")
        if self.settle_seconds < 0:
            raise ValueError("settle_seconds must be >= 0")
        if self.scroll_pause_seconds < 0:
            raise ValueError("scroll_pause_seconds must be >= 0")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")

    def to_dict(self) -> JSONDict:
        """Serialize config for logs and reproducibility."""

        return {
            "max_depth": self.max_depth,
            "max_pages": self.max_pages,
            "allowed_domains": list(self.allowed_domains),
            "concurrency": self.concurrency,
            "timeout_seconds": self.timeout_seconds,
            "rate_limit_rps": self.rate_limit_rps,
            "delay_seconds": self.delay_seconds,
            "retries": self.retries,
            "retry_initial_delay_seconds": self.retry_initial_delay_seconds,
            "retry_max_delay_seconds": self.retry_max_delay_seconds,
            "retry_backoff_multiplier": self.retry_backoff_multiplier,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "backend": self.backend.value,
            "headless": self.headless,
            "browser_binary": self.browser_binary,
            "user_agent": self.user_agent,
            "settle_seconds": self.settle_seconds,
            "scroll_pause_seconds": self.scroll_pause_seconds,
            "poll_interval_seconds": self.poll_interval_seconds,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary. Missing keys take defaults."""

        browser_binary = payload.get("browser_binary")

        return cls(
            max_depth=_as_int(payload.get("max_depth", DEFAULT_MAX_DEPTH), "max_depth"),
            max_pages=_as_int(payload.get("max_pages", DEFAULT_MAX_PAGES), "max_pages"),
            allowed_domains=_coerce_domains(payload.get("allowed_domains")),
            concurrency=_as_int(payload.get("concurrency", DEFAULT_CONCURRENCY), "concurrency"),
            timeout_seconds=_as_float(
                payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
                "timeout_seconds",
            ),
            rate_limit_rps=_as_float(
                payload.get("rate_limit_rps", DEFAULT_RATE_LIMIT_RPS),
                "rate_limit_rps",
            ),
            delay_seconds=_as_float(
                payload.get("delay_seconds", DEFAULT_DELAY_SECONDS),
                "delay_seconds",
            ),
            retries=_as_int(payload.get("retries", DEFAULT_RETRIES), "retries"),
            retry_initial_delay_seconds=_as_float(
                payload.get("retry_initial_delay_seconds", DEFAULT_RETRY_INITIAL_DELAY_SECONDS),
                "retry_initial_delay_seconds",
            ),
            retry_max_delay_seconds=_as_float(
                payload.get("retry_max_delay_seconds", DEFAULT_RETRY_MAX_DELAY_SECONDS),
                "retry_max_delay_seconds",
            ),
            retry_backoff_multiplier=_as_float(
                payload.get("retry_backoff_multiplier", DEFAULT_RETRY_BACKOFF_MULTIPLIER),
                "retry_backoff_multiplier",
            ),
            cache_ttl_seconds=_as_float(
                payload.get("cache_ttl_seconds", DEFAULT_CACHE_TTL_SECONDS),
                "cache_ttl_seconds",
            ),
            backend=_to_backend(payload.get("backend", DEFAULT_FETCH_BACKEND)),
            headless=_as_bool(payload.get("headless", DEFAULT_HEADLESS), "headless"),
            browser_binary=None if browser_binary is None else str(browser_binary),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            settle_seconds=_as_float(
                payload.get("settle_seconds", DEFAULT_SETTLE_SECONDS),
                "settle_seconds",
            ),
            scroll_pause_seconds=_as_float(
                payload.get("scroll_pause_seconds", DEFAULT_SCROLL_PAUSE_SECONDS),
                "scroll_pause_seconds",
            ),
            poll_interval_seconds=_as_float(
                payload.get("poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS),
                "poll_interval_seconds",
            ),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")

    return CrawlConfig.from_dict(payload)


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    suffix = out_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


__all__ = [
    "CrawlConfig",
    "load_config",
    "normalize_domain",
    "save_config",
]
