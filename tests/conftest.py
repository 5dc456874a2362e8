"""Shared fixtures: an in-memory site and a renderer that serves it."""

from __future__ import annotations

from collections import Counter
import threading
import time
from typing import Callable

import pytest

from sitemark.crawler import CrawlConfig, RenderErrorKind, RenderFailure


def article_page(title: str, links: list[str] = (), body_words: int = 60) -> str:
    """HTML page whose <article> easily clears the content threshold."""

    anchors = "".join(f'<li><a href="{href}">{href}</a></li>' for href in links)
    text = " ".join(["content"] * body_words)
    return (
        "<html><head><title>{title}</title></head><body>"
        "<nav><ul>{anchors}</ul></nav>"
        "<article><h1>{title}</h1><p>{text}</p></article>"
        "</body></html>"
    ).format(title=title, anchors=anchors, text=text)


class FakeRenderer:
    """Serves pages from a dict and records every render call."""

    def __init__(
        self,
        pages: dict[str, str],
        *,
        failures: dict[str, list[BaseException]] | None = None,
        latency: float = 0.0,
        on_render: Callable[[str], None] | None = None,
    ) -> None:
        self.pages = pages
        self.failures = {url: list(errs) for url, errs in (failures or {}).items()}
        self.latency = latency
        self.on_render = on_render
        self.calls: Counter[str] = Counter()
        self.closed = False
        self._lock = threading.Lock()
        self._active = 0
        self.max_active = 0

    def render(self, url: str) -> str:
        with self._lock:
            self.calls[url] += 1
            self._active += 1
            self.max_active = max(self.max_active, self._active)
            pending = self.failures.get(url)
            failure = pending.pop(0) if pending else None

        try:
            if self.on_render is not None:
                self.on_render(url)
            if self.latency:
                time.sleep(self.latency)
            if failure is not None:
                raise failure
            if url not in self.pages:
                raise RenderFailure(f"HTTP 404 from {url}", kind=RenderErrorKind.PERMANENT, url=url)
            return self.pages[url]
        finally:
            with self._lock:
                self._active -= 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fast_config() -> Callable[..., CrawlConfig]:
    """Config factory with pacing and backoff shrunk for tests."""

    def factory(**overrides) -> CrawlConfig:
        values = {
            "max_depth": 2,
            "max_pages": 10,
            "concurrency": 3,
            "timeout_seconds": 5.0,
            "rate_limit_rps": 0.0,
            "delay_seconds": 0.0,
            "retries": 2,
            "retry_initial_delay_seconds": 0.01,
            "retry_max_delay_seconds": 0.02,
            "poll_interval_seconds": 0.01,
        }
        values.update(overrides)
        return CrawlConfig(**values)

    return factory


@pytest.fixture
def site() -> dict[str, str]:
    """Small tree: root -> a, b; a -> c; b -> a (cycle), external link."""

    return {
        "https://example.com/": article_page(
            "Home",
            ["/a", "/b", "https://other.org/x", "mailto:me@example.com"],
        ),
        "https://example.com/a": article_page("A", ["/c", "/"]),
        "https://example.com/b": article_page("B", ["/a", "#top"]),
        "https://example.com/c": article_page("C", ["/d"]),
        "https://example.com/d": article_page("D"),
    }
