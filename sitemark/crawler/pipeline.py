"""Crawl orchestration: a dispatch loop feeding a pool of page workers.

One `crawl()` call owns its frontier, visited set, and result list. The
calling thread runs the dispatch loop; `config.concurrency` worker threads
render, extract, and convert pages and feed discovered links back into the
frontier. The crawl ends when the page budget is full, when the frontier is
empty with no page in flight, or when the cancel event fires.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import queue
import threading
import time

from .cache import ResponseCache
from .config import CrawlConfig
from .converter import MarkdownConverter
from .errors import Cancelled, InvalidStartURL, InvalidURL
from .extractor import ContentExtractor
from .frontier import Frontier
from .rate import RateController
from .renderer import Renderer, build_renderer
from .retry import RetryPolicy, retry
from .stats import StatsCollector
from .types import CrawlStage, CrawlState, ErrorRecord, FrontierItem, PageResult
from .url import extract_links, normalize_url


LOGGER = logging.getLogger(__name__)

_STOP = object()


@dataclass
class _CrawlRun:
    """Mutable state of one crawl. `condition` guards results and in_flight."""

    start_url: str
    max_pages: int
    allowed_domains: tuple[str, ...]
    renderer: Renderer
    rate: RateController
    retry_policy: RetryPolicy
    cancel_event: threading.Event
    frontier: Frontier = field(default_factory=Frontier)
    condition: threading.Condition = field(default_factory=threading.Condition)
    results: list[PageResult] = field(default_factory=list)
    errors: list[ErrorRecord] = field(default_factory=list)
    in_flight: int = 0

    def budget_full_locked(self) -> bool:
        return len(self.results) >= self.max_pages

    def budget_full(self) -> bool:
        with self.condition:
            return self.budget_full_locked()

    def append_result(self, page: PageResult) -> bool:
        """Append only while the budget has room. Check and append are atomic."""

        with self.condition:
            if self.budget_full_locked():
                return False
            self.results.append(page)
            if self.budget_full_locked():
                self.condition.notify_all()
            return True

    def add_error(self, record: ErrorRecord) -> None:
        with self.condition:
            self.errors.append(record)

    def finish_item(self) -> None:
        with self.condition:
            self.in_flight -= 1
            self.condition.notify_all()


class Pipeline:
    """Orchestrates frontier, rate control, rendering, extraction, and stats."""

    def __init__(
        self,
        config: CrawlConfig | None = None,
        *,
        renderer: Renderer | None = None,
        extractor: ContentExtractor | None = None,
        converter: MarkdownConverter | None = None,
        cache: ResponseCache | None = None,
        stats: StatsCollector | None = None,
    ) -> None:
        self.config = config or CrawlConfig()

        self.renderer = renderer
        self.extractor = extractor or ContentExtractor()
        self.converter = converter or MarkdownConverter()
        self.cache = cache
        self.stats = stats or StatsCollector()

        self._owns_renderer = renderer is None
        self._state = CrawlState.SEEDED
        self._state_lock = threading.Lock()
        self._last_run: _CrawlRun | None = None

    @property
    def state(self) -> CrawlState:
        with self._state_lock:
            return self._state

    @property
    def errors(self) -> list[ErrorRecord]:
        """Error records of the most recent crawl."""

        run = self._last_run
        if run is None:
            return []
        with run.condition:
            return list(run.errors)

    def crawl(
        self,
        start_url: str,
        *,
        cancel_event: threading.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> list[PageResult]:
        """Crawl from `start_url` and return the collected pages.

        Raises `InvalidStartURL` when the seed cannot be normalized. Every
        other failure is per page: it is logged, recorded, and skipped, so
        the returned list may be partial or empty.
        """

        try:
            seed = normalize_url(start_url)
        except InvalidURL as exc:
            raise InvalidStartURL(f"Invalid start URL {start_url!r}: {exc}") from exc

        self.stats.reset()
        renderer = self.renderer or build_renderer(self.config)
        run = _CrawlRun(
            start_url=seed,
            max_pages=self.config.max_pages,
            allowed_domains=self.config.allowed_domains,
            renderer=renderer,
            rate=RateController(self.config.rate_limit_rps, self.config.delay_seconds),
            retry_policy=RetryPolicy.from_config(self.config),
            cancel_event=cancel_event or threading.Event(),
        )
        self._last_run = run
        self._set_state(CrawlState.SEEDED)
        self.stats.record_enqueue(run.frontier.add(seed, depth=0))

        timer: threading.Timer | None = None
        if timeout_seconds is not None and timeout_seconds > 0:
            timer = threading.Timer(timeout_seconds, self._on_timeout, args=(run,))
            timer.daemon = True
            timer.start()

        LOGGER.info(
            "Starting crawl: url=%s max_depth=%d max_pages=%d workers=%d domains=%s",
            seed,
            self.config.max_depth,
            self.config.max_pages,
            self.config.concurrency,
            ",".join(run.allowed_domains) or "same-host",
        )

        handoff: queue.Queue = queue.Queue(maxsize=self.config.concurrency)
        workers = [
            threading.Thread(
                target=self._worker,
                args=(run, handoff),
                name=f"crawler-worker-{idx}",
                daemon=True,
            )
            for idx in range(self.config.concurrency)
        ]

        self._set_state(CrawlState.RUNNING)
        try:
            for worker in workers:
                worker.start()
            self._dispatch(run, handoff)
        except BaseException:
            run.cancel_event.set()
            raise
        finally:
            self._set_state(CrawlState.DRAINING)
            for _ in workers:
                handoff.put(_STOP)
            for worker in workers:
                worker.join()

            if timer is not None:
                timer.cancel()
            if self._owns_renderer:
                renderer.close()

            self.stats.record_frontier_snapshot(run.frontier.snapshot())
            self.stats.finish()
            self._set_state(CrawlState.DONE)

        with run.condition:
            results = list(run.results)
            error_count = len(run.errors)

        LOGGER.info(
            "Crawl completed: %d pages, %d errors, %d URLs visited",
            len(results),
            error_count,
            run.frontier.visited_count(),
        )
        return results

    def _set_state(self, state: CrawlState) -> None:
        with self._state_lock:
            self._state = state

    @staticmethod
    def _on_timeout(run: _CrawlRun) -> None:
        LOGGER.warning("Crawl timeout reached; cancelling %s", run.start_url)
        run.cancel_event.set()

    def _dispatch(self, run: _CrawlRun, handoff: queue.Queue) -> None:
        poll = self.config.poll_interval_seconds

        while True:
            with run.condition:
                while True:
                    if run.cancel_event.is_set() or run.budget_full_locked():
                        return

                    # Pages already in flight count against the budget.
                    if len(run.results) + run.in_flight < run.max_pages:
                        item = run.frontier.claim()
                        if item is not None:
                            run.in_flight += 1
                            break

                    if run.in_flight == 0 and run.frontier.empty():
                        return
                    run.condition.wait(poll)

            self.stats.record_dispatch()
            LOGGER.debug("Dispatching %s (depth %d)", item.url, item.depth)
            self._handoff(run, handoff, item)

    def _handoff(self, run: _CrawlRun, handoff: queue.Queue, item: FrontierItem) -> None:
        while not run.cancel_event.is_set():
            try:
                handoff.put(item, timeout=self.config.poll_interval_seconds)
                return
            except queue.Full:
                continue

        self.stats.record_page(False)
        run.finish_item()

    def _worker(self, run: _CrawlRun, handoff: queue.Queue) -> None:
        while True:
            item = handoff.get()
            if item is _STOP:
                return

            try:
                self._process(run, item)
            except Exception as exc:
                LOGGER.exception("Unexpected error while crawling %s", item.url)
                self._record_error(run, CrawlStage.FRONTIER, item, exc)
            finally:
                run.finish_item()

    def _process(self, run: _CrawlRun, item: FrontierItem) -> None:
        if run.cancel_event.is_set() or run.budget_full():
            self.stats.record_page(False)
            return

        try:
            run.rate.wait(run.cancel_event)
        except Cancelled:
            self.stats.record_page(False)
            return

        html: str | None = None
        markdown: str | None = None

        # Leaf pages need no link extraction, so cached Markdown is enough.
        if self.cache is not None and item.depth >= self.config.max_depth:
            markdown = self.cache.get(item.url)
            if markdown is not None:
                self.stats.record_cache_hit()
                LOGGER.debug("Cache hit for %s", item.url)

        if markdown is None:
            html = self._render(run, item)
            if html is None:
                return
            markdown = self._to_markdown(run, item, html)
            if markdown is None:
                return
            if self.cache is not None:
                self.cache.set(item.url, markdown, ttl_seconds=self.config.cache_ttl_seconds)

        recorded = run.append_result(PageResult(url=item.url, markdown=markdown, depth=item.depth))
        self.stats.record_page(recorded, markdown_chars=len(markdown))
        if not recorded:
            LOGGER.debug("Page budget full; discarding %s", item.url)
            return

        LOGGER.info("Crawled %s (depth %d)", item.url, item.depth)

        if html is not None and item.depth < self.config.max_depth:
            self._expand_links(run, item, html)

    def _render(self, run: _CrawlRun, item: FrontierItem) -> str | None:
        def on_retry(attempt: int, exc: BaseException, delay: float) -> None:
            self.stats.record_retry()
            LOGGER.info(
                "Retrying %s after attempt %d failed (%s); waiting %.2fs",
                item.url,
                attempt,
                exc,
                delay,
            )

        started = time.perf_counter()
        try:
            html = retry(
                lambda: run.renderer.render(item.url),
                run.retry_policy,
                run.cancel_event,
                on_retry=on_retry,
            )
        except Cancelled:
            self.stats.record_page(False)
            return None
        except Exception as exc:
            self._record_error(run, CrawlStage.RENDER, item, exc)
            return None

        self.stats.record_render(int((time.perf_counter() - started) * 1000))
        return html

    def _to_markdown(self, run: _CrawlRun, item: FrontierItem, html: str) -> str | None:
        try:
            content = self.extractor.extract_main_content(html)
        except Exception as exc:
            self._record_error(run, CrawlStage.EXTRACT, item, exc)
            return None

        try:
            return self.converter.html_to_markdown(content)
        except Exception as exc:
            self._record_error(run, CrawlStage.CONVERT, item, exc)
            return None

    def _expand_links(self, run: _CrawlRun, item: FrontierItem, html: str) -> None:
        if run.cancel_event.is_set():
            return

        try:
            links = extract_links(html, item.url, run.allowed_domains)
        except Exception as exc:
            self._record_error(run, CrawlStage.LINKS, item, exc)
            return

        enqueued = 0
        for link in links:
            accepted = run.frontier.add(link, depth=item.depth + 1, referrer=item.url)
            self.stats.record_enqueue(accepted)
            if accepted:
                enqueued += 1

        self.stats.record_links(found=len(links), enqueued=enqueued)
        LOGGER.debug("Found %d links on %s, enqueued %d", len(links), item.url, enqueued)

        if enqueued:
            with run.condition:
                run.condition.notify_all()

    def _record_error(
        self,
        run: _CrawlRun,
        stage: CrawlStage,
        item: FrontierItem,
        exc: BaseException,
    ) -> None:
        record = ErrorRecord.from_exception(stage=stage, url=item.url, exc=exc, depth=item.depth)
        run.add_error(record)
        self.stats.record_error(record)
        LOGGER.warning("%s failed for %s: %s", stage.value, item.url, exc)


def crawl(
    start_url: str,
    config: CrawlConfig | None = None,
    **kwargs,
) -> list[PageResult]:
    """Run one crawl with a fresh pipeline.

    Keyword arguments are split between `Pipeline` (renderer, extractor,
    converter, cache, stats) and `Pipeline.crawl` (cancel_event,
    timeout_seconds).
    """

    crawl_kwargs = {key: kwargs.pop(key) for key in ("cancel_event", "timeout_seconds") if key in kwargs}
    pipeline = Pipeline(config, **kwargs)
    return pipeline.crawl(start_url, **crawl_kwargs)


__all__ = [
    "Pipeline",
    "crawl",
]
