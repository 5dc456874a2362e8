"""Page renderers: a headless Selenium browser and a plain requests backend."""

from __future__ import annotations

import logging
import threading
import time
from typing import Protocol

import requests
from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.common.by import By
from selenium.webdriver.firefox.options import Options as FirefoxOptions
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from .config import CrawlConfig
from .constants import DEFAULT_HTTP_HEADERS
from .errors import RenderFailure
from .retry import RETRYABLE_MESSAGE_PATTERNS
from .types import FetchBackend, RenderErrorKind


LOGGER = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429})
NETWORK_ERROR_MARKERS = ("net::err_", "unreachable", "refused", "reset", "dns") + RETRYABLE_MESSAGE_PATTERNS
DEAD_SESSION_MARKERS = ("invalid session id", "no such window", "session deleted", "disconnected")


class Renderer(Protocol):
    """Anything that turns a URL into fully rendered HTML."""

    def render(self, url: str) -> str:
        ...

    def close(self) -> None:
        ...


class SeleniumRenderer:
    """Render pages in headless browsers, one browser per worker thread.

    Chrome is tried first, Firefox second. After load the renderer waits for
    `<body>`, lets scripts settle, and scrolls to the bottom and back so lazy
    content is materialized before the page source is read.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config

        self._thread_local = threading.local()
        self._drivers_lock = threading.Lock()
        self._drivers: list = []
        self._closed = False

    def render(self, url: str) -> str:
        driver = self._thread_driver(url)

        try:
            driver.set_page_load_timeout(max(1, int(self.config.timeout_seconds)))
            driver.get(url)
            WebDriverWait(driver, self.config.timeout_seconds).until(
                EC.presence_of_element_located((By.TAG_NAME, "body"))
            )

            if self.config.settle_seconds > 0:
                time.sleep(self.config.settle_seconds)

            driver.execute_script("window.scrollTo(0, document.body.scrollHeight);")
            if self.config.scroll_pause_seconds > 0:
                time.sleep(self.config.scroll_pause_seconds)
            driver.execute_script("window.scrollTo(0, 0);")

            return driver.page_source or ""
        except TimeoutException as exc:
            raise RenderFailure(
                f"Timed out rendering {url}: {exc.msg or exc}",
                kind=RenderErrorKind.TIMEOUT,
                url=url,
            ) from exc
        except WebDriverException as exc:
            message = (exc.msg or str(exc)).strip()
            if any(marker in message.lower() for marker in DEAD_SESSION_MARKERS):
                self._discard_thread_driver(driver)
            raise RenderFailure(
                f"Browser failed on {url}: {message}",
                kind=_classify_message(message),
                url=url,
            ) from exc

    def close(self) -> None:
        """Quit every browser this renderer started."""

        with self._drivers_lock:
            self._closed = True
            drivers, self._drivers = self._drivers, []

        for driver in drivers:
            try:
                driver.quit()
            except WebDriverException as exc:
                LOGGER.debug("Ignoring error while quitting browser: %s", exc)

    def __enter__(self) -> "SeleniumRenderer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _thread_driver(self, url: str):
        driver = getattr(self._thread_local, "driver", None)
        if driver is not None:
            return driver

        with self._drivers_lock:
            if self._closed:
                raise RenderFailure("Renderer is closed", url=url)

        try:
            driver = self._create_driver()
        except RuntimeError as exc:
            raise RenderFailure(str(exc), kind=RenderErrorKind.PERMANENT, url=url) from exc

        with self._drivers_lock:
            self._drivers.append(driver)
        self._thread_local.driver = driver
        return driver

    def _discard_thread_driver(self, driver) -> None:
        self._thread_local.driver = None
        with self._drivers_lock:
            if driver in self._drivers:
                self._drivers.remove(driver)
        try:
            driver.quit()
        except WebDriverException:
            pass

    def _create_driver(self):
        errors: list[str] = []

        # Try Chrome first.
        try:
            chrome_options = ChromeOptions()
            if self.config.headless:
                chrome_options.add_argument("--headless=new")
            chrome_options.add_argument("--disable-gpu")
            chrome_options.add_argument("--no-sandbox")
            chrome_options.add_argument("--disable-dev-shm-usage")
            chrome_options.add_argument(f"--user-agent={self.config.user_agent}")
            if self.config.browser_binary:
                chrome_options.binary_location = self.config.browser_binary
            driver = webdriver.Chrome(options=chrome_options)
            LOGGER.debug("Started Chrome for %s", threading.current_thread().name)
            return driver
        except Exception as exc:
            errors.append(f"Chrome: {exc}")

        # Fallback to Firefox.
        try:
            firefox_options = FirefoxOptions()
            if self.config.headless:
                firefox_options.add_argument("-headless")
            firefox_options.set_preference("general.useragent.override", self.config.user_agent)
            if self.config.browser_binary:
                firefox_options.binary_location = self.config.browser_binary
            driver = webdriver.Firefox(options=firefox_options)
            LOGGER.debug("Started Firefox for %s", threading.current_thread().name)
            return driver
        except Exception as exc:
            errors.append(f"Firefox: {exc}")

        raise RuntimeError("; ".join(errors) or "No usable Selenium driver found")


class RequestsRenderer:
    """Fetch raw HTML over HTTP for sites that need no JavaScript."""

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self._thread_local = threading.local()
        self._sessions_lock = threading.Lock()
        self._sessions: list[requests.Session] = []

    def render(self, url: str) -> str:
        session = self._thread_local_session()

        try:
            response = session.get(url, timeout=self.config.timeout_seconds, allow_redirects=True)
        except requests.Timeout as exc:
            raise RenderFailure(
                f"Timed out fetching {url}: {exc}",
                kind=RenderErrorKind.TIMEOUT,
                url=url,
            ) from exc
        except requests.ConnectionError as exc:
            raise RenderFailure(
                f"Connection failed for {url}: {exc}",
                kind=RenderErrorKind.NETWORK,
                url=url,
            ) from exc
        except requests.RequestException as exc:
            raise RenderFailure(f"Request failed for {url}: {exc}", url=url) from exc

        status = response.status_code
        if status in RETRYABLE_STATUS_CODES or status >= 500:
            raise RenderFailure(
                f"HTTP {status} from {url}",
                kind=RenderErrorKind.NETWORK,
                url=url,
            )
        if status >= 400:
            raise RenderFailure(f"HTTP {status} from {url}", url=url)

        return response.text or ""

    def close(self) -> None:
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(DEFAULT_HTTP_HEADERS)
            session.headers["User-Agent"] = self.config.user_agent
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session


def _classify_message(message: str) -> RenderErrorKind:
    lowered = message.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return RenderErrorKind.TIMEOUT
    if any(marker in lowered for marker in NETWORK_ERROR_MARKERS):
        return RenderErrorKind.NETWORK
    return RenderErrorKind.PERMANENT


def build_renderer(config: CrawlConfig) -> Renderer:
    """Create the renderer selected by `config.backend`."""

    if config.backend == FetchBackend.REQUESTS:
        return RequestsRenderer(config)
    return SeleniumRenderer(config)


__all__ = [
    "Renderer",
    "RequestsRenderer",
    "SeleniumRenderer",
    "build_renderer",
]
