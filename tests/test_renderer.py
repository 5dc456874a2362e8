import pytest
import requests

from sitemark.crawler import (
    CrawlConfig,
    FetchBackend,
    RenderErrorKind,
    RenderFailure,
    RequestsRenderer,
    SeleniumRenderer,
    build_renderer,
)
from sitemark.crawler.renderer import _classify_message


class FakeResponse:
    def __init__(self, status_code=200, text="<html></html>"):
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, outcome):
        self.outcome = outcome
        self.requests = []

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


def requests_renderer(monkeypatch, outcome):
    renderer = RequestsRenderer(CrawlConfig(backend=FetchBackend.REQUESTS, timeout_seconds=7))
    session = FakeSession(outcome)
    monkeypatch.setattr(renderer, "_thread_local_session", lambda: session)
    return renderer, session


def test_requests_renderer_returns_body(monkeypatch):
    renderer, session = requests_renderer(monkeypatch, FakeResponse(200, "<p>hi</p>"))
    assert renderer.render("https://example.com/") == "<p>hi</p>"
    assert session.requests[0][1]["timeout"] == 7


@pytest.mark.parametrize(
    "outcome, kind",
    [
        (requests.Timeout("read timed out"), RenderErrorKind.TIMEOUT),
        (requests.ConnectionError("refused"), RenderErrorKind.NETWORK),
        (requests.TooManyRedirects("loop"), RenderErrorKind.PERMANENT),
        (FakeResponse(503), RenderErrorKind.NETWORK),
        (FakeResponse(429), RenderErrorKind.NETWORK),
        (FakeResponse(408), RenderErrorKind.NETWORK),
        (FakeResponse(404), RenderErrorKind.PERMANENT),
        (FakeResponse(403), RenderErrorKind.PERMANENT),
    ],
)
def test_requests_renderer_classifies_failures(monkeypatch, outcome, kind):
    renderer, _ = requests_renderer(monkeypatch, outcome)
    with pytest.raises(RenderFailure) as excinfo:
        renderer.render("https://example.com/")
    assert excinfo.value.kind == kind
    assert excinfo.value.url == "https://example.com/"


def test_requests_renderer_sessions_carry_user_agent():
    renderer = RequestsRenderer(CrawlConfig(user_agent="sitemark-test/1.0"))
    session = renderer._thread_local_session()
    assert session.headers["User-Agent"] == "sitemark-test/1.0"
    assert renderer._thread_local_session() is session
    renderer.close()


@pytest.mark.parametrize(
    "message, kind",
    [
        ("timeout: Timed out receiving message from renderer", RenderErrorKind.TIMEOUT),
        ("unknown error: net::ERR_NAME_NOT_RESOLVED", RenderErrorKind.NETWORK),
        ("unknown error: net::ERR_CONNECTION_REFUSED", RenderErrorKind.NETWORK),
        ("invalid argument: 'url' must be a string", RenderErrorKind.PERMANENT),
    ],
)
def test_browser_error_classification(message, kind):
    assert _classify_message(message) == kind


def test_build_renderer_follows_backend():
    assert isinstance(build_renderer(CrawlConfig(backend="requests")), RequestsRenderer)
    assert isinstance(build_renderer(CrawlConfig(backend="selenium")), SeleniumRenderer)


def test_closed_selenium_renderer_refuses_work():
    renderer = SeleniumRenderer(CrawlConfig())
    renderer.close()
    with pytest.raises(RenderFailure) as excinfo:
        renderer.render("https://example.com/")
    assert excinfo.value.kind == RenderErrorKind.PERMANENT
