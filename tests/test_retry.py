import threading
import time

import pytest

from sitemark.crawler import (
    Cancelled,
    CrawlConfig,
    RenderErrorKind,
    RenderFailure,
    RetryPolicy,
    is_retryable,
    retry,
)

FAST = RetryPolicy(max_retries=3, initial_delay=0.01, max_delay=0.02, backoff_multiplier=2.0)


class Flaky:
    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_transient_failures_then_success():
    operation = Flaky([RuntimeError("connection timeout"), RuntimeError("connection timeout")])
    assert retry(operation, FAST) == "ok"
    assert operation.calls == 3


def test_permanent_error_short_circuits():
    operation = Flaky([RenderFailure("HTTP 404", kind=RenderErrorKind.PERMANENT)] * 5)
    started = time.monotonic()
    with pytest.raises(RenderFailure):
        retry(operation, RetryPolicy(max_retries=3, initial_delay=1.0))
    assert operation.calls == 1
    assert time.monotonic() - started < 0.5


def test_exhaustion_raises_last_error():
    errors = [RenderFailure(f"timeout {idx}", kind=RenderErrorKind.TIMEOUT) for idx in range(4)]
    operation = Flaky(errors)
    with pytest.raises(RenderFailure, match="timeout 3"):
        retry(operation, FAST)
    assert operation.calls == 4


def test_zero_retries_means_single_attempt():
    operation = Flaky([ConnectionError("reset")])
    with pytest.raises(ConnectionError):
        retry(operation, RetryPolicy(max_retries=0))
    assert operation.calls == 1


def test_on_retry_receives_attempt_and_backoff_delay():
    seen = []
    operation = Flaky([TimeoutError("slow")] * 3)
    retry(operation, FAST, on_retry=lambda attempt, exc, delay: seen.append((attempt, delay)))
    assert seen == [(1, 0.01), (2, 0.02), (3, 0.02)]


def test_cancel_before_first_attempt():
    cancel = threading.Event()
    cancel.set()
    operation = Flaky([])
    with pytest.raises(Cancelled):
        retry(operation, FAST, cancel)
    assert operation.calls == 0


def test_cancel_interrupts_backoff():
    cancel = threading.Event()
    operation = Flaky([TimeoutError("slow")] * 10)
    threading.Timer(0.05, cancel.set).start()

    started = time.monotonic()
    with pytest.raises(Cancelled):
        retry(operation, RetryPolicy(max_retries=5, initial_delay=10.0, max_delay=10.0), cancel)
    assert time.monotonic() - started < 5.0
    assert operation.calls == 1


@pytest.mark.parametrize(
    "exc, expected",
    [
        (RenderFailure("x", kind=RenderErrorKind.TIMEOUT), True),
        (RenderFailure("x", kind=RenderErrorKind.NETWORK), True),
        (RenderFailure("connection refused", kind=RenderErrorKind.PERMANENT), False),
        (TimeoutError(), True),
        (ConnectionResetError(), True),
        (RuntimeError("Service Temporarily Unavailable"), True),
        (RuntimeError("NETWORK is down"), True),
        (ValueError("bad markup"), False),
        (Cancelled("stop"), False),
    ],
)
def test_is_retryable(exc, expected):
    assert is_retryable(exc) is expected


def test_policy_from_config_and_delays():
    config = CrawlConfig(
        retries=4,
        retry_initial_delay_seconds=1.0,
        retry_max_delay_seconds=5.0,
        retry_backoff_multiplier=3.0,
    )
    policy = RetryPolicy.from_config(config)
    assert policy.max_retries == 4
    assert policy.delays() == [1.0, 3.0, 5.0, 5.0]


def test_policy_validation():
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=-1)
    with pytest.raises(ValueError):
        RetryPolicy(backoff_multiplier=0.5)
