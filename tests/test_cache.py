import pytest

from sitemark.crawler import ResponseCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def test_get_set_delete_clear(clock):
    cache = ResponseCache(60, clock=clock)
    assert cache.get("a") is None

    cache.set("a", "alpha")
    cache.set("b", "beta")
    assert cache.get("a") == "alpha"
    assert "b" in cache
    assert len(cache) == 2

    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None

    cache.clear()
    assert len(cache) == 0


def test_entries_expire_after_ttl(clock):
    cache = ResponseCache(60, clock=clock)
    cache.set("short", "x", ttl_seconds=5)
    cache.set("default", "y")

    clock.advance(4.9)
    assert cache.get("short") == "x"

    clock.advance(0.2)
    assert cache.get("short") is None
    assert cache.get("default") == "y"

    clock.advance(60)
    assert "default" not in cache


def test_zero_ttl_never_expires(clock):
    cache = ResponseCache(0, clock=clock)
    cache.set("k", "v")
    clock.advance(10**9)
    assert cache.get("k") == "v"


def test_purge_expired(clock):
    cache = ResponseCache(10, clock=clock)
    cache.set("a", "1")
    cache.set("b", "2", ttl_seconds=100)
    clock.advance(11)
    assert cache.purge_expired() == 1
    assert len(cache) == 1


def test_rejects_negative_ttl():
    with pytest.raises(ValueError):
        ResponseCache(-1)
    with pytest.raises(ValueError):
        ResponseCache().set("k", "v", ttl_seconds=-5)
