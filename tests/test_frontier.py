import threading

from sitemark.crawler import Frontier


def test_fifo_order_and_depth():
    frontier = Frontier()
    assert frontier.add("https://example.com/a", depth=0)
    assert frontier.add("https://example.com/b", depth=1, referrer="https://example.com/a")

    first = frontier.pop()
    second = frontier.pop()

    assert (first.url, first.depth) == ("https://example.com/a", 0)
    assert (second.url, second.depth, second.referrer) == ("https://example.com/b", 1, "https://example.com/a")
    assert frontier.pop() is None


def test_add_dedups_pending_and_visited_by_canonical_form():
    frontier = Frontier()
    assert frontier.add("https://Example.com/page/")
    assert not frontier.add("https://example.com/page#frag")
    assert frontier.size() == 1

    item = frontier.claim()
    assert item.url == "https://example.com/page"
    assert frontier.is_visited("https://EXAMPLE.com/page/")
    assert not frontier.add("https://example.com/page", depth=3)
    assert frontier.empty()


def test_add_rejects_invalid_urls():
    frontier = Frontier()
    assert not frontier.add("mailto:a@example.com")
    assert not frontier.add("relative/path")
    assert frontier.snapshot()["skipped_invalid"] == 2


def test_mark_visited_is_idempotent():
    frontier = Frontier()
    assert frontier.mark_visited("https://example.com/x")
    assert not frontier.mark_visited("https://example.com/x/")
    assert frontier.visited_count() == 1


def test_claim_skips_items_visited_while_pending():
    frontier = Frontier()
    frontier.add("https://example.com/a")
    frontier.add("https://example.com/b")
    frontier.mark_visited("https://example.com/a")

    item = frontier.claim()
    assert item.url == "https://example.com/b"
    assert frontier.claim() is None


def test_snapshot_counters():
    frontier = Frontier()
    frontier.add("https://example.com/a")
    frontier.add("https://example.com/a")
    frontier.claim()

    snapshot = frontier.snapshot()
    assert snapshot == {
        "queue_size": 0,
        "visited": 1,
        "enqueued": 1,
        "dequeued": 1,
        "skipped_seen": 1,
        "skipped_invalid": 0,
    }


def test_concurrent_adds_and_claims_dispatch_each_url_once():
    frontier = Frontier()
    urls = [f"https://example.com/page/{idx}" for idx in range(200)]
    claimed: list[str] = []
    claimed_lock = threading.Lock()
    start = threading.Barrier(8)

    def producer() -> None:
        start.wait()
        for url in urls:
            frontier.add(url)
            frontier.add(url + "/")

    def consumer() -> None:
        start.wait()
        for _ in range(400):
            item = frontier.claim()
            if item is not None:
                with claimed_lock:
                    claimed.append(item.url)

    threads = [threading.Thread(target=producer) for _ in range(4)]
    threads += [threading.Thread(target=consumer) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    while (item := frontier.claim()) is not None:
        claimed.append(item.url)

    assert sorted(claimed) == sorted(urls)
