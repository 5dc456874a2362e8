from sitemark.crawler import CrawlStage, ErrorRecord, StatsCollector


def busy_collector():
    stats = StatsCollector()
    stats.record_enqueue(True)
    stats.record_enqueue(False)
    stats.record_dispatch()
    stats.record_render(elapsed_ms=40)
    stats.record_retry()
    stats.record_cache_hit()
    stats.record_page(True, markdown_chars=120)
    stats.record_links(found=5, enqueued=2)
    stats.record_error(ErrorRecord(stage=CrawlStage.RENDER, url="https://example.com/x", message="boom", error_type="RenderFailure"))
    stats.record_frontier_snapshot({"queued": 1, "visited": 2})
    return stats


def test_summary_counts_every_event():
    summary = busy_collector().to_json()

    assert summary["frontier_enqueued"] == 1
    assert summary["frontier_skipped_seen"] == 1
    assert summary["render_retries"] == 1
    assert summary["render_error"] == 1
    assert summary["links_enqueued"] == 2
    assert summary["render"]["elapsed_ms_avg"] == 40
    assert summary["errors"] == {"by_stage": {"render": 1}, "by_type": {"RenderFailure": 1}}
    assert summary["markdown_chars_total"] == 120
    assert summary["frontier"] == {"queued": 1, "visited": 2}


def test_reset_clears_counters_and_finish_stamp():
    stats = busy_collector()
    stats.finish()

    stats.reset()

    summary = stats.to_json()
    assert summary["dispatched"] == 0
    assert summary["pages_recorded"] == 0
    assert summary["finished_at"] is None
    assert summary["errors"] == {"by_stage": {}, "by_type": {}}
    assert summary["frontier"] == {}
    assert summary["markdown_chars_total"] == 0
