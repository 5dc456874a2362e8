import json
import logging

import pytest

from sitemark import crawl as cli
from sitemark.crawler import CrawlStage, ErrorRecord, InvalidStartURL, PageResult


class FakePipeline:
    """Stands in for `Pipeline` inside the CLI module."""

    pages: list = []
    raises: BaseException | None = None
    instances: list = []

    def __init__(self, config, **kwargs):
        self.config = config
        self.kwargs = kwargs
        self.crawl_calls = []
        self.errors = [ErrorRecord(stage=CrawlStage.RENDER, url="https://example.com/broken", message="HTTP 500")]
        FakePipeline.instances.append(self)

    def crawl(self, start_url, **kwargs):
        self.crawl_calls.append((start_url, kwargs))
        if FakePipeline.raises is not None:
            raise FakePipeline.raises
        return list(FakePipeline.pages)


@pytest.fixture(autouse=True)
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def fake_pipeline(monkeypatch):
    FakePipeline.pages = []
    FakePipeline.raises = None
    FakePipeline.instances = []
    monkeypatch.setattr(cli, "Pipeline", FakePipeline)
    return FakePipeline


PAGES = [
    PageResult(url="https://example.com/", markdown="# Home", depth=0),
    PageResult(url="https://example.com/docs/intro", markdown="Intro", depth=1),
]


def test_json_output_on_stdout(fake_pipeline, capsys):
    fake_pipeline.pages = PAGES

    assert cli.main(["--url", "https://example.com", "--depth", "1", "--pages", "5"]) == 0

    captured = capsys.readouterr()
    payload = json.loads(captured.out)
    assert payload["url"] == "https://example.com"
    assert payload["total"] == 2
    assert [page["url"] for page in payload["pages"]] == [page.url for page in PAGES]
    assert payload["errors"][0]["url"] == "https://example.com/broken"
    assert isinstance(payload["duration"], float)
    assert "Crawl Summary" in captured.err


def test_flags_map_onto_config(fake_pipeline):
    fake_pipeline.pages = PAGES
    cli.main(
        [
            "--url", "https://example.com",
            "--depth", "3",
            "--pages", "4",
            "--timeout", "10",
            "--rate", "1.5",
            "--delay", "250",
            "--workers", "2",
            "--domain", "example.com",
            "--domain", "docs.example.com",
            "--backend", "requests",
            "--no_headless",
        ]
    )

    pipeline = fake_pipeline.instances[0]
    config = pipeline.config
    assert config.max_depth == 3
    assert config.max_pages == 4
    assert config.timeout_seconds == 10
    assert config.rate_limit_rps == 1.5
    assert config.delay_seconds == 0.25
    assert config.concurrency == 2
    assert config.allowed_domains == ("example.com", "docs.example.com")
    assert config.backend.value == "requests"
    assert config.headless is False
    # Crawl-wide timeout is the per-page timeout times the page budget plus a minute.
    assert pipeline.crawl_calls[0][1]["timeout_seconds"] == 10 * 4 + 60


def test_config_file_with_flag_override(fake_pipeline, tmp_path):
    fake_pipeline.pages = PAGES
    path = tmp_path / "crawl.yaml"
    path.write_text("max_depth: 0\nmax_pages: 9\nrate_limit_rps: 0\n", encoding="utf-8")

    cli.main(["--url", "https://example.com", "--config", str(path), "--pages", "2"])

    config = fake_pipeline.instances[0].config
    assert config.max_depth == 0
    assert config.max_pages == 2
    assert config.rate_limit_rps == 0


def test_zero_pages_exits_one(fake_pipeline, capsys):
    assert cli.main(["--url", "https://example.com"]) == 1
    assert capsys.readouterr().out == ""


def test_invalid_start_url_exits_two(fake_pipeline):
    fake_pipeline.raises = InvalidStartURL("bad")
    assert cli.main(["--url", "ftp://example.com"]) == 2


def test_invalid_config_exits_two(fake_pipeline):
    assert cli.main(["--url", "https://example.com", "--pages", "0"]) == 2
    assert fake_pipeline.instances == []


def test_interrupt_exits_130(fake_pipeline):
    fake_pipeline.raises = KeyboardInterrupt()
    assert cli.main(["--url", "https://example.com"]) == 130


def test_markdown_directory_output(fake_pipeline, tmp_path, capsys):
    fake_pipeline.pages = PAGES
    out_dir = tmp_path / "out"

    assert cli.main(["--url", "https://example.com", "-o", str(out_dir)]) == 0

    assert sorted(path.name for path in out_dir.iterdir()) == [
        "example_com_docs_intro.md",
        "example_com_index.md",
    ]
    content = (out_dir / "example_com_docs_intro.md").read_text(encoding="utf-8")
    assert content.startswith("# https://example.com/docs/intro\n")
    assert "**Depth:** 1" in content
    assert capsys.readouterr().out == ""


def test_single_page_markdown_file(fake_pipeline, tmp_path):
    fake_pipeline.pages = PAGES[:1]
    target = tmp_path / "page.md"

    assert cli.main(["--url", "https://example.com", "--output", str(target)]) == 0

    assert target.read_text(encoding="utf-8").endswith("# Home\n")


def test_missing_url_is_a_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        cli.parse_args([])
    assert excinfo.value.code == 2
