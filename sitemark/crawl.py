"""CLI entrypoint: crawl one site and emit Markdown."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
import time
from typing import Any, Sequence, TextIO

from sitemark.crawler import (
    CrawlConfig,
    ErrorRecord,
    InvalidStartURL,
    MarkdownStorage,
    PageResult,
    Pipeline,
    ResponseCache,
    load_config,
    results_payload,
    write_json,
)
from sitemark.crawler.types import FetchBackend


LOGGER = logging.getLogger("sitemark.crawl")

CRAWL_TIMEOUT_GRACE_SECONDS = 60.0

EXIT_OK = 0
EXIT_NO_PAGES = 1
EXIT_BAD_CONFIG = 2
EXIT_INTERRUPTED = 130


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sitemark",
        description="Crawl a website, render pages in a browser, and convert main content to Markdown.",
    )

    parser.add_argument("--url", type=str, required=True, help="Start URL (http or https).")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config. Flags override file values.",
    )

    parser.add_argument("--depth", type=int, default=None, help="Maximum link depth (0 = start page only).")
    parser.add_argument("--pages", type=int, default=None, help="Maximum number of pages to collect.")
    parser.add_argument("--timeout", type=float, default=None, help="Per-page timeout in seconds.")
    parser.add_argument("--rate", type=float, default=None, help="Requests per second (0 = unlimited).")
    parser.add_argument("--delay", type=float, default=None, help="Fixed delay between requests in milliseconds.")
    parser.add_argument("--workers", type=int, default=None, help="Number of concurrent page workers.")
    parser.add_argument(
        "--domain",
        action="append",
        default=[],
        help="Allowed domain (repeatable). Defaults to the start URL's host.",
    )

    parser.add_argument(
        "--backend",
        type=str,
        choices=[backend.value for backend in FetchBackend],
        default=None,
        help="Page renderer: selenium (JavaScript) or requests (raw HTML).",
    )
    parser.add_argument("--browser_binary", type=str, default=None, help="Path to the browser executable.")
    parser.add_argument(
        "--no_headless",
        action="store_true",
        help="Show the browser window instead of running headless.",
    )

    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Markdown output: a .md file for a single page, otherwise a directory.",
    )
    parser.add_argument("--log_file", type=Path, default=None, help="Also write logs to this file.")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    payload: dict[str, Any] = {}
    if args.config is not None:
        payload = load_config(args.config).to_dict()

    if args.depth is not None:
        payload["max_depth"] = args.depth
    if args.pages is not None:
        payload["max_pages"] = args.pages
    if args.timeout is not None:
        payload["timeout_seconds"] = args.timeout
    if args.rate is not None:
        payload["rate_limit_rps"] = args.rate
    if args.delay is not None:
        payload["delay_seconds"] = args.delay / 1000.0
    if args.workers is not None:
        payload["concurrency"] = args.workers
    if args.domain:
        payload["allowed_domains"] = list(args.domain)

    if args.backend is not None:
        payload["backend"] = args.backend
    if args.browser_binary is not None:
        payload["browser_binary"] = args.browser_binary
    if args.no_headless:
        payload["headless"] = False

    return CrawlConfig.from_dict(payload)


def setup_logging(verbose: bool, log_file: Path | None = None) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    # stdout carries the JSON results.
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Selenium and urllib3 log every wire call at DEBUG.
    logging.getLogger("selenium").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(
    pages: Sequence[PageResult],
    errors: Sequence[ErrorRecord],
    *,
    duration_seconds: float,
    stream: TextIO | None = None,
) -> None:
    out = stream or sys.stderr
    separator = "-" * 80

    print("\nCrawl Summary:", file=out)
    print(separator, file=out)
    print(f"Total pages: {len(pages)}", file=out)
    print(f"Errors: {len(errors)}", file=out)
    print(f"Duration: {duration_seconds:.2f}s", file=out)
    for index, page in enumerate(pages, start=1):
        print(f"[{index}] {page.url} (depth: {page.depth})", file=out)
    print(separator, file=out)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        config = build_config(args)
    except Exception as exc:
        LOGGER.error("Failed to build config: %s", exc)
        return EXIT_BAD_CONFIG

    crawl_timeout = config.timeout_seconds * config.max_pages + CRAWL_TIMEOUT_GRACE_SECONDS
    pipeline = Pipeline(config, cache=ResponseCache(config.cache_ttl_seconds))

    started = time.monotonic()
    try:
        pages = pipeline.crawl(args.url, timeout_seconds=crawl_timeout)
    except InvalidStartURL as exc:
        LOGGER.error("%s", exc)
        return EXIT_BAD_CONFIG
    except KeyboardInterrupt:
        LOGGER.error("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception:
        LOGGER.exception("Crawl failed")
        return EXIT_NO_PAGES
    duration_seconds = time.monotonic() - started
    errors = pipeline.errors

    LOGGER.info("Crawl finished in %.2fs with %d pages", duration_seconds, len(pages))
    if not pages:
        LOGGER.warning(
            "No pages were crawled. Check that a browser is installed, the site is reachable, "
            "and the start page has extractable content."
        )
        return EXIT_NO_PAGES

    if args.output is not None:
        storage = MarkdownStorage(args.output)
        written = storage.save(pages)
        if storage.is_single_file(pages):
            LOGGER.info("Results saved to %s", written[0])
        else:
            LOGGER.info("Results saved to directory %s (%d files)", storage.output_dir, len(written))
    else:
        payload = results_payload(
            args.url,
            pages,
            duration_seconds=duration_seconds,
            errors=errors,
        )
        write_json(payload, sys.stdout)

    print_summary(pages, errors, duration_seconds=duration_seconds)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
