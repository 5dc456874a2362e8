"""Crawl a website into clean Markdown, one page at a time."""

__version__ = "0.1.0"
