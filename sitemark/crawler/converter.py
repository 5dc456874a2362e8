"""HTML to Markdown conversion on top of markdownify."""

from __future__ import annotations

import re
from typing import Any

from bs4.element import Tag
from markdownify import markdownify

from .errors import ConversionFailure


_BLANK_RUNS_RE = re.compile(r"\n(?:[ \t]*\n){2,}")
_LANGUAGE_CLASS_PREFIXES = ("language-", "lang-")


def _code_language(element: Tag) -> str:
    """Pick a fenced-code language from `language-*` classes on pre/code.

    Only raw HTML carries these classes. Content that went through
    `ContentExtractor` has every class stripped and gets a bare fence.
    """

    candidates = [element]
    code = element.find("code") if element.name == "pre" else None
    if isinstance(code, Tag):
        candidates.append(code)

    for candidate in candidates:
        classes = candidate.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        for cls in classes:
            for prefix in _LANGUAGE_CLASS_PREFIXES:
                if cls.startswith(prefix) and len(cls) > len(prefix):
                    return cls[len(prefix):]
    return ""


class MarkdownConverter:
    """Convert an extracted content fragment into Markdown text."""

    def __init__(self, **options: Any) -> None:
        self.options: dict[str, Any] = {
            "heading_style": "ATX",
            "bullets": "-",
            "code_language_callback": _code_language,
            "strip": ["script", "style"],
        }
        self.options.update(options)

    def html_to_markdown(self, html: str) -> str:
        """Return trimmed Markdown with at most one blank line between blocks."""

        try:
            markdown = markdownify(html or "", **self.options)
        except Exception as exc:
            raise ConversionFailure(f"Markdown conversion failed: {exc}") from exc

        markdown = _BLANK_RUNS_RE.sub("\n\n", markdown)
        return markdown.strip()


__all__ = ["MarkdownConverter"]
