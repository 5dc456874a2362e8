"""Serialization of crawl results: JSON payloads and Markdown files.

Storage owns the on-disk layout. The CLI should use this API instead of
building output paths manually.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence, TextIO
from urllib.parse import urlsplit

from .constants import JSON_INDENT
from .types import ErrorRecord, JSONDict, PageResult


MAX_PATH_PART_CHARS = 100
MAX_FILENAME_CHARS = 200
_UNSAFE_FILENAME_CHARS_RE = re.compile(r'[:*?<>|"\\/\s]')


def sanitize_filename(url: str, index: int) -> str:
    """Build a `<host>_<path>.md` file name for a page URL.

    Falls back to `page_NNN.md` (1-based) when nothing usable is left.
    """

    try:
        parsed = urlsplit(url)
        host = parsed.hostname or ""
    except ValueError:
        return f"page_{index + 1:03d}.md"

    parts: list[str] = []
    if host:
        parts.append(host.replace(".", "_"))

    path = parsed.path
    if not path or path == "/":
        path = "index"
    else:
        path = path.strip("/").replace("/", "_").replace("\\", "_")
    parts.append(path[:MAX_PATH_PART_CHARS])

    filename = "_".join(part for part in parts if part)
    if not filename:
        filename = f"page_{index + 1:03d}"

    filename = _UNSAFE_FILENAME_CHARS_RE.sub("_", filename)
    return filename[:MAX_FILENAME_CHARS] + ".md"


def render_markdown_document(page: PageResult) -> str:
    """Markdown file body: URL heading, source/depth header, then content."""

    return (
        f"# {page.url}\n\n"
        f"**Source URL:** {page.url}  \n"
        f"**Depth:** {page.depth}  \n\n"
        "---\n\n"
        f"{page.markdown}\n"
    )


def results_payload(
    start_url: str,
    pages: Sequence[PageResult],
    *,
    duration_seconds: float,
    errors: Iterable[ErrorRecord] = (),
) -> JSONDict:
    """JSON document printed by the CLI when no output path is given."""

    return {
        "url": start_url,
        "total": len(pages),
        "duration": round(duration_seconds, 3),
        "pages": [page.to_json() for page in pages],
        "errors": [record.to_json() for record in errors],
    }


def write_json(payload: Mapping[str, Any], stream: TextIO) -> None:
    stream.write(json.dumps(payload, ensure_ascii=False, indent=JSON_INDENT) + "\n")
    stream.flush()


class MarkdownStorage:
    """Write crawled pages as Markdown under one output path.

    A single page written to a path ending in `.md` becomes that file.
    Anything else becomes a directory (a trailing `.md` is dropped) holding
    one file per page.
    """

    def __init__(self, output_path: str | Path) -> None:
        self.output_path = Path(output_path)

    def is_single_file(self, pages: Sequence[PageResult]) -> bool:
        return len(pages) == 1 and self.output_path.suffix.lower() == ".md"

    @property
    def output_dir(self) -> Path:
        if self.output_path.suffix.lower() == ".md":
            return self.output_path.with_suffix("")
        return self.output_path

    def save(self, pages: Sequence[PageResult]) -> list[Path]:
        """Persist pages and return the written file paths in page order."""

        if self.is_single_file(pages):
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self._atomic_write_text(self.output_path, render_markdown_document(pages[0]))
            return [self.output_path]

        out_dir = self.output_dir
        out_dir.mkdir(parents=True, exist_ok=True)

        written: list[Path] = []
        used_names: set[str] = set()
        for index, page in enumerate(pages):
            name = self._unique_name(sanitize_filename(page.url, index), used_names)
            path = out_dir / name
            self._atomic_write_text(path, render_markdown_document(page))
            written.append(path)
        return written

    @staticmethod
    def _unique_name(name: str, used_names: set[str]) -> str:
        candidate = name
        stem = name[: -len(".md")]
        counter = 2
        while candidate in used_names:
            candidate = f"{stem}_{counter}.md"
            counter += 1
        used_names.add(candidate)
        return candidate

    @staticmethod
    def _atomic_write_text(path: Path, content: str) -> None:
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
        )
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise


__all__ = [
    "MarkdownStorage",
    "render_markdown_document",
    "results_payload",
    "sanitize_filename",
    "write_json",
]
