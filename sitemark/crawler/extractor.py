"""Readability-style main-content extraction.

Selection order is `<article>`, then `<main>`, then the best-scoring element
among common content containers, then the best-scoring direct child of
`<body>`. Scoring rewards long, paragraph-rich text and penalizes link-heavy
or boilerplate-named blocks.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

from .errors import ExtractionFailure


LOGGER = logging.getLogger(__name__)

STRIP_TAGS = ("script", "style", "nav", "header", "footer", "aside", "iframe", "embed", "object", "noscript")
BOILERPLATE_SELECTORS = (
    ".ad",
    ".ads",
    ".advertisement",
    ".sidebar",
    ".navigation",
    ".menu",
    ".social",
    ".share",
    ".comments",
    ".comment",
    "#ad",
    "#ads",
    "#advertisement",
    "#sidebar",
    "#navigation",
    "#menu",
    "#social",
    "#share",
    "#comments",
)
CONTENT_CONTAINER_SELECTOR = ".content, .post, .article, .entry, .post-content"

POSITIVE_KEYWORDS = ("content", "article", "post", "entry", "main", "body")
NEGATIVE_KEYWORDS = ("ad", "advertisement", "sidebar", "nav", "menu", "footer", "header")

KEPT_ATTRIBUTES = {
    "img": ("src", "alt"),
    "a": ("href",),
}


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Constants of the content scoring formula."""

    min_text_length: int = 100
    max_link_density: float = 0.5
    paragraph_bonus: float = 10.0
    list_bonus: float = 5.0
    image_bonus: float = 2.0
    keyword_bonus: float = 50.0
    keyword_penalty: float = 100.0


class ContentExtractor:
    """Pick the primary content block of a rendered page."""

    def __init__(self, weights: ScoringWeights | None = None) -> None:
        self.weights = weights or ScoringWeights()

    def extract_main_content(self, html: str | bytes) -> str:
        """Return the inner HTML of the selected content block, cleaned."""

        soup = BeautifulSoup(self._coerce_html_text(html), "lxml")
        self._strip_boilerplate(soup)

        content = self._select_content(soup)
        if content is None:
            raise ExtractionFailure("Document has no content candidates")

        self._clean(content)
        return content.decode_contents().strip()

    def extract_text(self, html: str | bytes) -> str:
        """Return trimmed visible body text with runs of blank lines collapsed."""

        soup = BeautifulSoup(self._coerce_html_text(html), "lxml")
        for element in soup.find_all(["script", "style"]):
            element.decompose()

        root = soup.body or soup
        text = root.get_text().strip()
        return re.sub(r"\n{3,}", "\n\n", text)

    def score(self, element: Tag) -> float:
        """Score one candidate. Zero means rejected."""

        text_length = len(element.get_text().strip())
        if text_length < self.weights.min_text_length:
            return 0.0

        if self.link_density(element, text_length=text_length) > self.weights.max_link_density:
            return 0.0

        score = float(text_length)
        score += len(element.find_all("p")) * self.weights.paragraph_bonus
        score += len(element.find_all(["ul", "ol"])) * self.weights.list_bonus
        score += len(element.find_all("img")) * self.weights.image_bonus

        markers = self._markers(element)
        if any(keyword in markers for keyword in POSITIVE_KEYWORDS):
            score += self.weights.keyword_bonus
        if any(keyword in markers for keyword in NEGATIVE_KEYWORDS):
            score -= self.weights.keyword_penalty

        return score

    @staticmethod
    def link_density(element: Tag, *, text_length: int | None = None) -> float:
        """Anchor text length over total text length."""

        if text_length is None:
            text_length = len(element.get_text().strip())
        if text_length <= 0:
            return 0.0

        link_text = " ".join(anchor.get_text() for anchor in element.find_all("a"))
        return len(link_text.strip()) / text_length

    def select_best(self, candidates: Sequence[Tag]) -> Tag | None:
        """Highest score wins; ties keep the earlier candidate.

        Falls back to the first candidate when nothing scores above zero.
        """

        if not candidates:
            return None

        best: Tag | None = None
        best_score = 0.0
        for candidate in candidates:
            candidate_score = self.score(candidate)
            if candidate_score > best_score:
                best = candidate
                best_score = candidate_score

        return best if best is not None else candidates[0]

    def _select_content(self, soup: BeautifulSoup) -> Tag | None:
        article = soup.find("article")
        if article is not None:
            return article

        main = soup.find("main")
        if main is not None:
            return main

        containers = soup.select(CONTENT_CONTAINER_SELECTOR)
        if containers:
            return self.select_best(containers)

        body = soup.body
        if body is None:
            return None

        children = body.find_all(True, recursive=False)
        if not children:
            return body
        return self.select_best(children)

    @staticmethod
    def _strip_boilerplate(soup: BeautifulSoup) -> None:
        doomed = soup.find_all(STRIP_TAGS) + soup.select(", ".join(BOILERPLATE_SELECTORS))
        for element in doomed:
            if element.decomposed:
                continue
            element.decompose()

    @staticmethod
    def _markers(element: Tag) -> str:
        classes = element.get("class") or []
        if isinstance(classes, str):
            classes = [classes]
        element_id = element.get("id") or ""
        return " ".join([*classes, str(element_id)]).lower()

    @staticmethod
    def _clean(content: Tag) -> None:
        for element in content.find_all(["p", "div"]):
            if element.decomposed:
                continue
            if element.get_text().strip():
                continue
            if element.find("img") is not None:
                continue
            element.decompose()

        for element in [content, *content.find_all(True)]:
            kept = KEPT_ATTRIBUTES.get(element.name, ())
            element.attrs = {key: value for key, value in element.attrs.items() if key in kept}

    @staticmethod
    def _coerce_html_text(html: str | bytes) -> str:
        if isinstance(html, bytes):
            return html.decode("utf-8", errors="replace")
        return html


__all__ = [
    "BOILERPLATE_SELECTORS",
    "CONTENT_CONTAINER_SELECTOR",
    "ContentExtractor",
    "NEGATIVE_KEYWORDS",
    "POSITIVE_KEYWORDS",
    "STRIP_TAGS",
    "ScoringWeights",
]
