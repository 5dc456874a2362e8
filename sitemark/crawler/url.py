"""URL normalization, validation, and link extraction helpers."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from .errors import InvalidURL


ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")


def _split(url: str) -> SplitResult:
    try:
        parsed = urlsplit(url)
        # Accessing `port` validates the netloc (e.g. non-numeric ports).
        parsed.port
    except ValueError as exc:
        raise InvalidURL(f"Unparseable URL {url!r}: {exc}") from exc
    return parsed


def _host_of(parsed: SplitResult) -> str:
    return parsed.netloc.rpartition("@")[2]


def _normalize_netloc(netloc: str) -> str:
    userinfo, at, hostport = netloc.rpartition("@")
    return f"{userinfo}{at}{hostport.lower()}"


def _normalize_path(path: str) -> str:
    if not path or path == "/":
        return "/"
    stripped = path.rstrip("/")
    return stripped or "/"


def normalize_url(url: str) -> str:
    """Canonicalize an absolute http(s) URL for dedup and identity checks.

    Scheme and host are lower-cased, the fragment is dropped, and trailing
    slashes are removed from non-root paths. Path case and query are kept.
    Raises `InvalidURL` for missing/unsupported schemes or a missing host.
    """

    raw = (url or "").strip()
    if not raw:
        raise InvalidURL("URL is empty")

    parsed = _split(raw)
    scheme = parsed.scheme.lower()
    if not scheme:
        raise InvalidURL(f"URL must have a scheme (http or https): {url!r}")
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidURL(f"URL scheme must be http or https: {url!r}")
    if not _host_of(parsed):
        raise InvalidURL(f"URL has no host: {url!r}")

    return urlunsplit(
        (
            scheme,
            _normalize_netloc(parsed.netloc),
            _normalize_path(parsed.path),
            parsed.query,
            "",
        )
    )


def is_valid_url(url: str) -> bool:
    """Return True if URL parses and uses http or https."""

    try:
        parsed = _split(url)
    except InvalidURL:
        return False
    return parsed.scheme.lower() in ALLOWED_SCHEMES


def host_from_url(url: str) -> str:
    """Extract the lower-cased hostname (no port, no userinfo)."""

    try:
        parsed = _split(url)
    except InvalidURL:
        return ""
    return (parsed.hostname or "").lower()


def same_domain(url_a: str, url_b: str) -> bool:
    """Return True if both URLs carry byte-equal hosts.

    Case folding is the caller's job; pass normalized URLs.
    """

    try:
        host_a = _host_of(_split(url_a))
        host_b = _host_of(_split(url_b))
    except InvalidURL:
        return False
    return host_a == host_b


def resolve_url(base_url: str, href: str) -> str:
    """Resolve a possibly relative reference against `base_url`."""

    _split(base_url)
    _split(href)
    try:
        return urljoin(base_url, href)
    except ValueError as exc:
        raise InvalidURL(f"Cannot resolve {href!r} against {base_url!r}: {exc}") from exc


def _domain_as_url(domain: str) -> str:
    candidate = domain.strip()
    if not candidate.startswith(("http://", "https://")):
        candidate = "https://" + candidate
    try:
        return normalize_url(candidate)
    except InvalidURL:
        return candidate


def is_in_scope(url: str, *, base_url: str, allowed_domains: Iterable[str] = ()) -> bool:
    """Return True when `url` passes the allowed-domain (or same-host) filter."""

    scopes = [_domain_as_url(domain) for domain in allowed_domains if domain and domain.strip()]
    if scopes:
        return any(same_domain(url, scope) for scope in scopes)
    return same_domain(url, base_url)


def extract_links(
    html: str | bytes,
    base_url: str,
    allowed_domains: Iterable[str] = (),
) -> list[str]:
    """Extract normalized, in-scope links from anchor tags.

    Returns links in document order with duplicates removed.
    """

    soup = BeautifulSoup(html, "lxml")
    allowed = [domain for domain in allowed_domains if domain and domain.strip()]
    try:
        scope_base = normalize_url(base_url)
    except InvalidURL:
        scope_base = base_url

    out: list[str] = []
    seen: set[str] = set()

    for anchor in soup.find_all("a", href=True):
        href = (anchor.get("href") or "").strip()
        if not href or href.startswith("#"):
            continue
        if href.lower().startswith(SKIP_HREF_PREFIXES):
            continue

        try:
            resolved = normalize_url(resolve_url(base_url, href))
        except InvalidURL:
            continue

        if not is_in_scope(resolved, base_url=scope_base, allowed_domains=allowed):
            continue

        if resolved in seen:
            continue

        seen.add(resolved)
        out.append(resolved)

    return out


__all__ = [
    "ALLOWED_SCHEMES",
    "SKIP_HREF_PREFIXES",
    "extract_links",
    "host_from_url",
    "is_in_scope",
    "is_valid_url",
    "normalize_url",
    "resolve_url",
    "same_domain",
]
