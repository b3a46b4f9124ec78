"""
url_canon.py - Canonical URL forms, site scope and deduplication keys.

Usage:
    url = normalize("WWW.Example.org/about/#team")
    url.href                  # "https://example.org/about/"
    dedupe_key(url)           # "example.org/about"
"""
from __future__ import annotations

from dataclasses import dataclass
import os
import re
from urllib.parse import urljoin, urlsplit

from errors import InvalidUrl

SCHEME_PATTERN = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
DEFAULT_PORTS = {"http": 80, "https": 443}

NON_HTML_EXTENSIONS = {
    # images
    ".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".ico", ".bmp", ".tif", ".tiff", ".avif",
    # archives and binaries
    ".zip", ".rar", ".7z", ".gz", ".tgz", ".tar", ".bz2", ".apk", ".exe", ".dmg", ".pkg", ".msi",
    # documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".ods", ".odp", ".rtf", ".epub",
    # feeds and data
    ".xml", ".rss", ".atom", ".json", ".csv", ".txt", ".ics", ".geojson",
    # media
    ".mp4", ".mp3", ".wav", ".avi", ".mov", ".wmv", ".webm", ".ogg", ".m4a",
    # fonts, scripts and styles
    ".woff", ".woff2", ".ttf", ".otf", ".eot", ".css", ".js", ".mjs", ".map",
}


@dataclass(frozen=True)
class NormalizedUrl:
    scheme: str
    netloc: str
    path: str
    query: str = ""

    @property
    def hostname(self) -> str:
        return self.netloc.rsplit(":", 1)[0] if self._has_port() else self.netloc

    def _has_port(self) -> bool:
        if self.netloc.startswith("["):
            return "]:" in self.netloc
        return ":" in self.netloc

    @property
    def href(self) -> str:
        query = f"?{self.query}" if self.query else ""
        return f"{self.scheme}://{self.netloc}{self.path}{query}"

    def __str__(self) -> str:
        return self.href


def canonicalize_host(host: str) -> str:
    normalized = (host or "").strip().lower()
    while normalized.startswith("www."):
        normalized = normalized[4:]
    return normalized


def normalize(raw: str | NormalizedUrl) -> NormalizedUrl:
    if isinstance(raw, NormalizedUrl):
        return raw
    trimmed = (raw or "").strip()
    if not trimmed:
        raise InvalidUrl("A domain or URL is required.")
    if not SCHEME_PATTERN.match(trimmed):
        trimmed = f"https://{trimmed}"

    try:
        parts = urlsplit(trimmed)
        port = parts.port
    except ValueError:
        raise InvalidUrl(f"Enter a valid domain or URL: {raw!r}")

    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise InvalidUrl(f"Unsupported URL scheme: {scheme}")
    host = canonicalize_host(parts.hostname or "")
    if not host or any(ch.isspace() for ch in host):
        raise InvalidUrl(f"Enter a valid domain or URL: {raw!r}")

    netloc = f"[{host}]" if ":" in host else host
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"
    return NormalizedUrl(scheme=scheme, netloc=netloc, path=parts.path or "/", query=parts.query)


def dedupe_key(url: str | NormalizedUrl) -> str:
    parsed = normalize(url)
    path = parsed.path
    if path.endswith("/"):
        path = path[:-1]
    query = f"?{parsed.query}" if parsed.query else ""
    return f"{parsed.hostname}{path or '/'}{query}"


def in_scope(url: str | NormalizedUrl, canonical_host: str) -> bool:
    host = canonicalize_host(canonical_host)
    if ":" in host and not host.startswith("["):
        host = host.rsplit(":", 1)[0]
    return normalize(url).hostname == host


def looks_like_html(url: str | NormalizedUrl) -> bool:
    path = normalize(url).path.lower()
    ext = os.path.splitext(path)[1]
    return ext not in NON_HTML_EXTENSIONS


def path_segments(url: str | NormalizedUrl) -> list[str]:
    return [seg for seg in normalize(url).path.split("/") if seg]


def resolve_link(href: str | None, base_url: str) -> str:
    """Joins a raw href to base_url; returns "" for fragment-only or non-web links."""
    if not href:
        return ""
    href = href.strip()
    if not href or href.startswith("#"):
        return ""
    try:
        joined = urljoin(base_url, href)
        scheme = urlsplit(joined).scheme.lower()
    except ValueError:
        return ""
    if scheme not in DEFAULT_PORTS:
        return ""
    return joined
