"""
harvesters.py - Single-fetch candidate sources: the external search query and
the homepage's outbound links.

Both return raw Candidates and report failures as warnings on the context;
neither retries.
"""
from __future__ import annotations

import html
import logging
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from candidates import Candidate
from errors import InvalidUrl, SourceUnavailable
from http_fetch import FetchResult
from scan_context import ScanContext
from url_canon import in_scope, resolve_link

logger = logging.getLogger(__name__)

SEARCH_BLOCK_HINTS = ("captcha", "unusual traffic", "are you a robot", "anomaly-modal")
SEARCH_ENGINE_HOSTS = ("duckduckgo.com",)


def _attr_to_str(value: object) -> str | None:
    if isinstance(value, str):
        return value
    return None


def extract_hrefs(html_text: str, base_url: str) -> list[str]:
    """Every anchor href in document order, resolved against base_url."""
    soup = BeautifulSoup(html_text or "", "html.parser")
    hrefs: list[str] = []
    for a in soup.find_all("a"):
        resolved = resolve_link(_attr_to_str(a.get("href")), base_url)
        if resolved:
            hrefs.append(resolved)
    return hrefs


def _require_html(result: FetchResult, label: str) -> str:
    if result.error:
        raise SourceUnavailable(f"{label} unavailable ({result.error}).")
    if result.status != 200:
        raise SourceUnavailable(f"{label} unavailable (HTTP {result.status}).")
    if not result.body:
        raise SourceUnavailable(f"{label} returned an empty page.")
    return result.body


def decode_search_result_url(raw_href: str) -> str | None:
    href = html.unescape(str(raw_href or "").strip())
    if not href:
        return None
    if href.startswith("//"):
        href = f"https:{href}"
    parsed = urlparse(href)
    # DuckDuckGo wraps results as /l/?uddg=<encoded target>
    if parsed.path.startswith("/l/") or href.startswith("l/?"):
        uddg = parse_qs(parsed.query).get("uddg", [])
        if uddg:
            return uddg[0]
        return None
    if parsed.scheme in ("http", "https"):
        return href
    return None


def _is_search_engine_link(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return any(host == engine or host.endswith(f".{engine}") for engine in SEARCH_ENGINE_HOSTS)


def parse_search_results(body: str, canonical_host: str, max_results: int) -> list[str]:
    soup = BeautifulSoup(body or "", "html.parser")
    anchors = soup.select("a.result__a") or soup.find_all("a")
    found: list[str] = []
    seen: set[str] = set()
    for a in anchors:
        resolved = decode_search_result_url(_attr_to_str(a.get("href")) or "")
        if not resolved or _is_search_engine_link(resolved):
            continue
        try:
            if not in_scope(resolved, canonical_host):
                continue
        except InvalidUrl:
            continue
        if resolved in seen:
            continue
        seen.add(resolved)
        found.append(resolved)
        if len(found) >= max_results:
            break
    return found


def harvest_search(ctx: ScanContext) -> list[Candidate]:
    """A single site: query against the configured search endpoint. Never retried."""
    host = ctx.request.canonical_host
    try:
        result = ctx.fetch(ctx.limits.search_endpoint, params={"q": f"site:{host}"})
        body = _require_html(result, "Search results")
        lowered = body.lower()
        if any(marker in lowered for marker in SEARCH_BLOCK_HINTS):
            raise SourceUnavailable("Search results blocked by the search provider.")
        urls = parse_search_results(body, host, ctx.limits.max_search_results)
    except SourceUnavailable as exc:
        ctx.warn(exc.reason)
        return []

    if not urls:
        ctx.warn(f"Search returned no in-scope results for {host}.")
    logger.info(f"Search harvest for {host}: {len(urls)} URL(s)")
    return [Candidate(url=url, source="search") for url in urls]


def harvest_homepage(ctx: ScanContext) -> list[Candidate]:
    """
    Fetches the homepage once and emits every anchor, resolved against the final
    URL after redirects. Scope and shape filtering happens at merge time.
    """
    start_url = ctx.request.normalized_url.href
    try:
        result = ctx.fetch(start_url)
        body = _require_html(result, "Homepage fallback")
    except SourceUnavailable as exc:
        ctx.warn(exc.reason)
        return []

    hrefs = extract_hrefs(body, result.final_url or start_url)
    logger.info(f"Homepage harvest for {ctx.request.canonical_host}: {len(hrefs)} link(s)")
    return [Candidate(url=url, source="homepage-fallback") for url in hrefs]
