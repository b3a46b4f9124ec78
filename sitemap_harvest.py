"""
sitemap_harvest.py - Bounded breadth-first traversal of a site's sitemap tree.

robots.txt Sitemap: directives seed the queue. When none of them parses, the
conventional locations are tried in order and the first one that parses as XML
becomes the root.
Sitemap indexes enqueue child sitemaps, leaf sitemaps yield page candidates.
"""
from __future__ import annotations

from collections import deque
import logging

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET

from candidates import Candidate
from errors import SourceUnavailable
from http_fetch import FetchResult
from scan_context import ScanContext
from url_canon import resolve_link

logger = logging.getLogger(__name__)

CONVENTIONAL_SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap/sitemap.xml")


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].lower()


def parse_sitemap_xml(body: str) -> tuple[list[str], str]:
    """Returns (loc values, "sitemapindex" | "urlset"). Raises SourceUnavailable otherwise."""
    text = (body or "").lstrip("\ufeff").strip()
    if not text:
        raise SourceUnavailable("empty document")
    try:
        root = ET.fromstring(text)
    except (ET.ParseError, DefusedXmlException) as exc:
        raise SourceUnavailable(f"not parseable as XML: {exc}")

    kind = _local_name(root.tag)
    if kind == "sitemapindex":
        entry_name = "sitemap"
    elif kind == "urlset":
        entry_name = "url"
    else:
        raise SourceUnavailable(f"unexpected root element <{kind}>")

    # Only direct <loc> children count; extensions such as <image:loc> are nested deeper.
    locs: list[str] = []
    for entry in root:
        if _local_name(entry.tag) != entry_name:
            continue
        for child in entry:
            if _local_name(child.tag) == "loc" and child.text and child.text.strip():
                locs.append(child.text.strip())
                break
    return locs, kind


def _load_document(result: FetchResult) -> tuple[list[str], str]:
    if result.error:
        raise SourceUnavailable(result.error)
    if result.status != 200:
        raise SourceUnavailable(f"HTTP {result.status}")
    return parse_sitemap_xml(result.body)


def _first_conventional(ctx: ScanContext, visited: set[str]) -> tuple[str, list[str], str] | None:
    for path in CONVENTIONAL_SITEMAP_PATHS:
        if ctx.cancelled() or len(visited) >= ctx.limits.max_sitemap_docs:
            return None
        url = f"{ctx.site_root}{path}"
        if url in visited:
            continue
        visited.add(url)
        try:
            locs, kind = _load_document(ctx.fetch(url))
        except SourceUnavailable as exc:
            logger.debug(f"No sitemap at {url}: {exc.reason}")
            continue
        return url, locs, kind
    return None


def harvest_sitemap(ctx: ScanContext) -> list[Candidate]:
    limits = ctx.limits
    candidates: list[Candidate] = []
    visited: set[str] = set()
    queue: deque[str] = deque()
    docs_parsed = 0
    raw_cap_hit = False

    def handle_document(doc_url: str, locs: list[str], kind: str) -> None:
        nonlocal docs_parsed, raw_cap_hit
        docs_parsed += 1
        for loc in locs:
            resolved = resolve_link(loc, doc_url)
            if not resolved:
                continue
            if kind == "sitemapindex":
                if resolved not in visited:
                    queue.append(resolved)
                continue
            if len(candidates) >= limits.max_raw_candidates:
                raw_cap_hit = True
                return
            candidates.append(Candidate(url=resolved, source="sitemap"))

    def traverse() -> None:
        while queue and not raw_cap_hit and not ctx.cancelled():
            wave: list[str] = []
            while queue and len(wave) < max(limits.fetch_workers, 1) and len(visited) < limits.max_sitemap_docs:
                next_url = queue.popleft()
                if next_url in visited:
                    continue
                visited.add(next_url)
                wave.append(next_url)
            if not wave:
                return

            for doc_url, result in zip(wave, ctx.fetch_many(wave)):
                try:
                    locs, kind = _load_document(result)
                except SourceUnavailable as exc:
                    ctx.warn(f"Sitemap fetch unavailable for {doc_url} ({exc.reason}).")
                    continue
                handle_document(doc_url, locs, kind)
                if raw_cap_hit:
                    return

    # robots.txt directives first; the conventional locations only when none of them parsed
    queue.extend(ctx.robots_sitemaps())
    traverse()
    if docs_parsed == 0 and not ctx.cancelled():
        root = _first_conventional(ctx, visited)
        if root is not None:
            handle_document(*root)
            traverse()

    if docs_parsed == 0:
        ctx.warn(f"No sitemap found for {ctx.request.canonical_host}.")
        return []

    pending = {url for url in queue if url not in visited}
    if raw_cap_hit:
        ctx.warn(f"Sitemap candidate limit reached ({limits.max_raw_candidates} URLs); remaining entries skipped.")
    elif pending and len(visited) >= limits.max_sitemap_docs:
        ctx.warn(
            f"Sitemap traversal limit reached ({limits.max_sitemap_docs} documents); "
            f"skipped {len(pending)} additional sitemap files."
        )
    elif pending and ctx.cancelled():
        ctx.warn("Sitemap traversal cancelled; partial results kept.")

    logger.info(f"Sitemap harvest for {ctx.request.canonical_host}: {docs_parsed} document(s), {len(candidates)} URL(s)")
    return candidates
