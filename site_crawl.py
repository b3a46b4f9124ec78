"""
site_crawl.py - Bounded breadth-first crawl from the homepage.

Links on each page are split by where they sit in the document: footer first,
then navigation, then everything else. Footer and navigation links usually
surface the cross-cutting tasks, so only those are followed further.
"""
from __future__ import annotations

from collections import deque
import logging
import re

from bs4 import BeautifulSoup

from candidates import Candidate
from errors import InvalidUrl
from scan_context import ScanContext
from signal_detector import matched_signals
from url_canon import dedupe_key, in_scope, looks_like_html, normalize, resolve_link

logger = logging.getLogger(__name__)

REGIONS = ("footer", "nav", "other")
FOLLOWED_REGIONS = ("footer", "nav")
NAV_HINT = re.compile(r"(^|[\s_-])(nav|navbar|navigation|menu|menubar)([\s_-]|$)")


def _attr_to_str(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return ""


def _link_region(anchor) -> str:
    in_nav = False
    for parent in anchor.parents:
        name = parent.name
        if name in (None, "[document]", "html", "body"):
            continue
        role = _attr_to_str(parent.get("role")).lower()
        hints = f"{_attr_to_str(parent.get('id'))} {_attr_to_str(parent.get('class'))}".lower()
        if name == "footer" or role == "contentinfo" or "footer" in hints:
            return "footer"
        if name in ("nav", "header") or role == "navigation" or NAV_HINT.search(hints):
            in_nav = True
    return "nav" if in_nav else "other"


def partition_links(html_text: str, base_url: str) -> dict[str, list[str]]:
    soup = BeautifulSoup(html_text or "", "html.parser")
    buckets: dict[str, list[str]] = {region: [] for region in REGIONS}
    for a in soup.find_all("a"):
        resolved = resolve_link(_attr_to_str(a.get("href")), base_url)
        if resolved:
            buckets[_link_region(a)].append(resolved)
    return buckets


def crawl_site(
    ctx: ScanContext,
    known_keys: set[str] | None = None,
    target_count: int | None = None,
    missing_signals: set[str] | None = None,
) -> list[Candidate]:
    """
    Crawls at most crawl_max_pages pages, crawl_max_depth links away from the
    homepage. Stops as soon as the known plus newly found candidates reach
    target_count and none of missing_signals is still uncovered.
    """
    limits = ctx.limits
    host = ctx.request.canonical_host
    target = target_count if target_count is not None else ctx.request.requested_count
    found_keys: set[str] = set(known_keys or ())
    still_missing: set[str] = set(missing_signals or ())

    start_url = ctx.request.normalized_url.href
    queue: deque[tuple[str, int]] = deque([(start_url, 0)])
    queued_keys: set[str] = {dedupe_key(start_url)}
    emitted_keys: set[str] = set()
    candidates: list[Candidate] = []
    pages_fetched = 0
    pages_ok = 0

    def goal_met() -> bool:
        return len(found_keys) >= target and not still_missing

    done = goal_met()
    while queue and not done and pages_fetched < limits.crawl_max_pages and not ctx.cancelled():
        wave: list[tuple[str, int]] = []
        while queue and len(wave) < max(limits.fetch_workers, 1) and pages_fetched + len(wave) < limits.crawl_max_pages:
            url, depth = queue.popleft()
            if not ctx.robots_allows(url):
                logger.debug(f"robots.txt disallows {url}")
                continue
            wave.append((url, depth))
        if not wave:
            break

        results = ctx.fetch_many([url for url, _ in wave])
        pages_fetched += len(wave)
        for (url, depth), result in zip(wave, results):
            if result.error or result.status != 200 or not result.body:
                logger.debug(f"Crawl skipped {url}: {result.error or result.status}")
                continue
            pages_ok += 1
            if result.content_type and "text/html" not in result.content_type:
                continue

            buckets = partition_links(result.body, result.final_url or url)
            for region in REGIONS:
                for link in buckets[region]:
                    try:
                        if not in_scope(link, host) or not looks_like_html(link):
                            continue
                        key = dedupe_key(link)
                    except InvalidUrl:
                        continue
                    if key not in emitted_keys:
                        emitted_keys.add(key)
                        candidates.append(Candidate(url=link, source="crawl"))
                    if key not in found_keys:
                        found_keys.add(key)
                        still_missing -= matched_signals(normalize(link).path)
                    if region in FOLLOWED_REGIONS and depth < limits.crawl_max_depth and key not in queued_keys:
                        queued_keys.add(key)
                        queue.append((link, depth + 1))
                    if goal_met():
                        done = True
                        break
                if done:
                    break
            if done:
                break

    if pages_ok == 0 and pages_fetched > 0:
        ctx.warn(f"Crawl could not fetch any page for {host}.")
    elif queue and not done and pages_fetched >= limits.crawl_max_pages:
        ctx.warn(f"Crawl page limit reached ({limits.crawl_max_pages} pages); {len(queue)} queued page(s) skipped.")
    elif queue and not done and ctx.cancelled():
        ctx.warn("Crawl cancelled; partial results kept.")

    logger.info(f"Crawl for {host}: {pages_fetched} page(s) fetched, {len(candidates)} URL(s)")
    return candidates
