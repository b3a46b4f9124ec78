"""
discovery.py - Discovery & ranking engine: ScanRequest -> SelectionResult.

Usage:
    request = candidates.create_scan_request("example.org", 100)
    result = discover(request, load_limits())
    result.to_dict()

Tiers run one after another because each tier only runs when the previous ones
left a shortfall or a mandatory category uncovered. Candidates gathered by
earlier tiers are always kept.
"""
from __future__ import annotations

import logging
import random
import threading
from typing import Callable

import requests

from candidate_merge import (
    aggregate_priority_coverage,
    collapse_year_variants,
    count_by_source,
    ensure_critical_pages,
    merge_candidates,
)
from candidates import Candidate, DiscoveryLog, ScanRequest, SelectionResult
from config import DiscoveryLimits
from diversity_select import DiversitySelection, select_diverse
from errors import ScanCancelled
from escalation import TIERS, EscalationPolicy
from harvesters import harvest_homepage, harvest_search
from scan_context import ScanContext
from site_crawl import crawl_site
from sitemap_harvest import harvest_sitemap

logger = logging.getLogger(__name__)


def _run_crawl(ctx: ScanContext, merged, policy: EscalationPolicy) -> list[Candidate]:
    missing = set(policy.missing_signals(merged))
    return crawl_site(
        ctx,
        known_keys={item.key for item in merged},
        target_count=ctx.request.requested_count,
        missing_signals=missing,
    )


HARVESTERS: dict[str, Callable] = {
    "sitemap": lambda ctx, merged, policy: harvest_sitemap(ctx),
    "search": lambda ctx, merged, policy: harvest_search(ctx),
    "homepage-fallback": lambda ctx, merged, policy: harvest_homepage(ctx),
    "crawl": _run_crawl,
}


def active_tiers(limits: DiscoveryLimits) -> tuple:
    if limits.search_enabled:
        return TIERS
    return tuple(tier for tier in TIERS if tier != "search")


def assemble_result(
    request: ScanRequest,
    selection: DiversitySelection,
    log: DiscoveryLog,
    total_discovered: int,
) -> SelectionResult:
    selected_urls = tuple(selection.urls)
    returned = len(selected_urls)
    return SelectionResult(
        request_id=request.request_id,
        selected_urls=selected_urls,
        requested_count=request.requested_count,
        returned_count=returned,
        shortfall_count=max(0, request.requested_count - returned),
        priority_coverage=aggregate_priority_coverage(selection.selected),
        total_discovered_pages=total_discovered,
        discovery_summary=log.freeze(),
    )


def discover(
    request: ScanRequest,
    limits: DiscoveryLimits | None = None,
    session: requests.Session | None = None,
    rng: random.Random | None = None,
    cancel_event: threading.Event | None = None,
) -> SelectionResult:
    limits = limits or DiscoveryLimits()
    log = DiscoveryLog(request_id=request.request_id)
    policy = EscalationPolicy(request.requested_count, tiers=active_tiers(limits))
    raw_lists: list[list[Candidate]] = []
    merged = []

    logger.info(f"[{request.request_id}] Discovering top tasks for {request.canonical_host} (n={request.requested_count})")
    with ScanContext(request, limits, session=session, log=log, cancel_event=cancel_event) as ctx:
        tier = policy.current_tier
        while tier is not None:
            if ctx.cancelled():
                raise ScanCancelled(f"Scan {request.request_id} cancelled before {tier}.")
            log.attempt(tier)
            raw = HARVESTERS[tier](ctx, merged, policy)
            log.add_raw(tier, len(raw))
            raw_lists.append(raw)
            merged = merge_candidates(raw_lists, request.canonical_host)
            logger.info(f"[{request.request_id}] {tier}: {len(raw)} raw, {len(merged)} merged")
            tier = policy.next_tier(merged)
            log.add_reasons(policy.trigger_reasons)

    if cancel_event is not None and cancel_event.is_set():
        raise ScanCancelled(f"Scan {request.request_id} cancelled.")

    ranked = ensure_critical_pages(merged, request, score=limits.critical_page_score)
    log.accepted_counts.update(count_by_source(ranked))
    log.priority_coverage.update(aggregate_priority_coverage(ranked))

    collapsed = collapse_year_variants(ranked, max_recent=limits.year_group_cap)
    selection = select_diverse(collapsed, request.requested_count, limits, rng=rng)
    result = assemble_result(request, selection, log, total_discovered=len(ranked))
    logger.info(
        f"[{request.request_id}] Selected {result.returned_count}/{result.requested_count} URL(s) "
        f"(shortfall {result.shortfall_count})"
    )
    return result
