"""
candidates.py - Request-scoped value types for one discovery run.

Candidate        raw (url, source) pair emitted by a harvester
ScoredCandidate  merged, scored representative of one dedupe key
ScanRequest      validated caller input
DiscoveryLog     append-only record filled while harvesting; freeze() -> DiscoverySummary
SelectionResult  final output, serialised with to_dict()
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import threading
from typing import Any
import uuid

import config
from errors import InvalidUrl
from signal_detector import PRIORITY_CATEGORIES
from url_canon import NormalizedUrl, normalize

SOURCES = ("sitemap", "search", "homepage-fallback", "crawl", "critical-pages", "unknown")


@dataclass(frozen=True)
class Candidate:
    url: str
    source: str = "unknown"


@dataclass(frozen=True)
class ScoredCandidate:
    url: str
    source: str
    score: int
    priority_signals: frozenset = frozenset()
    sources: frozenset = frozenset()
    key: str = ""

    def has_signal(self, category: str) -> bool:
        return category in self.priority_signals


@dataclass(frozen=True)
class ScanRequest:
    canonical_host: str
    normalized_url: NormalizedUrl
    requested_count: int
    request_id: str


def clamp_requested_count(value: Any, maximum: int = config.MAX_REQUESTED_COUNT) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return config.DEFAULT_REQUESTED_COUNT
    if isinstance(value, float) and not value.is_integer():
        return config.DEFAULT_REQUESTED_COUNT
    if parsed < 1:
        return config.DEFAULT_REQUESTED_COUNT
    return min(maximum, parsed)


def create_scan_request(raw_url: str, requested_count: Any = None, max_count: int = config.MAX_REQUESTED_COUNT) -> ScanRequest:
    """Normalises the caller's URL (raising InvalidUrl) and clamps the count."""
    normalized = normalize(raw_url)
    if not normalized.hostname:
        raise InvalidUrl(f"Enter a valid domain or URL: {raw_url!r}")
    return ScanRequest(
        canonical_host=normalized.hostname,
        normalized_url=normalized,
        requested_count=clamp_requested_count(requested_count, max_count),
        request_id=f"scan-{uuid.uuid4().hex[:12]}",
    )


def empty_coverage() -> dict[str, bool]:
    return {key: False for key in PRIORITY_CATEGORIES}


@dataclass(frozen=True)
class DiscoverySummary:
    request_id: str
    sources_attempted: tuple
    fallback_used: bool
    fallback_trigger_reasons: tuple
    warnings: tuple
    source_counts: dict
    priority_coverage: dict

    def to_dict(self) -> dict[str, Any]:
        return {
            "requestId": self.request_id,
            "sourcesAttempted": list(self.sources_attempted),
            "fallbackUsed": self.fallback_used,
            "fallbackTriggerReasons": list(self.fallback_trigger_reasons),
            "warnings": list(self.warnings),
            "sourceCounts": {
                "raw": dict(self.source_counts.get("raw", {})),
                "accepted": dict(self.source_counts.get("accepted", {})),
            },
            "priorityCoverage": dict(self.priority_coverage),
        }


@dataclass
class DiscoveryLog:
    request_id: str
    sources_attempted: list = field(default_factory=list)
    fallback_trigger_reasons: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    raw_counts: dict = field(default_factory=dict)
    accepted_counts: dict = field(default_factory=dict)
    priority_coverage: dict = field(default_factory=empty_coverage)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def warn(self, message: str) -> None:
        with self._lock:
            self.warnings.append(message)

    def attempt(self, source: str) -> None:
        with self._lock:
            if source not in self.sources_attempted:
                self.sources_attempted.append(source)

    def add_raw(self, source: str, count: int) -> None:
        with self._lock:
            self.raw_counts[source] = self.raw_counts.get(source, 0) + count

    def add_reasons(self, reasons: list[str]) -> None:
        with self._lock:
            for reason in reasons:
                if reason not in self.fallback_trigger_reasons:
                    self.fallback_trigger_reasons.append(reason)

    def freeze(self) -> DiscoverySummary:
        with self._lock:
            return DiscoverySummary(
                request_id=self.request_id,
                sources_attempted=tuple(self.sources_attempted),
                fallback_used=len(self.sources_attempted) > 1,
                fallback_trigger_reasons=tuple(self.fallback_trigger_reasons),
                warnings=tuple(self.warnings),
                source_counts={
                    "raw": dict(self.raw_counts),
                    "accepted": dict(self.accepted_counts),
                },
                priority_coverage=dict(self.priority_coverage),
            )


@dataclass(frozen=True)
class SelectionResult:
    request_id: str
    selected_urls: tuple
    requested_count: int
    returned_count: int
    shortfall_count: int
    priority_coverage: dict
    total_discovered_pages: int
    discovery_summary: DiscoverySummary
    generated_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "requestId": self.request_id,
            "selectedUrls": list(self.selected_urls),
            "requestedCount": self.requested_count,
            "returnedCount": self.returned_count,
            "shortfallCount": self.shortfall_count,
            "priorityCoverage": dict(self.priority_coverage),
            "totalDiscoveredPages": self.total_discovered_pages,
            "discoverySummary": self.discovery_summary.to_dict(),
            "generatedAt": self.generated_at,
        }
