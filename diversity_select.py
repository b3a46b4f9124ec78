"""
diversity_select.py - Diversity-capped top-K selection with random backfill.

One pass over score-ordered candidates. Homepage and search pages are always
taken. Anything else is skipped when one of its path segments or its leading
prefix has already hit a cap. When the pass leaves the quota short, skipped
candidates are drawn uniformly at random.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import random

from candidates import ScoredCandidate
from config import DiscoveryLimits
from url_canon import path_segments


@dataclass(frozen=True)
class DiversitySelection:
    selected: tuple
    accepted: tuple
    skipped: tuple
    backfilled: tuple

    @property
    def urls(self) -> list[str]:
        return [candidate.url for candidate in self.selected]


class SegmentCounter:
    """Running counts over accepted URLs."""

    def __init__(self, limits: DiscoveryLimits):
        self.limits = limits
        self.first_segments: Counter = Counter()
        self.prefixes: Counter = Counter()
        self.deep_segments: Counter = Counter()

    def _prefix(self, segments: list[str]) -> tuple | None:
        depth = self.limits.prefix_depth
        if len(segments) < depth:
            return None
        return tuple(segments[:depth])

    def rejects(self, segments: list[str]) -> bool:
        if not segments:
            return False
        if self.first_segments[segments[0]] >= self.limits.first_segment_cap:
            return True
        prefix = self._prefix(segments)
        if prefix is not None and self.prefixes[prefix] >= self.limits.prefix_cap:
            return True
        # the same keyword repeated at varying depths, e.g. /a/archive/x and /b/c/archive
        return any(self.deep_segments[seg] >= self.limits.segment_repeat_cap for seg in segments[1:])

    def add(self, segments: list[str]) -> None:
        if not segments:
            return
        self.first_segments[segments[0]] += 1
        prefix = self._prefix(segments)
        if prefix is not None:
            self.prefixes[prefix] += 1
        for seg in segments[1:]:
            self.deep_segments[seg] += 1


def select_diverse(
    candidates: list[ScoredCandidate],
    requested_count: int,
    limits: DiscoveryLimits | None = None,
    rng: random.Random | None = None,
) -> DiversitySelection:
    limits = limits or DiscoveryLimits()
    rng = rng or random.Random()
    counter = SegmentCounter(limits)
    accepted: list[ScoredCandidate] = []
    skipped: list[ScoredCandidate] = []

    for candidate in candidates:
        segments = path_segments(candidate.url)
        always = candidate.has_signal("homepage") or candidate.has_signal("search")
        if not always and counter.rejects(segments):
            skipped.append(candidate)
            continue
        accepted.append(candidate)
        counter.add(segments)

    backfilled: list[ScoredCandidate] = []
    shortfall = requested_count - len(accepted)
    if shortfall > 0 and skipped:
        backfilled = rng.sample(skipped, min(shortfall, len(skipped)))

    selected = (accepted + backfilled)[: max(requested_count, 0)]
    return DiversitySelection(
        selected=tuple(selected),
        accepted=tuple(accepted),
        skipped=tuple(skipped),
        backfilled=tuple(backfilled),
    )
