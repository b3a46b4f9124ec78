from __future__ import annotations

import logging
from typing import Iterable

from candidates import ScoredCandidate

logger = logging.getLogger(__name__)

TIERS = ("sitemap", "search", "homepage-fallback", "crawl")
MANDATORY_SIGNALS = ("homepage", "search", "accessibility")

MISSING_COVERAGE_REASON = "missing-priority-coverage"


def covered_signals(candidates: Iterable[ScoredCandidate]) -> set[str]:
    covered: set[str] = set()
    for candidate in candidates:
        covered.update(candidate.priority_signals)
    return covered


class EscalationPolicy:
    """
    Decides after each harvesting tier whether the next, costlier tier runs.

    The tier position only moves forward. Trigger reasons accumulate in order
    without duplicates, and a mandatory category is never reported missing
    again once it has been covered.
    """

    def __init__(self, requested_count: int, tiers: Iterable[str] = TIERS):
        self.requested_count = requested_count
        self.tiers = tuple(tiers)
        if not self.tiers:
            raise ValueError("at least one harvesting tier is required")
        self._position = 0
        self._satisfied: set[str] = set()
        self.trigger_reasons: list[str] = []

    @property
    def current_tier(self) -> str:
        return self.tiers[self._position]

    @property
    def exhausted(self) -> bool:
        return self._position >= len(self.tiers) - 1

    def missing_signals(self, candidates: Iterable[ScoredCandidate]) -> list[str]:
        self._satisfied.update(covered_signals(candidates) & set(MANDATORY_SIGNALS))
        return [signal for signal in MANDATORY_SIGNALS if signal not in self._satisfied]

    def evaluate(self, candidates: list[ScoredCandidate]) -> list[str]:
        """Reasons the current result is insufficient; empty means done."""
        reasons: list[str] = []
        shortfall = self.requested_count - len(candidates)
        if shortfall > 0:
            reasons.append(f"shortfall:{shortfall}")
        missing = self.missing_signals(candidates)
        if missing:
            reasons.append(MISSING_COVERAGE_REASON)
            reasons.extend(f"missing-priority:{signal}" for signal in missing)
        return reasons

    def next_tier(self, candidates: list[ScoredCandidate]) -> str | None:
        reasons = self.evaluate(candidates)
        if not reasons:
            logger.info(f"Tier {self.current_tier} satisfied quota and mandatory coverage")
            return None
        if self.exhausted:
            logger.info(f"All tiers exhausted; still {', '.join(reasons)}")
            return None
        for reason in reasons:
            if reason not in self.trigger_reasons:
                self.trigger_reasons.append(reason)
        self._position += 1
        logger.info(f"Escalating to {self.current_tier}: {', '.join(reasons)}")
        return self.current_tier
