from __future__ import annotations

from url_canon import NormalizedUrl, normalize, path_segments
from signal_detector import detect_signals

# Sitemap entries are author-declared pages; crawl reachability says little about importance.
SOURCE_WEIGHTS = {
    "sitemap": 40,
    "search": 28,
    "homepage-fallback": 20,
    "crawl": 15,
    "unknown": 10,
}

PRIORITY_WEIGHTS = {
    "homepage": 35,
    "accessibility": 22,
    "search": 18,
    "topTask": 14,
    "contact": 12,
    "about": 10,
    "help": 10,
    "resources": 8,
}

DEPTH_BASE = 15
DEPTH_STEP = 2

QUERY_PENALTY = 4
QUERY_PENALTY_SOURCES = {"search", "homepage-fallback", "crawl"}


def source_weight(source: str) -> int:
    return SOURCE_WEIGHTS.get(source, SOURCE_WEIGHTS["unknown"])


def depth_weight(segment_count: int) -> int:
    return max(0, DEPTH_BASE - DEPTH_STEP * segment_count)


def score_candidate(url: str | NormalizedUrl, source: str) -> tuple[int, frozenset]:
    """Returns (score, matched signal categories). Pure: no I/O, no randomness."""
    parsed = normalize(url)
    signals = detect_signals(parsed.path)
    matched = frozenset(key for key, found in signals.items() if found)

    score = source_weight(source) + depth_weight(len(path_segments(parsed)))
    score += sum(PRIORITY_WEIGHTS.get(key, 0) for key in matched)
    if parsed.query and source in QUERY_PENALTY_SOURCES:
        score -= QUERY_PENALTY
    return score, matched
