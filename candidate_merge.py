from __future__ import annotations

from collections import Counter
import re
from typing import Iterable

from candidates import Candidate, ScanRequest, ScoredCandidate, empty_coverage
from errors import InvalidUrl
from scoring import score_candidate
from url_canon import dedupe_key, in_scope, looks_like_html, normalize

# -2019, /2020, _2021-2022 ... followed by a separator or the end of the path
YEAR_TOKEN = re.compile(r"[-_/]((?:19|20)\d{2})(?:[-_]((?:19|20)\d{2}))?(?=[-_/.]|$)")
YEAR_VALUE = re.compile(r"[-_/]((?:19|20)\d{2})(?=\D|$)")


def _sort_key(candidate: ScoredCandidate) -> tuple[int, str]:
    return (-candidate.score, candidate.url)


def merge_candidates(candidate_lists: Iterable[Iterable[Candidate]], canonical_host: str) -> list[ScoredCandidate]:
    """
    Folds raw candidates from any number of sources into one scored set: one
    representative per dedupe key (highest score, first seen on ties) carrying
    every source that produced the key. Sorted by score, then URL.
    """
    best: dict[str, ScoredCandidate] = {}
    sources: dict[str, set[str]] = {}

    for candidates in candidate_lists:
        for candidate in candidates:
            if candidate is None or not candidate.url:
                continue
            try:
                parsed = normalize(candidate.url)
            except InvalidUrl:
                continue
            if not in_scope(parsed, canonical_host) or not looks_like_html(parsed):
                continue

            key = dedupe_key(parsed)
            source = candidate.source or "unknown"
            sources.setdefault(key, set()).add(source)
            score, signals = score_candidate(parsed, source)
            existing = best.get(key)
            if existing is None or score > existing.score:
                best[key] = ScoredCandidate(
                    url=parsed.href,
                    source=source,
                    score=score,
                    priority_signals=signals,
                    key=key,
                )

    merged = [
        ScoredCandidate(
            url=item.url,
            source=item.source,
            score=item.score,
            priority_signals=item.priority_signals,
            sources=frozenset(sources[key]),
            key=key,
        )
        for key, item in best.items()
    ]
    merged.sort(key=_sort_key)
    return merged


def _year_pattern_key(candidate: ScoredCandidate) -> str | None:
    parsed = normalize(candidate.url)
    if not YEAR_TOKEN.search(parsed.path):
        return None
    return f"{parsed.hostname}{YEAR_TOKEN.sub('-{YEAR}', parsed.path)}"


def _max_year(candidate: ScoredCandidate) -> int:
    years = [int(year) for year in YEAR_VALUE.findall(normalize(candidate.url).path)]
    return max(years) if years else 0


def collapse_year_variants(candidates: list[ScoredCandidate], max_recent: int = 3) -> list[ScoredCandidate]:
    """
    Keeps only the max_recent newest members of each dated series (paths that
    are identical once their year tokens are masked). Survivors keep input order.
    """
    groups: dict[str, list[ScoredCandidate]] = {}
    for candidate in candidates:
        pattern = _year_pattern_key(candidate)
        if pattern is not None:
            groups.setdefault(pattern, []).append(candidate)

    dropped: set[str] = set()
    for group in groups.values():
        if len(group) <= max_recent:
            continue
        newest_first = sorted(group, key=_max_year, reverse=True)
        dropped.update(item.key or item.url for item in newest_first[max_recent:])

    return [item for item in candidates if (item.key or item.url) not in dropped]


def ensure_critical_pages(candidates: list[ScoredCandidate], request: ScanRequest, score: int = 1000) -> list[ScoredCandidate]:
    """Puts the site root first when no candidate carries the homepage signal."""
    if any(item.has_signal("homepage") for item in candidates):
        return list(candidates)
    root = normalize(request.normalized_url.href)
    homepage_url = f"{root.scheme}://{root.netloc}/"
    homepage = ScoredCandidate(
        url=homepage_url,
        source="critical-pages",
        score=score,
        priority_signals=frozenset({"homepage"}),
        sources=frozenset({"critical-pages"}),
        key=dedupe_key(homepage_url),
    )
    return [homepage, *candidates]


def aggregate_priority_coverage(candidates: Iterable[ScoredCandidate]) -> dict[str, bool]:
    coverage = empty_coverage()
    for candidate in candidates:
        for category in candidate.priority_signals:
            if category in coverage:
                coverage[category] = True
    return coverage


def count_by_source(candidates: Iterable[ScoredCandidate]) -> dict[str, int]:
    return dict(Counter(candidate.source for candidate in candidates))
