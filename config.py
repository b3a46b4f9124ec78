import os
from dataclasses import dataclass

# Logging
LOG_LEVEL = os.getenv("TOPTASK_LOG_LEVEL", "INFO").upper()

# Network identity
USER_AGENT = os.getenv(
    "TOPTASK_USER_AGENT",
    "top-task-finder/1.0 (+https://github.com/mgifford/top-task-finder)",
)
SEARCH_ENDPOINT = os.getenv("TOPTASK_SEARCH_ENDPOINT", "https://html.duckduckgo.com/html/")

# Request counts
DEFAULT_REQUESTED_COUNT = int(os.getenv("TOPTASK_DEFAULT_COUNT", "100"))
MAX_REQUESTED_COUNT = int(os.getenv("TOPTASK_MAX_COUNT", "200"))


@dataclass(frozen=True)
class DiscoveryLimits:
    """Every numeric knob the engine honours. Resolved once by the caller."""

    max_sitemap_docs: int = 24
    max_raw_candidates: int = 5000
    max_search_results: int = 40
    search_enabled: bool = True
    search_endpoint: str = SEARCH_ENDPOINT
    crawl_max_depth: int = 2
    crawl_max_pages: int = 10
    fetch_workers: int = 4
    request_timeout: float = 15
    max_html_bytes: int = 2 * 1024 * 1024
    year_group_cap: int = 3
    first_segment_cap: int = 15
    prefix_cap: int = 3
    prefix_depth: int = 3
    segment_repeat_cap: int = 10
    critical_page_score: int = 1000
    respect_robots: bool = True


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_limits() -> DiscoveryLimits:
    defaults = DiscoveryLimits()
    return DiscoveryLimits(
        max_sitemap_docs=_env_int("TOPTASK_MAX_SITEMAP_DOCS", defaults.max_sitemap_docs),
        max_raw_candidates=_env_int("TOPTASK_MAX_RAW_CANDIDATES", defaults.max_raw_candidates),
        max_search_results=_env_int("TOPTASK_MAX_SEARCH_RESULTS", defaults.max_search_results),
        search_enabled=_env_flag("TOPTASK_SEARCH_ENABLED", defaults.search_enabled),
        search_endpoint=SEARCH_ENDPOINT,
        crawl_max_depth=_env_int("TOPTASK_CRAWL_MAX_DEPTH", defaults.crawl_max_depth),
        crawl_max_pages=_env_int("TOPTASK_CRAWL_MAX_PAGES", defaults.crawl_max_pages),
        fetch_workers=max(1, _env_int("TOPTASK_FETCH_WORKERS", defaults.fetch_workers)),
        request_timeout=_env_int("TOPTASK_REQUEST_TIMEOUT", int(defaults.request_timeout)),
        max_html_bytes=_env_int("TOPTASK_MAX_HTML_BYTES", defaults.max_html_bytes),
        year_group_cap=_env_int("TOPTASK_YEAR_GROUP_CAP", defaults.year_group_cap),
        first_segment_cap=_env_int("TOPTASK_FIRST_SEGMENT_CAP", defaults.first_segment_cap),
        prefix_cap=_env_int("TOPTASK_PREFIX_CAP", defaults.prefix_cap),
        prefix_depth=_env_int("TOPTASK_PREFIX_DEPTH", defaults.prefix_depth),
        segment_repeat_cap=_env_int("TOPTASK_SEGMENT_REPEAT_CAP", defaults.segment_repeat_cap),
        critical_page_score=defaults.critical_page_score,
        respect_robots=not _env_flag("TOPTASK_IGNORE_ROBOTS", False),
    )
