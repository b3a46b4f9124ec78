from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging
import threading

import requests

from candidates import DiscoveryLog, ScanRequest
from config import DiscoveryLimits
import http_fetch
from http_fetch import FetchResult
from net_guardrails import parse_robots, parse_robots_sitemaps, robots_disallows
from safe_fetch import safe_session

logger = logging.getLogger(__name__)


class ScanContext:
    """
    Everything one scan request shares across its harvesters: the HTTP session,
    resolved limits, the discovery log, the caller's cancel event, a bounded
    worker pool and the robots.txt fetched at most once.
    """

    def __init__(
        self,
        request: ScanRequest,
        limits: DiscoveryLimits,
        session: requests.Session | None = None,
        log: DiscoveryLog | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.request = request
        self.limits = limits
        self._owns_session = session is None
        self.session = session if session is not None else safe_session(pool_size=max(limits.fetch_workers, 1) * 2)
        self.log = log if log is not None else DiscoveryLog(request_id=request.request_id)
        self.cancel_event = cancel_event or threading.Event()
        self._executor: ThreadPoolExecutor | None = None
        self._robots_lock = threading.Lock()
        self._robots_body: str | None = None

    @property
    def site_root(self) -> str:
        parsed = self.request.normalized_url
        return f"{parsed.scheme}://{parsed.netloc}"

    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def warn(self, message: str) -> None:
        logger.warning(f"[{self.request.request_id}] {message}")
        self.log.warn(message)

    def fetch(self, url: str, params: dict | None = None) -> FetchResult:
        if self.cancelled():
            return FetchResult(None, "", url, {}, "cancelled")
        result = http_fetch.fetch(
            url,
            session=self.session,
            max_bytes=self.limits.max_html_bytes,
            timeout=self.limits.request_timeout,
            params=params,
        )
        logger.debug(f"GET {url} -> status={result.status} error={result.error}")
        return result

    def fetch_many(self, urls: list[str]) -> list[FetchResult]:
        """Fetches one wave concurrently; results come back in input order."""
        if len(urls) <= 1 or self.limits.fetch_workers <= 1:
            return [self.fetch(url) for url in urls]
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.limits.fetch_workers)
        return list(self._executor.map(self.fetch, urls))

    def robots_body(self) -> str:
        with self._robots_lock:
            if self._robots_body is None:
                result = self.fetch(f"{self.site_root}/robots.txt")
                self._robots_body = result.body if result.ok else ""
                if not result.ok:
                    logger.debug(f"robots.txt unavailable for {self.site_root}: {result.error or result.status}")
            return self._robots_body

    def robots_sitemaps(self) -> list[str]:
        return parse_robots_sitemaps(self.robots_body())

    def robots_allows(self, url: str) -> bool:
        if not self.limits.respect_robots:
            return True
        disallowed, _ = robots_disallows(url, parse_robots(self.robots_body()))
        return not disallowed

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "ScanContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
