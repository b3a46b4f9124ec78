import threading

import pytest

import http_fetch
from candidates import create_scan_request
from config import DiscoveryLimits
from net_guardrails import MAX_REDIRECTS
from scan_context import ScanContext


class _Resp:
    def __init__(self, status_code, url, headers=None, body=b""):
        self.status_code = status_code
        self.url = url
        self.headers = headers or {}
        self._body = body if isinstance(body, bytes) else body.encode("utf-8")
        self.encoding = "utf-8"
        self.closed = False

    def iter_content(self, chunk_size=16384):
        yield self._body

    def close(self):
        self.closed = True


class FakeSite:
    """A requests.Session stand-in serving canned pages keyed by exact URL."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.max_redirects = MAX_REDIRECTS
        self.trust_env = True
        self.requests = []
        self.params = []
        self.cancel_after = None
        self.cancel_event = None
        self._lock = threading.Lock()

    def add(self, url, body, status=200, content_type="text/html; charset=utf-8", headers=None):
        merged = {"Content-Type": content_type}
        merged.update(headers or {})
        self.pages[url] = (status, body, merged)

    def get(self, url, headers=None, timeout=None, stream=None, allow_redirects=None, params=None):
        with self._lock:
            self.requests.append(url)
            self.params.append(params)
        if url == self.cancel_after and self.cancel_event is not None:
            self.cancel_event.set()
        if url not in self.pages:
            return _Resp(404, url, {"Content-Type": "text/html"}, b"not found")
        status, body, page_headers = self.pages[url]
        return _Resp(status, url, dict(page_headers), body)

    def close(self):
        pass


def sitemap_xml(urls):
    entries = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'


def sitemap_index_xml(urls):
    entries = "".join(f"<sitemap><loc>{u}</loc></sitemap>" for u in urls)
    return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</sitemapindex>'


@pytest.fixture(autouse=True)
def _no_dns(monkeypatch):
    monkeypatch.setattr(http_fetch, "validate_url", lambda _u: None)


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def make_ctx(site):
    contexts = []

    def _make(url="https://example.org", count=100, **limit_overrides):
        limits = DiscoveryLimits(**limit_overrides)
        ctx = ScanContext(create_scan_request(url, count), limits, session=site)
        contexts.append(ctx)
        return ctx

    yield _make
    for ctx in contexts:
        ctx.close()
