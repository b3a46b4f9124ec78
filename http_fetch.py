from __future__ import annotations

import logging
from typing import NamedTuple
from urllib.parse import urljoin

import requests

from net_guardrails import (
    DEFAULT_HEADERS,
    DEFAULT_TIMEOUT,
    MAX_HTML_BYTES,
    MAX_REDIRECTS,
    read_limited_text,
    redact_headers,
    validate_url,
)
from safe_fetch import safe_session

logger = logging.getLogger(__name__)

HEADERS = DEFAULT_HEADERS
REDIRECT_STATUSES = (301, 302, 303, 307, 308)


class FetchResult(NamedTuple):
    status: int | None
    body: str
    final_url: str
    headers: dict
    error: str | None

    @property
    def ok(self) -> bool:
        return self.error is None and self.status == 200 and bool(self.body)

    @property
    def content_type(self) -> str:
        return (self.headers.get("Content-Type") or self.headers.get("content-type") or "").lower()


def fetch(
    url: str,
    session: requests.Session | None = None,
    max_bytes: int | None = MAX_HTML_BYTES,
    timeout: float = DEFAULT_TIMEOUT,
    params: dict | None = None,
) -> FetchResult:
    """
    GET with manual redirects so every hop is re-validated against the guardrails.
    Never raises for network problems; the error field carries the reason.
    """
    try:
        validate_url(url)
    except ValueError:
        return FetchResult(None, "", url, {}, "invalid_url")

    if session is None:
        session = safe_session()

    current_url = url
    redirects = 0
    while True:
        try:
            resp = session.get(
                current_url,
                headers=HEADERS,
                timeout=timeout,
                stream=True,
                allow_redirects=False,
                params=params,
            )
        except requests.TooManyRedirects:
            return FetchResult(None, "", current_url, {}, "too_many_redirects")
        except ValueError:
            return FetchResult(None, "", current_url, {}, "invalid_url")
        except requests.exceptions.RequestException as exc:
            logger.debug(f"Fetch failed for {current_url}: {exc}")
            return FetchResult(None, "", current_url, {}, "fetch_error")
        # query params only apply to the first hop; redirect targets carry their own
        params = None

        try:
            status = resp.status_code
            if status in REDIRECT_STATUSES:
                location = (resp.headers or {}).get("Location")
                if not location:
                    return FetchResult(None, "", current_url, redact_headers(resp.headers or {}), "fetch_error")
                redirects += 1
                if redirects > MAX_REDIRECTS:
                    return FetchResult(None, "", current_url, {}, "too_many_redirects")
                next_url = urljoin(current_url, location)
                try:
                    validate_url(next_url)
                except ValueError:
                    return FetchResult(None, "", next_url, {}, "invalid_url")
                current_url = next_url
                continue

            try:
                text, too_large = read_limited_text(resp, max_bytes)
            except requests.exceptions.RequestException as exc:
                logger.debug(f"Body read failed for {current_url}: {exc}")
                return FetchResult(status, "", resp.url or current_url, redact_headers(resp.headers or {}), "fetch_error")
            final_url = resp.url or current_url
            if too_large:
                return FetchResult(status, "", final_url, redact_headers(resp.headers or {}), "too_large")
            return FetchResult(status, text or "", final_url, redact_headers(resp.headers or {}), None)
        finally:
            resp.close()
