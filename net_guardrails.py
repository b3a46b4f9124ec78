from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import urlparse
import socket
import ipaddress

import config

DEFAULT_USER_AGENT = config.USER_AGENT
DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/html,application/xml,text/xml;q=0.9,*/*;q=0.8",
}
DEFAULT_TIMEOUT = 15
MAX_HTML_BYTES = 2 * 1024 * 1024
MAX_REDIRECTS = 10

SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie", "x-api-key"}
PRIVATE_IP_RANGES = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]


def redact_headers(headers: Mapping[str, Any]) -> dict[str, str]:
    return {
        str(name): "[REDACTED]" if str(name).lower() in SENSITIVE_HEADERS else str(value)
        for name, value in (headers or {}).items()
    }


def _check_public(ip_str: str) -> None:
    ip_obj = ipaddress.ip_address(ip_str)
    for private_range in PRIVATE_IP_RANGES:
        if ip_obj in private_range:
            raise ValueError(f"Target resolves to private IP: {ip_str}")


def resolve_public_ip(hostname: str) -> str:
    """
    Resolves hostname and returns the first address, refusing private ranges.
    Raises ValueError when resolution fails (fail closed) or any address is private.
    """
    try:
        ip_list = socket.getaddrinfo(hostname, None, proto=socket.IPPROTO_TCP)
    except socket.gaierror:
        raise ValueError(f"DNS resolution failed for {hostname}")
    if not ip_list:
        raise ValueError(f"DNS resolution failed for {hostname}")
    for _, _, _, _, sockaddr in ip_list:
        _check_public(sockaddr[0])
    return ip_list[0][4][0]


def validate_url(url: str) -> None:
    """
    Validates that the URL uses a safe scheme and does not resolve to a private IP.
    Raises ValueError if unsafe.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Unsafe scheme: {parsed.scheme}")

    if not parsed.hostname:
        raise ValueError("Missing hostname")

    resolve_public_ip(parsed.hostname)


def _declared_charset(resp: Any) -> str:
    # UTF-8 unless a charset is declared; requests would assume ISO-8859-1 for text/*
    content_type = str((resp.headers or {}).get("Content-Type") or "")
    for param in content_type.split(";")[1:]:
        name, _, value = param.partition("=")
        if name.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"')
    return "utf-8"


def read_limited_text(resp: Any, max_bytes: int | None) -> tuple[str, bool]:
    """Returns (text, too_large). Stops reading as soon as max_bytes is exceeded."""
    declared = (resp.headers or {}).get("Content-Length")
    if max_bytes is not None and declared and str(declared).isdigit() and int(declared) > max_bytes:
        return "", True

    buffer = bytearray()
    for chunk in resp.iter_content(chunk_size=16384):
        buffer.extend(chunk or b"")
        if max_bytes is not None and len(buffer) > max_bytes:
            return "", True
    try:
        return bytes(buffer).decode(_declared_charset(resp), errors="replace"), False
    except LookupError:
        return bytes(buffer).decode("utf-8", errors="replace"), False


def _robots_lines(text: str):
    for raw in (text or "").splitlines():
        line = raw.strip()
        if "#" in line:
            line = line.split("#", 1)[0].strip()
        if line:
            yield line


def parse_robots(text: str) -> dict[str, list[str]]:
    ua_rules: dict[str, list[str]] = {}
    current_uas: list[str] = []
    in_rules = False
    for line in _robots_lines(text):
        lower = line.lower()
        if lower.startswith("user-agent:"):
            ua = line.split(":", 1)[1].strip().lower()
            # consecutive User-agent lines share one group
            if in_rules:
                current_uas = []
                in_rules = False
            current_uas.append(ua)
            ua_rules.setdefault(ua, [])
            continue
        if lower.startswith("disallow:"):
            in_rules = True
            rule = line.split(":", 1)[1].strip()
            if not current_uas:
                current_uas = ["*"]
            for ua in current_uas:
                ua_rules.setdefault(ua, []).append(rule)
        elif lower.startswith("allow:"):
            in_rules = True
    return ua_rules


def parse_robots_sitemaps(text: str) -> list[str]:
    sitemaps: list[str] = []
    for line in _robots_lines(text):
        if line.lower().startswith("sitemap:"):
            sm = line.split(":", 1)[1].strip()
            if sm:
                sitemaps.append(sm)
    return sitemaps


def robots_disallows(url: str, ua_rules: dict[str, list[str]]) -> tuple[bool, str | None]:
    path = urlparse(url).path or "/"
    rules = (ua_rules.get("*", []) or []) + (ua_rules.get("top-task-finder", []) or [])
    for rule in rules:
        rule = (rule or "").strip()
        if not rule:
            continue
        if rule == "/":
            return True, rule
        if rule.startswith("/") and path.startswith(rule):
            return True, rule
    return False, None
