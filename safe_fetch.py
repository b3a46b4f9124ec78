"""
safe_fetch.py - SSRF-protected HTTP client with DNS Pinning.

Usage:
    session = safe_session()
    resp = session.get("https://example.com")

Each connection pool resolves its host once, refuses private addresses and then
connects to that exact address, so a second DNS answer cannot redirect the socket.
"""

import socket

import requests
from requests.adapters import HTTPAdapter
from urllib3 import PoolManager
from urllib3.connection import HTTPConnection, HTTPSConnection

from net_guardrails import DEFAULT_HEADERS, MAX_REDIRECTS, resolve_public_ip


class PinnedConnectionMixin:
    """Mixin to pin the connection to a specific IP address."""

    def __init__(self, *args, **kwargs):
        self._pinned_ip = kwargs.pop("pinned_ip", None)
        super().__init__(*args, **kwargs)

    def _new_conn(self):
        if not self._pinned_ip:
            return super()._new_conn()
        timeout = self.timeout if isinstance(self.timeout, (int, float)) else None
        extra_kw = {}
        if self.source_address:
            extra_kw["source_address"] = self.source_address
        # We connect to (IP, port) instead of (hostname, port); TLS still uses self.host for SNI.
        return socket.create_connection((self._pinned_ip, self.port), timeout, **extra_kw)


class PinnedHTTPConnection(PinnedConnectionMixin, HTTPConnection):
    pass


class PinnedHTTPSConnection(PinnedConnectionMixin, HTTPSConnection):
    pass


class PinnedPoolManager(PoolManager):
    """Resolves and checks each new pool's host, then pins its connections to that IP."""

    def _new_pool(self, scheme, host, port, request_context=None):
        pinned_ip = resolve_public_ip(host)
        pool = super()._new_pool(scheme, host, port, request_context=request_context)
        pool.ConnectionCls = PinnedHTTPSConnection if scheme == "https" else PinnedHTTPConnection
        pool.conn_kw = dict(pool.conn_kw, pinned_ip=pinned_ip)
        return pool


class SafeTransportAdapter(HTTPAdapter):
    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        self._pool_connections = connections
        self._pool_maxsize = maxsize
        self._pool_block = block
        self.poolmanager = PinnedPoolManager(
            num_pools=connections, maxsize=maxsize, block=block, **pool_kwargs
        )


def safe_session(pool_size: int = 10) -> requests.Session:
    """Create a requests Session that enforces SSRF protection via DNS pinning."""
    session = requests.Session()
    adapter = SafeTransportAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update(DEFAULT_HEADERS)
    session.max_redirects = MAX_REDIRECTS
    session.trust_env = False
    return session
