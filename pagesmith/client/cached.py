"""
Cached HTTP client for backend fetches.

Wraps a shared httpx.AsyncClient with an in-memory response cache so that
many handlers hitting the same backend URL share one upstream request per
cache lifetime. Concurrent misses on a URL wait for the request already in
flight rather than starting their own.

Caching rules:
    - Only successful (2xx) GET responses are stored
    - Lifetime comes from the response's ``Cache-Control: max-age``,
      falling back to ``default_ttl``
    - ``no-store``, ``no-cache`` and ``private`` responses are not stored
    - Least recently used entries are evicted above ``max_entries``
      (cachetools.TLRUCache)

Usage:
    async with CachedClient(timeout=5.0) as client:
        response = await client.fetch("https://api.example.com/items")
        response.status_code, response.body
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field

import httpx
from cachetools import TLRUCache

from pagesmith.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_TTL = 60.0
DEFAULT_MAX_ENTRIES = 1024

_MAX_AGE = re.compile(r"(?:^|,)\s*(?:s-maxage|max-age)\s*=\s*\"?(\d+)\"?", re.IGNORECASE)
_UNCACHEABLE = ("no-store", "no-cache", "private")


@dataclass(frozen=True, slots=True)
class FetchResponse:
    """Outcome of a backend fetch."""

    status_code: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)
    from_cache: bool = False

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True, slots=True)
class _Entry:
    response: FetchResponse
    ttl: float


def _entry_expiry(url: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


def cache_lifetime(headers: httpx.Headers | dict[str, str], default: float) -> float:
    """
    Seconds a response may be cached for, 0 meaning not at all.

    Args:
        headers: Response headers
        default: Lifetime used when the response states none
    """
    value = headers.get("cache-control", "")
    if not value:
        return default
    directives = value.lower()
    if any(token in directives for token in _UNCACHEABLE):
        return 0.0
    match = _MAX_AGE.search(directives)
    if match:
        return float(match.group(1))
    return default


class CachedClient:
    """
    HTTP GET client with a shared in-memory response cache.

    Safe to share between handlers: the cache is guarded by an asyncio.Lock,
    concurrent misses on one URL join a single in-flight request, and the
    underlying httpx client pools connections.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        default_ttl: float = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        transport: httpx.AsyncBaseTransport | None = None,
        clock=time.monotonic,
    ):
        self.timeout = timeout
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        # Per-entry lifetime from each response's Cache-Control, LRU above max_entries
        self._cache: TLRUCache = TLRUCache(maxsize=max_entries, ttu=_entry_expiry, timer=clock)
        self._lock = asyncio.Lock()
        self._inflight: dict[str, asyncio.Task] = {}

    async def __aenter__(self) -> CachedClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Accept": "application/json"},
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @property
    def cached_urls(self) -> list[str]:
        return list(self._cache)

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()

    async def _lookup(self, url: str) -> FetchResponse | None:
        async with self._lock:
            entry = self._cache.get(url)
        return entry.response if entry is not None else None

    async def _store(self, url: str, response: FetchResponse, ttl: float) -> None:
        async with self._lock:
            self._cache[url] = _Entry(response=response, ttl=ttl)

    async def fetch(self, url: str) -> FetchResponse:
        """
        GET ``url``, answering from the cache when possible.

        Non-success statuses are returned, not raised. Callers that miss
        the cache while a request for the same URL is running share its
        outcome instead of issuing their own.

        Raises:
            FetchError: On invalid URLs, timeouts and network failures
        """
        cached = await self._lookup(url)
        if cached is not None:
            logger.debug(f"[client] Cache hit {url}")
            return FetchResponse(
                status_code=cached.status_code,
                body=cached.body,
                headers=cached.headers,
                from_cache=True,
            )

        task = self._inflight.get(url)
        if task is None:
            task = asyncio.ensure_future(self._request(url))
            self._inflight[url] = task
            task.add_done_callback(lambda done: self._forget(url, done))
        else:
            logger.debug(f"[client] Joining in-flight request {url}")
        # A cancelled caller must not cancel the request others are waiting on
        return await asyncio.shield(task)

    def _forget(self, url: str, task: asyncio.Task) -> None:
        if self._inflight.get(url) is task:
            del self._inflight[url]

    async def _request(self, url: str) -> FetchResponse:
        client = self._get_client()
        try:
            response = await client.get(url)
        except httpx.TimeoutException as e:
            raise FetchError(f"Request timeout: {e}", url) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Request failed: {e}", url) from e
        except (httpx.InvalidURL, ValueError) as e:
            raise FetchError(f"Invalid URL: {e}", url) from e

        result = FetchResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )
        logger.debug(f"[client] GET {url} -> {response.status_code}")

        if result.is_success:
            ttl = cache_lifetime(response.headers, self.default_ttl)
            if ttl > 0:
                await self._store(url, result, ttl)
        return result
