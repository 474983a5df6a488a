"""
Tests for the cached backend client.
"""
import asyncio

import httpx
import pytest

from pagesmith.client import CachedClient, cache_lifetime
from pagesmith.errors import FetchError


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class Backend:
    """httpx.MockTransport handler recording calls."""

    def __init__(self, status_code=200, body=b'{"ok": true}', headers=None):
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}
        self.calls: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(str(request.url))
        return httpx.Response(self.status_code, content=self.body, headers=self.headers)


def make_client(backend, **kwargs) -> CachedClient:
    return CachedClient(transport=httpx.MockTransport(backend), **kwargs)


class TestCacheLifetime:
    def test_default_without_header(self):
        assert cache_lifetime({}, 60.0) == 60.0

    def test_max_age(self):
        assert cache_lifetime({"cache-control": "public, max-age=120"}, 60.0) == 120.0

    def test_shared_max_age(self):
        assert cache_lifetime({"cache-control": "s-maxage=5"}, 60.0) == 5.0

    @pytest.mark.parametrize("directive", ["no-store", "no-cache", "private, max-age=60"])
    def test_uncacheable(self, directive):
        assert cache_lifetime({"cache-control": directive}, 60.0) == 0.0

    def test_unrelated_directives_use_default(self):
        assert cache_lifetime({"cache-control": "public"}, 30.0) == 30.0


class TestCachedClient:
    @pytest.mark.asyncio
    async def test_fetch_returns_status_and_body(self):
        backend = Backend(body=b"[1]")
        async with make_client(backend) as client:
            response = await client.fetch("http://api/items")

        assert response.status_code == 200
        assert response.body == b"[1]"
        assert response.is_success
        assert not response.from_cache

    @pytest.mark.asyncio
    async def test_second_fetch_is_served_from_cache(self):
        backend = Backend()
        async with make_client(backend) as client:
            await client.fetch("http://api/items")
            response = await client.fetch("http://api/items")

        assert response.from_cache
        assert backend.calls == ["http://api/items"]

    @pytest.mark.asyncio
    async def test_entries_expire(self):
        backend = Backend(headers={"cache-control": "max-age=10"})
        clock = FakeClock()
        async with make_client(backend, clock=clock) as client:
            await client.fetch("http://api/items")
            clock.now += 9
            await client.fetch("http://api/items")
            clock.now += 2
            response = await client.fetch("http://api/items")

        assert not response.from_cache
        assert len(backend.calls) == 2

    @pytest.mark.asyncio
    async def test_errors_are_returned_not_cached(self):
        backend = Backend(status_code=503, body=b"down")
        async with make_client(backend) as client:
            first = await client.fetch("http://api/items")
            second = await client.fetch("http://api/items")

        assert first.status_code == 503
        assert not first.is_success
        assert not second.from_cache
        assert len(backend.calls) == 2

    @pytest.mark.asyncio
    async def test_no_store_is_not_cached(self):
        backend = Backend(headers={"cache-control": "no-store"})
        async with make_client(backend) as client:
            await client.fetch("http://api/items")
            await client.fetch("http://api/items")

        assert len(backend.calls) == 2
        assert client.cached_urls == []

    @pytest.mark.asyncio
    async def test_least_recently_used_is_evicted(self):
        backend = Backend()
        async with make_client(backend, max_entries=2) as client:
            await client.fetch("http://api/a")
            await client.fetch("http://api/b")
            await client.fetch("http://api/a")
            await client.fetch("http://api/c")

            assert sorted(client.cached_urls) == ["http://api/a", "http://api/c"]

    @pytest.mark.asyncio
    async def test_clear(self):
        backend = Backend()
        async with make_client(backend) as client:
            await client.fetch("http://api/a")
            await client.clear()
            await client.fetch("http://api/a")

        assert len(backend.calls) == 2

    @pytest.mark.asyncio
    async def test_transport_failure_raises_fetch_error(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(refuse) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.fetch("http://api/items")

        assert exc_info.value.url == "http://api/items"

    @pytest.mark.asyncio
    async def test_timeout_raises_fetch_error(self):
        def slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        async with make_client(slow) as client:
            with pytest.raises(FetchError, match="timeout"):
                await client.fetch("http://api/items")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["/api/x", "http://api:notaport/x"])
    async def test_invalid_url_raises_fetch_error(self, url):
        async with make_client(Backend()) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.fetch(url)

        assert exc_info.value.url == url

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_request(self):
        calls = []

        async def slow(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            await asyncio.sleep(0.01)
            return httpx.Response(200, content=b"[]")

        async with make_client(slow) as client:
            responses = await asyncio.gather(*(client.fetch("http://api/a") for _ in range(5)))

        assert calls == ["http://api/a"]
        assert all(r.status_code == 200 and r.body == b"[]" for r in responses)

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_failure(self):
        calls = []

        async def refuse(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            await asyncio.sleep(0.01)
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(refuse) as client:
            results = await asyncio.gather(
                *(client.fetch("http://api/a") for _ in range(3)), return_exceptions=True
            )

        assert len(calls) == 1
        assert all(isinstance(r, FetchError) for r in results)

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_request(self):
        async def slow(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.01)
            return httpx.Response(200, content=b"{}")

        async with make_client(slow) as client:
            first = asyncio.ensure_future(client.fetch("http://api/a"))
            await asyncio.sleep(0)
            second = asyncio.ensure_future(client.fetch("http://api/a"))
            await asyncio.sleep(0)
            first.cancel()

            response = await second

        assert response.status_code == 200
