"""Unit tests for ContentCache in mdaggregator.cache."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

from mdaggregator.cache import ContentCache
from mdaggregator.errors import ErrorCode, ProviderError

TTL = 3600


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _cache(clock: FakeClock) -> ContentCache:
    return ContentCache(ttl_seconds=TTL, clock=clock)


class TestGetOrFetch:
    async def test_miss_fetches_and_caches(self) -> None:
        cache = _cache(FakeClock())
        fetcher = AsyncMock(return_value=b"body")

        assert await cache.get_or_fetch("sha1", fetcher) == b"body"

        fetcher.assert_awaited_once_with("sha1")
        assert "sha1" in cache
        assert cache.snapshot()["sha1"].fetched_at == 1000.0

    async def test_hit_within_ttl_fetches_once(self) -> None:
        clock = FakeClock()
        cache = _cache(clock)
        fetcher = AsyncMock(return_value=b"body")

        await cache.get_or_fetch("sha1", fetcher)
        clock.now += TTL - 1
        assert await cache.get_or_fetch("sha1", fetcher) == b"body"

        fetcher.assert_awaited_once()

    async def test_not_served_at_ttl_boundary(self) -> None:
        clock = FakeClock()
        cache = _cache(clock)
        fetcher = AsyncMock(side_effect=[b"v1", b"v2"])

        await cache.get_or_fetch("sha1", fetcher)
        clock.now += TTL
        assert await cache.get_or_fetch("sha1", fetcher) == b"v2"

        assert fetcher.await_count == 2
        assert cache.snapshot()["sha1"].fetched_at == 1000.0 + TTL

    async def test_expired_records_evicted_on_any_access(self) -> None:
        clock = FakeClock()
        cache = _cache(clock)

        await cache.get_or_fetch("old", AsyncMock(return_value=b"old"))
        clock.now += TTL + 5
        await cache.get_or_fetch("new", AsyncMock(return_value=b"new"))

        assert "old" not in cache
        assert "new" in cache
        assert len(cache) == 1

    async def test_expired_record_is_not_contained_before_eviction(self) -> None:
        clock = FakeClock()
        cache = _cache(clock)

        await cache.get_or_fetch("sha1", AsyncMock(return_value=b"body"))
        clock.now += TTL

        assert "sha1" not in cache
        # Still stored until the next access evicts it
        assert "sha1" in cache.snapshot()

    async def test_expired_records_evicted_even_on_failed_fetch(self) -> None:
        clock = FakeClock()
        cache = _cache(clock)

        await cache.get_or_fetch("old", AsyncMock(return_value=b"old"))
        clock.now += TTL
        assert await cache.get_or_fetch("missing", AsyncMock(return_value=None)) is None

        assert len(cache) == 0

    async def test_not_found_is_not_cached(self) -> None:
        cache = _cache(FakeClock())
        fetcher = AsyncMock(side_effect=[None, b"later"])

        assert await cache.get_or_fetch("sha1", fetcher) is None
        assert "sha1" not in cache
        assert await cache.get_or_fetch("sha1", fetcher) == b"later"
        assert fetcher.await_count == 2

    async def test_provider_error_is_a_miss(self) -> None:
        cache = _cache(FakeClock())
        fetcher = AsyncMock(
            side_effect=ProviderError("a", ErrorCode.PROVIDER_REQUEST_FAILED, "HTTP 500")
        )

        assert await cache.get_or_fetch("sha1", fetcher) is None
        assert len(cache) == 0

    async def test_identical_hash_shared_across_callers(self) -> None:
        cache = _cache(FakeClock())
        first = AsyncMock(return_value=b"shared")
        second = AsyncMock(return_value=b"other")

        await cache.get_or_fetch("sha1", first)
        assert await cache.get_or_fetch("sha1", second) == b"shared"
        second.assert_not_awaited()


class TestCopyOnWrite:
    async def test_snapshot_is_not_mutated_by_later_inserts(self) -> None:
        cache = _cache(FakeClock())
        await cache.get_or_fetch("sha1", AsyncMock(return_value=b"one"))
        before = cache.snapshot()

        await cache.get_or_fetch("sha2", AsyncMock(return_value=b"two"))

        assert set(before) == {"sha1"}
        assert set(cache.snapshot()) == {"sha1", "sha2"}

    async def test_concurrent_fills_are_all_kept(self) -> None:
        cache = _cache(FakeClock())

        async def slow_fetch(content_hash: str) -> bytes:
            await asyncio.sleep(0)
            return content_hash.encode()

        results = await asyncio.gather(
            *(cache.get_or_fetch(f"sha{i}", slow_fetch) for i in range(10))
        )

        assert results == [f"sha{i}".encode() for i in range(10)]
        assert len(cache) == 10
