"""
Tests for stale-while-revalidate tiers.
"""
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from obra_dashboard.data.cache import CacheStorageError, MemoryCacheStorage, PersistentCache
from obra_dashboard.data.swr import StaleWhileRevalidate

WEEK = 7 * 24 * 60 * 60


class CountingProducer:
    """Async producer returning successive values and counting calls."""

    def __init__(self, *values, error=None):
        self.values = list(values)
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.values[min(self.calls, len(self.values)) - 1]


class UnreadableStorage(MemoryCacheStorage):

    def read(self, key):
        raise CacheStorageError("storage unavailable")


class TestTiers:
    """Which tier serves a request depends only on entry age."""

    @pytest.mark.asyncio
    async def test_miss_awaits_producer_and_caches(self, swr, cache):
        producer = CountingProducer("fresh")

        assert await swr.get_with_swr("k", producer, ttl=60) == "fresh"
        assert producer.calls == 1
        assert cache.get("k") == "fresh"

    @pytest.mark.asyncio
    async def test_fresh_entry_skips_producer(self, swr, cache, clock):
        cache.set("k", "cached", ttl=60)
        clock.advance(30)
        producer = CountingProducer("new")

        assert await swr.get_with_swr("k", producer, ttl=60) == "cached"
        assert producer.calls == 0
        assert swr.pending_refreshes == 0

    @pytest.mark.asyncio
    async def test_stale_entry_returned_then_refreshed(self, swr, cache, clock):
        cache.set("k", "old", ttl=60)
        clock.advance(120)
        producer = CountingProducer("new")

        # Stale value comes back immediately
        assert await swr.get_with_swr("k", producer, ttl=60) == "old"

        await swr.drain()
        assert producer.calls == 1
        assert cache.get("k") == "new"

    @pytest.mark.asyncio
    async def test_entry_older_than_a_week_is_refetched(self, swr, cache, clock):
        cache.set("k", "ancient", ttl=60)
        clock.advance(WEEK + 1)
        producer = CountingProducer("new")

        assert await swr.get_with_swr("k", producer, ttl=60) == "new"
        assert producer.calls == 1
        assert swr.pending_refreshes == 0


class TestBackgroundRefresh:

    @pytest.mark.asyncio
    async def test_concurrent_stale_reads_refresh_once(self, swr, cache, clock):
        cache.set("k", "old", ttl=60)
        clock.advance(120)
        producer = CountingProducer("new")

        first = await swr.get_with_swr("k", producer, ttl=60)
        second = await swr.get_with_swr("k", producer, ttl=60)
        await swr.drain()

        assert first == second == "old"
        assert producer.calls == 1

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_stale_value(self, swr, cache, clock):
        cache.set("k", "old", ttl=60)
        clock.advance(120)
        producer = CountingProducer(error=RuntimeError("network down"))

        assert await swr.get_with_swr("k", producer, ttl=60) == "old"
        await swr.drain()

        assert producer.calls == 1
        assert cache.entry("k").data == "old"
        assert swr.pending_refreshes == 0


class TestFailures:

    @pytest.mark.asyncio
    async def test_unreadable_cache_falls_back_to_producer(self, clock):
        swr = StaleWhileRevalidate(PersistentCache(UnreadableStorage(), clock=clock))
        producer = CountingProducer("live")

        assert await swr.get_with_swr("k", producer) == "live"
        assert producer.calls == 1

    @pytest.mark.asyncio
    async def test_producer_error_on_miss_propagates(self, swr):
        producer = CountingProducer(error=RuntimeError("network down"))

        with pytest.raises(RuntimeError):
            await swr.get_with_swr("k", producer)
