"""
Tests for ResponseCache.

Tests cover:
- Cache keys (parameter order, credentials)
- Single-flight deduplication of concurrent fetches
- Failure propagation (never cached, retried on next call)
- TTL expiry (lazy and swept) with per-call override
- LRU eviction and recency refresh
- Waiter cancellation not cancelling the shared fetch
"""

import asyncio
from datetime import timedelta

import pytest

from src.flight_analytics.adapters.cache.response_cache import (
    CacheEntry,
    CacheKey,
    ResponseCache,
)
from src.flight_analytics.config import CacheConfig
from src.flight_analytics.exceptions import UpstreamError


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def cache(clock) -> ResponseCache:
    """Cache with 3 slots and a 60 second TTL on a fake clock."""
    return ResponseCache(CacheConfig(capacity=3, ttl=timedelta(seconds=60)), clock=clock)


def key(name: str) -> CacheKey:
    return CacheKey.from_query("/flights", {"flight_iata": name})


class CountingFetch:
    """Fetch function that counts calls and can be held open."""

    def __init__(self, value="payload", error: Exception = None) -> None:
        self.value = value
        self.error = error
        self.calls = 0
        self.release = asyncio.Event()
        self.release.set()

    async def __call__(self):
        self.calls += 1
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.value


# =============================================================================
# CACHE KEY TESTS
# =============================================================================


class TestCacheKey:
    """Tests for CacheKey construction."""

    def test_parameter_order_does_not_matter(self):
        """Same parameters in a different order give the same key."""
        a = CacheKey.from_query("/flights", {"dep_iata": "WAW", "arr_iata": "BCN"})
        b = CacheKey.from_query("/flights", {"arr_iata": "BCN", "dep_iata": "WAW"})

        assert a == b
        assert hash(a) == hash(b)

    def test_access_key_excluded(self):
        """Credentials never participate in the key."""
        a = CacheKey.from_query("/flights", {"dep_iata": "WAW", "access_key": "secret-1"})
        b = CacheKey.from_query("/flights", {"dep_iata": "WAW", "access_key": "secret-2"})

        assert a == b
        assert "secret" not in str(a)

    def test_endpoint_distinguishes_keys(self):
        assert CacheKey.from_query("/flights", {"a": 1}) != CacheKey.from_query("/historical", {"a": 1})

    def test_values_compared_as_strings(self):
        assert CacheKey.from_query("/flights", {"limit": 50}) == CacheKey.from_query("/flights", {"limit": "50"})

    def test_none_values_dropped(self):
        assert CacheKey.from_query("/flights", {"date": None}) == CacheKey.from_query("/flights", {})


class TestCacheEntry:
    """Tests for CacheEntry expiry."""

    def test_expired_at_ttl_boundary(self):
        entry = CacheEntry(value=1, created_at=100.0, ttl=timedelta(seconds=10))

        assert not entry.is_expired(109.9)
        assert entry.is_expired(110.0)


# =============================================================================
# SINGLE-FLIGHT TESTS
# =============================================================================


class TestSingleFlight:
    """Tests for request deduplication."""

    @pytest.mark.anyio
    async def test_concurrent_callers_share_one_fetch(self, cache: ResponseCache):
        """N concurrent callers for the same key cause exactly one fetch."""
        fetch = CountingFetch(value={"data": [1, 2, 3]})
        fetch.release.clear()

        waiters = [asyncio.ensure_future(cache.get_or_fetch(key("LO282"), fetch)) for _ in range(10)]
        await asyncio.sleep(0)
        assert cache.in_flight == 1

        fetch.release.set()
        results = await asyncio.gather(*waiters)

        assert fetch.calls == 1
        assert all(r == {"data": [1, 2, 3]} for r in results)
        assert cache.in_flight == 0
        stats = cache.stats()
        assert stats.misses == 1
        assert stats.coalesced == 9

    @pytest.mark.anyio
    async def test_live_entry_skips_fetch(self, cache: ResponseCache):
        """A second call within TTL returns the cached value without fetching."""
        fetch = CountingFetch()

        await cache.get_or_fetch(key("LO282"), fetch)
        value = await cache.get_or_fetch(key("LO282"), fetch)

        assert value == "payload"
        assert fetch.calls == 1
        assert cache.stats().hits == 1

    @pytest.mark.anyio
    async def test_different_keys_fetch_independently(self, cache: ResponseCache):
        fetch = CountingFetch()

        await asyncio.gather(
            cache.get_or_fetch(key("LO282"), fetch),
            cache.get_or_fetch(key("FR100"), fetch),
        )

        assert fetch.calls == 2

    @pytest.mark.anyio
    async def test_failure_reaches_every_waiter_and_is_not_cached(self, cache: ResponseCache):
        """A failed fetch raises for all waiters; the next call retries."""
        failing = CountingFetch(error=UpstreamError(503, "unavailable"))
        failing.release.clear()

        waiters = [asyncio.ensure_future(cache.get_or_fetch(key("LO282"), failing)) for _ in range(3)]
        await asyncio.sleep(0)
        failing.release.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)

        assert failing.calls == 1
        assert all(isinstance(r, UpstreamError) for r in results)
        assert not cache.contains(key("LO282"))

        succeeding = CountingFetch(value="recovered")
        assert await cache.get_or_fetch(key("LO282"), succeeding) == "recovered"
        assert succeeding.calls == 1

    @pytest.mark.anyio
    async def test_cancelled_waiter_does_not_cancel_shared_fetch(self, cache: ResponseCache):
        """Cancelling one caller leaves the fetch running for the others."""
        fetch = CountingFetch(value="shared")
        fetch.release.clear()

        first = asyncio.ensure_future(cache.get_or_fetch(key("LO282"), fetch))
        second = asyncio.ensure_future(cache.get_or_fetch(key("LO282"), fetch))
        await asyncio.sleep(0)

        first.cancel()
        await asyncio.sleep(0)
        fetch.release.set()

        assert await second == "shared"
        assert first.cancelled()
        assert fetch.calls == 1
        assert cache.contains(key("LO282"))

    @pytest.mark.anyio
    async def test_drain_waits_for_in_flight(self, cache: ResponseCache):
        fetch = CountingFetch()
        fetch.release.clear()
        waiter = asyncio.ensure_future(cache.get_or_fetch(key("LO282"), fetch))
        await asyncio.sleep(0)

        fetch.release.set()
        await cache.drain()

        assert cache.in_flight == 0
        assert cache.contains(key("LO282"))
        await waiter


# =============================================================================
# TTL TESTS
# =============================================================================


class TestExpiry:
    """Tests for TTL handling."""

    @pytest.mark.anyio
    async def test_fetch_again_after_ttl(self, cache: ResponseCache, clock):
        """Calls at t=0 and t=TTL+1 cause two fetches."""
        fetch = CountingFetch()

        await cache.get_or_fetch(key("LO282"), fetch)
        clock.advance(61)
        await cache.get_or_fetch(key("LO282"), fetch)

        assert fetch.calls == 2
        assert cache.stats().expirations == 1

    @pytest.mark.anyio
    async def test_within_ttl_single_fetch(self, cache: ResponseCache, clock):
        fetch = CountingFetch()

        await cache.get_or_fetch(key("LO282"), fetch)
        clock.advance(59)
        await cache.get_or_fetch(key("LO282"), fetch)

        assert fetch.calls == 1

    @pytest.mark.anyio
    async def test_per_call_ttl_override(self, cache: ResponseCache, clock):
        fetch = CountingFetch()

        await cache.get_or_fetch(key("LO282"), fetch, ttl=timedelta(seconds=5))
        clock.advance(6)

        assert not cache.contains(key("LO282"))

    @pytest.mark.anyio
    async def test_zero_ttl_not_stored(self, cache: ResponseCache):
        fetch = CountingFetch()

        await cache.get_or_fetch(key("LO282"), fetch, ttl=timedelta(0))

        assert cache.size == 0

    @pytest.mark.anyio
    async def test_sweep_expired(self, cache: ResponseCache, clock):
        """sweep_expired removes only expired entries."""
        await cache.get_or_fetch(key("A"), CountingFetch(), ttl=timedelta(seconds=10))
        await cache.get_or_fetch(key("B"), CountingFetch())
        clock.advance(30)

        removed = cache.sweep_expired()

        assert removed == 1
        assert cache.size == 1
        assert cache.contains(key("B"))


# =============================================================================
# LRU TESTS
# =============================================================================


class TestEviction:
    """Tests for bounded capacity and LRU order."""

    @pytest.mark.anyio
    async def test_least_recently_used_evicted(self, clock):
        """Capacity 2: insert A, B, read A, insert C -> B evicted."""
        cache = ResponseCache(CacheConfig(capacity=2), clock=clock)

        await cache.get_or_fetch(key("A"), CountingFetch("a"))
        await cache.get_or_fetch(key("B"), CountingFetch("b"))
        await cache.get_or_fetch(key("A"), CountingFetch("a"))
        await cache.get_or_fetch(key("C"), CountingFetch("c"))

        assert cache.contains(key("A"))
        assert not cache.contains(key("B"))
        assert cache.contains(key("C"))
        assert cache.size == 2
        assert cache.stats().evictions == 1

    @pytest.mark.anyio
    async def test_size_never_exceeds_capacity(self, cache: ResponseCache):
        for name in ["A", "B", "C", "D", "E"]:
            await cache.get_or_fetch(key(name), CountingFetch(name))

        assert cache.size == cache.capacity == 3

    def test_non_positive_capacity_rejected(self):
        with pytest.raises(ValueError, match="capacity"):
            ResponseCache(CacheConfig(capacity=0))


class TestMaintenance:
    """Tests for invalidate and clear."""

    @pytest.mark.anyio
    async def test_invalidate_forces_refetch(self, cache: ResponseCache):
        fetch = CountingFetch()
        await cache.get_or_fetch(key("LO282"), fetch)

        assert cache.invalidate(key("LO282")) is True
        assert cache.invalidate(key("LO282")) is False

        await cache.get_or_fetch(key("LO282"), fetch)
        assert fetch.calls == 2

    @pytest.mark.anyio
    async def test_clear(self, cache: ResponseCache):
        await cache.get_or_fetch(key("A"), CountingFetch())
        await cache.get_or_fetch(key("B"), CountingFetch())

        cache.clear()

        assert cache.size == 0

    def test_stats_hit_rate_idle(self, cache: ResponseCache):
        assert cache.stats().hit_rate == 0.0
