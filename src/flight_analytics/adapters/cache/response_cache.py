"""
Response Cache - Single-Flight TTL Cache for API Responses.

Implements request deduplication for the flight data client with:
- Per-key in-flight task registry (no global lock)
- Lazy expiry on read, plus an explicit sweep
- Bounded capacity with least-recently-used eviction
- Injectable clock for deterministic tests
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import timedelta
from functools import partial
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    FrozenSet,
    Generic,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
)

from src.flight_analytics.config import CacheConfig

logger = logging.getLogger(__name__)

V = TypeVar("V")

# Query parameters that never participate in a cache key
CREDENTIAL_PARAMS = frozenset({"access_key"})


# =============================================================================
# KEYS AND ENTRIES
# =============================================================================


@dataclass(frozen=True)
class CacheKey:
    """
    Identity of a logical query.

    Parameters are held as a frozenset of (name, value) pairs, so the
    order in which a caller supplied them never matters.

    Attributes:
        endpoint: Endpoint path.
        params: Normalized (name, value) pairs.
    """

    endpoint: str
    params: FrozenSet[Tuple[str, str]] = frozenset()

    @classmethod
    def from_query(cls, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> "CacheKey":
        """
        Build a key from an endpoint and raw query parameters.

        Credentials and None-valued parameters are dropped; remaining
        values are compared by their string form.

        Example:
            >>> a = CacheKey.from_query("/flights", {"a": 1, "b": "x"})
            >>> a == CacheKey.from_query("/flights", {"b": "x", "a": "1"})
            True
        """
        pairs = frozenset(
            (name, str(value))
            for name, value in (params or {}).items()
            if name not in CREDENTIAL_PARAMS and value is not None
        )
        return cls(endpoint=endpoint, params=pairs)

    def __str__(self) -> str:
        query = "&".join(f"{k}={v}" for k, v in sorted(self.params))
        return f"{self.endpoint}?{query}" if query else self.endpoint


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """
    Cached value with its creation time and time-to-live.

    Attributes:
        value: Cached response.
        created_at: Clock reading when the entry was stored (seconds).
        ttl: Lifetime of the entry.
    """

    value: V
    created_at: float
    ttl: timedelta

    def is_expired(self, now: float) -> bool:
        """Check if the entry has outlived its TTL at clock reading `now`."""
        return now - self.created_at >= self.ttl.total_seconds()


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache counters."""

    hits: int = 0
    misses: int = 0
    coalesced: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        """Share of lookups served without a new fetch (0 when idle)."""
        lookups = self.hits + self.misses + self.coalesced
        if lookups == 0:
            return 0.0
        return (self.hits + self.coalesced) / lookups


# =============================================================================
# RESPONSE CACHE
# =============================================================================


class ResponseCache(Generic[V]):
    """
    Request-deduplicating TTL cache with LRU eviction.

    A live entry is returned without calling the fetch function. When
    there is no live entry, at most one fetch per key runs at a time;
    concurrent callers for the same key await that one task. A failed
    fetch is never stored and its error reaches every waiter; the next
    call starts a fresh fetch.

    Waiters await the shared task through asyncio.shield(), so a
    cancelled caller never cancels the fetch other callers depend on.
    The result is stored by the task itself, even if every waiter has
    gone away.

    Example:
        >>> cache = ResponseCache(CacheConfig(capacity=10))
        >>> value = await cache.get_or_fetch(key, lambda: transport.fetch(...))

    Attributes:
        _capacity: Maximum number of stored entries.
        _ttl: Default entry lifetime.
        _clock: Monotonic clock returning seconds.
        _entries: Stored entries, least recently used first.
        _pending: In-flight fetch tasks by key.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the cache.

        Args:
            config: Capacity and default TTL. If None, uses defaults.
            clock: Seconds source; override in tests.

        Raises:
            ValueError: If capacity is not positive.
        """
        config = config or CacheConfig()
        if config.capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {config.capacity}")

        self._capacity = config.capacity
        self._ttl = config.ttl
        self._clock = clock
        self._entries: "OrderedDict[CacheKey, CacheEntry[V]]" = OrderedDict()
        self._pending: Dict[CacheKey, "asyncio.Task[V]"] = {}

        self._hits = 0
        self._misses = 0
        self._coalesced = 0
        self._evictions = 0
        self._expirations = 0

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def size(self) -> int:
        """Number of stored entries (expired ones included until swept)."""
        return len(self._entries)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def in_flight(self) -> int:
        """Number of keys with a fetch currently running."""
        return len(self._pending)

    def stats(self) -> CacheStats:
        """Snapshot of hit/miss/eviction counters."""
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            coalesced=self._coalesced,
            evictions=self._evictions,
            expirations=self._expirations,
        )

    def contains(self, key: CacheKey) -> bool:
        """Check for a live entry without touching recency or counters."""
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    async def get_or_fetch(
        self,
        key: CacheKey,
        fetch_fn: Callable[[], Awaitable[V]],
        ttl: Optional[timedelta] = None,
    ) -> V:
        """
        Return the cached value for key, fetching it at most once.

        Args:
            key: Query identity.
            fetch_fn: Zero-argument coroutine function producing the value.
            ttl: Lifetime override for a value stored by this call.

        Returns:
            Cached or freshly fetched value.

        Raises:
            Whatever fetch_fn raised, for this caller and every
            concurrent caller sharing the fetch.
        """
        entry = self._lookup(key)
        if entry is not None:
            self._hits += 1
            return entry.value

        task = self._pending.get(key)
        if task is None:
            self._misses += 1
            logger.debug("Cache miss for %s, fetching", key)
            task = asyncio.ensure_future(self._fetch_and_store(key, fetch_fn, ttl))
            self._pending[key] = task
            task.add_done_callback(partial(self._on_fetch_done, key))
        else:
            self._coalesced += 1
            logger.debug("Joining in-flight fetch for %s", key)

        return await asyncio.shield(task)

    def _lookup(self, key: CacheKey) -> Optional[CacheEntry[V]]:
        """Live entry for key (refreshing its recency), dropping it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._expirations += 1
            logger.debug("Cache entry expired for %s", key)
            return None
        self._entries.move_to_end(key)
        return entry

    async def _fetch_and_store(
        self,
        key: CacheKey,
        fetch_fn: Callable[[], Awaitable[V]],
        ttl: Optional[timedelta],
    ) -> V:
        value = await fetch_fn()
        self._store(key, value, ttl if ttl is not None else self._ttl)
        return value

    def _on_fetch_done(self, key: CacheKey, task: "asyncio.Task[V]") -> None:
        # Only unregister our own task; a newer fetch may already own the key
        if self._pending.get(key) is task:
            del self._pending[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Fetch for %s failed, not cached: %s", key, task.exception())

    def _store(self, key: CacheKey, value: V, ttl: timedelta) -> None:
        if ttl.total_seconds() <= 0:
            return
        if key in self._entries:
            del self._entries[key]
        while len(self._entries) >= self._capacity:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Evicted least recently used entry %s", evicted)
        self._entries[key] = CacheEntry(value=value, created_at=self._clock(), ttl=ttl)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def sweep_expired(self) -> int:
        """
        Remove every expired entry.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        self._expirations += len(expired)
        if expired:
            logger.debug("Swept %d expired cache entries", len(expired))
        return len(expired)

    def invalidate(self, key: CacheKey) -> bool:
        """
        Drop the entry for key.

        A fetch already in flight for key is left alone.

        Returns:
            True if an entry was removed.
        """
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every stored entry."""
        self._entries.clear()

    async def drain(self) -> None:
        """Wait for every in-flight fetch to settle (errors are ignored)."""
        if self._pending:
            await asyncio.gather(*self._pending.values(), return_exceptions=True)
