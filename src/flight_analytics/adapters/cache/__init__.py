"""Response caching for flight data queries."""

from src.flight_analytics.adapters.cache.response_cache import (
    CacheEntry,
    CacheKey,
    CacheStats,
    ResponseCache,
)

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheStats",
    "ResponseCache",
]
