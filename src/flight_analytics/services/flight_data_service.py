"""
Flight Data Service - cached, normalized access to flight data endpoints.

Ties the transport, the response cache, the pagination engine and the
record adapters together. Every endpoint is bound to exactly one
RecordSource, so callers always get FlightRecords back.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from src.flight_analytics.adapters.cache.response_cache import CacheKey, ResponseCache
from src.flight_analytics.adapters.records import NormalizedBatch, normalize_batch
from src.flight_analytics.ports.transport import FlightDataTransport
from src.flight_analytics.schemas.flight import FlightRecord, RecordSource
from src.flight_analytics.services.pagination import Page, PageCursor, collect_records, paginate

logger = logging.getLogger(__name__)


class Endpoint(Enum):
    """FlightLabs endpoints and the record variant each one returns."""

    REALTIME = ("/flights", RecordSource.REALTIME)
    HISTORICAL = ("/historical", RecordSource.HISTORICAL)
    SCHEDULES = ("/advanced-flights-schedules", RecordSource.SCHEDULE)
    FUTURE = ("/advanced-future-flights", RecordSource.FUTURE)
    DELAYS = ("/flight_delays", RecordSource.DELAY)
    BY_NUMBER = ("/flight", RecordSource.BY_NUMBER)

    @property
    def path(self) -> str:
        return self.value[0]

    @property
    def source(self) -> RecordSource:
        return self.value[1]


def _adapter_context(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Query context the adapters need, read back from request parameters."""
    context: Dict[str, Any] = {}
    airport = params.get("iataCode") or params.get("code")
    if airport:
        context["airport"] = str(airport)
    if params.get("type"):
        context["direction"] = str(params["type"])
    if params.get("date"):
        context["on_date"] = date.fromisoformat(str(params["date"]))
    if params.get("flight_number"):
        context["flight_number"] = str(params["flight_number"])
    return context


def _items(payload: Mapping[str, Any], endpoint: Endpoint) -> List[Any]:
    data = payload.get("data")
    if data is None:
        return []
    if not isinstance(data, list):
        logger.warning("Unexpected %s payload: 'data' is %s, not a list", endpoint.path, type(data).__name__)
        return []
    return data


class FlightDataService:
    """
    Cached access to flight data, normalized into FlightRecords.

    Raw responses are cached per (endpoint, parameters); credentials are
    never part of a cache key. Transport errors propagate unchanged and
    are never cached.

    Example:
        >>> service = FlightDataService(FlightLabsTransport(config))
        >>> delayed = await service.delayed_flights(30, dep_iata="WAW")

    Attributes:
        _transport: FlightDataTransport used for every request.
        _cache: Response cache shared by all endpoints.
    """

    def __init__(self, transport: FlightDataTransport, cache: Optional[ResponseCache] = None) -> None:
        """
        Initialize the service.

        Args:
            transport: FlightDataTransport implementation.
            cache: Response cache. If None, a default-sized one is created.
        """
        self._transport = transport
        self._cache = cache if cache is not None else ResponseCache()

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def close(self) -> None:
        """Wait for in-flight fetches, then close the transport."""
        await self._cache.drain()
        await self._transport.close()

    # -------------------------------------------------------------------------
    # Generic access
    # -------------------------------------------------------------------------

    async def fetch_raw(
        self,
        endpoint: Endpoint,
        params: Mapping[str, Any],
        ttl: Optional[timedelta] = None,
    ) -> Dict[str, Any]:
        """Raw response for a query, served from the cache when live."""
        query = {k: v for k, v in params.items() if v is not None}
        key = CacheKey.from_query(endpoint.path, query)
        return await self._cache.get_or_fetch(
            key,
            lambda: self._transport.fetch(endpoint.path, query),
            ttl=ttl,
        )

    async def fetch_batch(
        self,
        endpoint: Endpoint,
        params: Mapping[str, Any],
        ttl: Optional[timedelta] = None,
    ) -> NormalizedBatch:
        """Normalized records of one response, with the malformed-item count."""
        payload = await self.fetch_raw(endpoint, params, ttl=ttl)
        return normalize_batch(endpoint.source, _items(payload, endpoint), **_adapter_context(params))

    async def fetch_records(
        self,
        endpoint: Endpoint,
        params: Mapping[str, Any],
        ttl: Optional[timedelta] = None,
    ) -> List[FlightRecord]:
        """
        Fetch one response and normalize it.

        Args:
            endpoint: Endpoint to query.
            params: Query parameters (None values are dropped).
            ttl: Cache lifetime override for this response.

        Returns:
            Records in source order; unreadable items are skipped
            (fetch_batch reports how many).

        Raises:
            UpstreamError: If the transport fails.
        """
        batch = await self.fetch_batch(endpoint, params, ttl=ttl)
        return list(batch.records)

    def iter_pages(
        self,
        endpoint: Endpoint,
        params: Mapping[str, Any],
        page_size: int = 100,
        max_pages: Optional[int] = None,
    ) -> PageCursor[FlightRecord]:
        """
        Lazy page cursor over an endpoint that accepts limit/skip.

        Each page is cached under its own key. Nothing is fetched until
        the cursor's first next().
        """

        async def fetch_page(offset: int, limit: int) -> Page[FlightRecord]:
            query = dict(params, limit=limit, skip=offset)
            payload = await self.fetch_raw(endpoint, query)
            items = _items(payload, endpoint)
            batch = normalize_batch(endpoint.source, items, **_adapter_context(query))
            return Page(
                records=batch.records,
                offset=offset,
                next_offset=offset + len(items),
                is_last=len(items) < limit,
                fetched=len(items),
                malformed=batch.malformed,
            )

        return paginate(fetch_page, page_size, max_pages=max_pages)

    async def fetch_all_pages(
        self,
        endpoint: Endpoint,
        params: Mapping[str, Any],
        page_size: int = 100,
        max_pages: Optional[int] = None,
    ) -> List[FlightRecord]:
        """Every record across all pages (bounded by max_pages)."""
        async with self.iter_pages(endpoint, params, page_size, max_pages) as cursor:
            return await collect_records(cursor)

    # -------------------------------------------------------------------------
    # Endpoint helpers
    # -------------------------------------------------------------------------

    async def realtime_flights(self, **filters: Any) -> List[FlightRecord]:
        """Live flights, filtered by e.g. airlineIata, depIata, arrIata."""
        return await self.fetch_records(Endpoint.REALTIME, filters)

    async def flights_by_number(
        self,
        flight_number: str,
        on_date: Optional[date] = None,
    ) -> List[FlightRecord]:
        """Recent (or one day's) operations of a flight number, e.g. 'LO282'."""
        params = {"flight_number": flight_number, "date": on_date.isoformat() if on_date else None}
        return await self.fetch_records(Endpoint.BY_NUMBER, params)

    async def delayed_flights(
        self,
        min_delay: int,
        direction: str = "departures",
        **filters: Any,
    ) -> List[FlightRecord]:
        """Flights delayed by at least min_delay minutes ('departures' or 'arrivals')."""
        return await self.fetch_records(Endpoint.DELAYS, dict(filters, delay=min_delay, type=direction))

    async def schedules(
        self,
        airport: str,
        direction: str = "departure",
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
        **filters: Any,
    ) -> List[FlightRecord]:
        """
        Airport schedule, optionally paginated.

        Args:
            airport: Airport IATA code.
            direction: 'departure' or 'arrival'.
            page_size: Page through the schedule when set.
            max_pages: Page limit when paginating.
            **filters: Extra filters (airline_iata, flight_iata, ...).
        """
        params = dict(filters, iataCode=airport, type=direction)
        if page_size is None:
            return await self.fetch_records(Endpoint.SCHEDULES, params)
        return await self.fetch_all_pages(Endpoint.SCHEDULES, params, page_size, max_pages)

    async def historical_flights(
        self,
        airport: str,
        on_date: date,
        direction: str = "departure",
        **filters: Any,
    ) -> List[FlightRecord]:
        """One day of historical movements at an airport."""
        params = dict(
            filters,
            code=airport,
            type=direction,
            date_from=f"{on_date.isoformat()}T00:00",
            date_to=f"{on_date.isoformat()}T23:59",
        )
        return await self.fetch_records(Endpoint.HISTORICAL, params)

    async def future_flights(
        self,
        airport: str,
        on_date: date,
        direction: str = "departure",
    ) -> List[FlightRecord]:
        """Scheduled flights at an airport on a future date."""
        params = {"iataCode": airport, "type": direction, "date": on_date.isoformat()}
        return await self.fetch_records(Endpoint.FUTURE, params)
