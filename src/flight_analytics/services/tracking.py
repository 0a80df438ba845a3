"""
Flight Tracker - multi-date tracking of a flight number.

Fetches every date of a range independently and concurrently (bounded
by a semaphore), records per-date failures without aborting the other
dates, and folds the successful dates into range-wide statistics.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from src.flight_analytics.config import DEFAULT_ANALYTICS_CONFIG, AnalyticsConfig, TrackingConfig
from src.flight_analytics.exceptions import InvalidDateRangeError, RangeFetchPartialFailure
from src.flight_analytics.schemas.analysis import OrderedGroups
from src.flight_analytics.schemas.flight import FlightRecord, FlightStatus
from src.flight_analytics.services.analytics import group_records, status_breakdown
from src.flight_analytics.services.comparison import (
    DatasetComparison,
    Route,
    WeeklyPattern,
    compare_datasets,
    weekly_pattern,
)
from src.flight_analytics.services.flight_data_service import FlightDataService

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class DateFailure:
    """
    A date whose fetch failed.

    Attributes:
        date: Date that could not be fetched.
        error: Exception raised by the fetch.
    """

    date: date
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


@dataclass(frozen=True)
class RangeStatistics:
    """
    Statistics over every successfully fetched date of a range.

    Attributes:
        total_flights: Records across successful dates.
        status_counts: Records per FlightStatus (absent statuses omitted).
        weekday_distribution: Records per weekday, Monday = 0.
        aircraft_usage: Records per aircraft type, first-seen order.
        routes: Records per (origin, destination), first-seen order.
        average_flight_time: Mean duration in minutes, None without data.
    """

    total_flights: int
    status_counts: OrderedGroups[FlightStatus, int]
    weekday_distribution: Tuple[int, ...]
    aircraft_usage: OrderedGroups[str, int]
    routes: OrderedGroups[Route, int]
    average_flight_time: Optional[float]


@dataclass(frozen=True)
class RangeTrackingResult:
    """
    Outcome of tracking a flight number across a date range.

    Always returned, even when some dates failed; statistics cover only
    the dates in records_by_date.
    """

    flight_number: str
    start_date: date
    end_date: date
    records_by_date: OrderedGroups[date, Tuple[FlightRecord, ...]]
    failures: Tuple[DateFailure, ...]
    statistics: RangeStatistics

    @property
    def requested_dates(self) -> List[date]:
        return _date_range(self.start_date, self.end_date)

    @property
    def succeeded_dates(self) -> List[date]:
        return self.records_by_date.keys()

    @property
    def records(self) -> List[FlightRecord]:
        """Every record, in date order then source order."""
        return [r for records in self.records_by_date.values() for r in records]

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def raise_for_failures(self) -> None:
        """
        Raise if any date failed.

        Raises:
            RangeFetchPartialFailure: Listing every failed date.
        """
        if self.failures:
            raise RangeFetchPartialFailure(self.failures)


# =============================================================================
# AGGREGATION
# =============================================================================


def _date_range(start_date: date, end_date: date) -> List[date]:
    return [start_date + timedelta(days=i) for i in range((end_date - start_date).days + 1)]


def range_statistics(records: Sequence[FlightRecord]) -> RangeStatistics:
    """Fold records into RangeStatistics (zero-valued for empty input)."""
    weekdays = [0] * 7
    for record in records:
        if record.scheduled_departure is not None:
            weekdays[record.scheduled_departure.weekday()] += 1

    durations = pd.Series([r.duration_minutes for r in records], dtype="float64").dropna()
    with_aircraft = [r for r in records if r.aircraft]

    return RangeStatistics(
        total_flights=len(records),
        status_counts=status_breakdown(records),
        weekday_distribution=tuple(weekdays),
        aircraft_usage=group_records(with_aircraft, lambda r: r.aircraft).map_values(len),
        routes=group_records(records, lambda r: r.route).map_values(len),
        average_flight_time=float(durations.mean()) if not durations.empty else None,
    )


# =============================================================================
# TRACKER
# =============================================================================


class FlightTracker:
    """
    Tracks one flight number across dates.

    Attributes:
        _service: Data service used for every fetch.
        _config: Concurrency and date filtering settings.
        _analytics: On-time threshold used for comparisons.
    """

    def __init__(
        self,
        service: FlightDataService,
        config: Optional[TrackingConfig] = None,
        analytics: AnalyticsConfig = DEFAULT_ANALYTICS_CONFIG,
    ) -> None:
        self._service = service
        self._config = config or TrackingConfig()
        self._analytics = analytics

    async def _fetch_date(self, flight_number: str, on_date: date) -> List[FlightRecord]:
        records = await self._service.flights_by_number(flight_number, on_date=on_date)
        if not self._config.filter_to_requested_date:
            return records
        # Sources may return neighbouring days; keep undated rows
        return [
            r for r in records
            if r.scheduled_departure is None or r.scheduled_departure.date() == on_date
        ]

    async def track_range(
        self,
        flight_number: str,
        start_date: date,
        end_date: date,
    ) -> RangeTrackingResult:
        """
        Fetch every date in [start_date, end_date] and aggregate.

        Dates are fetched concurrently, at most
        TrackingConfig.max_concurrent_dates at a time. A failing date is
        recorded as a DateFailure and never aborts the others.

        Args:
            flight_number: Flight number, e.g. 'LO282'.
            start_date: First date (inclusive).
            end_date: Last date (inclusive).

        Returns:
            RangeTrackingResult with per-date records in date order.

        Raises:
            InvalidDateRangeError: If end_date is before start_date.
        """
        if end_date < start_date:
            raise InvalidDateRangeError(start_date, end_date)

        dates = _date_range(start_date, end_date)
        semaphore = asyncio.Semaphore(self._config.max_concurrent_dates)
        start_time = time.time()

        async def fetch_one(on_date: date) -> Tuple[date, Optional[List[FlightRecord]], Optional[DateFailure]]:
            try:
                async with semaphore:
                    records = await self._fetch_date(flight_number, on_date)
            except Exception as e:
                logger.warning("Tracking %s failed for %s: %s", flight_number, on_date.isoformat(), e)
                return on_date, None, DateFailure(date=on_date, error=e)
            return on_date, records, None

        outcomes = await asyncio.gather(*(fetch_one(d) for d in dates))

        records_by_date: OrderedGroups[date, Tuple[FlightRecord, ...]] = OrderedGroups()
        failures = []
        for on_date, records, failure in outcomes:
            if failure is not None:
                failures.append(failure)
            else:
                records_by_date[on_date] = tuple(records)

        statistics = range_statistics([r for rs in records_by_date.values() for r in rs])

        elapsed_ms = (time.time() - start_time) * 1000
        logger.debug(
            "Tracked %s over %d date(s) in %.0fms: %d flights, %d failure(s)",
            flight_number,
            len(dates),
            elapsed_ms,
            statistics.total_flights,
            len(failures),
        )

        return RangeTrackingResult(
            flight_number=flight_number,
            start_date=start_date,
            end_date=end_date,
            records_by_date=records_by_date,
            failures=tuple(failures),
            statistics=statistics,
        )

    async def compare_dates(
        self,
        flight_number: str,
        first_date: date,
        second_date: date,
    ) -> DatasetComparison:
        """
        Compare a flight number's operations on two dates.

        Both dates are fetched concurrently; a failure on either raises.
        """
        first, second = await asyncio.gather(
            self._fetch_date(flight_number, first_date),
            self._fetch_date(flight_number, second_date),
        )
        return compare_datasets(
            first,
            second,
            left_label=first_date.isoformat(),
            right_label=second_date.isoformat(),
            threshold_minutes=self._analytics.on_time_threshold_minutes,
        )

    async def weekly_pattern(self, flight_number: str) -> WeeklyPattern:
        """Weekday pattern of a flight number's recent operations."""
        records = await self._service.flights_by_number(flight_number)
        return weekly_pattern(records)
