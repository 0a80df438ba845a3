"""
Tests for FlightTracker.

Tests cover:
- Per-date partial failures in track_range
- Range statistics over the dates that succeeded
- Date filtering of neighbouring-day rows
- Bounded concurrency
- compare_dates and weekly_pattern
"""

import asyncio
from datetime import date, timedelta
from typing import Any, Dict, Mapping

import pytest

from src.flight_analytics.config import TrackingConfig
from src.flight_analytics.exceptions import (
    InvalidDateRangeError,
    RangeFetchPartialFailure,
    UpstreamError,
)
from src.flight_analytics.ports.transport import FlightDataTransport
from src.flight_analytics.schemas.flight import FlightStatus
from src.flight_analytics.services.flight_data_service import FlightDataService
from src.flight_analytics.services.tracking import FlightTracker, range_statistics

START = date(2024, 7, 15)  # Monday
FAILING_DAY = date(2024, 7, 17)


def by_number_row(day: date, aircraft: str = "B738", status: str = "Landed", dest: str = "Barcelona (BCN)") -> dict:
    return {
        "DATE": day.strftime("%d %b %Y"),
        "FROM": "Warsaw (WAW)",
        "TO": dest,
        "AIRCRAFT": aircraft,
        "FLIGHT TIME": "3h 0m",
        "STD": "10:00",
        "ATD": "10:20",
        "STA": "13:00",
        "STATUS": status,
    }


def one_row_per_day(endpoint: str, params: Mapping[str, Any]) -> Dict[str, Any]:
    day = date.fromisoformat(params["date"])
    if day == FAILING_DAY:
        raise UpstreamError(500, "upstream exploded")
    return {"success": True, "data": [by_number_row(day)]}


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def transport(fake_transport_factory):
    return fake_transport_factory(one_row_per_day)


@pytest.fixture
def tracker(transport) -> FlightTracker:
    return FlightTracker(FlightDataService(transport))


# =============================================================================
# RANGE TESTS
# =============================================================================


class TestTrackRange:
    """Tests for track_range."""

    @pytest.mark.anyio
    async def test_partial_failure_keeps_other_dates(self, tracker):
        """Five days with day 3 failing: four dates of data and one failure."""
        result = await tracker.track_range("LO282", START, START + timedelta(days=4))

        assert result.succeeded_dates == [
            date(2024, 7, 15),
            date(2024, 7, 16),
            date(2024, 7, 18),
            date(2024, 7, 19),
        ]
        assert [f.date for f in result.failures] == [FAILING_DAY]
        assert "upstream exploded" in result.failures[0].message
        assert isinstance(result.failures[0].error, UpstreamError)
        assert result.has_failures

    @pytest.mark.anyio
    async def test_statistics_cover_successful_dates(self, tracker):
        result = await tracker.track_range("LO282", START, START + timedelta(days=4))
        stats = result.statistics

        assert stats.total_flights == 4
        assert stats.weekday_distribution == (1, 1, 0, 1, 1, 0, 0)
        assert stats.status_counts.to_dict() == {FlightStatus.LANDED: 4}
        assert stats.aircraft_usage.to_dict() == {"B738": 4}
        assert stats.routes.to_dict() == {("WAW", "BCN"): 4}
        assert stats.average_flight_time == pytest.approx(180.0)

    @pytest.mark.anyio
    async def test_raise_for_failures(self, tracker):
        result = await tracker.track_range("LO282", START, START + timedelta(days=4))

        with pytest.raises(RangeFetchPartialFailure, match="2024-07-17") as exc_info:
            result.raise_for_failures()

        assert len(exc_info.value.failures) == 1

    @pytest.mark.anyio
    async def test_clean_range(self, tracker):
        result = await tracker.track_range("LO282", START, START + timedelta(days=1))

        assert not result.has_failures
        result.raise_for_failures()
        assert [r.flight_iata for r in result.records] == ["LO282", "LO282"]
        assert result.requested_dates == [START, START + timedelta(days=1)]

    @pytest.mark.anyio
    async def test_single_day_range(self, tracker, transport):
        result = await tracker.track_range("LO282", START, START)

        assert result.succeeded_dates == [START]
        assert len(transport.calls) == 1

    @pytest.mark.anyio
    async def test_invalid_range(self, tracker, transport):
        with pytest.raises(InvalidDateRangeError):
            await tracker.track_range("LO282", START, START - timedelta(days=1))

        assert transport.calls == []

    @pytest.mark.anyio
    async def test_all_dates_fail(self, fake_transport_factory):
        def failing(endpoint, params):
            raise UpstreamError(503, "down")

        tracker = FlightTracker(FlightDataService(fake_transport_factory(failing)))

        result = await tracker.track_range("LO282", START, START + timedelta(days=2))

        assert len(result.failures) == 3
        assert result.statistics.total_flights == 0
        assert result.statistics.average_flight_time is None


class TestDateFiltering:
    """Tests for dropping rows from neighbouring days."""

    @staticmethod
    def two_days(endpoint, params):
        day = date.fromisoformat(params["date"])
        return {"data": [by_number_row(day - timedelta(days=1)), by_number_row(day)]}

    @pytest.mark.anyio
    async def test_neighbouring_rows_dropped(self, fake_transport_factory):
        tracker = FlightTracker(FlightDataService(fake_transport_factory(self.two_days)))

        result = await tracker.track_range("LO282", START, START)

        assert len(result.records_by_date[START]) == 1
        assert result.records[0].scheduled_departure.date() == START

    @pytest.mark.anyio
    async def test_filter_disabled(self, fake_transport_factory):
        tracker = FlightTracker(
            FlightDataService(fake_transport_factory(self.two_days)),
            TrackingConfig(filter_to_requested_date=False),
        )

        result = await tracker.track_range("LO282", START, START)

        assert len(result.records_by_date[START]) == 2


class ConcurrencyProbe(FlightDataTransport):
    """Transport that records how many fetches overlap."""

    def __init__(self) -> None:
        self.active = 0
        self.max_active = 0

    async def fetch(self, endpoint, params):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(0.01)
        self.active -= 1
        return {"data": [by_number_row(date.fromisoformat(params["date"]))]}


class TestConcurrency:
    @pytest.mark.anyio
    async def test_semaphore_bounds_parallel_dates(self):
        probe = ConcurrencyProbe()
        tracker = FlightTracker(FlightDataService(probe), TrackingConfig(max_concurrent_dates=2))

        result = await tracker.track_range("LO282", START, START + timedelta(days=5))

        assert result.statistics.total_flights == 6
        assert probe.max_active == 2


# =============================================================================
# COMPARISON TESTS
# =============================================================================


class TestCompareAndPattern:
    """Tests for compare_dates and weekly_pattern."""

    @pytest.mark.anyio
    async def test_compare_dates(self, fake_transport_factory):
        def handler(endpoint, params):
            day = date.fromisoformat(params["date"])
            if day == START:
                return {"data": [by_number_row(day, aircraft="B738")]}
            return {"data": [by_number_row(day, aircraft="E195", dest="Madrid (MAD)")]}

        tracker = FlightTracker(FlightDataService(fake_transport_factory(handler)))

        comparison = await tracker.compare_dates("LO282", START, START + timedelta(days=7))

        assert comparison.left_label == "2024-07-15"
        assert comparison.right_label == "2024-07-22"
        assert comparison.left_only_routes == (("WAW", "BCN"),)
        assert comparison.right_only_routes == (("WAW", "MAD"),)
        assert comparison.aircraft_changes["E195"].delta == 1

    @pytest.mark.anyio
    async def test_compare_dates_failure_raises(self, tracker):
        with pytest.raises(UpstreamError):
            await tracker.compare_dates("LO282", START, FAILING_DAY)

    @pytest.mark.anyio
    async def test_weekly_pattern(self, fake_transport_factory):
        days = [START, START + timedelta(days=2), START + timedelta(days=7)]
        transport = fake_transport_factory(lambda e, p: {"data": [by_number_row(d) for d in days]})
        tracker = FlightTracker(FlightDataService(transport))

        pattern = await tracker.weekly_pattern("LO282")

        assert pattern.most_frequent.day_name == "Monday"
        assert pattern.days[0].count == 2
        assert pattern.least_frequent.day_name == "Wednesday"
        assert transport.calls[0][1] == {"flight_number": "LO282"}


class TestRangeStatistics:
    def test_empty(self):
        stats = range_statistics([])

        assert stats.total_flights == 0
        assert stats.weekday_distribution == (0,) * 7
        assert len(stats.routes) == 0
