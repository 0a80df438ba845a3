"""
Tests for the record classifier.

Tests cover:
- Delay category boundaries (default and custom thresholds)
- Status normalization across FlightLabs and AeroDataBox spellings
- Delay trend and time slot bucketing
"""

from datetime import datetime

import pytest

from src.flight_analytics.config import DelayThresholds
from src.flight_analytics.schemas.flight import (
    DelayCategory,
    DelayTrend,
    FlightStatus,
    TimeSlot,
)
from src.flight_analytics.services.classifier import (
    categorize_delay,
    classify,
    delay_trend,
    normalize_status,
    time_slot,
)


class TestCategorizeDelay:
    """Tests for delay buckets."""

    @pytest.mark.parametrize(
        "minutes,category",
        [
            (-10, DelayCategory.NONE),
            (0, DelayCategory.NONE),
            (1, DelayCategory.MINOR),
            (15, DelayCategory.MINOR),
            (16, DelayCategory.MODERATE),
            (60, DelayCategory.MODERATE),
            (61, DelayCategory.MAJOR),
            (180, DelayCategory.MAJOR),
            (181, DelayCategory.SEVERE),
            (None, DelayCategory.UNKNOWN),
        ],
    )
    def test_default_boundaries(self, minutes, category):
        assert categorize_delay(minutes) is category

    def test_custom_thresholds(self):
        strict = DelayThresholds(none_max=0, minor_max=5, moderate_max=30, major_max=90)

        assert categorize_delay(10, strict) is DelayCategory.MODERATE
        assert categorize_delay(100, strict) is DelayCategory.SEVERE

    def test_thresholds_must_increase(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            DelayThresholds(minor_max=60, moderate_max=15)

    def test_classify_uses_largest_leg(self, make_record):
        record = make_record(departure_delay=5, arrival_delay=70)

        assert classify(record) is DelayCategory.MAJOR

    def test_classify_without_delay_data(self, make_record):
        assert classify(make_record()) is DelayCategory.UNKNOWN


class TestNormalizeStatus:
    """Tests for status normalization."""

    @pytest.mark.parametrize(
        "raw,status",
        [
            ("scheduled", FlightStatus.SCHEDULED),
            ("Expected", FlightStatus.SCHEDULED),
            ("en-route", FlightStatus.ACTIVE),
            ("EnRoute", FlightStatus.ACTIVE),
            ("en_route", FlightStatus.ACTIVE),
            ("Departed", FlightStatus.ACTIVE),
            ("active", FlightStatus.ACTIVE),
            ("landed", FlightStatus.LANDED),
            ("Arrived", FlightStatus.LANDED),
            ("Landed 13:05", FlightStatus.LANDED),
            ("cancelled", FlightStatus.CANCELLED),
            ("Canceled", FlightStatus.CANCELLED),
            ("CanceledUncertain", FlightStatus.CANCELLED),
            ("Diverted to VIE", FlightStatus.DIVERTED),
            ("incident", FlightStatus.UNKNOWN),
            ("", FlightStatus.UNKNOWN),
            ("   ", FlightStatus.UNKNOWN),
            (None, FlightStatus.UNKNOWN),
        ],
    )
    def test_aliases(self, raw, status):
        assert normalize_status(raw) is status


class TestDelayTrend:
    """Tests for arrival-vs-departure trend."""

    @pytest.mark.parametrize(
        "dep,arr,trend",
        [
            (30, 10, DelayTrend.IMPROVING),
            (10, 30, DelayTrend.WORSENING),
            (10, 15, DelayTrend.STABLE),
            (10, 5, DelayTrend.STABLE),
            (None, 10, DelayTrend.UNKNOWN),
            (10, None, DelayTrend.UNKNOWN),
        ],
    )
    def test_trend(self, make_record, dep, arr, trend):
        assert delay_trend(make_record(departure_delay=dep, arrival_delay=arr)) is trend


class TestTimeSlot:
    @pytest.mark.parametrize(
        "hour,slot",
        [
            (0, TimeSlot.MORNING),
            (11, TimeSlot.MORNING),
            (12, TimeSlot.AFTERNOON),
            (17, TimeSlot.AFTERNOON),
            (18, TimeSlot.EVENING),
            (23, TimeSlot.EVENING),
        ],
    )
    def test_slots(self, hour, slot):
        assert time_slot(datetime(2024, 7, 15, hour, 59)) is slot

    def test_none(self):
        assert time_slot(None) is None
