"""
Record Classifier - Delay categories, status normalization and trends.

Pure functions with no I/O. Category boundaries come from
config.DelayThresholds; nothing here hardcodes minute values.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Dict, Optional

from src.flight_analytics.config import DEFAULT_ANALYTICS_CONFIG, DEFAULT_DELAY_THRESHOLDS, DelayThresholds
from src.flight_analytics.schemas.flight import (
    DelayCategory,
    DelayTrend,
    FlightRecord,
    FlightStatus,
    TimeSlot,
)

# Compact (lowercase, no separators) raw status -> normalized status.
# Covers FlightLabs spellings and the AeroDataBox ones the historical
# endpoint passes through.
_STATUS_ALIASES: Dict[str, FlightStatus] = {
    # scheduled
    "scheduled": FlightStatus.SCHEDULED,
    "expected": FlightStatus.SCHEDULED,
    "planned": FlightStatus.SCHEDULED,
    "ontime": FlightStatus.SCHEDULED,
    "delayed": FlightStatus.SCHEDULED,
    "estimated": FlightStatus.SCHEDULED,
    "checkin": FlightStatus.SCHEDULED,
    "boarding": FlightStatus.SCHEDULED,
    "gateclosed": FlightStatus.SCHEDULED,
    # active
    "active": FlightStatus.ACTIVE,
    "enroute": FlightStatus.ACTIVE,
    "departed": FlightStatus.ACTIVE,
    "started": FlightStatus.ACTIVE,
    "airborne": FlightStatus.ACTIVE,
    "inair": FlightStatus.ACTIVE,
    "approaching": FlightStatus.ACTIVE,
    "taxiing": FlightStatus.ACTIVE,
    # landed
    "landed": FlightStatus.LANDED,
    "arrived": FlightStatus.LANDED,
    # cancelled
    "cancelled": FlightStatus.CANCELLED,
    "canceled": FlightStatus.CANCELLED,
    "canceleduncertain": FlightStatus.CANCELLED,
    "cancelleduncertain": FlightStatus.CANCELLED,
    # diverted
    "diverted": FlightStatus.DIVERTED,
    "redirected": FlightStatus.DIVERTED,
}

_SEPARATORS = re.compile(r"[\s_\-]+")


def _compact(text: str) -> str:
    return _SEPARATORS.sub("", text.lower())


def normalize_status(raw: Optional[str]) -> FlightStatus:
    """
    Map a raw status string onto FlightStatus.

    Total: case, spaces, hyphens and underscores are ignored, a trailing
    time or detail ("Landed 13:05", "Diverted to VIE") falls back to the
    first word, and anything unrecognised becomes UNKNOWN.

    Example:
        >>> normalize_status("en-route")
        <FlightStatus.ACTIVE: 'active'>
        >>> normalize_status("CanceledUncertain")
        <FlightStatus.CANCELLED: 'cancelled'>
    """
    if not raw or not raw.strip():
        return FlightStatus.UNKNOWN

    status = _STATUS_ALIASES.get(_compact(raw))
    if status is not None:
        return status

    first_word = raw.strip().split()[0]
    return _STATUS_ALIASES.get(_compact(first_word), FlightStatus.UNKNOWN)


def categorize_delay(
    minutes: Optional[float],
    thresholds: DelayThresholds = DEFAULT_DELAY_THRESHOLDS,
) -> DelayCategory:
    """
    Bucket a delay in minutes.

    Args:
        minutes: Delay in minutes (negative means early); None for no data.
        thresholds: Category upper bounds.

    Returns:
        DelayCategory; UNKNOWN when minutes is None.
    """
    if minutes is None:
        return DelayCategory.UNKNOWN
    if minutes <= thresholds.none_max:
        return DelayCategory.NONE
    if minutes <= thresholds.minor_max:
        return DelayCategory.MINOR
    if minutes <= thresholds.moderate_max:
        return DelayCategory.MODERATE
    if minutes <= thresholds.major_max:
        return DelayCategory.MAJOR
    return DelayCategory.SEVERE


def classify(
    record: FlightRecord,
    thresholds: DelayThresholds = DEFAULT_DELAY_THRESHOLDS,
) -> DelayCategory:
    """Delay category of a record (UNKNOWN when it carries no delay data)."""
    return categorize_delay(record.delay_minutes, thresholds)


def delay_trend(
    record: FlightRecord,
    band_minutes: float = DEFAULT_ANALYTICS_CONFIG.trend_band_minutes,
) -> DelayTrend:
    """
    Compare arrival delay with departure delay.

    Time made up in the air (arrival delay lower by more than the band)
    is IMPROVING, time lost is WORSENING, anything within the band is
    STABLE. UNKNOWN unless both legs carry a delay.
    """
    if record.departure_delay is None or record.arrival_delay is None:
        return DelayTrend.UNKNOWN

    change = record.arrival_delay - record.departure_delay
    if change < -band_minutes:
        return DelayTrend.IMPROVING
    if change > band_minutes:
        return DelayTrend.WORSENING
    return DelayTrend.STABLE


def time_slot(moment: Optional[datetime]) -> Optional[TimeSlot]:
    """Time-of-day bucket of a local timestamp (None stays None)."""
    if moment is None:
        return None
    if moment.hour < 12:
        return TimeSlot.MORNING
    if moment.hour < 18:
        return TimeSlot.AFTERNOON
    return TimeSlot.EVENING
