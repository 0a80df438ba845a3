"""
Normalized flight record schemas.

Every endpoint variant (real-time, historical, schedule, future, delay,
by-number) is narrowed into a FlightRecord at the adapter boundary, so
the analytics layer never sees endpoint-specific shapes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Tuple

import pandas as pd
import pandera as pa
from pandera.typing import DataFrame, Series


class FlightStatus(Enum):
    """Normalized flight status."""

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    LANDED = "landed"
    CANCELLED = "cancelled"
    DIVERTED = "diverted"
    UNKNOWN = "unknown"


class RecordSource(Enum):
    """Endpoint variant a record was adapted from."""

    REALTIME = "realtime"
    HISTORICAL = "historical"
    SCHEDULE = "schedule"
    FUTURE = "future"
    DELAY = "delay"
    BY_NUMBER = "by_number"


class DelayCategory(Enum):
    """
    Delay severity bucket.

    Boundaries come from config.DelayThresholds. UNKNOWN is used for
    records that carry no delay information at all.
    """

    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    SEVERE = "severe"
    UNKNOWN = "unknown"


class DelayTrend(Enum):
    """Arrival delay compared to departure delay."""

    IMPROVING = "improving"
    WORSENING = "worsening"
    STABLE = "stable"
    UNKNOWN = "unknown"


class TimeSlot(Enum):
    """Coarse time-of-day bucket on scheduled local departure time."""

    MORNING = "morning"  # 00:00-11:59
    AFTERNOON = "afternoon"  # 12:00-17:59
    EVENING = "evening"  # 18:00-23:59


@dataclass(frozen=True)
class Codeshare:
    """Marketing-carrier cross reference for a codeshared flight."""

    airline_iata: Optional[str] = None
    flight_number: Optional[str] = None
    flight_iata: Optional[str] = None


def resolve_leg_delay(
    scheduled: Optional[datetime],
    actual: Optional[datetime],
    supplied: Optional[float],
) -> Optional[float]:
    """
    Delay of one leg in minutes.

    actual - scheduled when both timestamps exist, otherwise the value
    the source supplied (trusted as-is, possibly None).
    """
    if scheduled is not None and actual is not None:
        return (actual - scheduled).total_seconds() / 60
    return supplied


@dataclass(frozen=True)
class FlightRecord:
    """
    Immutable, variant-agnostic flight record.

    Timestamps are naive local times at the respective airport.

    Attributes:
        flight_number: Numeric part of the flight designator (e.g., '282').
        flight_iata: Flight IATA code-number (e.g., 'AA100').
        flight_icao: Flight ICAO code-number.
        airline_iata: Operating airline IATA code.
        airline_icao: Operating airline ICAO code.
        airline_name: Airline display name, when the source has one.
        origin: Departure airport code.
        destination: Arrival airport code.
        scheduled_departure / estimated_departure / actual_departure: Departure times.
        scheduled_arrival / estimated_arrival / actual_arrival: Arrival times.
        departure_delay: Departure delay in minutes.
        arrival_delay: Arrival delay in minutes.
        total_delay: Whole-flight delay as the source reported it.
        status: Normalized status.
        raw_status: Status string as the source sent it.
        aircraft: Aircraft type or model.
        terminal: Departure terminal.
        gate: Departure gate.
        duration_minutes: Scheduled block time.
        codeshare: Codeshare reference, if any.
        source: Endpoint variant this record came from.
    """

    flight_number: Optional[str] = None
    flight_iata: Optional[str] = None
    flight_icao: Optional[str] = None
    airline_iata: Optional[str] = None
    airline_icao: Optional[str] = None
    airline_name: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    scheduled_departure: Optional[datetime] = None
    estimated_departure: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    scheduled_arrival: Optional[datetime] = None
    estimated_arrival: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    departure_delay: Optional[float] = None
    arrival_delay: Optional[float] = None
    total_delay: Optional[float] = None
    status: FlightStatus = FlightStatus.UNKNOWN
    raw_status: Optional[str] = None
    aircraft: Optional[str] = None
    terminal: Optional[str] = None
    gate: Optional[str] = None
    duration_minutes: Optional[float] = None
    codeshare: Optional[Codeshare] = None
    source: RecordSource = RecordSource.REALTIME

    @property
    def route(self) -> Tuple[Optional[str], Optional[str]]:
        """(origin, destination) pair."""
        return (self.origin, self.destination)

    @property
    def delay_minutes(self) -> Optional[float]:
        """
        Delay of the flight in minutes.

        The source-reported total when there is one, otherwise the
        largest known leg delay; None if the record has no delay data.
        """
        if self.total_delay is not None:
            return self.total_delay
        known = [d for d in (self.departure_delay, self.arrival_delay) if d is not None]
        return max(known) if known else None

    @property
    def is_cancelled(self) -> bool:
        """Check if the flight was cancelled."""
        return self.status is FlightStatus.CANCELLED

    @property
    def is_codeshare(self) -> bool:
        """Check if the record references a marketing carrier."""
        return self.codeshare is not None

    @property
    def identifier(self) -> str:
        """Best available flight identifier for display and logging."""
        return self.flight_iata or self.flight_icao or self.flight_number or "unknown"


class FlightRecordSchema(pa.DataFrameModel):
    """
    Tabular export of FlightRecords.

    Used for vectorized statistics; one row per record, source order.
    """

    flight_iata: Series[str] = pa.Field(nullable=True, coerce=True)
    airline_iata: Series[str] = pa.Field(nullable=True, coerce=True)
    origin: Series[str] = pa.Field(nullable=True, coerce=True)
    destination: Series[str] = pa.Field(nullable=True, coerce=True)
    status: Series[str] = pa.Field(
        isin=[s.value for s in FlightStatus],
        coerce=True,
        description="Normalized FlightStatus value",
    )
    scheduled_departure: Series[pd.Timestamp] = pa.Field(nullable=True, coerce=True)
    departure_delay: Series[float] = pa.Field(nullable=True, coerce=True)
    arrival_delay: Series[float] = pa.Field(nullable=True, coerce=True)
    delay_minutes: Series[float] = pa.Field(nullable=True, coerce=True)
    aircraft: Series[str] = pa.Field(nullable=True, coerce=True)
    terminal: Series[str] = pa.Field(nullable=True, coerce=True)
    source: Series[str] = pa.Field(isin=[s.value for s in RecordSource], coerce=True)

    class Config:
        strict = False
        name = "FlightRecordSchema"
        description = "Normalized flight records, one row per record"


FlightRecordFrame = DataFrame[FlightRecordSchema]

FRAME_COLUMNS = [
    "flight_iata",
    "airline_iata",
    "origin",
    "destination",
    "status",
    "scheduled_departure",
    "departure_delay",
    "arrival_delay",
    "delay_minutes",
    "aircraft",
    "terminal",
    "source",
]


def records_to_frame(records: Iterable[FlightRecord]) -> FlightRecordFrame:
    """
    Convert records to a DataFrame validated against FlightRecordSchema.

    Args:
        records: Normalized flight records.

    Returns:
        Validated DataFrame, rows in input order. Empty input yields an
        empty frame with the schema's columns.
    """
    rows = [
        (
            r.flight_iata,
            r.airline_iata,
            r.origin,
            r.destination,
            r.status.value,
            r.scheduled_departure,
            r.departure_delay,
            r.arrival_delay,
            r.delay_minutes,
            r.aircraft,
            r.terminal,
            r.source.value,
        )
        for r in records
    ]
    df = pd.DataFrame.from_records(rows, columns=FRAME_COLUMNS)
    return FlightRecordSchema.validate(df)
