"""
Record adapters - raw endpoint items to FlightRecord.

One adapter per RecordSource. Each reads a raw item through its pydantic
model in schemas/raw.py and narrows it into the variant-agnostic
FlightRecord. Adapters are lenient: missing fields become None and odd
statuses become UNKNOWN. Only an item that cannot be read at all raises
MalformedRecordError; normalize_batch() logs those, counts them and
carries on.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Type, TypeVar

import pandas as pd
from pydantic import ValidationError

from src.flight_analytics.exceptions import MalformedRecordError
from src.flight_analytics.schemas.flight import (
    Codeshare,
    FlightRecord,
    FlightStatus,
    RecordSource,
    resolve_leg_delay,
)
from src.flight_analytics.schemas.raw import (
    DelayFlight,
    FlightByNumberRow,
    FutureFlight,
    HistoricalFlight,
    RawModel,
    RealtimeFlight,
    ScheduleFlight,
)
from src.flight_analytics.services.classifier import normalize_status

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=RawModel)

# Placeholders the by-number endpoint uses for "not available"
MISSING_MARKERS = frozenset({"", "—", "-", "--", "N/A", "n/a"})

_AIRPORT_CODE = re.compile(r"\(([A-Z0-9]{3,4})\)\s*$")
_HOURS = re.compile(r"(\d+)\s*h")
_MINUTES = re.compile(r"(\d+)\s*m")
_FLIGHT_DESIGNATOR = re.compile(r"^([A-Z]{2,3}|[A-Z][0-9]|[0-9][A-Z])(\d{1,5}[A-Z]?)$")

# A scheduled/actual pair further apart than this wrapped past midnight
_DAY_ROLLOVER = timedelta(hours=12)


# =============================================================================
# PARSING HELPERS
# =============================================================================


def _present(value: Optional[str]) -> Optional[str]:
    """Strip a string and map placeholders to None."""
    if value is None:
        return None
    text = str(value).strip()
    return None if text in MISSING_MARKERS else text


def parse_local_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp into a naive local datetime.

    Accepts anything pandas.to_datetime understands. A UTC offset
    ("2024-03-20 14:30+01:00") is dropped, keeping the local wall time.

    Returns:
        Naive datetime, or None for missing or unparseable input.
    """
    text = _present(value) if isinstance(value, str) else value
    if text is None:
        return None

    ts = pd.to_datetime(text, errors="coerce")
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.to_pydatetime()


def _combine(day: Optional[date], clock: Optional[str]) -> Optional[datetime]:
    """Join a date and an 'HH:MM' string."""
    clock = _present(clock)
    if day is None or clock is None:
        return None
    ts = pd.to_datetime(f"{day.isoformat()} {clock}", format="%Y-%m-%d %H:%M", errors="coerce")
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _after(anchor: Optional[datetime], moment: Optional[datetime]) -> Optional[datetime]:
    """Move a same-day time forward a day when it wrapped past midnight."""
    if anchor is None or moment is None:
        return moment
    if moment < anchor - _DAY_ROLLOVER:
        return moment + timedelta(days=1)
    return moment


def parse_flight_time(text: Optional[str]) -> Optional[float]:
    """
    Parse a duration like '2h 30m', '1h' or '45m' into minutes.

    Returns None for placeholders and strings with no hour/minute part.
    """
    text = _present(text)
    if text is None:
        return None
    hours = _HOURS.search(text)
    minutes = _MINUTES.search(text)
    if hours is None and minutes is None:
        return None
    return float((int(hours.group(1)) if hours else 0) * 60 + (int(minutes.group(1)) if minutes else 0))


def extract_airport_code(location: Optional[str]) -> Optional[str]:
    """'Nador (NDR)' -> 'NDR'; None when there is no trailing code."""
    location = _present(location)
    if location is None:
        return None
    match = _AIRPORT_CODE.search(location)
    return match.group(1) if match else None


def split_flight_designator(text: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Split 'LO 282' / 'LO282' into ('LO', '282').

    Returns (None, text) when no airline prefix can be told apart.
    """
    text = _present(text)
    if text is None:
        return None, None
    match = _FLIGHT_DESIGNATOR.match(text.replace(" ", "").upper())
    if match is None:
        return None, text
    return match.group(1), match.group(2)


def _parse(model: Type[M], source: RecordSource, item: Any) -> M:
    """Validate a raw item, raising MalformedRecordError if it is unreadable."""
    if not isinstance(item, Mapping):
        raise MalformedRecordError(source.value, f"expected an object, got {type(item).__name__}")
    try:
        return model.model_validate(item)
    except ValidationError as e:
        raise MalformedRecordError(source.value, str(e)) from e


def _codeshare(
    airline_iata: Optional[str],
    flight_number: Optional[str],
    flight_iata: Optional[str],
) -> Optional[Codeshare]:
    if not (airline_iata or flight_number or flight_iata):
        return None
    return Codeshare(airline_iata=airline_iata, flight_number=flight_number, flight_iata=flight_iata)


# =============================================================================
# ADAPTERS
# =============================================================================


def adapt_realtime(item: Any, **_: Any) -> FlightRecord:
    """Real-time position item (/flights) to FlightRecord; no timestamps."""
    raw = _parse(RealtimeFlight, RecordSource.REALTIME, item)
    return FlightRecord(
        flight_number=raw.flight_number,
        flight_iata=raw.flight_iata,
        flight_icao=raw.flight_icao,
        airline_iata=raw.airline_iata,
        airline_icao=raw.airline_icao,
        origin=raw.dep_iata or raw.dep_icao,
        destination=raw.arr_iata or raw.arr_icao,
        status=normalize_status(raw.status),
        raw_status=raw.status,
        aircraft=raw.aircraft_icao,
        source=RecordSource.REALTIME,
    )


def _adapt_scheduled_shape(raw: ScheduleFlight, source: RecordSource) -> FlightRecord:
    scheduled_dep = parse_local_timestamp(raw.dep_time)
    actual_dep = parse_local_timestamp(raw.dep_actual)
    scheduled_arr = parse_local_timestamp(raw.arr_time)
    actual_arr = parse_local_timestamp(raw.arr_actual)

    supplied_dep = raw.dep_delayed
    if supplied_dep is None and raw.arr_delayed is None:
        # `delayed` is the only delay field some items carry
        supplied_dep = raw.delayed

    return FlightRecord(
        flight_number=raw.flight_number,
        flight_iata=raw.flight_iata,
        flight_icao=raw.flight_icao,
        airline_iata=raw.airline_iata,
        airline_icao=raw.airline_icao,
        origin=raw.dep_iata or raw.dep_icao,
        destination=raw.arr_iata or raw.arr_icao,
        scheduled_departure=scheduled_dep,
        estimated_departure=parse_local_timestamp(raw.dep_estimated),
        actual_departure=actual_dep,
        scheduled_arrival=scheduled_arr,
        estimated_arrival=parse_local_timestamp(raw.arr_estimated),
        actual_arrival=actual_arr,
        departure_delay=resolve_leg_delay(scheduled_dep, actual_dep, supplied_dep),
        arrival_delay=resolve_leg_delay(scheduled_arr, actual_arr, raw.arr_delayed),
        total_delay=raw.delayed,
        status=normalize_status(raw.status),
        raw_status=raw.status,
        aircraft=raw.aircraft_icao,
        terminal=raw.dep_terminal,
        gate=raw.dep_gate,
        duration_minutes=raw.duration,
        codeshare=_codeshare(raw.cs_airline_iata, raw.cs_flight_number, raw.cs_flight_iata),
        source=source,
    )


def adapt_schedule(item: Any, **_: Any) -> FlightRecord:
    """Schedule item (/advanced-flights-schedules) to FlightRecord."""
    return _adapt_scheduled_shape(_parse(ScheduleFlight, RecordSource.SCHEDULE, item), RecordSource.SCHEDULE)


def adapt_delay(item: Any, **_: Any) -> FlightRecord:
    """Delay item (/flight_delays) to FlightRecord."""
    return _adapt_scheduled_shape(_parse(DelayFlight, RecordSource.DELAY, item), RecordSource.DELAY)


def adapt_historical(
    item: Any,
    airport: Optional[str] = None,
    direction: str = "departure",
    **_: Any,
) -> FlightRecord:
    """
    Historical item (/historical) to FlightRecord.

    Items describe one movement at the queried airport; `movement.airport`
    is the other end of the flight. For departures the movement times
    are departure times and the terminal/gate are the departure ones;
    for arrivals they are arrival times.

    Args:
        item: Raw item.
        airport: Queried airport code (the `code` parameter).
        direction: 'departure' or 'arrival' (the `type` parameter).
    """
    raw = _parse(HistoricalFlight, RecordSource.HISTORICAL, item)
    movement = raw.movement

    scheduled = parse_local_timestamp(movement.scheduledTime.local)
    revised = parse_local_timestamp(movement.revisedTime.local) if movement.revisedTime else None
    actual = parse_local_timestamp(movement.actualTime.local) if movement.actualTime else None
    delay = resolve_leg_delay(scheduled, actual, None)

    prefix, number = split_flight_designator(raw.number)
    airline_iata = raw.airline.iata or prefix
    flight_iata = f"{airline_iata}{number}" if airline_iata and number else None

    codeshare = None
    if (raw.codeshareStatus or "").lower() == "iscodeshared":
        codeshare = Codeshare(airline_iata=airline_iata, flight_number=number, flight_iata=flight_iata)

    departing = direction.lower().startswith("dep")
    other_end = movement.airport.iata

    return FlightRecord(
        flight_number=number,
        flight_iata=flight_iata,
        airline_iata=airline_iata,
        airline_icao=raw.airline.icao,
        airline_name=raw.airline.name,
        origin=airport if departing else other_end,
        destination=other_end if departing else airport,
        scheduled_departure=scheduled if departing else None,
        estimated_departure=revised if departing else None,
        actual_departure=actual if departing else None,
        scheduled_arrival=None if departing else scheduled,
        estimated_arrival=None if departing else revised,
        actual_arrival=None if departing else actual,
        departure_delay=delay if departing else None,
        arrival_delay=None if departing else delay,
        status=normalize_status(raw.status),
        raw_status=raw.status,
        aircraft=raw.aircraft.model,
        terminal=movement.terminal if departing else None,
        gate=movement.gate if departing else None,
        codeshare=codeshare,
        source=RecordSource.HISTORICAL,
    )


def adapt_future(
    item: Any,
    airport: Optional[str] = None,
    direction: str = "departure",
    on_date: Optional[date] = None,
    **_: Any,
) -> FlightRecord:
    """
    Future schedule item (/advanced-future-flights) to FlightRecord.

    Times come as 'HH:MM' on the queried date; `sortTime` supplies the
    date when on_date is not given. A non-empty `operatedBy` marks the
    item as a marketing (codeshare) listing.
    """
    raw = _parse(FutureFlight, RecordSource.FUTURE, item)

    sort_time = parse_local_timestamp(raw.sortTime)
    day = on_date or (sort_time.date() if sort_time else None)
    departure = _combine(day, raw.departureTime.time24)
    arrival = _after(departure, _combine(day, raw.arrivalTime.time24))

    carrier = raw.carrier.fs
    number = raw.carrier.flightNumber
    flight_iata = f"{carrier}{number}" if carrier and number else None
    codeshare = (
        Codeshare(airline_iata=carrier, flight_number=number, flight_iata=flight_iata)
        if _present(raw.operatedBy)
        else None
    )

    departing = direction.lower().startswith("dep")
    other_end = raw.airport.fs

    return FlightRecord(
        flight_number=number,
        flight_iata=flight_iata,
        airline_iata=carrier,
        airline_name=raw.carrier.name,
        origin=airport if departing else other_end,
        destination=other_end if departing else airport,
        scheduled_departure=departure or (sort_time if departing else None),
        scheduled_arrival=arrival,
        status=FlightStatus.SCHEDULED,
        codeshare=codeshare,
        source=RecordSource.FUTURE,
    )


def adapt_by_number(item: Any, flight_number: Optional[str] = None, **_: Any) -> FlightRecord:
    """
    Flight-by-number row (/flight) to FlightRecord.

    Rows carry a 'DD Mon YYYY' date, 'HH:MM' times, '—' for missing
    values and airports as 'City (IATA)'. Departure delay is ATD - STD;
    an arrival time earlier than departure is taken as the next day.

    Args:
        item: Raw row.
        flight_number: Queried flight number (e.g., 'LO282').
    """
    raw = _parse(FlightByNumberRow, RecordSource.BY_NUMBER, item)

    day_ts = pd.to_datetime(_present(raw.date), format="%d %b %Y", errors="coerce")
    day = None if pd.isna(day_ts) else day_ts.date()

    scheduled_dep = _combine(day, raw.std)
    actual_dep = _after(scheduled_dep, _combine(day, raw.atd))
    scheduled_arr = _after(scheduled_dep, _combine(day, raw.sta))

    prefix, number = split_flight_designator(flight_number)
    status = _present(raw.status)

    return FlightRecord(
        flight_number=number,
        flight_iata=f"{prefix}{number}" if prefix else None,
        airline_iata=prefix,
        origin=extract_airport_code(raw.origin),
        destination=extract_airport_code(raw.destination),
        scheduled_departure=scheduled_dep,
        actual_departure=actual_dep,
        scheduled_arrival=scheduled_arr,
        departure_delay=resolve_leg_delay(scheduled_dep, actual_dep, None),
        status=normalize_status(status),
        raw_status=status,
        aircraft=_present(raw.aircraft),
        duration_minutes=parse_flight_time(raw.flight_time),
        source=RecordSource.BY_NUMBER,
    )


ADAPTERS: Dict[RecordSource, Callable[..., FlightRecord]] = {
    RecordSource.REALTIME: adapt_realtime,
    RecordSource.SCHEDULE: adapt_schedule,
    RecordSource.DELAY: adapt_delay,
    RecordSource.HISTORICAL: adapt_historical,
    RecordSource.FUTURE: adapt_future,
    RecordSource.BY_NUMBER: adapt_by_number,
}


def adapt_record(source: RecordSource, item: Any, **context: Any) -> FlightRecord:
    """
    Adapt one raw item with the adapter registered for its source.

    Args:
        source: Endpoint variant the item came from.
        item: Raw item.
        **context: Query context some adapters need (airport, direction,
            on_date, flight_number).

    Raises:
        MalformedRecordError: If the item cannot be read at all.
    """
    return ADAPTERS[source](item, **context)


# =============================================================================
# BATCH NORMALIZATION
# =============================================================================


@dataclass(frozen=True)
class NormalizedBatch:
    """
    Records adapted from one response.

    Attributes:
        records: Adapted records, in source order.
        malformed: Items skipped because they could not be read.
    """

    records: Tuple[FlightRecord, ...]
    malformed: int = 0


def normalize_batch(
    source: RecordSource,
    items: Optional[Iterable[Any]],
    **context: Any,
) -> NormalizedBatch:
    """
    Adapt every item of a response, skipping unreadable ones.

    Args:
        source: Endpoint variant of the items.
        items: Raw items (None is treated as empty).
        **context: Passed through to the adapter.

    Returns:
        NormalizedBatch with records in source order and a malformed count.
    """
    records = []
    malformed = 0
    for item in items or ():
        try:
            records.append(adapt_record(source, item, **context))
        except MalformedRecordError as e:
            malformed += 1
            logger.warning("Failed to parse %s record: %s", source.value, e.reason)

    if malformed:
        logger.warning("Skipped %d malformed %s record(s)", malformed, source.value)
    return NormalizedBatch(records=tuple(records), malformed=malformed)
