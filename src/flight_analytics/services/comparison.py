"""
Comparison service - dataset diffs and temporal patterns.

Compares two record sets (typically the same flight on two dates) and
buckets records by weekday and time of day. Weekdays are numbered
Monday = 0 through Sunday = 6.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from src.flight_analytics.schemas.analysis import OrderedGroups
from src.flight_analytics.schemas.flight import FlightRecord, FlightStatus, TimeSlot
from src.flight_analytics.services.analytics import group_records, on_time_performance
from src.flight_analytics.services.classifier import time_slot

Route = Tuple[Optional[str], Optional[str]]


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class AircraftUsageChange:
    """How often an aircraft type appears on each side of a comparison."""

    left: int
    right: int

    @property
    def delta(self) -> int:
        return self.right - self.left

    @property
    def changed(self) -> bool:
        return self.left != self.right


@dataclass(frozen=True)
class DatasetComparison:
    """
    Differences between two record sets.

    Deltas are right minus left. Route lists keep first-seen order.
    """

    left_label: str
    right_label: str
    left_count: int
    right_count: int
    left_cancelled: int
    right_cancelled: int
    left_on_time: int
    right_on_time: int
    common_routes: Tuple[Route, ...]
    left_only_routes: Tuple[Route, ...]
    right_only_routes: Tuple[Route, ...]
    aircraft_changes: OrderedGroups[str, AircraftUsageChange]

    @property
    def count_delta(self) -> int:
        return self.right_count - self.left_count

    @property
    def cancelled_delta(self) -> int:
        return self.right_cancelled - self.left_cancelled

    @property
    def on_time_delta(self) -> int:
        return self.right_on_time - self.left_on_time


@dataclass(frozen=True)
class TemporalPattern:
    """
    Record counts by weekday and by time slot.

    Busiest/quietest consider non-empty buckets only; ties go to the
    lowest bucket index. They are None when no record has a scheduled
    departure time.
    """

    weekday_counts: Tuple[int, ...]
    slot_counts: OrderedGroups[TimeSlot, int]
    busiest_weekday: Optional[int]
    quietest_weekday: Optional[int]
    busiest_slot: Optional[TimeSlot]
    quietest_slot: Optional[TimeSlot]


@dataclass(frozen=True)
class WeekdayActivity:
    """Activity of one weekday within a weekly pattern."""

    weekday: int
    day_name: str
    count: int
    scheduled: int
    landed: int
    cancelled: int
    routes: Tuple[Route, ...]


@dataclass(frozen=True)
class WeeklyPattern:
    """Per-weekday activity plus the most and least frequent operating days."""

    days: Tuple[WeekdayActivity, ...]
    most_frequent: Optional[WeekdayActivity]
    least_frequent: Optional[WeekdayActivity]


# =============================================================================
# HELPERS
# =============================================================================


def _unique_routes(records: Iterable[FlightRecord]) -> List[Route]:
    return group_records(records, lambda r: r.route).keys()


def _aircraft_counts(records: Iterable[FlightRecord]) -> OrderedGroups[str, int]:
    groups = group_records((r for r in records if r.aircraft), lambda r: r.aircraft)
    return groups.map_values(len)


def _extreme_index(counts: Sequence[int], busiest: bool) -> Optional[int]:
    """Index of the largest (or smallest) non-zero count, lowest index on ties."""
    best: Optional[int] = None
    for index, count in enumerate(counts):
        if count == 0:
            continue
        if best is None or (count > counts[best] if busiest else count < counts[best]):
            best = index
    return best


# =============================================================================
# COMPARISON
# =============================================================================


def compare_datasets(
    left: Sequence[FlightRecord],
    right: Sequence[FlightRecord],
    left_label: str = "left",
    right_label: str = "right",
    threshold_minutes: float = 15.0,
) -> DatasetComparison:
    """
    Compare two record sets.

    Args:
        left: First record set (e.g., the earlier date).
        right: Second record set.
        left_label: Display label of the first set.
        right_label: Display label of the second set.
        threshold_minutes: On-time threshold for both sides.

    Returns:
        DatasetComparison with counts, route joins and aircraft usage.
    """
    left_perf = on_time_performance(left, threshold_minutes)
    right_perf = on_time_performance(right, threshold_minutes)

    left_routes = _unique_routes(left)
    right_routes = _unique_routes(right)
    right_set = set(right_routes)
    left_set = set(left_routes)

    left_aircraft = _aircraft_counts(left)
    right_aircraft = _aircraft_counts(right)
    aircraft_changes: OrderedGroups[str, AircraftUsageChange] = OrderedGroups()
    for aircraft in left_aircraft.keys() + right_aircraft.keys():
        if aircraft not in aircraft_changes:
            aircraft_changes[aircraft] = AircraftUsageChange(
                left=left_aircraft.get(aircraft, 0),
                right=right_aircraft.get(aircraft, 0),
            )

    return DatasetComparison(
        left_label=left_label,
        right_label=right_label,
        left_count=left_perf.total,
        right_count=right_perf.total,
        left_cancelled=left_perf.cancelled,
        right_cancelled=right_perf.cancelled,
        left_on_time=left_perf.on_time,
        right_on_time=right_perf.on_time,
        common_routes=tuple(r for r in left_routes if r in right_set),
        left_only_routes=tuple(r for r in left_routes if r not in right_set),
        right_only_routes=tuple(r for r in right_routes if r not in left_set),
        aircraft_changes=aircraft_changes,
    )


# =============================================================================
# PATTERNS
# =============================================================================


def temporal_pattern(records: Sequence[FlightRecord]) -> Optional[TemporalPattern]:
    """
    Bucket records by weekday (Monday = 0) and time slot.

    Uses the scheduled local departure time; records without one are
    left out of the buckets.

    Returns:
        TemporalPattern, or None for an empty record set.
    """
    if not records:
        return None

    weekdays = [0] * 7
    slots: OrderedGroups[TimeSlot, int] = OrderedGroups([(s, 0) for s in TimeSlot])
    for record in records:
        moment = record.scheduled_departure
        if moment is None:
            continue
        weekdays[moment.weekday()] += 1
        slot = time_slot(moment)
        slots[slot] = slots[slot] + 1

    slot_counts = [slots[s] for s in TimeSlot]
    busiest_slot = _extreme_index(slot_counts, busiest=True)
    quietest_slot = _extreme_index(slot_counts, busiest=False)
    slot_order = list(TimeSlot)

    return TemporalPattern(
        weekday_counts=tuple(weekdays),
        slot_counts=slots,
        busiest_weekday=_extreme_index(weekdays, busiest=True),
        quietest_weekday=_extreme_index(weekdays, busiest=False),
        busiest_slot=slot_order[busiest_slot] if busiest_slot is not None else None,
        quietest_slot=slot_order[quietest_slot] if quietest_slot is not None else None,
    )


def weekly_pattern(records: Iterable[FlightRecord]) -> WeeklyPattern:
    """
    Per-weekday activity of a record set.

    Every weekday is present (Monday first), with scheduled/landed/
    cancelled counts and the routes flown that day.

    Returns:
        WeeklyPattern; most/least frequent are None when no record has
        a scheduled departure time.
    """
    by_weekday = group_records(
        (r for r in records if r.scheduled_departure is not None),
        lambda r: r.scheduled_departure.weekday(),
    )

    days = []
    for weekday in range(7):
        members = by_weekday.get(weekday, [])
        days.append(
            WeekdayActivity(
                weekday=weekday,
                day_name=calendar.day_name[weekday],
                count=len(members),
                scheduled=sum(1 for r in members if r.status is FlightStatus.SCHEDULED),
                landed=sum(1 for r in members if r.status is FlightStatus.LANDED),
                cancelled=sum(1 for r in members if r.status is FlightStatus.CANCELLED),
                routes=tuple(_unique_routes(members)),
            )
        )

    counts = [d.count for d in days]
    most = _extreme_index(counts, busiest=True)
    least = _extreme_index(counts, busiest=False)
    return WeeklyPattern(
        days=tuple(days),
        most_frequent=days[most] if most is not None else None,
        least_frequent=days[least] if least is not None else None,
    )
