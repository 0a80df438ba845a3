"""
Analytics Aggregator - Statistics over normalized flight records.

Provides grouping, delay statistics, on-time performance and the
single-call analyze() that combines them. Every function is pure and
computes fresh from its input; empty input yields zero-valued results
rather than errors.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

import pandas as pd

from src.flight_analytics.config import (
    DEFAULT_ANALYTICS_CONFIG,
    DEFAULT_DELAY_THRESHOLDS,
    AnalyticsConfig,
    DelayThresholds,
)
from src.flight_analytics.schemas.analysis import (
    AirlineReliability,
    AnalysisResult,
    DelayStatistics,
    GroupSummary,
    OnTimePerformance,
    OrderedGroups,
)
from src.flight_analytics.schemas.flight import (
    DelayCategory,
    DelayTrend,
    FlightRecord,
    FlightStatus,
    records_to_frame,
)
from src.flight_analytics.services.classifier import classify, delay_trend
from src.flight_analytics.services.cost_model import summarize_costs

logger = logging.getLogger(__name__)

__all__ = [
    "GroupBy",
    "KEY_FUNCTIONS",
    "airline_reliability",
    "analyze",
    "delay_statistics",
    "delay_trend_breakdown",
    "group_records",
    "on_time_performance",
    "peak_hours",
    "status_breakdown",
    "worst_delays",
]

K = TypeVar("K", bound=Hashable)
KeyFn = Callable[[FlightRecord], K]


# =============================================================================
# GROUPING
# =============================================================================


class GroupBy(Enum):
    """Named grouping dimensions for analyze()."""

    AIRLINE = "airline"
    ROUTE = "route"
    WEEKDAY = "weekday"
    TERMINAL = "terminal"
    DELAY_CATEGORY = "delay_category"
    STATUS = "status"
    AIRCRAFT = "aircraft"
    DEPARTURE_AIRPORT = "departure_airport"
    ARRIVAL_AIRPORT = "arrival_airport"


def _weekday(record: FlightRecord) -> Optional[int]:
    # Monday = 0
    moment = record.scheduled_departure or record.scheduled_arrival
    return moment.weekday() if moment is not None else None


KEY_FUNCTIONS: Dict[GroupBy, KeyFn] = {
    GroupBy.AIRLINE: lambda r: r.airline_iata or r.airline_name,
    GroupBy.ROUTE: lambda r: r.route,
    GroupBy.WEEKDAY: _weekday,
    GroupBy.TERMINAL: lambda r: r.terminal,
    GroupBy.DELAY_CATEGORY: lambda r: classify(r),
    GroupBy.STATUS: lambda r: r.status,
    GroupBy.AIRCRAFT: lambda r: r.aircraft,
    GroupBy.DEPARTURE_AIRPORT: lambda r: r.origin,
    GroupBy.ARRIVAL_AIRPORT: lambda r: r.destination,
}


def group_records(
    records: Iterable[FlightRecord],
    key_fn: KeyFn,
) -> OrderedGroups[K, List[FlightRecord]]:
    """
    Partition records by key.

    Stable: keys appear in first-seen order and each group keeps its
    records in input order, so grouping the same input twice gives equal
    results. A None key is a group like any other.

    Args:
        records: Records to group.
        key_fn: Record -> hashable key.

    Returns:
        OrderedGroups of key -> records.
    """
    groups: OrderedGroups[K, List[FlightRecord]] = OrderedGroups()
    for record in records:
        groups.setdefault(key_fn(record), []).append(record)
    return groups


def _resolve_key_fn(group_by: Union[GroupBy, str], thresholds: DelayThresholds) -> Tuple[GroupBy, KeyFn]:
    dimension = group_by if isinstance(group_by, GroupBy) else GroupBy(group_by)
    if dimension is GroupBy.DELAY_CATEGORY:
        return dimension, lambda r: classify(r, thresholds)
    return dimension, KEY_FUNCTIONS[dimension]


# =============================================================================
# STATISTICS
# =============================================================================


def _mean(series: pd.Series) -> float:
    return float(series.mean()) if not series.empty else 0.0


def delay_statistics(
    records: Sequence[FlightRecord],
    thresholds: DelayThresholds = DEFAULT_DELAY_THRESHOLDS,
) -> DelayStatistics:
    """
    Delay distribution of a record set.

    Central tendency and range are over records with a known delay;
    records without one still count toward total_flights and the
    UNKNOWN category.

    Args:
        records: Flight records.
        thresholds: Delay category boundaries.

    Returns:
        DelayStatistics (all zeros for empty input).
    """
    df = records_to_frame(records)
    delays = df["delay_minutes"].dropna()
    departure = df["departure_delay"].dropna()
    arrival = df["arrival_delay"].dropna()

    by_category: OrderedGroups[DelayCategory, int] = OrderedGroups([(c, 0) for c in DelayCategory])
    for record in records:
        category = classify(record, thresholds)
        by_category[category] = by_category[category] + 1

    return DelayStatistics(
        total_flights=len(df),
        flights_with_delay_data=len(delays),
        average_delay=_mean(delays),
        median_delay=float(delays.median()) if not delays.empty else 0.0,
        min_delay=float(delays.min()) if not delays.empty else 0.0,
        max_delay=float(delays.max()) if not delays.empty else 0.0,
        total_delay_minutes=float(delays.sum()),
        by_category=by_category,
        average_departure_delay=_mean(departure),
        average_arrival_delay=_mean(arrival),
        flights_with_departure_delay=len(departure),
        flights_with_arrival_delay=len(arrival),
    )


def on_time_performance(
    records: Iterable[FlightRecord],
    threshold_minutes: float = 15.0,
    exclude_cancelled: bool = False,
) -> OnTimePerformance:
    """
    On-time performance of a record set.

    A flight is on time when it is not cancelled and its delay (missing
    counts as 0) is at most threshold_minutes.

    Args:
        records: Flight records.
        threshold_minutes: Largest delay still on time.
        exclude_cancelled: Leave cancelled flights out of the denominator.

    Returns:
        OnTimePerformance; the percentage is 0 when the denominator is 0.
    """
    total = on_time = delayed = cancelled = 0
    for record in records:
        total += 1
        if record.is_cancelled:
            cancelled += 1
        elif (record.delay_minutes or 0.0) <= threshold_minutes:
            on_time += 1
        else:
            delayed += 1

    denominator = total - cancelled if exclude_cancelled else total
    return OnTimePerformance(
        total=total,
        on_time=on_time,
        delayed=delayed,
        cancelled=cancelled,
        on_time_percentage=on_time / denominator * 100 if denominator > 0 else 0.0,
        threshold_minutes=threshold_minutes,
        excluded_cancelled=exclude_cancelled,
    )


def _summarize_group(key: Hashable, records: List[FlightRecord], config: AnalyticsConfig) -> GroupSummary:
    delays = pd.Series([r.delay_minutes for r in records], dtype="float64").dropna()
    on_time = on_time_performance(
        records,
        threshold_minutes=config.on_time_threshold_minutes,
        exclude_cancelled=config.exclude_cancelled_from_on_time,
    )
    return GroupSummary(
        key=key,
        count=len(records),
        cancelled=on_time.cancelled,
        average_delay=_mean(delays),
        median_delay=float(delays.median()) if not delays.empty else 0.0,
        max_delay=float(delays.max()) if not delays.empty else 0.0,
        on_time_percentage=on_time.on_time_percentage,
    )


def analyze(
    records: Iterable[FlightRecord],
    group_by: Optional[Union[GroupBy, str]] = None,
    threshold_minutes: Optional[float] = None,
    min_group_size: int = 1,
    config: AnalyticsConfig = DEFAULT_ANALYTICS_CONFIG,
) -> AnalysisResult:
    """
    Analyze a record set in one call.

    Args:
        records: Flight records.
        group_by: Optional grouping dimension (GroupBy or its value).
        threshold_minutes: On-time threshold override.
        min_group_size: Smallest group top_groups() will report.
        config: Thresholds, cost rates, trend band and on-time policy.

    Returns:
        AnalysisResult computed fresh from the input.

    Raises:
        ValueError: If group_by names no known dimension.
    """
    records = list(records)
    threshold = config.on_time_threshold_minutes if threshold_minutes is None else threshold_minutes

    groups: OrderedGroups[Hashable, GroupSummary] = OrderedGroups()
    label = None
    if group_by is not None:
        dimension, key_fn = _resolve_key_fn(group_by, config.delay_thresholds)
        label = dimension.value
        group_config = replace(config, on_time_threshold_minutes=threshold)
        for key, members in group_records(records, key_fn).items():
            groups[key] = _summarize_group(key, members, group_config)

    logger.debug("Analyzed %d records in %d group(s)", len(records), len(groups))

    return AnalysisResult(
        total_flights=len(records),
        delay_statistics=delay_statistics(records, config.delay_thresholds),
        on_time=on_time_performance(
            records,
            threshold_minutes=threshold,
            exclude_cancelled=config.exclude_cancelled_from_on_time,
        ),
        costs=summarize_costs(records, config.cost_rates),
        trends=delay_trend_breakdown(records, config.trend_band_minutes),
        group_by=label,
        groups=groups,
        min_group_size=min_group_size,
    )


# =============================================================================
# BREAKDOWNS
# =============================================================================


def airline_reliability(
    records: Iterable[FlightRecord],
    thresholds: DelayThresholds = DEFAULT_DELAY_THRESHOLDS,
) -> List[AirlineReliability]:
    """
    Rank airlines by the share of their flights without a major delay.

    reliability = 100 - (major + severe delays) / flights * 100.

    Returns:
        One entry per airline, most reliable first (ties keep first-seen order).
    """
    ranked = []
    for airline, members in group_records(records, KEY_FUNCTIONS[GroupBy.AIRLINE]).items():
        severe = sum(
            1 for r in members if classify(r, thresholds) in (DelayCategory.MAJOR, DelayCategory.SEVERE)
        )
        delays = pd.Series([r.delay_minutes for r in members], dtype="float64").dropna()
        ranked.append(
            AirlineReliability(
                airline=airline,
                flights=len(members),
                average_delay=_mean(delays),
                reliability=100 - severe / len(members) * 100,
            )
        )
    return sorted(ranked, key=lambda a: a.reliability, reverse=True)


def worst_delays(records: Iterable[FlightRecord], limit: int = 10) -> List[FlightRecord]:
    """Records with the largest known delays, worst first."""
    known = [r for r in records if r.delay_minutes is not None]
    return sorted(known, key=lambda r: r.delay_minutes, reverse=True)[:limit]


def delay_trend_breakdown(
    records: Iterable[FlightRecord],
    band_minutes: float = DEFAULT_ANALYTICS_CONFIG.trend_band_minutes,
) -> OrderedGroups[DelayTrend, int]:
    """Count records per DelayTrend (every trend present, in enum order)."""
    counts: OrderedGroups[DelayTrend, int] = OrderedGroups([(t, 0) for t in DelayTrend])
    for record in records:
        trend = delay_trend(record, band_minutes)
        counts[trend] = counts[trend] + 1
    return counts


def peak_hours(records: Iterable[FlightRecord]) -> OrderedGroups[int, int]:
    """Departures per local scheduled hour, hours ascending (empty hours omitted)."""
    hours = pd.Series(
        [r.scheduled_departure.hour for r in records if r.scheduled_departure is not None],
        dtype="int64",
    )
    counts = hours.value_counts().sort_index()
    return OrderedGroups([(int(hour), int(n)) for hour, n in counts.items()])


def status_breakdown(records: Iterable[FlightRecord]) -> OrderedGroups[FlightStatus, int]:
    """Count records per FlightStatus, in enum order (absent statuses omitted)."""
    seen: Dict[FlightStatus, int] = {}
    for record in records:
        seen[record.status] = seen.get(record.status, 0) + 1
    return OrderedGroups([(s, seen[s]) for s in FlightStatus if s in seen])
