"""
Analysis result schemas.

Immutable result types produced by the analytics aggregator, plus the
ordered association container used for every grouping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterator,
    List,
    Optional,
    Tuple,
    TypeVar,
)

from src.flight_analytics.schemas.flight import DelayCategory, DelayTrend

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")
W = TypeVar("W")


class OrderedGroups(Generic[K, V]):
    """
    Ordered association container: keys in first-insertion order.

    Keeps the key sequence and the lookup index separately so iteration
    order is an explicit property of the container.

    Example:
        >>> groups = OrderedGroups()
        >>> groups.setdefault("LO", []).append(1)
        >>> groups.setdefault("FR", []).append(2)
        >>> groups.keys()
        ['LO', 'FR']
    """

    __slots__ = ("_keys", "_index")

    def __init__(self, items: Optional[List[Tuple[K, V]]] = None) -> None:
        self._keys: List[K] = []
        self._index: Dict[K, V] = {}
        for key, value in items or []:
            self[key] = value

    def __getitem__(self, key: K) -> V:
        return self._index[key]

    def __setitem__(self, key: K, value: V) -> None:
        if key not in self._index:
            self._keys.append(key)
        self._index[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[K]:
        return iter(self._keys)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OrderedGroups):
            return NotImplemented
        return self.items() == other.items()

    def __repr__(self) -> str:
        return f"OrderedGroups({self.items()!r})"

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Value for key, or default."""
        return self._index.get(key, default)

    def setdefault(self, key: K, default: V) -> V:
        """Insert default if key is new; return the stored value."""
        if key not in self._index:
            self[key] = default
        return self._index[key]

    def keys(self) -> List[K]:
        """Keys in first-insertion order."""
        return list(self._keys)

    def values(self) -> List[V]:
        """Values in key order."""
        return [self._index[k] for k in self._keys]

    def items(self) -> List[Tuple[K, V]]:
        """(key, value) pairs in key order."""
        return [(k, self._index[k]) for k in self._keys]

    def map_values(self, fn: Callable[[V], W]) -> "OrderedGroups[K, W]":
        """New container with fn applied to every value, same key order."""
        return OrderedGroups([(k, fn(self._index[k])) for k in self._keys])

    def to_dict(self) -> Dict[K, V]:
        """Plain dict copy (insertion ordered)."""
        return {k: self._index[k] for k in self._keys}


@dataclass(frozen=True)
class DelayStatistics:
    """
    Delay distribution over a record set.

    Mean/median/min/max are over records with known delay; records
    without delay data are still counted in total_flights and in the
    UNKNOWN category.
    """

    total_flights: int
    flights_with_delay_data: int
    average_delay: float
    median_delay: float
    min_delay: float
    max_delay: float
    total_delay_minutes: float
    by_category: OrderedGroups[DelayCategory, int]
    average_departure_delay: float
    average_arrival_delay: float
    flights_with_departure_delay: int
    flights_with_arrival_delay: int


@dataclass(frozen=True)
class OnTimePerformance:
    """
    On-time performance of a record set.

    Attributes:
        total: All records considered.
        on_time: Not cancelled and delay <= threshold.
        delayed: Not cancelled and delay > threshold.
        cancelled: Cancelled records.
        on_time_percentage: on_time / denominator * 100 (0 when empty).
        threshold_minutes: Threshold used.
        excluded_cancelled: Whether cancelled records were left out of the denominator.
    """

    total: int
    on_time: int
    delayed: int
    cancelled: int
    on_time_percentage: float
    threshold_minutes: float
    excluded_cancelled: bool = False


@dataclass(frozen=True)
class CostEstimate:
    """Estimated cost of a single delay."""

    delay_minutes: float
    passenger_cost: float
    airline_cost: float
    total_cost: float


@dataclass(frozen=True)
class FlightCost:
    """Cost estimate tied to the flight it was computed for."""

    flight: str
    delay_minutes: float
    cost: CostEstimate


@dataclass(frozen=True)
class CostSummary:
    """Aggregated cost estimate over a record set."""

    total_cost: float
    average_cost_per_flight: float
    flights_costed: int
    most_costly: Tuple[FlightCost, ...] = ()


@dataclass(frozen=True)
class GroupSummary:
    """Per-group aggregate inside an AnalysisResult."""

    key: Hashable
    count: int
    cancelled: int
    average_delay: float
    median_delay: float
    max_delay: float
    on_time_percentage: float


@dataclass(frozen=True)
class AnalysisResult:
    """
    Transient analysis of one record set.

    Computed fresh per call. Groups below min_group_size stay in
    `groups` and in the totals; only top_groups() leaves them out.
    `trends` counts records per DelayTrend under the configured band.
    """

    total_flights: int
    delay_statistics: DelayStatistics
    on_time: OnTimePerformance
    costs: CostSummary
    group_by: Optional[str] = None
    groups: OrderedGroups[Hashable, GroupSummary] = field(default_factory=OrderedGroups)
    min_group_size: int = 1
    trends: OrderedGroups[DelayTrend, int] = field(default_factory=OrderedGroups)

    @property
    def is_empty(self) -> bool:
        """True when the analysed record set had no records."""
        return self.total_flights == 0

    def top_groups(
        self,
        n: int,
        metric: str = "count",
        descending: bool = True,
    ) -> List[GroupSummary]:
        """
        Best N groups by a GroupSummary metric.

        Groups smaller than min_group_size are excluded. Ties keep
        first-seen group order.

        Args:
            n: Number of groups to return.
            metric: GroupSummary attribute to rank by.
            descending: Highest first when True.

        Returns:
            Up to n GroupSummary objects.
        """
        eligible = [g for g in self.groups.values() if g.count >= self.min_group_size]
        ranked = sorted(eligible, key=lambda g: getattr(g, metric), reverse=descending)
        return ranked[:n]


@dataclass(frozen=True)
class AirlineReliability:
    """Reliability of one airline within a record set."""

    airline: Optional[str]
    flights: int
    average_delay: float
    reliability: float  # 100 - % of major/severe delays

