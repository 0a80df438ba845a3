"""
Domain services for flight_analytics.

Pure record processing: pagination, classification, analytics and
comparison. The I/O-bound FlightDataService and FlightTracker live in
their own modules (flight_data_service, tracking) and are imported from
there, since they depend on the adapters.
"""

from src.flight_analytics.services.analytics import (
    GroupBy,
    airline_reliability,
    analyze,
    delay_statistics,
    delay_trend_breakdown,
    group_records,
    on_time_performance,
    peak_hours,
    status_breakdown,
    worst_delays,
)
from src.flight_analytics.services.classifier import (
    categorize_delay,
    classify,
    delay_trend,
    normalize_status,
    time_slot,
)
from src.flight_analytics.services.comparison import (
    DatasetComparison,
    TemporalPattern,
    WeeklyPattern,
    compare_datasets,
    temporal_pattern,
    weekly_pattern,
)
from src.flight_analytics.services.cost_model import estimate_delay_cost, summarize_costs
from src.flight_analytics.services.pagination import (
    Page,
    PageCursor,
    collect_records,
    paginate,
)

__all__ = [
    # Pagination
    "Page",
    "PageCursor",
    "collect_records",
    "paginate",
    # Classification
    "categorize_delay",
    "classify",
    "delay_trend",
    "normalize_status",
    "time_slot",
    # Analytics
    "GroupBy",
    "airline_reliability",
    "analyze",
    "delay_statistics",
    "delay_trend_breakdown",
    "estimate_delay_cost",
    "group_records",
    "on_time_performance",
    "peak_hours",
    "status_breakdown",
    "summarize_costs",
    "worst_delays",
    # Comparison
    "DatasetComparison",
    "TemporalPattern",
    "WeeklyPattern",
    "compare_datasets",
    "temporal_pattern",
    "weekly_pattern",
]
