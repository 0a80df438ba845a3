"""
Schema definitions for flight_analytics.

Normalized records, raw endpoint payloads and analysis results.
"""

from .analysis import (
    AirlineReliability,
    AnalysisResult,
    CostEstimate,
    CostSummary,
    DelayStatistics,
    FlightCost,
    GroupSummary,
    OnTimePerformance,
    OrderedGroups,
)
from .flight import (
    Codeshare,
    DelayCategory,
    DelayTrend,
    FlightRecord,
    FlightRecordFrame,
    FlightRecordSchema,
    FlightStatus,
    RecordSource,
    TimeSlot,
    records_to_frame,
)

__all__ = [
    # Records
    "Codeshare",
    "DelayCategory",
    "DelayTrend",
    "FlightRecord",
    "FlightRecordFrame",
    "FlightRecordSchema",
    "FlightStatus",
    "RecordSource",
    "TimeSlot",
    "records_to_frame",
    # Analysis results
    "AirlineReliability",
    "AnalysisResult",
    "CostEstimate",
    "CostSummary",
    "DelayStatistics",
    "FlightCost",
    "GroupSummary",
    "OnTimePerformance",
    "OrderedGroups",
]
