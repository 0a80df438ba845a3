"""
Custom exceptions for the flight_analytics package.

Provides a hierarchy of exceptions for clear error handling
of fetching, paginating and tracking flight data.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Optional, Sequence

if TYPE_CHECKING:
    from src.flight_analytics.services.tracking import DateFailure


class FlightAnalyticsError(Exception):
    """Base exception for all flight_analytics errors."""

    pass


class UpstreamError(FlightAnalyticsError):
    """
    Raised when the flight data API fails or returns an error payload.

    Never cached and never retried by the core; the transport owns retries.
    """

    def __init__(
        self,
        status_code: int,
        message: str = "",
        payload: Optional[Any] = None,
    ) -> None:
        self.status_code = status_code
        self.message = message or f"Flight data API returned status code {status_code}"
        self.payload = payload
        super().__init__(self.message)


class MalformedRecordError(FlightAnalyticsError):
    """Raised when a raw item cannot be read as a flight record at all."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        message = f"Malformed {source} record: {reason}"
        super().__init__(message)


class PaginationClosedError(FlightAnalyticsError):
    """Raised when a page is requested from a closed cursor."""

    def __init__(self, message: str = "Page cursor is closed") -> None:
        super().__init__(message)


class InvalidDateRangeError(FlightAnalyticsError):
    """Raised when a tracked date range ends before it starts."""

    def __init__(self, start_date: date, end_date: date) -> None:
        self.start_date = start_date
        self.end_date = end_date
        message = f"Invalid date range: start ({start_date}) must be <= end ({end_date})"
        super().__init__(message)


class RangeFetchPartialFailure(FlightAnalyticsError):
    """
    One or more dates in a tracked range could not be fetched.

    The range aggregate is still computed from the dates that succeeded;
    this exception only surfaces when a caller asks for it.
    """

    def __init__(self, failures: Sequence[DateFailure]) -> None:
        self.failures = tuple(failures)
        dates = ", ".join(f.date.isoformat() for f in self.failures)
        message = f"Failed to fetch {len(self.failures)} date(s): {dates}"
        super().__init__(message)
