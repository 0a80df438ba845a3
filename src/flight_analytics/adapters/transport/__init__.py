"""
Transport adapters for flight_analytics.

Provides implementations of FlightDataTransport for live APIs.
"""

from src.flight_analytics.adapters.transport.flightlabs_transport import (
    FlightLabsTransport,
)

__all__ = [
    "FlightLabsTransport",
]
