"""
Port interfaces for flight_analytics.

Ports define the abstract interfaces the core uses to reach external
systems; adapters provide the concrete implementations.
"""

from src.flight_analytics.ports.transport import FlightDataTransport

__all__ = [
    "FlightDataTransport",
]
