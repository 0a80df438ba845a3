"""
Flight data transport port interface.

Defines the abstract contract for whatever actually talks to the flight
data API. The core never retries on top of an implementation; retry and
backoff policy belong to the transport.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping


class FlightDataTransport(ABC):
    """
    Abstract interface for flight data transports.

    Implementations:
    - FlightLabsTransport: httpx-based async client for the FlightLabs API
    - In-memory fakes in the test suite
    """

    @abstractmethod
    async def fetch(self, endpoint: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Fetch one response from an endpoint.

        Args:
            endpoint: Endpoint path (e.g., '/flight_delays').
            params: Query parameters, without credentials.

        Returns:
            Decoded JSON body.

        Raises:
            UpstreamError: On transport failure or an API error payload.
        """
        ...

    async def close(self) -> None:
        """Release transport resources (no-op by default)."""
        return None
