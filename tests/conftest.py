"""
Pytest fixtures shared across flight_analytics tests.

Provides record factories, a controllable clock and an in-memory
transport so tests never touch the network.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import pytest

from src.flight_analytics.ports.transport import FlightDataTransport
from src.flight_analytics.schemas.flight import FlightRecord, FlightStatus, RecordSource


@pytest.fixture
def anyio_backend():
    """Use only asyncio backend (trio not installed)."""
    return "asyncio"


# =============================================================================
# RECORDS
# =============================================================================


def build_record(
    flight_iata: str = "LO282",
    airline_iata: Optional[str] = "LO",
    origin: Optional[str] = "WAW",
    destination: Optional[str] = "BCN",
    departure: Optional[datetime] = datetime(2024, 7, 15, 10, 0),
    departure_delay: Optional[float] = None,
    arrival_delay: Optional[float] = None,
    status: FlightStatus = FlightStatus.LANDED,
    **overrides: Any,
) -> FlightRecord:
    """FlightRecord with sensible defaults; keyword overrides win."""
    fields = dict(
        flight_number=flight_iata[2:],
        flight_iata=flight_iata,
        airline_iata=airline_iata,
        origin=origin,
        destination=destination,
        scheduled_departure=departure,
        departure_delay=departure_delay,
        arrival_delay=arrival_delay,
        status=status,
        source=RecordSource.SCHEDULE,
    )
    fields.update(overrides)
    return FlightRecord(**fields)


@pytest.fixture
def make_record() -> Callable[..., FlightRecord]:
    """Factory fixture for FlightRecords."""
    return build_record


@pytest.fixture
def ten_flights() -> List[FlightRecord]:
    """
    Ten flights: 7 on time, 2 delayed beyond 15 minutes, 1 cancelled.

    Delays: 0, 5, 10, 15, 15, -3, None (on time) / 30, 90 (delayed).
    """
    on_time_delays = [0, 5, 10, 15, 15, -3, None]
    records = [
        build_record(flight_iata=f"LO{100 + i}", departure_delay=d)
        for i, d in enumerate(on_time_delays)
    ]
    records.append(build_record(flight_iata="FR200", airline_iata="FR", departure_delay=30))
    records.append(build_record(flight_iata="FR201", airline_iata="FR", departure_delay=90))
    records.append(build_record(flight_iata="W6300", airline_iata="W6", status=FlightStatus.CANCELLED))
    return records


# =============================================================================
# CLOCK AND TRANSPORT
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class FakeTransport(FlightDataTransport):
    """
    In-memory transport.

    Responses are looked up by endpoint through `handler`, which gets the
    endpoint and params and returns a payload or raises.
    """

    def __init__(self, handler: Callable[[str, Mapping[str, Any]], Dict[str, Any]]) -> None:
        self.handler = handler
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    async def fetch(self, endpoint: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        self.calls.append((endpoint, dict(params)))
        return self.handler(endpoint, params)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_transport_factory() -> Callable[..., FakeTransport]:
    return FakeTransport
