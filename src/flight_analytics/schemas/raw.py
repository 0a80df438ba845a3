"""
Raw payload models, one per endpoint variant.

Pydantic models describing what each FlightLabs endpoint returns. They
are deliberately lenient (almost every field optional, extra keys
ignored) so a sparse item still becomes a record; adapters in
adapters/records.py narrow them into FlightRecord.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RawModel(BaseModel):
    """Common config: ignore unknown keys, accept field names or aliases."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


# -------------------------------
# Real-time flights (/flights)
# -------------------------------


class RealtimeFlight(RawModel):
    hex: Optional[str] = None
    reg_number: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    alt: Optional[float] = None
    airline_iata: Optional[str] = None
    airline_icao: Optional[str] = None
    aircraft_icao: Optional[str] = None
    flight_iata: Optional[str] = None
    flight_icao: Optional[str] = None
    flight_number: Optional[str] = None
    dep_iata: Optional[str] = None
    dep_icao: Optional[str] = None
    arr_iata: Optional[str] = None
    arr_icao: Optional[str] = None
    updated: Optional[int] = None
    status: Optional[str] = None


# -------------------------------
# Schedules (/advanced-flights-schedules) and delays (/flight_delays)
# -------------------------------


class ScheduleFlight(RawModel):
    airline_iata: Optional[str] = None
    airline_icao: Optional[str] = None
    flight_iata: Optional[str] = None
    flight_icao: Optional[str] = None
    flight_number: Optional[str] = None
    dep_iata: Optional[str] = None
    dep_icao: Optional[str] = None
    dep_terminal: Optional[str] = None
    dep_gate: Optional[str] = None
    dep_time: Optional[str] = None
    dep_estimated: Optional[str] = None
    dep_actual: Optional[str] = None
    arr_iata: Optional[str] = None
    arr_icao: Optional[str] = None
    arr_terminal: Optional[str] = None
    arr_gate: Optional[str] = None
    arr_time: Optional[str] = None
    arr_estimated: Optional[str] = None
    arr_actual: Optional[str] = None
    cs_airline_iata: Optional[str] = None
    cs_flight_number: Optional[str] = None
    cs_flight_iata: Optional[str] = None
    status: Optional[str] = None
    duration: Optional[float] = None
    delayed: Optional[float] = None
    dep_delayed: Optional[float] = None
    arr_delayed: Optional[float] = None
    aircraft_icao: Optional[str] = None


class DelayFlight(ScheduleFlight):
    """Delay endpoint items: schedule shape where `delayed` is the total delay."""


# -------------------------------
# Historical flights (/historical)
# -------------------------------


class HistoricalTime(RawModel):
    utc: Optional[str] = None
    local: Optional[str] = None


class HistoricalAirport(RawModel):
    name: Optional[str] = None
    iata: Optional[str] = None


class HistoricalMovement(RawModel):
    airport: HistoricalAirport = Field(default_factory=HistoricalAirport)
    scheduledTime: HistoricalTime = Field(default_factory=HistoricalTime)
    revisedTime: Optional[HistoricalTime] = None
    actualTime: Optional[HistoricalTime] = None
    terminal: Optional[str] = None
    gate: Optional[str] = None
    quality: List[str] = Field(default_factory=list)


class HistoricalAirline(RawModel):
    name: Optional[str] = None
    iata: Optional[str] = None
    icao: Optional[str] = None


class HistoricalAircraft(RawModel):
    model: Optional[str] = None


class HistoricalFlight(RawModel):
    movement: HistoricalMovement = Field(default_factory=HistoricalMovement)
    number: Optional[str] = None
    status: Optional[str] = None
    codeshareStatus: Optional[str] = None
    isCargo: bool = False
    aircraft: HistoricalAircraft = Field(default_factory=HistoricalAircraft)
    airline: HistoricalAirline = Field(default_factory=HistoricalAirline)


# -------------------------------
# Future flights (/advanced-future-flights)
# -------------------------------


class FutureTime(RawModel):
    timeAMPM: Optional[str] = None
    time24: Optional[str] = None


class FutureCarrier(RawModel):
    fs: Optional[str] = None
    name: Optional[str] = None
    flightNumber: Optional[str] = None


class FutureAirport(RawModel):
    fs: Optional[str] = None
    city: Optional[str] = None


class FutureFlight(RawModel):
    sortTime: Optional[str] = None
    departureTime: FutureTime = Field(default_factory=FutureTime)
    arrivalTime: FutureTime = Field(default_factory=FutureTime)
    carrier: FutureCarrier = Field(default_factory=FutureCarrier)
    operatedBy: Optional[str] = None
    airport: FutureAirport = Field(default_factory=FutureAirport)


# -------------------------------
# Flight by number (/flight)
# -------------------------------


class FlightByNumberRow(RawModel):
    date: Optional[str] = Field(default=None, alias="DATE")
    origin: Optional[str] = Field(default=None, alias="FROM")
    destination: Optional[str] = Field(default=None, alias="TO")
    aircraft: Optional[str] = Field(default=None, alias="AIRCRAFT")
    flight_time: Optional[str] = Field(default=None, alias="FLIGHT TIME")
    std: Optional[str] = Field(default=None, alias="STD")
    atd: Optional[str] = Field(default=None, alias="ATD")
    sta: Optional[str] = Field(default=None, alias="STA")
    status: Optional[str] = Field(default=None, alias="STATUS")
