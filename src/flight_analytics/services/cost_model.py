"""
Delay cost model.

Linear estimate of what a delay costs passengers and the airline.
Rates live in config.CostRates.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from src.flight_analytics.config import DEFAULT_COST_RATES, CostRates
from src.flight_analytics.schemas.analysis import CostEstimate, CostSummary, FlightCost
from src.flight_analytics.schemas.flight import FlightRecord


def estimate_delay_cost(minutes: Optional[float], rates: CostRates = DEFAULT_COST_RATES) -> CostEstimate:
    """
    Estimate the cost of a delay.

    passenger cost = minutes * passengers * passenger rate,
    airline cost = minutes * airline rate. Negative or missing delays
    cost nothing, so the estimate is 0 at 0 and never decreases as the
    delay grows.

    Args:
        minutes: Delay in minutes.
        rates: Cost rates.

    Returns:
        CostEstimate for the (clamped) delay.
    """
    clamped = max(0.0, float(minutes or 0.0))
    passenger_cost = clamped * rates.passengers * rates.passenger_cost_per_minute
    airline_cost = clamped * rates.airline_cost_per_minute
    return CostEstimate(
        delay_minutes=clamped,
        passenger_cost=passenger_cost,
        airline_cost=airline_cost,
        total_cost=passenger_cost + airline_cost,
    )


def summarize_costs(
    records: Iterable[FlightRecord],
    rates: CostRates = DEFAULT_COST_RATES,
    top_n: int = 5,
) -> CostSummary:
    """
    Aggregate delay costs over records with a positive delay.

    Args:
        records: Flight records.
        rates: Cost rates.
        top_n: How many of the most costly flights to keep.

    Returns:
        CostSummary; the per-flight average is over costed flights and
        is 0 when none were delayed.
    """
    costs: List[FlightCost] = []
    for record in records:
        delay = record.delay_minutes
        if delay is None or delay <= 0:
            continue
        costs.append(FlightCost(flight=record.identifier, delay_minutes=delay, cost=estimate_delay_cost(delay, rates)))

    total = sum(c.cost.total_cost for c in costs)
    most_costly = sorted(costs, key=lambda c: c.cost.total_cost, reverse=True)[:top_n]
    return CostSummary(
        total_cost=total,
        average_cost_per_flight=total / len(costs) if costs else 0.0,
        flights_costed=len(costs),
        most_costly=tuple(most_costly),
    )
