"""
Configuration for the flight_analytics package.

Centralizes policy constants (delay boundaries, cost rates, on-time
threshold) and runtime settings for the cache, transport and tracker.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://app.goflightlabs.com"


@dataclass(frozen=True)
class DelayThresholds:
    """
    Upper bounds (inclusive, in minutes) of each delay category.

    A delay <= none_max is NONE, <= minor_max is MINOR, <= moderate_max
    is MODERATE, <= major_max is MAJOR and anything above is SEVERE.

    Attributes:
        none_max: Largest delay still counted as no delay.
        minor_max: Largest minor delay.
        moderate_max: Largest moderate delay.
        major_max: Largest major delay.
    """

    none_max: float = 0.0
    minor_max: float = 15.0
    moderate_max: float = 60.0
    major_max: float = 180.0

    def __post_init__(self) -> None:
        """Validate that boundaries are increasing."""
        bounds = (self.none_max, self.minor_max, self.moderate_max, self.major_max)
        if any(lo >= hi for lo, hi in zip(bounds, bounds[1:])):
            raise ValueError(f"Delay thresholds must be strictly increasing, got {bounds}")


@dataclass(frozen=True)
class CostRates:
    """
    Per-minute rates for the delay cost estimate.

    Industry-average figures; treat as policy, not physics.

    Attributes:
        passengers: Assumed passengers per flight.
        passenger_cost_per_minute: Cost per passenger per delay minute.
        airline_cost_per_minute: Operating cost per delay minute.
    """

    passengers: int = 150
    passenger_cost_per_minute: float = 1.5
    airline_cost_per_minute: float = 65.0

    def __post_init__(self) -> None:
        """Reject negative rates (cost must not decrease with delay)."""
        if self.passengers < 0 or self.passenger_cost_per_minute < 0 or self.airline_cost_per_minute < 0:
            raise ValueError("Cost rates must be non-negative")


@dataclass(frozen=True)
class AnalyticsConfig:
    """
    Configuration for the analytics aggregator.

    Attributes:
        on_time_threshold_minutes: Max delay still counted as on time.
        exclude_cancelled_from_on_time: Drop cancelled flights from the
            on-time denominator instead of counting them as not on time.
        trend_band_minutes: Arrival/departure delay difference treated as stable.
        delay_thresholds: Delay category boundaries.
        cost_rates: Delay cost model rates.
    """

    on_time_threshold_minutes: float = 15.0
    exclude_cancelled_from_on_time: bool = False
    trend_band_minutes: float = 5.0
    delay_thresholds: DelayThresholds = field(default_factory=DelayThresholds)
    cost_rates: CostRates = field(default_factory=CostRates)

    def __post_init__(self) -> None:
        """Reject a negative trend band."""
        if self.trend_band_minutes < 0:
            raise ValueError(f"Trend band must be non-negative, got {self.trend_band_minutes}")


@dataclass(frozen=True)
class CacheConfig:
    """
    Configuration for the response cache.

    Attributes:
        capacity: Max entries before least-recently-used eviction.
        ttl: Default time-to-live for entries.
    """

    capacity: int = 100
    ttl: timedelta = timedelta(seconds=60)


@dataclass(frozen=True)
class TrackingConfig:
    """
    Configuration for multi-date tracking.

    Attributes:
        max_concurrent_dates: Semaphore limit for parallel per-date fetches.
        filter_to_requested_date: Drop records the source returned for
            neighbouring days.
    """

    max_concurrent_dates: int = 4
    filter_to_requested_date: bool = True


@dataclass(frozen=True)
class ClientConfig:
    """
    Configuration for the FlightLabs transport.

    Attributes:
        access_key: API access key (sent as a query parameter).
        base_url: API base URL.
        timeout_seconds: Per-request timeout.
        max_retries: Retries on 5xx, 429 and timeouts.
        backoff_seconds: Initial backoff between retries.
        backoff_multiplier: Exponential backoff multiplier.
    """

    access_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_seconds: float = 1.0
    backoff_multiplier: float = 2.0

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ClientConfig":
        """
        Build a config from environment variables (and a .env file, if any).

        Reads FLIGHTLABS_ACCESS_KEY, FLIGHTLABS_BASE_URL,
        FLIGHTLABS_TIMEOUT_SECONDS and FLIGHTLABS_MAX_RETRIES.
        """
        load_dotenv(env_file)
        return cls(
            access_key=os.getenv("FLIGHTLABS_ACCESS_KEY", ""),
            base_url=os.getenv("FLIGHTLABS_BASE_URL", DEFAULT_BASE_URL),
            timeout_seconds=float(os.getenv("FLIGHTLABS_TIMEOUT_SECONDS", "30")),
            max_retries=int(os.getenv("FLIGHTLABS_MAX_RETRIES", "3")),
        )


DEFAULT_DELAY_THRESHOLDS = DelayThresholds()
DEFAULT_COST_RATES = CostRates()
DEFAULT_ANALYTICS_CONFIG = AnalyticsConfig()
