"""Availability providers, their rate limiting and the health-monitored registry."""

from .base import HealthCheckResult, Provider
from .config import ProviderConfig, ProviderType
from .flights import FlightAvailability, FlightProvider, FlightSearchQuery
from .hotels import HotelProvider, HotelSearchQuery
from .rate_limiter import RateLimitDecision, RateLimiter
from .registry import HealthState, HealthStatus, ProviderRegistry
from .seats_aero import SeatsAeroFlightProvider

__all__ = [
    "FlightAvailability",
    "FlightProvider",
    "FlightSearchQuery",
    "HealthCheckResult",
    "HealthState",
    "HealthStatus",
    "HotelProvider",
    "HotelSearchQuery",
    "Provider",
    "ProviderConfig",
    "ProviderRegistry",
    "ProviderType",
    "RateLimitDecision",
    "RateLimiter",
    "SeatsAeroFlightProvider",
]
