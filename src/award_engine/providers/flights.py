"""Flight availability queries, results and the flight provider variant."""
from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import ClassVar, List, Optional

from award_engine.errors import InvalidInputError
from award_engine.valuation.models import AwardPricing, CabinClass, CashPricing, FlightItinerary

from .base import Provider
from .config import ProviderType


@dataclass(frozen=True, slots=True)
class FlightSearchQuery:
    origin: str
    destination: str
    depart_date: date
    cabin: CabinClass = CabinClass.ECONOMY
    passengers: int = 1
    return_date: Optional[date] = None
    program: Optional[str] = None

    def to_itinerary(self, currency: str = "USD") -> FlightItinerary:
        return FlightItinerary(
            origin=self.origin,
            destination=self.destination,
            depart_date=self.depart_date,
            cabin=self.cabin,
            passengers=self.passengers,
            return_date=self.return_date,
            currency=currency,
        )


@dataclass(frozen=True, slots=True)
class FlightAvailability:
    """One bookable option as reported by a provider."""

    provider: str
    itinerary: FlightItinerary
    award: Optional[AwardPricing] = None
    cash: Optional[CashPricing] = None
    seats_available: Optional[int] = None
    booking_url: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "provider": self.provider,
            "itinerary": self.itinerary.to_dict(),
            "award": self.award.to_dict() if self.award else None,
            "cash": self.cash.to_dict() if self.cash else None,
            "seats_available": self.seats_available,
            "booking_url": self.booking_url,
        }


def _is_airport_code(value: str) -> bool:
    return len(value) == 3 and value.isalpha()


class FlightProvider(Provider):
    provider_type: ClassVar[ProviderType] = ProviderType.FLIGHT

    def validate_query(self, query: FlightSearchQuery) -> None:
        if not isinstance(query, FlightSearchQuery):
            raise InvalidInputError("Flight providers expect a FlightSearchQuery", field="query")
        if not query.origin or not _is_airport_code(query.origin):
            raise InvalidInputError("Origin must be a 3-letter airport code", field="origin")
        if not query.destination or not _is_airport_code(query.destination):
            raise InvalidInputError("Destination must be a 3-letter airport code", field="destination")
        if query.origin.upper() == query.destination.upper():
            raise InvalidInputError("Origin and destination must differ", field="destination")
        if query.passengers < 1:
            raise InvalidInputError("At least one passenger is required", field="passengers")
        if query.return_date is not None and query.return_date < query.depart_date:
            raise InvalidInputError("Return date precedes departure date", field="return_date")

    async def fetch_availability(self, query: FlightSearchQuery) -> List[FlightAvailability]:
        return await super().fetch_availability(query)

    @abstractmethod
    async def _execute_fetch(self, query: FlightSearchQuery) -> List[FlightAvailability]:
        ...


__all__ = ["FlightAvailability", "FlightProvider", "FlightSearchQuery"]
