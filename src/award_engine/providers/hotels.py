"""Hotel availability provider variant."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import ClassVar, Optional

from award_engine.errors import InvalidInputError

from .base import Provider
from .config import ProviderType


@dataclass(frozen=True, slots=True)
class HotelSearchQuery:
    destination: str
    check_in: date
    check_out: date
    guests: int = 2
    rooms: int = 1
    program: Optional[str] = None

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days


class HotelProvider(Provider):
    """Base for hotel sources; concrete translations live with each integration."""

    provider_type: ClassVar[ProviderType] = ProviderType.HOTEL

    def validate_query(self, query: HotelSearchQuery) -> None:
        if not isinstance(query, HotelSearchQuery):
            raise InvalidInputError("Hotel providers expect a HotelSearchQuery", field="query")
        if not query.destination:
            raise InvalidInputError("Destination is required", field="destination")
        if query.nights <= 0:
            raise InvalidInputError("Check-out must follow check-in", field="check_out")
        if query.guests < 1 or query.rooms < 1:
            raise InvalidInputError("At least one guest and one room are required", field="guests")


__all__ = ["HotelProvider", "HotelSearchQuery"]
