"""Client for the Seats.aero partner availability API."""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx

from award_engine.errors import InvalidInputError, ProviderUnreachableError, RateLimitedError
from award_engine.valuation.models import AwardPricing, CabinClass, FlightItinerary, FlightSegment

from .config import ProviderConfig
from .flights import FlightAvailability, FlightProvider, FlightSearchQuery
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://seats.aero/partnerapi"
DEFAULT_RETRY_AFTER_S = 60.0
SEARCH_TAKE = 50

_CABIN_ALIASES = {
    "y": CabinClass.ECONOMY,
    "economy": CabinClass.ECONOMY,
    "w": CabinClass.PREMIUM_ECONOMY,
    "premium": CabinClass.PREMIUM_ECONOMY,
    "premium_economy": CabinClass.PREMIUM_ECONOMY,
    "j": CabinClass.BUSINESS,
    "business": CabinClass.BUSINESS,
    "f": CabinClass.FIRST,
    "first": CabinClass.FIRST,
}


def _parse_moment(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        try:
            return datetime.combine(date.fromisoformat(value[:10]), datetime.min.time())
        except ValueError:
            return None


def _cabin(value: Optional[str], fallback: CabinClass) -> CabinClass:
    if not value:
        return fallback
    return _CABIN_ALIASES.get(value.strip().lower(), fallback)


def _first_number(item: Dict[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        value = item.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return None


def _retry_after(response: httpx.Response) -> float:
    raw = response.headers.get("Retry-After")
    try:
        return max(float(raw), 0.0) if raw is not None else DEFAULT_RETRY_AFTER_S
    except ValueError:
        return DEFAULT_RETRY_AFTER_S


class SeatsAeroFlightProvider(FlightProvider):
    """Award availability from Seats.aero, translated into shared pricing shapes."""

    def __init__(
        self,
        config: ProviderConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        if not config.api_key:
            raise InvalidInputError("Seats.aero API key is required", field="api_key")
        super().__init__(config, rate_limiter=rate_limiter)
        self._headers = {
            "Partner-Authorization": config.api_key,
            "Accept": "application/json",
            "User-Agent": "award-engine/0.1.0",
            **config.headers,
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=(config.base_url or DEFAULT_BASE_URL).rstrip("/"),
            timeout=config.timeout_s,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _execute_health_check(self) -> None:
        response = await self._client.get("/search", params={"take": 1}, headers=self._headers)
        response.raise_for_status()

    async def _execute_fetch(self, query: FlightSearchQuery) -> List[FlightAvailability]:
        params: Dict[str, Any] = {
            "origin": query.origin.upper(),
            "destination": query.destination.upper(),
            "departureDate": query.depart_date.isoformat(),
            "cabin": query.cabin.value,
            "passengers": query.passengers,
            "take": SEARCH_TAKE,
        }
        if query.return_date:
            params["returnDate"] = query.return_date.isoformat()
        program = query.program or self.config.program
        if program:
            params["program"] = program

        logger.debug("Seats.aero search %s→%s on %s", query.origin, query.destination, query.depart_date)
        response = await self._client.get("/search", params=params, headers=self._headers)
        if response.status_code == 429:
            raise RateLimitedError(self.provider_id, _retry_after(response))
        if response.status_code >= 400:
            raise ProviderUnreachableError(
                self.provider_id, f"search failed ({response.status_code}): {response.text[:256]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderUnreachableError(self.provider_id, "search returned a non-JSON body") from exc

        results: List[FlightAvailability] = []
        for item in self._extract_availability(payload):
            try:
                results.append(self._map_availability(item, query))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed Seats.aero availability entry %s", item.get("id"), exc_info=True)
        return results

    @staticmethod
    def _extract_availability(payload: Any) -> Iterable[Dict[str, Any]]:
        if not isinstance(payload, dict):
            return []
        for key in ("availability", "data", "results"):
            entries = payload.get(key)
            if isinstance(entries, list):
                return [entry for entry in entries if isinstance(entry, dict)]
        return []

    def _map_availability(self, item: Dict[str, Any], query: FlightSearchQuery) -> FlightAvailability:
        departure = _parse_moment(item.get("departure"))
        depart_date = departure.date() if departure else query.depart_date
        cabin = _cabin(item.get("cabin"), query.cabin)
        segments = self._map_segments(item.get("segments") or [], cabin)
        itinerary = FlightItinerary(
            origin=item.get("origin") or query.origin,
            destination=item.get("destination") or query.destination,
            depart_date=depart_date,
            cabin=cabin,
            passengers=query.passengers,
            return_date=query.return_date,
            segments=segments,
            currency=item.get("currency") or item.get("taxesCurrency") or "USD",
        )

        award: Optional[AwardPricing] = None
        miles = item.get("miles")
        if isinstance(miles, (int, float)) and miles >= 0:
            taxes, fees = self._resolve_cash_due(item)
            award = AwardPricing(
                program=item.get("program") or query.program or self.config.program or "UNKNOWN",
                points_cost=int(miles),
                taxes=taxes,
                fees=fees,
            )

        seats = item.get("seatsAvailable", item.get("availability", item.get("seats")))
        return FlightAvailability(
            provider=self.name,
            itinerary=itinerary,
            award=award,
            seats_available=int(seats) if isinstance(seats, (int, float)) else None,
            booking_url=item.get("bookingUrl"),
        )

    @staticmethod
    def _resolve_cash_due(item: Dict[str, Any]) -> Tuple[float, float]:
        taxes = _first_number(item, "totalTaxes", "taxes") or 0.0
        fees = _first_number(item, "totalFees", "fees") or 0.0
        return round(taxes, 2), round(fees, 2)

    @staticmethod
    def _map_segments(entries: Iterable[Dict[str, Any]], cabin: CabinClass) -> Tuple[FlightSegment, ...]:
        segments: List[FlightSegment] = []
        for entry in entries:
            departs = _parse_moment(entry.get("departure") or entry.get("departureTime"))
            arrives = _parse_moment(entry.get("arrival") or entry.get("arrivalTime"))
            if departs is None:
                raise ValueError("segment missing departure time")
            duration = 0
            if arrives is not None and (arrives.tzinfo is None) == (departs.tzinfo is None):
                duration = max(int((arrives - departs).total_seconds() // 60), 0)
            segments.append(
                FlightSegment(
                    origin=entry["origin"],
                    destination=entry["destination"],
                    date=departs.date(),
                    airline=entry.get("marketingCarrier") or entry.get("operatingCarrier") or "",
                    flight_number=entry.get("flightNumber") or "",
                    duration_minutes=duration,
                    cabin=_cabin(entry.get("cabin"), cabin),
                    aircraft=entry.get("aircraft"),
                )
            )
        return tuple(segments)


__all__ = ["SeatsAeroFlightProvider"]
