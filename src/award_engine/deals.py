"""End-to-end lookup: provider availability in, best valuation and booking steps out."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Mapping, Optional, Sequence, Tuple

from award_engine.providers.config import ProviderType
from award_engine.providers.flights import FlightAvailability, FlightProvider, FlightSearchQuery
from award_engine.providers.registry import ProviderRegistry
from award_engine.valuation.booking import build_booking_instructions
from award_engine.valuation.models import (
    BookingInstructions,
    CabinClass,
    CashPricing,
    FlightItinerary,
    TransferPartner,
    ValueCalculation,
)
from award_engine.valuation.optimizer import (
    OptimizationCandidate,
    OptimizationOptions,
    PricingTable,
    TransferOptimizer,
)
from award_engine.valuation.programs import TRANSFER_PARTNERS

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DealResult:
    calculation: ValueCalculation
    itinerary: FlightItinerary
    instructions: BookingInstructions
    provider: str
    candidate: Optional[OptimizationCandidate] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "provider": self.provider,
            "itinerary": self.itinerary.to_dict(),
            "calculation": self.calculation.to_dict(),
            "instructions": self.instructions.to_dict(),
            "bonus_description": self.candidate.bonus_description if self.candidate else None,
        }


def _cash_for(
    record: FlightAvailability,
    requested_cabin: CabinClass,
    cash: CashPricing,
    cash_quotes: Mapping[Tuple[CabinClass, date], CashPricing],
) -> Optional[CashPricing]:
    if record.cash is not None:
        return record.cash
    quoted = cash_quotes.get((record.itinerary.cabin, record.itinerary.depart_date))
    if quoted is not None:
        return quoted
    if record.itinerary.cabin is requested_cabin:
        return cash
    return None


class DealFinder:
    """Glue between the registry, a flight provider and the optimizer.

    One query is sent per searched (cabin, date) slot, so flexible searches
    spend proportionally more of the provider's rate budget.
    """

    def __init__(self, registry: ProviderRegistry, optimizer: Optional[TransferOptimizer] = None) -> None:
        self.registry = registry
        self.optimizer = optimizer or TransferOptimizer()

    def _provider(self, provider_name: Optional[str]) -> FlightProvider:
        if provider_name:
            provider = self.registry.get_provider(ProviderType.FLIGHT, provider_name)
        else:
            provider = self.registry.select_provider(ProviderType.FLIGHT)
        return provider  # type: ignore[return-value]

    async def _fetch(
        self,
        provider: FlightProvider,
        query: FlightSearchQuery,
        options: OptimizationOptions,
    ) -> List[FlightAvailability]:
        base = query.to_itinerary()
        queries = [query]
        cabins = [query.cabin, *(cabin for cabin in options.alternative_cabins if cabin != query.cabin)]
        for cabin in cabins:
            for offset in range(-options.flex_days, options.flex_days + 1):
                variant = base.shifted(offset, cabin=cabin)
                if variant is base:
                    continue
                queries.append(
                    FlightSearchQuery(
                        origin=query.origin,
                        destination=query.destination,
                        depart_date=variant.depart_date,
                        cabin=cabin,
                        passengers=query.passengers,
                        return_date=variant.return_date,
                        program=query.program,
                    )
                )
        batches = await asyncio.gather(
            *(provider.fetch_availability(item) for item in queries),
            return_exceptions=True,
        )
        records: List[FlightAvailability] = []
        for item, batch in zip(queries, batches):
            if isinstance(batch, BaseException):
                # Only the requested slot is essential; variants are best effort.
                if item is query or not isinstance(batch, Exception):
                    raise batch
                logger.warning(
                    "Skipping %s %s slot from %s: %s",
                    item.cabin.value,
                    item.depart_date.isoformat(),
                    provider.name,
                    batch,
                )
                continue
            records.extend(batch)
        return records

    async def find_best_value(
        self,
        query: FlightSearchQuery,
        cash: CashPricing,
        partners: Sequence[TransferPartner] = (),
        options: Optional[OptimizationOptions] = None,
        provider_name: Optional[str] = None,
        cash_quotes: Optional[Mapping[Tuple[CabinClass, date], CashPricing]] = None,
    ) -> Optional[DealResult]:
        """Return the best-valued award for ``query``, or ``None`` when nothing is bookable.

        ``cash`` is the fare for the requested cabin. Other cabins are valued only
        against their own fare, taken from the provider record or ``cash_quotes``;
        without one they are left out of the search.
        """
        options = options or OptimizationOptions()
        cash_quotes = cash_quotes or {}
        provider = self._provider(provider_name)
        records = await self._fetch(provider, query, options)

        table = PricingTable()
        priced: List[Tuple[FlightAvailability, CashPricing]] = []
        for record in records:
            if record.award is None or record.award.points_cost <= 0:
                continue
            record_cash = _cash_for(record, query.cabin, cash, cash_quotes)
            if record_cash is None:
                logger.debug(
                    "No cash fare for %s on %s; leaving it out",
                    record.itinerary.cabin.value,
                    record.itinerary.depart_date.isoformat(),
                )
                continue
            table.add(record.itinerary.cabin, record.itinerary.depart_date, record.award, record_cash)
            priced.append((record, record_cash))
        if not priced:
            logger.info("No award availability from %s for %s→%s", provider.name, query.origin, query.destination)
            return None

        matching = [
            entry
            for entry in priced
            if entry[0].itinerary.cabin is query.cabin and entry[0].itinerary.depart_date == query.depart_date
        ]
        base, base_cash = min(matching or priced, key=lambda entry: entry[0].award.points_cost)

        candidates = self.optimizer.search(
            base.itinerary,
            base.award,
            base_cash,
            partners,
            options,
            pricing=table,
        )
        best = candidates[0]
        instructions = build_booking_instructions(
            best.calculation.award_pricing,
            best.itinerary,
            partners or TRANSFER_PARTNERS,
            at=options.evaluated_at,
        )
        logger.info(
            "Best deal from %s: %s at %.2f cents/point (%s)",
            provider.name,
            best.calculation.award_pricing.program,
            best.calculation.cpp,
            best.calculation.value_rating.value,
        )
        return DealResult(
            calculation=best.calculation,
            itinerary=best.itinerary,
            instructions=instructions,
            provider=provider.name,
            candidate=best,
        )


__all__ = ["DealFinder", "DealResult"]
