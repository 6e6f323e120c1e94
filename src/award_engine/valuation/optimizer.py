"""Exhaustive search over transfer bonuses, cabins and flexible dates."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from award_engine.errors import InvalidInputError

from .engine import ValuationEngine, validate_award, validate_cash, validate_itinerary
from .models import (
    AwardPricing,
    CabinClass,
    CashPricing,
    FlightItinerary,
    TransferPartner,
    ValueCalculation,
    as_utc,
)

if TYPE_CHECKING:  # pragma: no cover
    from award_engine.providers.flights import FlightAvailability

logger = logging.getLogger(__name__)

Quote = Tuple[AwardPricing, CashPricing]


class PricingLookup(Protocol):
    def quote(self, itinerary: FlightItinerary) -> Optional[Quote]:
        ...


class PricingTable:
    """In-memory quotes keyed by ``(cabin, depart_date)``."""

    def __init__(self, quotes: Optional[Mapping[Tuple[CabinClass, date], Quote]] = None) -> None:
        self._quotes: Dict[Tuple[CabinClass, date], Quote] = dict(quotes or {})

    def __len__(self) -> int:
        return len(self._quotes)

    def add(self, cabin: CabinClass, depart_date: date, award: AwardPricing, cash: CashPricing) -> None:
        key = (cabin, depart_date)
        current = self._quotes.get(key)
        # Keep the cheapest award for a slot.
        if current is None or award.points_cost < current[0].points_cost:
            self._quotes[key] = (award, cash)

    def quote(self, itinerary: FlightItinerary) -> Optional[Quote]:
        return self._quotes.get((itinerary.cabin, itinerary.depart_date))

    @classmethod
    def from_availability(
        cls,
        records: Iterable["FlightAvailability"],
        *,
        fallback_cash: Optional[CashPricing] = None,
    ) -> "PricingTable":
        table = cls()
        for record in records:
            cash = record.cash or fallback_cash
            if record.award is None or cash is None:
                continue
            table.add(record.itinerary.cabin, record.itinerary.depart_date, record.award, cash)
        return table


@dataclass(frozen=True, slots=True)
class OptimizationOptions:
    """Search dimensions.

    ``transfer_bonus_scenarios`` are hypothetical multipliers (1.25 means a
    25% bonus) applied to every partner whether or not a promotion is live.
    ``evaluated_at`` decides which real bonuses are active; it defaults to
    the current UTC time.
    """

    include_transfer_bonuses: bool = True
    transfer_bonus_scenarios: Tuple[float, ...] = ()
    alternative_cabins: Tuple[CabinClass, ...] = ()
    flex_days: int = 0
    evaluated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.evaluated_at is not None:
            object.__setattr__(self, "evaluated_at", as_utc(self.evaluated_at))
        if self.flex_days < 0:
            raise InvalidInputError("flex_days must not be negative", field="flex_days")
        for multiplier in self.transfer_bonus_scenarios:
            if not math.isfinite(multiplier) or multiplier <= 0:
                raise InvalidInputError("Bonus scenarios must be positive multipliers", field="transfer_bonus_scenarios")


@dataclass(frozen=True, slots=True)
class OptimizationCandidate:
    itinerary: FlightItinerary
    calculation: ValueCalculation
    multiplier: float = 1.0
    partner: Optional[TransferPartner] = None
    bonus_description: Optional[str] = None

    def sort_key(self) -> Tuple[float, int, date]:
        return (-self.calculation.cpp, self.calculation.award_pricing.points_cost, self.itinerary.depart_date)

    def to_dict(self) -> dict[str, object]:
        return {
            "itinerary": self.itinerary.to_dict(),
            "calculation": self.calculation.to_dict(),
            "multiplier": self.multiplier,
            "partner": self.partner.to_dict() if self.partner else None,
            "bonus_description": self.bonus_description,
        }


@dataclass(frozen=True, slots=True)
class _AwardScenario:
    award: AwardPricing
    multiplier: float
    partner: Optional[TransferPartner]
    bonus_description: Optional[str]


def _unique(values: Iterable[CabinClass]) -> List[CabinClass]:
    seen: List[CabinClass] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def _source_points(program_points: float, effective_ratio: float) -> int:
    # Round first so 70000 / 1.0 never becomes 70001 through float noise.
    return math.ceil(round(program_points / effective_ratio, 6))


class TransferOptimizer:
    """Finds the best valuation across every transfer/cabin/date combination."""

    def __init__(self, engine: Optional[ValuationEngine] = None) -> None:
        self.engine = engine or ValuationEngine()

    def optimize(
        self,
        itinerary: FlightItinerary,
        award: AwardPricing,
        cash: CashPricing,
        partners: Sequence[TransferPartner] = (),
        options: Optional[OptimizationOptions] = None,
        *,
        pricing: Optional[PricingLookup] = None,
    ) -> ValueCalculation:
        return self.search(itinerary, award, cash, partners, options, pricing=pricing)[0].calculation

    def search(
        self,
        itinerary: FlightItinerary,
        award: AwardPricing,
        cash: CashPricing,
        partners: Sequence[TransferPartner] = (),
        options: Optional[OptimizationOptions] = None,
        *,
        pricing: Optional[PricingLookup] = None,
    ) -> List[OptimizationCandidate]:
        """Evaluate the full search space and return candidates, best first."""
        options = options or OptimizationOptions()
        validate_itinerary(itinerary)
        validate_award(award)
        validate_cash(cash)
        if award.points_cost <= 0:
            raise InvalidInputError("Optimization requires a positive points cost", field="points_cost")

        evaluated_at = options.evaluated_at or datetime.now(timezone.utc)
        cabins = _unique([itinerary.cabin, *options.alternative_cabins])
        offsets = range(-options.flex_days, options.flex_days + 1)

        candidates: List[OptimizationCandidate] = []
        skipped = 0
        for cabin in cabins:
            for offset in offsets:
                variant = itinerary.shifted(offset, cabin=cabin)
                if variant is itinerary:
                    quote: Optional[Quote] = (award, cash)
                else:
                    quote = pricing.quote(variant) if pricing is not None else None
                if quote is None:
                    skipped += 1
                    continue
                base_award, base_cash = quote
                for scenario in self._award_scenarios(base_award, partners, options, evaluated_at):
                    calculation = self.engine.evaluate(variant, scenario.award, base_cash)
                    candidates.append(
                        OptimizationCandidate(
                            itinerary=variant,
                            calculation=calculation,
                            multiplier=scenario.multiplier,
                            partner=scenario.partner,
                            bonus_description=scenario.bonus_description,
                        )
                    )

        candidates.sort(key=OptimizationCandidate.sort_key)
        best = candidates[0]
        logger.info(
            "Evaluated %s combinations (%s variants without pricing); best cpp=%.3f on %s %s",
            len(candidates),
            skipped,
            best.calculation.cpp,
            best.itinerary.depart_date.isoformat(),
            best.itinerary.cabin.value,
        )
        return candidates

    def _award_scenarios(
        self,
        award: AwardPricing,
        partners: Sequence[TransferPartner],
        options: OptimizationOptions,
        evaluated_at: datetime,
    ) -> List[_AwardScenario]:
        scenarios = [_AwardScenario(award=award, multiplier=1.0, partner=None, bonus_description=None)]
        program_points = award.program_points
        for partner in partners:
            if partner.destination != award.program or partner.ratio <= 0:
                continue
            multipliers: List[Tuple[float, Optional[str]]] = [(1.0, None)]
            if options.include_transfer_bonuses:
                for bonus in partner.active_bonuses(evaluated_at):
                    needed = _source_points(program_points, partner.ratio * bonus.multiplier)
                    if bonus.min_transfer is not None and needed < bonus.min_transfer:
                        continue
                    multipliers.append((bonus.multiplier, bonus.description))
            for multiplier in options.transfer_bonus_scenarios:
                multipliers.append((multiplier, f"Hypothetical {multiplier - 1:.0%} transfer bonus"))

            seen: List[float] = []
            for multiplier, description in multipliers:
                if multiplier in seen:
                    continue
                seen.append(multiplier)
                effective = partner.ratio * multiplier
                adjusted = replace(
                    award,
                    points_cost=_source_points(program_points, effective),
                    transfer_required=True,
                    transfer_from=partner.source,
                    transfer_ratio=effective,
                    transfer_time=partner.transfer_time,
                )
                scenarios.append(
                    _AwardScenario(
                        award=adjusted,
                        multiplier=multiplier,
                        partner=partner,
                        bonus_description=description,
                    )
                )
        return scenarios


__all__ = [
    "OptimizationCandidate",
    "OptimizationOptions",
    "PricingLookup",
    "PricingTable",
    "TransferOptimizer",
]
