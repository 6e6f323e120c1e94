"""Deterministic award valuation.

``ValuationEngine.evaluate`` turns an itinerary plus its award and cash prices
into a ``ValueCalculation``: cents-per-point, savings, a six-tier rating, a
four-tier deal quality and an ordered list of reasons. The engine performs no
I/O and keeps no state between calls, so one instance can be shared freely.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Tuple

from award_engine.errors import InvalidInputError

from .models import (
    AwardPricing,
    CabinClass,
    CashPricing,
    DealQuality,
    FlightItinerary,
    ValueCalculation,
    ValueRating,
)
from .programs import average_redemption_value, display_name

if TYPE_CHECKING:  # pragma: no cover
    from award_engine.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS: Dict[ValueRating, float] = {
    ValueRating.EXCEPTIONAL: 3.0,
    ValueRating.EXCELLENT: 2.0,
    ValueRating.VERY_GOOD: 1.5,
    ValueRating.GOOD: 1.0,
    ValueRating.FAIR: 0.7,
}

DEAL_QUALITY_BY_RATING: Dict[ValueRating, DealQuality] = {
    ValueRating.EXCEPTIONAL: DealQuality.EXCELLENT,
    ValueRating.EXCELLENT: DealQuality.EXCELLENT,
    ValueRating.VERY_GOOD: DealQuality.GOOD,
    ValueRating.GOOD: DealQuality.GOOD,
    ValueRating.FAIR: DealQuality.FAIR,
    ValueRating.POOR: DealQuality.POOR,
}

HIGH_SURCHARGE_SHARE = 0.30
PROGRAM_AVERAGE_DELTA = 0.20

_RATED_TIERS: Tuple[ValueRating, ...] = (
    ValueRating.EXCEPTIONAL,
    ValueRating.EXCELLENT,
    ValueRating.VERY_GOOD,
    ValueRating.GOOD,
    ValueRating.FAIR,
)


def _coerce_thresholds(raw: Mapping[object, float]) -> Dict[ValueRating, float]:
    thresholds: Dict[ValueRating, float] = {}
    for key, value in raw.items():
        try:
            rating = key if isinstance(key, ValueRating) else ValueRating(str(key).lower())
        except ValueError as exc:
            raise InvalidInputError(f"Unknown value rating '{key}'", field="thresholds") from exc
        if rating is ValueRating.POOR:
            raise InvalidInputError("'poor' is the catch-all tier and takes no threshold", field="thresholds")
        thresholds[rating] = float(value)
    return thresholds


def _validate_thresholds(thresholds: Mapping[ValueRating, float]) -> None:
    missing = [tier.value for tier in _RATED_TIERS if tier not in thresholds]
    if missing:
        raise InvalidInputError(f"Missing thresholds for {', '.join(missing)}", field="thresholds")
    previous: Optional[float] = None
    for tier in reversed(_RATED_TIERS):
        value = thresholds[tier]
        if not math.isfinite(value):
            raise InvalidInputError(f"Threshold for {tier.value} must be finite", field="thresholds")
        if previous is not None and value < previous:
            raise InvalidInputError(
                f"Thresholds must be non-decreasing by tier; {tier.value}={value} < {previous}",
                field="thresholds",
            )
        previous = value


@dataclass(frozen=True)
class ValuationPolicy:
    """Rating thresholds (cents per point) and the good-deal cutoff."""

    thresholds: Mapping[ValueRating, float] = field(default_factory=lambda: dict(DEFAULT_THRESHOLDS))
    cabin_thresholds: Mapping[CabinClass, Mapping[ValueRating, float]] = field(default_factory=dict)
    good_deal_cutoff: ValueRating = ValueRating.GOOD

    def __post_init__(self) -> None:
        base = _coerce_thresholds(self.thresholds)
        _validate_thresholds(base)
        object.__setattr__(self, "thresholds", base)
        merged: Dict[CabinClass, Dict[ValueRating, float]] = {}
        for cabin, overrides in self.cabin_thresholds.items():
            cabin_key = cabin if isinstance(cabin, CabinClass) else CabinClass(str(cabin).lower())
            combined = {**base, **_coerce_thresholds(overrides)}
            _validate_thresholds(combined)
            merged[cabin_key] = combined
        object.__setattr__(self, "cabin_thresholds", merged)
        if not isinstance(self.good_deal_cutoff, ValueRating):
            object.__setattr__(self, "good_deal_cutoff", ValueRating(str(self.good_deal_cutoff).lower()))

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ValuationPolicy":
        return cls(
            thresholds=settings.rating_thresholds,
            cabin_thresholds=settings.cabin_rating_thresholds,
            good_deal_cutoff=settings.good_deal_cutoff,
        )

    def thresholds_for(self, cabin: Optional[CabinClass] = None) -> Mapping[ValueRating, float]:
        if cabin is not None and cabin in self.cabin_thresholds:
            return self.cabin_thresholds[cabin]
        return self.thresholds

    def rate(self, cpp: float, cabin: Optional[CabinClass] = None) -> ValueRating:
        """Map ``cpp`` to exactly one tier; anything below ``fair`` is ``poor``."""
        thresholds = self.thresholds_for(cabin)
        for tier in _RATED_TIERS:
            if cpp >= thresholds[tier]:
                return tier
        return ValueRating.POOR


def calculate_cpp(award: AwardPricing, cash: CashPricing) -> float:
    """Cents of cash fare displaced per point redeemed; 0 when no points are spent."""
    if award.points_cost == 0:
        return 0.0
    displaced = cash.total_cost - award.surcharges - award.taxes - award.fees
    return max(0.0, displaced * 100 / award.points_cost)


def collapse_rating(rating: ValueRating) -> DealQuality:
    return DEAL_QUALITY_BY_RATING[rating]


def format_currency(amount: float, currency: str = "USD") -> str:
    if currency.upper() == "USD":
        return f"${amount:,.2f}"
    return f"{amount:,.2f} {currency.upper()}"


def _require_amount(value: Optional[float], name: str) -> None:
    if value is None or not math.isfinite(value):
        raise InvalidInputError(f"{name} must be a finite number", field=name)
    if value < 0:
        raise InvalidInputError(f"{name} must not be negative", field=name)


def validate_itinerary(itinerary: FlightItinerary) -> None:
    if not itinerary.origin or not itinerary.destination:
        raise InvalidInputError("Itinerary requires origin and destination", field="origin")
    if itinerary.passengers < 1:
        raise InvalidInputError("Itinerary requires at least one passenger", field="passengers")
    if itinerary.return_date is not None and itinerary.return_date < itinerary.depart_date:
        raise InvalidInputError("Return date precedes departure date", field="return_date")


def validate_award(award: AwardPricing) -> None:
    if not award.program:
        raise InvalidInputError("Award pricing requires a program", field="program")
    if award.points_cost < 0:
        raise InvalidInputError("Points cost must not be negative", field="points_cost")
    for name in ("surcharges", "taxes", "fees", "total_cash"):
        _require_amount(getattr(award, name), f"award.{name}")
    if award.transfer_required:
        if not award.transfer_from:
            raise InvalidInputError("Transfer required but no source program given", field="transfer_from")
        if award.transfer_ratio is None:
            raise InvalidInputError("Transfer required but no transfer ratio given", field="transfer_ratio")
    if award.transfer_ratio is not None and not award.transfer_ratio > 0:
        raise InvalidInputError("Transfer ratio must be positive", field="transfer_ratio")


def validate_cash(cash: CashPricing) -> None:
    for name in ("total_cost", "base_fare", "taxes", "fees"):
        _require_amount(getattr(cash, name), f"cash.{name}")


class ValuationEngine:
    """Scores award redemptions against the equivalent cash fare."""

    def __init__(self, policy: Optional[ValuationPolicy] = None) -> None:
        self.policy = policy or ValuationPolicy()

    def evaluate(self, itinerary: FlightItinerary, award: AwardPricing, cash: CashPricing) -> ValueCalculation:
        validate_itinerary(itinerary)
        validate_award(award)
        validate_cash(cash)

        cpp = calculate_cpp(award, cash)
        savings = cash.total_cost - award.total_cash
        savings_percent = savings / cash.total_cost if cash.total_cost else 0.0
        rating = self.policy.rate(cpp, itinerary.cabin)
        is_good_deal = rating >= self.policy.good_deal_cutoff and savings_percent > 0

        reasons = self._build_reasons(itinerary, award, cash, cpp, rating, savings, savings_percent)
        logger.debug(
            "Valued %s %s→%s via %s: cpp=%.3f rating=%s",
            itinerary.cabin.value,
            itinerary.origin,
            itinerary.destination,
            award.program,
            cpp,
            rating.value,
        )
        return ValueCalculation(
            cpp=cpp,
            total_value=cpp * award.points_cost / 100,
            value_rating=rating,
            award_pricing=award,
            cash_pricing=cash,
            savings=savings,
            savings_percent=savings_percent,
            is_good_deal=is_good_deal,
            deal_quality=collapse_rating(rating),
            reasons=tuple(reasons),
        )

    def compare_options(
        self,
        itinerary: FlightItinerary,
        awards: Iterable[AwardPricing],
        cash: CashPricing,
    ) -> List[ValueCalculation]:
        """Evaluate several awards for one itinerary, best cents-per-point first."""
        results = [self.evaluate(itinerary, award, cash) for award in awards]
        results.sort(key=lambda calc: (-calc.cpp, calc.award_pricing.points_cost, calc.award_pricing.program))
        return results

    def _build_reasons(
        self,
        itinerary: FlightItinerary,
        award: AwardPricing,
        cash: CashPricing,
        cpp: float,
        rating: ValueRating,
        savings: float,
        savings_percent: float,
    ) -> List[str]:
        reasons: List[str] = []
        thresholds = self.policy.thresholds_for(itinerary.cabin)
        currency = itinerary.currency

        if award.points_cost == 0:
            reasons.append("No points redeemed, so cents/point cannot be rated")
        elif rating is ValueRating.POOR:
            reasons.append(
                f"{cpp:.2f} cents/point is below the {thresholds[ValueRating.FAIR]:g} threshold for Fair"
            )
        else:
            threshold = thresholds[rating]
            verb = "exceeds" if cpp > threshold else "meets"
            reasons.append(f"{cpp:.2f} cents/point {verb} the {threshold:g} threshold for {rating.label}")

        if award.points_cost:
            average = average_redemption_value(award.program)
            delta = cpp / average - 1
            if abs(delta) >= PROGRAM_AVERAGE_DELTA:
                direction = "better" if delta > 0 else "worse"
                reasons.append(
                    f"{abs(delta):.0%} {direction} than a typical {display_name(award.program)} "
                    f"redemption ({average:g} cents/point)"
                )

        if savings > 0:
            reasons.append(f"Saves {format_currency(savings, currency)} versus cash ({savings_percent:.0%})")
        elif savings == 0:
            reasons.append("Costs the same as paying cash, so there are no savings")
        else:
            reasons.append(f"Costs {format_currency(-savings, currency)} more than paying cash")

        if itinerary.cabin.is_premium:
            cabin_label = itinerary.cabin.value.replace("_", " ")
            if rating >= ValueRating.EXCELLENT:
                reasons.append(f"Outstanding value for {cabin_label} class travel")
            elif rating < ValueRating.VERY_GOOD:
                reasons.append(f"Consider whether {cabin_label} class is worth the points cost")

        if cash.total_cost > 0 and award.surcharges > 0:
            share = award.total_cash / cash.total_cost
            if share > HIGH_SURCHARGE_SHARE:
                reasons.append(
                    f"High surcharges ({format_currency(award.surcharges, currency)}) reduce the value of this award"
                )

        if award.transfer_required:
            timing = award.transfer_time or "transfer time unknown"
            reasons.append(
                f"Requires a transfer from {display_name(award.transfer_from or '')} "
                f"at 1:{award.transfer_ratio:g} ({timing})"
            )

        return reasons


def recommend(calculation: ValueCalculation) -> Tuple[str, str]:
    """Return a ``(book|maybe|skip, reason)`` recommendation for a valuation."""
    rating = calculation.value_rating
    if not calculation.is_good_deal and calculation.savings <= 0:
        return "skip", "Paying cash is cheaper than this award"
    if rating >= ValueRating.EXCELLENT:
        return "book", "Outstanding value - book this while it lasts"
    if calculation.award_pricing.transfer_required and rating < ValueRating.VERY_GOOD:
        return "skip", "Transfer required for only marginal value - consider cash"
    if rating >= ValueRating.GOOD:
        return "maybe", "Solid redemption if you have the points to spare"
    return "skip", "Better to pay cash or save points for a better redemption"


__all__ = [
    "DEAL_QUALITY_BY_RATING",
    "DEFAULT_THRESHOLDS",
    "ValuationEngine",
    "ValuationPolicy",
    "calculate_cpp",
    "collapse_rating",
    "format_currency",
    "recommend",
    "validate_award",
    "validate_cash",
    "validate_itinerary",
]
