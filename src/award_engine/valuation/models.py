"""Dataclasses for itineraries, award/cash pricing and valuation output."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class CabinClass(str, Enum):
    ECONOMY = "economy"
    PREMIUM_ECONOMY = "premium_economy"
    BUSINESS = "business"
    FIRST = "first"

    @property
    def is_premium(self) -> bool:
        return self in (CabinClass.BUSINESS, CabinClass.FIRST)


class ValueRating(str, Enum):
    """Six-tier cents-per-point rating, ordered from worst to best."""

    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    VERY_GOOD = "very_good"
    EXCELLENT = "excellent"
    EXCEPTIONAL = "exceptional"

    @property
    def rank(self) -> int:
        return _RATING_ORDER.index(self)

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ValueRating):
            return NotImplemented
        return self.rank >= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ValueRating):
            return NotImplemented
        return self.rank > other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ValueRating):
            return NotImplemented
        return self.rank <= other.rank

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ValueRating):
            return NotImplemented
        return self.rank < other.rank


_RATING_ORDER: Tuple[ValueRating, ...] = (
    ValueRating.POOR,
    ValueRating.FAIR,
    ValueRating.GOOD,
    ValueRating.VERY_GOOD,
    ValueRating.EXCELLENT,
    ValueRating.EXCEPTIONAL,
)


class DealQuality(str, Enum):
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


class BookingDifficulty(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    DIFFICULT = "difficult"

    @property
    def rank(self) -> int:
        return (BookingDifficulty.EASY, BookingDifficulty.MODERATE, BookingDifficulty.DIFFICULT).index(self)


@dataclass(frozen=True, slots=True)
class FlightSegment:
    origin: str
    destination: str
    date: date
    airline: str
    flight_number: str
    duration_minutes: int
    cabin: CabinClass
    aircraft: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "origin": self.origin,
            "destination": self.destination,
            "date": self.date.isoformat(),
            "airline": self.airline,
            "flight_number": self.flight_number,
            "duration_minutes": self.duration_minutes,
            "cabin": self.cabin.value,
            "aircraft": self.aircraft,
        }


@dataclass(frozen=True, slots=True)
class FlightItinerary:
    """A requested trip. Segments are assumed to form a contiguous path."""

    origin: str
    destination: str
    depart_date: date
    cabin: CabinClass
    passengers: int = 1
    return_date: Optional[date] = None
    segments: Tuple[FlightSegment, ...] = ()
    currency: str = "USD"

    @property
    def is_nonstop(self) -> bool:
        return len(self.segments) == 1

    def shifted(self, days: int = 0, *, cabin: Optional[CabinClass] = None) -> "FlightItinerary":
        """Return a copy moved by ``days`` (and optionally re-cabined).

        Segments are dropped on shifted copies since they describe a specific
        flight on the original date.
        """
        if days == 0 and (cabin is None or cabin == self.cabin):
            return self
        delta = timedelta(days=days)
        return replace(
            self,
            depart_date=self.depart_date + delta,
            return_date=self.return_date + delta if self.return_date else None,
            cabin=cabin or self.cabin,
            segments=self.segments if days == 0 else (),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "origin": self.origin,
            "destination": self.destination,
            "depart_date": self.depart_date.isoformat(),
            "return_date": self.return_date.isoformat() if self.return_date else None,
            "cabin": self.cabin.value,
            "passengers": self.passengers,
            "currency": self.currency,
            "segments": [segment.to_dict() for segment in self.segments],
        }


@dataclass(frozen=True, slots=True)
class AwardPricing:
    """Points price plus residual cash for an award booking.

    When ``transfer_required`` is set, ``points_cost`` counts source-program
    points and ``transfer_ratio`` converts them into ``program`` points.
    """

    program: str
    points_cost: int
    surcharges: float = 0.0
    taxes: float = 0.0
    fees: float = 0.0
    total_cash: Optional[float] = None
    transfer_required: bool = False
    transfer_from: Optional[str] = None
    transfer_ratio: Optional[float] = None
    transfer_time: Optional[str] = None

    def __post_init__(self) -> None:
        if self.total_cash is None:
            object.__setattr__(self, "total_cash", self.surcharges + self.taxes + self.fees)

    @property
    def program_points(self) -> float:
        if self.transfer_required and self.transfer_ratio:
            return self.points_cost * self.transfer_ratio
        return float(self.points_cost)

    def to_dict(self) -> dict[str, object]:
        return {
            "program": self.program,
            "points_cost": self.points_cost,
            "surcharges": self.surcharges,
            "taxes": self.taxes,
            "fees": self.fees,
            "total_cash": self.total_cash,
            "transfer_required": self.transfer_required,
            "transfer_from": self.transfer_from,
            "transfer_ratio": self.transfer_ratio,
            "transfer_time": self.transfer_time,
        }


@dataclass(frozen=True, slots=True)
class CashPricing:
    """Revenue fare for the same itinerary. ``total_cost`` is authoritative."""

    total_cost: float
    base_fare: float = 0.0
    taxes: float = 0.0
    fees: float = 0.0
    source: str = "unknown"

    def to_dict(self) -> dict[str, object]:
        return {
            "total_cost": self.total_cost,
            "base_fare": self.base_fare,
            "taxes": self.taxes,
            "fees": self.fees,
            "source": self.source,
        }


@dataclass(frozen=True, slots=True)
class TransferBonus:
    multiplier: float
    description: str
    min_transfer: Optional[int] = None
    expires_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.expires_at is not None:
            object.__setattr__(self, "expires_at", as_utc(self.expires_at))

    def is_active(self, at: datetime) -> bool:
        return self.expires_at is None or as_utc(at) < self.expires_at

    def to_dict(self) -> dict[str, object]:
        return {
            "multiplier": self.multiplier,
            "description": self.description,
            "min_transfer": self.min_transfer,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass(frozen=True, slots=True)
class TransferPartner:
    """Transfer relationship; ``ratio`` is program points per source point."""

    source: str
    destination: str
    ratio: float
    transfer_time: str
    bonuses: Tuple[TransferBonus, ...] = ()

    def active_bonuses(self, at: datetime) -> Tuple[TransferBonus, ...]:
        return tuple(bonus for bonus in self.bonuses if bonus.is_active(at))

    def to_dict(self) -> dict[str, object]:
        return {
            "source": self.source,
            "destination": self.destination,
            "ratio": self.ratio,
            "transfer_time": self.transfer_time,
            "bonuses": [bonus.to_dict() for bonus in self.bonuses],
        }


@dataclass(frozen=True, slots=True)
class ValueCalculation:
    """Outcome of a single valuation. Never mutated after construction."""

    cpp: float
    total_value: float
    value_rating: ValueRating
    award_pricing: AwardPricing
    cash_pricing: CashPricing
    savings: float
    savings_percent: float
    is_good_deal: bool
    deal_quality: DealQuality
    reasons: Tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "cpp": self.cpp,
            "total_value": self.total_value,
            "value_rating": self.value_rating.value,
            "award_pricing": self.award_pricing.to_dict(),
            "cash_pricing": self.cash_pricing.to_dict(),
            "savings": self.savings,
            "savings_percent": self.savings_percent,
            "is_good_deal": self.is_good_deal,
            "deal_quality": self.deal_quality.value,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True, slots=True)
class BookingStep:
    order: int
    action: str
    details: Optional[str] = None
    url: Optional[str] = None
    screenshot: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "order": self.order,
            "action": self.action,
            "details": self.details,
            "url": self.url,
            "screenshot": self.screenshot,
        }


@dataclass(frozen=True, slots=True)
class BookingInstructions:
    steps: Tuple[BookingStep, ...]
    estimated_minutes: int
    difficulty: BookingDifficulty
    tips: Tuple[str, ...] = field(default_factory=tuple)
    phone_number: Optional[str] = None
    typical_wait_time: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "steps": [step.to_dict() for step in self.steps],
            "estimated_minutes": self.estimated_minutes,
            "difficulty": self.difficulty.value,
            "tips": list(self.tips),
            "phone_number": self.phone_number,
            "typical_wait_time": self.typical_wait_time,
        }
