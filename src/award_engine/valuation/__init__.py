"""Award valuation models, scoring engine and transfer optimizer."""

from .booking import build_booking_instructions
from .engine import ValuationEngine, ValuationPolicy, calculate_cpp, recommend
from .models import (
    AwardPricing,
    BookingDifficulty,
    BookingInstructions,
    BookingStep,
    CabinClass,
    CashPricing,
    DealQuality,
    FlightItinerary,
    FlightSegment,
    TransferBonus,
    TransferPartner,
    ValueCalculation,
    ValueRating,
)
from .optimizer import OptimizationCandidate, OptimizationOptions, PricingTable, TransferOptimizer

__all__ = [
    "AwardPricing",
    "BookingDifficulty",
    "BookingInstructions",
    "BookingStep",
    "CabinClass",
    "CashPricing",
    "DealQuality",
    "FlightItinerary",
    "FlightSegment",
    "OptimizationCandidate",
    "OptimizationOptions",
    "PricingTable",
    "TransferBonus",
    "TransferOptimizer",
    "TransferPartner",
    "ValuationEngine",
    "ValuationPolicy",
    "ValueCalculation",
    "ValueRating",
    "build_booking_instructions",
    "calculate_cpp",
    "recommend",
]
