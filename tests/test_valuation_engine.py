from __future__ import annotations

from datetime import date

import pytest

from award_engine.errors import InvalidInputError
from award_engine.valuation import (
    AwardPricing,
    CabinClass,
    CashPricing,
    FlightItinerary,
    ValuationEngine,
    ValuationPolicy,
    ValueRating,
    calculate_cpp,
    recommend,
)
from award_engine.valuation.engine import collapse_rating, format_currency
from award_engine.valuation.models import DealQuality


def _itinerary(cabin: CabinClass = CabinClass.BUSINESS) -> FlightItinerary:
    return FlightItinerary(origin="SFO", destination="NRT", depart_date=date(2026, 3, 1), cabin=cabin)


def _united(points: int = 70000, **extra: object) -> AwardPricing:
    return AwardPricing(program="UNITED", points_cost=points, taxes=40.0, **extra)


def _cash(total: float = 1800.0) -> CashPricing:
    return CashPricing(total_cost=total, base_fare=max(total - 100.0, 0.0), taxes=min(total, 100.0))


def test_business_class_example() -> None:
    calculation = ValuationEngine().evaluate(_itinerary(), _united(), _cash())

    assert calculation.cpp == pytest.approx(2.514, abs=1e-3)
    assert calculation.value_rating is ValueRating.EXCELLENT
    assert calculation.deal_quality is DealQuality.EXCELLENT
    assert calculation.savings == pytest.approx(1760.0)
    assert calculation.savings_percent == pytest.approx(0.978, abs=1e-3)
    assert calculation.total_value == pytest.approx(1760.0)
    assert calculation.is_good_deal
    assert calculation.reasons == (
        "2.51 cents/point exceeds the 2 threshold for Excellent",
        "93% better than a typical United MileagePlus redemption (1.3 cents/point)",
        "Saves $1,760.00 versus cash (98%)",
        "Outstanding value for business class travel",
    )


def test_evaluation_is_deterministic() -> None:
    engine = ValuationEngine()
    assert engine.evaluate(_itinerary(), _united(), _cash()) == engine.evaluate(_itinerary(), _united(), _cash())


def test_zero_points_is_poor_not_an_error() -> None:
    calculation = ValuationEngine().evaluate(_itinerary(), _united(points=0), _cash())

    assert calculation.cpp == 0.0
    assert calculation.value_rating is ValueRating.POOR
    assert not calculation.is_good_deal
    assert calculation.reasons[0] == "No points redeemed, so cents/point cannot be rated"


def test_award_dearer_than_cash() -> None:
    award = AwardPricing(program="UNITED", points_cost=10000, surcharges=100.0, taxes=50.0)
    calculation = ValuationEngine().evaluate(_itinerary(CabinClass.ECONOMY), award, _cash(120.0))

    assert calculation.cpp == 0.0
    assert calculation.savings == pytest.approx(-30.0)
    assert calculation.savings_percent < 0
    assert not calculation.is_good_deal
    assert "Costs $30.00 more than paying cash" in calculation.reasons
    assert any(reason.startswith("High surcharges") for reason in calculation.reasons)
    assert recommend(calculation)[0] == "skip"


def test_transfer_reason_included() -> None:
    award = _united(transfer_required=True, transfer_from="CHASE_UR", transfer_ratio=1.0, transfer_time="instant")
    calculation = ValuationEngine().evaluate(_itinerary(), award, _cash())

    assert calculation.reasons[-1] == "Requires a transfer from Chase Ultimate Rewards at 1:1 (instant)"


@pytest.mark.parametrize(
    "points, total, expected",
    [
        (10000, 340.0, ValueRating.EXCEPTIONAL),
        (10000, 240.0, ValueRating.EXCELLENT),
        (10000, 190.0, ValueRating.VERY_GOOD),
        (10000, 140.0, ValueRating.GOOD),
        (10000, 110.0, ValueRating.FAIR),
        (10000, 100.0, ValueRating.POOR),
    ],
)
def test_rating_tiers(points: int, total: float, expected: ValueRating) -> None:
    calculation = ValuationEngine().evaluate(_itinerary(CabinClass.ECONOMY), _united(points), _cash(total))
    assert calculation.value_rating is expected


def test_good_deal_requires_rating_and_savings() -> None:
    engine = ValuationEngine()
    for total in (60.0, 100.0, 130.0, 200.0, 400.0, 1000.0):
        for points in (1000, 10000, 50000):
            calc = engine.evaluate(_itinerary(CabinClass.ECONOMY), _united(points), _cash(total))
            expected = calc.value_rating >= ValueRating.GOOD and calc.savings_percent > 0
            assert calc.is_good_deal is expected


def test_cpp_monotonic_in_cash_price() -> None:
    award = _united(25000)
    values = [calculate_cpp(award, _cash(total)) for total in range(0, 3001, 25)]
    assert values == sorted(values)
    assert values[0] == 0.0


def test_compare_options_orders_by_value() -> None:
    engine = ValuationEngine()
    awards = [
        AwardPricing(program="UNITED", points_cost=88000, taxes=40.0),
        AwardPricing(program="AIR_CANADA", points_cost=70000, taxes=40.0),
        AwardPricing(program="VIRGIN_ATLANTIC", points_cost=70000, surcharges=500.0, taxes=40.0),
    ]

    ranked = engine.compare_options(_itinerary(), awards, _cash())

    assert [calc.award_pricing.program for calc in ranked] == ["AIR_CANADA", "UNITED", "VIRGIN_ATLANTIC"]


def test_cabin_specific_thresholds() -> None:
    policy = ValuationPolicy(cabin_thresholds={"business": {"excellent": 2.6, "exceptional": 4.0}})
    engine = ValuationEngine(policy)

    assert engine.evaluate(_itinerary(), _united(), _cash()).value_rating is ValueRating.VERY_GOOD
    assert engine.evaluate(_itinerary(CabinClass.FIRST), _united(), _cash()).value_rating is ValueRating.EXCELLENT


def test_policy_rejects_decreasing_thresholds() -> None:
    with pytest.raises(InvalidInputError):
        ValuationPolicy(thresholds={"exceptional": 3.0, "excellent": 2.0, "very_good": 2.5, "good": 1.0, "fair": 0.7})
    with pytest.raises(InvalidInputError):
        ValuationPolicy(thresholds={"exceptional": 3.0})
    with pytest.raises(InvalidInputError):
        ValuationPolicy(thresholds={"poor": 0.1, "exceptional": 3.0, "excellent": 2.0, "very_good": 1.5, "good": 1.0, "fair": 0.7})


def test_good_deal_cutoff_configurable() -> None:
    engine = ValuationEngine(ValuationPolicy(good_deal_cutoff="excellent"))
    calculation = engine.evaluate(_itinerary(CabinClass.ECONOMY), _united(10000), _cash(190.0))
    assert calculation.value_rating is ValueRating.VERY_GOOD
    assert not calculation.is_good_deal


@pytest.mark.parametrize(
    "award, cash",
    [
        (AwardPricing(program="UNITED", points_cost=-1), CashPricing(total_cost=100.0)),
        (AwardPricing(program="", points_cost=1000), CashPricing(total_cost=100.0)),
        (AwardPricing(program="UNITED", points_cost=1000, transfer_required=True), CashPricing(total_cost=100.0)),
        (
            AwardPricing(program="UNITED", points_cost=1000, transfer_required=True, transfer_from="CHASE_UR"),
            CashPricing(total_cost=100.0),
        ),
        (AwardPricing(program="UNITED", points_cost=1000), CashPricing(total_cost=-5.0)),
        (AwardPricing(program="UNITED", points_cost=1000), CashPricing(total_cost=float("nan"))),
    ],
)
def test_invalid_inputs_rejected(award: AwardPricing, cash: CashPricing) -> None:
    with pytest.raises(InvalidInputError):
        ValuationEngine().evaluate(_itinerary(), award, cash)


def test_invalid_itinerary_rejected() -> None:
    itinerary = FlightItinerary(
        origin="SFO",
        destination="NRT",
        depart_date=date(2026, 3, 10),
        cabin=CabinClass.ECONOMY,
        return_date=date(2026, 3, 1),
    )
    with pytest.raises(InvalidInputError):
        ValuationEngine().evaluate(itinerary, _united(), _cash())


def test_recommendations() -> None:
    engine = ValuationEngine()
    assert recommend(engine.evaluate(_itinerary(), _united(), _cash()))[0] == "book"
    good = engine.evaluate(_itinerary(CabinClass.ECONOMY), _united(10000), _cash(140.0))
    assert recommend(good)[0] == "maybe"


def test_collapse_and_currency_helpers() -> None:
    assert collapse_rating(ValueRating.EXCEPTIONAL) is DealQuality.EXCELLENT
    assert collapse_rating(ValueRating.VERY_GOOD) is DealQuality.GOOD
    assert collapse_rating(ValueRating.FAIR) is DealQuality.FAIR
    assert format_currency(1760) == "$1,760.00"
    assert format_currency(99.5, "eur") == "99.50 EUR"
