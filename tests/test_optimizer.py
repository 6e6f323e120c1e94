from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from award_engine.errors import InvalidInputError
from award_engine.providers.flights import FlightAvailability
from award_engine.valuation import (
    AwardPricing,
    CabinClass,
    CashPricing,
    FlightItinerary,
    OptimizationOptions,
    PricingTable,
    TransferOptimizer,
    ValuationEngine,
)
from award_engine.valuation.models import TransferBonus, TransferPartner

NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)
DEPART = date(2026, 3, 10)


def _itinerary(cabin: CabinClass = CabinClass.BUSINESS, depart: date = DEPART) -> FlightItinerary:
    return FlightItinerary(origin="JFK", destination="LHR", depart_date=depart, cabin=cabin)


def _award(points: int = 50000, program: str = "VIRGIN_ATLANTIC") -> AwardPricing:
    return AwardPricing(program=program, points_cost=points, taxes=100.0)


def _partner(*bonuses: TransferBonus) -> TransferPartner:
    return TransferPartner(
        source="AMEX_MR",
        destination="VIRGIN_ATLANTIC",
        ratio=1.0,
        transfer_time="instant",
        bonuses=bonuses,
    )


def _options(**overrides: object) -> OptimizationOptions:
    values: dict[str, object] = {"evaluated_at": NOW}
    values.update(overrides)
    return OptimizationOptions(**values)


def test_never_worse_than_direct_evaluation() -> None:
    itinerary, award, cash = _itinerary(), _award(), CashPricing(total_cost=1000.0)
    direct = ValuationEngine().evaluate(itinerary, award, cash)

    best = TransferOptimizer().optimize(itinerary, award, cash, [_partner()], _options())

    assert best.cpp >= direct.cpp
    assert best == direct


def test_active_bonus_reduces_source_points() -> None:
    bonus = TransferBonus(multiplier=1.3, description="30% bonus", min_transfer=1000, expires_at=NOW + timedelta(days=7))

    candidates = TransferOptimizer().search(
        _itinerary(), _award(), CashPricing(total_cost=1000.0), [_partner(bonus)], _options()
    )

    best = candidates[0]
    assert best.multiplier == pytest.approx(1.3)
    assert best.bonus_description == "30% bonus"
    assert best.calculation.award_pricing.points_cost == 38462
    assert best.calculation.award_pricing.transfer_from == "AMEX_MR"
    assert best.calculation.award_pricing.transfer_required
    assert best.calculation.cpp == pytest.approx(90000 / 38462)


def test_expired_bonus_ignored() -> None:
    bonus = TransferBonus(multiplier=1.3, description="30% bonus", expires_at=NOW - timedelta(seconds=1))

    candidates = TransferOptimizer().search(
        _itinerary(), _award(), CashPricing(total_cost=1000.0), [_partner(bonus)], _options()
    )

    assert all(candidate.multiplier == 1.0 for candidate in candidates)
    assert candidates[0].calculation.cpp == pytest.approx(1.8)


def test_naive_and_aware_times_compare_as_utc() -> None:
    naive_now = NOW.replace(tzinfo=None)
    aware_expiry = TransferBonus(multiplier=1.3, description="aware", expires_at=NOW + timedelta(days=1))
    naive_expiry = TransferBonus(multiplier=1.5, description="naive", expires_at=naive_now - timedelta(hours=1))

    options = _options(evaluated_at=naive_now)
    candidates = TransferOptimizer().search(
        _itinerary(), _award(), CashPricing(total_cost=1000.0), [_partner(aware_expiry, naive_expiry)], options
    )

    assert options.evaluated_at == NOW
    assert naive_expiry.expires_at is not None and naive_expiry.expires_at.tzinfo is not None
    assert sorted({candidate.multiplier for candidate in candidates}) == [1.0, 1.3]
    assert naive_expiry.is_active(NOW - timedelta(days=1))
    assert not aware_expiry.is_active(naive_now + timedelta(days=2))


def test_bonus_below_minimum_transfer_ignored() -> None:
    bonus = TransferBonus(multiplier=2.0, description="Double points", min_transfer=50000)

    candidates = TransferOptimizer().search(
        _itinerary(), _award(), CashPricing(total_cost=1000.0), [_partner(bonus)], _options()
    )

    assert [candidate.multiplier for candidate in candidates] == [1.0, 1.0]


def test_bonuses_can_be_disabled() -> None:
    bonus = TransferBonus(multiplier=1.3, description="30% bonus")
    options = _options(include_transfer_bonuses=False)

    best = TransferOptimizer().optimize(_itinerary(), _award(), CashPricing(total_cost=1000.0), [_partner(bonus)], options)

    assert best.award_pricing.points_cost == 50000


def test_hypothetical_scenarios_apply_to_every_partner() -> None:
    candidates = TransferOptimizer().search(
        _itinerary(),
        _award(),
        CashPricing(total_cost=1000.0),
        [_partner()],
        _options(transfer_bonus_scenarios=(1.25, 1.5)),
    )

    best = candidates[0]
    assert best.multiplier == pytest.approx(1.5)
    assert best.calculation.award_pricing.points_cost == 33334
    assert best.bonus_description == "Hypothetical 50% transfer bonus"
    assert {c.bonus_description for c in candidates if c.multiplier == 1.25} == {"Hypothetical 25% transfer bonus"}


def test_partners_for_other_programs_are_ignored() -> None:
    other = TransferPartner(source="CHASE_UR", destination="UNITED", ratio=1.0, transfer_time="instant")

    candidates = TransferOptimizer().search(
        _itinerary(), _award(), CashPricing(total_cost=1000.0), [other], _options(transfer_bonus_scenarios=(2.0,))
    )

    assert len(candidates) == 1
    assert candidates[0].partner is None


def test_flexible_dates_use_pricing_lookup() -> None:
    table = PricingTable()
    table.add(CabinClass.BUSINESS, DEPART + timedelta(days=1), _award(40000), CashPricing(total_cost=1000.0))

    candidates = TransferOptimizer().search(
        _itinerary(), _award(), CashPricing(total_cost=1000.0), options=_options(flex_days=1), pricing=table
    )

    # The day before has no quote and is skipped.
    assert len(candidates) == 2
    best = candidates[0]
    assert best.itinerary.depart_date == DEPART + timedelta(days=1)
    assert best.calculation.award_pricing.points_cost == 40000


def test_variants_without_pricing_are_skipped() -> None:
    candidates = TransferOptimizer().search(
        _itinerary(),
        _award(),
        CashPricing(total_cost=1000.0),
        options=_options(flex_days=3, alternative_cabins=(CabinClass.FIRST, CabinClass.ECONOMY)),
    )

    assert len(candidates) == 1
    assert candidates[0].itinerary == _itinerary()


def test_alternative_cabin_can_win() -> None:
    table = PricingTable()
    table.add(CabinClass.FIRST, DEPART, _award(60000), CashPricing(total_cost=4000.0))

    best = TransferOptimizer().search(
        _itinerary(),
        _award(),
        CashPricing(total_cost=1000.0),
        options=_options(alternative_cabins=(CabinClass.FIRST,)),
        pricing=table,
    )[0]

    assert best.itinerary.cabin is CabinClass.FIRST


def test_ties_prefer_fewer_points_then_earlier_dates() -> None:
    table = PricingTable()
    table.add(CabinClass.BUSINESS, DEPART - timedelta(days=1), _award(25000), CashPricing(total_cost=600.0))
    table.add(CabinClass.BUSINESS, DEPART + timedelta(days=1), _award(25000), CashPricing(total_cost=600.0))

    candidates = TransferOptimizer().search(
        _itinerary(), _award(50000), CashPricing(total_cost=1100.0), options=_options(flex_days=1), pricing=table
    )

    assert [c.calculation.cpp for c in candidates] == pytest.approx([2.0, 2.0, 2.0])
    dates = [c.itinerary.depart_date for c in candidates]
    assert dates == [DEPART - timedelta(days=1), DEPART + timedelta(days=1), DEPART]


def test_zero_points_rejected() -> None:
    with pytest.raises(InvalidInputError):
        TransferOptimizer().optimize(_itinerary(), _award(0), CashPricing(total_cost=1000.0))


@pytest.mark.parametrize("overrides", [{"flex_days": -1}, {"transfer_bonus_scenarios": (0.0,)}])
def test_invalid_options_rejected(overrides: dict[str, object]) -> None:
    with pytest.raises(InvalidInputError):
        OptimizationOptions(**overrides)


def test_pricing_table_from_availability_keeps_cheapest() -> None:
    fallback = CashPricing(total_cost=900.0)
    records = [
        FlightAvailability(provider="p", itinerary=_itinerary(), award=_award(60000)),
        FlightAvailability(provider="p", itinerary=_itinerary(), award=_award(45000)),
        FlightAvailability(provider="p", itinerary=_itinerary(CabinClass.FIRST)),
    ]

    table = PricingTable.from_availability(records, fallback_cash=fallback)

    assert len(table) == 1
    quote = table.quote(_itinerary())
    assert quote is not None
    assert quote[0].points_cost == 45000
    assert quote[1] is fallback
    assert table.quote(_itinerary(CabinClass.FIRST)) is None
