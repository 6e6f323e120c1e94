from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, List, Tuple

import pytest

from award_engine.deals import DealFinder
from award_engine.errors import ProviderNotFoundError, RateLimitedError
from award_engine.providers import (
    FlightAvailability,
    FlightProvider,
    FlightSearchQuery,
    ProviderConfig,
    ProviderRegistry,
)
from award_engine.valuation import AwardPricing, CabinClass, CashPricing, OptimizationOptions
from award_engine.valuation.models import TransferPartner

DEPART = date(2026, 3, 1)


class _InventoryProvider(FlightProvider):
    """Serves canned award inventory keyed by (cabin, date)."""

    def __init__(
        self,
        name: str,
        inventory: Dict[Tuple[CabinClass, date], List[int]],
        *,
        requests_per_minute: int = 60,
    ) -> None:
        super().__init__(ProviderConfig(name=name, requests_per_minute=requests_per_minute))
        self.inventory = inventory
        self.queries: List[FlightSearchQuery] = []

    async def _execute_fetch(self, query: FlightSearchQuery) -> List[FlightAvailability]:
        self.queries.append(query)
        itinerary = query.to_itinerary()
        return [
            FlightAvailability(
                provider=self.name,
                itinerary=itinerary,
                award=AwardPricing(program="UNITED", points_cost=points, taxes=40.0),
            )
            for points in self.inventory.get((query.cabin, query.depart_date), [])
        ]

    async def _execute_health_check(self) -> None:
        return None


def _query() -> FlightSearchQuery:
    return FlightSearchQuery(origin="SFO", destination="NRT", depart_date=DEPART, cabin=CabinClass.BUSINESS)


@pytest.mark.asyncio
async def test_finds_cheapest_award_and_builds_instructions() -> None:
    registry = ProviderRegistry()
    registry.register_flight_provider("stub", _InventoryProvider("stub", {(CabinClass.BUSINESS, DEPART): [88000, 70000]}))

    result = await DealFinder(registry).find_best_value(_query(), CashPricing(total_cost=1800.0))

    assert result is not None
    assert result.provider == "stub"
    assert result.calculation.award_pricing.points_cost == 70000
    assert result.calculation.cpp == pytest.approx(2.514, abs=1e-3)
    assert result.instructions.steps[0].action == "Log in to United.com"
    assert result.to_dict()["provider"] == "stub"


@pytest.mark.asyncio
async def test_transfer_partner_with_hypothetical_bonus() -> None:
    registry = ProviderRegistry()
    registry.register_flight_provider("stub", _InventoryProvider("stub", {(CabinClass.BUSINESS, DEPART): [70000]}))
    partner = TransferPartner(source="CHASE_UR", destination="UNITED", ratio=1.0, transfer_time="instant")

    result = await DealFinder(registry).find_best_value(
        _query(),
        CashPricing(total_cost=1800.0),
        partners=[partner],
        options=OptimizationOptions(transfer_bonus_scenarios=(1.25,)),
    )

    assert result is not None
    assert result.calculation.award_pricing.transfer_from == "CHASE_UR"
    assert result.calculation.award_pricing.points_cost == 56000
    assert result.instructions.steps[0].action == "Log in to Chase Ultimate Rewards"


@pytest.mark.asyncio
async def test_flexible_search_queries_each_date() -> None:
    provider = _InventoryProvider(
        "stub",
        {
            (CabinClass.BUSINESS, DEPART): [70000],
            (CabinClass.BUSINESS, DEPART + timedelta(days=1)): [50000],
        },
    )
    registry = ProviderRegistry()
    registry.register_flight_provider("stub", provider)

    result = await DealFinder(registry).find_best_value(
        _query(), CashPricing(total_cost=1800.0), options=OptimizationOptions(flex_days=1)
    )

    assert sorted(query.depart_date for query in provider.queries) == [
        DEPART - timedelta(days=1),
        DEPART,
        DEPART + timedelta(days=1),
    ]
    assert result is not None
    assert result.itinerary.depart_date == DEPART + timedelta(days=1)
    assert result.calculation.award_pricing.points_cost == 50000


@pytest.mark.asyncio
async def test_no_inventory_returns_none() -> None:
    registry = ProviderRegistry()
    registry.register_flight_provider("stub", _InventoryProvider("stub", {}))

    assert await DealFinder(registry).find_best_value(_query(), CashPricing(total_cost=1800.0)) is None


@pytest.mark.asyncio
async def test_named_provider_must_exist() -> None:
    registry = ProviderRegistry()
    registry.register_flight_provider("stub", _InventoryProvider("stub", {}))

    with pytest.raises(ProviderNotFoundError):
        await DealFinder(registry).find_best_value(_query(), CashPricing(total_cost=1800.0), provider_name="other")


@pytest.mark.asyncio
async def test_other_cabins_are_not_valued_against_requested_fare() -> None:
    inventory = {(CabinClass.BUSINESS, DEPART): [70000], (CabinClass.ECONOMY, DEPART): [30000]}
    registry = ProviderRegistry()
    registry.register_flight_provider("stub", _InventoryProvider("stub", inventory))
    options = OptimizationOptions(alternative_cabins=(CabinClass.ECONOMY,))

    result = await DealFinder(registry).find_best_value(_query(), CashPricing(total_cost=6000.0), options=options)

    assert result is not None
    assert result.itinerary.cabin is CabinClass.BUSINESS
    assert result.calculation.award_pricing.points_cost == 70000
    assert result.calculation.cpp == pytest.approx((6000.0 - 40.0) * 100 / 70000)


@pytest.mark.asyncio
async def test_other_cabin_uses_its_own_cash_quote() -> None:
    inventory = {(CabinClass.BUSINESS, DEPART): [70000], (CabinClass.ECONOMY, DEPART): [30000]}
    registry = ProviderRegistry()
    registry.register_flight_provider("stub", _InventoryProvider("stub", inventory))
    economy_fare = CashPricing(total_cost=3000.0, source="quote")

    result = await DealFinder(registry).find_best_value(
        _query(),
        CashPricing(total_cost=6000.0),
        options=OptimizationOptions(alternative_cabins=(CabinClass.ECONOMY,)),
        cash_quotes={(CabinClass.ECONOMY, DEPART): economy_fare},
    )

    assert result is not None
    assert result.itinerary.cabin is CabinClass.ECONOMY
    assert result.calculation.cash_pricing == economy_fare
    assert result.calculation.cpp == pytest.approx((3000.0 - 40.0) * 100 / 30000)


@pytest.mark.asyncio
async def test_rate_limited_variants_are_skipped() -> None:
    provider = _InventoryProvider("stub", {(CabinClass.BUSINESS, DEPART): [70000]}, requests_per_minute=3)
    registry = ProviderRegistry()
    registry.register_flight_provider("stub", provider)

    result = await DealFinder(registry).find_best_value(
        _query(), CashPricing(total_cost=1800.0), options=OptimizationOptions(flex_days=2)
    )

    assert result is not None
    assert result.itinerary.depart_date == DEPART
    assert result.calculation.award_pricing.points_cost == 70000
    assert len(provider.queries) == 3
    assert DEPART in [query.depart_date for query in provider.queries]


@pytest.mark.asyncio
async def test_rate_limited_requested_slot_still_raises() -> None:
    provider = _InventoryProvider("stub", {(CabinClass.BUSINESS, DEPART): [70000]}, requests_per_minute=1)
    registry = ProviderRegistry()
    registry.register_flight_provider("stub", provider)
    finder = DealFinder(registry)
    await finder.find_best_value(_query(), CashPricing(total_cost=1800.0))

    with pytest.raises(RateLimitedError):
        await finder.find_best_value(_query(), CashPricing(total_cost=1800.0))
