"""Value a single award redemption against its cash fare."""
from __future__ import annotations

import argparse
import json
from datetime import date, datetime, timezone
from typing import Optional

from award_engine.config.settings import Settings
from award_engine.core.logging import configure_logging
from award_engine.errors import InvalidInputError
from award_engine.valuation import (
    AwardPricing,
    CabinClass,
    CashPricing,
    FlightItinerary,
    OptimizationOptions,
    TransferOptimizer,
    ValuationEngine,
    build_booking_instructions,
    recommend,
)
from award_engine.valuation.programs import TRANSFER_PARTNERS, partners_to


def _parse_multipliers(raw: Optional[str]) -> tuple[float, ...]:
    if not raw:
        return ()
    return tuple(float(part) for part in raw.split(",") if part.strip())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Score an award redemption and print booking steps")
    parser.add_argument("origin", help="Origin airport code, e.g. SFO")
    parser.add_argument("destination", help="Destination airport code, e.g. NRT")
    parser.add_argument("depart", type=date.fromisoformat, help="Departure date (YYYY-MM-DD)")
    parser.add_argument("--cabin", choices=[cabin.value for cabin in CabinClass], default="economy")
    parser.add_argument("--passengers", type=int, default=1)
    parser.add_argument("--program", required=True, help="Loyalty program code, e.g. UNITED")
    parser.add_argument("--points", type=int, required=True, help="Points/miles required")
    parser.add_argument("--taxes", type=float, default=0.0)
    parser.add_argument("--fees", type=float, default=0.0)
    parser.add_argument("--surcharges", type=float, default=0.0)
    parser.add_argument("--cash", type=float, required=True, help="Total cash fare for the same itinerary")
    parser.add_argument(
        "--optimize",
        action="store_true",
        help="Search transfer partners (and any active bonuses) into the award program",
    )
    parser.add_argument(
        "--scenarios",
        help="Comma-separated hypothetical bonus multipliers to try, e.g. 1.25,1.5",
    )
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    settings = Settings()
    configure_logging(settings.log_level, settings.log_dir)

    itinerary = FlightItinerary(
        origin=args.origin.upper(),
        destination=args.destination.upper(),
        depart_date=args.depart,
        cabin=CabinClass(args.cabin),
        passengers=args.passengers,
        currency=settings.default_currency,
    )
    award = AwardPricing(
        program=args.program.upper(),
        points_cost=args.points,
        surcharges=args.surcharges,
        taxes=args.taxes,
        fees=args.fees,
    )
    cash = CashPricing(total_cost=args.cash, base_fare=args.cash, source="cli")

    engine = ValuationEngine(settings.valuation_policy())
    try:
        if args.optimize or args.scenarios:
            options = OptimizationOptions(
                transfer_bonus_scenarios=_parse_multipliers(args.scenarios),
                evaluated_at=datetime.now(timezone.utc),
            )
            partners = partners_to(award.program, TRANSFER_PARTNERS)
            calculation = TransferOptimizer(engine).optimize(itinerary, award, cash, partners, options)
        else:
            calculation = engine.evaluate(itinerary, award, cash)
    except InvalidInputError as exc:
        parser.error(str(exc))

    action, reason = recommend(calculation)
    instructions = build_booking_instructions(calculation.award_pricing, itinerary)
    print(
        json.dumps(
            {
                "calculation": calculation.to_dict(),
                "recommendation": {"action": action, "reason": reason},
                "instructions": instructions.to_dict(),
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    main()
