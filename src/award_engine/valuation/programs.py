"""Static loyalty-program reference data.

Transfer ratios, typical redemption values and display metadata for the
bank currencies and airline/hotel programs the engine knows about. Values are
conservative baselines rather than live figures.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from .models import TransferBonus, TransferPartner

_AMEX_PROMO = TransferBonus(
    multiplier=1.3,
    min_transfer=1000,
    description="30% bonus on transfers (periodic promotion)",
)


def _partner(source: str, destination: str, transfer_time: str = "instant", *bonuses: TransferBonus) -> TransferPartner:
    return TransferPartner(
        source=source,
        destination=destination,
        ratio=1.0,
        transfer_time=transfer_time,
        bonuses=tuple(bonuses),
    )


TRANSFER_PARTNERS: Tuple[TransferPartner, ...] = (
    _partner("CHASE_UR", "UNITED"),
    _partner("CHASE_UR", "SOUTHWEST"),
    _partner("CHASE_UR", "JETBLUE"),
    _partner("CHASE_UR", "AIR_CANADA"),
    _partner("CHASE_UR", "VIRGIN_ATLANTIC"),
    _partner("CHASE_UR", "SINGAPORE"),
    _partner("CHASE_UR", "HYATT"),
    _partner("CHASE_UR", "MARRIOTT"),
    _partner("CHASE_UR", "IHG"),
    _partner("AMEX_MR", "DELTA"),
    _partner("AMEX_MR", "JETBLUE", "instant", _AMEX_PROMO),
    _partner("AMEX_MR", "AIR_CANADA"),
    _partner("AMEX_MR", "VIRGIN_ATLANTIC", "instant", _AMEX_PROMO),
    _partner("AMEX_MR", "SINGAPORE"),
    _partner("AMEX_MR", "HILTON"),
    _partner("AMEX_MR", "MARRIOTT"),
    _partner("CITI_TYP", "JETBLUE", "1-2 days"),
    _partner("CITI_TYP", "VIRGIN_ATLANTIC", "1-2 days"),
    _partner("CITI_TYP", "SINGAPORE", "1-2 days"),
    _partner("CITI_TYP", "MARRIOTT", "1-2 days"),
    _partner("CAPITAL_ONE", "UNITED"),
    _partner("CAPITAL_ONE", "JETBLUE"),
    _partner("CAPITAL_ONE", "AIR_CANADA"),
    _partner("CAPITAL_ONE", "VIRGIN_ATLANTIC"),
    _partner("CAPITAL_ONE", "SINGAPORE"),
    _partner("BILT", "UNITED", "1-2 days"),
    _partner("BILT", "AA", "1-2 days"),
    _partner("BILT", "AIR_CANADA", "1-2 days"),
    _partner("BILT", "VIRGIN_ATLANTIC", "1-2 days"),
    _partner("BILT", "HYATT", "1-2 days"),
)

# Cents per point.
AVERAGE_REDEMPTION_VALUES: Dict[str, float] = {
    "AA": 1.4,
    "DELTA": 1.2,
    "UNITED": 1.3,
    "SOUTHWEST": 1.4,
    "JETBLUE": 1.3,
    "AIR_CANADA": 1.5,
    "VIRGIN_ATLANTIC": 1.8,
    "SINGAPORE": 2.0,
    "MARRIOTT": 0.8,
    "HILTON": 0.5,
    "HYATT": 1.7,
    "IHG": 0.6,
    "CHASE_UR": 1.5,
    "AMEX_MR": 1.5,
    "CITI_TYP": 1.3,
    "CAPITAL_ONE": 1.0,
    "BILT": 1.5,
}

PROGRAM_NAMES: Dict[str, str] = {
    "CHASE_UR": "Chase Ultimate Rewards",
    "AMEX_MR": "American Express Membership Rewards",
    "CITI_TYP": "Citi ThankYou Points",
    "CAPITAL_ONE": "Capital One",
    "BILT": "Bilt Rewards",
    "UNITED": "United MileagePlus",
    "AA": "American Airlines AAdvantage",
    "DELTA": "Delta SkyMiles",
    "SOUTHWEST": "Southwest Rapid Rewards",
    "JETBLUE": "JetBlue TrueBlue",
    "AIR_CANADA": "Air Canada Aeroplan",
    "VIRGIN_ATLANTIC": "Virgin Atlantic Flying Club",
    "SINGAPORE": "Singapore Airlines KrisFlyer",
    "MARRIOTT": "Marriott Bonvoy",
    "HILTON": "Hilton Honors",
    "HYATT": "World of Hyatt",
    "IHG": "IHG One Rewards",
}

PROGRAM_URLS: Dict[str, str] = {
    "CHASE_UR": "https://www.chase.com/ultimaterewards",
    "AMEX_MR": "https://www.americanexpress.com/rewards",
    "CITI_TYP": "https://www.citi.com/thankyou",
    "CAPITAL_ONE": "https://www.capitalone.com/rewards",
    "BILT": "https://www.biltrewards.com",
    "UNITED": "https://www.united.com/mileageplus",
    "AA": "https://www.aa.com/aadvantage",
    "DELTA": "https://www.delta.com/skymiles",
    "SOUTHWEST": "https://www.southwest.com/rapidrewards",
    "JETBLUE": "https://www.jetblue.com/trueblue",
    "AIR_CANADA": "https://www.aircanada.com/aeroplan",
    "VIRGIN_ATLANTIC": "https://www.virginatlantic.com/flyingclub",
    "SINGAPORE": "https://www.singaporeair.com/krisflyer",
    "MARRIOTT": "https://www.marriott.com/bonvoy",
    "HILTON": "https://www.hilton.com/honors",
    "HYATT": "https://www.hyatt.com/world-of-hyatt",
    "IHG": "https://www.ihg.com/onerewards",
}

_TRANSFER_DAYS = {"instant": 0, "1-2 days": 2, "3-5 days": 5, "5-7 days": 7}


def display_name(program: str) -> str:
    return PROGRAM_NAMES.get(program, program)


def program_url(program: str) -> Optional[str]:
    return PROGRAM_URLS.get(program)


def average_redemption_value(program: str) -> float:
    return AVERAGE_REDEMPTION_VALUES.get(program, 1.0)


def get_transfer_partner(
    source: str,
    destination: str,
    partners: Sequence[TransferPartner] = TRANSFER_PARTNERS,
) -> Optional[TransferPartner]:
    for partner in partners:
        if partner.source == source and partner.destination == destination:
            return partner
    return None


def partners_from(source: str, partners: Sequence[TransferPartner] = TRANSFER_PARTNERS) -> List[TransferPartner]:
    return [partner for partner in partners if partner.source == source]


def partners_to(destination: str, partners: Sequence[TransferPartner] = TRANSFER_PARTNERS) -> List[TransferPartner]:
    return [partner for partner in partners if partner.destination == destination]


def find_transfer_paths(
    source: str,
    destination: str,
    *,
    max_hops: int = 2,
    partners: Sequence[TransferPartner] = TRANSFER_PARTNERS,
) -> List[Tuple[TransferPartner, ...]]:
    """Return direct and (when ``max_hops >= 2``) two-hop transfer paths."""
    paths: List[Tuple[TransferPartner, ...]] = []
    direct = get_transfer_partner(source, destination, partners)
    if direct:
        paths.append((direct,))
    if max_hops >= 2:
        for first_hop in partners_from(source, partners):
            second_hop = get_transfer_partner(first_hop.destination, destination, partners)
            if second_hop:
                paths.append((first_hop, second_hop))
    return paths


def effective_ratio(path: Sequence[TransferPartner]) -> float:
    ratio = 1.0
    for partner in path:
        ratio *= partner.ratio
    return ratio


def estimate_transfer_time(path: Sequence[TransferPartner]) -> str:
    total_days = sum(_TRANSFER_DAYS.get(partner.transfer_time, 0) for partner in path)
    if total_days == 0:
        return "instant"
    if total_days <= 2:
        return "1-2 days"
    if total_days <= 5:
        return "3-5 days"
    if total_days <= 7:
        return "5-7 days"
    return f"{total_days} days"


__all__ = [
    "AVERAGE_REDEMPTION_VALUES",
    "PROGRAM_NAMES",
    "PROGRAM_URLS",
    "TRANSFER_PARTNERS",
    "average_redemption_value",
    "display_name",
    "effective_ratio",
    "estimate_transfer_time",
    "find_transfer_paths",
    "get_transfer_partner",
    "partners_from",
    "partners_to",
    "program_url",
]
