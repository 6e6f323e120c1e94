"""Step-by-step booking instructions for an award redemption."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    AwardPricing,
    BookingDifficulty,
    BookingInstructions,
    BookingStep,
    FlightItinerary,
    TransferPartner,
)
from .programs import (
    TRANSFER_PARTNERS,
    display_name,
    effective_ratio,
    estimate_transfer_time,
    find_transfer_paths,
    program_url,
)


@dataclass(frozen=True)
class _StepTemplate:
    action: str
    details: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class _ProgramGuide:
    steps: Tuple[_StepTemplate, ...]
    minutes: int
    difficulty: BookingDifficulty
    tips: Tuple[str, ...] = ()
    phone_number: Optional[str] = None
    typical_wait_time: Optional[str] = None


@dataclass
class _Section:
    steps: List[_StepTemplate] = field(default_factory=list)
    minutes: int = 0
    difficulty: BookingDifficulty = BookingDifficulty.EASY
    tips: List[str] = field(default_factory=list)


PROGRAM_GUIDES: Dict[str, _ProgramGuide] = {
    "UNITED": _ProgramGuide(
        steps=(
            _StepTemplate("Log in to United.com", "Sign in to your MileagePlus account", "https://www.united.com"),
            _StepTemplate("Search for award flights", "Enter your route and dates, then click \"Find flights\""),
            _StepTemplate("Filter by award availability", "Toggle the \"Book with miles\" option"),
            _StepTemplate("Select your flights", "Choose flights showing saver or standard award pricing"),
            _StepTemplate("Review and book", "Check total miles and fees, then complete booking"),
        ),
        minutes=15,
        difficulty=BookingDifficulty.EASY,
        tips=(
            "Saver awards offer the best value",
            "United shows partner availability including Star Alliance",
            "Book online to avoid phone booking fees",
        ),
        phone_number="1-800-864-8331",
        typical_wait_time="10-30 minutes",
    ),
    "VIRGIN_ATLANTIC": _ProgramGuide(
        steps=(
            _StepTemplate("Log in to Virgin Atlantic", "Sign in to your Flying Club account", "https://www.virginatlantic.com"),
            _StepTemplate("Search award flights", "Use the \"Book with miles\" option"),
            _StepTemplate("Check partner availability", "Virgin shows Delta and partner flights"),
            _StepTemplate("Call to book complex routes", "Online booking is limited; call for the best availability"),
        ),
        minutes=20,
        difficulty=BookingDifficulty.MODERATE,
        tips=(
            "Great for Delta One and ANA flights",
            "The call center can see more availability than online",
            "Peak and off-peak pricing affects cost",
        ),
        phone_number="1-800-365-9500",
        typical_wait_time="20-45 minutes",
    ),
    "HYATT": _ProgramGuide(
        steps=(
            _StepTemplate("Log in to World of Hyatt", "Sign in to your account", "https://www.hyatt.com"),
            _StepTemplate("Search for hotels", "Enter destination and dates"),
            _StepTemplate("Filter by award stays", "Toggle \"Use Points\" to see point pricing"),
            _StepTemplate("Select room and book", "Choose a room type and complete the reservation"),
        ),
        minutes=10,
        difficulty=BookingDifficulty.EASY,
        tips=(
            "Category 1-4 properties offer the best value",
            "Free cancellation on most awards",
        ),
        phone_number="1-800-304-9288",
        typical_wait_time="5-15 minutes",
    ),
    "CHASE_UR": _ProgramGuide(
        steps=(
            _StepTemplate("Log in to Chase Ultimate Rewards", "Go to your Chase credit card account", "https://www.chase.com/ultimaterewards"),
            _StepTemplate("Navigate to the travel portal", "Click \"Travel\" then \"Book a trip\""),
            _StepTemplate("Search for flights", "Enter your route and dates"),
            _StepTemplate("Choose redemption method", "Pay with points at your card's portal rate"),
            _StepTemplate("Complete booking", "Review and confirm your reservation"),
        ),
        minutes=10,
        difficulty=BookingDifficulty.EASY,
        tips=(
            "Portal bookings earn airline miles",
            "Transfer partners are often better for premium cabins",
        ),
    ),
}

DIFFICULTY_EXPLANATIONS: Dict[BookingDifficulty, str] = {
    BookingDifficulty.EASY: "Straightforward online booking with a clear interface",
    BookingDifficulty.MODERATE: "May require a phone call or several steps, but manageable",
    BookingDifficulty.DIFFICULT: "Complex booking process, often a phone call with long wait times",
}


def _generic_guide(program: str, itinerary: FlightItinerary) -> _ProgramGuide:
    return _ProgramGuide(
        steps=(
            _StepTemplate(f"Log in to {display_name(program)}", "Sign in to your loyalty account", program_url(program)),
            _StepTemplate(
                "Search for award availability",
                f"Enter {itinerary.origin} to {itinerary.destination} on {itinerary.depart_date.isoformat()}",
            ),
            _StepTemplate("Select flights", "Choose your preferred option from available inventory"),
            _StepTemplate("Review pricing", "Check the total points cost and any taxes or fees"),
            _StepTemplate("Complete booking", "Enter passenger details and confirm the reservation"),
        ),
        minutes=15,
        difficulty=BookingDifficulty.MODERATE,
        tips=(
            "Book as early as possible for the best availability",
            "Check change and cancellation policies",
        ),
    )


def _transfer_section(award: AwardPricing, path: Sequence[TransferPartner], at: datetime) -> _Section:
    source = award.transfer_from or ""
    program = award.program
    partner = path[-1] if path else None
    if len(path) > 1:
        transfer_time = estimate_transfer_time(path)
    else:
        transfer_time = award.transfer_time or (partner.transfer_time if partner else "unknown")
    section = _Section()
    section.steps = [
        _StepTemplate(f"Log in to {display_name(source)}", f"Go to your {source} account portal", program_url(source)),
        _StepTemplate("Navigate to transfer partners", "Find the \"Transfer Points\" or \"Travel Partners\" section"),
    ]
    if len(path) > 1:
        section.steps.extend(
            _StepTemplate(
                f"Transfer {display_name(hop.source)} to {display_name(hop.destination)}",
                f"Ratio {hop.ratio:g}:1, transfer time: {hop.transfer_time}",
                program_url(hop.source),
            )
            for hop in path
        )
        section.steps.append(
            _StepTemplate("Confirm the final balance", f"Check that {display_name(program)} shows the transferred points")
        )
        section.tips.append(f"Combined transfer ratio is {effective_ratio(path):g}:1 across {len(path)} transfers")
    else:
        section.steps.extend(
            [
                _StepTemplate(f"Select {display_name(program)} as transfer partner", f"Choose {program} from the partner list"),
                _StepTemplate("Enter transfer details", f"Enter {award.points_cost:,} points and your {program} member ID"),
                _StepTemplate("Confirm and submit transfer", f"Review the details and submit. Transfer time: {transfer_time}"),
            ]
        )
    if transfer_time == "instant":
        section.minutes = 5
        section.tips.append("Transfers are instant, so last-minute bookings work")
    else:
        section.minutes = 10
        section.difficulty = BookingDifficulty.MODERATE
        section.tips.append(f"Plan ahead: transfers take {transfer_time} to complete")
        section.tips.append("Confirm award availability before transferring")
    section.tips.append(f"Double-check your {program} member ID before transferring")
    section.tips.append("Transfers are usually non-reversible")
    active = partner.active_bonuses(at) if partner else ()
    if active:
        section.tips.append(f"Transfer bonus available: {active[0].description}")
    return section


def build_booking_instructions(
    award: AwardPricing,
    itinerary: FlightItinerary,
    partners: Sequence[TransferPartner] = TRANSFER_PARTNERS,
    *,
    at: Optional[datetime] = None,
) -> BookingInstructions:
    """Return ordered booking steps: any points transfer first, then the booking itself.

    Transfers with no direct partner are routed through an intermediate
    program when one exists. ``at`` decides which transfer bonuses are still
    live and defaults to now.
    """
    templates: List[_StepTemplate] = []
    tips: List[str] = []
    minutes = 0
    difficulty = BookingDifficulty.EASY

    if award.transfer_required and award.transfer_from:
        paths = find_transfer_paths(award.transfer_from, award.program, partners=partners)
        section = _transfer_section(award, paths[0] if paths else (), at or datetime.now(timezone.utc))
        templates.extend(section.steps)
        tips.extend(section.tips)
        minutes += section.minutes
        difficulty = section.difficulty

    guide = PROGRAM_GUIDES.get(award.program) or _generic_guide(award.program, itinerary)
    templates.extend(guide.steps)
    tips.extend(guide.tips)
    minutes += guide.minutes
    if guide.difficulty.rank > difficulty.rank:
        difficulty = guide.difficulty

    steps = tuple(
        BookingStep(order=index, action=template.action, details=template.details, url=template.url)
        for index, template in enumerate(templates, start=1)
    )
    return BookingInstructions(
        steps=steps,
        estimated_minutes=minutes,
        difficulty=difficulty,
        tips=tuple(tips),
        phone_number=guide.phone_number,
        typical_wait_time=guide.typical_wait_time,
    )


def quick_steps(program: str, transfer_from: Optional[str] = None) -> List[str]:
    steps: List[str] = []
    if transfer_from:
        steps.append(f"Transfer points from {display_name(transfer_from)} to {display_name(program)}")
    steps.append(f"Search {display_name(program)} for award availability")
    steps.append("Select flights and review pricing")
    steps.append("Complete booking")
    return steps


def difficulty_explanation(difficulty: BookingDifficulty) -> str:
    return DIFFICULTY_EXPLANATIONS[difficulty]


__all__ = [
    "PROGRAM_GUIDES",
    "build_booking_instructions",
    "difficulty_explanation",
    "quick_steps",
]
