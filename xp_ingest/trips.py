"""
Flight trip extraction.

A trip block in the export looks like:

    12 Oct 2025 My trip to Berlin 2624 Miles 32 XP 32 UXP
    AMS - BER KL1775 Miles earned based on euros spent 1312 Miles 16 XP 16 UXP
    on 2 Oct 2025
    BER - AMS KL1776 Miles earned based on euros spent 1136 Miles 13 XP 13 UXP
    on 5 Oct 2025
    Sustainable Aviation Fuel 176 Miles 3 XP 3 UXP

Each segment line becomes a FlightLeg. The trip header's own totals are
ignored in favour of the per-leg figures, and SAF bonuses are attributed
to the first leg only. All scans are bounded.
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import date
from typing import List, Optional, Sequence, Tuple

from xp_engine.tiers import DEFAULT_CONFIG
from xp_ingest.amounts import Amounts, extract_amounts
from xp_ingest.classifier import PAGE_MARKER, SAF_PATTERN
from xp_ingest.dates import match_leading_date
from xp_ingest.models import FlightLeg
from xp_ingest.segmenter import find_credited_date

logger = logging.getLogger(__name__)

# Lines scanned after a trip header before giving up on the block
MAX_TRIP_LINES = 25
# Lines searched for a segment's figures when its own line has none
AMOUNT_LOOKAHEAD_LINES = 4
# Lines searched for the "on <date>" flight date marker
FLIGHT_DATE_LOOKAHEAD_LINES = 4

SEGMENT_PATTERN = re.compile(
    r"^([A-Z]{3})\s*[-–—]\s*([A-Z]{3})\s+([A-Z]{2}|[A-Z]\d|\d[A-Z])\s?(\d{1,5})\b\s*(.*)$"
)
PARTNER_SEGMENT_PATTERN = re.compile(r"^([A-Z]{3})\s*[-–—]\s*([A-Z]{3})\s+(.*)$")
_EARNED_PHRASE = re.compile(
    r"gespaarde|earned|gagn[ée]s|gesammelt|acumulad|accumulat",
    re.IGNORECASE,
)
_REVENUE_PHRASE = re.compile(
    r"bestede\s+euro|euros?\s+(?:spent|dépensés)|spent\s+euros?|ausgegebenen?\s+Euro|"
    r"euros\s+gastados|euro\s+spesi",
    re.IGNORECASE,
)

# Partner airlines that credit legs without a flight number
PARTNER_AIRLINES = {
    "TRANSAVIA": "HV",
    "DELTA": "DL",
    "SAS": "SK",
    "KOREAN AIR": "KE",
    "VIRGIN ATLANTIC": "VS",
    "AEROMEXICO": "AM",
    "KENYA AIRWAYS": "KQ",
    "CHINA EASTERN": "MU",
    "CHINA AIRLINES": "CI",
    "GARUDA": "GA",
    "AIR EUROPA": "UX",
    "TAROM": "RO",
    "SAUDIA": "SV",
    "XIAMEN": "MF",
    "VIETNAM AIRLINES": "VN",
    "MIDDLE EAST AIRLINES": "ME",
    "AEROLINEAS ARGENTINAS": "AR",
    "JAPAN AIRLINES": "JL",
    "QANTAS": "QF",
}


@dataclass
class TripExtraction:
    """
    Legs found in one trip block.

    Fields:
    - legs: FlightLeg list, SAF already attributed to the first leg
    - next_index: first line index not consumed by the trip
    - saf_xp / saf_points: SAF totals seen in the block
    """
    legs: List[FlightLeg]
    next_index: int
    saf_xp: int = 0
    saf_points: int = 0


def _strip_date(line: str) -> Tuple[Optional[date], str]:
    found = match_leading_date(line)
    if found is None:
        return None, line
    return found[0], found[1].strip(" •·:")


def _partner_code(description: str) -> Optional[str]:
    upper = description.upper()
    for name, code in PARTNER_AIRLINES.items():
        if re.search(rf"\b{re.escape(name)}\b", upper):
            return code
    if _EARNED_PHRASE.search(description):
        # Unknown partner: first two letters of the airline name
        name = _EARNED_PHRASE.split(description, maxsplit=1)[0]
        letters = re.sub(r"[^A-Z]", "", name.upper())
        if len(letters) >= 2:
            return letters[:2]
    return None


def match_segment(body: str) -> Optional[Tuple[str, str, str, str, str]]:
    """
    Recognise a flight segment line.

    Returns:
        (origin, destination, flight_number, airline, remainder) or None.
        Partner legs without a flight number get a pseudo number such as
        "HV0000".

    Example:
        >>> match_segment("AMS - BER KL1775 1312 Miles 16 XP")
        ('AMS', 'BER', 'KL1775', 'KL', '1312 Miles 16 XP')
    """
    match = SEGMENT_PATTERN.match(body)
    if match:
        origin, destination, airline, number, rest = match.groups()
        return origin, destination, f"{airline}{number}", airline, rest

    match = PARTNER_SEGMENT_PATTERN.match(body)
    if match:
        origin, destination, rest = match.groups()
        code = _partner_code(rest)
        if code is not None:
            return origin, destination, f"{code}0000", code, rest
    return None


def _is_boundary(line: str) -> bool:
    """A line that belongs to another leg or another transaction."""
    posted, body = _strip_date(line)
    if posted is not None and not PAGE_MARKER.match(body):
        return True
    return match_segment(body) is not None or bool(SAF_PATTERN.search(body))


def _amounts_ahead(lines: Sequence[str], index: int) -> Tuple[Amounts, str]:
    end = min(len(lines), index + 1 + AMOUNT_LOOKAHEAD_LINES)
    for ahead in range(index + 1, end):
        if _is_boundary(lines[ahead]):
            break
        amounts = extract_amounts(lines[ahead])
        if amounts.found:
            return amounts, lines[ahead]
    return Amounts(), ""


def find_flight_date(lines: Sequence[str], index: int, rest: str) -> Optional[date]:
    """
    Resolve the real flight date for the segment on ``lines[index]``.

    The segment line itself is checked first, then up to
    FLIGHT_DATE_LOOKAHEAD_LINES following lines, stopping at the next segment.
    """
    found = find_credited_date(rest)
    if found is not None:
        return found
    end = min(len(lines), index + 1 + FLIGHT_DATE_LOOKAHEAD_LINES)
    for ahead in range(index + 1, end):
        line = lines[ahead]
        if _is_boundary(line):
            break
        found = find_credited_date(line)
        if found is not None:
            return found
    return None


def _build_leg(lines: Sequence[str], index: int, segment: Tuple[str, str, str, str, str],
               posted: date, config: dict) -> FlightLeg:
    origin, destination, flight_number, airline, rest = segment

    amounts = extract_amounts(rest)
    context = rest
    if not amounts.found:
        amounts, context = _amounts_ahead(lines, index)
        context = f"{rest} {context}"

    flight_date = find_flight_date(lines, index, rest) or posted
    uxp = amounts.uxp if airline in config["uxp_carriers"] else None

    return FlightLeg(
        date=flight_date,
        origin=origin,
        destination=destination,
        flight_number=flight_number,
        airline=airline,
        points=amounts.points,
        xp=amounts.xp,
        uxp=uxp,
        paid_with_cash=bool(_REVENUE_PHRASE.search(context)),
    )


def extract_trip(lines: Sequence[str], start: int, posted: date, config: dict = None) -> TripExtraction:
    """
    Expand the trip block whose header is ``lines[start]`` into flight legs.

    Scanning covers at most MAX_TRIP_LINES lines and stops at the next dated
    line that is neither a segment, a SAF line nor a page footer.

    Args:
        lines: Segmented export lines
        start: Index of the trip header line
        posted: Posting date of the trip header, used when a leg has no
            "on <date>" marker
        config: Optional engine config (uses defaults if not provided)

    Returns:
        TripExtraction with the legs and the index to resume parsing from
    """
    if config is None:
        config = DEFAULT_CONFIG

    legs: List[FlightLeg] = []
    saf_xp = 0
    saf_points = 0

    # "12 nov 2025 AMS - BER KL1775 ..." carries its segment on the header line
    _, header_body = _strip_date(lines[start])
    segment = match_segment(header_body)
    if segment is not None:
        legs.append(_build_leg(lines, start, segment, posted, config))

    end = min(len(lines), start + 1 + MAX_TRIP_LINES)
    index = start + 1
    while index < end:
        line_date, body = _strip_date(lines[index])
        if line_date is not None and PAGE_MARKER.match(body):
            index += 1
            continue

        segment = match_segment(body)
        if segment is not None:
            legs.append(_build_leg(lines, index, segment, line_date or posted, config))
        elif SAF_PATTERN.search(body):
            amounts = extract_amounts(body)
            saf_xp += amounts.xp
            saf_points += amounts.points
        elif line_date is not None:
            break
        index += 1

    if legs and (saf_xp or saf_points):
        legs[0] = replace(legs[0], saf_xp=saf_xp, saf_points=saf_points)
    elif saf_xp or saf_points:
        logger.debug("SAF bonus on %s without flight legs dropped", posted)

    logger.debug("Trip posted %s: %d legs", posted, len(legs))
    return TripExtraction(legs=legs, next_index=index, saf_xp=saf_xp, saf_points=saf_points)
