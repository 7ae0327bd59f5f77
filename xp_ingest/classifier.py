"""
Transaction line classification.

Every logical line that opens with a date is stripped of that date and
assigned exactly one LineCategory. Matchers are checked in a fixed order
and the first hit wins; the order is part of the behaviour (a "Transfer"
inside a subscription product name must not become a redemption).
"""

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, List, Optional, Tuple

from xp_engine.tiers import Tier, parse_tier, tier_name_pattern
from xp_ingest.amounts import Amounts, extract_amounts
from xp_ingest.dates import match_leading_date


class LineCategory(str, Enum):
    TRIP = "trip"
    SUBSCRIPTION = "subscription"
    BONUS_XP = "bonus-xp"
    HOTEL = "hotel"
    SHOPPING = "shopping"
    PARTNER = "partner"
    REDEMPTION = "redemption"
    XP_DEDUCTION = "xp-deduction"
    TIER_REACHED = "tier-reached"
    XP_ROLLOVER = "xp-rollover"
    LEGACY_REQUALIFICATION = "legacy-requalification"
    CARD = "card"
    FALLBACK = "fallback"


EVENT_CATEGORIES = {
    LineCategory.XP_DEDUCTION,
    LineCategory.TIER_REACHED,
    LineCategory.XP_ROLLOVER,
    LineCategory.LEGACY_REQUALIFICATION,
}


@dataclass(frozen=True)
class ClassifiedLine:
    """
    A dated export line with its category and figures.

    Fields:
    - date: posting date
    - body: line text after the date
    - category: LineCategory
    - amounts: Miles/XP/UXP found in the body
    """
    date: date
    body: str
    category: LineCategory
    amounts: Amounts


# =============================================================================
# Patterns
# =============================================================================

TRIP_PATTERN = re.compile(
    r"Mijn\s+reis\s+naar|My\s+trip\s+to|Mon\s+voyage|Meine\s+Reise|Mi\s+viaje|"
    r"Il\s+mio\s+viaggio|Minha\s+viagem",
    re.IGNORECASE,
)
FLIGHT_SEGMENT_START = re.compile(r"^[A-Z]{3}\s*[-–—]\s*[A-Z]{3}\s+\S")
SAF_PATTERN = re.compile(
    r"Sustainable\s+Aviation\s+Fuel|Duurzame\s+(?:vliegtuig|luchtvaart)brandstof|"
    r"Carburant\s+d['’]aviation\s+durable|\bSAF\b",
    re.IGNORECASE,
)
PAGE_MARKER = re.compile(r"^[•·\s]*(?:Pagina|Page|Seite|Página)\s+\d+\s*/\s*\d+", re.IGNORECASE)

_SUBSCRIPTION = re.compile(
    r"Subscribe\s+to\s+Miles|Miles\s+Complete|Discount\s+Pass|Buy,\s*Gift|"
    r"Abonnement",
    re.IGNORECASE,
)
_BONUS_XP = re.compile(
    r"\bbonus[-\s]XP\b|\bXP[-\s]bonus\b|\bXP[-\s](?:reward|beloning|récompense|Prämie)\b|"
    r"\bextra\s+XP\b|\bXP\s+boost\b",
    re.IGNORECASE,
)
_HOTEL = re.compile(
    r"\bH[oô]tel(?:s)?\b|BOOKING\.COM|\bAccor\b|\bALL\s*-|Marriott|Hilton|Hyatt|"
    r"MILES\s*\+\s*POINTS|Kaligo|Rocketmiles",
    re.IGNORECASE,
)
_SHOPPING = re.compile(
    r"Winkelen|Shopping|Achats|Einkaufen|Compras|\bAMAZON\b|\bSHOP\b|\bStore\b|Boutique",
    re.IGNORECASE,
)
_PARTNER = re.compile(
    r"RevPoints|REVOLUT|Batavia|Currency\s+Alliance|Kolet|e-?rewards|Air\s+Miles|"
    r"Autoverhuur|Car\s+rental|Location\s+de\s+voiture|HERTZ|\bAVIS\b|\bSIXT\b|EUROPCAR|"
    r"\bUBER\b|\bPartner\b",
    re.IGNORECASE,
)
_REDEMPTION = re.compile(
    r"upgrade|\baward\b|overdragen|\btransfer\b|Lastminute|donat(?:ion|ie)|"
    r"\bdon\s+de\s+Miles\b|Miles\s+(?:gebruikt|used|utilisés)|Prime\s+de\s+vol|"
    r"Flight\s+ticket|Vliegticket|Billet",
    re.IGNORECASE,
)
XP_DEDUCTION_PATTERN = re.compile(
    r"Aftrek\s+XP-?teller|Reset\s+XP-?teller|XP[-\s]counter\s+(?:deduction|reset|adjustment|offset)|"
    r"D[ée]duction\s+du\s+compteur\s+(?:de\s+)?XP|R[ée]initialisation\s+du\s+compteur|"
    r"Abzug\s+XP-?Z[äa]hler|Qualification\s+period\s+ended|Kwalificatieperiode\s+afgelopen",
    re.IGNORECASE,
)
TIER_REACHED_PATTERN = re.compile(
    r"\b(" + tier_name_pattern() + r")\b\s*(?:-?status\s+)?"
    r"(?:reached|bereikt|atteint|erreicht|alcanzado|raggiunto|alcançado)",
    re.IGNORECASE,
)
XP_ROLLOVER_PATTERN = re.compile(
    r"Surplus\s+XP|Overtollige\s+XP|XP\s+exc[ée]dentaires|Surplus\s+de\s+XP|"
    r"[ÜU]berschüssige\s+XP|meegenomen\s+naar\s+de\s+nieuwe\s+kwalificatieperiode|"
    r"carried\s+over\s+to\s+(?:the\s+|your\s+)?new\s+qualification\s+period|Rollover\s+XP",
    re.IGNORECASE,
)
_LEGACY_REQUALIFICATION = re.compile(
    r"\bre-?qualifi(?:ed|cation)\b|\bherkwalificatie\b|\brequalifi[ée]\b|"
    r"status\s+(?:renewed|extended|verlengd|renouvel[ée])|\bverlengd\b|\brenouvel[ée]\b",
    re.IGNORECASE,
)
_CARD = re.compile(
    r"AMERICAN\s+EXPRESS|\bAMEX\b|\bSPEND\b|Master\s*Card|\bVISA\b|\bBRIM\b|Diners|\bcard\b|\bkaart\b|"
    r"\bcarte\b|\bKarte\b|expenses|spending|uitgaven|d[ée]penses|Ausgaben|gastos",
    re.IGNORECASE,
)
# French "or" is only trusted next to "atteint" or in the capitalised header
_TIER_NAME = re.compile(r"\b(" + tier_name_pattern(exclude=("or",)) + r")\b", re.IGNORECASE)


def _is_trip(body: str) -> bool:
    return bool(TRIP_PATTERN.search(body) or FLIGHT_SEGMENT_START.match(body))


def _is_bonus_xp(body: str) -> bool:
    # A SAF line outside any trip block still carries bonus XP
    return bool(_BONUS_XP.search(body) or SAF_PATTERN.search(body))


def _searcher(pattern: re.Pattern) -> Callable[[str], bool]:
    return lambda body: bool(pattern.search(body))


# Ordered, first match wins
MATCHERS: List[Tuple[LineCategory, Callable[[str], bool]]] = [
    (LineCategory.TRIP, _is_trip),
    (LineCategory.SUBSCRIPTION, _searcher(_SUBSCRIPTION)),
    (LineCategory.BONUS_XP, _is_bonus_xp),
    (LineCategory.HOTEL, _searcher(_HOTEL)),
    (LineCategory.SHOPPING, _searcher(_SHOPPING)),
    (LineCategory.PARTNER, _searcher(_PARTNER)),
    (LineCategory.REDEMPTION, _searcher(_REDEMPTION)),
    (LineCategory.XP_DEDUCTION, _searcher(XP_DEDUCTION_PATTERN)),
    (LineCategory.TIER_REACHED, _searcher(TIER_REACHED_PATTERN)),
    (LineCategory.XP_ROLLOVER, _searcher(XP_ROLLOVER_PATTERN)),
    (LineCategory.LEGACY_REQUALIFICATION, _searcher(_LEGACY_REQUALIFICATION)),
    (LineCategory.CARD, _searcher(_CARD)),
]


def classify_body(body: str) -> LineCategory:
    """Category of a line body (the text after its date)."""
    for category, matches in MATCHERS:
        if matches(body):
            return category
    return LineCategory.FALLBACK


def classify_line(line: str) -> Optional[ClassifiedLine]:
    """
    Classify a logical line.

    Returns None for lines that do not open with a date, and for page
    footers ("11 dec 2025 • Pagina 1/18") which only look like transactions.
    """
    found = match_leading_date(line)
    if found is None:
        return None
    posted, body = found
    body = body.strip(" •·:")
    if PAGE_MARKER.match(body):
        return None
    return ClassifiedLine(
        date=posted,
        body=body,
        category=classify_body(body),
        amounts=extract_amounts(body),
    )


def find_tier_reached(text: str) -> Optional[Tier]:
    """Tier named in a "<Tier> reached" phrase, in any supported language."""
    match = TIER_REACHED_PATTERN.search(text)
    return parse_tier(match.group(1)) if match else None


def find_tier_name(text: str) -> Optional[Tier]:
    """First tier name mentioned anywhere in the text."""
    match = _TIER_NAME.search(text)
    return parse_tier(match.group(1)) if match else None
