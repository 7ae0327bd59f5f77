"""
Export header detection: member tier, totals, member number, export date
and document language.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from xp_engine.tiers import Tier, parse_tier, tier_name_pattern
from xp_ingest.amounts import extract_amounts
from xp_ingest.classifier import classify_line
from xp_ingest.dates import match_leading_date

# Lines inspected before the first transaction
HEADER_SCAN_LINES = 12

_TOTALS_HEADING = re.compile(
    r"Activiteiten(?:geschiedenis|overzicht)|Activity\s+(?:history|overview)|"
    r"Historique\s+d(?:es\s+activit[ée]s|['’]activit[ée])|Aktivit[äa]tsverlauf|"
    r"Historial\s+de\s+actividad|Cronologia\s+(?:delle\s+)?attivit[àa]|Hist[óo]rico\s+de\s+atividades?",
    re.IGNORECASE,
)
_MEMBER_NUMBER = re.compile(
    r"(?:Flying\s*Blue[-\s](?:nummer|number|num[ée]ro)|N[uú]mero\s+Flying\s*Blue)\s*:?\s*(\d{6,12})",
    re.IGNORECASE,
)
# Printed in capitals next to the member name
_HEADER_TIER = re.compile(r"\b(" + tier_name_pattern().upper() + r")\b")
_PAGE_FOOTER = re.compile(r"(?:Pagina|Page|Seite|Página)\s+\d+\s*/\s*\d+", re.IGNORECASE)

_LANGUAGE_INDICATORS = {
    "nl": ("mijn reis naar", "gespaarde", "activiteitengeschiedenis", "aftrek", "bestede",
           "winkelen", "pagina", "overdragen", "bereikt"),
    "en": ("my trip to", "earned", "activity history", "spent", "subscribe", "reached",
           "available"),
    "fr": ("mon voyage", "gagnés", "historique", "dépensés", "achats", "atteint"),
    "de": ("meine reise", "gesammelt", "aktivitätsverlauf", "seite", "erreicht"),
    "es": ("mi viaje", "historial", "gastados", "alcanzado"),
    "it": ("il mio viaggio", "cronologia", "raggiunto", "spesi"),
    "pt": ("minha viagem", "histórico", "alcançado"),
}


@dataclass(frozen=True)
class HeaderInfo:
    """
    Facts printed above the transaction list.

    Fields:
    - tier: member tier, None when absent
    - total_points / total_xp / total_uxp: balances at export time
    - member_number: Flying Blue number
    - export_date: date printed with the page footer
    """
    tier: Optional[Tier] = None
    total_points: Optional[int] = None
    total_xp: Optional[int] = None
    total_uxp: Optional[int] = None
    member_number: Optional[str] = None
    export_date: Optional[date] = None


def _header_region(lines: Sequence[str]) -> Sequence[str]:
    region = []
    for line in lines[:HEADER_SCAN_LINES]:
        if classify_line(line) is not None:
            break
        region.append(line)
    return region


def _export_date(lines: Sequence[str]) -> Optional[date]:
    for line in lines:
        if _PAGE_FOOTER.search(line):
            found = match_leading_date(line)
            if found is not None:
                return found[0]
    return None


def detect_header(lines: Sequence[str]) -> HeaderInfo:
    """
    Read tier, totals and member number from the lines before the first
    transaction, and the export date from the first page footer.
    """
    tier = None
    member_number = None
    totals = None

    for line in _header_region(lines):
        if tier is None:
            match = _HEADER_TIER.search(line)
            if match:
                tier = parse_tier(match.group(1))
        if member_number is None:
            match = _MEMBER_NUMBER.search(line)
            if match:
                member_number = match.group(1)
        if totals is None:
            match = _TOTALS_HEADING.search(line)
            if match:
                amounts = extract_amounts(line[match.end():])
                if amounts.found:
                    totals = amounts

    return HeaderInfo(
        tier=tier,
        total_points=totals.points if totals else None,
        total_xp=totals.xp if totals else None,
        total_uxp=totals.uxp if totals else None,
        member_number=member_number,
        export_date=_export_date(lines),
    )


def detect_language(text: str) -> str:
    """Most likely document language code; "en" when nothing matches."""
    lowered = text.lower()
    scores = {
        language: sum(lowered.count(indicator) for indicator in indicators)
        for language, indicators in _LANGUAGE_INDICATORS.items()
    }
    best = max(scores, key=lambda language: scores[language])
    return best if scores[best] > 0 else "en"
