"""
Document segmentation.

Text extracted from an activity export PDF has no dependable line breaks:
whole pages run together, or every cell lands on its own line. The
segmenter collapses all whitespace and re-inserts breaks before anything
that opens a new logical line:

- a transaction date (text-month in any supported language, or numeric)
- a flight segment ("AMS - BER KL1775") or a trip, hotel or SAF marker
- the export header and page chrome
- a status line ("Platinum reached", "Platina bereikt")
- a "credited on <date>" marker ("op 12 nov 2025", "on Nov 12, 2025")

Because the output depends only on the collapsed text, segmenting an
already segmented document gives the same lines back.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from xp_ingest.classifier import TIER_REACHED_PATTERN
from xp_ingest.dates import MONTH_MAP, match_leading_date

logger = logging.getLogger(__name__)

_MONTH_WORDS = "|".join(sorted((re.escape(word) for word in MONTH_MAP), key=len, reverse=True))

# Transaction-opening dates
_TEXT_DATE_DMY = re.compile(
    rf"(?<![\w.])\d{{1,2}}\.?\s+(?:de\s+)?(?:{_MONTH_WORDS})[a-zà-ÿ]*\.?,?\s+(?:de\s+)?\d{{4}}(?!\d)",
    re.IGNORECASE,
)
_TEXT_DATE_MDY = re.compile(
    rf"(?<![\w.])(?:{_MONTH_WORDS})[a-zà-ÿ]*\.?\s+\d{{1,2}},?\s+\d{{4}}(?!\d)",
    re.IGNORECASE,
)
_NUMERIC_DATE = re.compile(
    r"(?<![\d/.\-])(?:\d{4}-\d{1,2}-\d{1,2}|\d{1,2}[/.\-]\d{1,2}[/.\-]\d{4})(?![\d/.\-])"
)

# Words that introduce the real flight date inside a trip block
CREDITED_WORDS = ("op", "on", "le", "am", "el", "il", "em")
CREDITED_ON = re.compile(r"(?<![\w])(?:" + "|".join(CREDITED_WORDS) + r")\s+", re.IGNORECASE)

# Structural markers that always open a line
SEGMENT_MARKER = re.compile(r"(?<![\w-])[A-Z]{3}\s*[-–—]\s*[A-Z]{3}(?![\w])")
_KEYWORD_MARKERS = re.compile(
    r"(?:Mijn\s+reis\s+naar|My\s+trip\s+to|Mon\s+voyage|Meine\s+Reise|Mi\s+viaje|"
    r"Il\s+mio\s+viaggio|Minha\s+viagem|"
    r"H[oô]tel\s*[-–]|"
    r"Sustainable\s+Aviation\s+Fuel|"
    r"Activiteiten(?:geschiedenis|overzicht)|Activity\s+(?:history|overview)|"
    r"Historique\s+d(?:es\s+activit[ée]s|['’]activit[ée])|Aktivit[äa]tsverlauf|"
    r"Historial\s+de\s+actividad|Cronologia\s+(?:delle\s+)?attivit[àa]|"
    r"Hist[óo]rico\s+de\s+atividades?|"
    r"Flying\s*Blue[-\s](?:nummer|number|num[ée]ro|Nummer)|N[uú]mero\s+Flying\s*Blue)"
)

_BULLETS = " \t•·,:;-–—"


@dataclass(frozen=True)
class RawLine:
    """A logical line and the offset it starts at in the collapsed text."""
    offset: int
    text: str


def _is_bare_date(fragment: str) -> bool:
    fragment = fragment.strip(_BULLETS)
    if not fragment:
        return False
    found = match_leading_date(fragment)
    return found is not None and not found[1].strip(_BULLETS)


def _date_breaks(text: str) -> List[int]:
    breaks = []
    for pattern in (_TEXT_DATE_DMY, _TEXT_DATE_MDY, _NUMERIC_DATE):
        for match in pattern.finditer(text):
            if match_leading_date(match.group(0)) is None:
                continue
            # Dates introduced by "op"/"on"/... belong to the marker break
            preceding = text[:match.start()].rstrip().rsplit(" ", 1)[-1]
            if preceding.lower() in CREDITED_WORDS:
                continue
            breaks.append(match.start())
    return breaks


def _credited_breaks(text: str) -> List[int]:
    breaks = []
    for match in CREDITED_ON.finditer(text):
        if match_leading_date(text[match.end():match.end() + 40]) is not None:
            breaks.append(match.start())
    return breaks


def _marker_breaks(text: str) -> List[int]:
    positions = [match.start() for match in SEGMENT_MARKER.finditer(text)]
    positions.extend(match.start() for match in _KEYWORD_MARKERS.finditer(text))
    positions.extend(match.start() for match in TIER_REACHED_PATTERN.finditer(text))
    return positions


def segment_raw_lines(text: str) -> List[RawLine]:
    """
    Split extracted export text into logical lines with their offsets.

    Date and credited-on breaks are always kept. A marker break is dropped
    when everything since the previous break is just a date, so
    "12 nov 2025 Hotel - BOOKING.COM" stays on one line.
    """
    collapsed = " ".join((text or "").split())
    if not collapsed:
        return []

    hard = set(_date_breaks(collapsed)) | set(_credited_breaks(collapsed))
    soft = set(_marker_breaks(collapsed)) - hard
    candidates = sorted(hard | soft)

    kept = [0]
    for position in candidates:
        if position <= kept[-1]:
            continue
        if position in soft and _is_bare_date(collapsed[kept[-1]:position]):
            continue
        kept.append(position)

    lines = []
    for start, end in zip(kept, kept[1:] + [len(collapsed)]):
        chunk = collapsed[start:end].strip()
        if chunk:
            lines.append(RawLine(offset=start, text=chunk))

    logger.debug("Segmented %d characters into %d lines", len(collapsed), len(lines))
    return lines


def segment_text(text: str) -> List[str]:
    """
    Split extracted export text into logical lines.

    Example:
        >>> segment_text("10 dec 2025 Hotel - ACCOR 367 Miles 0 XP 9 dec 2025 AMEX 50 Miles")
        ['10 dec 2025 Hotel - ACCOR 367 Miles 0 XP', '9 dec 2025 AMEX 50 Miles']
    """
    return [line.text for line in segment_raw_lines(text)]


def find_credited_date(text: str) -> Optional[date]:
    """
    Date introduced by a "credited on" marker anywhere in the text.

    Example:
        >>> find_credited_date("BER - AMS KL1776 13 XP op 5 dec 2025")
        datetime.date(2025, 12, 5)
    """
    for match in CREDITED_ON.finditer(text):
        found = match_leading_date(text[match.end():])
        if found is not None:
            return found[0]
    return None
