"""
Shared number extraction for "<N> Miles", "<N> XP" and "<N> UXP" figures.
"""

import re
from dataclasses import dataclass

# Thousands separators seen in exports: "12.345", "12,345", "12 345" (space,
# nbsp or narrow nbsp); a space only groups digits right before the unit
_MILES = re.compile(
    r"(?<![\d.,/])([-\u2212]?\d{1,3}(?:[.,\u00a0\u202f ]\d{3})+|[-\u2212]?\d+)\s*(?:Miles|Meilen|Millas|Miglia|Milhas)\b",
    re.IGNORECASE,
)
_UXP = re.compile(r"(?<![\d.,])([-\u2212]?\d+)\s*UXP\b")
_XP = re.compile(r"(?<![\d.,])([-\u2212]?\d+)\s*XP\b")


@dataclass(frozen=True)
class Amounts:
    """
    Point figures found in one line.

    Fields:
    - points: Miles (signed)
    - xp: XP (signed, deductions are negative)
    - uxp: Ultimate XP
    - found: True when at least one figure was present
    """
    points: int = 0
    xp: int = 0
    uxp: int = 0
    found: bool = False


def _to_int(raw: str) -> int:
    negative = raw.startswith(("-", "\u2212"))
    digits = re.sub(r"\D", "", raw)
    value = int(digits) if digits else 0
    return -value if negative else value


def extract_amounts(text: str) -> Amounts:
    """
    Extract the first Miles, XP and UXP figures from a line.

    Example:
        >>> extract_amounts("AMS - BER KL1775 1312 Miles 16 XP 16 UXP")
        Amounts(points=1312, xp=16, uxp=16, found=True)
    """
    miles = _MILES.search(text)
    xp = _XP.search(text)
    uxp = _UXP.search(text)
    return Amounts(
        points=_to_int(miles.group(1)) if miles else 0,
        xp=_to_int(xp.group(1)) if xp else 0,
        uxp=_to_int(uxp.group(1)) if uxp else 0,
        found=bool(miles or xp or uxp),
    )
