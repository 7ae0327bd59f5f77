"""
Locale-agnostic date parsing for activity exports.

Exports mix numeric dates ("30/11/2025", "2025-11-30") with text-month
dates in the member's language ("30 nov 2025", "Dec 9, 2025",
"10. Dez. 2025"). parse_date() is a pure function over a token sequence;
match_leading_date() tries short word windows at the start of a line.
"""

import re
from datetime import date
from typing import Dict, List, Optional, Tuple

MIN_YEAR = 2000
MAX_YEAR = 2100

# Longest word window tried for a leading date ("9 de diciembre de 2025")
MAX_DATE_WORDS = 5

# Full month names per language, January first
MONTH_NAMES: Dict[str, List[str]] = {
    "en": ["january", "february", "march", "april", "may", "june", "july",
           "august", "september", "october", "november", "december"],
    "nl": ["januari", "februari", "maart", "april", "mei", "juni", "juli",
           "augustus", "september", "oktober", "november", "december"],
    "fr": ["janvier", "février", "mars", "avril", "mai", "juin", "juillet",
           "août", "septembre", "octobre", "novembre", "décembre"],
    "de": ["januar", "februar", "märz", "april", "mai", "juni", "juli",
           "august", "september", "oktober", "november", "dezember"],
    "es": ["enero", "febrero", "marzo", "abril", "mayo", "junio", "julio",
           "agosto", "septiembre", "octubre", "noviembre", "diciembre"],
    "it": ["gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno", "luglio",
           "agosto", "settembre", "ottobre", "novembre", "dicembre"],
    "pt": ["janeiro", "fevereiro", "março", "abril", "maio", "junho", "julho",
           "agosto", "setembro", "outubro", "novembro", "dezembro"],
}

# Abbreviations that are not simply the first three letters of a full name
_EXTRA_ABBREVIATIONS = {
    "mrt": 3, "mrz": 3, "mär": 3, "maa": 3,
    "fév": 2, "fev": 2,
    "avr": 4,
    "juin": 6, "juil": 7,
    "aoû": 8, "aou": 8, "aout": 8,
    "sept": 9, "set": 9,
    "déc": 12,
}


def _build_month_map() -> Dict[str, int]:
    month_map: Dict[str, int] = {}
    for names in MONTH_NAMES.values():
        for number, name in enumerate(names, start=1):
            month_map[name] = number
            # "jui" is shared by juin and juillet
            if name[:3] != "jui":
                month_map.setdefault(name[:3], number)
    month_map.update(_EXTRA_ABBREVIATIONS)
    return month_map


MONTH_MAP = _build_month_map()

# Words allowed between date parts ("9 de diciembre de 2025")
_CONNECTORS = {"de", "del", "of", "the"}

_NUMERIC_DATE = re.compile(r"^(\d{1,4})[-/.](\d{1,2})[-/.](\d{1,4})$")
_TOKEN_SPLIT = re.compile(r"[\s/.,\-]+")
_NON_LETTERS = re.compile(r"[^a-zà-ÿ]")


def _month_word(token: str) -> str:
    return _NON_LETTERS.sub("", token.lower())


def find_month(token: str) -> Optional[int]:
    """
    Resolve a month number from a month name or abbreviation.

    Exact matches win; otherwise the 3- then 4-letter prefix is tried.

    Example:
        >>> find_month("Dez.")
        12
        >>> find_month("septembre")
        9
    """
    word = _month_word(token)
    if len(word) < 3:
        return None
    if word in MONTH_MAP:
        return MONTH_MAP[word]
    if word[:3] in MONTH_MAP:
        return MONTH_MAP[word[:3]]
    if len(word) >= 4 and word[:4] in MONTH_MAP:
        return MONTH_MAP[word[:4]]
    return None


def _valid_date(year: int, month: int, day: int) -> Optional[date]:
    if not (MIN_YEAR <= year <= MAX_YEAR and 1 <= month <= 12 and 1 <= day <= 31):
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_numeric(text: str) -> Optional[date]:
    match = _NUMERIC_DATE.match(text)
    if not match:
        return None
    first, second, third = match.groups()
    a, b, c = int(first), int(second), int(third)

    if len(first) == 4 or a > 31:
        return _valid_date(a, b, c)
    if len(third) != 4:
        return None

    # Day-first unless the first component cannot be a month
    if a > 12:
        return _valid_date(c, b, a)
    if b > 12:
        return _valid_date(c, a, b)
    return _valid_date(c, b, a)


def _parse_text_month(text: str) -> Optional[date]:
    tokens = [token for token in _TOKEN_SPLIT.split(text) if token]
    words = [token for token in tokens if not token.isdigit()]
    numbers = [token for token in tokens if token.isdigit()]

    month = None
    for word in words:
        if _month_word(word) in MONTH_MAP:
            month = MONTH_MAP[_month_word(word)]
            break
    if month is None:
        for word in words:
            month = find_month(word)
            if month is not None:
                break
    if month is None:
        return None

    year = next((int(n) for n in numbers if len(n) == 4), None)
    day = next((int(n) for n in numbers if len(n) <= 2), None)
    if year is None or day is None:
        return None
    return _valid_date(year, month, day)


def parse_date(text: str) -> Optional[date]:
    """
    Parse a date written in any supported language or numeric order.

    Numeric forms are tried first (ISO, then day-first European, with US
    month-first only when the middle component cannot be a month), then a
    month-name lookup combined with a day and a four-digit year.

    Args:
        text: Token sequence such as "30 nov 2025" or "03/04/2025"

    Returns:
        A date, or None when day, month and year cannot all be resolved

    Example:
        >>> parse_date("Dec 9, 2025")
        datetime.date(2025, 12, 9)
        >>> parse_date("03/04/2025")
        datetime.date(2025, 4, 3)
        >>> parse_date("32/01/2025") is None
        True
    """
    if not text:
        return None
    cleaned = " ".join(text.split())
    if not cleaned:
        return None
    return _parse_numeric(cleaned) or _parse_text_month(cleaned)


def _is_date_word(word: str) -> bool:
    bare = word.strip(".,")
    if not bare:
        return True
    if bare[0].isdigit():
        return all(part.isdigit() for part in _TOKEN_SPLIT.split(bare) if part) or \
            any(find_month(part) for part in _TOKEN_SPLIT.split(bare) if not part.isdigit())
    return bare.lower() in _CONNECTORS or find_month(bare) is not None


def match_leading_date(line: str) -> Optional[Tuple[date, str]]:
    """
    Find a date at the very start of a line.

    Windows of 1 to MAX_DATE_WORDS words are tried, shortest first. Every
    word in the window must be numeric, a month name or a connector, so
    descriptions that merely contain a date are not mistaken for one.

    Returns:
        (date, remainder of the line) or None
    """
    words = line.split()
    if not words or not _is_date_word(words[0]) or words[0].lower() in _CONNECTORS:
        return None

    for size in range(1, min(MAX_DATE_WORDS, len(words)) + 1):
        if not _is_date_word(words[size - 1]):
            return None
        parsed = parse_date(" ".join(words[:size]))
        if parsed is not None:
            return parsed, " ".join(words[size:])
    return None


def month_key(value: date) -> str:
    """YYYY-MM key for a date."""
    return f"{value.year:04d}-{value.month:02d}"
