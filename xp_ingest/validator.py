"""
Plausibility checks on raw export text. Never raises; the aggregator
copies the warnings into the ParseResult.
"""

import re
from dataclasses import dataclass, field
from typing import List

MIN_TEXT_LENGTH = 200
MAX_TEXT_LENGTH = 500_000
MIN_INDICATORS = 2

_CONTENT_INDICATORS = [
    re.compile(r"Flying\s*Blue", re.IGNORECASE),
    re.compile(r"\d\s*Miles\b", re.IGNORECASE),
    re.compile(r"\d\s*XP\b"),
    re.compile(r"Mijn\s+reis|My\s+trip|Mon\s+voyage|Meine\s+Reise|Mi\s+viaje", re.IGNORECASE),
    re.compile(r"Activiteitengeschiedenis|Activity\s+history|Historique|Aktivit[äa]tsverlauf", re.IGNORECASE),
    re.compile(r"\b[A-Z]{3}\s*[-–]\s*[A-Z]{3}\b"),
]
_HTML = re.compile(r"<\s*(?:html|body|div|table)\b", re.IGNORECASE)


@dataclass
class ValidationReport:
    """
    Result of validate_export_text.

    Fields:
    - looks_like_export: enough activity-export indicators were found
    - indicator_count: how many indicators matched
    - warnings: human-readable problems, empty when the text looks fine
    """
    looks_like_export: bool
    indicator_count: int = 0
    warnings: List[str] = field(default_factory=list)


def validate_export_text(text: str) -> ValidationReport:
    """
    Check that text plausibly came from a Flying Blue activity export.

    Example:
        >>> validate_export_text("").looks_like_export
        False
    """
    warnings = []
    text = text or ""
    stripped = text.strip()

    if not stripped:
        return ValidationReport(looks_like_export=False, warnings=["Text is empty"])
    if len(stripped) < MIN_TEXT_LENGTH:
        warnings.append(f"Text is very short ({len(stripped)} characters)")
    if len(stripped) > MAX_TEXT_LENGTH:
        warnings.append(f"Text is unusually long ({len(stripped)} characters)")
    if _HTML.search(stripped):
        warnings.append("Text looks like HTML rather than an extracted export")
    if "\ufffd" in stripped:
        warnings.append("Text contains unreadable characters; check the extraction encoding")

    indicator_count = sum(1 for pattern in _CONTENT_INDICATORS if pattern.search(stripped))
    looks_like_export = indicator_count >= MIN_INDICATORS
    if not looks_like_export:
        warnings.append("Text does not look like a Flying Blue activity export")

    return ValidationReport(
        looks_like_export=looks_like_export,
        indicator_count=indicator_count,
        warnings=warnings,
    )
