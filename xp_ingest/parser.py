"""
Parse Result Aggregator.

parse_activity_text() runs the whole ingestion pipeline over the raw text
of one activity export:

1. validate the text (warnings only)
2. segment it into logical lines
3. read the header (tier, totals, member number, export date)
4. classify every dated line; expand trip blocks into flight legs, route
   requalification signals to the tracker and fold the rest into
   per-month earning buckets

Nothing here raises for malformed input. A result with no flights and no
monthly earnings means nothing was recognised; callers that need a usable
import can use ensure_recognized().
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from xp_ingest.classifier import (
    EVENT_CATEGORIES,
    ClassifiedLine,
    LineCategory,
    classify_line,
    find_tier_name,
    find_tier_reached,
)
from xp_ingest.dates import month_key
from xp_ingest.errors import ImportFailure
from xp_ingest.header import detect_header, detect_language
from xp_ingest.models import (
    CATEGORY_ORDER,
    EarningCategory,
    FlightLeg,
    MonthlyEarning,
    ParseResult,
)
from xp_ingest.requalification import RequalificationTracker
from xp_ingest.segmenter import CREDITED_ON, find_credited_date, segment_text
from xp_ingest.trips import extract_trip
from xp_ingest.validator import validate_export_text

logger = logging.getLogger(__name__)

# Lines after an XP deduction searched for the "<Tier> reached" line
REQUALIFICATION_LOOKAHEAD = 4

_EARNING_BUCKETS = {
    LineCategory.SUBSCRIPTION: EarningCategory.SUBSCRIPTION,
    LineCategory.BONUS_XP: EarningCategory.BONUS_XP,
    LineCategory.HOTEL: EarningCategory.HOTEL,
    LineCategory.SHOPPING: EarningCategory.SHOPPING,
    LineCategory.PARTNER: EarningCategory.PARTNER_TRANSFER,
    LineCategory.CARD: EarningCategory.CARD_SPEND,
}


def earning_category(classified: ClassifiedLine) -> EarningCategory:
    """
    Earning bucket for a non-trip, non-event line.

    Redemption/transfer lines are debits when negative and incoming
    transfers otherwise; unmatched lines split on their sign.
    """
    bucket = _EARNING_BUCKETS.get(classified.category)
    if bucket is not None:
        return bucket
    negative = classified.amounts.points < 0
    if classified.category == LineCategory.REDEMPTION:
        return EarningCategory.DEBIT if negative else EarningCategory.PARTNER_TRANSFER
    return EarningCategory.DEBIT if negative else EarningCategory.UNCATEGORIZED


class _EarningLedger:
    """Get-or-insert totals keyed by (month, category)."""

    def __init__(self):
        self._buckets: Dict[Tuple[str, EarningCategory], List[int]] = {}
        self.raw_points = 0

    def add(self, month: str, category: EarningCategory, points: int, bonus_xp: int) -> None:
        bucket = self._buckets.setdefault((month, category), [0, 0, 0])
        bucket[0] += points
        bucket[1] += bonus_xp
        bucket[2] += 1
        self.raw_points += points

    def earnings(self) -> Tuple[MonthlyEarning, ...]:
        ordered = sorted(
            self._buckets.items(),
            key=lambda item: (item[0][0], CATEGORY_ORDER.index(item[0][1])),
        )
        return tuple(
            MonthlyEarning(month=month, category=category, points=points,
                           bonus_xp=bonus_xp, line_count=count)
            for (month, category), (points, bonus_xp, count) in ordered
        )


def _earning_date(lines: List[str], index: int, classified: ClassifiedLine,
                  category: EarningCategory) -> date:
    # Credits are booked on the activity date when the export prints one
    if category != EarningCategory.DEBIT and index + 1 < len(lines):
        following = lines[index + 1]
        if CREDITED_ON.match(following):
            credited = find_credited_date(following)
            if credited is not None:
                return credited
    return classified.date


def _tier_after_deduction(lines: List[str], index: int, classified: ClassifiedLine):
    tier = find_tier_reached(classified.body)
    if tier is not None:
        return tier
    end = min(len(lines), index + 1 + REQUALIFICATION_LOOKAHEAD)
    for ahead in range(index + 1, end):
        following = classify_line(lines[ahead])
        if following is not None and following.date != classified.date:
            break
        tier = find_tier_reached(lines[ahead])
        if tier is not None:
            return tier
    return find_tier_name(classified.body)


def _record_event(tracker: RequalificationTracker, lines: List[str], index: int,
                  classified: ClassifiedLine) -> None:
    category = classified.category
    if category == LineCategory.XP_DEDUCTION:
        tier = _tier_after_deduction(lines, index, classified)
        tracker.record_deduction(classified.date, classified.amounts.xp, tier)
    elif category == LineCategory.TIER_REACHED:
        tracker.record_tier(classified.date, find_tier_reached(classified.body))
    elif category == LineCategory.XP_ROLLOVER:
        tracker.record_rollover(classified.date, classified.amounts.xp, classified.amounts.uxp)
    else:
        tracker.record_legacy(classified.date, find_tier_name(classified.body))


def parse_activity_text(text: str, config: dict = None) -> ParseResult:
    """
    Parse the extracted text of a Flying Blue activity export.

    Args:
        text: Raw text, with or without line breaks
        config: Optional engine config (uses defaults if not provided)

    Returns:
        An immutable ParseResult; empty when nothing was recognised

    Example:
        >>> result = parse_activity_text(
        ...     "10 dec 2025 Hotel - BOOKING.COM 367 Miles 0 XP "
        ...     "9 dec 2025 AMERICAN EXPRESS 1200 Miles 0 XP"
        ... )
        >>> [(e.category.value, e.points) for e in result.monthly_earnings]
        [('card-spend', 1200), ('hotel', 367)]
    """
    report = validate_export_text(text)
    for warning in report.warnings:
        logger.warning("Activity export: %s", warning)

    lines = segment_text(text or "")
    header = detect_header(lines)

    flights: List[FlightLeg] = []
    tracker = RequalificationTracker()
    ledger = _EarningLedger()
    observed: List[date] = []

    index = 0
    while index < len(lines):
        classified = classify_line(lines[index])
        if classified is None:
            index += 1
            continue

        if classified.category == LineCategory.TRIP:
            extraction = extract_trip(lines, index, classified.date, config)
            flights.extend(extraction.legs)
            observed.append(classified.date)
            index = extraction.next_index
            continue

        if classified.category in EVENT_CATEGORIES:
            _record_event(tracker, lines, index, classified)
            observed.append(classified.date)
        elif classified.amounts.points or classified.amounts.xp:
            category = earning_category(classified)
            booked = _earning_date(lines, index, classified, category)
            ledger.add(month_key(booked), category, classified.amounts.points, classified.amounts.xp)
            observed.append(classified.date)
        else:
            logger.debug("No figures on line %d: %s", index, classified.body[:60])
        index += 1

    flights.sort(key=lambda leg: leg.date)
    observed.extend(leg.date for leg in flights)
    events = tuple(tracker.events())

    detected_tier = header.tier
    if detected_tier is None:
        detected_tier = next(
            (event.to_tier for event in reversed(events) if event.to_tier is not None),
            None,
        )

    result = ParseResult(
        flights=tuple(flights),
        monthly_earnings=ledger.earnings(),
        detected_tier=detected_tier,
        header_tier=header.tier,
        total_points=header.total_points,
        total_xp=header.total_xp,
        total_uxp=header.total_uxp,
        oldest_date=min(observed) if observed else None,
        newest_date=max(observed) if observed else None,
        requalification_events=events,
        member_number=header.member_number,
        export_date=header.export_date,
        language=detect_language(text or ""),
        raw_earning_points=ledger.raw_points,
        warnings=tuple(report.warnings),
    )
    logger.info(
        "Parsed %d lines: %d flights, %d earning buckets, %d requalification events",
        len(lines), len(result.flights), len(result.monthly_earnings), len(events),
    )
    return result


def ensure_recognized(result: ParseResult) -> ParseResult:
    """
    Raise ImportFailure when a parse recognised nothing usable.

    Raises:
        ImportFailure: with code "NOTHING_RECOGNIZED"
    """
    if result.is_empty:
        raise ImportFailure(
            code="NOTHING_RECOGNIZED",
            message="No flights or Miles activity were recognised in the export",
            details={"warnings": list(result.warnings)},
        )
    return result
