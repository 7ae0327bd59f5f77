"""
Data models produced by the activity export parser.
All records are frozen dataclasses; a ParseResult is built once per import.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple

from xp_engine.tiers import Tier


class EarningCategory(str, Enum):
    """Buckets for non-flight point movements, in reporting order."""
    SUBSCRIPTION = "subscription"
    CARD_SPEND = "card-spend"
    HOTEL = "hotel"
    SHOPPING = "shopping"
    PARTNER_TRANSFER = "partner-transfer"
    BONUS_XP = "bonus-xp"
    DEBIT = "debit"
    UNCATEGORIZED = "uncategorized"


CATEGORY_ORDER = list(EarningCategory)


@dataclass(frozen=True)
class FlightLeg:
    """
    One flown (or booked) flight segment.

    Fields:
    - date: actual flight date (falls back to the posting date)
    - origin / destination: IATA airport codes
    - flight_number: e.g. "KL1775"; partner legs get a pseudo number like "HV0000"
    - airline: two-character carrier code
    - points: Miles earned
    - xp: XP earned
    - uxp: Ultimate XP, None unless the carrier accrues UXP
    - saf_xp / saf_points: SAF bonus, only ever set on the first leg of a trip
    - paid_with_cash: Miles were earned on euros spent (revenue ticket)
    """
    date: date
    origin: str
    destination: str
    flight_number: str
    airline: str
    points: int = 0
    xp: int = 0
    uxp: Optional[int] = None
    saf_xp: int = 0
    saf_points: int = 0
    paid_with_cash: bool = False

    @property
    def route(self) -> str:
        return f"{self.origin}-{self.destination}"

    @property
    def total_xp(self) -> int:
        return self.xp + self.saf_xp


@dataclass(frozen=True)
class MonthlyEarning:
    """
    Aggregated non-flight points for one month and one category.

    Fields:
    - month: YYYY-MM
    - category: EarningCategory
    - points: signed Miles total (debits negative)
    - bonus_xp: XP granted outside flights
    - line_count: number of export lines folded into this bucket
    """
    month: str
    category: EarningCategory
    points: int = 0
    bonus_xp: int = 0
    line_count: int = 0


@dataclass(frozen=True)
class RequalificationEvent:
    """
    A status requalification as reported in the export.

    Fields:
    - date: transaction date the signals were posted on
    - to_tier: tier reached, None when the export never names it
    - xp_deducted: XP taken off the counter, positive
    - rollover_xp: surplus XP carried into the new qualification period
    - rollover_uxp: surplus UXP carried into the new qualification period
    """
    date: date
    to_tier: Optional[Tier] = None
    xp_deducted: Optional[int] = None
    rollover_xp: Optional[int] = None
    rollover_uxp: Optional[int] = None


@dataclass(frozen=True)
class ParseResult:
    """
    Everything recognised in one activity export.

    Fields:
    - flights: legs in chronological order
    - monthly_earnings: one entry per (month, category), month ascending
    - detected_tier: header tier, else the most recent requalification tier
    - header_tier: tier printed in the header, if any
    - total_points / total_xp / total_uxp: export totals from the header
    - oldest_date / newest_date: observed transaction date range
    - requalification_events: chronological
    - member_number: Flying Blue number from the header
    - export_date: date printed in the page footer
    - language: detected document language code
    - raw_earning_points: sum of the Miles extracted from every earning line
    - warnings: plausibility warnings from input validation
    """
    flights: Tuple[FlightLeg, ...] = ()
    monthly_earnings: Tuple[MonthlyEarning, ...] = ()
    detected_tier: Optional[Tier] = None
    header_tier: Optional[Tier] = None
    total_points: Optional[int] = None
    total_xp: Optional[int] = None
    total_uxp: Optional[int] = None
    oldest_date: Optional[date] = None
    newest_date: Optional[date] = None
    requalification_events: Tuple[RequalificationEvent, ...] = ()
    member_number: Optional[str] = None
    export_date: Optional[date] = None
    language: str = "en"
    raw_earning_points: int = 0
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        """True when neither flights nor monthly earnings were recognised."""
        return not self.flights and not self.monthly_earnings

    def earnings_by_month(self) -> Dict[str, List[MonthlyEarning]]:
        grouped: Dict[str, List[MonthlyEarning]] = OrderedDict()
        for earning in self.monthly_earnings:
            grouped.setdefault(earning.month, []).append(earning)
        return grouped

    def category_totals(self) -> Dict[EarningCategory, int]:
        totals = {category: 0 for category in CATEGORY_ORDER}
        for earning in self.monthly_earnings:
            totals[earning.category] += earning.points
        return totals

    @property
    def latest_requalification(self) -> Optional[RequalificationEvent]:
        if not self.requalification_events:
            return None
        return self.requalification_events[-1]
