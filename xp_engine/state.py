"""
Monthly state computation from flights, XP history and manual corrections.
Deterministic and unit-testable.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Union

from xp_engine.models import ManualMonthXP, XPRecord
from xp_engine.tiers import DEFAULT_CONFIG
from xp_ingest.models import FlightLeg


def month_key(value: Union[date, str]) -> str:
    """
    Extract the month key from a date or a date string.

    Args:
        value: date, or a string in YYYY-MM-DD / YYYY-MM format

    Returns:
        Month key in YYYY-MM format

    Example:
        >>> month_key("2025-01-15")
        '2025-01'
        >>> month_key(date(2025, 1, 15))
        '2025-01'
    """
    if isinstance(value, date):
        return f"{value.year:04d}-{value.month:02d}"
    return value[:7]  # Extract YYYY-MM from YYYY-MM-DD


def month_index(key: str) -> int:
    """Months since year 0, so that month arithmetic is integer arithmetic."""
    return int(key[:4]) * 12 + int(key[5:7]) - 1


def add_months(key: str, count: int) -> str:
    """
    Shift a month key by ``count`` months.

    Example:
        >>> add_months("2024-11", 3)
        '2025-02'
    """
    index = month_index(key) + count
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def month_range(start: str, count: int) -> List[str]:
    return [add_months(start, offset) for offset in range(count)]


def month_start(key: str) -> date:
    return date(int(key[:4]), int(key[5:7]), 1)


@dataclass
class MonthState:
    """
    XP and UXP booked in one month, split into actual and projected.

    Fields:
    - actual_xp: XP from activity dated on or before the evaluation date
    - projected_xp: all XP, scheduled flights included
    - actual_uxp / projected_uxp: same split for UXP
    - flight_count / actual_flight_count: legs in the month / legs flown
    - manual_xp: manual corrections merged into the month
    """
    actual_xp: int = 0
    projected_xp: int = 0
    actual_uxp: int = 0
    projected_uxp: int = 0
    flight_count: int = 0
    actual_flight_count: int = 0
    manual_xp: int = 0


def build_month_state(
    flights: Iterable[FlightLeg],
    history: Iterable[XPRecord],
    manual_ledger: Optional[Mapping[str, Union[ManualMonthXP, int]]],
    today: date,
    config: dict = None,
) -> Dict[str, MonthState]:
    """
    Build per-month XP state from every input the cycle builder accepts.

    Flights count as actual when dated on or before ``today``; history
    records and manual corrections count as actual when their month is not
    after today's month. Manual corrections are added on top of earned XP
    and never replace it.

    Args:
        flights: FlightLeg objects (imported or entered by hand)
        history: XPRecord objects with non-flight XP per month
        manual_ledger: Optional mapping of YYYY-MM to ManualMonthXP (or a
            plain XP correction)
        today: Evaluation date separating actual from scheduled activity
        config: Optional engine config (uses defaults if not provided)

    Returns:
        Dictionary mapping YYYY-MM to MonthState

    Example:
        >>> legs = [
        ...     FlightLeg(date(2025, 1, 10), "AMS", "BER", "KL1775", "KL", xp=15, uxp=15),
        ...     FlightLeg(date(2025, 1, 20), "BER", "AMS", "KL1776", "KL", xp=15, uxp=15),
        ... ]
        >>> state = build_month_state(legs, [], None, date(2025, 1, 15))
        >>> state["2025-01"].actual_xp, state["2025-01"].projected_xp
        (15, 30)
    """
    if config is None:
        config = DEFAULT_CONFIG

    # Initialize state containers
    states: Dict[str, MonthState] = {}
    current_month = month_key(today)

    def state_for(key: str) -> MonthState:
        if key not in states:
            states[key] = MonthState()
        return states[key]

    # Process each flight
    for leg in flights:
        state = state_for(month_key(leg.date))
        xp = leg.total_xp
        uxp = (leg.uxp or 0) if leg.airline in config["uxp_carriers"] else 0
        flown = leg.date <= today

        state.projected_xp += xp
        state.projected_uxp += uxp
        state.flight_count += 1
        if flown:
            state.actual_xp += xp
            state.actual_uxp += uxp
            state.actual_flight_count += 1

    # Non-flight XP from imports or manual history
    for record in history:
        state = state_for(month_key(record.month))
        state.projected_xp += record.xp
        state.projected_uxp += record.uxp
        if month_key(record.month) <= current_month:
            state.actual_xp += record.xp
            state.actual_uxp += record.uxp

    # Manual corrections are additive; deductions hit both series so
    # projected never drops below actual
    for key, entry in (manual_ledger or {}).items():
        if isinstance(entry, ManualMonthXP):
            xp, uxp = entry.total_xp, entry.uxp
        else:
            xp, uxp = int(entry), 0
        state = state_for(month_key(key))
        past = month_key(key) <= current_month
        state.manual_xp += xp
        state.projected_xp += xp
        state.projected_uxp += uxp
        if past or xp < 0:
            state.actual_xp += xp
        if past or uxp < 0:
            state.actual_uxp += uxp

    return states
