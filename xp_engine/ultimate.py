"""
Ultimate layer: UXP accumulation running alongside the base XP cycles.

UXP only counts for members holding Platinum. It has its own threshold
(900), its own rollover cap (900) and therefore a combined ceiling of
1800; anything above the ceiling is reported as waste. It never changes
base-tier transitions.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, List, Mapping

from xp_engine.models import CycleSettings, QualificationCycle
from xp_engine.state import MonthState, month_key, month_range
from xp_engine.tiers import DEFAULT_CONFIG, Tier, base_tier, tier_rank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UltimateStatus:
    """
    UXP position for one accumulation window.

    Fields:
    - rollover_in: UXP carried into the window
    - actual_uxp / projected_uxp: rollover_in plus UXP earned
    - counted_uxp: projected UXP up to the combined cap
    - waste: projected UXP above the combined cap
    - rollover_out: UXP carried into the next window
    - is_ultimate_track / projected_ultimate: Platinum and at the UXP threshold
    """
    rollover_in: int
    actual_uxp: int
    projected_uxp: int
    counted_uxp: int
    waste: int
    rollover_out: int
    is_ultimate_track: bool
    projected_ultimate: bool


def is_ultimate_track(tier: Tier, uxp: int, config: dict = None) -> bool:
    """
    Example:
        >>> is_ultimate_track(Tier.PLATINUM, 850)
        False
        >>> is_ultimate_track(Tier.PLATINUM, 900)
        True
    """
    if config is None:
        config = DEFAULT_CONFIG
    return base_tier(tier) is Tier.PLATINUM and uxp >= config["uxp_threshold"]


def uxp_waste(uxp: int, config: dict = None) -> int:
    """UXP above the combined threshold-plus-rollover ceiling."""
    if config is None:
        config = DEFAULT_CONFIG
    return max(0, uxp - config["uxp_total_cap"])


def evaluate_ultimate(actual_tier: Tier, projected_tier: Tier, rollover_in: int,
                      actual_earned: int, projected_earned: int,
                      config: dict = None) -> UltimateStatus:
    """Evaluate one UXP window given the base tiers held during it."""
    if config is None:
        config = DEFAULT_CONFIG

    actual_total = rollover_in + actual_earned
    projected_total = rollover_in + projected_earned
    projected_ultimate = is_ultimate_track(projected_tier, projected_total, config)

    rollover_out = 0
    if projected_ultimate:
        rollover_out = min(config["uxp_rollover_cap"], projected_total - config["uxp_threshold"])

    return UltimateStatus(
        rollover_in=rollover_in,
        actual_uxp=actual_total,
        projected_uxp=projected_total,
        counted_uxp=min(projected_total, config["uxp_total_cap"]),
        waste=uxp_waste(projected_total, config),
        rollover_out=rollover_out,
        is_ultimate_track=is_ultimate_track(actual_tier, actual_total, config),
        projected_ultimate=projected_ultimate,
    )


def _held_tiers(cycle: QualificationCycle):
    # Highest base tier held at any point of the cycle
    actual = max(cycle.start_tier, cycle.end_tier, key=tier_rank)
    projected = max(cycle.start_tier, cycle.projected_end_tier, key=tier_rank)
    return actual, projected


def _with_status(cycle: QualificationCycle, status: UltimateStatus) -> QualificationCycle:
    return replace(
        cycle,
        is_ultimate_track=status.is_ultimate_track,
        projected_ultimate=status.projected_ultimate,
        uxp_rollover_in=status.rollover_in,
        actual_uxp=status.actual_uxp,
        projected_uxp=status.projected_uxp,
        uxp_rollover_out=status.rollover_out,
        uxp_waste=status.waste,
    )


def _qualification_windows(cycles: List[QualificationCycle], starting_uxp: int,
                           config: dict) -> List[QualificationCycle]:
    result = []
    rollover = starting_uxp
    for cycle in cycles:
        actual_tier, projected_tier = _held_tiers(cycle)
        status = evaluate_ultimate(
            actual_tier, projected_tier, rollover,
            sum(row.actual_uxp for row in cycle.ledger),
            sum(row.projected_uxp for row in cycle.ledger),
            config,
        )
        result.append(_with_status(cycle, status))
        rollover = status.rollover_out
    return result


def _calendar_windows(cycles: List[QualificationCycle], states: Mapping[str, MonthState],
                      starting_uxp: int, today: date, config: dict) -> List[QualificationCycle]:
    first_year = cycles[0].start_date.year
    last_year = cycles[-1].ledger[-1].month[:4]

    def cycle_at(month: str) -> QualificationCycle:
        for cycle in cycles:
            if cycle.ledger[0].month <= month <= cycle.ledger[-1].month:
                return cycle
        return cycles[-1]

    windows: Dict[int, UltimateStatus] = {}
    rollover = starting_uxp
    for year in range(first_year, int(last_year) + 1):
        months = month_range(f"{year:04d}-01", 12)
        actual_tier, projected_tier = _held_tiers(cycle_at(f"{year:04d}-12"))
        status = evaluate_ultimate(
            actual_tier, projected_tier, rollover,
            sum(states[m].actual_uxp for m in months if m in states),
            sum(states[m].projected_uxp for m in months if m in states),
            config,
        )
        windows[year] = status
        rollover = status.rollover_out

    result = []
    for cycle in cycles:
        reference = month_key(today) if cycle.contains(today) else cycle.ledger[-1].month
        result.append(_with_status(cycle, windows[int(reference[:4])]))
    return result


def apply_ultimate(cycles: List[QualificationCycle], states: Mapping[str, MonthState],
                   settings: CycleSettings, today: date, config: dict = None) -> List[QualificationCycle]:
    """
    Attach UXP figures to every cycle.

    "qualification" windows follow the XP cycles; "calendar" windows are
    calendar years, and each cycle reports the year containing today (for
    the current cycle) or its last month.
    """
    if config is None:
        config = DEFAULT_CONFIG
    if not cycles:
        return []
    if settings.ultimate_cycle_type == "calendar":
        return _calendar_windows(cycles, states, settings.starting_uxp, today, config)
    return _qualification_windows(cycles, settings.starting_uxp, config)
