"""
Qualification Cycle Builder.

A cycle runs for twelve months from its start month, or ends early in the
month its actual cumulative XP (rollover included) reaches the target
threshold. A level-up that only appears once booked flights are counted
is reported on the full cycle (``level_up_is_actual`` False) without
splitting it. The next cycle carries the actual rollover; its tier is the
actual end tier after a split and the projected end tier otherwise.
"""

import logging
from datetime import date
from typing import Iterable, List, Mapping, Optional, Union

from xp_engine.ledger import project_ledger
from xp_engine.models import CycleSettings, ManualMonthXP, QualificationCycle, XPRecord
from xp_engine.state import (
    MonthState,
    add_months,
    build_month_state,
    month_key,
    month_range,
    month_start,
)
from xp_engine.tiers import (
    DEFAULT_CONFIG,
    Tier,
    base_tier,
    landing_tier,
    target_threshold,
    threshold_for,
    tier_for_xp,
    tier_rank,
)
from xp_engine.ultimate import apply_ultimate
from xp_ingest.models import FlightLeg

logger = logging.getLogger(__name__)


def _has_activity(state: MonthState) -> bool:
    return bool(state.projected_xp or state.projected_uxp or state.flight_count or state.manual_xp)


def build_cycle(index: int, start: str, tier: Tier, rollover_in: int,
                states: Mapping[str, MonthState], config: dict = None) -> QualificationCycle:
    """
    Build one cycle starting at month ``start``.

    Args:
        index: Position in the chain
        start: First month (YYYY-MM)
        tier: Base tier held at the start
        rollover_in: XP carried in from the previous cycle
        states: Per-month XP state from build_month_state()
        config: Optional engine config (uses defaults if not provided)

    Returns:
        QualificationCycle without UXP figures (see apply_ultimate)
    """
    if config is None:
        config = DEFAULT_CONFIG

    tier = base_tier(tier)
    rows = project_ledger(month_range(start, config["cycle_months"]), states, rollover_in)
    target = target_threshold(tier, config)

    # Only flown XP splits a cycle; a booked level-up is reported on the full cycle
    actual_at = next(
        (i for i, row in enumerate(rows) if row.actual_cumulative >= target), None
    )
    projected_at = next(
        (i for i, row in enumerate(rows) if row.projected_cumulative >= target), None
    )

    if actual_at is not None:
        rows = rows[:actual_at + 1]
        last = rows[-1]
        end_tier = tier_for_xp(last.actual_cumulative, config)
        projected_end_tier = max(end_tier, tier_for_xp(last.projected_cumulative, config),
                                 key=tier_rank)
        threshold = threshold_for(end_tier, config)
        rollover_out = min(config["xp_rollover_cap"], last.actual_cumulative - threshold)
        level_up_month = last.month
    else:
        last = rows[-1]
        end_tier = landing_tier(tier, last.actual_cumulative, config)
        if projected_at is not None:
            peak = max(row.projected_cumulative for row in rows)
            projected_end_tier = tier_for_xp(peak, config)
            level_up_month = rows[projected_at].month
        else:
            projected_end_tier = landing_tier(tier, last.projected_cumulative, config)
            level_up_month = None
        threshold = target
        # Reaching the target in flown XP would have ended the cycle early
        rollover_out = 0

    return QualificationCycle(
        index=index,
        start_date=month_start(start),
        end_date=month_start(add_months(last.month, 1)),
        start_tier=tier,
        end_tier=end_tier,
        projected_end_tier=projected_end_tier,
        rollover_in=rollover_in,
        rollover_out=rollover_out,
        threshold=threshold,
        actual_xp=last.actual_cumulative,
        projected_xp=last.projected_cumulative,
        ledger=tuple(rows),
        ended_by_level_up=level_up_month is not None,
        level_up_is_actual=actual_at is not None,
        level_up_month=level_up_month,
    )


def build_cycles(
    settings: Union[CycleSettings, dict, None] = None,
    flights: Iterable[FlightLeg] = (),
    history: Iterable[XPRecord] = (),
    manual_ledger: Optional[Mapping[str, Union[ManualMonthXP, int]]] = None,
    today: Optional[date] = None,
    config: dict = None,
) -> List[QualificationCycle]:
    """
    Build the chain of qualification cycles from the first cycle start up
    to the later of the last data month and the evaluation month.

    Args:
        settings: CycleSettings (or a dict in either key style)
        flights: Imported or hand-entered flight legs
        history: Non-flight XP per month
        manual_ledger: Optional manual corrections per month
        today: Evaluation date (defaults to date.today())
        config: Optional engine config (uses defaults if not provided)

    Returns:
        Ordered list of QualificationCycle, never empty
    """
    if config is None:
        config = DEFAULT_CONFIG
    if settings is None:
        settings = CycleSettings()
    elif isinstance(settings, dict):
        settings = CycleSettings.model_validate(settings)
    if today is None:
        today = date.today()

    states = build_month_state(flights, history, manual_ledger, today, config)
    evaluation_month = month_key(today)
    data_months = sorted(month for month, state in states.items() if _has_activity(state))

    first_start = settings.cycle_start_month or (data_months[0] if data_months else evaluation_month)
    horizon = max(data_months[-1], evaluation_month) if data_months else evaluation_month

    ignored = [month for month in data_months if month < first_start]
    if ignored:
        logger.warning(
            "Ignoring activity in %d month(s) before the first cycle start %s",
            len(ignored), first_start,
        )

    cycles: List[QualificationCycle] = []
    start, tier, rollover = first_start, settings.starting_status, settings.starting_xp
    while True:
        cycle = build_cycle(len(cycles), start, tier, rollover, states, config)
        cycles.append(cycle)
        start = month_key(cycle.end_date)
        if start > horizon:
            break
        tier = cycle.end_tier if cycle.level_up_is_actual else cycle.projected_end_tier
        rollover = cycle.rollover_out

    logger.debug("Built %d cycle(s) from %s to %s", len(cycles), first_start, horizon)
    return apply_ultimate(cycles, states, settings, today, config)


def find_active_cycle(cycles: List[QualificationCycle],
                      today: Optional[date] = None) -> Optional[QualificationCycle]:
    """
    The cycle containing ``today``; otherwise the first cycle ending after
    it, otherwise the last one.
    """
    if not cycles:
        return None
    if today is None:
        today = date.today()
    for cycle in cycles:
        if cycle.contains(today):
            return cycle
    for cycle in cycles:
        if cycle.end_date > today:
            return cycle
    return cycles[-1]
