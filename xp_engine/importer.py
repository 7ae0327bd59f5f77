"""
Bridge from a parsed activity export to cycle-engine inputs.
"""

import logging
from datetime import date
from typing import Dict, List, Mapping, Optional, Union

from xp_engine.cycles import build_cycles
from xp_engine.models import CycleSettings, ManualMonthXP, QualificationCycle, XPRecord
from xp_engine.state import add_months, month_key
from xp_engine.tiers import Tier
from xp_ingest.models import ParseResult

logger = logging.getLogger(__name__)


def history_from_import(result: ParseResult) -> List[XPRecord]:
    """
    Collapse monthly earnings into one XPRecord per month.

    Example:
        >>> from xp_ingest.models import EarningCategory, MonthlyEarning
        >>> result = ParseResult(monthly_earnings=(
        ...     MonthlyEarning("2025-03", EarningCategory.SUBSCRIPTION, points=1000, bonus_xp=10),
        ...     MonthlyEarning("2025-03", EarningCategory.HOTEL, points=367),
        ... ))
        >>> history_from_import(result)
        [XPRecord(month='2025-03', xp=10, uxp=0, points=1367)]
    """
    totals: Dict[str, List[int]] = {}
    for earning in result.monthly_earnings:
        bucket = totals.setdefault(earning.month, [0, 0])
        bucket[0] += earning.bonus_xp
        bucket[1] += earning.points
    return [
        XPRecord(month=month, xp=xp, points=points)
        for month, (xp, points) in sorted(totals.items())
    ]


def settings_from_import(result: ParseResult) -> CycleSettings:
    """
    Derive cycle settings from an import.

    The most recent requalification event starts a new cycle in the
    following month, at the tier reached and with the surplus it carried.
    Without any event the cycle starts at the oldest transaction month.
    """
    event = result.latest_requalification
    if event is not None:
        tier = event.to_tier or result.detected_tier or Tier.EXPLORER
        logger.debug("Cycle settings from requalification on %s (%s)", event.date, tier.value)
        return CycleSettings(
            cycle_start_month=add_months(month_key(event.date), 1),
            starting_status=tier,
            starting_xp=event.rollover_xp or 0,
            starting_uxp=event.rollover_uxp or 0,
        )

    return CycleSettings(
        cycle_start_month=month_key(result.oldest_date) if result.oldest_date else None,
        starting_status=result.detected_tier or Tier.EXPLORER,
    )


def build_cycles_from_import(
    result: ParseResult,
    settings: Union[CycleSettings, dict, None] = None,
    manual_ledger: Optional[Mapping[str, Union[ManualMonthXP, int]]] = None,
    today: Optional[date] = None,
    config: dict = None,
) -> List[QualificationCycle]:
    """
    Build the cycle chain for an import.

    Explicit ``settings`` win over the settings derived from the export.
    """
    if settings is None:
        settings = settings_from_import(result)
    return build_cycles(
        settings=settings,
        flights=result.flights,
        history=history_from_import(result),
        manual_ledger=manual_ledger,
        today=today,
        config=config,
    )
