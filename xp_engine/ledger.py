"""
Monthly Ledger Projector.

Turns per-month state into the MonthRow ledger of one cycle, carrying
running totals for the actual ("flown so far") and projected ("including
booked flights") series side by side.
"""

from typing import Iterable, List, Mapping, Optional

from xp_engine.models import MonthRow
from xp_engine.state import MonthState


def project_row(month: str, state: Optional[MonthState], actual_before: int,
                projected_before: int) -> MonthRow:
    """Build one ledger row on top of the running totals of the previous row."""
    if state is None:
        state = MonthState()
    return MonthRow(
        month=month,
        actual_xp=state.actual_xp,
        projected_xp=state.projected_xp,
        actual_cumulative=actual_before + state.actual_xp,
        projected_cumulative=projected_before + state.projected_xp,
        flight_count=state.flight_count,
        actual_flight_count=state.actual_flight_count,
        manual_xp=state.manual_xp,
        actual_uxp=state.actual_uxp,
        projected_uxp=state.projected_uxp,
    )


def project_ledger(months: Iterable[str], states: Mapping[str, MonthState],
                   rollover_in: int = 0) -> List[MonthRow]:
    """
    Build the ledger rows for a run of months.

    Both cumulative series start from ``rollover_in``.

    Example:
        >>> rows = project_ledger(["2025-01", "2025-02"],
        ...                       {"2025-01": MonthState(actual_xp=10, projected_xp=25)}, 20)
        >>> [(r.actual_cumulative, r.projected_cumulative) for r in rows]
        [(30, 45), (30, 45)]
    """
    rows = []
    actual, projected = rollover_in, rollover_in
    for month in months:
        row = project_row(month, states.get(month), actual, projected)
        actual, projected = row.actual_cumulative, row.projected_cumulative
        rows.append(row)
    return rows
