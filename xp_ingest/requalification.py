"""
Requalification event detection.

A single requalification shows up in the export as several loosely
related lines: an XP-counter deduction ("Aftrek XP-teller -300 XP"), a
"<Tier> reached" line that may or may not carry its own date, and a
"Surplus XP available" line with the XP carried into the new period.
The tracker merges every signal into one event per transaction date.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from xp_engine.tiers import Tier
from xp_ingest.models import RequalificationEvent

logger = logging.getLogger(__name__)

# XP deductions imply the tier they paid for
_DEDUCTION_TIERS = [(300, Tier.PLATINUM), (180, Tier.GOLD), (100, Tier.SILVER)]


def tier_from_deduction(xp_deducted: int) -> Optional[Tier]:
    """
    Infer the tier reached from the size of an XP-counter deduction.

    Example:
        >>> tier_from_deduction(300)
        <Tier.PLATINUM: 'Platinum'>
    """
    for threshold, tier in _DEDUCTION_TIERS:
        if xp_deducted >= threshold:
            return tier
    return None


@dataclass
class _PendingEvent:
    date: date
    to_tier: Optional[Tier] = None
    xp_deducted: Optional[int] = None
    rollover_xp: Optional[int] = None
    rollover_uxp: Optional[int] = None
    legacy_only: bool = False


class RequalificationTracker:
    """
    Get-or-insert accumulator of requalification signals keyed by date.

    Signals arriving in any order for the same date update one record;
    a later signal never replaces a tier an earlier one already set,
    except one that came from legacy wording. A tier still missing at the
    end is inferred from the deduction size.
    """

    def __init__(self):
        self._events: Dict[date, _PendingEvent] = OrderedDict()

    def _get_or_insert(self, when: date) -> _PendingEvent:
        event = self._events.get(when)
        if event is None:
            event = _PendingEvent(date=when)
            self._events[when] = event
        return event

    def __len__(self) -> int:
        return len(self._events)

    @staticmethod
    def _claim(event: _PendingEvent, tier: Optional[Tier]) -> None:
        # Specific signals replace a tier taken from legacy wording
        if tier is not None and (event.to_tier is None or event.legacy_only):
            event.to_tier = tier
        event.legacy_only = False

    def record_deduction(self, when: date, xp_delta: int, tier: Optional[Tier] = None) -> None:
        """Record an XP-counter deduction (``xp_delta`` is usually negative)."""
        event = self._get_or_insert(when)
        self._claim(event, tier)
        amount = abs(xp_delta)
        if amount:
            event.xp_deducted = (event.xp_deducted or 0) + amount

    def record_tier(self, when: date, tier: Optional[Tier]) -> None:
        """Record a "<Tier> reached" signal."""
        self._claim(self._get_or_insert(when), tier)

    def record_rollover(self, when: date, xp: int, uxp: int = 0) -> None:
        """Record surplus XP/UXP carried into the new qualification period."""
        event = self._get_or_insert(when)
        self._claim(event, None)
        if xp:
            event.rollover_xp = (event.rollover_xp or 0) + abs(xp)
        if uxp:
            event.rollover_uxp = (event.rollover_uxp or 0) + abs(uxp)

    def record_legacy(self, when: date, tier: Optional[Tier]) -> None:
        """
        Record generic "requalified/renewed" wording.

        Only creates a bare event when no specific signal exists for the
        date; never changes a record built from specific signals.
        """
        if when in self._events:
            event = self._events[when]
            if event.legacy_only and event.to_tier is None:
                event.to_tier = tier
            return
        event = self._get_or_insert(when)
        event.legacy_only = True
        event.to_tier = tier

    def events(self) -> List[RequalificationEvent]:
        """Merged events in chronological order."""
        result = []
        for pending in sorted(self._events.values(), key=lambda item: item.date):
            to_tier = pending.to_tier
            if to_tier is None and pending.xp_deducted:
                to_tier = tier_from_deduction(pending.xp_deducted)
            result.append(RequalificationEvent(
                date=pending.date,
                to_tier=to_tier,
                xp_deducted=pending.xp_deducted,
                rollover_xp=pending.rollover_xp,
                rollover_uxp=pending.rollover_uxp,
            ))
        logger.debug("Merged requalification signals into %d events", len(result))
        return result
