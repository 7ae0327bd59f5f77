"""
Import conflict detection.

Re-importing an export must add what is new without duplicating or
silently overwriting what the user already has:

- a flight on the same date and route as an existing one is a duplicate
  and is skipped
- a flight that closely resembles an existing one (route, nearby date,
  carrier, flight number) is a conflict the user resolves
- a month already present with different XP or Miles is a conflict; an
  identical month is skipped

Manual corrections are a separate input to the cycle engine and are never
touched here.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from xp_engine.importer import history_from_import
from xp_engine.models import XPRecord
from xp_ingest.models import FlightLeg, ParseResult

logger = logging.getLogger(__name__)


# Default configuration values
DEFAULT_CONFLICT_CONFIG = {
    "fuzzy_threshold": 0.7,
    "date_tolerance_days": 1,
}

# Weight of each matching attribute in the fuzzy flight score
MATCH_WEIGHTS = {
    "route": 0.4,
    "same_date": 0.3,
    "near_date": 0.2,
    "airline": 0.2,
    "flight_number": 0.1,
}


class ConflictKind(str, Enum):
    FLIGHT = "flight"
    MONTH = "month"


class Resolution(str, Enum):
    KEEP_EXISTING = "keep-existing"
    USE_INCOMING = "use-incoming"
    KEEP_BOTH = "keep-both"


@dataclass(frozen=True)
class FlightMatch:
    """Fuzzy comparison of two flight legs."""
    confidence: float
    reasons: Tuple[str, ...]

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons)


@dataclass(frozen=True)
class ImportConflict:
    """
    An incoming record that needs a decision before it is merged.

    Fields:
    - kind: flight or month
    - existing / incoming: the two records
    - reason: human-readable match description
    - confidence: fuzzy score (1.0 for month conflicts)
    - resolution: None until resolved
    """
    kind: ConflictKind
    existing: Union[FlightLeg, XPRecord]
    incoming: Union[FlightLeg, XPRecord]
    reason: str
    confidence: float = 1.0
    resolution: Optional[Resolution] = None


@dataclass(frozen=True)
class ImportPlan:
    """
    Outcome of comparing one import with existing data.

    Fields:
    - new_flights: legs with no counterpart, added as-is
    - duplicate_flights: exact matches, skipped
    - new_months: months not present yet
    - unchanged_months: months identical to the existing record, skipped
    - conflicts: records waiting for a Resolution
    """
    new_flights: Tuple[FlightLeg, ...] = ()
    duplicate_flights: Tuple[FlightLeg, ...] = ()
    new_months: Tuple[XPRecord, ...] = ()
    unchanged_months: Tuple[XPRecord, ...] = ()
    conflicts: Tuple[ImportConflict, ...] = ()

    @property
    def unresolved(self) -> List[ImportConflict]:
        return [conflict for conflict in self.conflicts if conflict.resolution is None]


def is_exact_flight_match(incoming: FlightLeg, existing: FlightLeg) -> bool:
    """Same date and route; flight numbers may be renumbered between exports."""
    return incoming.date == existing.date and incoming.route == existing.route


def fuzzy_flight_match(incoming: FlightLeg, existing: FlightLeg,
                       config: dict = None) -> FlightMatch:
    """
    Score how likely two legs describe the same flight.

    Args:
        incoming: Leg from the new import
        existing: Leg already on record
        config: Optional conflict config (uses defaults if not provided)

    Returns:
        FlightMatch with a confidence between 0 and 1

    Example:
        >>> from datetime import date
        >>> a = FlightLeg(date(2025, 3, 5), "AMS", "CDG", "AF1241", "AF")
        >>> b = FlightLeg(date(2025, 3, 6), "AMS", "CDG", "KL1223", "KL")
        >>> fuzzy_flight_match(a, b).reason
        'same route, date within 1 day(s)'
    """
    if config is None:
        config = DEFAULT_CONFLICT_CONFIG

    confidence = 0.0
    reasons = []

    if incoming.route == existing.route:
        confidence += MATCH_WEIGHTS["route"]
        reasons.append("same route")

    days_apart = abs((incoming.date - existing.date).days)
    if days_apart == 0:
        confidence += MATCH_WEIGHTS["same_date"]
        reasons.append("same date")
    elif days_apart <= config["date_tolerance_days"]:
        confidence += MATCH_WEIGHTS["near_date"]
        reasons.append(f"date within {days_apart} day(s)")

    if incoming.airline == existing.airline:
        confidence += MATCH_WEIGHTS["airline"]
        reasons.append("same airline")

    if incoming.flight_number == existing.flight_number:
        confidence += MATCH_WEIGHTS["flight_number"]
        reasons.append("same flight number")

    return FlightMatch(confidence=round(confidence, 2), reasons=tuple(reasons))


def _best_fuzzy_match(leg: FlightLeg, existing: Sequence[FlightLeg], config: dict):
    best = None
    for candidate in existing:
        match = fuzzy_flight_match(leg, candidate, config)
        if match.confidence >= config["fuzzy_threshold"]:
            if best is None or match.confidence > best[1].confidence:
                best = (candidate, match)
    return best


def detect_conflicts(
    result: ParseResult,
    existing_flights: Iterable[FlightLeg] = (),
    existing_history: Iterable[XPRecord] = (),
    config: dict = None,
) -> ImportPlan:
    """
    Compare a parsed export with the flights and monthly records on file.

    Args:
        result: ParseResult of the new import
        existing_flights: Flight legs already recorded
        existing_history: Monthly XP records already recorded
        config: Optional conflict config (uses defaults if not provided)

    Returns:
        ImportPlan splitting the import into new, skipped and conflicting records
    """
    if config is None:
        config = DEFAULT_CONFLICT_CONFIG

    existing_flights = list(existing_flights)
    history_by_month = {record.month: record for record in existing_history}

    new_flights, duplicates, conflicts = [], [], []
    for leg in result.flights:
        if any(is_exact_flight_match(leg, existing) for existing in existing_flights):
            duplicates.append(leg)
            continue
        best = _best_fuzzy_match(leg, existing_flights, config)
        if best is None:
            new_flights.append(leg)
        else:
            existing, match = best
            conflicts.append(ImportConflict(
                kind=ConflictKind.FLIGHT,
                existing=existing,
                incoming=leg,
                reason=match.reason,
                confidence=match.confidence,
            ))

    new_months, unchanged = [], []
    for record in history_from_import(result):
        existing = history_by_month.get(record.month)
        if existing is None:
            new_months.append(record)
        elif (existing.xp, existing.points) == (record.xp, record.points):
            unchanged.append(record)
        else:
            conflicts.append(ImportConflict(
                kind=ConflictKind.MONTH,
                existing=existing,
                incoming=record,
                reason=f"Month {record.month} has different values",
            ))

    logger.debug(
        "Import plan: %d new flights, %d duplicates, %d new months, %d conflicts",
        len(new_flights), len(duplicates), len(new_months), len(conflicts),
    )
    return ImportPlan(
        new_flights=tuple(new_flights),
        duplicate_flights=tuple(duplicates),
        new_months=tuple(new_months),
        unchanged_months=tuple(unchanged),
        conflicts=tuple(conflicts),
    )


def resolve_conflict(plan: ImportPlan, index: int, resolution: Resolution) -> ImportPlan:
    """Return a new plan with conflict ``index`` resolved."""
    conflicts = list(plan.conflicts)
    conflicts[index] = replace(conflicts[index], resolution=resolution)
    return replace(plan, conflicts=tuple(conflicts))


def flights_to_add(plan: ImportPlan) -> List[FlightLeg]:
    """
    New legs plus incoming legs of flight conflicts resolved to use the
    incoming record or keep both. Unresolved conflicts add nothing.
    """
    added = list(plan.new_flights)
    for conflict in plan.conflicts:
        if conflict.kind == ConflictKind.FLIGHT and conflict.resolution in (
            Resolution.USE_INCOMING, Resolution.KEEP_BOTH,
        ):
            added.append(conflict.incoming)
    return added


def months_to_merge(plan: ImportPlan) -> List[XPRecord]:
    """New months plus month conflicts resolved to use the incoming record."""
    merged = list(plan.new_months)
    for conflict in plan.conflicts:
        if conflict.kind == ConflictKind.MONTH and conflict.resolution == Resolution.USE_INCOMING:
            merged.append(conflict.incoming)
    return merged


def merge_import(plan: ImportPlan, existing_flights: Iterable[FlightLeg],
                 existing_history: Iterable[XPRecord]) -> Tuple[List[FlightLeg], List[XPRecord]]:
    """
    Apply a plan to the existing records.

    USE_INCOMING replaces the existing record, KEEP_BOTH keeps it next to
    the incoming one, KEEP_EXISTING and unresolved conflicts change nothing.

    Returns:
        Tuple of (flights sorted by date, history sorted by month)
    """
    replaced = [
        conflict.existing for conflict in plan.conflicts
        if conflict.kind == ConflictKind.FLIGHT and conflict.resolution == Resolution.USE_INCOMING
    ]
    flights = [leg for leg in existing_flights if leg not in replaced]
    flights.extend(flights_to_add(plan))
    flights.sort(key=lambda leg: leg.date)

    history = {record.month: record for record in existing_history}
    for record in months_to_merge(plan):
        history[record.month] = record

    return flights, [history[month] for month in sorted(history)]
