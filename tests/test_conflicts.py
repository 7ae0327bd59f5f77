"""
Unit tests for xp_engine/conflicts.py
Tests merging a re-import with flights and months already on record.
"""

from datetime import date

import pytest

from xp_engine.conflicts import (
    ConflictKind,
    Resolution,
    detect_conflicts,
    flights_to_add,
    fuzzy_flight_match,
    is_exact_flight_match,
    merge_import,
    months_to_merge,
    resolve_conflict,
)
from xp_engine.models import XPRecord
from xp_ingest.models import EarningCategory, FlightLeg, MonthlyEarning, ParseResult


def flight(day, origin="AMS", destination="CDG", number="AF1241", airline="AF", xp=10):
    return FlightLeg(day, origin, destination, number, airline, xp=xp)


@pytest.fixture
def existing_flights():
    return [flight(date(2025, 3, 5)), flight(date(2025, 4, 2), "AMS", "BER", "KL1775", "KL")]


class TestFlightMatching:
    """Tests for exact and fuzzy flight comparison."""

    def test_exact_match_ignores_flight_number(self):
        """Same date and route is a duplicate even after renumbering."""
        assert is_exact_flight_match(
            flight(date(2025, 3, 5), number="AF1341"), flight(date(2025, 3, 5)),
        )
        assert not is_exact_flight_match(flight(date(2025, 3, 6)), flight(date(2025, 3, 5)))

    def test_fuzzy_score(self):
        # Act
        match = fuzzy_flight_match(flight(date(2025, 3, 6)), flight(date(2025, 3, 5)))

        # Assert
        assert match.confidence == 0.9
        assert match.reasons == (
            "same route", "date within 1 day(s)", "same airline", "same flight number",
        )

    def test_date_outside_tolerance(self):
        match = fuzzy_flight_match(flight(date(2025, 3, 9)), flight(date(2025, 3, 5)))
        assert match.confidence == 0.7
        assert "date" not in match.reason


class TestDetectConflicts:
    """Tests for detect_conflicts."""

    def test_flights_split_into_new_duplicate_and_conflict(self, existing_flights):
        # Arrange
        result = ParseResult(flights=(
            flight(date(2025, 3, 5)),
            flight(date(2025, 4, 3), "AMS", "BER", "KL1775", "KL"),
            flight(date(2025, 5, 20), "AMS", "LHR", "KL1001", "KL"),
        ))

        # Act
        plan = detect_conflicts(result, existing_flights)

        # Assert
        assert [leg.date for leg in plan.duplicate_flights] == [date(2025, 3, 5)]
        assert [leg.flight_number for leg in plan.new_flights] == ["KL1001"]
        assert len(plan.conflicts) == 1
        conflict = plan.conflicts[0]
        assert conflict.kind == ConflictKind.FLIGHT
        assert conflict.existing == existing_flights[1]
        assert conflict.resolution is None

    def test_months(self):
        """Identical months are skipped; different values need a decision."""
        # Arrange
        result = ParseResult(monthly_earnings=(
            MonthlyEarning("2025-01", EarningCategory.HOTEL, points=367),
            MonthlyEarning("2025-02", EarningCategory.CARD_SPEND, points=1200),
            MonthlyEarning("2025-03", EarningCategory.BONUS_XP, points=0, bonus_xp=5),
        ))
        history = [XPRecord("2025-01", points=367), XPRecord("2025-02", points=900)]

        # Act
        plan = detect_conflicts(result, existing_history=history)

        # Assert
        assert [record.month for record in plan.unchanged_months] == ["2025-01"]
        assert [record.month for record in plan.new_months] == ["2025-03"]
        assert [(c.kind, c.incoming.points) for c in plan.conflicts] == [(ConflictKind.MONTH, 1200)]

    def test_reimport_of_same_export_adds_nothing(self):
        """Importing a parse result twice yields only duplicates."""
        result = ParseResult(
            flights=(flight(date(2025, 3, 5)),),
            monthly_earnings=(MonthlyEarning("2025-03", EarningCategory.HOTEL, points=367),),
        )
        flights, history = merge_import(detect_conflicts(result), [], [])

        plan = detect_conflicts(result, flights, history)

        assert plan.new_flights == () and plan.new_months == () and plan.conflicts == ()
        assert merge_import(plan, flights, history) == (flights, history)


class TestResolution:
    """Tests for applying conflict resolutions."""

    @pytest.fixture
    def plan(self, existing_flights):
        result = ParseResult(
            flights=(flight(date(2025, 4, 3), "AMS", "BER", "KL1775", "KL", xp=12),),
            monthly_earnings=(MonthlyEarning("2025-04", EarningCategory.HOTEL, points=500),),
        )
        return detect_conflicts(result, existing_flights, [XPRecord("2025-04", points=400)])

    def test_unresolved_conflicts_add_nothing(self, plan):
        assert len(plan.unresolved) == 2
        assert flights_to_add(plan) == []
        assert months_to_merge(plan) == []

    def test_use_incoming_replaces(self, plan, existing_flights):
        # Arrange
        plan = resolve_conflict(plan, 0, Resolution.USE_INCOMING)
        plan = resolve_conflict(plan, 1, Resolution.USE_INCOMING)

        # Act
        flights, history = merge_import(plan, existing_flights, [XPRecord("2025-04", points=400)])

        # Assert
        assert [leg.date for leg in flights] == [date(2025, 3, 5), date(2025, 4, 3)]
        assert history == [XPRecord("2025-04", points=500)]
        assert plan.unresolved == []

    def test_keep_both_and_keep_existing(self, plan, existing_flights):
        plan = resolve_conflict(plan, 0, Resolution.KEEP_BOTH)
        plan = resolve_conflict(plan, 1, Resolution.KEEP_EXISTING)

        flights, history = merge_import(plan, existing_flights, [XPRecord("2025-04", points=400)])

        assert len(flights) == 3
        assert history == [XPRecord("2025-04", points=400)]
