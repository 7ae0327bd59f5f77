"""
Unit tests for xp_engine/state.py
Tests the monthly state computation logic.
"""

from datetime import date

from xp_engine.models import ManualMonthXP, XPRecord
from xp_engine.state import add_months, build_month_state, month_key, month_range
from xp_ingest.models import FlightLeg

TODAY = date(2025, 6, 15)


def leg(day, xp, airline="KL", uxp=None):
    return FlightLeg(day, "AMS", "CDG", f"{airline}1234", airline, xp=xp, uxp=uxp)


class TestMonthKey:
    """Tests for the month helpers."""

    def test_month_key_extracts_yyyy_mm(self):
        """Verify month_key correctly extracts YYYY-MM from a date string."""
        assert month_key("2025-01-15") == "2025-01"
        assert month_key("2024-12-31") == "2024-12"
        assert month_key(date(2025, 2, 1)) == "2025-02"

    def test_add_months_crosses_years(self):
        assert add_months("2024-11", 3) == "2025-02"
        assert add_months("2025-01", -1) == "2024-12"
        assert month_range("2024-11", 3) == ["2024-11", "2024-12", "2025-01"]


class TestBuildMonthState:
    """Tests for the build_month_state function."""

    def test_actual_and_projected_split(self):
        """
        Flights on or before today count as actual; later ones are only
        projected.
        """
        # Arrange
        flights = [
            leg(date(2025, 6, 10), 15),
            leg(date(2025, 6, 15), 10),
            leg(date(2025, 6, 20), 25),
        ]

        # Act
        state = build_month_state(flights, [], None, TODAY)

        # Assert
        june = state["2025-06"]
        assert june.actual_xp == 25  # 15 + 10, today inclusive
        assert june.projected_xp == 50
        assert june.flight_count == 3
        assert june.actual_flight_count == 2

    def test_uxp_only_from_uxp_carriers(self):
        """Partner legs never add UXP."""
        flights = [leg(date(2025, 5, 1), 20, "KL", 20), leg(date(2025, 5, 2), 20, "DL", 20)]

        state = build_month_state(flights, [], None, TODAY)

        assert state["2025-05"].actual_uxp == 20
        assert state["2025-05"].projected_xp == 40

    def test_saf_counts_towards_xp(self):
        flight = FlightLeg(date(2025, 5, 1), "AMS", "CDG", "AF1241", "AF", xp=10, saf_xp=5)
        state = build_month_state([flight], [], None, TODAY)
        assert state["2025-05"].actual_xp == 15

    def test_history_by_month(self):
        """History in a future month is projected only."""
        history = [XPRecord("2025-05", xp=10), XPRecord("2025-07", xp=5)]

        state = build_month_state([], history, None, TODAY)

        assert state["2025-05"].actual_xp == 10
        assert state["2025-07"].actual_xp == 0
        assert state["2025-07"].projected_xp == 5

    def test_manual_corrections_are_additive(self):
        """Manual entries add to earned XP instead of replacing it."""
        # Arrange
        flights = [leg(date(2025, 3, 5), 30)]
        manual = {"2025-03": ManualMonthXP(card_xp=10, correction_xp=-5), "2025-04": 8}

        # Act
        state = build_month_state(flights, [], manual, TODAY)

        # Assert
        assert state["2025-03"].actual_xp == 35
        assert state["2025-03"].manual_xp == 5
        assert state["2025-04"].projected_xp == 8

    def test_future_deduction_keeps_projected_at_or_above_actual(self):
        """A negative correction in a later month reduces both series."""
        # Arrange
        manual = {"2025-09": ManualMonthXP(correction_xp=-10), "2025-10": 12}

        # Act
        state = build_month_state([], [], manual, date(2025, 3, 1))

        # Assert
        assert (state["2025-09"].actual_xp, state["2025-09"].projected_xp) == (-10, -10)
        assert (state["2025-10"].actual_xp, state["2025-10"].projected_xp) == (0, 12)
        assert all(month.projected_xp >= month.actual_xp for month in state.values())

    def test_no_inputs(self):
        assert build_month_state([], [], None, TODAY) == {}
