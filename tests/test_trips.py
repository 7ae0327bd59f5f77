"""
Unit tests for xp_ingest/trips.py
Tests flight leg extraction from trip blocks.
"""

from datetime import date

from xp_ingest.trips import (
    AMOUNT_LOOKAHEAD_LINES,
    MAX_TRIP_LINES,
    extract_trip,
    find_flight_date,
    match_segment,
)

POSTED = date(2025, 10, 12)


class TestMatchSegment:
    """Tests for flight segment recognition."""

    def test_marketing_flight_number(self):
        assert match_segment("AMS - BER KL1775 1312 Miles 16 XP") == (
            "AMS", "BER", "KL1775", "KL", "1312 Miles 16 XP",
        )

    def test_partner_leg_gets_pseudo_number(self):
        """Partner legs without a flight number are keyed by airline name."""
        origin, destination, number, airline, _ = match_segment(
            "AMS - ATL Delta Air Lines 2000 Miles 20 XP"
        )
        assert (origin, destination, number, airline) == ("AMS", "ATL", "DL0000", "DL")

    def test_not_a_segment(self):
        assert match_segment("My trip to Berlin") is None
        assert match_segment("AMS - BER without airline") is None


class TestExtractTrip:
    """Tests for extract_trip."""

    def test_two_legs_with_saf_on_first_leg(self):
        """SAF from the block is attributed to the first leg only."""
        # Arrange
        lines = [
            "12 Oct 2025 My trip to Berlin 2624 Miles 32 XP 32 UXP",
            "AMS - BER KL1775 Miles earned based on euros spent 1312 Miles 16 XP 16 UXP",
            "on 2 Oct 2025",
            "BER - AMS KL1776 Miles earned based on euros spent 1136 Miles 13 XP 13 UXP",
            "on 5 Oct 2025",
            "Sustainable Aviation Fuel 176 Miles 15 XP 15 UXP",
            "10 Oct 2025 Hotel - BOOKING.COM 367 Miles 0 XP",
        ]

        # Act
        extraction = extract_trip(lines, 0, POSTED)

        # Assert
        first, second = extraction.legs
        assert first.flight_number == "KL1775"
        assert first.date == date(2025, 10, 2)
        assert (first.points, first.xp, first.uxp) == (1312, 16, 16)
        assert first.saf_xp == 15
        assert first.saf_points == 176
        assert first.paid_with_cash is True
        assert second.date == date(2025, 10, 5)
        assert second.saf_xp == 0
        assert first.total_xp == 31
        # Resumes at the hotel line
        assert extraction.next_index == 6

    def test_segment_on_header_line(self):
        """A dated line that is itself a segment becomes a leg."""
        lines = ["12 Oct 2025 AMS - CDG AF1241 1000 Miles 10 XP 10 UXP"]
        extraction = extract_trip(lines, 0, POSTED)
        assert len(extraction.legs) == 1
        assert extraction.legs[0].date == POSTED
        assert extraction.legs[0].uxp == 10

    def test_figures_on_following_line(self):
        """Figures missing from the segment line are read from later lines."""
        # Arrange
        lines = [
            "12 Oct 2025 My trip to Paris",
            "AMS - CDG AF1241",
            "1000 Miles 10 XP 10 UXP",
            "on 3 Oct 2025",
        ]

        # Act
        leg = extract_trip(lines, 0, POSTED).legs[0]

        # Assert
        assert (leg.points, leg.xp, leg.uxp) == (1000, 10, 10)
        assert leg.date == date(2025, 10, 3)

    def test_amount_lookahead_is_bounded(self):
        """Figures further away than the lookahead window are not used."""
        lines = ["12 Oct 2025 My trip to Paris", "AMS - CDG AF1241"]
        lines += ["booking reference"] * AMOUNT_LOOKAHEAD_LINES
        lines += ["1000 Miles 10 XP"]
        leg = extract_trip(lines, 0, POSTED).legs[0]
        assert leg.xp == 0
        assert leg.points == 0

    def test_trip_scan_is_bounded(self):
        """Segments beyond the trip lookahead are not collected."""
        lines = ["12 Oct 2025 My trip to Paris"]
        lines += ["booking reference"] * (MAX_TRIP_LINES + 5)
        lines += ["AMS - CDG AF1241 1000 Miles 10 XP"]
        extraction = extract_trip(lines, 0, POSTED)
        assert extraction.legs == []
        assert extraction.next_index == MAX_TRIP_LINES + 1

    def test_partner_leg_has_no_uxp(self):
        """Only UXP carriers accrue UXP."""
        lines = ["12 Oct 2025 My trip to Atlanta", "AMS - ATL Delta Air Lines 2000 Miles 20 XP 20 UXP"]
        leg = extract_trip(lines, 0, POSTED).legs[0]
        assert leg.airline == "DL"
        assert leg.uxp is None

    def test_posting_date_fallback(self):
        """Without an "on <date>" marker the posting date is used."""
        lines = ["12 Oct 2025 My trip to Paris", "AMS - CDG AF1241 1000 Miles 10 XP"]
        assert find_flight_date(lines, 1, "1000 Miles 10 XP") is None
        assert extract_trip(lines, 0, POSTED).legs[0].date == POSTED
