"""
Unit tests for xp_ingest/segmenter.py
Tests logical line recovery from run-together export text.
"""

from datetime import date

from xp_ingest.segmenter import find_credited_date, segment_raw_lines, segment_text

TRIP_TEXT = (
    "12 Oct 2025 My trip to Berlin 2624 Miles 32 XP 32 UXP "
    "AMS - BER KL1775 Miles earned based on euros spent 1312 Miles 16 XP 16 UXP "
    "on 2 Oct 2025 "
    "BER - AMS KL1776 Miles earned based on euros spent 1136 Miles 13 XP 13 UXP "
    "on 5 Oct 2025 "
    "Sustainable Aviation Fuel 176 Miles 15 XP 15 UXP "
    "10 Oct 2025 Hotel - BOOKING.COM 367 Miles 0 XP"
)


class TestSegmentText:
    """Tests for segment_text."""

    def test_breaks_before_transaction_dates(self):
        """Each transaction date opens a new line."""
        lines = segment_text("10 dec 2025 Hotel - ACCOR 367 Miles 0 XP 9 dec 2025 AMEX 50 Miles")
        assert lines == ["10 dec 2025 Hotel - ACCOR 367 Miles 0 XP", "9 dec 2025 AMEX 50 Miles"]

    def test_trip_block(self):
        """Segments, credited-on markers and SAF lines each get their own line."""
        # Act
        lines = segment_text(TRIP_TEXT)

        # Assert
        assert lines == [
            "12 Oct 2025 My trip to Berlin 2624 Miles 32 XP 32 UXP",
            "AMS - BER KL1775 Miles earned based on euros spent 1312 Miles 16 XP 16 UXP",
            "on 2 Oct 2025",
            "BER - AMS KL1776 Miles earned based on euros spent 1136 Miles 13 XP 13 UXP",
            "on 5 Oct 2025",
            "Sustainable Aviation Fuel 176 Miles 15 XP 15 UXP",
            "10 Oct 2025 Hotel - BOOKING.COM 367 Miles 0 XP",
        ]

    def test_marker_right_after_date_stays_on_line(self):
        """A trip marker directly after a date does not split the line."""
        lines = segment_text("12 nov 2025 Mijn reis naar Parijs 500 Miles")
        assert lines == ["12 nov 2025 Mijn reis naar Parijs 500 Miles"]

    def test_idempotent_on_segmented_text(self):
        """Segmenting already segmented text gives the same lines."""
        # Arrange
        first = segment_text(TRIP_TEXT)

        # Act
        second = segment_text("\n".join(first))

        # Assert
        assert second == first

    def test_existing_line_breaks_are_not_trusted(self):
        """Arbitrary line breaks inside a transaction are collapsed."""
        lines = segment_text("10 dec\n2025 Hotel -\nACCOR 367\nMiles")
        assert lines == ["10 dec 2025 Hotel - ACCOR 367 Miles"]

    def test_empty_text(self):
        assert segment_text("") == []
        assert segment_text("   \n ") == []

    def test_raw_lines_carry_offsets(self):
        """Offsets point into the collapsed text."""
        raw = segment_raw_lines("10 dec 2025 AMEX 50 Miles 9 dec 2025 AMEX 20 Miles")
        assert [line.offset for line in raw] == [0, 26]


class TestFindCreditedDate:
    """Tests for find_credited_date."""

    def test_marker_in_several_languages(self):
        assert find_credited_date("BER - AMS KL1776 13 XP op 5 dec 2025") == date(2025, 12, 5)
        assert find_credited_date("on Nov 12, 2025") == date(2025, 11, 12)
        assert find_credited_date("le 3 mars 2025") == date(2025, 3, 3)

    def test_on_without_date(self):
        """"on" followed by anything other than a date is ignored."""
        assert find_credited_date("Miles earned based on euros spent") is None
