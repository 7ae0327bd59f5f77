"""
Unit tests for xp_ingest/parser.py, header.py and validator.py
Tests the full parse of an activity export.
"""

import logging
from datetime import date

import pytest

from xp_engine.tiers import Tier
from xp_ingest.errors import ImportFailure
from xp_ingest.header import detect_language
from xp_ingest.models import EarningCategory
from xp_ingest.parser import ensure_recognized, parse_activity_text
from xp_ingest.validator import validate_export_text

HEADER = (
    "JANE DOE PLATINUM Flying Blue number: 1234567890 "
    "Activity history 245000 Miles 320 XP 950 UXP "
    "11 dec 2025 • Page 1/18 "
)

TRIP = (
    "12 Oct 2025 My trip to Berlin 2624 Miles 32 XP 32 UXP "
    "AMS - BER KL1775 Miles earned based on euros spent 1312 Miles 16 XP 16 UXP "
    "on 2 Oct 2025 "
    "BER - AMS KL1776 Miles earned based on euros spent 1136 Miles 13 XP 13 UXP "
    "on 5 Oct 2025 "
    "Sustainable Aviation Fuel 176 Miles 15 XP 15 UXP "
)

EXPORT_TEXT = (
    HEADER
    + "10 dec 2025 Hotel - BOOKING.COM 367 Miles 0 XP "
    + "9 dec 2025 AMERICAN EXPRESS 1200 Miles 0 XP "
    + TRIP
    + "8 Oct 2025 XP-counter deduction -300 XP Platinum reached "
    + "8 Oct 2025 Surplus XP available 25 XP "
    + "5 Sep 2025 Flight ticket -25000 Miles"
)


class TestParseActivityText:
    """Tests for parse_activity_text."""

    def test_header_fields(self):
        """Tier, totals, member number and export date come from the header."""
        # Act
        result = parse_activity_text(EXPORT_TEXT)

        # Assert
        assert result.header_tier == Tier.PLATINUM
        assert result.detected_tier == Tier.PLATINUM
        assert (result.total_points, result.total_xp, result.total_uxp) == (245000, 320, 950)
        assert result.member_number == "1234567890"
        assert result.export_date == date(2025, 12, 11)
        assert result.language == "en"

    def test_flights(self):
        """Trip blocks become flight legs with SAF on the first leg."""
        result = parse_activity_text(EXPORT_TEXT)

        assert [leg.flight_number for leg in result.flights] == ["KL1775", "KL1776"]
        assert [leg.date for leg in result.flights] == [date(2025, 10, 2), date(2025, 10, 5)]
        assert [leg.saf_xp for leg in result.flights] == [15, 0]

    def test_monthly_earnings(self):
        """Non-flight lines are bucketed per month and category."""
        # Act
        result = parse_activity_text(EXPORT_TEXT)

        # Assert
        buckets = [(e.month, e.category, e.points) for e in result.monthly_earnings]
        assert buckets == [
            ("2025-09", EarningCategory.DEBIT, -25000),
            ("2025-12", EarningCategory.CARD_SPEND, 1200),
            ("2025-12", EarningCategory.HOTEL, 367),
        ]

    def test_category_totals_match_raw_points(self):
        """Every extracted point lands in exactly one category."""
        result = parse_activity_text(EXPORT_TEXT)
        assert sum(result.category_totals().values()) == result.raw_earning_points
        assert result.raw_earning_points == 367 + 1200 - 25000

    def test_requalification_event(self):
        """Deduction, tier and surplus signals merge into one event."""
        result = parse_activity_text(EXPORT_TEXT)

        assert len(result.requalification_events) == 1
        event = result.requalification_events[0]
        assert event.date == date(2025, 10, 8)
        assert event.to_tier == Tier.PLATINUM
        assert event.xp_deducted == 300
        assert event.rollover_xp == 25

    def test_date_range(self):
        result = parse_activity_text(EXPORT_TEXT)
        assert result.oldest_date == date(2025, 9, 5)
        assert result.newest_date == date(2025, 12, 10)

    def test_parse_is_repeatable(self):
        """Parsing the same text twice gives equal results."""
        assert parse_activity_text(EXPORT_TEXT) == parse_activity_text(EXPORT_TEXT)

    def test_undated_tier_line_within_lookahead(self):
        """An undated tier line three lines after the deduction names the tier."""
        # Arrange
        text = (
            "8 okt 2025 Aftrek XP-teller -180 XP "
            "8 okt 2025 AMERICAN EXPRESS 100 Miles "
            "8 okt 2025 Surplus XP beschikbaar 25 XP "
            "Platina bereikt"
        )

        # Act
        events = parse_activity_text(text).requalification_events

        # Assert
        assert len(events) == 1
        assert (events[0].date, events[0].to_tier, events[0].xp_deducted, events[0].rollover_xp) == (
            date(2025, 10, 8), Tier.PLATINUM, 180, 25,
        )

    def test_tier_line_beyond_lookahead(self):
        """Past the lookahead the tier is inferred from the deduction size."""
        text = (
            "8 okt 2025 Aftrek XP-teller -180 XP "
            + "8 okt 2025 AMERICAN EXPRESS 100 Miles " * 4
            + "Platina bereikt"
        )
        events = parse_activity_text(text).requalification_events
        assert len(events) == 1
        assert events[0].to_tier == Tier.GOLD

    def test_header_tier_takes_precedence(self):
        """The requalification tier is only a fallback for a missing header tier."""
        text = (
            "JANE DOE GOLD "
            "8 Oct 2025 XP-counter deduction -300 XP Platinum reached "
            "3 Sep 2025 AMERICAN EXPRESS 1200 Miles 0 XP"
        )
        result = parse_activity_text(text)
        assert result.header_tier == Tier.GOLD
        assert result.detected_tier == Tier.GOLD
        assert result.latest_requalification.to_tier == Tier.PLATINUM

    def test_localized_status_lines(self):
        """Dutch and French status lines create requalification events."""
        # Act
        dutch = parse_activity_text("8 okt 2025 Platina bereikt 9 okt 2025 Goud bereikt")
        french = parse_activity_text("8 oct 2025 Platine atteint")

        # Assert
        assert [(e.date, e.to_tier) for e in dutch.requalification_events] == [
            (date(2025, 10, 8), Tier.PLATINUM),
            (date(2025, 10, 9), Tier.GOLD),
        ]
        assert dutch.detected_tier == Tier.GOLD
        assert [e.to_tier for e in french.requalification_events] == [Tier.PLATINUM]

    def test_localized_header_tier(self):
        """A header tier printed in Dutch still wins over the events."""
        text = (
            "JAN JANSEN PLATINA Flying Blue-nummer 1234567890 "
            "8 okt 2025 Goud bereikt "
            "12 okt 2025 Hotel - BOOKING.COM 367 Miles 0 XP"
        )
        result = parse_activity_text(text)
        assert result.header_tier == Tier.PLATINUM
        assert result.detected_tier == Tier.PLATINUM
        assert result.member_number == "1234567890"

    def test_requalification_tier_fallback(self):
        text = (
            "8 Oct 2025 XP-counter deduction -180 XP Gold reached "
            "3 Sep 2025 AMERICAN EXPRESS 1200 Miles 0 XP"
        )
        result = parse_activity_text(text)
        assert result.header_tier is None
        assert result.detected_tier == Tier.GOLD

    def test_credited_on_date_books_earning(self):
        """Earnings are booked on the credited-on date when one follows."""
        result = parse_activity_text("3 Dec 2025 AMERICAN EXPRESS 1200 Miles 0 XP on 28 Nov 2025")
        assert [e.month for e in result.monthly_earnings] == ["2025-11"]

    def test_dutch_export(self):
        # Arrange
        text = (
            "12 okt 2025 Mijn reis naar Berlijn 2624 Miles 32 XP "
            "AMS - BER KL1775 Gespaarde Miles op basis van bestede euro's 1312 Miles 16 XP 16 UXP "
            "op 2 okt 2025"
        )

        # Act
        result = parse_activity_text(text)

        # Assert
        assert result.language == "nl"
        assert result.flights[0].date == date(2025, 10, 2)
        assert result.flights[0].paid_with_cash is True


class TestNothingRecognized:
    """Tests for graceful degradation on unusable input."""

    def test_empty_result_and_warnings(self, caplog):
        """Garbage input never raises; it yields an empty result."""
        # Act
        with caplog.at_level(logging.WARNING, logger="xp_ingest.parser"):
            result = parse_activity_text("hello world")

        # Assert
        assert result.is_empty
        assert result.warnings
        assert "Activity export" in caplog.text

    def test_ensure_recognized_raises(self):
        with pytest.raises(ImportFailure) as exc_info:
            ensure_recognized(parse_activity_text(""))
        assert exc_info.value.code == "NOTHING_RECOGNIZED"

    def test_ensure_recognized_passes_through(self):
        result = parse_activity_text(EXPORT_TEXT)
        assert ensure_recognized(result) is result


class TestValidator:
    """Tests for validate_export_text."""

    def test_plausible_export(self):
        report = validate_export_text(EXPORT_TEXT)
        assert report.looks_like_export
        assert report.warnings == []

    def test_problems_are_warnings(self):
        assert validate_export_text("").warnings == ["Text is empty"]
        report = validate_export_text("<html><body>12 Miles</body></html>")
        assert not report.looks_like_export
        assert any("HTML" in warning for warning in report.warnings)
        assert any("short" in warning for warning in report.warnings)

    def test_replacement_characters(self):
        report = validate_export_text(EXPORT_TEXT + " \ufffd")
        assert any("unreadable" in warning for warning in report.warnings)


class TestDetectLanguage:
    def test_default_is_english(self):
        assert detect_language("") == "en"

    def test_german(self):
        assert detect_language("Meine Reise nach Berlin, Seite 1/3, Gold erreicht") == "de"
