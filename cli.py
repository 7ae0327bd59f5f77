"""
Command-line interface for the XP ledger.
Reads the extracted text of a Flying Blue activity export and prints the
parse result or the qualification cycle chain.
"""

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from xp_engine.cycles import find_active_cycle
from xp_engine.importer import build_cycles_from_import, settings_from_import
from xp_engine.tiers import load_config, parse_tier
from xp_ingest.errors import ImportFailure
from xp_ingest.parser import ensure_recognized, parse_activity_text


logger = logging.getLogger("xp_ledger")

LOG_LEVEL_ENV = "XP_LEDGER_LOG_LEVEL"


def configure_logging():
    """Configure root logging from XP_LEDGER_LOG_LEVEL (default WARNING)."""
    level_name = os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def load_export(path: str):
    """
    Read and parse an export file; exits with status 1 when the file is
    missing or nothing in it is recognised.
    """
    file_path = Path(path)
    if not file_path.exists():
        print(f"Error: File not found '{path}'.")
        sys.exit(1)

    text = file_path.read_text(encoding="utf-8", errors="replace")
    try:
        return ensure_recognized(parse_activity_text(text, load_config()))
    except ImportFailure as exc:
        logger.debug("Import failed: %s", exc.details)
        print(f"Error: {exc.message}")
        sys.exit(1)


def cmd_parse(args):
    """
    Print what was recognised in an export.

    Args:
        args: Parsed command-line arguments with fields:
            - file: path to the extracted export text
    """
    result = load_export(args.file)

    print("\n=== Activity Export ===\n")
    print(f"Language: {result.language}")
    if result.member_number:
        print(f"Member: {result.member_number}")
    if result.detected_tier is not None:
        print(f"Tier: {result.detected_tier.value}")
    if result.total_points is not None:
        print(f"Totals: {result.total_points} Miles, {result.total_xp or 0} XP, {result.total_uxp or 0} UXP")
    if result.oldest_date and result.newest_date:
        print(f"Period: {result.oldest_date.isoformat()} to {result.newest_date.isoformat()}")

    print(f"\n--- Flights ({len(result.flights)}) ---\n")
    for leg in result.flights:
        uxp = f", {leg.uxp} UXP" if leg.uxp else ""
        saf = f" (+{leg.saf_xp} SAF XP)" if leg.saf_xp else ""
        print(f"  {leg.date.isoformat()} {leg.route:<8} {leg.flight_number:<8} "
              f"{leg.points} Miles, {leg.xp} XP{uxp}{saf}")

    print("\n--- Monthly Earnings ---\n")
    if result.monthly_earnings:
        for month, earnings in result.earnings_by_month().items():
            for earning in earnings:
                xp = f", {earning.bonus_xp} XP" if earning.bonus_xp else ""
                print(f"  {month} {earning.category.value:<17} {earning.points} Miles{xp}")
    else:
        print("  (No earnings recorded)")

    if result.requalification_events:
        print("\n--- Requalifications ---\n")
        for event in result.requalification_events:
            tier = event.to_tier.value if event.to_tier else "?"
            print(f"  {event.date.isoformat()} -> {tier} "
                  f"(deducted {event.xp_deducted or 0} XP, rollover {event.rollover_xp or 0} XP)")

    for warning in result.warnings:
        print(f"\nWarning: {warning}")
    print()


def _settings_from_args(args, result):
    settings = settings_from_import(result).model_dump()

    if args.start_month:
        try:
            datetime.strptime(args.start_month, "%Y-%m")
        except ValueError:
            print(f"Error: Invalid month format '{args.start_month}'. Expected YYYY-MM.")
            sys.exit(1)
        settings["cycle_start_month"] = args.start_month

    if args.status:
        if parse_tier(args.status) is None:
            print(f"Error: Unknown status '{args.status}'. "
                  "Must be one of: Explorer, Silver, Gold, Platinum, Ultimate")
            sys.exit(1)
        settings["starting_status"] = args.status

    if args.xp is not None:
        settings["starting_xp"] = args.xp
    if args.uxp is not None:
        settings["starting_uxp"] = args.uxp
    if args.calendar_uxp:
        settings["ultimate_cycle_type"] = "calendar"
    return settings


def cmd_cycles(args):
    """
    Print the qualification cycle chain for an export.

    Args:
        args: Parsed command-line arguments with fields:
            - file: path to the extracted export text
            - start_month, status, xp, uxp: optional overrides of the
              settings derived from the export
            - today: optional evaluation date (YYYY-MM-DD)
            - calendar_uxp: count UXP per calendar year
    """
    today = None
    if args.today:
        try:
            today = datetime.strptime(args.today, "%Y-%m-%d").date()
        except ValueError:
            print(f"Error: Invalid date format '{args.today}'. Expected YYYY-MM-DD.")
            sys.exit(1)

    result = load_export(args.file)
    settings = _settings_from_args(args, result)
    cycles = build_cycles_from_import(result, settings=settings, today=today, config=load_config())
    active = find_active_cycle(cycles, today)

    for cycle in cycles:
        marker = " (active)" if cycle is active else ""
        print(f"\n=== Cycle {cycle.index + 1}: {cycle.start_month} to "
              f"{cycle.ledger[-1].month}{marker} ===\n")
        print(f"Start: {cycle.start_tier.value} with {cycle.rollover_in} XP rollover")
        print(f"End: {cycle.end_tier.value} (projected {cycle.projected_end_tier.value})")
        print(f"XP: {cycle.actual_xp} actual, {cycle.projected_xp} projected, "
              f"threshold {cycle.threshold}")
        if cycle.ended_by_level_up:
            state = "reached" if cycle.level_up_is_actual else "projected"
            print(f"Level-up {state} in {cycle.level_up_month}, {cycle.rollover_out} XP rolls over")
        print(f"UXP: {cycle.actual_uxp} actual, {cycle.projected_uxp} projected"
              f"{' (Ultimate)' if cycle.is_ultimate_track else ''}")
        if cycle.uxp_waste:
            print(f"UXP above cap: {cycle.uxp_waste}")

        print("\n  Month     XP   Proj  Cum   ProjCum  Flights")
        for row in cycle.ledger:
            print(f"  {row.month}  {row.actual_xp:>4} {row.projected_xp:>5} "
                  f"{row.actual_cumulative:>5} {row.projected_cumulative:>8}  "
                  f"{row.actual_flight_count}/{row.flight_count}")
    print()


def main():
    """Main CLI entry point."""
    configure_logging()

    parser = argparse.ArgumentParser(
        description="Flying Blue XP ledger CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Parse command
    parser_parse = subparsers.add_parser("parse", help="Show what was recognised in an export")
    parser_parse.add_argument("file", help="Extracted text of the activity export")

    # Cycles command
    parser_cycles = subparsers.add_parser("cycles", help="Show qualification cycles")
    parser_cycles.add_argument("file", help="Extracted text of the activity export")
    parser_cycles.add_argument("--start-month", help="First cycle month (YYYY-MM)")
    parser_cycles.add_argument("--status", help="Status at the first cycle start")
    parser_cycles.add_argument("--xp", type=int, default=None, help="Rollover XP into the first cycle")
    parser_cycles.add_argument("--uxp", type=int, default=None, help="Rollover UXP into the first cycle")
    parser_cycles.add_argument("--today", help="Evaluation date (YYYY-MM-DD)")
    parser_cycles.add_argument("--calendar-uxp", action="store_true",
                               help="Count UXP per calendar year")

    # Parse arguments
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Execute command
    if args.command == "parse":
        cmd_parse(args)
    elif args.command == "cycles":
        cmd_cycles(args)


if __name__ == "__main__":
    main()
