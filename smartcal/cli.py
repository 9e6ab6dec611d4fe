#!/usr/bin/env python3
"""
smartcal CLI - natural-language calendar commands and Google sync.

Commands:
  ask TEXT        Run a free-text command ("create standup tomorrow at 9:30")
  free            List free slots in the work window (default: today)
  sync            Push local events to Google Calendar
  pull            Import Google Calendar events into the local store
  login           Run the Google OAuth flow and store token.json

Usage:
  smartcal ask "view today"
  smartcal free --date 2026-01-08 --json
  smartcal sync --json --compact
  smartcal pull --days 30
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, TYPE_CHECKING

from .agents import CalendarAgent
from .core import Config, SQLiteEventStore
from .core.errors import SmartCalError
from .core.timeutils import day_bounds, resolve_timezone, to_local
from .scheduling import find_available_slots
from .sync import SyncReconciler, TombstoneLedger, pull_into_store, push_store

# Lazy import GoogleCalendarProvider (google libraries are slow to import)
if TYPE_CHECKING:
    from .integrations.google_calendar import GoogleCalendarProvider


# =============================================================================
# OUTPUT UTILITIES
# =============================================================================

def emit_json(payload: Any, compact: bool = False) -> None:
    """Emit JSON output, optionally compact."""
    if compact:
        print(json.dumps(payload, separators=(",", ":"), default=str))
    else:
        print(json.dumps(payload, indent=2, default=str))


def emit_error(args: argparse.Namespace, error: Exception) -> int:
    if args.json:
        emit_json({"error": str(error), "kind": type(error).__name__}, compact=args.compact)
    else:
        print(f"Error: {error}", file=sys.stderr)
    return 1


# =============================================================================
# WIRING
# =============================================================================

def open_store(config: Config) -> SQLiteEventStore:
    store = SQLiteEventStore(config.get_database_path())
    store.initialize()
    return store


def open_tombstones(config: Config) -> TombstoneLedger:
    return TombstoneLedger(config.get_tombstones_path())


def build_provider(config: Config) -> GoogleCalendarProvider:
    from .integrations.google_calendar import GoogleCalendarProvider
    return GoogleCalendarProvider(config.get_credentials_dir())


def build_reconciler(config: Config) -> SyncReconciler:
    return SyncReconciler(
        build_provider(config),
        calendar_id=config.get("calendar_id", default="primary"),
        tz_name=config.get("timezone", default="UTC"),
        tombstones=open_tombstones(config),
    )


# =============================================================================
# CLI COMMANDS
# =============================================================================

def cmd_ask(args: argparse.Namespace, config: Config) -> int:
    """Run one free-text command against the local store."""
    try:
        agent = CalendarAgent(open_store(config), config, tombstones=open_tombstones(config))
        response = agent.handle(" ".join(args.text))
    except SmartCalError as e:
        return emit_error(args, e)

    if args.json:
        emit_json(response.to_dict(), compact=args.compact)
    else:
        print(response.message)
        if response.suggestions:
            print()
            print("Try: " + " | ".join(response.suggestions))
    return 0 if response.success else 2


def cmd_free(args: argparse.Namespace, config: Config) -> int:
    """List free slots for one day."""
    tz = resolve_timezone(config.get("timezone", default="UTC"))
    day = date.fromisoformat(args.date) if args.date else datetime.now(tz).date()
    work_start, work_end = config.get_work_hours()
    if args.work_start is not None:
        work_start = args.work_start
    if args.work_end is not None:
        work_end = args.work_end
    slot_minutes = args.duration or int(config.get("slot_minutes", section="preferences", default=60))

    try:
        start, end = day_bounds(day, tz)
        events = open_store(config).query(start, end)
    except SmartCalError as e:
        return emit_error(args, e)

    slots = find_available_slots(day, events, work_start, work_end, slot_minutes, tz)
    if args.json:
        emit_json({"date": day.isoformat(), "slots": [s.to_dict() for s in slots],
                   "count": len(slots)}, compact=args.compact)
    else:
        print(f"Free slots on {day.isoformat()} ({len(slots)}):")
        for slot in slots:
            print(f"  {to_local(slot.start, tz):%H:%M} - {to_local(slot.end, tz):%H:%M}")
    return 0


def cmd_sync(args: argparse.Namespace, config: Config) -> int:
    """Push the local store to Google Calendar."""
    try:
        result = push_store(build_reconciler(config), open_store(config))
    except SmartCalError as e:
        return emit_error(args, e)

    if args.json:
        emit_json(result.to_dict(), compact=args.compact)
    else:
        print(f"Created: {result.created}  Updated: {result.updated}  Deleted: {result.deleted}")
        for error in result.errors:
            print(f"  ! {error}")
    return 0 if result.ok else 2


def cmd_pull(args: argparse.Namespace, config: Config) -> int:
    """Import remote events for the next N days."""
    tz = resolve_timezone(config.get("timezone", default="UTC"))
    start, _ = day_bounds(datetime.now(tz).date(), tz)
    date_range = (start, start + timedelta(days=args.days))
    try:
        stored = pull_into_store(build_reconciler(config), open_store(config), date_range)
    except SmartCalError as e:
        return emit_error(args, e)

    if args.json:
        emit_json({"imported": [e.to_dict() for e in stored], "count": len(stored)},
                  compact=args.compact)
    else:
        print(f"Imported {len(stored)} event(s)")
        for event in stored:
            print(f"  {to_local(event.start_time, tz):%Y-%m-%d %H:%M}: {event.title}")
    return 0


def cmd_login(args: argparse.Namespace, config: Config) -> int:
    """Run the OAuth flow once so later syncs can use token.json."""
    try:
        build_provider(config).authenticate(interactive=True)
    except SmartCalError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("\nSetup instructions:", file=sys.stderr)
        print("1. Go to https://console.cloud.google.com/apis/credentials", file=sys.stderr)
        print("2. Create OAuth 2.0 Client ID (Desktop app)", file=sys.stderr)
        print(f"3. Save as {config.get_credentials_dir()}/credentials.json", file=sys.stderr)
        return 1
    print("Authenticated with Google Calendar")
    return 0


# =============================================================================
# OUTPUT ARGUMENTS (shared across commands)
# =============================================================================

def add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON."
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Minify JSON output."
    )


# =============================================================================
# MAIN
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smartcal",
        description="Natural-language calendar assistant with Google Calendar sync.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ask "create team meeting tomorrow at 14:00 in Room 4"
  %(prog)s ask "delete Dentist"
  %(prog)s free --json
  %(prog)s sync
"""
    )
    parser.add_argument(
        "--config-dir",
        type=str,
        default=None,
        help="Directory with settings.json and preferences.json"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    p_ask = subparsers.add_parser("ask", help="Run a free-text calendar command")
    p_ask.add_argument("text", nargs="+", help="Command text")
    add_output_args(p_ask)

    p_free = subparsers.add_parser("free", help="Find free time slots")
    p_free.add_argument("--date", help="Day to inspect, YYYY-MM-DD (default: today)")
    p_free.add_argument("--duration", type=int, help="Slot length in minutes")
    p_free.add_argument("--work-start", type=int, help="Working hours start")
    p_free.add_argument("--work-end", type=int, help="Working hours end")
    add_output_args(p_free)

    p_sync = subparsers.add_parser("sync", help="Push local events to Google Calendar")
    add_output_args(p_sync)

    p_pull = subparsers.add_parser("pull", help="Import events from Google Calendar")
    p_pull.add_argument("--days", type=int, default=30, help="Days ahead to import (default: 30)")
    add_output_args(p_pull)

    subparsers.add_parser("login", help="Authenticate with Google Calendar")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    config = Config(Path(args.config_dir) if args.config_dir else None)

    commands = {
        "ask": cmd_ask,
        "free": cmd_free,
        "sync": cmd_sync,
        "pull": cmd_pull,
        "login": cmd_login,
    }
    return commands[args.command](args, config)


if __name__ == "__main__":
    sys.exit(main())
