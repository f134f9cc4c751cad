"""Fetch a student's term timetable from the campus gateway as JSON or table.

Standalone CLI script around ScheduleService. Resolves the ucode, finds the
current term, fetches every week and prints the aggregated schedule.

Run with: python scripts/fetch_schedule.py --ucode <UCODE>
Table:    python scripts/fetch_schedule.py --table --week 3
One-by-one: python scripts/fetch_schedule.py --sequential
Metadata: python scripts/fetch_schedule.py --meta
User:     python scripts/fetch_schedule.py --user
Season:   python scripts/fetch_schedule.py --season 2025-06-01

The ucode defaults to TEST_STUDENT_UCODE from .env.

Exit codes:
  0 = success (JSON or table on stdout, or file written with --output)
  1 = error (message on stderr)
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.timetable.config import get_config  # noqa: E402
from src.timetable.errors import TimetableError  # noqa: E402
from src.timetable.logging import setup_logging  # noqa: E402
from src.timetable.models import AggregatedSchedule  # noqa: E402
from src.timetable.service import ScheduleService  # noqa: E402

_WEEKDAY_NAMES = {
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
    7: "Sunday",
}


def _log(msg: str) -> None:
    """Write diagnostic messages to stderr so stdout stays clean for JSON."""
    print(msg, file=sys.stderr)


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Get a student's term timetable as JSON or table.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--ucode",
        type=str,
        default=None,
        help="Student ucode (default: TEST_STUDENT_UCODE).",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Fetch weeks one at a time instead of all at once.",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines on stderr.",
    )

    output_group = parser.add_mutually_exclusive_group()
    output_group.add_argument(
        "--table",
        action="store_true",
        help="Output a human-readable table for one week (see --week).",
    )
    output_group.add_argument(
        "--meta",
        action="store_true",
        help="Output terms and the current term's weeks only.",
    )
    output_group.add_argument(
        "--user",
        action="store_true",
        help="Output the resolved user credential and profile.",
    )
    output_group.add_argument(
        "--season",
        nargs="?",
        const="",
        default=None,
        metavar="DATE",
        help="Output season and bell schedule for DATE (YYYY-MM-DD, default today).",
    )

    parser.add_argument(
        "--week",
        type=int,
        default=None,
        help="Week number for --table (default: lowest week returned).",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write JSON to this file instead of stdout.",
    )
    return parser.parse_args()


def _format_week_table(schedule: AggregatedSchedule, week: int | None) -> str:
    """Format one week of the schedule as a table.

    Columns: Day | Slot | Time | Course | Room | Teachers
    Free slots are skipped.
    """
    if not schedule.weeks:
        return "(no weeks returned)"
    if week is None:
        week = min(schedule.weeks)
    days = schedule.weeks.get(week)
    if days is None:
        return f"(week {week} not available)"

    headers = ["Day", "Slot", "Time", "Course", "Room", "Teachers"]
    rows = []
    for day in days:
        for slot in day.slots:
            course = slot.course
            if course is None:
                continue
            index = slot.slot_number - 1
            start, end = (
                schedule.time_table[index]
                if 0 <= index < len(schedule.time_table)
                else ("?", "?")
            )
            rows.append(
                [
                    _WEEKDAY_NAMES.get(day.weekday, str(day.weekday)),
                    str(slot.slot_number),
                    f"{start}-{end}",
                    course.name,
                    course.classroom or "-",
                    ", ".join(t for t in course.teachers if t) or "-",
                ]
            )

    if not rows:
        return f"(no classes in week {week})"

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)
    row_lines = [
        " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)) for row in rows
    ]
    return "\n".join([f"Week {week} ({schedule.season.value})", header_line, separator, *row_lines])


def _emit(payload: object, output_path: str | None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output_path is None:
        print(text)
        return
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(text, encoding="utf-8")
    _log(f"  Written to {output_path}")


async def main(args: argparse.Namespace) -> None:
    config = get_config()
    setup_logging(json_output=args.json_logs or config.log_json, log_level=config.log_level, stream=sys.stderr)

    service = ScheduleService(config)
    try:
        if args.season is not None:
            result = service.season_and_timetable(args.season or None)
            _emit(result.model_dump(mode="json"), args.output)
            return

        ucode = args.ucode or config.test_student_ucode
        if not ucode:
            raise SystemExit("ERROR: no --ucode given and TEST_STUDENT_UCODE is not set")

        if args.user:
            user = await service.resolve_user(ucode)
            _emit(user.model_dump(mode="json"), args.output)
        elif args.meta:
            meta = await service.term_and_week_metadata(ucode)
            _emit(meta.model_dump(mode="json"), args.output)
        else:
            _log(f"fetch_schedule: starting ({'sequential' if args.sequential else 'parallel'})")
            schedule = await service.aggregate_schedule_for(
                ucode, use_cache=False, parallel=not args.sequential
            )
            _log(f"  Aggregated {len(schedule.weeks)} weeks")
            if args.table:
                print(_format_week_table(schedule, args.week))
            else:
                _emit(schedule.model_dump(mode="json"), args.output)
        await service.drain()
    finally:
        service.close()

    _log("fetch_schedule: done")


if __name__ == "__main__":
    args = _parse_args()
    try:
        asyncio.run(main(args))
    except (TimetableError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
