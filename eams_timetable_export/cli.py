"""
Command-line interface: parse a saved EAMS timetable page and export it.
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from . import __version__
from .context import ParserContext
from .export import DEFAULT_TZ, export, parse_period_times
from .schedule_html import load_schedule_html, parse_schedule_page

_DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Export an EAMS timetable (我的课表) to ICS / CSV / JSON.\n"
            "Pass the saved timetable page; the iframe content is read automatically."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("html_path", metavar="HTML_PATH", help="Saved timetable page (outer page or iframe HTML).")
    parser.add_argument(
        "-o",
        "--output",
        default="eams_timetable",
        help="Output path (without extension). Default: eams_timetable",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["ics", "csv", "json"],
        default="json",
        help="Export format. Default: json",
    )
    parser.add_argument(
        "--units-per-day",
        type=int,
        help="Periods per day. Default: read from 'var unitCount' in the page, else 10.",
    )
    parser.add_argument(
        "--term-start",
        metavar="YYYY-MM-DD",
        help="(ICS) A day in teaching week 1, e.g. 2025-02-24.",
    )
    parser.add_argument(
        "--period-times",
        metavar="LIST",
        help="(ICS) Comma-separated time range per period, e.g. 08:00-08:45,08:55-09:40,...",
    )
    parser.add_argument(
        "--timezone",
        default=DEFAULT_TZ,
        help=f"(ICS) Calendar timezone. Default: {DEFAULT_TZ}",
    )
    parser.add_argument(
        "--list-courses",
        action="store_true",
        help="List parsed courses (number, name, day, periods) then exit.",
    )
    parser.add_argument("--debug", action="store_true", help="Log every merge decision.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show progress logging.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    level = logging.DEBUG if args.debug else logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    try:
        html = load_schedule_html(html_path=args.html_path)
    except OSError as e:
        print(f"Error reading {args.html_path}: {e}", file=sys.stderr)
        return 1

    overrides = {"debug": args.debug}
    if args.units_per_day:
        overrides["units_per_day"] = args.units_per_day
    schedule = parse_schedule_page(html, ParserContext.from_html(html, **overrides))
    courses = schedule.courses

    if not courses:
        print(
            "Error: no courses found in the page. "
            "Check that the saved file contains the timetable (iframe content included).",
            file=sys.stderr,
        )
        return 1

    if args.list_courses:
        print("Course Number    | Day | Periods      | Course Name")
        print("-" * 60)
        for c in courses:
            day = _DAY_NAMES[c.day_of_week] if 0 <= c.day_of_week < 7 else str(c.day_of_week)
            print(f"{c.number:<16} | {day:<3} | {c.formatted_periods:<12} | {c.name[:30]}")
        return 0

    term_start = None
    period_times = None
    if args.format == "ics":
        if not args.term_start or not args.period_times:
            print("Error: ICS export requires --term-start and --period-times.", file=sys.stderr)
            return 1
        try:
            term_start = date.fromisoformat(args.term_start)
            period_times = parse_period_times(args.period_times)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    ext = {"ics": ".ics", "csv": ".csv", "json": ".json"}[args.format]
    out_path = Path(args.output).with_suffix(ext) if Path(args.output).suffix else Path(args.output + ext)
    export(courses, out_path, args.format, term_start=term_start, period_times=period_times, tz_name=args.timezone)
    print(f"Exported {len(courses)} course(s) to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
