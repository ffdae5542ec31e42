"""
Export course records to ICS, CSV, and JSON.
"""
from __future__ import annotations

import csv
import hashlib
import json
import logging
import re
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import List, Sequence, Tuple

import icalendar
import pytz

from .model import CourseRecord
from .periods import group_consecutive_periods

logger = logging.getLogger(__name__)

# Mainland China timezone for calendar
DEFAULT_TZ = "Asia/Shanghai"

_DAY_NAMES = ["周一", "周二", "周三", "周四", "周五", "周六", "周日"]


def _parse_time_range(text: str) -> tuple[str, str] | None:
    """Parse time range like '08:00 - 08:45' or '01:30PM-02:15PM' into 24-hour times."""
    m = re.search(
        r"(\d{1,2}):(\d{2})\s*(AM|PM|am|pm)?\s*[-–~]\s*"
        r"(\d{1,2}):(\d{2})\s*(AM|PM|am|pm)?",
        text,
    )
    if not m:
        return None
    h1, m1, ap1, h2, m2, ap2 = m.groups()

    def to_24(h: str, mm: str, ap: str | None) -> str:
        hour = int(h)
        if ap:
            ap_u = ap.upper()
            if ap_u == "AM" and hour == 12:
                hour = 0
            elif ap_u == "PM" and hour != 12:
                hour += 12
        return f"{hour:02d}:{int(mm):02d}"

    return to_24(h1, m1, ap1), to_24(h2, m2, ap2)


def parse_period_times(text: str) -> List[Tuple[str, str]]:
    """'08:00-08:45,08:55-09:40' -> [('08:00', '08:45'), ('08:55', '09:40')]."""
    times: List[Tuple[str, str]] = []
    for part in text.split(","):
        if not part.strip():
            continue
        parsed = _parse_time_range(part)
        if not parsed:
            raise ValueError(f"Invalid period time range: {part.strip()!r}")
        times.append(parsed)
    return times


def _parse_time(day: date, time_str: str) -> datetime:
    """Combine a date with 'HH:MM' or 'HH:MM:SS'."""
    if len(time_str) == 5 and ":" in time_str:
        time_str = time_str + ":00"
    return datetime.strptime(f"{day.isoformat()} {time_str}", "%Y-%m-%d %H:%M:%S")


def export_ics(
    courses: Sequence[CourseRecord],
    out_path: str | Path,
    term_start: date,
    period_times: Sequence[Tuple[str, str]],
    tz_name: str = DEFAULT_TZ,
) -> int:
    """
    Export to iCalendar (.ics): one event per course, week and run of
    consecutive periods. Returns the number of events written.

    :param term_start: Any day of teaching week 1.
    :param period_times: (start, end) per 0-based period index.
    """
    tz = pytz.timezone(tz_name)
    week_one = term_start - timedelta(days=term_start.weekday())

    cal = icalendar.Calendar()
    cal.add("prodid", "-//EAMS Timetable Export//EN")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("x-wr-calname", "EAMS Timetable")
    cal.add("x-wr-timezone", tz_name)

    count = 0
    for c in courses:
        if not c.week_numbers:
            logger.warning("Course %r has no week information, not exported", c.name)
            continue
        for group in group_consecutive_periods(c.periods):
            if group[-1] >= len(period_times):
                logger.warning(
                    "No time configured for period %d of %r, skipped", group[-1] + 1, c.name
                )
                continue
            start_str = period_times[group[0]][0]
            end_str = period_times[group[-1]][1]

            for week in c.week_numbers:
                day = week_one + timedelta(days=(week - 1) * 7 + c.day_of_week)
                start = _parse_time(day, start_str)
                end = _parse_time(day, end_str)

                event = icalendar.Event()
                uid_string = f"{c.number or c.name}-{day.isoformat()}-{start.isoformat()}"
                uid_hash = hashlib.md5(uid_string.encode("utf-8")).hexdigest()
                event.add("uid", f"{uid_hash}@eams-timetable-export")

                event.add("summary", c.name)
                event.add(
                    "description",
                    f"教师: {c.teacher_name}\n课程序号: {c.number}\n第{week}周 {_DAY_NAMES[c.day_of_week % 7]}",
                )
                event.add("location", c.room)
                event.add("dtstart", tz.localize(start))
                event.add("dtend", tz.localize(end))
                event.add("dtstamp", datetime.now(timezone.utc))

                cal.add_component(event)
                count += 1

    Path(out_path).write_text(cal.to_ical().decode("utf-8"), encoding="utf-8")
    return count


def _flatten(row: dict) -> dict:
    return {
        k: ",".join(str(v) for v in val) if isinstance(val, list) else val
        for k, val in row.items()
    }


def export_csv(courses: Sequence[CourseRecord], out_path: str | Path) -> None:
    """Export course records to CSV."""
    if not courses:
        Path(out_path).write_text("", encoding="utf-8")
        return
    rows = [_flatten(c.to_dict()) for c in courses]
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=list(rows[0].keys()), extrasaction="ignore")
        w.writeheader()
        w.writerows(rows)


def export_json(courses: Sequence[CourseRecord], out_path: str | Path) -> None:
    """Export course records to JSON."""
    Path(out_path).write_text(
        json.dumps([c.to_dict() for c in courses], indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


def export(
    courses: Sequence[CourseRecord],
    out_path: str | Path,
    fmt: str,
    term_start: date | None = None,
    period_times: Sequence[Tuple[str, str]] | None = None,
    tz_name: str = DEFAULT_TZ,
) -> None:
    """Export to the given format: ics, csv, or json."""
    fmt = fmt.lower()
    if fmt == "ics":
        if term_start is None or not period_times:
            raise ValueError("ICS export needs term_start and period_times.")
        export_ics(courses, out_path, term_start, period_times, tz_name)
    elif fmt == "csv":
        export_csv(courses, out_path)
    elif fmt == "json":
        export_json(courses, out_path)
    else:
        raise ValueError(f"Unsupported format: {fmt}. Use ics, csv, or json.")
