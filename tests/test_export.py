import csv
import json
from datetime import date

import pytest

from eams_timetable_export.export import (
    _parse_time_range,
    export,
    export_csv,
    export_ics,
    export_json,
    parse_period_times,
)
from eams_timetable_export.model import CourseRecord

PERIOD_TIMES = [
    ("08:00", "08:45"),
    ("08:55", "09:40"),
    ("10:00", "10:45"),
    ("10:55", "11:40"),
]


def _course(**kwargs):
    defaults = dict(
        external_id="101001",
        code="cs101",
        number="cs101.01",
        name="Intro",
        teacher_name="Zhang",
        room="Room 101",
        day_of_week=0,
        periods=[0, 1],
    )
    defaults.update(kwargs)
    return CourseRecord.with_bitmap("0110", **defaults)


class TestParseTimeRange:
    def test_24h(self):
        assert _parse_time_range("08:00 - 08:45") == ("08:00", "08:45")

    def test_12h_pm(self):
        assert _parse_time_range("01:30PM-02:15PM") == ("13:30", "14:15")

    def test_tilde(self):
        assert _parse_time_range("13:30~14:15") == ("13:30", "14:15")

    def test_no_match(self):
        assert _parse_time_range("TBA") is None


class TestParsePeriodTimes:
    def test_list(self):
        assert parse_period_times("08:00-08:45, 08:55-09:40") == PERIOD_TIMES[:2]

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_period_times("08:00-08:45,lunch")


def test_export_ics(tmp_path):
    out_path = tmp_path / "test.ics"

    count = export_ics([_course()], out_path, date(2025, 2, 26), PERIOD_TIMES)

    # weeks 1 and 2, one block of periods 1-2 each
    assert count == 2
    content = out_path.read_text(encoding="utf-8")

    assert "BEGIN:VCALENDAR" in content
    assert "BEGIN:VEVENT" in content
    assert "END:VCALENDAR" in content

    # week one starts on the Monday of the given day
    assert "DTSTART;TZID=Asia/Shanghai:20250224T080000" in content
    assert "DTEND;TZID=Asia/Shanghai:20250224T094000" in content
    assert "DTSTART;TZID=Asia/Shanghai:20250303T080000" in content

    assert "UID:" in content
    assert "@eams-timetable-export" in content
    assert "SUMMARY:Intro" in content


def test_export_ics_splits_period_runs(tmp_path):
    out_path = tmp_path / "split.ics"
    course = _course(periods=[0, 3], day_of_week=2)
    assert export_ics([course], out_path, date(2025, 2, 24), PERIOD_TIMES) == 4
    content = out_path.read_text(encoding="utf-8")
    assert "DTSTART;TZID=Asia/Shanghai:20250226T080000" in content
    assert "DTSTART;TZID=Asia/Shanghai:20250226T105500" in content


def test_export_ics_skips_unusable_records(tmp_path):
    out_path = tmp_path / "skip.ics"
    no_weeks = CourseRecord(name="NoWeeks", periods=[0])
    late = _course(name="Late", periods=[9])
    assert export_ics([no_weeks, late], out_path, date(2025, 2, 24), PERIOD_TIMES) == 0
    assert "BEGIN:VEVENT" not in out_path.read_text(encoding="utf-8")


def test_export_json(tmp_path):
    out_path = tmp_path / "test.json"
    course = _course()
    course.formatted_periods = "第1-2节"
    export_json([course], out_path)

    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert len(data) == 1
    assert data[0]["number"] == "cs101.01"
    assert data[0]["dayOfWeek"] == 0
    assert data[0]["periods"] == [0, 1]
    assert data[0]["weekNumbers"] == [1, 2]
    assert data[0]["weekPattern"] == "110"
    assert data[0]["formattedPeriods"] == "第1-2节"
    assert data[0]["teacherId"] is None


def test_export_csv(tmp_path):
    out_path = tmp_path / "test.csv"
    export_csv([_course(), _course(name="Calc", periods=[2])], out_path)

    with open(out_path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 2
    assert rows[0]["name"] == "Intro"
    assert rows[0]["periods"] == "0,1"
    assert rows[1]["weekNumbers"] == "1,2"


def test_export_dispatch(tmp_path):
    export([_course()], tmp_path / "a.json", "JSON")
    assert (tmp_path / "a.json").exists()

    with pytest.raises(ValueError):
        export([_course()], tmp_path / "a.ics", "ics")
    with pytest.raises(ValueError):
        export([_course()], tmp_path / "a.xml", "xml")
