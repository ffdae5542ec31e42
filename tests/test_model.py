"""Tests for model.py and context.py."""
import dataclasses

import pytest

from eams_timetable_export.context import ParserContext
from eams_timetable_export.model import (
    CourseRecord,
    ScheduleInfo,
    display_week_pattern,
    week_numbers_from_bitmap,
)


class TestWeekBitmap:
    def test_index_zero_reserved(self):
        assert week_numbers_from_bitmap("0010100") == [2, 4]
        assert week_numbers_from_bitmap("1000") == []

    def test_display_pattern(self):
        assert display_week_pattern("0110000") == "110"
        assert display_week_pattern("") == ""

    def test_record_from_bitmap(self):
        course = CourseRecord.with_bitmap("0111", name="Intro")
        assert course.week_numbers == [1, 2, 3]
        assert course.week_pattern == "1110"


class TestCourseRecord:
    def test_placeholder_id(self):
        assert not CourseRecord().has_external_id
        assert CourseRecord(external_id="55").has_external_id

    def test_add_periods(self):
        course = CourseRecord(periods=[4])
        course.add_periods([3, 4, 6])
        assert course.periods == [3, 4, 6]

    def test_schedule_to_dict(self):
        info = ScheduleInfo(year="2024-2025", term="1", courses=[CourseRecord(name="Intro")])
        data = info.to_dict()
        assert data["unitsPerDay"] == 10
        assert data["courses"][0]["name"] == "Intro"
        assert data["courses"][0]["externalId"] == "0"


class TestParserContext:
    def test_unit_count_read_from_page(self):
        assert ParserContext.from_html("var unitCount = 12;").units_per_day == 12

    def test_default_unit_count(self):
        assert ParserContext.from_html("<html></html>").units_per_day == 10

    def test_override_wins(self):
        assert ParserContext.from_html("var unitCount = 12;", units_per_day=14).units_per_day == 14

    def test_decode_slot(self):
        assert ParserContext(units_per_day=12).decode_slot(27) == (2, 3)
        assert ParserContext().decode_slot(9) == (0, 9)

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            ParserContext().units_per_day = 5
