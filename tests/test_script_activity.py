"""Tests for script_activity.py – TaskActivity statement extraction."""
import pytest

from eams_timetable_export.context import ParserContext
from eams_timetable_export.script_activity import (
    extract_course_name,
    extract_loose_script_records,
    extract_script_records,
    find_activity_statements,
    format_teacher_name,
    record_from_parameters,
    split_composite_id,
    split_parameters,
)


def _statement(day: int, period: int, params: str, registered: bool = True) -> str:
    text = f"activity = new TaskActivity({params});\nindex ={day}*unitCount+{period};\n"
    if registered:
        text += "table0.activities[index][table0.activities[index].length]=activity;\n"
    return text


INTRO = '"1001","Zhang","101001(cs101.01)","Intro(Lecture)","R1","Room 101","0010100000",null,null'


class TestSplitParameters:
    def test_plain(self):
        assert split_parameters('"a","b",3') == ['"a"', '"b"', "3"]

    def test_comma_inside_quotes(self):
        assert split_parameters('"Name, with comma",\'x,y\',1') == [
            '"Name, with comma"',
            "'x,y'",
            "1",
        ]

    def test_comma_inside_nested_call(self):
        parts = split_parameters(
            "actTeacherId.join(','),actTeacherName.join(','),\"1(a.1)\",\"N\",\"r\",\"room\",\"011\""
        )
        assert len(parts) == 7
        assert parts[1] == "actTeacherName.join(',')"
        assert parts[2] == '"1(a.1)"'

    def test_escaped_quote_does_not_close_string(self):
        assert split_parameters('"a\\"b,c",d') == ['"a\\"b,c"', "d"]

    def test_escaped_backslash_before_closing_quote(self):
        assert split_parameters('"a\\\\",b,c') == ['"a\\\\"', "b", "c"]

    def test_whitespace_trimmed(self):
        assert split_parameters(' "a" ,  b ') == ['"a"', "b"]

    def test_empty(self):
        assert split_parameters("") == []


class TestFieldHelpers:
    def test_extract_course_name(self):
        assert extract_course_name("Intro(Lecture)") == "Intro"
        assert extract_course_name("高等数学(tb1130014.18)") == "高等数学"
        assert extract_course_name("A(B)(C)") == "A(B)"
        assert extract_course_name("Plain") == "Plain"
        assert extract_course_name("") == ""

    def test_split_composite_id(self):
        ctx = ParserContext()
        assert split_composite_id("43188(tb1130014.18)", ctx) == ("43188", "tb1130014.18")
        assert split_composite_id("cs101.01", ctx) == ("0", "cs101.01")

    def test_format_teacher_name(self):
        assert format_teacher_name("actTeacherName.join(',')") == ""
        assert format_teacher_name("<b>张三</b>") == "张三"
        assert format_teacher_name("张三,李四") == "张三"
        assert format_teacher_name("张三、李四") == "张三"
        assert format_teacher_name("张三(主讲)") == "张三"
        assert format_teacher_name("A&amp;B") == "A&B"
        assert format_teacher_name("") == ""


class TestRecordFromParameters:
    def test_full_tuple(self):
        params = split_parameters(INTRO)
        course = record_from_parameters(params, 2, 3, ParserContext())
        assert course is not None
        assert course.external_id == "101001"
        assert course.number == "cs101.01"
        assert course.code == "cs101"
        assert course.name == "Intro"
        assert course.teacher_name == "Zhang"
        assert course.room_id == "R1"
        assert course.room == "Room 101"
        assert course.day_of_week == 2
        assert course.periods == [3]
        assert course.week_numbers == [2, 4]
        assert course.remark is None

    def test_composite_without_id(self):
        params = split_parameters('"","T","abc","Name","","","011"')
        course = record_from_parameters(params, 0, 0, ParserContext())
        assert course.external_id == "0"
        assert course.number == "abc"
        assert course.code == ""

    def test_remark_in_long_tuple(self):
        params = split_parameters('"","T","1(x.1)","Name","","","011",null,null,"单周上课"')
        course = record_from_parameters(params, 0, 0, ParserContext())
        assert course.remark == "单周上课"

    def test_short_tuple_is_rejected(self):
        params = split_parameters('"","T","1(x.1)","Name","",""')
        assert record_from_parameters(params, 0, 0, ParserContext()) is None


class TestExtractScriptRecords:
    def test_statements_are_found(self):
        text = _statement(2, 3, INTRO) + _statement(2, 4, INTRO)
        statements = find_activity_statements(text, ParserContext().activity_re)
        assert [(d, p) for d, p, _ in statements] == [(2, 3), (2, 4)]

    def test_per_period_statements_merge(self):
        text = _statement(2, 3, INTRO) + _statement(2, 4, INTRO)
        courses = extract_script_records(text, ParserContext())
        assert len(courses) == 1
        assert courses[0].periods == [3, 4]
        assert courses[0].number == "cs101.01"

    def test_meetings_on_other_weeks_stay_apart(self):
        first = '"1001","Zhang","101001(cs101.01)","Intro(Lecture)","A1","A101","011110000",null,null'
        second = '"1001","Zhang","101001(cs101.01)","Intro(Lecture)","B2","B202","000001111",null,null'
        courses = extract_script_records(_statement(0, 0, first) + _statement(0, 6, second), ParserContext())
        assert [(c.periods, c.week_numbers, c.room) for c in courses] == [
            ([0], [1, 2, 3, 4], "A101"),
            ([6], [5, 6, 7, 8], "B202"),
        ]

    def test_same_course_on_two_days(self):
        text = _statement(0, 1, INTRO) + _statement(3, 1, INTRO)
        courses = extract_script_records(text, ParserContext())
        assert sorted(c.day_of_week for c in courses) == [0, 3]

    def test_malformed_statement_is_skipped(self):
        text = _statement(1, 1, '"a","b"') + _statement(2, 3, INTRO)
        courses = extract_script_records(text, ParserContext())
        assert len(courses) == 1
        assert courses[0].name == "Intro"

    def test_unregistered_statements_need_loose_scan(self):
        text = _statement(2, 3, INTRO, registered=False)
        assert extract_script_records(text, ParserContext()) == []
        loose = extract_loose_script_records(text, ParserContext())
        assert len(loose) == 1
        assert loose[0].periods == [3]

    @pytest.mark.parametrize("text", ["", "<html></html>", "activity = new Foo();"])
    def test_no_statements(self, text):
        assert extract_script_records(text, ParserContext()) == []
