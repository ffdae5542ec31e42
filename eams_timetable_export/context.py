"""
Parser context: compiled patterns and settings handed to every extractor.

The page format belongs to the EAMS student timetable ("我的课表"):
- script statements ``activity = new TaskActivity(...)`` followed by
  ``index=<day>*unitCount+<period>;`` and ``table0.activities[index][...]=activity;``
- a grid table whose cells carry ``id="TD<index>_<table>"`` and ``rowspan``
- a course list table (``class="gridtable"``) with credit / teacher columns
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Pattern, Tuple


DEFAULT_UNITS_PER_DAY = 10


@dataclass(frozen=True)
class ParserContext:
    units_per_day: int = DEFAULT_UNITS_PER_DAY
    debug: bool = False

    # Period label: 第1-2、5节
    period_prefix: str = "第"
    period_separator: str = "、"
    period_suffix: str = "节"

    # Header keywords for the course list tables
    credit_headers: Tuple[str, ...] = ("学分", "credit")
    number_headers: Tuple[str, ...] = ("课程序号", "course number", "course no")
    name_headers: Tuple[str, ...] = ("课程名称", "course name")
    teacher_headers: Tuple[str, ...] = ("教师", "teacher", "instructor")

    activity_re: Pattern[str] = re.compile(
        r"activity\s*=\s*new\s*TaskActivity\(([^;]+)\);\s*"
        r"index\s*=\s*(\d+)\s*\*\s*unitCount\s*\+\s*(\d+)\s*;"
        r"(?:\s*table0\.activities\[index\]\[table0\.activities\[index\]\.length\]\s*=\s*activity;)+"
    )
    loose_activity_re: Pattern[str] = re.compile(
        r"activity\s*=\s*new\s*TaskActivity\(([^;]+)\);\s*"
        r"index\s*=\s*(\d+)\s*\*\s*unitCount\s*\+\s*(\d+)\s*;"
    )
    unit_count_re: Pattern[str] = re.compile(r"var\s+unitCount\s*=\s*(\d+)\s*;")
    composite_id_re: Pattern[str] = re.compile(r"(\d+)\(([^)]+)\)")
    course_number_re: Pattern[str] = re.compile(r"([A-Za-z]+\d+\.\d+)")
    cell_id_re: Pattern[str] = re.compile(r"^TD(\d+)_(\d+)$")
    lesson_id_re: Pattern[str] = re.compile(r"lesson\.id=(\d+)")
    semester_re: Pattern[str] = re.compile(r"(\d{4}-\d{4})学年第(\d)学期")
    cjk_re: Pattern[str] = re.compile(r"[\u4e00-\u9fa5]")
    teacher_list_re: Pattern[str] = re.compile(r"[,\uff0c\u3001;]")

    teachers_inline_re: Pattern[str] = re.compile(
        r'var\s+teachers\s*=\s*\[\s*\{id:(\d+),name:"([^"]+)",lab:(?:false|true)\}\s*\];'
    )
    teacher_object_re: Pattern[str] = re.compile(r'id:(\d+),name:"([^"]+)"')
    teacher_item_re: Pattern[str] = re.compile(
        r'\{id:(\d+),name:"([^"]+)",lab:(?:false|true)\}'
    )
    teacher_array_res: Tuple[Pattern[str], ...] = (
        re.compile(r"var\s+actTeachers\s*=\s*\[(.*?)\];", re.S),
        re.compile(r"var\s+allTeachers\s*=\s*\[(.*?)\];", re.S),
        re.compile(r"var\s+teachers\s*=\s*\[(.*?)\];", re.S),
    )
    # <td>..</td> x5, the 4th holding the credit and the 5th the course number
    credit_row_re: Pattern[str] = re.compile(
        r"<td[^>]*>([^<]*)</td>\s*<td[^>]*>([^<]*)</td>\s*<td[^>]*>([^<]*)</td>\s*"
        r"<td[^>]*>(\d+(?:\.\d+)?)</td>\s*<td[^>]*>([^<]*)</td>"
    )

    @classmethod
    def from_html(cls, html: str, **overrides) -> "ParserContext":
        """Build a context, reading ``unitCount`` from the page when present."""
        ctx = cls(**overrides)
        if "units_per_day" in overrides:
            return ctx
        m = ctx.unit_count_re.search(html)
        if m and int(m.group(1)) > 0:
            ctx = replace(ctx, units_per_day=int(m.group(1)))
        return ctx

    def decode_slot(self, index: int) -> Tuple[int, int]:
        """Linear slot index -> (day_of_week, period)."""
        return index // self.units_per_day, index % self.units_per_day
