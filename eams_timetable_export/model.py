"""
Course record model shared by the extractors, the enrichers and the exporter.

A record describes one course offering's meeting pattern on one weekday:
the set of period indices it occupies and the weeks it runs in.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


PLACEHOLDER_ID = "0"


def week_numbers_from_bitmap(bitmap: str) -> List[int]:
    """Week *i* is the character at index *i*; index 0 is reserved."""
    return [i for i in range(1, len(bitmap)) if bitmap[i] == "1"]


def display_week_pattern(bitmap: str) -> str:
    """Reverse the bitmap and drop the leading zeros, e.g. '01100' -> '110'."""
    return bitmap[::-1].lstrip("0")


@dataclass
class CourseRecord:
    external_id: str = PLACEHOLDER_ID
    code: str = ""
    number: str = ""
    name: str = ""
    credit: Optional[float] = None
    teacher_name: str = ""
    # None means the teacher could not be resolved to an id
    teacher_id: Optional[int] = None
    room: str = ""
    room_id: str = ""
    day_of_week: int = 0
    periods: List[int] = field(default_factory=list)
    week_bitmap: str = ""
    week_numbers: List[int] = field(default_factory=list)
    remark: Optional[str] = None
    lesson_id: Optional[str] = None
    start_period: int = 0
    end_period: int = 0
    formatted_periods: str = ""

    @classmethod
    def with_bitmap(cls, week_bitmap: str, **kwargs) -> "CourseRecord":
        return cls(
            week_bitmap=week_bitmap,
            week_numbers=week_numbers_from_bitmap(week_bitmap),
            **kwargs,
        )

    @property
    def week_pattern(self) -> str:
        return display_week_pattern(self.week_bitmap)

    @property
    def has_external_id(self) -> bool:
        return bool(self.external_id) and self.external_id != PLACEHOLDER_ID

    def add_periods(self, periods: List[int]) -> None:
        for p in periods:
            if p not in self.periods:
                self.periods.append(p)
        self.periods.sort()

    def to_dict(self) -> Dict:
        return {
            "externalId": self.external_id,
            "code": self.code,
            "number": self.number,
            "name": self.name,
            "credit": self.credit,
            "teacherName": self.teacher_name,
            "teacherId": self.teacher_id,
            "room": self.room,
            "roomId": self.room_id,
            "dayOfWeek": self.day_of_week,
            "periods": list(self.periods),
            "startPeriod": self.start_period,
            "endPeriod": self.end_period,
            "formattedPeriods": self.formatted_periods,
            "weekBitmap": self.week_bitmap,
            "weekPattern": self.week_pattern,
            "weekNumbers": list(self.week_numbers),
            "remark": self.remark,
            "lessonId": self.lesson_id,
        }


@dataclass
class ScheduleInfo:
    """Parsed page: academic year / term label plus the course list."""

    year: Optional[str] = None
    term: Optional[str] = None
    units_per_day: int = 10
    courses: List[CourseRecord] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "year": self.year,
            "term": self.term,
            "unitsPerDay": self.units_per_day,
            "courses": [c.to_dict() for c in self.courses],
        }
