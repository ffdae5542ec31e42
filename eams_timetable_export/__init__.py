"""
Extract course schedules from EAMS "我的课表" pages into canonical course records.
"""
from __future__ import annotations

__version__ = "0.1.0"

from .context import ParserContext
from .model import CourseRecord, ScheduleInfo
from .schedule_html import parse_schedule_html, parse_schedule_page

__all__ = [
    "CourseRecord",
    "ParserContext",
    "ScheduleInfo",
    "parse_schedule_html",
    "parse_schedule_page",
]
