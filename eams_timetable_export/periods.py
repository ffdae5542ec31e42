"""
Period grouping and labels.

Periods are stored 0-based; labels are 1-based, e.g. [0, 1, 4] -> "第1-2、5节".
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List

from .context import ParserContext
from .model import CourseRecord

logger = logging.getLogger(__name__)


def group_consecutive_periods(periods: Iterable[int]) -> List[List[int]]:
    """Split a period set into maximal runs of consecutive integers."""
    ordered = sorted(set(periods))
    groups: List[List[int]] = []
    for p in ordered:
        if groups and p == groups[-1][-1] + 1:
            groups[-1].append(p)
        else:
            groups.append([p])
    return groups


def format_period_groups(
    groups: List[List[int]],
    prefix: str = "第",
    separator: str = "、",
    suffix: str = "节",
) -> str:
    if not groups:
        return ""
    labels = []
    for group in groups:
        if len(group) == 1:
            labels.append(f"{group[0] + 1}")
        else:
            labels.append(f"{group[0] + 1}-{group[-1] + 1}")
    return prefix + separator.join(labels) + suffix


def format_periods(periods: Iterable[int], context: ParserContext | None = None) -> str:
    ctx = context or ParserContext()
    return format_period_groups(
        group_consecutive_periods(periods),
        prefix=ctx.period_prefix,
        separator=ctx.period_separator,
        suffix=ctx.period_suffix,
    )


def parse_period_label(label: str, context: ParserContext | None = None) -> List[int]:
    """Inverse of :func:`format_periods`: '第1-2、5节' -> [0, 1, 4]."""
    ctx = context or ParserContext()
    body = label.strip()
    if ctx.period_prefix and body.startswith(ctx.period_prefix):
        body = body[len(ctx.period_prefix):]
    if ctx.period_suffix and body.endswith(ctx.period_suffix):
        body = body[: -len(ctx.period_suffix)]
    if not body:
        return []

    periods: List[int] = []
    for part in body.split(ctx.period_separator or ","):
        m = re.match(r"^\s*(\d+)\s*(?:-\s*(\d+))?\s*$", part)
        if not m:
            raise ValueError(f"Unrecognised period label part: {part!r}")
        first = int(m.group(1))
        last = int(m.group(2)) if m.group(2) else first
        periods.extend(range(first - 1, last))
    return sorted(set(periods))


def finalize_periods(courses: List[CourseRecord], context: ParserContext | None = None) -> None:
    """Sort periods and fill start/end (1-based) and the display label."""
    ctx = context or ParserContext()
    for course in courses:
        if course.periods:
            course.periods.sort()
            course.start_period = course.periods[0] + 1
            course.end_period = course.periods[-1] + 1
            course.formatted_periods = format_periods(course.periods, ctx)
            if ctx.debug:
                logger.debug(
                    "%s (day %d): periods=%s -> %s",
                    course.name, course.day_of_week, course.periods, course.formatted_periods,
                )
        else:
            course.start_period = 0
            course.end_period = 0
            course.formatted_periods = ""
            logger.warning("Course %r has no period information", course.name)
