"""
Merge partial course records coming from the different extraction strategies.

The script statements describe one period each and the grid cells describe
whole blocks, so the same offering usually shows up several times before
reconciliation. Merging only ever unions periods and fills blank fields; a
distinct meeting is never dropped.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from .context import ParserContext
from .model import CourseRecord

logger = logging.getLogger(__name__)


def _names_match(a: str, b: str) -> bool:
    if a == b:
        return True
    return bool(a) and bool(b) and (a.startswith(b) or b.startswith(a))


def _teachers_compatible(a: str, b: str) -> bool:
    return not a or not b or a == b


def _periods_overlap(a: List[int], b: List[int]) -> bool:
    if not a or not b:
        return True
    return any(p in b for p in a)


def _periods_touch(a: List[int], b: List[int]) -> bool:
    return any(abs(p - q) <= 1 for p in a for q in b)


def _same_meeting(a: CourseRecord, b: CourseRecord) -> bool:
    """Disjoint period sets only join when adjacent or on the same weeks."""
    if _periods_overlap(a.periods, b.periods) or _periods_touch(a.periods, b.periods):
        return True
    return not a.week_bitmap or not b.week_bitmap or a.week_bitmap == b.week_bitmap


def _fill_identity(main: CourseRecord, other: CourseRecord) -> None:
    """Fill blank ids, room and credit from ``other``; keep the longer name; union periods."""
    if not main.has_external_id and other.has_external_id:
        main.external_id = other.external_id
    if not main.code and other.code:
        main.code = other.code
    if not main.number and other.number:
        main.number = other.number
    if not main.room and other.room:
        main.room = other.room
    if not main.room_id and other.room_id:
        main.room_id = other.room_id
    if not main.credit and other.credit:
        main.credit = other.credit
    if len(other.name) > len(main.name):
        main.name = other.name
    main.add_periods(other.periods)


def _fill_blanks(main: CourseRecord, other: CourseRecord) -> None:
    """:func:`_fill_identity` plus teacher, remark, lesson and week data."""
    _fill_identity(main, other)
    if not main.teacher_name and other.teacher_name:
        main.teacher_name = other.teacher_name
    if main.teacher_id is None and other.teacher_id is not None:
        main.teacher_id = other.teacher_id
    if not main.remark and other.remark:
        main.remark = other.remark
    if not main.lesson_id and other.lesson_id:
        main.lesson_id = other.lesson_id
    if not main.week_numbers and other.week_numbers:
        main.week_bitmap = other.week_bitmap
        main.week_numbers = list(other.week_numbers)


def find_match(courses: List[CourseRecord], new: CourseRecord) -> Optional[CourseRecord]:
    for course in courses:
        if (
            course.day_of_week == new.day_of_week
            and _names_match(course.name, new.name)
            and _teachers_compatible(course.teacher_name, new.teacher_name)
            and _same_meeting(course, new)
        ):
            return course
    return None


def merge_or_add(
    courses: List[CourseRecord],
    new: CourseRecord,
    context: ParserContext | None = None,
) -> CourseRecord:
    """
    Merge ``new`` into a matching record of ``courses`` or append it.

    A match needs the same weekday, equal names (or one a prefix of the
    other) and compatible teachers. Overlapping or adjacent periods always
    match, so the per-period script statements of one block collapse
    together; disjoint periods also need the same week bitmap.
    Only ids, room and credit are filled in; the teacher stays as first seen.
    Returns the record that now holds the data.
    """
    existing = find_match(courses, new)
    debug = context is not None and context.debug
    if existing is None:
        courses.append(new)
        if debug:
            logger.debug("Added course %r with %d period(s)", new.name, len(new.periods))
        return new

    _fill_identity(existing, new)
    if debug:
        logger.debug("Merged course %r, periods now %s", existing.name, existing.periods)
    return existing


def _completeness_key(course: CourseRecord):
    return (
        course.has_external_id,
        bool(course.number),
        len(course.periods),
        bool(course.credit),
    )


def _is_duplicate(kept: CourseRecord, other: CourseRecord) -> bool:
    if kept.day_of_week != other.day_of_week:
        return False
    if kept.name != other.name:
        short, long_ = sorted((kept.name, other.name), key=len)
        if not short or not long_.startswith(short):
            return False
    return _periods_overlap(kept.periods, other.periods)


def merge_duplicate_courses(
    courses: List[CourseRecord],
    context: ParserContext | None = None,
) -> List[CourseRecord]:
    """
    Final pass: fold semantic duplicates into the most complete record.

    Records are visited from most to least complete; names of one character
    or less are extraction garbage and never kept on their own, though they
    may still be absorbed into a kept record.
    """
    debug = context is not None and context.debug
    ordered = sorted(courses, key=_completeness_key, reverse=True)
    # consumed: folded into a kept record, or kept itself
    consumed = [False] * len(ordered)
    result: List[CourseRecord] = []

    for i, course in enumerate(ordered):
        if consumed[i]:
            continue
        if len(course.name) <= 1:
            if debug:
                logger.debug("Skipping truncated course name %r", course.name)
            continue
        consumed[i] = True

        for j in range(len(ordered)):
            if consumed[j]:
                continue
            if _is_duplicate(course, ordered[j]):
                _fill_blanks(course, ordered[j])
                consumed[j] = True
                if debug:
                    logger.debug("Folded duplicate %r into %r", ordered[j].name, course.name)

        course.periods.sort()
        result.append(course)

    logger.info("Final merge: %d record(s) reduced to %d", len(courses), len(result))
    return result
