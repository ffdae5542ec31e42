"""
Script-literal extraction: ``activity = new TaskActivity(...)`` statements.

The page emits one statement per occupied period, e.g.::

    activity = new TaskActivity(actTeacherId.join(','),actTeacherName.join(','),
        "43188(tb1130014.18)","高等数学(tb1130014.18)","123","理科楼101",
        "01111111111111111000000000000000000000000000000000000",null,null,"","");
    index =2*unitCount+3;
    table0.activities[index][table0.activities[index].length]=activity;

Parameter positions: 1 teacher, 2 ``ID(NUMBER)``, 3 course name, 4 room id,
5 room, 6 week bitmap, 9 remark (only in longer tuples).
"""
from __future__ import annotations

import html as _html
import logging
import re
from typing import List, Pattern, Tuple

from .context import ParserContext
from .model import PLACEHOLDER_ID, CourseRecord
from .reconcile import merge_or_add

logger = logging.getLogger(__name__)

MIN_PARAMETERS = 7
REMARK_POSITION = 9

_JS_TEACHER_REFS = ("actTeacherName", "join", "teachers", "TeacherName")


def split_parameters(parameters: str) -> List[str]:
    """
    Split a JavaScript argument list on top-level commas.

    Commas inside quoted strings or nested parentheses are kept, so
    ``"a,b",f(x, y),3`` gives ``['"a,b"', 'f(x, y)', '3']``.
    """
    result: List[str] = []
    current: List[str] = []
    in_string = False
    delimiter = ""
    depth = 0

    backslashes = 0
    for c in parameters:
        # a quote is escaped by an odd run of backslashes before it
        escaped = backslashes % 2 == 1
        backslashes = backslashes + 1 if c == "\\" else 0
        if c in ("'", '"') and not escaped:
            if not in_string:
                in_string = True
                delimiter = c
            elif c == delimiter:
                in_string = False
            current.append(c)
        elif c == "(" and not in_string:
            depth += 1
            current.append(c)
        elif c == ")" and not in_string:
            depth -= 1
            current.append(c)
        elif c == "," and not in_string and depth == 0:
            result.append("".join(current).strip())
            current = []
        else:
            current.append(c)

    if current:
        result.append("".join(current).strip())
    return result


def _unquote(value: str) -> str:
    return value.strip().strip("'\"")


def extract_course_name(full_name: str) -> str:
    """Drop the trailing parenthesised qualifier: '高等数学(tb1.01)' -> '高等数学'."""
    if not full_name:
        return ""
    m = re.match(r"(.*)\(", full_name)
    if m:
        return m.group(1).strip()
    return full_name.strip()


def format_teacher_name(raw_name: str, context: ParserContext | None = None) -> str:
    """Normalise the teacher parameter; JavaScript references become blank."""
    if not raw_name:
        return ""
    if any(ref in raw_name for ref in _JS_TEACHER_REFS):
        return ""
    ctx = context or ParserContext()

    name = re.sub(r"<[^>]+>", "", raw_name)
    name = (
        name.replace("&nbsp;", " ")
        .replace("&amp;", "&")
        .replace("&lt;", "<")
        .replace("&gt;", ">")
    )

    if ctx.teacher_list_re.search(name):
        names = [n.strip() for n in ctx.teacher_list_re.split(name) if n.strip()]
        return names[0] if names else ""

    name = re.sub(r"\([^)]*\)", "", name)
    name = re.sub(r"[\[\](){}<>*]", "", name)
    return name.strip()


def split_composite_id(composite: str, context: ParserContext) -> Tuple[str, str]:
    """'43188(tb1130014.18)' -> ('43188', 'tb1130014.18'); no match -> ('0', composite)."""
    m = context.composite_id_re.search(composite)
    if m:
        return m.group(1), m.group(2)
    return PLACEHOLDER_ID, composite


def record_from_parameters(
    params: List[str],
    day_index: int,
    period_index: int,
    context: ParserContext,
) -> CourseRecord | None:
    """Build a one-period record from a tokenised parameter tuple."""
    if len(params) < MIN_PARAMETERS:
        return None

    external_id, number = split_composite_id(_unquote(params[2]), context)
    code = number.split(".", 1)[0] if "." in number else ""

    remark = None
    if len(params) > REMARK_POSITION:
        remark = _html.unescape(_unquote(params[REMARK_POSITION])) or None
        if remark == "null":
            remark = None

    return CourseRecord.with_bitmap(
        _unquote(params[6]),
        external_id=external_id,
        code=code,
        number=number,
        name=extract_course_name(_unquote(params[3])),
        teacher_name=format_teacher_name(_unquote(params[1]), context),
        room_id=_unquote(params[4]),
        room=_unquote(params[5]),
        day_of_week=day_index,
        periods=[period_index],
        remark=remark,
    )


def find_activity_statements(
    text: str, pattern: Pattern[str]
) -> List[Tuple[int, int, List[str]]]:
    """Return ``(day, period, params)`` for every statement ``pattern`` finds."""
    statements: List[Tuple[int, int, List[str]]] = []
    for m in pattern.finditer(text):
        statements.append(
            (int(m.group(2)), int(m.group(3)), split_parameters(m.group(1)))
        )
    return statements


def _records_from_statements(
    text: str, pattern: Pattern[str], context: ParserContext
) -> List[CourseRecord]:
    courses: List[CourseRecord] = []
    for day, period, params in find_activity_statements(text, pattern):
        try:
            course = record_from_parameters(params, day, period, context)
        except (ValueError, IndexError) as exc:
            logger.warning("Skipping malformed activity statement: %s", exc)
            continue
        if course is None:
            logger.warning(
                "Skipping activity statement with %d parameter(s) at day %d period %d",
                len(params), day, period,
            )
            continue
        merge_or_add(courses, course, context)
    return courses


def extract_script_records(text: str, context: ParserContext) -> List[CourseRecord]:
    """Strategy: activity statements registered into ``table0.activities``."""
    return _records_from_statements(text, context.activity_re, context)


def extract_loose_script_records(text: str, context: ParserContext) -> List[CourseRecord]:
    """Fallback strategy: statements without the ``table0.activities`` clause."""
    return _records_from_statements(text, context.loose_activity_re, context)
