"""
Metadata enrichers: credits and teacher identity.

Both read the same page as the extractors and produce keyed maps that are then
attached to the course records by course number / teacher name.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag  # type: ignore[import]

from .context import ParserContext
from .model import CourseRecord

logger = logging.getLogger(__name__)


@dataclass
class TeacherCourseInfo:
    """One row of the course list table: who teaches which offering."""

    number: str
    teacher_name: str
    lesson_id: str
    course_name: str = ""


def _header_index(headers: List[str], keywords) -> int:
    for i, text in enumerate(headers):
        lowered = text.lower()
        if any(k in lowered for k in keywords):
            return i
    return -1


# ──────────────────────────────────────────────────────────────────
#  Credit lookup
# ──────────────────────────────────────────────────────────────────

def _course_number_from_cell(cell: Tag, context: ParserContext) -> str:
    text = cell.get_text(strip=True)
    m = context.course_number_re.search(text)
    if m:
        return m.group(1)
    link = cell.find("a")
    if link:
        return link.get_text(strip=True)
    return text


def _credits_from_tables(soup: BeautifulSoup, context: ParserContext) -> Dict[str, float]:
    result: Dict[str, float] = {}
    for table in soup.find_all("table", class_="gridtable"):
        headers = [th.get_text(strip=True) for th in table.find_all("th")]
        if not headers:
            continue
        credit_idx = _header_index(headers, context.credit_headers)
        number_idx = _header_index(headers, context.number_headers)
        name_idx = _header_index(headers, context.name_headers)
        if credit_idx < 0 or (number_idx < 0 and name_idx < 0):
            continue

        for tr in table.find_all("tr"):
            cells = tr.find_all("td")
            if len(cells) <= max(credit_idx, number_idx):
                continue
            if number_idx >= 0:
                number = _course_number_from_cell(cells[number_idx], context)
            else:
                row_text = " ".join(c.get_text(" ", strip=True) for c in cells)
                m = context.course_number_re.search(row_text)
                number = m.group(1) if m else ""
            if not number:
                continue
            try:
                result[number] = float(cells[credit_idx].get_text(strip=True))
            except ValueError:
                logger.warning("Unparsable credit for %s: %r", number, cells[credit_idx].get_text(strip=True))
    return result


def _credits_from_markup(html: str, context: ParserContext) -> Dict[str, float]:
    result: Dict[str, float] = {}
    for m in context.credit_row_re.finditer(html):
        number_match = context.course_number_re.search(m.group(5).strip())
        if not number_match:
            continue
        try:
            result[number_match.group(1)] = float(m.group(4))
        except ValueError:
            continue
    return result


def parse_course_credits(
    soup: BeautifulSoup, html: str, context: ParserContext
) -> Dict[str, float]:
    """Map course number -> credit, from the course list table or raw markup."""
    result = _credits_from_tables(soup, context)
    if not result:
        result = _credits_from_markup(html, context)
    logger.info("Found credit information for %d course number(s)", len(result))
    return result


def attach_credits(courses: List[CourseRecord], credits: Dict[str, float]) -> None:
    for course in courses:
        if course.number in credits and not course.credit:
            course.credit = credits[course.number]


# ──────────────────────────────────────────────────────────────────
#  Teacher id resolution
# ──────────────────────────────────────────────────────────────────

def _add_teacher(
    teacher_map: Dict[str, int], teacher_id: str, name: str
) -> None:
    key = name.casefold()
    if key not in teacher_map:
        teacher_map[key] = int(teacher_id)


def extract_teacher_ids(html: str, context: ParserContext) -> Dict[str, int]:
    """
    Map teacher name (case-folded) -> teacher id from the page scripts.

    Sources, in order: a single ``var teachers = [{id:..,name:"..",lab:..}];``
    declaration; any ``id:N,name:"..."`` object with a CJK name; the
    ``actTeachers`` / ``allTeachers`` / ``teachers`` array literals.
    """
    teacher_map: Dict[str, int] = {}

    for m in context.teachers_inline_re.finditer(html):
        _add_teacher(teacher_map, m.group(1), m.group(2))

    if not teacher_map:
        for m in context.teacher_object_re.finditer(html):
            if context.cjk_re.search(m.group(2)):
                _add_teacher(teacher_map, m.group(1), m.group(2))

    if len(teacher_map) < 5:
        for pattern in context.teacher_array_res:
            for block in pattern.finditer(html):
                for item in context.teacher_item_re.finditer(block.group(1)):
                    if context.cjk_re.search(item.group(2)):
                        _add_teacher(teacher_map, item.group(1), item.group(2))

    logger.info("Found %d teacher id mapping(s)", len(teacher_map))
    return teacher_map


def extract_teacher_course_table(
    soup: BeautifulSoup, context: ParserContext
) -> Dict[str, TeacherCourseInfo]:
    """Map course number -> teacher/lesson info from the course list table."""
    result: Dict[str, TeacherCourseInfo] = {}
    for table in soup.find_all("table", class_="gridtable"):
        thead = table.find("thead")
        if not thead:
            continue
        headers = [th.get_text(strip=True) for th in thead.find_all("th")]
        teacher_idx = _header_index(headers, context.teacher_headers)
        number_idx = _header_index(headers, context.number_headers)
        name_idx = _header_index(headers, context.name_headers)
        if teacher_idx < 0 or number_idx < 0:
            continue

        tbody = table.find("tbody") or table
        for tr in tbody.find_all("tr"):
            cells = tr.find_all("td")
            if len(cells) <= max(teacher_idx, number_idx):
                continue
            link = cells[number_idx].find("a")
            if not link:
                continue
            number = link.get_text(strip=True)
            m = context.lesson_id_re.search(link.get("href", ""))
            if not m or not number:
                continue
            course_name = ""
            if 0 <= name_idx < len(cells):
                course_name = cells[name_idx].get_text(strip=True)
            result[number] = TeacherCourseInfo(
                number=number,
                teacher_name=cells[teacher_idx].get_text(strip=True),
                lesson_id=m.group(1),
                course_name=course_name,
            )

    logger.info("Found %d teacher/course row(s) in course tables", len(result))
    return result


def resolve_teacher_id(
    name: str, teacher_map: Dict[str, int], context: ParserContext
) -> Optional[int]:
    """Exact name, then the first name of a list, then the CJK characters only."""
    if not name:
        return None
    found = teacher_map.get(name.casefold())
    if found is not None:
        return found

    first = next(
        (n.strip() for n in context.teacher_list_re.split(name) if n.strip()), ""
    )
    if first and first != name:
        found = teacher_map.get(first.casefold())
        if found is not None:
            return found

    cjk_only = "".join(context.cjk_re.findall(name))
    if cjk_only:
        return teacher_map.get(cjk_only.casefold())
    return None


def attach_teacher_ids(
    courses: List[CourseRecord],
    teacher_map: Dict[str, int],
    table_info: Dict[str, TeacherCourseInfo],
    context: ParserContext,
) -> int:
    """Set teacher names/ids on ``courses``; returns how many ids resolved."""
    matched = 0
    for course in courses:
        info = table_info.get(course.number) if course.number else None
        if info is not None:
            if info.lesson_id and not course.lesson_id:
                course.lesson_id = info.lesson_id
            # the course list table is more reliable than the script parameter
            if info.teacher_name:
                course.teacher_name = info.teacher_name

        teacher_id = resolve_teacher_id(course.teacher_name, teacher_map, context)
        if teacher_id is not None:
            course.teacher_id = teacher_id
            matched += 1
            if context.debug:
                logger.debug("Teacher %r -> id %d for %r", course.teacher_name, teacher_id, course.name)

    logger.info("Teacher ids resolved for %d of %d course(s)", matched, len(courses))
    return matched
