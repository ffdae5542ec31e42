"""
Parse an EAMS "我的课表" page (student timetable) into course records.

Usage pattern:
- 登录教务系统，打开 我的 → 我的课表，选择学年学期
- 页面内容在 iframe "iframeMain" 中；可直接传入 iframe 的 HTML，
  或用浏览器 "另存为 → 网页，全部" 保存后传入外层页面（自动读取 iframe 内容）

The real page carries the same schedule twice, both incomplete:
- script statements ``activity = new TaskActivity(...)``, one per period,
  with ids, course numbers, rooms and week bitmaps
- the rendered grid (``table.gridtable`` / ``#kbtable``): cells with
  ``id="TD<index>_<table>"`` and ``rowspan`` covering a whole block, e.g.
    "高等数学(tb1130014.18) [张三]<br>理科楼101"
Both are extracted and reconciled; the course list table below the grid
supplies credits and teacher names.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from bs4 import BeautifulSoup, Comment, NavigableString, Tag  # type: ignore[import]

from .context import ParserContext
from .enrich import (
    attach_credits,
    attach_teacher_ids,
    extract_teacher_course_table,
    extract_teacher_ids,
    parse_course_credits,
)
from .model import CourseRecord, ScheduleInfo
from .periods import finalize_periods
from .reconcile import merge_duplicate_courses, merge_or_add
from .script_activity import (
    extract_course_name,
    extract_loose_script_records,
    extract_script_records,
)

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────
#  iframe resolution
# ──────────────────────────────────────────────────────────────────

def _resolve_iframe_html(html_path: Path, soup: BeautifulSoup) -> Optional[str]:
    """
    If the saved page only embeds the timetable in an iframe,
    load the iframe document from the associated _files/ directory.
    """
    iframe = soup.find("iframe", attrs={"name": "iframeMain"})
    if not iframe:
        iframe = soup.find("iframe", id="iframeMain")
    if not iframe:
        iframe = soup.find("iframe", src=re.compile(r"courseTable", re.I))
    if not iframe:
        return None

    src = iframe.get("src", "")
    if not src:
        return None

    iframe_path = html_path.parent / src
    if iframe_path.is_file():
        return iframe_path.read_text(encoding="utf-8", errors="ignore")

    files_dir = html_path.parent / f"{html_path.stem}_files"
    if files_dir.is_dir():
        candidate = files_dir / Path(src).name
        if candidate.is_file():
            return candidate.read_text(encoding="utf-8", errors="ignore")

    return None


def load_schedule_html(
    html_path: str | Path | None = None,
    html_content: str | None = None,
) -> str:
    """Return the timetable document, following the iframe of a saved page."""
    if html_content is not None:
        return html_content
    if html_path is None:
        raise ValueError("Provide either html_path or html_content.")

    resolved_path = Path(html_path)
    html = resolved_path.read_text(encoding="utf-8", errors="ignore")
    if "TaskActivity" not in html:
        iframe_html = _resolve_iframe_html(resolved_path, BeautifulSoup(html, "html.parser"))
        if iframe_html:
            return iframe_html
    return html


# ──────────────────────────────────────────────────────────────────
#  Grid cell helpers
# ──────────────────────────────────────────────────────────────────

def _timetable_tables(soup: BeautifulSoup) -> List[Tag]:
    tables: List[Tag] = list(soup.find_all("table", class_="gridtable"))
    for table in soup.find_all("table", id=re.compile(r"kbtable")):
        if table not in tables:
            tables.append(table)
    return tables


def _cell_slot(cell: Tag, context: ParserContext) -> Optional[Tuple[int, int]]:
    """``id="TD23_0"`` -> (day, period) for the cell's first period."""
    m = context.cell_id_re.match(cell.get("id", ""))
    if not m:
        return None
    return context.decode_slot(int(m.group(1)))


def _cell_lines(cell: Tag) -> List[str]:
    """Text of ``cell`` split at ``<br>`` only; inline tags stay on their line."""
    lines: List[str] = [""]
    for node in cell.descendants:
        if isinstance(node, Tag):
            if node.name == "br":
                lines.append("")
        elif isinstance(node, NavigableString) and not isinstance(node, Comment):
            lines[-1] += str(node)
    return [" ".join(line.split()) for line in lines if line.split()]


def _parse_cell_text(cell: Tag) -> Optional[Tuple[str, str, str]]:
    """
    Cell text -> (name, teacher, room).

    First line is ``name [teacher]`` (teacher optional), the line after
    the first <br> is the room.
    """
    lines = _cell_lines(cell)
    if not lines:
        return None

    m = re.match(r"^(.+?)\s*(?:\[(.+?)\])?\s*$", lines[0])
    if not m:
        return None
    name = extract_course_name(m.group(1))
    if not name:
        return None
    teacher = (m.group(2) or "").strip()
    room = lines[1] if len(lines) > 1 else ""
    return name, teacher, room


def _record_from_cell(
    cell: Tag, context: ParserContext, span: int
) -> Optional[CourseRecord]:
    slot = _cell_slot(cell, context)
    if slot is None:
        return None
    parsed = _parse_cell_text(cell)
    if parsed is None:
        return None
    day, period = slot
    name, teacher, room = parsed
    return CourseRecord(
        name=name,
        teacher_name=teacher,
        room=room,
        day_of_week=day,
        periods=list(range(period, period + span)),
    )


# ──────────────────────────────────────────────────────────────────
#  Strategy: rowspan cells of the rendered grid
# ──────────────────────────────────────────────────────────────────

def extract_rowspan_records(soup: BeautifulSoup, context: ParserContext) -> List[CourseRecord]:
    """
    One record per ``<td rowspan=N id="TD<index>_<n>">``, covering N periods.

    The grid is the only place where a block's full length is visible
    when the script statements are truncated.
    """
    courses: List[CourseRecord] = []
    for table in _timetable_tables(soup):
        cells = table.find_all("td", rowspan=True)
        if not cells:
            continue
        logger.info("Found %d rowspan cell(s)", len(cells))

        for cell in cells:
            try:
                span = int(cell.get("rowspan", "1"))
                course = _record_from_cell(cell, context, max(span, 1))
            except ValueError as exc:
                logger.warning("Skipping rowspan cell %s: %s", cell.get("id", ""), exc)
                continue
            if course is None:
                continue
            merge_or_add(courses, course, context)
            if context.debug:
                logger.debug(
                    "Rowspan course %r on day %d, period %d, %d period(s)",
                    course.name, course.day_of_week, course.periods[0] + 1, len(course.periods),
                )
    return courses


# ──────────────────────────────────────────────────────────────────
#  Fallback strategy: highlighted cells (legacy layout)
# ──────────────────────────────────────────────────────────────────

def extract_highlighted_cell_records(
    soup: BeautifulSoup, context: ParserContext
) -> List[CourseRecord]:
    """Every cell with a background colour, one period each."""
    courses: List[CourseRecord] = []
    for table in _timetable_tables(soup):
        for cell in table.find_all("td"):
            if "background-color" not in cell.get("style", ""):
                continue
            course = _record_from_cell(cell, context, 1)
            if course is not None:
                merge_or_add(courses, course, context)
    return courses


# ──────────────────────────────────────────────────────────────────
#  Strategy list
# ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Strategy:
    name: str
    extract: Callable[[BeautifulSoup, str, ParserContext], List[CourseRecord]]
    # fallback strategies run only when the primary ones found nothing
    fallback: bool = False


STRATEGIES: Tuple[Strategy, ...] = (
    Strategy("script", lambda soup, html, ctx: extract_script_records(html, ctx)),
    Strategy("rowspan", lambda soup, html, ctx: extract_rowspan_records(soup, ctx)),
    Strategy("loose-script", lambda soup, html, ctx: extract_loose_script_records(html, ctx), fallback=True),
    Strategy("highlighted-cells", lambda soup, html, ctx: extract_highlighted_cell_records(soup, ctx), fallback=True),
)


def _run_strategy(
    strategy: Strategy, soup: BeautifulSoup, html: str, context: ParserContext
) -> List[CourseRecord]:
    try:
        records = strategy.extract(soup, html, context)
    except (ValueError, IndexError, AttributeError, TypeError) as exc:
        logger.warning("Strategy %s failed: %s", strategy.name, exc)
        return []
    logger.info("Strategy %s found %d record(s)", strategy.name, len(records))
    return records


def extract_course_records(
    soup: BeautifulSoup,
    html: str,
    context: ParserContext,
    strategies: Tuple[Strategy, ...] = STRATEGIES,
) -> List[CourseRecord]:
    """
    Primary strategies all run and are merged together; fallback strategies
    are tried in order only if that gave nothing, first non-empty wins.
    """
    courses: List[CourseRecord] = []
    for strategy in strategies:
        if strategy.fallback:
            continue
        for record in _run_strategy(strategy, soup, html, context):
            merge_or_add(courses, record, context)

    if courses:
        return courses

    for strategy in strategies:
        if not strategy.fallback:
            continue
        logger.info("No courses from the primary strategies, trying %s", strategy.name)
        courses = _run_strategy(strategy, soup, html, context)
        if courses:
            break
    return courses


# ──────────────────────────────────────────────────────────────────
#  Public API
# ──────────────────────────────────────────────────────────────────

def _parse_semester(soup: BeautifulSoup, context: ParserContext) -> Tuple[Optional[str], Optional[str]]:
    """'2024-2025学年第1学期' -> ('2024-2025', '1')."""
    m = context.semester_re.search(soup.get_text(" ", strip=True))
    if m:
        return m.group(1), m.group(2)
    return None, None


def parse_schedule_page(
    html_content: str,
    context: ParserContext | None = None,
) -> ScheduleInfo:
    """
    Parse a timetable document into a :class:`ScheduleInfo`.

    :param html_content: HTML of the timetable frame.
    :param context: Parser settings; by default read from the page
        (``var unitCount``) with the standard patterns.
    :returns: Year/term when labelled, plus the reconciled course list.
        An unparsable page gives an empty course list, not an error.
    """
    ctx = context or ParserContext.from_html(html_content)
    soup = BeautifulSoup(html_content, "html.parser")

    courses = extract_course_records(soup, html_content, ctx)

    credits = parse_course_credits(soup, html_content, ctx)
    attach_credits(courses, credits)
    attach_teacher_ids(
        courses,
        extract_teacher_ids(html_content, ctx),
        extract_teacher_course_table(soup, ctx),
        ctx,
    )

    courses = merge_duplicate_courses(courses, ctx)
    finalize_periods(courses, ctx)

    year, term = _parse_semester(soup, ctx)
    logger.info("Parsed %d course(s)", len(courses))
    return ScheduleInfo(year=year, term=term, units_per_day=ctx.units_per_day, courses=courses)


def parse_schedule_html(
    html_path: str | Path | None = None,
    html_content: str | None = None,
    context: ParserContext | None = None,
) -> List[CourseRecord]:
    """
    Parse a timetable page and return the canonical course list.

    :param html_path: Saved HTML file (outer page or the iframe document).
    :param html_content: Raw HTML string (alternative to html_path).
    :param context: Optional parser settings.
    """
    html = load_schedule_html(html_path=html_path, html_content=html_content)
    return parse_schedule_page(html, context).courses
