"""Parsers for Planday HTML exports.

Two layouts are supported: the timesheet export (one ``timesheetMasterRow``
per shift, without employee names) and the pay-slip export (an employee
information block followed by that employee's pay-slip table). Header and
summary rows are routine in both, so unparseable rows are skipped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date

from bs4 import BeautifulSoup, Tag

from dashboard.core.errors import ParseError

logger = logging.getLogger(__name__)

HTML_PARSER = "html.parser"

TIMESHEET_ROW_SELECTOR = ".timesheetMasterRow"
TIMESHEET_DATE_CELL = 1
TIMESHEET_PERIOD_CELL = 2
TIMESHEET_AMOUNT_CELL = 6
PERIOD_SEPARATOR = "-"

EMPLOYEE_BLOCK_CLASSES = ("employeeInfo", "employee-info")
EMPLOYEE_NAME_SELECTOR = ".employeeName, .employee-name"
DATE_HEADERS = ("dato", "date")
AMOUNT_HEADERS = ("beløb", "amount", "løn", "total")

_VENDOR_DATE_RE = re.compile(r"(\d{1,2})[./-](\d{1,2})[./-](\d{4})")
_TIME_RE = re.compile(r"^\d{1,2}:\d{2}$")
_CURRENCY_STRIP_RE = re.compile(r"[^\d,\-]")


@dataclass(frozen=True)
class ParsedShift:
    date: date
    time_from: str
    time_to: str
    amount: float


@dataclass(frozen=True)
class ParsedLaborEntry:
    employee: str
    date: date
    amount: float


def parse_currency(text: str) -> float:
    """Parse a Danish formatted amount such as ``"1.234,56 kr."``."""

    cleaned = _CURRENCY_STRIP_RE.sub("", text or "")
    negative = cleaned.startswith("-")
    cleaned = cleaned.replace("-", "")
    if not re.search(r"\d", cleaned) or cleaned.count(",") > 1:
        raise ParseError(f"Not a currency amount: {text!r}")
    value = float(cleaned.replace(",", "."))
    return -value if negative else value


def parse_vendor_date(text: str) -> date:
    """Convert ``dd.mm.yyyy`` (also ``-`` or ``/`` separated) to a date."""

    match = _VENDOR_DATE_RE.search(text or "")
    if not match:
        raise ParseError(f"Not a vendor date: {text!r}")
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise ParseError(f"Invalid calendar date: {text!r}") from exc


def parse_period(text: str) -> tuple[str, str]:
    start, separator, end = (text or "").partition(PERIOD_SEPARATOR)
    start, end = start.strip(), end.strip()
    if not separator or not _TIME_RE.match(start) or not _TIME_RE.match(end):
        raise ParseError(f"Not a time range: {text!r}")
    return start.zfill(5), end.zfill(5)


def _cell_text(cell: Tag) -> str:
    return cell.get_text(" ", strip=True)


def parse_timesheet_html(html: str) -> list[ParsedShift]:
    soup = BeautifulSoup(html, HTML_PARSER)
    shifts: list[ParsedShift] = []
    skipped = 0
    for row in soup.select(TIMESHEET_ROW_SELECTOR):
        cells = row.find_all("td")
        if len(cells) <= TIMESHEET_AMOUNT_CELL:
            skipped += 1
            continue
        try:
            shift_date = parse_vendor_date(_cell_text(cells[TIMESHEET_DATE_CELL]))
            time_from, time_to = parse_period(_cell_text(cells[TIMESHEET_PERIOD_CELL]))
            amount = parse_currency(_cell_text(cells[TIMESHEET_AMOUNT_CELL]))
        except ParseError as exc:
            logger.debug("Skipping timesheet row: %s", exc)
            skipped += 1
            continue
        shifts.append(ParsedShift(date=shift_date, time_from=time_from, time_to=time_to, amount=amount))
    logger.info("Parsed %d timesheet shifts (%d rows skipped)", len(shifts), skipped)
    return shifts


def _is_employee_block(element: Tag) -> bool:
    classes = element.get("class") or []
    return any(name in classes for name in EMPLOYEE_BLOCK_CLASSES)


def _employee_name(block: Tag) -> str:
    name_element = block.select_one(EMPLOYEE_NAME_SELECTOR)
    text = _cell_text(name_element) if name_element else ""
    if not text:
        text = next((line.strip() for line in block.get_text("\n").splitlines() if line.strip()), "")
    return text


def _header_matches(header: str, keys: tuple[str, ...]) -> bool:
    return any(header == key or header.startswith(key + " ") for key in keys)


def _column_indexes(table: Tag) -> tuple[int, int]:
    """Locate the date and amount columns; the first matching header wins."""

    headers = [_cell_text(th).lower().strip(" :") for th in table.find_all("th")]
    date_index = next((i for i, header in enumerate(headers) if _header_matches(header, DATE_HEADERS)), 0)
    amount_index = next(
        (
            i
            for i, header in enumerate(headers)
            if i != date_index and _header_matches(header, AMOUNT_HEADERS)
        ),
        -1,
    )
    return date_index, amount_index


def _parse_payslip_table(table: Tag, employee: str) -> list[ParsedLaborEntry]:
    date_index, amount_index = _column_indexes(table)
    entries: list[ParsedLaborEntry] = []
    for row in table.find_all("tr"):
        cells = row.find_all("td")
        if not cells:
            continue
        try:
            entry_date = parse_vendor_date(_cell_text(cells[date_index]))
            amount = parse_currency(_cell_text(cells[amount_index]))
        except (ParseError, IndexError) as exc:
            logger.debug("Skipping pay-slip row for %s: %s", employee, exc)
            continue
        entries.append(ParsedLaborEntry(employee=employee, date=entry_date, amount=amount))
    return entries


def parse_payslip_html(html: str) -> list[ParsedLaborEntry]:
    soup = BeautifulSoup(html, HTML_PARSER)
    selector = ", ".join([f".{name}" for name in EMPLOYEE_BLOCK_CLASSES] + ["table"])
    entries: list[ParsedLaborEntry] = []
    employee: str | None = None
    # soupsieve yields matches in document order, so each table belongs to the
    # most recent employee block above it
    for element in soup.select(selector):
        if _is_employee_block(element):
            employee = _employee_name(element) or None
            continue
        if element.name == "table" and employee:
            entries.extend(_parse_payslip_table(element, employee))
    logger.info("Parsed %d pay-slip entries", len(entries))
    return entries


__all__ = [
    "ParsedLaborEntry",
    "ParsedShift",
    "parse_currency",
    "parse_payslip_html",
    "parse_period",
    "parse_timesheet_html",
    "parse_vendor_date",
]
