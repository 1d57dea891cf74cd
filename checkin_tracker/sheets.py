"""Convert exported check-in spreadsheets into raw import rows."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .constants import (
    CATEGORY_KEYWORDS,
    GENERAL_CATEGORY,
    IGNORED_COLUMNS,
    STANDARD_COLUMNS,
)
from .models import MalformedRowError

LOGGER = logging.getLogger(__name__)


def _normalise_header(header: Any) -> str:
    return str(header or "").strip().lower()


class HeaderMap:
    """Case-insensitive header -> column index lookup for one sheet."""

    def __init__(self, headers: Sequence[Any]) -> None:
        self.headers: List[str] = [str(header or "").strip() for header in headers]
        self._index: Dict[str, int] = {}
        for position, header in enumerate(self.headers):
            key = _normalise_header(header)
            if key and key not in self._index:
                self._index[key] = position

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and _normalise_header(name) in self._index

    def index_of(self, name: str) -> Optional[int]:
        return self._index.get(_normalise_header(name))

    def get(self, row: Sequence[Any], name: str) -> str:
        """Return the trimmed cell for `name`, or '' when the column or cell is missing."""
        position = self.index_of(name)
        if position is None or position >= len(row):
            return ""
        value = row[position]
        return str(value).strip() if value is not None else ""

    def custom_questions(self) -> List[str]:
        """Headers that are neither standard fields nor form boilerplate, in sheet order."""
        questions: List[str] = []
        seen: set[str] = set()
        for header in self.headers:
            key = _normalise_header(header)
            if not key or key in STANDARD_COLUMNS or key in IGNORED_COLUMNS or key in seen:
                continue
            seen.add(key)
            questions.append(header)
        return questions


def determine_question_category(question: str) -> str:
    lowered = question.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return category
    return GENERAL_CATEGORY


def normalise_sheet_date(value: str, *, line: int | None = None) -> str:
    """
    Turn a sheet date cell into YYYY-MM-DD.

    Exports carry whatever the sheet locale shows (`2024-01-15`, `1/15/2024`,
    `Jan 15 2024`), so pandas does the parsing. Unparseable cells raise
    `MalformedRowError`.
    """
    where = f"sheet row {line}: " if line is not None else ""
    try:
        parsed = pd.to_datetime(value, errors="raise")
    except (ValueError, TypeError, OverflowError) as exc:
        raise MalformedRowError(f"{where}date {value!r} is not a recognisable date.") from exc
    if pd.isna(parsed):
        raise MalformedRowError(f"{where}date {value!r} is not a recognisable date.")
    return parsed.date().isoformat()


def row_from_cells(header_map: HeaderMap, cells: Sequence[Any], *, line: int | None = None) -> Dict[str, Any]:
    """
    Shape one sheet row into the nested raw-row structure.

    Blank cells are left out so the record builder can apply its lenient or
    strict policy for missing numbers. The date cell is normalised to ISO form.
    """
    row: Dict[str, Any] = {
        "measurements": {},
        "nutrition": {},
        "training": {},
        "recovery": {},
    }
    for column, (section, key) in STANDARD_COLUMNS.items():
        value = header_map.get(cells, column)
        if value == "":
            continue
        if key == "date":
            value = normalise_sheet_date(value, line=line)
        target = row if section is None else row[section]
        target[key] = value

    row["customQuestions"] = [
        {
            "question": question,
            "answer": header_map.get(cells, question),
            "category": determine_question_category(question),
        }
        for question in header_map.custom_questions()
    ]
    return row


def rows_from_table(table: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    """Convert a header row plus data rows into raw import rows."""
    if len(table) < 2:
        raise MalformedRowError("No data found in the spreadsheet.")

    header_map = HeaderMap(table[0])
    if "date" not in header_map:
        raise MalformedRowError("Spreadsheet is missing a 'Date' column.")

    # Line numbers count the header as line 1, as the sheet does.
    rows = [
        row_from_cells(header_map, cells, line=line)
        for line, cells in enumerate(table[1:], start=2)
        if any(str(cell or "").strip() for cell in cells)
    ]
    LOGGER.debug(
        "Parsed %s sheet rows with %s custom question column(s)",
        len(rows),
        len(header_map.custom_questions()),
    )
    return rows
