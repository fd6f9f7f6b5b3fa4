from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from openpyxl.styles import PatternFill
from openpyxl.worksheet.worksheet import Worksheet

from ..models.record import Record

"""Row matching and row writing on the synced worksheet.

Column layout:

    1 id | 2 (reserved, never written) | 3 name | 4 email | 5 phone | 6 7 8 extracted fields

Matching uses column 1 only. Identifier comparison is type-aware: numbers
match numbers (7 == 7.0), strings match strings, booleans only booleans and
an empty cell never matches. For duplicated ids already present in the sheet
the first row wins, both for ``find_row`` and for ``RowIndex``.
"""

__all__ = [
    "DEFAULT_FILL_COLOR",
    "ID_COLUMN",
    "RESERVED_COLUMN",
    "RowIndex",
    "append_record",
    "apply_record",
    "find_row",
    "identifier_key",
    "make_fill",
]

ID_COLUMN = 1
RESERVED_COLUMN = 2
NAME_COLUMN = 3
EMAIL_COLUMN = 4
PHONE_COLUMN = 5
FIELD_COLUMNS = (6, 7, 8)

DEFAULT_FILL_COLOR = "FFD3D3D3"  # light gray (ARGB)


def make_fill(color: str = DEFAULT_FILL_COLOR) -> PatternFill:
    """Solid fill used to mark cells written by the sync."""
    return PatternFill(fill_type="solid", start_color=color, end_color=color)


def identifier_key(value: Any) -> tuple[str, Any] | None:
    """Normalize an identifier into a hashable, type-tagged key.

    Returns None for values that never match (empty cells).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return ("num", value)
    if isinstance(value, str):
        return ("str", value)
    return (type(value).__name__, value)


def _is_blank(sheet: Worksheet) -> bool:
    # openpyxl reports max_row == 1 for a sheet without any cell, and
    # iter_rows would create A1 there, pushing the next append() to row 2.
    return not sheet._cells


def find_row(sheet: Worksheet, candidate_id: Any) -> int | None:
    """Linear scan of column 1 (header row included), first match wins.

    Returns:
        The 1-based row number, or None when no row matches
    """
    key = identifier_key(candidate_id)
    if key is None or _is_blank(sheet):
        return None
    for (cell,) in sheet.iter_rows(min_col=ID_COLUMN, max_col=ID_COLUMN):
        if identifier_key(cell.value) == key:
            return cell.row
    return None


class RowIndex:
    """id -> row number mapping built once per run.

    Gives the same answer as ``find_row`` without rescanning the sheet for
    every record. Rows appended during the run are registered with ``add``.
    """

    def __init__(self, rows: dict[tuple[str, Any], int] | None = None) -> None:
        self._rows: dict[tuple[str, Any], int] = rows or {}

    @classmethod
    def build(cls, sheet: Worksheet) -> RowIndex:
        rows: dict[tuple[str, Any], int] = {}
        if _is_blank(sheet):
            return cls(rows)
        for (cell,) in sheet.iter_rows(min_col=ID_COLUMN, max_col=ID_COLUMN):
            key = identifier_key(cell.value)
            if key is not None:
                rows.setdefault(key, cell.row)  # 先勝ち
        return cls(rows)

    def get(self, candidate_id: Any) -> int | None:
        key = identifier_key(candidate_id)
        if key is None:
            return None
        return self._rows.get(key)

    def add(self, candidate_id: Any, row_number: int) -> None:
        key = identifier_key(candidate_id)
        if key is not None:
            self._rows.setdefault(key, row_number)

    def __len__(self) -> int:
        return len(self._rows)


def _record_cells(record: Record, extracted: Sequence[str | None]) -> list[tuple[int, Any]]:
    if len(extracted) != len(FIELD_COLUMNS):
        raise ValueError(f"expected {len(FIELD_COLUMNS)} extracted fields, got {len(extracted)}")
    cells: list[tuple[int, Any]] = [
        (ID_COLUMN, record.id),
        (NAME_COLUMN, record.name),
        (EMAIL_COLUMN, record.email),
        (PHONE_COLUMN, record.phone),
    ]
    cells.extend(zip(FIELD_COLUMNS, extracted))
    return cells


def apply_record(
    sheet: Worksheet,
    row_number: int,
    record: Record,
    extracted: Sequence[str | None],
    fill: PatternFill | None = None,
) -> None:
    """Overwrite columns 1,3-8 of an existing row and mark them with ``fill``."""
    fill = fill or make_fill()
    for column, value in _record_cells(record, extracted):
        cell = sheet.cell(row=row_number, column=column)
        cell.value = value
        cell.fill = fill


def append_record(
    sheet: Worksheet,
    record: Record,
    extracted: Sequence[str | None],
    fill: PatternFill | None = None,
) -> int:
    """Append ``[id, "", name, email, phone, f6, f7, f8]`` as a new row.

    Column 2 gets an explicit empty placeholder. Cells are only filled when
    ``fill`` is given.

    Returns:
        The row number of the appended row
    """
    values: list[Any] = [record.id, "", record.name, record.email, record.phone, *extracted]
    if len(values) != FIELD_COLUMNS[-1]:
        raise ValueError(f"expected {len(FIELD_COLUMNS)} extracted fields, got {len(extracted)}")
    sheet.append(values)
    row_number = sheet.max_row
    if fill is not None:
        for column, _ in _record_cells(record, extracted):
            sheet.cell(row=row_number, column=column).fill = fill
    return row_number
