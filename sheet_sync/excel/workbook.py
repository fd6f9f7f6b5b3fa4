from __future__ import annotations

from io import BytesIO

import pandas as pd
from openpyxl import Workbook, load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from ..errors import DeserializeError, SerializeError

"""Workbook (de)serialization.

The remote document is an .xlsx file. It is loaded with openpyxl (not pandas)
because the sync must keep every existing cell, style and sheet intact and
write fills on touched cells. pandas is only used for the read-only preview
printed by ``--inspect-data``.
"""

__all__ = [
    "load_workbook_bytes",
    "read_sheet_preview",
    "save_workbook_bytes",
    "select_sheet",
]


def load_workbook_bytes(data: bytes) -> Workbook:
    """Deserialize .xlsx bytes into an openpyxl Workbook.

    Raises:
        DeserializeError: bytes are empty or not a readable workbook
    """
    if not data:
        raise DeserializeError("workbook payload is empty")
    try:
        return load_workbook(BytesIO(data))
    except Exception as e:  # zip / xml / openpyxl 例外をまとめて扱う
        raise DeserializeError(f"invalid workbook: {e}") from e


def save_workbook_bytes(workbook: Workbook) -> bytes:
    """Serialize the workbook back to .xlsx bytes.

    Raises:
        SerializeError: openpyxl failed to write the workbook
    """
    buf = BytesIO()
    try:
        workbook.save(buf)
    except Exception as e:
        raise SerializeError(f"failed to serialize workbook: {e}") from e
    return buf.getvalue()


def select_sheet(workbook: Workbook, name: str | None = None) -> Worksheet:
    """Return the named worksheet, or the first one when ``name`` is None."""
    if name is None:
        return workbook.worksheets[0]
    if name not in workbook.sheetnames:
        raise DeserializeError(f"worksheet '{name}' not found (available: {workbook.sheetnames})")
    return workbook[name]


def read_sheet_preview(data: bytes, sheet: str | None = None, rows: int = 5) -> pd.DataFrame:
    """Read the header row plus the first ``rows`` data rows as a DataFrame.

    Row 1 is used as header, the same convention the sync relies on.
    """
    try:
        return pd.read_excel(
            BytesIO(data),
            sheet_name=sheet if sheet is not None else 0,
            header=0,
            nrows=rows,
            engine="openpyxl",
        )
    except Exception as e:
        raise DeserializeError(f"invalid workbook: {e}") from e
