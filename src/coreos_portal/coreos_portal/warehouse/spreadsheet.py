from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Any, Sequence

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from ..core.constants import EXPANDER_EXPORT_HEADERS, PREVIEW_ROWS
from ..core.exceptions import ValidationError
from .expander import normalize_cell
from .model import ExpandedRow, PreviewRow

SHEET_NAME = "Expanded"

UNREADABLE_ERRORS = (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, SyntaxError, ValueError, TypeError)


def read_grid(path: Path) -> list[list[Any]]:
    """Active worksheet as a dense grid: rows 1..max_row, columns A..max_column."""

    # Malformed sheet XML surfaces as a SyntaxError subclass (ElementTree or lxml ParseError).
    try:
        wb = load_workbook(path, data_only=True)
    except UNREADABLE_ERRORS as e:
        raise ValidationError(f"Error processing spreadsheet: {e}")

    try:
        ws = wb.active
        return [
            list(row)
            for row in ws.iter_rows(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column, values_only=True)
        ]
    except UNREADABLE_ERRORS as e:
        raise ValidationError(f"Error processing spreadsheet: {e}")
    finally:
        wb.close()


def build_preview(rows: Sequence[Sequence[Any]], *, limit: int = PREVIEW_ROWS) -> list[PreviewRow]:
    preview = []
    for i, row in enumerate(rows[:limit], start=1):
        preview.append(
            PreviewRow(
                row=i,
                data={get_column_letter(col): normalize_cell(value) for col, value in enumerate(row, start=1)},
            )
        )
    return preview


def export_expanded(rows: Sequence[ExpandedRow]) -> bytes:
    """Workbook with every cell stored and formatted as text, so part numbers keep leading zeros."""

    df = pd.DataFrame(
        [[str(r.container), str(r.part), str(r.quantity)] for r in rows],
        columns=list(EXPANDER_EXPORT_HEADERS),
        dtype=object,
    )

    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=SHEET_NAME)
        ws = writer.sheets[SHEET_NAME]
        for row in ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=len(EXPANDER_EXPORT_HEADERS)):
            for cell in row:
                cell.number_format = "@"
    return out.getvalue()
