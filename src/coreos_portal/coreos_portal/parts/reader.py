from __future__ import annotations

import io
from typing import Any

import pandas as pd

from ..core.exceptions import ValidationError
from ..warehouse.spreadsheet import UNREADABLE_ERRORS

CSV_EXTENSIONS = (".csv",)
EXCEL_EXTENSIONS = (".xlsx", ".xlsm")


def upload_type_for(filename: str) -> str:
    name = (filename or "").lower()
    if name.endswith(CSV_EXTENSIONS):
        return "csv"
    if name.endswith(EXCEL_EXTENSIONS):
        return "excel"
    raise ValidationError("Parts files must be .csv, .xlsx or .xlsm")


def read_catalog(filename: str, data: bytes) -> tuple[list[Any], list[list[Any]]]:
    """Header row and data rows of the first sheet (or the CSV), cells untouched."""

    upload_type = upload_type_for(filename)
    try:
        if upload_type == "csv":
            df = pd.read_csv(
                io.BytesIO(data),
                header=None,
                dtype=str,
                keep_default_na=False,
                encoding="utf-8-sig",
            )
        else:
            df = pd.read_excel(io.BytesIO(data), header=None, dtype=object, engine="openpyxl")
    except UNREADABLE_ERRORS as e:
        # pandas' EmptyDataError, ParserError and UnicodeDecodeError are ValueErrors.
        raise ValidationError(f"Error processing parts file: {e}")

    rows = df.values.tolist()
    if len(rows) < 2:
        raise ValidationError("The parts file needs a header row and at least one part")
    return rows[0], rows[1:]
