"""Container expansion.

A packing list names the containers (cartons) a part ships in as a cell like
``"1-3, 7"``. Expanding turns every such row into one row per container.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time
from typing import Any, Iterable, Optional, Sequence

from ..core.constants import EXPANDER_STOP_WORDS, MAX_CONTAINER_RANGE, MAX_EXPANDED_ROWS
from ..core.exceptions import ValidationError
from .model import ColumnHeader, ColumnMapping, ExpandedRow

# Plain decimals with an optional exponent; no digit separators.
_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


class StopExpansion(Exception):
    """A sentinel cell ends the packing list."""


def normalize_cell(value: Any) -> Any:
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return value


def is_empty_cell(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() in ("", "0")
    if isinstance(value, (int, float)):
        return value == 0
    return False


def parse_number(text: str) -> Optional[int]:
    text = text.strip()
    if not _NUMERIC_RE.match(text):
        return None
    number = float(text)
    if not math.isfinite(number):
        return None
    return int(number)


def expand_piece(piece: str) -> list[int]:
    """Containers named by one comma-separated piece of a container cell."""

    piece = piece.strip()
    if piece.lower() in EXPANDER_STOP_WORDS:
        raise StopExpansion(piece)

    if "-" in piece:
        ends = piece.split("-")
        if len(ends) != 2:
            return []
        start, end = parse_number(ends[0]), parse_number(ends[1])
        if start is None or end is None:
            return []
        if end - start + 1 > MAX_CONTAINER_RANGE:
            raise ValidationError(f"Container range {piece} spans more than {MAX_CONTAINER_RANGE} containers")
        return list(range(start, end + 1))

    number = parse_number(piece)
    return [] if number is None else [number]


def header_columns(rows: Sequence[Sequence[Any]], start_row: int) -> list[ColumnHeader]:
    if start_row < 1 or start_row > len(rows):
        return []
    return [
        ColumnHeader(index=i, name=normalize_cell(v))
        for i, v in enumerate(rows[start_row - 1])
        if v is not None and normalize_cell(v) != ""
    ]


def _cell(row: Sequence[Any], index: int) -> Any:
    if index < 0 or index >= len(row):
        return None
    return row[index]


def expand_rows(rows: Iterable[Sequence[Any]], mapping: ColumnMapping) -> list[ExpandedRow]:
    """Expand data rows (everything below the header row) into one row per container.

    Rows missing any mapped value are skipped before their container cell is
    read, so a sentinel on such a row is ignored. A stop sentinel anywhere in
    a container cell ends the whole sheet; rows expanded so far are kept.
    """

    out: list[ExpandedRow] = []
    for row in rows:
        container = _cell(row, mapping.container)
        part = _cell(row, mapping.part)
        quantity = _cell(row, mapping.quantity)
        if is_empty_cell(container) or is_empty_cell(part) or is_empty_cell(quantity):
            continue

        part, quantity = normalize_cell(part), normalize_cell(quantity)
        try:
            for piece in str(normalize_cell(container)).split(","):
                for number in expand_piece(piece):
                    out.append(ExpandedRow(container=number, part=part, quantity=quantity))
                if len(out) > MAX_EXPANDED_ROWS:
                    raise ValidationError(f"Expansion would produce more than {MAX_EXPANDED_ROWS} rows")
        except StopExpansion:
            break
    return out
