from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ColumnHeader:
    index: int
    name: Any


@dataclass(frozen=True)
class PreviewRow:
    row: int
    data: dict[str, Any]


@dataclass(frozen=True)
class UploadResult:
    token: str
    columns: list[ColumnHeader]
    preview: list[PreviewRow]


@dataclass(frozen=True)
class ColumnMapping:
    """0-based sheet column indexes for the three fields we read."""

    container: int
    part: int
    quantity: int


@dataclass(frozen=True)
class ExpandedRow:
    container: int
    part: Any
    quantity: Any

    def to_dict(self) -> dict:
        return {"container": self.container, "part": self.part, "quantity": self.quantity}
