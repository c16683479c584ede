from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import UploadStatus

# Header spellings seen in supplier sheets, matched after normalize_key().
HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "part_number": ("part_number", "part number", "partnumber", "part_no", "part no", "part-number"),
    "description": ("description", "desc", "product_description", "product description", "product_desc"),
    "manufacturer": ("manufacturer", "manufacture", "vendor", "brand", "mfg", "mfr"),
    "manufacturer_serial": ("manufacturer_serial", "manufacture_serial", "serial", "serial_number", "mfg serial"),
    "part_type": ("part_type", "type", "item type", "product type"),
    "category": ("part_category", "category", "group", "part group", "category name"),
    "models": ("models", "supported_models", "model", "models supported", "compatible models", "compatibility"),
    "quantity": ("quantity", "qty", "on_hand", "onhand", "stockqty", "stock"),
    "location": ("part_location", "location", "warehouse_location", "bin", "shelf", "aisle", "warehouse bin"),
}

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_key(key: Any) -> str:
    """'Part No.' -> 'partno'"""

    return _NON_ALNUM.sub("", str(key or "").strip().lower())


def cell_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            value = int(value)
    text = str(value).strip()
    return text or None


def split_models(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(m.strip() for m in re.split(r"[;,]", value) if m.strip())


def map_headers(headers: list[Any]) -> dict[str, int]:
    """Column index for each known field; the first matching alias wins."""

    by_key: dict[str, int] = {}
    for index, header in enumerate(headers):
        by_key.setdefault(normalize_key(header), index)

    found: dict[str, int] = {}
    for name, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            index = by_key.get(normalize_key(alias))
            if index is not None and index not in found.values():
                found[name] = index
                break
    return found


@dataclass(frozen=True)
class ImportedPart:
    part_number: str
    description: Optional[str] = None
    manufacturer: Optional[str] = None
    manufacturer_serial: Optional[str] = None
    part_type: Optional[str] = None
    category: Optional[str] = None
    models: tuple[str, ...] = ()
    quantity: Optional[str] = None
    location: Optional[str] = None
    fields: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Part:
    part_id: int
    upload_id: int
    batch_id: str
    file_context: str
    part_number: str
    description: Optional[str] = None
    manufacturer: Optional[str] = None
    manufacturer_serial: Optional[str] = None
    part_type: Optional[str] = None
    category: Optional[str] = None
    models: tuple[str, ...] = ()
    quantity: Optional[str] = None
    location: Optional[str] = None
    is_active: bool = True
    fields: dict[str, str] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.part_id,
            "upload_id": self.upload_id,
            "batch_id": self.batch_id,
            "file_name": self.file_context,
            "part_number": self.part_number,
            "description": self.description,
            "manufacturer": self.manufacturer,
            "manufacturer_serial": self.manufacturer_serial,
            "part_type": self.part_type,
            "part_category": self.category,
            "models": list(self.models),
            "quantity": self.quantity,
            "part_location": self.location,
            "is_active": self.is_active,
            "custom_fields": dict(self.fields),
            "created_at": self.created_at.isoformat(sep=" ") if self.created_at else None,
        }


@dataclass(frozen=True)
class PartsUpload:
    upload_id: int
    batch_id: str
    filename: str
    upload_type: str
    status: UploadStatus
    total_parts: int = 0
    processed_parts: int = 0
    processing_logs: tuple[str, ...] = ()
    uploaded_by: Optional[int] = None
    uploaded_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.upload_id,
            "batch_id": self.batch_id,
            "original_filename": self.filename,
            "upload_type": self.upload_type,
            "status": self.status.value,
            "total_parts": self.total_parts,
            "processed_parts": self.processed_parts,
            "processing_logs": list(self.processing_logs),
            "uploaded_by": self.uploaded_by,
            "uploaded_at": self.uploaded_at.isoformat(sep=" ") if self.uploaded_at else None,
            "completed_at": self.completed_at.isoformat(sep=" ") if self.completed_at else None,
        }


@dataclass(frozen=True)
class PartFilters:
    """Catalog filters. Each tuple matches any of its values."""

    search: Optional[str] = None
    manufacturers: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    models: tuple[str, ...] = ()
    part_types: tuple[str, ...] = ()
    serials: tuple[str, ...] = ()
    upload_id: Optional[int] = None


@dataclass(frozen=True)
class PartsPage:
    items: list[Part]
    total: int
    page: int
    per_page: int

    @property
    def last_page(self) -> int:
        return max(1, -(-self.total // self.per_page))

    def to_dict(self) -> dict:
        first = (self.page - 1) * self.per_page + 1 if self.items else None
        return {
            "data": [p.to_dict() for p in self.items],
            "meta": {
                "current_page": self.page,
                "last_page": self.last_page,
                "per_page": self.per_page,
                "total": self.total,
                "from": first,
                "to": first + len(self.items) - 1 if first else None,
            },
        }
