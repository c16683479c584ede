from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from pathlib import PurePath
from typing import Any, Optional, Sequence

from ..common.validators import optional_text, require_non_empty, require_positive_int
from ..core.constants import (
    DEFAULT_MAX_UPLOAD_MB,
    PARTS_FIELD_NAME_LENGTH,
    PARTS_FILE_CONTEXT_LENGTH,
    PARTS_MAX_LOG_LINES,
    PARTS_MAX_PER_PAGE,
    PARTS_MIN_PER_PAGE,
    PARTS_PER_PAGE,
    PARTS_SEARCH_MAX_LENGTH,
    PARTS_SERIAL_OPTIONS_LIMIT,
    PARTS_TEXT_MAX_LENGTH,
)
from ..core.enums import UploadStatus
from ..core.exceptions import NotFoundError, ValidationError
from .model import ImportedPart, Part, PartFilters, PartsPage, PartsUpload, cell_text, map_headers, split_models
from .reader import read_catalog, upload_type_for
from .repository import PartRepository

logger = logging.getLogger(__name__)

_EDITABLE_TEXT = ("manufacturer", "manufacturer_serial", "part_type", "category", "quantity", "location")
_LIMITED_COLUMNS = ("part_number",) + _EDITABLE_TEXT


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _limited(value: Optional[str], label: str) -> Optional[str]:
    if value is not None and len(value) > PARTS_TEXT_MAX_LENGTH:
        raise ValidationError(f"{label} may not be longer than {PARTS_TEXT_MAX_LENGTH} characters")
    return value


def _page_args(page, per_page) -> tuple[int, int]:
    page = require_positive_int(page, "page")
    per_page = require_positive_int(per_page, "per_page")
    if not PARTS_MIN_PER_PAGE <= per_page <= PARTS_MAX_PER_PAGE:
        raise ValidationError(f"per_page must be between {PARTS_MIN_PER_PAGE} and {PARTS_MAX_PER_PAGE}")
    return page, per_page


def _summarize(logs: list[str]) -> list[str]:
    if len(logs) <= PARTS_MAX_LOG_LINES:
        return logs
    return logs[:PARTS_MAX_LOG_LINES] + [f"... and {len(logs) - PARTS_MAX_LOG_LINES} more"]


class PartsCatalogService:
    """Use case: import supplier part lists, then browse, filter and correct the catalog."""

    def __init__(self, parts: PartRepository, *, max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB):
        self._parts = parts
        self._max_bytes = int(max_upload_mb) * 1024 * 1024

    # -------- browsing --------
    def search(self, filters: PartFilters, *, page=1, per_page=PARTS_PER_PAGE) -> PartsPage:
        page, per_page = _page_args(page, per_page)
        search = (filters.search or "").strip()
        if len(search) > PARTS_SEARCH_MAX_LENGTH:
            raise ValidationError(f"search may not be longer than {PARTS_SEARCH_MAX_LENGTH} characters")

        filters = replace(filters, search=search or None)
        items, total = self._parts.search(filters, offset=(page - 1) * per_page, limit=per_page)
        return PartsPage(items=list(items), total=total, page=page, per_page=per_page)

    def filter_options(self) -> dict[str, list[str]]:
        return {
            "manufacturers": self._parts.distinct_values("manufacturer"),
            "categories": self._parts.distinct_values("category"),
            "models": self._parts.distinct_values("models"),
            "partTypes": self._parts.distinct_values("part_type"),
            "serials": self._parts.distinct_values("manufacturer_serial", limit=PARTS_SERIAL_OPTIONS_LIMIT),
        }

    def active_count(self) -> int:
        return self._parts.count_active()

    def get_part(self, part_id: int) -> Part:
        part = self._parts.get_by_id(int(part_id))
        if not part:
            raise NotFoundError("Part not found")
        return part

    def update_part(self, part_id: int, data: dict) -> Part:
        part = self.get_part(part_id)

        changes: dict[str, Any] = {}
        if "part_number" in data:
            changes["part_number"] = _limited(require_non_empty(str(data["part_number"] or ""), "Part number"), "Part number")
        if "description" in data:
            changes["description"] = optional_text(data["description"])
        for key in _EDITABLE_TEXT:
            if key in data:
                changes[key] = _limited(optional_text(None if data[key] is None else str(data[key])), key)
        if "is_active" in data:
            changes["is_active"] = _flag(data["is_active"])

        updated = replace(part, **changes)
        other = self._parts.find_id(
            file_context=updated.file_context,
            part_number=updated.part_number,
            manufacturer=updated.manufacturer,
        )
        if other is not None and other != updated.part_id:
            raise ValidationError("Another part from the same file already has this part number and manufacturer")

        self._parts.update(updated)
        logger.info("Updated part %s (%s)", updated.part_id, ", ".join(sorted(changes)) or "no changes")
        return self.get_part(updated.part_id)

    # -------- imports --------
    def import_catalog(self, *, filename: str, data: bytes, uploaded_by: Optional[int] = None) -> PartsUpload:
        upload_type = upload_type_for(filename)
        if not data:
            raise ValidationError("The uploaded file is empty")
        if len(data) > self._max_bytes:
            raise ValidationError(f"The parts file may not be larger than {self._max_bytes // (1024 * 1024)} MB")

        headers, rows = read_catalog(filename, data)
        columns = map_headers(headers)
        if "part_number" not in columns:
            raise ValidationError("Could not find a part number column in the header row")

        parts, logs, considered = self._parts_from(headers, rows, columns)
        batch_id = uuid.uuid4().hex
        upload_id = self._parts.create_upload(
            batch_id=batch_id, filename=filename[:255], upload_type=upload_type, uploaded_by=uploaded_by
        )
        try:
            created, updated = self._parts.save_imported(
                upload_id=upload_id,
                batch_id=batch_id,
                file_context=PurePath(filename).stem[:PARTS_FILE_CONTEXT_LENGTH],
                parts=parts,
            )
        except Exception as e:
            self._parts.finish_upload(
                upload_id,
                status=UploadStatus.FAILED,
                total_parts=considered,
                processed_parts=0,
                logs=_summarize(logs + [f"Import failed: {e}"]),
            )
            logger.exception("Parts import %s failed", batch_id)
            raise

        status = UploadStatus.COMPLETED_WITH_ERRORS if logs else UploadStatus.COMPLETED
        self._parts.finish_upload(
            upload_id,
            status=status,
            total_parts=considered,
            processed_parts=created + updated,
            logs=_summarize(logs),
        )
        logger.info(
            "Parts import %s from %s: %d created, %d updated, %d skipped",
            batch_id,
            filename,
            created,
            updated,
            len(logs),
        )
        return self.get_upload(upload_id)

    def _parts_from(
        self, headers: Sequence[Any], rows: Sequence[Sequence[Any]], columns: dict[str, int]
    ) -> tuple[list[ImportedPart], list[str], int]:
        core = set(columns.values())
        extra = [(i, cell_text(h)[:PARTS_FIELD_NAME_LENGTH]) for i, h in enumerate(headers) if i not in core and cell_text(h)]

        parts: list[ImportedPart] = []
        logs: list[str] = []
        considered = 0
        for row_number, row in enumerate(rows, start=2):
            cells = [cell_text(v) for v in row]
            if not any(cells):
                continue
            considered += 1

            values = {name: cells[index] if index < len(cells) else None for name, index in columns.items()}
            if not values.get("part_number"):
                logs.append(f"Row {row_number}: missing part number")
                continue
            too_long = [name for name in _LIMITED_COLUMNS if len(values.get(name) or "") > PARTS_TEXT_MAX_LENGTH]
            if too_long:
                logs.append(f"Row {row_number}: {', '.join(too_long)} longer than {PARTS_TEXT_MAX_LENGTH} characters")
                continue

            parts.append(
                ImportedPart(
                    part_number=values["part_number"],
                    description=values.get("description"),
                    manufacturer=values.get("manufacturer"),
                    manufacturer_serial=values.get("manufacturer_serial"),
                    part_type=values.get("part_type"),
                    category=values.get("category"),
                    models=split_models(values.get("models")),
                    quantity=values.get("quantity"),
                    location=values.get("location"),
                    fields={name: cells[i] for i, name in extra if i < len(cells) and cells[i]},
                )
            )
        return parts, logs, considered

    def get_upload(self, upload_id: int) -> PartsUpload:
        upload = self._parts.get_upload(int(upload_id))
        if not upload:
            raise NotFoundError("Upload not found")
        return upload

    def upload_details(self, upload_id: int) -> tuple[PartsUpload, dict[str, int]]:
        upload = self.get_upload(upload_id)
        return upload, self._parts.upload_statistics(upload.upload_id)

    def list_uploads(self, *, search: Optional[str] = None, page=1, per_page=20) -> tuple[list[PartsUpload], int]:
        page, per_page = _page_args(page, per_page)
        return self._parts.list_uploads(
            search=optional_text(search),
            offset=(page - 1) * per_page,
            limit=per_page,
        )
