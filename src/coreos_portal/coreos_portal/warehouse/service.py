from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_positive_int
from ..core.constants import DEFAULT_MAX_UPLOAD_MB
from ..core.exceptions import NotFoundError, ValidationError
from .expander import expand_rows, header_columns
from .model import ColumnHeader, ColumnMapping, ExpandedRow, UploadResult
from .spreadsheet import build_preview, export_expanded, read_grid
from .storage import UploadStore

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".xlsx", ".xlsm")


class ContainerExpanderService:
    """Use case: upload a packing list, map its columns, expand container ranges, export."""

    def __init__(
        self,
        store: UploadStore,
        *,
        max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB,
        clock: Callable[[], datetime] = now_local,
    ):
        self._store = store
        self._max_bytes = int(max_upload_mb) * 1024 * 1024
        self._clock = clock

    def upload(self, *, filename: str, data: bytes, start_row) -> UploadResult:
        start_row = require_positive_int(start_row, "startRow")
        if not filename or not filename.lower().endswith(ALLOWED_EXTENSIONS):
            raise ValidationError("The spreadsheet must be an .xlsx or .xlsm file")
        if not data:
            raise ValidationError("The uploaded file is empty")
        if len(data) > self._max_bytes:
            raise ValidationError(f"The spreadsheet may not be larger than {self._max_bytes // (1024 * 1024)} MB")

        self._store.purge_stale()
        token = self._store.save_upload(data)
        try:
            rows = read_grid(self._store.upload_path(token))
        except Exception:
            self._store.discard(token)
            raise

        logger.info("Stored upload %s (%s, %d rows)", token, filename, len(rows))
        return UploadResult(token=token, columns=header_columns(rows, start_row), preview=build_preview(rows))

    def update_columns(self, *, token: str, start_row) -> list[ColumnHeader]:
        start_row = require_positive_int(start_row, "startRow")
        rows = read_grid(self._store.upload_path(token))
        return header_columns(rows, start_row)

    def expand(self, *, token: str, start_row, mapping: ColumnMapping) -> list[ExpandedRow]:
        start_row = require_positive_int(start_row, "startRow")
        for name in ("container", "part", "quantity"):
            if getattr(mapping, name) < 0:
                raise ValidationError(f"mappedColumns.{name} must be a column index")

        rows = read_grid(self._store.upload_path(token))
        expanded = expand_rows(rows[start_row:], mapping)
        self._store.save_expansion(token, expanded)
        logger.info("Expanded upload %s into %d container row(s)", token, len(expanded))
        return expanded

    def download(self, *, token: Optional[str]) -> tuple[bytes, str]:
        rows = self._store.load_expansion(token) if token else None
        if not rows:
            raise NotFoundError("No data available to download. Please expand containers first.")

        filename = f"expanded_containers_{self._clock().strftime('%Y-%m-%d_%H-%M')}.xlsx"
        return export_expanded(rows), filename
