from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import UploadStatus
from .model import ImportedPart, Part, PartFilters, PartsUpload


class PartRepository(Protocol):
    """Imported parts, their free-form columns and the uploads they came from."""

    def search(self, filters: PartFilters, *, offset: int, limit: int) -> tuple[list[Part], int]:
        """Active parts matching `filters`, newest first, plus the total match count."""
        raise NotImplementedError

    def get_by_id(self, part_id: int) -> Optional[Part]:
        raise NotImplementedError

    def find_id(self, *, file_context: str, part_number: str, manufacturer: Optional[str]) -> Optional[int]:
        raise NotImplementedError

    def update(self, part: Part) -> bool:
        raise NotImplementedError

    def count_active(self) -> int:
        raise NotImplementedError

    def distinct_values(self, column: str, *, limit: Optional[int] = None) -> list[str]:
        """Sorted non-empty values of `column` across active parts."""
        raise NotImplementedError

    def save_imported(self, *, upload_id: int, batch_id: str, file_context: str, parts: Sequence[ImportedPart]) -> tuple[int, int]:
        """Insert parts, or refresh the ones already imported from the same file.

        A part is the same when file context, part number and manufacturer
        match. Returns (created, updated).
        """
        raise NotImplementedError

    def create_upload(self, *, batch_id: str, filename: str, upload_type: str, uploaded_by: Optional[int]) -> int:
        raise NotImplementedError

    def finish_upload(
        self,
        upload_id: int,
        *,
        status: UploadStatus,
        total_parts: int,
        processed_parts: int,
        logs: Sequence[str],
    ) -> bool:
        raise NotImplementedError

    def get_upload(self, upload_id: int) -> Optional[PartsUpload]:
        raise NotImplementedError

    def list_uploads(self, *, search: Optional[str], offset: int, limit: int) -> tuple[list[PartsUpload], int]:
        raise NotImplementedError

    def upload_statistics(self, upload_id: int) -> dict[str, int]:
        """total_parts, active_parts and unique_manufacturers for one upload."""
        raise NotImplementedError
