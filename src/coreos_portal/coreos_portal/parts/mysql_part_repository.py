from __future__ import annotations

import json
from typing import Optional, Sequence

from ..core.enums import UploadStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import ImportedPart, Part, PartFilters, PartsUpload, split_models
from .repository import PartRepository

_PART_COLUMNS = """
    p.part_id, p.upload_id, p.batch_id, p.file_context, p.part_number, p.description, p.manufacturer,
    p.manufacturer_serial, p.part_type, p.category, p.models, p.quantity, p.location, p.is_active, p.created_at
"""

_UPLOAD_COLUMNS = """
    upload_id, batch_id, filename, upload_type, status, total_parts, processed_parts,
    processing_logs, uploaded_by, uploaded_at, completed_at
"""

# Columns the catalog offers as filter options.
_OPTION_COLUMNS = frozenset({"manufacturer", "category", "part_type", "manufacturer_serial", "models"})


def _row_to_part(r: dict, fields: Optional[dict] = None) -> Part:
    return Part(
        part_id=int(r["part_id"]),
        upload_id=int(r["upload_id"]),
        batch_id=r["batch_id"],
        file_context=r["file_context"],
        part_number=r["part_number"],
        description=r.get("description"),
        manufacturer=r.get("manufacturer") or None,
        manufacturer_serial=r.get("manufacturer_serial"),
        part_type=r.get("part_type"),
        category=r.get("category"),
        models=split_models(r.get("models")),
        quantity=r.get("quantity"),
        location=r.get("location"),
        is_active=bool(r.get("is_active", True)),
        fields=dict(fields or {}),
        created_at=r.get("created_at"),
    )


def _row_to_upload(r: dict) -> PartsUpload:
    logs = r.get("processing_logs")
    if isinstance(logs, (bytes, bytearray)):
        logs = logs.decode("utf-8")
    return PartsUpload(
        upload_id=int(r["upload_id"]),
        batch_id=r["batch_id"],
        filename=r["filename"],
        upload_type=r["upload_type"],
        status=UploadStatus(r["status"]),
        total_parts=int(r.get("total_parts") or 0),
        processed_parts=int(r.get("processed_parts") or 0),
        processing_logs=tuple(json.loads(logs) if logs else ()),
        uploaded_by=r.get("uploaded_by"),
        uploaded_at=r.get("uploaded_at"),
        completed_at=r.get("completed_at"),
    )


def _where(filters: PartFilters) -> tuple[str, list[object]]:
    clauses = ["p.is_active=1"]
    params: list[object] = []

    for column, values in (
        ("p.manufacturer", filters.manufacturers),
        ("p.category", filters.categories),
        ("p.part_type", filters.part_types),
        ("p.manufacturer_serial", filters.serials),
    ):
        if values:
            clauses.append(f"{column} IN ({in_clause(values)})")
            params.extend(values)

    if filters.models:
        clauses.append("(" + " OR ".join(["FIND_IN_SET(%s, p.models)"] * len(filters.models)) + ")")
        params.extend(filters.models)

    if filters.upload_id is not None:
        clauses.append("p.upload_id=%s")
        params.append(int(filters.upload_id))

    if filters.search:
        like = f"%{filters.search}%"
        clauses.append(
            "(p.part_number LIKE %s OR p.manufacturer_serial LIKE %s OR p.description LIKE %s OR p.models LIKE %s)"
        )
        params.extend([like, like, like, like])

    return " AND ".join(clauses), params


class MySQLPartRepository(PartRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _fields_for(self, cur, part_ids: Sequence[int]) -> dict[int, dict[str, str]]:
        if not part_ids:
            return {}
        cur.execute(
            f"""
            SELECT part_id, field_name, field_value
            FROM parts_additional_fields
            WHERE part_id IN ({in_clause(part_ids)})
            ORDER BY field_id
            """,
            tuple(part_ids),
        )
        out: dict[int, dict[str, str]] = {}
        for r in fetchall(cur):
            out.setdefault(int(r["part_id"]), {})[r["field_name"]] = r.get("field_value") or ""
        return out

    def search(self, filters: PartFilters, *, offset: int, limit: int) -> tuple[list[Part], int]:
        where, params = _where(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM parts p WHERE {where}", tuple(params))
            total = int(fetchone(cur)["total"])

            cur.execute(
                f"""
                SELECT {_PART_COLUMNS}
                FROM parts p
                WHERE {where}
                ORDER BY p.created_at DESC, p.part_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            rows = fetchall(cur)
            fields = self._fields_for(cur, [int(r["part_id"]) for r in rows])
            return [_row_to_part(r, fields.get(int(r["part_id"]))) for r in rows], total

    def get_by_id(self, part_id: int) -> Optional[Part]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_PART_COLUMNS} FROM parts p WHERE p.part_id=%s", (int(part_id),))
            row = fetchone(cur)
            if not row:
                return None
            return _row_to_part(row, self._fields_for(cur, [int(part_id)]).get(int(part_id)))

    def find_id(self, *, file_context: str, part_number: str, manufacturer: Optional[str]) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT part_id FROM parts WHERE file_context=%s AND part_number=%s AND manufacturer=%s",
                (file_context, part_number, manufacturer or ""),
            )
            row = fetchone(cur)
            return int(row["part_id"]) if row else None

    def update(self, part: Part) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE parts
                SET part_number=%s, description=%s, manufacturer=%s, manufacturer_serial=%s, part_type=%s,
                    category=%s, quantity=%s, location=%s, is_active=%s
                WHERE part_id=%s
                """,
                (
                    part.part_number,
                    part.description,
                    part.manufacturer or "",
                    part.manufacturer_serial,
                    part.part_type,
                    part.category,
                    part.quantity,
                    part.location,
                    1 if part.is_active else 0,
                    int(part.part_id),
                ),
            )
            return cur.rowcount >= 0

    def count_active(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM parts WHERE is_active=1")
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def distinct_values(self, column: str, *, limit: Optional[int] = None) -> list[str]:
        if column not in _OPTION_COLUMNS:
            raise ValueError(f"Unknown option column: {column}")

        with db_cursor(self._conn_factory) as (_, cur):
            if column == "models":
                cur.execute("SELECT DISTINCT models FROM parts WHERE is_active=1 AND models IS NOT NULL AND models <> ''")
                values = sorted({m for r in fetchall(cur) for m in split_models(r["models"])})
                return values[:limit] if limit else values

            sql = f"""
                SELECT DISTINCT {column} AS value FROM parts
                WHERE is_active=1 AND {column} IS NOT NULL AND {column} <> ''
                ORDER BY {column}
            """
            if limit:
                sql += f" LIMIT {int(limit)}"
            cur.execute(sql)
            return [r["value"] for r in fetchall(cur)]

    def save_imported(self, *, upload_id: int, batch_id: str, file_context: str, parts: Sequence[ImportedPart]) -> tuple[int, int]:
        created = updated = 0
        with db_cursor(self._conn_factory) as (_, cur):
            for part in parts:
                manufacturer = part.manufacturer or ""
                values = (
                    int(upload_id),
                    batch_id,
                    part.description,
                    part.manufacturer_serial,
                    part.part_type,
                    part.category,
                    ",".join(part.models) or None,
                    part.quantity,
                    part.location,
                )
                cur.execute(
                    """
                    SELECT part_id FROM parts
                    WHERE file_context=%s AND part_number=%s AND manufacturer=%s
                    FOR UPDATE
                    """,
                    (file_context, part.part_number, manufacturer),
                )
                existing = fetchone(cur)
                if existing:
                    part_id = int(existing["part_id"])
                    cur.execute(
                        """
                        UPDATE parts
                        SET upload_id=%s, batch_id=%s, description=%s, manufacturer_serial=%s, part_type=%s,
                            category=%s, models=%s, quantity=%s, location=%s, is_active=1
                        WHERE part_id=%s
                        """,
                        values + (part_id,),
                    )
                    cur.execute("DELETE FROM parts_additional_fields WHERE part_id=%s", (part_id,))
                    updated += 1
                else:
                    cur.execute(
                        """
                        INSERT INTO parts(
                            upload_id, batch_id, description, manufacturer_serial, part_type,
                            category, models, quantity, location, file_context, part_number, manufacturer, is_active
                        )
                        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                        """,
                        values + (file_context, part.part_number, manufacturer),
                    )
                    part_id = int(cur.lastrowid)
                    created += 1

                if part.fields:
                    cur.executemany(
                        "INSERT INTO parts_additional_fields(part_id, field_name, field_value) VALUES(%s,%s,%s)",
                        [(part_id, name, value) for name, value in part.fields.items()],
                    )
        return created, updated

    def create_upload(self, *, batch_id: str, filename: str, upload_type: str, uploaded_by: Optional[int]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO parts_uploads(batch_id, filename, upload_type, status, uploaded_by)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (batch_id, filename, upload_type, UploadStatus.PROCESSING.value, uploaded_by),
            )
            return int(cur.lastrowid)

    def finish_upload(
        self,
        upload_id: int,
        *,
        status: UploadStatus,
        total_parts: int,
        processed_parts: int,
        logs: Sequence[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE parts_uploads
                SET status=%s, total_parts=%s, processed_parts=%s, processing_logs=%s, completed_at=NOW()
                WHERE upload_id=%s
                """,
                (status.value, int(total_parts), int(processed_parts), json.dumps(list(logs)), int(upload_id)),
            )
            return cur.rowcount > 0

    def get_upload(self, upload_id: int) -> Optional[PartsUpload]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_UPLOAD_COLUMNS} FROM parts_uploads WHERE upload_id=%s", (int(upload_id),))
            row = fetchone(cur)
            return _row_to_upload(row) if row else None

    def list_uploads(self, *, search: Optional[str], offset: int, limit: int) -> tuple[list[PartsUpload], int]:
        where, params = "1=1", []
        if search:
            where = "(filename LIKE %s OR batch_id LIKE %s)"
            params = [f"%{search}%", f"%{search}%"]

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM parts_uploads WHERE {where}", tuple(params))
            total = int(fetchone(cur)["total"])
            cur.execute(
                f"""
                SELECT {_UPLOAD_COLUMNS} FROM parts_uploads
                WHERE {where}
                ORDER BY uploaded_at DESC, upload_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_upload(r) for r in fetchall(cur)], total

    def upload_statistics(self, upload_id: int) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total_parts,
                       COALESCE(SUM(is_active), 0) AS active_parts,
                       COUNT(DISTINCT NULLIF(manufacturer, '')) AS unique_manufacturers
                FROM parts
                WHERE upload_id=%s
                """,
                (int(upload_id),),
            )
            row = fetchone(cur) or {}
            return {
                "total_parts": int(row.get("total_parts") or 0),
                "active_parts": int(row.get("active_parts") or 0),
                "unique_manufacturers": int(row.get("unique_manufacturers") or 0),
            }
