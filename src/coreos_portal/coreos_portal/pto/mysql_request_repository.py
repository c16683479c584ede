from __future__ import annotations

import json
from datetime import date
from typing import Iterable, Optional, Sequence

from ..core.enums import DayPart, PtoStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone, in_clause
from .model import PtoReportRow, PtoRequest
from .repository import PtoRequestRepository

_REQUEST_COLUMNS = """
    r.request_id, r.request_number, r.user_id, r.pto_type_id, r.start_date, r.end_date,
    r.start_time, r.end_time, r.total_days, r.status, r.reason, r.is_emergency,
    r.blackout_summary, r.created_at, r.decided_by, r.decided_at, r.decision_comment
"""


def _row_to_request(r: dict) -> PtoRequest:
    summary = r.get("blackout_summary")
    if isinstance(summary, (bytes, bytearray)):
        summary = summary.decode("utf-8")
    if isinstance(summary, str):
        summary = json.loads(summary) if summary else None

    return PtoRequest(
        request_id=int(r["request_id"]),
        request_number=r["request_number"],
        user_id=int(r["user_id"]),
        pto_type_id=int(r["pto_type_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        start_time=DayPart(r.get("start_time") or DayPart.FULL_DAY.value),
        end_time=DayPart(r.get("end_time") or DayPart.FULL_DAY.value),
        total_days=as_float(r.get("total_days")),
        status=PtoStatus(r["status"]),
        reason=r.get("reason"),
        is_emergency=bool(r.get("is_emergency", False)),
        blackout_summary=summary,
        created_at=r.get("created_at"),
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
        decision_comment=r.get("decision_comment"),
    )


class MySQLPtoRequestRepository(PtoRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        request_number: str,
        user_id: int,
        pto_type_id: int,
        start_date: date,
        end_date: date,
        start_time: str,
        end_time: str,
        total_days: float,
        reason: Optional[str],
        is_emergency: bool,
        blackout_summary: Optional[dict],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pto_requests(
                    request_number, user_id, pto_type_id, start_date, end_date, start_time, end_time,
                    total_days, reason, status, is_emergency, blackout_summary
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    request_number,
                    int(user_id),
                    int(pto_type_id),
                    start_date,
                    end_date,
                    start_time,
                    end_time,
                    total_days,
                    reason,
                    PtoStatus.PENDING.value,
                    1 if is_emergency else 0,
                    json.dumps(blackout_summary, default=str) if blackout_summary else None,
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, request_id: int) -> Optional[PtoRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_REQUEST_COLUMNS} FROM pto_requests r WHERE r.request_id=%s", (int(request_id),))
            row = fetchone(cur)
            return _row_to_request(row) if row else None

    def list_for_user(self, *, user_id: int, limit: int = 200) -> Sequence[PtoRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_REQUEST_COLUMNS}
                FROM pto_requests r
                WHERE r.user_id=%s
                ORDER BY r.start_date DESC, r.request_id DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_row_to_request(r) for r in fetchall(cur)]

    def list_by_status(
        self,
        *,
        status: PtoStatus,
        user_ids: Optional[Iterable[int]] = None,
        limit: int = 500,
    ) -> Sequence[PtoRequest]:
        clauses = ["r.status=%s"]
        params: list[object] = [status.value]

        if user_ids is not None:
            ids = [int(u) for u in user_ids]
            if not ids:
                return []
            clauses.append(f"r.user_id IN ({in_clause(ids)})")
            params.extend(ids)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_REQUEST_COLUMNS}
                FROM pto_requests r
                WHERE {where}
                ORDER BY r.created_at ASC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            return [_row_to_request(r) for r in fetchall(cur)]

    def list_active_overlapping(self, *, start_date: date, end_date: date) -> Sequence[PtoRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_REQUEST_COLUMNS}
                FROM pto_requests r
                WHERE r.status IN (%s,%s) AND r.start_date <= %s AND r.end_date >= %s
                """,
                (PtoStatus.PENDING.value, PtoStatus.APPROVED.value, end_date, start_date),
            )
            return [_row_to_request(r) for r in fetchall(cur)]

    def transition(
        self,
        request_id: int,
        *,
        expected: PtoStatus,
        status: PtoStatus,
        decided_by: Optional[int],
        comment: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE pto_requests
                SET status=%s, decided_by=%s, decided_at=NOW(), decision_comment=%s
                WHERE request_id=%s AND status=%s
                """,
                (status.value, decided_by, comment, int(request_id), expected.value),
            )
            return cur.rowcount > 0

    def count_by_status(self, *, year: Optional[int] = None) -> dict[str, int]:
        where = "WHERE YEAR(start_date)=%s" if year is not None else ""
        params = (int(year),) if year is not None else ()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT status, COUNT(*) AS total FROM pto_requests {where} GROUP BY status", params)
            counts = {s.value: 0 for s in PtoStatus}
            for r in fetchall(cur):
                counts[r["status"]] = int(r["total"])
            return counts

    def get_report_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        statuses: Sequence[PtoStatus],
        dept_id: Optional[int] = None,
        user_id: Optional[int] = None,
        calendar_only: bool = False,
    ) -> Sequence[PtoReportRow]:
        values = [s.value for s in statuses]
        clauses = ["r.start_date <= %s", "r.end_date >= %s", f"r.status IN ({in_clause(values)})"]
        params: list[object] = [end_date, start_date, *values]

        if dept_id is not None:
            clauses.append("u.dept_id=%s")
            params.append(int(dept_id))
        if user_id is not None:
            clauses.append("u.user_id=%s")
            params.append(int(user_id))
        if calendar_only:
            clauses.append("t.show_in_department_calendar=1")

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT
                    r.request_id, r.request_number, r.start_date, r.end_date, r.total_days, r.status,
                    u.user_id, u.full_name, u.username, u.dept_id,
                    d.dept_name,
                    t.pto_type_id, t.name AS pto_type_name, t.color AS pto_type_color
                FROM pto_requests r
                JOIN users u ON u.user_id = r.user_id
                JOIN pto_types t ON t.pto_type_id = r.pto_type_id
                LEFT JOIN departments d ON d.dept_id = u.dept_id
                WHERE {where}
                ORDER BY r.start_date ASC, u.full_name ASC
                """,
                tuple(params),
            )
            rows = fetchall(cur)

            return [
                PtoReportRow(
                    request_id=int(r["request_id"]),
                    request_number=r["request_number"],
                    user_id=int(r["user_id"]),
                    full_name=r["full_name"],
                    username=r["username"],
                    dept_id=r.get("dept_id"),
                    dept_name=r.get("dept_name"),
                    pto_type_id=int(r["pto_type_id"]),
                    pto_type_name=r["pto_type_name"],
                    pto_type_color=r.get("pto_type_color") or "#3b82f6",
                    start_date=r["start_date"],
                    end_date=r["end_date"],
                    total_days=as_float(r.get("total_days")),
                    status=PtoStatus(r["status"]),
                )
                for r in rows
            ]
