from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import RestrictionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_ids, fetchall, fetchone, json_ids
from .model import Holiday, PtoBlackout
from .repository import BlackoutRepository, HolidayRepository

_BLACKOUT_COLUMNS = """
    blackout_id, name, description, start_date, end_date, restriction_type,
    department_ids, user_ids, position, is_company_wide, is_holiday, is_strict,
    allow_emergency_override, max_requests_allowed, pto_type_ids, is_active,
    is_recurring, recurring_days, recurring_start_date, recurring_end_date
"""


def _row_to_blackout(r: dict) -> PtoBlackout:
    max_requests = r.get("max_requests_allowed")
    return PtoBlackout(
        blackout_id=int(r["blackout_id"]),
        name=r["name"],
        description=r.get("description"),
        start_date=r.get("start_date"),
        end_date=r.get("end_date"),
        restriction_type=RestrictionType(r.get("restriction_type") or RestrictionType.FULL_BLOCK.value),
        department_ids=json_ids(r.get("department_ids")),
        user_ids=json_ids(r.get("user_ids")),
        position=r.get("position"),
        is_company_wide=bool(r.get("is_company_wide", False)),
        is_holiday=bool(r.get("is_holiday", False)),
        is_strict=bool(r.get("is_strict", False)),
        allow_emergency_override=bool(r.get("allow_emergency_override", False)),
        max_requests_allowed=int(max_requests) if max_requests is not None else None,
        pto_type_ids=json_ids(r.get("pto_type_ids")),
        is_active=bool(r.get("is_active", True)),
        is_recurring=bool(r.get("is_recurring", False)),
        recurring_days=json_ids(r.get("recurring_days")),
        recurring_start_date=r.get("recurring_start_date"),
        recurring_end_date=r.get("recurring_end_date"),
    )


def _blackout_params(b: PtoBlackout) -> tuple:
    return (
        b.name,
        b.description,
        b.start_date,
        b.end_date,
        b.restriction_type.value,
        dump_ids(b.department_ids),
        dump_ids(b.user_ids),
        b.position,
        1 if b.is_company_wide else 0,
        1 if b.is_holiday else 0,
        1 if b.is_strict else 0,
        1 if b.allow_emergency_override else 0,
        b.max_requests_allowed,
        dump_ids(b.pto_type_ids),
        1 if b.is_active else 0,
        1 if b.is_recurring else 0,
        dump_ids(b.recurring_days),
        b.recurring_start_date,
        b.recurring_end_date,
    )


class MySQLBlackoutRepository(BlackoutRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, blackout_id: int) -> Optional[PtoBlackout]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_BLACKOUT_COLUMNS} FROM pto_blackouts WHERE blackout_id=%s", (int(blackout_id),))
            row = fetchone(cur)
            return _row_to_blackout(row) if row else None

    def list_active(self) -> Sequence[PtoBlackout]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_BLACKOUT_COLUMNS} FROM pto_blackouts WHERE is_active=1 ORDER BY start_date")
            return [_row_to_blackout(r) for r in fetchall(cur)]

    def list_all(self) -> Sequence[PtoBlackout]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_BLACKOUT_COLUMNS} FROM pto_blackouts ORDER BY blackout_id DESC")
            return [_row_to_blackout(r) for r in fetchall(cur)]

    def create(self, blackout: PtoBlackout) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pto_blackouts(
                    name, description, start_date, end_date, restriction_type,
                    department_ids, user_ids, position, is_company_wide, is_holiday, is_strict,
                    allow_emergency_override, max_requests_allowed, pto_type_ids, is_active,
                    is_recurring, recurring_days, recurring_start_date, recurring_end_date
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _blackout_params(blackout),
            )
            return int(cur.lastrowid)

    def update(self, blackout: PtoBlackout) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE pto_blackouts
                SET name=%s, description=%s, start_date=%s, end_date=%s, restriction_type=%s,
                    department_ids=%s, user_ids=%s, position=%s, is_company_wide=%s, is_holiday=%s,
                    is_strict=%s, allow_emergency_override=%s, max_requests_allowed=%s, pto_type_ids=%s,
                    is_active=%s, is_recurring=%s, recurring_days=%s, recurring_start_date=%s,
                    recurring_end_date=%s
                WHERE blackout_id=%s
                """,
                _blackout_params(blackout) + (int(blackout.blackout_id),),
            )
            return cur.rowcount >= 0


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_holiday(r: dict) -> Holiday:
        return Holiday(holiday_id=int(r["holiday_id"]), name=r["name"], holiday_date=r["holiday_date"])

    def list_in_range(self, *, start_date: date, end_date: date) -> Sequence[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT holiday_id, name, holiday_date
                FROM holidays
                WHERE holiday_date BETWEEN %s AND %s
                ORDER BY holiday_date
                """,
                (start_date, end_date),
            )
            return [self._to_holiday(r) for r in fetchall(cur)]

    def list_for_year(self, year: int) -> Sequence[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT holiday_id, name, holiday_date FROM holidays WHERE YEAR(holiday_date)=%s ORDER BY holiday_date",
                (int(year),),
            )
            return [self._to_holiday(r) for r in fetchall(cur)]

    def create(self, *, name: str, holiday_date: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("INSERT INTO holidays(name, holiday_date) VALUES(%s,%s)", (name, holiday_date))
            return int(cur.lastrowid)

    def delete_by_id(self, holiday_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM holidays WHERE holiday_id=%s", (int(holiday_id),))
            return cur.rowcount > 0
