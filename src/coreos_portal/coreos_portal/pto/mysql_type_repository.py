from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import PtoType
from .repository import PtoTypeRepository

_TYPE_COLUMNS = """
    pto_type_id, name, code, color, description, uses_balance, negative_allowed,
    carryover_allowed, max_carryover_days, annual_allotment,
    show_in_department_calendar, is_active, sort_order
"""


def _row_to_type(r: dict) -> PtoType:
    return PtoType(
        pto_type_id=int(r["pto_type_id"]),
        name=r["name"],
        code=r["code"],
        color=r.get("color") or "#3b82f6",
        description=r.get("description"),
        uses_balance=bool(r.get("uses_balance", True)),
        negative_allowed=bool(r.get("negative_allowed", False)),
        carryover_allowed=bool(r.get("carryover_allowed", False)),
        max_carryover_days=as_float(r.get("max_carryover_days")),
        annual_allotment=as_float(r.get("annual_allotment")),
        show_in_department_calendar=bool(r.get("show_in_department_calendar", True)),
        is_active=bool(r.get("is_active", True)),
        sort_order=int(r.get("sort_order") or 0),
    )


def _type_params(t: PtoType) -> tuple:
    return (
        t.name,
        t.code,
        t.color,
        t.description,
        1 if t.uses_balance else 0,
        1 if t.negative_allowed else 0,
        1 if t.carryover_allowed else 0,
        t.max_carryover_days,
        t.annual_allotment,
        1 if t.show_in_department_calendar else 0,
        1 if t.is_active else 0,
        int(t.sort_order),
    )


class MySQLPtoTypeRepository(PtoTypeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, pto_type_id: int) -> Optional[PtoType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TYPE_COLUMNS} FROM pto_types WHERE pto_type_id=%s", (int(pto_type_id),))
            row = fetchone(cur)
            return _row_to_type(row) if row else None

    def list_all(self, *, active_only: bool = False) -> Sequence[PtoType]:
        where = "WHERE is_active=1" if active_only else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TYPE_COLUMNS} FROM pto_types {where} ORDER BY sort_order, name")
            return [_row_to_type(r) for r in fetchall(cur)]

    def create(self, pto_type: PtoType) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pto_types(
                    name, code, color, description, uses_balance, negative_allowed,
                    carryover_allowed, max_carryover_days, annual_allotment,
                    show_in_department_calendar, is_active, sort_order
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _type_params(pto_type),
            )
            return int(cur.lastrowid)

    def update(self, pto_type: PtoType) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE pto_types
                SET name=%s, code=%s, color=%s, description=%s, uses_balance=%s, negative_allowed=%s,
                    carryover_allowed=%s, max_carryover_days=%s, annual_allotment=%s,
                    show_in_department_calendar=%s, is_active=%s, sort_order=%s
                WHERE pto_type_id=%s
                """,
                _type_params(pto_type) + (int(pto_type.pto_type_id),),
            )
            # MySQL reports 0 affected rows when nothing changed; existence was checked by the caller.
            return cur.rowcount >= 0
