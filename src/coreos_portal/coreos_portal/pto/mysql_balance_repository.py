from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import TransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import PtoBalance, PtoTransaction, transaction_number, transaction_sequence
from .repository import PtoBalanceRepository

_BALANCE_COLUMNS = "balance_id, user_id, pto_type_id, year, balance, pending_balance, used_balance"


def _row_to_balance(r: dict) -> PtoBalance:
    return PtoBalance(
        balance_id=int(r["balance_id"]),
        user_id=int(r["user_id"]),
        pto_type_id=int(r["pto_type_id"]),
        year=int(r["year"]),
        balance=as_float(r.get("balance")),
        pending_balance=as_float(r.get("pending_balance")),
        used_balance=as_float(r.get("used_balance")),
    )


class MySQLPtoBalanceRepository(PtoBalanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, user_id: int, pto_type_id: int, year: int) -> Optional[PtoBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_BALANCE_COLUMNS} FROM pto_balances WHERE user_id=%s AND pto_type_id=%s AND year=%s",
                (int(user_id), int(pto_type_id), int(year)),
            )
            row = fetchone(cur)
            return _row_to_balance(row) if row else None

    def get_by_id(self, balance_id: int) -> Optional[PtoBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_BALANCE_COLUMNS} FROM pto_balances WHERE balance_id=%s", (int(balance_id),))
            row = fetchone(cur)
            return _row_to_balance(row) if row else None

    def list_for_user(self, *, user_id: int, year: Optional[int] = None) -> Sequence[PtoBalance]:
        clauses = ["user_id=%s"]
        params: list[object] = [int(user_id)]
        if year is not None:
            clauses.append("year=%s")
            params.append(int(year))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_BALANCE_COLUMNS} FROM pto_balances WHERE {' AND '.join(clauses)} ORDER BY year DESC, pto_type_id",
                tuple(params),
            )
            return [_row_to_balance(r) for r in fetchall(cur)]

    def list_for_year(self, year: int) -> Sequence[PtoBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_BALANCE_COLUMNS} FROM pto_balances WHERE year=%s ORDER BY user_id, pto_type_id",
                (int(year),),
            )
            return [_row_to_balance(r) for r in fetchall(cur)]

    def create(self, *, user_id: int, pto_type_id: int, year: int, balance: float) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pto_balances(user_id, pto_type_id, year, balance, pending_balance, used_balance)
                VALUES(%s,%s,%s,%s,0,0)
                """,
                (int(user_id), int(pto_type_id), int(year), balance),
            )
            return int(cur.lastrowid)

    def shift_amounts(
        self,
        balance_id: int,
        *,
        pending: float = 0.0,
        used: float = 0.0,
        require_available: Optional[float] = None,
    ) -> bool:
        sql = """
            UPDATE pto_balances
            SET pending_balance = GREATEST(0, pending_balance + %s),
                used_balance = GREATEST(0, used_balance + %s)
            WHERE balance_id=%s
        """
        params: list[object] = [float(pending), float(used), int(balance_id)]
        if require_available is not None:
            sql += " AND balance - pending_balance - used_balance >= %s"
            params.append(float(require_available))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount == 1

    def set_balance(self, balance_id: int, balance: float) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE pto_balances SET balance=%s WHERE balance_id=%s", (float(balance), int(balance_id)))
            return cur.rowcount >= 0

    def add_transaction(
        self,
        *,
        year: int,
        user_id: int,
        pto_type_id: int,
        pto_request_id: Optional[int],
        amount: float,
        balance_before: float,
        balance_after: float,
        type: TransactionType,
        description: str,
        created_by: Optional[int],
    ) -> int:
        prefix = f"TXN-{int(year)}-"
        with db_cursor(self._conn_factory) as (_, cur):
            # Locks the year's tail of the unique index until commit so two writers
            # cannot take the same number.
            cur.execute(
                """
                SELECT transaction_number FROM pto_transactions
                WHERE transaction_number LIKE %s
                ORDER BY CHAR_LENGTH(transaction_number) DESC, transaction_number DESC
                LIMIT 1
                FOR UPDATE
                """,
                (prefix + "%",),
            )
            last = fetchone(cur)
            seq = transaction_sequence(last["transaction_number"]) + 1 if last else 1

            cur.execute(
                """
                INSERT INTO pto_transactions(
                    transaction_number, user_id, pto_type_id, pto_request_id, amount,
                    balance_before, balance_after, type, description, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    transaction_number(year, seq),
                    int(user_id),
                    int(pto_type_id),
                    pto_request_id,
                    amount,
                    balance_before,
                    balance_after,
                    type.value,
                    description,
                    created_by,
                ),
            )
            return int(cur.lastrowid)

    def list_transactions(self, *, user_id: int, limit: int = 200) -> Sequence[PtoTransaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT transaction_id, transaction_number, user_id, pto_type_id, pto_request_id, amount,
                       balance_before, balance_after, type, description, created_by, created_at
                FROM pto_transactions
                WHERE user_id=%s
                ORDER BY created_at DESC, transaction_id DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [
                PtoTransaction(
                    transaction_id=int(r["transaction_id"]),
                    transaction_number=r["transaction_number"],
                    user_id=int(r["user_id"]),
                    pto_type_id=int(r["pto_type_id"]),
                    pto_request_id=r.get("pto_request_id"),
                    amount=as_float(r.get("amount")),
                    balance_before=as_float(r.get("balance_before")),
                    balance_after=as_float(r.get("balance_after")),
                    type=TransactionType(r["type"]),
                    description=r.get("description") or "",
                    created_by=r.get("created_by"),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
