from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

_USER_COLUMNS = """
    user_id, full_name, username, email, password_hash, role,
    dept_id, manager_id, position, start_date, is_active
"""


def _row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        full_name=row["full_name"],
        username=row["username"],
        email=row.get("email"),
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        dept_id=row.get("dept_id"),
        manager_id=row.get("manager_id"),
        position=row.get("position"),
        start_date=row.get("start_date"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE username=%s", (username,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def create_user(
        self,
        *,
        full_name: str,
        username: str,
        email: Optional[str],
        password_hash: str,
        role: Role,
        dept_id: Optional[int],
        manager_id: Optional[int],
        position: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(full_name, username, email, password_hash, role, dept_id, manager_id, position, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (full_name, username, email, password_hash, role.value, dept_id, manager_id, position),
            )
            return int(cur.lastrowid)

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET is_active=%s WHERE user_id=%s", (1 if is_active else 0, int(user_id)))
            return cur.rowcount > 0

    def set_manager(self, user_id: int, *, manager_id: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET manager_id=%s WHERE user_id=%s", (manager_id, int(user_id)))
            return cur.rowcount > 0

    def list_by_role(self, role: Role) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE role=%s AND is_active=1 ORDER BY full_name",
                (role.value,),
            )
            return [_row_to_user(r) for r in fetchall(cur)]

    def list_direct_reports(self, manager_id: int) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE manager_id=%s ORDER BY full_name",
                (int(manager_id),),
            )
            return [_row_to_user(r) for r in fetchall(cur)]

    def list_active(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE is_active=1 ORDER BY full_name")
            return [_row_to_user(r) for r in fetchall(cur)]

    def list_admin_view(self) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.user_id, u.full_name, u.username, u.email, u.role, u.position, u.is_active,
                       d.dept_name, m.full_name AS manager_name
                FROM users u
                LEFT JOIN departments d ON d.dept_id = u.dept_id
                LEFT JOIN users m ON m.user_id = u.manager_id
                ORDER BY u.user_id DESC
                """
            )
            rows = fetchall(cur)
            out: list[dict] = []
            for r in rows:
                out.append(
                    {
                        "user_id": r["user_id"],
                        "full_name": r["full_name"],
                        "username": r["username"],
                        "email": r.get("email") or "",
                        "role": r["role"],
                        "position": r.get("position") or "-",
                        "dept_name": r.get("dept_name") or "-",
                        "manager_name": r.get("manager_name") or "-",
                        "is_active": bool(r.get("is_active", True)),
                    }
                )
            return out
