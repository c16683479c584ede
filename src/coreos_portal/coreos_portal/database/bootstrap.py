from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from werkzeug.security import generate_password_hash

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)


def _connection(db_config: dict) -> DatabaseConnection:
    return DatabaseConnection(DBConfig.from_dict(db_config))


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql usable whatever the configured database is called.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside quotes."""

    buf: list[str] = []
    quote: Optional[str] = None
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch in ("'", '"'):
            if quote is None:
                quote = ch
            elif quote == ch:
                quote = None
            buf.append(ch)
            continue

        if ch == ";" and quote is None:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _run_script(db_config: dict, path: Path) -> int:
    sql = _strip_comments(_strip_create_db_and_use(Path(path).read_text(encoding="utf-8")))
    conn = _connection(db_config).connect()
    count = 0
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    finally:
        conn.close()
    return count


def ensure_database_exists(db_config: dict) -> None:
    factory = _connection(db_config)
    conn = factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{factory.config.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    count = _run_script(db_config, Path(schema_path))
    logger.info("Applied %s (%d statements)", schema_path, count)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    count = _run_script(db_config, Path(seed_path))
    logger.info("Applied %s (%d statements)", seed_path, count)


def ensure_demo_users(db_config: dict, *, year: Optional[int] = None) -> None:
    """Demo admin, manager and employee, plus balances for the active PTO types."""

    year = year or date.today().year
    conn = _connection(db_config).connect()
    try:
        cur = conn.cursor(dictionary=True)

        def dept_id(name: str) -> int:
            cur.execute("SELECT dept_id FROM departments WHERE dept_name=%s", (name,))
            row = cur.fetchone()
            if not row:
                raise RuntimeError(f"Missing departments row for dept_name={name}")
            return int(row["dept_id"])

        def upsert_user(
            full_name: str,
            username: str,
            password: str,
            role: str,
            dept: int,
            position: str,
            manager_id: Optional[int] = None,
        ) -> int:
            password_hash = generate_password_hash(password)
            email = f"{username}@example.com"
            cur.execute("SELECT user_id FROM users WHERE username=%s", (username,))
            existing = cur.fetchone()
            if existing:
                cur.execute(
                    """
                    UPDATE users
                    SET full_name=%s, email=%s, password_hash=%s, role=%s, dept_id=%s, manager_id=%s,
                        position=%s, is_active=1
                    WHERE username=%s
                    """,
                    (full_name, email, password_hash, role, dept, manager_id, position, username),
                )
                return int(existing["user_id"])
            cur.execute(
                """
                INSERT INTO users (full_name, username, email, password_hash, role, dept_id, manager_id, position)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (full_name, username, email, password_hash, role, dept, manager_id, position),
            )
            return int(cur.lastrowid)

        ops = dept_id("Operations")
        warehouse = dept_id("Warehouse")

        upsert_user("Admin Demo", "admin", "admin123", "admin", ops, "HR Director")
        manager_id = upsert_user("Morgan Manager", "manager", "manager123", "manager", warehouse, "Warehouse Lead")
        employee_id = upsert_user(
            "Eli Employee", "employee", "employee123", "employee", warehouse, "Picker", manager_id=manager_id
        )

        cur.execute("SELECT pto_type_id, annual_allotment FROM pto_types WHERE is_active=1 AND uses_balance=1")
        for t in cur.fetchall():
            for user_id in (manager_id, employee_id):
                cur.execute(
                    """
                    INSERT IGNORE INTO pto_balances (user_id, pto_type_id, year, balance, pending_balance, used_balance)
                    VALUES (%s, %s, %s, %s, 0, 0)
                    """,
                    (user_id, t["pto_type_id"], year, t["annual_allotment"]),
                )

        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connection(db_config).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
