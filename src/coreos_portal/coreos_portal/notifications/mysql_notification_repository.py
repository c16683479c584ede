from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import NotificationKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Notification
from .repository import NotificationRepository


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        user_id: int,
        kind: NotificationKind,
        title: str,
        body: str,
        related_request_id: Optional[int],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(user_id, kind, title, body, related_request_id, is_read)
                VALUES(%s,%s,%s,%s,%s,0)
                """,
                (int(user_id), kind.value, title, body, related_request_id),
            )
            return int(cur.lastrowid)

    def list_for_user(self, *, user_id: int, unread_only: bool = False, limit: int = 200) -> Sequence[Notification]:
        clauses = ["user_id=%s"]
        if unread_only:
            clauses.append("is_read=0")

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT notification_id, user_id, kind, title, body, related_request_id, is_read, created_at
                FROM notifications
                WHERE {' AND '.join(clauses)}
                ORDER BY created_at DESC, notification_id DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [
                Notification(
                    notification_id=int(r["notification_id"]),
                    user_id=int(r["user_id"]),
                    kind=NotificationKind(r["kind"]),
                    title=r["title"],
                    body=r.get("body") or "",
                    related_request_id=r.get("related_request_id"),
                    is_read=bool(r.get("is_read", False)),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]

    def count_unread(self, *, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM notifications WHERE user_id=%s AND is_read=0", (int(user_id),))
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def mark_read(self, *, user_id: int, notification_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE notifications SET is_read=1 WHERE notification_id=%s AND user_id=%s",
                (int(notification_id), int(user_id)),
            )
            return cur.rowcount > 0

    def mark_all_read(self, *, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE notifications SET is_read=1 WHERE user_id=%s AND is_read=0", (int(user_id),))
            return int(cur.rowcount)
