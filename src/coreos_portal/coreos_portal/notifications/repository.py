from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import NotificationKind
from .model import Notification


class NotificationRepository(Protocol):
    def create(
        self,
        *,
        user_id: int,
        kind: NotificationKind,
        title: str,
        body: str,
        related_request_id: Optional[int],
    ) -> int:
        raise NotImplementedError

    def list_for_user(self, *, user_id: int, unread_only: bool = False, limit: int = 200) -> Sequence[Notification]:
        raise NotImplementedError

    def count_unread(self, *, user_id: int) -> int:
        raise NotImplementedError

    def mark_read(self, *, user_id: int, notification_id: int) -> bool:
        raise NotImplementedError

    def mark_all_read(self, *, user_id: int) -> int:
        raise NotImplementedError
