from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import NotificationKind


@dataclass(frozen=True)
class Notification:
    notification_id: int
    user_id: int
    kind: NotificationKind
    title: str
    body: str
    related_request_id: Optional[int] = None
    is_read: bool = False
    created_at: Optional[datetime] = None
