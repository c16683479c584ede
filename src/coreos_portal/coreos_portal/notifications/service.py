from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import NotificationKind, Role
from ..pto.model import PtoRequest
from ..users.model import User
from ..users.repository import UserRepository
from .model import Notification
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


def _period(req: PtoRequest) -> str:
    if req.start_date == req.end_date:
        return req.start_date.strftime("%b %d, %Y")
    return f"{req.start_date.strftime('%b %d, %Y')} - {req.end_date.strftime('%b %d, %Y')}"


def _days(value: float) -> str:
    return f"{value:g} day" + ("" if value == 1 else "s")


class NotificationService:
    """Turns PTO events into in-app notifications for the people who need to act or know."""

    def __init__(self, notifications: NotificationRepository, users: UserRepository):
        self._notifications = notifications
        self._users = users

    def _approvers_for(self, requester: User) -> list[User]:
        if requester.manager_id:
            manager = self._users.get_by_id(requester.manager_id)
            if manager and manager.is_active:
                return [manager]
        return [u for u in self._users.list_by_role(Role.ADMIN) if u.user_id != requester.user_id]

    def _send(self, recipients: Sequence[User], *, kind: NotificationKind, title: str, body: str, request_id: int) -> int:
        sent = 0
        for user in recipients:
            self._notifications.create(
                user_id=user.user_id,
                kind=kind,
                title=title,
                body=body,
                related_request_id=request_id,
            )
            sent += 1
        logger.info("Notification %s for request %s sent to %d user(s)", kind.value, request_id, sent)
        return sent

    def pto_submitted(self, req: PtoRequest, requester: User) -> int:
        return self._send(
            self._approvers_for(requester),
            kind=NotificationKind.PTO_SUBMITTED,
            title=f"New PTO request from {requester.full_name}",
            body=f"{requester.full_name} requested {_days(req.total_days)} off ({_period(req)}). Request {req.request_number} is waiting for approval.",
            request_id=req.request_id,
        )

    def pto_decided(self, req: PtoRequest, *, approved: bool, approver: Optional[User], comment: Optional[str] = None) -> int:
        requester = self._users.get_by_id(req.user_id)
        if not requester:
            return 0

        by = f" by {approver.full_name}" if approver else ""
        if approved:
            kind = NotificationKind.PTO_APPROVED
            title = "Your PTO request was approved"
            body = f"Request {req.request_number} ({_period(req)}) was approved{by}."
        else:
            kind = NotificationKind.PTO_DENIED
            title = "Your PTO request was denied"
            body = f"Request {req.request_number} ({_period(req)}) was denied{by}."
        if comment:
            body += f" Comment: {comment}"

        return self._send([requester], kind=kind, title=title, body=body, request_id=req.request_id)

    def pto_cancelled(self, req: PtoRequest, requester: User, *, by_owner: bool = True) -> int:
        if by_owner:
            recipients = self._approvers_for(requester)
            title = f"{requester.full_name} cancelled a PTO request"
        else:
            recipients = [requester]
            title = "Your PTO request was cancelled"
        return self._send(
            recipients,
            kind=NotificationKind.PTO_CANCELLED,
            title=title,
            body=f"Request {req.request_number} ({_period(req)}, {_days(req.total_days)}) was cancelled.",
            request_id=req.request_id,
        )

    def list_for_user(self, *, user_id: int, unread_only: bool = False) -> Sequence[Notification]:
        return self._notifications.list_for_user(user_id=int(user_id), unread_only=unread_only, limit=DEFAULT_LIST_LIMIT)

    def unread_count(self, *, user_id: int) -> int:
        return self._notifications.count_unread(user_id=int(user_id))

    def mark_read(self, *, user_id: int, notification_id: int) -> bool:
        return self._notifications.mark_read(user_id=int(user_id), notification_id=int(notification_id))

    def mark_all_read(self, *, user_id: int) -> int:
        return self._notifications.mark_all_read(user_id=int(user_id))
