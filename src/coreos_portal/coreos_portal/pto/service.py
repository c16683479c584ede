from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_non_empty
from ..core.constants import DEFAULT_ADMIN_LIST_LIMIT, DEFAULT_LIST_LIMIT, MIN_REQUEST_DAYS, SELF_CANCEL_NOTICE_HOURS
from ..core.enums import DayPart, PtoStatus, Role
from ..core.exceptions import (
    AuthorizationError,
    BlackoutConflictError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from ..notifications.service import NotificationService
from ..users.model import User
from ..users.repository import UserRepository
from .balance_service import PtoBalanceService
from .blackouts.validator import BlackoutValidation, BlackoutValidator
from .days import calculate_total_days
from .model import PtoRequest, PtoType
from .repository import PtoRequestRepository, PtoTypeRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewPtoRequest:
    pto_type_id: int
    start_date: date
    end_date: date
    start_time: DayPart = DayPart.FULL_DAY
    end_time: DayPart = DayPart.FULL_DAY
    total_days: Optional[float] = None
    reason: Optional[str] = None
    is_emergency: bool = False


@dataclass(frozen=True)
class SubmitResult:
    request: PtoRequest
    blackout: BlackoutValidation


class PtoRequestService:
    def __init__(
        self,
        requests: PtoRequestRepository,
        types: PtoTypeRepository,
        balances: PtoBalanceService,
        users: UserRepository,
        validator: BlackoutValidator,
        notifier: NotificationService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._requests = requests
        self._types = types
        self._balances = balances
        self._users = users
        self._validator = validator
        self._notifier = notifier
        self._clock = clock

    # -------- lookups --------
    def _user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def _request(self, request_id: int) -> PtoRequest:
        req = self._requests.get_by_id(int(request_id))
        if not req:
            raise NotFoundError("PTO request not found")
        return req

    def _active_type(self, pto_type_id: int) -> PtoType:
        pto_type = self._types.get_by_id(int(pto_type_id))
        if not pto_type or not pto_type.is_active:
            raise ValidationError("PTO type is not available")
        return pto_type

    def _ensure_can_decide(self, approver: User, requester: User) -> None:
        if approver.role == Role.ADMIN:
            return
        if approver.role == Role.MANAGER and requester.manager_id == approver.user_id:
            return
        raise AuthorizationError("Only an admin or the employee's manager can decide this request")

    def _ensure_transition(self, req: PtoRequest, status: PtoStatus, *, by: Optional[int], comment: Optional[str] = None) -> None:
        if not self._requests.transition(req.request_id, expected=req.status, status=status, decided_by=by, comment=comment):
            raise ValidationError("This request has already been processed")

    def _days_for(self, data: NewPtoRequest) -> float:
        if data.total_days is not None:
            days = float(data.total_days)
            if not math.isfinite(days):
                raise ValidationError("Total days must be a finite number")
            if days < MIN_REQUEST_DAYS:
                raise ValidationError(f"Total days must be at least {MIN_REQUEST_DAYS:g}")
            return days

        days = calculate_total_days(data.start_date, data.end_date, data.start_time, data.end_time)
        if days <= 0:
            raise ValidationError("The selected start and end times do not form a valid period")
        return days

    # -------- employee side --------
    def preview_blackouts(self, *, user_id: int, data: NewPtoRequest) -> BlackoutValidation:
        if data.end_date < data.start_date:
            raise ValidationError("End date must be on or after the start date")
        return self._validator.validate(
            user=self._user(user_id),
            start_date=data.start_date,
            end_date=data.end_date,
            pto_type_id=data.pto_type_id,
            is_emergency=data.is_emergency,
        )

    def submit_request(self, *, user_id: int, data: NewPtoRequest) -> SubmitResult:
        user = self._user(user_id)
        if data.end_date < data.start_date:
            raise ValidationError("End date must be on or after the start date")

        pto_type = self._active_type(data.pto_type_id)
        days = self._days_for(data)

        balance = None
        if pto_type.uses_balance:
            balance = self._balances.find(user_id=user.user_id, pto_type_id=pto_type.pto_type_id, year=data.start_date.year)
            if not balance:
                raise ValidationError(f"No {pto_type.name} balance found for {data.start_date.year}")
            if balance.available < days and not pto_type.negative_allowed:
                raise InsufficientBalanceError(
                    "Insufficient PTO balance",
                    available=balance.available,
                    requested=days,
                )

        validation = self._validator.validate(
            user=user,
            start_date=data.start_date,
            end_date=data.end_date,
            pto_type_id=pto_type.pto_type_id,
            is_emergency=data.is_emergency,
        )
        if validation.has_conflicts and not data.is_emergency:
            raise BlackoutConflictError(
                "PTO request conflicts with blackout periods",
                conflicts=[c.message for c in validation.conflicts],
            )

        request_number = f"PTO-{user.user_id}-{int(self._clock().timestamp())}"
        summary = validation.to_dict() if (validation.has_conflicts or validation.has_warnings) else None
        if balance:
            self._balances.hold_pending(balance, days, allow_negative=pto_type.negative_allowed)
        try:
            request_id = self._requests.create(
                request_number=request_number,
                user_id=user.user_id,
                pto_type_id=pto_type.pto_type_id,
                start_date=data.start_date,
                end_date=data.end_date,
                start_time=data.start_time.value,
                end_time=data.end_time.value,
                total_days=days,
                reason=optional_text(data.reason),
                is_emergency=data.is_emergency,
                blackout_summary=summary,
            )
        except Exception:
            if balance:
                self._balances.release_pending(balance, days)
            raise

        req = self._request(request_id)
        logger.info("PTO request %s created for user %s (%s days)", request_number, user.user_id, days)
        self._notifier.pto_submitted(req, user)
        return SubmitResult(request=req, blackout=validation)

    def cancel_own_request(self, *, user_id: int, request_id: int) -> PtoRequest:
        req = self._request(request_id)
        if req.user_id != int(user_id):
            raise AuthorizationError("You can only cancel your own PTO requests")

        pto_type = self._types.get_by_id(req.pto_type_id)
        balance = None
        if pto_type and pto_type.uses_balance:
            balance = self._balances.find(user_id=req.user_id, pto_type_id=req.pto_type_id, year=req.start_date.year)

        if req.status == PtoStatus.PENDING:
            self._ensure_transition(req, PtoStatus.CANCELLED, by=int(user_id), comment="Cancelled by the employee")
            if balance:
                self._balances.release_pending(balance, req.total_days)
        elif req.status == PtoStatus.APPROVED:
            starts_at = datetime.combine(req.start_date, datetime.min.time())
            if starts_at - self._clock() < timedelta(hours=SELF_CANCEL_NOTICE_HOURS):
                raise ValidationError(
                    f"Approved requests can only be cancelled at least {SELF_CANCEL_NOTICE_HOURS} hours before the start date"
                )
            self._ensure_transition(req, PtoStatus.CANCELLED, by=int(user_id), comment="Cancelled by the employee")
            if balance:
                self._balances.restore_used(
                    balance,
                    req.total_days,
                    request_id=req.request_id,
                    request_number=req.request_number,
                    cancelled_by=int(user_id),
                )
        else:
            raise ValidationError("Only pending or approved requests can be cancelled")

        logger.info("PTO request %s cancelled by its owner", req.request_number)
        cancelled = self._request(req.request_id)
        self._notifier.pto_cancelled(cancelled, self._user(req.user_id), by_owner=True)
        return cancelled

    def list_my_requests(self, *, user_id: int) -> Sequence[PtoRequest]:
        return self._requests.list_for_user(user_id=int(user_id), limit=DEFAULT_LIST_LIMIT)

    def get_request(self, *, viewer_id: int, request_id: int) -> PtoRequest:
        req = self._request(request_id)
        if req.user_id == int(viewer_id):
            return req
        self._ensure_can_decide(self._user(viewer_id), self._user(req.user_id))
        return req

    # -------- approver side --------
    def list_pending_for_approver(self, *, approver_id: int) -> Sequence[PtoRequest]:
        approver = self._user(approver_id)
        if approver.role == Role.ADMIN:
            return self._requests.list_by_status(status=PtoStatus.PENDING, limit=DEFAULT_ADMIN_LIST_LIMIT)
        if approver.role == Role.MANAGER:
            team = [u.user_id for u in self._users.list_direct_reports(approver.user_id)]
            return self._requests.list_by_status(status=PtoStatus.PENDING, user_ids=team, limit=DEFAULT_ADMIN_LIST_LIMIT)
        raise AuthorizationError("You do not have permission")

    def approve_request(self, *, approver_id: int, request_id: int, comments: str = "") -> PtoRequest:
        approver = self._user(approver_id)
        req = self._request(request_id)
        requester = self._user(req.user_id)
        self._ensure_can_decide(approver, requester)
        if req.status != PtoStatus.PENDING:
            raise ValidationError("This request has already been processed")

        self._ensure_transition(req, PtoStatus.APPROVED, by=approver.user_id, comment=optional_text(comments))

        pto_type = self._types.get_by_id(req.pto_type_id)
        if pto_type and pto_type.uses_balance:
            balance = self._balances.find(user_id=req.user_id, pto_type_id=req.pto_type_id, year=req.start_date.year)
            if balance:
                self._balances.consume(
                    balance,
                    req.total_days,
                    request_id=req.request_id,
                    request_number=req.request_number,
                    approved_by=approver.user_id,
                )
            else:
                logger.warning("Approved %s without a %s balance to charge", req.request_number, req.start_date.year)

        logger.info("PTO request %s approved by %s", req.request_number, approver.user_id)
        approved = self._request(req.request_id)
        self._notifier.pto_decided(approved, approved=True, approver=approver, comment=optional_text(comments))
        return approved

    def deny_request(self, *, approver_id: int, request_id: int, comments: str) -> PtoRequest:
        approver = self._user(approver_id)
        req = self._request(request_id)
        self._ensure_can_decide(approver, self._user(req.user_id))
        comments = require_non_empty(comments, "Comments")
        if req.status != PtoStatus.PENDING:
            raise ValidationError("This request has already been processed")

        self._ensure_transition(req, PtoStatus.DENIED, by=approver.user_id, comment=comments)
        self._release_pending_for(req)

        logger.info("PTO request %s denied by %s", req.request_number, approver.user_id)
        denied = self._request(req.request_id)
        self._notifier.pto_decided(denied, approved=False, approver=approver, comment=comments)
        return denied

    def cancel_request(self, *, current_role: Role, admin_id: int, request_id: int, reason: str = "") -> PtoRequest:
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission")

        req = self._request(request_id)
        if req.status != PtoStatus.PENDING:
            raise ValidationError("Only pending requests can be cancelled")

        self._ensure_transition(req, PtoStatus.CANCELLED, by=int(admin_id), comment=optional_text(reason))
        self._release_pending_for(req)

        logger.info("PTO request %s cancelled by admin %s", req.request_number, admin_id)
        cancelled = self._request(req.request_id)
        self._notifier.pto_cancelled(cancelled, self._user(req.user_id), by_owner=False)
        return cancelled

    def _release_pending_for(self, req: PtoRequest) -> None:
        pto_type = self._types.get_by_id(req.pto_type_id)
        if not pto_type or not pto_type.uses_balance:
            return
        balance = self._balances.find(user_id=req.user_id, pto_type_id=req.pto_type_id, year=req.start_date.year)
        if balance:
            self._balances.release_pending(balance, req.total_days)
