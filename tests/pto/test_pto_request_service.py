from __future__ import annotations

from datetime import date

import pytest

from src.coreos_portal.coreos_portal.core.enums import NotificationKind, PtoStatus, Role, TransactionType
from src.coreos_portal.coreos_portal.core.exceptions import (
    AuthorizationError,
    BlackoutConflictError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from src.coreos_portal.coreos_portal.pto.model import PtoBlackout
from src.coreos_portal.coreos_portal.pto.service import NewPtoRequest

MON, FRI = date(2026, 3, 16), date(2026, 3, 20)


def _submit(pto, *, user_id=3, pto_type_id=1, start=MON, end=FRI, **kw):
    return pto.service.submit_request(
        user_id=user_id,
        data=NewPtoRequest(pto_type_id=pto_type_id, start_date=start, end_date=end, **kw),
    )


def _pto_balance(pto, user_id=3):
    return pto.balance_service.find(user_id=user_id, pto_type_id=1, year=2026)


def test_submit_holds_days_and_notifies_manager(pto):
    result = _submit(pto, reason="Family trip")

    req = result.request
    assert req.status == PtoStatus.PENDING
    assert req.total_days == 5.0
    assert req.request_number.startswith("PTO-3-")
    assert req.blackout_summary is None
    assert _pto_balance(pto).pending_balance == 5.0

    sent = pto.notifications.for_user(2)
    assert [n.kind for n in sent] == [NotificationKind.PTO_SUBMITTED]
    assert sent[0].related_request_id == req.request_id


def test_submit_without_manager_notifies_admins(pto):
    _submit(pto, user_id=4, pto_type_id=3)

    assert [n.user_id for n in pto.notifications.items] == [1]


def test_submit_uses_explicit_total_days(pto):
    result = _submit(pto, total_days=4.5)
    assert result.request.total_days == 4.5

    with pytest.raises(ValidationError):
        _submit(pto, total_days=0.25)


@pytest.mark.parametrize("total_days", [float("nan"), float("inf"), float("-inf")])
def test_submit_rejects_non_finite_total_days(pto, total_days):
    with pytest.raises(ValidationError):
        _submit(pto, total_days=total_days)

    bal = _pto_balance(pto)
    assert (bal.pending_balance, bal.used_balance) == (0.0, 0.0)
    assert pto.service.list_my_requests(user_id=3) == []


def test_submit_rejects_reversed_dates(pto):
    with pytest.raises(ValidationError):
        _submit(pto, start=FRI, end=MON)


def test_submit_rejects_more_than_available(pto):
    with pytest.raises(InsufficientBalanceError) as exc:
        _submit(pto, end=date(2026, 3, 30))  # 11 working days against 10

    assert exc.value.available == 10.0
    assert exc.value.requested == 11.0
    assert pto.requests.list_for_user(user_id=3) == []


def test_submit_rechecks_balance_when_holding(pto, monkeypatch):
    stale = _pto_balance(pto)
    pto.balances.shift_amounts(stale.balance_id, pending=8)  # another request held days meanwhile
    monkeypatch.setattr(pto.balance_service, "find", lambda **_: stale)

    with pytest.raises(InsufficientBalanceError) as exc:
        _submit(pto)

    assert exc.value.available == 2.0
    assert pto.requests.list_for_user(user_id=3) == []
    assert pto.balances.get_by_id(stale.balance_id).pending_balance == 8.0


def test_failed_insert_releases_the_hold(pto, monkeypatch):
    def broken_create(**_):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(pto.requests, "create", broken_create)

    with pytest.raises(RuntimeError):
        _submit(pto)

    assert _pto_balance(pto).pending_balance == 0.0


def test_negative_allowed_type_may_go_below_zero(pto):
    result = _submit(pto, pto_type_id=2)

    assert result.request.total_days == 5.0
    assert pto.balance_service.find(user_id=3, pto_type_id=2, year=2026).available == -3.0


def test_type_without_balance_needs_no_balance_row(pto):
    result = _submit(pto, user_id=4, pto_type_id=3)
    assert result.request.status == PtoStatus.PENDING


def test_missing_balance_is_rejected(pto):
    with pytest.raises(ValidationError):
        _submit(pto, user_id=4, pto_type_id=1)


def test_blackout_conflict_blocks_submission(pto):
    pto.blackouts.add(
        PtoBlackout(blackout_id=1, name="Peak season", start_date=FRI, end_date=FRI, is_company_wide=True)
    )

    with pytest.raises(BlackoutConflictError) as exc:
        _submit(pto)

    assert "Peak season" in exc.value.conflicts[0]
    assert _pto_balance(pto).pending_balance == 0.0


def test_emergency_request_goes_through_and_keeps_summary(pto):
    pto.blackouts.add(
        PtoBlackout(
            blackout_id=1,
            name="Peak season",
            start_date=FRI,
            end_date=FRI,
            is_company_wide=True,
            allow_emergency_override=True,
        )
    )

    result = _submit(pto, is_emergency=True)

    assert result.request.is_emergency
    assert result.blackout.has_warnings
    assert result.request.blackout_summary["warnings"][0]["blackout_name"] == "Peak season"


def test_manager_approves_team_request(pto):
    req = _submit(pto).request

    approved = pto.service.approve_request(approver_id=2, request_id=req.request_id, comments="Enjoy")

    assert approved.status == PtoStatus.APPROVED
    assert approved.decided_by == 2
    bal = _pto_balance(pto)
    assert (bal.pending_balance, bal.used_balance) == (0.0, 5.0)
    assert pto.balances.transactions[-1].type == TransactionType.USAGE
    assert pto.notifications.for_user(3)[-1].kind == NotificationKind.PTO_APPROVED


def test_other_manager_cannot_decide(pto):
    req = _submit(pto).request

    with pytest.raises(AuthorizationError):
        pto.service.approve_request(approver_id=5, request_id=req.request_id)


def test_admin_can_approve_anyone(pto):
    req = _submit(pto).request
    assert pto.service.approve_request(approver_id=1, request_id=req.request_id).status == PtoStatus.APPROVED


def test_request_can_only_be_decided_once(pto):
    req = _submit(pto).request
    pto.service.approve_request(approver_id=2, request_id=req.request_id)

    with pytest.raises(ValidationError):
        pto.service.deny_request(approver_id=2, request_id=req.request_id, comments="Too late")


def test_deny_requires_comments_and_releases_pending(pto):
    req = _submit(pto).request

    with pytest.raises(ValidationError):
        pto.service.deny_request(approver_id=2, request_id=req.request_id, comments="  ")

    denied = pto.service.deny_request(approver_id=2, request_id=req.request_id, comments="Short staffed")

    assert denied.status == PtoStatus.DENIED
    assert denied.decision_comment == "Short staffed"
    assert _pto_balance(pto).pending_balance == 0.0
    assert pto.notifications.for_user(3)[-1].kind == NotificationKind.PTO_DENIED


def test_owner_cancels_pending_request(pto):
    req = _submit(pto).request

    cancelled = pto.service.cancel_own_request(user_id=3, request_id=req.request_id)

    assert cancelled.status == PtoStatus.CANCELLED
    assert _pto_balance(pto).pending_balance == 0.0
    assert pto.notifications.for_user(2)[-1].kind == NotificationKind.PTO_CANCELLED


def test_owner_cancels_approved_request_with_notice(pto):
    req = _submit(pto).request
    pto.service.approve_request(approver_id=2, request_id=req.request_id)

    pto.service.cancel_own_request(user_id=3, request_id=req.request_id)

    assert _pto_balance(pto).used_balance == 0.0
    assert pto.balances.transactions[-1].type == TransactionType.REVERSAL


def test_approved_request_starting_within_a_day_cannot_be_cancelled(pto):
    req = _submit(pto, start=date(2026, 3, 3), end=date(2026, 3, 3)).request
    pto.service.approve_request(approver_id=2, request_id=req.request_id)

    with pytest.raises(ValidationError):
        pto.service.cancel_own_request(user_id=3, request_id=req.request_id)


def test_cannot_cancel_someone_elses_request(pto):
    req = _submit(pto).request

    with pytest.raises(AuthorizationError):
        pto.service.cancel_own_request(user_id=4, request_id=req.request_id)


def test_admin_cancel_requires_admin_role_and_pending(pto):
    req = _submit(pto).request

    with pytest.raises(AuthorizationError):
        pto.service.cancel_request(current_role=Role.MANAGER, admin_id=2, request_id=req.request_id)

    cancelled = pto.service.cancel_request(current_role=Role.ADMIN, admin_id=1, request_id=req.request_id, reason="Duplicate")

    assert cancelled.status == PtoStatus.CANCELLED
    assert _pto_balance(pto).pending_balance == 0.0
    assert pto.notifications.for_user(3)[-1].title == "Your PTO request was cancelled"


def test_pending_queue_per_approver(pto):
    _submit(pto)
    _submit(pto, user_id=4, pto_type_id=3)

    assert [r.user_id for r in pto.service.list_pending_for_approver(approver_id=2)] == [3]
    assert len(pto.service.list_pending_for_approver(approver_id=1)) == 2
    with pytest.raises(AuthorizationError):
        pto.service.list_pending_for_approver(approver_id=3)


def test_get_request_visibility(pto):
    req = _submit(pto).request

    assert pto.service.get_request(viewer_id=3, request_id=req.request_id).request_id == req.request_id
    assert pto.service.get_request(viewer_id=2, request_id=req.request_id).request_id == req.request_id
    with pytest.raises(AuthorizationError):
        pto.service.get_request(viewer_id=4, request_id=req.request_id)
    with pytest.raises(NotFoundError):
        pto.service.get_request(viewer_id=3, request_id=999)
