from __future__ import annotations

from datetime import date

from src.coreos_portal.coreos_portal.core.enums import DayPart, NotificationKind, PtoStatus, Role
from src.coreos_portal.coreos_portal.pto.model import PtoRequest


def _request(user_id=3, total_days=1.0, start=date(2026, 3, 18), end=date(2026, 3, 18)) -> PtoRequest:
    return PtoRequest(
        request_id=11,
        request_number="PTO-3-1700000000",
        user_id=user_id,
        pto_type_id=1,
        start_date=start,
        end_date=end,
        start_time=DayPart.FULL_DAY,
        end_time=DayPart.FULL_DAY,
        total_days=total_days,
        status=PtoStatus.PENDING,
    )


def test_submitted_goes_to_the_manager(pto):
    sent = pto.notifier.pto_submitted(_request(), pto.users.get_by_id(3))

    assert sent == 1
    n = pto.notifications.items[0]
    assert n.user_id == 2
    assert n.title == "New PTO request from User 3"
    assert "1 day off (Mar 18, 2026)" in n.body


def test_inactive_manager_falls_back_to_admins(pto, user_factory):
    pto.users.add(user_factory(2, Role.MANAGER, is_active=False))
    pto.users.add(user_factory(6, Role.ADMIN))

    pto.notifier.pto_submitted(_request(), pto.users.get_by_id(3))

    assert sorted(n.user_id for n in pto.notifications.items) == [1, 6]


def test_decision_includes_comment(pto):
    req = _request(total_days=3, end=date(2026, 3, 20))

    pto.notifier.pto_decided(req, approved=False, approver=pto.users.get_by_id(2), comment="Inventory week")

    n = pto.notifications.items[0]
    assert n.kind == NotificationKind.PTO_DENIED
    assert n.user_id == 3
    assert n.body.endswith("was denied by User 2. Comment: Inventory week")
    assert "Mar 18, 2026 - Mar 20, 2026" in n.body


def test_read_flags(pto):
    pto.notifier.pto_decided(_request(), approved=True, approver=None)
    pto.notifier.pto_cancelled(_request(), pto.users.get_by_id(3), by_owner=False)

    assert pto.notifier.unread_count(user_id=3) == 2
    assert pto.notifier.mark_read(user_id=3, notification_id=1)
    assert not pto.notifier.mark_read(user_id=2, notification_id=2)
    assert pto.notifier.unread_count(user_id=3) == 1
    assert pto.notifier.mark_all_read(user_id=3) == 1
    assert pto.notifier.list_for_user(user_id=3, unread_only=True) == []
