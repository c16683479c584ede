from __future__ import annotations

from datetime import date

from src.coreos_portal.coreos_portal.core.enums import PtoStatus, RestrictionType
from src.coreos_portal.coreos_portal.pto.blackouts.factory import BlackoutStrategyFactory
from src.coreos_portal.coreos_portal.pto.blackouts.full_block_strategy import FullBlockStrategy
from src.coreos_portal.coreos_portal.pto.blackouts.limit_requests_strategy import LimitRequestsStrategy
from src.coreos_portal.coreos_portal.pto.blackouts.warning_only_strategy import WarningOnlyStrategy
from src.coreos_portal.coreos_portal.pto.model import PtoBlackout

MON, FRI = date(2026, 3, 16), date(2026, 3, 20)


def _blackout(**kw) -> PtoBlackout:
    base = dict(
        blackout_id=1,
        name="Inventory count",
        start_date=date(2026, 3, 18),
        end_date=date(2026, 3, 19),
        is_company_wide=True,
    )
    base.update(kw)
    return PtoBlackout(**base)


def _validate(pto, *, user_id=3, start=MON, end=FRI, pto_type_id=1, is_emergency=False):
    return pto.validator.validate(
        user=pto.users.get_by_id(user_id),
        start_date=start,
        end_date=end,
        pto_type_id=pto_type_id,
        is_emergency=is_emergency,
    )


def test_factory_picks_strategy_by_restriction_type():
    factory = BlackoutStrategyFactory(lambda b, ctx: 0)
    assert isinstance(factory.for_blackout(_blackout()), FullBlockStrategy)
    assert isinstance(factory.for_blackout(_blackout(restriction_type=RestrictionType.WARNING_ONLY)), WarningOnlyStrategy)
    assert isinstance(
        factory.for_blackout(_blackout(restriction_type=RestrictionType.LIMIT_REQUESTS, max_requests_allowed=2)),
        LimitRequestsStrategy,
    )


def test_full_block_is_a_conflict(pto):
    pto.blackouts.add(_blackout())

    result = _validate(pto)

    assert result.has_conflicts
    assert not result.can_submit
    assert "Inventory count" in result.conflicts[0].message
    assert result.to_dict()["conflicts"][0]["restriction_type"] == "full_block"


def test_no_overlap_no_findings(pto):
    pto.blackouts.add(_blackout(start_date=date(2026, 4, 1), end_date=date(2026, 4, 3)))

    result = _validate(pto)

    assert result.can_submit
    assert not result.has_warnings


def test_emergency_override_turns_conflict_into_warning(pto):
    pto.blackouts.add(_blackout(allow_emergency_override=True))

    result = _validate(pto, is_emergency=True)

    assert not result.has_conflicts
    assert result.warnings[0].details["type"] == "emergency_override"


def test_emergency_without_override_still_conflicts(pto):
    pto.blackouts.add(_blackout(allow_emergency_override=False))

    result = _validate(pto, is_emergency=True)

    assert result.has_conflicts
    assert result.requires_override


def test_audience_by_department_user_and_position(pto):
    pto.blackouts.add(_blackout(blackout_id=1, is_company_wide=False, department_ids=(20,)))
    assert _validate(pto, user_id=3).can_submit
    assert not _validate(pto, user_id=4).can_submit

    pto.blackouts.add(_blackout(blackout_id=1, is_company_wide=False, user_ids=(3,)))
    assert not _validate(pto, user_id=3).can_submit

    pto.blackouts.add(_blackout(blackout_id=1, is_company_wide=False, position="picker"))
    assert not _validate(pto, user_id=3).can_submit
    assert _validate(pto, user_id=4).can_submit


def test_only_listed_pto_types_are_restricted(pto):
    pto.blackouts.add(_blackout(pto_type_ids=(1,)))

    assert not _validate(pto, pto_type_id=1).can_submit
    assert _validate(pto, pto_type_id=3).can_submit


def test_inactive_blackout_is_ignored(pto):
    pto.blackouts.add(_blackout(is_active=False))

    assert _validate(pto).can_submit


def test_warning_only(pto):
    pto.blackouts.add(_blackout(restriction_type=RestrictionType.WARNING_ONLY))

    result = _validate(pto)

    assert result.can_submit
    assert result.requires_acknowledgment
    assert result.warnings[0].message.startswith("Note:")


def test_limit_requests_warns_while_slots_remain(pto):
    pto.blackouts.add(_blackout(restriction_type=RestrictionType.LIMIT_REQUESTS, max_requests_allowed=2))
    pto.requests.add(user_id=4, pto_type_id=1, start_date=date(2026, 3, 19), end_date=date(2026, 3, 19), total_days=1)

    result = _validate(pto)

    assert result.can_submit
    finding = result.warnings[0]
    assert finding.current_count == 1
    assert finding.max_allowed == 2
    assert finding.details["remaining_slots"] == 1


def test_limit_requests_conflicts_when_full(pto):
    pto.blackouts.add(_blackout(restriction_type=RestrictionType.LIMIT_REQUESTS, max_requests_allowed=1))
    pto.requests.add(user_id=4, pto_type_id=1, start_date=date(2026, 3, 18), end_date=date(2026, 3, 18), total_days=1)

    result = _validate(pto)

    assert result.has_conflicts
    assert "(1) already reached" in result.conflicts[0].message


def test_limit_requests_ignores_denied_and_out_of_audience_requests(pto):
    pto.blackouts.add(
        _blackout(restriction_type=RestrictionType.LIMIT_REQUESTS, max_requests_allowed=1, is_company_wide=False, department_ids=(10,))
    )
    pto.requests.add(user_id=4, pto_type_id=1, start_date=date(2026, 3, 18), end_date=date(2026, 3, 18), total_days=1)
    pto.requests.add(
        user_id=2, pto_type_id=1, start_date=date(2026, 3, 18), end_date=date(2026, 3, 18), total_days=1,
        status=PtoStatus.DENIED,
    )

    result = _validate(pto)

    assert result.can_submit
    assert result.warnings[0].current_count == 0


def test_recurring_block_reports_conflicting_days(pto):
    pto.blackouts.add(_blackout(start_date=None, end_date=None, is_recurring=True, recurring_days=(5,)))

    result = _validate(pto)

    finding = result.conflicts[0]
    assert finding.conflicting_days == (FRI,)
    assert "Friday" in finding.message
    assert finding.to_dict()["conflicting_days"] == ["Friday, Mar 20"]

    assert _validate(pto, end=date(2026, 3, 19)).can_submit


def test_recurring_window_limits_the_blackout(pto):
    pto.blackouts.add(
        _blackout(
            start_date=None,
            end_date=None,
            is_recurring=True,
            recurring_days=(1,),
            recurring_start_date=date(2026, 4, 1),
        )
    )

    assert _validate(pto).can_submit
    assert not _validate(pto, start=date(2026, 4, 6), end=date(2026, 4, 6)).can_submit


def test_holiday_blackout_skipped_when_request_spans_a_holiday(pto):
    pto.blackouts.add(_blackout(is_holiday=True))
    assert not _validate(pto).can_submit

    pto.holidays.create(name="Spring Day", holiday_date=date(2026, 3, 17))
    assert _validate(pto).can_submit


def test_formatted_range():
    assert _blackout().formatted_range == "Mar 18, 2026 - Mar 19, 2026"
    recurring = _blackout(is_recurring=True, recurring_days=(1, 3), recurring_end_date=date(2026, 6, 30))
    assert recurring.formatted_range == "Every Monday, Wednesday (Effective: Beginning - Jun 30, 2026)"

