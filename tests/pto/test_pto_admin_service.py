from __future__ import annotations

from datetime import date

import pytest

from src.coreos_portal.coreos_portal.core.enums import RestrictionType
from src.coreos_portal.coreos_portal.core.exceptions import NotFoundError, ValidationError


def test_create_type_uppercases_code_and_rejects_duplicates(pto):
    pto_type_id = pto.admin_service.create_type({"name": "Bereavement", "code": "bereave", "annual_allotment": "3"})

    created = pto.types.get_by_id(pto_type_id)
    assert created.code == "BEREAVE"
    assert created.annual_allotment == 3.0
    assert created.uses_balance

    with pytest.raises(ValidationError):
        pto.admin_service.create_type({"name": "Other", "code": "pto"})


def test_deactivated_type_drops_out_of_the_active_list(pto):
    pto.admin_service.deactivate_type(3)

    assert [t.code for t in pto.admin_service.list_types(active_only=True)] == ["PTO", "SICK"]
    with pytest.raises(NotFoundError):
        pto.admin_service.deactivate_type(42)


def test_create_recurring_blackout(pto):
    blackout_id = pto.admin_service.create_blackout(
        {
            "name": "Friday shipping",
            "restriction_type": "limit_requests",
            "max_requests_allowed": 2,
            "is_recurring": "true",
            "recurring_days": [5],
            "department_ids": ["10"],
        }
    )

    blackout = pto.admin_service.get_blackout(blackout_id)
    assert blackout.restriction_type == RestrictionType.LIMIT_REQUESTS
    assert blackout.department_ids == (10,)
    assert blackout.formatted_range == "Every Friday"


@pytest.mark.parametrize(
    "data",
    [
        {"name": "No dates", "is_company_wide": True},
        {"name": "Backwards", "start_date": "2026-03-10", "end_date": "2026-03-01", "is_company_wide": True},
        {"name": "Bad day", "is_recurring": True, "recurring_days": [7], "is_company_wide": True},
        {"name": "No limit", "restriction_type": "limit_requests", "start_date": "2026-03-01", "end_date": "2026-03-02", "is_company_wide": True},
        {"name": "Nobody", "start_date": "2026-03-01", "end_date": "2026-03-02"},
        {"name": "Odd", "restriction_type": "sometimes", "start_date": "2026-03-01", "end_date": "2026-03-02", "is_company_wide": True},
        {"name": "Loose ids", "start_date": "2026-03-01", "end_date": "2026-03-02", "department_ids": "12"},
        {"name": "Loose days", "is_recurring": True, "recurring_days": "5", "is_company_wide": True},
        {"name": "Wordy limit", "restriction_type": "limit_requests", "max_requests_allowed": "abc", "start_date": "2026-03-01", "end_date": "2026-03-02", "is_company_wide": True},
        {"name": "Fractional limit", "restriction_type": "limit_requests", "max_requests_allowed": 1.5, "start_date": "2026-03-01", "end_date": "2026-03-02", "is_company_wide": True},
    ],
)
def test_invalid_blackouts(pto, data):
    with pytest.raises(ValidationError):
        pto.admin_service.create_blackout(data)


def test_deactivate_blackout(pto):
    blackout_id = pto.admin_service.create_blackout(
        {"name": "Audit", "start_date": "2026-05-01", "end_date": "2026-05-02", "user_ids": [3]}
    )

    pto.admin_service.deactivate_blackout(blackout_id)

    assert pto.blackouts.list_active() == []


def test_holidays(pto):
    holiday_id = pto.admin_service.create_holiday(name="Founders Day", holiday_date=date(2026, 6, 1))

    with pytest.raises(ValidationError):
        pto.admin_service.create_holiday(name="Again", holiday_date=date(2026, 6, 1))

    assert [h.name for h in pto.admin_service.list_holidays(year=2026)] == ["Founders Day"]
    pto.admin_service.delete_holiday(holiday_id)
    with pytest.raises(NotFoundError):
        pto.admin_service.delete_holiday(holiday_id)


def test_string_id_list_does_not_widen_the_blackout(pto):
    with pytest.raises(ValidationError, match="department_ids must be a list of ids"):
        pto.admin_service.create_blackout(
            {"name": "Dept 12", "start_date": "2026-03-01", "end_date": "2026-03-02", "department_ids": "12"}
        )

    assert pto.blackouts.list_all() == []


def test_non_numeric_limits_and_sort_order_are_422_not_500(pto):
    with pytest.raises(ValidationError, match="max_requests_allowed must be a whole number"):
        pto.admin_service.create_blackout(
            {
                "name": "Peak",
                "restriction_type": "limit_requests",
                "max_requests_allowed": "abc",
                "start_date": "2026-03-01",
                "end_date": "2026-03-02",
                "is_company_wide": True,
            }
        )
    with pytest.raises(ValidationError, match="sort_order must be a whole number"):
        pto.admin_service.create_type({"name": "Jury", "code": "jury", "sort_order": "first"})
