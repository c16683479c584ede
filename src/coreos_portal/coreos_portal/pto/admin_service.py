from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

from ..common.datetime_utils import parse_iso_date
from ..common.validators import optional_text, require_non_empty
from ..core.enums import RestrictionType
from ..core.exceptions import NotFoundError, ValidationError
from .model import Holiday, PtoBlackout, PtoType
from .repository import BlackoutRepository, HolidayRepository, PtoTypeRepository

logger = logging.getLogger(__name__)


def _flag(data: dict, key: str, default: bool = False) -> bool:
    value = data.get(key, default)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _number(data: dict, key: str, default: float = 0.0) -> float:
    value = data.get(key)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")


def _date(data: dict, key: str) -> Optional[date]:
    value = data.get(key)
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{key} must be a date (YYYY-MM-DD)")


def _int(data: dict, key: str) -> Optional[int]:
    value = data.get(key)
    if value is None or value == "":
        return None
    try:
        number = float(value)
        if number != int(number):
            raise ValueError(value)
        return int(number)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{key} must be a whole number")


def _ids(data: dict, key: str) -> tuple[int, ...]:
    values = data.get(key)
    if values is None or values == "":
        return ()
    if not isinstance(values, (list, tuple)):
        raise ValidationError(f"{key} must be a list of ids")
    try:
        return tuple(int(v) for v in values)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a list of ids")


class PtoAdminService:
    """Use case: maintain PTO types, blackout periods and holidays (admin)."""

    def __init__(self, types: PtoTypeRepository, blackouts: BlackoutRepository, holidays: HolidayRepository):
        self._types = types
        self._blackouts = blackouts
        self._holidays = holidays

    # -------- types --------
    def list_types(self, *, active_only: bool = False) -> Sequence[PtoType]:
        return self._types.list_all(active_only=active_only)

    def _type_from(self, data: dict, *, pto_type_id: int = 0) -> PtoType:
        pto_type = PtoType(
            pto_type_id=pto_type_id,
            name=require_non_empty(data.get("name", ""), "Name"),
            code=require_non_empty(data.get("code", ""), "Code").upper(),
            color=(data.get("color") or "#3b82f6").strip(),
            description=optional_text(data.get("description")),
            uses_balance=_flag(data, "uses_balance", True),
            negative_allowed=_flag(data, "negative_allowed"),
            carryover_allowed=_flag(data, "carryover_allowed"),
            max_carryover_days=_number(data, "max_carryover_days"),
            annual_allotment=_number(data, "annual_allotment"),
            show_in_department_calendar=_flag(data, "show_in_department_calendar", True),
            is_active=_flag(data, "is_active", True),
            sort_order=_int(data, "sort_order") or 0,
        )
        if pto_type.max_carryover_days < 0 or pto_type.annual_allotment < 0:
            raise ValidationError("Allotment and carryover cannot be negative")

        for other in self._types.list_all():
            if other.code == pto_type.code and other.pto_type_id != pto_type_id:
                raise ValidationError("A PTO type with this code already exists")
        return pto_type

    def create_type(self, data: dict) -> int:
        pto_type_id = self._types.create(self._type_from(data))
        logger.info("Created PTO type %s", pto_type_id)
        return pto_type_id

    def update_type(self, pto_type_id: int, data: dict) -> PtoType:
        if not self._types.get_by_id(int(pto_type_id)):
            raise NotFoundError("PTO type not found")
        pto_type = self._type_from(data, pto_type_id=int(pto_type_id))
        self._types.update(pto_type)
        return pto_type

    def deactivate_type(self, pto_type_id: int) -> None:
        pto_type = self._types.get_by_id(int(pto_type_id))
        if not pto_type:
            raise NotFoundError("PTO type not found")
        self._types.update(replace(pto_type, is_active=False))
        logger.info("Deactivated PTO type %s", pto_type_id)

    # -------- blackouts --------
    def list_blackouts(self) -> Sequence[PtoBlackout]:
        return self._blackouts.list_all()

    def get_blackout(self, blackout_id: int) -> PtoBlackout:
        blackout = self._blackouts.get_by_id(int(blackout_id))
        if not blackout:
            raise NotFoundError("Blackout not found")
        return blackout

    def _blackout_from(self, data: dict, *, blackout_id: int = 0) -> PtoBlackout:
        try:
            restriction = RestrictionType(data.get("restriction_type") or RestrictionType.FULL_BLOCK.value)
        except ValueError:
            raise ValidationError("Invalid restriction type")

        is_recurring = _flag(data, "is_recurring")
        blackout = PtoBlackout(
            blackout_id=blackout_id,
            name=require_non_empty(data.get("name", ""), "Name"),
            description=optional_text(data.get("description")),
            start_date=_date(data, "start_date"),
            end_date=_date(data, "end_date"),
            restriction_type=restriction,
            department_ids=_ids(data, "department_ids"),
            user_ids=_ids(data, "user_ids"),
            position=optional_text(data.get("position")),
            is_company_wide=_flag(data, "is_company_wide"),
            is_holiday=_flag(data, "is_holiday"),
            is_strict=_flag(data, "is_strict"),
            allow_emergency_override=_flag(data, "allow_emergency_override"),
            max_requests_allowed=_int(data, "max_requests_allowed"),
            pto_type_ids=_ids(data, "pto_type_ids"),
            is_active=_flag(data, "is_active", True),
            is_recurring=is_recurring,
            recurring_days=_ids(data, "recurring_days"),
            recurring_start_date=_date(data, "recurring_start_date"),
            recurring_end_date=_date(data, "recurring_end_date"),
        )

        if blackout.is_recurring:
            if not blackout.recurring_days or any(d < 0 or d > 6 for d in blackout.recurring_days):
                raise ValidationError("Recurring blackouts need weekdays between 0 (Sunday) and 6 (Saturday)")
            if (
                blackout.recurring_start_date
                and blackout.recurring_end_date
                and blackout.recurring_end_date < blackout.recurring_start_date
            ):
                raise ValidationError("Recurring end date must be on or after the recurring start date")
        else:
            if not blackout.start_date or not blackout.end_date:
                raise ValidationError("Start and end dates are required")
            if blackout.end_date < blackout.start_date:
                raise ValidationError("End date must be on or after the start date")

        if restriction == RestrictionType.LIMIT_REQUESTS and (blackout.max_requests_allowed or 0) < 1:
            raise ValidationError("Limited blackouts need max_requests_allowed of at least 1")

        if not (blackout.is_company_wide or blackout.user_ids or blackout.department_ids or blackout.position):
            raise ValidationError("Choose who the blackout applies to")
        return blackout

    def create_blackout(self, data: dict) -> int:
        blackout_id = self._blackouts.create(self._blackout_from(data))
        logger.info("Created blackout %s", blackout_id)
        return blackout_id

    def update_blackout(self, blackout_id: int, data: dict) -> PtoBlackout:
        self.get_blackout(blackout_id)
        blackout = self._blackout_from(data, blackout_id=int(blackout_id))
        self._blackouts.update(blackout)
        return blackout

    def deactivate_blackout(self, blackout_id: int) -> None:
        blackout = self.get_blackout(blackout_id)
        self._blackouts.update(replace(blackout, is_active=False))
        logger.info("Deactivated blackout %s", blackout_id)

    # -------- holidays --------
    def list_holidays(self, *, year: int) -> Sequence[Holiday]:
        return self._holidays.list_for_year(int(year))

    def create_holiday(self, *, name: str, holiday_date: date) -> int:
        name = require_non_empty(name, "Name")
        if any(h.holiday_date == holiday_date for h in self._holidays.list_for_year(holiday_date.year)):
            raise ValidationError("A holiday already exists on this date")
        return self._holidays.create(name=name, holiday_date=holiday_date)

    def delete_holiday(self, holiday_id: int) -> None:
        if not self._holidays.delete_by_id(int(holiday_id)):
            raise NotFoundError("Holiday not found")
