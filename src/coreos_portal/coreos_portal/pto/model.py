from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import iter_days, ranges_overlap, sunday_based_weekday
from ..core.constants import TRANSACTION_NUMBER_WIDTH
from ..core.enums import DayPart, PtoStatus, RestrictionType, TransactionType

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass(frozen=True)
class PtoType:
    pto_type_id: int
    name: str
    code: str
    color: str = "#3b82f6"
    description: Optional[str] = None
    uses_balance: bool = True
    negative_allowed: bool = False
    carryover_allowed: bool = False
    max_carryover_days: float = 0.0
    annual_allotment: float = 0.0
    show_in_department_calendar: bool = True
    is_active: bool = True
    sort_order: int = 0


@dataclass(frozen=True)
class PtoBalance:
    balance_id: int
    user_id: int
    pto_type_id: int
    year: int
    balance: float
    pending_balance: float = 0.0
    used_balance: float = 0.0

    @property
    def available(self) -> float:
        return self.balance - self.pending_balance - self.used_balance


@dataclass(frozen=True)
class PtoTransaction:
    transaction_id: int
    transaction_number: str
    user_id: int
    pto_type_id: int
    amount: float
    balance_before: float
    balance_after: float
    type: TransactionType
    description: str
    pto_request_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


def transaction_number(year: int, seq: int) -> str:
    return f"TXN-{int(year)}-{int(seq):0{TRANSACTION_NUMBER_WIDTH}d}"


def transaction_sequence(number: str) -> int:
    """Sequence part of a ledger number such as TXN-2026-000042."""

    return int(number.rsplit("-", 1)[-1])


@dataclass(frozen=True)
class PtoRequest:
    request_id: int
    request_number: str
    user_id: int
    pto_type_id: int
    start_date: date
    end_date: date
    start_time: DayPart
    end_time: DayPart
    total_days: float
    status: PtoStatus
    reason: Optional[str] = None
    is_emergency: bool = False
    blackout_summary: Optional[dict] = None
    created_at: Optional[datetime] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    decision_comment: Optional[str] = None


@dataclass(frozen=True)
class PtoReportRow:
    request_id: int
    request_number: str
    user_id: int
    full_name: str
    username: str
    dept_id: Optional[int]
    dept_name: Optional[str]
    pto_type_id: int
    pto_type_name: str
    pto_type_color: str
    start_date: date
    end_date: date
    total_days: float
    status: PtoStatus


@dataclass(frozen=True)
class Holiday:
    holiday_id: int
    name: str
    holiday_date: date


@dataclass(frozen=True)
class PtoBlackout:
    """A period in which PTO is blocked, limited or flagged.

    Audience is the union of company-wide, listed users, a position and listed
    departments. Recurring blackouts repeat on `recurring_days` (0 = Sunday)
    inside an optional effective window; their start/end dates are unused.
    """

    blackout_id: int
    name: str
    start_date: Optional[date]
    end_date: Optional[date]
    restriction_type: RestrictionType = RestrictionType.FULL_BLOCK
    description: Optional[str] = None
    department_ids: tuple[int, ...] = ()
    user_ids: tuple[int, ...] = ()
    position: Optional[str] = None
    is_company_wide: bool = False
    is_holiday: bool = False
    is_strict: bool = False
    allow_emergency_override: bool = False
    max_requests_allowed: Optional[int] = None
    pto_type_ids: tuple[int, ...] = ()
    is_active: bool = True
    is_recurring: bool = False
    recurring_days: tuple[int, ...] = field(default_factory=tuple)
    recurring_start_date: Optional[date] = None
    recurring_end_date: Optional[date] = None

    def applies_to(self, *, user_id: int, dept_id: Optional[int], position: Optional[str]) -> bool:
        if self.is_company_wide:
            return True
        if user_id in self.user_ids:
            return True
        if self.position and position and self.position.lower() == position.lower():
            return True
        return dept_id is not None and dept_id in self.department_ids

    def restricts_type(self, pto_type_id: int) -> bool:
        return not self.pto_type_ids or pto_type_id in self.pto_type_ids

    def in_recurring_window(self, day: date) -> bool:
        if self.recurring_start_date and day < self.recurring_start_date:
            return False
        if self.recurring_end_date and day > self.recurring_end_date:
            return False
        return True

    def conflicts_with_date(self, day: date) -> bool:
        if not self.is_recurring:
            return self.overlaps(day, day)
        return self.in_recurring_window(day) and sunday_based_weekday(day) in self.recurring_days

    def overlaps(self, start: date, end: date) -> bool:
        if self.is_recurring:
            return any(self.conflicts_with_date(d) for d in iter_days(start, end))
        if not self.start_date or not self.end_date:
            return False
        return ranges_overlap(self.start_date, self.end_date, start, end)

    def recurring_day_names(self) -> list[str]:
        return [WEEKDAY_NAMES[d] for d in self.recurring_days if 0 <= d <= 6]

    @property
    def formatted_range(self) -> str:
        if self.is_recurring:
            text = "Every " + ", ".join(self.recurring_day_names())
            if self.recurring_start_date or self.recurring_end_date:
                start = self.recurring_start_date.strftime("%b %d, %Y") if self.recurring_start_date else "Beginning"
                end = self.recurring_end_date.strftime("%b %d, %Y") if self.recurring_end_date else "Ongoing"
                text += f" (Effective: {start} - {end})"
            return text
        if not self.start_date or not self.end_date:
            return "-"
        if self.start_date == self.end_date:
            return self.start_date.strftime("%b %d, %Y")
        return f"{self.start_date.strftime('%b %d, %Y')} - {self.end_date.strftime('%b %d, %Y')}"
