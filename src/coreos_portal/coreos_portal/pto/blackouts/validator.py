from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ...common.datetime_utils import iter_days
from ...core.enums import PtoStatus
from ...users.model import User
from ...users.repository import UserRepository
from ..model import PtoBlackout
from ..repository import BlackoutRepository, HolidayRepository, PtoRequestRepository
from .base import CONFLICT, BlackoutContext, BlackoutFinding
from .factory import BlackoutStrategyFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlackoutValidation:
    conflicts: list[BlackoutFinding] = field(default_factory=list)
    warnings: list[BlackoutFinding] = field(default_factory=list)
    is_emergency: bool = False

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def can_submit(self) -> bool:
        return not self.conflicts

    @property
    def requires_acknowledgment(self) -> bool:
        return bool(self.warnings)

    @property
    def requires_override(self) -> bool:
        return bool(self.conflicts) and self.is_emergency

    def to_dict(self) -> dict:
        return {
            "has_conflicts": self.has_conflicts,
            "has_warnings": self.has_warnings,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "warnings": [w.to_dict() for w in self.warnings],
            "can_submit": self.can_submit,
            "requires_acknowledgment": self.requires_acknowledgment,
            "requires_override": self.requires_override,
        }


class BlackoutValidator:
    """Checks a PTO request against every active blackout that targets the requester."""

    def __init__(
        self,
        blackouts: BlackoutRepository,
        holidays: HolidayRepository,
        requests: PtoRequestRepository,
        users: UserRepository,
        *,
        strategy_factory: Optional[BlackoutStrategyFactory] = None,
    ):
        self._blackouts = blackouts
        self._holidays = holidays
        self._requests = requests
        self._users = users
        self._factory = strategy_factory or BlackoutStrategyFactory(self.count_requests)

    def candidates(self, start: date, end: date) -> list[PtoBlackout]:
        """Active blackouts touching [start, end]: by date range, or by weekday for recurring ones."""

        out = []
        for b in self._blackouts.list_active():
            if b.is_recurring and not b.recurring_days:
                continue
            if b.overlaps(start, end):
                out.append(b)
        return out

    def validate(
        self,
        *,
        user: User,
        start_date: date,
        end_date: date,
        pto_type_id: int,
        is_emergency: bool = False,
    ) -> BlackoutValidation:
        conflicts: list[BlackoutFinding] = []
        warnings: list[BlackoutFinding] = []
        overlaps_holiday: Optional[bool] = None

        for blackout in self.candidates(start_date, end_date):
            if not blackout.applies_to(user_id=user.user_id, dept_id=user.dept_id, position=user.position):
                continue
            if not blackout.restricts_type(int(pto_type_id)):
                continue
            if blackout.is_holiday:
                if overlaps_holiday is None:
                    overlaps_holiday = bool(self._holidays.list_in_range(start_date=start_date, end_date=end_date))
                if overlaps_holiday:
                    continue

            conflicting_days: tuple[date, ...] = ()
            if blackout.is_recurring:
                conflicting_days = tuple(d for d in iter_days(start_date, end_date) if blackout.conflicts_with_date(d))
                if not conflicting_days:
                    continue

            ctx = BlackoutContext(
                user=user,
                start_date=start_date,
                end_date=end_date,
                pto_type_id=int(pto_type_id),
                is_emergency=is_emergency,
                conflicting_days=conflicting_days,
            )
            finding = self._factory.for_blackout(blackout).evaluate(blackout, ctx)
            if finding is None:
                continue
            if finding.kind == CONFLICT:
                conflicts.append(finding)
            else:
                warnings.append(finding)

        if conflicts:
            logger.info(
                "Blackout conflicts for user %s (%s to %s): %s",
                user.user_id,
                start_date,
                end_date,
                ", ".join(c.blackout.name for c in conflicts),
            )
        return BlackoutValidation(conflicts=conflicts, warnings=warnings, is_emergency=is_emergency)

    def count_requests(self, blackout: PtoBlackout, ctx: BlackoutContext) -> int:
        """Pending/approved requests already holding a slot of a limited blackout.

        Dated blackouts count requests overlapping the whole blackout period;
        recurring ones count requests that land on the same restricted days
        as the request being checked.
        """

        if blackout.is_recurring:
            days = ctx.conflicting_days or (ctx.start_date,)
            start, end = min(days), max(days)
        else:
            start, end = blackout.start_date, blackout.end_date

        count = 0
        people: dict[int, Optional[User]] = {}
        for req in self._requests.list_active_overlapping(start_date=start, end_date=end):
            if req.status not in (PtoStatus.PENDING, PtoStatus.APPROVED):
                continue
            if not blackout.restricts_type(req.pto_type_id):
                continue
            if blackout.is_recurring:
                lo, hi = max(req.start_date, start), min(req.end_date, end)
                if not any(d in days for d in iter_days(lo, hi)):
                    continue
            if not blackout.is_company_wide:
                if req.user_id not in people:
                    people[req.user_id] = self._users.get_by_id(req.user_id)
                owner = people[req.user_id]
                if not owner or not blackout.applies_to(user_id=owner.user_id, dept_id=owner.dept_id, position=owner.position):
                    continue
            count += 1
        return count
