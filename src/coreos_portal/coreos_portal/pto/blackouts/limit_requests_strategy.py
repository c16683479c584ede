from __future__ import annotations

from typing import Callable, Optional

from ..model import PtoBlackout
from .base import CONFLICT, WARNING, BlackoutContext, BlackoutFinding, BlackoutStrategy, days_list

RequestCounter = Callable[[PtoBlackout, BlackoutContext], int]


class LimitRequestsStrategy(BlackoutStrategy):
    """Only `max_requests_allowed` pending/approved requests may share the period."""

    def __init__(self, count_requests: RequestCounter):
        self._count_requests = count_requests

    def evaluate(self, blackout: PtoBlackout, ctx: BlackoutContext) -> Optional[BlackoutFinding]:
        limit = int(blackout.max_requests_allowed or 0)
        current = self._count_requests(blackout, ctx)

        if blackout.is_recurring:
            where = ", ".join(blackout.recurring_day_names())
            suffix = f" Your request affects: {days_list(ctx.conflicting_days)}"
        else:
            where = f"blackout period: {blackout.name}"
            suffix = ""

        if current >= limit:
            return BlackoutFinding(
                kind=CONFLICT,
                blackout=blackout,
                message=f"Maximum number of PTO requests ({limit}) already reached for {where}.{suffix}",
                can_override=blackout.allow_emergency_override,
                conflicting_days=ctx.conflicting_days,
                current_count=current,
                max_allowed=limit,
                details={"type": "limit_exceeded", "period": blackout.formatted_range, "remaining_slots": 0},
            )

        return BlackoutFinding(
            kind=WARNING,
            blackout=blackout,
            message=f"Limited PTO requests during {where}. {current}/{limit} requests used.{suffix}",
            conflicting_days=ctx.conflicting_days,
            current_count=current,
            max_allowed=limit,
            details={
                "type": "limited_availability",
                "period": blackout.formatted_range,
                "remaining_slots": limit - current,
                "will_consume_slot": True,
            },
        )
