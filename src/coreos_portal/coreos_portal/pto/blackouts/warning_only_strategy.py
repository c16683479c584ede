from __future__ import annotations

from typing import Optional

from ..model import PtoBlackout
from .base import WARNING, BlackoutContext, BlackoutFinding, BlackoutStrategy, days_list


class WarningOnlyStrategy(BlackoutStrategy):
    """Advisory period: the request goes through with a warning."""

    def evaluate(self, blackout: PtoBlackout, ctx: BlackoutContext) -> Optional[BlackoutFinding]:
        if blackout.is_recurring:
            weekdays = ", ".join(blackout.recurring_day_names())
            message = (
                f"Note: Your request includes {weekdays} which are restricted for {blackout.name}. "
                f"Affected dates: {days_list(ctx.conflicting_days)}"
            )
        else:
            message = f"Note: Your request falls during a restricted period: {blackout.name} ({blackout.formatted_range})"

        return BlackoutFinding(
            kind=WARNING,
            blackout=blackout,
            message=message,
            conflicting_days=ctx.conflicting_days,
            details={"type": "advisory_only", "period": blackout.formatted_range, "requires_justification": True},
        )
