from __future__ import annotations

from typing import Optional

from ..model import PtoBlackout
from .base import CONFLICT, WARNING, BlackoutContext, BlackoutFinding, BlackoutStrategy, days_list


class FullBlockStrategy(BlackoutStrategy):
    """No PTO in the period, unless an emergency request may override it."""

    def evaluate(self, blackout: PtoBlackout, ctx: BlackoutContext) -> Optional[BlackoutFinding]:
        override = ctx.is_emergency and blackout.allow_emergency_override

        if blackout.is_recurring:
            dates = days_list(ctx.conflicting_days)
            weekdays = ", ".join(blackout.recurring_day_names())
            if override:
                return BlackoutFinding(
                    kind=WARNING,
                    blackout=blackout,
                    message=f"Emergency override applied for recurring blackout on {dates} ({blackout.name})",
                    can_override=True,
                    conflicting_days=ctx.conflicting_days,
                    details={"type": "recurring_emergency_override", "recurring_days": weekdays, "requires_approval": True},
                )
            return BlackoutFinding(
                kind=CONFLICT,
                blackout=blackout,
                message=f"PTO requests are blocked on {weekdays}. Your request includes: {dates} ({blackout.name})",
                can_override=blackout.allow_emergency_override,
                conflicting_days=ctx.conflicting_days,
                details={"type": "recurring_full_block", "recurring_days": weekdays, "strict": blackout.is_strict},
            )

        if override:
            return BlackoutFinding(
                kind=WARNING,
                blackout=blackout,
                message=f"Emergency override applied for blackout period: {blackout.name}",
                can_override=True,
                details={"type": "emergency_override", "period": blackout.formatted_range, "requires_approval": True},
            )
        return BlackoutFinding(
            kind=CONFLICT,
            blackout=blackout,
            message=f"PTO requests are blocked during: {blackout.name} ({blackout.formatted_range})",
            can_override=blackout.allow_emergency_override,
            details={
                "type": "full_block",
                "period": blackout.formatted_range,
                "strict": blackout.is_strict,
                "override_allowed": blackout.allow_emergency_override,
            },
        )
