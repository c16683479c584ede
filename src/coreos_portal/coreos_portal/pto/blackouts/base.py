from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ...users.model import User
from ..model import PtoBlackout

CONFLICT = "conflict"
WARNING = "warning"


@dataclass(frozen=True)
class BlackoutContext:
    """The request being checked against one blackout."""

    user: User
    start_date: date
    end_date: date
    pto_type_id: int
    is_emergency: bool = False
    # Days of the request that fall on a recurring blackout's weekdays.
    conflicting_days: tuple[date, ...] = ()


@dataclass(frozen=True)
class BlackoutFinding:
    kind: str
    blackout: PtoBlackout
    message: str
    can_override: bool = False
    details: dict = field(default_factory=dict)
    conflicting_days: tuple[date, ...] = ()
    current_count: Optional[int] = None
    max_allowed: Optional[int] = None

    def to_dict(self) -> dict:
        out = {
            "type": self.kind,
            "blackout_id": self.blackout.blackout_id,
            "blackout_name": self.blackout.name,
            "restriction_type": self.blackout.restriction_type.value,
            "date_range": self.blackout.formatted_range,
            "message": self.message,
            "can_override": self.can_override,
            "restriction_details": dict(self.details),
        }
        if self.conflicting_days:
            out["conflicting_days"] = [format_day(d) for d in self.conflicting_days]
        if self.current_count is not None:
            out["current_count"] = self.current_count
            out["max_allowed"] = self.max_allowed
        return out


def format_day(value: date) -> str:
    return value.strftime("%A, %b %d")


def days_list(days: tuple[date, ...]) -> str:
    return ", ".join(format_day(d) for d in days)


class BlackoutStrategy(ABC):
    """Strategy Pattern: how one restriction type treats an overlapping request."""

    @abstractmethod
    def evaluate(self, blackout: PtoBlackout, ctx: BlackoutContext) -> Optional[BlackoutFinding]:
        raise NotImplementedError
