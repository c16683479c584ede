from __future__ import annotations

from dataclasses import dataclass

from ...core.enums import RestrictionType
from ..model import PtoBlackout
from .base import BlackoutStrategy
from .full_block_strategy import FullBlockStrategy
from .limit_requests_strategy import LimitRequestsStrategy, RequestCounter
from .warning_only_strategy import WarningOnlyStrategy


@dataclass
class BlackoutStrategyFactory:
    """Factory Pattern: choose the strategy for a blackout's restriction type."""

    count_requests: RequestCounter

    def for_blackout(self, blackout: PtoBlackout) -> BlackoutStrategy:
        if blackout.restriction_type == RestrictionType.LIMIT_REQUESTS:
            return LimitRequestsStrategy(self.count_requests)
        if blackout.restriction_type == RestrictionType.WARNING_ONLY:
            return WarningOnlyStrategy()
        return FullBlockStrategy()
