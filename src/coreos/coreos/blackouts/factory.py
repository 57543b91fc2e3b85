from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import RestrictionType
from .model import PtoBlackout
from .restrictions.base import BlackoutRestriction
from .restrictions.full_block_restriction import FullBlockRestriction
from .restrictions.limit_requests_restriction import LimitRequestsRestriction
from .restrictions.warning_only_restriction import WarningOnlyRestriction


@dataclass
class BlackoutRestrictionFactory:
    """Factory Pattern: choose the restriction strategy for a blackout."""

    def for_blackout(self, blackout: PtoBlackout) -> BlackoutRestriction:
        if blackout.restriction_type == RestrictionType.LIMIT_REQUESTS:
            return LimitRequestsRestriction()
        if blackout.restriction_type == RestrictionType.WARNING_ONLY:
            return WarningOnlyRestriction()
        return FullBlockRestriction()
