from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Protocol

from ...common.datetime_utils import format_day_label
from ..model import PtoBlackout

CONFLICT = "conflict"
WARNING = "warning"


class RequestCounter(Protocol):
    """Counts approved and pending requests that already use a blackout's capacity."""

    def count_in_period(self, blackout: PtoBlackout) -> int:
        raise NotImplementedError

    def count_on_recurring_days(self, blackout: PtoBlackout) -> int:
        raise NotImplementedError


@dataclass(frozen=True)
class BlackoutFinding:
    kind: str
    blackout: PtoBlackout
    message: str
    can_override: bool = False
    conflicting_days: tuple[str, ...] = ()
    current_count: Optional[int] = None
    max_allowed: Optional[int] = None
    restriction_details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_conflict(self) -> bool:
        return self.kind == CONFLICT

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "type": self.kind,
            "blackout_id": self.blackout.blackout_id,
            "blackout_name": self.blackout.name,
            "message": self.message,
            "can_override": self.can_override,
            "restriction_details": dict(self.restriction_details),
        }
        if self.conflicting_days:
            data["conflicting_days"] = list(self.conflicting_days)
        if self.current_count is not None:
            data["current_count"] = self.current_count
            data["max_allowed"] = self.max_allowed
        return data


class BlackoutRestriction(ABC):
    """Strategy Pattern: how one restriction type treats a request inside a blackout."""

    def evaluate(
        self,
        *,
        blackout: PtoBlackout,
        start: date,
        end: date,
        is_emergency: bool,
        counter: RequestCounter,
    ) -> Optional[BlackoutFinding]:
        if not blackout.is_recurring:
            return self.evaluate_period(blackout=blackout, is_emergency=is_emergency, counter=counter)

        days = tuple(format_day_label(d) for d in blackout.get_conflicting_dates(start, end))
        if not days:
            return None
        return self.evaluate_recurring(
            blackout=blackout,
            conflicting_days=days,
            is_emergency=is_emergency,
            counter=counter,
        )

    @abstractmethod
    def evaluate_period(
        self, *, blackout: PtoBlackout, is_emergency: bool, counter: RequestCounter
    ) -> Optional[BlackoutFinding]:
        raise NotImplementedError

    @abstractmethod
    def evaluate_recurring(
        self,
        *,
        blackout: PtoBlackout,
        conflicting_days: tuple[str, ...],
        is_emergency: bool,
        counter: RequestCounter,
    ) -> Optional[BlackoutFinding]:
        raise NotImplementedError
