from __future__ import annotations

from typing import Optional

from ..model import PtoBlackout
from .base import WARNING, BlackoutFinding, BlackoutRestriction, RequestCounter


class WarningOnlyRestriction(BlackoutRestriction):
    """Advisory only: the request goes through but the employee is warned."""

    def evaluate_period(
        self, *, blackout: PtoBlackout, is_emergency: bool, counter: RequestCounter
    ) -> Optional[BlackoutFinding]:
        period = blackout.formatted_date_range
        return BlackoutFinding(
            kind=WARNING,
            blackout=blackout,
            message=f"Note: Your request falls during a restricted period: {blackout.name} ({period})",
            restriction_details={"type": "advisory_only", "period": period, "requires_justification": True},
        )

    def evaluate_recurring(
        self,
        *,
        blackout: PtoBlackout,
        conflicting_days: tuple[str, ...],
        is_emergency: bool,
        counter: RequestCounter,
    ) -> Optional[BlackoutFinding]:
        days_list = ", ".join(conflicting_days)
        day_names = ", ".join(blackout.get_recurring_day_names())
        return BlackoutFinding(
            kind=WARNING,
            blackout=blackout,
            message=(
                f"Note: Your request includes {day_names} which are restricted for {blackout.name}. "
                f"Affected dates: {days_list}"
            ),
            conflicting_days=conflicting_days,
            restriction_details={
                "type": "recurring_advisory",
                "recurring_days": day_names,
                "conflicting_dates": days_list,
            },
        )
