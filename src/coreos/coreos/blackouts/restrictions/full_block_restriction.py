from __future__ import annotations

from typing import Optional

from ..model import PtoBlackout
from .base import CONFLICT, WARNING, BlackoutFinding, BlackoutRestriction, RequestCounter


class FullBlockRestriction(BlackoutRestriction):
    """No PTO at all, unless an emergency request may override the blackout."""

    def evaluate_period(
        self, *, blackout: PtoBlackout, is_emergency: bool, counter: RequestCounter
    ) -> Optional[BlackoutFinding]:
        period = blackout.formatted_date_range
        if is_emergency and blackout.allow_emergency_override:
            return BlackoutFinding(
                kind=WARNING,
                blackout=blackout,
                message=f"Emergency override applied for blackout period: {blackout.name}",
                can_override=True,
                restriction_details={
                    "type": "emergency_override",
                    "period": period,
                    "requires_approval": True,
                    "override_reason_required": True,
                },
            )
        return BlackoutFinding(
            kind=CONFLICT,
            blackout=blackout,
            message=f"PTO requests are blocked during: {blackout.name} ({period})",
            can_override=blackout.allow_emergency_override,
            restriction_details={
                "type": "full_block",
                "period": period,
                "strict": blackout.is_strict,
                "override_allowed": blackout.allow_emergency_override,
            },
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
        if is_emergency and blackout.allow_emergency_override:
            return BlackoutFinding(
                kind=WARNING,
                blackout=blackout,
                message=f"Emergency override applied for recurring blackout on {days_list} ({blackout.name})",
                can_override=True,
                conflicting_days=conflicting_days,
                restriction_details={
                    "type": "recurring_emergency_override",
                    "recurring_days": day_names,
                    "conflicting_dates": days_list,
                    "requires_approval": True,
                },
            )
        return BlackoutFinding(
            kind=CONFLICT,
            blackout=blackout,
            message=f"PTO requests are blocked on {day_names}. Your request includes: {days_list} ({blackout.name})",
            can_override=blackout.allow_emergency_override,
            conflicting_days=conflicting_days,
            restriction_details={
                "type": "recurring_full_block",
                "recurring_days": day_names,
                "conflicting_dates": days_list,
                "strict": blackout.is_strict,
            },
        )
