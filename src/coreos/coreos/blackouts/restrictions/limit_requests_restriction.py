from __future__ import annotations

from typing import Optional

from ..model import PtoBlackout
from .base import CONFLICT, WARNING, BlackoutFinding, BlackoutRestriction, RequestCounter


class LimitRequestsRestriction(BlackoutRestriction):
    """Only `max_requests_allowed` approved or pending requests may fall in the blackout."""

    def evaluate_period(
        self, *, blackout: PtoBlackout, is_emergency: bool, counter: RequestCounter
    ) -> Optional[BlackoutFinding]:
        max_allowed = int(blackout.max_requests_allowed or 0)
        count = counter.count_in_period(blackout)
        period = blackout.formatted_date_range

        if count >= max_allowed:
            return BlackoutFinding(
                kind=CONFLICT,
                blackout=blackout,
                message=(
                    f"Maximum number of PTO requests ({max_allowed}) already reached "
                    f"for blackout period: {blackout.name}"
                ),
                can_override=blackout.allow_emergency_override,
                current_count=count,
                max_allowed=max_allowed,
                restriction_details={"type": "limit_exceeded", "period": period, "remaining_slots": 0},
            )
        return BlackoutFinding(
            kind=WARNING,
            blackout=blackout,
            message=f"Limited PTO requests during: {blackout.name}. {count}/{max_allowed} requests used.",
            current_count=count,
            max_allowed=max_allowed,
            restriction_details={
                "type": "limited_availability",
                "period": period,
                "remaining_slots": max_allowed - count,
                "will_consume_slot": True,
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
        max_allowed = int(blackout.max_requests_allowed or 0)
        count = counter.count_on_recurring_days(blackout)
        days_list = ", ".join(conflicting_days)
        day_names = ", ".join(blackout.get_recurring_day_names())

        if count >= max_allowed:
            return BlackoutFinding(
                kind=CONFLICT,
                blackout=blackout,
                message=f"Maximum requests ({max_allowed}) reached for {day_names}. Your request affects: {days_list}",
                can_override=blackout.allow_emergency_override,
                conflicting_days=conflicting_days,
                current_count=count,
                max_allowed=max_allowed,
                restriction_details={
                    "type": "recurring_limit_exceeded",
                    "recurring_days": day_names,
                    "conflicting_dates": days_list,
                    "remaining_slots": 0,
                },
            )
        return BlackoutFinding(
            kind=WARNING,
            blackout=blackout,
            message=(
                f"Limited requests on {day_names}. {count}/{max_allowed} used. "
                f"Your request affects: {days_list}"
            ),
            conflicting_days=conflicting_days,
            current_count=count,
            max_allowed=max_allowed,
            restriction_details={
                "type": "recurring_limited_availability",
                "recurring_days": day_names,
                "conflicting_dates": days_list,
                "remaining_slots": max_allowed - count,
            },
        )
