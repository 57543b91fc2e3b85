from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..blackouts.validation import BlackoutValidation, BlackoutValidationService
from ..common.datetime_utils import now_local
from ..common.validators import FieldErrors, read_bool, read_choice, read_date, read_decimal, read_int, read_str
from ..core.constants import CANCEL_NOTICE_HOURS, MIN_REQUEST_DAYS
from ..core.enums import ApprovalStatus, DayPortion, RequestStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..pto_balances.model import PtoBalance
from ..pto_balances.service import PtoBalanceService
from ..pto_types.model import PtoType
from ..pto_types.repository import PtoTypeRepository
from ..users.model import User
from ..users.repository import UserRepository
from .day_calculator import calculate_total_days
from .model import PtoApproval, PtoRequest
from .repository import PtoApprovalRepository, PtoRequestRepository

logger = logging.getLogger(__name__)

BLACKOUT_DENIAL_REASON = "Request conflicts with blackout periods. Emergency override required."
EMERGENCY_OVERRIDE_REASON = "Emergency PTO request with blackout conflicts"
OVERRIDE_DENIED_REASON = "Emergency override denied due to blackout conflicts."

_PORTIONS = [p.value for p in DayPortion]
_COMMENTS_MAX = 1000


def submission_message(validation: BlackoutValidation, request: PtoRequest) -> str:
    message = "PTO request submitted successfully."
    if validation.has_conflicts and request.is_emergency_override:
        message += " Emergency override applied due to blackout conflicts."
    elif validation.has_warnings:
        message += " Note: Request has blackout period warnings."
    return message


def _with_validation(request: PtoRequest, validation: BlackoutValidation) -> PtoRequest:
    return replace(
        request,
        blackout_conflicts=tuple(c.to_dict() for c in validation.conflicts),
        blackout_warnings=tuple(w.to_dict() for w in validation.warnings),
        blackout_validation_message=validation.message,
        has_blackout_conflicts=validation.has_conflicts,
        has_blackout_warnings=validation.has_warnings,
    )


class PtoRequestService:
    """Submitting, changing and withdrawing PTO requests.

    Pending days are held on the balance while a request waits for a
    decision; they are released when it is cancelled, denied or deleted.
    """

    def __init__(
        self,
        requests: PtoRequestRepository,
        approvals: PtoApprovalRepository,
        types: PtoTypeRepository,
        users: UserRepository,
        balance_service: PtoBalanceService,
        validation: BlackoutValidationService,
    ):
        self._requests = requests
        self._approvals = approvals
        self._types = types
        self._users = users
        self._balance_service = balance_service
        self._validation = validation

    # -------- Lookups --------
    def get_request(self, request_id: int) -> PtoRequest:
        request = self._requests.get_by_id(int(request_id))
        if not request:
            raise NotFoundError("PTO request not found.")
        return request

    def list_requests(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        pto_type_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[PtoRequest]:
        if status and status not in {s.value for s in RequestStatus}:
            raise ValidationError("The selected status is invalid.", errors={"status": ["The selected status is invalid."]})
        return self._requests.list_requests(
            user_id=user_id,
            status=RequestStatus(status) if status else None,
            pto_type_id=pto_type_id,
            search=search,
        )

    def approvals_for(self, request_id: int) -> Sequence[PtoApproval]:
        return self._approvals.list_for_request(int(request_id))

    def blackout_status(self, request: PtoRequest) -> dict:
        return self._validation.status_summary(request)

    def _type(self, pto_type_id: int) -> PtoType:
        pto_type = self._types.get_by_id(int(pto_type_id))
        if not pto_type:
            raise NotFoundError("PTO Type not found.")
        return pto_type

    def _balance_for(self, request: PtoRequest) -> Optional[PtoBalance]:
        return self._balance_service.find_balance(
            user_id=request.user_id, pto_type_id=request.pto_type_id, year=request.start_date.year
        )

    def _release_pending(self, request: PtoRequest) -> None:
        if not self._type(request.pto_type_id).uses_balance:
            return
        balance = self._balance_for(request)
        if balance:
            self._balance_service.subtract_pending_balance(balance, request.total_days)

    def _hold_pending(self, request: PtoRequest) -> None:
        if not self._type(request.pto_type_id).uses_balance:
            return
        balance = self._balance_for(request)
        if balance:
            self._balance_service.add_pending_balance(balance, request.total_days)

    # -------- Balance check --------
    def _check_balance(
        self,
        pto_type: PtoType,
        *,
        user_id: int,
        year: int,
        requested: Decimal,
        exclude_request_id: Optional[int] = None,
    ) -> Optional[PtoBalance]:
        if not pto_type.uses_balance:
            return None

        balance = self._balance_service.find_balance(user_id=user_id, pto_type_id=pto_type.pto_type_id, year=year)
        if not balance:
            raise ValidationError("No PTO balance found for this PTO type.")

        pending = self._requests.sum_pending_days(
            user_id=user_id, pto_type_id=pto_type.pto_type_id, year=year, exclude_request_id=exclude_request_id
        )
        available = balance.balance - balance.used_balance - pending
        if available < requested and not pto_type.negative_allowed:
            context: dict[str, Any] = {"available": available, "requested": requested}
            if exclude_request_id is None:
                context.update({"current_balance": balance.balance, "pending_requests": pending})
            raise ValidationError("Insufficient PTO balance.", context=context)
        return balance

    # -------- Submit --------
    def _read_dates(self, payload: Mapping[str, Any], errors: FieldErrors, *, required_times: bool) -> dict[str, Any]:
        data = {
            "start_date": read_date(payload, "start_date", errors, required=True),
            "end_date": read_date(payload, "end_date", errors, required=True),
            "start_time": read_choice(
                payload, "start_time", errors, _PORTIONS, required=required_times, default=DayPortion.FULL_DAY.value
            ),
            "end_time": read_choice(
                payload, "end_time", errors, _PORTIONS, required=required_times, default=DayPortion.FULL_DAY.value
            ),
        }
        if data["start_date"] and data["end_date"] and data["end_date"] < data["start_date"]:
            errors.add("end_date", "The end date must be a date after or equal to start date.")
        return data

    def create_request(
        self, payload: Mapping[str, Any], *, user: User, now: datetime | None = None
    ) -> tuple[PtoRequest, BlackoutValidation]:
        now = now or now_local()
        errors = FieldErrors()
        pto_type_id = read_int(payload, "pto_type_id", errors, required=True)
        dates = self._read_dates(payload, errors, required_times=False)
        total_days = read_decimal(payload, "total_days", errors, min_value=MIN_REQUEST_DAYS)
        reason = read_str(payload, "reason", errors)
        is_emergency = read_bool(payload, "is_emergency_override")
        acknowledge = read_bool(payload, "acknowledge_warnings")
        pto_type = self._types.get_by_id(pto_type_id) if pto_type_id is not None else None
        if pto_type_id is not None and not errors.has("pto_type_id") and not pto_type:
            errors.add("pto_type_id", "The selected pto type id is invalid.")
        errors.raise_if_any()

        start_time = DayPortion(dates["start_time"])
        end_time = DayPortion(dates["end_time"])
        if total_days is None:
            total_days = calculate_total_days(dates["start_date"], dates["end_date"], start_time, end_time)

        balance = self._check_balance(
            pto_type, user_id=user.user_id, year=dates["start_date"].year, requested=total_days
        )

        request = PtoRequest(
            request_id=0,
            request_number=f"PTO-{user.user_id}-{int(now.timestamp())}",
            user_id=user.user_id,
            pto_type_id=pto_type.pto_type_id,
            start_date=dates["start_date"],
            end_date=dates["end_date"],
            start_time=start_time,
            end_time=end_time,
            total_days=total_days,
            reason=reason,
            day_options=payload.get("day_options"),
            created_at=now,
        )

        validation = self._validation.validate_pto_request(
            user, request.start_date, request.end_date, request.pto_type_id, is_emergency=is_emergency
        )
        request = _with_validation(request, validation)

        if validation.has_conflicts and not is_emergency:
            denied = replace(
                request,
                status=RequestStatus.DENIED,
                denied_at=now,
                denial_reason=BLACKOUT_DENIAL_REASON,
            )
            denied = replace(denied, request_id=self._requests.create(denied))
            logger.info("PTO request %s denied on submit: blackout conflicts", denied.request_number)
            raise ValidationError(
                BLACKOUT_DENIAL_REASON,
                context={
                    "blackout_conflicts": True,
                    "request_id": denied.request_id,
                    "validation": validation.to_dict(),
                },
            )

        if validation.has_conflicts:
            request = replace(request, is_emergency_override=True, blackout_override_reason=EMERGENCY_OVERRIDE_REASON)
        if acknowledge and validation.has_warnings:
            request = replace(request, blackout_warnings_acknowledged=True, blackout_acknowledged_at=now)

        request = replace(request, request_id=self._requests.create(request))
        self._create_approval_chain(request, pto_type, user)
        if balance:
            self._balance_service.add_pending_balance(balance, request.total_days)

        logger.info(
            "PTO request submitted: %s user=%s type=%s days=%s",
            request.request_number,
            user.user_id,
            pto_type.pto_type_id,
            request.total_days,
        )
        return request, validation

    def _create_approval_chain(self, request: PtoRequest, pto_type: PtoType, user: User) -> None:
        if not pto_type.multi_level_approval:
            return
        approvers: list[int] = []
        if not pto_type.disable_hierarchy_approval and user.manager_id:
            approvers.append(int(user.manager_id))
        approvers.extend(a for a in pto_type.specific_approvers if a not in approvers and a != user.user_id)
        for level, approver_id in enumerate(approvers, start=1):
            self._approvals.upsert(
                request_id=request.request_id,
                approver_id=approver_id,
                status=ApprovalStatus.PENDING,
                comments=None,
                responded_at=None,
                level=level,
            )

    # -------- Change --------
    def update_request(
        self,
        request_id: int,
        payload: Mapping[str, Any],
        *,
        actor: User,
        can_manage: bool = False,
        now: datetime | None = None,
    ) -> tuple[PtoRequest, BlackoutValidation]:
        now = now or now_local()
        request = self.get_request(request_id)
        if request.user_id != actor.user_id and not can_manage:
            raise AuthorizationError("You can only update your own PTO requests.")
        if not request.is_pending:
            raise ValidationError("Cannot update a PTO request that is not pending.")

        errors = FieldErrors()
        dates = self._read_dates(payload, errors, required_times=True)
        reason = read_str(payload, "reason", errors)
        is_emergency = read_bool(payload, "is_emergency_override", default=request.is_emergency_override)
        errors.raise_if_any()

        start_time = DayPortion(dates["start_time"])
        end_time = DayPortion(dates["end_time"])
        new_total = calculate_total_days(dates["start_date"], dates["end_date"], start_time, end_time)
        pto_type = self._type(request.pto_type_id)

        balance = self._check_balance(
            pto_type,
            user_id=request.user_id,
            year=dates["start_date"].year,
            requested=new_total,
            exclude_request_id=request.request_id,
        )

        owner = self._users.get_by_id(request.user_id) or actor
        validation = self._validation.validate_pto_request(
            owner,
            dates["start_date"],
            dates["end_date"],
            request.pto_type_id,
            exclude_request_id=request.request_id,
            is_emergency=is_emergency,
        )

        self._release_pending(request)
        updated = replace(
            request,
            start_date=dates["start_date"],
            end_date=dates["end_date"],
            start_time=start_time,
            end_time=end_time,
            total_days=new_total,
            reason=reason if reason is not None else request.reason,
            is_emergency_override=is_emergency and validation.has_conflicts,
            blackout_override_reason=EMERGENCY_OVERRIDE_REASON if is_emergency and validation.has_conflicts else None,
        )
        updated = _with_validation(updated, validation)
        self._requests.save(updated)
        if balance:
            fresh = self._balance_for(updated)
            if fresh:
                self._balance_service.add_pending_balance(fresh, new_total)

        logger.info("PTO request updated: %s days=%s", updated.request_number, new_total)
        return updated, validation

    def cancel_request(self, request_id: int, *, now: datetime | None = None) -> PtoRequest:
        now = now or now_local()
        request = self.get_request(request_id)
        if not request.is_pending:
            raise ValidationError("Cannot cancel a PTO request that is not pending.")
        self._release_pending(request)
        self._approvals.delete_pending_for_request(request.request_id)
        cancelled = replace(request, status=RequestStatus.CANCELLED, cancelled_at=now)
        self._requests.save(cancelled)
        logger.info("PTO request cancelled: %s", request.request_number)
        return cancelled

    def cancel_own_request(self, request_id: int, *, user: User, now: datetime | None = None) -> PtoRequest:
        now = now or now_local()
        request = self.get_request(request_id)
        if request.user_id != user.user_id:
            raise AuthorizationError("You can only cancel your own PTO requests.")

        if request.is_pending:
            self._release_pending(request)
        elif request.is_approved:
            starts_at = datetime.combine(request.start_date, time.min)
            if starts_at - now < timedelta(hours=CANCEL_NOTICE_HOURS):
                raise ValidationError(
                    "You can only cancel approved requests with at least 24 hours notice before the start date."
                )
            if self._type(request.pto_type_id).uses_balance:
                balance = self._balance_for(request)
                if balance:
                    self._balance_service.restore_used(
                        balance,
                        request.total_days,
                        pto_request_id=request.request_id,
                        created_by_id=user.user_id,
                        description=f"Cancelled PTO request {request.request_number}",
                        now=now,
                    )
        else:
            raise ValidationError("You can only cancel pending or approved PTO requests.")

        self._approvals.delete_pending_for_request(request.request_id)
        cancelled = replace(
            request,
            status=RequestStatus.CANCELLED,
            cancelled_at=now,
            denial_reason=f"Cancelled by the user {user.name}",
        )
        self._requests.save(cancelled)
        logger.info("PTO request %s cancelled by its owner %s", request.request_number, user.user_id)
        return cancelled

    def delete_request(self, request_id: int) -> None:
        request = self.get_request(request_id)
        if request.is_pending:
            self._release_pending(request)
        self._requests.delete(request.request_id)
        logger.info("PTO request deleted: %s", request.request_number)

    # -------- Blackouts --------
    def preview_blackouts(self, payload: Mapping[str, Any], *, user: User) -> BlackoutValidation:
        errors = FieldErrors()
        pto_type_id = read_int(payload, "pto_type_id", errors, required=True)
        dates = self._read_dates(payload, errors, required_times=False)
        user_id = read_int(payload, "user_id", errors)
        target = user
        if user_id is not None and user_id != user.user_id:
            target = self._users.get_by_id(user_id)
            if not target:
                errors.add("user_id", "The selected user id is invalid.")
        errors.raise_if_any()
        return self._validation.validate_pto_request(target, dates["start_date"], dates["end_date"], pto_type_id)

    def process_emergency_override(
        self,
        request_id: int,
        payload: Mapping[str, Any],
        *,
        approver: User,
        now: datetime | None = None,
    ) -> tuple[PtoRequest, str]:
        now = now or now_local()
        errors = FieldErrors()
        if payload.get("approved") is None or payload.get("approved") == "":
            errors.add("approved", "The approved field is required.")
        approved = read_bool(payload, "approved")
        reason = read_str(payload, "reason", errors, required=not approved, max_length=_COMMENTS_MAX)
        errors.raise_if_any()

        request = self.get_request(request_id)
        if not request.is_emergency_override:
            raise ValidationError("No emergency override requested for this PTO request.")

        if approved:
            updated = replace(
                request, override_approved=True, override_approved_by_id=approver.user_id, override_approved_at=now
            )
            if updated.was_denied_for_blackout:
                updated = replace(
                    updated, status=RequestStatus.PENDING, denied_at=None, denied_by_id=None, denial_reason=None
                )
                self._hold_pending(updated)
            self._requests.save(updated)
            logger.info("Emergency override approved for %s by %s", request.request_number, approver.user_id)
            return updated, "Emergency override approved. PTO request can now proceed through normal approval process."

        if request.is_pending:
            self._release_pending(request)
        updated = replace(
            request,
            is_emergency_override=False,
            blackout_override_reason=None,
            status=RequestStatus.DENIED,
            denied_at=now,
            denied_by_id=approver.user_id,
            denial_reason=reason or OVERRIDE_DENIED_REASON,
        )
        self._requests.save(updated)
        logger.info("Emergency override denied for %s by %s", request.request_number, approver.user_id)
        return updated, "Emergency override denied. PTO request has been rejected."

    def auto_reject_for_blackout(self, request_id: int, *, now: datetime | None = None) -> PtoRequest:
        """Deny a pending request if it now conflicts with a blackout."""
        now = now or now_local()
        request = self.get_request(request_id)
        if not request.is_pending:
            return request
        validation = self._validation.validate_for_request(request)
        if not validation.has_conflicts:
            return request

        reason = "Automatically rejected due to blackout period conflicts:\n" + "\n".join(
            c.message for c in validation.conflicts
        )
        self._release_pending(request)
        denied = replace(request, status=RequestStatus.DENIED, denied_at=now, denial_reason=reason)
        self._requests.save(denied)
        logger.info("PTO request %s auto-rejected for blackout conflicts", request.request_number)
        return denied


class PtoApprovalService:
    """Decisions on PTO requests: single approver, multi-level chains and admin review."""

    def __init__(
        self,
        requests: PtoRequestRepository,
        approvals: PtoApprovalRepository,
        types: PtoTypeRepository,
        users: UserRepository,
        balance_service: PtoBalanceService,
        validation: BlackoutValidationService,
    ):
        self._requests = requests
        self._approvals = approvals
        self._types = types
        self._users = users
        self._balance_service = balance_service
        self._validation = validation

    def _request(self, request_id: int) -> PtoRequest:
        request = self._requests.get_by_id(int(request_id))
        if not request:
            raise NotFoundError("PTO request not found.")
        return request

    def _uses_balance(self, request: PtoRequest) -> bool:
        pto_type = self._types.get_by_id(request.pto_type_id)
        return bool(pto_type and pto_type.uses_balance)

    def _balance(self, request: PtoRequest) -> Optional[PtoBalance]:
        if not self._uses_balance(request):
            return None
        balance = self._balance_service.find_balance(
            user_id=request.user_id, pto_type_id=request.pto_type_id, year=request.start_date.year
        )
        if not balance:
            logger.warning("No PTO balance for request %s; balance left unchanged", request.request_number)
        return balance

    @staticmethod
    def _read_comments(payload: Mapping[str, Any], *, required: bool) -> Optional[str]:
        errors = FieldErrors()
        comments = read_str(payload, "comments", errors, required=required, max_length=_COMMENTS_MAX)
        errors.raise_if_any()
        return comments

    def _own_pending_row(
        self, request: PtoRequest, approver: User, verb: str, *, can_approve_any: bool, can_approve: bool
    ) -> Optional[PtoApproval]:
        """The approver's pending chain row.

        None when a PTO administrator acts, or when an approver acts on a
        request without an approval chain.
        """
        if can_approve_any:
            return None
        rows = self._approvals.list_for_request(request.request_id)
        if not rows and can_approve:
            return None
        own = next(
            (r for r in rows if r.approver_id == approver.user_id and r.status == ApprovalStatus.PENDING), None
        )
        if not own:
            raise AuthorizationError(
                f"You do not have permission to {verb} this request or it has already been processed."
            )
        return own

    def _current_level(self, request: PtoRequest) -> int:
        """Lowest level still waiting in the chain, or 1 for requests without one."""
        rows = self._approvals.list_for_request(request.request_id)
        pending = [r.level for r in rows if r.status == ApprovalStatus.PENDING]
        if pending:
            return min(pending)
        return max((r.level for r in rows), default=1)

    def _complete_approval(
        self, request: PtoRequest, approver: User, *, notes: Optional[str], now: datetime
    ) -> PtoRequest:
        approved = replace(
            request,
            status=RequestStatus.APPROVED,
            approved_at=now,
            approved_by_id=approver.user_id,
            approval_notes=notes if notes is not None else request.approval_notes,
        )
        self._requests.save(approved)
        self._approvals.delete_pending_for_request(request.request_id)
        balance = self._balance(request)
        if balance:
            self._balance_service.consume_pending(
                balance,
                request.total_days,
                pto_request_id=request.request_id,
                created_by_id=approver.user_id,
                description=f"Approved PTO request {request.request_number}",
                now=now,
            )
        return approved

    def approve(
        self,
        request_id: int,
        payload: Mapping[str, Any],
        *,
        approver: User,
        can_approve_any: bool = False,
        can_approve: bool = False,
        now: datetime | None = None,
    ) -> PtoRequest:
        now = now or now_local()
        comments = self._read_comments(payload, required=False)
        request = self._request(request_id)
        if not request.is_pending:
            raise ValidationError("This request has already been processed")

        own = self._own_pending_row(
            request, approver, "approve", can_approve_any=can_approve_any, can_approve=can_approve
        )
        level = own.level if own else self._current_level(request)
        self._approvals.upsert(
            request_id=request.request_id,
            approver_id=approver.user_id,
            status=ApprovalStatus.APPROVED,
            comments=comments,
            responded_at=now,
            level=level,
        )
        if own and any(r.status == ApprovalStatus.PENDING for r in self._approvals.list_for_request(request.request_id)):
            logger.info("PTO request %s approved at level %s by %s", request.request_number, own.level, approver.user_id)
            return request

        approved = self._complete_approval(request, approver, notes=None, now=now)
        logger.info("PTO request %s approved by %s", request.request_number, approver.user_id)
        return approved

    def deny(
        self,
        request_id: int,
        payload: Mapping[str, Any],
        *,
        approver: User,
        can_approve_any: bool = False,
        can_approve: bool = False,
        now: datetime | None = None,
    ) -> PtoRequest:
        now = now or now_local()
        comments = self._read_comments(payload, required=True)
        request = self._request(request_id)
        if not request.is_pending:
            raise ValidationError("This request has already been processed")

        own = self._own_pending_row(
            request, approver, "deny", can_approve_any=can_approve_any, can_approve=can_approve
        )
        level = own.level if own else self._current_level(request)
        self._approvals.upsert(
            request_id=request.request_id,
            approver_id=approver.user_id,
            status=ApprovalStatus.DENIED,
            comments=comments,
            responded_at=now,
            level=level,
        )
        self._approvals.delete_pending_for_request(request.request_id)

        denied = replace(
            request,
            status=RequestStatus.DENIED,
            denied_at=now,
            denied_by_id=approver.user_id,
            denial_reason=comments,
        )
        self._requests.save(denied)
        balance = self._balance(request)
        if balance:
            self._balance_service.subtract_pending_balance(balance, request.total_days)
        logger.info("PTO request %s denied by %s", request.request_number, approver.user_id)
        return denied

    def approve_with_blackout_review(
        self,
        request_id: int,
        payload: Mapping[str, Any],
        *,
        approver: User,
        now: datetime | None = None,
    ) -> PtoRequest:
        now = now or now_local()
        errors = FieldErrors()
        comments = read_str(payload, "comments", errors, max_length=_COMMENTS_MAX)
        justification = read_str(payload, "override_justification", errors, max_length=_COMMENTS_MAX)
        if payload.get("acknowledge_blackout_risks") is None:
            errors.add("acknowledge_blackout_risks", "The acknowledge blackout risks field is required.")
        errors.raise_if_any()
        if not read_bool(payload, "acknowledge_blackout_risks"):
            raise ValidationError("Must acknowledge blackout risks before approval")

        request = self._request(request_id)
        if not request.is_pending:
            raise ValidationError("This request has already been processed")

        analysis = self._validation.details_for_admin(request)["blackout_analysis"]
        lines = [request.approval_notes] if request.approval_notes else []
        lines += [
            "",
            "ADMIN APPROVAL WITH BLACKOUT REVIEW",
            f"Approved by: {approver.name}",
            "Approval date: " + now.strftime("%b %d, %Y %H:%M:%S"),
        ]
        if justification:
            lines += ["", "OVERRIDE JUSTIFICATION:", justification]
        if comments:
            lines += ["", "APPROVAL COMMENTS:", comments]
        if analysis["has_conflicts"] or analysis["has_warnings"]:
            lines += ["", "BLACKOUT ANALYSIS REVIEWED:"]
            lines += [f"• CONFLICT: {c['blackout_name']} - {c['description']}" for c in analysis["conflicts"]]
            lines += [f"• WARNING: {w['blackout_name']} - {w['description']}" for w in analysis["warnings"]]
        lines += ["", "✓ Blackout risks acknowledged and reviewed by admin"]
        notes = "\n".join(lines)

        self._approvals.upsert(
            request_id=request.request_id,
            approver_id=approver.user_id,
            status=ApprovalStatus.APPROVED,
            comments=notes,
            responded_at=now,
            level=self._current_level(request),
        )
        approved = self._complete_approval(request, approver, notes=notes, now=now)
        logger.info("PTO request %s approved with blackout review by %s", request.request_number, approver.name)
        return approved

    # -------- Dashboards --------
    def _requests_for(self, approvals: Sequence[PtoApproval]) -> list[PtoRequest]:
        found: list[PtoRequest] = []
        seen: set[int] = set()
        for approval in approvals:
            if approval.pto_request_id in seen:
                continue
            seen.add(approval.pto_request_id)
            request = self._requests.get_by_id(approval.pto_request_id)
            if request:
                found.append(request)
        return found

    def pending_approvals(self, approver: User) -> list[PtoRequest]:
        rows = self._approvals.list_pending_for_approver(approver.user_id)
        return [r for r in self._requests_for(rows) if r.is_pending]

    def my_approvals(self, approver: User, *, status: str = "pending") -> list[PtoRequest]:
        if status not in {"all", *(s.value for s in ApprovalStatus)}:
            raise ValidationError("The selected status is invalid.", errors={"status": ["The selected status is invalid."]})
        rows = self._approvals.list_by_approver(approver.user_id, limit=200)
        if status != "all":
            rows = [r for r in rows if r.status.value == status]
        found = self._requests_for(rows)
        if status == ApprovalStatus.PENDING.value:
            found = [r for r in found if r.is_pending]
        return found

    def approval_chain(self, request_id: int) -> Sequence[PtoApproval]:
        request = self._request(request_id)
        return self._approvals.list_for_request(request.request_id)

    def blackout_analysis(self, request_id: int) -> dict:
        request = self._request(request_id)
        details = self._validation.details_for_admin(request)
        return {
            "request_id": request.request_id,
            "blackout_analysis": details,
            "approval_recommendation": self._validation.approval_recommendation(request, details=details),
            "similar_requests": self._similar_requests(request),
            "approval_notes": request.approval_notes,
        }

    def _similar_requests(self, request: PtoRequest) -> list[dict]:
        user = self._users.get_by_id(request.user_id)
        if not user:
            return []
        type_names = {t.pto_type_id: t.name for t in self._types.list_types()}
        result: list[dict] = []
        for blackout in self._validation.blackouts_for_user(user, request.start_date, request.end_date):
            others = self._requests.list_in_period(
                blackout.start_date,
                blackout.end_date,
                statuses=(RequestStatus.APPROVED, RequestStatus.PENDING, RequestStatus.DENIED),
                pto_type_ids=blackout.pto_type_ids,
                exclude_request_id=request.request_id,
                limit=10,
            )
            if not others:
                continue
            names = {u.user_id: u.name for u in self._users.list_by_ids(sorted({o.user_id for o in others}))}
            result.append(
                {
                    "blackout": {
                        "name": blackout.name,
                        "period": blackout.formatted_date_range,
                        "restriction_type": blackout.restriction_type.value,
                        "max_requests_allowed": blackout.max_requests_allowed,
                    },
                    "requests": [
                        {
                            "id": o.request_id,
                            "user_name": names.get(o.user_id),
                            "pto_type": type_names.get(o.pto_type_id),
                            "dates": o.start_date.strftime("%b %d") + " - " + o.end_date.strftime("%b %d, %Y"),
                            "total_days": o.total_days,
                            "status": o.status.value,
                            "submitted_at": o.created_at.strftime("%b %d, %Y") if o.created_at else None,
                        }
                        for o in others
                    ],
                    "summary": {
                        "total_requests": len(others),
                        "approved": sum(1 for o in others if o.status == RequestStatus.APPROVED),
                        "pending": sum(1 for o in others if o.status == RequestStatus.PENDING),
                        "denied": sum(1 for o in others if o.status == RequestStatus.DENIED),
                    },
                }
            )
        return result
