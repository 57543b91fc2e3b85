from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import ApprovalStatus, RequestStatus
from .model import PtoApproval, PtoRequest


class PtoRequestRepository(Protocol):
    def get_by_id(self, request_id: int) -> Optional[PtoRequest]:
        raise NotImplementedError

    def list_requests(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[RequestStatus] = None,
        pto_type_id: Optional[int] = None,
        search: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[PtoRequest]:
        raise NotImplementedError

    def list_in_period(
        self,
        start: date,
        end: date,
        *,
        statuses: Sequence[RequestStatus],
        pto_type_ids: Sequence[int] = (),
        exclude_request_id: Optional[int] = None,
        limit: int = 10,
    ) -> Sequence[PtoRequest]:
        """Requests overlapping [start, end], newest first."""
        raise NotImplementedError

    def list_approved_overlapping(self, user_id: int, start: date, end: date) -> Sequence[PtoRequest]:
        raise NotImplementedError

    def sum_pending_days(
        self, *, user_id: int, pto_type_id: int, year: int, exclude_request_id: Optional[int] = None
    ) -> Decimal:
        raise NotImplementedError

    def count_active_in_period(
        self,
        start: date,
        end: date,
        *,
        user_ids: Optional[Sequence[int]] = None,
        position_id: Optional[int] = None,
        department_ids: Sequence[int] = (),
        pto_type_ids: Sequence[int] = (),
        exclude_request_id: Optional[int] = None,
    ) -> int:
        """Approved + pending requests overlapping the period.

        When no user, position or department scope is given every user counts.
        """
        raise NotImplementedError

    def list_active_request_dates(
        self, *, pto_type_ids: Sequence[int] = (), exclude_request_id: Optional[int] = None
    ) -> Sequence[tuple[date, date]]:
        """(start_date, end_date) of every approved + pending request."""
        raise NotImplementedError

    def create(self, request: PtoRequest) -> int:
        raise NotImplementedError

    def save(self, request: PtoRequest) -> None:
        raise NotImplementedError

    def delete(self, request_id: int) -> bool:
        raise NotImplementedError


class PtoApprovalRepository(Protocol):
    def list_for_request(self, request_id: int) -> Sequence[PtoApproval]:
        raise NotImplementedError

    def get_for(self, *, request_id: int, approver_id: int) -> Optional[PtoApproval]:
        raise NotImplementedError

    def upsert(
        self,
        *,
        request_id: int,
        approver_id: int,
        status: ApprovalStatus,
        comments: Optional[str],
        responded_at: Optional[datetime],
        level: int = 1,
    ) -> None:
        raise NotImplementedError

    def delete_pending_for_request(self, request_id: int) -> int:
        raise NotImplementedError

    def list_pending_for_approver(self, approver_id: int) -> Sequence[PtoApproval]:
        raise NotImplementedError

    def list_by_approver(self, approver_id: int, *, limit: int = 50) -> Sequence[PtoApproval]:
        raise NotImplementedError
