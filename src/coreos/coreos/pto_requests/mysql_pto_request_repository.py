from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import ApprovalStatus, DayPortion, RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, as_decimal, db_cursor, fetchall, fetchone, json_load, placeholders
from .model import PtoApproval, PtoRequest
from .repository import PtoApprovalRepository, PtoRequestRepository

_ACTIVE = (RequestStatus.APPROVED.value, RequestStatus.PENDING.value)

_COLUMNS = """
    r.request_id, r.request_number, r.user_id, r.pto_type_id, r.start_date, r.end_date,
    r.start_time, r.end_time, r.total_days, r.reason, r.status, r.day_options,
    r.blackout_conflicts, r.blackout_warnings, r.blackout_validation_message,
    r.has_blackout_conflicts, r.has_blackout_warnings, r.blackout_warnings_acknowledged,
    r.blackout_acknowledged_at, r.is_emergency_override, r.blackout_override_reason,
    r.override_approved, r.override_approved_by_id, r.override_approved_at,
    r.approval_notes, r.denial_reason, r.approved_by_id, r.approved_at,
    r.denied_by_id, r.denied_at, r.cancelled_at, r.created_at
"""


def _dicts(value) -> tuple[dict, ...]:
    data = json_load(value)
    return tuple(data or ())


def _to_request(r) -> PtoRequest:
    return PtoRequest(
        request_id=int(r["request_id"]),
        request_number=r["request_number"],
        user_id=int(r["user_id"]),
        pto_type_id=int(r["pto_type_id"]),
        start_date=as_date(r["start_date"]),
        end_date=as_date(r["end_date"]),
        start_time=DayPortion(r["start_time"]),
        end_time=DayPortion(r["end_time"]),
        total_days=as_decimal(r["total_days"]),
        reason=r.get("reason"),
        status=RequestStatus(r["status"]),
        day_options=json_load(r.get("day_options")),
        blackout_conflicts=_dicts(r.get("blackout_conflicts")),
        blackout_warnings=_dicts(r.get("blackout_warnings")),
        blackout_validation_message=r.get("blackout_validation_message"),
        has_blackout_conflicts=bool(r["has_blackout_conflicts"]),
        has_blackout_warnings=bool(r["has_blackout_warnings"]),
        blackout_warnings_acknowledged=bool(r["blackout_warnings_acknowledged"]),
        blackout_acknowledged_at=r.get("blackout_acknowledged_at"),
        is_emergency_override=bool(r["is_emergency_override"]),
        blackout_override_reason=r.get("blackout_override_reason"),
        override_approved=bool(r["override_approved"]),
        override_approved_by_id=r.get("override_approved_by_id"),
        override_approved_at=r.get("override_approved_at"),
        approval_notes=r.get("approval_notes"),
        denial_reason=r.get("denial_reason"),
        approved_by_id=r.get("approved_by_id"),
        approved_at=r.get("approved_at"),
        denied_by_id=r.get("denied_by_id"),
        denied_at=r.get("denied_at"),
        cancelled_at=r.get("cancelled_at"),
        created_at=r.get("created_at"),
    )


def _json(value) -> Optional[str]:
    if value is None or value == () or value == []:
        return None
    return json.dumps(list(value) if isinstance(value, tuple) else value, default=str)


def _values(p: PtoRequest) -> tuple:
    return (
        p.request_number,
        p.user_id,
        p.pto_type_id,
        p.start_date,
        p.end_date,
        p.start_time.value,
        p.end_time.value,
        p.total_days,
        p.reason,
        p.status.value,
        _json(p.day_options),
        _json(p.blackout_conflicts),
        _json(p.blackout_warnings),
        p.blackout_validation_message,
        int(p.has_blackout_conflicts),
        int(p.has_blackout_warnings),
        int(p.blackout_warnings_acknowledged),
        p.blackout_acknowledged_at,
        int(p.is_emergency_override),
        p.blackout_override_reason,
        int(p.override_approved),
        p.override_approved_by_id,
        p.override_approved_at,
        p.approval_notes,
        p.denial_reason,
        p.approved_by_id,
        p.approved_at,
        p.denied_by_id,
        p.denied_at,
        p.cancelled_at,
    )


_WRITE_COLUMNS = """
    request_number, user_id, pto_type_id, start_date, end_date, start_time, end_time,
    total_days, reason, status, day_options, blackout_conflicts, blackout_warnings,
    blackout_validation_message, has_blackout_conflicts, has_blackout_warnings,
    blackout_warnings_acknowledged, blackout_acknowledged_at, is_emergency_override,
    blackout_override_reason, override_approved, override_approved_by_id, override_approved_at,
    approval_notes, denial_reason, approved_by_id, approved_at, denied_by_id, denied_at, cancelled_at
"""


class MySQLPtoRequestRepository(PtoRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, request_id: int) -> Optional[PtoRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM pto_requests r WHERE r.request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _to_request(r) if r else None

    def list_requests(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[RequestStatus] = None,
        pto_type_id: Optional[int] = None,
        search: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[PtoRequest]:
        where: list[str] = []
        params: list = []
        if user_id is not None:
            where.append("r.user_id=%s")
            params.append(int(user_id))
        if status is not None:
            where.append("r.status=%s")
            params.append(RequestStatus(status).value)
        if pto_type_id is not None:
            where.append("r.pto_type_id=%s")
            params.append(int(pto_type_id))
        if search:
            where.append("(r.request_number LIKE %s OR r.reason LIKE %s OR u.name LIKE %s)")
            like = f"%{search}%"
            params.extend([like, like, like])

        sql = f"SELECT {_COLUMNS} FROM pto_requests r JOIN users u ON u.user_id=r.user_id"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY r.created_at DESC, r.request_id DESC LIMIT %s"
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_request(r) for r in fetchall(cur)]

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
        values = [RequestStatus(s).value for s in statuses]
        sql = f"""
            SELECT {_COLUMNS} FROM pto_requests r
            WHERE r.start_date<=%s AND r.end_date>=%s AND r.status IN ({placeholders(values)})
        """
        params: list = [end, start, *values]
        if pto_type_ids:
            sql += f" AND r.pto_type_id IN ({placeholders(pto_type_ids)})"
            params.extend(int(t) for t in pto_type_ids)
        if exclude_request_id is not None:
            sql += " AND r.request_id<>%s"
            params.append(int(exclude_request_id))
        sql += " ORDER BY r.created_at DESC LIMIT %s"
        params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_request(r) for r in fetchall(cur)]

    def list_approved_overlapping(self, user_id: int, start: date, end: date) -> Sequence[PtoRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM pto_requests r
                WHERE r.user_id=%s AND r.status=%s AND r.start_date<=%s AND r.end_date>=%s
                ORDER BY r.start_date
                """,
                (int(user_id), RequestStatus.APPROVED.value, end, start),
            )
            return [_to_request(r) for r in fetchall(cur)]

    def sum_pending_days(
        self, *, user_id: int, pto_type_id: int, year: int, exclude_request_id: Optional[int] = None
    ) -> Decimal:
        sql = """
            SELECT COALESCE(SUM(total_days), 0) AS total FROM pto_requests
            WHERE user_id=%s AND pto_type_id=%s AND status=%s AND YEAR(start_date)=%s
        """
        params: list = [int(user_id), int(pto_type_id), RequestStatus.PENDING.value, int(year)]
        if exclude_request_id is not None:
            sql += " AND request_id<>%s"
            params.append(int(exclude_request_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            r = fetchone(cur)
            return as_decimal(r["total"] if r else None)

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
        sql = f"""
            SELECT COUNT(*) AS n FROM pto_requests r JOIN users u ON u.user_id=r.user_id
            WHERE r.start_date<=%s AND r.end_date>=%s AND r.status IN ({placeholders(_ACTIVE)})
        """
        params: list = [end, start, *_ACTIVE]

        scope: list[str] = []
        if user_ids:
            scope.append(f"r.user_id IN ({placeholders(user_ids)})")
            params.extend(int(u) for u in user_ids)
        if position_id:
            scope.append("u.position_id=%s")
            params.append(int(position_id))
        if department_ids:
            scope.append(
                "EXISTS (SELECT 1 FROM department_user du "
                f"WHERE du.user_id=r.user_id AND du.dept_id IN ({placeholders(department_ids)}))"
            )
            params.extend(int(d) for d in department_ids)
        if scope:
            sql += " AND (" + " OR ".join(scope) + ")"

        if pto_type_ids:
            sql += f" AND r.pto_type_id IN ({placeholders(pto_type_ids)})"
            params.extend(int(t) for t in pto_type_ids)
        if exclude_request_id is not None:
            sql += " AND r.request_id<>%s"
            params.append(int(exclude_request_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def list_active_request_dates(
        self, *, pto_type_ids: Sequence[int] = (), exclude_request_id: Optional[int] = None
    ) -> Sequence[tuple[date, date]]:
        sql = f"SELECT start_date, end_date FROM pto_requests WHERE status IN ({placeholders(_ACTIVE)})"
        params: list = list(_ACTIVE)
        if pto_type_ids:
            sql += f" AND pto_type_id IN ({placeholders(pto_type_ids)})"
            params.extend(int(t) for t in pto_type_ids)
        if exclude_request_id is not None:
            sql += " AND request_id<>%s"
            params.append(int(exclude_request_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [(as_date(r["start_date"]), as_date(r["end_date"])) for r in fetchall(cur)]

    def create(self, request: PtoRequest) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO pto_requests({_WRITE_COLUMNS}) VALUES({placeholders(_values(request))})",
                _values(request),
            )
            return int(cur.lastrowid)

    def save(self, request: PtoRequest) -> None:
        assignments = ", ".join(f"{c.strip()}=%s" for c in _WRITE_COLUMNS.split(","))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE pto_requests SET {assignments} WHERE request_id=%s",
                _values(request) + (int(request.request_id),),
            )

    def delete(self, request_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM pto_requests WHERE request_id=%s", (int(request_id),))
            return cur.rowcount > 0


def _to_approval(r) -> PtoApproval:
    return PtoApproval(
        approval_id=int(r["approval_id"]),
        pto_request_id=int(r["pto_request_id"]),
        approver_id=int(r["approver_id"]),
        status=ApprovalStatus(r["status"]),
        comments=r.get("comments"),
        level=int(r.get("level") or 1),
        responded_at=r.get("responded_at"),
        created_at=r.get("created_at"),
    )


_APPROVAL_COLUMNS = "approval_id, pto_request_id, approver_id, status, comments, level, responded_at, created_at"


class MySQLPtoApprovalRepository(PtoApprovalRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_request(self, request_id: int) -> Sequence[PtoApproval]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_APPROVAL_COLUMNS} FROM pto_approvals WHERE pto_request_id=%s ORDER BY level, approval_id",
                (int(request_id),),
            )
            return [_to_approval(r) for r in fetchall(cur)]

    def get_for(self, *, request_id: int, approver_id: int) -> Optional[PtoApproval]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_APPROVAL_COLUMNS} FROM pto_approvals WHERE pto_request_id=%s AND approver_id=%s",
                (int(request_id), int(approver_id)),
            )
            r = fetchone(cur)
            return _to_approval(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pto_approvals(pto_request_id, approver_id, status, comments, level, responded_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE status=VALUES(status), comments=VALUES(comments),
                    responded_at=VALUES(responded_at)
                """,
                (int(request_id), int(approver_id), ApprovalStatus(status).value, comments, int(level), responded_at),
            )

    def delete_pending_for_request(self, request_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM pto_approvals WHERE pto_request_id=%s AND status=%s",
                (int(request_id), ApprovalStatus.PENDING.value),
            )
            return int(cur.rowcount)

    def list_pending_for_approver(self, approver_id: int) -> Sequence[PtoApproval]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_APPROVAL_COLUMNS} FROM pto_approvals
                WHERE approver_id=%s AND status=%s ORDER BY created_at
                """,
                (int(approver_id), ApprovalStatus.PENDING.value),
            )
            return [_to_approval(r) for r in fetchall(cur)]

    def list_by_approver(self, approver_id: int, *, limit: int = 50) -> Sequence[PtoApproval]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_APPROVAL_COLUMNS} FROM pto_approvals
                WHERE approver_id=%s ORDER BY created_at DESC LIMIT %s
                """,
                (int(approver_id), int(limit)),
            )
            return [_to_approval(r) for r in fetchall(cur)]
