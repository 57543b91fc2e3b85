from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import RestrictionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, fetchall, fetchone, int_tuple, json_dump
from .model import PtoBlackout
from .repository import BlackoutRepository

_COLUMNS = """
    blackout_id, name, description, start_date, end_date, position_id, department_ids, user_ids,
    is_company_wide, is_holiday, is_strict, allow_emergency_override, restriction_type,
    max_requests_allowed, pto_type_ids, is_active, is_recurring, recurring_days,
    recurring_start_date, recurring_end_date
"""


def _to_blackout(r) -> PtoBlackout:
    return PtoBlackout(
        blackout_id=int(r["blackout_id"]),
        name=r["name"],
        description=r.get("description"),
        start_date=as_date(r["start_date"]),
        end_date=as_date(r["end_date"]),
        position_id=r.get("position_id"),
        department_ids=int_tuple(r.get("department_ids")),
        user_ids=int_tuple(r.get("user_ids")),
        is_company_wide=bool(r["is_company_wide"]),
        is_holiday=bool(r["is_holiday"]),
        is_strict=bool(r["is_strict"]),
        allow_emergency_override=bool(r["allow_emergency_override"]),
        restriction_type=RestrictionType(r["restriction_type"]),
        max_requests_allowed=r.get("max_requests_allowed"),
        pto_type_ids=int_tuple(r.get("pto_type_ids")),
        is_active=bool(r["is_active"]),
        is_recurring=bool(r["is_recurring"]),
        recurring_days=int_tuple(r.get("recurring_days")),
        recurring_start_date=as_date(r.get("recurring_start_date")),
        recurring_end_date=as_date(r.get("recurring_end_date")),
    )


def _values(b: PtoBlackout) -> tuple:
    return (
        b.name,
        b.description,
        b.start_date,
        b.end_date,
        b.position_id,
        json_dump(b.department_ids) if b.department_ids else None,
        json_dump(b.user_ids) if b.user_ids else None,
        int(b.is_company_wide),
        int(b.is_holiday),
        int(b.is_strict),
        int(b.allow_emergency_override),
        b.restriction_type.value,
        b.max_requests_allowed,
        json_dump(b.pto_type_ids) if b.pto_type_ids else None,
        int(b.is_active),
        int(b.is_recurring),
        json_dump(b.recurring_days) if b.recurring_days else None,
        b.recurring_start_date,
        b.recurring_end_date,
    )


class MySQLBlackoutRepository(BlackoutRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_blackouts(self, *, active_only: bool = False) -> Sequence[PtoBlackout]:
        with db_cursor(self._conn_factory) as (_, cur):
            sql = f"SELECT {_COLUMNS} FROM pto_blackouts"
            if active_only:
                sql += " WHERE is_active=1"
            cur.execute(sql + " ORDER BY start_date DESC, name")
            return [_to_blackout(r) for r in fetchall(cur)]

    def list_active_overlapping(self, start: date, end: date) -> Sequence[PtoBlackout]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM pto_blackouts
                WHERE is_active=1 AND is_recurring=0 AND start_date<=%s AND end_date>=%s
                ORDER BY start_date
                """,
                (end, start),
            )
            return [_to_blackout(r) for r in fetchall(cur)]

    def list_active_recurring(self) -> Sequence[PtoBlackout]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM pto_blackouts WHERE is_active=1 AND is_recurring=1 ORDER BY name")
            return [_to_blackout(r) for r in fetchall(cur)]

    def get_by_id(self, blackout_id: int) -> Optional[PtoBlackout]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM pto_blackouts WHERE blackout_id=%s", (int(blackout_id),))
            r = fetchone(cur)
            return _to_blackout(r) if r else None

    def create(self, blackout: PtoBlackout) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pto_blackouts(
                    name, description, start_date, end_date, position_id, department_ids, user_ids,
                    is_company_wide, is_holiday, is_strict, allow_emergency_override, restriction_type,
                    max_requests_allowed, pto_type_ids, is_active, is_recurring, recurring_days,
                    recurring_start_date, recurring_end_date
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _values(blackout),
            )
            return int(cur.lastrowid)

    def update(self, blackout: PtoBlackout) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE pto_blackouts SET
                    name=%s, description=%s, start_date=%s, end_date=%s, position_id=%s,
                    department_ids=%s, user_ids=%s, is_company_wide=%s, is_holiday=%s, is_strict=%s,
                    allow_emergency_override=%s, restriction_type=%s, max_requests_allowed=%s,
                    pto_type_ids=%s, is_active=%s, is_recurring=%s, recurring_days=%s,
                    recurring_start_date=%s, recurring_end_date=%s
                WHERE blackout_id=%s
                """,
                _values(blackout) + (int(blackout.blackout_id),),
            )

    def delete(self, blackout_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM pto_blackouts WHERE blackout_id=%s", (int(blackout_id),))
            return cur.rowcount > 0
