from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, int_tuple, json_dump
from .model import PtoType, PtoTypeUsage
from .repository import PtoTypeRepository

_COLUMNS = """
    pto_type_id, name, code, description, color, multi_level_approval, disable_hierarchy_approval,
    specific_approvers, uses_balance, carryover_allowed, negative_allowed, affects_schedule,
    show_in_department_calendar, is_active, sort_order
"""


def _to_type(r) -> PtoType:
    return PtoType(
        pto_type_id=int(r["pto_type_id"]),
        name=r["name"],
        code=r["code"],
        description=r.get("description"),
        color=r.get("color") or "#3B82F6",
        multi_level_approval=bool(r["multi_level_approval"]),
        disable_hierarchy_approval=bool(r["disable_hierarchy_approval"]),
        specific_approvers=int_tuple(r.get("specific_approvers")),
        uses_balance=bool(r["uses_balance"]),
        carryover_allowed=bool(r["carryover_allowed"]),
        negative_allowed=bool(r["negative_allowed"]),
        affects_schedule=bool(r["affects_schedule"]),
        show_in_department_calendar=bool(r["show_in_department_calendar"]),
        is_active=bool(r["is_active"]),
        sort_order=int(r.get("sort_order") or 0),
    )


def _values(t: PtoType) -> tuple:
    return (
        t.name,
        t.code,
        t.description,
        t.color,
        int(t.multi_level_approval),
        int(t.disable_hierarchy_approval),
        json_dump(t.specific_approvers),
        int(t.uses_balance),
        int(t.carryover_allowed),
        int(t.negative_allowed),
        int(t.affects_schedule),
        int(t.show_in_department_calendar),
        int(t.is_active),
        int(t.sort_order),
    )


class MySQLPtoTypeRepository(PtoTypeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_types(self, *, active_only: bool = False, search: Optional[str] = None) -> Sequence[PtoType]:
        where: list[str] = []
        params: list = []
        if active_only:
            where.append("is_active=1")
        if search:
            where.append("(name LIKE %s OR code LIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])

        sql = f"SELECT {_COLUMNS} FROM pto_types"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY sort_order, name"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_type(r) for r in fetchall(cur)]

    def get_by_id(self, pto_type_id: int) -> Optional[PtoType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM pto_types WHERE pto_type_id=%s", (int(pto_type_id),))
            r = fetchone(cur)
            return _to_type(r) if r else None

    def get_by_name(self, name: str) -> Optional[PtoType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM pto_types WHERE name=%s", (name,))
            r = fetchone(cur)
            return _to_type(r) if r else None

    def code_exists(self, code: str, *, ignore_id: Optional[int] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if ignore_id is None:
                cur.execute("SELECT 1 AS x FROM pto_types WHERE code=%s LIMIT 1", (code,))
            else:
                cur.execute(
                    "SELECT 1 AS x FROM pto_types WHERE code=%s AND pto_type_id<>%s LIMIT 1",
                    (code, int(ignore_id)),
                )
            return fetchone(cur) is not None

    def max_sort_order(self) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT MAX(sort_order) AS m FROM pto_types")
            r = fetchone(cur)
            if not r or r["m"] is None:
                return None
            return int(r["m"])

    def create(self, pto_type: PtoType) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pto_types(
                    name, code, description, color, multi_level_approval, disable_hierarchy_approval,
                    specific_approvers, uses_balance, carryover_allowed, negative_allowed, affects_schedule,
                    show_in_department_calendar, is_active, sort_order
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _values(pto_type),
            )
            return int(cur.lastrowid)

    def update(self, pto_type: PtoType) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE pto_types SET
                    name=%s, code=%s, description=%s, color=%s, multi_level_approval=%s,
                    disable_hierarchy_approval=%s, specific_approvers=%s, uses_balance=%s,
                    carryover_allowed=%s, negative_allowed=%s, affects_schedule=%s,
                    show_in_department_calendar=%s, is_active=%s, sort_order=%s
                WHERE pto_type_id=%s
                """,
                _values(pto_type) + (int(pto_type.pto_type_id),),
            )

    def delete(self, pto_type_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM pto_types WHERE pto_type_id=%s", (int(pto_type_id),))
            return cur.rowcount > 0

    def usage(self, pto_type_id: int) -> PtoTypeUsage:
        tid = int(pto_type_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM pto_policies WHERE pto_type_id=%s) AS policies_count,
                    (SELECT COUNT(*) FROM pto_requests WHERE pto_type_id=%s) AS requests_count,
                    (SELECT COUNT(*) FROM pto_requests
                        WHERE pto_type_id=%s AND status IN ('pending','approved')) AS active_requests_count,
                    (SELECT COUNT(DISTINCT user_id) FROM pto_balances WHERE pto_type_id=%s) AS users_with_balance_count,
                    (SELECT COUNT(*) FROM pto_transactions WHERE pto_type_id=%s) AS transactions_count
                """,
                (tid, tid, tid, tid, tid),
            )
            r = fetchone(cur) or {}
            return PtoTypeUsage(
                policies_count=int(r.get("policies_count") or 0),
                requests_count=int(r.get("requests_count") or 0),
                active_requests_count=int(r.get("active_requests_count") or 0),
                users_with_balance_count=int(r.get("users_with_balance_count") or 0),
                transactions_count=int(r.get("transactions_count") or 0),
            )

    def set_sort_orders(self, orders: Sequence[tuple[int, int]]) -> None:
        if not orders:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                "UPDATE pto_types SET sort_order=%s WHERE pto_type_id=%s",
                [(int(order), int(type_id)) for type_id, order in orders],
            )
