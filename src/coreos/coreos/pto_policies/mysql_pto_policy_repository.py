from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import AccrualFrequency
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, as_decimal, db_cursor, fetchall, fetchone
from .model import PtoPolicy
from .repository import PtoPolicyRepository

_COLUMNS = """
    policy_id, name, description, initial_days, annual_accrual_amount, bonus_days_per_year,
    rollover_enabled, max_rollover_days, max_negative_balance, years_for_bonus, accrual_frequency,
    prorate_first_year, effective_date, end_date, pto_type_id, user_id, is_active
"""


def _to_policy(r) -> PtoPolicy:
    return PtoPolicy(
        policy_id=int(r["policy_id"]),
        name=r["name"],
        description=r.get("description"),
        user_id=int(r["user_id"]),
        pto_type_id=int(r["pto_type_id"]),
        initial_days=as_decimal(r["initial_days"]),
        annual_accrual_amount=as_decimal(r["annual_accrual_amount"]),
        bonus_days_per_year=as_decimal(r.get("bonus_days_per_year")),
        rollover_enabled=bool(r["rollover_enabled"]),
        max_rollover_days=None if r.get("max_rollover_days") is None else as_decimal(r["max_rollover_days"]),
        max_negative_balance=as_decimal(r.get("max_negative_balance")),
        years_for_bonus=int(r.get("years_for_bonus") or 1),
        accrual_frequency=AccrualFrequency(r.get("accrual_frequency") or "annually"),
        prorate_first_year=bool(r["prorate_first_year"]),
        effective_date=as_date(r["effective_date"]),
        end_date=as_date(r.get("end_date")),
        is_active=bool(r["is_active"]),
    )


def _values(p: PtoPolicy) -> tuple:
    return (
        p.name,
        p.description,
        p.initial_days,
        p.annual_accrual_amount,
        p.bonus_days_per_year,
        int(p.rollover_enabled),
        p.max_rollover_days,
        p.max_negative_balance,
        int(p.years_for_bonus),
        p.accrual_frequency.value,
        int(p.prorate_first_year),
        p.effective_date,
        p.end_date,
        int(p.pto_type_id),
        int(p.user_id),
        int(p.is_active),
    )


class MySQLPtoPolicyRepository(PtoPolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_policies(
        self,
        *,
        user_id: Optional[int] = None,
        pto_type_id: Optional[int] = None,
        active_only: bool = False,
    ) -> Sequence[PtoPolicy]:
        where: list[str] = []
        params: list = []
        if user_id is not None:
            where.append("user_id=%s")
            params.append(int(user_id))
        if pto_type_id is not None:
            where.append("pto_type_id=%s")
            params.append(int(pto_type_id))
        if active_only:
            where.append("is_active=1")

        sql = f"SELECT {_COLUMNS} FROM pto_policies"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY user_id, pto_type_id"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_policy(r) for r in fetchall(cur)]

    def get_by_id(self, policy_id: int) -> Optional[PtoPolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM pto_policies WHERE policy_id=%s", (int(policy_id),))
            r = fetchone(cur)
            return _to_policy(r) if r else None

    def get_for_user_and_type(self, *, user_id: int, pto_type_id: int) -> Optional[PtoPolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM pto_policies
                WHERE user_id=%s AND pto_type_id=%s
                ORDER BY is_active DESC, effective_date DESC
                LIMIT 1
                """,
                (int(user_id), int(pto_type_id)),
            )
            r = fetchone(cur)
            return _to_policy(r) if r else None

    def create(self, policy: PtoPolicy) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pto_policies(
                    name, description, initial_days, annual_accrual_amount, bonus_days_per_year,
                    rollover_enabled, max_rollover_days, max_negative_balance, years_for_bonus,
                    accrual_frequency, prorate_first_year, effective_date, end_date, pto_type_id,
                    user_id, is_active
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _values(policy),
            )
            return int(cur.lastrowid)

    def update(self, policy: PtoPolicy) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE pto_policies SET
                    name=%s, description=%s, initial_days=%s, annual_accrual_amount=%s,
                    bonus_days_per_year=%s, rollover_enabled=%s, max_rollover_days=%s,
                    max_negative_balance=%s, years_for_bonus=%s, accrual_frequency=%s,
                    prorate_first_year=%s, effective_date=%s, end_date=%s, pto_type_id=%s,
                    user_id=%s, is_active=%s
                WHERE policy_id=%s
                """,
                _values(policy) + (int(policy.policy_id),),
            )

    def delete(self, policy_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM pto_policies WHERE policy_id=%s", (int(policy_id),))
            return cur.rowcount > 0
