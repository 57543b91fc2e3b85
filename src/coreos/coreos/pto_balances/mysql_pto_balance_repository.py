from __future__ import annotations

import json
from typing import Optional, Sequence

from ..core.enums import TransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, as_decimal, db_cursor, fetchall, fetchone, json_load
from .model import PtoBalance, PtoTransaction
from .repository import PtoBalanceRepository, PtoTransactionRepository

_BALANCE_COLUMNS = "balance_id, user_id, pto_type_id, balance, pending_balance, used_balance, year"


def _to_balance(r) -> PtoBalance:
    return PtoBalance(
        balance_id=int(r["balance_id"]),
        user_id=int(r["user_id"]),
        pto_type_id=int(r["pto_type_id"]),
        balance=as_decimal(r["balance"]),
        pending_balance=as_decimal(r["pending_balance"]),
        used_balance=as_decimal(r["used_balance"]),
        year=int(r["year"]),
    )


class MySQLPtoBalanceRepository(PtoBalanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, balance_id: int) -> Optional[PtoBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_BALANCE_COLUMNS} FROM pto_balances WHERE balance_id=%s", (int(balance_id),))
            r = fetchone(cur)
            return _to_balance(r) if r else None

    def get_for(self, *, user_id: int, pto_type_id: int, year: int) -> Optional[PtoBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_BALANCE_COLUMNS} FROM pto_balances
                WHERE user_id=%s AND pto_type_id=%s AND year=%s
                """,
                (int(user_id), int(pto_type_id), int(year)),
            )
            r = fetchone(cur)
            return _to_balance(r) if r else None

    def list_balances(
        self,
        *,
        year: Optional[int] = None,
        user_id: Optional[int] = None,
        pto_type_id: Optional[int] = None,
    ) -> Sequence[PtoBalance]:
        where: list[str] = []
        params: list = []
        if year is not None:
            where.append("year=%s")
            params.append(int(year))
        if user_id is not None:
            where.append("user_id=%s")
            params.append(int(user_id))
        if pto_type_id is not None:
            where.append("pto_type_id=%s")
            params.append(int(pto_type_id))

        sql = f"SELECT {_BALANCE_COLUMNS} FROM pto_balances"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY user_id, pto_type_id"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_balance(r) for r in fetchall(cur)]

    def create(self, balance: PtoBalance) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pto_balances(user_id, pto_type_id, balance, pending_balance, used_balance, year)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(balance.user_id),
                    int(balance.pto_type_id),
                    balance.balance,
                    balance.pending_balance,
                    balance.used_balance,
                    int(balance.year),
                ),
            )
            return int(cur.lastrowid)

    def save(self, balance: PtoBalance) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE pto_balances
                SET balance=%s, pending_balance=%s, used_balance=%s, year=%s
                WHERE balance_id=%s
                """,
                (
                    balance.balance,
                    balance.pending_balance,
                    balance.used_balance,
                    int(balance.year),
                    int(balance.balance_id),
                ),
            )

    def delete(self, balance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM pto_balances WHERE balance_id=%s", (int(balance_id),))
            return cur.rowcount > 0

    def delete_for(self, *, user_id: int, pto_type_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM pto_balances WHERE user_id=%s AND pto_type_id=%s",
                (int(user_id), int(pto_type_id)),
            )
            return int(cur.rowcount)


class MySQLPtoTransactionRepository(PtoTransactionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def count_for_year(self, year: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS c FROM pto_transactions WHERE YEAR(created_at)=%s", (int(year),))
            r = fetchone(cur)
            return int(r["c"]) if r else 0

    def create(self, txn: PtoTransaction) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pto_transactions(
                    transaction_number, user_id, pto_type_id, pto_request_id, transaction_type,
                    amount, balance_before, balance_after, description, metadata, created_by_id, effective_date
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    txn.transaction_number,
                    int(txn.user_id),
                    int(txn.pto_type_id),
                    txn.pto_request_id,
                    txn.transaction_type.value,
                    txn.amount,
                    txn.balance_before,
                    txn.balance_after,
                    txn.description,
                    json.dumps(txn.metadata, default=str) if txn.metadata else None,
                    txn.created_by_id,
                    txn.effective_date,
                ),
            )
            return int(cur.lastrowid)

    def list_transactions(
        self,
        *,
        user_id: Optional[int] = None,
        pto_type_id: Optional[int] = None,
        limit: int = 50,
    ) -> Sequence[PtoTransaction]:
        where: list[str] = []
        params: list = []
        if user_id is not None:
            where.append("user_id=%s")
            params.append(int(user_id))
        if pto_type_id is not None:
            where.append("pto_type_id=%s")
            params.append(int(pto_type_id))

        sql = """
            SELECT transaction_id, transaction_number, user_id, pto_type_id, pto_request_id, transaction_type,
                   amount, balance_before, balance_after, description, metadata, created_by_id,
                   effective_date, created_at
            FROM pto_transactions
        """
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC, transaction_id DESC LIMIT %s"
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [
                PtoTransaction(
                    transaction_id=int(r["transaction_id"]),
                    transaction_number=r["transaction_number"],
                    user_id=int(r["user_id"]),
                    pto_type_id=int(r["pto_type_id"]),
                    pto_request_id=r.get("pto_request_id"),
                    transaction_type=TransactionType(r["transaction_type"]),
                    amount=as_decimal(r["amount"]),
                    balance_before=as_decimal(r["balance_before"]),
                    balance_after=as_decimal(r["balance_after"]),
                    description=r.get("description"),
                    metadata=json_load(r.get("metadata")) or {},
                    created_by_id=r.get("created_by_id"),
                    effective_date=as_date(r["effective_date"]),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
