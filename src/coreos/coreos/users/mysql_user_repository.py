from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, fetchall, fetchone, placeholders
from .model import User
from .repository import UserRepository

_USER_COLUMNS = "user_id, name, email, password_hash, position_id, manager_id, start_date, is_active"


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _hydrate(self, cur, rows: List[Dict[str, Any]]) -> List[User]:
        if not rows:
            return []
        ids = [int(r["user_id"]) for r in rows]
        marks = placeholders(ids)

        cur.execute(f"SELECT user_id, dept_id FROM department_user WHERE user_id IN ({marks})", tuple(ids))
        depts: dict[int, list[int]] = {}
        for r in fetchall(cur):
            depts.setdefault(int(r["user_id"]), []).append(int(r["dept_id"]))

        cur.execute(
            f"""
            SELECT ur.user_id, r.name
            FROM user_roles ur JOIN roles r ON r.role_id = ur.role_id
            WHERE ur.user_id IN ({marks})
            """,
            tuple(ids),
        )
        roles: dict[int, list[str]] = {}
        for r in fetchall(cur):
            roles.setdefault(int(r["user_id"]), []).append(r["name"])

        cur.execute(
            f"""
            SELECT up.user_id, p.name
            FROM user_permissions up JOIN permissions p ON p.permission_id = up.permission_id
            WHERE up.user_id IN ({marks})
            UNION
            SELECT ur.user_id, p.name
            FROM user_roles ur
            JOIN role_permissions rp ON rp.role_id = ur.role_id
            JOIN permissions p ON p.permission_id = rp.permission_id
            WHERE ur.user_id IN ({marks})
            """,
            tuple(ids) + tuple(ids),
        )
        perms: dict[int, set[str]] = {}
        for r in fetchall(cur):
            perms.setdefault(int(r["user_id"]), set()).add(r["name"])

        return [
            User(
                user_id=int(r["user_id"]),
                name=r["name"],
                email=r["email"],
                password_hash=r["password_hash"],
                position_id=r.get("position_id"),
                manager_id=r.get("manager_id"),
                start_date=as_date(r.get("start_date")),
                is_active=bool(r.get("is_active", True)),
                department_ids=tuple(sorted(depts.get(int(r["user_id"]), []))),
                roles=tuple(sorted(roles.get(int(r["user_id"]), []))),
                permissions=tuple(sorted(perms.get(int(r["user_id"]), set()))),
            )
            for r in rows
        ]

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row])[0]

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE email=%s", (email.strip().lower(),))
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row])[0]

    def list_by_ids(self, user_ids: Sequence[int]) -> Sequence[User]:
        if not user_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE user_id IN ({placeholders(user_ids)}) ORDER BY name",
                tuple(int(u) for u in user_ids),
            )
            return self._hydrate(cur, fetchall(cur))

    def list_all(self, *, active_only: bool = True) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            sql = f"SELECT {_USER_COLUMNS} FROM users"
            if active_only:
                sql += " WHERE is_active=1"
            cur.execute(sql + " ORDER BY name")
            return self._hydrate(cur, fetchall(cur))

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        position_id: Optional[int],
        manager_id: Optional[int],
        start_date: Optional[date],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(name, email, password_hash, position_id, manager_id, start_date, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,1)
                """,
                (name, email.strip().lower(), password_hash, position_id, manager_id, start_date),
            )
            return int(cur.lastrowid)

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET is_active=%s WHERE user_id=%s", (1 if is_active else 0, int(user_id)))
            return cur.rowcount > 0
