from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, fetchall, fetchone
from .model import Department, Holiday, Position
from .repository import DepartmentRepository, HolidayRepository, PositionRepository

_DEPT_SELECT = """
    SELECT d.dept_id, d.name, d.description, d.is_active, d.manager_id,
           (SELECT COUNT(*) FROM department_user du WHERE du.dept_id = d.dept_id) AS users_count
    FROM departments d
"""


def _to_department(r) -> Department:
    return Department(
        dept_id=int(r["dept_id"]),
        name=r["name"],
        description=r.get("description"),
        is_active=bool(r.get("is_active", 1)),
        manager_id=r.get("manager_id"),
        users_count=int(r.get("users_count") or 0),
    )


class MySQLDepartmentRepository(DepartmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self, *, active_only: bool = False) -> Sequence[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            sql = _DEPT_SELECT
            if active_only:
                sql += " WHERE d.is_active=1"
            cur.execute(sql + " ORDER BY d.name")
            return [_to_department(r) for r in fetchall(cur)]

    def get_by_id(self, dept_id: int) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_DEPT_SELECT + " WHERE d.dept_id=%s", (int(dept_id),))
            r = fetchone(cur)
            return _to_department(r) if r else None

    def get_by_name(self, name: str) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_DEPT_SELECT + " WHERE d.name=%s", (name,))
            r = fetchone(cur)
            return _to_department(r) if r else None

    def create(self, *, name: str, description: Optional[str], is_active: bool, manager_id: Optional[int]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO departments(name, description, is_active, manager_id) VALUES(%s,%s,%s,%s)",
                (name, description, 1 if is_active else 0, manager_id),
            )
            return int(cur.lastrowid)

    def update(self, dept: Department) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE departments SET name=%s, description=%s, is_active=%s, manager_id=%s WHERE dept_id=%s",
                (dept.name, dept.description, 1 if dept.is_active else 0, dept.manager_id, int(dept.dept_id)),
            )
            return cur.rowcount >= 0

    def delete(self, dept_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM departments WHERE dept_id=%s", (int(dept_id),))
            return cur.rowcount > 0

    def add_user(self, *, dept_id: int, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO department_user(dept_id, user_id) VALUES(%s,%s)",
                (int(dept_id), int(user_id)),
            )
            return cur.rowcount > 0

    def remove_user(self, *, dept_id: int, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM department_user WHERE dept_id=%s AND user_id=%s",
                (int(dept_id), int(user_id)),
            )
            return cur.rowcount > 0

    def list_user_ids(self, dept_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM department_user WHERE dept_id=%s ORDER BY user_id", (int(dept_id),))
            return [int(r["user_id"]) for r in fetchall(cur)]


class MySQLPositionRepository(PositionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Position]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT position_id, name, description FROM positions ORDER BY name")
            return [
                Position(position_id=int(r["position_id"]), name=r["name"], description=r.get("description"))
                for r in fetchall(cur)
            ]

    def get_by_id(self, position_id: int) -> Optional[Position]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT position_id, name, description FROM positions WHERE position_id=%s",
                (int(position_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Position(position_id=int(r["position_id"]), name=r["name"], description=r.get("description"))

    def get_by_name(self, name: str) -> Optional[Position]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT position_id, name, description FROM positions WHERE name=%s", (name,))
            r = fetchone(cur)
            if not r:
                return None
            return Position(position_id=int(r["position_id"]), name=r["name"], description=r.get("description"))

    def create(self, *, name: str, description: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("INSERT INTO positions(name, description) VALUES(%s,%s)", (name, description))
            return int(cur.lastrowid)

    def update(self, position: Position) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE positions SET name=%s, description=%s WHERE position_id=%s",
                (position.name, position.description, int(position.position_id)),
            )
            return cur.rowcount >= 0

    def delete(self, position_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM positions WHERE position_id=%s", (int(position_id),))
            return cur.rowcount > 0

    def count_assigned_users(self, position_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS c FROM users WHERE position_id=%s", (int(position_id),))
            r = fetchone(cur)
            return int(r["c"]) if r else 0

    def detach_users(self, position_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET position_id=NULL WHERE position_id=%s", (int(position_id),))
            return int(cur.rowcount)


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_between(self, start: date, end: date, *, active_only: bool = True) -> Sequence[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            sql = """
                SELECT holiday_id, name, holiday_date, is_active
                FROM holidays
                WHERE holiday_date BETWEEN %s AND %s
            """
            if active_only:
                sql += " AND is_active=1"
            cur.execute(sql + " ORDER BY holiday_date", (start, end))
            return [
                Holiday(
                    holiday_id=int(r["holiday_id"]),
                    name=r["name"],
                    holiday_date=as_date(r["holiday_date"]),
                    is_active=bool(r.get("is_active", 1)),
                )
                for r in fetchall(cur)
            ]

    def create(self, *, name: str, holiday_date: date, is_active: bool = True) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO holidays(name, holiday_date, is_active) VALUES(%s,%s,%s)",
                (name, holiday_date, 1 if is_active else 0),
            )
            return int(cur.lastrowid)

    def delete(self, holiday_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM holidays WHERE holiday_id=%s", (int(holiday_id),))
            return cur.rowcount > 0
