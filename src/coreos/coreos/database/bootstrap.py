from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str


@dataclass(frozen=True)
class DemoUser:
    name: str
    email: str
    password: str
    role: str
    department: str
    position: str


DEMO_USERS = (
    DemoUser("Admin Demo", "admin@coreos.local", "admin123", "Super Admin", "Engineering", "Software Engineer"),
    DemoUser("Helen Ruiz", "hr@coreos.local", "hr123456", "HR Manager", "Human Resources", "HR Generalist"),
    DemoUser("Sam Carter", "employee@coreos.local", "staff123", "Employee", "Warehouse", "Warehouse Associate"),
)

DEMO_BALANCES = {"VACA": 15, "SICK": 5}


def _as_target(db_config: dict) -> DBTarget:
    return DBTarget(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "coreos_db")),
    )


def _connect(target: DBTarget, *, with_database: bool = True):
    kwargs = dict(
        host=target.host,
        port=target.port,
        user=target.user,
        password=target.password,
        use_pure=True,
    )
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _exec_sql_file(db_config: dict, path: str | Path) -> int:
    target = _as_target(db_config)
    sql = _strip_comments(_strip_create_db_and_use(Path(path).read_text(encoding="utf-8")))

    conn = _connect(target)
    try:
        cur = conn.cursor()
        count = 0
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
        return count
    finally:
        conn.close()


def ensure_database_exists(db_config: dict) -> None:
    target = _as_target(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    count = _exec_sql_file(db_config, schema_path)
    logger.info("Applied %s schema statements from %s", count, schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    count = _exec_sql_file(db_config, seed_path)
    logger.info("Applied %s seed statements from %s", count, seed_path)


def ensure_demo_users(db_config: dict, *, year: int | None = None) -> None:
    """Create (or refresh) the demo accounts with roles, org links and PTO balances."""
    target = _as_target(db_config)
    year = year or date.today().year

    conn = _connect(target)
    try:
        cur = conn.cursor(dictionary=True)

        id_col_map = {
            "departments": "dept_id",
            "positions": "position_id",
            "roles": "role_id",
            "pto_types": "pto_type_id",
        }

        def get_id(table: str, col: str, value: str) -> int:
            id_col = id_col_map.get(table)
            if not id_col:
                raise RuntimeError(f"Unsupported lookup table: {table}")
            cur.execute(f"SELECT {id_col} AS id FROM {table} WHERE {col}=%s", (value,))
            row = cur.fetchone()
            if not row:
                raise RuntimeError(f"Missing {table} row for {col}={value}")
            return int(row["id"])

        def upsert_user(demo: DemoUser) -> int:
            password_hash = generate_password_hash(demo.password)
            position_id = get_id("positions", "name", demo.position)
            cur.execute("SELECT user_id FROM users WHERE email=%s", (demo.email,))
            existing = cur.fetchone()
            if existing:
                user_id = int(existing["user_id"])
                cur.execute(
                    "UPDATE users SET name=%s, password_hash=%s, position_id=%s, is_active=1 WHERE user_id=%s",
                    (demo.name, password_hash, position_id, user_id),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users (name, email, password_hash, position_id, start_date)
                    VALUES (%s, %s, %s, %s, %s)
                    """,
                    (demo.name, demo.email, password_hash, position_id, date(year - 3, 1, 15)),
                )
                user_id = int(cur.lastrowid)

            cur.execute(
                "INSERT IGNORE INTO user_roles (user_id, role_id) VALUES (%s, %s)",
                (user_id, get_id("roles", "name", demo.role)),
            )
            cur.execute(
                "INSERT IGNORE INTO department_user (dept_id, user_id) VALUES (%s, %s)",
                (get_id("departments", "name", demo.department), user_id),
            )
            return user_id

        for demo in DEMO_USERS:
            user_id = upsert_user(demo)
            for code, days in DEMO_BALANCES.items():
                cur.execute(
                    """
                    INSERT IGNORE INTO pto_balances (user_id, pto_type_id, balance, pending_balance, used_balance, year)
                    VALUES (%s, %s, %s, 0, 0, %s)
                    """,
                    (user_id, get_id("pto_types", "code", code), days, year),
                )

        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    target = _as_target(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
