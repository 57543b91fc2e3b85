from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders, str_tuple
from .model import DiscoveredRoute, RoutePermission, RouteStats
from .repository import RoutePermissionRepository

_COLUMNS = """
    route_permission_id, route_name, route_uri, route_methods, controller_class, controller_method,
    group_name, description, display_name, is_protected, is_active, middleware, created_at, updated_at
"""


class MySQLRoutePermissionRepository(RoutePermissionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _hydrate(self, cur, rows: List[Dict[str, Any]]) -> List[RoutePermission]:
        if not rows:
            return []
        ids = [int(r["route_permission_id"]) for r in rows]
        in_clause = placeholders(ids)

        permissions: dict[int, list[str]] = {}
        cur.execute(
            f"""
            SELECT rpp.route_permission_id, p.name FROM route_permission_permissions rpp
            JOIN permissions p ON p.permission_id = rpp.permission_id
            WHERE rpp.route_permission_id IN ({in_clause}) ORDER BY p.name
            """,
            tuple(ids),
        )
        for r in fetchall(cur):
            permissions.setdefault(int(r["route_permission_id"]), []).append(r["name"])

        roles: dict[int, list[str]] = {}
        cur.execute(
            f"""
            SELECT rpr.route_permission_id, ro.name FROM route_permission_roles rpr
            JOIN roles ro ON ro.role_id = rpr.role_id
            WHERE rpr.route_permission_id IN ({in_clause}) ORDER BY ro.name
            """,
            tuple(ids),
        )
        for r in fetchall(cur):
            roles.setdefault(int(r["route_permission_id"]), []).append(r["name"])

        return [
            RoutePermission(
                route_permission_id=int(r["route_permission_id"]),
                route_name=r["route_name"],
                route_uri=r["route_uri"],
                route_methods=str_tuple(r.get("route_methods")),
                controller_class=r.get("controller_class"),
                controller_method=r.get("controller_method"),
                group_name=r.get("group_name") or "General",
                description=r.get("description"),
                stored_display_name=r.get("display_name"),
                is_protected=bool(r["is_protected"]),
                is_active=bool(r["is_active"]),
                middleware=str_tuple(r.get("middleware")),
                permissions=tuple(permissions.get(int(r["route_permission_id"]), ())),
                roles=tuple(roles.get(int(r["route_permission_id"]), ())),
                created_at=r.get("created_at"),
                updated_at=r.get("updated_at"),
            )
            for r in rows
        ]

    def get_by_id(self, route_permission_id: int) -> Optional[RoutePermission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM route_permissions WHERE route_permission_id=%s",
                (int(route_permission_id),),
            )
            r = fetchone(cur)
            return self._hydrate(cur, [r])[0] if r else None

    def get_by_name(self, route_name: str) -> Optional[RoutePermission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM route_permissions WHERE route_name=%s", (route_name,))
            r = fetchone(cur)
            return self._hydrate(cur, [r])[0] if r else None

    def list_routes(
        self,
        *,
        active_only: bool = True,
        group_name: Optional[str] = None,
        missing_display_name: bool = False,
    ) -> Sequence[RoutePermission]:
        where: list[str] = []
        params: list = []
        if active_only:
            where.append("is_active=1")
        if group_name is not None:
            where.append("group_name=%s")
            params.append(group_name)
        if missing_display_name:
            where.append("display_name IS NULL")

        sql = f"SELECT {_COLUMNS} FROM route_permissions"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY group_name, route_name"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return self._hydrate(cur, fetchall(cur))

    def group_counts(self) -> Sequence[tuple[str, int]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT group_name, COUNT(*) AS route_count FROM route_permissions
                WHERE is_active=1 GROUP BY group_name ORDER BY group_name
                """
            )
            return [(r["group_name"], int(r["route_count"])) for r in fetchall(cur)]

    def create(self, route: DiscoveredRoute) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO route_permissions
                    (route_name, route_uri, route_methods, controller_class, controller_method,
                     group_name, description, is_protected, is_active, middleware)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 1, %s)
                """,
                (
                    route.route_name,
                    route.route_uri,
                    json.dumps(list(route.route_methods)),
                    route.controller_class,
                    route.controller_method,
                    route.group_name,
                    route.description,
                    1 if route.is_protected else 0,
                    json.dumps(list(route.middleware)),
                ),
            )
            return int(cur.lastrowid)

    def refresh(self, route_permission_id: int, route: DiscoveredRoute) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE route_permissions
                SET route_uri=%s, route_methods=%s, controller_class=%s, controller_method=%s,
                    group_name=%s, middleware=%s, is_active=1
                WHERE route_permission_id=%s
                """,
                (
                    route.route_uri,
                    json.dumps(list(route.route_methods)),
                    route.controller_class,
                    route.controller_method,
                    route.group_name,
                    json.dumps(list(route.middleware)),
                    int(route_permission_id),
                ),
            )

    def deactivate_missing(self, route_names: Sequence[str]) -> int:
        sql = "UPDATE route_permissions SET is_active=0 WHERE is_active=1"
        params: tuple = ()
        if route_names:
            sql += f" AND route_name NOT IN ({placeholders(route_names)})"
            params = tuple(route_names)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return int(cur.rowcount or 0)

    def set_display_name(self, route_permission_id: int, display_name: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE route_permissions SET display_name=%s WHERE route_permission_id=%s",
                (display_name, int(route_permission_id)),
            )

    def update_access(
        self,
        route_permission_id: int,
        *,
        is_protected: Optional[bool] = None,
        description: Optional[str] = None,
    ) -> None:
        sets: list[str] = []
        params: list = []
        if is_protected is not None:
            sets.append("is_protected=%s")
            params.append(1 if is_protected else 0)
        if description is not None:
            sets.append("description=%s")
            params.append(description)
        if not sets:
            return
        params.append(int(route_permission_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE route_permissions SET {', '.join(sets)} WHERE route_permission_id=%s", tuple(params))

    def _sync_pivot(self, table: str, column: str, route_permission_id: int, ids: Sequence[int], detach: bool) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            if detach:
                cur.execute(f"DELETE FROM {table} WHERE route_permission_id=%s", (int(route_permission_id),))
            for item_id in ids:
                cur.execute(
                    f"INSERT IGNORE INTO {table} (route_permission_id, {column}) VALUES (%s, %s)",
                    (int(route_permission_id), int(item_id)),
                )

    def sync_permissions(self, route_permission_id: int, permission_ids: Sequence[int], *, detach: bool = True) -> None:
        self._sync_pivot("route_permission_permissions", "permission_id", route_permission_id, permission_ids, detach)

    def sync_roles(self, route_permission_id: int, role_ids: Sequence[int], *, detach: bool = True) -> None:
        self._sync_pivot("route_permission_roles", "role_id", route_permission_id, role_ids, detach)

    def _ids_by_name(self, table: str, id_column: str, names: Sequence[str]) -> dict[str, int]:
        if not names:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {id_column} AS id, name FROM {table} WHERE name IN ({placeholders(names)})",
                tuple(names),
            )
            return {r["name"]: int(r["id"]) for r in fetchall(cur)}

    def permission_ids(self, names: Sequence[str]) -> dict[str, int]:
        return self._ids_by_name("permissions", "permission_id", names)

    def role_ids(self, names: Sequence[str]) -> dict[str, int]:
        return self._ids_by_name("roles", "role_id", names)

    def stats(self) -> RouteStats:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT
                    COUNT(*) AS total_routes,
                    COALESCE(SUM(is_active=1), 0) AS active_routes,
                    COALESCE(SUM(is_protected=1), 0) AS protected_routes,
                    COUNT(DISTINCT CASE WHEN is_active=1 THEN group_name END) AS total_groups
                FROM route_permissions
                """
            )
            r = fetchone(cur) or {}
            cur.execute("SELECT COUNT(DISTINCT route_permission_id) AS n FROM route_permission_permissions")
            with_permissions = fetchone(cur) or {}
            return RouteStats(
                total_routes=int(r.get("total_routes") or 0),
                active_routes=int(r.get("active_routes") or 0),
                protected_routes=int(r.get("protected_routes") or 0),
                routes_with_permissions=int(with_permissions.get("n") or 0),
                total_groups=int(r.get("total_groups") or 0),
            )
