from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from ..common.validators import FieldErrors, read_str
from ..core.exceptions import NotFoundError, ValidationError
from .discovery import RouteDiscoveryService, create_display_name
from .model import DiscoveredRoute, RoutePermission, RouteStats, SyncStats
from .repository import RoutePermissionRepository

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "This route has not been configured with permissions or roles."
FORBIDDEN_MESSAGE = "You do not have permission to access this resource."

# Empty list: open to every signed-in user.
SMART_ASSIGNMENTS: dict[str, tuple[str, ...]] = {
    "Human Resources": ("hr.access", "employees.manage", "pto.manage"),
    "PTO Management": ("pto.manage", "hr.access"),
    "Time & Attendance": ("hr.access",),
    "Access Control": ("roles.manage", "admin.access"),
    "Administration": ("admin.access",),
    "User Management": ("hr.access", "employees.manage"),
    "Organization": ("organization.manage", "hr.access"),
    "Warehouse Operations": ("warehouse.access",),
    "Parts Database": ("warehouse.access",),
    "Training & Learning": ("training.access", "hr.access"),
    "AI Assistant": (),
    "Wiki & Documentation": (),
    "Dashboard": (),
    "Personal Settings": (),
    "Payroll & Finance": ("finance.access", "hr.access"),
    "Analytics & Tracking": ("admin.access",),
}


@dataclass(frozen=True)
class SmartAssignment:
    group_name: str
    route_count: int
    permissions: tuple[str, ...]
    missing_permissions: bool = False


class RoutePermissionService:
    """Keeps the route_permissions table in step with the application routes
    and answers access questions for the permission middleware."""

    def __init__(self, routes: RoutePermissionRepository):
        self._routes = routes

    # -------- Discovery / sync --------
    def sync_routes(self, discovery: RouteDiscoveryService, *, dry_run: bool = False) -> SyncStats:
        discovered = discovery.discover_routes()
        names = [r.route_name for r in discovered]

        if dry_run:
            existing = {r.route_name for r in self._routes.list_routes(active_only=False)}
            active = {r.route_name for r in self._routes.list_routes(active_only=True)}
            return SyncStats(
                discovered=len(discovered),
                new=sum(1 for n in names if n not in existing),
                updated=sum(1 for n in names if n in existing),
                deactivated=len(active - set(names)),
                routes=tuple(discovered),
            )

        deactivated = self._routes.deactivate_missing(names)
        new = updated = 0
        for route in discovered:
            existing_route = self._routes.get_by_name(route.route_name)
            if existing_route:
                self._routes.refresh(existing_route.route_permission_id, route)
                updated += 1
            else:
                self._routes.create(route)
                new += 1

        logger.info(
            "Route sync: discovered=%s new=%s updated=%s deactivated=%s",
            len(discovered),
            new,
            updated,
            deactivated,
        )
        return SyncStats(
            discovered=len(discovered), new=new, updated=updated, deactivated=deactivated, routes=tuple(discovered)
        )

    def stats(self) -> RouteStats:
        return self._routes.stats()

    def grouped_routes(self) -> dict[str, list[RoutePermission]]:
        grouped: dict[str, list[RoutePermission]] = {}
        for route in self._routes.list_routes(active_only=True):
            grouped.setdefault(route.group_name, []).append(route)
        return grouped

    def list_groups(self) -> Sequence[tuple[str, int]]:
        return self._routes.group_counts()

    def get_route(self, route_permission_id: int) -> RoutePermission:
        route = self._routes.get_by_id(int(route_permission_id))
        if not route:
            raise NotFoundError("Route permission not found.")
        return route

    # -------- Assignment --------
    def bulk_assign_smart(self) -> list[SmartAssignment]:
        results: list[SmartAssignment] = []
        for group_name, permission_names in SMART_ASSIGNMENTS.items():
            routes = self._routes.list_routes(active_only=False, group_name=group_name)
            if not routes:
                continue

            ids = self._routes.permission_ids(list(permission_names))
            if permission_names and not ids:
                logger.warning("Permissions not found for %s: %s", group_name, ", ".join(permission_names))
                results.append(SmartAssignment(group_name, len(routes), permission_names, missing_permissions=True))
                continue

            for route in routes:
                self._routes.sync_permissions(route.route_permission_id, list(ids.values()))
            results.append(SmartAssignment(group_name, len(routes), permission_names))
        return results

    def bulk_assign_group(
        self,
        group_name: str,
        *,
        permission: Optional[str] = None,
        role: Optional[str] = None,
    ) -> int:
        """Add a permission and/or role to every route in the group; existing links stay."""
        if not permission and not role:
            raise ValidationError("Please specify either --permission or --role to assign")

        routes = self._routes.list_routes(active_only=False, group_name=group_name)
        if not routes:
            raise NotFoundError(f"No routes found for group: {group_name}")

        updated = 0
        if permission:
            ids = self._routes.permission_ids([permission])
            if permission not in ids:
                raise NotFoundError(f"Permission '{permission}' not found")
            for route in routes:
                self._routes.sync_permissions(route.route_permission_id, [ids[permission]], detach=False)
                updated += 1
        if role:
            ids = self._routes.role_ids([role])
            if role not in ids:
                raise NotFoundError(f"Role '{role}' not found")
            for route in routes:
                self._routes.sync_roles(route.route_permission_id, [ids[role]], detach=False)
                updated += 1

        logger.info("Bulk assigned to %s routes in %s", updated, group_name)
        return updated

    def update_access(self, route_permission_id: int, payload: Mapping[str, Any]) -> RoutePermission:
        """Replace a route's permissions and roles (given by name)."""
        route = self.get_route(route_permission_id)

        errors = FieldErrors()
        permission_names = _names(payload, "permissions", errors)
        role_names = _names(payload, "roles", errors)
        description = read_str(payload, "description", errors, max_length=255)
        errors.raise_if_any()

        permission_ids = self._routes.permission_ids(permission_names)
        unknown = [n for n in permission_names if n not in permission_ids]
        if unknown:
            errors.add("permissions", f"Unknown permissions: {', '.join(unknown)}")
        role_ids = self._routes.role_ids(role_names)
        unknown = [n for n in role_names if n not in role_ids]
        if unknown:
            errors.add("roles", f"Unknown roles: {', '.join(unknown)}")
        errors.raise_if_any()

        self._routes.sync_permissions(route.route_permission_id, list(permission_ids.values()))
        self._routes.sync_roles(route.route_permission_id, list(role_ids.values()))
        is_protected = payload.get("is_protected")
        if is_protected is not None or description is not None:
            self._routes.update_access(
                route.route_permission_id,
                is_protected=None if is_protected is None else bool(is_protected),
                description=description,
            )
        logger.info("Updated access for route %s", route.route_name)
        return self.get_route(route.route_permission_id)

    def update_display_names(self, *, force: bool = False) -> int:
        routes = self._routes.list_routes(active_only=False, missing_display_name=not force)
        for route in routes:
            self._routes.set_display_name(route.route_permission_id, create_display_name(route.route_name))
        return len(routes)

    # -------- Middleware --------
    def access_denial(
        self,
        route_name: str,
        *,
        user_id: int,
        permissions: Sequence[str],
        roles: Sequence[str],
        is_super_admin: bool,
    ) -> Optional[str]:
        """None when the user may use the route, else the 403 message."""
        route = self._routes.get_by_name(route_name)
        if not route or not route.is_active or not route.is_protected:
            return None

        if not route.has_access_rules:
            if is_super_admin:
                return None
            logger.warning("Access attempt to route without permissions or roles: %s (user %s)", route_name, user_id)
            return NOT_CONFIGURED_MESSAGE

        if set(route.permissions) & set(permissions) or set(route.roles) & set(roles):
            return None

        logger.warning(
            "Unauthorized route access attempt: %s (user %s, required permissions=%s roles=%s)",
            route_name,
            user_id,
            list(route.permissions),
            list(route.roles),
        )
        return FORBIDDEN_MESSAGE


def _names(payload: Mapping[str, Any], field: str, errors: FieldErrors) -> list[str]:
    raw = payload.get(field)
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        raw = [p for p in raw.split(",")]
    if not isinstance(raw, (list, tuple)):
        errors.add(field, f"The {field} must be an array.")
        return []
    return [str(n).strip() for n in raw if str(n).strip()]


def describe(route: DiscoveredRoute) -> str:
    """One line for CLI listings."""
    lock = "protected" if route.is_protected else "open"
    return f"[{lock}] {route.route_name} [{'|'.join(route.route_methods)}] {route.route_uri}"
