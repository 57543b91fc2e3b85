from __future__ import annotations

import logging
from dataclasses import replace
from fnmatch import fnmatch
from typing import Optional, Sequence

from flask import Flask
from werkzeug.routing import Rule

from .model import DiscoveredRoute, humanize

logger = logging.getLogger(__name__)

EXCLUDED_PATTERNS = (
    "static",
    "static/*",
    "_debug*",
    "*.json",
    "*.css",
    "*.js",
    "*.ico",
    "*.png",
    "*.jpg",
    "*.gif",
    "*.svg",
    "*.woff*",
    "health",
    "health.*",
    "api/health*",
)

IGNORED_METHODS = {"HEAD", "OPTIONS"}
COMMON_MIDDLEWARE = {"web", "auth", "verified", "throttle"}

GROUP_MAP = {
    "hr": "Human Resources",
    "hrs": "Human Resources",
    "pto": "PTO Management",
    "time-clock": "Time & Attendance",
    "billy": "AI Assistant",
    "wiki": "Wiki",
    "blog": "Company News",
    "admin": "Administration",
    "access-control": "Access Control",
    "user-management": "User Management",
    "warehouse": "Warehouse Operations",
    "parts": "Parts Database",
    "training": "Training & Learning",
    "vibetrack": "Analytics & Tracking",
    "payroll": "Payroll & Finance",
    "emergency-contacts": "Personal Settings",
    "settings": "System Settings",
    "departments": "Organization",
    "holidays": "Organization",
    "positions": "Organization",
    "team": "Organization",
    "tags": "Company Documents",
    "folders": "Company Documents",
    "documents": "Company Documents",
}

# Keyed by the feature package that owns the controller module.
CONTROLLER_GROUP_MAP = {
    "users": "User Management",
    "organization": "Organization",
    "pto_types": "PTO Management",
    "pto_policies": "PTO Management",
    "pto_balances": "PTO Management",
    "pto_requests": "PTO Management",
    "blackouts": "PTO Management",
    "timesheets": "Time & Attendance",
    "route_permissions": "Access Control",
}

ACTION_MAP = {
    "index": "View",
    "show": "View Details",
    "create": "Create",
    "store": "Save",
    "edit": "Edit",
    "update": "Update",
    "destroy": "Delete",
    "restore": "Restore",
    "approve": "Approve",
    "deny": "Deny",
    "cancel": "Cancel",
    "sync": "Synchronize",
    "export": "Export",
    "import": "Import",
    "upload": "Upload",
    "download": "Download",
    "assign": "Assign",
    "bulk": "Bulk Operations",
    "search": "Search",
    "reorder": "Reorder",
    "assign-permission-categories": "Assign Permission Categories",
    "assign-roles": "Assign Roles",
    "assign-permissions": "Assign Permissions",
    "update-route-permissions": "Update Route Permissions",
    "sync-routes": "Sync Routes",
    "sync-user-roles": "Sync User Roles",
    "sync-user-direct-permissions": "Sync Direct Permissions",
}

# Actions spelled across the last two segments of a route name, e.g. "routes.sync.routes".
COMPLEX_ACTIONS = {
    "assign-permission-categories",
    "update-route-permissions",
    "sync-routes",
    "assign-roles",
    "assign-permissions",
    "sync-user-roles",
    "sync-user-direct-permissions",
    "bulk-assign",
    "bulk-update",
    "user-check",
}


def remove_redundant_prefix(route_name: str) -> str:
    """'access-control.access-control.index' -> 'access-control.index'."""
    parts = route_name.split(".")
    if len(parts) >= 3 and parts[0] == parts[1]:
        del parts[1]
    return ".".join(parts)


def create_display_name(route_name: str) -> str:
    """'pto.requests.approve' -> 'Approve Pto Requests'."""
    parts = remove_redundant_prefix(route_name).split(".")

    action = parts[-1]
    resource_parts = parts[:-1]
    if len(parts) >= 3:
        combined = f"{parts[-2]}-{parts[-1]}"
        if combined in COMPLEX_ACTIONS:
            action = combined
            resource_parts = parts[:-2]

    action_display = ACTION_MAP.get(action) or humanize(action)
    context = " ".join(humanize(p) for p in resource_parts)
    return f"{action_display} {context}" if context else action_display


def determine_group_name(route_name: str, controller_class: Optional[str]) -> str:
    parts = route_name.split(".")
    if len(parts) > 1:
        return GROUP_MAP.get(parts[0]) or humanize(parts[0])

    if controller_class:
        module_parts = controller_class.split(".")
        package = module_parts[-2] if len(module_parts) >= 2 else module_parts[-1]
        return CONTROLLER_GROUP_MAP.get(package) or humanize(package)

    return "General"


def clean_middleware(middleware: Sequence[str]) -> tuple[str, ...]:
    return tuple(m for m in middleware if m.split(":", 1)[0] not in COMMON_MIDDLEWARE)


def should_protect(middleware: Sequence[str], methods: Sequence[str]) -> bool:
    if "auth" in middleware:
        return True
    if clean_middleware(middleware):
        return True
    if list(methods) == ["GET"]:
        return False
    return True


class RouteDiscoveryService:
    """Reads the Flask URL map and describes every named, non-asset route.

    Protection and custom middleware come from the `route_middleware`
    attribute that the auth decorators put on view functions.
    """

    def __init__(self, app: Flask):
        self._app = app

    def _is_excluded(self, rule: Rule) -> bool:
        uri = rule.rule.lstrip("/")
        name = rule.endpoint
        if not name:
            return True
        return any(fnmatch(uri, p) or fnmatch(name, p) for p in EXCLUDED_PATTERNS)

    def _describe(self, rule: Rule) -> DiscoveredRoute:
        view = self._app.view_functions.get(rule.endpoint)
        controller_class = getattr(view, "__module__", None) if view else None
        controller_method = getattr(view, "__name__", None) if view else None
        middleware = tuple(getattr(view, "route_middleware", ())) if view else ()
        methods = tuple(sorted(m for m in (rule.methods or ()) if m not in IGNORED_METHODS))

        return DiscoveredRoute(
            route_name=rule.endpoint,
            route_uri=rule.rule.lstrip("/"),
            route_methods=methods,
            controller_class=controller_class,
            controller_method=controller_method,
            group_name=determine_group_name(rule.endpoint, controller_class),
            description=create_display_name(rule.endpoint),
            middleware=clean_middleware(middleware),
            is_protected=should_protect(middleware, methods),
        )

    def discover_routes(self) -> list[DiscoveredRoute]:
        found: dict[str, DiscoveredRoute] = {}
        for rule in self._app.url_map.iter_rules():
            if self._is_excluded(rule):
                continue
            route = self._describe(rule)
            if route.route_name in found:
                # Same endpoint on several rules: keep the first uri, merge methods.
                first = found[route.route_name]
                methods = tuple(sorted(set(first.route_methods) | set(route.route_methods)))
                route = replace(first, route_methods=methods)
            found[route.route_name] = route
        logger.debug("Discovered %s routes", len(found))
        return list(found.values())
