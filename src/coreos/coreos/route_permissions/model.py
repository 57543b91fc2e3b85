from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


def humanize(value: str) -> str:
    """'time-clock.clock_in' -> 'Time Clock Clock In'."""
    for sep in ("-", "_", "."):
        value = value.replace(sep, " ")
    return " ".join(w[:1].upper() + w[1:] for w in value.split())


@dataclass(frozen=True)
class RoutePermission:
    """Access configuration for one named route.

    A route with neither permissions nor roles is reachable by super admins only.
    """

    route_permission_id: int
    route_name: str
    route_uri: str
    route_methods: tuple[str, ...] = ()
    controller_class: Optional[str] = None
    controller_method: Optional[str] = None
    group_name: str = "General"
    description: Optional[str] = None
    stored_display_name: Optional[str] = None
    is_protected: bool = True
    is_active: bool = True
    middleware: tuple[str, ...] = ()
    permissions: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.stored_display_name or humanize(self.route_name)

    @property
    def methods_string(self) -> str:
        return "|".join(self.route_methods)

    @property
    def controller_name(self) -> str:
        if not self.controller_class:
            return ""
        return self.controller_class.rsplit(".", 1)[-1]

    @property
    def has_access_rules(self) -> bool:
        return bool(self.permissions or self.roles)

    def to_dict(self) -> dict:
        return {
            "id": self.route_permission_id,
            "route_name": self.route_name,
            "route_uri": self.route_uri,
            "route_methods": list(self.route_methods),
            "methods_string": self.methods_string,
            "controller_class": self.controller_class,
            "controller_method": self.controller_method,
            "controller_name": self.controller_name,
            "group_name": self.group_name,
            "description": self.description,
            "display_name": self.display_name,
            "is_protected": self.is_protected,
            "is_active": self.is_active,
            "middleware": list(self.middleware),
            "permissions": list(self.permissions),
            "roles": list(self.roles),
        }


@dataclass(frozen=True)
class DiscoveredRoute:
    """A route found in the running application, before it is stored."""

    route_name: str
    route_uri: str
    route_methods: tuple[str, ...]
    controller_class: Optional[str]
    controller_method: Optional[str]
    group_name: str
    description: str
    middleware: tuple[str, ...]
    is_protected: bool


@dataclass(frozen=True)
class SyncStats:
    discovered: int
    new: int
    updated: int
    deactivated: int
    routes: tuple[DiscoveredRoute, ...] = ()


@dataclass(frozen=True)
class RouteStats:
    total_routes: int
    active_routes: int
    protected_routes: int
    routes_with_permissions: int
    total_groups: int
