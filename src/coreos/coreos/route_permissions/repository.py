from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import DiscoveredRoute, RoutePermission, RouteStats


class RoutePermissionRepository(Protocol):
    def get_by_id(self, route_permission_id: int) -> Optional[RoutePermission]:
        raise NotImplementedError

    def get_by_name(self, route_name: str) -> Optional[RoutePermission]:
        raise NotImplementedError

    def list_routes(
        self,
        *,
        active_only: bool = True,
        group_name: Optional[str] = None,
        missing_display_name: bool = False,
    ) -> Sequence[RoutePermission]:
        """Ordered by group_name, route_name."""
        raise NotImplementedError

    def group_counts(self) -> Sequence[tuple[str, int]]:
        """(group_name, active route count), ordered by group name."""
        raise NotImplementedError

    def create(self, route: DiscoveredRoute) -> int:
        raise NotImplementedError

    def refresh(self, route_permission_id: int, route: DiscoveredRoute) -> None:
        """Overwrite uri, methods, controller, group and middleware; mark active."""
        raise NotImplementedError

    def deactivate_missing(self, route_names: Sequence[str]) -> int:
        raise NotImplementedError

    def set_display_name(self, route_permission_id: int, display_name: str) -> None:
        raise NotImplementedError

    def update_access(
        self,
        route_permission_id: int,
        *,
        is_protected: Optional[bool] = None,
        description: Optional[str] = None,
    ) -> None:
        raise NotImplementedError

    def sync_permissions(self, route_permission_id: int, permission_ids: Sequence[int], *, detach: bool = True) -> None:
        """Attach the given permissions; with detach, drop every other one."""
        raise NotImplementedError

    def sync_roles(self, route_permission_id: int, role_ids: Sequence[int], *, detach: bool = True) -> None:
        raise NotImplementedError

    def permission_ids(self, names: Sequence[str]) -> dict[str, int]:
        raise NotImplementedError

    def role_ids(self, names: Sequence[str]) -> dict[str, int]:
        raise NotImplementedError

    def stats(self) -> RouteStats:
        raise NotImplementedError
