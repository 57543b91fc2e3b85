from __future__ import annotations

import pytest

from src.coreos.coreos.core.exceptions import NotFoundError, ValidationError
from src.coreos.coreos.route_permissions.middleware import is_excluded
from src.coreos.coreos.route_permissions.model import DiscoveredRoute, RoutePermission
from src.coreos.coreos.route_permissions.service import (
    FORBIDDEN_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    RoutePermissionService,
)
from tests.fakes import FakeRoutesRepo


class FakeDiscovery:
    def __init__(self, *routes: DiscoveredRoute):
        self._routes = list(routes)

    def discover_routes(self):
        return list(self._routes)


def _route(route_permission_id, name, group="PTO Management", **kw) -> RoutePermission:
    return RoutePermission(
        route_permission_id=route_permission_id, route_name=name, route_uri=name.replace(".", "/"), group_name=group, **kw
    )


def _discovered(name, group="PTO Management") -> DiscoveredRoute:
    return DiscoveredRoute(
        route_name=name,
        route_uri=name.replace(".", "/"),
        route_methods=("GET",),
        controller_class=None,
        controller_method=None,
        group_name=group,
        description=None,
        middleware=(),
        is_protected=True,
    )


def test_sync_adds_updates_and_deactivates():
    repo = FakeRoutesRepo([_route(1, "pto.types.index"), _route(2, "pto.legacy.index")])
    service = RoutePermissionService(repo)
    discovery = FakeDiscovery(_discovered("pto.types.index"), _discovered("time-clock.timesheet.index", "Time & Attendance"))

    preview = service.sync_routes(discovery, dry_run=True)
    assert (preview.discovered, preview.new, preview.updated, preview.deactivated) == (2, 1, 1, 1)
    assert repo.get_by_name("time-clock.timesheet.index") is None

    result = service.sync_routes(discovery)
    assert (result.new, result.updated, result.deactivated) == (1, 1, 1)
    assert not repo.get_by_name("pto.legacy.index").is_active
    assert service.stats().active_routes == 2
    assert list(service.grouped_routes()) == ["PTO Management", "Time & Attendance"]


def test_bulk_assign_group_keeps_existing_links():
    repo = FakeRoutesRepo([_route(1, "pto.types.index", permissions=("hr.access",)), _route(2, "pto.requests.index")])
    service = RoutePermissionService(repo)

    assert service.bulk_assign_group("PTO Management", permission="pto.manage", role="HR Manager") == 4
    assert repo.get_by_id(1).permissions == ("hr.access", "pto.manage")
    assert repo.get_by_id(2).roles == ("HR Manager",)


def test_bulk_assign_group_errors():
    service = RoutePermissionService(FakeRoutesRepo([_route(1, "pto.types.index")]))
    with pytest.raises(ValidationError, match="--permission or --role"):
        service.bulk_assign_group("PTO Management")
    with pytest.raises(NotFoundError, match="No routes found for group: Payroll"):
        service.bulk_assign_group("Payroll", permission="pto.manage")
    with pytest.raises(NotFoundError, match="Permission 'nope' not found"):
        service.bulk_assign_group("PTO Management", permission="nope")
    with pytest.raises(NotFoundError, match="Role 'Ghost' not found"):
        service.bulk_assign_group("PTO Management", role="Ghost")


def test_smart_assignment_replaces_permissions():
    repo = FakeRoutesRepo(
        [
            _route(1, "pto.types.index", permissions=("admin.access",)),
            _route(2, "time-clock.timesheet.index", group="Time & Attendance"),
            _route(3, "dashboard", group="Dashboard", permissions=("hr.access",)),
            _route(4, "warehouse.index", group="Warehouse Operations"),
        ]
    )

    results = {r.group_name: r for r in RoutePermissionService(repo).bulk_assign_smart()}

    assert repo.get_by_id(1).permissions == ("pto.manage", "hr.access")
    assert repo.get_by_id(2).permissions == ("hr.access",)
    assert repo.get_by_id(3).permissions == ()
    assert results["Warehouse Operations"].missing_permissions
    assert repo.get_by_id(4).permissions == ()


def test_update_access_validates_names():
    repo = FakeRoutesRepo([_route(1, "pto.types.index")])
    service = RoutePermissionService(repo)

    with pytest.raises(ValidationError) as exc:
        service.update_access(1, {"permissions": ["pto.manage", "bogus"], "roles": ["Nobody"]})
    assert exc.value.errors == {"permissions": ["Unknown permissions: bogus"], "roles": ["Unknown roles: Nobody"]}

    route = service.update_access(1, {"permissions": "pto.manage,hr.access", "is_protected": False, "description": "Types"})
    assert route.permissions == ("pto.manage", "hr.access")
    assert not route.is_protected
    assert route.description == "Types"


def test_update_display_names_only_fills_missing_unless_forced():
    repo = FakeRoutesRepo(
        [_route(1, "pto.requests.approve"), _route(2, "pto.requests.index", stored_display_name="Custom")]
    )
    service = RoutePermissionService(repo)

    assert service.update_display_names() == 1
    assert repo.get_by_id(1).display_name == "Approve Pto Requests"
    assert repo.get_by_id(2).display_name == "Custom"

    assert service.update_display_names(force=True) == 2
    assert repo.get_by_id(2).display_name == "View Pto Requests"


def test_access_denial_rules():
    repo = FakeRoutesRepo(
        [
            _route(1, "time-clock.timesheet.pending", permissions=("timesheets.manage",), roles=("HR Manager",)),
            _route(2, "hr.reports.index"),
            _route(3, "positions.index", is_protected=False),
            _route(4, "old.index", is_active=False),
        ]
    )
    service = RoutePermissionService(repo)

    def denial(name, permissions=(), roles=(), is_super_admin=False):
        return service.access_denial(
            name, user_id=1, permissions=permissions, roles=roles, is_super_admin=is_super_admin
        )

    assert denial("time-clock.timesheet.pending", permissions=["timesheets.manage"]) is None
    assert denial("time-clock.timesheet.pending", roles=["HR Manager"]) is None
    assert denial("time-clock.timesheet.pending", permissions=["pto.manage"]) == FORBIDDEN_MESSAGE
    assert denial("hr.reports.index") == NOT_CONFIGURED_MESSAGE
    assert denial("hr.reports.index", is_super_admin=True) is None
    assert denial("positions.index") is None
    assert denial("old.index") is None
    assert denial("unknown.route") is None


def test_excluded_endpoints():
    assert is_excluded("login")
    assert is_excluded("access-control.routes.index")
    assert is_excluded("pto.requests.store")
    assert not is_excluded("time-clock.timesheet.index")
