from __future__ import annotations

from flask import Flask

from src.coreos.coreos.common.http import login_required, permission_required
from src.coreos.coreos.route_permissions.discovery import (
    RouteDiscoveryService,
    create_display_name,
    determine_group_name,
    remove_redundant_prefix,
    should_protect,
)
from src.coreos.coreos.route_permissions.model import RoutePermission, humanize


def test_humanize():
    assert humanize("time-clock.clock_in") == "Time Clock Clock In"


def test_remove_redundant_prefix():
    assert remove_redundant_prefix("access-control.access-control.index") == "access-control.index"
    assert remove_redundant_prefix("pto.requests.index") == "pto.requests.index"


def test_display_names():
    assert create_display_name("pto.requests.approve") == "Approve Pto Requests"
    assert create_display_name("access-control.update-route-permissions") == "Update Route Permissions Access Control"
    assert create_display_name("admin.routes.sync.routes") == "Sync Routes Admin Routes"
    assert create_display_name("dashboard") == "Dashboard"
    assert create_display_name("time-clock.timesheet.index") == "View Time Clock Timesheet"


def test_group_names():
    assert determine_group_name("pto.requests.index", None) == "PTO Management"
    assert determine_group_name("positions.index", None) == "Organization"
    assert determine_group_name("reports.index", None) == "Reports"
    assert determine_group_name("dashboard", "src.coreos.coreos.users.controller") == "User Management"
    assert determine_group_name("dashboard", None) == "General"


def test_should_protect():
    assert should_protect(("auth",), ["GET"])
    assert should_protect(("permission:pto.manage",), ["GET"])
    assert not should_protect(("web", "throttle:60,1"), ["GET"])
    assert should_protect((), ["POST"])


def test_route_permission_display_fields():
    route = RoutePermission(
        route_permission_id=1,
        route_name="pto.requests.index",
        route_uri="api/pto-requests",
        route_methods=("GET", "POST"),
        controller_class="src.coreos.coreos.pto_requests.controller",
    )
    assert route.display_name == "Pto Requests Index"
    assert route.methods_string == "GET|POST"
    assert route.controller_name == "controller"
    assert not route.has_access_rules


def _app() -> Flask:
    app = Flask(__name__)

    @app.route("/api/pto/types", methods=["GET"], endpoint="pto.types.index")
    @permission_required("pto.manage")
    def pto_types_index():
        return "ok"

    @app.route("/api/me", methods=["GET"], endpoint="auth.me")
    @login_required
    def me():
        return "me"

    @app.route("/api/positions", methods=["GET"], endpoint="positions.index")
    def positions_index():
        return "[]"

    @app.route("/api/positions", methods=["POST"], endpoint="positions.store")
    def positions_store():
        return "{}"

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return "up"

    return app


def test_discover_routes_reads_middleware_and_skips_assets():
    routes = {r.route_name: r for r in RouteDiscoveryService(_app()).discover_routes()}

    assert set(routes) == {"pto.types.index", "auth.me", "positions.index", "positions.store"}

    pto = routes["pto.types.index"]
    assert pto.route_uri == "api/pto/types"
    assert pto.route_methods == ("GET",)
    assert pto.middleware == ("permission:pto.manage",)
    assert pto.is_protected
    assert pto.group_name == "PTO Management"
    assert pto.controller_method == "pto_types_index"

    assert routes["auth.me"].is_protected
    assert routes["auth.me"].middleware == ()
    assert not routes["positions.index"].is_protected
    assert routes["positions.store"].is_protected
    assert routes["positions.store"].group_name == "Organization"
