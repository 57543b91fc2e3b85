from __future__ import annotations

from flask import Flask, current_app, jsonify, request

from ..common.http import json_error, permission_required, request_payload, server_error
from ..common.serializers import plain
from ..container import Container
from ..core.exceptions import DomainError
from .discovery import RouteDiscoveryService

_MANAGE = ("roles.manage", "admin.access")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/access-control/routes", methods=["GET"], endpoint="access-control.routes.index")
    @permission_required(*_MANAGE)
    def access_control_routes():
        try:
            grouped = container.route_permission_service.grouped_routes()
            return jsonify(
                {
                    "data": {group: plain([r.to_dict() for r in routes]) for group, routes in grouped.items()},
                    "stats": plain(container.route_permission_service.stats()),
                }
            )
        except Exception as e:
            return server_error("fetch route permissions", e)

    @app.route("/api/access-control/routes/stats", methods=["GET"], endpoint="access-control.routes.stats")
    @permission_required(*_MANAGE)
    def access_control_stats():
        try:
            return jsonify({"data": plain(container.route_permission_service.stats())})
        except Exception as e:
            return server_error("fetch route statistics", e)

    @app.route("/api/access-control/routes/sync", methods=["POST"], endpoint="access-control.sync.routes")
    @permission_required(*_MANAGE)
    def access_control_sync():
        try:
            dry_run = request.args.get("dry_run") in {"1", "true"}
            result = container.route_permission_service.sync_routes(
                RouteDiscoveryService(current_app), dry_run=dry_run
            )
            body = {
                "discovered": result.discovered,
                "new": result.new,
                "updated": result.updated,
                "deactivated": result.deactivated,
                "dry_run": dry_run,
            }
            if dry_run:
                body["routes"] = plain(list(result.routes))
            return jsonify({"data": body, "message": "Route synchronization completed."})
        except Exception as e:
            return server_error("sync routes", e)

    @app.route(
        "/api/access-control/routes/<int:route_permission_id>",
        methods=["PUT", "PATCH"],
        endpoint="access-control.update-route-permissions",
    )
    @permission_required(*_MANAGE)
    def access_control_update(route_permission_id: int):
        try:
            route = container.route_permission_service.update_access(route_permission_id, request_payload())
            return jsonify({"data": plain(route.to_dict()), "message": "Route permissions updated successfully."})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("update route permissions", e)
