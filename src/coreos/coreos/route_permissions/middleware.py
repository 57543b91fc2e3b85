from __future__ import annotations

from fnmatch import fnmatch

from flask import Flask, jsonify, request, session

from ..container import Container

EXCLUDED_ENDPOINTS = (
    "login",
    "register",
    "password.*",
    "verification.*",
    "logout",
    "auth.*",
    "home",
    "dashboard",
    "static",
    "access-control.*",
    "_debug*",
    "pto.*",
)


def is_excluded(endpoint: str) -> bool:
    return any(fnmatch(endpoint, pattern) for pattern in EXCLUDED_ENDPOINTS)


def register(app: Flask, container: Container) -> None:
    """Check every signed-in request against the route's configured access."""

    @app.before_request
    def check_route_permission():
        # Unauthenticated requests are left to login_required.
        if "user_id" not in session:
            return None
        endpoint = request.endpoint
        if not endpoint or is_excluded(endpoint):
            return None

        message = container.route_permission_service.access_denial(
            endpoint,
            user_id=int(session["user_id"]),
            permissions=session.get("permissions") or [],
            roles=session.get("roles") or [],
            is_super_admin=bool(session.get("is_super_admin")),
        )
        if message:
            return jsonify({"message": message, "error": "Forbidden"}), 403
        return None
