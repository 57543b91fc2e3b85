from __future__ import annotations

import logging
from functools import wraps
from typing import Any

from flask import current_app, jsonify, request, session

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from .serializers import plain

logger = logging.getLogger(__name__)

FORBIDDEN_MESSAGE = "You do not have permission to access this resource."


def request_payload() -> dict[str, Any]:
    """JSON body when present, otherwise submitted form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def current_user_id() -> int:
    return int(session["user_id"])


def session_can(*permissions: str) -> bool:
    if session.get("is_super_admin"):
        return True
    granted = set(session.get("permissions") or [])
    return any(p in granted for p in permissions)


def json_error(e: DomainError):
    if isinstance(e, ValidationError):
        body: dict[str, Any] = {"message": e.message, "errors": e.errors}
        body.update(plain(e.context))
        return jsonify(body), 422
    if isinstance(e, AuthenticationError):
        return jsonify({"message": str(e)}), 401
    if isinstance(e, AuthorizationError):
        return jsonify({"message": str(e)}), 403
    if isinstance(e, NotFoundError):
        return jsonify({"message": str(e)}), 404
    return jsonify({"message": str(e)}), 400


def server_error(action: str, exc: Exception):
    logger.error("Error %s: %s", action, exc, exc_info=True)
    details = str(exc) if bool(current_app.config.get("DEBUG", False)) else "An unexpected error occurred."
    return jsonify({"error": f"Failed to {action}.", "details": details}), 500


def _middleware_of(view) -> tuple[str, ...]:
    return tuple(getattr(view, "route_middleware", ()))


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"message": "Unauthenticated."}), 401
        return view(*args, **kwargs)

    # Read by route discovery to decide protection and group middleware.
    wrapper.route_middleware = ("auth",) + tuple(m for m in _middleware_of(view) if m != "auth")
    return wrapper


def permission_required(*permissions: str):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"message": "Unauthenticated."}), 401
            if not session_can(*permissions):
                return jsonify({"message": FORBIDDEN_MESSAGE}), 403
            return view(*args, **kwargs)

        wrapper.route_middleware = ("auth", "permission:" + "|".join(permissions))
        return wrapper

    return decorator
