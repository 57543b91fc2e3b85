from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, session

from ..common.http import (
    current_user_id,
    json_error,
    login_required,
    permission_required,
    request_payload,
    server_error,
)
from ..common.serializers import plain
from ..common.validators import FieldErrors, read_bool, read_date, read_int, read_str
from ..container import Container
from ..core.exceptions import AuthenticationError, DomainError


def register(app: Flask, container: Container) -> None:
    @app.route("/login", methods=["POST"], endpoint="login")
    def login():
        payload = request_payload()
        try:
            s_user = container.auth_service.authenticate(
                str(payload.get("email") or ""), str(payload.get("password") or "")
            )

            session.clear()
            session.permanent = read_bool(payload, "remember")
            app.permanent_session_lifetime = timedelta(days=7)

            session["user_id"] = s_user.user_id
            session["name"] = s_user.name
            session["email"] = s_user.email
            session["roles"] = list(s_user.roles)
            session["permissions"] = list(s_user.permissions)
            session["is_super_admin"] = s_user.is_super_admin

            return jsonify({"data": plain(s_user), "message": "Logged in successfully."})
        except AuthenticationError as e:
            return jsonify({"message": str(e), "errors": {"email": [str(e)]}}), 422
        except Exception as e:
            return server_error("log in", e)

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"message": "Logged out."})

    @app.route("/dashboard", methods=["GET"], endpoint="dashboard")
    @login_required
    def dashboard():
        return jsonify(
            {
                "user": {"id": session.get("user_id"), "name": session.get("name")},
                "can": {
                    "manage_pto": "pto.manage" in (session.get("permissions") or []),
                    "approve_pto": "pto.approve" in (session.get("permissions") or []),
                    "is_super_admin": bool(session.get("is_super_admin")),
                },
            }
        )

    @app.route("/api/me", methods=["GET"], endpoint="auth.me")
    @login_required
    def me():
        try:
            user = container.user_service.get_user(current_user_id())
            data = user.to_dict()
            data["permissions"] = list(user.permissions)
            data["is_super_admin"] = bool(session.get("is_super_admin"))
            return jsonify({"data": plain(data)})
        except DomainError as e:
            return json_error(e)

    @app.route("/api/users/list", methods=["GET"], endpoint="user-management.users.list")
    @login_required
    def users_list():
        try:
            users = container.user_service.list_users(active_only=True)
            return jsonify({"data": [{"id": u.user_id, "name": u.name, "email": u.email} for u in users]})
        except Exception as e:
            return server_error("fetch users", e)

    @app.route("/api/users", methods=["POST"], endpoint="user-management.users.store")
    @permission_required("employees.manage")
    def users_store():
        try:
            payload = request_payload()
            errors = FieldErrors()
            position_id = read_int(payload, "position_id", errors)
            manager_id = read_int(payload, "manager_id", errors)
            start_date = read_date(payload, "start_date", errors)
            read_str(payload, "name", errors, required=True, max_length=255)
            errors.raise_if_any()

            user_id = container.user_service.create_account(
                current_user=container.user_service.get_user(current_user_id()),
                name=str(payload.get("name") or ""),
                email=str(payload.get("email") or ""),
                password=str(payload.get("password") or ""),
                position_id=position_id,
                manager_id=manager_id,
                start_date=start_date,
            )
            user = container.user_service.get_user(user_id)
            return jsonify({"data": plain(user.to_dict()), "message": "User created successfully."}), 201
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("create user", e)

    @app.route("/api/users/<int:user_id>/deactivate", methods=["POST"], endpoint="user-management.users.deactivate")
    @permission_required("employees.manage")
    def users_deactivate(user_id: int):
        try:
            container.user_service.deactivate(
                current_user=container.user_service.get_user(current_user_id()), user_id=user_id
            )
            return jsonify({"message": "User deactivated successfully."})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("deactivate user", e)
