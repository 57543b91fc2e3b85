from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local
from ..common.http import json_error, login_required, permission_required, request_payload, server_error
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    # -------- Positions --------
    @app.route("/api/positions", methods=["GET"], endpoint="positions.index")
    @login_required
    def positions_index():
        try:
            return jsonify([p.to_dict() for p in container.position_service.list_positions()])
        except Exception as e:
            return server_error("fetch positions", e)

    @app.route("/api/positions", methods=["POST"], endpoint="positions.store")
    @permission_required("organization.manage")
    def positions_store():
        try:
            position = container.position_service.create_position(request_payload())
            return jsonify(position.to_dict()), 201
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("create position", e)

    @app.route("/api/positions/<int:position_id>", methods=["GET"], endpoint="positions.show")
    @login_required
    def positions_show(position_id: int):
        try:
            return jsonify(container.position_service.get_position(position_id).to_dict())
        except DomainError as e:
            return json_error(e)

    @app.route("/api/positions/<int:position_id>", methods=["PUT", "PATCH"], endpoint="positions.update")
    @permission_required("organization.manage")
    def positions_update(position_id: int):
        try:
            position = container.position_service.update_position(position_id, request_payload())
            return jsonify(position.to_dict())
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("update position", e)

    @app.route("/api/positions/<int:position_id>", methods=["DELETE"], endpoint="positions.destroy")
    @permission_required("organization.manage")
    def positions_destroy(position_id: int):
        try:
            message = container.position_service.delete_position(position_id)
            return jsonify({"message": message})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("delete position", e)

    # -------- Departments --------
    @app.route("/api/departments", methods=["GET"], endpoint="departments.index")
    @login_required
    def departments_index():
        active_only = request.args.get("active") in {"1", "true"}
        departments = container.department_service.list_departments(active_only=active_only)
        return jsonify([d.to_dict() for d in departments])

    @app.route("/api/departments", methods=["POST"], endpoint="departments.store")
    @permission_required("organization.manage")
    def departments_store():
        try:
            dept = container.department_service.create_department(request_payload())
            return jsonify(dept.to_dict()), 201
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("create department", e)

    @app.route("/api/departments/<int:dept_id>", methods=["GET"], endpoint="departments.show")
    @login_required
    def departments_show(dept_id: int):
        try:
            dept = container.department_service.get_department(dept_id)
            body = dept.to_dict()
            body["users"] = container.department_service.department_users(dept_id)
            return jsonify(body)
        except DomainError as e:
            return json_error(e)

    @app.route("/api/departments/<int:dept_id>", methods=["PUT", "PATCH"], endpoint="departments.update")
    @permission_required("organization.manage")
    def departments_update(dept_id: int):
        try:
            dept = container.department_service.update_department(dept_id, request_payload())
            return jsonify(dept.to_dict())
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("update department", e)

    @app.route("/api/departments/<int:dept_id>", methods=["DELETE"], endpoint="departments.destroy")
    @permission_required("organization.manage")
    def departments_destroy(dept_id: int):
        try:
            return jsonify({"message": container.department_service.delete_department(dept_id)})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("delete department", e)

    @app.route("/api/departments/<int:dept_id>/add-user", methods=["POST"], endpoint="departments.add-user")
    @permission_required("organization.manage")
    def departments_add_user(dept_id: int):
        try:
            return jsonify({"message": container.department_service.add_user(dept_id, request_payload())})
        except DomainError as e:
            return json_error(e)

    @app.route(
        "/api/departments/<int:dept_id>/users/<int:user_id>",
        methods=["DELETE"],
        endpoint="departments.remove-user",
    )
    @permission_required("organization.manage")
    def departments_remove_user(dept_id: int, user_id: int):
        try:
            return jsonify({"message": container.department_service.remove_user(dept_id, user_id)})
        except DomainError as e:
            return json_error(e)

    # -------- Holidays --------
    @app.route("/api/holidays", methods=["GET"], endpoint="holidays.index")
    @login_required
    def holidays_index():
        year = request.args.get("year", type=int) or now_local().year
        return jsonify([h.to_dict() for h in container.holiday_service.list_for_year(year)])

    @app.route("/api/holidays", methods=["POST"], endpoint="holidays.store")
    @permission_required("organization.manage")
    def holidays_store():
        try:
            holiday = container.holiday_service.create_holiday(request_payload())
            return jsonify(holiday.to_dict()), 201
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("create holiday", e)

    @app.route("/api/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="holidays.destroy")
    @permission_required("organization.manage")
    def holidays_destroy(holiday_id: int):
        try:
            container.holiday_service.delete_holiday(holiday_id)
            return jsonify({"message": "Holiday deleted successfully."})
        except DomainError as e:
            return json_error(e)
