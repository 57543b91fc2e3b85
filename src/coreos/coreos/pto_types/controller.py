from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import json_error, login_required, permission_required, request_payload, server_error
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/pto-types", methods=["GET"], endpoint="pto.types.index")
    @login_required
    def pto_types_index():
        try:
            service = container.pto_type_service
            types = service.list_types(
                active_only=request.args.get("active_only") in {"1", "true"},
                search=request.args.get("search"),
            )
            with_usage = request.args.get("with_usage") in {"1", "true"}
            rows = []
            for t in types:
                row = t.to_dict()
                if with_usage:
                    row["usage_stats"] = service.usage_stats(t.pto_type_id).to_dict()
                rows.append(row)
            return jsonify(rows)
        except Exception as e:
            return server_error("fetch PTO Types", e)

    @app.route("/api/pto-types", methods=["POST"], endpoint="pto.types.store")
    @permission_required("pto.manage")
    def pto_types_store():
        try:
            pto_type = container.pto_type_service.create_type(request_payload())
            return jsonify(pto_type.to_dict()), 201
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("create PTO Type", e)

    @app.route("/api/pto-types/<int:pto_type_id>", methods=["GET"], endpoint="pto.types.show")
    @login_required
    def pto_types_show(pto_type_id: int):
        try:
            service = container.pto_type_service
            body = service.get_type(pto_type_id).to_dict()
            body["usage_stats"] = service.usage_stats(pto_type_id).to_dict()
            return jsonify(body)
        except DomainError as e:
            return json_error(e)

    @app.route("/api/pto-types/<int:pto_type_id>", methods=["PUT", "PATCH"], endpoint="pto.types.update")
    @permission_required("pto.manage")
    def pto_types_update(pto_type_id: int):
        try:
            pto_type = container.pto_type_service.update_type(pto_type_id, request_payload())
            return jsonify(pto_type.to_dict())
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("update PTO Type", e)

    @app.route("/api/pto-types/<int:pto_type_id>", methods=["DELETE"], endpoint="pto.types.destroy")
    @permission_required("pto.manage")
    def pto_types_destroy(pto_type_id: int):
        try:
            return jsonify({"message": container.pto_type_service.delete_type(pto_type_id)})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("delete PTO Type", e)

    @app.route(
        "/api/pto-types/<int:pto_type_id>/toggle-active", methods=["PATCH", "POST"], endpoint="pto.types.toggle-active"
    )
    @permission_required("pto.manage")
    def pto_types_toggle(pto_type_id: int):
        try:
            pto_type = container.pto_type_service.toggle_active(pto_type_id)
            return jsonify(pto_type.to_dict())
        except DomainError as e:
            return json_error(e)

    @app.route("/api/pto-types/sort-order", methods=["POST"], endpoint="pto.types.reorder")
    @permission_required("pto.manage")
    def pto_types_reorder():
        try:
            count = container.pto_type_service.update_sort_orders(request_payload())
            return jsonify({"message": "Sort order updated successfully.", "updated": count})
        except DomainError as e:
            return json_error(e)
