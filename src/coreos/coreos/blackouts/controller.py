from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_user_id, json_error, login_required, permission_required, request_payload, server_error
from ..common.serializers import plain
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/pto-blackouts", methods=["GET"], endpoint="pto.blackouts.index")
    @login_required
    def pto_blackouts_index():
        try:
            blackouts = container.blackout_service.list_blackouts(
                active_only=request.args.get("active_only") in {"1", "true"}
            )
            return jsonify({"data": plain([b.to_dict() for b in blackouts])})
        except Exception as e:
            return server_error("fetch blackout periods", e)

    @app.route("/api/pto-blackouts", methods=["POST"], endpoint="pto.blackouts.store")
    @permission_required("pto.manage")
    def pto_blackouts_store():
        try:
            blackout = container.blackout_service.create_blackout(request_payload())
            return jsonify({"data": plain(blackout.to_dict()), "message": "Blackout period created successfully."}), 201
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("create blackout period", e)

    @app.route("/api/pto-blackouts/validate", methods=["POST"], endpoint="pto.blackouts.validate")
    @login_required
    def pto_blackouts_validate():
        try:
            validation = container.blackout_service.validate_range(
                request_payload(), default_user_id=current_user_id()
            )
            return jsonify({"data": plain(validation.to_dict())})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("validate blackout periods", e)

    @app.route("/api/pto-blackouts/user", methods=["GET"], endpoint="pto.blackouts.user")
    @login_required
    def pto_blackouts_for_user():
        try:
            blackouts = container.blackout_service.blackouts_for_user(request.args.to_dict())
            data = [
                {
                    "id": b.blackout_id,
                    "name": b.name,
                    "description": b.description,
                    "start_date": b.start_date,
                    "end_date": b.end_date,
                    "restriction_type": b.restriction_type.value,
                    "is_strict": b.is_strict,
                    "allow_emergency_override": b.allow_emergency_override,
                }
                for b in blackouts
            ]
            return jsonify({"blackouts": plain(data)})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("fetch user blackout periods", e)

    @app.route("/api/pto-blackouts/<int:blackout_id>", methods=["GET"], endpoint="pto.blackouts.show")
    @login_required
    def pto_blackouts_show(blackout_id: int):
        try:
            return jsonify({"data": plain(container.blackout_service.get_blackout(blackout_id).to_dict())})
        except DomainError as e:
            return json_error(e)

    @app.route("/api/pto-blackouts/<int:blackout_id>", methods=["PUT", "PATCH"], endpoint="pto.blackouts.update")
    @permission_required("pto.manage")
    def pto_blackouts_update(blackout_id: int):
        try:
            blackout = container.blackout_service.update_blackout(blackout_id, request_payload())
            return jsonify({"data": plain(blackout.to_dict()), "message": "Blackout period updated successfully."})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("update blackout period", e)

    @app.route(
        "/api/pto-blackouts/<int:blackout_id>/toggle-active", methods=["POST"], endpoint="pto.blackouts.toggle-active"
    )
    @permission_required("pto.manage")
    def pto_blackouts_toggle(blackout_id: int):
        try:
            blackout = container.blackout_service.toggle_active(blackout_id)
            state = "activated" if blackout.is_active else "deactivated"
            return jsonify({"data": plain(blackout.to_dict()), "message": f"Blackout period {state} successfully."})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("toggle blackout period", e)

    @app.route("/api/pto-blackouts/<int:blackout_id>", methods=["DELETE"], endpoint="pto.blackouts.destroy")
    @permission_required("pto.manage")
    def pto_blackouts_destroy(blackout_id: int):
        try:
            container.blackout_service.delete_blackout(blackout_id)
            return jsonify({"message": "Blackout period deleted successfully."})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("delete blackout period", e)
