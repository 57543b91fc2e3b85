from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import (
    current_user_id,
    json_error,
    login_required,
    permission_required,
    request_payload,
    server_error,
)
from ..common.serializers import plain
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/pto-policies", methods=["GET"], endpoint="pto.policies.index")
    @permission_required("pto.manage")
    def pto_policies_index():
        try:
            service = container.pto_policy_service
            policies = service.list_policies(
                user_id=request.args.get("user_id", type=int),
                pto_type_id=request.args.get("pto_type_id", type=int),
                active_only=request.args.get("active_only") in {"1", "true"},
            )
            return jsonify({"data": plain([p.to_dict() for p in policies]), "meta": service.policy_meta(policies)})
        except Exception as e:
            return server_error("fetch PTO Policies", e)

    @app.route("/api/pto-policies", methods=["POST"], endpoint="pto.policies.store")
    @permission_required("pto.manage")
    def pto_policies_store():
        try:
            policy = container.pto_policy_service.create_policy(request_payload(), created_by_id=current_user_id())
            return jsonify({"data": plain(policy.to_dict()), "message": "PTO Policy created successfully."}), 201
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("create PTO Policy", e)

    @app.route("/api/pto-policies/<int:policy_id>", methods=["GET"], endpoint="pto.policies.show")
    @permission_required("pto.manage")
    def pto_policies_show(policy_id: int):
        try:
            return jsonify({"data": plain(container.pto_policy_service.get_policy(policy_id).to_dict())})
        except DomainError as e:
            return json_error(e)

    @app.route("/api/pto-policies/<int:policy_id>", methods=["PUT", "PATCH"], endpoint="pto.policies.update")
    @permission_required("pto.manage")
    def pto_policies_update(policy_id: int):
        try:
            policy = container.pto_policy_service.update_policy(
                policy_id, request_payload(), created_by_id=current_user_id()
            )
            return jsonify({"data": plain(policy.to_dict()), "message": "PTO Policy updated successfully."})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("update PTO Policy", e)

    @app.route("/api/pto-policies/<int:policy_id>", methods=["DELETE"], endpoint="pto.policies.destroy")
    @permission_required("pto.manage")
    def pto_policies_destroy(policy_id: int):
        try:
            container.pto_policy_service.delete_policy(policy_id)
            return jsonify({"message": "PTO Policy deleted successfully."})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("delete PTO Policy", e)

    @app.route("/api/users/<int:user_id>/pto-policies", methods=["GET"], endpoint="pto.policies.user")
    @login_required
    def pto_policies_for_user(user_id: int):
        try:
            user = container.user_service.get_user(user_id)
            service = container.pto_policy_service
            policies = service.list_policies(
                user_id=user.user_id, active_only=request.args.get("active_only") in {"1", "true"}
            )
            meta = service.policy_meta(policies)
            meta["user"] = {"id": user.user_id, "name": user.name, "email": user.email}
            return jsonify({"data": plain([p.to_dict() for p in policies]), "meta": meta})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("fetch user policies", e)
