from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import (
    FORBIDDEN_MESSAGE,
    current_user_id,
    json_error,
    login_required,
    permission_required,
    request_payload,
    server_error,
    session_can,
)
from ..common.serializers import plain
from ..container import Container
from ..core.exceptions import AuthorizationError, DomainError
from .service import submission_message

_MANAGE = ("pto.manage",)
_APPROVE = ("pto.manage", "pto.approve")


def register(app: Flask, container: Container) -> None:
    def me():
        return container.user_service.get_user(current_user_id())

    def request_body(pto_request) -> dict:
        data = pto_request.to_dict()
        data["approvals"] = [a.to_dict() for a in container.pto_request_service.approvals_for(pto_request.request_id)]
        return plain(data)

    # -------- Employee --------
    @app.route("/api/pto-requests", methods=["GET"], endpoint="pto.requests.index")
    @login_required
    def pto_requests_index():
        try:
            user_id = request.args.get("user_id", type=int)
            if not session_can(*_APPROVE):
                user_id = current_user_id()
            requests = container.pto_request_service.list_requests(
                user_id=user_id,
                status=request.args.get("status") or None,
                pto_type_id=request.args.get("pto_type_id", type=int),
                search=request.args.get("search") or None,
            )
            return jsonify({"data": plain([r.to_dict() for r in requests]), "meta": {"total": len(requests)}})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("fetch PTO requests", e)

    @app.route("/api/pto-requests", methods=["POST"], endpoint="pto.requests.store")
    @login_required
    def pto_requests_store():
        try:
            pto_request, validation = container.pto_request_service.create_request(request_payload(), user=me())
            body = {"data": request_body(pto_request), "message": submission_message(validation, pto_request)}
            if validation.has_conflicts or validation.has_warnings:
                body["blackout_status"] = plain(container.pto_request_service.blackout_status(pto_request))
            return jsonify(body), 201
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("create PTO request", e)

    @app.route("/api/pto-requests/preview-blackouts", methods=["POST"], endpoint="pto.requests.preview-blackouts")
    @login_required
    def pto_requests_preview_blackouts():
        try:
            validation = container.pto_request_service.preview_blackouts(request_payload(), user=me())
            return jsonify({"data": plain(validation.to_dict())})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("preview blackout periods", e)

    @app.route("/api/pto-requests/<int:request_id>", methods=["GET"], endpoint="pto.requests.show")
    @login_required
    def pto_requests_show(request_id: int):
        try:
            service = container.pto_request_service
            pto_request = service.get_request(request_id)
            if pto_request.user_id != current_user_id() and not session_can(*_APPROVE):
                raise AuthorizationError(FORBIDDEN_MESSAGE)
            return jsonify({"data": request_body(pto_request), "blackout_status": plain(service.blackout_status(pto_request))})
        except DomainError as e:
            return json_error(e)

    @app.route("/api/pto-requests/<int:request_id>", methods=["PUT", "PATCH"], endpoint="pto.requests.update")
    @login_required
    def pto_requests_update(request_id: int):
        try:
            pto_request, validation = container.pto_request_service.update_request(
                request_id, request_payload(), actor=me(), can_manage=session_can(*_MANAGE)
            )
            return jsonify(
                {
                    "data": request_body(pto_request),
                    "validation": plain(validation.to_dict()),
                    "message": "PTO request updated successfully.",
                }
            )
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("update PTO request", e)

    @app.route("/api/pto-requests/<int:request_id>/cancel-own", methods=["POST"], endpoint="pto.requests.cancel-own")
    @login_required
    def pto_requests_cancel_own(request_id: int):
        try:
            pto_request = container.pto_request_service.cancel_own_request(request_id, user=me())
            return jsonify({"data": request_body(pto_request), "message": "PTO request cancelled successfully."})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("cancel PTO request", e)

    @app.route("/api/pto-requests/<int:request_id>/approval-chain", methods=["GET"], endpoint="pto.requests.approval-chain")
    @login_required
    def pto_requests_approval_chain(request_id: int):
        try:
            approvals = container.pto_approval_service.approval_chain(request_id)
            return jsonify({"data": plain([a.to_dict() for a in approvals])})
        except DomainError as e:
            return json_error(e)

    # -------- Approvers --------
    @app.route("/api/pto-requests/<int:request_id>/approve", methods=["POST"], endpoint="pto.requests.approve")
    @login_required
    def pto_requests_approve(request_id: int):
        try:
            pto_request = container.pto_approval_service.approve(
                request_id,
                request_payload(),
                approver=me(),
                can_approve_any=session_can(*_MANAGE),
                can_approve=session_can(*_APPROVE),
            )
            return jsonify({"data": request_body(pto_request), "message": "Request approved successfully"})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("approve PTO request", e)

    @app.route("/api/pto-requests/<int:request_id>/deny", methods=["POST"], endpoint="pto.requests.deny")
    @login_required
    def pto_requests_deny(request_id: int):
        try:
            pto_request = container.pto_approval_service.deny(
                request_id,
                request_payload(),
                approver=me(),
                can_approve_any=session_can(*_MANAGE),
                can_approve=session_can(*_APPROVE),
            )
            return jsonify({"data": request_body(pto_request), "message": "Request denied successfully"})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("deny PTO request", e)

    @app.route("/api/pto-approvals/pending", methods=["GET"], endpoint="pto.approvals.pending")
    @login_required
    def pto_approvals_pending():
        try:
            requests = container.pto_approval_service.pending_approvals(me())
            return jsonify({"data": plain([r.to_dict() for r in requests]), "meta": {"count": len(requests)}})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("fetch pending approvals", e)

    @app.route("/api/pto-approvals/mine", methods=["GET"], endpoint="pto.approvals.mine")
    @login_required
    def pto_approvals_mine():
        try:
            status = request.args.get("status", "pending")
            requests = container.pto_approval_service.my_approvals(me(), status=status)
            return jsonify(
                {"data": plain([r.to_dict() for r in requests]), "meta": {"count": len(requests), "status_filter": status}}
            )
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("fetch approvals", e)

    # -------- Administration --------
    @app.route("/api/pto-requests/<int:request_id>/cancel", methods=["POST"], endpoint="pto.requests.cancel")
    @permission_required(*_MANAGE)
    def pto_requests_cancel(request_id: int):
        try:
            pto_request = container.pto_request_service.cancel_request(request_id)
            return jsonify({"data": request_body(pto_request), "message": "PTO request cancelled successfully."})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("cancel PTO request", e)

    @app.route("/api/pto-requests/<int:request_id>", methods=["DELETE"], endpoint="pto.requests.destroy")
    @permission_required(*_MANAGE)
    def pto_requests_destroy(request_id: int):
        try:
            container.pto_request_service.delete_request(request_id)
            return jsonify({"message": "PTO request deleted successfully."})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("delete PTO request", e)

    @app.route(
        "/api/pto-requests/<int:request_id>/approve-with-blackout-review",
        methods=["POST"],
        endpoint="pto.requests.approve-with-blackout-review",
    )
    @permission_required(*_MANAGE)
    def pto_requests_approve_with_review(request_id: int):
        try:
            pto_request = container.pto_approval_service.approve_with_blackout_review(
                request_id, request_payload(), approver=me()
            )
            return jsonify(
                {"data": request_body(pto_request), "message": "Request approved successfully with blackout documentation"}
            )
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("approve request", e)

    @app.route(
        "/api/pto-requests/<int:request_id>/emergency-override",
        methods=["POST"],
        endpoint="pto.requests.emergency-override",
    )
    @permission_required(*_MANAGE)
    def pto_requests_emergency_override(request_id: int):
        try:
            pto_request, message = container.pto_request_service.process_emergency_override(
                request_id, request_payload(), approver=me()
            )
            return jsonify({"data": request_body(pto_request), "message": message})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("process emergency override", e)

    @app.route("/api/pto-requests/<int:request_id>/auto-reject", methods=["POST"], endpoint="pto.requests.auto-reject")
    @permission_required(*_MANAGE)
    def pto_requests_auto_reject(request_id: int):
        try:
            pto_request = container.pto_request_service.auto_reject_for_blackout(request_id)
            return jsonify({"data": request_body(pto_request), "rejected": pto_request.was_denied_for_blackout})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("auto-reject PTO request", e)

    @app.route(
        "/api/pto-requests/<int:request_id>/blackout-analysis",
        methods=["GET"],
        endpoint="pto.requests.blackout-analysis",
    )
    @permission_required(*_APPROVE)
    def pto_requests_blackout_analysis(request_id: int):
        try:
            return jsonify(plain(container.pto_approval_service.blackout_analysis(request_id)))
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("get blackout analysis", e)
