from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import (
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
from ..core.exceptions import AuthorizationError, DomainError, ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/pto-balances", methods=["GET"], endpoint="pto.balances.index")
    @permission_required("pto.manage")
    def pto_balances_index():
        balances = container.pto_balance_service.list_balances(
            year=request.args.get("year", type=int),
            user_id=request.args.get("user_id", type=int),
            pto_type_id=request.args.get("pto_type_id", type=int),
        )
        return jsonify(plain([b.to_dict() for b in balances]))

    @app.route("/api/pto-balances", methods=["POST"], endpoint="pto.balances.store")
    @permission_required("pto.manage")
    def pto_balances_store():
        try:
            balance = container.pto_balance_service.create_balance(request_payload(), created_by_id=current_user_id())
            return jsonify(plain(balance.to_dict())), 201
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("create PTO Balance", e)

    @app.route("/api/pto-balances/<int:balance_id>", methods=["GET"], endpoint="pto.balances.show")
    @permission_required("pto.manage")
    def pto_balances_show(balance_id: int):
        try:
            return jsonify(plain(container.pto_balance_service.get_balance(balance_id).to_dict()))
        except DomainError as e:
            return json_error(e)

    @app.route("/api/pto-balances/<int:balance_id>", methods=["PUT", "PATCH"], endpoint="pto.balances.update")
    @permission_required("pto.manage")
    def pto_balances_update(balance_id: int):
        try:
            balance = container.pto_balance_service.update_balance(
                balance_id, request_payload(), created_by_id=current_user_id()
            )
            return jsonify(plain(balance.to_dict()))
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("update PTO Balance", e)

    @app.route("/api/pto-balances/<int:balance_id>/adjust", methods=["POST"], endpoint="pto.balances.adjust")
    @permission_required("pto.manage")
    def pto_balances_adjust(balance_id: int):
        try:
            balance, txn = container.pto_balance_service.adjust_balance(
                balance_id, request_payload(), created_by_id=current_user_id()
            )
            return jsonify(plain({"balance": balance.to_dict(), "transaction": txn.to_dict()}))
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("adjust PTO Balance", e)

    @app.route("/api/pto-balances/<int:balance_id>", methods=["DELETE"], endpoint="pto.balances.destroy")
    @permission_required("pto.manage")
    def pto_balances_destroy(balance_id: int):
        try:
            container.pto_balance_service.delete_balance(balance_id)
            return jsonify({"message": "PTO Balance deleted successfully."})
        except DomainError as e:
            return json_error(e)

    @app.route("/api/pto-balances/reset", methods=["POST"], endpoint="pto.balances.reset")
    @permission_required("pto.manage")
    def pto_balances_reset():
        try:
            year = request_payload().get("year")
            try:
                year = int(year)
            except (TypeError, ValueError):
                raise ValidationError("The year field is required.", errors={"year": ["The year field is required."]})
            stats = container.pto_balance_service.reset_year(year, created_by_id=current_user_id())
            return jsonify({"message": f"{stats['created']} PTO balances reset for year {year}", "stats": stats})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("reset PTO Balances", e)

    @app.route("/api/users/<int:user_id>/pto-balances/summary", methods=["GET"], endpoint="pto.balances.summary")
    @login_required
    def pto_balances_summary(user_id: int):
        try:
            if user_id != current_user_id() and not session_can("pto.manage", "hr.access"):
                raise AuthorizationError("You do not have permission to access this resource.")
            rows = container.pto_balance_service.user_summary(user_id, year=request.args.get("year", type=int))
            return jsonify(plain(rows))
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("get PTO Balance summary", e)

    @app.route("/api/pto-transactions", methods=["GET"], endpoint="pto.transactions.index")
    @login_required
    def pto_transactions_index():
        user_id = request.args.get("user_id", type=int) or current_user_id()
        if user_id != current_user_id() and not session_can("pto.manage"):
            return json_error(AuthorizationError("You do not have permission to access this resource."))
        txns = container.pto_balance_service.list_transactions(
            user_id=user_id,
            pto_type_id=request.args.get("pto_type_id", type=int),
            limit=min(request.args.get("limit", default=50, type=int), 500),
        )
        return jsonify(plain([t.to_dict() for t in txns]))
