from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local
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
from ..common.validators import FieldErrors, read_date
from ..container import Container
from ..core.exceptions import AuthorizationError, DomainError
from .service import LEGAL_ACKNOWLEDGMENT_TEXT

_MANAGE = ("timesheets.manage",)


def register(app: Flask, container: Container) -> None:
    def me():
        return container.user_service.get_user(current_user_id())

    @app.route("/api/timesheet", methods=["GET"], endpoint="time-clock.timesheet.index")
    @login_required
    def timesheet_index():
        try:
            errors = FieldErrors()
            week_start = read_date(request.args, "week_start", errors)
            errors.raise_if_any()

            user_id = request.args.get("user_id", type=int) or current_user_id()
            if user_id != current_user_id() and not session_can(*_MANAGE):
                raise AuthorizationError("Access denied. You cannot view this user's timesheet.")
            user = container.user_service.get_user(user_id)
            return jsonify(plain(container.timesheet_service.week_view(user, week_start)))
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("fetch timesheet", e)

    @app.route("/api/timesheet/legal-acknowledgment", methods=["GET"], endpoint="time-clock.timesheet.legal")
    @login_required
    def timesheet_legal():
        return jsonify({"legal_text": LEGAL_ACKNOWLEDGMENT_TEXT, "timestamp": now_local().isoformat()})

    @app.route("/api/timesheet/pending", methods=["GET"], endpoint="time-clock.timesheet.pending")
    @permission_required(*_MANAGE)
    def timesheet_pending():
        try:
            timesheets = container.timesheet_service.pending()
            return jsonify({"data": plain([t.to_dict() for t in timesheets]), "meta": {"count": len(timesheets)}})
        except Exception as e:
            return server_error("fetch pending timesheets", e)

    @app.route("/api/timesheet/submit", methods=["POST"], endpoint="time-clock.timesheet.submit")
    @login_required
    def timesheet_submit():
        try:
            timesheet = container.timesheet_service.submit(
                request_payload(), actor=me(), can_manage=session_can(*_MANAGE)
            )
            return jsonify({"data": plain(timesheet.to_dict()), "message": "Timesheet submitted successfully"})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("submit timesheet", e)

    @app.route(
        "/api/timesheet/<int:timesheet_id>/withdraw", methods=["POST"], endpoint="time-clock.timesheet.withdraw"
    )
    @login_required
    def timesheet_withdraw(timesheet_id: int):
        try:
            timesheet = container.timesheet_service.withdraw(
                timesheet_id, request_payload(), actor=me(), can_manage=session_can(*_MANAGE)
            )
            return jsonify({"data": plain(timesheet.to_dict()), "message": "Timesheet withdrawn successfully"})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("withdraw timesheet", e)

    @app.route("/api/timesheet/<int:timesheet_id>/approve", methods=["POST"], endpoint="time-clock.timesheet.approve")
    @permission_required(*_MANAGE)
    def timesheet_approve(timesheet_id: int):
        try:
            timesheet = container.timesheet_service.approve(timesheet_id, request_payload(), approver=me())
            return jsonify({"data": plain(timesheet.to_dict()), "message": "Timesheet approved successfully"})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("approve timesheet", e)

    @app.route("/api/timesheet/<int:timesheet_id>/reject", methods=["POST"], endpoint="time-clock.timesheet.reject")
    @permission_required(*_MANAGE)
    def timesheet_reject(timesheet_id: int):
        try:
            timesheet = container.timesheet_service.reject(timesheet_id, request_payload(), approver=me())
            return jsonify({"data": plain(timesheet.to_dict()), "message": "Timesheet rejected"})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("reject timesheet", e)

    @app.route("/api/timesheet/<int:timesheet_id>/process", methods=["POST"], endpoint="time-clock.timesheet.process")
    @permission_required(*_MANAGE)
    def timesheet_process(timesheet_id: int):
        try:
            timesheet = container.timesheet_service.process(timesheet_id, request_payload(), actor=me())
            return jsonify({"data": plain(timesheet.to_dict()), "message": "Timesheet processed successfully"})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("process timesheet", e)

    @app.route("/api/timesheet/<int:timesheet_id>/history", methods=["GET"], endpoint="time-clock.timesheet.history")
    @login_required
    def timesheet_history(timesheet_id: int):
        try:
            service = container.timesheet_service
            timesheet = service.get_timesheet(timesheet_id)
            if timesheet.user_id != current_user_id() and not session_can(*_MANAGE):
                raise AuthorizationError("Access denied. You cannot view this user's timesheet.")
            return jsonify({"data": plain([a.to_dict() for a in service.history(timesheet_id)])})
        except DomainError as e:
            return json_error(e)

    @app.route("/api/timesheet/clock-in", methods=["POST"], endpoint="time-clock.clock-in")
    @login_required
    def timesheet_clock_in():
        try:
            entry = container.timesheet_service.clock_in(me())
            return jsonify({"data": plain(entry.to_dict()), "message": "Clocked in successfully"}), 201
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("clock in", e)

    @app.route("/api/timesheet/clock-out", methods=["POST"], endpoint="time-clock.clock-out")
    @login_required
    def timesheet_clock_out():
        try:
            entry = container.timesheet_service.clock_out(me(), request_payload())
            return jsonify({"data": plain(entry.to_dict()), "message": "Clocked out successfully"})
        except DomainError as e:
            return json_error(e)
        except Exception as e:
            return server_error("clock out", e)
