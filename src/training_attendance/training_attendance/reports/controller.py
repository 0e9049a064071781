from __future__ import annotations

import csv
import io

from flask import Flask, jsonify, request

from ..attendance.presenter import record_to_csv_row, record_to_json
from ..common.datetime_utils import parse_optional_date
from ..common.http import current_actor, login_required
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, SessionNotFound, ValidationError
from ..users.permissions import require_session_staff
from .calculator.base import AttendanceSummary
from .service import AttendanceHistory

CSV_FIELDS = [
    "date",
    "user_id",
    "program_id",
    "session_id",
    "status",
    "method",
    "check_in",
    "check_out",
    "distance_meters",
    "note",
]


def summary_to_json(s: AttendanceSummary) -> dict:
    return {
        "total": s.total,
        "present_count": s.present_count,
        "late_count": s.late_count,
        "attended_count": s.attended_count,
        "absent_count": s.absent_count,
        "excused_count": s.excused_count,
        "rate": s.rate,
    }


def history_to_json(history: AttendanceHistory) -> dict:
    return {
        "records": [record_to_json(r) for r in history.records],
        "summary": summary_to_json(history.summary),
        "by_user": [{"user_id": u.user_id, **summary_to_json(u.summary)} for u in history.by_user],
    }


def register(app: Flask, container: Container) -> None:
    def _history_from_args() -> AttendanceHistory:
        actor = current_actor()
        user_id = (request.args.get("user_id") or "").strip() or None
        program_id = (request.args.get("program_id") or "").strip() or None
        if not user_id and not program_id:
            user_id = actor.user_id

        if actor.role == Role.TRAINEE and (program_id or user_id != actor.user_id):
            raise AuthorizationError("Trainees can only view their own attendance")

        try:
            start = parse_optional_date(request.args.get("start"))
            end = parse_optional_date(request.args.get("end"))
        except ValueError:
            raise ValidationError("start/end must be YYYY-MM-DD")

        return container.query_service.get_history(user_id=user_id, program_id=program_id, start=start, end=end)

    @app.route("/api/attendance/history", methods=["GET"], endpoint="api_attendance_history")
    @login_required
    def api_attendance_history():
        return jsonify({"success": True, "data": history_to_json(_history_from_args())}), 200

    @app.route("/api/attendance/history.csv", methods=["GET"], endpoint="api_attendance_history_csv")
    @login_required
    def api_attendance_history_csv():
        history = _history_from_args()

        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for r in history.records:
            writer.writerow(record_to_csv_row(r))

        return app.response_class(
            out.getvalue().encode("utf-8-sig"),
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=attendance_history.csv"},
        )

    @app.route("/api/sessions/<session_id>/attendance", methods=["GET"], endpoint="api_session_attendance")
    @login_required
    def api_session_attendance(session_id: str):
        actor = current_actor()
        session_obj = container.sessions_repo.get_by_id(session_id)
        if not session_obj:
            raise SessionNotFound(session_id)
        require_session_staff(actor, session_obj)

        try:
            on = parse_optional_date(request.args.get("date"))
        except ValueError:
            raise ValidationError("date must be YYYY-MM-DD")

        report = container.query_service.get_session_report(session_obj.session_id, on=on)
        return jsonify({"success": True, "data": history_to_json(report)}), 200
