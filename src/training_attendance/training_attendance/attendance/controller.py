from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local
from ..common.http import current_actor, login_required, optional_float, status_for
from ..common.validators import require_date, require_non_empty
from ..container import Container
from ..core.enums import AttendanceMethod, MarkOutcome
from ..core.exceptions import SessionNotFound, ValidationError
from .model import CheckInRequest, Geolocation
from .presenter import mark_result_to_json, record_to_json


def _geolocation_from(data) -> Geolocation | None:
    lat = data.get("latitude", data.get("lat"))
    lng = data.get("longitude", data.get("lng"))
    if lat in (None, "") and lng in (None, ""):
        return None
    return Geolocation(
        lat=optional_float(lat, "Latitude"),
        lng=optional_float(lng, "Longitude"),
        accuracy_meters=optional_float(data.get("accuracy"), "Accuracy"),
    )


def _parse_method(value) -> AttendanceMethod:
    try:
        return AttendanceMethod(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError("method must be one of qr_code, geolocation, manual")


def register(app: Flask, container: Container) -> None:
    def _respond(check_in: CheckInRequest):
        result = container.attendance_service.mark_attendance(check_in)
        if result.outcome == MarkOutcome.CREATED:
            code = 201
        elif result.outcome == MarkOutcome.ALREADY_PRESENT:
            code = 200
        else:
            code = status_for(result.failure)
        return jsonify(mark_result_to_json(result)), code

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="api_mark_attendance")
    @login_required
    def api_mark_attendance():
        actor = current_actor()
        data = request.get_json(silent=True) or {}
        method = _parse_method(data.get("method"))

        user_id = actor.user_id
        if method == AttendanceMethod.MANUAL:
            user_id = require_non_empty(data.get("user_id"), "user_id")

        check_in = CheckInRequest(
            user_id=user_id,
            session_id=str(data.get("session_id") or "").strip(),
            method=method,
            token=data.get("token") or data.get("qr_data"),
            geolocation=_geolocation_from(data),
            actor=actor,
        )
        return _respond(check_in)

    @app.route("/attendance/checkin", methods=["GET"], endpoint="attendance_access_link")
    @login_required
    def attendance_access_link():
        """Target of the access link embedded in the QR code.

        Opening the link only checks the token; the check-in itself is the
        POST to the same URL, so link prefetchers never mark anyone present.
        """

        session_id = require_non_empty(request.args.get("sessionId"), "sessionId")
        session_obj = container.sessions_repo.get_by_id(session_id)
        if not session_obj:
            raise SessionNotFound(session_id)
        token = container.token_verifier.verify(
            require_non_empty(request.args.get("token"), "token"), expected_session_id=session_obj.session_id
        )
        return jsonify(
            {
                "success": True,
                "data": {
                    "session_id": session_obj.session_id,
                    "title": session_obj.title,
                    "expires_at": token.expires_at.isoformat(),
                    "confirm": {"method": "POST", "url": request.full_path},
                },
            }
        ), 200

    @app.route("/attendance/checkin", methods=["POST"], endpoint="attendance_access_link_confirm")
    @login_required
    def attendance_access_link_confirm():
        actor = current_actor()
        data = {**request.args.to_dict(), **(request.get_json(silent=True) or {})}
        check_in = CheckInRequest(
            user_id=actor.user_id,
            session_id=str(data.get("sessionId") or "").strip(),
            method=AttendanceMethod.QR_CODE,
            token=data.get("token"),
            geolocation=_geolocation_from(data),
            actor=actor,
        )
        return _respond(check_in)

    @app.route("/api/attendance/checkout", methods=["POST"], endpoint="api_checkout")
    @login_required
    def api_checkout():
        actor = current_actor()
        data = request.get_json(silent=True) or {}
        session_id = require_non_empty(data.get("session_id"), "session_id")
        record = container.attendance_service.check_out(actor.user_id, session_id)
        return jsonify({"success": True, "data": record_to_json(record)}), 200

    @app.route("/api/attendance/excuse", methods=["POST"], endpoint="api_grant_excuse")
    @login_required
    def api_grant_excuse():
        actor = current_actor()
        data = request.get_json(silent=True) or {}
        record = container.attendance_service.grant_excuse(
            actor,
            user_id=require_non_empty(data.get("user_id"), "user_id"),
            session_id=require_non_empty(data.get("session_id"), "session_id"),
            note=data.get("reason") or "",
            attendance_date=require_date(data.get("date"), "date", default=now_local().date()),
        )
        return jsonify({"success": True, "data": record_to_json(record)}), 200

    @app.route("/api/sessions/<session_id>/absentees", methods=["POST"], endpoint="api_record_absentees")
    @login_required
    def api_record_absentees(session_id: str):
        actor = current_actor()
        data = request.get_json(silent=True) or {}
        user_ids = data.get("user_ids")
        if not isinstance(user_ids, list):
            raise ValidationError("user_ids must be a list")

        created = container.attendance_service.record_absentees(
            actor,
            session_id=session_id,
            user_ids=user_ids,
            attendance_date=require_date(data.get("date"), "date", default=now_local().date()),
        )
        return jsonify({"success": True, "created": created}), 200
