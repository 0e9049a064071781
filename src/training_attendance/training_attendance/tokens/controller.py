from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file

from ..common.http import current_actor, login_required
from ..core.exceptions import SessionNotFound
from ..container import Container
from ..users.permissions import require_session_staff
from .qr import render_qr_data_url, render_qr_png


def register(app: Flask, container: Container) -> None:
    def _issue_for(session_id: str, ttl_seconds=None):
        actor = current_actor()
        session_obj = container.sessions_repo.get_by_id(session_id)
        if not session_obj:
            raise SessionNotFound(session_id)
        require_session_staff(actor, session_obj)
        return container.token_issuer.issue_token(session_obj.session_id, actor.user_id, ttl_seconds)

    @app.route("/api/sessions/<session_id>/token", methods=["POST"], endpoint="issue_attendance_token")
    @login_required
    def issue_attendance_token(session_id: str):
        """Facilitator/manager: issue a fresh check-in token with its QR image."""

        data = request.get_json(silent=True) or {}
        bundle = _issue_for(session_id, data.get("ttl_seconds"))
        return jsonify(
            {
                "success": True,
                "data": {
                    "session_id": bundle.session_id,
                    "token": bundle.token_string,
                    "qr_payload": bundle.qr_payload,
                    "access_link": bundle.access_link,
                    "issued_at": bundle.issued_at.isoformat(),
                    "expires_at": bundle.expires_at.isoformat(),
                    "qr_image": render_qr_data_url(bundle.qr_payload),
                },
            }
        ), 201

    @app.route("/api/sessions/<session_id>/qr.png", methods=["GET"], endpoint="attendance_qr_image")
    @login_required
    def attendance_qr_image(session_id: str):
        """Issue a token with the default lifetime and return it as a printable PNG."""

        bundle = _issue_for(session_id)
        buf = io.BytesIO(render_qr_png(bundle.qr_payload))
        return send_file(buf, mimetype="image/png")
