"""Flask helpers shared by the feature controllers."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, session
from werkzeug.exceptions import HTTPException

from ..core.enums import FailureKind, Role
from ..core.exceptions import AuthorizationError, DomainError, ValidationError
from ..users.model import Actor

logger = logging.getLogger(__name__)

FAILURE_STATUS = {
    FailureKind.INVALID_INPUT: 400,
    FailureKind.SESSION_NOT_FOUND: 404,
    FailureKind.TOKEN_TAMPERED: 400,
    FailureKind.TOKEN_EXPIRED: 400,
    FailureKind.TOKEN_ALREADY_USED: 400,
    FailureKind.SESSION_MISMATCH: 400,
    FailureKind.GEOFENCE_NOT_APPLICABLE: 400,
    FailureKind.OUT_OF_RANGE: 400,
    FailureKind.ALREADY_EXCUSED: 409,
    FailureKind.UNAUTHORIZED: 403,
}


def status_for(kind: Optional[FailureKind]) -> int:
    return FAILURE_STATUS.get(kind, 400)


def error_response(kind: Optional[FailureKind], message: str, **extra: Any):
    body = {"success": False, "error": (kind or FailureKind.INVALID_INPUT).value, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return jsonify(body), status_for(kind)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "error": "Unauthenticated", "message": "Please log in first"}), 401
        return view(*args, **kwargs)

    return wrapper


def current_actor() -> Actor:
    try:
        role = Role(session.get("role"))
    except ValueError:
        raise AuthorizationError("Unknown role")
    return Actor(user_id=str(session["user_id"]), role=role)


def optional_float(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        return error_response(exc.kind, str(exc))

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Unhandled error")
        return jsonify({"success": False, "error": "ServerError", "message": "Internal server error"}), 500
