from __future__ import annotations

from typing import Optional

from .enums import FailureKind


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind: Optional[FailureKind] = None


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = FailureKind.INVALID_INPUT


class InvalidCoordinate(ValidationError):
    """Raised when a latitude/longitude is missing or out of range."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = FailureKind.UNAUTHORIZED


class SessionNotFound(DomainError):
    kind = FailureKind.SESSION_NOT_FOUND

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id!r} not found")
        self.session_id = session_id


class TokenError(DomainError):
    """Base class for attendance token lifecycle failures."""


class TokenTampered(TokenError):
    kind = FailureKind.TOKEN_TAMPERED


class TokenExpired(TokenError):
    kind = FailureKind.TOKEN_EXPIRED


class TokenSuperseded(TokenExpired):
    """A newer token was issued for the session (single-active-token policy)."""


class TokenAlreadyUsed(TokenError):
    kind = FailureKind.TOKEN_ALREADY_USED


class SessionMismatch(TokenError):
    kind = FailureKind.SESSION_MISMATCH


class GeofenceNotApplicable(DomainError):
    kind = FailureKind.GEOFENCE_NOT_APPLICABLE


class OutOfRange(DomainError):
    kind = FailureKind.OUT_OF_RANGE

    def __init__(self, distance_meters: float, radius_meters: float):
        super().__init__(
            f"You are {distance_meters:.0f}m away from the session location "
            f"(allowed radius {radius_meters:.0f}m)"
        )
        self.distance_meters = distance_meters
        self.radius_meters = radius_meters


class AlreadyExcused(DomainError):
    kind = FailureKind.ALREADY_EXCUSED
