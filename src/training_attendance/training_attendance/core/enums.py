from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Platform roles supplied by the identity layer."""

    SUPER_ADMIN = "SuperAdmin"
    PROGRAM_MANAGER = "ProgramManager"
    FACILITATOR = "Facilitator"
    TRAINEE = "Trainee"
    IT_SUPPORT = "ITSupport"


class SessionType(str, Enum):
    IN_PERSON = "in-person"
    ONLINE = "online"


class AttendanceStatus(str, Enum):
    """Status stored on an attendance record."""

    PRESENT = "Present"
    LATE = "Late"
    ABSENT = "Absent"
    EXCUSED = "Excused"

    @property
    def attended(self) -> bool:
        return self in (AttendanceStatus.PRESENT, AttendanceStatus.LATE)


class AttendanceMethod(str, Enum):
    QR_CODE = "qr_code"
    GEOLOCATION = "geolocation"
    MANUAL = "manual"


class MarkOutcome(str, Enum):
    """Tagged outcome of a single check-in attempt."""

    CREATED = "Created"
    ALREADY_PRESENT = "AlreadyPresent"
    REJECTED = "Rejected"


class FailureKind(str, Enum):
    """Every reason a check-in (or token issuance) can be refused."""

    INVALID_INPUT = "InvalidInput"
    SESSION_NOT_FOUND = "SessionNotFound"
    TOKEN_TAMPERED = "TokenTampered"
    TOKEN_EXPIRED = "TokenExpired"
    TOKEN_ALREADY_USED = "TokenAlreadyUsed"
    SESSION_MISMATCH = "SessionMismatch"
    GEOFENCE_NOT_APPLICABLE = "GeofenceNotApplicable"
    OUT_OF_RANGE = "OutOfRange"
    ALREADY_EXCUSED = "AlreadyExcused"
    UNAUTHORIZED = "Unauthorized"
