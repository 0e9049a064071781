from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceMethod, AttendanceStatus, FailureKind, MarkOutcome
from ..users.model import Actor


@dataclass(frozen=True)
class AttendanceRecord:
    """One trainee's attendance for one session on one calendar day."""

    attendance_id: int
    user_id: str
    session_id: str
    program_id: str
    attendance_date: date
    status: AttendanceStatus
    method: AttendanceMethod
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    distance_meters: Optional[float] = None
    marked_by: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class Geolocation:
    """Device-reported position at check-in time."""

    lat: float
    lng: float
    accuracy_meters: Optional[float] = None


@dataclass(frozen=True)
class CheckInRequest:
    user_id: str
    session_id: str
    method: AttendanceMethod
    token: Optional[str] = None
    geolocation: Optional[Geolocation] = None
    # Who submits the request; required for MANUAL marking.
    actor: Optional[Actor] = None


@dataclass(frozen=True)
class MarkResult:
    """Tagged result of a check-in: Created | AlreadyPresent | Rejected(kind)."""

    outcome: MarkOutcome
    record: Optional[AttendanceRecord] = None
    failure: Optional[FailureKind] = None
    message: Optional[str] = None
    distance_meters: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.outcome != MarkOutcome.REJECTED

    @classmethod
    def created(cls, record: AttendanceRecord) -> "MarkResult":
        return cls(outcome=MarkOutcome.CREATED, record=record, distance_meters=record.distance_meters)

    @classmethod
    def already_present(cls, record: AttendanceRecord) -> "MarkResult":
        return cls(outcome=MarkOutcome.ALREADY_PRESENT, record=record, distance_meters=record.distance_meters)

    @classmethod
    def rejected(
        cls, failure: FailureKind, message: str, *, distance_meters: Optional[float] = None
    ) -> "MarkResult":
        return cls(outcome=MarkOutcome.REJECTED, failure=failure, message=message, distance_meters=distance_meters)
