from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import AttendanceMethod, AttendanceStatus, FailureKind
from ..core.exceptions import (
    AlreadyExcused,
    AuthorizationError,
    DomainError,
    GeofenceNotApplicable,
    OutOfRange,
    SessionNotFound,
    TokenTampered,
    ValidationError,
)
from ..core.policy import AttendancePolicy
from ..geo.geolocation import accuracy_level, distance_meters
from ..programs.repository import ProgramRepository
from ..sessions.model import Session
from ..sessions.repository import SessionRepository
from ..tokens.model import AttendanceToken
from ..tokens.verifier import TokenVerifier
from ..users.model import Actor
from ..users.permissions import is_session_staff, require_session_staff
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord, CheckInRequest, Geolocation, MarkResult
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Check-in orchestration (the attendance marker) plus staff actions.

    A check-in attempt moves Received -> TokenValidated -> GeofenceEvaluated
    -> Recorded, or ends Rejected at any stage. Stage failures are raised as
    DomainError subclasses internally and returned to callers as a tagged
    ``MarkResult``.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        sessions: SessionRepository,
        verifier: TokenVerifier,
        programs: ProgramRepository,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        policy: AttendancePolicy | None = None,
    ):
        self._attendance = attendance
        self._sessions = sessions
        self._verifier = verifier
        self._programs = programs
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._policy = policy or AttendancePolicy()

    def _get_session(self, session_id: str) -> Session:
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise SessionNotFound(session_id)
        return session

    def mark_attendance(self, request: CheckInRequest, *, now: datetime | None = None) -> MarkResult:
        now = now or now_local()
        try:
            return self._mark(request, now)
        except DomainError as exc:
            kind = exc.kind or FailureKind.INVALID_INPUT
            log = logger.warning if isinstance(exc, TokenTampered) else logger.info
            log(
                "Rejected check-in user=%s session=%s method=%s: %s (%s)",
                request.user_id,
                request.session_id,
                getattr(request.method, "value", request.method),
                kind.value,
                exc,
            )
            return MarkResult.rejected(kind, str(exc), distance_meters=getattr(exc, "distance_meters", None))

    def _mark(self, request: CheckInRequest, now: datetime) -> MarkResult:
        user_id = require_non_empty(request.user_id, "User")
        session_id = require_non_empty(request.session_id, "Session")
        try:
            method = AttendanceMethod(request.method)
        except ValueError:
            raise ValidationError(f"Unknown attendance method: {request.method!r}")

        session = self._get_session(session_id)

        if request.actor is not None and request.actor.user_id != user_id:
            if not is_session_staff(request.actor, session):
                raise AuthorizationError("You can only check yourself in")

        if method == AttendanceMethod.MANUAL:
            require_session_staff(request.actor, session)
        elif not self._programs.is_enrolled(session.program_id, user_id):
            raise AuthorizationError("You are not enrolled in this program")

        token = None
        if method == AttendanceMethod.QR_CODE:
            if not request.token:
                raise ValidationError("QR token is required")
            token = self._verifier.verify(request.token, expected_session_id=session.session_id, now=now)

        distance = None
        if method == AttendanceMethod.GEOLOCATION or (
            method == AttendanceMethod.QR_CODE and request.geolocation is not None
        ):
            distance = self._evaluate_geofence(session, request.geolocation)

        return self._record(
            session, user_id=user_id, method=method, request=request, now=now, distance=distance, token=token
        )

    def _evaluate_geofence(self, session: Session, geolocation: Optional[Geolocation]) -> float:
        if not session.is_in_person or session.location is None:
            raise GeofenceNotApplicable("Location check-in is only available for in-person sessions")
        if geolocation is None:
            raise ValidationError("Geolocation is required")

        radius = session.location.radius_meters
        if radius is None:
            radius = self._policy.default_radius_meters

        distance = distance_meters(geolocation, session.location)
        logger.debug(
            "Geofence session=%s distance=%.1fm radius=%.1fm accuracy=%s",
            session.session_id,
            distance,
            radius,
            accuracy_level(geolocation.accuracy_meters),
        )
        if distance > radius:
            raise OutOfRange(distance, radius)
        return distance

    def _record(
        self,
        session: Session,
        *,
        user_id: str,
        method: AttendanceMethod,
        request: CheckInRequest,
        now: datetime,
        distance: Optional[float],
        token: Optional[AttendanceToken] = None,
    ) -> MarkResult:
        today = now.date()

        existing = self._attendance.get_for_user_session_date(user_id, session.session_id, today)
        if existing and existing.status != AttendanceStatus.ABSENT:
            return self._resolve_existing(existing)

        cutoff = self._factory.grace_cutoff(
            session=session, today=today, default_threshold_minutes=self._policy.late_threshold_minutes
        )
        strategy = self._factory.for_checkin(now=now, cutoff=cutoff)
        decision = strategy.decide_checkin(now=now, session=session, cutoff=cutoff)
        marked_by = request.actor.user_id if request.actor else user_id

        # Single-use tokens are spent only once no rejection remains.
        if token is not None:
            self._verifier.redeem(token, now=now)

        if existing is None:
            record, created = self._attendance.insert_if_absent(
                user_id=user_id,
                session_id=session.session_id,
                program_id=session.program_id,
                attendance_date=today,
                status=decision.status,
                method=method,
                check_in_time=now,
                distance_meters=distance,
                marked_by=marked_by,
                note=decision.note,
            )
            if created:
                logger.info(
                    "Recorded %s check-in user=%s session=%s via %s",
                    record.status.value,
                    user_id,
                    session.session_id,
                    method.value,
                )
                return MarkResult.created(record)
            if record.status != AttendanceStatus.ABSENT:
                return self._resolve_existing(record)
            existing = record

        promoted = self._attendance.promote_absent(
            attendance_id=existing.attendance_id,
            status=decision.status,
            method=method,
            check_in_time=now,
            distance_meters=distance,
            marked_by=marked_by,
            note=decision.note,
        )
        current = self._attendance.get_for_user_session_date(user_id, session.session_id, today)
        if not promoted:
            return self._resolve_existing(current)

        logger.info(
            "Recorded %s check-in over absence user=%s session=%s via %s",
            current.status.value,
            user_id,
            session.session_id,
            method.value,
        )
        return MarkResult.created(current)

    def _resolve_existing(self, existing: AttendanceRecord) -> MarkResult:
        if existing.status == AttendanceStatus.EXCUSED:
            raise AlreadyExcused("You have been excused from this session today")
        logger.debug(
            "Duplicate check-in user=%s session=%s on %s",
            existing.user_id,
            existing.session_id,
            existing.attendance_date,
        )
        return MarkResult.already_present(existing)

    def check_out(self, user_id: str, session_id: str, *, now: datetime | None = None) -> AttendanceRecord:
        now = now or now_local()
        today = now.date()

        record = self._attendance.get_for_user_session_date(user_id, session_id, today)
        if not record or not record.status.attended:
            raise ValidationError("You have not checked in to this session today")
        if record.check_out_time is not None:
            raise ValidationError("You have already checked out of this session")

        if not self._attendance.update_checkout(attendance_id=record.attendance_id, check_out_time=now):
            raise ValidationError("You have already checked out of this session")
        return self._attendance.get_for_user_session_date(user_id, session_id, today)

    def grant_excuse(
        self,
        actor: Actor,
        *,
        user_id: str,
        session_id: str,
        note: str,
        attendance_date: date | None = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        session = self._get_session(session_id)
        require_session_staff(actor, session)
        user_id = require_non_empty(user_id, "User")
        note = require_non_empty(note, "Reason")
        attendance_date = attendance_date or (now or now_local()).date()

        record, created = self._attendance.insert_if_absent(
            user_id=user_id,
            session_id=session.session_id,
            program_id=session.program_id,
            attendance_date=attendance_date,
            status=AttendanceStatus.EXCUSED,
            method=AttendanceMethod.MANUAL,
            marked_by=actor.user_id,
            note=note,
        )
        if not created:
            self._attendance.set_excused(attendance_id=record.attendance_id, marked_by=actor.user_id, note=note)
            record = self._attendance.get_for_user_session_date(user_id, session.session_id, attendance_date)

        logger.info(
            "Excused user=%s session=%s on %s by %s", user_id, session.session_id, attendance_date, actor.user_id
        )
        return record

    def record_absentees(
        self,
        actor: Actor,
        *,
        session_id: str,
        user_ids: Iterable[str],
        attendance_date: date | None = None,
        now: datetime | None = None,
    ) -> int:
        """Insert Absent rows for roster members with no record that day."""

        session = self._get_session(session_id)
        require_session_staff(actor, session)
        attendance_date = attendance_date or (now or now_local()).date()

        roster: list[str] = []
        for u in user_ids:
            if not isinstance(u, str):
                raise ValidationError(f"Roster entries must be user ids, got {u!r}")
            if u.strip():
                roster.append(u.strip())

        created_count = 0
        for uid in dict.fromkeys(roster):
            _, created = self._attendance.insert_if_absent(
                user_id=uid,
                session_id=session.session_id,
                program_id=session.program_id,
                attendance_date=attendance_date,
                status=AttendanceStatus.ABSENT,
                method=AttendanceMethod.MANUAL,
                marked_by=actor.user_id,
            )
            created_count += int(created)

        logger.info(
            "Recorded %d absentee(s) for session=%s on %s by %s",
            created_count,
            session.session_id,
            attendance_date,
            actor.user_id,
        )
        return created_count
