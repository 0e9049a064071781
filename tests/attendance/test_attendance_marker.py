from __future__ import annotations

import threading
from datetime import date, timedelta

import pytest

from conftest import SIGNING_KEY, InMemoryPrograms, InMemorySessions, point_north_of
from training_attendance.attendance.model import CheckInRequest, Geolocation
from training_attendance.attendance.service import AttendanceService
from training_attendance.core.enums import (
    AttendanceMethod,
    AttendanceStatus,
    FailureKind,
    MarkOutcome,
    Role,
    SessionType,
)
from training_attendance.core.exceptions import AuthorizationError, ValidationError
from training_attendance.core.policy import AttendancePolicy
from training_attendance.sessions.model import GeoFence, Session
from training_attendance.tokens.issuer import TokenIssuer
from training_attendance.tokens.verifier import TokenVerifier
from training_attendance.users.model import Actor

TRAINEE = Actor(user_id="t-1", role=Role.TRAINEE)
FACILITATOR = Actor(user_id="f-1", role=Role.FACILITATOR)
OTHER_FACILITATOR = Actor(user_id="f-9", role=Role.FACILITATOR)
MANAGER = Actor(user_id="m-1", role=Role.PROGRAM_MANAGER)


def _service(attendance_repo, sessions_repo, tokens_repo=None, *, single_use=False, policy=None, programs=None):
    verifier = TokenVerifier(SIGNING_KEY, tokens=tokens_repo, single_use=single_use)
    programs = programs or InMemoryPrograms({"p-web": {"t-1", "t-2", "t-3"}})
    return AttendanceService(attendance_repo, sessions_repo, verifier, programs, policy=policy or AttendancePolicy())


def _geo_request(meters_north: float, *, user_id="t-1", session_id="s-room") -> CheckInRequest:
    lat, lng = point_north_of(0.0, 0.0, meters_north)
    return CheckInRequest(
        user_id=user_id,
        session_id=session_id,
        method=AttendanceMethod.GEOLOCATION,
        geolocation=Geolocation(lat=lat, lng=lng, accuracy_meters=8),
    )


@pytest.fixture
def service(attendance_repo, sessions_repo, programs_repo):
    return _service(attendance_repo, sessions_repo, programs=programs_repo)


def test_geolocation_inside_radius_creates_present_record(service, attendance_repo, fixed_now):
    result = service.mark_attendance(_geo_request(49), now=fixed_now)

    assert result.outcome == MarkOutcome.CREATED
    assert result.record.status == AttendanceStatus.PRESENT
    assert result.record.method == AttendanceMethod.GEOLOCATION
    assert result.record.attendance_date == date(2026, 2, 2)
    assert result.record.check_in_time == fixed_now
    assert result.distance_meters == pytest.approx(49, abs=0.01)
    assert len(attendance_repo.all()) == 1


def test_geolocation_outside_radius_is_rejected_with_distance(service, attendance_repo, fixed_now):
    result = service.mark_attendance(_geo_request(51), now=fixed_now)

    assert result.outcome == MarkOutcome.REJECTED
    assert result.failure == FailureKind.OUT_OF_RANGE
    assert result.distance_meters == pytest.approx(51, abs=0.01)
    assert "51m" in result.message
    assert attendance_repo.all() == []


def test_radius_boundary_is_inclusive(attendance_repo, fixed_now):
    session = Session(
        session_id="s-edge",
        program_id="p-web",
        facilitator_id="f-1",
        session_type=SessionType.IN_PERSON,
        location=GeoFence(lat=0.0, lng=0.0, radius_meters=0),
    )
    svc = _service(attendance_repo, InMemorySessions(session))
    request = CheckInRequest(
        user_id="t-1",
        session_id="s-edge",
        method=AttendanceMethod.GEOLOCATION,
        geolocation=Geolocation(lat=0.0, lng=0.0),
    )

    assert svc.mark_attendance(request, now=fixed_now).outcome == MarkOutcome.CREATED


def test_missing_radius_uses_policy_default(attendance_repo, fixed_now):
    session = Session(
        session_id="s-wide",
        program_id="p-web",
        facilitator_id="f-1",
        session_type=SessionType.IN_PERSON,
        location=GeoFence(lat=0.0, lng=0.0),
    )
    svc = _service(attendance_repo, InMemorySessions(session), policy=AttendancePolicy(default_radius_meters=100))

    result = svc.mark_attendance(_geo_request(80, session_id="s-wide"), now=fixed_now)

    assert result.outcome == MarkOutcome.CREATED


def test_geolocation_on_online_session_is_not_applicable(service, fixed_now):
    result = service.mark_attendance(_geo_request(0, session_id="s-online"), now=fixed_now)

    assert result.failure == FailureKind.GEOFENCE_NOT_APPLICABLE


@pytest.mark.parametrize(
    "request_, failure",
    [
        (CheckInRequest(user_id="", session_id="s-room", method=AttendanceMethod.GEOLOCATION), FailureKind.INVALID_INPUT),
        (CheckInRequest(user_id="t-1", session_id="s-room", method="carrier-pigeon"), FailureKind.INVALID_INPUT),
        (CheckInRequest(user_id="t-1", session_id="nope", method=AttendanceMethod.GEOLOCATION), FailureKind.SESSION_NOT_FOUND),
        (CheckInRequest(user_id="t-1", session_id="s-room", method=AttendanceMethod.QR_CODE), FailureKind.INVALID_INPUT),
        (CheckInRequest(user_id="t-1", session_id="s-room", method=AttendanceMethod.GEOLOCATION), FailureKind.INVALID_INPUT),
        (
            CheckInRequest(
                user_id="t-1",
                session_id="s-room",
                method=AttendanceMethod.GEOLOCATION,
                geolocation=Geolocation(lat=91.0, lng=0.0),
            ),
            FailureKind.INVALID_INPUT,
        ),
    ],
)
def test_invalid_requests_are_rejected(service, attendance_repo, fixed_now, request_, failure):
    result = service.mark_attendance(request_, now=fixed_now)

    assert result.outcome == MarkOutcome.REJECTED
    assert result.failure == failure
    assert attendance_repo.all() == []


def test_second_checkin_same_day_returns_existing_record(service, attendance_repo, fixed_now):
    first = service.mark_attendance(_geo_request(10), now=fixed_now)
    second = service.mark_attendance(_geo_request(20), now=fixed_now + timedelta(minutes=30))

    assert second.outcome == MarkOutcome.ALREADY_PRESENT
    assert second.record == first.record
    assert len(attendance_repo.all()) == 1


def test_next_day_gets_a_new_record(service, attendance_repo, fixed_now):
    service.mark_attendance(_geo_request(10), now=fixed_now)
    result = service.mark_attendance(_geo_request(10), now=fixed_now + timedelta(days=1))

    assert result.outcome == MarkOutcome.CREATED
    assert len(attendance_repo.all()) == 2


def test_checkin_after_grace_period_is_late(service, fixed_now):
    result = service.mark_attendance(_geo_request(10), now=fixed_now.replace(minute=16))

    assert result.record.status == AttendanceStatus.LATE
    assert result.record.note == "1 min after grace period"


def test_checkin_at_cutoff_is_present(service, fixed_now):
    result = service.mark_attendance(_geo_request(10), now=fixed_now.replace(minute=15))

    assert result.record.status == AttendanceStatus.PRESENT


def test_concurrent_checkins_create_exactly_one_record(service, attendance_repo, fixed_now):
    barrier = threading.Barrier(10)
    results = []

    def check_in():
        barrier.wait(timeout=5)
        results.append(service.mark_attendance(_geo_request(5), now=fixed_now))

    threads = [threading.Thread(target=check_in) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    outcomes = [r.outcome for r in results]
    assert outcomes.count(MarkOutcome.CREATED) == 1
    assert outcomes.count(MarkOutcome.ALREADY_PRESENT) == 9
    assert len(attendance_repo.all()) == 1
    assert len({r.record.attendance_id for r in results}) == 1


class TestQrCheckIn:
    @pytest.fixture
    def issuer(self, sessions_repo):
        return TokenIssuer(sessions_repo, SIGNING_KEY)

    def test_online_session_qr_checkin(self, issuer, attendance_repo, sessions_repo, fixed_now):
        bundle = issuer.issue_token("s-online", "f-1", now=fixed_now)
        svc = _service(attendance_repo, sessions_repo)

        result = svc.mark_attendance(
            CheckInRequest(user_id="t-1", session_id="s-online", method=AttendanceMethod.QR_CODE, token=bundle.qr_payload),
            now=fixed_now,
        )

        assert result.outcome == MarkOutcome.CREATED
        assert result.record.method == AttendanceMethod.QR_CODE
        assert result.record.distance_meters is None

    def test_qr_with_geolocation_checks_geofence(self, issuer, attendance_repo, sessions_repo, fixed_now):
        bundle = issuer.issue_token("s-room", "f-1", now=fixed_now)
        svc = _service(attendance_repo, sessions_repo)
        lat, lng = point_north_of(0.0, 0.0, 120)

        result = svc.mark_attendance(
            CheckInRequest(
                user_id="t-1",
                session_id="s-room",
                method=AttendanceMethod.QR_CODE,
                token=bundle.token_string,
                geolocation=Geolocation(lat=lat, lng=lng),
            ),
            now=fixed_now,
        )

        assert result.failure == FailureKind.OUT_OF_RANGE

    @pytest.mark.parametrize(
        "mutate, failure",
        [
            (lambda s: s[:-1] + ("A" if s[-1] != "A" else "B"), FailureKind.TOKEN_TAMPERED),
            (lambda s: "not-a-token", FailureKind.TOKEN_TAMPERED),
        ],
    )
    def test_bad_tokens_are_rejected(self, issuer, attendance_repo, sessions_repo, fixed_now, mutate, failure):
        bundle = issuer.issue_token("s-online", "f-1", now=fixed_now)
        svc = _service(attendance_repo, sessions_repo)

        result = svc.mark_attendance(
            CheckInRequest(
                user_id="t-1", session_id="s-online", method=AttendanceMethod.QR_CODE, token=mutate(bundle.token_string)
            ),
            now=fixed_now,
        )

        assert result.failure == failure
        assert attendance_repo.all() == []

    def test_expired_token_is_rejected(self, issuer, attendance_repo, sessions_repo, fixed_now):
        bundle = issuer.issue_token("s-online", "f-1", 60, now=fixed_now)
        svc = _service(attendance_repo, sessions_repo)

        result = svc.mark_attendance(
            CheckInRequest(user_id="t-1", session_id="s-online", method=AttendanceMethod.QR_CODE, token=bundle.token_string),
            now=fixed_now + timedelta(seconds=61),
        )

        assert result.failure == FailureKind.TOKEN_EXPIRED

    def test_token_for_another_session_is_rejected(self, issuer, attendance_repo, sessions_repo, fixed_now):
        bundle = issuer.issue_token("s-room", "f-1", now=fixed_now)
        svc = _service(attendance_repo, sessions_repo)

        result = svc.mark_attendance(
            CheckInRequest(user_id="t-1", session_id="s-online", method=AttendanceMethod.QR_CODE, token=bundle.token_string),
            now=fixed_now,
        )

        assert result.failure == FailureKind.SESSION_MISMATCH

    def test_reusable_token_repeat_is_already_present(self, issuer, attendance_repo, sessions_repo, fixed_now):
        bundle = issuer.issue_token("s-online", "f-1", now=fixed_now)
        svc = _service(attendance_repo, sessions_repo)
        request = CheckInRequest(
            user_id="t-1", session_id="s-online", method=AttendanceMethod.QR_CODE, token=bundle.token_string
        )

        first = svc.mark_attendance(request, now=fixed_now)
        second = svc.mark_attendance(request, now=fixed_now + timedelta(seconds=5))

        assert second.outcome == MarkOutcome.ALREADY_PRESENT
        assert second.record == first.record

    def test_single_use_token_repeat_is_already_used(
        self, issuer, attendance_repo, sessions_repo, tokens_repo, fixed_now
    ):
        bundle = issuer.issue_token("s-online", "f-1", now=fixed_now)
        svc = _service(attendance_repo, sessions_repo, tokens_repo, single_use=True)

        first = svc.mark_attendance(
            CheckInRequest(user_id="t-1", session_id="s-online", method=AttendanceMethod.QR_CODE, token=bundle.token_string),
            now=fixed_now,
        )
        second = svc.mark_attendance(
            CheckInRequest(user_id="t-2", session_id="s-online", method=AttendanceMethod.QR_CODE, token=bundle.token_string),
            now=fixed_now,
        )

        assert first.outcome == MarkOutcome.CREATED
        assert second.failure == FailureKind.TOKEN_ALREADY_USED
        assert len(attendance_repo.all()) == 1

    def test_out_of_range_attempt_keeps_single_use_token(
        self, issuer, attendance_repo, sessions_repo, tokens_repo, fixed_now
    ):
        bundle = issuer.issue_token("s-room", "f-1", now=fixed_now)
        svc = _service(attendance_repo, sessions_repo, tokens_repo, single_use=True)

        def attempt(meters: float):
            lat, lng = point_north_of(0.0, 0.0, meters)
            return svc.mark_attendance(
                CheckInRequest(
                    user_id="t-1",
                    session_id="s-room",
                    method=AttendanceMethod.QR_CODE,
                    token=bundle.token_string,
                    geolocation=Geolocation(lat=lat, lng=lng),
                ),
                now=fixed_now,
            )

        far = attempt(80)
        near = attempt(10)

        assert far.failure == FailureKind.OUT_OF_RANGE
        assert near.outcome == MarkOutcome.CREATED
        assert len(attendance_repo.all()) == 1
        assert attempt(10).failure == FailureKind.TOKEN_ALREADY_USED

    def test_excused_rejection_keeps_single_use_token(
        self, issuer, attendance_repo, sessions_repo, tokens_repo, fixed_now
    ):
        bundle = issuer.issue_token("s-online", "f-1", now=fixed_now)
        svc = _service(attendance_repo, sessions_repo, tokens_repo, single_use=True)
        svc.grant_excuse(FACILITATOR, user_id="t-1", session_id="s-online", note="Exam", now=fixed_now)

        excused = svc.mark_attendance(
            CheckInRequest(user_id="t-1", session_id="s-online", method=AttendanceMethod.QR_CODE, token=bundle.token_string),
            now=fixed_now,
        )
        other = svc.mark_attendance(
            CheckInRequest(user_id="t-2", session_id="s-online", method=AttendanceMethod.QR_CODE, token=bundle.token_string),
            now=fixed_now,
        )

        assert excused.failure == FailureKind.ALREADY_EXCUSED
        assert other.outcome == MarkOutcome.CREATED


class TestEnrollment:
    def test_trainee_outside_the_program_cannot_check_in(self, attendance_repo, sessions_repo, fixed_now):
        svc = _service(attendance_repo, sessions_repo, programs=InMemoryPrograms({"p-web": {"t-2"}}))

        result = svc.mark_attendance(_geo_request(5), now=fixed_now)

        assert result.failure == FailureKind.UNAUTHORIZED
        assert "not enrolled" in result.message
        assert attendance_repo.all() == []

    def test_unenrolled_qr_checkin_does_not_touch_the_token(
        self, attendance_repo, sessions_repo, tokens_repo, fixed_now
    ):
        bundle = TokenIssuer(sessions_repo, SIGNING_KEY).issue_token("s-online", "f-1", now=fixed_now)
        programs = InMemoryPrograms()
        svc = _service(attendance_repo, sessions_repo, tokens_repo, single_use=True, programs=programs)
        request = CheckInRequest(
            user_id="t-1", session_id="s-online", method=AttendanceMethod.QR_CODE, token=bundle.token_string
        )

        rejected = svc.mark_attendance(request, now=fixed_now)
        programs.enroll("p-web", "t-1")
        accepted = svc.mark_attendance(request, now=fixed_now)

        assert rejected.failure == FailureKind.UNAUTHORIZED
        assert accepted.outcome == MarkOutcome.CREATED

    def test_enrolled_trainee_checks_in(self, attendance_repo, sessions_repo, fixed_now):
        svc = _service(attendance_repo, sessions_repo, programs=InMemoryPrograms({"p-web": {"t-1"}}))

        assert svc.mark_attendance(_geo_request(5), now=fixed_now).outcome == MarkOutcome.CREATED

    def test_staff_manual_marking_skips_enrollment(self, attendance_repo, sessions_repo, fixed_now):
        svc = _service(attendance_repo, sessions_repo, programs=InMemoryPrograms())

        result = svc.mark_attendance(
            CheckInRequest(user_id="t-9", session_id="s-room", method=AttendanceMethod.MANUAL, actor=FACILITATOR),
            now=fixed_now,
        )

        assert result.outcome == MarkOutcome.CREATED


class TestManualMarking:
    def test_trainee_cannot_mark_someone_else(self, service, fixed_now):
        result = service.mark_attendance(
            CheckInRequest(user_id="t-2", session_id="s-room", method=AttendanceMethod.MANUAL, actor=TRAINEE),
            now=fixed_now,
        )

        assert result.failure == FailureKind.UNAUTHORIZED

    def test_manual_without_actor_is_unauthorized(self, service, fixed_now):
        result = service.mark_attendance(
            CheckInRequest(user_id="t-1", session_id="s-room", method=AttendanceMethod.MANUAL),
            now=fixed_now,
        )

        assert result.failure == FailureKind.UNAUTHORIZED

    def test_other_facilitator_is_unauthorized(self, service, fixed_now):
        result = service.mark_attendance(
            CheckInRequest(user_id="t-1", session_id="s-room", method=AttendanceMethod.MANUAL, actor=OTHER_FACILITATOR),
            now=fixed_now,
        )

        assert result.failure == FailureKind.UNAUTHORIZED

    @pytest.mark.parametrize("actor", [FACILITATOR, MANAGER])
    def test_session_staff_can_mark(self, service, fixed_now, actor):
        result = service.mark_attendance(
            CheckInRequest(user_id="t-1", session_id="s-room", method=AttendanceMethod.MANUAL, actor=actor),
            now=fixed_now,
        )

        assert result.outcome == MarkOutcome.CREATED
        assert result.record.marked_by == actor.user_id
        assert result.record.distance_meters is None


class TestStaffActions:
    def test_absentees_are_recorded_once(self, service, attendance_repo, fixed_now):
        service.mark_attendance(_geo_request(5, user_id="t-3"), now=fixed_now)

        created = service.record_absentees(
            FACILITATOR, session_id="s-room", user_ids=["t-1", "t-2", "t-2", "t-3", " "], now=fixed_now
        )
        again = service.record_absentees(FACILITATOR, session_id="s-room", user_ids=["t-1", "t-2"], now=fixed_now)

        assert created == 2
        assert again == 0
        statuses = {r.user_id: r.status for r in attendance_repo.all()}
        assert statuses == {
            "t-1": AttendanceStatus.ABSENT,
            "t-2": AttendanceStatus.ABSENT,
            "t-3": AttendanceStatus.PRESENT,
        }

    @pytest.mark.parametrize("entry", [None, 42, ["t-2"]])
    def test_absentee_roster_rejects_non_string_entries(self, service, attendance_repo, fixed_now, entry):
        with pytest.raises(ValidationError):
            service.record_absentees(FACILITATOR, session_id="s-room", user_ids=["t-1", entry], now=fixed_now)

        assert attendance_repo.all() == []

    def test_absentees_require_staff(self, service, fixed_now):
        with pytest.raises(AuthorizationError):
            service.record_absentees(TRAINEE, session_id="s-room", user_ids=["t-2"], now=fixed_now)

    def test_checkin_promotes_absent_record(self, service, attendance_repo, fixed_now):
        service.record_absentees(MANAGER, session_id="s-room", user_ids=["t-1"], now=fixed_now)
        absent = attendance_repo.get_for_user_session_date("t-1", "s-room", fixed_now.date())

        result = service.mark_attendance(_geo_request(5), now=fixed_now.replace(minute=20))

        assert result.outcome == MarkOutcome.CREATED
        assert result.record.attendance_id == absent.attendance_id
        assert result.record.status == AttendanceStatus.LATE
        assert result.record.check_in_time == fixed_now.replace(minute=20)
        assert len(attendance_repo.all()) == 1

    def test_excused_trainee_cannot_check_in(self, service, fixed_now):
        record = service.grant_excuse(
            FACILITATOR, user_id="t-1", session_id="s-room", note="Medical appointment", now=fixed_now
        )

        result = service.mark_attendance(_geo_request(5), now=fixed_now)

        assert record.status == AttendanceStatus.EXCUSED
        assert record.note == "Medical appointment"
        assert result.failure == FailureKind.ALREADY_EXCUSED

    def test_excuse_overrides_existing_record(self, service, attendance_repo, fixed_now):
        checked_in = service.mark_attendance(_geo_request(5), now=fixed_now).record

        record = service.grant_excuse(MANAGER, user_id="t-1", session_id="s-room", note="Left for exam", now=fixed_now)

        assert record.attendance_id == checked_in.attendance_id
        assert record.status == AttendanceStatus.EXCUSED
        assert record.marked_by == "m-1"
        assert len(attendance_repo.all()) == 1

    def test_excuse_for_a_given_date(self, service, fixed_now):
        record = service.grant_excuse(
            FACILITATOR,
            user_id="t-1",
            session_id="s-room",
            note="Travel",
            attendance_date=date(2026, 2, 9),
            now=fixed_now,
        )

        assert record.attendance_date == date(2026, 2, 9)

    def test_excuse_requires_reason_and_staff(self, service, fixed_now):
        with pytest.raises(ValidationError):
            service.grant_excuse(FACILITATOR, user_id="t-1", session_id="s-room", note="  ", now=fixed_now)
        with pytest.raises(AuthorizationError):
            service.grant_excuse(TRAINEE, user_id="t-1", session_id="s-room", note="Sick", now=fixed_now)


class TestCheckOut:
    def test_check_out_sets_time_once(self, service, fixed_now):
        service.mark_attendance(_geo_request(5), now=fixed_now)
        later = fixed_now + timedelta(hours=3)

        record = service.check_out("t-1", "s-room", now=later)

        assert record.check_out_time == later
        with pytest.raises(ValidationError):
            service.check_out("t-1", "s-room", now=later + timedelta(minutes=1))

    def test_check_out_without_checkin_fails(self, service, fixed_now):
        with pytest.raises(ValidationError):
            service.check_out("t-1", "s-room", now=fixed_now)

    def test_absent_trainee_cannot_check_out(self, service, fixed_now):
        service.record_absentees(FACILITATOR, session_id="s-room", user_ids=["t-1"], now=fixed_now)

        with pytest.raises(ValidationError):
            service.check_out("t-1", "s-room", now=fixed_now)
