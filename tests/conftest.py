from __future__ import annotations

import math
import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import pytest

from training_attendance.attendance.model import AttendanceRecord
from training_attendance.core.enums import AttendanceMethod, AttendanceStatus, SessionType
from training_attendance.sessions.model import GeoFence, Session

SIGNING_KEY = "unit-test-signing-key"


def point_north_of(lat: float, lng: float, meters: float) -> tuple[float, float]:
    """A coordinate ``meters`` due north of (lat, lng) on the haversine sphere."""
    return lat + math.degrees(meters / 6_371_000.0), lng


class InMemorySessions:
    def __init__(self, *sessions: Session):
        self._by_id = {s.session_id: s for s in sessions}

    def add(self, session: Session) -> None:
        self._by_id[session.session_id] = session

    def get_by_id(self, session_id: str) -> Optional[Session]:
        return self._by_id.get(session_id)


class InMemoryAttendance:
    def __init__(self):
        self._lock = threading.Lock()
        self._by_key: dict[tuple[str, str, date], AttendanceRecord] = {}
        self._id = 0

    def get_for_user_session_date(self, user_id, session_id, attendance_date):
        return self._by_key.get((user_id, session_id, attendance_date))

    def insert_if_absent(self, *, user_id, session_id, program_id, attendance_date, status, method,
                         check_in_time=None, distance_meters=None, marked_by=None, note=None):
        with self._lock:
            key = (user_id, session_id, attendance_date)
            existing = self._by_key.get(key)
            if existing:
                return existing, False
            self._id += 1
            rec = AttendanceRecord(
                attendance_id=self._id,
                user_id=user_id,
                session_id=session_id,
                program_id=program_id,
                attendance_date=attendance_date,
                status=status,
                method=method,
                check_in_time=check_in_time,
                distance_meters=distance_meters,
                marked_by=marked_by,
                note=note,
            )
            self._by_key[key] = rec
            return rec, True

    def _update(self, attendance_id, predicate, **changes) -> bool:
        with self._lock:
            for key, rec in self._by_key.items():
                if rec.attendance_id == attendance_id and predicate(rec):
                    self._by_key[key] = replace(rec, **changes)
                    return True
            return False

    def promote_absent(self, *, attendance_id, status, method, check_in_time,
                       distance_meters=None, marked_by=None, note=None):
        return self._update(
            attendance_id,
            lambda r: r.status == AttendanceStatus.ABSENT,
            status=status,
            method=method,
            check_in_time=check_in_time,
            distance_meters=distance_meters,
            marked_by=marked_by,
            note=note,
        )

    def update_checkout(self, *, attendance_id, check_out_time):
        return self._update(attendance_id, lambda r: r.check_out_time is None, check_out_time=check_out_time)

    def set_excused(self, *, attendance_id, marked_by, note):
        return self._update(
            attendance_id, lambda r: True, status=AttendanceStatus.EXCUSED, marked_by=marked_by, note=note
        )

    def list_records(self, *, user_id=None, program_id=None, session_id=None, start_date=None, end_date=None):
        items = [
            r
            for r in self._by_key.values()
            if (user_id is None or r.user_id == user_id)
            and (program_id is None or r.program_id == program_id)
            and (session_id is None or r.session_id == session_id)
            and (start_date is None or r.attendance_date >= start_date)
            and (end_date is None or r.attendance_date <= end_date)
        ]
        items.sort(key=lambda r: (r.attendance_date, r.check_in_time or datetime.max, r.attendance_id))
        return items

    def all(self) -> list[AttendanceRecord]:
        return list(self._by_key.values())

    def seed(self, *, user_id, session_id, program_id, attendance_date, status,
             method=AttendanceMethod.MANUAL, check_in_time=None) -> AttendanceRecord:
        rec, _ = self.insert_if_absent(
            user_id=user_id,
            session_id=session_id,
            program_id=program_id,
            attendance_date=attendance_date,
            status=status,
            method=method,
            check_in_time=check_in_time,
        )
        return rec


class InMemoryPrograms:
    def __init__(self, enrollments: Optional[dict[str, set[str]]] = None):
        self._enrollments = {k: set(v) for k, v in (enrollments or {}).items()}

    def enroll(self, program_id: str, *user_ids: str) -> None:
        self._enrollments.setdefault(program_id, set()).update(user_ids)

    def is_enrolled(self, program_id, user_id):
        return user_id in self._enrollments.get(program_id, set())


class InMemoryTokens:
    def __init__(self):
        self._lock = threading.Lock()
        self._redeemed: set[str] = set()
        self._issued: dict[str, str] = {}

    def is_redeemed(self, nonce):
        return nonce in self._redeemed

    def redeem(self, *, nonce, session_id, expires_at, redeemed_at):
        with self._lock:
            if nonce in self._redeemed:
                return False
            self._redeemed.add(nonce)
            return True

    def save_issued(self, *, session_id, nonce, facilitator_id, issued_at, expires_at):
        self._issued[session_id] = nonce

    def get_issued_nonce(self, session_id):
        return self._issued.get(session_id)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 2, 2, 9, 5, 0)


@pytest.fixture
def in_person_session() -> Session:
    return Session(
        session_id="s-room",
        program_id="p-web",
        facilitator_id="f-1",
        session_type=SessionType.IN_PERSON,
        scheduled_start=datetime(2026, 2, 2, 9, 0, 0),
        location=GeoFence(lat=0.0, lng=0.0, radius_meters=50),
        title="Bootcamp day 1",
        late_threshold_minutes=15,
    )


@pytest.fixture
def online_session() -> Session:
    return Session(
        session_id="s-online",
        program_id="p-web",
        facilitator_id="f-1",
        session_type=SessionType.ONLINE,
        scheduled_start=datetime(2026, 2, 2, 14, 0, 0),
    )


@pytest.fixture
def sessions_repo(in_person_session, online_session) -> InMemorySessions:
    return InMemorySessions(in_person_session, online_session)


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def programs_repo() -> InMemoryPrograms:
    return InMemoryPrograms({"p-web": {"t-1", "t-2", "t-3"}})


@pytest.fixture
def tokens_repo() -> InMemoryTokens:
    return InMemoryTokens()
