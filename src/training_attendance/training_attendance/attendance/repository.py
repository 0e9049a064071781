from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence, Tuple

from ..core.enums import AttendanceMethod, AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_for_user_session_date(
        self, user_id: str, session_id: str, attendance_date: date
    ) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert_if_absent(
        self,
        *,
        user_id: str,
        session_id: str,
        program_id: str,
        attendance_date: date,
        status: AttendanceStatus,
        method: AttendanceMethod,
        check_in_time: Optional[datetime] = None,
        distance_meters: Optional[float] = None,
        marked_by: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Tuple[AttendanceRecord, bool]:
        """Atomic insert keyed by (user_id, session_id, attendance_date).

        Returns ``(record, True)`` when this call created the row, otherwise
        ``(existing_record, False)``.
        """

        raise NotImplementedError

    def promote_absent(
        self,
        *,
        attendance_id: int,
        status: AttendanceStatus,
        method: AttendanceMethod,
        check_in_time: datetime,
        distance_meters: Optional[float] = None,
        marked_by: Optional[str] = None,
        note: Optional[str] = None,
    ) -> bool:
        """Turn an Absent row into a check-in; False if it is no longer Absent."""

        raise NotImplementedError

    def update_checkout(self, *, attendance_id: int, check_out_time: datetime) -> bool:
        """Set check-out once; False if already checked out."""

        raise NotImplementedError

    def set_excused(self, *, attendance_id: int, marked_by: str, note: Optional[str]) -> bool:
        raise NotImplementedError

    def list_records(
        self,
        *,
        user_id: Optional[str] = None,
        program_id: Optional[str] = None,
        session_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        """Chronological (date, check-in time, id) records matching all given filters."""

        raise NotImplementedError
