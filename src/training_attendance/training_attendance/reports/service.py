from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.validators import require_date_range
from ..core.exceptions import ValidationError
from .calculator.base import AttendanceRateCalculator, AttendanceSummary
from .calculator.standard_calculator import StandardRateCalculator


@dataclass(frozen=True)
class UserAttendanceSummary:
    user_id: str
    summary: AttendanceSummary


@dataclass(frozen=True)
class AttendanceHistory:
    records: list[AttendanceRecord]
    summary: AttendanceSummary
    by_user: list[UserAttendanceSummary] = field(default_factory=list)


class AttendanceQueryService:
    """Read side: chronological records plus derived attendance statistics."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        calculator: Optional[AttendanceRateCalculator] = None,
    ):
        self._attendance = attendance
        self._calculator = calculator or StandardRateCalculator()

    def get_history(
        self,
        *,
        user_id: Optional[str] = None,
        program_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> AttendanceHistory:
        if bool(user_id) == bool(program_id):
            raise ValidationError("Provide exactly one of user_id or program_id")
        require_date_range(start, end)

        records = list(
            self._attendance.list_records(user_id=user_id, program_id=program_id, start_date=start, end_date=end)
        )
        by_user = self._by_user(records) if program_id else []
        return AttendanceHistory(records=records, summary=self._calculator.summarize(records), by_user=by_user)

    def get_session_report(self, session_id: str, *, on: Optional[date] = None) -> AttendanceHistory:
        records = list(self._attendance.list_records(session_id=session_id, start_date=on, end_date=on))
        return AttendanceHistory(
            records=records,
            summary=self._calculator.summarize(records),
            by_user=self._by_user(records),
        )

    def _by_user(self, records: list[AttendanceRecord]) -> list[UserAttendanceSummary]:
        grouped: dict[str, list[AttendanceRecord]] = {}
        for r in records:
            grouped.setdefault(r.user_id, []).append(r)

        return [
            UserAttendanceSummary(user_id=uid, summary=self._calculator.summarize(rows))
            for uid, rows in sorted(grouped.items())
        ]
