from __future__ import annotations

from collections import Counter
from typing import Iterable

from ...attendance.model import AttendanceRecord
from ...core.enums import AttendanceStatus
from .base import AttendanceRateCalculator, AttendanceSummary


def rounded_percent(part: int, whole: int) -> int:
    """100 * part / whole rounded half up; 100 when there is nothing to count."""

    if whole <= 0:
        return 100
    return (200 * part + whole) // (2 * whole)


class StandardRateCalculator(AttendanceRateCalculator):
    """Standard rule: (present + late) / (total - excused)."""

    def summarize(self, records: Iterable[AttendanceRecord]) -> AttendanceSummary:
        counts = Counter(r.status for r in records)
        total = sum(counts.values())
        present = counts[AttendanceStatus.PRESENT]
        late = counts[AttendanceStatus.LATE]
        excused = counts[AttendanceStatus.EXCUSED]

        return AttendanceSummary(
            total=total,
            present_count=present,
            late_count=late,
            absent_count=counts[AttendanceStatus.ABSENT],
            excused_count=excused,
            rate=rounded_percent(present + late, total - excused),
        )
