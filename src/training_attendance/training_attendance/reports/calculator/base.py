from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable

from ...attendance.model import AttendanceRecord


@dataclass(frozen=True)
class AttendanceSummary:
    total: int
    present_count: int
    late_count: int
    absent_count: int
    excused_count: int
    rate: int

    @property
    def attended_count(self) -> int:
        return self.present_count + self.late_count


class AttendanceRateCalculator(ABC):
    """Calculator interface (Strategy Pattern for attendance rates)."""

    @abstractmethod
    def summarize(self, records: Iterable[AttendanceRecord]) -> AttendanceSummary:
        raise NotImplementedError
