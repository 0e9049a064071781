from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..sessions.model import Session
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    @staticmethod
    def grace_cutoff(*, session: Session, today: date, default_threshold_minutes: int) -> Optional[datetime]:
        """Scheduled start time on ``today`` plus the session's late threshold."""

        if not session.scheduled_start:
            return None
        threshold = session.late_threshold_minutes
        if threshold is None:
            threshold = default_threshold_minutes
        start = datetime.combine(today, session.scheduled_start.time())
        return start + timedelta(minutes=int(threshold))

    def for_checkin(self, *, now: datetime, cutoff: Optional[datetime]) -> AttendanceStrategy:
        if not cutoff or now <= cutoff:
            return OnTimeStrategy()
        return LateStrategy()
