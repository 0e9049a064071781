from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...sessions.model import Session
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late check-in."""

    def decide_checkin(self, *, now: datetime, session: Session, cutoff: Optional[datetime]) -> StatusDecision:
        minutes = int((now - cutoff).total_seconds() // 60) if cutoff else 0
        return StatusDecision(status=AttendanceStatus.LATE, note=f"{minutes} min after grace period")
