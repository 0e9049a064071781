from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...sessions.model import Session
from .base import AttendanceStrategy, StatusDecision


class OnTimeStrategy(AttendanceStrategy):
    """Check-in at or before the grace-period cutoff."""

    def decide_checkin(self, *, now: datetime, session: Session, cutoff: Optional[datetime]) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
