from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import SessionType


@dataclass(frozen=True)
class GeoFence:
    """Registered location of an in-person session."""

    lat: float
    lng: float
    radius_meters: Optional[float] = None


@dataclass(frozen=True)
class Session:
    """Class session owned by the scheduling subsystem (read-only here)."""

    session_id: str
    program_id: str
    facilitator_id: str
    session_type: SessionType
    scheduled_start: Optional[datetime] = None
    location: Optional[GeoFence] = None
    title: str = ""
    late_threshold_minutes: Optional[int] = None

    @property
    def is_in_person(self) -> bool:
        return self.session_type == SessionType.IN_PERSON
