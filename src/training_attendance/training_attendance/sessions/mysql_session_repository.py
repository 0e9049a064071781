from __future__ import annotations

from typing import Any, Dict, Optional

from ..core.enums import SessionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import GeoFence, Session
from .repository import SessionRepository


def _row_to_session(r: Dict[str, Any]) -> Session:
    location = None
    if r.get("location_lat") is not None and r.get("location_lng") is not None:
        radius = r.get("radius_meters")
        location = GeoFence(
            lat=float(r["location_lat"]),
            lng=float(r["location_lng"]),
            radius_meters=float(radius) if radius is not None else None,
        )

    threshold = r.get("late_threshold_minutes")
    return Session(
        session_id=str(r["session_id"]),
        program_id=str(r["program_id"]),
        facilitator_id=str(r["facilitator_id"]),
        session_type=SessionType(r["session_type"]),
        scheduled_start=r.get("scheduled_start"),
        location=location,
        title=r.get("title") or "",
        late_threshold_minutes=int(threshold) if threshold is not None else None,
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, session_id: str) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT session_id, program_id, facilitator_id, session_type, title,
                       scheduled_start, location_lat, location_lng, radius_meters,
                       late_threshold_minutes
                FROM class_sessions
                WHERE session_id=%s
                """,
                (session_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return _row_to_session(r)
