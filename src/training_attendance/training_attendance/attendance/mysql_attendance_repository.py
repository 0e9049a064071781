from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence, Tuple

from ..core.enums import AttendanceMethod, AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, user_id, session_id, program_id, attendance_date, status, method,
    check_in_time, check_out_time, distance_meters, marked_by, note
"""


def _row_to_record(r: Dict[str, Any]) -> AttendanceRecord:
    distance = r.get("distance_meters")
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=str(r["user_id"]),
        session_id=str(r["session_id"]),
        program_id=str(r["program_id"]),
        attendance_date=r["attendance_date"],
        status=AttendanceStatus(r["status"]),
        method=AttendanceMethod(r["method"]),
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        distance_meters=float(distance) if distance is not None else None,
        marked_by=r.get("marked_by"),
        note=r.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user_session_date(
        self, user_id: str, session_id: str, attendance_date: date
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s AND session_id=%s AND attendance_date=%s
                """,
                (user_id, session_id, attendance_date),
            )
            r = fetchone(cur)
            if not r:
                return None
            return _row_to_record(r)

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
        # The UNIQUE(user_id, session_id, attendance_date) key arbitrates races.
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        user_id, session_id, program_id, attendance_date, status, method,
                        check_in_time, distance_meters, marked_by, note
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        user_id,
                        session_id,
                        program_id,
                        attendance_date,
                        status.value,
                        method.value,
                        check_in_time,
                        distance_meters,
                        marked_by,
                        note,
                    ),
                )
                attendance_id = int(cur.lastrowid)
        except Exception as exc:
            if not is_duplicate_key(exc):
                raise
            existing = self.get_for_user_session_date(user_id, session_id, attendance_date)
            if existing is None:
                raise
            return existing, False

        record = AttendanceRecord(
            attendance_id=attendance_id,
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
        return record, True

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, method=%s, check_in_time=%s, distance_meters=%s, marked_by=%s, note=%s
                WHERE attendance_id=%s AND status=%s
                """,
                (
                    status.value,
                    method.value,
                    check_in_time,
                    distance_meters,
                    marked_by,
                    note,
                    int(attendance_id),
                    AttendanceStatus.ABSENT.value,
                ),
            )
            return cur.rowcount > 0

    def update_checkout(self, *, attendance_id: int, check_out_time: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s
                WHERE attendance_id=%s AND check_out_time IS NULL
                """,
                (check_out_time, int(attendance_id)),
            )
            return cur.rowcount > 0

    def set_excused(self, *, attendance_id: int, marked_by: str, note: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, marked_by=%s, note=%s
                WHERE attendance_id=%s
                """,
                (AttendanceStatus.EXCUSED.value, marked_by, note, int(attendance_id)),
            )
            return cur.rowcount > 0

    def list_records(
        self,
        *,
        user_id: Optional[str] = None,
        program_id: Optional[str] = None,
        session_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        clauses: list[str] = []
        params: list[object] = []

        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(user_id)
        if program_id is not None:
            clauses.append("program_id=%s")
            params.append(program_id)
        if session_id is not None:
            clauses.append("session_id=%s")
            params.append(session_id)
        if start_date is not None:
            clauses.append("attendance_date >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("attendance_date <= %s")
            params.append(end_date)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                {where}
                ORDER BY attendance_date ASC, check_in_time IS NULL, check_in_time ASC, attendance_id ASC
                """,
                tuple(params),
            )
            return [_row_to_record(r) for r in fetchall(cur)]
