from __future__ import annotations

from typing import Any, Optional

from .model import AttendanceRecord, MarkResult


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def record_to_json(r: AttendanceRecord) -> dict[str, Any]:
    return {
        "id": r.attendance_id,
        "user_id": r.user_id,
        "session_id": r.session_id,
        "program_id": r.program_id,
        "date": r.attendance_date.strftime("%Y-%m-%d"),
        "status": r.status.value,
        "method": r.method.value,
        "check_in_time": _iso(r.check_in_time),
        "check_out_time": _iso(r.check_out_time),
        "distance_meters": round(r.distance_meters, 1) if r.distance_meters is not None else None,
        "marked_by": r.marked_by,
        "note": r.note,
    }


def record_to_csv_row(r: AttendanceRecord) -> dict[str, Any]:
    return {
        "date": r.attendance_date.strftime("%Y-%m-%d"),
        "user_id": r.user_id,
        "program_id": r.program_id,
        "session_id": r.session_id,
        "status": r.status.value,
        "method": r.method.value,
        "check_in": r.check_in_time.strftime("%H:%M:%S") if r.check_in_time else "-",
        "check_out": r.check_out_time.strftime("%H:%M:%S") if r.check_out_time else "-",
        "distance_meters": f"{r.distance_meters:.1f}" if r.distance_meters is not None else "",
        "note": r.note or "",
    }


def mark_result_to_json(result: MarkResult) -> dict[str, Any]:
    body: dict[str, Any] = {"success": result.ok, "outcome": result.outcome.value}
    if result.record is not None:
        body["data"] = record_to_json(result.record)
    if result.failure is not None:
        body["error"] = result.failure.value
        body["message"] = result.message
    if result.distance_meters is not None:
        body["distance_meters"] = round(result.distance_meters, 1)
    return body
