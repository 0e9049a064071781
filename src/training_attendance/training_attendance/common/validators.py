from __future__ import annotations

from datetime import date
from typing import Any, Optional

from ..core.exceptions import InvalidCoordinate, ValidationError
from .datetime_utils import parse_iso_date


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_coordinate(value: Any, field_name: str, *, limit: float) -> float:
    """Coerce a latitude/longitude to float and check it lies in [-limit, limit]."""

    if value is None or isinstance(value, bool):
        raise InvalidCoordinate(f"{field_name} is required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidCoordinate(f"{field_name} must be a number")
    if number != number or not -limit <= number <= limit:
        raise InvalidCoordinate(f"{field_name} must be between -{limit:g} and {limit:g}")
    return number


def require_date(value: Optional[str], field_name: str, *, default: Optional[date] = None) -> date:
    v = (value or "").strip()
    if not v:
        if default is None:
            raise ValidationError(f"{field_name} is required")
        return default
    try:
        return parse_iso_date(v)
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD")


def require_date_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and end < start:
        raise ValidationError("End date must be on or after start date")
