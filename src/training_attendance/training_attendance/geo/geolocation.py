"""Great-circle distance and geofence containment.

Points are anything exposing ``lat`` and ``lng`` attributes (``Coordinate``,
``Geolocation``, ``GeoFence``). All functions are pure.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Protocol

from ..common.validators import require_coordinate
from ..core.constants import EARTH_RADIUS_METERS, HIGH_ACCURACY_METERS, MEDIUM_ACCURACY_METERS


class LatLng(Protocol):
    lat: float
    lng: float


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    @classmethod
    def of(cls, lat, lng) -> "Coordinate":
        return cls(
            lat=require_coordinate(lat, "Latitude", limit=90.0),
            lng=require_coordinate(lng, "Longitude", limit=180.0),
        )


def _checked(point: LatLng) -> Coordinate:
    return Coordinate.of(getattr(point, "lat", None), getattr(point, "lng", None))


def distance_meters(a: LatLng, b: LatLng) -> float:
    """Haversine distance between two points, in meters.

    Raises InvalidCoordinate when either point is out of range.
    """

    p, q = _checked(a), _checked(b)
    phi1 = math.radians(p.lat)
    phi2 = math.radians(q.lat)
    d_phi = math.radians(q.lat - p.lat)
    d_lambda = math.radians(q.lng - p.lng)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push h slightly past 1 for antipodal points.
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def is_within_radius(point: LatLng, center: LatLng, radius_meters: float) -> bool:
    return distance_meters(point, center) <= radius_meters


def accuracy_level(accuracy_meters: Optional[float]) -> str:
    """Bucket a device-reported GPS accuracy into high/medium/low."""

    if accuracy_meters is None:
        return "unknown"
    if accuracy_meters <= HIGH_ACCURACY_METERS:
        return "high"
    if accuracy_meters <= MEDIUM_ACCURACY_METERS:
        return "medium"
    return "low"
