from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    DEFAULT_GEOFENCE_RADIUS_METERS,
    DEFAULT_LATE_THRESHOLD_MINUTES,
    DEFAULT_PUBLIC_BASE_URL,
    DEFAULT_TOKEN_TTL_SECONDS,
    MAX_TOKEN_TTL_SECONDS,
)


@dataclass(frozen=True)
class AttendancePolicy:
    """Per-deployment tuning for token lifetime, geofencing and lateness."""

    token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS
    max_token_ttl_seconds: int = MAX_TOKEN_TTL_SECONDS
    default_radius_meters: float = DEFAULT_GEOFENCE_RADIUS_METERS
    late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES
    single_use_tokens: bool = False
    single_active_token: bool = False
    public_base_url: str = DEFAULT_PUBLIC_BASE_URL

    @classmethod
    def from_settings(cls, settings) -> "AttendancePolicy":
        """Build from a settings module (see ``config/``); missing names keep defaults."""

        return cls(
            token_ttl_seconds=int(getattr(settings, "TOKEN_TTL_SECONDS", DEFAULT_TOKEN_TTL_SECONDS)),
            max_token_ttl_seconds=int(getattr(settings, "MAX_TOKEN_TTL_SECONDS", MAX_TOKEN_TTL_SECONDS)),
            default_radius_meters=float(
                getattr(settings, "DEFAULT_GEOFENCE_RADIUS_METERS", DEFAULT_GEOFENCE_RADIUS_METERS)
            ),
            late_threshold_minutes=int(getattr(settings, "LATE_THRESHOLD_MINUTES", DEFAULT_LATE_THRESHOLD_MINUTES)),
            single_use_tokens=bool(getattr(settings, "SINGLE_USE_TOKENS", False)),
            single_active_token=bool(getattr(settings, "SINGLE_ACTIVE_TOKEN", False)),
            public_base_url=str(getattr(settings, "PUBLIC_BASE_URL", DEFAULT_PUBLIC_BASE_URL)),
        )
