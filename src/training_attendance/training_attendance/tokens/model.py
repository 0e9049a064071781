from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AttendanceToken:
    """Decoded attendance capability. Never persisted as an entity."""

    session_id: str
    facilitator_id: str
    issued_at: datetime
    expires_at: datetime
    nonce: str


@dataclass(frozen=True)
class TokenBundle:
    """What a facilitator's client needs to display a check-in QR code."""

    token_string: str
    qr_payload: str
    access_link: str
    session_id: str
    issued_at: datetime
    expires_at: datetime
