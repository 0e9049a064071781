from __future__ import annotations

from typing import Optional

from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..sessions.model import Session
from .model import Actor


def is_session_staff(actor: Optional[Actor], session: Session) -> bool:
    """Managers, or the facilitator assigned to this session."""

    if actor is None:
        return False
    if actor.is_manager:
        return True
    return actor.role == Role.FACILITATOR and actor.user_id == session.facilitator_id


def require_session_staff(actor: Optional[Actor], session: Session) -> Actor:
    if not is_session_staff(actor, session):
        raise AuthorizationError("Only the session facilitator or a program manager can do this")
    return actor
