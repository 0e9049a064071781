from __future__ import annotations

from typing import Optional, Protocol

from .model import Session


class SessionRepository(Protocol):
    """Lookup interface onto the program-scheduling subsystem."""

    def get_by_id(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError
