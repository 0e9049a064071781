from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class Actor:
    """Already-authenticated caller identity.

    Login and session mechanics live outside this package; the controller
    builds an Actor from the Flask session.
    """

    user_id: str
    role: Role

    @property
    def is_manager(self) -> bool:
        return self.role in (Role.SUPER_ADMIN, Role.PROGRAM_MANAGER)
