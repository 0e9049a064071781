from __future__ import annotations

from typing import Protocol


class ProgramRepository(Protocol):
    """Program membership, owned by the program-management subsystem."""

    def is_enrolled(self, program_id: str, user_id: str) -> bool:
        raise NotImplementedError
