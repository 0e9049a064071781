from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol


class TokenRepository(Protocol):
    """Optional bookkeeping for the single-use and single-active-token policies."""

    def is_redeemed(self, nonce: str) -> bool:
        raise NotImplementedError

    def redeem(self, *, nonce: str, session_id: str, expires_at: datetime, redeemed_at: datetime) -> bool:
        """Atomically mark ``nonce`` as used; False if it already was."""

        raise NotImplementedError

    def save_issued(
        self,
        *,
        session_id: str,
        nonce: str,
        facilitator_id: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> None:
        raise NotImplementedError

    def get_issued_nonce(self, session_id: str) -> Optional[str]:
        raise NotImplementedError
