from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_local
from ..core.exceptions import SessionMismatch, TokenAlreadyUsed, TokenExpired, TokenSuperseded
from .codec import decode_token, extract_token_string
from .model import AttendanceToken
from .repository import TokenRepository

logger = logging.getLogger(__name__)


class TokenVerifier:
    """Validates attendance tokens presented by trainees.

    Checks run in order: integrity, expiry, (single-active) supersession,
    (single-use) prior redemption, session match. ``verify`` only reads;
    the caller spends a single-use token with ``redeem`` once the check-in
    is certain to be recorded.
    """

    def __init__(
        self,
        secret: str,
        *,
        tokens: Optional[TokenRepository] = None,
        single_use: bool = False,
        single_active: bool = False,
    ):
        if not secret:
            raise ValueError("An attendance signing key is required")
        if (single_use or single_active) and tokens is None:
            raise ValueError("single_use/single_active need a token repository")
        self._secret = secret
        self._tokens = tokens
        self._single_use = bool(single_use)
        self._single_active = bool(single_active)

    @property
    def single_use(self) -> bool:
        return self._single_use

    def verify(
        self,
        token_string: str,
        expected_session_id: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> AttendanceToken:
        """Decode and check a presented token without recording anything."""

        now = now or now_local()
        token = decode_token(extract_token_string(token_string), self._secret)

        if now > token.expires_at:
            raise TokenExpired(f"Attendance token expired at {token.expires_at.isoformat()}")

        if self._single_active:
            current = self._tokens.get_issued_nonce(token.session_id)
            if current is not None and current != token.nonce:
                raise TokenSuperseded("A newer attendance token was issued for this session")

        if self._single_use and self._tokens.is_redeemed(token.nonce):
            raise TokenAlreadyUsed("Attendance token has already been used")

        if expected_session_id is not None and str(expected_session_id) != token.session_id:
            raise SessionMismatch("Attendance token belongs to a different session")

        return token

    def redeem(self, token: AttendanceToken, *, now: Optional[datetime] = None) -> None:
        """Spend a verified token's nonce; a no-op unless ``single_use`` is on.

        The insert is atomic, so of several concurrent redemptions exactly one
        returns and the rest raise TokenAlreadyUsed.
        """

        if not self._single_use:
            return
        redeemed = self._tokens.redeem(
            nonce=token.nonce,
            session_id=token.session_id,
            expires_at=token.expires_at,
            redeemed_at=now or now_local(),
        )
        if not redeemed:
            raise TokenAlreadyUsed("Attendance token has already been used")
        logger.debug("Redeemed attendance token nonce for session %s", token.session_id)
