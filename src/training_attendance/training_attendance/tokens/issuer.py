from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

from ..common.datetime_utils import now_local
from ..core.exceptions import SessionNotFound, ValidationError
from ..core.policy import AttendancePolicy
from ..sessions.repository import SessionRepository
from .codec import encode_token
from .model import AttendanceToken, TokenBundle
from .repository import TokenRepository

logger = logging.getLogger(__name__)


class TokenIssuer:
    """Issues signed, time-boxed attendance tokens for a session.

    The caller is trusted to have checked that the requester is the session's
    facilitator or a manager.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        secret: str,
        *,
        policy: Optional[AttendancePolicy] = None,
        tokens: Optional[TokenRepository] = None,
    ):
        if not secret:
            raise ValueError("An attendance signing key is required")
        self._sessions = sessions
        self._secret = secret
        self._policy = policy or AttendancePolicy()
        self._tokens = tokens
        if self._policy.single_active_token and tokens is None:
            raise ValueError("single_active_token needs a token repository")

    def _resolve_ttl(self, ttl_seconds: Optional[int]) -> int:
        if ttl_seconds is None:
            return int(self._policy.token_ttl_seconds)
        try:
            ttl = int(ttl_seconds)
        except (TypeError, ValueError):
            raise ValidationError("ttl_seconds must be an integer")
        if ttl <= 0:
            raise ValidationError("ttl_seconds must be positive")
        if ttl > self._policy.max_token_ttl_seconds:
            raise ValidationError(f"ttl_seconds must not exceed {self._policy.max_token_ttl_seconds}")
        return ttl

    def access_link(self, session_id: str, token_string: str) -> str:
        base = self._policy.public_base_url.rstrip("/")
        return f"{base}/attendance/checkin?{urlencode({'sessionId': session_id, 'token': token_string})}"

    def issue_token(
        self,
        session_id: str,
        facilitator_id: str,
        ttl_seconds: Optional[int] = None,
        *,
        now: Optional[datetime] = None,
    ) -> TokenBundle:
        ttl = self._resolve_ttl(ttl_seconds)

        session = self._sessions.get_by_id(session_id)
        if not session:
            raise SessionNotFound(session_id)

        issued_at = (now or now_local()).replace(microsecond=0)
        token = AttendanceToken(
            session_id=session.session_id,
            facilitator_id=str(facilitator_id),
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=ttl),
            nonce=secrets.token_urlsafe(16),
        )
        token_string = encode_token(token, self._secret)

        if self._policy.single_active_token:
            self._tokens.save_issued(
                session_id=token.session_id,
                nonce=token.nonce,
                facilitator_id=token.facilitator_id,
                issued_at=token.issued_at,
                expires_at=token.expires_at,
            )

        link = self.access_link(token.session_id, token_string)
        logger.info(
            "Issued attendance token for session %s by %s (ttl=%ss, expires %s)",
            token.session_id,
            token.facilitator_id,
            ttl,
            token.expires_at.isoformat(),
        )
        return TokenBundle(
            token_string=token_string,
            qr_payload=link,
            access_link=link,
            session_id=token.session_id,
            issued_at=token.issued_at,
            expires_at=token.expires_at,
        )
