from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, is_duplicate_key
from .repository import TokenRepository


class MySQLTokenRepository(TokenRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def is_redeemed(self, nonce: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS used FROM redeemed_tokens WHERE nonce=%s", (nonce,))
            return fetchone(cur) is not None

    def redeem(self, *, nonce: str, session_id: str, expires_at: datetime, redeemed_at: datetime) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO redeemed_tokens(nonce, session_id, expires_at, redeemed_at)
                    VALUES(%s,%s,%s,%s)
                    """,
                    (nonce, session_id, expires_at, redeemed_at),
                )
        except Exception as exc:
            if is_duplicate_key(exc):
                return False
            raise
        return True

    def save_issued(
        self,
        *,
        session_id: str,
        nonce: str,
        facilitator_id: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO issued_tokens(session_id, nonce, facilitator_id, issued_at, expires_at)
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    nonce=VALUES(nonce),
                    facilitator_id=VALUES(facilitator_id),
                    issued_at=VALUES(issued_at),
                    expires_at=VALUES(expires_at)
                """,
                (session_id, nonce, facilitator_id, issued_at, expires_at),
            )

    def get_issued_nonce(self, session_id: str) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT nonce FROM issued_tokens WHERE session_id=%s", (session_id,))
            r = fetchone(cur)
            return str(r["nonce"]) if r else None
