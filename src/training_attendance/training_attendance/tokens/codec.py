"""Compact signed token format: ``<base64url(json)>.<base64url(hmac-sha256)>``.

The signature covers the encoded payload text exactly as transmitted, so any
altered character is detected without a database lookup.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from urllib.parse import parse_qs, urlsplit

from ..common.datetime_utils import from_epoch, to_epoch
from ..core.exceptions import TokenTampered
from .model import AttendanceToken

TOKEN_VERSION = 1


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _sign(secret: str, payload_b64: str) -> str:
    digest = hmac.new(
        secret.encode("utf-8"),
        payload_b64.encode("ascii"),
        hashlib.sha256,
    ).digest()
    return _b64url_encode(digest)


def encode_token(token: AttendanceToken, secret: str) -> str:
    payload = {
        "v": TOKEN_VERSION,
        "sid": token.session_id,
        "fid": token.facilitator_id,
        "iat": to_epoch(token.issued_at),
        "exp": to_epoch(token.expires_at),
        "nonce": token.nonce,
    }
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{payload_b64}.{_sign(secret, payload_b64)}"


def decode_token(token_string: str, secret: str) -> AttendanceToken:
    """Check the signature and decode; every malformation is TokenTampered."""

    parts = (token_string or "").strip().split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise TokenTampered("Malformed attendance token")

    payload_b64, signature = parts
    try:
        expected = _sign(secret, payload_b64)
    except UnicodeEncodeError:
        raise TokenTampered("Malformed attendance token")
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("ascii")):
        raise TokenTampered("Attendance token signature mismatch")

    try:
        payload = json.loads(_b64url_decode(payload_b64))
        if payload.get("v") != TOKEN_VERSION:
            raise ValueError("unsupported token version")
        token = AttendanceToken(
            session_id=str(payload["sid"]),
            facilitator_id=str(payload["fid"]),
            issued_at=from_epoch(payload["iat"]),
            expires_at=from_epoch(payload["exp"]),
            nonce=str(payload["nonce"]),
        )
    except (binascii.Error, ValueError, TypeError, KeyError, AttributeError, OverflowError, OSError):
        raise TokenTampered("Attendance token payload is unreadable")

    if token.expires_at <= token.issued_at:
        raise TokenTampered("Attendance token has an invalid lifetime")
    return token


def extract_token_string(scanned: str) -> str:
    """Accept either a bare token or an access link carrying ``?token=``."""

    value = (scanned or "").strip()
    if "://" not in value:
        return value
    tokens = parse_qs(urlsplit(value).query).get("token")
    return tokens[0].strip() if tokens else ""
