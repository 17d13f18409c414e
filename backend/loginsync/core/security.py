# loginsync/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from loginsync.core.config import require_jwt_secret, settings

SESSION_PURPOSE = "session"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def create_session_token(subject: str, record: dict[str, Any]) -> str:
    """
    Sign a whole session record into one token.
    subject = identity provider `sub`
    """
    require_jwt_secret()

    now = _now_utc()
    exp = now + timedelta(hours=settings.SESSION_MAX_AGE_HOURS)

    payload = {
        "sub": subject,
        "purpose": SESSION_PURPOSE,
        "session": record,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    require_jwt_secret()
    # Let callers decide how to handle JWTError
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


def verify_token_purpose(token: str, expected_purpose: str) -> dict[str, Any]:
    try:
        payload = decode_token(token)
    except JWTError:
        raise ValueError("Invalid or expired token")

    if payload.get("purpose") != expected_purpose:
        raise ValueError("Invalid token purpose")

    return payload
