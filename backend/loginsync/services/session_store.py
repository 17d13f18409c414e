"""
Session stores for the reconciled identity + profile record.

A store is written exactly once per successful login, with the whole record,
and read back as a whole or not at all.
"""
from __future__ import annotations

import logging
from typing import Protocol

from fastapi import Request, Response
from jose import JWTError

from loginsync.auth.errors import SessionPersistError
from loginsync.auth.session import SessionRecord
from loginsync.core.config import settings
from loginsync.core.security import SESSION_PURPOSE, create_session_token, verify_token_purpose

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def put(self, record: SessionRecord) -> None:
        ...

    def get(self) -> SessionRecord | None:
        ...


class InMemorySessionStore:
    """Process-local store; last write wins."""

    def __init__(self) -> None:
        self._record: SessionRecord | None = None

    def put(self, record: SessionRecord) -> None:
        self._record = record

    def get(self) -> SessionRecord | None:
        return self._record


# -----------------------------
# Cookie helpers
# -----------------------------
def cookie_name() -> str:
    return str(getattr(settings, "SESSION_COOKIE_NAME", "loginsync_session")).strip() or "loginsync_session"


def cookie_samesite() -> str:
    v = str(getattr(settings, "SESSION_COOKIE_SAMESITE", "lax")).lower().strip()
    if v not in {"lax", "strict", "none"}:
        return "lax"
    return v


def cookie_max_age_seconds() -> int:
    return int(settings.SESSION_MAX_AGE_HOURS) * 3600


class CookieSessionStore:
    """
    Browser-context store: the record is signed into one JWT and sent as a
    single HttpOnly cookie, so the browser holds all of it or none of it.

    ``get`` reads what the incoming request carried; a tampered or expired
    cookie reads as no session.
    """

    def __init__(self, request: Request, response: Response) -> None:
        self._request = request
        self._response = response
        self._written: SessionRecord | None = None

    def put(self, record: SessionRecord) -> None:
        try:
            token = create_session_token(record.identity.subject, record.to_dict())
        except (RuntimeError, JWTError, TypeError) as exc:
            raise SessionPersistError(f"Unable to sign session: {exc}") from exc

        self._response.set_cookie(
            key=cookie_name(),
            value=token,
            httponly=True,
            secure=settings.is_prod,
            samesite=cookie_samesite(),
            max_age=cookie_max_age_seconds(),
            path="/",
        )
        self._written = record

    def get(self) -> SessionRecord | None:
        if self._written is not None:
            return self._written

        raw = (self._request.cookies.get(cookie_name()) or "").strip()
        if not raw:
            return None

        try:
            payload = verify_token_purpose(raw, SESSION_PURPOSE)
            return SessionRecord.from_dict(payload["session"])
        except (ValueError, KeyError, TypeError) as exc:
            logger.info("Ignoring unusable session cookie: %s", exc)
            return None
