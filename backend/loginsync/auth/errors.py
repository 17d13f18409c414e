# loginsync/auth/errors.py
"""
Login failure taxonomy.

Every failed reconciliation attempt ends in exactly one of these. Each kind
carries a fixed user-facing message and the HTTP status the login route
answers with. ``classify_provider_error`` is the only place that turns an
identity provider's reason into a kind.
"""
from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Base class for a terminal login failure."""

    kind = "auth"
    status_code = 400
    user_message = "Login failed: An unknown error occurred."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail or self.user_message


class ValidationError(AuthError):
    """Empty email or password at the local check. No network call was made."""

    kind = "validation"
    status_code = 400
    user_message = "All fields are required"


class InvalidEmailFormatError(AuthError):
    kind = "invalid_email_format"
    status_code = 400
    user_message = "Invalid email format"


class InvalidCredentialsError(AuthError):
    """Wrong email/password pair. The message never says which field was wrong."""

    kind = "invalid_credentials"
    status_code = 401
    user_message = "Invalid email or password"


class ProviderError(AuthError):
    kind = "provider"
    status_code = 502
    user_message = "Login failed: An unknown error occurred."


class ProfileLookupError(AuthError):
    """
    Profile read failed after a successful sign-in. The provider-side session
    may already exist; the provider offers no way to undo it.
    """

    kind = "profile_lookup"
    status_code = 502
    user_message = "Login failed: unable to load your profile."


class ProfileCreationError(AuthError):
    kind = "profile_creation"
    status_code = 502
    user_message = "Login failed: unable to create your profile."


class SessionPersistError(AuthError):
    kind = "session_persist"
    status_code = 500
    user_message = "Login failed: unable to save your session."


INVALID_EMAIL_CODES = frozenset(
    [
        "InvalidEmailException",
        "auth/invalid-email",
        "INVALID_EMAIL",
    ]
)

INVALID_CREDENTIAL_CODES = frozenset(
    [
        "NotAuthorizedException",
        "UserNotFoundException",
        "auth/invalid-credential",
        "auth/wrong-password",
        "auth/user-not-found",
        "INVALID_LOGIN_CREDENTIALS",
        "INVALID_PASSWORD",
        "EMAIL_NOT_FOUND",
    ]
)

# e.g. "Firebase: Error (auth/invalid-email)."
_MESSAGE_CODE_RE = re.compile(r"\((auth/[a-z0-9-]+)\)")


def _code_from_message(message: str | None) -> str | None:
    match = _MESSAGE_CODE_RE.search(message or "")
    return match.group(1) if match else None


def classify_provider_error(code: str | None, message: str | None = None) -> AuthError:
    """
    Map an identity provider failure to a taxonomy error.

    The reason code wins; the message is only scanned for an ``(auth/...)``
    code when the provider gave none.
    """
    reason = (code or "").strip() or _code_from_message(message)

    if reason in INVALID_EMAIL_CODES:
        return InvalidEmailFormatError()
    if reason in INVALID_CREDENTIAL_CODES:
        return InvalidCredentialsError()

    logger.info("Unclassified identity provider error: code=%s", reason or "<none>")
    return ProviderError(message)
