# loginsync/auth/form.py
from __future__ import annotations

from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email

PASSWORD_MIN_LENGTH = 6


@dataclass(frozen=True)
class Credentials:
    """Built per submission and dropped right after sign-in is dispatched."""

    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(email={self.email!r}, password='***')"


def is_valid_email(value: str) -> bool:
    """Email syntax check for UI-side callers (no DNS lookup)."""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


class LoginForm:
    """
    Mutable input state of the login form.

    ``is_valid`` and ``is_valid_email`` are for UI-side callers that want to
    enable the submit control the way a reactive form would (email syntax,
    minimum password length). Nothing in the login flow calls them: the
    orchestrator only insists both fields are filled, and the identity
    provider judges the rest.
    """

    def __init__(self, email: str = "", password: str = "") -> None:
        self.email = email
        self.password = password
        self.error_message = ""

    @property
    def is_valid(self) -> bool:
        return bool(self.email) and is_valid_email(self.email) and len(self.password) >= PASSWORD_MIN_LENGTH

    def credentials(self) -> Credentials:
        return Credentials(email=(self.email or "").strip(), password=self.password or "")

    def clear(self) -> None:
        """Reset the input fields; the error message is left alone."""
        self.email = ""
        self.password = ""
