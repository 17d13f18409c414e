# loginsync/auth/identity.py
"""
Canonical authenticated identity model.

An Identity is what the identity provider hands back after a successful
sign-in: a stable subject, the email it was issued for, and the bearer ID
token used to talk to the Profile Service. It never carries a password.

The token is short-lived and meant for one reconciliation attempt; the
orchestrator only borrows the Identity for the duration of that attempt.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Identity:
    """
    Attributes:
        subject: The provider's ``sub`` claim. Stable across sessions and the
                 key a Profile is owned by.
        email: Normalized email the identity was issued for, if known.
        id_token: Bearer token presented to the Profile Service.
        auth_provider: Currently always ``"cognito"``.
    """

    subject: str
    id_token: str
    email: str | None = None
    auth_provider: str = "cognito"

    @classmethod
    def from_claims(cls, claims: dict[str, Any], *, id_token: str, fallback_email: str | None = None) -> Identity:
        """
        Build an identity from ID-token claims.

        Raises:
            ValueError: if the claims carry no subject.
        """
        subject = str(claims.get("sub") or "").strip()
        if not subject:
            raise ValueError("identity claims missing 'sub'")

        email = claims.get("email") or fallback_email
        return cls(
            subject=subject,
            id_token=id_token,
            email=email.strip().lower() if email else None,
        )

    def to_session_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "email": self.email,
            "auth_provider": self.auth_provider,
            "id_token": self.id_token,
        }

    @classmethod
    def from_session_dict(cls, data: dict[str, Any]) -> Identity:
        return cls(
            subject=data["subject"],
            id_token=data["id_token"],
            email=data.get("email"),
            auth_provider=data.get("auth_provider") or "cognito",
        )

    def to_debug_dict(self) -> dict[str, Any]:
        """Safe subset for logs; the token is left out."""
        return {
            "subject": self.subject,
            "email": self.email,
            "auth_provider": self.auth_provider,
        }
