# loginsync/auth/session.py
"""
Profile, session record and navigation types produced by a reconciliation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loginsync.auth.identity import Identity


@dataclass(frozen=True)
class Profile:
    """Application profile owned by one identity subject."""

    subject: str
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any], *, subject: str | None = None) -> Profile:
        owner = payload.get("subject") or subject
        if not owner:
            raise ValueError("profile payload has no owning subject")
        return cls(subject=str(owner), data=dict(payload))


@dataclass(frozen=True)
class SessionRecord:
    """
    Merged identity + profile for the active session.

    Only built once both halves are resolved; there is no partial record.
    """

    identity: Identity
    profile: Profile

    def __post_init__(self) -> None:
        if self.identity is None or self.profile is None:
            raise ValueError("session record needs both an identity and a profile")
        if self.profile.subject != self.identity.subject:
            raise ValueError("profile does not belong to this identity")

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity.to_session_dict(),
            "profile": dict(self.profile.data),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        identity = Identity.from_session_dict(data["identity"])
        profile = Profile.from_payload(data.get("profile") or {}, subject=identity.subject)
        return cls(identity=identity, profile=profile)


@dataclass(frozen=True)
class NavigationSignal:
    """Instruction for the router; nothing here performs the navigation."""

    destination: str = "/"
