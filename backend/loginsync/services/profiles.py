# loginsync/services/profiles.py
"""
Profile Service helpers.

Responsibilities:
- Profile lookup by identity subject
- Idempotent, race-safe profile creation (one profile per subject)
- Normalizing identity attributes before persisting
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from loginsync.core.config import settings
from loginsync.models.profile import Profile

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_NAME = "New User"


def get_profile_by_subject(db: Session, subject: str) -> Optional[Profile]:
    """Look up a profile by its owning identity subject."""
    return db.query(Profile).filter(Profile.subject == subject).first()


def ensure_profile(
    db: Session,
    *,
    subject: str,
    email: str | None = None,
    name: str | None = None,
) -> tuple[Profile, bool]:
    """
    Return the profile for ``subject``, creating it on first use.

    Idempotent: an existing profile is returned as-is. When two requests race
    past the lookup, the unique constraint on ``subject`` lets exactly one
    insert win; the loser rolls back and returns the winner's row.

    Returns:
        (profile, created)

    Raises:
        ValueError: If subject is empty
    """
    if not subject:
        raise ValueError("subject is required")

    existing = get_profile_by_subject(db, subject)
    if existing:
        return existing, False

    normalized_email = email.strip().lower() if email else None
    profile = Profile(
        subject=subject,
        email=normalized_email,
        display_name=normalize_name(name, fallback=normalized_email or ""),
        plan=settings.DEFAULT_PROFILE_PLAN,
    )

    db.add(profile)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        winner = get_profile_by_subject(db, subject)
        if winner is None:
            raise
        logger.info("Concurrent profile creation for subject=%s; returning existing row", subject)
        return winner, False

    db.refresh(profile)
    logger.info("Created profile: id=%s, subject=%s", profile.id, subject)
    return profile, True


def normalize_name(name: str | None, fallback: str) -> str:
    """Normalize name, falling back to email local part if needed."""
    if name:
        clean = name.strip()
        if clean:
            return clean[:100]

    if fallback and "@" in fallback:
        local = fallback.split("@", 1)[0]
        if local:
            return local[:100]
    return DEFAULT_DISPLAY_NAME
