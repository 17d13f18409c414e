from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from loginsync.core.database import get_db
from loginsync.dependencies.auth import get_token_claims
from loginsync.schemas.profile import ProfileCreateOut, ProfileLookupOut, ProfileOut, ProfileUserOut
from loginsync.services.profiles import ensure_profile, get_profile_by_subject

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileLookupOut)
def get_profile(
    claims: dict[str, Any] = Depends(get_token_claims),
    db: Session = Depends(get_db),
):
    profile = get_profile_by_subject(db, claims["sub"])
    if profile is None:
        return ProfileLookupOut(profile=None)
    return ProfileLookupOut(profile=ProfileOut.model_validate(profile))


@router.post("", response_model=ProfileCreateOut)
def create_profile(
    response: Response,
    claims: dict[str, Any] = Depends(get_token_claims),
    db: Session = Depends(get_db),
):
    try:
        profile, created = ensure_profile(
            db,
            subject=claims["sub"],
            email=claims.get("email"),
            name=claims.get("name"),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ProfileCreateOut(user=ProfileUserOut(profile=ProfileOut.model_validate(profile)))
