from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from loginsync.auth.form import LoginForm
from loginsync.dependencies.login import get_identity_provider, get_profile_client
from loginsync.schemas.auth import LoginIn, LoginOut, SessionLookupOut, SessionOut
from loginsync.services.cognito_client import IdentityProvider
from loginsync.services.profile_client import ProfileServiceClient
from loginsync.services.reconciliation import LoginReconciler
from loginsync.services.session_store import CookieSessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginOut)
async def login(
    request: Request,
    response: Response,
    payload: LoginIn,
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    profile_client: ProfileServiceClient = Depends(get_profile_client),
):
    form = LoginForm(email=payload.email, password=payload.password)
    reconciler = LoginReconciler(
        identity_provider=identity_provider,
        profile_client=profile_client,
        session_store=CookieSessionStore(request, response),
    )

    outcome = await reconciler.reconcile(form)
    if not outcome.ok:
        error = outcome.error
        raise HTTPException(
            status_code=error.status_code,
            detail={"message": error.user_message, "details": {"kind": error.kind}},
        )

    return LoginOut(
        navigate_to=outcome.navigation.destination,
        session=SessionOut.model_validate(outcome.session.to_dict()),
    )


@router.get("/session", response_model=SessionLookupOut)
def current_session(request: Request, response: Response):
    record = CookieSessionStore(request, response).get()
    if record is None:
        return SessionLookupOut(session=None)
    return SessionLookupOut(session=SessionOut.model_validate(record.to_dict()))
