"""
Identity provider client backed by the Cognito Identity Provider API.

Exposes an async ``sign_in`` that the login orchestrator awaits, without
leaking boto3-specific errors up the stack. boto3 is blocking, so the call
runs in a worker thread and suspends only the awaiting coroutine.
"""
from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from jose import JWTError, jwt

from loginsync.auth.identity import Identity
from loginsync.core.config import settings

logger = logging.getLogger(__name__)

CHALLENGE_REQUIRED = "ChallengeRequired"


class IdentityProviderError(Exception):
    """Raised when the identity provider rejects or fails a sign-in."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class IdentityProvider(Protocol):
    async def sign_in(self, email: str, password: str) -> Identity:
        ...


def _require_cognito_client_config() -> None:
    if not settings.COGNITO_REGION:
        raise RuntimeError("COGNITO_REGION is not configured")
    if not settings.COGNITO_APP_CLIENT_ID:
        raise RuntimeError("COGNITO_APP_CLIENT_ID is not configured")


@lru_cache(maxsize=1)
def _get_cognito_client():
    _require_cognito_client_config()
    return boto3.client("cognito-idp", region_name=settings.COGNITO_REGION)


def _translate_error(exc: ClientError) -> IdentityProviderError:
    error = exc.response.get("Error", {})
    code = error.get("Code", "CognitoClientError")
    message = error.get("Message", str(exc))
    return IdentityProviderError(code=code, message=message)


def cognito_initiate_auth(email: str, password: str) -> dict:
    """Initiate USER_PASSWORD_AUTH flow."""
    client = _get_cognito_client()
    try:
        return client.initiate_auth(
            ClientId=settings.COGNITO_APP_CLIENT_ID,
            AuthFlow="USER_PASSWORD_AUTH",
            AuthParameters={
                "USERNAME": email,
                "PASSWORD": password,
            },
        )
    except ClientError as exc:
        raise _translate_error(exc) from exc
    except BotoCoreError as exc:
        raise IdentityProviderError(code=type(exc).__name__, message=str(exc)) from exc


def identity_from_auth_result(auth_result: dict, *, fallback_email: str) -> Identity:
    """Build an Identity from an InitiateAuth response."""
    if auth_result.get("ChallengeName"):
        raise IdentityProviderError(
            code=CHALLENGE_REQUIRED,
            message=f"Cognito requires {auth_result['ChallengeName']} to finish signing in",
        )

    authentication = auth_result.get("AuthenticationResult") or {}
    id_token = authentication.get("IdToken")
    if not id_token:
        raise IdentityProviderError(code="MissingIdToken", message="Missing IdToken in Cognito response")

    try:
        claims = jwt.get_unverified_claims(id_token)
        return Identity.from_claims(claims, id_token=id_token, fallback_email=fallback_email)
    except (JWTError, ValueError) as exc:
        raise IdentityProviderError(code="InvalidIdToken", message=str(exc)) from exc


class CognitoIdentityProvider:
    """IdentityProvider implementation for a Cognito user pool app client."""

    async def sign_in(self, email: str, password: str) -> Identity:
        auth_result = await asyncio.to_thread(cognito_initiate_auth, email, password)
        identity = identity_from_auth_result(auth_result, fallback_email=email)
        logger.info("Cognito sign-in succeeded: %s", identity.to_debug_dict())
        return identity
