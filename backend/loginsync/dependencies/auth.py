# loginsync/dependencies/auth.py
from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from loginsync.auth.cognito import (
    CognitoTokenExpiredError,
    CognitoVerificationError,
    verify_cognito_jwt,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_claims(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    """
    Validates:
      - Authorization: Bearer <Cognito token>
      - signature, expiry, issuer, app client
      - a subject is present
    Returns:
      - verified token claims
    """
    if not creds or creds.scheme.lower() != "bearer":
        raise _unauthorized("Missing Authorization header")

    try:
        claims = verify_cognito_jwt(creds.credentials)
    except CognitoTokenExpiredError:
        raise _unauthorized("Token has expired")
    except CognitoVerificationError as exc:
        logger.warning("Rejected profile service token: %s", exc)
        raise _unauthorized("Invalid token")

    if not str(claims.get("sub") or "").strip():
        raise _unauthorized("Token missing subject")

    return claims
