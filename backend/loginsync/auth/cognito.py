# loginsync/auth/cognito.py
"""
Cognito JWT verification for the Profile Service.

The profile routes accept the ID token the login flow obtained from Cognito.
Responsibilities:
- Lazy JWKS fetching (no network calls on import)
- In-memory JWKS caching with configurable TTL
- Typed exceptions for verification failures
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any

import httpx
from jose import JWTError, jwk, jwt
from jose.exceptions import JOSEError

from loginsync.core.config import settings


logger = logging.getLogger(__name__)

JWKS_TIMEOUT = 10.0


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CognitoVerificationError(Exception):
    """Base exception for Cognito JWT verification failures."""


class CognitoNotConfiguredError(CognitoVerificationError):
    """Raised when Cognito settings are not configured."""


class CognitoJWKSFetchError(CognitoVerificationError):
    """Raised when JWKS cannot be fetched from Cognito."""


class CognitoTokenExpiredError(CognitoVerificationError):
    """Raised when the token has expired."""


class CognitoAudienceMismatchError(CognitoVerificationError):
    """Raised when the token audience/client_id does not match the app client."""


class CognitoInvalidTokenError(CognitoVerificationError):
    """Raised for signature, issuer and other validation failures."""


# ---------------------------------------------------------------------------
# JWKS Cache
# ---------------------------------------------------------------------------


class _JWKSCache:
    """
    Thread-safe in-memory cache of the user pool signing keys, keyed by kid.
    Refreshed after COGNITO_JWKS_CACHE_SECONDS, or once on an unknown kid
    (key rotation).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys: dict[str, Any] | None = None
        self._fetched_at: float = 0.0

    def get_signing_key(self, kid: str) -> Any:
        with self._lock:
            expired = (time.time() - self._fetched_at) > settings.COGNITO_JWKS_CACHE_SECONDS
            if self._keys is None or expired:
                self._refresh_keys()

            if kid not in self._keys:
                self._refresh_keys()

            if kid not in self._keys:
                raise CognitoInvalidTokenError(f"Signing key not found for kid: {kid}")

            return self._keys[kid]

    def _refresh_keys(self) -> None:
        jwks_url = settings.cognito_jwks_url
        if not jwks_url:
            raise CognitoNotConfiguredError("Cognito JWKS URL not configured")

        logger.info("Fetching Cognito JWKS from %s", jwks_url)
        try:
            response = httpx.get(jwks_url, timeout=JWKS_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to fetch Cognito JWKS: %s", exc)
            raise CognitoJWKSFetchError(f"Failed to fetch JWKS: {exc}") from exc

        keys_list = data.get("keys", [])
        if not keys_list:
            raise CognitoJWKSFetchError("JWKS response contains no keys")

        keys: dict[str, Any] = {}
        for key_data in keys_list:
            kid = key_data.get("kid")
            if not kid:
                continue
            try:
                keys[kid] = jwk.construct(key_data)
            except JOSEError as exc:
                logger.warning("Failed to construct key for kid=%s: %s", kid, exc)

        self._keys = keys
        self._fetched_at = time.time()
        logger.info("Cached %d Cognito signing keys", len(keys))

    def clear(self) -> None:
        with self._lock:
            self._keys = None
            self._fetched_at = 0.0


_jwks_cache = _JWKSCache()


def clear_jwks_cache() -> None:
    """Clear the JWKS cache. Exposed for testing."""
    _jwks_cache.clear()


# ---------------------------------------------------------------------------
# Token Verification
# ---------------------------------------------------------------------------


def verify_cognito_jwt(token: str) -> dict[str, Any]:
    """
    Verify a Cognito ID or access token and return its claims.

    Checks the RS256 signature against the pool JWKS, exp/iat/nbf, the issuer,
    and the app client (``aud`` for ID tokens, ``client_id`` for access tokens).
    """
    issuer = settings.cognito_issuer
    client_id = settings.COGNITO_APP_CLIENT_ID

    if not issuer or not client_id:
        raise CognitoNotConfiguredError(
            "Cognito not configured (COGNITO_REGION, COGNITO_USER_POOL_ID, COGNITO_APP_CLIENT_ID required)"
        )

    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise CognitoInvalidTokenError(f"Invalid token header: {exc}") from exc

    kid = unverified_header.get("kid")
    if not kid:
        raise CognitoInvalidTokenError("Token header missing 'kid' claim")

    signing_key = _jwks_cache.get_signing_key(kid)

    try:
        # Audience is checked below: Cognito names it differently per token type.
        claims = jwt.decode(
            token,
            signing_key,
            algorithms=["RS256"],
            issuer=issuer,
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError as exc:
        raise CognitoTokenExpiredError("Token has expired") from exc
    except JWTError as exc:
        raise CognitoInvalidTokenError(f"Token validation failed: {exc}") from exc

    token_use = claims.get("token_use", "")
    if token_use == "id":
        audience = claims.get("aud", "")
    elif token_use == "access":
        audience = claims.get("client_id", "")
    else:
        raise CognitoInvalidTokenError(f"Unsupported token_use: {token_use or '<missing>'}")

    if audience != client_id:
        raise CognitoAudienceMismatchError(f"Expected client {client_id}, got {audience}")

    return claims
