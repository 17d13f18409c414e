"""
HTTP client for the Profile Service.

Two operations, both authorized with the identity's bearer ID token:

    GET  /profile  -> {"profile": {...} | null}
    POST /profile  -> {"user": {"profile": {...}}}
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from loginsync.core.config import settings

logger = logging.getLogger(__name__)

PROFILE_PATH = "/profile"


class ProfileServiceError(Exception):
    """Raised when a profile call fails or answers with an unusable body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProfileServiceClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.PROFILE_SERVICE_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.PROFILE_SERVICE_TIMEOUT_SECONDS
        self._transport = transport

    async def _request(self, method: str, token: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, PROFILE_PATH, headers=headers)
        except httpx.HTTPError as exc:
            raise ProfileServiceError(f"Profile service unreachable: {exc}") from exc

        if response.is_error:
            logger.warning("Profile service %s %s failed: status=%s", method, PROFILE_PATH, response.status_code)
            raise ProfileServiceError(
                f"Profile service answered {response.status_code} to {method} {PROFILE_PATH}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProfileServiceError("Profile service returned invalid JSON", status_code=response.status_code) from exc

        if not isinstance(payload, dict):
            raise ProfileServiceError("Profile service returned a non-object body", status_code=response.status_code)
        return payload

    async def get_profile(self, token: str) -> dict[str, Any] | None:
        """Return the caller's profile payload, or None when the service has none."""
        payload = await self._request("GET", token)
        if "profile" not in payload:
            raise ProfileServiceError("Profile lookup response missing 'profile'")

        data = payload["profile"]
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ProfileServiceError("Profile lookup returned a malformed profile")
        return data

    async def create_profile(self, token: str) -> dict[str, Any]:
        payload = await self._request("POST", token)
        user = payload.get("user")
        data = user.get("profile") if isinstance(user, dict) else None
        if not isinstance(data, dict):
            raise ProfileServiceError("Profile creation response missing 'user.profile'")
        return data
