# loginsync/dependencies/login.py
from __future__ import annotations

from loginsync.services.cognito_client import CognitoIdentityProvider, IdentityProvider
from loginsync.services.profile_client import ProfileServiceClient


def get_identity_provider() -> IdentityProvider:
    return CognitoIdentityProvider()


def get_profile_client() -> ProfileServiceClient:
    return ProfileServiceClient()
