# loginsync/auth/__init__.py
"""
Authentication modules for loginsync.

This package contains:
- identity.py: Identity returned by the identity provider
- session.py: Profile, SessionRecord and NavigationSignal
- form.py: Login form state and submitted credentials
- errors.py: Login failure taxonomy and provider error classification
- cognito.py: Cognito JWT verification for the Profile Service
"""
from loginsync.auth.identity import Identity
from loginsync.auth.session import NavigationSignal, Profile, SessionRecord

__all__ = ["Identity", "NavigationSignal", "Profile", "SessionRecord"]
