# loginsync/services/reconciliation.py
"""
Login reconciliation.

Turns a login form submission into a session:

    validate -> sign in -> look up profile -> (create profile) -> persist session -> navigate

Each attempt walks the ReconcileState machine once and ends in COMPLETE or
FAILED. Failures never escape ``reconcile``; they come back on the outcome
as exactly one AuthError. No step is retried.

Profile lookup and creation are two separate remote calls, so two attempts
racing for a brand-new identity can both see "absent" and both create.
This class does not serialise attempts: the Profile Service's create is
idempotent per subject and answers the second caller with the first
caller's profile.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any

from loginsync.auth.errors import (
    AuthError,
    ProfileCreationError,
    ProfileLookupError,
    ProviderError,
    SessionPersistError,
    ValidationError,
    classify_provider_error,
)
from loginsync.auth.form import LoginForm
from loginsync.auth.identity import Identity
from loginsync.auth.session import NavigationSignal, Profile, SessionRecord
from loginsync.core.config import settings
from loginsync.services.cognito_client import IdentityProvider, IdentityProviderError
from loginsync.services.profile_client import ProfileServiceClient
from loginsync.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class ReconcileState(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    AUTHENTICATING = "authenticating"
    PROFILE_LOOKUP = "profile_lookup"
    PROFILE_CREATE = "profile_create"
    SESSION_PERSIST = "session_persist"
    COMPLETE = "complete"
    FAILED = "failed"


_TRANSITIONS: dict[ReconcileState, frozenset[ReconcileState]] = {
    ReconcileState.IDLE: frozenset([ReconcileState.VALIDATING]),
    ReconcileState.VALIDATING: frozenset([ReconcileState.AUTHENTICATING]),
    ReconcileState.AUTHENTICATING: frozenset([ReconcileState.PROFILE_LOOKUP]),
    ReconcileState.PROFILE_LOOKUP: frozenset([ReconcileState.PROFILE_CREATE, ReconcileState.SESSION_PERSIST]),
    ReconcileState.PROFILE_CREATE: frozenset([ReconcileState.SESSION_PERSIST]),
    ReconcileState.SESSION_PERSIST: frozenset([ReconcileState.COMPLETE]),
    ReconcileState.COMPLETE: frozenset(),
    ReconcileState.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset([ReconcileState.COMPLETE, ReconcileState.FAILED])


@dataclass
class LoginOutcome:
    """Terminal result of one reconciliation attempt."""

    state: ReconcileState = ReconcileState.IDLE
    trail: list[ReconcileState] = field(default_factory=lambda: [ReconcileState.IDLE])
    navigation: NavigationSignal | None = None
    session: SessionRecord | None = None
    error: AuthError | None = None

    @property
    def ok(self) -> bool:
        return self.state is ReconcileState.COMPLETE

    def advance(self, state: ReconcileState) -> None:
        if state is ReconcileState.FAILED:
            if self.state in TERMINAL_STATES:
                raise RuntimeError(f"Attempt already ended in {self.state.value}")
        elif state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {state.value}")
        self.state = state
        self.trail.append(state)


def _profile_for(identity: Identity, data: dict[str, Any]) -> Profile:
    profile = Profile.from_payload(data, subject=identity.subject)
    if profile.subject != identity.subject:
        raise ValueError("profile belongs to a different subject")
    return profile


class LoginReconciler:
    def __init__(
        self,
        *,
        identity_provider: IdentityProvider,
        profile_client: ProfileServiceClient,
        session_store: SessionStore,
        home_path: str | None = None,
    ) -> None:
        self._identity_provider = identity_provider
        self._profile_client = profile_client
        self._session_store = session_store
        self._home_path = home_path or settings.HOME_PATH

    async def reconcile(self, form: LoginForm) -> LoginOutcome:
        """
        Run one login attempt for the submitted form.

        The form's fields are cleared as soon as sign-in has been dispatched,
        before the remote chain resolves. On failure the form's error message
        is replaced with the error's user-facing message.
        """
        outcome = LoginOutcome()
        try:
            await self._run(form, outcome)
        except AuthError as exc:
            outcome.error = exc
            outcome.advance(ReconcileState.FAILED)
            form.error_message = exc.user_message
            logger.info("Login failed at %s: kind=%s", outcome.trail[-2].value, exc.kind)
        return outcome

    async def _run(self, form: LoginForm, outcome: LoginOutcome) -> None:
        outcome.advance(ReconcileState.VALIDATING)
        credentials = form.credentials()
        if not credentials.email or not credentials.password:
            raise ValidationError()

        outcome.advance(ReconcileState.AUTHENTICATING)
        sign_in = asyncio.ensure_future(self._identity_provider.sign_in(credentials.email, credentials.password))
        form.clear()
        try:
            identity = await sign_in
        except IdentityProviderError as exc:
            raise classify_provider_error(exc.code, str(exc)) from exc
        except Exception as exc:
            logger.exception("Identity provider sign-in raised unexpectedly")
            raise ProviderError(str(exc)) from exc

        outcome.advance(ReconcileState.PROFILE_LOOKUP)
        try:
            existing = await self._profile_client.get_profile(identity.id_token)
            profile = _profile_for(identity, existing) if existing is not None else None
        except Exception as exc:
            logger.warning("Profile lookup failed for %s: %s", identity.to_debug_dict(), exc)
            raise ProfileLookupError(str(exc)) from exc

        if profile is None:
            outcome.advance(ReconcileState.PROFILE_CREATE)
            try:
                created = await self._profile_client.create_profile(identity.id_token)
                profile = _profile_for(identity, created)
            except Exception as exc:
                logger.warning("Profile creation failed for %s: %s", identity.to_debug_dict(), exc)
                raise ProfileCreationError(str(exc)) from exc
            logger.info("Created profile for %s", identity.to_debug_dict())

        outcome.advance(ReconcileState.SESSION_PERSIST)
        record = SessionRecord(identity=identity, profile=profile)
        try:
            self._session_store.put(record)
        except SessionPersistError:
            raise
        except Exception as exc:
            raise SessionPersistError(str(exc)) from exc

        outcome.session = record
        outcome.navigation = NavigationSignal(destination=self._home_path)
        outcome.advance(ReconcileState.COMPLETE)
        logger.info("Login complete: %s", identity.to_debug_dict())
