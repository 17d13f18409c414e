# tests/test_reconciliation.py
"""
Tests for the login reconciliation flow.

Collaborators are in-memory fakes (see fakes.py): no Cognito, no HTTP.
"""
from __future__ import annotations

import asyncio
import logging

import pytest

from fakes import FakeIdentityProvider, FakeProfileClient
from loginsync.auth.errors import (
    InvalidCredentialsError,
    InvalidEmailFormatError,
    ProfileCreationError,
    ProfileLookupError,
    ProviderError,
    SessionPersistError,
    ValidationError,
)
from loginsync.auth.form import LoginForm
from loginsync.services.reconciliation import LoginOutcome, LoginReconciler, ReconcileState
from loginsync.services.session_store import InMemorySessionStore

S = ReconcileState


def _reconciler(provider, profile_client, store=None, **kwargs) -> LoginReconciler:
    return LoginReconciler(
        identity_provider=provider,
        profile_client=profile_client,
        session_store=store if store is not None else InMemorySessionStore(),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Local validation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email,password",
    [
        ("", "secret1"),
        ("a@b.com", ""),
        ("", ""),
        ("   ", "secret1"),
    ],
)
async def test_empty_field_fails_validation_without_network(provider, profile_client, email, password):
    store = InMemorySessionStore()
    outcome = await _reconciler(provider, profile_client, store).reconcile(LoginForm(email, password))

    assert isinstance(outcome.error, ValidationError)
    assert outcome.state is S.FAILED
    assert outcome.trail == [S.IDLE, S.VALIDATING, S.FAILED]
    assert provider.calls == []
    assert profile_client.network_calls == 0
    assert store.get() is None


@pytest.mark.asyncio
async def test_validation_failure_leaves_form_fields(provider, profile_client):
    form = LoginForm("a@b.com", "")
    await _reconciler(provider, profile_client).reconcile(form)

    assert form.email == "a@b.com"
    assert form.error_message == "All fields are required"


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_scenario_absent_profile_is_created(provider, identity):
    profile_client = FakeProfileClient(existing=None, created={"plan": "free"})
    store = InMemorySessionStore()

    outcome = await _reconciler(provider, profile_client, store).reconcile(LoginForm("a@b.com", "secret1"))

    assert outcome.ok
    assert outcome.error is None
    assert outcome.navigation.destination == "/"
    assert outcome.trail == [
        S.IDLE,
        S.VALIDATING,
        S.AUTHENTICATING,
        S.PROFILE_LOOKUP,
        S.PROFILE_CREATE,
        S.SESSION_PERSIST,
        S.COMPLETE,
    ]
    assert provider.calls == [("a@b.com", "secret1")]
    assert profile_client.create_calls == [identity.id_token]

    record = store.get()
    assert record is outcome.session
    assert record.identity == identity
    assert record.profile.data == {"plan": "free"}
    assert record.to_dict()["profile"] == {"plan": "free"}


@pytest.mark.asyncio
async def test_present_profile_is_never_created(provider, identity):
    existing = {"subject": identity.subject, "plan": "pro"}
    profile_client = FakeProfileClient(existing=existing)
    store = InMemorySessionStore()

    outcome = await _reconciler(provider, profile_client, store).reconcile(LoginForm("a@b.com", "secret1"))

    assert outcome.ok
    assert S.PROFILE_CREATE not in outcome.trail
    assert profile_client.create_calls == []
    assert store.get().profile.data == existing


@pytest.mark.asyncio
async def test_email_is_trimmed_before_sign_in(provider, profile_client):
    await _reconciler(provider, profile_client).reconcile(LoginForm("  a@b.com ", "secret1"))

    assert provider.calls == [("a@b.com", "secret1")]


@pytest.mark.asyncio
async def test_custom_home_path(provider, profile_client):
    outcome = await _reconciler(provider, profile_client, home_path="/dashboard").reconcile(
        LoginForm("a@b.com", "secret1")
    )

    assert outcome.navigation.destination == "/dashboard"


@pytest.mark.asyncio
async def test_repeated_logins_overwrite_session(identity):
    store = InMemorySessionStore()
    first = FakeProfileClient(existing={"plan": "free"})
    second = FakeProfileClient(existing={"plan": "pro"})

    await _reconciler(FakeIdentityProvider(identity), first, store).reconcile(LoginForm("a@b.com", "secret1"))
    await _reconciler(FakeIdentityProvider(identity), second, store).reconcile(LoginForm("a@b.com", "secret1"))

    assert store.get().profile.data == {"plan": "pro"}


# ---------------------------------------------------------------------------
# Credential clearing
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_form_is_cleared_while_sign_in_is_pending(identity, profile_client):
    form = LoginForm("a@b.com", "secret1")
    release = asyncio.Event()
    seen: dict = {}

    class SlowProvider:
        async def sign_in(self, email, password):
            seen["args"] = (email, password)
            seen["form"] = (form.email, form.password)
            await release.wait()
            return identity

    task = asyncio.create_task(_reconciler(SlowProvider(), profile_client).reconcile(form))
    while "form" not in seen:
        await asyncio.sleep(0)

    assert seen["args"] == ("a@b.com", "secret1")
    assert seen["form"] == ("", "")
    assert not task.done()

    release.set()
    outcome = await task
    assert outcome.ok


@pytest.mark.asyncio
async def test_form_is_cleared_even_when_sign_in_fails(profile_client, provider_error):
    form = LoginForm("a@b.com", "secret1")
    provider = FakeIdentityProvider(error=provider_error("NotAuthorizedException"))

    await _reconciler(provider, profile_client).reconcile(form)

    assert (form.email, form.password) == ("", "")
    assert form.error_message == "Invalid email or password"


# ---------------------------------------------------------------------------
# Failure paths
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_scenario_invalid_email_from_provider(profile_client, provider_error):
    provider = FakeIdentityProvider(error=provider_error("auth/invalid-email"))
    store = InMemorySessionStore()
    form = LoginForm("bad", "secret1")

    outcome = await _reconciler(provider, profile_client, store).reconcile(form)

    assert isinstance(outcome.error, InvalidEmailFormatError)
    assert outcome.trail == [S.IDLE, S.VALIDATING, S.AUTHENTICATING, S.FAILED]
    assert store.get() is None
    assert profile_client.network_calls == 0
    assert form.error_message == "Invalid email format"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code,expected",
    [
        ("NotAuthorizedException", InvalidCredentialsError),
        ("UserNotFoundException", InvalidCredentialsError),
        ("InvalidParameterException", ProviderError),
        ("TooManyRequestsException", ProviderError),
        ("ChallengeRequired", ProviderError),
    ],
)
async def test_provider_failures_are_classified(profile_client, provider_error, code, expected):
    provider = FakeIdentityProvider(error=provider_error(code))

    outcome = await _reconciler(provider, profile_client).reconcile(LoginForm("a@b.com", "secret1"))

    assert type(outcome.error) is expected
    assert outcome.session is None


@pytest.mark.asyncio
async def test_unexpected_provider_exception_is_recovered(profile_client):
    provider = FakeIdentityProvider(error=RuntimeError("COGNITO_REGION is not configured"))
    store = InMemorySessionStore()

    outcome = await _reconciler(provider, profile_client, store).reconcile(LoginForm("a@b.com", "secret1"))

    assert isinstance(outcome.error, ProviderError)
    assert outcome.error.user_message == "Login failed: An unknown error occurred."
    assert store.get() is None


@pytest.mark.asyncio
async def test_scenario_lookup_failure(provider, profile_service_error):
    profile_client = FakeProfileClient(lookup_error=profile_service_error)
    store = InMemorySessionStore()

    outcome = await _reconciler(provider, profile_client, store).reconcile(LoginForm("a@b.com", "secret1"))

    assert isinstance(outcome.error, ProfileLookupError)
    assert outcome.trail[-2:] == [S.PROFILE_LOOKUP, S.FAILED]
    assert profile_client.create_calls == []
    assert store.get() is None


@pytest.mark.asyncio
async def test_creation_failure_writes_no_session(provider, profile_service_error):
    profile_client = FakeProfileClient(existing=None, create_error=profile_service_error)
    store = InMemorySessionStore()

    outcome = await _reconciler(provider, profile_client, store).reconcile(LoginForm("a@b.com", "secret1"))

    assert isinstance(outcome.error, ProfileCreationError)
    assert outcome.trail[-2:] == [S.PROFILE_CREATE, S.FAILED]
    assert profile_client.create_calls == ["id-token-123"]
    assert store.get() is None


@pytest.mark.asyncio
async def test_profile_of_another_subject_is_rejected(provider):
    profile_client = FakeProfileClient(existing={"subject": "someone-else", "plan": "free"})
    store = InMemorySessionStore()

    outcome = await _reconciler(provider, profile_client, store).reconcile(LoginForm("a@b.com", "secret1"))

    assert isinstance(outcome.error, ProfileLookupError)
    assert store.get() is None


@pytest.mark.asyncio
async def test_store_failure_is_session_persist_error(provider, profile_client):
    class BrokenStore:
        def put(self, record):
            raise OSError("disk full")

        def get(self):
            return None

    form = LoginForm("a@b.com", "secret1")
    outcome = await _reconciler(provider, profile_client, BrokenStore()).reconcile(form)

    assert isinstance(outcome.error, SessionPersistError)
    assert outcome.trail[-2:] == [S.SESSION_PERSIST, S.FAILED]
    assert outcome.navigation is None
    assert form.error_message == "Login failed: unable to save your session."


@pytest.mark.asyncio
async def test_new_attempt_replaces_error_message(identity, provider_error):
    form = LoginForm("a@b.com", "wrong-pass")
    failing = FakeIdentityProvider(error=provider_error("NotAuthorizedException"))
    await _reconciler(failing, FakeProfileClient()).reconcile(form)
    assert form.error_message == "Invalid email or password"

    form.email, form.password = "a@b.com", "secret1"
    broken_lookup = FakeProfileClient(lookup_error=RuntimeError("boom"))
    outcome = await _reconciler(FakeIdentityProvider(identity), broken_lookup).reconcile(form)
    assert isinstance(outcome.error, ProfileLookupError)
    assert form.error_message == "Login failed: unable to load your profile."

    form.email, form.password = "", "secret1"
    await _reconciler(FakeIdentityProvider(identity), FakeProfileClient()).reconcile(form)
    assert form.error_message == "All fields are required"


# ---------------------------------------------------------------------------
# Idempotence across attempts
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_repeated_logins_create_at_most_once(identity):
    """A profile service that remembers what it created is only asked to create once."""

    class RememberingProfileClient(FakeProfileClient):
        async def create_profile(self, token):
            created = await super().create_profile(token)
            self.existing = created
            return created

    profile_client = RememberingProfileClient(existing=None)
    for _ in range(3):
        outcome = await _reconciler(FakeIdentityProvider(identity), profile_client).reconcile(
            LoginForm("a@b.com", "secret1")
        )
        assert outcome.ok

    assert len(profile_client.create_calls) == 1
    assert len(profile_client.lookup_calls) == 3


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def test_outcome_rejects_skipping_states():
    outcome = LoginOutcome()
    outcome.advance(S.VALIDATING)

    with pytest.raises(RuntimeError):
        outcome.advance(S.PROFILE_LOOKUP)


def test_outcome_terminal_states_are_final():
    outcome = LoginOutcome()
    outcome.advance(S.FAILED)

    with pytest.raises(RuntimeError):
        outcome.advance(S.FAILED)
    with pytest.raises(RuntimeError):
        outcome.advance(S.VALIDATING)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_logs_name_the_subject_but_never_the_token_or_password(provider, caplog):
    caplog.set_level(logging.DEBUG, logger="loginsync")
    profile_client = FakeProfileClient(existing=None)

    outcome = await _reconciler(provider, profile_client).reconcile(LoginForm("a@b.com", "secret1"))

    assert outcome.ok
    assert "sub-123" in caplog.text
    assert "id-token-123" not in caplog.text
    assert "secret1" not in caplog.text


@pytest.mark.asyncio
async def test_failure_logs_never_carry_the_token(provider, caplog):
    caplog.set_level(logging.DEBUG, logger="loginsync")
    profile_client = FakeProfileClient(lookup_error=RuntimeError("boom"))

    await _reconciler(provider, profile_client).reconcile(LoginForm("a@b.com", "secret1"))

    assert "Profile lookup failed" in caplog.text
    assert "id-token-123" not in caplog.text
