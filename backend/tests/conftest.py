import os

# Settings are read at import time; pin the test environment before importing loginsync.
os.environ.setdefault("JWT_SECRET", "test_jwt_secret")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENV", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from loginsync.auth.identity import Identity
from loginsync.core.base import Base
from loginsync.core.database import get_db
from loginsync.dependencies.login import get_identity_provider, get_profile_client
from loginsync.services.cognito_client import IdentityProviderError
from loginsync.services.profile_client import ProfileServiceError

from fakes import FakeIdentityProvider, FakeProfileClient

# Import models so they register with SQLAlchemy metadata.
from loginsync.models.profile import Profile  # noqa: F401


@pytest.fixture(scope="session")
def db_engine():
    # In-memory SQLite for fast, isolated tests.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def db_session(db_engine):
    # The in-memory DB persists across tests with StaticPool; reset schema per test.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def identity():
    return Identity(subject="sub-123", id_token="id-token-123", email="a@b.com")


@pytest.fixture()
def provider(identity):
    return FakeIdentityProvider(identity=identity)


@pytest.fixture()
def profile_client():
    return FakeProfileClient()


@pytest.fixture()
def provider_error():
    def _make(code: str, message: str = "rejected") -> IdentityProviderError:
        return IdentityProviderError(code=code, message=message)

    return _make


@pytest.fixture()
def profile_service_error():
    return ProfileServiceError("connection refused")


@pytest.fixture()
def app(db_session):
    from loginsync.main import app as fastapi_app

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def login_client(app, provider, profile_client):
    """Client whose login flow talks to the fake provider and profile client."""
    app.dependency_overrides[get_identity_provider] = lambda: provider
    app.dependency_overrides[get_profile_client] = lambda: profile_client
    with TestClient(app) as c:
        yield c
