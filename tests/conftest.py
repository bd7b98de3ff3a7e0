"""
tests/conftest.py -- Shared test fixtures for the HR training API tests.

This module provides:
  - make_settings(): Settings built in code (no environment, no .env file)
  - memory_db_url(): a fresh named shared-memory SQLite URI
  - mint(): a signed session token for a given role
  - provider: LocalProvider over an isolated in-memory database
  - client: TestClient over create_app(settings, provider)
  - admin_client / member_client: the same client with a session cookie set

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the same process. Each fixture
gets a uuid-suffixed name so tests never see each other's rows.

The slowapi limiter is a process-wide singleton; its counters are reset before
every test so the login rate limit only triggers where a test asks for it.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import create_app
from auth.models import Role
from auth.tokens import COOKIE_NAME, create_access_token
from core.config import Settings
from provider.local import LocalProvider

TEST_SECRET = "test-secret-key-for-hr-training-api-0123456789"

ADMIN_ID = "00000000-0000-0000-0000-0000000000a1"
MEMBER_ID = "00000000-0000-0000-0000-0000000000b2"


def memory_db_url(name: str = "hrtraining") -> str:
    return f"sqlite:///file:{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def make_settings(**overrides) -> Settings:
    """Build Settings for tests. Keyword overrides win over the defaults here."""
    values = {
        "debug": False,
        "environment": "development",
        "jwt_secret": TEST_SECRET,
        "provider_backend": "local",
        "local_db_url": memory_db_url(),
        "frontend_url": "http://localhost:3000",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def mint(settings: Settings, role: Role, subject: str | None = None, email: str | None = None, **kwargs) -> str:
    """Sign a session token for `role` with the test secret."""
    if subject is None:
        subject = ADMIN_ID if role is Role.ADMIN else MEMBER_ID
    if email is None:
        email = f"{role.value.lower()}@example.com"
    return create_access_token(
        subject,
        email,
        role,
        secret=settings.jwt_secret,
        ttl_seconds=kwargs.pop("ttl_seconds", settings.token_expire_seconds),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> None:
    limiter.reset()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def provider(settings: Settings) -> Generator[LocalProvider, None, None]:
    p = LocalProvider(db_url=settings.local_db_url)
    yield p
    p.close()


@pytest.fixture
def client(settings: Settings, provider: LocalProvider) -> Generator[TestClient, None, None]:
    """TestClient over a fresh app. Tests hit real routes against the local provider."""
    app = create_app(settings=settings, provider=provider)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def admin_client(client: TestClient, settings: Settings) -> TestClient:
    client.cookies.set(COOKIE_NAME, mint(settings, Role.ADMIN))
    return client


@pytest.fixture
def member_client(client: TestClient, settings: Settings) -> TestClient:
    client.cookies.set(COOKIE_NAME, mint(settings, Role.MEMBER))
    return client
