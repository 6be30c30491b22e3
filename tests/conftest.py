"""
tests/conftest.py -- Shared test fixtures for MyFlix tests.

This module provides:
  - store: fresh in-memory PrincipalStore per test (unit tests)
  - make_principal: factory that stores a principal with a hashed password
  - api_client: (TestClient, PrincipalStore) wired through a patched lifespan
  - register / login: helpers that drive the real HTTP endpoints

Design: the API store uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

SECRET_KEY and DEBUG must be set before any api/ or core/ import so
get_settings() resolves a fixed key instead of raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: set before importing the app -- api/main.py reads settings at import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-myflix-0123456789abcdef")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, configure_state
from auth.models import Principal
from auth.passwords import hash_password
from auth.store import PrincipalStore
from core.config import get_settings

TEST_SECRET = os.environ["SECRET_KEY"]
DEFAULT_PASSWORD = "longpass1"

# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[PrincipalStore, None, None]:
    """In-memory PrincipalStore, discarded after each test."""
    s = PrincipalStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def make_principal(store: PrincipalStore) -> Callable[..., Principal]:
    """Return a factory that stores a principal with a real bcrypt hash."""

    def _make(email: str = "alice@example.com", password: str = DEFAULT_PASSWORD, **fields) -> Principal:
        return store.create(
            Principal(
                email=email,
                firstname=fields.pop("firstname", "Alice"),
                lastname=fields.pop("lastname", "Liddell"),
                hashed_password=hash_password(password),
                **fields,
            )
        )

    return _make


# ---------------------------------------------------------------------------
# Integration fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: PrincipalStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store into app.state through the same configure_state()
    the real lifespan uses, so issuer and verifier share TEST_SECRET.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        configure_state(app, get_settings(), store)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, PrincipalStore], None, None]:
    """Yield (client, store) for API integration tests.

    base_url uses localhost so TrustedHostMiddleware accepts the requests.
    """
    store = PrincipalStore("sqlite:///file:test_auth_api?mode=memory&cache=shared&uri=true")
    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as client:
        yield client, store

    store.close()


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> None:
    """Clear slowapi counters so login-heavy tests do not trip the 10/minute limit."""
    limiter.reset()


@pytest.fixture
def register(api_client) -> Callable[..., dict]:
    """Register an account through POST /api/v1/users and return the response JSON."""
    client, _store = api_client

    def _register(email: str, password: str = DEFAULT_PASSWORD, **fields) -> dict:
        body = {"email": email, "password": password, "firstname": "Test", "lastname": "User", **fields}
        resp = client.post("/api/v1/users", json=body)
        assert resp.status_code == 201, f"Registration failed: {resp.status_code} {resp.text}"
        return resp.json()

    return _register


@pytest.fixture
def login(api_client) -> Callable[..., str]:
    """Log in through POST /api/v1/auth/login and return the bearer token."""
    client, _store = api_client

    def _login(email: str, password: str = DEFAULT_PASSWORD) -> str:
        resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, f"Login failed: {resp.status_code} {resp.text}"
        return resp.json()["token"]

    return _login
