"""
tests/conftest.py -- Shared fixtures for Chirpy unit and integration tests.

This module provides:
  - db_url: a fresh named shared-memory SQLite URL per test
  - user_store / refresh_store / chirp_store: isolated stores on that URL
  - sessions: a SessionService wired to those stores
  - make_client: factory for a TestClient with a patched lifespan
  - client: make_client() with default settings (no rotation)

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

PLATFORM, SECRET and BCRYPT_ROUNDS must be set before any application import:
the settings singleton is built on first use, and auth/passwords.py hashes
its timing dummy at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any auth/core/api import.
os.environ.setdefault("PLATFORM", "dev")
os.environ.setdefault("SECRET", "test-secret-0123456789abcdef0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.session import SessionService
from auth.store import RefreshTokenStore, UserStore
from chirps.store import ChirpStore
from core.config import get_settings
from core.metrics import VisitCounter

TEST_SECRET = "unit-test-secret-abcdefghijklmnopqrstuvwxyz"


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_url() -> str:
    return f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


@pytest.fixture
def user_store(db_url: str) -> Generator[UserStore, None, None]:
    store = UserStore(db_url)
    yield store
    store.close()


@pytest.fixture
def refresh_store(db_url: str) -> Generator[RefreshTokenStore, None, None]:
    store = RefreshTokenStore(db_url)
    yield store
    store.close()


@pytest.fixture
def chirp_store(db_url: str) -> Generator[ChirpStore, None, None]:
    store = ChirpStore(db_url)
    yield store
    store.close()


@pytest.fixture
def sessions(user_store: UserStore, refresh_store: RefreshTokenStore) -> SessionService:
    return SessionService(users=user_store, refresh_tokens=refresh_store, secret=TEST_SECRET)


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _patch_lifespan(db_url: str, rotate_refresh_tokens: bool):
    """Return an async context manager that replaces the real lifespan.

    Wires isolated test stores into app.state so TestClient routes never
    touch the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.visits = VisitCounter()
        app.state.user_store = UserStore(db_url)
        app.state.refresh_store = RefreshTokenStore(db_url)
        app.state.chirp_store = ChirpStore(db_url)
        app.state.sessions = SessionService(
            users=app.state.user_store,
            refresh_tokens=app.state.refresh_store,
            secret=get_settings().secret,
            rotate_refresh_tokens=rotate_refresh_tokens,
        )
        yield
        app.state.chirp_store.close()
        app.state.refresh_store.close()
        app.state.user_store.close()

    return test_lifespan


@pytest.fixture
def make_client(db_url: str) -> Generator[Callable[..., TestClient], None, None]:
    """Yield a factory that starts a TestClient; every started client is closed on teardown."""
    started: list[TestClient] = []
    original = app.router.lifespan_context

    def _make(rotate_refresh_tokens: bool = False) -> TestClient:
        app.router.lifespan_context = _patch_lifespan(db_url, rotate_refresh_tokens)
        client = TestClient(app, raise_server_exceptions=True)
        client.__enter__()
        started.append(client)
        return client

    yield _make

    for client in started:
        client.__exit__(None, None, None)
    app.router.lifespan_context = original


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def register_and_login(client: TestClient, email: str = "saul@bettercall.com", password: str = "123456", **extra) -> dict:
    """Create an account through the API and return the login response body."""
    resp = client.post("/api/users", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/login", json={"email": email, "password": password, **extra})
    assert resp.status_code == 200, resp.text
    return resp.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
