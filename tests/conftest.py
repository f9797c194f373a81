"""
tests/conftest.py -- Shared test fixtures for SessionGate.

This module provides:
  - settings / codec / verifier / store / manager: unit-level components built
    from an explicit Settings object, backed by a private in-memory SQLite DB
  - alice: a signed-up account with a known password
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
api_client because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

The DEBUG env var must be set before any api import so get_settings()
auto-generates SECRET_KEY instead of raising ConfigurationError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any api/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_session_manager
from api.main import settings as app_settings
from auth.models import Account
from auth.passwords import PasswordVerifier
from auth.sessions import SessionManager
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from core.config import Settings

ALICE_PASSWORD = "Abcd1234!"


# ---------------------------------------------------------------------------
# Unit-level components
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(secret_key="s" * 48, bcrypt_rounds=4, debug=False)


@pytest.fixture
def codec(settings: Settings) -> TokenCodec:
    return TokenCodec(settings)


@pytest.fixture
def verifier(settings: Settings) -> PasswordVerifier:
    return PasswordVerifier(settings)


@pytest.fixture
def store() -> Generator[CredentialStore, None, None]:
    s = CredentialStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def manager(store: CredentialStore, verifier: PasswordVerifier, codec: TokenCodec, settings: Settings) -> SessionManager:
    return SessionManager(store, verifier, codec, settings)


@pytest.fixture
def make_account(verifier: PasswordVerifier) -> Callable[..., Account]:
    """Factory for unsaved accounts with a real bcrypt hash."""

    def _make(username: str, password: str = ALICE_PASSWORD) -> Account:
        return Account(
            username=username,
            email=f"{username}@example.com",
            first_name=username.capitalize(),
            last_name="Tester",
            password_hash=verifier.hash(password),
        )

    return _make


@pytest.fixture
def alice(store: CredentialStore, make_account: Callable[..., Account]) -> int:
    """Account id of a freshly signed-up 'alice' with no session."""
    return store.create_account(make_account("alice"))


# ---------------------------------------------------------------------------
# HTTP integration
# ---------------------------------------------------------------------------


def _patch_lifespan(manager: SessionManager):
    """Return an async context manager that replaces the real lifespan.

    Wires a pre-built session manager into app.state so TestClient routes see
    an isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.sessions = manager
        app.state.codec = manager.codec
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, SessionManager], None, None]:
    """Yield (client, manager) over a fresh shared-memory credential store.

    raise_server_exceptions=False so the generic 500 handler's response can be
    asserted on instead of the exception surfacing in the test.
    """
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    store = CredentialStore(db_url)
    manager = build_session_manager(store, app_settings)
    app.router.lifespan_context = _patch_lifespan(manager)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, manager

    store.close()
