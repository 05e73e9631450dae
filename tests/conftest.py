"""
tests/conftest.py -- Shared test fixtures for the accounts service.

This module provides:
  - user_store / session_store: fresh in-memory stores per test
  - coordinator / manager: core services wired to those stores
  - make_user(): insert an account directly, bypassing registration
  - api_client: TestClient over the real app with isolated stores and three
    seeded accounts (admin, user, banned user)

Design: the API fixture uses named shared-memory SQLite URIs (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI shares one in-memory instance across all
connections in the same process.

DEBUG and BCRYPT_ROUNDS must be set before any auth/core import so
get_settings() auto-generates SECRET_KEY and bcrypt stays fast.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set before any auth/core import -- settings are read at import time.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LEGACY_PASSWORD_SALT", "legacy-salt")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.models import Role, User
from auth.passwords import hash_password
from auth.registration import RegistrationCoordinator
from auth.session_store import SessionStore
from auth.sessions import SessionManager
from auth.store import UserStore

# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def session_store() -> Generator[SessionStore, None, None]:
    store = SessionStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def coordinator(user_store: UserStore) -> RegistrationCoordinator:
    return RegistrationCoordinator(user_store)


@pytest.fixture
def manager(user_store: UserStore, session_store: SessionStore) -> SessionManager:
    return SessionManager(user_store, session_store)


@pytest.fixture
def make_user(user_store: UserStore) -> Callable[..., User]:
    """Insert a user with a bcrypt digest of password and return it."""

    def _make(account: str, password: str = "password1", role: str = Role.user.value) -> User:
        user = User(account=account, display_name=account, role=role, password_digest=hash_password(password))
        user_store.insert(user)
        return user

    return _make


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    user_store: UserStore
    admin_id: int
    user_id: int
    banned_id: int

    def login(self, account: str, password: str) -> str:
        """Log in and return the token. Clears the cookie jar so later requests
        only authenticate through the headers a test passes explicitly."""
        resp = self.client.post("/api/v1/auth/login", json={"account": account, "password": password})
        assert resp.status_code == 200, resp.text
        self.client.cookies.clear()
        return resp.json()["access_token"]

    @staticmethod
    def auth(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


def _patch_lifespan(user_store: UserStore, session_store: SessionStore):
    """Return an async context manager that replaces the real lifespan.

    The purge task is a long-sleeping coroutine so shutdown has a real
    asyncio.Task to cancel.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, user_store, session_store)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    Seeded accounts (all with password "password1"):
      rootadmin (admin), plainuser (user), banneduser (ban)
    """
    db_url = f"sqlite:///file:test_accounts_{request.module.__name__}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url)
    session_store = SessionStore(db_url)

    ids = {}
    for account, role in (("rootadmin", "admin"), ("plainuser", "user"), ("banneduser", "ban")):
        ids[role] = user_store.insert(
            User(account=account, display_name=account, role=role, password_digest=hash_password("password1"))
        )

    app.router.lifespan_context = _patch_lifespan(user_store, session_store)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            user_store=user_store,
            admin_id=ids["admin"],
            user_id=ids["user"],
            banned_id=ids["ban"],
        )

    session_store.close()
    user_store.close()
