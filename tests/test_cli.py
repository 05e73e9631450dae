"""
tests/test_cli.py -- Tests for the operator commands in main.py.

Covers:
  - create-admin creates an admin account, rejects duplicates and short input
  - set-role changes an existing account, reports unknown accounts
  - purge-sessions removes expired rows only
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.models import Session
from auth.session_store import SessionStore
from auth.store import UserStore
from core.config import get_settings
from main import main


@pytest.fixture
def db_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setattr(get_settings(), "database_url", url)
    return url


def test_create_admin(db_url, capsys) -> None:
    assert main(["create-admin", "rootadmin", "password1"]) == 0
    assert "Created admin 'rootadmin'" in capsys.readouterr().out
    store = UserStore(db_url)
    try:
        assert store.find_by_account("rootadmin").role == "admin"
    finally:
        store.close()


def test_create_admin_duplicate(db_url, capsys) -> None:
    assert main(["create-admin", "rootadmin", "password1"]) == 0
    assert main(["create-admin", "rootadmin", "password1"]) == 1
    assert "already exists" in capsys.readouterr().err


def test_create_admin_short_password(db_url, capsys) -> None:
    assert main(["create-admin", "rootadmin", "short"]) == 1
    assert "too short" in capsys.readouterr().err


def test_set_role(db_url) -> None:
    main(["create-admin", "rootadmin", "password1"])
    assert main(["set-role", "rootadmin", "ban"]) == 0
    store = UserStore(db_url)
    try:
        assert store.find_by_account("rootadmin").role == "ban"
    finally:
        store.close()


def test_set_role_unknown_account(db_url, capsys) -> None:
    assert main(["set-role", "nobody99", "admin"]) == 1
    assert "No account named" in capsys.readouterr().err


def test_set_role_rejects_unknown_role(db_url) -> None:
    with pytest.raises(SystemExit):
        main(["set-role", "rootadmin", "root"])


def test_purge_sessions(db_url, capsys) -> None:
    now = datetime.now(timezone.utc)
    sessions = SessionStore(db_url)
    try:
        sessions.create(Session("old", 1, (now - timedelta(days=2)).isoformat(), (now - timedelta(days=1)).isoformat()))
        sessions.create(Session("live", 1, now.isoformat(), (now + timedelta(days=1)).isoformat()))
    finally:
        sessions.close()

    assert main(["purge-sessions"]) == 0
    assert "Removed 1 expired session(s)." in capsys.readouterr().out
