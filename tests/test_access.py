"""Unit tests for auth/access.py -- the role policy.

Covers:
- the full (required role x caller role) decision table, unknown values included
- check_access() with and without the ban check
- the error raised never names the required role
"""

from __future__ import annotations

import pytest

from auth.access import ROLE_POLICY, check_access, is_admin, is_allowed, is_banned
from auth.models import Role, User
from core.errors import NotAuthorized


class TestIsAllowed:
    @pytest.mark.parametrize(
        ("must_role", "caller_role", "expected"),
        [
            # no requirement: any caller
            (None, "user", True),
            ("", "admin", True),
            ("", "ban", True),
            # admin requirement
            ("admin", "admin", True),
            ("admin", "user", False),
            ("admin", "ban", False),
            ("admin", None, False),
            ("admin", "root", False),
            # user requirement has an empty allow-list
            ("user", "user", False),
            ("user", "admin", False),
            # nothing satisfies ban
            ("ban", "ban", False),
            ("ban", "admin", False),
            # unknown requirement
            ("superuser", "admin", False),
        ],
    )
    def test_decision_table(self, must_role, caller_role, expected) -> None:
        assert is_allowed(must_role, caller_role) is expected

    def test_accepts_enum_members(self) -> None:
        assert is_allowed(Role.admin, Role.admin)
        assert not is_allowed(Role.admin, Role.user)

    def test_policy_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            ROLE_POLICY[Role.user] = frozenset({Role.admin})


class TestCheckAccess:
    def test_admin_passes_admin_gate(self) -> None:
        check_access(User(account="root1234", role="admin"), Role.admin)

    @pytest.mark.parametrize("role", ["user", "ban"])
    def test_non_admin_denied(self, role) -> None:
        with pytest.raises(NotAuthorized) as exc:
            check_access(User(account="alice123", role=role), Role.admin)
        assert "admin" not in exc.value.message.lower()

    def test_open_operation_allows_banned_without_ban_check(self) -> None:
        check_access(User(account="mallory1", role="ban"))

    def test_ban_check_denies_banned(self) -> None:
        with pytest.raises(NotAuthorized):
            check_access(User(account="mallory1", role="ban"), check_ban=True)

    def test_ban_check_allows_active_user(self) -> None:
        check_access(User(account="alice123", role="user"), check_ban=True)


class TestHelpers:
    def test_is_banned(self) -> None:
        assert is_banned(User(account="mallory1", role="ban"))
        assert not is_banned(User(account="alice123"))

    def test_is_admin(self) -> None:
        assert is_admin(User(account="root1234", role="admin"))
        assert not is_admin(User(account="alice123"))
        assert not is_admin(None)
