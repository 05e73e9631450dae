"""Unit tests for auth/store.py -- UserStore repository methods.

Covers:
- insert() assigns id and timestamps, round-trips profile fields
- lookups by id, account, and account + digest
- UNIQUE(account) raises IntegrityError
- update() persists mutable columns and reports missing rows
- update_password() / update_profile() write only their own columns
- paging, counting and delete
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.store import UserStore


def _user(account: str, **kwargs) -> User:
    kwargs.setdefault("password_digest", "digest-" + account)
    return User(account=account, display_name=account, **kwargs)


class TestInsertAndLookup:
    def test_insert_assigns_id_and_timestamps(self, user_store: UserStore) -> None:
        user = _user("alice123")
        uid = user_store.insert(user)
        assert uid > 0
        assert user.id == uid
        assert user.created_at and user.updated_at

    def test_new_user_defaults_to_role_user(self, user_store: UserStore) -> None:
        uid = user_store.insert(_user("alice123"))
        assert user_store.find_by_id(uid).role == "user"

    def test_profile_fields_round_trip(self, user_store: UserStore) -> None:
        uid = user_store.insert(_user("alice123", avatar="https://img/a.png", bio="hi", tags=["go", "py"]))
        stored = user_store.find_by_id(uid)
        assert stored.avatar == "https://img/a.png"
        assert stored.bio == "hi"
        assert stored.tags == ["go", "py"]

    def test_find_by_account_is_exact(self, user_store: UserStore) -> None:
        user_store.insert(_user("alice123"))
        assert user_store.find_by_account("alice123") is not None
        assert user_store.find_by_account("ALICE123") is None
        assert user_store.find_by_account("nobody") is None

    def test_find_by_id_missing(self, user_store: UserStore) -> None:
        assert user_store.find_by_id(999) is None

    def test_find_by_account_and_digest_requires_both(self, user_store: UserStore) -> None:
        user_store.insert(_user("alice123", password_digest="abc"))
        user_store.insert(_user("bob12345", password_digest="xyz"))
        assert user_store.find_by_account_and_digest("alice123", "abc").account == "alice123"
        assert user_store.find_by_account_and_digest("alice123", "xyz") is None
        assert user_store.find_by_account_and_digest("nobody", "abc") is None

    def test_count_by_account(self, user_store: UserStore) -> None:
        assert user_store.count_by_account("alice123") == 0
        user_store.insert(_user("alice123"))
        assert user_store.count_by_account("alice123") == 1

    def test_duplicate_account_violates_constraint(self, user_store: UserStore) -> None:
        user_store.insert(_user("alice123"))
        with pytest.raises(IntegrityError):
            user_store.insert(_user("alice123"))


class TestUpdateAndDelete:
    def test_update_persists_mutable_fields(self, user_store: UserStore) -> None:
        user = _user("alice123")
        user_store.insert(user)
        user.role = "admin"
        user.display_name = "Alice"
        user.tags = ["new"]
        assert user_store.update(user) is True
        stored = user_store.find_by_id(user.id)
        assert stored.role == "admin"
        assert stored.display_name == "Alice"
        assert stored.tags == ["new"]
        assert stored.account == "alice123"

    def test_update_missing_row_returns_false(self, user_store: UserStore) -> None:
        ghost = _user("ghost123", id=4242)
        assert user_store.update(ghost) is False

    def test_update_password_touches_only_digest(self, user_store: UserStore) -> None:
        uid = user_store.insert(_user("alice123", bio="hi"))
        banned = user_store.find_by_id(uid)
        banned.role = "ban"
        user_store.update(banned)

        assert user_store.update_password(uid, "new-digest") is True
        stored = user_store.find_by_id(uid)
        assert stored.password_digest == "new-digest"
        assert stored.role == "ban"
        assert stored.bio == "hi"

    def test_update_profile_touches_only_given_columns(self, user_store: UserStore) -> None:
        uid = user_store.insert(_user("alice123", bio="hi", role="admin"))
        assert user_store.update_profile(uid, display_name="Alice", tags=["x"]) is True
        stored = user_store.find_by_id(uid)
        assert stored.display_name == "Alice"
        assert stored.tags == ["x"]
        assert stored.bio == "hi"
        assert stored.role == "admin"
        assert stored.password_digest == "digest-alice123"

    def test_update_profile_rejects_role(self, user_store: UserStore) -> None:
        uid = user_store.insert(_user("alice123"))
        with pytest.raises(ValueError):
            user_store.update_profile(uid, role="admin")
        assert user_store.find_by_id(uid).role == "user"

    def test_narrow_updates_on_missing_row(self, user_store: UserStore) -> None:
        assert user_store.update_password(4242, "digest") is False
        assert user_store.update_profile(4242, bio="x") is False

    def test_delete(self, user_store: UserStore) -> None:
        uid = user_store.insert(_user("alice123"))
        assert user_store.delete(uid) is True
        assert user_store.find_by_id(uid) is None
        assert user_store.delete(uid) is False


class TestListing:
    def test_has_users(self, user_store: UserStore) -> None:
        assert user_store.has_users() is False
        user_store.insert(_user("alice123"))
        assert user_store.has_users() is True

    def test_list_users_pages_in_id_order(self, user_store: UserStore) -> None:
        for i in range(5):
            user_store.insert(_user(f"user{i:04d}"))
        first = user_store.list_users(offset=0, limit=2)
        second = user_store.list_users(offset=2, limit=2)
        assert [u.account for u in first] == ["user0000", "user0001"]
        assert [u.account for u in second] == ["user0002", "user0003"]
        assert user_store.count_users() == 5
