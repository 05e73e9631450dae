"""
auth/registration.py -- Account registration with a per-account race guard.

Two concurrent registrations for the same account must never both succeed.
Inside one process KeyedLock serializes the check-then-insert sequence per
account name, while registrations for different accounts run in parallel.
Across processes the UNIQUE(account) constraint in auth/store.py is the
backstop: an IntegrityError from insert() is reported as DuplicateAccount,
exactly like a failed pre-check.

Validation runs before any lock is taken and fails fast, in order:
  1. account, password and confirmation are all non-blank
  2. account is at least 4 characters
  3. password and confirmation are at least 8 characters
  4. password equals confirmation

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserRepository
from core.config import get_settings
from core.errors import DuplicateAccount, InvalidArgument, SystemFailure, throw_if

logger = logging.getLogger("accounts.registration")

ACCOUNT_MIN_LEN = 4
PASSWORD_MIN_LEN = 8


class KeyedLock:
    """A table of mutexes, one per key, created on demand.

    Entries are reference counted and removed once no thread holds or waits
    on them, so the table does not grow with every account ever registered.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [lock, refcount]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def _is_blank(*values: str | None) -> bool:
    return any(v is None or not v.strip() for v in values)


class RegistrationCoordinator:
    """Validates and persists new accounts.

    Usage:
        coordinator = RegistrationCoordinator(user_store)
        user_id = coordinator.register("alice123", "password1", "password1")
    """

    def __init__(self, users: UserRepository) -> None:
        self.users = users
        self._locks = KeyedLock()

    def register(self, account: str, password: str, confirm_password: str) -> int:
        """Create a self-registered account with role user. Returns the new id."""
        throw_if(
            _is_blank(account, password, confirm_password),
            InvalidArgument("Account, password and confirmation are required."),
        )
        throw_if(len(account) < ACCOUNT_MIN_LEN, InvalidArgument("Account is too short."))
        throw_if(
            len(password) < PASSWORD_MIN_LEN or len(confirm_password) < PASSWORD_MIN_LEN,
            InvalidArgument("Password is too short."),
        )
        throw_if(password != confirm_password, InvalidArgument("Passwords do not match."))
        return self._create(User(account=account, display_name=account, role=Role.user.value), password)

    def create_account(
        self,
        account: str,
        password: str | None = None,
        role: str = Role.user.value,
        display_name: str | None = None,
    ) -> int:
        """Admin-side account creation. Falls back to DEFAULT_USER_PASSWORD."""
        throw_if(_is_blank(account), InvalidArgument("Account is required."))
        throw_if(len(account) < ACCOUNT_MIN_LEN, InvalidArgument("Account is too short."))
        throw_if(Role.from_value(role) is None, InvalidArgument("Unknown role."))
        if password is None:
            password = get_settings().default_user_password
        throw_if(len(password) < PASSWORD_MIN_LEN, InvalidArgument("Password is too short."))
        user = User(account=account, display_name=display_name or account, role=role)
        return self._create(user, password)

    def _create(self, user: User, password: str) -> int:
        with self._locks.hold(user.account):
            if self.users.count_by_account(user.account) > 0:
                logger.info("registration rejected: account already exists")
                raise DuplicateAccount()
            user.password_digest = hash_password(password)
            try:
                user_id = self.users.insert(user)
            except IntegrityError as exc:
                # Another process inserted the same account between our check and insert.
                logger.info("registration rejected: account already exists (storage constraint)")
                raise DuplicateAccount() from exc
            except SQLAlchemyError as exc:
                logger.exception("registration failed: could not persist account")
                raise SystemFailure("Registration failed, database error.") from exc
            if not user_id:
                raise SystemFailure("Registration failed, database error.")
        logger.info("registered user %s with role %s", user_id, user.role)
        return user_id
