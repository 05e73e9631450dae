"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
domain shape; the store, the session manager and the routes do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum


class Role(str, Enum):
    """Closed set of privilege levels.

    ban is a caller state, never a grantable qualification: nothing should
    declare it as a requirement, and the access gate denies it everywhere it
    is checked.
    """

    user = "user"
    admin = "admin"
    ban = "ban"

    @classmethod
    def from_value(cls, value: str | None) -> Role | None:
        """Resolve a raw role string. Returns None for unknown or empty values."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class User:
    """Represents an account in the user table.

    account is the login name: unique and immutable after creation.
    display_name defaults to the account on self-registration.
    password_digest is opaque to everything except auth/passwords.py.
    avatar / bio / tags are profile fields the core never interprets.
    """

    account: str
    role: str = Role.user.value
    id: int | None = None
    display_name: str | None = None
    password_digest: str | None = None
    avatar: str | None = None
    bio: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    def to_snapshot(self) -> dict:
        """Return a JSON-safe copy without the password digest.

        Stored alongside a session so "who is asking" can be answered without a
        repository read. Never used for authorization decisions.
        """
        data = asdict(self)
        data.pop("password_digest", None)
        return data

    @classmethod
    def from_snapshot(cls, data: dict) -> User:
        return cls(**{k: v for k, v in data.items() if k in _USER_FIELDS and k != "password_digest"})


_USER_FIELDS = frozenset(User.__dataclass_fields__)


@dataclass
class Session:
    """Server-side record of one authenticated login.

    session_id never leaves the server in raw form -- clients hold a signed
    token that carries it (see auth/tokens.py). Deleting the row is what makes
    logout effective even though the token itself has not expired.
    """

    session_id: str
    user_id: int
    issued_at: str
    expires_at: str
    snapshot: dict | None = None


@dataclass
class LoginResult:
    user: User
    token: str
    issued_at: str
    expires_at: str
