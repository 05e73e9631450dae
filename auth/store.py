"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper.
UserRepository is the contract the auth core consumes; UserStore is the
SQLAlchemy implementation and _row_to_user is the mapper. Registration,
session and route code never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(account) is enforced by the schema. The registration coordinator
  already serializes same-account registrations inside one process; the
  constraint is what keeps the invariant when several processes share the
  database. insert() lets IntegrityError propagate so the caller can report
  the conflict as a duplicate account.

DB path: accounts.db at the project root unless DATABASE_URL says otherwise.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account", String(255), nullable=False, unique=True),
    Column("display_name", String(255)),
    Column("password_digest", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="user"),
    Column("avatar", Text),
    Column("bio", Text),
    Column("tags", Text),  # JSON list of strings
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_PROFILE_COLUMNS = frozenset({"display_name", "avatar", "bio", "tags"})


# ---------------------------------------------------------------------------
# Engine helpers (shared with auth/session_store.py)
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. In-memory databases ignore the request.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository contract
# ---------------------------------------------------------------------------


class UserRepository(Protocol):
    """What the auth core needs from user storage. Calls are synchronous and
    never retried; any storage error propagates to the caller."""

    def find_by_id(self, user_id: int) -> User | None: ...

    def find_by_account(self, account: str) -> User | None: ...

    def find_by_account_and_digest(self, account: str, digest: str) -> User | None: ...

    def insert(self, user: User) -> int: ...

    def update(self, user: User) -> bool: ...

    def update_password(self, user_id: int, digest: str) -> bool: ...

    def update_profile(self, user_id: int, **fields) -> bool: ...

    def count_by_account(self, account: str) -> int: ...


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQLAlchemy implementation of UserRepository.

    Usage:
        store = UserStore("sqlite:///:memory:")
        uid = store.insert(User(account="alice123", password_digest=hash_password("secret123")))
        user = store.find_by_account("alice123")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine, tables=[_users])

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_account(self, account: str) -> User | None:
        """Look up a user by exact account name (case-sensitive)."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.account == account)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_account_and_digest(self, account: str, digest: str) -> User | None:
        """Match account and stored digest in one query.

        Only meaningful for deterministic digests (legacy rows). bcrypt hashes
        are salted per call, so current rows are verified with
        auth.passwords.verify_password() after find_by_account() instead.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.account == account) & (_users.c.password_digest == digest))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def count_by_account(self, account: str) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_users).where(_users.c.account == account)
            ).scalar()
        return result or 0

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).limit(1)).fetchone()
        return row is not None

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def list_users(self, offset: int = 0, limit: int = 20) -> list[User]:
        """Return one page of users ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id).offset(offset).limit(limit)).fetchall()
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, user: User) -> int:
        """Insert a new user and return its assigned id.

        The id and timestamps are written back onto the passed User.
        Raises sqlalchemy.exc.IntegrityError if the account already exists.
        """
        stamp = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    account=user.account,
                    display_name=user.display_name,
                    password_digest=user.password_digest,
                    role=user.role,
                    avatar=user.avatar,
                    bio=user.bio,
                    tags=json.dumps(user.tags or []),
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            conn.commit()
        user.id = result.inserted_primary_key[0]
        user.created_at = stamp
        user.updated_at = stamp
        return user.id

    def update(self, user: User) -> bool:
        """Persist every mutable column of user, role included. account and id
        never change.

        Only admin-gated paths (PATCH /users/{id}, the set-role command) may
        call this. A caller editing its own record uses update_password() or
        update_profile(), which never write role, so a concurrent ban or
        demotion cannot be overwritten with the role read earlier.

        Returns True if a row was updated, False if user.id was not found.
        """
        stamp = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user.id)
                .values(
                    display_name=user.display_name,
                    password_digest=user.password_digest,
                    role=user.role,
                    avatar=user.avatar,
                    bio=user.bio,
                    tags=json.dumps(user.tags or []),
                    updated_at=stamp,
                )
            )
            conn.commit()
        if result.rowcount > 0:
            user.updated_at = stamp
            return True
        return False

    def update_password(self, user_id: int, digest: str) -> bool:
        """Replace only the password digest."""
        return self._update_columns(user_id, password_digest=digest)

    def update_profile(self, user_id: int, **fields) -> bool:
        """Replace only the given profile columns (display_name, avatar, bio, tags)."""
        unknown = set(fields) - _PROFILE_COLUMNS
        if unknown:
            raise ValueError(f"Not profile columns: {sorted(unknown)}")
        if "tags" in fields:
            fields["tags"] = json.dumps(fields["tags"] or [])
        return self._update_columns(user_id, **fields)

    def _update_columns(self, user_id: int, **values) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(**values, updated_at=now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted.

        Sessions owned by the user are not touched here; the caller revokes
        them through the session manager.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        account=row.account,
        display_name=row.display_name,
        password_digest=row.password_digest,
        role=row.role,
        avatar=row.avatar,
        bio=row.bio,
        tags=json.loads(row.tags) if row.tags else [],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
