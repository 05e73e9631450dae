"""
auth/session_store.py -- Server-side session table with expiry.

Every successful login writes one row: session id, owning user id,
issued/expires timestamps and a JSON snapshot of the user record. Logout
deletes the row. Expired rows are dropped lazily on read and in bulk by
purge_expired(), which the API lifespan calls on a timer.

Concurrency: each operation runs in its own short transaction on a pooled
connection, so concurrent issuance, lookup and invalidation from request
threads cannot corrupt the session -> user mapping. The session id is the
primary key; a collision raises instead of overwriting another login.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Table, Text
from sqlalchemy.engine import Engine

from auth.models import Session
from auth.store import make_engine, metadata, now_iso

_sessions = Table(
    "sessions",
    metadata,
    Column("session_id", String(64), primary_key=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("issued_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False, index=True),
    Column("snapshot", Text),  # JSON copy of the user at login (advisory)
)


def _is_expired(expires_at: str) -> bool:
    return datetime.fromisoformat(expires_at) <= datetime.now(timezone.utc)


class SessionStore:
    """Repository for Session rows.

    Usage:
        sessions = SessionStore("sqlite:///:memory:")
        sessions.create(Session(session_id=..., user_id=1, issued_at=..., expires_at=...))
        sessions.get(session_id)      # Session or None (expired counts as None)
        sessions.delete(session_id)
        sessions.purge_expired()      # call periodically
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine, tables=[_sessions])

    def create(self, session: Session) -> None:
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    session_id=session.session_id,
                    user_id=session.user_id,
                    issued_at=session.issued_at,
                    expires_at=session.expires_at,
                    snapshot=json.dumps(session.snapshot) if session.snapshot is not None else None,
                )
            )
            conn.commit()

    def get(self, session_id: str) -> Session | None:
        """Return the live session for session_id, or None if unknown or expired."""
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.session_id == session_id)).fetchone()
        if row is None:
            return None
        if _is_expired(row.expires_at):
            self.delete(session_id)
            return None
        return _row_to_session(row)

    def delete(self, session_id: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.session_id == session_id))
            conn.commit()
        return result.rowcount > 0

    def delete_for_user(self, user_id: int) -> int:
        """Drop every session owned by user_id. Returns the number removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.user_id == user_id))
            conn.commit()
        return result.rowcount

    def purge_expired(self) -> int:
        """Delete all expired sessions. Returns number of rows removed.

        ISO 8601 UTC strings from now_iso() sort chronologically, so the
        comparison can run in SQL.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= now_iso()))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def _row_to_session(row) -> Session:
    return Session(
        session_id=row.session_id,
        user_id=row.user_id,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
        snapshot=json.loads(row.snapshot) if row.snapshot else None,
    )
