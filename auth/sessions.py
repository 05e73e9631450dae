"""
auth/sessions.py -- Session manager: login, caller resolution, logout,
password change.

Flow:
  login()            -> verify credentials, write a session row with a user
                        snapshot, hand back a signed token.
  resolve_caller()   -> token -> session row -> FRESH user read. The snapshot
                        is never used here: an admin who demotes or bans a
                        user mid-session must take effect on the next request.
  logout()           -> delete the session row; idempotent.
  change_password()  -> caller must be authenticated and know the old
                        password. Existing sessions stay valid.

Security:
  Unknown account and wrong password raise the same InvalidCredentials error
  and cost the same bcrypt work (burn_verification), so neither the message
  nor the response time reveals which part was wrong.

Layer rule: no imports from api/. The transport passes raw token strings in;
auth/dependencies.py does the cookie/header extraction.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from auth.models import LoginResult, Session, User
from auth.passwords import burn_verification, hash_password, needs_rehash, verify_password
from auth.session_store import SessionStore
from auth.store import UserRepository
from auth.tokens import create_session_token, decode_session_token, new_session_id
from core.config import get_settings
from core.errors import InvalidArgument, InvalidCredentials, NotAuthenticated, throw_if

logger = logging.getLogger("accounts.sessions")

ACCOUNT_MIN_LEN = 4
PASSWORD_MIN_LEN = 8


def _is_blank(*values: str | None) -> bool:
    return any(v is None or not v.strip() for v in values)


class SessionManager:
    """Issues, resolves and invalidates caller sessions.

    Usage:
        manager = SessionManager(user_store, session_store)
        result = manager.login("alice123", "password1")
        user = manager.resolve_caller(result.token)
        manager.logout(result.token)
    """

    def __init__(self, users: UserRepository, sessions: SessionStore, expire_seconds: int | None = None) -> None:
        self.users = users
        self.sessions = sessions
        self.expire_seconds = expire_seconds or get_settings().session_expire_seconds

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(self, account: str, password: str) -> LoginResult:
        throw_if(_is_blank(account, password), InvalidArgument("Account and password are required."))
        throw_if(len(account) < ACCOUNT_MIN_LEN, InvalidArgument("Account is too short."))
        throw_if(len(password) < PASSWORD_MIN_LEN, InvalidArgument("Password is too short."))

        user = self.users.find_by_account(account)
        if user is None:
            # Equalize timing -- do NOT return early before running bcrypt
            burn_verification(password)
            logger.info("login failed: account and password do not match")
            raise InvalidCredentials()
        if not verify_password(password, user.password_digest):
            logger.info("login failed: account and password do not match")
            raise InvalidCredentials()

        if needs_rehash(user.password_digest):
            user.password_digest = hash_password(password)
            self.users.update_password(user.id, user.password_digest)
            logger.info("upgraded legacy password digest for user %s", user.id)

        issued = datetime.now(timezone.utc)
        session = Session(
            session_id=new_session_id(),
            user_id=user.id,
            issued_at=issued.isoformat(),
            expires_at=(issued + timedelta(seconds=self.expire_seconds)).isoformat(),
            snapshot=user.to_snapshot(),
        )
        self.sessions.create(session)
        logger.info("user %s logged in", user.id)
        return LoginResult(
            user=user,
            token=create_session_token(session),
            issued_at=session.issued_at,
            expires_at=session.expires_at,
        )

    def logout(self, token: str | None) -> bool:
        """Invalidate the session behind token if there is one. Always True."""
        claims = decode_session_token(token)
        if claims is not None and self.sessions.delete(claims["session_id"]):
            logger.info("user %s logged out", claims["user_id"])
        return True

    # ------------------------------------------------------------------
    # Caller resolution
    # ------------------------------------------------------------------

    def _live_session(self, token: str | None) -> Session | None:
        claims = decode_session_token(token)
        if claims is None:
            return None
        session = self.sessions.get(claims["session_id"])
        if session is None or session.user_id != claims["user_id"]:
            return None
        return session

    def resolve_caller(self, token: str | None) -> User:
        """Return the current user record for token or raise NotAuthenticated."""
        session = self._live_session(token)
        if session is None:
            raise NotAuthenticated()
        user = self.users.find_by_id(session.user_id)
        if user is None:
            raise NotAuthenticated()
        return user

    def resolve_caller_optional(self, token: str | None) -> User | None:
        session = self._live_session(token)
        if session is None:
            return None
        return self.users.find_by_id(session.user_id)

    def session_info(self, token: str | None) -> Session | None:
        """Return the live session row for token (issuance, expiry, snapshot)."""
        return self._live_session(token)

    def snapshot(self, token: str | None) -> User | None:
        """Return the user copy cached at login. May be stale; never authorize on it."""
        session = self._live_session(token)
        if session is None or not session.snapshot:
            return None
        return User.from_snapshot(session.snapshot)

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def change_password(self, token: str | None, old_password: str, new_password: str) -> bool:
        throw_if(_is_blank(old_password, new_password), InvalidArgument("Old and new password are required."))
        throw_if(len(new_password) < PASSWORD_MIN_LEN, InvalidArgument("Password is too short."))

        user = self.resolve_caller(token)
        if not verify_password(old_password, user.password_digest):
            raise InvalidArgument("Old password is incorrect.")
        user.password_digest = hash_password(new_password)
        updated = self.users.update_password(user.id, user.password_digest)
        if updated:
            logger.info("user %s changed password", user.id)
        return updated

    def revoke_user_sessions(self, user_id: int) -> int:
        removed = self.sessions.delete_for_user(user_id)
        if removed:
            logger.info("revoked %d session(s) for user %s", removed, user_id)
        return removed
