"""
auth/tokens.py -- Session token signing and the auth cookie helpers.

Security design decisions:
  Tokens are python-jose HS256 JWTs signed with SECRET_KEY. They carry the
  user id (sub) and the server-side session id (sid), plus iat/exp. The
  signature keeps forged or mangled tokens from ever reaching the session
  table; the session row is what makes a token live. Logout deletes the row,
  so a correctly signed, unexpired token is still rejected afterwards.

  decode_session_token() returns None on any failure -- the session manager
  turns that into NotAuthenticated.

  Session ids come from secrets.token_urlsafe(32): 256 bits of entropy.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import secrets
from datetime import datetime

from jose import JWTError, jwt

from auth.models import Session
from core.config import get_settings

_settings = get_settings()

_ALGORITHM = "HS256"

COOKIE_NAME = "access_token"


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def create_session_token(session: Session) -> str:
    """Encode a signed JWT that points at the given server-side session."""
    payload = {
        "sub": str(session.user_id),
        "sid": session.session_id,
        "iat": int(datetime.fromisoformat(session.issued_at).timestamp()),
        "exp": int(datetime.fromisoformat(session.expires_at).timestamp()),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_session_token(token: str | None) -> dict | None:
    """Decode and verify a session token. Returns {"user_id", "session_id"} or None."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    sid = payload.get("sid")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    if not sid:
        return None
    return {"user_id": user_id, "session_id": sid}


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, max_age: int = 0) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie.
    samesite="lax": not sent on cross-site POST.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: defaults to the configured session lifetime.
    """
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=max_age if max_age > 0 else _settings.session_expire_seconds,
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(COOKIE_NAME)
