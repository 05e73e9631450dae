"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and RBAC.

The session token is read from, in priority order:
  1. the "access_token" cookie -- set by POST /auth/login.
  2. an "Authorization: Bearer <token>" header -- API clients.

try_get_current_user() is the soft variant (returns None when there is no
live session). get_current_user() raises NotAuthenticated. require_role()
builds the per-route gate: it resolves the caller first, so an anonymous
request is always NotAuthenticated before any role comparison, then applies
auth.access.check_access(). The route body never runs on denial.

Errors are AccountError subclasses, not HTTPException -- api/main.py maps
them onto status codes in one place.

Layer rule: may import from fastapi (Request) because this module is part of
the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.access import check_access
from auth.models import Role, User
from auth.sessions import SessionManager
from auth.tokens import COOKIE_NAME


def extract_token(request: Request) -> str | None:
    token: str | None = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def try_get_current_user(request: Request) -> User | None:
    """Resolve the caller, or None if the request carries no live session."""
    return get_session_manager(request).resolve_caller_optional(extract_token(request))


def get_current_user(request: Request) -> User:
    """Require authentication. Raises NotAuthenticated (HTTP 401).

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    return get_session_manager(request).resolve_caller(extract_token(request))


def require_role(must_role: str | Role = "", *, check_ban: bool = False) -> Callable[[Request], User]:
    """Build a dependency that admits callers satisfying must_role.

    must_role="" admits any authenticated caller; check_ban=True additionally
    turns away banned accounts. Returns the resolved caller to the route.

        @router.delete("/users/{user_id}")
        async def route(admin: User = Depends(require_role(Role.admin))): ...
    """

    def dependency(request: Request) -> User:
        user = get_current_user(request)
        check_access(user, must_role, check_ban=check_ban)
        return user

    dependency.must_role = must_role  # type: ignore[attr-defined]
    return dependency


require_admin = require_role(Role.admin)
require_active_user = require_role("", check_ban=True)
