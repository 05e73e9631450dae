"""
api/routes/v1/auth.py -- Registration, login and session REST endpoints.

Routes:
  POST /api/v1/auth/register   -- self-registration (public)
  POST /api/v1/auth/login      -- password login; sets the session cookie
  POST /api/v1/auth/logout     -- ends the current session; idempotent
  GET  /api/v1/auth/me         -- current user, fresh from the store (requires auth)
  GET  /api/v1/auth/session    -- issuance/expiry and the login-time snapshot (requires auth)
  POST /api/v1/auth/password   -- change own password (requires auth)

Security:
  Login returns the same bad_credentials error for an unknown account and a
  wrong password. Cache-Control: no-store on login responses.
  Failures are raised as core AccountErrors; api/main.py renders them.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    LoginRequest,
    LoginResponse,
    PasswordChange,
    RegisterRequest,
    RegisterResponse,
    SessionResponse,
    UserResponse,
)
from auth.dependencies import extract_token, get_current_user, get_session_manager
from auth.models import User
from auth.registration import RegistrationCoordinator
from auth.tokens import clear_auth_cookie, set_auth_cookie
from core.config import get_settings
from core.errors import NotAuthenticated, NotAuthorized, throw_if

# Auth policy:
# - POST /api/v1/auth/register:  public -- unless SELF_REGISTRATION_ENABLED=false
# - POST /api/v1/auth/login:     public
# - POST /api/v1/auth/logout:    public -- logging out without a session still succeeds
# - GET  /api/v1/auth/me:        requires auth (get_current_user)
# - GET  /api/v1/auth/session:   requires auth (get_current_user)
# - POST /api/v1/auth/password:  requires auth (resolved inside SessionManager)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create an account with role user and return its id."""
    throw_if(not get_settings().self_registration_enabled, NotAuthorized("Self-registration is disabled."))
    coordinator: RegistrationCoordinator = request.app.state.registration
    user_id = coordinator.register(body.account, body.password, body.confirm_password)
    return RegisterResponse(user_id=user_id)


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with account and password; set the session cookie."""
    result = get_session_manager(request).login(body.account, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=result.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- token type, not a password
            issued_at=result.issued_at,
            expires_at=result.expires_at,
            user=UserResponse.from_user(result.user),
        ).model_dump(),
    )
    set_auth_cookie(resp, result.token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout")
def logout(request: Request) -> JSONResponse:
    """End the current session (if any) and clear the cookie."""
    get_session_manager(request).logout(extract_token(request))
    resp = JSONResponse(content={"message": "Logged out."})
    clear_auth_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.from_user(current_user)


@router.get("/auth/session", response_model=SessionResponse)
def session_info(request: Request) -> SessionResponse:
    """Describe the caller's session using the snapshot cached at login.

    The snapshot can lag behind the user table (e.g. after a role change);
    /auth/me is the authoritative view.
    """
    manager = get_session_manager(request)
    token = extract_token(request)
    manager.resolve_caller(token)
    session = manager.session_info(token)
    if session is None:
        raise NotAuthenticated()
    snapshot = User.from_snapshot(session.snapshot) if session.snapshot else None
    return SessionResponse(
        issued_at=session.issued_at,
        expires_at=session.expires_at,
        snapshot=UserResponse.from_user(snapshot) if snapshot else None,
    )


@router.post("/auth/password")
def change_password(request: Request, body: PasswordChange) -> JSONResponse:
    """Change the caller's password. Existing sessions remain valid."""
    changed = get_session_manager(request).change_password(
        extract_token(request), body.old_password, body.new_password
    )
    return JSONResponse(content={"changed": changed})
