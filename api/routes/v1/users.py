"""
api/routes/v1/users.py -- Profile and user management REST endpoints.

Routes:
  GET    /api/v1/users/me          -- own record (requires auth)
  PATCH  /api/v1/users/me          -- update own profile (requires auth, banned callers denied)
  GET    /api/v1/users/profiles    -- public profile list, paged (page_size <= 20)
  GET    /api/v1/users/profiles/{id} -- one public profile
  POST   /api/v1/users             -- create account (admin only)
  GET    /api/v1/users             -- list accounts, paged (admin only)
  GET    /api/v1/users/{id}        -- one account (admin only)
  PATCH  /api/v1/users/{id}        -- change role / profile (admin only)
  DELETE /api/v1/users/{id}        -- delete account and its sessions (admin only)

Role changes are the only way a role moves after creation, and they sit behind
require_admin. The change is visible on the target's next request because
caller resolution always re-reads the user table.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response

from api.models import ProfilePage, ProfileUpdate, UserCreate, UserPage, UserPatch, UserProfileResponse, UserResponse
from auth.dependencies import get_current_user, get_session_manager, require_active_user, require_admin
from auth.models import User
from auth.registration import RegistrationCoordinator
from auth.store import UserStore
from core.errors import InvalidArgument, NotFound, SystemFailure, throw_if

# Auth policy:
# - GET    /api/v1/users/me:         requires auth (get_current_user)
# - PATCH  /api/v1/users/me:         requires auth, not banned (require_active_user)
# - GET    /api/v1/users/profiles:   public
# - GET    /api/v1/users/profiles/{id}: public
# - POST   /api/v1/users:            requires admin (require_admin)
# - GET    /api/v1/users:            requires admin (require_admin)
# - GET    /api/v1/users/{id}:       requires admin (require_admin)
# - PATCH  /api/v1/users/{id}:       requires admin (require_admin)
# - DELETE /api/v1/users/{id}:       requires admin (require_admin)
router = APIRouter()

_PUBLIC_PAGE_SIZE_MAX = 20


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------


@router.get("/users/me", response_model=UserResponse)
def get_my_user(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.from_user(current_user)


@router.patch("/users/me", response_model=UserResponse)
def update_my_user(
    request: Request,
    body: ProfileUpdate,
    current_user: User = Depends(require_active_user),
) -> UserResponse:
    """Update own profile columns. Role is never written from this path."""
    user_store: UserStore = request.app.state.user_store
    changes = body.model_dump(exclude_none=True)
    throw_if(not user_store.update_profile(current_user.id, **changes), SystemFailure("Update failed."))
    return UserResponse.from_user(_get_or_404(request, current_user.id))


@router.get("/users/profiles", response_model=ProfilePage)
def list_profiles(
    request: Request,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1),
) -> ProfilePage:
    """Public profile listing. Page size is capped to limit scraping."""
    throw_if(page_size > _PUBLIC_PAGE_SIZE_MAX, InvalidArgument("Page size too large."))
    user_store: UserStore = request.app.state.user_store
    users = user_store.list_users(offset=(page - 1) * page_size, limit=page_size)
    return ProfilePage(
        items=[UserProfileResponse.from_user(u) for u in users],
        total=user_store.count_users(),
        page=page,
        page_size=page_size,
    )


@router.get("/users/profiles/{user_id}", response_model=UserProfileResponse)
def get_profile(request: Request, user_id: int) -> UserProfileResponse:
    throw_if(user_id <= 0, InvalidArgument("Invalid user id."))
    return UserProfileResponse.from_user(_get_or_404(request, user_id))


# ---------------------------------------------------------------------------
# User management (admin only)
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Create an account with any role. Goes through the same uniqueness guard as registration."""
    coordinator: RegistrationCoordinator = request.app.state.registration
    user_id = coordinator.create_account(
        body.account,
        password=body.password,
        role=body.role.value,
        display_name=body.display_name,
    )
    return UserResponse.from_user(_get_or_404(request, user_id))


@router.get("/users", response_model=UserPage)
def list_users(
    request: Request,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(require_admin),
) -> UserPage:
    user_store: UserStore = request.app.state.user_store
    users = user_store.list_users(offset=(page - 1) * page_size, limit=page_size)
    return UserPage(
        items=[UserResponse.from_user(u) for u in users],
        total=user_store.count_users(),
        page=page,
        page_size=page_size,
    )


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    request: Request,
    user_id: int,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    throw_if(user_id <= 0, InvalidArgument("Invalid user id."))
    return UserResponse.from_user(_get_or_404(request, user_id))


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: int,
    body: UserPatch,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    user_store: UserStore = request.app.state.user_store
    target = _get_or_404(request, user_id)
    _apply_profile(target, body)
    if body.role is not None:
        target.role = body.role.value
    throw_if(not user_store.update(target), SystemFailure("Update failed."))
    return UserResponse.from_user(target)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(
    request: Request,
    user_id: int,
    current_user: User = Depends(require_admin),
) -> Response:
    """Delete an account and revoke every session it holds."""
    throw_if(user_id == current_user.id, InvalidArgument("You cannot delete your own account."))
    user_store: UserStore = request.app.state.user_store
    if not user_store.delete(user_id):
        raise NotFound("User not found.")
    get_session_manager(request).revoke_user_sessions(user_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_or_404(request: Request, user_id: int) -> User:
    user = request.app.state.user_store.find_by_id(user_id)
    if user is None:
        raise NotFound("User not found.")
    return user


def _apply_profile(user: User, body: ProfileUpdate) -> None:
    if body.display_name is not None:
        user.display_name = body.display_name
    if body.avatar is not None:
        user.avatar = body.avatar
    if body.bio is not None:
        user.bio = body.bio
    if body.tags is not None:
        user.tags = list(body.tags)
