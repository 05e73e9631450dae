"""
API request and response models for the accounts REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models only bound input size. Blank / too-short / mismatch checks
belong to the auth core so every caller (API, CLI, tests) gets the same
InvalidArgument errors in the same order.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Role, User

# ---------------------------------------------------------------------------
# Auth request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    account: str = Field(max_length=255)
    password: str = Field(max_length=255)
    confirm_password: str = Field(max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    account: str = Field(max_length=255)
    password: str = Field(max_length=255)


class PasswordChange(BaseModel):
    """Request body for POST /api/v1/auth/password."""

    old_password: str = Field(max_length=255)
    new_password: str = Field(max_length=255)


# ---------------------------------------------------------------------------
# User management request models
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /api/v1/users (admin only).

    password is optional; the account gets DEFAULT_USER_PASSWORD without one.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    account: str = Field(max_length=255)
    display_name: Optional[str] = Field(default=None, max_length=255)
    role: Role = Role.user
    password: Optional[str] = Field(default=None, max_length=255)


class ProfileUpdate(BaseModel):
    """Request body for PATCH /api/v1/users/me. Omitted fields stay unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    avatar: Optional[str] = Field(default=None, max_length=1024)
    bio: Optional[str] = Field(default=None, max_length=1000)
    tags: Optional[list[str]] = Field(default=None, max_length=20)


class UserPatch(ProfileUpdate):
    """Request body for PATCH /api/v1/users/{id} (admin only)."""

    role: Optional[Role] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Full user view for the owner and for admins. Never carries the digest."""

    model_config = ConfigDict(frozen=True)

    id: int
    account: str
    display_name: Optional[str]
    role: str
    avatar: Optional[str]
    bio: Optional[str]
    tags: list[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            account=user.account,
            display_name=user.display_name,
            role=user.role,
            avatar=user.avatar,
            bio=user.bio,
            tags=list(user.tags or []),
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class UserProfileResponse(BaseModel):
    """Public profile -- no account name, no role."""

    model_config = ConfigDict(frozen=True)

    id: int
    display_name: Optional[str]
    avatar: Optional[str]
    bio: Optional[str]
    tags: list[str]
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserProfileResponse":
        return cls(
            id=user.id,
            display_name=user.display_name,
            avatar=user.avatar,
            bio=user.bio,
            tags=list(user.tags or []),
            created_at=user.created_at or "",
        )


class UserPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[UserResponse]
    total: int
    page: int
    page_size: int


class ProfilePage(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: list[UserProfileResponse]
    total: int
    page: int
    page_size: int


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int


class LoginResponse(BaseModel):
    """Response for POST /api/v1/auth/login. The token is also set as a cookie."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str
    issued_at: str
    expires_at: str
    user: UserResponse


class SessionResponse(BaseModel):
    """Response for GET /api/v1/auth/session -- the login-time snapshot."""

    model_config = ConfigDict(frozen=True)

    issued_at: str
    expires_at: str
    snapshot: Optional[UserResponse]


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
