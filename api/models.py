"""
API request and response models for the user management REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

JSON keys are camelCase (isAdmin, profilePicture) via the shared alias
generator. FastAPI serializes response_model output by alias; handlers that
build a JSONResponse themselves call model_dump(by_alias=True).

None of the user projections has a password field. That is the only place
the hash is excluded, so no route can leak it by forgetting a filter.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import User

# ---------------------------------------------------------------------------
# Shared config
# ---------------------------------------------------------------------------

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/login."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# User projections
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    """Public-safe identity returned by login."""

    model_config = _CAMEL

    id: int
    username: str
    email: str
    is_admin: bool

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, username=user.username, email=user.email, is_admin=user.is_admin)


class UserPublic(BaseModel):
    """Full public projection: the summary plus the picture reference."""

    model_config = _CAMEL

    id: int
    username: str
    email: str
    profile_picture: str
    is_admin: bool
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User, is_admin: Optional[bool] = None) -> "UserPublic":
        """Build the projection; is_admin overrides the record's flag when given."""
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            profile_picture=user.profile_picture,
            is_admin=user.is_admin if is_admin is None else is_admin,
            created_at=user.created_at,
        )


class AdminFlag(BaseModel):
    model_config = _CAMEL

    id: int
    is_admin: bool


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class LoginResponse(BaseModel):
    """Response body for POST /api/login. The token is also set as a cookie."""

    model_config = ConfigDict(frozen=True)

    token: str
    user: UserSummary


class AdminToggleResponse(BaseModel):
    """Response body for PATCH /api/users/{id}."""

    model_config = ConfigDict(frozen=True)

    message: str
    user: AdminFlag


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx response.

    error is the human-readable message as a plain string, so a browser
    client can show `(await res.json()).error` directly. code is the
    core.errors.ErrorKind value (or request_validation_error, rate_limited,
    http_<status>) for clients that branch on the failure.
    """

    model_config = ConfigDict(frozen=True)

    error: str
    code: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
