"""
API request and response models for MyFlix REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import Principal

# bcrypt only looks at the first 72 bytes of a password.
_PASSWORD_MAX = 72


def _check_password_bytes(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.encode("utf-8")) > _PASSWORD_MAX:
        raise ValueError(f"password must be at most {_PASSWORD_MAX} bytes when UTF-8 encoded")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    Both fields default to "" and carry no min_length: an empty email must
    reach CredentialVerifier and fail like any other bad credential instead
    of producing a distinguishable 422.
    """

    email: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=255)


class UserCreate(BaseModel):
    """Request body for POST /api/v1/users (registration)."""

    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=_PASSWORD_MAX)
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    birthday: Optional[date] = None

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value):
        return _check_password_bytes(value)


class UserPatch(BaseModel):
    """Request body for PATCH /api/v1/users/{email}. Omitted fields are left unchanged."""

    email: Optional[str] = Field(default=None, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: Optional[str] = Field(default=None, min_length=8, max_length=_PASSWORD_MAX)
    firstname: Optional[str] = Field(default=None, min_length=1, max_length=100)
    lastname: Optional[str] = Field(default=None, min_length=1, max_length=100)
    birthday: Optional[date] = None

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value):
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a principal. The password hash is never included."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    firstname: str
    lastname: str
    birthday: Optional[date] = None
    favorite_movies: list[str] = Field(default_factory=list)

    @classmethod
    def from_principal(cls, principal: Principal) -> "UserResponse":
        return cls(
            id=principal.id,
            email=principal.email,
            firstname=principal.firstname,
            lastname=principal.lastname,
            birthday=principal.birthday,
            favorite_movies=list(principal.favorite_movies),
        )


class LoginResponse(BaseModel):
    """Response body for a successful POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    user: UserResponse
    token: str
    token_type: str = "bearer"
    expires_in: int


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


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

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
