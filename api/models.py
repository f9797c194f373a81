"""
API request and response models for SessionGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Bodies are camelCase on the wire (accessToken, refreshToken, firstName) and
snake_case in Python; _CamelModel does the translation in both directions.

Field formats mirror the signup rules clients already validate against:
  names      2-50 letters, spaces or hyphens
  username   3-20 letters, digits or underscores
  email      local@domain.tld
  password   8+ chars with upper, lower, digit and one of #?!@$%^&*.-_
"""

import re
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

NAME_PATTERN = r"^[A-Za-z\s-]{2,50}$"
USERNAME_PATTERN = r"^[A-Za-z0-9_]{3,20}$"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

_PASSWORD_SPECIALS = "#?!@$%^&*.-_"
_PASSWORD_RE = re.compile(r"^[A-Za-z0-9#?!@$%^&*.\-_]{8,}$")


def _check_password(value: str) -> str:
    """Enforce the password policy.

    Written as a validator rather than a Field pattern because the rule needs
    lookaheads, which pydantic-core's regex engine does not support.
    """
    if not (
        _PASSWORD_RE.match(value)
        and any(c.islower() for c in value)
        and any(c.isupper() for c in value)
        and any(c.isdigit() for c in value)
        and any(c in _PASSWORD_SPECIALS for c in value)
    ):
        raise ValueError(
            "Password must be at least 8 characters long and contain uppercase, lowercase, "
            f"number, and special character ({_PASSWORD_SPECIALS})"
        )
    return value


_Name = Annotated[str, Field(pattern=NAME_PATTERN)]
_Username = Annotated[str, Field(pattern=USERNAME_PATTERN)]
_Email = Annotated[str, Field(pattern=EMAIL_PATTERN, max_length=255)]
# max_length keeps inputs below bcrypt's 72-byte truncation point.
_Password = Annotated[str, Field(max_length=64), AfterValidator(_check_password)]
_Token = Annotated[str, Field(min_length=1, max_length=4096)]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(_CamelModel):
    first_name: _Name
    middle_name: Optional[str] = Field(default=None, max_length=50)
    last_name: _Name
    username: _Username
    email: _Email
    password: _Password


class LoginRequest(_CamelModel):
    """Request body for POST /api/v1/auth/login."""

    username: _Username
    password: _Password


class RefreshRequest(_CamelModel):
    """Request body for POST /api/v1/auth/refresh."""

    token: _Token


class LogoutRequest(_CamelModel):
    """Request body for POST /api/v1/auth/logout."""

    refresh_token: _Token


class ProfileUpdate(_CamelModel):
    first_name: _Name
    middle_name: Optional[str] = Field(default=None, max_length=50)
    last_name: _Name
    email: _Email


class PasswordChange(_CamelModel):
    old_password: str = Field(min_length=1, max_length=64)
    new_password: _Password


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ProfileResponse(_CamelModel):
    """Public account fields. Never includes the password hash or fingerprint."""

    model_config = ConfigDict(frozen=True)

    id: int
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    username: str
    email: str


class TokenPairResponse(_CamelModel):
    """Response body for POST /api/v1/auth/refresh."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str


class LoginResponse(TokenPairResponse):
    """Response body for POST /api/v1/auth/login."""

    message: str = "Login successful"
    profile: ProfileResponse


class MeResponse(_CamelModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ProfileEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: ProfileResponse


class ProfileUpdatedResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Profile updated"
    user: ProfileResponse


class DashboardResponse(_CamelModel):
    model_config = ConfigDict(frozen=True)

    message: str
    user_id: int


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
