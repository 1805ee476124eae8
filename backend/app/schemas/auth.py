"""Schemas for authentication and profile endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr

from huddle.presence import PresenceStatus

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
_COLOR_PATTERN = r"^#[0-9a-fA-F]{3,8}$"


class UserCreate(BaseModel):
    """Payload for creating a new user via registration."""

    email: constr(strip_whitespace=True, max_length=255, pattern=_EMAIL_PATTERN) = Field(
        ..., description="Unique e-mail address used to sign in"
    )
    username: constr(strip_whitespace=True, min_length=3, max_length=64) | None = Field(
        default=None, description="Optional unique handle; defaults to the e-mail local part"
    )
    display_name: constr(strip_whitespace=True, min_length=1, max_length=128) | None = None
    password: constr(min_length=8, max_length=128) = Field(
        ..., description="Plain text password that will be hashed before storing"
    )


class UserRead(BaseModel):
    """Representation of a user returned from the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    username: str | None = None
    display_name: str | None = None
    bio: str | None = None
    status: PresenceStatus = PresenceStatus.ONLINE
    avatar_url: str | None = None
    banner_color: str | None = None
    created_date: datetime


class ProfileUpdate(BaseModel):
    """Partial profile change; omitted fields keep their stored value."""

    username: constr(strip_whitespace=True, min_length=3, max_length=64) | None = None
    display_name: constr(strip_whitespace=True, min_length=1, max_length=128) | None = None
    bio: constr(strip_whitespace=True, max_length=200) | None = None
    status: PresenceStatus | None = None
    avatar_url: constr(strip_whitespace=True, max_length=512) | None = None
    banner_color: constr(strip_whitespace=True, pattern=_COLOR_PATTERN) | None = None


class LoginRequest(BaseModel):
    """Payload for user login."""

    email: constr(strip_whitespace=True, max_length=255) = Field(..., description="User e-mail")
    password: constr(min_length=8, max_length=128) = Field(..., description="User password")


class Token(BaseModel):
    """Access token returned after successful authentication."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type, always 'bearer'")
    expires_in: int | None = Field(
        default=None,
        description="Number of seconds until the access token expires",
    )
