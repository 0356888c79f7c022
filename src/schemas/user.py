"""Pydantic schemas for accounts, profiles and preferences."""
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, Field, field_validator

from schemas.base import CamelModel
from schemas.validators import MIN_PASSWORD_LENGTH, validate_email, validate_username


class RegisterRequest(CamelModel):
    """Schema for account registration."""

    username: str
    email: str
    password: str = Field(max_length=128)

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        """Validate username format."""
        return validate_username(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        """Validate and lowercase email."""
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        """Enforce minimum password length."""
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v


class LoginRequest(CamelModel):
    """Schema for credential login."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Emails are stored lowercase."""
        return v.strip().lower()


class UserResponse(CamelModel):
    """The caller's own account, including private fields."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: str
    is_approved: bool
    is_premium: bool
    premium_until: datetime | None
    max_bookmarks: int
    bio: str | None
    website: str | None
    twitter: str | None
    github: str | None
    created_at: datetime
    last_login: datetime | None


class TokenResponse(CamelModel):
    """Schema for a successful login."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class UserStats(CamelModel):
    """Aggregate counts shown on a public profile."""

    total_bookmarks: int
    public_bookmarks: int
    private_bookmarks: int
    favorites: int
    total_comments: int


class PublicProfileResponse(CamelModel):
    """Public profile. Email and moderation details are not exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    bio: str | None
    website: str | None
    twitter: str | None
    github: str | None
    is_approved: bool
    created_at: datetime
    stats: UserStats


class ProfileUpdate(CamelModel):
    """Self-service profile update. Omitted fields are left unchanged."""

    username: str | None = None
    email: str | None = None
    bio: str | None = Field(default=None, max_length=1000)
    website: str | None = Field(default=None, max_length=255)
    twitter: str | None = Field(default=None, max_length=50)
    github: str | None = Field(default=None, max_length=50)

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str | None) -> str:
        """Username may be omitted but not cleared."""
        if v is None:
            raise ValueError("Username cannot be null")
        return validate_username(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str:
        """Email may be omitted but not cleared."""
        if v is None:
            raise ValueError("Email cannot be null")
        return validate_email(v)


class SettingsResponse(CamelModel):
    """User preferences."""

    model_config = ConfigDict(from_attributes=True)

    theme: str
    language: str
    notifications: bool = Field(validation_alias="notifications_enabled")
    email_notifications: bool


class SettingsUpdate(CamelModel):
    """Preference update. Omitted fields are left unchanged."""

    theme: Literal["light", "dark", "system"] | None = None
    language: str | None = Field(default=None, min_length=2, max_length=10)
    notifications: bool | None = None
    email_notifications: bool | None = None
