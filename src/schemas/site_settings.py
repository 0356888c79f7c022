"""Pydantic schemas for site-wide settings."""
from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from schemas.base import CamelModel

MAX_ROBOTS_TXT_LENGTH = 10_000


class PublicSiteSettings(CamelModel):
    """Site metadata the web app renders into every page."""

    model_config = ConfigDict(from_attributes=True)

    title: str
    description: str
    keywords: str
    analytics_measurement_id: str | None
    search_console_verification: str | None


class SiteSettingsResponse(PublicSiteSettings):
    """Full settings as seen by admins, including the robots.txt override."""

    robots_txt: str | None
    updated_at: datetime


class SiteSettingsUpdate(CamelModel):
    """
    Partial settings update. Omitted fields are left unchanged.

    title, description and keywords cannot be cleared. The optional fields
    accept null, and a blank robotsTxt also clears the override so the
    generated robots.txt is served again.
    """

    title: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    keywords: str | None = Field(default=None, max_length=500)
    analytics_measurement_id: str | None = Field(default=None, max_length=50)
    search_console_verification: str | None = Field(default=None, max_length=255)
    robots_txt: str | None = Field(default=None, max_length=MAX_ROBOTS_TXT_LENGTH)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str:
        """Title may be omitted but not cleared."""
        if v is None or not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

    @field_validator("description", "keywords")
    @classmethod
    def check_not_null(cls, v: str | None) -> str:
        """May be omitted but not nulled."""
        if v is None:
            raise ValueError("Value cannot be null")
        return v.strip()

    @field_validator("analytics_measurement_id", "search_console_verification", "robots_txt")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Blank strings clear the field."""
        if v is None or not v.strip():
            return None
        return v
