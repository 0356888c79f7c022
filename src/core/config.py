"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRET_KEY = "change-me-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")
    db_pool_timeout: float = Field(default=30.0, validation_alias="DB_POOL_TIMEOUT")

    # Session tokens
    secret_key: str = Field(default=DEFAULT_SECRET_KEY, validation_alias="SECRET_KEY")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Public base URL of the site - used in sitemaps and robots.txt
    site_url: str = Field(default="http://localhost:3000", validation_alias="SITE_URL")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    debug: bool = Field(default=False, validation_alias="DEBUG")

    # Field length limits
    max_title_length: int = Field(default=255, validation_alias="MAX_TITLE_LENGTH")
    max_description_length: int = Field(
        default=2000, validation_alias="MAX_DESCRIPTION_LENGTH",
    )
    max_comment_length: int = Field(default=5000, validation_alias="MAX_COMMENT_LENGTH")
    max_url_length: int = Field(default=2048, validation_alias="MAX_URL_LENGTH")

    # Link preview fetches
    metadata_fetch_timeout: float = Field(
        default=10.0, validation_alias="METADATA_FETCH_TIMEOUT",
    )

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """
        Refuse the placeholder secret outside of debug mode.

        Session tokens signed with a well-known key can be forged by anyone.
        """
        if self.secret_key == DEFAULT_SECRET_KEY and not self.debug:
            raise ValueError(
                "SECRET_KEY must be set when DEBUG is disabled. "
                "The default key is only allowed for local development.",
            )
        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def base_url(self) -> str:
        """Site URL without a trailing slash."""
        return self.site_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
