"""Schemas for link preview metadata."""
from schemas.base import CamelModel


class MetadataPreviewResponse(CamelModel):
    """Schema for URL metadata preview (before saving bookmark)."""

    url: str  # URL as requested, after scheme defaulting
    final_url: str  # URL after following redirects
    title: str | None
    description: str | None
    image: str | None = None  # Absolute URL of the preview image or favicon
    error: str | None = None  # Error message if fetch failed
