"""Pydantic schemas for tag endpoints."""
from datetime import datetime

from pydantic import ConfigDict, Field

from schemas.base import CamelModel


class TagCount(CamelModel):
    """Schema for a tag with the number of public bookmarks using it."""

    name: str
    count: int


class TagListResponse(CamelModel):
    """Schema for the tags list response."""

    tags: list[TagCount]


class TagResponse(CamelModel):
    """Schema for a tag with its SEO metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    meta_title: str | None
    meta_description: str | None
    created_at: datetime


class TagDetailResponse(TagResponse):
    """A tag page: metadata plus public usage count."""

    count: int


class AdminTagResponse(TagResponse):
    """Admin listing row: counts every bookmark, public or not."""

    bookmark_count: int


class TagMetaUpdate(CamelModel):
    """SEO metadata edit. Omitted fields are left unchanged; null clears."""

    meta_title: str | None = Field(default=None, max_length=255)
    meta_description: str | None = Field(default=None, max_length=1000)
