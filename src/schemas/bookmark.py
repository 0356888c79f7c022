"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from typing import Any, Literal

from pydantic import Field, HttpUrl, field_validator, model_validator

from schemas.base import CamelModel
from schemas.comment import CommentResponse
from schemas.validators import (
    validate_and_normalize_tags,
    validate_description_length,
    validate_title_length,
    validate_url_length,
)


class BookmarkCreate(CamelModel):
    """Schema for creating a new bookmark."""

    # HttpUrl normalizes root domains with trailing slash (example.com -> example.com/)
    # but preserves paths as-is (example.com/page stays example.com/page)
    url: HttpUrl
    title: str = Field(min_length=1)
    description: str | None = None
    image_url: str | None = None
    is_public: bool = False
    is_pinned: bool = False
    tags: list[str] = []

    @field_validator("url", mode="before")
    @classmethod
    def check_url_length(cls, v: Any) -> Any:
        """Reject oversized URLs before parsing."""
        if isinstance(v, str):
            return validate_url_length(v)
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str) -> str:
        """Validate title length."""
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return validate_title_length(v)

    @field_validator("description")
    @classmethod
    def check_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description_length(v)


class BookmarkUpdate(CamelModel):
    """
    Schema for a partial bookmark update.

    Only fields present in the request body are applied. When tags is
    present it replaces the whole tag set.
    """

    url: HttpUrl | None = None
    title: str | None = None
    description: str | None = None
    image_url: str | None = None
    is_public: bool | None = None
    is_pinned: bool | None = None
    tags: list[str] | None = None

    @field_validator("url", mode="before")
    @classmethod
    def check_url(cls, v: Any) -> Any:
        """URL may be omitted but not cleared."""
        if v is None:
            raise ValueError("URL cannot be null")
        if isinstance(v, str):
            return validate_url_length(v)
        return v

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str:
        """Title may be omitted but not cleared."""
        if v is None or not v.strip():
            raise ValueError("Title cannot be empty")
        return validate_title_length(v.strip())

    @field_validator("is_public", "is_pinned")
    @classmethod
    def check_flag(cls, v: bool | None) -> bool:
        """Flags may be omitted but not nulled."""
        if v is None:
            raise ValueError("Flag cannot be null")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize and validate tags if provided; null clears them."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)

    @field_validator("description")
    @classmethod
    def check_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description_length(v)


class BookmarkListItem(CamelModel):
    """
    Schema for bookmark list items.

    Note: Uses model_validator to flatten the BookmarkView returned by the
    service layer (bookmark row + tag names + per-viewer aggregates).
    """

    id: int
    user_id: int
    username: str
    url: str
    title: str
    description: str | None
    image_url: str | None
    is_public: bool
    is_pinned: bool
    tags: list[str]
    favorite_count: int
    view_count: int
    comment_count: int = 0
    is_favorite: bool = False
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def flatten_view(cls, data: Any) -> Any:
        """
        Extract bookmark columns and aggregates from a BookmarkView.

        Tag names are read from the eagerly loaded tag_objects relationship.
        """
        if isinstance(data, dict) or not hasattr(data, "bookmark"):
            return data
        bookmark = data.bookmark
        data_dict = {
            key: getattr(bookmark, key)
            for key in [
                "id", "user_id", "url", "title", "description", "image_url",
                "is_public", "is_pinned", "favorite_count", "view_count",
                "created_at", "updated_at",
            ]
        }
        tag_objects = bookmark.__dict__.get("tag_objects")
        data_dict["tags"] = [tag.name for tag in tag_objects] if tag_objects else []
        data_dict["username"] = data.username
        data_dict["comment_count"] = data.comment_count
        data_dict["is_favorite"] = data.is_favorite
        comments = getattr(data, "comments", None)
        if comments is not None:
            data_dict["comments"] = comments
        return data_dict


class BookmarkResponse(BookmarkListItem):
    """
    Schema for a single bookmark with its top-level comments.

    Returned by GET /api/bookmarks/{id} and mutation endpoints.
    """

    comments: list[CommentResponse] = []


class BookmarkListResponse(CamelModel):
    """Schema for paginated bookmark list responses."""

    items: list[BookmarkListItem]
    total: int  # Total count of bookmarks matching the query (before pagination)
    page: int
    limit: int
    has_more: bool  # True if there are more results beyond this page


class FavoriteToggleRequest(CamelModel):
    """Body for the favorite toggle endpoint."""

    bookmark_id: int


class FavoriteToggleResponse(CamelModel):
    """Outcome of a favorite toggle and the bookmark's new count."""

    action: Literal["added", "removed"]
    favorite_count: int
