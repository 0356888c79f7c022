"""Pydantic schemas for the admin panel."""
from datetime import datetime

from pydantic import Field

from schemas.base import CamelModel
from schemas.bookmark import BookmarkListItem
from schemas.user import UserResponse


class AdminUserResponse(UserResponse):
    """A user row in the admin listing."""

    bookmark_count: int = 0


class AdminUserListResponse(CamelModel):
    """All users, newest first."""

    users: list[AdminUserResponse]


class AdminUserUpdate(CamelModel):
    """
    Sparse admin update of approval, premium and quota fields.

    Only keys present in the request body are applied.
    """

    is_approved: bool | None = None
    is_premium: bool | None = None
    premium_until: datetime | None = None
    max_bookmarks: int | None = Field(default=None, ge=0, le=100_000)


class AdminBookmarkListResponse(CamelModel):
    """Every bookmark regardless of visibility, paginated."""

    items: list[BookmarkListItem]
    total: int
    page: int
    limit: int
    has_more: bool
