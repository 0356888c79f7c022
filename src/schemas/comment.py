"""Pydantic schemas for comment endpoints."""
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from schemas.base import CamelModel
from schemas.validators import validate_comment_length


class CommentCreate(CamelModel):
    """
    Schema for posting a comment.

    client_comment_id is generated by the client once per submission and
    reused on retries so a resent request does not create a second comment.
    """

    bookmark_id: int
    content: str
    client_comment_id: str = Field(min_length=1, max_length=100)
    parent_id: int | None = None

    @field_validator("content")
    @classmethod
    def check_content(cls, v: str) -> str:
        """Validate comment content."""
        return validate_comment_length(v)


class CommentUpdate(CamelModel):
    """Schema for editing a comment."""

    content: str

    @field_validator("content")
    @classmethod
    def check_content(cls, v: str) -> str:
        """Validate comment content."""
        return validate_comment_length(v)


class CommentResponse(CamelModel):
    """
    A comment with its author's username and direct reply count.

    Accepts a CommentView from the service layer and flattens it.
    """

    id: int
    bookmark_id: int
    user_id: int
    username: str
    content: str
    parent_id: int | None
    reply_count: int = 0
    client_comment_id: str | None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def flatten_view(cls, data: Any) -> Any:
        """Unpack a CommentView (comment row + aggregates) into fields."""
        if isinstance(data, dict) or not hasattr(data, "comment"):
            return data
        comment = data.comment
        return {
            "id": comment.id,
            "bookmark_id": comment.bookmark_id,
            "user_id": comment.user_id,
            "username": data.username,
            "content": comment.content,
            "parent_id": comment.parent_id,
            "reply_count": data.reply_count,
            "client_comment_id": comment.client_comment_id,
            "created_at": comment.created_at,
            "updated_at": comment.updated_at,
        }


class CommentListResponse(CamelModel):
    """Paginated comment listing."""

    items: list[CommentResponse]
    total: int
    page: int
    limit: int
    has_more: bool
