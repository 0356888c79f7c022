"""Bookmark model for storing shared links."""
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin
from models.tag import bookmark_tags

if TYPE_CHECKING:
    from models.comment import Comment
    from models.favorite import Favorite
    from models.tag import Tag
    from models.user import User


class Bookmark(Base, TimestampMixin):
    """
    Bookmark model - a URL saved by one user, optionally shared publicly.

    favorite_count is a denormalized copy of the number of Favorite rows and
    is only ever changed with atomic SQL increments.
    """

    __tablename__ = "bookmarks"
    __table_args__ = (
        CheckConstraint("favorite_count >= 0", name="ck_bookmarks_favorite_count_non_negative"),
        # Public feed ordering
        Index("ix_bookmarks_public_created", "is_public", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_public: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"),
    )
    is_pinned: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"),
    )
    favorite_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"),
    )
    view_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"),
    )

    user: Mapped["User"] = relationship(back_populates="bookmarks")
    tag_objects: Mapped[list["Tag"]] = relationship(
        secondary=bookmark_tags,
        back_populates="bookmarks",
    )
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="bookmark",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    favorites: Mapped[list["Favorite"]] = relationship(
        back_populates="bookmark",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
