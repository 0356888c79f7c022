"""Comment model for bookmark discussions."""
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.bookmark import Bookmark
    from models.user import User


class Comment(Base, TimestampMixin):
    """
    Comment model - a top-level comment or a single-level reply.

    client_comment_id is an optional idempotency key supplied by the client;
    it is unique per author so retried submissions resolve to one row.
    """

    __tablename__ = "comments"
    __table_args__ = (
        UniqueConstraint("user_id", "client_comment_id", name="uq_comments_user_client_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    bookmark_id: Mapped[int] = mapped_column(
        ForeignKey("bookmarks.id", ondelete="CASCADE"),
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    client_comment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    bookmark: Mapped["Bookmark"] = relationship(back_populates="comments")
    user: Mapped["User"] = relationship(back_populates="comments")
