"""User model for registered accounts."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.tier_limits import TIER_LIMITS, Tier
from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.bookmark import Bookmark
    from models.comment import Comment
    from models.favorite import Favorite


class UserRole:
    """Stored values for User.role."""

    USER = "user"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    """
    User model - credentials, moderation flags, quota and public profile.

    Approval gates bookmark creation. Premium status and max_bookmarks are
    only changed through the admin service.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(
        String(20),
        default=UserRole.USER,
        server_default=UserRole.USER,
    )

    is_approved: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"),
    )
    is_premium: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"),
    )
    premium_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    max_bookmarks: Mapped[int] = mapped_column(
        Integer,
        default=TIER_LIMITS[Tier.FREE].max_bookmarks,
        server_default=text(str(TIER_LIMITS[Tier.FREE].max_bookmarks)),
    )

    # Public profile
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    twitter: Mapped[str | None] = mapped_column(String(50), nullable=True)
    github: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Preferences
    theme: Mapped[str] = mapped_column(String(20), default="light", server_default="light")
    language: Mapped[str] = mapped_column(String(10), default="en", server_default="en")
    notifications_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true"),
    )
    email_notifications: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"),
    )

    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    bookmarks: Mapped[list["Bookmark"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    favorites: Mapped[list["Favorite"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_admin(self) -> bool:
        """True when the account carries the admin role."""
        return self.role == UserRole.ADMIN


# Usernames are unique regardless of case
Index("uq_users_username_lower", func.lower(User.username), unique=True)
