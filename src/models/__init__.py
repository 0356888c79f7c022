"""SQLAlchemy models."""
from models.base import Base, TimestampMixin
from models.bookmark import Bookmark
from models.comment import Comment
from models.favorite import Favorite
from models.site_settings import SiteSettings
from models.tag import Tag, bookmark_tags
from models.user import User, UserRole

__all__ = [
    "Base",
    "Bookmark",
    "Comment",
    "Favorite",
    "SiteSettings",
    "Tag",
    "TimestampMixin",
    "User",
    "UserRole",
    "bookmark_tags",
]
