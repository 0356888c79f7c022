"""Site-wide settings edited from the admin panel."""
from sqlalchemy import CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin

SITE_SETTINGS_ID = 1


class SiteSettings(Base, TimestampMixin):
    """
    SiteSettings model - a single row holding site metadata and SEO overrides.

    title, description and keywords feed the page <head>. robots_txt, when
    set, replaces the generated robots.txt verbatim.
    """

    __tablename__ = "site_settings"
    __table_args__ = (
        CheckConstraint(f"id = {SITE_SETTINGS_ID}", name="ck_site_settings_single_row"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, default=SITE_SETTINGS_ID)
    title: Mapped[str] = mapped_column(
        String(100), default="Linkshelf", server_default="Linkshelf",
    )
    description: Mapped[str] = mapped_column(
        Text,
        default="Save, tag and share your bookmarks",
        server_default="Save, tag and share your bookmarks",
    )
    keywords: Mapped[str] = mapped_column(
        String(500),
        default="bookmarks, bookmark manager, links",
        server_default="bookmarks, bookmark manager, links",
    )
    analytics_measurement_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    search_console_verification: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
    )
    robots_txt: Mapped[str | None] = mapped_column(Text, nullable=True)
