"""SQLAlchemy declarative base and the timestamp mixin shared by all tables."""
from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all Linkshelf models."""

    pass


class TimestampMixin:
    """
    created_at and updated_at columns, both TIMESTAMP WITH TIME ZONE.

    Defaults come from clock_timestamp() so rows written later in the same
    transaction still get later times. There is no onupdate hook: services
    call touch() on content edits, which keeps view and favorite counter
    bumps from moving updated_at (and with it the sitemap lastmod).
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
        nullable=False,
        index=True,  # Index for "sort by recently updated" queries
    )

    def touch(self) -> None:
        """Mark the row as edited; the database fills in the time on flush."""
        self.updated_at = func.clock_timestamp()
