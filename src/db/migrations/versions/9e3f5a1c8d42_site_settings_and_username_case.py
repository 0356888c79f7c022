"""
Add site_settings and a case-insensitive unique index on users.username.

Revision ID: 9e3f5a1c8d42
Revises: 4c1d2e9a7b30
Create Date: 2026-10-19 15:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "9e3f5a1c8d42"
down_revision: str | Sequence[str] | None = "4c1d2e9a7b30"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "site_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=100), server_default="Linkshelf", nullable=False),
        sa.Column(
            "description",
            sa.Text(),
            server_default="Save, tag and share your bookmarks",
            nullable=False,
        ),
        sa.Column(
            "keywords",
            sa.String(length=500),
            server_default="bookmarks, bookmark manager, links",
            nullable=False,
        ),
        sa.Column("analytics_measurement_id", sa.String(length=50), nullable=True),
        sa.Column("search_console_verification", sa.String(length=255), nullable=True),
        sa.Column("robots_txt", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("clock_timestamp()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("clock_timestamp()"),
            nullable=False,
        ),
        sa.CheckConstraint("id = 1", name="ck_site_settings_single_row"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_site_settings_updated_at"), "site_settings", ["updated_at"], unique=False,
    )

    op.create_index(
        "uq_users_username_lower", "users", [sa.text("lower(username)")], unique=True,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("uq_users_username_lower", table_name="users")
    op.drop_index(op.f("ix_site_settings_updated_at"), table_name="site_settings")
    op.drop_table("site_settings")
