"""Service layer for the single site settings row."""
import logging

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import Principal
from models.site_settings import SITE_SETTINGS_ID, SiteSettings
from schemas.site_settings import SiteSettingsUpdate

logger = logging.getLogger(__name__)


async def get_site_settings(db: AsyncSession) -> SiteSettings:
    """Get the settings row, creating it with defaults on first use."""
    settings = await db.get(SiteSettings, SITE_SETTINGS_ID)
    if settings is None:
        await db.execute(
            insert(SiteSettings)
            .values(id=SITE_SETTINGS_ID)
            .on_conflict_do_nothing(index_elements=["id"]),
        )
        settings = await db.get(SiteSettings, SITE_SETTINGS_ID)
    return settings


async def get_robots_override(db: AsyncSession) -> str | None:
    """The admin-edited robots.txt, or None when the generated one applies."""
    return await db.scalar(
        select(SiteSettings.robots_txt).where(SiteSettings.id == SITE_SETTINGS_ID),
    )


async def update_site_settings(
    db: AsyncSession,
    admin: Principal,
    data: SiteSettingsUpdate,
) -> SiteSettings:
    """Apply a partial settings update."""
    settings = await get_site_settings(db)
    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(settings, field, value)
    settings.touch()
    await db.flush()
    await db.refresh(settings)
    logger.info("Admin %s updated site settings: %s", admin.user_id, ", ".join(update_data))
    return settings
