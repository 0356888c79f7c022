"""Public site metadata."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.site_settings import PublicSiteSettings
from services import site_settings_service

router = APIRouter(tags=["site"])


@router.get("/site-settings", response_model=PublicSiteSettings)
async def get_public_site_settings(
    db: AsyncSession = Depends(get_async_session),
) -> PublicSiteSettings:
    """Title, description, keywords and tracking ids for the page head."""
    settings = await site_settings_service.get_site_settings(db)
    return PublicSiteSettings.model_validate(settings)
