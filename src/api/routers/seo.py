"""robots.txt and sitemap endpoints."""
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_settings
from core.config import Settings
from services import site_settings_service, sitemap_service

router = APIRouter(tags=["seo"])

XML_MEDIA_TYPE = "application/xml"


@router.get("/robots.txt", response_class=PlainTextResponse)
async def robots_txt(
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_async_session),
) -> str:
    """Crawler rules: the admin override when set, otherwise the generated default."""
    override = await site_settings_service.get_robots_override(db)
    if override is not None:
        return override
    return sitemap_service.render_robots_txt(settings.base_url)


@router.get("/sitemap.xml")
async def sitemap_index(settings: Settings = Depends(get_settings)) -> Response:
    """Sitemap index referencing the per-kind sitemaps."""
    body = sitemap_service.render_sitemap_index(settings.base_url, datetime.now(UTC))
    return Response(content=body, media_type=XML_MEDIA_TYPE)


@router.get("/sitemaps/{kind}.xml")
async def sitemap(
    kind: str,
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_async_session),
) -> Response:
    """Sitemap for pages, bookmarks, users or tags."""
    if kind not in sitemap_service.SITEMAP_KINDS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sitemap not found")
    body = await sitemap_service.build_sitemap(db, kind, settings.base_url)
    return Response(content=body, media_type=XML_MEDIA_TYPE)
