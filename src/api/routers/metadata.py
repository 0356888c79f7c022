"""Link preview endpoint."""
from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import Principal, get_current_principal, get_settings
from core.config import Settings
from schemas.metadata import MetadataPreviewResponse
from services import url_scraper

router = APIRouter(tags=["metadata"])


@router.get("/metadata", response_model=MetadataPreviewResponse)
async def get_metadata(
    url: str = Query(description="Page to preview; https:// is assumed if no scheme is given"),
    _principal: Principal = Depends(get_current_principal),
    settings: Settings = Depends(get_settings),
) -> MetadataPreviewResponse:
    """
    Fetch a page and extract its title, description and preview image.

    Fetch failures (timeouts, blocked hosts, HTTP errors) still return 200
    with `error` set, so the form can fall back to manual entry. A malformed
    URL returns 400.
    """
    try:
        preview = await url_scraper.get_link_preview(url, timeout=settings.metadata_fetch_timeout)
    except url_scraper.InvalidPreviewUrlError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return MetadataPreviewResponse(
        url=preview.url,
        final_url=preview.final_url,
        title=preview.title,
        description=preview.description,
        image=preview.image,
        error=preview.error,
    )
