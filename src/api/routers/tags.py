"""Public tag browsing endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.tag import TagDetailResponse, TagListResponse
from services.tag_service import TagNotFoundError, get_public_tags_with_counts, get_tag_by_name

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=TagListResponse)
async def list_tags(
    db: AsyncSession = Depends(get_async_session),
) -> TagListResponse:
    """
    Tags used by public bookmarks, with usage counts.

    Sorted by count DESC, then name ASC.
    """
    tags = await get_public_tags_with_counts(db)
    return TagListResponse(tags=tags)


@router.get("/{tag_name}", response_model=TagDetailResponse)
async def get_tag(
    tag_name: str,
    db: AsyncSession = Depends(get_async_session),
) -> TagDetailResponse:
    """A tag with its SEO metadata and public bookmark count."""
    try:
        tag, count = await get_tag_by_name(db, tag_name)
    except TagNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return TagDetailResponse(
        id=tag.id,
        name=tag.name,
        meta_title=tag.meta_title,
        meta_description=tag.meta_description,
        created_at=tag.created_at,
        count=count,
    )
