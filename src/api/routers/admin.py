"""Admin panel endpoints: user moderation, quotas, bookmarks, tag SEO and site settings."""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import Principal, get_admin_principal, get_async_session
from models.user import User
from schemas.admin import (
    AdminBookmarkListResponse,
    AdminUserListResponse,
    AdminUserResponse,
    AdminUserUpdate,
)
from schemas.bookmark import BookmarkListItem
from schemas.site_settings import SiteSettingsResponse, SiteSettingsUpdate
from schemas.tag import AdminTagResponse, TagMetaUpdate, TagResponse
from schemas.user import UserResponse
from services import admin_service, bookmark_service, site_settings_service, tag_service
from services.exceptions import InvalidInputError, NotFoundError
from services.utils import has_more

router = APIRouter(prefix="/admin", tags=["admin"])


def _admin_user(user: User, bookmark_count: int) -> AdminUserResponse:
    base = UserResponse.model_validate(user).model_dump()
    return AdminUserResponse(**base, bookmark_count=bookmark_count)


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    _admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_async_session),
) -> AdminUserListResponse:
    """All users, newest first, with bookmark counts."""
    rows = await admin_service.list_users(db)
    return AdminUserListResponse(users=[_admin_user(user, count) for user, count in rows])


@router.patch("/users/{user_id}", response_model=AdminUserResponse)
async def update_user(
    user_id: int,
    data: AdminUserUpdate,
    admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_async_session),
) -> AdminUserResponse:
    """
    Update approval, premium status or quota.

    - `isPremium: true` sets the premium quota and an expiry (`premiumUntil`
      or 30 days from now).
    - `isPremium: false` restores the free quota and clears the expiry.
    - `maxBookmarks` overrides the quota and wins over `isPremium`.

    Returns 400 if the body contains no recognized fields.
    """
    try:
        user = await admin_service.update_user(db, admin, user_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    counts = await admin_service.count_bookmarks_by_user(db, [user.id])
    return _admin_user(user, counts.get(user.id, 0))


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a user and everything they own. Admins cannot delete themselves."""
    try:
        await admin_service.delete_user(db, admin, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.get("/bookmarks", response_model=AdminBookmarkListResponse)
async def list_all_bookmarks(
    user_id: int | None = Query(default=None, alias="userId"),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_async_session),
) -> AdminBookmarkListResponse:
    """Every bookmark, public or private, newest first."""
    views, total = await bookmark_service.list_bookmarks(
        db,
        viewer_id=admin.user_id,
        user_id=user_id,
        search=search,
        page=page,
        limit=limit,
        include_private=True,
    )
    items = [BookmarkListItem.model_validate(v) for v in views]
    return AdminBookmarkListResponse(
        items=items,
        total=total,
        page=page,
        limit=limit,
        has_more=has_more(page, limit, len(items), total),
    )


@router.get("/tags", response_model=list[AdminTagResponse])
async def list_tags(
    _admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_async_session),
) -> list[AdminTagResponse]:
    """All tags including orphans, with total bookmark counts."""
    rows = await tag_service.list_all_tags(db)
    return [
        AdminTagResponse(
            **TagResponse.model_validate(tag).model_dump(), bookmark_count=count,
        )
        for tag, count in rows
    ]


@router.patch("/tags/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: int,
    data: TagMetaUpdate,
    _admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_async_session),
) -> TagResponse:
    """Set a tag's SEO title and description."""
    try:
        tag = await tag_service.update_tag_meta(db, tag_id, data)
    except tag_service.TagNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return TagResponse.model_validate(tag)


@router.delete("/tags/{tag_id}", status_code=204)
async def delete_tag(
    tag_id: int,
    _admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a tag, removing it from every bookmark."""
    try:
        await tag_service.delete_tag(db, tag_id)
    except tag_service.TagNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/settings", response_model=SiteSettingsResponse)
async def get_site_settings(
    _admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_async_session),
) -> SiteSettingsResponse:
    """Site metadata and the robots.txt override."""
    settings = await site_settings_service.get_site_settings(db)
    return SiteSettingsResponse.model_validate(settings)


@router.put("/settings", response_model=SiteSettingsResponse)
async def update_site_settings(
    data: SiteSettingsUpdate,
    admin: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_async_session),
) -> SiteSettingsResponse:
    """
    Update site metadata.

    Omitted fields are left unchanged. Setting `robotsTxt` replaces the
    generated robots.txt; null or blank restores it.
    """
    settings = await site_settings_service.update_site_settings(db, admin, data)
    return SiteSettingsResponse.model_validate(settings)
