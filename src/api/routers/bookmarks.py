"""Bookmark CRUD and favorite endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    Principal,
    get_async_session,
    get_current_principal,
    get_optional_principal,
)
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkListItem,
    BookmarkListResponse,
    BookmarkResponse,
    BookmarkUpdate,
    FavoriteToggleRequest,
    FavoriteToggleResponse,
)
from services import bookmark_service, favorite_service
from services.exceptions import (
    AccountNotApprovedError,
    NotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
)
from services.utils import has_more

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


def _not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _forbidden(e: PermissionDeniedError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@router.post("", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """
    Create a new bookmark.

    Returns 403 with error `account_not_approved` if the account has not been
    approved yet, or `bookmark_limit_reached` when the quota is used up (the
    client should offer an upgrade).
    """
    try:
        view = await bookmark_service.create_bookmark(db, principal, data)
    except AccountNotApprovedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "account_not_approved", "message": str(e)},
        ) from e
    except QuotaExceededError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "bookmark_limit_reached",
                "message": str(e),
                "limit": e.limit,
                "current": e.current,
            },
        ) from e
    return BookmarkResponse.model_validate(view)


@router.get("", response_model=BookmarkListResponse)
async def list_bookmarks(
    user_id: int | None = Query(default=None, alias="userId", description="Only this owner's bookmarks"),  # noqa: E501
    tag: str | None = Query(default=None, description="Filter by tag name"),
    search: str | None = Query(default=None, description="Match title or description (case-insensitive)"),  # noqa: E501
    favorites: bool = Query(default=False, description="Only bookmarks you have favorited"),
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(default=10, ge=1, le=100, description="Page size"),
    principal: Principal | None = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkListResponse:
    """
    List bookmarks visible to the caller: every public bookmark plus their own.

    Anonymous callers see public bookmarks only. `favorites=true` requires
    authentication. A caller listing their own bookmarks (`userId` = self)
    sees pinned ones first; otherwise newest first.
    """
    if favorites and principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    viewer_id = principal.user_id if principal else None
    try:
        views, total = await bookmark_service.list_bookmarks(
            db,
            viewer_id=viewer_id,
            user_id=user_id,
            tag=tag,
            search=search,
            favorites=favorites,
            page=page,
            limit=limit,
        )
    except ValueError as e:
        # Tag validation errors from validate_and_normalize_tag
        raise HTTPException(status_code=422, detail=str(e))
    items = [BookmarkListItem.model_validate(v) for v in views]
    return BookmarkListResponse(
        items=items,
        total=total,
        page=page,
        limit=limit,
        has_more=has_more(page, limit, len(items), total),
    )


@router.post("/favorite", response_model=FavoriteToggleResponse)
async def toggle_favorite(
    data: FavoriteToggleRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> FavoriteToggleResponse:
    """Favorite the bookmark, or unfavorite it if already favorited."""
    try:
        result = await favorite_service.toggle_favorite(db, principal.user_id, data.bookmark_id)
    except NotFoundError as e:
        raise _not_found(e) from e
    return FavoriteToggleResponse(action=result.action, favorite_count=result.favorite_count)


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: int,
    principal: Principal | None = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark with its comments. Counts as a view."""
    try:
        view = await bookmark_service.get_bookmark(
            db, bookmark_id, principal.user_id if principal else None,
        )
    except NotFoundError as e:
        raise _not_found(e) from e
    return BookmarkResponse.model_validate(view)


@router.put("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: int,
    data: BookmarkUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Update a bookmark (owner or admin). Only the fields sent are changed."""
    try:
        view = await bookmark_service.update_bookmark(db, principal, bookmark_id, data)
    except NotFoundError as e:
        raise _not_found(e) from e
    except PermissionDeniedError as e:
        raise _forbidden(e) from e
    return BookmarkResponse.model_validate(view)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a bookmark along with its tag links, comments and favorites."""
    try:
        await bookmark_service.delete_bookmark(db, principal, bookmark_id)
    except NotFoundError as e:
        raise _not_found(e) from e
    except PermissionDeniedError as e:
        raise _forbidden(e) from e
