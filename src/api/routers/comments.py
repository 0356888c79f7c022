"""Comment endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    Principal,
    get_async_session,
    get_current_principal,
    get_optional_principal,
)
from schemas.comment import CommentCreate, CommentListResponse, CommentResponse, CommentUpdate
from services import comment_service
from services.exceptions import InvalidInputError, NotFoundError, PermissionDeniedError
from services.utils import has_more

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post(
    "",
    response_model=CommentResponse,
    status_code=201,
    responses={200: {"description": "Replayed submission; the existing comment is returned"}},
)
async def create_comment(
    data: CommentCreate,
    response: Response,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> CommentResponse:
    """
    Comment on a bookmark, or reply to a top-level comment.

    Resending the same `clientCommentId` returns the stored comment with 200
    instead of creating a duplicate.
    """
    try:
        view, created = await comment_service.create_comment(db, principal, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    if not created:
        response.status_code = status.HTTP_200_OK
    return CommentResponse.model_validate(view)


@router.get("", response_model=CommentListResponse)
async def list_comments(
    bookmark_id: int = Query(alias="bookmarkId"),
    parent_id: int | None = Query(default=None, alias="parentId"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    principal: Principal | None = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_async_session),
) -> CommentListResponse:
    """List top-level comments on a bookmark, or the replies to `parentId`."""
    try:
        views, total = await comment_service.list_comments(
            db,
            bookmark_id,
            principal.user_id if principal else None,
            parent_id=parent_id,
            page=page,
            limit=limit,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    items = [CommentResponse.model_validate(v) for v in views]
    return CommentListResponse(
        items=items,
        total=total,
        page=page,
        limit=limit,
        has_more=has_more(page, limit, len(items), total),
    )


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> CommentResponse:
    """Edit your own comment."""
    try:
        view = await comment_service.update_comment(db, principal, comment_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    return CommentResponse.model_validate(view)


@router.delete("/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete your own comment and its replies."""
    try:
        await comment_service.delete_comment(db, principal, comment_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
