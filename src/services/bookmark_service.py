"""Service layer for bookmark CRUD operations."""
import logging
from dataclasses import dataclass

from sqlalchemy import Row, Select, delete, exists, false, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import Principal
from models.bookmark import Bookmark
from models.comment import Comment
from models.favorite import Favorite
from models.tag import Tag
from models.user import User
from schemas.bookmark import BookmarkCreate, BookmarkUpdate
from schemas.validators import validate_and_normalize_tag
from services import comment_service, tag_service
from services.comment_service import CommentView
from services.exceptions import (
    AccountNotApprovedError,
    NotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
)
from services.utils import contains_pattern, page_offset
from services.visibility import visible_to

logger = logging.getLogger(__name__)


@dataclass
class BookmarkView:
    """
    A bookmark as seen by one viewer.

    Carries the owner's username and per-viewer aggregates alongside the row
    (with tag_objects eagerly loaded). comments is only filled for detail views.
    """

    bookmark: Bookmark
    username: str
    comment_count: int = 0
    is_favorite: bool = False
    comments: list[CommentView] | None = None


def _view_query(viewer_id: int | None) -> Select:
    """Select bookmark rows with owner username, comment count and favorite flag."""
    comment_count = (
        select(func.count(Comment.id))
        .where(Comment.bookmark_id == Bookmark.id)
        .correlate(Bookmark)
        .scalar_subquery()
    )
    if viewer_id is None:
        is_favorite = false()
    else:
        is_favorite = exists().where(
            Favorite.bookmark_id == Bookmark.id,
            Favorite.user_id == viewer_id,
        )
    return (
        select(
            Bookmark,
            User.username,
            comment_count.label("comment_count"),
            is_favorite.label("is_favorite"),
        )
        .join(User, Bookmark.user_id == User.id)
        .options(selectinload(Bookmark.tag_objects))
        .execution_options(populate_existing=True)
    )


def _to_view(row: Row) -> BookmarkView:
    return BookmarkView(
        bookmark=row.Bookmark,
        username=row.username,
        comment_count=row.comment_count,
        is_favorite=bool(row.is_favorite),
    )


async def _get_view(db: AsyncSession, bookmark_id: int, viewer_id: int | None) -> BookmarkView:
    result = await db.execute(_view_query(viewer_id).where(Bookmark.id == bookmark_id))
    return _to_view(result.one())


async def _count_user_bookmarks(db: AsyncSession, user_id: int) -> int:
    count = await db.scalar(
        select(func.count()).select_from(Bookmark).where(Bookmark.user_id == user_id),
    )
    return count or 0


async def create_bookmark(
    db: AsyncSession,
    principal: Principal,
    data: BookmarkCreate,
) -> BookmarkView:
    """
    Create a bookmark for the caller.

    The owner's user row is locked for the quota check so two concurrent
    creates cannot both pass when one slot is left. The quota is read from
    the locked row rather than the principal in case an admin just changed it.

    Raises:
        AccountNotApprovedError: If the caller's account is not approved.
        QuotaExceededError: If the caller already has max_bookmarks bookmarks.
    """
    if not principal.is_approved:
        raise AccountNotApprovedError()

    result = await db.execute(
        select(User).where(User.id == principal.user_id).with_for_update(),
    )
    owner = result.scalar_one()
    current = await _count_user_bookmarks(db, owner.id)
    if current >= owner.max_bookmarks:
        raise QuotaExceededError("bookmark", current, owner.max_bookmarks)

    tags = await tag_service.get_or_create_tags(db, data.tags, created_by=owner.id)
    bookmark = Bookmark(
        user_id=owner.id,
        url=str(data.url),
        title=data.title,
        description=data.description,
        image_url=data.image_url,
        is_public=data.is_public,
        is_pinned=data.is_pinned,
        tag_objects=tags,
    )
    db.add(bookmark)
    await db.flush()
    logger.info("User %s created bookmark %s", owner.id, bookmark.id)

    view = await _get_view(db, bookmark.id, owner.id)
    view.comments = []
    return view


async def list_bookmarks(
    db: AsyncSession,
    viewer_id: int | None,
    user_id: int | None = None,
    tag: str | None = None,
    search: str | None = None,
    favorites: bool = False,
    page: int = 1,
    limit: int = 10,
    include_private: bool = False,
) -> tuple[list[BookmarkView], int]:
    """
    List bookmarks visible to the viewer with filtering and pagination.

    Args:
        db: Database session.
        viewer_id: Requesting user, or None for anonymous visitors.
        user_id: Only bookmarks owned by this user.
        tag: Only bookmarks carrying this tag (normalized before matching).
        search: Case-insensitive substring match on title or description.
        favorites: Only bookmarks the viewer has favorited. Visibility still
            applies, so a favorite that has since gone private drops out.
        page: 1-based page number.
        limit: Page size.
        include_private: Skip the visibility rule (admin listing only).

    Returns:
        Tuple of (bookmarks for the page, total count matching the filters).

    Raises:
        ValueError: If the tag filter is not a valid tag name.
    """
    filters = []
    if not include_private:
        filters.append(visible_to(viewer_id))
    if user_id is not None:
        filters.append(Bookmark.user_id == user_id)
    if tag:
        filters.append(Bookmark.tag_objects.any(Tag.name == validate_and_normalize_tag(tag)))
    if search and search.strip():
        pattern = contains_pattern(search)
        filters.append(
            or_(
                Bookmark.title.ilike(pattern, escape="\\"),
                Bookmark.description.ilike(pattern, escape="\\"),
            ),
        )
    if favorites:
        if viewer_id is None:
            return [], 0
        filters.append(
            Bookmark.id.in_(
                select(Favorite.bookmark_id).where(Favorite.user_id == viewer_id),
            ),
        )

    total = await db.scalar(select(func.count(Bookmark.id)).where(*filters))

    # Owners see their pinned bookmarks first on their own listing
    order_by = [Bookmark.created_at.desc(), Bookmark.id.desc()]
    if viewer_id is not None and user_id == viewer_id:
        order_by.insert(0, Bookmark.is_pinned.desc())

    result = await db.execute(
        _view_query(viewer_id)
        .where(*filters)
        .order_by(*order_by)
        .offset(page_offset(page, limit))
        .limit(limit),
    )
    return [_to_view(row) for row in result], total or 0


async def get_bookmark(
    db: AsyncSession,
    bookmark_id: int,
    viewer_id: int | None,
    record_view: bool = True,
) -> BookmarkView:
    """
    Get a single bookmark with its top-level comments.

    Each successful read bumps view_count with an atomic increment; the
    returned view includes the new count.

    Raises:
        NotFoundError: If the bookmark is missing or not visible to the viewer.
    """
    visible = await db.scalar(
        select(Bookmark.id).where(Bookmark.id == bookmark_id, visible_to(viewer_id)),
    )
    if visible is None:
        raise NotFoundError("bookmark", bookmark_id)

    if record_view:
        await db.execute(
            update(Bookmark)
            .where(Bookmark.id == bookmark_id)
            .values(view_count=Bookmark.view_count + 1)
            .execution_options(synchronize_session=False),
        )

    view = await _get_view(db, bookmark_id, viewer_id)
    view.comments = await comment_service.list_top_level_comments(db, bookmark_id)
    return view


async def _get_for_write(
    db: AsyncSession,
    principal: Principal,
    bookmark_id: int,
    allow_admin: bool,
) -> Bookmark:
    """
    Load a bookmark the caller intends to modify.

    Bookmarks the caller cannot see are reported as missing; visible ones
    they do not own are a permission error.
    """
    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(Bookmark.id == bookmark_id)
        .execution_options(populate_existing=True),
    )
    bookmark = result.scalar_one_or_none()
    is_owner = bookmark is not None and bookmark.user_id == principal.user_id
    admin_override = allow_admin and principal.is_admin
    if bookmark is None or not (bookmark.is_public or is_owner or admin_override):
        raise NotFoundError("bookmark", bookmark_id)
    if not (is_owner or admin_override):
        raise PermissionDeniedError("You can only modify your own bookmarks")
    return bookmark


async def update_bookmark(
    db: AsyncSession,
    principal: Principal,
    bookmark_id: int,
    data: BookmarkUpdate,
) -> BookmarkView:
    """
    Apply a partial update. Owner or admin.

    When tags are supplied they replace the bookmark's tag set entirely.

    Raises:
        NotFoundError: If the bookmark is missing or not visible to the caller.
        PermissionDeniedError: If the caller is neither owner nor admin.
    """
    bookmark = await _get_for_write(db, principal, bookmark_id, allow_admin=True)

    update_data = data.model_dump(exclude_unset=True)
    new_tags = update_data.pop("tags", None)
    if "url" in update_data:
        update_data["url"] = str(data.url)

    for field, value in update_data.items():
        setattr(bookmark, field, value)
    if new_tags is not None:
        bookmark.tag_objects = await tag_service.get_or_create_tags(
            db, new_tags, created_by=principal.user_id,
        )
    if update_data or new_tags is not None:
        bookmark.touch()

    await db.flush()
    if principal.user_id != bookmark.user_id:
        logger.info("Admin %s updated bookmark %s", principal.user_id, bookmark_id)

    view = await _get_view(db, bookmark_id, principal.user_id)
    view.comments = await comment_service.list_top_level_comments(db, bookmark_id)
    return view


async def delete_bookmark(db: AsyncSession, principal: Principal, bookmark_id: int) -> None:
    """
    Delete a bookmark. Owner only.

    Tag links, comments and favorites go with it through ON DELETE CASCADE;
    the tags themselves remain.

    Raises:
        NotFoundError: If the bookmark is missing or not visible to the caller.
        PermissionDeniedError: If the caller is not the owner.
    """
    await _get_for_write(db, principal, bookmark_id, allow_admin=False)
    await db.execute(delete(Bookmark).where(Bookmark.id == bookmark_id))
    logger.info("User %s deleted bookmark %s", principal.user_id, bookmark_id)
