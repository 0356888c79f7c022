"""Bookmark visibility rule shared by the bookmark, favorite and comment services."""
from sqlalchemy import ColumnElement, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from services.exceptions import NotFoundError


def visible_to(viewer_id: int | None) -> ColumnElement[bool]:
    """
    SQL condition for bookmarks a viewer may see: public ones plus their own.

    Anonymous viewers (None) see public bookmarks only.
    """
    if viewer_id is None:
        return Bookmark.is_public.is_(True)
    return or_(Bookmark.is_public.is_(True), Bookmark.user_id == viewer_id)


async def get_visible_bookmark(
    db: AsyncSession,
    bookmark_id: int,
    viewer_id: int | None,
) -> Bookmark:
    """
    Fetch a bookmark the viewer is allowed to see.

    Raises:
        NotFoundError: If the bookmark is missing or private to someone else.
    """
    result = await db.execute(
        select(Bookmark).where(Bookmark.id == bookmark_id, visible_to(viewer_id)),
    )
    bookmark = result.scalar_one_or_none()
    if bookmark is None:
        raise NotFoundError("bookmark", bookmark_id)
    return bookmark
