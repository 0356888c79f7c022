"""Service layer for the favorite toggle."""
import logging
from dataclasses import dataclass
from typing import Literal

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.favorite import Favorite
from services.exceptions import NotFoundError
from services.visibility import visible_to

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of a favorite toggle."""

    action: Literal["added", "removed"]
    favorite_count: int


async def toggle_favorite(db: AsyncSession, user_id: int, bookmark_id: int) -> ToggleResult:
    """
    Flip the (user, bookmark) favorite state and adjust the bookmark's counter.

    The bookmark row is locked with SELECT ... FOR UPDATE before the favorite
    row is read, so concurrent toggles on the same bookmark are serialized and
    the existence check, insert/delete and counter change commit together.
    The counter is adjusted in SQL and never goes below zero.

    Raises:
        NotFoundError: If the bookmark is missing or not visible to the user.
    """
    locked = await db.scalar(
        select(Bookmark.id)
        .where(Bookmark.id == bookmark_id, visible_to(user_id))
        .with_for_update(),
    )
    if locked is None:
        raise NotFoundError("bookmark", bookmark_id)

    removed = await db.execute(
        delete(Favorite)
        .where(Favorite.user_id == user_id, Favorite.bookmark_id == bookmark_id)
        .returning(Favorite.user_id)
        .execution_options(synchronize_session=False),
    )
    if removed.first() is not None:
        action = "removed"
        new_count = func.greatest(Bookmark.favorite_count - 1, 0)
    else:
        action = "added"
        await db.execute(insert(Favorite).values(user_id=user_id, bookmark_id=bookmark_id))
        new_count = Bookmark.favorite_count + 1

    favorite_count = await db.scalar(
        update(Bookmark)
        .where(Bookmark.id == bookmark_id)
        .values(favorite_count=new_count)
        .returning(Bookmark.favorite_count)
        .execution_options(synchronize_session=False),
    )
    logger.info(
        "User %s %s favorite on bookmark %s (count=%s)",
        user_id, action, bookmark_id, favorite_count,
    )
    return ToggleResult(action=action, favorite_count=favorite_count)
