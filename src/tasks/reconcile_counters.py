"""
Favorite counter reconciliation task.

Bookmarks cache their favorite count in bookmarks.favorite_count; the
favorites table is the ground truth. The toggle keeps them in step inside one
transaction, but rows written outside the API (manual fixes, restores) can
leave the cache drifted. This task recomputes it, one bookmark at a time under
the same row lock the toggle takes.

Usage:
    python -m tasks.reconcile_counters
"""
import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from db.session import async_session_factory
from models.bookmark import Bookmark
from models.favorite import Favorite

logger = logging.getLogger(__name__)


@dataclass
class ReconcileStats:
    """Statistics from a reconciliation run."""

    checked: int = 0
    repaired: int = 0
    repaired_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, int]:
        """Convert to simple dict for logging/return."""
        return {"checked": self.checked, "repaired": self.repaired}


async def find_drifted_bookmarks(db: AsyncSession) -> tuple[int, list[int]]:
    """
    Scan every bookmark for a cached count that disagrees with its favorite rows.

    The scan takes no locks, so a hit is only a candidate until it is rechecked
    by repair_favorite_count.

    Returns:
        Tuple of (bookmarks checked, ids of drifted bookmarks).
    """
    actual = (
        select(func.count())
        .select_from(Favorite)
        .where(Favorite.bookmark_id == Bookmark.id)
        .correlate(Bookmark)
        .scalar_subquery()
    )
    result = await db.execute(
        select(Bookmark.id, Bookmark.favorite_count, actual.label("actual"))
        .order_by(Bookmark.id),
    )
    rows = result.all()
    return len(rows), [bookmark_id for bookmark_id, cached, real in rows if cached != real]


async def repair_favorite_count(db: AsyncSession, bookmark_id: int) -> tuple[int, int] | None:
    """
    Recount one bookmark's favorites under its row lock and store the result.

    toggle_favorite takes the same lock before touching favorites, so no toggle
    can land between the recount and the write.

    Returns:
        Tuple of (old, new) count if the cache was wrong, None if it was right
        or the bookmark has since been deleted.
    """
    cached = await db.scalar(
        select(Bookmark.favorite_count).where(Bookmark.id == bookmark_id).with_for_update(),
    )
    if cached is None:
        return None
    real = await db.scalar(
        select(func.count()).select_from(Favorite).where(Favorite.bookmark_id == bookmark_id),
    )
    if cached == real:
        return None
    await db.execute(
        update(Bookmark)
        .where(Bookmark.id == bookmark_id)
        .values(favorite_count=real)
        .execution_options(synchronize_session=False),
    )
    return cached, real


async def reconcile_favorite_counts(db: AsyncSession) -> ReconcileStats:
    """
    Set favorite_count to the actual number of favorite rows where they differ.

    Each drifted bookmark is logged with its old and new values.
    """
    stats = ReconcileStats()
    stats.checked, candidates = await find_drifted_bookmarks(db)

    for bookmark_id in candidates:
        repaired = await repair_favorite_count(db, bookmark_id)
        # Release the row lock before moving on
        await db.commit()
        if repaired is None:
            continue
        stats.repaired += 1
        stats.repaired_ids.append(bookmark_id)
        logger.info(
            "Repaired favorite_count on bookmark %s: %s -> %s", bookmark_id, *repaired,
        )

    return stats


async def run_reconcile(db: AsyncSession | None = None) -> ReconcileStats:
    """
    Run the reconciliation.

    Args:
        db: Database session. If None, creates one from async_session_factory.
    """
    logger.info("Starting favorite counter reconciliation")
    if db is not None:
        stats = await reconcile_favorite_counts(db)
    else:
        async with async_session_factory() as session:
            stats = await reconcile_favorite_counts(session)
    logger.info("Reconciliation complete: %s", stats.to_dict())
    return stats


def main() -> None:
    """Entry point for running reconciliation as a script."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_reconcile())


if __name__ == "__main__":
    main()
