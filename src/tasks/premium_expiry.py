"""
Premium expiry task.

Downgrades users whose premium period has ended: is_premium is cleared, the
quota returns to the free tier and the expiry is removed. Existing bookmarks
above the free quota are kept; the user just cannot add more.

Usage:
    python -m tasks.premium_expiry
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.tier_limits import Tier, get_tier_limits
from db.session import async_session_factory
from models.user import User

logger = logging.getLogger(__name__)


@dataclass
class ExpiryStats:
    """Statistics from an expiry run."""

    downgraded: int = 0
    user_ids: list[int] = field(default_factory=list)


async def expire_premium_users(
    db: AsyncSession,
    now: datetime | None = None,
) -> ExpiryStats:
    """
    Downgrade every premium user whose premium_until is at or before now.

    Args:
        db: Database session.
        now: Current time for the cutoff. Defaults to datetime.now(UTC).
             Inject a specific time for testing boundary conditions.
    """
    if now is None:
        now = datetime.now(UTC)

    result = await db.execute(
        update(User)
        .where(
            User.is_premium.is_(True),
            User.premium_until.is_not(None),
            User.premium_until <= now,
        )
        .values(
            is_premium=False,
            premium_until=None,
            max_bookmarks=get_tier_limits(Tier.FREE).max_bookmarks,
        )
        .returning(User.id)
        .execution_options(synchronize_session=False),
    )
    user_ids = list(result.scalars())
    await db.commit()

    for user_id in user_ids:
        logger.info("Premium expired for user %s; reverted to free tier", user_id)
    return ExpiryStats(downgraded=len(user_ids), user_ids=user_ids)


async def run_premium_expiry(
    db: AsyncSession | None = None,
    now: datetime | None = None,
) -> ExpiryStats:
    """
    Run the expiry pass.

    Args:
        db: Database session. If None, creates one from async_session_factory.
        now: Current time for the cutoff. Defaults to datetime.now(UTC).
    """
    logger.info("Starting premium expiry task")
    if db is not None:
        stats = await expire_premium_users(db, now=now)
    else:
        async with async_session_factory() as session:
            stats = await expire_premium_users(session, now=now)
    logger.info("Premium expiry complete: %d users downgraded", stats.downgraded)
    return stats


def main() -> None:
    """Entry point for running the expiry pass as a script."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_premium_expiry())


if __name__ == "__main__":
    main()
