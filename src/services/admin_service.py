"""Service layer for the admin panel: approval, premium status and quotas."""
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import Principal
from core.tier_limits import default_premium_until, get_tier_limits, tier_for
from models.bookmark import Bookmark
from models.user import User
from schemas.admin import AdminUserUpdate
from services.exceptions import InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


async def list_users(db: AsyncSession) -> list[tuple[User, int]]:
    """All users, newest first, each with their bookmark count."""
    bookmark_count = (
        select(func.count(Bookmark.id))
        .where(Bookmark.user_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    result = await db.execute(
        select(User, bookmark_count.label("bookmark_count"))
        .order_by(User.created_at.desc(), User.id.desc()),
    )
    return [(row.User, row.bookmark_count) for row in result]


def apply_user_update(user: User, data: AdminUserUpdate) -> list[str]:
    """
    Apply a sparse admin update to a user in memory.

    Rules, in order:
    - isPremium=true raises the quota to the premium limit and sets the expiry
      to premiumUntil when given, otherwise 30 days from now.
    - isPremium=false drops the quota to the free limit and clears the expiry.
    - premiumUntil alone moves the expiry of the current premium period.
    - An explicit maxBookmarks is applied last, so it overrides the tier quota.

    Returns:
        Names of the fields that were changed.

    Raises:
        InvalidInputError: If the update carries no recognized fields.
    """
    fields = data.model_dump(exclude_unset=True)
    if not fields:
        raise InvalidInputError("No fields to update")

    changed: list[str] = []
    if fields.get("is_approved") is not None:
        user.is_approved = fields["is_approved"]
        changed.append("is_approved")

    is_premium = fields.get("is_premium")
    if is_premium is not None:
        user.is_premium = is_premium
        user.max_bookmarks = get_tier_limits(tier_for(is_premium)).max_bookmarks
        if is_premium:
            user.premium_until = fields.get("premium_until") or default_premium_until()
        else:
            user.premium_until = None
        changed += ["is_premium", "max_bookmarks", "premium_until"]
    elif "premium_until" in fields:
        user.premium_until = fields["premium_until"]
        changed.append("premium_until")

    if fields.get("max_bookmarks") is not None:
        user.max_bookmarks = fields["max_bookmarks"]
        if "max_bookmarks" not in changed:
            changed.append("max_bookmarks")

    return changed


async def update_user(
    db: AsyncSession,
    admin: Principal,
    user_id: int,
    data: AdminUserUpdate,
) -> User:
    """
    Update a user's approval, premium status or quota.

    Raises:
        NotFoundError: If the user doesn't exist.
        InvalidInputError: If the update is empty.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user", user_id)

    changed = apply_user_update(user, data)
    user.touch()
    await db.flush()
    await db.refresh(user)
    logger.info("Admin %s updated user %s: %s", admin.user_id, user_id, ", ".join(changed))
    return user


async def delete_user(db: AsyncSession, admin: Principal, user_id: int) -> None:
    """
    Delete a user and, through cascades, everything they own.

    Raises:
        InvalidInputError: If an admin tries to delete their own account.
        NotFoundError: If the user doesn't exist.
    """
    if user_id == admin.user_id:
        raise InvalidInputError("You cannot delete your own account")
    result = await db.execute(delete(User).where(User.id == user_id).returning(User.id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("user", user_id)
    logger.info("Admin %s deleted user %s", admin.user_id, user_id)


async def count_bookmarks_by_user(db: AsyncSession, user_ids: list[int]) -> dict[int, int]:
    """Bookmark counts for a set of users."""
    if not user_ids:
        return {}
    result = await db.execute(
        select(Bookmark.user_id, func.count(Bookmark.id))
        .where(Bookmark.user_id.in_(user_ids))
        .group_by(Bookmark.user_id),
    )
    return {user_id: count for user_id, count in result.all()}
