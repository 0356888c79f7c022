"""Service layer for accounts, authentication, profiles and preferences."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.security import create_access_token, hash_password, verify_password
from models.bookmark import Bookmark
from models.comment import Comment
from models.favorite import Favorite
from models.user import User, UserRole
from schemas.user import ProfileUpdate, RegisterRequest, SettingsUpdate, UserStats
from services.exceptions import DuplicateFieldError, NotFoundError

logger = logging.getLogger(__name__)


class InvalidCredentialsError(Exception):
    """Raised on a failed login. Deliberately does not say which part was wrong."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


async def _ensure_unique(
    db: AsyncSession,
    username: str | None = None,
    email: str | None = None,
    exclude_user_id: int | None = None,
) -> None:
    """
    Raise DuplicateFieldError if username or email is taken by another user.

    Usernames are compared case-insensitively so 'Alice' and 'alice' cannot
    both exist.
    """
    if username is not None:
        query = select(User.id).where(func.lower(User.username) == username.lower())
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)
        if (await db.execute(query)).first() is not None:
            raise DuplicateFieldError("username")
    if email is not None:
        query = select(User.id).where(User.email == email)
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)
        if (await db.execute(query)).first() is not None:
            raise DuplicateFieldError("email")


@asynccontextmanager
async def _unique_savepoint(
    db: AsyncSession,
    username: str | None = None,
    email: str | None = None,
    exclude_user_id: int | None = None,
) -> AsyncGenerator[None]:
    """
    Run account writes in a savepoint, reporting a lost uniqueness race as DuplicateFieldError.

    _ensure_unique runs first, but a concurrent request can still commit the
    same username or email before this flush reaches the unique indexes.
    Changes must be made inside the block: begin_nested() flushes anything
    already pending before the savepoint exists.
    """
    try:
        async with db.begin_nested():  # Creates savepoint
            yield
            await db.flush()
    except IntegrityError:
        # The winner has committed by now, so the lookup finds it
        await _ensure_unique(db, username=username, email=email, exclude_user_id=exclude_user_id)
        raise


async def register_user(
    db: AsyncSession,
    data: RegisterRequest,
    role: str = UserRole.USER,
    is_approved: bool = False,
) -> User:
    """
    Create a new account.

    New users start unapproved on the free quota; an admin must approve them
    before they can save bookmarks.

    Raises:
        DuplicateFieldError: If the username or email is already registered.
    """
    await _ensure_unique(db, username=data.username, email=data.email)
    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        role=role,
        is_approved=is_approved,
    )
    async with _unique_savepoint(db, username=data.username, email=data.email):
        db.add(user)
    await db.refresh(user)
    logger.info("Registered user %s (id=%s, role=%s)", user.username, user.id, role)
    return user


async def authenticate_user(
    db: AsyncSession,
    email: str,
    password: str,
    settings: Settings,
) -> tuple[User, str]:
    """
    Verify credentials and issue a session token.

    Returns:
        Tuple of (user, access token).

    Raises:
        InvalidCredentialsError: If the email is unknown or the password is wrong.
    """
    result = await db.execute(select(User).where(User.email == email.lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt for email %s", email)
        raise InvalidCredentialsError()

    user.last_login = datetime.now(UTC)
    await db.flush()
    token = create_access_token(user.id, settings)
    logger.info("User %s logged in", user.id)
    return user, token


async def get_user(db: AsyncSession, user_id: int) -> User:
    """Get a user by id or raise NotFoundError."""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user", user_id)
    return user


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """Case-insensitive username lookup."""
    result = await db.execute(
        select(User).where(func.lower(User.username) == username.lower()),
    )
    return result.scalar_one_or_none()


async def get_user_stats(db: AsyncSession, user_id: int) -> UserStats:
    """
    Aggregate counts for a profile page.

    favorites counts bookmarks the user has favorited; totalComments counts
    comments the user has written.
    """
    bookmark_counts = (
        await db.execute(
            select(
                func.count(Bookmark.id).label("total"),
                func.count(Bookmark.id).filter(Bookmark.is_public.is_(True)).label("public"),
            ).where(Bookmark.user_id == user_id),
        )
    ).one()
    favorites = await db.scalar(
        select(func.count()).select_from(Favorite).where(Favorite.user_id == user_id),
    )
    comments = await db.scalar(
        select(func.count()).select_from(Comment).where(Comment.user_id == user_id),
    )
    return UserStats(
        total_bookmarks=bookmark_counts.total,
        public_bookmarks=bookmark_counts.public,
        private_bookmarks=bookmark_counts.total - bookmark_counts.public,
        favorites=favorites or 0,
        total_comments=comments or 0,
    )


async def update_profile(db: AsyncSession, user_id: int, data: ProfileUpdate) -> User:
    """
    Apply a partial profile update.

    Raises:
        DuplicateFieldError: If the new username or email belongs to someone else.
    """
    user = await get_user(db, user_id)
    update_data = data.model_dump(exclude_unset=True)
    await _ensure_unique(
        db,
        username=update_data.get("username"),
        email=update_data.get("email"),
        exclude_user_id=user_id,
    )
    async with _unique_savepoint(
        db,
        username=update_data.get("username"),
        email=update_data.get("email"),
        exclude_user_id=user_id,
    ):
        for field, value in update_data.items():
            setattr(user, field, value)
        user.touch()
    await db.refresh(user)
    return user


async def update_settings(db: AsyncSession, user_id: int, data: SettingsUpdate) -> User:
    """Apply a partial preferences update."""
    user = await get_user(db, user_id)
    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    if "notifications" in update_data:
        user.notifications_enabled = update_data.pop("notifications")
    for field, value in update_data.items():
        setattr(user, field, value)
    await db.flush()
    await db.refresh(user)
    return user
