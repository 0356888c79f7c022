"""Tests for account, profile and preference services."""
import asyncio

import pytest
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.config import get_settings
from core.security import decode_access_token
from models.bookmark import Bookmark
from models.comment import Comment
from models.favorite import Favorite
from models.user import User, UserRole
from schemas.user import ProfileUpdate, RegisterRequest, SettingsUpdate
from services import user_service
from services.exceptions import DuplicateFieldError
from services.user_service import (
    InvalidCredentialsError,
    authenticate_user,
    get_user_by_username,
    get_user_stats,
    register_user,
    update_profile,
    update_settings,
)
from tests.conftest import TEST_PASSWORD


def _register(username: str = "newbie", email: str = "newbie@example.com") -> RegisterRequest:
    return RegisterRequest(username=username, email=email, password="long-enough-pw")


async def test__register_user__defaults(db_session: AsyncSession) -> None:
    user = await register_user(db_session, _register())

    assert user.id is not None
    assert user.role == UserRole.USER
    assert user.is_approved is False
    assert user.is_premium is False
    assert user.max_bookmarks == 10
    assert user.password_hash != "long-enough-pw"


async def test__register_user__duplicates(db_session: AsyncSession, alice: User) -> None:
    with pytest.raises(DuplicateFieldError) as exc_info:
        await register_user(db_session, _register(username="ALICE"))
    assert exc_info.value.field == "username"

    with pytest.raises(DuplicateFieldError) as exc_info:
        await register_user(db_session, _register(email="alice@example.com"))
    assert exc_info.value.field == "email"


async def test__authenticate_user__success(db_session: AsyncSession, alice: User) -> None:
    settings = get_settings()
    user, token = await authenticate_user(
        db_session, "Alice@Example.com", TEST_PASSWORD, settings,
    )

    assert user.id == alice.id
    assert user.last_login is not None
    assert decode_access_token(token, settings) == alice.id


async def test__authenticate_user__same_error_for_email_and_password(
    db_session: AsyncSession, alice: User,
) -> None:
    settings = get_settings()
    with pytest.raises(InvalidCredentialsError) as wrong_password:
        await authenticate_user(db_session, "alice@example.com", "nope-nope", settings)
    with pytest.raises(InvalidCredentialsError) as unknown_email:
        await authenticate_user(db_session, "ghost@example.com", TEST_PASSWORD, settings)
    assert str(wrong_password.value) == str(unknown_email.value) == "Invalid email or password"


async def test__authenticate_user__unapproved_can_log_in(
    db_session: AsyncSession, pending_user: User,
) -> None:
    user, _ = await authenticate_user(
        db_session, "pending@example.com", TEST_PASSWORD, get_settings(),
    )
    assert user.is_approved is False


async def test__get_user_by_username__case_insensitive(
    db_session: AsyncSession, alice: User,
) -> None:
    found = await get_user_by_username(db_session, "ALICE")
    assert found is not None
    assert found.id == alice.id
    assert await get_user_by_username(db_session, "nobody") is None


async def test__get_user_stats(db_session: AsyncSession, alice: User, bob: User) -> None:
    public = Bookmark(user_id=alice.id, url="https://a.example/", title="a", is_public=True)
    private = Bookmark(user_id=alice.id, url="https://b.example/", title="b")
    bobs = Bookmark(user_id=bob.id, url="https://c.example/", title="c", is_public=True)
    db_session.add_all([public, private, bobs])
    await db_session.flush()
    db_session.add_all([
        Favorite(user_id=alice.id, bookmark_id=bobs.id),
        Comment(bookmark_id=bobs.id, user_id=alice.id, content="one"),
        Comment(bookmark_id=public.id, user_id=alice.id, content="two"),
    ])
    await db_session.flush()

    stats = await get_user_stats(db_session, alice.id)

    assert stats.total_bookmarks == 2
    assert stats.public_bookmarks == 1
    assert stats.private_bookmarks == 1
    assert stats.favorites == 1
    assert stats.total_comments == 2


async def test__update_profile__partial(db_session: AsyncSession, alice: User) -> None:
    user = await update_profile(
        db_session, alice.id, ProfileUpdate(bio="Reads a lot", github="alice-gh"),
    )
    assert user.bio == "Reads a lot"
    assert user.github == "alice-gh"
    assert user.username == "alice"


async def test__update_profile__username_taken(
    db_session: AsyncSession, alice: User, bob: User,
) -> None:
    with pytest.raises(DuplicateFieldError):
        await update_profile(db_session, alice.id, ProfileUpdate(username="Bob"))
    # Keeping your own username (in any case) is not a conflict
    user = await update_profile(db_session, alice.id, ProfileUpdate(username="Alice"))
    assert user.username == "Alice"


async def test__update_settings(db_session: AsyncSession, alice: User) -> None:
    user = await update_settings(
        db_session, alice.id, SettingsUpdate(theme="dark", notifications=False),
    )
    assert user.theme == "dark"
    assert user.notifications_enabled is False
    assert user.language == "en"


@pytest.fixture
def skip_first_uniqueness_check(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Let the first pre-insert uniqueness check pass unconditionally.

    This reproduces a concurrent request committing the same value between
    the check and the flush, leaving the unique index as the only guard.
    """
    real_check = user_service._ensure_unique
    calls = 0

    async def check(*args: object, **kwargs: object) -> None:
        nonlocal calls
        calls += 1
        if calls > 1:
            await real_check(*args, **kwargs)

    monkeypatch.setattr(user_service, "_ensure_unique", check)


@pytest.mark.usefixtures("skip_first_uniqueness_check")
async def test__register_user__lost_race_on_email(db_session: AsyncSession, alice: User) -> None:
    with pytest.raises(DuplicateFieldError) as exc_info:
        await register_user(db_session, _register(username="alice2", email=alice.email))
    assert exc_info.value.field == "email"

    # The savepoint rolled back; the session is still usable
    count = await db_session.scalar(select(func.count()).select_from(User))
    assert count == 1


@pytest.mark.usefixtures("skip_first_uniqueness_check")
async def test__register_user__lost_race_on_username_case(
    db_session: AsyncSession, alice: User,
) -> None:
    """The unique index on lower(username) catches 'ALICE' vs 'alice'."""
    with pytest.raises(DuplicateFieldError) as exc_info:
        await register_user(db_session, _register(username="ALICE", email="other@example.com"))
    assert exc_info.value.field == "username"


@pytest.mark.usefixtures("skip_first_uniqueness_check")
async def test__update_profile__lost_race_on_username(
    db_session: AsyncSession, alice: User, bob: User,
) -> None:
    with pytest.raises(DuplicateFieldError) as exc_info:
        await update_profile(db_session, alice.id, ProfileUpdate(username="BOB"))
    assert exc_info.value.field == "username"


async def test__register_user__concurrent_sessions(async_engine: AsyncEngine) -> None:
    """Two simultaneous registrations of one email: one account, one conflict."""
    factory = async_sessionmaker(async_engine, expire_on_commit=False)

    async def register_in_own_session(username: str) -> User:
        async with factory() as session:
            user = await register_user(
                session, _register(username=username, email="race@example.com"),
            )
            await session.commit()
            return user

    try:
        results = await asyncio.gather(
            register_in_own_session("racer_one"),
            register_in_own_session("racer_two"),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, Exception)]
        users = [r for r in results if isinstance(r, User)]
        assert len(users) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], DuplicateFieldError)
        assert errors[0].field == "email"
    finally:
        async with factory() as cleanup:
            await cleanup.execute(delete(User).where(User.email == "race@example.com"))
            await cleanup.commit()
