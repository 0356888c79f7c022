"""Tests for the favorite counter reconciliation task."""
import asyncio

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from models.bookmark import Bookmark
from models.favorite import Favorite
from models.user import User
from services.favorite_service import toggle_favorite
from tasks.reconcile_counters import (
    ReconcileStats,
    find_drifted_bookmarks,
    reconcile_favorite_counts,
    repair_favorite_count,
    run_reconcile,
)
from tests.conftest import TEST_PASSWORD_HASH
async def _bookmark(db: AsyncSession, user: User, favorite_count: int = 0) -> Bookmark:
    bookmark = Bookmark(
        user_id=user.id,
        url="https://example.com/",
        title="Example",
        is_public=True,
        favorite_count=favorite_count,
    )
    db.add(bookmark)
    await db.flush()
    return bookmark


async def _stored_count(db: AsyncSession, bookmark_id: int) -> int:
    return await db.scalar(select(Bookmark.favorite_count).where(Bookmark.id == bookmark_id))


async def test_reconcile_repairs_drift(db_session: AsyncSession, alice: User, bob: User) -> None:
    """Counts that disagree with the favorites table are corrected in both directions."""
    too_high = await _bookmark(db_session, alice, favorite_count=5)
    too_low = await _bookmark(db_session, alice, favorite_count=0)
    correct = await _bookmark(db_session, alice, favorite_count=1)
    db_session.add_all([
        Favorite(user_id=bob.id, bookmark_id=too_high.id),
        Favorite(user_id=alice.id, bookmark_id=too_low.id),
        Favorite(user_id=bob.id, bookmark_id=too_low.id),
        Favorite(user_id=bob.id, bookmark_id=correct.id),
    ])
    await db_session.flush()

    stats = await reconcile_favorite_counts(db_session)

    assert stats.checked == 3
    assert stats.repaired == 2
    assert sorted(stats.repaired_ids) == sorted([too_high.id, too_low.id])
    assert await _stored_count(db_session, too_high.id) == 1
    assert await _stored_count(db_session, too_low.id) == 2
    assert await _stored_count(db_session, correct.id) == 1


async def test_reconcile_no_drift(db_session: AsyncSession, alice: User) -> None:
    await _bookmark(db_session, alice)

    stats = await reconcile_favorite_counts(db_session)

    assert stats.checked == 1
    assert stats.repaired == 0
    assert stats.to_dict() == {"checked": 1, "repaired": 0}


async def test_run_reconcile_with_session(db_session: AsyncSession, alice: User) -> None:
    bookmark = await _bookmark(db_session, alice, favorite_count=3)

    stats = await run_reconcile(db=db_session)

    assert isinstance(stats, ReconcileStats)
    assert stats.repaired_ids == [bookmark.id]
    assert await _stored_count(db_session, bookmark.id) == 0


async def test_repair_recounts_instead_of_trusting_scan(
    db_session: AsyncSession, alice: User, bob: User,
) -> None:
    """A favorite added after the scan is included in the stored count."""
    bookmark = await _bookmark(db_session, alice, favorite_count=5)
    checked, candidates = await find_drifted_bookmarks(db_session)
    assert (checked, candidates) == (1, [bookmark.id])

    await toggle_favorite(db_session, bob.id, bookmark.id)

    assert await repair_favorite_count(db_session, bookmark.id) == (6, 1)
    assert await _stored_count(db_session, bookmark.id) == 1


async def test_repair_skips_deleted_and_consistent_bookmarks(
    db_session: AsyncSession, alice: User,
) -> None:
    bookmark = await _bookmark(db_session, alice)

    assert await repair_favorite_count(db_session, bookmark.id) is None
    assert await repair_favorite_count(db_session, 999_999) is None


async def test_repair_waits_for_concurrent_toggle(async_engine: AsyncEngine) -> None:
    """
    A repair started while a toggle holds the bookmark lock waits for it.

    The repaired count then includes the toggle's favorite rather than
    overwriting it with a stale value.
    """
    factory = async_sessionmaker(async_engine, expire_on_commit=False)

    async with factory() as setup:
        owner = User(
            username="reconcile_owner",
            email="reconcile_owner@example.com",
            password_hash=TEST_PASSWORD_HASH,
            is_approved=True,
        )
        fan = User(
            username="reconcile_fan",
            email="reconcile_fan@example.com",
            password_hash=TEST_PASSWORD_HASH,
            is_approved=True,
        )
        setup.add_all([owner, fan])
        await setup.flush()
        bookmark = Bookmark(
            user_id=owner.id,
            url="https://example.com/",
            title="Drifted",
            is_public=True,
            favorite_count=5,
        )
        setup.add(bookmark)
        await setup.commit()
        owner_id, fan_id, bookmark_id = owner.id, fan.id, bookmark.id

    async def repair_in_own_session() -> tuple[int, int] | None:
        async with factory() as session:
            result = await repair_favorite_count(session, bookmark_id)
            await session.commit()
            return result

    try:
        async with factory() as toggler:
            await toggle_favorite(toggler, fan_id, bookmark_id)
            repair = asyncio.create_task(repair_in_own_session())
            await asyncio.sleep(0.3)
            assert not repair.done()
            await toggler.commit()

        assert await repair == (6, 1)

        async with factory() as check:
            rows = await check.scalar(
                select(func.count()).select_from(Favorite).where(Favorite.bookmark_id == bookmark_id),
            )
            assert rows == 1
            assert await _stored_count(check, bookmark_id) == 1
    finally:
        async with factory() as cleanup:
            await cleanup.execute(delete(User).where(User.id.in_([owner_id, fan_id])))
            await cleanup.commit()
