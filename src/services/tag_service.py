"""Service layer for tag operations."""
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from schemas.tag import TagCount, TagMetaUpdate
from schemas.validators import validate_and_normalize_tag, validate_and_normalize_tags

logger = logging.getLogger(__name__)


class TagNotFoundError(Exception):
    """Raised when a tag is not found."""

    def __init__(self, tag: str | int) -> None:
        self.tag = tag
        super().__init__(f"Tag '{tag}' not found")


async def get_or_create_tags(
    db: AsyncSession,
    tag_names: list[str],
    created_by: int | None = None,
) -> list[Tag]:
    """
    Get existing tags or create new ones, returned in input order.

    Uses INSERT ... ON CONFLICT DO NOTHING so two requests introducing the same
    tag at once both end up with the single row instead of one of them failing
    on the unique constraint.

    Args:
        db: Database session.
        tag_names: Tag names; normalized here so callers may pass raw input.
        created_by: User credited with creating any new tags.

    Returns:
        List of Tag objects (existing or newly created).
    """
    normalized = validate_and_normalize_tags(tag_names)
    if not normalized:
        return []

    await db.execute(
        insert(Tag)
        .values([{"name": name, "created_by": created_by} for name in normalized])
        .on_conflict_do_nothing(index_elements=["name"]),
    )
    result = await db.execute(select(Tag).where(Tag.name.in_(normalized)))
    by_name = {tag.name: tag for tag in result.scalars()}
    return [by_name[name] for name in normalized]


async def get_public_tags_with_counts(db: AsyncSession) -> list[TagCount]:
    """
    Tags used by at least one public bookmark, with the public usage count.

    Returns:
        List of TagCount objects sorted by count desc, then name asc.
    """
    count = func.count(bookmark_tags.c.bookmark_id)
    result = await db.execute(
        select(Tag.name, count.label("count"))
        .join(bookmark_tags, Tag.id == bookmark_tags.c.tag_id)
        .join(Bookmark, bookmark_tags.c.bookmark_id == Bookmark.id)
        .where(Bookmark.is_public.is_(True))
        .group_by(Tag.id, Tag.name)
        .order_by(count.desc(), Tag.name.asc()),
    )
    return [TagCount(name=row.name, count=row.count) for row in result]


async def get_tag_by_name(db: AsyncSession, tag_name: str) -> tuple[Tag, int]:
    """
    Look up a tag by (normalized) name with its public bookmark count.

    Raises:
        TagNotFoundError: If the name is malformed or no such tag exists.
    """
    try:
        name = validate_and_normalize_tag(tag_name)
    except ValueError as e:
        raise TagNotFoundError(tag_name) from e

    tag = (await db.execute(select(Tag).where(Tag.name == name))).scalar_one_or_none()
    if tag is None:
        raise TagNotFoundError(tag_name)

    public_count = await db.scalar(
        select(func.count())
        .select_from(bookmark_tags)
        .join(Bookmark, bookmark_tags.c.bookmark_id == Bookmark.id)
        .where(bookmark_tags.c.tag_id == tag.id, Bookmark.is_public.is_(True)),
    )
    return tag, public_count or 0


async def list_all_tags(db: AsyncSession) -> list[tuple[Tag, int]]:
    """All tags (admin view) with total bookmark counts, including orphans."""
    count = func.count(bookmark_tags.c.bookmark_id)
    result = await db.execute(
        select(Tag, count.label("bookmark_count"))
        .outerjoin(bookmark_tags, Tag.id == bookmark_tags.c.tag_id)
        .group_by(Tag.id)
        .order_by(Tag.name.asc()),
    )
    return [(row.Tag, row.bookmark_count) for row in result]


async def update_tag_meta(db: AsyncSession, tag_id: int, data: TagMetaUpdate) -> Tag:
    """
    Update a tag's SEO metadata.

    Raises:
        TagNotFoundError: If the tag doesn't exist.
    """
    tag = await db.get(Tag, tag_id)
    if tag is None:
        raise TagNotFoundError(tag_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(tag, field, value)
    tag.touch()
    await db.flush()
    await db.refresh(tag)
    logger.info("Updated SEO metadata for tag %s", tag.name)
    return tag


async def delete_tag(db: AsyncSession, tag_id: int) -> None:
    """
    Delete a tag, detaching it from every bookmark.

    Raises:
        TagNotFoundError: If the tag doesn't exist.
    """
    result = await db.execute(delete(Tag).where(Tag.id == tag_id).returning(Tag.name))
    name = result.scalar_one_or_none()
    if name is None:
        raise TagNotFoundError(tag_id)
    logger.info("Deleted tag %s", name)
