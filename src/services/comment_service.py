"""Service layer for comment operations."""
import logging
from dataclasses import dataclass

from sqlalchemy import Row, Select, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import Principal
from models.comment import Comment
from models.user import User
from schemas.comment import CommentCreate, CommentUpdate
from services.exceptions import InvalidInputError, NotFoundError, PermissionDeniedError
from services.utils import page_offset
from services.visibility import get_visible_bookmark

logger = logging.getLogger(__name__)


@dataclass
class CommentView:
    """A comment with its author's username and number of direct replies."""

    comment: Comment
    username: str
    reply_count: int = 0


def _view_query() -> Select:
    reply_alias = Comment.__table__.alias("replies")
    reply_count = (
        select(func.count())
        .select_from(reply_alias)
        .where(reply_alias.c.parent_id == Comment.id)
        .correlate(Comment)
        .scalar_subquery()
    )
    return (
        select(Comment, User.username, reply_count.label("reply_count"))
        .join(User, Comment.user_id == User.id)
        .execution_options(populate_existing=True)
    )


def _to_view(row: Row) -> CommentView:
    return CommentView(comment=row.Comment, username=row.username, reply_count=row.reply_count)


async def _get_view(db: AsyncSession, comment_id: int) -> CommentView:
    row = (await db.execute(_view_query().where(Comment.id == comment_id))).one()
    return _to_view(row)


async def _find_by_client_id(
    db: AsyncSession,
    user_id: int,
    client_comment_id: str,
) -> CommentView | None:
    result = await db.execute(
        _view_query().where(
            Comment.user_id == user_id,
            Comment.client_comment_id == client_comment_id,
        ),
    )
    row = result.one_or_none()
    return _to_view(row) if row is not None else None


def _replayed(existing: CommentView, data: CommentCreate) -> CommentView:
    """Return the stored comment for a resent submission, if it really is the same one."""
    if existing.comment.bookmark_id != data.bookmark_id:
        raise InvalidInputError(
            "clientCommentId was already used for a comment on another bookmark",
        )
    return existing


async def create_comment(
    db: AsyncSession,
    principal: Principal,
    data: CommentCreate,
) -> tuple[CommentView, bool]:
    """
    Create a comment, or return the existing one for a replayed submission.

    A (author, client_comment_id) pair identifies one submission. A replay
    returns the stored comment; two concurrent inserts of the same pair are
    resolved by the unique constraint, and the loser returns the winner's row.

    Returns:
        Tuple of (comment view, created) where created is False for replays.

    Raises:
        NotFoundError: If the bookmark is missing or not visible to the author.
        InvalidInputError: If parent_id is not a top-level comment on the bookmark,
            or the client_comment_id was already used on a different bookmark.
    """
    existing = await _find_by_client_id(db, principal.user_id, data.client_comment_id)
    if existing is not None:
        return _replayed(existing, data), False

    await get_visible_bookmark(db, data.bookmark_id, principal.user_id)

    if data.parent_id is not None:
        parent = await db.get(Comment, data.parent_id)
        if (
            parent is None
            or parent.bookmark_id != data.bookmark_id
            or parent.parent_id is not None
        ):
            raise InvalidInputError(
                "Replies must reference a top-level comment on the same bookmark",
            )

    comment = Comment(
        bookmark_id=data.bookmark_id,
        user_id=principal.user_id,
        content=data.content,
        parent_id=data.parent_id,
        client_comment_id=data.client_comment_id,
    )
    try:
        async with db.begin_nested():  # Creates savepoint
            db.add(comment)
            await db.flush()
    except IntegrityError:
        # Savepoint rolled back; a concurrent request stored the same submission
        existing = await _find_by_client_id(db, principal.user_id, data.client_comment_id)
        if existing is None:
            raise
        return _replayed(existing, data), False

    return await _get_view(db, comment.id), True


async def list_comments(
    db: AsyncSession,
    bookmark_id: int,
    viewer_id: int | None,
    parent_id: int | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[CommentView], int]:
    """
    List comments on a bookmark, oldest first.

    Without parent_id only top-level comments are returned; with it, the
    direct replies to that comment.

    Raises:
        NotFoundError: If the bookmark is missing or not visible to the viewer.
    """
    await get_visible_bookmark(db, bookmark_id, viewer_id)

    filters = [Comment.bookmark_id == bookmark_id]
    if parent_id is None:
        filters.append(Comment.parent_id.is_(None))
    else:
        filters.append(Comment.parent_id == parent_id)

    total = await db.scalar(select(func.count(Comment.id)).where(*filters))
    result = await db.execute(
        _view_query()
        .where(*filters)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .offset(page_offset(page, limit))
        .limit(limit),
    )
    return [_to_view(row) for row in result], total or 0


async def list_top_level_comments(db: AsyncSession, bookmark_id: int) -> list[CommentView]:
    """All top-level comments on a bookmark; the caller has already checked visibility."""
    result = await db.execute(
        _view_query()
        .where(Comment.bookmark_id == bookmark_id, Comment.parent_id.is_(None))
        .order_by(Comment.created_at.asc(), Comment.id.asc()),
    )
    return [_to_view(row) for row in result]


async def _get_own_comment(db: AsyncSession, principal: Principal, comment_id: int) -> Comment:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("comment", comment_id)
    if comment.user_id != principal.user_id:
        raise PermissionDeniedError("You can only modify your own comments")
    return comment


async def update_comment(
    db: AsyncSession,
    principal: Principal,
    comment_id: int,
    data: CommentUpdate,
) -> CommentView:
    """
    Edit a comment's content. Author only.

    Raises:
        NotFoundError: If the comment doesn't exist.
        PermissionDeniedError: If the caller is not the author.
    """
    comment = await _get_own_comment(db, principal, comment_id)
    comment.content = data.content
    comment.touch()
    await db.flush()
    return await _get_view(db, comment_id)


async def delete_comment(db: AsyncSession, principal: Principal, comment_id: int) -> None:
    """
    Delete a comment and its direct replies. Author only.

    Raises:
        NotFoundError: If the comment doesn't exist.
        PermissionDeniedError: If the caller is not the author.
    """
    await _get_own_comment(db, principal, comment_id)
    await db.execute(
        delete(Comment).where(or_(Comment.id == comment_id, Comment.parent_id == comment_id)),
    )
    logger.info("User %s deleted comment %s", principal.user_id, comment_id)
