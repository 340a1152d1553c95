"""
Comment service: threaded comments attached to posts.

Comments form a forest per post: top-level comments have no parent and
replies point at a parent inside the same post.  Nothing is denormalised;
the number of direct replies is recomputed with a grouped aggregate on
every read.

There is no "whole tree" read.  Clients walk the tree one
level at a time by passing a returned comment's id as ``parent_id``.

Deleting a comment issues a single DELETE; the ``ON DELETE CASCADE`` on
``comments.parent_id`` removes its descendants.
"""
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from blog_api.models import Comment, Post, User, UserRole
from blog_api.results import ErrorCode, ServiceResult
from blog_api.security import isoformat_utc, utcnow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _comment_to_dict(comment: Comment, child_count: int = 0, user_name: str | None = None) -> dict:
    return {
        "id": comment.id,
        "text": comment.text,
        "postId": comment.post_id,
        "userId": comment.user_id,
        "userName": user_name,
        "parentId": comment.parent_id,
        "createdAt": isoformat_utc(comment.created_at),
        "childCount": child_count,
        "hasChild": child_count > 0,
    }


def _row_to_dict(row) -> dict:
    return {
        "id": row.id,
        "text": row.text,
        "postId": row.post_id,
        "userId": row.user_id,
        "userName": row.user_name,
        "parentId": row.parent_id,
        "createdAt": isoformat_utc(row.created_at),
        "childCount": row.child_count,
        "hasChild": row.child_count > 0,
    }


def _parent_clause(parent_id: int | None):
    if parent_id is None:
        return Comment.parent_id.is_(None)
    return Comment.parent_id == parent_id


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def add_comment(
    db: AsyncSession,
    post_id: int,
    user_id: int,
    text: str,
    parent_id: int | None = None,
) -> ServiceResult[dict]:
    """
    Attach a comment (or a reply, when *parent_id* is given) to a post.

    Checks, in order: parent exists, parent belongs to the same post, post
    exists, post is not a draft, private posts accept comments from their
    author only.
    """
    if parent_id is not None:
        parent = await db.get(Comment, parent_id)
        if parent is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, "Parent comment not found.")
        if parent.post_id != post_id:
            return ServiceResult.failure(
                ErrorCode.BAD_REQUEST, "Parent comment does not belong to the provided post."
            )

    post = await db.get(Post, post_id)
    if post is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Post not found.")

    if post.is_draft:
        return ServiceResult.failure(ErrorCode.BAD_REQUEST, "Cannot comment on a draft post.")

    if post.is_private and post.user_id != user_id:
        return ServiceResult.failure(
            ErrorCode.FORBIDDEN, "Only the author can comment on a private post."
        )

    now = utcnow()
    comment = Comment(
        text=text,
        post_id=post_id,
        user_id=user_id,
        parent_id=parent_id,
        created_at=now,
        updated_at=now,
    )
    db.add(comment)
    await db.flush()

    return ServiceResult.success("Comment added successfully.", _comment_to_dict(comment), status=201)


async def update_comment(
    db: AsyncSession, comment_id: int, user_id: int, text: str
) -> ServiceResult[dict]:
    """Replace the text of a comment. Only its author may do so."""
    comment = await db.get(Comment, comment_id)
    if comment is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Comment not found.")

    if comment.user_id != user_id:
        return ServiceResult.failure(
            ErrorCode.FORBIDDEN, "You are not authorized to update this comment."
        )

    comment.text = text
    comment.updated_at = utcnow()
    await db.flush()
    return ServiceResult.success("Comment updated successfully.", _comment_to_dict(comment))


async def delete_comment(
    db: AsyncSession, comment_id: int, user_id: int, user_role: UserRole | str
) -> ServiceResult[None]:
    """
    Delete a comment and, through the foreign-key cascade, all its replies.

    Allowed for the comment's author, the post's author, and admins.
    """
    q = (
        select(Comment.id, Comment.user_id, Post.user_id.label("post_author_id"))
        .join(Post, Post.id == Comment.post_id)
        .where(Comment.id == comment_id)
    )
    row = (await db.execute(q)).first()
    if row is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Comment not found.")

    is_admin = UserRole(user_role) == UserRole.ADMIN
    if row.user_id != user_id and row.post_author_id != user_id and not is_admin:
        return ServiceResult.failure(
            ErrorCode.FORBIDDEN, "You are not authorized to delete this comment."
        )

    await db.execute(
        delete(Comment).where(Comment.id == comment_id).execution_options(synchronize_session=False)
    )
    logger.info("Comment %s deleted by user_id=%s", comment_id, user_id)
    return ServiceResult.success("Comment deleted successfully.")


async def fetch_comment_page(
    db: AsyncSession,
    post_id: int,
    parent_id: int | None,
    page: int,
    per_page: int,
) -> dict:
    """
    Return one page of one level of a post's comment tree.

    Two statements are issued:
    1. COUNT of comments with exactly this (post, parent) pair.
    2. The page itself, newest first, each row carrying the number of its
       direct replies from a LEFT OUTER JOIN on the comments table.
    """
    offset = (page - 1) * per_page

    count_q = (
        select(func.count())
        .select_from(Comment)
        .where(Comment.post_id == post_id, _parent_clause(parent_id))
    )
    total: int = (await db.execute(count_q)).scalar_one()

    child = aliased(Comment)
    page_q = (
        select(
            Comment.id,
            Comment.text,
            Comment.post_id,
            Comment.user_id,
            Comment.parent_id,
            Comment.created_at,
            User.user_name,
            func.count(child.id).label("child_count"),
        )
        .join(User, User.id == Comment.user_id)
        .outerjoin(child, child.parent_id == Comment.id)
        .where(Comment.post_id == post_id, _parent_clause(parent_id))
        .group_by(Comment.id, User.id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    rows = (await db.execute(page_q)).all()

    return {
        "items": [_row_to_dict(r) for r in rows],
        "totalCount": total,
        "remainingCount": max(total - (offset + per_page), 0),
        "pageNumber": page,
        "pageSize": per_page,
    }


async def get_comments_for_post(
    db: AsyncSession,
    post_id: int,
    parent_id: int | None,
    page: int,
    per_page: int,
    requesting_user_id: int | None = None,
) -> ServiceResult[dict]:
    """
    Paginated comments of *post_id* whose parent is exactly *parent_id*
    (``None`` selects top-level comments).

    The post's visibility applies: comments of a draft or private post are
    listed for its author only.

    A page past the end yields no items, ``remainingCount == 0`` and the
    real ``totalCount``.
    """
    post = await db.get(Post, post_id)
    if post is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Post not found.")
    if (post.is_draft or post.is_private) and post.user_id != requesting_user_id:
        if requesting_user_id is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, "Post not found.")
        return ServiceResult.failure(ErrorCode.FORBIDDEN, "Access Denied")

    data = await fetch_comment_page(db, post_id, parent_id, page, per_page)
    return ServiceResult.success("Comments fetched successfully", data)
