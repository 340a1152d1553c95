"""
Post service: post CRUD and the visibility policy.

Visibility
----------
A post is public iff it is neither a draft nor private.  A hidden post is
visible to its author only.  Anonymous readers asking for a hidden post
get the same 404 as for a missing one, so its existence does not leak;
authenticated non-authors get 403.

Design notes
------------
- Author and category are returned as column projections, not full rows.
- All authorization decisions (author-only update, author-or-admin
  delete) are taken here rather than in the routers.
- Partial updates apply exactly the fields present in the payload
  (``model_dump(exclude_unset=True)``), so ``false`` and ``""`` are valid
  new values.
- Updates are plain read-then-write without locking; two concurrent
  updates of the same post are last-writer-wins.
"""
import logging

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import Category, Post, User, UserRole
from blog_api.results import ErrorCode, ServiceResult
from blog_api.schemas import PostCreate, PostUpdate
from blog_api.security import isoformat_utc, utcnow
from blog_api.services import comment_service

logger = logging.getLogger(__name__)

_PUBLIC = and_(Post.is_draft.is_(False), Post.is_private.is_(False))


# ---------------------------------------------------------------------------
# Query / serialisation helpers
# ---------------------------------------------------------------------------

def _projected_select():
    """SELECT of a post with author (id/userName/email/role) and category (id/name)."""
    return (
        select(
            Post,
            User.id.label("author_id"),
            User.user_name.label("author_user_name"),
            User.email.label("author_email"),
            User.role.label("author_role"),
            Category.id.label("category_ref_id"),
            Category.name.label("category_name"),
        )
        .join(User, User.id == Post.user_id)
        .outerjoin(Category, Category.id == Post.category_id)
    )


def _post_to_dict(post: Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "body": post.body,
        "imageUrl": post.image_url,
        "isDraft": post.is_draft,
        "isPrivate": post.is_private,
        "userId": post.user_id,
        "categoryId": post.category_id,
        "updatedBy": post.updated_by,
        "createdAt": isoformat_utc(post.created_at),
        "updatedAt": isoformat_utc(post.updated_at),
    }


def _row_to_dict(row) -> dict:
    data = _post_to_dict(row.Post)
    data["user"] = {
        "id": row.author_id,
        "userName": row.author_user_name,
        "email": row.author_email,
        "role": getattr(row.author_role, "value", row.author_role),
    }
    data["category"] = (
        {"id": row.category_ref_id, "name": row.category_name}
        if row.category_ref_id is not None
        else None
    )
    return data


def is_public(post: Post) -> bool:
    return not post.is_draft and not post.is_private


async def _category_exists(db: AsyncSession, category_id: int) -> bool:
    return (await db.get(Category, category_id)) is not None


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_post(db: AsyncSession, data: PostCreate, author_id: int) -> ServiceResult[dict]:
    """
    Create a post owned by *author_id*.

    Defaults: draft, not private.  A given ``category_id`` must reference an
    existing category.
    """
    if data.category_id is not None and not await _category_exists(db, data.category_id):
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Category Not Found.")

    now = utcnow()
    post = Post(
        title=data.title,
        body=data.body,
        image_url=data.image_url,
        is_draft=data.is_draft,
        is_private=data.is_private,
        category_id=data.category_id,
        user_id=author_id,
        updated_by=author_id,
        created_at=now,
        updated_at=now,
    )
    db.add(post)
    await db.flush()
    logger.info("Post %s created by user_id=%s", post.id, author_id)
    return ServiceResult.success("Post Created Successfully", _post_to_dict(post), status=201)


async def get_post_by_id(
    db: AsyncSession,
    post_id: int,
    requesting_user_id: int | None = None,
    with_comments: bool = True,
    page: int = 1,
    per_page: int = 5,
) -> ServiceResult[dict]:
    """
    Fetch a post for *requesting_user_id* (``None`` for anonymous readers).

    When *with_comments* is set, the first page of top-level comments is
    attached under ``comments``.
    """
    row = (await db.execute(_projected_select().where(Post.id == post_id))).first()
    if row is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Post Not Found")

    post = row.Post
    if not is_public(post):
        if requesting_user_id is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, "Post Not Found")
        if requesting_user_id != row.author_id:
            return ServiceResult.failure(ErrorCode.FORBIDDEN, "Access Denied")

    data = _row_to_dict(row)
    if with_comments:
        data["comments"] = await comment_service.fetch_comment_page(
            db, post_id, None, page, per_page
        )
    return ServiceResult.success("Post Fetched Successfully", data)


async def update_post(
    db: AsyncSession, post_id: int, data: PostUpdate, requesting_user_id: int
) -> ServiceResult[dict]:
    """Apply the fields present in *data*. Author only."""
    post = await db.get(Post, post_id)
    if post is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Post Not Found")

    if post.user_id != requesting_user_id:
        return ServiceResult.failure(ErrorCode.FORBIDDEN, "Not Allowed")

    changes = data.model_dump(exclude_unset=True)
    new_category = changes.get("category_id")
    if new_category is not None and not await _category_exists(db, new_category):
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Category Not Found.")

    for field, value in changes.items():
        setattr(post, field, value)

    post.updated_by = requesting_user_id
    post.updated_at = utcnow()
    await db.flush()
    return ServiceResult.success("Post Updated Successfully", _post_to_dict(post))


async def delete_post(
    db: AsyncSession,
    post_id: int,
    requesting_user_id: int,
    requesting_role: UserRole | str,
) -> ServiceResult[dict]:
    """Delete a post and (by cascade) its comments. Author or admin only."""
    post = await db.get(Post, post_id)
    if post is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Post Not Found")

    if post.user_id != requesting_user_id and UserRole(requesting_role) != UserRole.ADMIN:
        return ServiceResult.failure(ErrorCode.FORBIDDEN, "Not Allowed")

    data = _post_to_dict(post)
    await db.execute(delete(Post).where(Post.id == post_id))
    logger.info("Post %s deleted by user_id=%s", post_id, requesting_user_id)
    return ServiceResult.success("Post deleted Successfully", data)


async def list_public_posts(db: AsyncSession, skip: int = 0, take: int = 10) -> ServiceResult[list]:
    """
    Page through public posts in insertion order.

    ``extra`` carries ``totalCount`` (all public posts) and
    ``returnedCount`` (items on this page).
    """
    total: int = (
        await db.execute(select(func.count()).select_from(Post).where(_PUBLIC))
    ).scalar_one()

    q = _projected_select().where(_PUBLIC).order_by(Post.id).offset(skip).limit(take)
    items = [_row_to_dict(r) for r in (await db.execute(q)).all()]

    return ServiceResult.success(
        "Posts Fetched Successfully", items, totalCount=total, returnedCount=len(items)
    )


async def list_posts_by_user(
    db: AsyncSession, user_id: int, requesting_user_id: int | None = None
) -> ServiceResult[list]:
    """
    All posts written by *user_id*.  Drafts and private posts are included
    only when the author is asking.
    """
    q = _projected_select().where(Post.user_id == user_id)
    if requesting_user_id != user_id:
        q = q.where(_PUBLIC)
    rows = (await db.execute(q.order_by(Post.id))).all()
    return ServiceResult.success("Posts Fetched Successfully", [_row_to_dict(r) for r in rows])
