from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.dependencies import AuthenticatedUser, CommentPageParams, get_current_user
from blog_api.responses import envelope_response
from blog_api.schemas import CommentCreate, CommentUpdate
from blog_api.services import comment_service

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("", status_code=201)
async def add_comment(
    data: CommentCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await comment_service.add_comment(
        db, data.post_id, user.id, data.text, parent_id=data.parent_id
    )
    return envelope_response(result)


@router.patch("/{comment_id}")
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(await comment_service.update_comment(db, comment_id, user.id, data.text))


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(await comment_service.delete_comment(db, comment_id, user.id, user.role))


@router.get("/{post_id}/posts")
async def list_comments(
    post_id: int,
    parent_id: int | None = Query(None, alias="parentId"),
    pagination: CommentPageParams = Depends(),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await comment_service.get_comments_for_post(
        db, post_id, parent_id, pagination.page, pagination.per_page, requesting_user_id=user.id
    )
    return envelope_response(result)
