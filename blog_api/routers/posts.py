from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.dependencies import (
    AuthenticatedUser,
    CommentPageParams,
    PostPageParams,
    get_current_user,
    get_optional_user,
)
from blog_api.responses import envelope_response, json_envelope
from blog_api.schemas import PostCreate, PostUpdate
from blog_api.services import post_service

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("")
async def list_posts(
    pagination: PostPageParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    result = await post_service.list_public_posts(db, pagination.skip, pagination.take)
    return json_envelope(
        result.status,
        result.response,
        result.data,
        totalPostsCount=result.extra["totalCount"],
        CurrentPostsCount=result.extra["returnedCount"],
    )


@router.post("", status_code=201)
async def create_post(
    data: PostCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(await post_service.create_post(db, data, user.id))


@router.get("/users/{user_id}")
async def list_user_posts(
    user_id: int,
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(
        await post_service.list_posts_by_user(db, user_id, user.id if user else None)
    )


@router.get("/{post_id}")
async def get_post(
    post_id: int,
    comments: CommentPageParams = Depends(),
    user: AuthenticatedUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    result = await post_service.get_post_by_id(
        db,
        post_id,
        user.id if user else None,
        page=comments.page,
        per_page=comments.per_page,
    )
    return envelope_response(result)


@router.patch("/{post_id}")
async def update_post(
    post_id: int,
    data: PostUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(await post_service.update_post(db, post_id, data, user.id))


@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(await post_service.delete_post(db, post_id, user.id, user.role))
