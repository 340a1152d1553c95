from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.dependencies import AuthenticatedUser, get_current_user
from blog_api.responses import envelope_response
from blog_api.schemas import CategoryCreate, CategoryUpdate
from blog_api.services import category_service

router = APIRouter(prefix="/category", tags=["categories"])


@router.post("", status_code=201)
async def create_category(
    data: CategoryCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(await category_service.create_category(db, data, user.id, user.role))


@router.get("")
async def list_categories(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(await category_service.get_all_categories(db))


@router.get("/{category_id}")
async def get_category(
    category_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(await category_service.get_category_by_id(db, category_id))


@router.patch("/{category_id}")
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await category_service.update_category(db, category_id, data, user.id, user.role)
    return envelope_response(result)


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(await category_service.delete_category(db, category_id, user.role))
