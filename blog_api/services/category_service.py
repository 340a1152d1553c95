"""
Category service: admin-managed post categories.

Names are unique case-insensitively ("Tech" and "tech" collide).
"""
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import Category, User, UserRole
from blog_api.results import ErrorCode, ServiceResult
from blog_api.schemas import CategoryCreate, CategoryUpdate
from blog_api.security import isoformat_utc, utcnow

logger = logging.getLogger(__name__)


def _category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "createdById": category.created_by_id,
        "updatedById": category.updated_by_id,
        "createdAt": isoformat_utc(category.created_at),
        "updatedAt": isoformat_utc(category.updated_at),
    }


def _is_admin(role: UserRole | str) -> bool:
    return UserRole(role) == UserRole.ADMIN


async def _name_taken(db: AsyncSession, name: str, exclude_id: int | None = None) -> bool:
    q = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        q = q.where(Category.id != exclude_id)
    return (await db.execute(q)).first() is not None


async def create_category(
    db: AsyncSession, data: CategoryCreate, user_id: int, role: UserRole | str
) -> ServiceResult[dict]:
    if not _is_admin(role):
        return ServiceResult.failure(ErrorCode.FORBIDDEN, "Access Denied")

    if await db.get(User, user_id) is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "User Not Found")

    if await _name_taken(db, data.name):
        return ServiceResult.failure(ErrorCode.DUPLICATE, "Category already exist")

    now = utcnow()
    category = Category(
        name=data.name,
        description=data.description,
        created_by_id=user_id,
        updated_by_id=user_id,
        created_at=now,
        updated_at=now,
    )
    db.add(category)
    await db.flush()
    logger.info("Category %s (%r) created by user_id=%s", category.id, category.name, user_id)
    return ServiceResult.success("Category Created Successfully", _category_to_dict(category), status=201)


async def get_all_categories(db: AsyncSession) -> ServiceResult[list]:
    result = await db.execute(select(Category).order_by(Category.id))
    return ServiceResult.success(
        "Successfully fetched all categories",
        [_category_to_dict(c) for c in result.scalars().all()],
    )


async def get_category_by_id(db: AsyncSession, category_id: int) -> ServiceResult[dict]:
    category = await db.get(Category, category_id)
    if category is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Category Not Found.")
    return ServiceResult.success("Category Fetched Successfully.", _category_to_dict(category))


async def update_category(
    db: AsyncSession,
    category_id: int,
    data: CategoryUpdate,
    user_id: int,
    role: UserRole | str,
) -> ServiceResult[dict]:
    if not _is_admin(role):
        return ServiceResult.failure(ErrorCode.FORBIDDEN, "Access Denied")

    category = await db.get(Category, category_id)
    if category is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Category Not Found.")

    changes = data.model_dump(exclude_unset=True)
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            return ServiceResult.failure(ErrorCode.BAD_REQUEST, "Category name cannot be empty")
        if await _name_taken(db, name, exclude_id=category_id):
            return ServiceResult.failure(ErrorCode.DUPLICATE, "Category already exist")
        changes["name"] = name

    for field, value in changes.items():
        setattr(category, field, value)
    category.updated_by_id = user_id
    category.updated_at = utcnow()
    await db.flush()
    return ServiceResult.success("Updated Category Successfully.", _category_to_dict(category))


async def delete_category(
    db: AsyncSession, category_id: int, role: UserRole | str
) -> ServiceResult[dict]:
    """Remove a category; its posts remain with no category."""
    if not _is_admin(role):
        return ServiceResult.failure(ErrorCode.FORBIDDEN, "Access Denied")

    category = await db.get(Category, category_id)
    if category is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Not Found")

    data = _category_to_dict(category)
    await db.execute(delete(Category).where(Category.id == category_id))
    return ServiceResult.success("Deleted Successfully.", data)
