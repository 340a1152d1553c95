"""
Profile service: the authenticated user's own account.

Changing the password revokes the user's sessions on every other device;
the session bound to the caller's IP survives.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import User
from blog_api.results import ErrorCode, ServiceResult
from blog_api.security import hash_password, isoformat_utc, utcnow, verify_password
from blog_api.services import token_service

logger = logging.getLogger(__name__)


def _profile_to_dict(user: User) -> dict:
    return {
        "firstName": user.first_name,
        "lastName": user.last_name,
        "userName": user.user_name,
        "email": user.email,
        "profilePicture": user.profile_picture,
        "bio": user.bio,
        "lastLogin": isoformat_utc(user.last_login),
        "role": user.role.value,
    }


async def _get_by_user_name(db: AsyncSession, user_name: str) -> User | None:
    return (await db.execute(select(User).where(User.user_name == user_name))).scalars().first()


async def get_profile(db: AsyncSession, user_name: str) -> ServiceResult[dict]:
    user = await _get_by_user_name(db, user_name)
    if user is None:
        return ServiceResult.failure(ErrorCode.NOT_FOUND, "Profile not found")
    return ServiceResult.success("Successfully retrieved data", _profile_to_dict(user))


async def update_password(
    db: AsyncSession,
    user_name: str,
    previous_password: str,
    new_password: str,
    ip: str,
) -> ServiceResult[None]:
    user = await _get_by_user_name(db, user_name)
    if user is None:
        return ServiceResult.failure(ErrorCode.BAD_REQUEST, "Invalid user")

    if verify_password(new_password, user.password):
        return ServiceResult.failure(ErrorCode.BAD_REQUEST, "Same Password Can not be Updated")

    if not verify_password(previous_password, user.password):
        return ServiceResult.failure(ErrorCode.BAD_REQUEST, "Invalid Previous Password")

    user.password = hash_password(new_password)
    user.updated_at = utcnow()
    await token_service.revoke_all_except(db, user.id, keep_ip=ip)
    await db.flush()
    logger.info("Password updated for user_id=%s", user.id)
    return ServiceResult.success("Password Updated Successfully")
