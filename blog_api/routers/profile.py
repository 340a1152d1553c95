from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.dependencies import AuthenticatedUser, get_client_ip, get_current_user
from blog_api.responses import envelope_response
from blog_api.schemas import UpdatePasswordRequest
from blog_api.services import profile_service

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
async def get_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return envelope_response(await profile_service.get_profile(db, user.user_name))


@router.post("/update-password")
async def update_password(
    data: UpdatePasswordRequest,
    client_ip: str = Depends(get_client_ip),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await profile_service.update_password(
        db, user.user_name, data.previous_password, data.new_password, client_ip
    )
    return envelope_response(result)
