from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import Settings, get_settings
from blog_api.database import get_db
from blog_api.dependencies import get_client_ip, get_refresh_cookie
from blog_api.responses import envelope_response, error_response
from blog_api.schemas import LoginRequest, ResetPasswordRequest, SignupRequest
from blog_api.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_refresh_cookie(response: Response, config: Settings, token: str) -> None:
    response.set_cookie(
        key=config.REFRESH_COOKIE_NAME,
        value=token,
        max_age=config.COOKIE_MAX_AGE,
        httponly=True,
        secure=config.is_production,
        samesite="none",
    )


def _clear_refresh_cookie(response: Response, config: Settings) -> None:
    response.delete_cookie(
        key=config.REFRESH_COOKIE_NAME,
        httponly=True,
        secure=config.is_production,
        samesite="none",
    )


@router.post("/signup", status_code=201)
async def signup(data: SignupRequest, db: AsyncSession = Depends(get_db)):
    result = await auth_service.signup(db, data)
    if not result.ok:
        return error_response(result.status, result.response, errors=[result.response])
    return envelope_response(result)


@router.post("/login", status_code=201)
async def login(
    data: LoginRequest,
    client_ip: str = Depends(get_client_ip),
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    result = await auth_service.login(db, config, data.user_name, data.password, client_ip)
    if not result.ok:
        return error_response(result.status, result.response, errors=[result.response])

    # The refresh token travels only in the HttpOnly cookie, never in the body.
    response = JSONResponse(
        status_code=result.status,
        content={
            "status": result.status,
            "response": result.response,
            "data": result.data,
            "token": result.extra["token"],
            "userData": result.data,
            "errors": [],
        },
    )
    _set_refresh_cookie(response, config, result.extra["refresh_token"])
    return response


@router.get("/refresh-token", status_code=201)
async def refresh_token(
    token: str | None = Depends(get_refresh_cookie),
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    if not token:
        return error_response(401, "Unauthorized", errors=["Unauthorized"])

    result = await auth_service.refresh_access_token(db, config, token)
    if not result.ok:
        return error_response(result.status, result.response, errors=[result.response])
    return envelope_response(result)


@router.get("/logout", status_code=204)
async def logout(
    token: str | None = Depends(get_refresh_cookie),
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    if token:
        await auth_service.logout(db, token)
    response = Response(status_code=204)
    _clear_refresh_cookie(response, config)
    return response


@router.post("/reset-password")
async def reset_password(data: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    if data.is_completion:
        result = await auth_service.complete_password_reset(db, data.email, data.token, data.password)
        if not result.ok:
            return error_response(result.status, result.response, errors=[result.response])
        return envelope_response(result)

    return envelope_response(await auth_service.initiate_password_reset(db, data.email))
