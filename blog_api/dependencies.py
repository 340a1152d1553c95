import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Query, Request, status
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import Settings, get_settings, settings
from blog_api.database import get_db
from blog_api.models import UserRole
from blog_api.security import decode_access_token
from blog_api.services import token_service

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class PostPageParams:
    """
    ``skip`` / ``take`` query parameters for post listings.

    Negative ``skip`` becomes 0; missing or non-positive ``take`` becomes
    ``settings.DEFAULT_POSTS_TAKE``; ``take`` is clamped to
    ``settings.MAX_PAGE_SIZE``.
    """

    def __init__(
        self,
        skip: int | None = Query(None, description="Number of posts to skip."),
        take: int | None = Query(None, description="Number of posts to return."),
    ) -> None:
        self.skip = skip if skip is not None and skip > 0 else 0
        if take is None or take <= 0:
            take = settings.DEFAULT_POSTS_TAKE
        self.take = min(take, settings.MAX_PAGE_SIZE)


class CommentPageParams:
    """
    ``page`` / ``perPage`` query parameters for one level of a comment tree.

    Missing or non-positive values fall back to page 1 and
    ``settings.DEFAULT_COMMENTS_PER_PAGE``.
    """

    def __init__(
        self,
        page: int | None = Query(None, description="Page number (1-based)."),
        per_page: int | None = Query(None, alias="perPage", description="Comments per page."),
    ) -> None:
        self.page = page if page is not None and page > 0 else 1
        if per_page is None or per_page <= 0:
            per_page = settings.DEFAULT_COMMENTS_PER_PAGE
        self.per_page = min(per_page, settings.MAX_PAGE_SIZE)


# ---------------------------------------------------------------------------
# Client / session extraction
# ---------------------------------------------------------------------------

def get_client_ip(request: Request) -> str:
    """First address of ``X-Forwarded-For`` if present, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_refresh_cookie(request: Request, config: Settings = Depends(get_settings)) -> str | None:
    return request.cookies.get(config.REFRESH_COOKIE_NAME)


@dataclass
class AuthenticatedUser:
    id: int
    user_name: str
    email: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization")
    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def _auth_error(status_code: int, detail: str) -> HTTPException:
    return HTTPException(
        status_code=status_code, detail=detail, headers={"WWW-Authenticate": "Bearer"}
    )


async def _authenticate(
    request: Request, db: AsyncSession, config: Settings
) -> AuthenticatedUser:
    """
    Verify the bearer access token and, when ``REQUIRE_SESSION_COOKIE`` is
    on, that the refresh cookie still names a stored session.

    401: token or cookie missing, token expired.
    403: token malformed or tampered, cookie session revoked.
    """
    token = _bearer_token(request)
    if token is None:
        raise _auth_error(status.HTTP_401_UNAUTHORIZED, "Unauthorized")

    try:
        payload = decode_access_token(config, token)
    except ExpiredSignatureError:
        raise _auth_error(status.HTTP_401_UNAUTHORIZED, "Token expired")
    except JWTError:
        raise _auth_error(status.HTTP_403_FORBIDDEN, "Invalid token")

    try:
        user = AuthenticatedUser(
            id=int(payload["id"]),
            user_name=payload["userName"],
            email=payload["email"],
            role=UserRole(payload["roles"]),
        )
    except (KeyError, TypeError, ValueError):
        raise _auth_error(status.HTTP_403_FORBIDDEN, "Invalid token payload")

    if config.REQUIRE_SESSION_COOKIE:
        refresh_cookie = request.cookies.get(config.REFRESH_COOKIE_NAME)
        if not refresh_cookie:
            raise _auth_error(status.HTTP_401_UNAUTHORIZED, "Unauthorized")
        if await token_service.find_by_token(db, refresh_cookie) is None:
            raise _auth_error(status.HTTP_403_FORBIDDEN, "Session revoked")

    return user


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> AuthenticatedUser:
    return await _authenticate(request, db, config)


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> AuthenticatedUser | None:
    """Like ``get_current_user`` but any authentication failure means anonymous."""
    if _bearer_token(request) is None:
        return None
    try:
        return await _authenticate(request, db, config)
    except HTTPException as exc:
        logger.debug("Treating request as anonymous: %s", exc.detail)
        return None
