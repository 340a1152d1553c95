"""
Auth service: signup, login, logout, access-token refresh and password
reset.

Sessions are not stored as such: an access token is verified statelessly
on every request, and the refresh-token table provides revocation.  The
lifecycle is Anonymous -> (signup) -> Registered -> (login) ->
Authenticated -> (refresh)* -> (logout) -> Anonymous.

Expected failures (duplicate user, bad credentials, device limit, bad
token) are returned as ``ServiceResult`` failures.  Unexpected errors in
signup and login are logged and re-raised as ``AuthServiceError`` so no
internals reach the client.
"""
import hmac
import logging

from jose import JWTError
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import Settings
from blog_api.models import User
from blog_api.results import ErrorCode, ServiceResult
from blog_api.schemas import SignupRequest
from blog_api.security import (
    create_access_token,
    decode_refresh_token,
    generate_reset_code,
    hash_password,
    isoformat_utc,
    utcnow,
    verify_password,
)
from blog_api.services import token_service

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account exists with the provided email, a reset link has been sent."


class AuthServiceError(Exception):
    """Generic wrapper for unexpected failures inside signup / login."""


def public_user_data(user: User) -> dict:
    """Projection of a user that is safe to return to clients (no secrets)."""
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "userName": user.user_name,
        "email": user.email,
        "role": user.role.value,
        "lastLogin": isoformat_utc(user.last_login),
        "isVerified": user.is_verified,
        "isActive": user.is_active,
    }


async def signup(db: AsyncSession, data: SignupRequest) -> ServiceResult[dict]:
    """
    Register a new user.

    Fails with ``DUPLICATE`` when either the user name or the email is
    already taken (exact, case-sensitive match).
    """
    try:
        q = select(User.id).where(or_(User.user_name == data.user_name, User.email == data.email))
        if (await db.execute(q)).first() is not None:
            return ServiceResult.failure(
                ErrorCode.DUPLICATE, "User with this email or username already exists"
            )

        now = utcnow()
        user = User(
            first_name=data.first_name,
            last_name=data.last_name or "",
            user_name=data.user_name,
            email=data.email,
            role=data.role,
            password=hash_password(data.password),
            created_at=now,
            updated_at=now,
            last_login=now,
        )
        db.add(user)
        await db.flush()
    except Exception as exc:
        logger.exception("Signup failed for user_name=%s", data.user_name)
        raise AuthServiceError("An unexpected error occurred during signup.") from exc

    logger.info("User registered: id=%s user_name=%s", user.id, user.user_name)
    return ServiceResult.success("User created successfully", public_user_data(user), status=201)


async def login(
    db: AsyncSession,
    config: Settings,
    user_name: str,
    password: str,
    client_ip: str,
) -> ServiceResult[dict]:
    """
    Authenticate *user_name* and open (or reuse) the session for *client_ip*.

    On success ``data`` holds the public user projection and ``extra``
    carries ``token`` (access) and ``refresh_token``.
    """
    try:
        user = (await db.execute(select(User).where(User.user_name == user_name))).scalars().first()
        if user is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, "User Not Exist")

        if not verify_password(password, user.password):
            logger.warning("Invalid credentials for user_name=%s", user_name)
            return ServiceResult.failure(ErrorCode.INVALID_CREDENTIALS, "Invalid Credentials")

        access_token = create_access_token(config, user)

        # An expired session must neither be handed out again nor hold a device slot.
        await token_service.revoke_expired(db, user.id)
        refresh_token = await token_service.find_token(db, user.id, client_ip)
        if refresh_token is None:
            if await token_service.has_reached_device_limit(db, config, user.id):
                logger.warning("Device limit reached for user_id=%s ip=%s", user.id, client_ip)
                return ServiceResult.failure(ErrorCode.DEVICE_LIMIT, "Maximum logged devices reached")
            refresh_token = await token_service.issue_token(db, config, user, client_ip)

        user.last_login = utcnow()
        await db.flush()
    except Exception as exc:
        logger.exception("Login failed for user_name=%s", user_name)
        raise AuthServiceError("Error Occurred While verifying credentials") from exc

    logger.info("User logged in: id=%s ip=%s", user.id, client_ip)
    user_data = {
        "id": user.id,
        "userName": user.user_name,
        "email": user.email,
        "roles": user.role.value,
    }
    return ServiceResult.success(
        "Login successful",
        user_data,
        status=201,
        token=access_token,
        refresh_token=refresh_token.token,
    )


async def logout(db: AsyncSession, token: str) -> ServiceResult[None]:
    """
    Revoke the refresh token *token*.

    Idempotent: an unknown token is logged as a warning and still reported
    as success, with the warning in ``extra``.
    """
    if not await token_service.revoke_token(db, token):
        logger.warning("Logout with a refresh token that is not stored")
        return ServiceResult.success("Logged out", warning="Token Not Found in DB")
    return ServiceResult.success("Logged out")


async def refresh_access_token(db: AsyncSession, config: Settings, token: str) -> ServiceResult[None]:
    """
    Exchange a stored, valid refresh token for a new access token.

    Order of checks: stored row (403) -> signature/expiry (400) ->
    token user matches row owner (400).
    """
    stored = await token_service.find_by_token(db, token)
    user = stored.user if stored is not None else None
    if user is None:
        return ServiceResult.failure(ErrorCode.INVALID_TOKEN, "Invalid Token")

    try:
        payload = decode_refresh_token(config, token)
    except JWTError:
        logger.info("Refresh token verification failed for user_id=%s", user.id)
        return ServiceResult.failure(ErrorCode.TOKEN_VERIFICATION_FAILED, "Token verification failed")

    if payload.get("userName") != user.user_name:
        return ServiceResult.failure(ErrorCode.INVALID_USER, "Invalid User")

    return ServiceResult.success(
        "Token refreshed", status=201, token=create_access_token(config, user)
    )


async def initiate_password_reset(db: AsyncSession, email: str) -> ServiceResult[None]:
    """
    Store a fresh 8-digit reset code on the matching account, if any.

    The response is identical whether or not the email is registered.
    Delivering the code to the user is not implemented.
    """
    user = (await db.execute(select(User).where(User.email == email))).scalars().first()
    if user is not None:
        user.reset_password_code = generate_reset_code()
        await db.flush()
        logger.info("Password reset code generated for user_id=%s", user.id)
    return ServiceResult.success(RESET_REQUESTED_MESSAGE)


async def complete_password_reset(
    db: AsyncSession, email: str, token: str, new_password: str
) -> ServiceResult[None]:
    user = (await db.execute(select(User).where(User.email == email))).scalars().first()

    # Compare even when the user is missing so both failures take similar time.
    stored = (user.reset_password_code if user is not None else None) or ""
    token_matches = hmac.compare_digest(stored.encode(), token.encode())
    if user is None or not stored or not token_matches:
        return ServiceResult.failure(ErrorCode.BAD_REQUEST, "Invalid token or email.")

    user.password = hash_password(new_password)
    user.reset_password_code = None
    user.updated_at = utcnow()
    await db.flush()
    logger.info("Password reset completed for user_id=%s", user.id)
    return ServiceResult.success("Password reset successfully.")
