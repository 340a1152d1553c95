"""
Refresh-token store: lifecycle of per-device (user, ip) sessions.

A user holds at most ``MAX_LOGGED_DEVICES`` unexpired refresh tokens, one
per distinct IP address.  Expiry is not swept globally: a user's expired
rows are removed when that user logs in (``revoke_expired``), and a
presented token is checked through signature verification.

The device-limit check and the insert are separate statements, so two
simultaneous logins from new IPs may briefly exceed the limit by one.
"""
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from blog_api.config import Settings
from blog_api.models import RefreshToken, User
from blog_api.security import create_refresh_token, utcnow

logger = logging.getLogger(__name__)


class DeviceLimitReached(Exception):
    """Raised by ``issue_token`` when the user already has the maximum number of sessions."""


async def count_active_tokens(db: AsyncSession, user_id: int) -> int:
    """Number of unexpired refresh tokens held by *user_id*."""
    q = (
        select(func.count())
        .select_from(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.expires_at > utcnow())
    )
    return (await db.execute(q)).scalar_one()


async def has_reached_device_limit(db: AsyncSession, config: Settings, user_id: int) -> bool:
    return await count_active_tokens(db, user_id) >= config.MAX_LOGGED_DEVICES


async def find_token(db: AsyncSession, user_id: int, ip: str) -> RefreshToken | None:
    """Return the token bound to exactly this (user, ip) pair, if any."""
    q = select(RefreshToken).where(
        RefreshToken.user_id == user_id, RefreshToken.ip_address == ip
    )
    return (await db.execute(q)).scalars().first()


async def find_by_token(db: AsyncSession, token: str) -> RefreshToken | None:
    """Return the stored row for *token* with its owning user loaded."""
    q = (
        select(RefreshToken)
        .where(RefreshToken.token == token)
        .options(joinedload(RefreshToken.user))
    )
    return (await db.execute(q)).unique().scalars().first()


async def issue_token(db: AsyncSession, config: Settings, user: User, ip: str) -> RefreshToken:
    """
    Sign and persist a new refresh token for (*user*, *ip*).

    Callers are expected to check ``has_reached_device_limit`` first;
    ``DeviceLimitReached`` is raised if they did not.
    """
    if await has_reached_device_limit(db, config, user.id):
        raise DeviceLimitReached(f"user {user.id} has reached {config.MAX_LOGGED_DEVICES} devices")

    token, issued_at, expires_at = create_refresh_token(config, user)
    refresh_token = RefreshToken(
        token=token,
        ip_address=ip,
        issued_at=issued_at,
        expires_at=expires_at,
        user_id=user.id,
    )
    db.add(refresh_token)
    await db.flush()
    logger.info("Issued refresh token for user_id=%s ip=%s", user.id, ip)
    return refresh_token


async def revoke_token(db: AsyncSession, token: str) -> bool:
    """Delete the row holding *token*. Returns False when no such row exists."""
    result = await db.execute(delete(RefreshToken).where(RefreshToken.token == token))
    return result.rowcount > 0


async def revoke_all_except(db: AsyncSession, user_id: int, keep_ip: str | None) -> int:
    """
    Delete every refresh token of *user_id* except the one bound to *keep_ip*.

    Passing ``None`` as *keep_ip* revokes all of them.  Returns the number
    of rows removed.
    """
    stmt = delete(RefreshToken).where(RefreshToken.user_id == user_id)
    if keep_ip is not None:
        stmt = stmt.where(RefreshToken.ip_address != keep_ip)
    result = await db.execute(stmt)
    if result.rowcount:
        logger.info("Revoked %d refresh token(s) for user_id=%s", result.rowcount, user_id)
    return result.rowcount


async def revoke_expired(db: AsyncSession, user_id: int) -> int:
    """Delete the refresh tokens of *user_id* whose ``expires_at`` has passed."""
    stmt = (
        delete(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.expires_at <= utcnow())
        .execution_options(synchronize_session="fetch")
    )
    result = await db.execute(stmt)
    if result.rowcount:
        logger.info("Removed %d expired refresh token(s) for user_id=%s", result.rowcount, user_id)
    return result.rowcount
