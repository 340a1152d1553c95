"""
Security primitives: password hashing and JWT encoding/decoding.

- Passwords are hashed with Argon2id; the hash string carries its own salt
  and parameters.
- Access and refresh tokens are HS256 JWTs signed with separate secrets and
  tagged with a ``type`` claim so one can never be used as the other.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import jwt
from jose.exceptions import JWTError

from blog_api.config import Settings

_password_hasher = PasswordHasher()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat_utc(value: datetime | None) -> str | None:
    """
    ISO-8601 text for a stored timestamp, always with a UTC offset.

    Timestamps are written in UTC; drivers that drop the zone on read
    (SQLite) hand back naive values, which are read as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def hash_password(password: str) -> str:
    """Return an Argon2id hash of *password*."""
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Return True when *password* matches *password_hash*.

    Never raises: a mismatch or a malformed stored hash both yield False.
    """
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def _user_claims(user) -> dict[str, Any]:
    return {"userName": user.user_name, "email": user.email, "id": user.id}


def create_access_token(config: Settings, user) -> str:
    """
    Create a short-lived access token embedding the user's identity and role.

    Payload: ``userName``, ``email``, ``id``, ``roles``, ``type="access"``,
    ``iat`` and ``exp``.
    """
    now = utcnow()
    payload = _user_claims(user)
    payload.update(
        {
            "roles": getattr(user.role, "value", user.role),
            "type": "access",
            "iat": now,
            "exp": now + timedelta(seconds=config.ACCESS_TOKEN_EXPIRES_SECONDS),
        }
    )
    return jwt.encode(payload, config.ACCESS_TOKEN_SECRET, algorithm=config.JWT_ALGORITHM)


def create_refresh_token(config: Settings, user) -> tuple[str, datetime, datetime]:
    """
    Create a refresh token for *user*.

    Returns ``(token, issued_at, expires_at)``.  A random ``jti`` keeps
    tokens issued in the same second for different devices distinct.
    """
    issued_at = utcnow()
    expires_at = issued_at + timedelta(seconds=config.REFRESH_TOKEN_EXPIRES_SECONDS)
    payload = _user_claims(user)
    payload.update(
        {
            "type": "refresh",
            "jti": str(uuid4()),
            "iat": issued_at,
            "exp": expires_at,
        }
    )
    token = jwt.encode(payload, config.REFRESH_TOKEN_SECRET, algorithm=config.JWT_ALGORITHM)
    return token, issued_at, expires_at


def _decode(token: str, secret: str, algorithm: str, token_type: str) -> dict[str, Any]:
    payload = jwt.decode(token, secret, algorithms=[algorithm])
    if payload.get("type") != token_type:
        raise JWTError(f"Invalid token type: expected {token_type!r}")
    return payload


def decode_access_token(config: Settings, token: str) -> dict[str, Any]:
    """
    Verify signature, expiry and type of an access token.

    Raises ``jose.ExpiredSignatureError`` for expired tokens and
    ``jose.JWTError`` for anything else that is wrong with it.
    """
    return _decode(token, config.ACCESS_TOKEN_SECRET, config.JWT_ALGORITHM, "access")


def decode_refresh_token(config: Settings, token: str) -> dict[str, Any]:
    """Verify signature, expiry and type of a refresh token."""
    return _decode(token, config.REFRESH_TOKEN_SECRET, config.JWT_ALGORITHM, "refresh")


def generate_reset_code() -> str:
    """Return a random 8-digit numeric password-reset code."""
    return str(secrets.randbelow(90_000_000) + 10_000_000)
