"""
Service result type shared by every service module.

Each service operation returns a ``ServiceResult``: either a success
carrying a payload, or a failure tagged with an ``ErrorCode``.  Expected
business failures (bad credentials, missing rows, wrong owner) travel as
values; only unexpected errors are raised.

The router layer renders a result as the uniform response envelope::

    {"status": <int>, "response": <str>, "data": <payload | null>}
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorCode(str, enum.Enum):
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    DUPLICATE = "duplicate"
    INVALID_CREDENTIALS = "invalid_credentials"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    INVALID_TOKEN = "invalid_token"
    TOKEN_VERIFICATION_FAILED = "token_verification_failed"
    INVALID_USER = "invalid_user"
    DEVICE_LIMIT = "device_limit"
    INTERNAL = "internal"


ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.DUPLICATE: 400,
    ErrorCode.INVALID_CREDENTIALS: 401,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.INVALID_TOKEN: 403,
    ErrorCode.TOKEN_VERIFICATION_FAILED: 400,
    ErrorCode.INVALID_USER: 400,
    ErrorCode.DEVICE_LIMIT: 405,
    ErrorCode.INTERNAL: 500,
}


@dataclass
class ServiceResult(Generic[T]):
    status: int
    response: str
    data: T | None = None
    error: ErrorCode | None = None
    # Operation-specific top-level fields (pagination counters, tokens).
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(
        cls, response: str, data: T | None = None, status: int = 200, **extra: Any
    ) -> "ServiceResult[T]":
        return cls(status=status, response=response, data=data, extra=extra)

    @classmethod
    def failure(cls, error: ErrorCode, response: str) -> "ServiceResult[T]":
        return cls(status=ERROR_STATUS[error], response=response, error=error)

    def to_envelope(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "status": self.status,
            "response": self.response,
            "data": self.data,
        }
        body.update(self.extra)
        return body
