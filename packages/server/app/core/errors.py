"""
Typed access errors.

Every precondition failure in the access engine raises one of these. The API
layer turns them into ``{"error": {...}}`` responses; library callers can
catch ``AccessError`` and branch on ``code``.
"""

from __future__ import annotations

from hubgate_shared.schemas.common import ErrorCode, USER_MESSAGES


class AccessError(Exception):
    code: ErrorCode = ErrorCode.FORBIDDEN
    status_code: int = 403
    retryable: bool = False

    def __init__(self, detail: str | None = None):
        self.detail = detail or USER_MESSAGES[self.code]
        super().__init__(self.detail)

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.code]

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.user_message,
            "retryable": self.retryable,
            "detail": self.detail,
        }


class Unauthenticated(AccessError):
    code = ErrorCode.UNAUTHENTICATED
    status_code = 401


class Forbidden(AccessError):
    code = ErrorCode.FORBIDDEN
    status_code = 403


class AlreadyManaging(AccessError):
    code = ErrorCode.ALREADY_MANAGING
    status_code = 409


class NotEligible(AccessError):
    code = ErrorCode.NOT_ELIGIBLE
    status_code = 403


class CapacityExceeded(AccessError):
    code = ErrorCode.CAPACITY_EXCEEDED
    status_code = 409


class WindowClosed(AccessError):
    code = ErrorCode.WINDOW_CLOSED
    status_code = 409


class InvalidState(AccessError):
    code = ErrorCode.INVALID_STATE
    status_code = 409


class NotFound(AccessError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class Transient(AccessError):
    code = ErrorCode.TRANSIENT
    status_code = 503
    retryable = True
