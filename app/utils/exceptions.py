"""애플리케이션 예외 클래스 모듈.

Application exception classes module.
Services raise these typed failures; each carries an HTTP status, a stable
machine-readable code and a human message. ``app.main`` maps them onto the
JSON error envelope, so services never build transport responses themselves.

Usage:
    from app.utils.exceptions import NotFoundError, ConflictError
    raise NotFoundError("User not found")
    raise ConflictError("Email already in use")
"""

from typing import Any

from fastapi import status


class AppError(Exception):
    """애플리케이션 기본 예외 (Base application error).

    Args:
        message: 사용자에게 보여줄 메시지 (Human-readable message)
        details: 추가 정보 (Optional structured details)
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, details: Any = None) -> None:
        self.message: str = message or self.default_message
        self.details: Any = details
        super().__init__(self.message)


class BadRequestError(AppError):
    """400 Bad Request 예외 (잘못된/만료된 일회용 토큰, 이미 인증됨 등).

    Raised for business rule violations such as an invalid or expired
    one-time token or an already verified email.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"
    default_message = "Bad request"


class UnauthorizedError(AppError):
    """401 Unauthorized 예외 (인증 실패).

    Raised for bad credentials, bad/expired/revoked refresh tokens and
    inactive accounts.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_message = "Authentication required"


class ForbiddenError(AppError):
    """403 Forbidden 예외 (권한 부족)."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    """404 Not Found 예외 (리소스 없음)."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppError):
    """409 Conflict 예외 (중복 이메일/사용자명).

    Raised when a write would violate a uniqueness constraint.
    """

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Resource already exists"


class InternalError(AppError):
    """500 Internal 예외 (예상치 못한 저장소/서명 실패)."""
