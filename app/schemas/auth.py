"""인증 관련 Pydantic 요청/응답 스키마 정의.

Authentication-related Pydantic request/response schema definitions.
Covers registration, login, token refresh/logout, password reset and email
verification. Inputs are validated here so the services only see
well-formed values.
"""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from app.models.user import UserRole
from app.schemas.common import CamelModel

# bcrypt는 72바이트 이후를 무시함 (bcrypt only looks at the first 72 bytes)
PASSWORD_MAX_BYTES = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


class RegisterInput(CamelModel):
    """회원가입 요청 스키마.

    Attributes:
        email: 이메일 (Valid email address)
        password: 비밀번호 (8자 이상, at most 72 bytes)
        username: 사용자명 (3자 이상)
    """

    email: EmailStr
    password: str = Field(min_length=8)
    username: str = Field(min_length=3, max_length=100)

    _password_bytes = field_validator("password")(_check_password_bytes)


class LoginInput(CamelModel):
    """로그인 요청 스키마 (Email + password)."""

    email: EmailStr
    password: str = Field(min_length=1)


class RefreshTokenInput(CamelModel):
    """토큰 갱신 요청 스키마 (Current refresh token to exchange)."""

    refresh_token: str = Field(min_length=1)


class LogoutInput(CamelModel):
    """로그아웃 요청 스키마 (Refresh token to revoke)."""

    refresh_token: str = Field(min_length=1)


class RequestPasswordResetInput(CamelModel):
    email: EmailStr


class ResetPasswordInput(CamelModel):
    """비밀번호 재설정 요청 스키마.

    Attributes:
        token: 재설정 토큰 (Reset token from the emailed link)
        password: 새 비밀번호 (New password, same rules as registration)
    """

    token: str = Field(min_length=1)
    password: str = Field(min_length=8)

    _password_bytes = field_validator("password")(_check_password_bytes)


class VerifyEmailInput(CamelModel):
    token: str = Field(min_length=1)


class ResendVerificationInput(CamelModel):
    email: EmailStr


class UserPublic(CamelModel):
    """외부에 공개되는 사용자 정보.

    Public projection of a user. Never carries the password hash or any
    one-time token.
    """

    id: UUID
    email: str
    username: str
    role: UserRole
    is_verified: bool
    created_at: datetime


class TokenPair(CamelModel):
    """액세스/리프레시 토큰 쌍 (Access + refresh token pair)."""

    access_token: str
    refresh_token: str


class LoginResult(TokenPair):
    """로그인 결과 (Authenticated user plus a fresh token pair)."""

    user: UserPublic
