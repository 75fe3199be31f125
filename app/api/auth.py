"""인증 라우터: 회원가입, 로그인, 토큰 갱신, 로그아웃, 비밀번호 재설정, 이메일 인증.

Auth Router: Registration, login, token refresh/logout, password reset,
email verification and the current-user profile.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_auth_service, get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.auth import (
    LoginInput,
    LoginResult,
    LogoutInput,
    RefreshTokenInput,
    RegisterInput,
    RequestPasswordResetInput,
    ResendVerificationInput,
    ResetPasswordInput,
    TokenPair,
    UserPublic,
    VerifyEmailInput,
)
from app.schemas.common import ApiResponse, MessageOut
from app.services.auth_service import AuthService

router: APIRouter = APIRouter()

Db = Annotated[AsyncSession, Depends(get_db)]
Auth = Annotated[AuthService, Depends(get_auth_service)]


@router.post(
    "/register",
    response_model=ApiResponse[UserPublic],
    status_code=status.HTTP_201_CREATED,
)
async def register(data: RegisterInput, db: Db, service: Auth) -> ApiResponse[UserPublic]:
    """회원가입 (Register a new account; verification email is sent)."""
    user: UserPublic = await service.register(db, data)
    return ApiResponse(message="User registered successfully", data=user)


@router.post("/login", response_model=ApiResponse[LoginResult])
async def login(
    data: LoginInput,
    request: Request,
    db: Db,
    service: Auth,
) -> ApiResponse[LoginResult]:
    """로그인: 액세스/리프레시 토큰 발급.

    Login endpoint. The client address and user agent go into the login
    alert email.
    """
    ip: str = request.client.host if request.client else "unknown"
    result: LoginResult = await service.login(
        db, data, ip=ip, user_agent=request.headers.get("user-agent")
    )
    return ApiResponse(message="Login successful", data=result)


@router.post("/refresh-token", response_model=ApiResponse[TokenPair])
async def refresh_token(data: RefreshTokenInput, db: Db, service: Auth) -> ApiResponse[TokenPair]:
    """토큰 갱신: 리프레시 토큰 회전 (Rotate the refresh token)."""
    tokens: TokenPair = await service.refresh_token(db, data.refresh_token)
    return ApiResponse(message="Token refreshed successfully", data=tokens)


@router.post("/logout", response_model=ApiResponse[None])
async def logout(data: LogoutInput, db: Db, service: Auth) -> ApiResponse[None]:
    """로그아웃: 리프레시 토큰 폐기 (Revoke the given refresh token)."""
    await service.logout(db, data.refresh_token)
    return ApiResponse(message="Logout successful")


@router.post("/request-password-reset", response_model=ApiResponse[MessageOut])
async def request_password_reset(
    data: RequestPasswordResetInput,
    db: Db,
    service: Auth,
) -> ApiResponse[MessageOut]:
    """비밀번호 재설정 요청.

    Always answers the same way, whether or not the account exists.
    """
    result: MessageOut = await service.request_password_reset(db, data.email)
    return ApiResponse(message="Password reset email sent successfully", data=result)


@router.post("/reset-password", response_model=ApiResponse[MessageOut])
async def reset_password(data: ResetPasswordInput, db: Db, service: Auth) -> ApiResponse[MessageOut]:
    """비밀번호 재설정 (Consume a reset token and set a new password)."""
    result: MessageOut = await service.reset_password(db, data.token, data.password)
    return ApiResponse(message="Password reset successful", data=result)


@router.post("/verify-email", response_model=ApiResponse[MessageOut])
async def verify_email(data: VerifyEmailInput, db: Db, service: Auth) -> ApiResponse[MessageOut]:
    """이메일 인증 (Consume a verification token)."""
    result: MessageOut = await service.verify_email(db, data.token)
    return ApiResponse(message="Email verified successfully", data=result)


@router.post("/resend-verification", response_model=ApiResponse[MessageOut])
async def resend_verification(
    data: ResendVerificationInput,
    db: Db,
    service: Auth,
) -> ApiResponse[MessageOut]:
    """인증 이메일 재발송 (Issue a fresh verification token)."""
    result: MessageOut = await service.resend_verification_email(db, data.email)
    return ApiResponse(message="Verification email sent successfully", data=result)


@router.get("/me", response_model=ApiResponse[UserPublic])
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Auth,
) -> ApiResponse[UserPublic]:
    """현재 사용자 프로필 조회 (Profile of the authenticated user)."""
    return ApiResponse(message="Profile retrieved successfully", data=service.get_profile(current_user))
