"""FastAPI 의존성 주입 모듈: 서비스, 인증 및 권한 검사.

FastAPI dependency injection module: Services, authentication and
authorization.

Authentication Flow:
    1. 클라이언트가 Authorization: Bearer <token> 헤더를 전송
       (Client sends Authorization: Bearer <token> header)
    2. HTTPBearer가 토큰을 추출 (HTTPBearer extracts the token)
    3. TokenCodec이 서명, 만료, 토큰 유형(access)을 검증
       (The token codec verifies signature, expiry and the ``access`` type)
    4. 페이로드의 userId로 DB에서 사용자를 조회하고 활성 상태를 확인
       (User is fetched by ``userId`` and must be active)

Tests swap the services through ``app.dependency_overrides``.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User, UserRole
from app.repositories.user_repository import user_repository
from app.services.auth_service import AuthService, auth_service
from app.services.user_service import UserService, user_service
from app.utils.exceptions import ForbiddenError, UnauthorizedError
from app.utils.jwt import ACCESS_TOKEN_TYPE, TokenClaims, TokenError

# HTTP Bearer 토큰 추출기: 헤더 누락도 UnauthorizedError로 처리
# (Missing header is reported as UnauthorizedError, not by HTTPBearer itself)
security: HTTPBearer = HTTPBearer(auto_error=False)


def get_auth_service() -> AuthService:
    """인증 서비스 의존성 (Auth service dependency)."""
    return auth_service


def get_user_service() -> UserService:
    """사용자 서비스 의존성 (User service dependency)."""
    return user_service


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> User:
    """액세스 토큰에서 현재 인증된 사용자를 추출합니다.

    Verify the bearer access token and return the authenticated user.

    Args:
        credentials: HTTP Bearer 토큰 자격 증명 (Bearer token credentials from header)
        db: 비동기 DB 세션 (Async database session)
        service: 토큰 검증기를 가진 인증 서비스 (Auth service holding the token codec)

    Returns:
        User: 인증된 사용자 ORM 인스턴스 (Authenticated user ORM instance)

    Raises:
        UnauthorizedError: 토큰 누락, 무효, 만료, 유형 불일치, 비활성 사용자
                           (Missing, invalid, expired or non-access token, or inactive user)
    """
    if credentials is None:
        raise UnauthorizedError("Authentication required")

    try:
        claims: TokenClaims = service.tokens.verify(credentials.credentials)
    except TokenError as exc:
        raise UnauthorizedError("Invalid or expired token") from exc

    # 토큰 타입 검증: Reject refresh tokens used as access tokens
    if claims.token_type != ACCESS_TOKEN_TYPE:
        raise UnauthorizedError("Invalid token type")

    try:
        user_id: UUID = UUID(claims.user_id)
    except ValueError as exc:
        raise UnauthorizedError("Invalid token") from exc

    user: User | None = await user_repository.get_by_id(db, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found or inactive")

    return user


async def require_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """관리자 권한 검사 (ADMIN role required).

    Raises:
        ForbiddenError: 관리자가 아닐 때 (Caller is not an ADMIN)
    """
    if current_user.role != UserRole.ADMIN:
        raise ForbiddenError("Insufficient permissions")
    return current_user
