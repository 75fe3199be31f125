"""리프레시 토큰 원장 (Refresh Token Ledger).

Refresh Token Ledger: the persistent set of currently valid refresh tokens.
A refresh token is accepted only if its row exists, the stored ``expires_at``
is in the future and the owning user is active. The stored expiry is computed
independently of the JWT ``exp`` claim and is the authoritative bound.
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.models.token import RefreshToken
from app.repositories.auth_repository import auth_repository
from app.utils.exceptions import UnauthorizedError
from app.utils.jwt import TokenClaims, TokenCodec

logger = logging.getLogger(__name__)

INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"


class RefreshTokenLedger:
    """리프레시 토큰 발급, 검증, 폐기.

    Issue, redeem and revoke refresh tokens against the ``refresh_tokens``
    table. The ledger never commits; the Auth Core owns the transaction.

    Args:
        codec: 토큰 서명기 (Token codec used to mint refresh tokens)
        config: 리프레시 TTL을 담은 설정 (Settings holding the refresh TTL)
    """

    def __init__(self, codec: TokenCodec, config: Settings) -> None:
        self.codec: TokenCodec = codec
        self.ttl: timedelta = timedelta(seconds=config.JWT_REFRESH_TOKEN_EXPIRE_SECONDS)

    async def issue(self, db: AsyncSession, claims: TokenClaims) -> str:
        """새 리프레시 토큰을 발급하고 원장에 기록합니다.

        Mint a signed refresh token and insert its ledger row.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            claims: 토큰 소유자 클레임 (Owner claims)

        Returns:
            str: 리프레시 토큰 문자열 (Refresh token string)
        """
        token: str = self.codec.create_refresh_token(claims)
        expires_at: datetime = datetime.now(timezone.utc) + self.ttl
        await auth_repository.create_refresh_token(
            db, user_id=UUID(claims.user_id), token=token, expires_at=expires_at
        )
        return token

    async def redeem(self, db: AsyncSession, token: str) -> TokenClaims:
        """원장에서 리프레시 토큰을 검증하고 소유자 클레임을 반환합니다.

        Look the token up by exact value. The row is left in place; the caller
        deletes it as part of rotation.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            token: 제출된 리프레시 토큰 (Supplied refresh token)

        Returns:
            TokenClaims: 현재 사용자 정보 기준 클레임 (Claims built from the current user row)

        Raises:
            UnauthorizedError: 행이 없거나 만료되었거나 소유자가 비활성일 때
                               (Row absent, expired, or owner inactive)
        """
        row: RefreshToken | None = await auth_repository.get_refresh_token(db, token)
        if row is None:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        if row.expires_at <= datetime.now(timezone.utc):
            logger.info("Rejected expired refresh token for user %s", row.user_id)
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user = row.user
        if user is None or not user.is_active:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        return TokenClaims(user_id=str(user.id), email=user.email, role=user.role.value)

    async def consume(self, db: AsyncSession, token: str) -> bool:
        """회전 과정에서 기존 토큰을 삭제합니다.

        Delete the old row during rotation. Returns False when another request
        already consumed it.
        """
        return await auth_repository.delete_refresh_token(db, token)

    async def revoke(self, db: AsyncSession, token: str) -> bool:
        """리프레시 토큰을 폐기합니다 (Delete the row; False if it was absent)."""
        return await auth_repository.delete_refresh_token(db, token)

    async def revoke_all(self, db: AsyncSession, user_id: UUID) -> int:
        """사용자의 모든 세션을 폐기합니다 (Drop every session of a user)."""
        revoked: int = await auth_repository.delete_user_refresh_tokens(db, user_id)
        if revoked:
            logger.info("Revoked %d refresh token(s) for user %s", revoked, user_id)
        return revoked
