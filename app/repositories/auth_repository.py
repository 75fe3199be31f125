"""인증 레포지토리 (리프레시 토큰 원장 CRUD).

Auth Repository: Refresh token ledger persistence: lookup by exact token
value, insert, conditional delete, and per-user bulk delete.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.token import RefreshToken


class AuthRepository:
    """리프레시 토큰 관련 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling refresh token rows. Writes are flushed, never
    committed, so rotation can delete and insert inside one transaction.
    """

    async def create_refresh_token(
        self,
        db: AsyncSession,
        user_id: UUID,
        token: str,
        expires_at: datetime,
    ) -> RefreshToken:
        """새 리프레시 토큰을 생성합니다.

        Create a new refresh token record.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 토큰 소유자 사용자 ID (Token owner user UUID)
            token: JWT 리프레시 토큰 문자열 (JWT refresh token string)
            expires_at: 토큰 만료 일시 (Authoritative expiration timestamp)

        Returns:
            RefreshToken: 생성된 리프레시 토큰 레코드 (Created record)
        """
        db_token: RefreshToken = RefreshToken(
            user_id=user_id,
            token=token,
            expires_at=expires_at,
        )
        db.add(db_token)
        await db.flush()
        return db_token

    async def get_refresh_token(
        self,
        db: AsyncSession,
        token: str,
    ) -> RefreshToken | None:
        """리프레시 토큰 문자열로 토큰 레코드와 소유자를 조회합니다.

        Retrieve a refresh token record by its exact token string, with the
        owning user eagerly loaded.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            token: 조회할 리프레시 토큰 문자열 (Token string to look up)

        Returns:
            RefreshToken | None: 조회된 토큰 레코드 또는 None (Found record or None)
        """
        query: Select = (
            select(RefreshToken)
            .options(selectinload(RefreshToken.user))
            .where(RefreshToken.token == token)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def delete_refresh_token(
        self,
        db: AsyncSession,
        token: str,
    ) -> bool:
        """리프레시 토큰을 삭제합니다.

        Delete a refresh token by its token string with a single conditional
        DELETE. The affected row count tells concurrent callers apart: only
        one of them can observe ``True`` for the same token.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            token: 삭제할 리프레시 토큰 문자열 (Refresh token string to delete)

        Returns:
            bool: 행이 삭제되었는지 여부 (Whether a row was deleted)
        """
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.token == token)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.flush()
        return (result.rowcount or 0) > 0

    async def delete_user_refresh_tokens(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> int:
        """특정 사용자의 모든 리프레시 토큰을 삭제합니다.

        Delete all refresh tokens for a user (logout from all devices).

        Returns:
            int: 삭제된 행 수 (Number of deleted rows)
        """
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.flush()
        return result.rowcount or 0


# 싱글턴 인스턴스 (Singleton instance)
auth_repository: AuthRepository = AuthRepository()
