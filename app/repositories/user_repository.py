"""사용자 레포지토리 (Credential Store 쿼리).

User Repository: Exact-match lookups by unique column, the email-or-username
existence check used by registration, one-time token lookups and the sorted
listing used by the user admin endpoints.
"""

from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import Select, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import BaseRepository

# 정렬 허용 컬럼 (Columns allowed in ORDER BY, keyed by API name)
SORTABLE_COLUMNS = {
    "createdAt": User.created_at,
    "updatedAt": User.updated_at,
    "email": User.email,
    "username": User.username,
}

# 일회용 토큰 컬럼 쌍 (Token / expiry column pairs)
ONE_TIME_TOKEN_COLUMNS = {
    "reset": (User.reset_token, User.reset_token_expires_at),
    "verify": (User.verify_token, User.verify_token_expires_at),
}


class UserRepository(BaseRepository[User]):
    """사용자 테이블에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the users table.
    """

    def __init__(self) -> None:
        super().__init__(User)

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        """이메일로 사용자를 조회합니다 (Exact match on the unique email)."""
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_username(self, db: AsyncSession, username: str) -> User | None:
        """사용자명으로 사용자를 조회합니다 (Exact match on the unique username)."""
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def find_by_email_or_username(
        self,
        db: AsyncSession,
        email: str,
        username: str,
    ) -> User | None:
        """이메일 또는 사용자명이 일치하는 첫 사용자를 조회합니다.

        Return the first user whose email OR username matches, in one query.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            email: 이메일 (Email to match)
            username: 사용자명 (Username to match)

        Returns:
            User | None: 일치하는 사용자 또는 None (First match or None)
        """
        query: Select = (
            select(User)
            .where(or_(User.email == email, User.username == username))
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_reset_token(
        self,
        db: AsyncSession,
        token: str,
        now: datetime,
    ) -> User | None:
        """만료되지 않은 비밀번호 재설정 토큰으로 사용자를 조회합니다.

        Find the user holding ``token`` as reset token with an expiry after ``now``.
        """
        query: Select = select(User).where(
            User.reset_token == token,
            User.reset_token_expires_at > now,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_verify_token(
        self,
        db: AsyncSession,
        token: str,
        now: datetime,
    ) -> User | None:
        """만료되지 않은 이메일 인증 토큰으로 사용자를 조회합니다.

        Find the user holding ``token`` as verification token with an expiry after ``now``.
        """
        query: Select = select(User).where(
            User.verify_token == token,
            User.verify_token_expires_at > now,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def consume_one_time_token(
        self,
        db: AsyncSession,
        user: User,
        kind: str,
        token: str,
        now: datetime,
        values: dict[str, Any],
    ) -> bool:
        """일회용 토큰을 조건부로 소비하면서 사용자 행을 갱신합니다.

        Apply ``values`` to the user only while it still holds ``token`` as an
        unexpired ``kind`` token, in a single conditional UPDATE. Of two
        concurrent callers presenting the same token only one sees ``True``.
        On success the loaded ``user`` is refreshed from the row.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user: 대상 사용자 (User loaded in this session)
            kind: "reset" 또는 "verify" (Which one-time token to consume)
            token: 제출된 토큰 (Supplied token)
            now: 기준 시각 (Reference time for the expiry check)
            values: 함께 설정할 컬럼 값 (Columns to set, must clear the token)

        Returns:
            bool: 행이 갱신되었는지 여부 (Whether the row was updated)
        """
        token_column, expires_column = ONE_TIME_TOKEN_COLUMNS[kind]
        stmt = (
            update(User)
            .where(User.id == user.id, token_column == token, expires_column > now)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        if (result.rowcount or 0) == 0:
            return False
        await db.refresh(user)
        return True

    async def list_sorted(
        self,
        db: AsyncSession,
        page: int,
        per_page: int,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> tuple[Sequence[User], int]:
        """정렬 및 페이지네이션된 사용자 목록을 조회합니다.

        List users ordered by an allowed column, paginated.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            page: 페이지 번호, 1부터 (1-based page number)
            per_page: 페이지당 항목 수 (Page size)
            sort_by: 정렬 컬럼 API 이름 (Column name as exposed by the API)
            sort_order: "asc" 또는 "desc" (Sort direction)

        Returns:
            tuple[Sequence[User], int]: (사용자 목록, 전체 개수)
        """
        column = SORTABLE_COLUMNS.get(sort_by, User.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        query: Select = select(User).order_by(ordering, User.id)
        return await self.get_paginated(db, query, page, per_page)


# 싱글턴 인스턴스 (Singleton instance)
user_repository: UserRepository = UserRepository()
