"""데이터베이스 엔진 및 세션 설정 모듈.

Database engine and session configuration module.
Sets up the async SQLAlchemy engine, session factory, ORM base class and the
UTC-aware datetime column type shared by every model.
"""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime
from sqlalchemy.engine import Dialect
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from app.config import settings


def utcnow() -> datetime:
    """현재 UTC 시각 (Current timezone-aware UTC time)."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator[datetime]):
    """UTC 기준 타임존 인식 datetime 컬럼 타입.

    Timezone-aware datetime column. Values are converted to UTC on bind and
    naive values coming back from the driver (SQLite) are tagged as UTC, so
    comparisons against ``utcnow()`` work on every backend.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """DB URL에 맞는 비동기 엔진을 생성합니다.

    Create an async engine. Pool sizing and the asyncpg statement cache
    setting only apply to the PostgreSQL driver.

    Args:
        url: SQLAlchemy 비동기 연결 문자열 (Async connection URL)
        echo: SQL 로그 출력 여부 (Echo SQL statements)

    Returns:
        AsyncEngine: 비동기 엔진 (Configured async engine)
    """
    kwargs: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if url.startswith("postgresql+asyncpg"):
        kwargs.update(
            pool_size=5,
            max_overflow=10,
            # 트랜잭션 모드 풀러에서 prepared statement 비활성화
            # (Disable prepared statement caches for transaction-mode pooling)
            connect_args={"statement_cache_size": 0},
        )
    return create_async_engine(url, **kwargs)


# 비동기 데이터베이스 엔진 (Async database engine)
engine: AsyncEngine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# 비동기 세션 팩토리 (expire_on_commit=False: 커밋 후에도 속성 접근 가능)
async_session: async_sessionmaker[AsyncSession] = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """SQLAlchemy 선언적 베이스 클래스.

    Declarative base class for all ORM models.
    """

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """비동기 데이터베이스 세션을 생성하고 요청 종료 시 닫습니다.

    FastAPI dependency that yields an async database session.
    The session is closed after the request completes; uncommitted work is
    rolled back by the session on close.

    Yields:
        AsyncSession: SQLAlchemy 비동기 세션 인스턴스 (Async session instance)
    """
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
