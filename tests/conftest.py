"""테스트 인프라: 인메모리 SQLite DB, 세션, 서비스, httpx 클라이언트 픽스처.

Test infrastructure: In-memory SQLite DB, session, service and httpx client
fixtures. Each test gets a fresh schema on its own engine, services built from
test settings with their own JWT secret, and a recording email sender in place
of SMTP. Background email jobs are drained before assertions on sent mail.
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.api.deps import get_auth_service, get_user_service
from app.config import Settings
from app.database import Base, get_db
from app.main import app
from app.models import *  # noqa: F401,F403: register all models with metadata
from app.models.user import User, UserRole
from app.services.auth_service import AuthService
from app.services.email_service import EmailService
from app.services.user_service import UserService
from app.utils.background import BackgroundDispatcher
from app.utils.jwt import TokenClaims
from app.utils.password import hash_password

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

AUTH = "/api/v1/auth"
USERS = "/api/v1/users"

DEFAULT_PASSWORD = "Sup3r-secret!"


class RecordingSender:
    """발송 대신 메일을 기록하는 테스트용 전송기 (Captures outgoing mail)."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def __call__(self, to: str, subject: str, html: str, text: str | None = None, config: Any = None) -> None:
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})

    def to(self, address: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["to"] == address]

    def subjects(self, address: str) -> list[str]:
        return [m["subject"] for m in self.to(address)]


# ---------------------------------------------------------------------------
# 설정 및 DB
# ---------------------------------------------------------------------------
@pytest.fixture
def test_settings() -> Settings:
    """테스트 전용 설정: 별도 JWT 비밀키, SMTP 비활성."""
    return Settings(
        _env_file=None,
        DATABASE_URL=TEST_DATABASE_URL,
        JWT_SECRET_KEY="test-only-jwt-secret-key-0123456789abcdef",
        BCRYPT_ROUNDS=10,
        FRONTEND_URL="http://frontend.test",
        SMTP_USER="",
        SMTP_PASSWORD="",
        SMTP_FROM_NAME="Auth API",
    )


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진. 테스트마다 새 스키마를 생성합니다."""
    eng = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


# ---------------------------------------------------------------------------
# 서비스
# ---------------------------------------------------------------------------
@pytest.fixture
def mailbox() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def jobs() -> BackgroundDispatcher:
    return BackgroundDispatcher()


@pytest.fixture
def mailer(test_settings: Settings, mailbox: RecordingSender) -> EmailService:
    return EmailService(test_settings, sender=mailbox)


@pytest.fixture
def auth_service(test_settings: Settings, mailer: EmailService, jobs: BackgroundDispatcher) -> AuthService:
    return AuthService(test_settings, mailer, jobs)


@pytest.fixture
def user_service(mailer: EmailService, jobs: BackgroundDispatcher) -> UserService:
    return UserService(mailer, jobs)


@pytest_asyncio.fixture
async def client(
    db: AsyncSession,
    auth_service: AuthService,
    user_service: UserService,
    jobs: BackgroundDispatcher,
) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트: DB 세션과 서비스를 오버라이드합니다."""
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_user_service] = lambda: user_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await jobs.drain(timeout=5)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 테스트용 데이터 생성
# ---------------------------------------------------------------------------
async def make_user(
    db: AsyncSession,
    email: str,
    username: str,
    password: str = DEFAULT_PASSWORD,
    role: UserRole = UserRole.USER,
    is_active: bool = True,
    is_verified: bool = True,
) -> User:
    """사용자를 직접 생성합니다 (Insert a user without going through register)."""
    user = User(
        email=email,
        username=username,
        password_hash=hash_password(password, 10),
        role=role,
        is_active=is_active,
        is_verified=is_verified,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def alice(db: AsyncSession) -> User:
    """일반 사용자."""
    return await make_user(db, "alice@example.com", "alice")


@pytest_asyncio.fixture
async def bob(db: AsyncSession) -> User:
    """다른 일반 사용자."""
    return await make_user(db, "bob@example.com", "bob")


@pytest_asyncio.fixture
async def admin(db: AsyncSession) -> User:
    """관리자 사용자."""
    return await make_user(db, "admin@example.com", "admin", role=UserRole.ADMIN)


def make_token(service: AuthService, user: User) -> str:
    """테스트용 JWT 액세스 토큰을 생성합니다."""
    return service.tokens.create_access_token(
        TokenClaims(user_id=str(user.id), email=user.email, role=user.role.value)
    )


@pytest.fixture
def alice_token(auth_service: AuthService, alice: User) -> str:
    return make_token(auth_service, alice)


@pytest.fixture
def admin_token(auth_service: AuthService, admin: User) -> str:
    return make_token(auth_service, admin)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def login(client: AsyncClient, email: str, password: str = DEFAULT_PASSWORD) -> dict[str, Any]:
    """로그인 후 응답 data를 반환합니다."""
    res = await client.post(f"{AUTH}/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["data"]
