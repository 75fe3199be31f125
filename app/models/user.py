"""사용자 SQLAlchemy ORM 모델 정의.

User SQLAlchemy ORM model definition.
Holds identity, credentials, role, and the one-time token state used by the
password reset and email verification flows.

Tables:
    - users: 사용자 계정 (User accounts)
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Enum, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid6 import uuid7

from app.database import Base, UTCDateTime, utcnow


class UserRole(str, enum.Enum):
    """사용자 역할 (User role)."""

    USER = "USER"
    ADMIN = "ADMIN"


class User(Base):
    """사용자 모델 (시스템 사용자 계정 정보).

    User model. Email and username are each globally unique.
    ``verify_token`` and ``reset_token`` are single-use and are cleared as
    soon as they are consumed.

    Attributes:
        id: UUID v7 고유 식별자 (Time-sortable unique identifier)
        email: 이메일 (Email address, unique)
        username: 사용자명 (Username, unique)
        password_hash: bcrypt 해시된 비밀번호 (bcrypt-hashed password)
        role: 역할 (USER or ADMIN)
        is_active: 활성 상태 (Active status, toggled by admins)
        is_verified: 이메일 인증 여부 (Email verification status)
        verify_token: 이메일 인증 토큰 (Pending email verification token)
        verify_token_expires_at: 인증 토큰 만료 일시 (Verification token expiry)
        reset_token: 비밀번호 재설정 토큰 (Pending password reset token)
        reset_token_expires_at: 재설정 토큰 만료 일시 (Reset token expiry)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 수정 일시 UTC (Last update timestamp)

    Relationships:
        refresh_tokens: 리프레시 토큰 목록 (Active sessions, deleted with the user)
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid7)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    # 비밀번호 해시 (평문 저장 금지, never store plaintext)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"), default=UserRole.USER, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # 일회용 토큰 (One-time tokens, cleared on use)
    verify_token: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    verify_token_expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    reset_token: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    reset_token_expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    # 관계 (Relationships)
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
