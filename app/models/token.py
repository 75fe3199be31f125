"""리프레시 토큰 모델 (JWT 리프레시 토큰 저장).

Refresh Token model. One row per live session; the row is the authoritative
record of the session, so deleting it revokes the token immediately.
"""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid6 import uuid7

from app.database import Base, UTCDateTime, utcnow


class RefreshToken(Base):
    """리프레시 토큰 테이블.

    Refresh token ledger table. Rows are never updated in place: rotation
    deletes the old row and inserts a new one.

    Attributes:
        id: 고유 식별자 (Primary key UUID v7)
        user_id: 소유 사용자 ID (Owner user UUID)
        token: JWT 리프레시 토큰 문자열 (Signed refresh token string, unique)
        expires_at: 만료 일시 (Authoritative expiration timestamp)
        created_at: 생성 일시 (Creation timestamp)
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid7)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token: Mapped[str] = mapped_column(String(512), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="refresh_tokens")
