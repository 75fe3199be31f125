"""SQLAlchemy ORM 모델 패키지 (모든 도메인 모델의 중앙 임포트 지점).

SQLAlchemy ORM models package. Importing from this package registers every
model with the metadata, which Alembic and relationship resolution rely on.

Modules:
    user: 사용자 및 역할 enum (User and UserRole)
    token: 리프레시 토큰 (Refresh tokens)
"""

from app.models.user import User, UserRole
from app.models.token import RefreshToken

__all__ = [
    "User", "UserRole",
    "RefreshToken",
]
