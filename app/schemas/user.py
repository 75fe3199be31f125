"""사용자 관리 관련 Pydantic 요청/응답 스키마 정의.

User management request/response schema definitions used by the
``/users`` endpoints.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field

from app.models.user import UserRole
from app.schemas.common import CamelModel

SortField = Literal["createdAt", "updatedAt", "email", "username"]
SortOrder = Literal["asc", "desc"]


class UserOut(CamelModel):
    """사용자 상세 응답 스키마.

    User detail response schema.

    Attributes:
        id: 사용자 UUID (User unique identifier)
        email: 이메일 (Email address)
        username: 사용자명 (Username)
        role: 역할 (USER or ADMIN)
        is_active: 활성 상태 (Account active status)
        is_verified: 이메일 인증 여부 (Email verification status)
        created_at: 생성 일시 (Creation timestamp)
        updated_at: 수정 일시 (Last update timestamp)
    """

    id: UUID
    email: str
    username: str
    role: UserRole
    is_active: bool
    is_verified: bool
    created_at: datetime
    updated_at: datetime


class UserUpdateInput(CamelModel):
    """사용자 수정 요청 스키마 (부분 업데이트).

    Partial update; omitted fields remain unchanged.
    """

    email: EmailStr | None = None  # 변경할 이메일 (New email, optional)
    username: str | None = Field(default=None, min_length=3, max_length=100)


class UserStatusInput(CamelModel):
    """계정 활성화/비활성화 요청 스키마.

    Attributes:
        is_active: 활성 상태 (Target active status)
        reason: 비활성화 사유 (Reason sent in the account-locked email)
    """

    is_active: bool
    reason: str | None = Field(default=None, max_length=500)

