"""사용자 라우터: 사용자 목록, 조회, 수정, 삭제, 활성화 토글.

User Router: Listing, retrieval, update, deletion and the activation toggle.
Listing, deletion and status changes are ADMIN-only; a user may read and
update their own account.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_user_service, require_admin
from app.database import get_db
from app.models.user import User
from app.schemas.common import ApiResponse, PageMeta
from app.schemas.user import (
    SortField,
    SortOrder,
    UserOut,
    UserStatusInput,
    UserUpdateInput,
)
from app.services.user_service import UserService

router: APIRouter = APIRouter()

Db = Annotated[AsyncSession, Depends(get_db)]
Users = Annotated[UserService, Depends(get_user_service)]


@router.get("", response_model=ApiResponse[list[UserOut]])
async def list_users(
    db: Db,
    service: Users,
    _: Annotated[User, Depends(require_admin)],
    page: Annotated[int, Query(ge=1, description="페이지 번호")] = 1,
    limit: Annotated[int, Query(ge=1, le=100, description="페이지당 항목 수")] = 10,
    sort_by: Annotated[SortField, Query(alias="sortBy")] = "createdAt",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = "desc",
) -> ApiResponse[list[UserOut]]:
    """사용자 목록을 페이지네이션하여 조회합니다.

    List users with ``page``, ``limit``, ``sortBy`` and ``sortOrder``.
    """
    users: list[UserOut]
    meta: PageMeta
    users, meta = await service.list_users(db, page, limit, sort_by, sort_order)
    return ApiResponse(message="Users retrieved successfully", data=users, meta=meta)


@router.get("/{user_id}", response_model=ApiResponse[UserOut])
async def get_user(
    user_id: UUID,
    db: Db,
    service: Users,
    current_user: Annotated[User, Depends(get_current_user)],
) -> ApiResponse[UserOut]:
    """사용자 상세 정보를 조회합니다 (Self or ADMIN)."""
    service.ensure_self_or_admin(current_user, user_id)
    return ApiResponse(message="User retrieved successfully", data=await service.get_user(db, user_id))


@router.patch("/{user_id}", response_model=ApiResponse[UserOut])
async def update_user(
    user_id: UUID,
    data: UserUpdateInput,
    db: Db,
    service: Users,
    current_user: Annotated[User, Depends(get_current_user)],
) -> ApiResponse[UserOut]:
    """사용자 정보를 수정합니다 (Self or ADMIN)."""
    service.ensure_self_or_admin(current_user, user_id)
    result: UserOut = await service.update_user(db, user_id, data)
    return ApiResponse(message="User updated successfully", data=result)


@router.delete("/{user_id}", response_model=ApiResponse[None])
async def delete_user(
    user_id: UUID,
    db: Db,
    service: Users,
    _: Annotated[User, Depends(require_admin)],
) -> ApiResponse[None]:
    """사용자를 삭제합니다 (Hard delete, sessions included)."""
    await service.delete_user(db, user_id)
    return ApiResponse(message="User deleted successfully")


@router.patch("/{user_id}/status", response_model=ApiResponse[UserOut])
async def set_user_status(
    user_id: UUID,
    data: UserStatusInput,
    db: Db,
    service: Users,
    _: Annotated[User, Depends(require_admin)],
) -> ApiResponse[UserOut]:
    """사용자 활성/비활성 상태를 변경합니다.

    Deactivation ends every session and emails the owner.
    """
    result: UserOut = await service.set_active(db, user_id, data.is_active, data.reason)
    message: str = "User activated successfully" if data.is_active else "User deactivated successfully"
    return ApiResponse(message=message, data=result)
