"""사용자 서비스: 사용자 CRUD 및 계정 활성화 비즈니스 로직.

User Service: Business logic for user listing, retrieval, update, deletion
and the admin activation toggle. Deactivating an account ends all of its
sessions and notifies the owner by email.
"""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User, UserRole
from app.repositories.auth_repository import auth_repository
from app.repositories.user_repository import user_repository
from app.schemas.common import PageMeta
from app.schemas.user import SortField, SortOrder, UserOut, UserUpdateInput
from app.services.email_service import EmailService, email_service
from app.utils.background import BackgroundDispatcher, dispatcher
from app.utils.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.utils.pagination import build_page_meta

logger = logging.getLogger(__name__)

DEFAULT_LOCK_REASON = "Account deactivated by an administrator"


class UserService:
    """사용자 관련 비즈니스 로직을 처리하는 서비스.

    Service handling user business logic. Write operations commit their own
    transaction.

    Args:
        mailer: 알림 이메일 발송기 (Notification sink)
        jobs: 백그라운드 작업 디스패처 (Fire-and-forget dispatcher)
    """

    def __init__(self, mailer: EmailService, jobs: BackgroundDispatcher) -> None:
        self.mailer: EmailService = mailer
        self.jobs: BackgroundDispatcher = jobs

    @staticmethod
    def ensure_self_or_admin(actor: User, user_id: UUID) -> None:
        """본인 또는 관리자만 허용합니다 (Only the user themself or an ADMIN).

        Raises:
            ForbiddenError: 다른 사용자의 정보에 접근할 때 (Accessing someone else's account)
        """
        if actor.role != UserRole.ADMIN and actor.id != user_id:
            raise ForbiddenError("You can only access your own account")

    async def _get_or_404(self, db: AsyncSession, user_id: UUID) -> User:
        user: User | None = await user_repository.get_by_id(db, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list_users(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        sort_by: SortField = "createdAt",
        sort_order: SortOrder = "desc",
    ) -> tuple[list[UserOut], PageMeta]:
        """정렬 및 페이지네이션된 사용자 목록을 조회합니다.

        List users ordered by an allowed column.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            page: 페이지 번호, 1부터 (1-based page number)
            limit: 페이지당 항목 수 (Page size)
            sort_by: 정렬 컬럼 API 이름 (Column name as exposed by the API)
            sort_order: "asc" 또는 "desc" (Sort direction)

        Returns:
            tuple[list[UserOut], PageMeta]: (사용자 목록, 페이지 메타)
        """
        users: Sequence[User]
        users, total = await user_repository.list_sorted(db, page, limit, sort_by, sort_order)
        return [UserOut.model_validate(u) for u in users], build_page_meta(page, limit, total)

    async def get_user(self, db: AsyncSession, user_id: UUID) -> UserOut:
        """사용자 상세 정보를 조회합니다.

        Raises:
            NotFoundError: 사용자를 찾을 수 없을 때 (User not found)
        """
        return UserOut.model_validate(await self._get_or_404(db, user_id))

    async def update_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        data: UserUpdateInput,
    ) -> UserOut:
        """사용자 이메일/사용자명을 수정합니다.

        Update email and/or username. Each changed value is checked for
        uniqueness before writing.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 사용자 ID (User UUID)
            data: 수정할 필드 (Fields to change)

        Returns:
            UserOut: 수정된 사용자 (Updated user)

        Raises:
            NotFoundError: 사용자를 찾을 수 없을 때 (User not found)
            ConflictError: 이메일 또는 사용자명이 이미 사용 중일 때
                           (Email or username already in use)
        """
        user: User = await self._get_or_404(db, user_id)
        changes: dict[str, str] = {}

        if data.email and data.email != user.email:
            if await user_repository.get_by_email(db, data.email) is not None:
                raise ConflictError("Email already in use")
            changes["email"] = data.email

        if data.username and data.username != user.username:
            if await user_repository.get_by_username(db, data.username) is not None:
                raise ConflictError("Username already in use")
            changes["username"] = data.username

        if changes:
            try:
                user = await user_repository.update(db, user, changes)
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise ConflictError("Email or username already in use") from exc

        return UserOut.model_validate(user)

    async def delete_user(self, db: AsyncSession, user_id: UUID) -> None:
        """사용자와 그 세션을 삭제합니다 (Delete the user and all of its refresh tokens)."""
        user: User = await self._get_or_404(db, user_id)
        await auth_repository.delete_user_refresh_tokens(db, user.id)
        await user_repository.delete(db, user)
        await db.commit()
        logger.info("Deleted user %s", user_id)

    async def set_active(
        self,
        db: AsyncSession,
        user_id: UUID,
        is_active: bool,
        reason: str | None = None,
    ) -> UserOut:
        """계정을 활성화 또는 비활성화합니다.

        Toggle ``is_active``. Deactivation revokes every refresh token of the
        user and sends the account-locked email in the background.

        Raises:
            NotFoundError: 사용자를 찾을 수 없을 때 (User not found)
        """
        user: User = await self._get_or_404(db, user_id)
        was_active: bool = user.is_active
        user = await user_repository.update(db, user, {"is_active": is_active})
        if not is_active:
            await auth_repository.delete_user_refresh_tokens(db, user.id)
        await db.commit()

        if was_active and not is_active:
            logger.info("Deactivated user %s", user.id)
            self.jobs.dispatch(
                self.mailer.send_account_locked_email(
                    user.email, user.username, reason or DEFAULT_LOCK_REASON
                ),
                label="account-locked-email",
            )
        return UserOut.model_validate(user)


# 싱글턴 인스턴스 (Singleton instance)
user_service: UserService = UserService(email_service, dispatcher)
