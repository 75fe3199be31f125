"""인증 서비스: 회원가입, 로그인, 토큰 갱신, 비밀번호 재설정, 이메일 인증.

Auth Service: Business logic for the authentication/session lifecycle:
registration, credential login, refresh-token rotation, logout, password
reset and email verification. Each flow commits its own state change before
notifications are dispatched in the background, so a failing email can never
undo or fail the operation.
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, settings
from app.models.user import User
from app.repositories.user_repository import user_repository
from app.schemas.auth import (
    LoginInput,
    LoginResult,
    RegisterInput,
    TokenPair,
    UserPublic,
)
from app.schemas.common import MessageOut
from app.services.email_service import EmailService, email_service
from app.services.refresh_token_ledger import INVALID_REFRESH_TOKEN, RefreshTokenLedger
from app.utils.background import BackgroundDispatcher, dispatcher
from app.utils.exceptions import BadRequestError, ConflictError, UnauthorizedError
from app.utils.jwt import REFRESH_TOKEN_TYPE, TokenClaims, TokenCodec, TokenError
from app.utils.one_time_token import OneTimeTokenIssuer, one_time_tokens
from app.utils.password import burn_password_check, hash_password, verify_password

logger = logging.getLogger(__name__)

USER_EXISTS = "User with this email or username already exists"
INVALID_CREDENTIALS = "Invalid credentials"
INVALID_RESET_TOKEN = "Invalid or expired reset token"
INVALID_VERIFY_TOKEN = "Invalid or expired verification token"
ALREADY_VERIFIED = "Email is already verified"
RESET_REQUESTED = "If an account with this email exists, a password reset email has been sent."
VERIFICATION_REQUESTED = "If an account with this email exists, a verification email has been sent."
PASSWORD_RESET_DONE = "Password has been reset successfully"
EMAIL_VERIFIED = "Email verified successfully"
LOGGED_OUT = "Logged out successfully"


def _claims_for(user: User) -> TokenClaims:
    return TokenClaims(user_id=str(user.id), email=user.email, role=user.role.value)


class AuthService:
    """인증 관련 비즈니스 로직을 처리하는 서비스.

    Service handling the authentication lifecycle.

    Args:
        config: 토큰 TTL, 비밀키, bcrypt 비용을 담은 설정 (Settings)
        mailer: 알림 이메일 발송기 (Notification sink)
        jobs: 백그라운드 작업 디스패처 (Fire-and-forget dispatcher)

    Attributes:
        tokens: JWT 서명/검증기 (Token codec, also used by the bearer dependency)
        ledger: 리프레시 토큰 원장 (Refresh token ledger)
        one_time: 일회용 토큰 발급기 (One-time token issuer)
    """

    def __init__(
        self,
        config: Settings,
        mailer: EmailService,
        jobs: BackgroundDispatcher,
        one_time: OneTimeTokenIssuer = one_time_tokens,
    ) -> None:
        self.config: Settings = config
        self.tokens: TokenCodec = TokenCodec(config)
        self.ledger: RefreshTokenLedger = RefreshTokenLedger(self.tokens, config)
        self.one_time: OneTimeTokenIssuer = one_time
        self.mailer: EmailService = mailer
        self.jobs: BackgroundDispatcher = jobs
        self.reset_ttl: timedelta = timedelta(seconds=config.RESET_TOKEN_EXPIRE_SECONDS)
        self.verify_ttl: timedelta = timedelta(seconds=config.VERIFY_TOKEN_EXPIRE_SECONDS)

    async def register(self, db: AsyncSession, data: RegisterInput) -> UserPublic:
        """회원가입을 처리합니다.

        Create an unverified USER account, attach a 24h verification token and
        send the verification and welcome emails in the background.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 회원가입 요청 데이터 (Registration input)

        Returns:
            UserPublic: 생성된 사용자 공개 정보 (Public view of the new user)

        Raises:
            ConflictError: 이메일 또는 사용자명이 이미 존재할 때
                           (Email or username already taken)
        """
        existing: User | None = await user_repository.find_by_email_or_username(
            db, data.email, data.username
        )
        if existing is not None:
            raise ConflictError(USER_EXISTS)

        verification = self.one_time.issue(self.verify_ttl)
        try:
            user: User = await user_repository.create(
                db,
                {
                    "email": data.email,
                    "username": data.username,
                    "password_hash": hash_password(data.password, self.config.BCRYPT_ROUNDS),
                    "is_verified": False,
                    "verify_token": verification.token,
                    "verify_token_expires_at": verification.expires_at,
                },
            )
            await db.commit()
        except IntegrityError as exc:
            # 동시 가입 경쟁에서 유니크 제약 위반 (Lost a concurrent registration race)
            await db.rollback()
            raise ConflictError(USER_EXISTS) from exc

        logger.info("Registered user %s", user.id)
        self.jobs.dispatch(
            self.mailer.send_email_verification_email(user.email, user.username, verification.token),
            label="verification-email",
        )
        self.jobs.dispatch(
            self.mailer.send_welcome_email(user.email, user.username),
            label="welcome-email",
        )
        return UserPublic.model_validate(user)

    async def login(
        self,
        db: AsyncSession,
        data: LoginInput,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResult:
        """이메일/비밀번호 로그인을 처리합니다.

        Unknown email, wrong password and inactive account all fail with the
        same message, and each path performs exactly one bcrypt comparison.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 로그인 요청 데이터 (Login input)
            ip: 클라이언트 IP (Client address for the login alert)
            user_agent: 클라이언트 User-Agent (Client user agent)

        Returns:
            LoginResult: 사용자 정보와 토큰 쌍 (User plus token pair)

        Raises:
            UnauthorizedError: 잘못된 인증 정보 또는 비활성 계정
                               (Invalid credentials or inactive account)
        """
        user: User | None = await user_repository.get_by_email(db, data.email)
        if user is None:
            burn_password_check(data.password)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not verify_password(data.password, user.password_hash) or not user.is_active:
            raise UnauthorizedError(INVALID_CREDENTIALS)

        claims: TokenClaims = _claims_for(user)
        access_token: str = self.tokens.create_access_token(claims)
        refresh_token: str = await self.ledger.issue(db, claims)
        await db.commit()

        self.jobs.dispatch(
            self.mailer.send_login_alert_email(user.email, user.username, ip or "unknown", user_agent),
            label="login-alert-email",
        )
        return LoginResult(
            user=UserPublic.model_validate(user),
            access_token=access_token,
            refresh_token=refresh_token,
        )

    async def refresh_token(self, db: AsyncSession, refresh_token: str) -> TokenPair:
        """리프레시 토큰을 회전시켜 새 토큰 쌍을 발급합니다.

        Rotate a refresh token: the old ledger row is deleted and a new one is
        inserted in the same transaction. The old token is never accepted
        again; when two requests race on it only one of them succeeds.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            refresh_token: 기존 리프레시 토큰 (Current refresh token)

        Returns:
            TokenPair: 새 액세스/리프레시 토큰 (New token pair)

        Raises:
            UnauthorizedError: 서명 오류, 만료, 원장에 없음, 비활성 사용자
                               (Bad signature, expired, not in ledger, inactive owner)
        """
        try:
            verified: TokenClaims = self.tokens.verify(refresh_token)
        except TokenError as exc:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN) from exc
        if verified.token_type != REFRESH_TOKEN_TYPE:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        claims: TokenClaims = await self.ledger.redeem(db, refresh_token)
        if not await self.ledger.consume(db, refresh_token):
            await db.rollback()
            logger.warning("Refresh token for user %s was consumed concurrently", claims.user_id)
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        access_token: str = self.tokens.create_access_token(claims)
        new_refresh_token: str = await self.ledger.issue(db, claims)
        await db.commit()
        return TokenPair(access_token=access_token, refresh_token=new_refresh_token)

    async def logout(self, db: AsyncSession, refresh_token: str) -> MessageOut:
        """로그아웃: 리프레시 토큰을 원장에서 삭제합니다.

        Revoke one session. Revoking a token that is already gone succeeds.
        """
        revoked: bool = await self.ledger.revoke(db, refresh_token)
        await db.commit()
        if not revoked:
            logger.debug("Logout with unknown refresh token")
        return MessageOut(message=LOGGED_OUT)

    async def request_password_reset(self, db: AsyncSession, email: str) -> MessageOut:
        """비밀번호 재설정 메일을 요청합니다.

        The response is identical whether or not the account exists. A new
        request replaces any previously issued reset token.
        """
        user: User | None = await user_repository.get_by_email(db, email)
        if user is None:
            return MessageOut(message=RESET_REQUESTED)

        reset = self.one_time.issue(self.reset_ttl)
        user.reset_token = reset.token
        user.reset_token_expires_at = reset.expires_at
        await db.commit()

        self.jobs.dispatch(
            self.mailer.send_password_reset_email(user.email, user.username, reset.token),
            label="password-reset-email",
        )
        return MessageOut(message=RESET_REQUESTED)

    async def reset_password(self, db: AsyncSession, token: str, new_password: str) -> MessageOut:
        """재설정 토큰으로 비밀번호를 변경합니다.

        Set a new password, clear the reset token and end every existing
        session of the user, all in one transaction.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            token: 재설정 토큰 (Reset token)
            new_password: 새 비밀번호 (New plain text password)

        Returns:
            MessageOut: 완료 메시지 (Confirmation message)

        Raises:
            BadRequestError: 토큰이 없거나 만료되었거나 이미 사용됨
                             (Token unknown, expired or already used)
        """
        now: datetime = datetime.now(timezone.utc)
        user: User | None = await user_repository.get_by_reset_token(db, token, now)
        if user is None or not self.one_time.is_valid(
            user.reset_token, user.reset_token_expires_at, token, now
        ):
            raise BadRequestError(INVALID_RESET_TOKEN)

        consumed: bool = await user_repository.consume_one_time_token(
            db,
            user,
            "reset",
            token,
            now,
            {
                "password_hash": hash_password(new_password, self.config.BCRYPT_ROUNDS),
                "reset_token": None,
                "reset_token_expires_at": None,
            },
        )
        if not consumed:
            await db.rollback()
            raise BadRequestError(INVALID_RESET_TOKEN)

        await self.ledger.revoke_all(db, user.id)
        await db.commit()
        logger.info("Password reset for user %s", user.id)
        return MessageOut(message=PASSWORD_RESET_DONE)

    async def verify_email(self, db: AsyncSession, token: str) -> MessageOut:
        """이메일 인증 토큰을 확인하고 계정을 인증 상태로 전환합니다.

        Raises:
            BadRequestError: 토큰이 유효하지 않거나 이미 인증된 경우
                             (Invalid/expired token, or already verified)
        """
        now: datetime = datetime.now(timezone.utc)
        user: User | None = await user_repository.get_by_verify_token(db, token, now)
        if user is None:
            raise BadRequestError(INVALID_VERIFY_TOKEN)
        if user.is_verified:
            raise BadRequestError(ALREADY_VERIFIED)

        consumed: bool = await user_repository.consume_one_time_token(
            db,
            user,
            "verify",
            token,
            now,
            {"is_verified": True, "verify_token": None, "verify_token_expires_at": None},
        )
        if not consumed:
            await db.rollback()
            raise BadRequestError(INVALID_VERIFY_TOKEN)

        await db.commit()
        logger.info("Verified email for user %s", user.id)
        return MessageOut(message=EMAIL_VERIFIED)

    async def resend_verification_email(self, db: AsyncSession, email: str) -> MessageOut:
        """인증 이메일을 다시 보냅니다.

        Unknown emails get the generic message. Verified accounts are told so
        and no token is issued. Otherwise a fresh 24h token replaces the old one.
        """
        user: User | None = await user_repository.get_by_email(db, email)
        if user is None:
            return MessageOut(message=VERIFICATION_REQUESTED)
        if user.is_verified:
            return MessageOut(message=ALREADY_VERIFIED)

        verification = self.one_time.issue(self.verify_ttl)
        user.verify_token = verification.token
        user.verify_token_expires_at = verification.expires_at
        await db.commit()

        self.jobs.dispatch(
            self.mailer.send_email_verification_email(user.email, user.username, verification.token),
            label="verification-email",
        )
        return MessageOut(message=VERIFICATION_REQUESTED)

    def get_profile(self, user: User) -> UserPublic:
        """현재 사용자 프로필 (Public profile of the authenticated user)."""
        return UserPublic.model_validate(user)


# 싱글턴 인스턴스: Singleton instance
auth_service: AuthService = AuthService(settings, email_service, dispatcher)
