"""일회용 토큰 발급기 (비밀번호 재설정 / 이메일 인증).

One-time token issuer shared by the password reset and email verification
flows. A token is a random URL-safe value with an absolute expiry stored on
the user row; it gates exactly one state transition and is cleared on use.
"""

import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

TOKEN_BYTES = 32


@dataclass(frozen=True)
class OneTimeToken:
    """발급된 일회용 토큰 (Issued one-time token).

    Attributes:
        token: 토큰 값 (Unguessable URL-safe value)
        expires_at: 절대 만료 시각 UTC (Absolute expiry)
    """

    token: str
    expires_at: datetime


class OneTimeTokenIssuer:
    """일회용 토큰 발급 및 검증."""

    def issue(self, ttl: timedelta, now: datetime | None = None) -> OneTimeToken:
        """새 일회용 토큰을 발급합니다.

        Issue a fresh token expiring ``ttl`` after ``now``.

        Args:
            ttl: 유효 기간 (Time to live)
            now: 기준 시각, 기본값은 현재 UTC (Reference time, defaults to now)

        Returns:
            OneTimeToken: 토큰 값과 만료 시각 (Token value and expiry)
        """
        issued_at: datetime = now or datetime.now(timezone.utc)
        return OneTimeToken(token=secrets.token_urlsafe(TOKEN_BYTES), expires_at=issued_at + ttl)

    @staticmethod
    def is_valid(
        stored_token: str | None,
        stored_expires_at: datetime | None,
        supplied_token: str,
        now: datetime | None = None,
    ) -> bool:
        """저장된 토큰과 제출된 토큰이 일치하고 만료 전인지 확인합니다.

        True iff the stored token equals the supplied one and its expiry is
        strictly after ``now``.
        """
        if not stored_token or stored_expires_at is None or not supplied_token:
            return False
        current: datetime = now or datetime.now(timezone.utc)
        if stored_expires_at <= current:
            return False
        return hmac.compare_digest(stored_token.encode("utf-8"), supplied_token.encode("utf-8"))


# 싱글턴 인스턴스 (Singleton instance)
one_time_tokens: OneTimeTokenIssuer = OneTimeTokenIssuer()
