"""JWT 토큰 서명 및 검증 모듈 (Token Codec).

JWT token signing and verification module.
Access and refresh tokens share the same key and algorithm and differ only in
TTL and the ``type`` discriminator. Refresh-token trust ultimately rests on the
refresh token ledger, not on the signature alone.

JWT Payload Structure:
    {
        "userId": "user_uuid",      # 사용자 ID (User identifier)
        "email": "a@x.com",         # 이메일 (Email)
        "role": "USER",             # 역할 (Role)
        "type": "access"|"refresh", # 토큰 유형 (Token type discriminator)
        "jti": "random hex",        # 토큰 고유값 (Makes every token distinct)
        "iat": 1234567890,          # 발급 시간 (Issued at)
        "exp": 1234567890           # 만료 시간 (Expiration)
    }
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from app.config import Settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    """토큰 검증 실패 기본 예외 (Base token verification failure)."""


class TokenExpiredError(TokenError):
    """만료된 토큰 (Token's embedded expiry has passed)."""


class InvalidSignatureError(TokenError):
    """서명 또는 형식이 잘못된 토큰 (Bad signature or malformed token)."""


@dataclass(frozen=True)
class TokenClaims:
    """토큰에 담기는 신원 클레임 (Identity claims carried by a bearer token).

    Attributes:
        user_id: 사용자 ID 문자열 (User UUID as string)
        email: 이메일 (Email)
        role: 역할 이름 (Role name)
        token_type: 토큰 유형 (``access`` or ``refresh``, None when signing)
        expires_at: 만료 일시 (Embedded expiry, None when signing)
    """

    user_id: str
    email: str
    role: str
    token_type: str | None = None
    expires_at: datetime | None = None

    def to_payload(self) -> dict[str, Any]:
        return {"userId": self.user_id, "email": self.email, "role": self.role}


class TokenCodec:
    """JWT 서명/검증기.

    Stateless signer/verifier bound to a ``Settings`` instance.

    Args:
        config: 비밀키와 TTL을 담은 설정 (Settings holding the secret and TTLs)
    """

    def __init__(self, config: Settings) -> None:
        self._secret: str = config.JWT_SECRET_KEY
        self._algorithm: str = config.JWT_ALGORITHM
        self.access_ttl_seconds: int = config.JWT_ACCESS_TOKEN_EXPIRE_SECONDS
        self.refresh_ttl_seconds: int = config.JWT_REFRESH_TOKEN_EXPIRE_SECONDS

    def sign(self, claims: TokenClaims, ttl_seconds: int, token_type: str) -> str:
        """클레임을 서명된 JWT로 인코딩합니다.

        Encode claims into a signed JWT expiring ``ttl_seconds`` from now.

        Args:
            claims: 신원 클레임 (Identity claims)
            ttl_seconds: 유효 기간(초) (Time to live in seconds)
            token_type: 토큰 유형 (``access`` or ``refresh``)

        Returns:
            str: 인코딩된 JWT 문자열 (Encoded JWT string)
        """
        now: datetime = datetime.now(timezone.utc)
        payload: dict[str, Any] = claims.to_payload()
        payload.update(
            {
                "type": token_type,
                "jti": secrets.token_hex(16),
                "iat": now,
                "exp": now + timedelta(seconds=ttl_seconds),
            }
        )
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """JWT 서명과 만료를 검증하고 클레임을 반환합니다.

        Verify signature and embedded expiry and return the claims.

        Args:
            token: JWT 문자열 (Encoded JWT string)

        Returns:
            TokenClaims: 디코딩된 클레임 (Decoded claims)

        Raises:
            TokenExpiredError: 토큰 만료 시 (When the token has expired)
            InvalidSignatureError: 서명 불일치/형식 오류 (Bad signature or payload)
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidSignatureError("Invalid token") from exc

        try:
            return TokenClaims(
                user_id=str(payload["userId"]),
                email=str(payload["email"]),
                role=str(payload["role"]),
                token_type=payload.get("type"),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidSignatureError("Invalid token payload") from exc

    def create_access_token(self, claims: TokenClaims) -> str:
        """액세스 토큰 생성 (Short-lived access token)."""
        return self.sign(claims, self.access_ttl_seconds, ACCESS_TOKEN_TYPE)

    def create_refresh_token(self, claims: TokenClaims) -> str:
        """리프레시 토큰 생성 (Refresh token; must also be recorded in the ledger)."""
        return self.sign(claims, self.refresh_ttl_seconds, REFRESH_TOKEN_TYPE)
