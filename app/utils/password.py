"""비밀번호 해싱 및 검증 유틸리티 모듈.

Password hashing and verification utility module.
Uses bcrypt directly; passwords are never stored in plain text.
"""

import bcrypt

DEFAULT_ROUNDS = 10

# 존재하지 않는 계정 로그인 시 비교용 해시 (Hash compared against for unknown accounts)
_DUMMY_HASH: bytes = bcrypt.hashpw(b"dummy-password-for-timing", bcrypt.gensalt(DEFAULT_ROUNDS))


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """평문 비밀번호를 bcrypt 해시로 변환합니다.

    Hash a plain text password using bcrypt with a random salt.

    Args:
        password: 평문 비밀번호 (Plain text password to hash)
        rounds: bcrypt 비용 계수 (Cost factor, log2 of iterations)

    Returns:
        str: bcrypt 해시 문자열 (Bcrypt hash string, ~60 chars)
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """평문 비밀번호와 bcrypt 해시를 비교 검증합니다.

    Verify a plain text password against a bcrypt hash.

    Args:
        plain_password: 검증할 평문 비밀번호 (Plain text password to verify)
        hashed_password: 저장된 bcrypt 해시 (Stored bcrypt hash)

    Returns:
        bool: 일치하면 True (True if password matches hash)
    """
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # 손상된 해시 또는 72바이트 초과 입력 (Malformed hash or over-long input)
        return False


def burn_password_check(plain_password: str) -> None:
    """계정이 없을 때도 동일한 해시 비교 비용을 지불합니다.

    Run one bcrypt comparison against a fixed hash so that a login for an
    unknown email costs the same as one with a wrong password.
    """
    try:
        bcrypt.checkpw(plain_password.encode("utf-8"), _DUMMY_HASH)
    except ValueError:
        pass
