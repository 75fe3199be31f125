"""인증 API 테스트: 회원가입, 로그인, 토큰 갱신, 로그아웃, /me 엔드포인트.

Auth API tests: Registration, login, refresh rotation, logout and the /me
endpoint, including the credential-enumeration and token-reuse edge cases.
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_auth_service
from app.main import app
from app.models.token import RefreshToken
from app.models.user import User
from app.repositories.user_repository import user_repository
from app.services.auth_service import AuthService
from app.services.email_service import EmailService
from app.utils.background import BackgroundDispatcher
from app.utils.jwt import TokenClaims
from app.utils.password import verify_password
from tests.conftest import AUTH, DEFAULT_PASSWORD, auth_header, login


async def _user_by_email(db: AsyncSession, email: str) -> User:
    return (await db.execute(select(User).where(User.email == email))).scalar_one()


# ===== Register =====

class TestRegister:
    """회원가입 테스트."""

    async def test_register_success(self, client: AsyncClient, db, jobs, mailbox):
        """회원가입 성공: 미인증 USER 생성, 비밀번호/토큰 비노출."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "carol@example.com",
            "password": "correct-horse-battery",
            "username": "carol",
        })
        assert res.status_code == 201
        body = res.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"
        data = body["data"]
        assert data["email"] == "carol@example.com"
        assert data["username"] == "carol"
        assert data["role"] == "USER"
        assert data["isVerified"] is False
        assert "id" in data and "createdAt" in data
        for forbidden in ("password", "passwordHash", "verifyToken", "resetToken"):
            assert forbidden not in data

        user = await _user_by_email(db, "carol@example.com")
        assert user.password_hash != "correct-horse-battery"
        assert verify_password("correct-horse-battery", user.password_hash)
        assert user.verify_token is not None
        assert user.verify_token_expires_at > datetime.now(timezone.utc) + timedelta(hours=23)

        await jobs.drain()
        subjects = mailbox.subjects("carol@example.com")
        assert "Verify Your Email Address" in subjects
        assert "Welcome to Auth API" in subjects
        verification = next(m for m in mailbox.to("carol@example.com") if m["subject"] == "Verify Your Email Address")
        assert f"http://frontend.test/verify-email?token={user.verify_token}" in verification["text"]

    async def test_register_assigns_uuid7_ids(self, client: AsyncClient):
        """사용자 ID는 생성 순서대로 정렬되는 UUID v7."""
        ids = []
        for name in ("dave", "erin"):
            res = await client.post(f"{AUTH}/register", json={
                "email": f"{name}@example.com",
                "password": "correct-horse-battery",
                "username": name,
            })
            ids.append(UUID(res.json()["data"]["id"]))
        assert all(i.version == 7 for i in ids)
        assert ids[0] < ids[1]

    async def test_register_race_hits_unique_constraint(
        self, client: AsyncClient, alice, monkeypatch
    ):
        """사전 확인을 통과한 동시 가입도 유니크 제약으로 409."""
        async def no_match(*args, **kwargs):
            return None

        monkeypatch.setattr(user_repository, "find_by_email_or_username", no_match)
        res = await client.post(f"{AUTH}/register", json={
            "email": "alice@example.com",
            "password": "another-password",
            "username": "alice-again",
        })
        assert res.status_code == 409
        assert res.json()["message"] == "User with this email or username already exists"

    async def test_register_duplicate_email(self, client: AsyncClient, alice):
        """중복 이메일 → 409."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "alice@example.com",
            "password": "another-password",
            "username": "alice2",
        })
        assert res.status_code == 409
        body = res.json()
        assert body["success"] is False
        assert body["message"] == "User with this email or username already exists"
        assert body["error"]["code"] == "CONFLICT"

    async def test_register_duplicate_username(self, client: AsyncClient, alice):
        """중복 사용자명 → 409."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "other@example.com",
            "password": "another-password",
            "username": "alice",
        })
        assert res.status_code == 409
        assert res.json()["message"] == "User with this email or username already exists"

    async def test_register_short_password(self, client: AsyncClient):
        """8자 미만 비밀번호 → 400 VALIDATION_ERROR."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "dave@example.com",
            "password": "short",
            "username": "dave",
        })
        assert res.status_code == 400
        body = res.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert any(d["field"] == "password" for d in body["error"]["details"])

    async def test_register_password_over_72_bytes(self, client: AsyncClient):
        """72바이트 초과 비밀번호 거부."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "dave@example.com",
            "password": "가" * 30,
            "username": "dave",
        })
        assert res.status_code == 400

    async def test_register_invalid_email(self, client: AsyncClient):
        """잘못된 이메일 형식."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "not-an-email",
            "password": "long-enough-password",
            "username": "dave",
        })
        assert res.status_code == 400

    async def test_register_short_username(self, client: AsyncClient):
        """3자 미만 사용자명."""
        res = await client.post(f"{AUTH}/register", json={
            "email": "dave@example.com",
            "password": "long-enough-password",
            "username": "da",
        })
        assert res.status_code == 400


# ===== Login =====

class TestLogin:
    """로그인 테스트."""

    async def test_login_success(self, client: AsyncClient, alice, jobs, mailbox):
        """로그인 성공: 토큰 쌍과 로그인 알림 메일."""
        res = await client.post(
            f"{AUTH}/login",
            json={"email": "alice@example.com", "password": DEFAULT_PASSWORD},
            headers={"User-Agent": "pytest-agent/1.0"},
        )
        assert res.status_code == 200
        body = res.json()
        assert body["message"] == "Login successful"
        data = body["data"]
        assert data["accessToken"]
        assert data["refreshToken"]
        assert data["user"]["email"] == "alice@example.com"
        assert "passwordHash" not in data["user"]

        await jobs.drain()
        alerts = [m for m in mailbox.to("alice@example.com") if m["subject"] == "New Login Detected - Security Alert"]
        assert len(alerts) == 1
        assert "127.0.0.1" in alerts[0]["text"]
        assert "pytest-agent/1.0" in alerts[0]["text"]

    async def test_wrong_password_and_unknown_email_are_indistinguishable(self, client: AsyncClient, alice):
        """잘못된 비밀번호와 존재하지 않는 이메일의 응답이 동일."""
        wrong_password = await client.post(f"{AUTH}/login", json={
            "email": "alice@example.com",
            "password": "wrong-password",
        })
        unknown_email = await client.post(f"{AUTH}/login", json={
            "email": "nobody@example.com",
            "password": "wrong-password",
        })
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.content == unknown_email.content
        assert wrong_password.json()["message"] == "Invalid credentials"

    async def test_inactive_user_rejected(self, client: AsyncClient, db, alice):
        """비활성 계정 로그인 실패: 같은 메시지."""
        alice.is_active = False
        await db.flush()

        res = await client.post(f"{AUTH}/login", json={
            "email": "alice@example.com",
            "password": DEFAULT_PASSWORD,
        })
        assert res.status_code == 401
        assert res.json()["message"] == "Invalid credentials"

    async def test_multiple_logins_keep_every_session(self, client: AsyncClient, alice):
        """N번 로그인 → N개의 유효한 리프레시 토큰."""
        sessions = [await login(client, "alice@example.com") for _ in range(3)]
        refresh_tokens = {s["refreshToken"] for s in sessions}
        assert len(refresh_tokens) == 3

        for token in refresh_tokens:
            res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": token})
            assert res.status_code == 200

    async def test_notification_failure_does_not_fail_login(
        self, client: AsyncClient, alice, test_settings, caplog
    ):
        """알림 메일 실패가 로그인 결과에 영향 없음."""
        async def broken_sender(**kwargs):
            raise ConnectionError("SMTP server unreachable")

        failing_jobs = BackgroundDispatcher()
        service = AuthService(test_settings, EmailService(test_settings, sender=broken_sender), failing_jobs)
        app.dependency_overrides[get_auth_service] = lambda: service

        with caplog.at_level(logging.ERROR, logger="app.utils.background"):
            res = await client.post(f"{AUTH}/login", json={
                "email": "alice@example.com",
                "password": DEFAULT_PASSWORD,
            })
            await failing_jobs.drain()

        assert res.status_code == 200
        assert res.json()["data"]["refreshToken"]
        assert any("login-alert-email" in r.getMessage() for r in caplog.records)


# ===== Token Refresh =====

class TestTokenRefresh:
    """토큰 갱신(회전) 테스트."""

    async def test_refresh_rotates_tokens(self, client: AsyncClient, alice):
        """갱신 시 새 토큰 쌍 발급, 기존 토큰은 재사용 불가."""
        tokens = await login(client, "alice@example.com")

        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        assert res.status_code == 200
        rotated = res.json()["data"]
        assert rotated["refreshToken"] != tokens["refreshToken"]
        assert rotated["accessToken"] != tokens["accessToken"]

        replay = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        assert replay.status_code == 401
        assert replay.json()["message"] == "Invalid or expired refresh token"

        again = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": rotated["refreshToken"]})
        assert again.status_code == 200

    async def test_refreshed_access_token_works(self, client: AsyncClient, alice):
        """갱신된 액세스 토큰으로 API 접근 가능."""
        tokens = await login(client, "alice@example.com")
        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        access = res.json()["data"]["accessToken"]

        me = await client.get(f"{AUTH}/me", headers=auth_header(access))
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "alice@example.com"

    async def test_refresh_with_garbage_token(self, client: AsyncClient):
        """형식이 잘못된 토큰 → 401."""
        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": "invalid.token.here"})
        assert res.status_code == 401
        assert res.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_refresh_with_access_token(self, client: AsyncClient, alice):
        """액세스 토큰으로 갱신 시도 → 401."""
        tokens = await login(client, "alice@example.com")
        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": tokens["accessToken"]})
        assert res.status_code == 401

    async def test_signed_token_missing_from_ledger(self, client: AsyncClient, auth_service: AuthService, alice):
        """서명은 유효하지만 원장에 없는 토큰 → 401."""
        forged = auth_service.tokens.create_refresh_token(
            TokenClaims(user_id=str(alice.id), email=alice.email, role=alice.role.value)
        )
        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": forged})
        assert res.status_code == 401

    async def test_token_signed_with_other_secret(self, client: AsyncClient, test_settings, mailer, jobs, alice):
        """다른 비밀키로 서명된 토큰 → 401."""
        other = AuthService(
            test_settings.model_copy(update={"JWT_SECRET_KEY": "a-completely-different-secret-value"}),
            mailer,
            jobs,
        )
        forged = other.tokens.create_refresh_token(
            TokenClaims(user_id=str(alice.id), email=alice.email, role=alice.role.value)
        )
        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": forged})
        assert res.status_code == 401

    async def test_expired_ledger_row_rejected(self, client: AsyncClient, db, alice):
        """원장 만료 시각이 지난 토큰 → 401 (JWT exp와 무관)."""
        tokens = await login(client, "alice@example.com")
        row = (await db.execute(
            select(RefreshToken).where(RefreshToken.token == tokens["refreshToken"])
        )).scalar_one()
        row.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        await db.flush()

        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        assert res.status_code == 401

    async def test_inactive_owner_rejected(self, client: AsyncClient, db, alice):
        """소유자가 비활성화되면 갱신 불가."""
        tokens = await login(client, "alice@example.com")
        alice.is_active = False
        await db.flush()

        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        assert res.status_code == 401

    async def test_refresh_missing_field(self, client: AsyncClient):
        """refreshToken 누락 → 400."""
        res = await client.post(f"{AUTH}/refresh-token", json={})
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"


# ===== Logout =====

class TestLogout:
    """로그아웃 테스트."""

    async def test_logout_revokes_refresh_token(self, client: AsyncClient, alice):
        """로그아웃 후 해당 리프레시 토큰 사용 불가."""
        tokens = await login(client, "alice@example.com")

        res = await client.post(f"{AUTH}/logout", json={"refreshToken": tokens["refreshToken"]})
        assert res.status_code == 200
        assert res.json()["message"] == "Logout successful"

        refresh = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        assert refresh.status_code == 401

    async def test_logout_only_ends_one_session(self, client: AsyncClient, alice):
        """다른 기기의 세션은 유지."""
        phone = await login(client, "alice@example.com")
        laptop = await login(client, "alice@example.com")

        await client.post(f"{AUTH}/logout", json={"refreshToken": phone["refreshToken"]})

        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": laptop["refreshToken"]})
        assert res.status_code == 200

    async def test_logout_is_idempotent(self, client: AsyncClient, alice):
        """이미 폐기된/알 수 없는 토큰으로 로그아웃해도 성공."""
        tokens = await login(client, "alice@example.com")
        first = await client.post(f"{AUTH}/logout", json={"refreshToken": tokens["refreshToken"]})
        second = await client.post(f"{AUTH}/logout", json={"refreshToken": tokens["refreshToken"]})
        unknown = await client.post(f"{AUTH}/logout", json={"refreshToken": "never-issued"})
        assert first.status_code == second.status_code == unknown.status_code == 200


# ===== Full scenario =====

class TestSessionLifecycle:
    """회원가입 → 로그인 → 갱신 → 로그아웃 → 갱신 실패 시나리오."""

    async def test_register_login_refresh_logout(self, client: AsyncClient):
        res = await client.post(f"{AUTH}/register", json={
            "email": "erin@example.com",
            "password": "erin-password-1",
            "username": "erin",
        })
        assert res.status_code == 201

        tokens = await login(client, "erin@example.com", "erin-password-1")
        assert tokens["accessToken"] and tokens["refreshToken"]

        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        assert res.status_code == 200
        rotated = res.json()["data"]
        assert rotated["refreshToken"] != tokens["refreshToken"]

        res = await client.post(f"{AUTH}/logout", json={"refreshToken": rotated["refreshToken"]})
        assert res.status_code == 200

        res = await client.post(f"{AUTH}/refresh-token", json={"refreshToken": rotated["refreshToken"]})
        assert res.status_code == 401


# ===== Me =====

class TestMe:
    """/auth/me 테스트."""

    async def test_me(self, client: AsyncClient, alice, alice_token):
        res = await client.get(f"{AUTH}/me", headers=auth_header(alice_token))
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["id"] == str(alice.id)
        assert data["username"] == "alice"
        assert "passwordHash" not in data

    async def test_me_without_token(self, client: AsyncClient):
        res = await client.get(f"{AUTH}/me")
        assert res.status_code == 401
        assert res.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_me_with_refresh_token(self, client: AsyncClient, alice):
        """리프레시 토큰은 Bearer로 사용할 수 없음."""
        tokens = await login(client, "alice@example.com")
        res = await client.get(f"{AUTH}/me", headers=auth_header(tokens["refreshToken"]))
        assert res.status_code == 401

    async def test_me_with_invalid_token(self, client: AsyncClient):
        res = await client.get(f"{AUTH}/me", headers=auth_header("not-a-jwt"))
        assert res.status_code == 401

    async def test_me_inactive_user(self, client: AsyncClient, db, alice, alice_token):
        alice.is_active = False
        await db.flush()
        res = await client.get(f"{AUTH}/me", headers=auth_header(alice_token))
        assert res.status_code == 401
