"""알림 이메일, 백그라운드 디스패처, 요청 로깅 테스트.

Notification tests: email rendering and links, the fire-and-forget
dispatcher's error channel, request ID propagation and JSON logging, and the
envelope returned for unhandled errors.
"""

import asyncio
import json
import logging

from httpx import AsyncClient
from starlette.requests import Request

from app.config import Settings, settings
from app.main import unhandled_error_handler
from app.middleware.request_logging import mask_sensitive
from app.services.email_service import EmailService
from app.utils.background import BackgroundDispatcher
from app.utils.email import send_email
from app.utils.logger import JSONFormatter, RequestIdFilter, request_id_var
from tests.conftest import RecordingSender


# ===== Email rendering =====

class TestEmailService:
    """이메일 본문 및 링크 테스트."""

    async def test_verification_link(self, mailer: EmailService, mailbox: RecordingSender):
        await mailer.send_email_verification_email("a@example.com", "alice", "tok_en-1")
        mail = mailbox.sent[0]
        assert mail["to"] == "a@example.com"
        assert mail["subject"] == "Verify Your Email Address"
        assert "http://frontend.test/verify-email?token=tok_en-1" in mail["text"]
        assert "http://frontend.test/verify-email?token=tok_en-1" in mail["html"]

    async def test_reset_link_is_url_encoded(self, mailer: EmailService, mailbox: RecordingSender):
        await mailer.send_password_reset_email("a@example.com", "alice", "a b&c")
        assert "reset-password?token=a%20b%26c" in mailbox.sent[0]["text"]

    async def test_username_is_escaped(self, mailer: EmailService, mailbox: RecordingSender):
        await mailer.send_welcome_email("a@example.com", "<script>x</script>")
        mail = mailbox.sent[0]
        assert mail["subject"] == "Welcome to Auth API"
        assert "<script>" not in mail["html"]
        assert "&lt;script&gt;" in mail["html"]

    async def test_login_alert_details(self, mailer: EmailService, mailbox: RecordingSender):
        await mailer.send_login_alert_email("a@example.com", "alice", "203.0.113.7", "curl/8.0")
        mail = mailbox.sent[0]
        assert mail["subject"] == "New Login Detected - Security Alert"
        assert "203.0.113.7" in mail["text"]
        assert "Device: curl/8.0" in mail["text"]

    async def test_login_alert_without_user_agent(self, mailer: EmailService, mailbox: RecordingSender):
        await mailer.send_login_alert_email("a@example.com", "alice", "203.0.113.7")
        assert "Device:" not in mailbox.sent[0]["text"]

    async def test_account_locked(self, mailer: EmailService, mailbox: RecordingSender):
        await mailer.send_account_locked_email("a@example.com", "alice", "Too many attempts")
        mail = mailbox.sent[0]
        assert mail["subject"] == "Account Locked - Action Required"
        assert "Too many attempts" in mail["text"]

    async def test_smtp_skipped_without_credentials(self, test_settings: Settings, caplog):
        """SMTP 자격 증명이 없으면 경고만 남기고 발송하지 않음."""
        with caplog.at_level(logging.WARNING, logger="app.utils.email"):
            await send_email("a@example.com", "Hi", "<p>Hi</p>", config=test_settings)
        assert "SMTP credentials not configured" in caplog.text


# ===== Background dispatcher =====

class TestBackgroundDispatcher:
    """백그라운드 작업 디스패처 테스트."""

    async def test_dispatch_runs_job(self):
        jobs = BackgroundDispatcher()
        done: list[str] = []

        async def job() -> None:
            done.append("ran")

        jobs.dispatch(job(), label="job")
        await jobs.drain()
        assert done == ["ran"]
        assert jobs.pending == 0

    async def test_failure_goes_to_error_handler(self):
        failures: list[tuple[str, BaseException]] = []
        jobs = BackgroundDispatcher(on_error=lambda label, exc: failures.append((label, exc)))

        async def boom() -> None:
            raise RuntimeError("smtp down")

        jobs.dispatch(boom(), label="welcome-email")
        await jobs.drain()
        assert len(failures) == 1
        assert failures[0][0] == "welcome-email"
        assert isinstance(failures[0][1], RuntimeError)

    async def test_failure_logged_by_default(self, caplog):
        jobs = BackgroundDispatcher()

        async def boom() -> None:
            raise RuntimeError("smtp down")

        with caplog.at_level(logging.ERROR, logger="app.utils.background"):
            jobs.dispatch(boom(), label="login-alert-email")
            await jobs.drain()
        assert "login-alert-email" in caplog.text

    async def test_drain_cancels_slow_jobs(self):
        jobs = BackgroundDispatcher()
        task = jobs.dispatch(asyncio.sleep(10), label="slow")
        await jobs.drain(timeout=0.01)
        await asyncio.sleep(0)
        assert task.cancelled()

    async def test_drain_with_nothing_pending(self):
        await BackgroundDispatcher().drain()


# ===== Request logging =====

class TestRequestLogging:
    """요청 ID 및 구조화 로깅 테스트."""

    async def test_request_id_generated(self, client: AsyncClient):
        res = await client.get("/health")
        assert res.status_code == 200
        assert len(res.headers["X-Request-ID"]) == 36

    async def test_request_id_propagated(self, client: AsyncClient):
        res = await client.get("/health", headers={"X-Request-ID": "req-123"})
        assert res.headers["X-Request-ID"] == "req-123"

    async def test_oversized_request_id_replaced(self, client: AsyncClient):
        res = await client.get("/health", headers={"X-Request-ID": "x" * 200})
        assert res.headers["X-Request-ID"] != "x" * 200

    async def test_request_id_on_error_response(self, client: AsyncClient):
        res = await client.get("/api/v1/auth/me", headers={"X-Request-ID": "req-401"})
        assert res.status_code == 401
        assert res.headers["X-Request-ID"] == "req-401"

    def test_json_formatter_includes_request_id(self):
        token = request_id_var.set("req-abc")
        try:
            record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
            RequestIdFilter().filter(record)
            record.status_code = 200
            line = json.loads(JSONFormatter().format(record))
        finally:
            request_id_var.reset(token)
        assert line["message"] == "hello world"
        assert line["request_id"] == "req-abc"
        assert line["status_code"] == 200
        assert line["level"] == "INFO"

    def test_mask_sensitive(self):
        masked = mask_sensitive({
            "email": "a@example.com",
            "password": "hunter2",
            "nested": {"refreshToken": "abc", "keep": 1},
        })
        assert masked == {
            "email": "a@example.com",
            "password": "***",
            "nested": {"refreshToken": "***", "keep": 1},
        }


# ===== Error envelope =====

def _request(path: str = "/boom") -> Request:
    return Request({
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("test", 80),
        "path": path,
        "root_path": "",
        "query_string": b"",
        "headers": [],
    })


class TestUnhandledErrors:
    """예상치 못한 예외 → 500 오류 봉투."""

    async def test_internal_error_hides_details(self, monkeypatch, caplog):
        monkeypatch.setattr(settings, "DEBUG", False)
        with caplog.at_level(logging.ERROR, logger="app.main"):
            res = await unhandled_error_handler(_request(), RuntimeError("db password is hunter2"))
        assert res.status_code == 500
        body = json.loads(res.body)
        assert body == {
            "success": False,
            "message": "Internal Server Error",
            "error": {"code": "INTERNAL_ERROR", "details": None},
        }
        assert "Unhandled error on GET /boom" in caplog.text

    async def test_internal_error_details_in_debug(self, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG", True)
        res = await unhandled_error_handler(_request(), RuntimeError("boom"))
        assert json.loads(res.body)["error"]["details"] == "RuntimeError: boom"
