"""이메일 알림 서비스 (Notification Sink).

Email notification service: Renders the account emails (welcome,
verification, password reset, login alert, account locked) and hands them to
an async sender. Callers dispatch these coroutines in the background; a
failure here never changes the outcome of the auth operation.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from html import escape
from urllib.parse import quote

from app.config import Settings, settings
from app.utils.email import send_email

EmailSender = Callable[..., Awaitable[None]]


class EmailService:
    """계정 관련 이메일을 생성하고 발송하는 서비스.

    Args:
        config: 발신자 이름과 프론트엔드 URL을 담은 설정 (Settings)
        sender: 실제 전송 함수 (Transport, defaults to SMTP ``send_email``)
    """

    def __init__(self, config: Settings, sender: EmailSender = send_email) -> None:
        self.config: Settings = config
        self._sender: EmailSender = sender

    @property
    def brand(self) -> str:
        return self.config.SMTP_FROM_NAME

    def _link(self, path: str, token: str) -> str:
        return f"{self.config.FRONTEND_URL.rstrip('/')}/{path}?token={quote(token)}"

    def _layout(self, title: str, color: str, body: str) -> str:
        """공통 HTML 레이아웃 (Shared HTML shell for every email)."""
        return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(title)}</title>
  </head>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <div style="background: {color}; padding: 20px; text-align: center; border-radius: 5px 5px 0 0;">
        <h1 style="color: #fff; margin: 0;">{escape(title)}</h1>
      </div>
      <div style="background: #f9f9f9; padding: 20px; border-radius: 0 0 5px 5px;">
        {body}
        <p>Best regards,<br>The {escape(self.brand)} Team</p>
      </div>
    </div>
  </body>
</html>"""

    def _button(self, url: str, label: str, color: str) -> str:
        safe_url = escape(url, quote=True)
        return (
            f'<p style="text-align: center; margin: 30px 0;">'
            f'<a href="{safe_url}" style="background: {color}; color: #fff; padding: 15px 30px; '
            f'text-decoration: none; border-radius: 5px; display: inline-block;">{escape(label)}</a></p>'
            f"<p>Or copy and paste this link into your browser:</p>"
            f'<p style="word-break: break-all; background: #eee; padding: 10px; border-radius: 3px;">{safe_url}</p>'
        )

    async def _send(self, to: str, subject: str, html: str, text: str) -> None:
        await self._sender(to=to, subject=subject, html=html, text=text, config=self.config)

    async def send_welcome_email(self, email: str, username: str) -> None:
        """가입 환영 이메일 (Welcome email sent after registration)."""
        title = f"Welcome to {self.brand}!"
        body = (
            f"<p>Hi <strong>{escape(username)}</strong>,</p>"
            f"<p>Welcome to {escape(self.brand)}! Your account has been successfully created.</p>"
            "<p>If you have any questions, feel free to reach out to our support team.</p>"
        )
        text = (
            f"{title}\n\nHi {username},\n\n"
            f"Welcome to {self.brand}! Your account has been successfully created.\n\n"
            "If you have any questions, feel free to reach out to our support team.\n\n"
            f"Best regards,\nThe {self.brand} Team"
        )
        await self._send(email, f"Welcome to {self.brand}", self._layout(title, "#4a90e2", body), text)

    async def send_email_verification_email(self, email: str, username: str, token: str) -> None:
        """이메일 인증 링크 발송 (Verification link, valid for 24 hours)."""
        url = self._link("verify-email", token)
        title = "Verify Your Email Address"
        body = (
            f"<p>Hi <strong>{escape(username)}</strong>,</p>"
            f"<p>Thank you for registering with {escape(self.brand)}! "
            "To complete your registration, please verify your email address.</p>"
            + self._button(url, "Verify Email", "#4a90e2")
            + "<p><strong>This link will expire in 24 hours.</strong></p>"
            f"<p>If you didn't create an account with {escape(self.brand)}, please ignore this email.</p>"
        )
        text = (
            f"{title}\n\nHi {username},\n\n"
            f"Thank you for registering with {self.brand}! "
            "To complete your registration, please verify your email address.\n\n"
            f"Visit this link to verify: {url}\n\n"
            "This link will expire in 24 hours.\n\n"
            f"Best regards,\nThe {self.brand} Team"
        )
        await self._send(email, title, self._layout(title, "#4a90e2", body), text)

    async def send_password_reset_email(self, email: str, username: str, token: str) -> None:
        """비밀번호 재설정 링크 발송 (Reset link, valid for 1 hour)."""
        url = self._link("reset-password", token)
        title = "Password Reset Request"
        body = (
            f"<p>Hi <strong>{escape(username)}</strong>,</p>"
            "<p>We received a request to reset your password. "
            "If you didn't make this request, you can safely ignore this email.</p>"
            + self._button(url, "Reset Password", "#e74c3c")
            + "<p><strong>This link will expire in 1 hour.</strong></p>"
        )
        text = (
            f"{title}\n\nHi {username},\n\n"
            "We received a request to reset your password. "
            "If you didn't make this request, you can safely ignore this email.\n\n"
            f"To reset your password, visit this link: {url}\n\n"
            "This link will expire in 1 hour.\n\n"
            f"Best regards,\nThe {self.brand} Team"
        )
        await self._send(email, "Reset Your Password", self._layout(title, "#e74c3c", body), text)

    async def send_login_alert_email(
        self,
        email: str,
        username: str,
        ip: str,
        user_agent: str | None = None,
    ) -> None:
        """새 로그인 알림 (New login alert with IP and user agent)."""
        login_time = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        title = "New Login Detected"
        details = [f"<li><strong>Time:</strong> {login_time}</li>", f"<li><strong>IP Address:</strong> {escape(ip)}</li>"]
        text_details = [f"- Time: {login_time}", f"- IP Address: {ip}"]
        if user_agent:
            details.append(f"<li><strong>Device:</strong> {escape(user_agent)}</li>")
            text_details.append(f"- Device: {user_agent}")
        body = (
            f"<p>Hi <strong>{escape(username)}</strong>,</p>"
            "<p>We detected a new login to your account. If this was you, you can safely ignore this email.</p>"
            f"<p><strong>Login Details:</strong></p><ul>{''.join(details)}</ul>"
            "<p>If you didn't log in, please contact our support team immediately and change your password.</p>"
        )
        text = (
            f"{title}\n\nHi {username},\n\n"
            "We detected a new login to your account. If this was you, you can safely ignore this email.\n\n"
            "Login Details:\n" + "\n".join(text_details) + "\n\n"
            "If you didn't log in, please contact our support team immediately and change your password.\n\n"
            f"Best regards,\nThe {self.brand} Team"
        )
        await self._send(email, "New Login Detected - Security Alert", self._layout(title, "#27ae60", body), text)

    async def send_account_locked_email(self, email: str, username: str, reason: str) -> None:
        """계정 잠금 안내 (Account deactivated by an administrator)."""
        title = "Account Locked"
        body = (
            f"<p>Hi <strong>{escape(username)}</strong>,</p>"
            f"<p>Your account has been locked due to: <strong>{escape(reason)}</strong></p>"
            "<p>If you believe this is an error, please contact our support team to unlock your account.</p>"
            f"<p>Support Email: {escape(self.config.SMTP_FROM_EMAIL)}</p>"
        )
        text = (
            f"{title}\n\nHi {username},\n\n"
            f"Your account has been locked due to: {reason}\n\n"
            "If you believe this is an error, please contact our support team to unlock your account.\n\n"
            f"Support Email: {self.config.SMTP_FROM_EMAIL}\n\n"
            f"Best regards,\nThe {self.brand} Team"
        )
        await self._send(email, "Account Locked - Action Required", self._layout(title, "#f39c12", body), text)


# 싱글턴 인스턴스 (Singleton instance, SMTP transport)
email_service: EmailService = EmailService(settings)
