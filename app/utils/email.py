"""이메일 발송 유틸리티 (SMTP, aiosmtplib).

SMTP 설정은 config.py의 SMTP_* 환경 변수로 관리.
"""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from app.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


async def send_email(
    to: str,
    subject: str,
    html: str,
    text: str | None = None,
    config: Settings | None = None,
) -> None:
    """이메일 발송.

    SMTP 자격 증명이 없으면 경고만 남기고 건너뜀.

    Args:
        to: 수신자 이메일 주소
        subject: 제목
        html: HTML 본문
        text: 플레인텍스트 본문 (없으면 생략)
        config: SMTP 설정 (없으면 전역 설정)
    """
    cfg: Settings = config or default_settings
    if not cfg.smtp_configured:
        logger.warning("SMTP credentials not configured, skipping email to %s", to)
        return

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{cfg.SMTP_FROM_NAME} <{cfg.SMTP_FROM_EMAIL}>"
    msg["To"] = to

    if text:
        msg.attach(MIMEText(text, "plain", "utf-8"))
    msg.attach(MIMEText(html, "html", "utf-8"))

    await aiosmtplib.send(
        msg,
        hostname=cfg.SMTP_HOST,
        port=cfg.SMTP_PORT,
        username=cfg.SMTP_USER,
        password=cfg.SMTP_PASSWORD,
        use_tls=cfg.SMTP_PORT == 465,
        start_tls=cfg.SMTP_PORT != 465,
    )
    logger.info("Email sent to %s: %s", to, subject)
