"""구조화 로깅 설정 (JSON lines + request ID).

Structured logging configuration with request correlation. The request ID is
kept in a ``ContextVar`` set by the request logging middleware, so every
record logged while handling a request (background jobs included, since tasks
copy the context) carries it.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

REQUEST_ID_HEADER = "X-Request-ID"

# 현재 요청 ID (Request ID of the request being handled, if any)
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

_EXTRA_KEYS = ("method", "path", "status_code", "duration_ms", "client_ip")


class JSONFormatter(logging.Formatter):
    """로그 레코드를 JSON 한 줄로 출력 (Render log records as JSON objects)."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key in _EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """모든 레코드에 request_id 속성 부여 (Always set ``request_id`` on records)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def configure_logging(level: str | int = "INFO") -> None:
    """루트 로거를 JSON stdout 출력으로 설정합니다.

    Configure the root logger with JSON-formatted stdout output. Calling it
    again replaces the previous handler.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO
    root.setLevel(level)
