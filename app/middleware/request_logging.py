"""요청 로깅 미들웨어 (Request ID + Axiom).

Request logging middleware.
Assigns or propagates ``X-Request-ID``, logs one line per request and, when
Axiom is configured, ships a structured event with the masked request body,
status code and error reason. Sensitive fields (password, token, secret) are
masked before anything leaves the process.
"""

import json
import logging
import re
import time
from typing import Any
from uuid import uuid4

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import Settings, settings as default_settings
from app.utils.logger import REQUEST_ID_HEADER, request_id_var

logger = logging.getLogger("app.request")

# 마스킹 대상 필드 패턴: Fields to mask in request/response bodies
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|api_?key|credential)",
    re.IGNORECASE,
)

# 로깅 제외 경로: Paths excluded from logging
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

_MAX_REQUEST_ID_LEN = 128


def mask_sensitive(data: Any, depth: int = 0) -> Any:
    """민감 필드 자동 마스킹: Recursively mask sensitive fields in dicts/lists."""
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {
            k: "***" if _SENSITIVE_KEYS.search(str(k)) else mask_sensitive(v, depth + 1)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [mask_sensitive(item, depth + 1) for item in data[:20]]
    return data


def _truncate(value: Any, max_len: int = 2000) -> Any:
    """로그 크기 제한: Truncate large values to prevent oversized logs."""
    if isinstance(value, str) and len(value) > max_len:
        return value[:max_len] + "...(truncated)"
    return value


def _incoming_request_id(request: Request) -> str:
    value: str | None = request.headers.get(REQUEST_ID_HEADER)
    if value and len(value) <= _MAX_REQUEST_ID_LEN:
        return value
    return str(uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청/응답을 로깅하는 미들웨어.

    Middleware that tags each request with an ID, logs it, and forwards a
    structured event to Axiom when a token and dataset are configured.
    """

    def __init__(self, app: Any, config: Settings | None = None) -> None:
        super().__init__(app)
        cfg: Settings = config or default_settings
        self._client: AxiomClient | None = None
        self._dataset: str = cfg.AXIOM_DATASET

        if cfg.AXIOM_API_TOKEN and cfg.AXIOM_DATASET:
            self._client = AxiomClient(token=cfg.AXIOM_API_TOKEN)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id: str = _incoming_request_id(request)
        ctx_token = request_id_var.set(request_id)
        try:
            response: Response = await self._handle(request, call_next)
        finally:
            request_id_var.reset(ctx_token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    async def _handle(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # 제외 경로 스킵: Skip excluded paths
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path

        # Request body 읽기: Read request body only when it will be shipped
        request_body: Any = None
        if self._client and method in ("POST", "PUT", "PATCH"):
            body_bytes = await request.body()
            if body_bytes:
                try:
                    request_body = _truncate(mask_sensitive(json.loads(body_bytes)))
                except (json.JSONDecodeError, UnicodeDecodeError):
                    request_body = "(non-json body)"

        error_detail: str | None = None
        status_code: int = 500
        try:
            response = await call_next(request)
            status_code = response.status_code

            # 에러 응답시 body에서 사유 추출: Extract error reason from error responses
            if status_code >= 400 and self._client:
                resp_body = b""
                async for chunk in response.body_iterator:
                    resp_body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")

                try:
                    error_data = json.loads(resp_body)
                    error_detail = str(error_data.get("message", error_data))[:500]
                except (json.JSONDecodeError, UnicodeDecodeError, AttributeError):
                    error_detail = resp_body.decode("utf-8", errors="replace")[:500]

                # 소비한 body를 다시 응답으로 반환: Re-wrap consumed body
                response = Response(
                    content=resp_body,
                    status_code=status_code,
                    headers=dict(response.headers),
                    media_type=response.media_type,
                )
        except Exception as exc:
            error_detail = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.info(
                "%s %s %s",
                method,
                path,
                status_code,
                extra={
                    "method": method,
                    "path": path,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                    "client_ip": request.client.host if request.client else None,
                },
            )
            if self._client:
                self._ship(request, method, path, status_code, duration_ms, request_body, error_detail)

        return response

    def _ship(
        self,
        request: Request,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        request_body: Any,
        error_detail: str | None,
    ) -> None:
        """Axiom 로그 이벤트 전송: Send one event to Axiom."""
        log_event: dict[str, Any] = {
            "request_id": request_id_var.get(),
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
        }
        if request.query_params:
            log_event["query_params"] = mask_sensitive(dict(request.query_params))
        if request.path_params:
            log_event["path_params"] = dict(request.path_params)
        if request_body is not None:
            log_event["request_body"] = request_body
        if error_detail:
            log_event["error"] = error_detail

        try:
            self._client.ingest_events(self._dataset, [log_event])
        except Exception:
            # 로깅 실패는 요청 결과에 영향 없음 (Ingest failure never changes the response)
            logger.warning("Axiom ingest failed for %s %s", method, path, exc_info=True)
