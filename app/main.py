"""FastAPI 애플리케이션 엔트리포인트: 미들웨어, 예외 처리, 라우터 등록.

FastAPI application entry point: Middleware, exception handlers and router
registration. Every error leaves the service in the same envelope:
``{"success": false, "message": ..., "error": {"code": ..., "details": ...}}``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import api_router
from app.config import settings
from app.database import engine
from app.middleware.request_logging import RequestLoggingMiddleware
from app.schemas.common import ErrorBody, ErrorResponse
from app.utils.background import dispatcher
from app.utils.exceptions import AppError, InternalError
from app.utils.logger import configure_logging

logger = logging.getLogger(__name__)

# HTTP 상태별 오류 코드 (Error codes for framework-level HTTP errors)
_HTTP_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """앱 수명 주기: 로깅 설정, 종료 시 백그라운드 작업 정리.

    Configure logging on startup; on shutdown wait for in-flight emails and
    close the connection pool.
    """
    configure_logging(settings.LOG_LEVEL)
    logger.info("%s starting", settings.APP_NAME)
    yield
    await dispatcher.drain(timeout=10)
    await engine.dispose()


def error_response(status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    """오류 봉투 응답 생성 (Build an error envelope response)."""
    body = ErrorResponse(message=message, error=ErrorBody(code=code, details=details))
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, mode="json"))


app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# 요청 로깅 미들웨어: Request ID, request log and Axiom shipping
# CORS보다 먼저 등록하여 모든 요청을 캡처 (Registered before CORS to capture all requests)
app.add_middleware(RequestLoggingMiddleware)

# CORS 미들웨어: Cross-Origin Resource Sharing middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    """서비스 예외를 오류 봉투로 변환 (Typed service failures)."""
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """입력 검증 실패 → 400 VALIDATION_ERROR (Field-level details)."""
    details: list[dict[str, str]] = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return error_response(400, "VALIDATION_ERROR", "Validation failed", details)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    """프레임워크 HTTP 예외 (Unknown routes, wrong methods)."""
    code: str = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return error_response(exc.status_code, code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """예상치 못한 예외 → 500, 내부 정보는 노출하지 않음.

    Unexpected failures are logged with their stack trace; the client only
    sees the generic message unless DEBUG is on.
    """
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError(details=f"{type(exc).__name__}: {exc}" if settings.DEBUG else None)
    return error_response(error.status_code, error.code, error.message, error.details)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring.
    """
    return {"status": "ok"}


app.include_router(api_router, prefix=settings.API_PREFIX)
