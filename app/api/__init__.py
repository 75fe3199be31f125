"""API 라우터 패키지: 모든 엔드포인트 통합.

API Router package: Aggregates every endpoint into a single router that
``app.main`` mounts under ``API_PREFIX``.

Included routers:
    - auth: 인증 및 세션 (Registration, login, tokens, reset, verification)
    - users: 사용자 관리 (User management)
"""

from fastapi import APIRouter

from app.api.auth import router as auth_router
from app.api.users import router as users_router

api_router: APIRouter = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Auth"])
api_router.include_router(users_router, prefix="/users", tags=["Users"])
