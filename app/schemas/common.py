"""공통 Pydantic 요청/응답 스키마 정의.

Common Pydantic request/response schema definitions.
Every JSON body on the wire is camelCase; models are declared in snake_case
and converted with an alias generator. Successful responses are wrapped in
``ApiResponse`` and failures in ``ErrorResponse``.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """camelCase 별칭을 사용하는 기본 모델.

    Base model serialising field names as camelCase while still accepting
    snake_case on input. Also reads ORM objects via ``from_attributes``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PageMeta(CamelModel):
    """페이지네이션 메타데이터.

    Attributes:
        page: 현재 페이지 번호 (Current page, 1-based)
        limit: 페이지당 항목 수 (Items per page)
        total: 전체 항목 수 (Total item count)
        total_pages: 전체 페이지 수 (Total pages)
    """

    page: int
    limit: int
    total: int
    total_pages: int


class ApiResponse(CamelModel, Generic[T]):
    """성공 응답 봉투 (Success envelope).

    Attributes:
        success: 항상 True (Always true)
        message: 결과 메시지 (Human-readable result message)
        data: 응답 데이터 (Payload, omitted when None)
        meta: 페이지네이션 정보 (Pagination meta for list endpoints)
    """

    success: bool = True
    message: str
    data: T | None = None
    meta: PageMeta | None = None


class ErrorBody(CamelModel):
    """오류 상세 (Machine-readable error code plus optional details)."""

    code: str
    details: Any = None


class ErrorResponse(CamelModel):
    """실패 응답 봉투 (Error envelope)."""

    success: bool = False
    message: str
    error: ErrorBody


class MessageOut(CamelModel):
    """범용 메시지 결과 (Service result carrying only a message)."""

    message: str
