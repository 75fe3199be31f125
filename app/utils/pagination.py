"""페이지네이션 유틸리티 모듈.

Pagination utility module. Builds the ``meta`` block returned alongside
list responses.
"""

import math

from app.schemas.common import PageMeta


def build_page_meta(page: int, limit: int, total: int) -> PageMeta:
    """페이지네이션 메타데이터를 생성합니다.

    Args:
        page: 현재 페이지 번호, 1부터 시작 (Current page, 1-indexed)
        limit: 페이지당 항목 수 (Items per page)
        total: 전체 항목 수 (Total item count)

    Returns:
        PageMeta: ``totalPages = ceil(total / limit)`` 포함 메타 (Meta with computed total pages)
    """
    return PageMeta(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if limit else 0)
