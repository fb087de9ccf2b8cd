"""
Standard API response shapes.
"""

import math
from typing import Any, Optional

from fastapi import Query

from academic_portal.core.config import settings


def message_response(message: str, **data: Any) -> dict:
    return {"message": message, **data}


def paginated_response(items: list, page: int, limit: int, total: int) -> dict:
    return {
        "items": items,
        "pagination": {
            "current": page,
            "pages": math.ceil(total / limit) if limit else 0,
            "total": total,
        },
    }


class Pagination:
    """`page`/`limit` query parameters shared by every list endpoint."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_LIMIT),
    ):
        self.page = page
        self.limit = limit or settings.DEFAULT_PAGE_LIMIT

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def respond(self, items: list, total: int) -> dict:
        return paginated_response(items, self.page, self.limit, total)
