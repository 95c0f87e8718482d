"""Page/limit query parameters shared by the list endpoints.

Lists are always newest first, so only the window is configurable.
"""

import math

from fastapi import Query
from pydantic import BaseModel

DEFAULT_PAGE_SIZE = 15
MAX_PAGE_SIZE = 100


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class PaginationParams:
    """FastAPI dependency for `?page=1&limit=15`."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-based)"),
        limit: int = Query(
            default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"
        ),
    ):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def capped(self, max_limit: int) -> "PaginationParams":
        """Clamp the page size for endpoints with a tighter ceiling."""
        self.limit = min(self.limit, max_limit)
        return self

    def meta(self, total: int) -> PageMeta:
        return PageMeta(
            total=total,
            page=self.page,
            limit=self.limit,
            pages=max(math.ceil(total / self.limit), 1),
        )
