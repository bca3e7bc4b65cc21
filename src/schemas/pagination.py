"""Paginated response schema with page/page_size fields.

Output shape:
    { "items": [...], "total": 100, "page": 1, "page_size": 20, "total_pages": 5 }
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

__all__ = ["PaginatedResponse"]

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated response wrapper."""

    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int
