"""Utility functions shared across the application."""

from src.utils.helpers import format_utc_datetime, get_client_ip, to_naive_utc, utc_now
from src.utils.pagination import OffsetParams, PaginatedResult, PaginationParams, paginate_query

__all__ = [
    "OffsetParams",
    "PaginatedResult",
    "PaginationParams",
    "format_utc_datetime",
    "get_client_ip",
    "paginate_query",
    "to_naive_utc",
    "utc_now",
]
