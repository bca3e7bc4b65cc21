"""Datetime and request helpers."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC time as a naive datetime.

    All timestamps are stored naive-UTC so they compare consistently
    across Postgres and SQLite.
    """
    return datetime.now(UTC).replace(tzinfo=None)


def format_utc_datetime(dt: datetime | None) -> str | None:
    """Format datetime to ISO string with Z suffix for UTC.

    The backend stores naive UTC timestamps and ``isoformat()`` does not
    add timezone information. The Z suffix lets clients parse them as UTC.

    Args:
        dt: datetime object (assumed UTC) or None

    Returns:
        ISO format string with Z suffix (e.g., "2026-01-10T10:30:00Z") or None
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return f"{dt.isoformat()}Z"


def get_client_ip(headers: dict[str, str] | None) -> str | None:
    """Extract the originating client address from proxy headers.

    Args:
        headers: Request headers (case-insensitive mapping)

    Returns:
        First address of X-Forwarded-For, else X-Real-IP, else None
    """
    if not headers:
        return None
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return headers.get("x-real-ip") or None


def to_naive_utc(dt: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive UTC, leave naive values unchanged."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)
