"""Database module - async engine and session management."""

from src.db.engine import (
    async_session_factory,
    build_engine,
    build_session_factory,
    close_db,
    engine,
    get_db,
    init_db,
)

__all__ = [
    "engine",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "init_db",
    "close_db",
    "get_db",
]
