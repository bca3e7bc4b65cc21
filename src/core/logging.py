"""Logging setup for the application process."""

import logging

from src.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once at process start.

    Args:
        level: Explicit level name, defaults to ``settings.log_level``
    """
    settings = get_settings()
    level_name = level or ("DEBUG" if settings.debug else settings.log_level)
    logging.basicConfig(level=level_name, format=LOG_FORMAT)
    # SQL echo is controlled by the engine, keep the logger quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
