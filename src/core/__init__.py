"""Core module - configuration, security, and exceptions."""

from src.core.config import Settings, get_settings
from src.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidStatusTransitionError,
    NotFoundError,
    PortalError,
    ValidationError,
)
from src.core.security import SecretHasher, get_hasher

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Security
    "SecretHasher",
    "get_hasher",
    # Exceptions
    "PortalError",
    "AuthenticationError",
    "AuthorizationError",
    "ValidationError",
    "NotFoundError",
    "InvalidStatusTransitionError",
]
