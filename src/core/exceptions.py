"""SB0 Pay Merchant Portal - Custom exceptions."""

from typing import Any


class PortalError(Exception):
    """Base exception for all portal errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(PortalError):
    """Authentication failed."""

    pass


class AuthorizationError(PortalError):
    """User lacks permission for this action."""

    pass


class ValidationError(PortalError):
    """Input validation failed."""

    @property
    def errors(self) -> list[str]:
        """Aggregated validation messages, falling back to the main message."""
        return list(self.details.get("errors") or [self.message])


class NotFoundError(PortalError):
    """Requested record does not exist."""

    pass


class InvalidStatusTransitionError(PortalError):
    """Transaction status change is not allowed by the transition table."""

    def __init__(self, current: str, requested: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Cannot change transaction status from {current} to {requested}",
            {"current_status": current, "requested_status": requested},
        )
