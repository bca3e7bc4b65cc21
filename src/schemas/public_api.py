"""Public API (API key authenticated) schemas."""

from typing import Any, Literal

from pydantic import BaseModel, Field

PublicErrorType = Literal["authentication_error", "invalid_request", "api_error", "rate_limit_error"]


class PublicErrorCode:
    """Error codes returned by the public API."""

    MISSING_API_KEY = "MISSING_API_KEY"
    INVALID_AUTH_FORMAT = "INVALID_AUTH_FORMAT"
    INVALID_API_KEY = "INVALID_API_KEY"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_REQUEST = "INVALID_REQUEST"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PublicErrorDetail(BaseModel):
    code: str
    message: str
    type: PublicErrorType


class PublicErrorResponse(BaseModel):
    """Error envelope of the public API."""

    error: PublicErrorDetail
    timestamp: str
    request_id: str


class PublicTransactionResponse(BaseModel):
    """Payment as exposed to API clients."""

    id: str
    amount: float
    currency: str
    status: str
    payment_url: str
    description: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: str
    updated_at: str


class PublicPagination(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class PublicPaymentListResponse(BaseModel):
    data: list[PublicTransactionResponse]
    pagination: PublicPagination


class PublicProfileResponse(BaseModel):
    """Merchant profile visible to API clients."""

    id: str
    shop_name: str
    owner_name: str
    currency: str
    language: str
    permissions: list[dict[str, Any]] = Field(default_factory=list)
