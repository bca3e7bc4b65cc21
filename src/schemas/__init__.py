"""Schemas module - Pydantic DTOs for request/response."""

from src.schemas.api_key import (
    ApiKeyCreatedResponse,
    ApiKeyPermission,
    ApiKeyResponse,
    ApiKeyUsageResponse,
    CreateApiKeyRequest,
    DailyUsageResponse,
    UpdateApiKeyRequest,
)
from src.schemas.public_api import (
    PublicErrorCode,
    PublicErrorResponse,
    PublicPaymentListResponse,
    PublicProfileResponse,
    PublicTransactionResponse,
)
from src.schemas.transaction import (
    CreateTransactionRequest,
    TransactionResponse,
    TransactionStatsResponse,
    UpdateTransactionStatusRequest,
)
from src.schemas.user import MerchantConfig, RegisterMerchantRequest, UserResponse

__all__: list[str] = [
    # API Key
    "ApiKeyPermission",
    "CreateApiKeyRequest",
    "UpdateApiKeyRequest",
    "ApiKeyResponse",
    "ApiKeyCreatedResponse",
    "ApiKeyUsageResponse",
    "DailyUsageResponse",
    # Transaction
    "CreateTransactionRequest",
    "UpdateTransactionStatusRequest",
    "TransactionResponse",
    "TransactionStatsResponse",
    # User
    "MerchantConfig",
    "RegisterMerchantRequest",
    "UserResponse",
    # Public API
    "PublicErrorCode",
    "PublicErrorResponse",
    "PublicTransactionResponse",
    "PublicPaymentListResponse",
    "PublicProfileResponse",
]
