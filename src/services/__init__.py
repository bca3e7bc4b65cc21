"""SB0 Pay Service Layer.

Business logic services for the SB0 Pay merchant portal.
Each service encapsulates domain-specific operations and can be reused across API endpoints.
"""

from src.services.api_key_service import (
    ApiKeyFailureReason,
    ApiKeyService,
    ApiKeyValidationResult,
    CreateApiKeyData,
    UsageStats,
)
from src.services.transaction_service import TransactionService
from src.services.user_service import UserService

__all__ = [
    "ApiKeyFailureReason",
    "ApiKeyService",
    "ApiKeyValidationResult",
    "CreateApiKeyData",
    "TransactionService",
    "UsageStats",
    "UserService",
]
