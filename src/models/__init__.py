"""Models module - SQLModel database entities."""

from src.models.api_key import (
    API_KEY_LITERAL_PREFIX,
    API_KEY_PREFIX_LENGTH,
    ApiKey,
    ApiKeyAction,
    ApiKeyResource,
    ApiKeyUsageLog,
)
from src.models.transaction import (
    FINAL_STATUSES,
    VALID_STATUS_TRANSITIONS,
    Transaction,
    TransactionStatus,
    get_valid_next_statuses,
    is_transaction_final,
    is_valid_status_transition,
)
from src.models.user import User

__all__ = [
    # User
    "User",
    # Transaction
    "Transaction",
    "TransactionStatus",
    "VALID_STATUS_TRANSITIONS",
    "FINAL_STATUSES",
    "is_valid_status_transition",
    "get_valid_next_statuses",
    "is_transaction_final",
    # API Key
    "ApiKey",
    "ApiKeyAction",
    "ApiKeyResource",
    "ApiKeyUsageLog",
    "API_KEY_LITERAL_PREFIX",
    "API_KEY_PREFIX_LENGTH",
]
