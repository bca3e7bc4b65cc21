"""Transaction schemas for the merchant dashboard."""

from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from src.models.transaction import TransactionStatus


class CreateTransactionRequest(BaseModel):
    """Record a payment link issued by the gateway.

    Field rules (amount range, currency code, HTTPS URL) are enforced by
    the transaction validator so every violation is reported at once.
    """

    amount: Decimal | float = Field(..., description="Payment amount")
    currency: str | None = Field(default=None, description="ISO 4217 code, merchant default if empty")
    payment_url: str = Field(..., description="HTTPS payment page issued by AllPay")
    allpay_transaction_id: str | None = Field(default=None, description="AllPay reference")
    description: str | None = Field(default=None, max_length=1000)
    customer_email: str | None = Field(default=None, max_length=255)
    customer_name: str | None = Field(default=None, max_length=255)
    customer_phone: str | None = Field(default=None, max_length=50)
    success_url: str | None = None
    cancel_url: str | None = None
    webhook_url: str | None = None
    metadata: dict[str, Any] | None = None


class UpdateTransactionStatusRequest(BaseModel):
    """Move a transaction to a new status."""

    status: TransactionStatus
    allpay_transaction_id: str | None = Field(default=None, max_length=100)


class TransactionResponse(BaseModel):
    """Transaction as shown on the dashboard."""

    id: UUID
    amount: str
    formatted_amount: str
    currency: str
    status: TransactionStatus
    is_final: bool
    next_statuses: list[TransactionStatus]
    payment_url: str
    allpay_transaction_id: str | None = None
    description: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: str
    updated_at: str


class TransactionStatsResponse(BaseModel):
    """Per-merchant transaction counters."""

    total: int
    pending: int
    completed: int
    failed: int
    cancelled: int
    refunded: int
    partially_refunded: int
    total_amount: str
    completed_amount: str
