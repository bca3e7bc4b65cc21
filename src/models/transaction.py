"""SB0 Pay Merchant Portal - Transaction model and status state machine."""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from src.utils.helpers import utc_now


class TransactionStatus(str, Enum):
    """Transaction status.

    State transitions:
    - pending -> completed / failed / cancelled
    - completed -> refunded / partially_refunded
    - failed -> pending (retry)
    - partially_refunded -> refunded
    - cancelled, refunded: terminal
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


VALID_STATUS_TRANSITIONS: dict[TransactionStatus, tuple[TransactionStatus, ...]] = {
    TransactionStatus.PENDING: (
        TransactionStatus.COMPLETED,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    ),
    TransactionStatus.COMPLETED: (
        TransactionStatus.REFUNDED,
        TransactionStatus.PARTIALLY_REFUNDED,
    ),
    TransactionStatus.FAILED: (TransactionStatus.PENDING,),
    TransactionStatus.CANCELLED: (),
    TransactionStatus.REFUNDED: (),
    TransactionStatus.PARTIALLY_REFUNDED: (TransactionStatus.REFUNDED,),
}

# partially_refunded is deliberately absent: it can still move to refunded
FINAL_STATUSES = frozenset(
    {
        TransactionStatus.COMPLETED,
        TransactionStatus.CANCELLED,
        TransactionStatus.REFUNDED,
    }
)


def _coerce_status(status: TransactionStatus | str) -> TransactionStatus | None:
    try:
        return TransactionStatus(status)
    except ValueError:
        return None


def is_valid_status_transition(
    current_status: TransactionStatus | str,
    new_status: TransactionStatus | str,
) -> bool:
    """Check whether a transaction may move from one status to another.

    Pure decision function, callers must consult it before persisting.
    Unknown statuses are never valid.
    """
    current = _coerce_status(current_status)
    new = _coerce_status(new_status)
    if current is None or new is None:
        return False
    return new in VALID_STATUS_TRANSITIONS[current]


def get_valid_next_statuses(current_status: TransactionStatus | str) -> list[TransactionStatus]:
    """Get the statuses reachable from the current one (empty if terminal or unknown)."""
    current = _coerce_status(current_status)
    if current is None:
        return []
    return list(VALID_STATUS_TRANSITIONS[current])


def is_transaction_final(status: TransactionStatus | str) -> bool:
    """Check if a transaction is in a final state.

    Final means completed, cancelled or refunded. A partially refunded
    transaction is not final.
    """
    return _coerce_status(status) in FINAL_STATUSES


class Transaction(SQLModel, table=True):
    """Payment attempt recorded for a merchant.

    The payment link itself is issued by the AllPay gateway; this record
    tracks it and its status. Rows are never deleted.

    Attributes:
        id: UUID primary key
        user_id: Owning merchant (immutable)
        amount: Payment amount, at most 2 decimal places
        currency: ISO 4217 code (uppercase)
        payment_url: HTTPS payment page issued by the gateway
        allpay_transaction_id: Gateway reference, set once the gateway responds
        status: Current status, changed only through the transition table
        api_key_id: API key that created the payment (public API only)
    """

    __tablename__ = "transactions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    amount: Decimal = Field(
        sa_column=sa.Column(sa.DECIMAL(10, 2), nullable=False),
        description="Payment amount",
    )
    currency: str = Field(default="ILS", max_length=3, description="ISO 4217 currency code")
    payment_url: str = Field(sa_column=sa.Column(sa.Text, nullable=False))
    allpay_transaction_id: str | None = Field(
        default=None,
        max_length=255,
        index=True,
        description="AllPay transaction reference",
    )
    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING,
        index=True,
        description="Transaction status",
    )

    # Payment details
    description: str | None = Field(default=None, sa_column=sa.Column(sa.Text, nullable=True))
    customer_email: str | None = Field(default=None, max_length=255, index=True)
    customer_name: str | None = Field(default=None, max_length=255)
    customer_phone: str | None = Field(default=None, max_length=50)
    success_url: str | None = Field(default=None, sa_column=sa.Column(sa.Text, nullable=True))
    cancel_url: str | None = Field(default=None, sa_column=sa.Column(sa.Text, nullable=True))
    webhook_url: str | None = Field(default=None, sa_column=sa.Column(sa.Text, nullable=True))
    # "metadata" is reserved on declarative models, the column keeps the name
    extra_metadata: dict[str, Any] | None = Field(
        default=None,
        sa_column=sa.Column("metadata", sa.JSON, nullable=True),
    )
    expires_at: datetime | None = Field(default=None, index=True)
    api_key_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(
            sa.Uuid,
            sa.ForeignKey("api_keys.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
    )

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)
