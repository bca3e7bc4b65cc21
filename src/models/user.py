"""SB0 Pay Merchant Portal - User model."""

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from src.utils.helpers import utc_now


class User(SQLModel, table=True):
    """Merchant account - identity synced from Clerk.

    Attributes:
        id: UUID primary key
        clerk_id: Unique Clerk user ID (indexed)
        email: Merchant email address (lowercased)
        shop_name: Shop display name
        owner_name: Name of the business owner
        merchant_config: JSON object with company_number, currency, language
        is_active: Account status
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    clerk_id: str = Field(max_length=255, unique=True, index=True)
    email: str = Field(max_length=255, unique=True, index=True)
    shop_name: str = Field(max_length=255)
    owner_name: str = Field(max_length=255)
    merchant_config: dict[str, Any] = Field(
        default={},
        sa_column=sa.Column(sa.JSON, nullable=False, default={}),
    )
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def default_currency(self) -> str:
        """Merchant's billing currency, ILS when not configured."""
        return (self.merchant_config or {}).get("currency") or "ILS"
