"""SB0 Pay Merchant Portal - API key models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from src.utils.helpers import utc_now

API_KEY_LITERAL_PREFIX = "sb0_live_"
API_KEY_PREFIX_LENGTH = 16  # "sb0_live_" + first 7 hex chars


class ApiKeyResource(str, Enum):
    """Resources an API key can be granted access to."""

    PAYMENTS = "payments"
    TRANSACTIONS = "transactions"
    WEBHOOKS = "webhooks"
    PROFILE = "profile"


class ApiKeyAction(str, Enum):
    """Actions an API key can perform on a resource."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class ApiKey(SQLModel, table=True):
    """Bearer credential for programmatic access to the public API.

    The plaintext key is returned once at creation and never stored.
    Only the bcrypt hash and the non-secret 16-char prefix are kept.

    Attributes:
        id: UUID primary key
        user_id: Owning merchant
        name: Display name chosen by the merchant
        key_hash: bcrypt hash of the full key
        prefix: First 16 characters of the key, unique lookup index
        permissions: JSON list of {"resource": str, "actions": [str, ...]}
        is_active: Deactivated keys never validate
        last_used_at: Time of the last successful validation
        expires_at: Keys past this time never validate
    """

    __tablename__ = "api_keys"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    name: str = Field(max_length=255)
    key_hash: str = Field(max_length=255, unique=True)
    prefix: str = Field(max_length=20, unique=True, index=True)
    permissions: list[dict[str, Any]] = Field(
        default=[],
        sa_column=sa.Column(sa.JSON, nullable=False, default=[]),
    )
    is_active: bool = Field(default=True, index=True)
    last_used_at: datetime | None = Field(default=None)
    expires_at: datetime | None = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the key is past its expiry time."""
        if self.expires_at is None:
            return False
        return self.expires_at < (now or utc_now())


class ApiKeyUsageLog(SQLModel, table=True):
    """One request authenticated by an API key, kept for usage statistics."""

    __tablename__ = "api_key_usage_logs"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    api_key_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid,
            sa.ForeignKey("api_keys.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    endpoint: str = Field(max_length=255)
    method: str = Field(max_length=10)
    status_code: int
    ip_address: str | None = Field(default=None, max_length=64)
    user_agent: str | None = Field(default=None, sa_column=sa.Column(sa.Text, nullable=True))
    request_id: str | None = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utc_now, index=True)
