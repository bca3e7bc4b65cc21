"""API key management schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.models.api_key import ApiKeyAction, ApiKeyResource


class ApiKeyPermission(BaseModel):
    """A resource and the actions allowed on it."""

    resource: ApiKeyResource = Field(..., description="Resource name")
    actions: list[ApiKeyAction] = Field(..., min_length=1, description="Allowed actions")


class CreateApiKeyRequest(BaseModel):
    """Request to create a new API key."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    permissions: list[ApiKeyPermission] = Field(default_factory=list)
    expires_at: datetime | None = Field(default=None, description="Optional expiry (ISO 8601)")


class UpdateApiKeyRequest(BaseModel):
    """Partial update of an API key. Only provided fields are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    permissions: list[ApiKeyPermission] | None = None
    is_active: bool | None = None
    expires_at: datetime | None = None


class ApiKeyResponse(BaseModel):
    """API key as listed to its owner. Never includes the secret or its hash."""

    id: UUID
    name: str
    prefix: str
    permissions: list[ApiKeyPermission]
    is_active: bool
    last_used_at: str | None = None
    expires_at: str | None = None
    created_at: str


class ApiKeyCreatedResponse(ApiKeyResponse):
    """Response for key creation, the only time the plaintext key is returned."""

    key: str = Field(..., description="Plaintext API key, shown once")


class DailyUsageResponse(BaseModel):
    """Requests for one calendar day (UTC)."""

    date: str
    requests: int
    errors: int


class ApiKeyUsageResponse(BaseModel):
    """Aggregated usage of one API key over a trailing window."""

    api_key_id: UUID
    days: int
    total_requests: int
    successful_requests: int
    error_requests: int
    daily_stats: list[DailyUsageResponse]
