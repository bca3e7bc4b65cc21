"""API key management routes for the merchant dashboard.

Business logic is delegated to ApiKeyService.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import CurrentUser
from src.core.config import get_settings
from src.db import get_db
from src.models.api_key import ApiKey
from src.schemas.api_key import (
    ApiKeyCreatedResponse,
    ApiKeyResponse,
    ApiKeyUsageResponse,
    CreateApiKeyRequest,
    DailyUsageResponse,
    UpdateApiKeyRequest,
)
from src.services.api_key_service import ApiKeyService, CreateApiKeyData
from src.utils.helpers import format_utc_datetime

router = APIRouter(prefix="/api-keys", tags=["API Keys"])


# ============ Dependency ============


def get_api_key_service(db: Annotated[AsyncSession, Depends(get_db)]) -> ApiKeyService:
    """Create ApiKeyService instance."""
    return ApiKeyService(db)


def _to_response(api_key: ApiKey) -> ApiKeyResponse:
    return ApiKeyResponse(
        id=api_key.id,
        name=api_key.name,
        prefix=api_key.prefix,
        permissions=api_key.permissions or [],
        is_active=api_key.is_active,
        last_used_at=format_utc_datetime(api_key.last_used_at),
        expires_at=format_utc_datetime(api_key.expires_at),
        created_at=format_utc_datetime(api_key.created_at),
    )


# ============ API Endpoints ============


@router.post("", response_model=ApiKeyCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    request: CreateApiKeyRequest,
    current_user: CurrentUser,
    service: Annotated[ApiKeyService, Depends(get_api_key_service)],
) -> ApiKeyCreatedResponse:
    """Create a new API key.

    The plaintext key is only returned in this response.
    """
    api_key, plaintext = await service.create_api_key(
        CreateApiKeyData(
            user_id=current_user.id,
            name=request.name,
            permissions=[p.model_dump(mode="json") for p in request.permissions],
            expires_at=request.expires_at,
        )
    )
    return ApiKeyCreatedResponse(**_to_response(api_key).model_dump(), key=plaintext)


@router.get("", response_model=list[ApiKeyResponse])
async def list_api_keys(
    current_user: CurrentUser,
    service: Annotated[ApiKeyService, Depends(get_api_key_service)],
) -> list[ApiKeyResponse]:
    """List the current merchant's API keys, newest first."""
    api_keys = await service.get_user_api_keys(current_user.id)
    return [_to_response(k) for k in api_keys]


@router.put("/{key_id}", response_model=ApiKeyResponse)
async def update_api_key(
    key_id: uuid.UUID,
    request: UpdateApiKeyRequest,
    current_user: CurrentUser,
    service: Annotated[ApiKeyService, Depends(get_api_key_service)],
) -> ApiKeyResponse:
    """Update name, permissions, active flag or expiry of an API key."""
    updates = request.model_dump(mode="json", exclude_unset=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No updates provided",
        )
    if "expires_at" in updates:
        updates["expires_at"] = request.expires_at

    api_key = await service.update_api_key(key_id, current_user.id, updates)
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="API key not found",
        )
    return _to_response(api_key)


@router.delete("/{key_id}")
async def delete_api_key(
    key_id: uuid.UUID,
    current_user: CurrentUser,
    service: Annotated[ApiKeyService, Depends(get_api_key_service)],
):
    """Permanently delete an API key and its usage history."""
    deleted = await service.delete_api_key(key_id, current_user.id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="API key not found",
        )
    return {"success": True, "message": "API key deleted successfully"}


@router.get("/{key_id}/usage", response_model=ApiKeyUsageResponse)
async def get_api_key_usage(
    key_id: uuid.UUID,
    current_user: CurrentUser,
    service: Annotated[ApiKeyService, Depends(get_api_key_service)],
    days: int | None = Query(default=None, ge=1, le=365, description="Trailing window in days"),
) -> ApiKeyUsageResponse:
    """Get request statistics of an API key."""
    api_key = await service.get_api_key(key_id, current_user.id)
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="API key not found",
        )

    window = days or get_settings().api_key_usage_window_days
    stats = await service.get_usage_stats(api_key.id, window)
    return ApiKeyUsageResponse(
        api_key_id=api_key.id,
        days=window,
        total_requests=stats.total_requests,
        successful_requests=stats.successful_requests,
        error_requests=stats.error_requests,
        daily_stats=[
            DailyUsageResponse(date=d.date, requests=d.requests, errors=d.errors)
            for d in stats.daily_stats
        ],
    )
