"""Merchant profile API routes.

Business logic is delegated to UserService.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import ClerkClient, ClerkId, CurrentUser
from src.core.exceptions import NotFoundError, ValidationError
from src.db import get_db
from src.schemas.user import MerchantConfig, RegisterMerchantRequest, UserResponse
from src.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


# ============ Dependency ============


def get_user_service(db: Annotated[AsyncSession, Depends(get_db)]) -> UserService:
    """Create UserService instance."""
    return UserService(db)


# ============ API Endpoints ============


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_merchant(
    request: RegisterMerchantRequest,
    clerk_id: ClerkId,
    clerk: ClerkClient,
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Create the merchant profile for the signed-in Clerk user."""
    email = clerk.get_user_email(clerk_id)
    try:
        user = await service.register_merchant(clerk_id=clerk_id, email=email, data=request)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e

    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser) -> UserResponse:
    """Get the current merchant profile."""
    return UserResponse.model_validate(current_user)


@router.patch("/me/merchant-config", response_model=UserResponse)
async def update_merchant_config(
    config: MerchantConfig,
    current_user: CurrentUser,
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Replace the current merchant's billing configuration."""
    try:
        user = await service.update_merchant_config(current_user.id, config)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e

    return UserResponse.model_validate(user)
