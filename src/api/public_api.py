"""SB0 Pay Merchant Portal - Public API v1 routes.

Authenticated with API keys (``Authorization: Bearer sb0_live_...``), each
route requires one resource permission.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.api_key_auth import PublicApiError, require_api_key
from src.core.config import get_settings
from src.core.exceptions import (
    AuthorizationError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from src.db import get_db
from src.models.api_key import ApiKey, ApiKeyAction, ApiKeyResource
from src.models.transaction import Transaction, TransactionStatus
from src.models.user import User
from src.schemas.public_api import (
    PublicErrorCode,
    PublicErrorResponse,
    PublicPagination,
    PublicPaymentListResponse,
    PublicProfileResponse,
    PublicTransactionResponse,
)
from src.schemas.transaction import CreateTransactionRequest
from src.services.transaction_service import TransactionService
from src.services.transaction_validator import CreateTransactionData
from src.services.user_service import UserService
from src.utils.helpers import format_utc_datetime
from src.utils.pagination import OffsetParams

router = APIRouter(
    prefix="/api/v1",
    tags=["Public API v1"],
    responses={
        401: {"model": PublicErrorResponse},
        403: {"model": PublicErrorResponse},
    },
)

PaymentsCreate = Annotated[
    ApiKey, Depends(require_api_key(ApiKeyResource.PAYMENTS, ApiKeyAction.CREATE))
]
PaymentsRead = Annotated[
    ApiKey, Depends(require_api_key(ApiKeyResource.PAYMENTS, ApiKeyAction.READ))
]
PaymentsUpdate = Annotated[
    ApiKey, Depends(require_api_key(ApiKeyResource.PAYMENTS, ApiKeyAction.UPDATE))
]
ProfileRead = Annotated[
    ApiKey, Depends(require_api_key(ApiKeyResource.PROFILE, ApiKeyAction.READ))
]


def get_transaction_service(db: Annotated[AsyncSession, Depends(get_db)]) -> TransactionService:
    """Create TransactionService instance."""
    return TransactionService(db)


def _to_public(transaction: Transaction) -> PublicTransactionResponse:
    return PublicTransactionResponse(
        id=str(transaction.id),
        amount=float(transaction.amount),
        currency=transaction.currency,
        status=TransactionStatus(transaction.status).value,
        payment_url=transaction.payment_url,
        description=transaction.description,
        metadata=transaction.extra_metadata,
        created_at=format_utc_datetime(transaction.created_at),
        updated_at=format_utc_datetime(transaction.updated_at),
    )


async def _get_payment(
    service: TransactionService,
    payment_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Transaction:
    try:
        return await service.get_user_transaction(payment_id, user_id)
    except NotFoundError as e:
        raise PublicApiError(
            status.HTTP_404_NOT_FOUND,
            PublicErrorCode.PAYMENT_NOT_FOUND,
            "Payment not found",
        ) from e
    except AuthorizationError as e:
        raise PublicApiError(
            status.HTTP_403_FORBIDDEN,
            PublicErrorCode.FORBIDDEN,
            "Access denied to this payment",
            "authentication_error",
        ) from e


@router.post(
    "/payments",
    response_model=PublicTransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    request: CreateTransactionRequest,
    api_key: PaymentsCreate,
    service: Annotated[TransactionService, Depends(get_transaction_service)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PublicTransactionResponse:
    """Record a payment link issued by the AllPay gateway.

    The currency defaults to the merchant's configured currency.
    """
    user = await UserService(db).get_user(api_key.user_id)
    if not user:
        raise PublicApiError(
            status.HTTP_404_NOT_FOUND,
            PublicErrorCode.USER_NOT_FOUND,
            "Associated user account not found",
            "api_error",
        )

    data = CreateTransactionData(
        user_id=user.id,
        amount=request.amount,
        currency=request.currency or user.default_currency,
        payment_url=request.payment_url,
        allpay_transaction_id=request.allpay_transaction_id,
        description=request.description,
        customer_email=request.customer_email,
        customer_name=request.customer_name,
        customer_phone=request.customer_phone,
        success_url=request.success_url,
        cancel_url=request.cancel_url,
        webhook_url=request.webhook_url,
        metadata=request.metadata,
        api_key_id=api_key.id,
    )
    try:
        transaction = await service.create_transaction(data)
    except ValidationError as e:
        code = (
            PublicErrorCode.INVALID_AMOUNT
            if any(error.startswith("Amount") for error in e.errors)
            else PublicErrorCode.INVALID_REQUEST
        )
        raise PublicApiError(status.HTTP_400_BAD_REQUEST, code, "; ".join(e.errors)) from e

    return _to_public(transaction)


@router.get("/payments", response_model=PublicPaymentListResponse)
async def list_payments(
    api_key: PaymentsRead,
    service: Annotated[TransactionService, Depends(get_transaction_service)],
    limit: int = Query(default=50, ge=1, description="Max items, capped at 100"),
    offset: int = Query(default=0, ge=0),
    status_filter: TransactionStatus | None = Query(default=None, alias="status"),
) -> PublicPaymentListResponse:
    """List the merchant's payments, newest first."""
    limit = min(limit, get_settings().public_api_max_page_size)
    result = await service.list_transactions(
        api_key.user_id,
        OffsetParams(offset=offset, limit=limit),
        status=status_filter,
    )

    return PublicPaymentListResponse(
        data=[_to_public(t) for t in result.items],
        pagination=PublicPagination(
            limit=limit,
            offset=offset,
            total=result.total,
            has_more=offset + len(result.items) < result.total,
        ),
    )


@router.get("/payments/{payment_id}", response_model=PublicTransactionResponse)
async def get_payment(
    payment_id: uuid.UUID,
    api_key: PaymentsRead,
    service: Annotated[TransactionService, Depends(get_transaction_service)],
) -> PublicTransactionResponse:
    """Get a single payment."""
    transaction = await _get_payment(service, payment_id, api_key.user_id)
    return _to_public(transaction)


@router.post("/payments/{payment_id}/cancel", response_model=PublicTransactionResponse)
async def cancel_payment(
    payment_id: uuid.UUID,
    api_key: PaymentsUpdate,
    service: Annotated[TransactionService, Depends(get_transaction_service)],
) -> PublicTransactionResponse:
    """Cancel a pending payment."""
    await _get_payment(service, payment_id, api_key.user_id)
    try:
        transaction = await service.cancel_transaction(payment_id, api_key.user_id)
    except InvalidStatusTransitionError as e:
        raise PublicApiError(
            status.HTTP_400_BAD_REQUEST,
            PublicErrorCode.INVALID_STATUS,
            e.message,
        ) from e

    return _to_public(transaction)


@router.get("/profile", response_model=PublicProfileResponse)
async def get_profile(
    api_key: ProfileRead,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PublicProfileResponse:
    """Get the merchant profile the API key belongs to."""
    user: User | None = await UserService(db).get_user(api_key.user_id)
    if not user:
        raise PublicApiError(
            status.HTTP_403_FORBIDDEN,
            PublicErrorCode.FORBIDDEN,
            "Merchant account is not available",
            "authentication_error",
        )

    config = user.merchant_config or {}
    return PublicProfileResponse(
        id=str(user.id),
        shop_name=user.shop_name,
        owner_name=user.owner_name,
        currency=config.get("currency") or "ILS",
        language=config.get("language") or "he",
        permissions=api_key.permissions or [],
    )
