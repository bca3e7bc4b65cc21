"""Transaction routes for the merchant dashboard.

Business logic is delegated to TransactionService.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import CurrentUser
from src.core.exceptions import (
    AuthorizationError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from src.db import get_db
from src.models.transaction import (
    Transaction,
    TransactionStatus,
    get_valid_next_statuses,
    is_transaction_final,
)
from src.schemas.pagination import PaginatedResponse
from src.schemas.transaction import (
    CreateTransactionRequest,
    TransactionResponse,
    TransactionStatsResponse,
    UpdateTransactionStatusRequest,
)
from src.services.transaction_service import TransactionService
from src.services.transaction_validator import CreateTransactionData, format_transaction_amount
from src.utils.helpers import format_utc_datetime
from src.utils.pagination import PaginationParams

router = APIRouter(prefix="/transactions", tags=["Transactions"])


# ============ Dependency ============


def get_transaction_service(db: Annotated[AsyncSession, Depends(get_db)]) -> TransactionService:
    """Create TransactionService instance."""
    return TransactionService(db)


def _to_response(transaction: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=transaction.id,
        amount=f"{transaction.amount:.2f}",
        formatted_amount=format_transaction_amount(transaction.amount, transaction.currency),
        currency=transaction.currency,
        status=transaction.status,
        is_final=is_transaction_final(transaction.status),
        next_statuses=get_valid_next_statuses(transaction.status),
        payment_url=transaction.payment_url,
        allpay_transaction_id=transaction.allpay_transaction_id,
        description=transaction.description,
        customer_email=transaction.customer_email,
        customer_name=transaction.customer_name,
        customer_phone=transaction.customer_phone,
        metadata=transaction.extra_metadata,
        created_at=format_utc_datetime(transaction.created_at),
        updated_at=format_utc_datetime(transaction.updated_at),
    )


async def _get_owned(
    service: TransactionService,
    transaction_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Transaction:
    try:
        return await service.get_user_transaction(transaction_id, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except AuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message) from e


# ============ API Endpoints ============


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    request: CreateTransactionRequest,
    current_user: CurrentUser,
    service: Annotated[TransactionService, Depends(get_transaction_service)],
) -> TransactionResponse:
    """Record a payment link issued by the AllPay gateway."""
    data = CreateTransactionData(
        user_id=current_user.id,
        amount=request.amount,
        currency=request.currency or current_user.default_currency,
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
    )
    try:
        transaction = await service.create_transaction(data)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": e.message, "errors": e.errors},
        ) from e

    return _to_response(transaction)


@router.get("", response_model=PaginatedResponse[TransactionResponse])
async def list_transactions(
    current_user: CurrentUser,
    service: Annotated[TransactionService, Depends(get_transaction_service)],
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
    status_filter: TransactionStatus | None = Query(default=None, alias="status"),
) -> PaginatedResponse[TransactionResponse]:
    """Get the current merchant's transactions, newest first."""
    params = PaginationParams(page=page, page_size=page_size)
    result = await service.list_transactions(current_user.id, params, status=status_filter)

    return PaginatedResponse(
        items=[_to_response(t) for t in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


@router.get("/stats", response_model=TransactionStatsResponse)
async def get_transaction_stats(
    current_user: CurrentUser,
    service: Annotated[TransactionService, Depends(get_transaction_service)],
) -> TransactionStatsResponse:
    """Get per-status counts and amounts for the current merchant."""
    stats = await service.get_transaction_stats(current_user.id)
    return TransactionStatsResponse(**stats)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: uuid.UUID,
    current_user: CurrentUser,
    service: Annotated[TransactionService, Depends(get_transaction_service)],
) -> TransactionResponse:
    """Get a single transaction."""
    transaction = await _get_owned(service, transaction_id, current_user.id)
    return _to_response(transaction)


@router.post("/{transaction_id}/status", response_model=TransactionResponse)
async def update_transaction_status(
    transaction_id: uuid.UUID,
    request: UpdateTransactionStatusRequest,
    current_user: CurrentUser,
    service: Annotated[TransactionService, Depends(get_transaction_service)],
) -> TransactionResponse:
    """Move a transaction to a new status.

    Only transitions allowed by the status table are accepted.
    """
    await _get_owned(service, transaction_id, current_user.id)
    try:
        transaction = await service.update_status(
            transaction_id,
            request.status,
            allpay_transaction_id=request.allpay_transaction_id,
        )
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e

    return _to_response(transaction)
