"""Transaction service - recording gateway payments and moving them through their lifecycle."""

import logging
import uuid
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import (
    AuthorizationError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from src.models.transaction import Transaction, TransactionStatus, is_valid_status_transition
from src.services.transaction_validator import (
    CreateTransactionData,
    sanitize_create_transaction_data,
    validate_allpay_transaction_id,
    validate_create_transaction_data,
)
from src.utils.helpers import to_naive_utc, utc_now
from src.utils.pagination import OffsetParams, PaginatedResult, PaginationParams, paginate_query

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(Decimal("0.01"))


class TransactionService:
    """Service for merchant transactions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_transaction(self, data: CreateTransactionData) -> Transaction:
        """Validate, sanitize and persist a new pending transaction.

        Args:
            data: Raw creation data

        Returns:
            Created transaction

        Raises:
            ValidationError: With every violation in ``details["errors"]``
        """
        result = validate_create_transaction_data(data)
        if not result.is_valid:
            raise ValidationError("Invalid transaction data", {"errors": result.errors})

        clean = sanitize_create_transaction_data(data)
        user_id = clean.user_id if isinstance(clean.user_id, uuid.UUID) else uuid.UUID(clean.user_id)

        now = utc_now()
        transaction = Transaction(
            user_id=user_id,
            amount=clean.amount,
            currency=clean.currency,
            payment_url=clean.payment_url,
            allpay_transaction_id=clean.allpay_transaction_id or None,
            status=TransactionStatus.PENDING,
            description=clean.description,
            customer_email=clean.customer_email,
            customer_name=clean.customer_name,
            customer_phone=clean.customer_phone,
            success_url=clean.success_url,
            cancel_url=clean.cancel_url,
            webhook_url=clean.webhook_url,
            extra_metadata=clean.metadata,
            expires_at=to_naive_utc(clean.expires_at),
            api_key_id=clean.api_key_id,
            created_at=now,
            updated_at=now,
        )
        self.db.add(transaction)
        await self.db.commit()
        await self.db.refresh(transaction)

        logger.info(
            f"Created transaction {transaction.id} for user {user_id}: "
            f"{transaction.amount} {transaction.currency}"
        )
        return transaction

    async def get_transaction(self, transaction_id: uuid.UUID) -> Transaction | None:
        result = await self.db.execute(select(Transaction).where(Transaction.id == transaction_id))
        return result.scalars().first()

    async def get_user_transaction(
        self, transaction_id: uuid.UUID, user_id: uuid.UUID
    ) -> Transaction:
        """Get a transaction that must belong to the given merchant.

        Raises:
            NotFoundError: Transaction does not exist
            AuthorizationError: Transaction belongs to another merchant
        """
        transaction = await self.get_transaction(transaction_id)
        if not transaction:
            raise NotFoundError("Transaction not found")
        if transaction.user_id != user_id:
            raise AuthorizationError("Access denied to this transaction")
        return transaction

    async def list_transactions(
        self,
        user_id: uuid.UUID,
        params: PaginationParams | OffsetParams,
        status: TransactionStatus | None = None,
    ) -> PaginatedResult[Transaction]:
        """List a merchant's transactions, newest first."""
        query = select(Transaction).where(Transaction.user_id == user_id)
        if status is not None:
            query = query.where(Transaction.status == status)
        query = query.order_by(Transaction.created_at.desc())

        items, total = await paginate_query(self.db, query, params)

        if isinstance(params, PaginationParams):
            page = params.page
        else:
            page = params.offset // max(params.limit, 1) + 1
        return PaginatedResult(items=items, total=total, page=page, page_size=params.limit)

    async def count_transactions(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Transaction).where(Transaction.user_id == user_id)
        )
        return result.scalar() or 0

    async def update_status(
        self,
        transaction_id: uuid.UUID,
        new_status: TransactionStatus,
        allpay_transaction_id: str | None = None,
    ) -> Transaction:
        """Move a transaction to a new status.

        Raises:
            NotFoundError: Transaction does not exist
            InvalidStatusTransitionError: Transition not in the table
            ValidationError: Malformed AllPay reference
        """
        transaction = await self._get_for_update(transaction_id)
        if not transaction:
            raise NotFoundError("Transaction not found")
        return await self._apply_status(transaction, new_status, allpay_transaction_id)

    async def _get_for_update(self, transaction_id: uuid.UUID) -> Transaction | None:
        """Load a transaction with a row lock, refreshing any copy already in the session."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def _apply_status(
        self,
        transaction: Transaction,
        new_status: TransactionStatus,
        allpay_transaction_id: str | None = None,
    ) -> Transaction:
        current = TransactionStatus(transaction.status)
        if not is_valid_status_transition(current, new_status):
            raise InvalidStatusTransitionError(current.value, TransactionStatus(new_status).value)

        if allpay_transaction_id is not None:
            if not validate_allpay_transaction_id(allpay_transaction_id):
                raise ValidationError(
                    "Invalid AllPay transaction ID format",
                    {"errors": ["Invalid AllPay transaction ID format"]},
                )
            transaction.allpay_transaction_id = allpay_transaction_id.strip()

        transaction.status = TransactionStatus(new_status)
        transaction.updated_at = utc_now()
        await self.db.commit()
        await self.db.refresh(transaction)

        logger.info(f"Transaction {transaction.id} status {current.value} -> {transaction.status.value}")
        return transaction

    async def cancel_transaction(self, transaction_id: uuid.UUID, user_id: uuid.UUID) -> Transaction:
        """Cancel a pending transaction owned by the merchant.

        Raises:
            NotFoundError: Transaction does not exist
            AuthorizationError: Transaction belongs to another merchant
            InvalidStatusTransitionError: Transaction is not pending
        """
        transaction = await self._get_for_update(transaction_id)
        if not transaction:
            raise NotFoundError("Transaction not found")
        if transaction.user_id != user_id:
            raise AuthorizationError("Access denied to this transaction")
        if transaction.status != TransactionStatus.PENDING:
            raise InvalidStatusTransitionError(
                TransactionStatus(transaction.status).value,
                TransactionStatus.CANCELLED.value,
                "Can only cancel pending transactions",
            )
        return await self._apply_status(transaction, TransactionStatus.CANCELLED)

    async def get_transaction_stats(self, user_id: uuid.UUID) -> dict:
        """Count a merchant's transactions per status and sum their amounts."""
        result = await self.db.execute(
            select(Transaction.status, func.count(), func.sum(Transaction.amount))
            .where(Transaction.user_id == user_id)
            .group_by(Transaction.status)
        )

        stats: dict = {status.value: 0 for status in TransactionStatus}
        total = 0
        total_amount = ZERO
        completed_amount = ZERO
        for status, count, amount in result.all():
            status = TransactionStatus(status)
            stats[status.value] = count
            total += count
            total_amount += _to_decimal(amount)
            if status == TransactionStatus.COMPLETED:
                completed_amount = _to_decimal(amount)

        stats["total"] = total
        stats["total_amount"] = f"{total_amount:.2f}"
        stats["completed_amount"] = f"{completed_amount:.2f}"
        return stats
