"""User Service - Business logic for merchant accounts."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.core.exceptions import NotFoundError, ValidationError
from src.models.user import User
from src.schemas.user import MerchantConfig, RegisterMerchantRequest
from src.utils.helpers import utc_now

logger = logging.getLogger(__name__)


class UserService:
    """Service for merchant profile management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: uuid.UUID) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    async def get_by_clerk_id(self, clerk_id: str) -> User | None:
        """Get the merchant linked to a Clerk user ID."""
        result = await self.db.execute(select(User).where(User.clerk_id == clerk_id))
        return result.scalars().first()

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalars().first()

    async def register_merchant(
        self,
        clerk_id: str,
        email: str,
        data: RegisterMerchantRequest,
    ) -> User:
        """Create the local merchant profile for a Clerk user.

        Args:
            clerk_id: Clerk user ID from the session token
            email: Primary email from Clerk
            data: Shop details and merchant configuration

        Returns:
            Created user

        Raises:
            ValidationError: Profile already exists or email is taken
        """
        if await self.get_by_clerk_id(clerk_id):
            raise ValidationError("Merchant profile already exists")

        normalized_email = email.strip().lower()
        if not normalized_email:
            raise ValidationError("Email is required")
        if await self.get_by_email(normalized_email):
            raise ValidationError("Email is already registered")

        now = utc_now()
        user = User(
            clerk_id=clerk_id,
            email=normalized_email,
            shop_name=data.shop_name,
            owner_name=data.owner_name,
            merchant_config=data.merchant_config.model_dump(),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(f"Registered merchant {user.id} ({user.shop_name})")
        return user

    async def update_merchant_config(self, user_id: uuid.UUID, config: MerchantConfig) -> User:
        """Replace a merchant's billing configuration.

        Raises:
            NotFoundError: User does not exist
        """
        user = await self.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")

        user.merchant_config = config.model_dump()
        user.updated_at = utc_now()
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user
