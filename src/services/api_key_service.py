"""API key service - issuing, validating and auditing public API keys."""

import asyncio
import logging
import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from src.core.security import SecretHasher, get_hasher
from src.models.api_key import (
    API_KEY_LITERAL_PREFIX,
    API_KEY_PREFIX_LENGTH,
    ApiKey,
    ApiKeyAction,
    ApiKeyResource,
    ApiKeyUsageLog,
)
from src.utils.helpers import to_naive_utc, utc_now

logger = logging.getLogger(__name__)

INVALID_API_KEY_MESSAGE = "Invalid API key"
VALIDATION_FAILED_MESSAGE = "Failed to validate API key"

# The lookup prefix carries 7 random hex chars, retry on collision
MAX_GENERATION_ATTEMPTS = 5

UPDATABLE_FIELDS = ("name", "permissions", "is_active", "expires_at")


class ApiKeyFailureReason(str, Enum):
    """Internal reason a key was rejected. Never exposed to API clients."""

    INVALID_FORMAT = "invalid_format"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    INVALID = "invalid"
    ERROR = "error"


@dataclass
class ApiKeyValidationResult:
    """Outcome of validating a presented API key.

    ``error`` is always a generic message so callers cannot leak whether a
    prefix exists. ``reason`` is for logs and tests.
    """

    is_valid: bool
    api_key: ApiKey | None = None
    error: str | None = None
    reason: ApiKeyFailureReason | None = None


@dataclass
class CreateApiKeyData:
    user_id: uuid.UUID
    name: str
    permissions: list[dict[str, Any]] = field(default_factory=list)
    expires_at: datetime | None = None


@dataclass
class DailyUsage:
    date: str
    requests: int
    errors: int


@dataclass
class UsageStats:
    """Aggregated usage of one key over a trailing window."""

    total_requests: int
    successful_requests: int
    error_requests: int
    daily_stats: list[DailyUsage]


def _enum_value(value: Enum | str) -> str:
    return value.value if isinstance(value, Enum) else str(value)


class ApiKeyService:
    """Service for API key lifecycle, verification and usage statistics.

    Args:
        db: Database session
        hasher: Secret hasher, defaults to the settings-configured one
        clock: Returns the current naive UTC time
    """

    def __init__(
        self,
        db: AsyncSession,
        hasher: SecretHasher | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.hasher = hasher or get_hasher()
        self.clock = clock

    # ============ Key material ============

    @staticmethod
    def generate_api_key() -> str:
        """Generate a new plaintext key: ``sb0_live_`` followed by 32 hex chars."""
        return f"{API_KEY_LITERAL_PREFIX}{secrets.token_hex(16)}"

    @staticmethod
    def get_key_prefix(key: str) -> str:
        """Non-secret lookup prefix stored alongside the hash."""
        return key[:API_KEY_PREFIX_LENGTH]

    async def hash_api_key(self, key: str) -> str:
        """Hash a key with bcrypt off the event loop."""
        return await asyncio.to_thread(self.hasher.hash, key)

    async def _prefix_exists(self, prefix: str) -> bool:
        result = await self.db.execute(select(ApiKey.id).where(ApiKey.prefix == prefix))
        return result.first() is not None

    # ============ CRUD ============

    async def create_api_key(self, data: CreateApiKeyData) -> tuple[ApiKey, str]:
        """Create an API key for a merchant.

        Args:
            data: Owner, display name, permissions and optional expiry

        Returns:
            Tuple of (persisted key, plaintext key). The plaintext is not
            recoverable afterwards.
        """
        for _ in range(MAX_GENERATION_ATTEMPTS):
            plaintext = self.generate_api_key()
            prefix = self.get_key_prefix(plaintext)
            if not await self._prefix_exists(prefix):
                break
            logger.warning(f"API key prefix collision on {prefix}, regenerating")
        else:
            raise RuntimeError("Could not generate a unique API key prefix")

        now = self.clock()
        api_key = ApiKey(
            user_id=data.user_id,
            name=data.name.strip(),
            key_hash=await self.hash_api_key(plaintext),
            prefix=prefix,
            permissions=list(data.permissions),
            is_active=True,
            expires_at=to_naive_utc(data.expires_at),
            created_at=now,
            updated_at=now,
        )
        self.db.add(api_key)
        await self.db.commit()
        await self.db.refresh(api_key)

        logger.info(f"Created API key {prefix} for user {data.user_id}")
        return api_key, plaintext

    async def get_user_api_keys(self, user_id: uuid.UUID) -> list[ApiKey]:
        """List a merchant's keys, newest first."""
        result = await self.db.execute(
            select(ApiKey).where(ApiKey.user_id == user_id).order_by(ApiKey.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_api_key(self, key_id: uuid.UUID, user_id: uuid.UUID) -> ApiKey | None:
        """Get a key only if it belongs to the given merchant."""
        result = await self.db.execute(
            select(ApiKey).where(ApiKey.id == key_id, ApiKey.user_id == user_id)
        )
        return result.scalars().first()

    async def update_api_key(
        self,
        key_id: uuid.UUID,
        user_id: uuid.UUID,
        updates: dict[str, Any],
    ) -> ApiKey | None:
        """Update name, permissions, active flag or expiry of an owned key.

        Args:
            key_id: Key to update
            user_id: Merchant that must own the key
            updates: Field values, unknown fields are ignored

        Returns:
            Updated key, or None when there is nothing to update or the key
            is not owned by the merchant
        """
        changes = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        if not changes:
            return None

        api_key = await self.get_api_key(key_id, user_id)
        if not api_key:
            return None

        if "name" in changes and changes["name"] is not None:
            api_key.name = changes["name"].strip()
        if "permissions" in changes and changes["permissions"] is not None:
            api_key.permissions = list(changes["permissions"])
        if "is_active" in changes and changes["is_active"] is not None:
            api_key.is_active = changes["is_active"]
        if "expires_at" in changes:
            # explicit null clears the expiry
            api_key.expires_at = to_naive_utc(changes["expires_at"])

        api_key.updated_at = self.clock()
        await self.db.commit()
        await self.db.refresh(api_key)
        return api_key

    async def delete_api_key(self, key_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Hard delete an owned key together with its usage logs."""
        api_key = await self.get_api_key(key_id, user_id)
        if not api_key:
            return False

        await self.db.execute(delete(ApiKeyUsageLog).where(ApiKeyUsageLog.api_key_id == api_key.id))
        await self.db.delete(api_key)
        await self.db.commit()

        logger.info(f"Deleted API key {api_key.prefix} for user {user_id}")
        return True

    # ============ Verification ============

    def _reject(self, reason: ApiKeyFailureReason, prefix: str | None = None) -> ApiKeyValidationResult:
        logger.info(f"API key rejected ({reason.value}) prefix={prefix or '-'}")
        return ApiKeyValidationResult(
            is_valid=False,
            error=INVALID_API_KEY_MESSAGE,
            reason=reason,
        )

    async def validate_api_key(self, key: str | None) -> ApiKeyValidationResult:
        """Validate a presented key.

        Lookup is by the indexed prefix among active keys, followed by an
        expiry check and a constant-time bcrypt comparison. On success the
        key's ``last_used_at`` is touched.

        Never raises; infrastructure failures yield ``ApiKeyFailureReason.ERROR``.
        """
        try:
            if not key or not key.startswith(API_KEY_LITERAL_PREFIX):
                return self._reject(ApiKeyFailureReason.INVALID_FORMAT)

            prefix = self.get_key_prefix(key)
            result = await self.db.execute(
                select(ApiKey).where(
                    ApiKey.prefix == prefix,
                    ApiKey.is_active == True,  # noqa: E712
                )
            )
            api_key = result.scalars().first()
            if not api_key:
                return self._reject(ApiKeyFailureReason.NOT_FOUND, prefix)

            now = self.clock()
            if api_key.is_expired(now):
                return self._reject(ApiKeyFailureReason.EXPIRED, prefix)

            if not await asyncio.to_thread(self.hasher.verify, key, api_key.key_hash):
                return self._reject(ApiKeyFailureReason.INVALID, prefix)

            await self._touch_last_used(api_key, now)
            return ApiKeyValidationResult(is_valid=True, api_key=api_key)
        except Exception:
            logger.exception("Error validating API key")
            return ApiKeyValidationResult(
                is_valid=False,
                error=VALIDATION_FAILED_MESSAGE,
                reason=ApiKeyFailureReason.ERROR,
            )

    async def _touch_last_used(self, api_key: ApiKey, now: datetime) -> None:
        """Record the use in its own session, a failed write leaves the request session untouched."""
        try:
            async with AsyncSession(self.db.bind) as session:
                await session.execute(
                    update(ApiKey).where(ApiKey.id == api_key.id).values(last_used_at=now)
                )
                await session.commit()
        except Exception:
            logger.exception(f"Failed to update last_used_at for API key {api_key.prefix}")
            return
        set_committed_value(api_key, "last_used_at", now)

    @staticmethod
    def has_permission(
        api_key: ApiKey,
        resource: ApiKeyResource | str,
        action: ApiKeyAction | str,
    ) -> bool:
        """Check whether a key grants an action on a resource."""
        resource_name = _enum_value(resource)
        action_name = _enum_value(action)
        for permission in api_key.permissions or []:
            if permission.get("resource") == resource_name:
                if action_name in (permission.get("actions") or []):
                    return True
        return False

    # ============ Usage ============

    async def log_usage(
        self,
        api_key_id: uuid.UUID,
        endpoint: str,
        method: str,
        status_code: int,
        ip_address: str | None = None,
        user_agent: str | None = None,
        request_id: str | None = None,
    ) -> ApiKeyUsageLog | None:
        """Record one authenticated request.

        Returns:
            The stored log, or None if it could not be written
        """
        log = ApiKeyUsageLog(
            api_key_id=api_key_id,
            endpoint=endpoint[:255],
            method=method.upper()[:10],
            status_code=status_code,
            ip_address=ip_address,
            user_agent=user_agent,
            request_id=request_id,
            created_at=self.clock(),
        )
        try:
            self.db.add(log)
            await self.db.commit()
        except SQLAlchemyError:
            logger.exception(f"Failed to log usage for API key {api_key_id}")
            await self.db.rollback()
            return None
        return log

    async def get_usage_stats(self, api_key_id: uuid.UUID, days: int = 30) -> UsageStats:
        """Aggregate request counts for a key over the last ``days`` days.

        Successful requests have a status code below 400, everything else
        counts as an error. Daily rows are newest first.
        """
        since = self.clock() - timedelta(days=days)
        in_window = (
            ApiKeyUsageLog.api_key_id == api_key_id,
            ApiKeyUsageLog.created_at >= since,
        )
        successful = func.count(case((ApiKeyUsageLog.status_code < 400, 1)))
        errors = func.count(case((ApiKeyUsageLog.status_code >= 400, 1)))

        totals = await self.db.execute(select(func.count(), successful, errors).where(*in_window))
        total_requests, successful_requests, error_requests = totals.one()

        day = func.date(ApiKeyUsageLog.created_at).label("day")
        daily = await self.db.execute(
            select(day, func.count().label("requests"), errors.label("errors"))
            .where(*in_window)
            .group_by(day)
            .order_by(day.desc())
        )

        return UsageStats(
            total_requests=total_requests or 0,
            successful_requests=successful_requests or 0,
            error_requests=error_requests or 0,
            daily_stats=[
                DailyUsage(date=str(row.day), requests=row.requests, errors=row.errors or 0)
                for row in daily.all()
            ],
        )
