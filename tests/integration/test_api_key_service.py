from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.security import SecretHasher
from src.models import ApiKey, ApiKeyAction, ApiKeyResource, User
from src.services.api_key_service import (
    ApiKeyFailureReason,
    ApiKeyService,
    CreateApiKeyData,
)
from src.utils.helpers import utc_now

NOW = datetime(2026, 10, 16, 12, 0, 0)


class ExplodingHasher(SecretHasher):
    def verify(self, plaintext: str, hashed: str) -> bool:
        raise RuntimeError("hash backend unavailable")


@pytest.mark.unit
class TestKeyMaterial:
    def test_generate_api_key_format(self):
        key = ApiKeyService.generate_api_key()
        assert key.startswith("sb0_live_")
        assert len(key) == 41
        assert set(key[len("sb0_live_") :]) <= set("0123456789abcdef")

    def test_keys_are_unique(self):
        keys = {ApiKeyService.generate_api_key() for _ in range(50)}
        assert len(keys) == 50

    def test_prefix_is_first_16_chars(self):
        key = "sb0_live_0123456789abcdef0123456789abcdef"
        assert ApiKeyService.get_key_prefix(key) == "sb0_live_0123456"

    def test_has_permission(self):
        api_key = ApiKey(
            permissions=[
                {"resource": "payments", "actions": ["read", "update"]},
                {"resource": "profile", "actions": ["read"]},
            ]
        )
        assert ApiKeyService.has_permission(api_key, ApiKeyResource.PAYMENTS, ApiKeyAction.READ)
        assert ApiKeyService.has_permission(api_key, "payments", "update")
        assert not ApiKeyService.has_permission(api_key, "payments", "delete")
        assert not ApiKeyService.has_permission(api_key, "webhooks", "read")
        assert not ApiKeyService.has_permission(ApiKey(permissions=[]), "profile", "read")


@pytest.mark.integration
class TestApiKeyLifecycle:
    async def test_create_stores_hash_and_prefix_only(self, api_key_service, merchant: User):
        api_key, plaintext = await api_key_service.create_api_key(
            CreateApiKeyData(user_id=merchant.id, name="  Checkout  ")
        )
        assert api_key.name == "Checkout"
        assert api_key.prefix == plaintext[:16]
        assert api_key.key_hash != plaintext
        assert plaintext not in api_key.key_hash
        assert api_key.is_active
        assert api_key.permissions == []
        assert api_key_service.hasher.verify(plaintext, api_key.key_hash)

    async def test_hash_api_key(self, api_key_service):
        key = ApiKeyService.generate_api_key()
        hashed = await api_key_service.hash_api_key(key)
        assert hashed.startswith("$2")
        assert api_key_service.hasher.verify(key, hashed)

    async def test_list_is_owner_scoped_newest_first(
        self, db_session: AsyncSession, merchant: User, other_merchant: User
    ):
        ticks = iter([NOW, NOW + timedelta(minutes=1), NOW + timedelta(minutes=2)])
        service = ApiKeyService(db_session, clock=lambda: next(ticks))
        first, _ = await service.create_api_key(CreateApiKeyData(user_id=merchant.id, name="first"))
        second, _ = await service.create_api_key(CreateApiKeyData(user_id=merchant.id, name="second"))
        await service.create_api_key(CreateApiKeyData(user_id=other_merchant.id, name="other"))

        keys = await service.get_user_api_keys(merchant.id)
        assert [k.id for k in keys] == [second.id, first.id]

    async def test_update(self, api_key_service, create_api_key, merchant, other_merchant):
        api_key, _ = await create_api_key(merchant)

        assert await api_key_service.update_api_key(api_key.id, merchant.id, {}) is None
        assert await api_key_service.update_api_key(api_key.id, merchant.id, {"prefix": "x"}) is None
        assert (
            await api_key_service.update_api_key(api_key.id, other_merchant.id, {"name": "stolen"})
            is None
        )

        updated = await api_key_service.update_api_key(
            api_key.id,
            merchant.id,
            {"name": "Renamed", "permissions": [{"resource": "profile", "actions": ["read"]}]},
        )
        assert updated is not None
        assert updated.name == "Renamed"
        assert updated.permissions == [{"resource": "profile", "actions": ["read"]}]

    async def test_delete_is_owner_scoped_and_removes_usage(
        self, api_key_service, create_api_key, merchant, other_merchant
    ):
        api_key, _ = await create_api_key(merchant)
        await api_key_service.log_usage(api_key.id, "/api/v1/profile", "GET", 200)

        assert not await api_key_service.delete_api_key(api_key.id, other_merchant.id)
        assert await api_key_service.delete_api_key(api_key.id, merchant.id)
        assert await api_key_service.get_api_key(api_key.id, merchant.id) is None
        assert (await api_key_service.get_usage_stats(api_key.id)).total_requests == 0
        assert not await api_key_service.delete_api_key(api_key.id, merchant.id)


@pytest.mark.integration
class TestValidateApiKey:
    async def test_fresh_key_validates_and_touches_last_used(
        self, api_key_service, create_api_key, merchant
    ):
        api_key, plaintext = await create_api_key(merchant)
        assert api_key.last_used_at is None

        result = await api_key_service.validate_api_key(plaintext)

        assert result.is_valid
        assert result.error is None
        assert result.reason is None
        assert result.api_key.id == api_key.id
        assert result.api_key.last_used_at is not None

    @pytest.mark.parametrize("key", ["", None, "sk_live_0123456789abcdef", "SB0_LIVE_abc"])
    async def test_bad_format(self, api_key_service, key):
        result = await api_key_service.validate_api_key(key)
        assert not result.is_valid
        assert result.reason == ApiKeyFailureReason.INVALID_FORMAT
        assert result.error == "Invalid API key"

    async def test_unknown_prefix(self, api_key_service, create_api_key, merchant):
        await create_api_key(merchant)
        result = await api_key_service.validate_api_key("sb0_live_" + "f" * 32)
        assert result.reason == ApiKeyFailureReason.NOT_FOUND
        assert result.error == "Invalid API key"

    async def test_wrong_secret_with_known_prefix(self, api_key_service, create_api_key, merchant):
        _, plaintext = await create_api_key(merchant)
        last = "0" if plaintext[-1] != "0" else "1"
        result = await api_key_service.validate_api_key(plaintext[:-1] + last)
        assert result.reason == ApiKeyFailureReason.INVALID
        assert result.error == "Invalid API key"

    async def test_inactive_key_is_not_found(self, api_key_service, create_api_key, merchant):
        api_key, plaintext = await create_api_key(merchant)
        await api_key_service.update_api_key(api_key.id, merchant.id, {"is_active": False})

        result = await api_key_service.validate_api_key(plaintext)
        assert result.reason == ApiKeyFailureReason.NOT_FOUND

    async def test_expired_key(self, api_key_service, create_api_key, merchant):
        _, plaintext = await create_api_key(merchant, expires_at=utc_now() - timedelta(minutes=1))
        result = await api_key_service.validate_api_key(plaintext)
        assert result.reason == ApiKeyFailureReason.EXPIRED
        assert result.error == "Invalid API key"

    async def test_future_expiry_is_valid(self, api_key_service, create_api_key, merchant):
        _, plaintext = await create_api_key(merchant, expires_at=utc_now() + timedelta(days=30))
        assert (await api_key_service.validate_api_key(plaintext)).is_valid

    async def test_failed_last_used_write_keeps_key_valid(
        self, monkeypatch, db_session, api_key_service, create_api_key, merchant
    ):
        api_key, plaintext = await create_api_key(merchant)

        async def unavailable(*args, **kwargs):
            raise OperationalError("UPDATE api_keys", {}, ConnectionError("database went away"))

        monkeypatch.setattr(AsyncSession, "commit", unavailable)
        monkeypatch.setattr(AsyncSession, "refresh", unavailable)

        result = await api_key_service.validate_api_key(plaintext)

        assert result.is_valid
        assert result.reason is None
        assert result.api_key.id == api_key.id
        assert result.api_key.last_used_at is None

        monkeypatch.undo()
        stored = await db_session.scalar(select(ApiKey.last_used_at).where(ApiKey.id == api_key.id))
        assert stored is None

    async def test_internal_error_is_generic(self, db_session, create_api_key, merchant):
        _, plaintext = await create_api_key(merchant)
        service = ApiKeyService(db_session, hasher=ExplodingHasher(rounds=4))

        result = await service.validate_api_key(plaintext)

        assert not result.is_valid
        assert result.reason == ApiKeyFailureReason.ERROR
        assert result.error == "Failed to validate API key"


@pytest.mark.integration
class TestUsageStats:
    async def test_counts_and_daily_breakdown(self, db_session, create_api_key, merchant):
        api_key, _ = await create_api_key(merchant)

        today = ApiKeyService(db_session, clock=lambda: NOW)
        yesterday = ApiKeyService(db_session, clock=lambda: NOW - timedelta(days=1))
        long_ago = ApiKeyService(db_session, clock=lambda: NOW - timedelta(days=40))

        await today.log_usage(api_key.id, "/api/v1/payments", "GET", 200)
        await today.log_usage(api_key.id, "/api/v1/payments", "get", 404, ip_address="10.0.0.1")
        await yesterday.log_usage(api_key.id, "/api/v1/profile", "GET", 200)
        await yesterday.log_usage(api_key.id, "/api/v1/payments/x/cancel", "POST", 500)
        await yesterday.log_usage(api_key.id, "/api/v1/payments", "GET", 399)
        await long_ago.log_usage(api_key.id, "/api/v1/payments", "GET", 200)

        stats = await today.get_usage_stats(api_key.id, days=30)

        assert stats.total_requests == 5
        assert stats.successful_requests == 3
        assert stats.error_requests == 2
        assert [(d.date, d.requests, d.errors) for d in stats.daily_stats] == [
            ("2026-10-16", 2, 1),
            ("2026-10-15", 3, 1),
        ]

    async def test_window_is_configurable(self, db_session, create_api_key, merchant):
        api_key, _ = await create_api_key(merchant)
        service = ApiKeyService(db_session, clock=lambda: NOW)
        old = ApiKeyService(db_session, clock=lambda: NOW - timedelta(days=10))
        await service.log_usage(api_key.id, "/api/v1/profile", "GET", 200)
        await old.log_usage(api_key.id, "/api/v1/profile", "GET", 200)

        assert (await service.get_usage_stats(api_key.id, days=7)).total_requests == 1
        assert (await service.get_usage_stats(api_key.id, days=30)).total_requests == 2

    async def test_no_usage(self, api_key_service, create_api_key, merchant):
        api_key, _ = await create_api_key(merchant)
        stats = await api_key_service.get_usage_stats(api_key.id)
        assert stats.total_requests == 0
        assert stats.successful_requests == 0
        assert stats.error_requests == 0
        assert stats.daily_stats == []
