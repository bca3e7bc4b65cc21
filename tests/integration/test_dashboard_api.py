import uuid

import pytest
from httpx import AsyncClient

from src.models import TransactionStatus
from tests.helpers import DASHBOARD_HEADERS


@pytest.mark.integration
class TestUsersAPI:
    async def test_get_me(self, async_client: AsyncClient, merchant):
        response = await async_client.get("/api/users/me", headers=DASHBOARD_HEADERS)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(merchant.id)
        assert data["shop_name"] == "Test Shop"
        assert data["merchant_config"]["currency"] == "ILS"

    async def test_requires_session(self, async_client: AsyncClient):
        response = await async_client.get("/api/users/me")
        assert response.status_code == 401

    async def test_unregistered_clerk_user_is_forbidden(self, async_client: AsyncClient, clerk_auth):
        clerk_auth.clerk_id = "user_newcomer"
        response = await async_client.get("/api/users/me", headers=DASHBOARD_HEADERS)
        assert response.status_code == 403

    async def test_register(self, async_client: AsyncClient, clerk_auth):
        clerk_auth.clerk_id = "user_newcomer"
        payload = {
            "shop_name": "  Falafel Express ",
            "owner_name": "Noa Cohen",
            "merchant_config": {"company_number": " 514000001 ", "currency": "USD", "language": "en"},
        }

        response = await async_client.post("/api/users/register", json=payload, headers=DASHBOARD_HEADERS)
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "user_newcomer@example.com"
        assert data["shop_name"] == "Falafel Express"
        assert data["merchant_config"] == {
            "company_number": "514000001",
            "currency": "USD",
            "language": "en",
        }

        again = await async_client.post("/api/users/register", json=payload, headers=DASHBOARD_HEADERS)
        assert again.status_code == 400

    @pytest.mark.parametrize(
        "config",
        [
            {"company_number": "", "currency": "ILS", "language": "he"},
            {"company_number": "1", "currency": "IL", "language": "he"},
            {"company_number": "1", "currency": "ILS", "language": "HEB"},
        ],
    )
    async def test_merchant_config_validation(self, async_client: AsyncClient, config):
        response = await async_client.patch(
            "/api/users/me/merchant-config", json=config, headers=DASHBOARD_HEADERS
        )
        assert response.status_code == 422

    async def test_update_merchant_config(self, async_client: AsyncClient):
        response = await async_client.patch(
            "/api/users/me/merchant-config",
            json={"company_number": "999", "currency": "EUR", "language": "en"},
            headers=DASHBOARD_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["merchant_config"]["currency"] == "EUR"

    async def test_merchant_config_is_normalized(self, async_client: AsyncClient):
        response = await async_client.patch(
            "/api/users/me/merchant-config",
            json={"company_number": "515123456", "currency": " ils", "language": "HE "},
            headers=DASHBOARD_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["merchant_config"] == {
            "company_number": "515123456",
            "currency": "ILS",
            "language": "he",
        }


@pytest.mark.integration
class TestApiKeysAPI:
    async def test_create_returns_key_once(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/api-keys",
            json={
                "name": "Storefront",
                "permissions": [{"resource": "payments", "actions": ["read"]}],
            },
            headers=DASHBOARD_HEADERS,
        )
        assert response.status_code == 201
        created = response.json()
        assert created["key"].startswith("sb0_live_")
        assert created["prefix"] == created["key"][:16]
        assert created["permissions"] == [{"resource": "payments", "actions": ["read"]}]

        listed = await async_client.get("/api/api-keys", headers=DASHBOARD_HEADERS)
        assert listed.status_code == 200
        keys = listed.json()
        assert [k["id"] for k in keys] == [created["id"]]
        assert "key" not in keys[0]
        assert "key_hash" not in keys[0]

    async def test_rejects_unknown_permission(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/api-keys",
            json={"name": "Bad", "permissions": [{"resource": "wallets", "actions": ["read"]}]},
            headers=DASHBOARD_HEADERS,
        )
        assert response.status_code == 422

        response = await async_client.post(
            "/api/api-keys",
            json={"name": "Bad", "permissions": [{"resource": "payments", "actions": ["launch"]}]},
            headers=DASHBOARD_HEADERS,
        )
        assert response.status_code == 422

    async def test_update(self, async_client: AsyncClient, create_api_key, merchant):
        api_key, _ = await create_api_key(merchant)

        empty = await async_client.put(f"/api/api-keys/{api_key.id}", json={}, headers=DASHBOARD_HEADERS)
        assert empty.status_code == 400

        response = await async_client.put(
            f"/api/api-keys/{api_key.id}",
            json={"name": "Renamed", "is_active": False},
            headers=DASHBOARD_HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["is_active"] is False

    async def test_cannot_touch_other_merchants_keys(
        self, async_client: AsyncClient, create_api_key, other_merchant
    ):
        api_key, _ = await create_api_key(other_merchant)

        update = await async_client.put(
            f"/api/api-keys/{api_key.id}", json={"name": "Mine now"}, headers=DASHBOARD_HEADERS
        )
        delete = await async_client.delete(f"/api/api-keys/{api_key.id}", headers=DASHBOARD_HEADERS)
        usage = await async_client.get(f"/api/api-keys/{api_key.id}/usage", headers=DASHBOARD_HEADERS)

        assert update.status_code == 404
        assert delete.status_code == 404
        assert usage.status_code == 404

    async def test_delete(self, async_client: AsyncClient, create_api_key, merchant):
        api_key, _ = await create_api_key(merchant)

        response = await async_client.delete(f"/api/api-keys/{api_key.id}", headers=DASHBOARD_HEADERS)
        assert response.status_code == 200
        assert response.json()["success"] is True

        listed = await async_client.get("/api/api-keys", headers=DASHBOARD_HEADERS)
        assert listed.json() == []

    async def test_usage(self, async_client: AsyncClient, api_key_service, create_api_key, merchant):
        api_key, _ = await create_api_key(merchant)
        await api_key_service.log_usage(api_key.id, "/api/v1/payments", "GET", 200)
        await api_key_service.log_usage(api_key.id, "/api/v1/payments", "GET", 401)

        response = await async_client.get(
            f"/api/api-keys/{api_key.id}/usage", params={"days": 7}, headers=DASHBOARD_HEADERS
        )
        assert response.status_code == 200
        data = response.json()
        assert data["days"] == 7
        assert data["total_requests"] == 2
        assert data["successful_requests"] == 1
        assert data["error_requests"] == 1
        assert len(data["daily_stats"]) == 1


@pytest.mark.integration
class TestTransactionsAPI:
    async def test_create(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/transactions",
            json={
                "amount": 49.9,
                "payment_url": "https://pay.allpay.co.il/checkout/1",
                "description": "T-shirt",
            },
            headers=DASHBOARD_HEADERS,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["amount"] == "49.90"
        assert data["currency"] == "ILS"
        assert data["formatted_amount"] == "₪49.90"
        assert data["status"] == "pending"
        assert data["is_final"] is False
        assert data["next_statuses"] == ["completed", "failed", "cancelled"]

    async def test_create_reports_every_error(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/transactions",
            json={"amount": 0, "currency": "XX", "payment_url": "http://pay.example.com"},
            headers=DASHBOARD_HEADERS,
        )
        assert response.status_code == 400
        errors = response.json()["detail"]["errors"]
        assert "Amount must be greater than zero" in errors
        assert "Payment URL must be a valid HTTPS URL" in errors
        assert len(errors) == 3

    async def test_list_get_and_stats(
        self, async_client: AsyncClient, create_transaction, merchant, other_merchant
    ):
        mine = await create_transaction(merchant)
        await create_transaction(merchant, status=TransactionStatus.COMPLETED)
        theirs = await create_transaction(other_merchant)

        listed = await async_client.get("/api/transactions", headers=DASHBOARD_HEADERS)
        assert listed.status_code == 200
        assert listed.json()["total"] == 2

        filtered = await async_client.get(
            "/api/transactions", params={"status": "completed"}, headers=DASHBOARD_HEADERS
        )
        assert filtered.json()["total"] == 1

        single = await async_client.get(f"/api/transactions/{mine.id}", headers=DASHBOARD_HEADERS)
        assert single.status_code == 200

        forbidden = await async_client.get(f"/api/transactions/{theirs.id}", headers=DASHBOARD_HEADERS)
        assert forbidden.status_code == 403

        missing = await async_client.get(f"/api/transactions/{uuid.uuid4()}", headers=DASHBOARD_HEADERS)
        assert missing.status_code == 404

        stats = await async_client.get("/api/transactions/stats", headers=DASHBOARD_HEADERS)
        assert stats.status_code == 200
        assert stats.json()["total"] == 2
        assert stats.json()["completed_amount"] == "100.00"

    async def test_status_changes(self, async_client: AsyncClient, create_transaction, merchant):
        transaction = await create_transaction(merchant)
        url = f"/api/transactions/{transaction.id}/status"

        ok = await async_client.post(
            url, json={"status": "completed", "allpay_transaction_id": "AP_777"}, headers=DASHBOARD_HEADERS
        )
        assert ok.status_code == 200
        assert ok.json()["status"] == "completed"
        assert ok.json()["is_final"] is True

        illegal = await async_client.post(url, json={"status": "pending"}, headers=DASHBOARD_HEADERS)
        assert illegal.status_code == 400
        assert illegal.json()["detail"] == "Cannot change transaction status from completed to pending"

        unknown = await async_client.post(url, json={"status": "settled"}, headers=DASHBOARD_HEADERS)
        assert unknown.status_code == 422
