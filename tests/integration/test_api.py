"""
API tests through the aiohttp application.

Run the real app against the in-memory database with aiohttp's test
server.
"""

from decimal import Decimal

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from web.app import create_app


ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


@pytest_asyncio.fixture
async def client(session_maker, alert_service):
    app = create_app(session_maker=session_maker, alert_service=alert_service)
    async with TestClient(TestServer(app)) as client:
        yield client


@pytest_asyncio.fixture
async def enrolled(client):
    """Affiliate enrolled through the API."""
    resp = await client.post(
        "/affiliates/enroll", json={"user_id": 5001, "terms_version": "2026-01"}
    )
    assert resp.status == 201
    return await resp.json()


def webhook(order_id: str, code: str | None, **overrides) -> dict:
    payload = {
        "order_id": order_id,
        "event_type": "payment_succeeded",
        "plan": "prime",
        "sale_amount": "100.00",
        "currency": "USD",
        "affiliate_referral_code": code,
    }
    payload.update(overrides)
    return payload


class TestPublicEndpoints:
    """Test webhook, attribution and affiliate endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")

        assert resp.status == 200
        assert (await resp.json()) == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_enroll_activates(self, enrolled):
        assert enrolled["status"] == "active"
        assert enrolled["tier"] == "prime"
        assert enrolled["terms_version"] == "2026-01"

    @pytest.mark.asyncio
    async def test_webhook_is_idempotent(self, client, enrolled):
        payload = webhook("web-1", enrolled["referral_code"])

        first = await client.post("/webhooks/payments", json=payload)
        second = await client.post("/webhooks/payments", json=payload)

        assert first.status == 200
        first_body = await first.json()
        assert first_body["status"] == "created"
        assert first_body["commission_amount"] == "25.00"
        second_body = await second.json()
        assert second_body["status"] == "duplicate"
        assert second_body["commission_id"] == first_body["commission_id"]

    @pytest.mark.asyncio
    async def test_webhook_no_referrer(self, client):
        resp = await client.post("/webhooks/payments", json=webhook("web-2", None))

        assert resp.status == 200
        assert (await resp.json())["status"] == "no_referrer"

    @pytest.mark.asyncio
    async def test_webhook_rejects_malformed_body(self, client):
        resp = await client.post(
            "/webhooks/payments", json=webhook("web-3", None, sale_amount="-5")
        )

        assert resp.status == 422
        assert (await resp.json())["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_webhook_rejects_non_json(self, client):
        resp = await client.post("/webhooks/payments", data="not json")

        assert resp.status == 422

    @pytest.mark.asyncio
    async def test_attribution_capture(self, client, enrolled):
        payload = {"visitor_token": "cookie-1", "referral_code": enrolled["referral_code"]}

        first = await client.post("/attribution", json=payload)
        second = await client.post("/attribution", json=payload)

        assert first.status == 200
        body = await first.json()
        assert body["action"] == "created"
        assert body["affiliate_id"] == enrolled["id"]
        assert (await second.json())["action"] == "kept_existing"

    @pytest.mark.asyncio
    async def test_dashboard(self, client, enrolled):
        await client.post("/webhooks/payments", json=webhook("web-4", enrolled["referral_code"]))

        resp = await client.get(f"/affiliates/{enrolled['id']}")

        assert resp.status == 200
        body = await resp.json()
        assert Decimal(body["pending_earnings"]) == Decimal("25")
        assert Decimal(body["available_balance"]) == Decimal("0")
        assert body["can_withdraw"] is False

        history = await (await client.get(f"/affiliates/{enrolled['id']}/commissions")).json()
        assert history["total"] == 1
        assert history["items"][0]["order_id"] == "web-4"

    @pytest.mark.asyncio
    async def test_unknown_affiliate(self, client):
        resp = await client.get("/affiliates/999999")

        assert resp.status == 404
        assert (await resp.json())["error"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_withdrawal_below_minimum(self, client, enrolled):
        resp = await client.post(
            f"/affiliates/{enrolled['id']}/withdrawals",
            json={
                "amount": "199.99",
                "payment_method": "paypal",
                "payment_details": {"email": "affiliate@example.com"},
            },
        )

        assert resp.status == 422
        assert (await resp.json())["error"] == "BELOW_MINIMUM"

    @pytest.mark.asyncio
    async def test_withdrawal_insufficient_balance(self, client, enrolled):
        resp = await client.post(
            f"/affiliates/{enrolled['id']}/withdrawals",
            json={
                "amount": "200.00",
                "payment_method": "paypal",
                "payment_details": {"email": "affiliate@example.com"},
            },
        )

        assert resp.status == 422
        assert (await resp.json())["error"] == "INSUFFICIENT_BALANCE"


class TestAdminEndpoints:
    """Test admin authentication and operations."""

    @pytest.mark.asyncio
    async def test_requires_token(self, client, enrolled):
        resp = await client.get(f"/admin/affiliates/{enrolled['id']}/reconcile")

        assert resp.status == 401

    @pytest.mark.asyncio
    async def test_wrong_token(self, client, enrolled):
        resp = await client.get(
            f"/admin/affiliates/{enrolled['id']}/reconcile",
            headers={"X-Admin-Token": "nope"},
        )

        assert resp.status == 401

    @pytest.mark.asyncio
    async def test_reconcile(self, client, enrolled):
        resp = await client.get(
            f"/admin/affiliates/{enrolled['id']}/reconcile", headers=ADMIN_HEADERS
        )

        assert resp.status == 200
        assert (await resp.json())["has_drift"] is False

    @pytest.mark.asyncio
    async def test_suspend_and_reactivate(self, client, enrolled):
        url = f"/admin/affiliates/{enrolled['id']}"

        suspended = await client.post(
            f"{url}/suspend", json={"reason": "Fraud review"}, headers=ADMIN_HEADERS
        )
        again = await client.post(
            f"{url}/suspend", json={"reason": "Fraud review"}, headers=ADMIN_HEADERS
        )
        reactivated = await client.post(f"{url}/reactivate", headers=ADMIN_HEADERS)

        assert (await suspended.json())["status"] == "suspended"
        assert again.status == 422
        assert (await again.json())["error"] == "INVALID_TRANSITION"
        assert (await reactivated.json())["status"] == "active"

    @pytest.mark.asyncio
    async def test_set_tier(self, client, enrolled):
        resp = await client.post(
            f"/admin/affiliates/{enrolled['id']}/tier",
            json={"tier": "elite"},
            headers=ADMIN_HEADERS,
        )

        assert resp.status == 200
        assert (await resp.json())["tier"] == "elite"

    @pytest.mark.asyncio
    async def test_empty_queue(self, client):
        resp = await client.get("/admin/withdrawals", headers=ADMIN_HEADERS)

        assert resp.status == 200
        assert (await resp.json())["items"] == []

    @pytest.mark.asyncio
    async def test_ledger_events(self, client, enrolled):
        await client.post(
            "/webhooks/payments", json=webhook("web-5", enrolled["referral_code"])
        )

        resp = await client.get(
            f"/admin/affiliates/{enrolled['id']}/events", headers=ADMIN_HEADERS
        )

        assert resp.status == 200
        items = (await resp.json())["items"]
        assert [i["event_type"] for i in items] == ["commission_created"]
        assert Decimal(items[0]["available_delta"]) == Decimal("0")

    @pytest.mark.asyncio
    async def test_ledger_events_bad_limit(self, client, enrolled):
        resp = await client.get(
            f"/admin/affiliates/{enrolled['id']}/events?limit=abc",
            headers=ADMIN_HEADERS,
        )

        assert resp.status == 422

    @pytest.mark.asyncio
    async def test_subscription_standing_holds_and_releases(self, client, enrolled):
        url = f"/admin/affiliates/{enrolled['id']}/subscription"

        overdue = await client.post(url, json={"overdue": True}, headers=ADMIN_HEADERS)
        assert overdue.status == 200
        assert (await overdue.json())["subscription_overdue_since"] is not None

        paid = await client.post(
            "/webhooks/payments", json=webhook("web-6", enrolled["referral_code"])
        )
        assert (await paid.json())["payment_held"] is True
        summary = await (await client.get(f"/affiliates/{enrolled['id']}")).json()
        assert summary["subscription_overdue"] is True
        assert Decimal(summary["held_earnings"]) == Decimal("25")

        cleared = await client.post(url, json={"overdue": False}, headers=ADMIN_HEADERS)

        assert cleared.status == 200
        body = await cleared.json()
        assert body["subscription_overdue_since"] is None
        assert len(body["released_commissions"]) == 1
        summary = await (await client.get(f"/affiliates/{enrolled['id']}")).json()
        assert Decimal(summary["held_earnings"]) == Decimal("0")

    @pytest.mark.asyncio
    async def test_subscription_standing_rejects_bad_body(self, client, enrolled):
        resp = await client.post(
            f"/admin/affiliates/{enrolled['id']}/subscription",
            json={"overdue": "sometimes"},
            headers=ADMIN_HEADERS,
        )

        assert resp.status == 422
