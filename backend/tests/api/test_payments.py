"""Tests for the payment endpoints."""

import asyncio
import hashlib
import hmac
import json
import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import Tables, get_container, reset_container
from shared.config import get_settings
from tests.conftest import TEST_USER_ID, seed_profile_sync

WEBHOOK_SECRET = "whsec_test"


def signature(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    digest = hmac.new(
        secret.encode(), f"{timestamp}.{payload.decode()}".encode(), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture
def stripe_configured(monkeypatch):
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test")
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    get_settings.cache_clear()
    reset_container()


class TestPricing:
    def test_public_pricing(self):
        response = TestClient(create_app()).get("/api/payments/pricing")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["currency"] == "MYR"
        assert data["plans"]["base"]["price"] == 299
        assert data["plans"]["base"]["contact_limit"] == 250000
        assert data["plans"]["enterprise"]["price"] == 498
        assert data["plans"]["enterprise"]["contact_limit"] == 1000000


class TestCheckout:
    def test_requires_auth(self):
        response = TestClient(create_app()).post("/api/payments/checkout", json={"planId": "base"})
        assert response.status_code == 401

    def test_unconfigured_payments(self, auth_headers, container):
        seed_profile_sync(container)
        response = TestClient(create_app()).post(
            "/api/payments/checkout", json={"planId": "base"}, headers=auth_headers
        )
        assert response.status_code == 502
        assert response.json()["error"]["code"] == "PAYMENT_FAILED"

    def test_checkout_session(self, stripe_configured, auth_headers):
        seed_profile_sync(get_container())
        with patch(
            "modules.billing.service.stripe.checkout.Session.create",
            return_value={"id": "cs_1", "url": "https://checkout.stripe.com/cs_1"},
        ) as create:
            response = TestClient(create_app()).post(
                "/api/payments/checkout", json={"planId": "base"}, headers=auth_headers
            )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "session_id": "cs_1",
            "session_url": "https://checkout.stripe.com/cs_1",
        }
        assert create.call_args.kwargs["client_reference_id"] == TEST_USER_ID

    def test_invalid_plan(self, stripe_configured, auth_headers):
        seed_profile_sync(get_container())
        response = TestClient(create_app()).post(
            "/api/payments/checkout", json={"planId": "platinum"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PLAN"


class TestWebhook:
    def test_rejects_bad_signature(self, stripe_configured):
        payload = b'{"id": "evt_1"}'
        response = TestClient(create_app()).post(
            "/api/payments/webhook",
            content=payload,
            headers={"stripe-signature": signature(payload, secret="whsec_wrong")},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"

    def test_rejects_missing_signature(self, stripe_configured):
        response = TestClient(create_app()).post("/api/payments/webhook", content=b"{}")
        assert response.status_code == 400

    def test_checkout_completed_upgrades_plan(self, stripe_configured):
        container = get_container()
        seed_profile_sync(container)
        payload = json.dumps(
            {
                "id": "evt_1",
                "object": "event",
                "type": "checkout.session.completed",
                "data": {
                    "object": {
                        "id": "cs_1",
                        "object": "checkout.session",
                        "customer": "cus_1",
                        "subscription": "sub_1",
                        "metadata": {"userId": TEST_USER_ID, "planId": "base"},
                    }
                },
            }
        ).encode()

        response = TestClient(create_app()).post(
            "/api/payments/webhook", content=payload, headers={"stripe-signature": signature(payload)}
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"received": True, "action": "subscription_created"},
            "error": None,
        }
        row = asyncio.run(container.repository(Tables.PROFILES).get(TEST_USER_ID))
        assert row["subscription_plan"] == "base"
        assert row["subscription_status"] == "active"
        assert row["stripe_subscription_id"] == "sub_1"

    def test_handler_failure_still_acknowledged(self, stripe_configured):
        payload = json.dumps(
            {"id": "evt_2", "object": "event", "type": "invoice.paid", "data": {"object": {"id": "in_1"}}}
        ).encode()

        with patch(
            "modules.billing.service.BillingService.handle_webhook_event",
            side_effect=RuntimeError("database down"),
        ):
            response = TestClient(create_app()).post(
                "/api/payments/webhook", content=payload, headers={"stripe-signature": signature(payload)}
            )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == {"received": True, "action": "error"}


class TestSubscription:
    def test_free_tenant_subscription(self, auth_headers, container):
        seed_profile_sync(container)
        response = TestClient(create_app()).get("/api/payments/subscription", headers=auth_headers)

        assert response.json()["data"]["subscription"]["status"] == "none"
        assert response.json()["data"]["subscription"]["plan"] == "free"

    def test_cancel_without_subscription(self, auth_headers, container):
        seed_profile_sync(container)
        response = TestClient(create_app()).post(
            "/api/payments/cancel", json={"immediately": False}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "NO_SUBSCRIPTION"
