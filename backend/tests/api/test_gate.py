"""Tests for request admission and the error envelope."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import Tables, get_auth_service, get_contact_service, get_rate_limiter
from api.middleware.gate import client_address
from modules.ratelimit import InMemoryWindowStore, LimiterRegistry, RateLimiter, RouteClass
from shared.config import get_settings
from tests.conftest import TEST_USER_ID, create_test_token, seed_profile_sync


def limiter_with(route_class: RouteClass, max: int) -> RateLimiter:
    registry = LimiterRegistry().with_overrides(route_class, max=max)
    return RateLimiter(InMemoryWindowStore(), registry=registry)


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/api/contacts")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["data"] is None
        assert body["error"]["code"] == "MISSING_TOKEN"

    def test_invalid_token(self, client):
        response = client.get("/api/contacts", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_TOKEN"

    def test_expired_token(self, client):
        token = create_test_token(expired=True)
        response = client.get("/api/contacts", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_EXPIRED"

    def test_missing_profile_is_created(self, client, auth_headers, container):
        response = client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["id"] == TEST_USER_ID
        assert data["subscription"]["plan"] == "free"

        row = asyncio.run(container.repository(Tables.PROFILES).get(TEST_USER_ID))
        assert row is not None
        assert row["phone"] == "+60123456789"


class TestErrorEnvelope:
    def test_body_validation(self, client, auth_headers, container):
        seed_profile_sync(container)
        response = client.post("/api/contacts", json={"name": "A"}, headers=auth_headers)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["errors"][0]["field"] == "name"

    def test_unknown_route(self, client, auth_headers):
        response = client.get("/api/nothing-here", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_unexpected_error_is_hidden(self, app, client, auth_headers, container):
        seed_profile_sync(container)
        service = MagicMock()
        service.count = AsyncMock(side_effect=RuntimeError("connection string leaked"))
        app.dependency_overrides[get_contact_service] = lambda: service

        response = client.get("/api/contacts/count", headers=auth_headers)

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INTERNAL_ERROR"
        assert "leaked" not in error["message"]


class TestAdvisoryQuota:
    def test_create_rejected_at_ceiling(self, client, auth_headers, container):
        seed_profile_sync(container, contact_count=50)

        response = client.post("/api/contacts", json={"name": "Aisha"}, headers=auth_headers)

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "QUOTA_EXCEEDED"
        assert "Upgrade" in error["message"]

    def test_reads_not_gated_by_quota(self, client, auth_headers, container):
        seed_profile_sync(container, contact_count=50)
        assert client.get("/api/contacts", headers=auth_headers).status_code == 200


class TestRouteClassLimits:
    def test_search_window(self, app, client, auth_headers, container):
        seed_profile_sync(container)
        limiter = limiter_with(RouteClass.SEARCH, 2)
        app.dependency_overrides[get_rate_limiter] = lambda: limiter

        for _ in range(2):
            assert client.get("/api/contacts/search?q=a", headers=auth_headers).status_code == 200
        response = client.get("/api/contacts/search?q=a", headers=auth_headers)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        error = response.json()["error"]
        assert error["code"] == "RATE_LIMIT_EXCEEDED"
        assert error["details"]["route_class"] == "search"

    def test_other_classes_unaffected(self, app, client, auth_headers, container):
        seed_profile_sync(container)
        limiter = limiter_with(RouteClass.SEARCH, 1)
        app.dependency_overrides[get_rate_limiter] = lambda: limiter

        client.get("/api/contacts/search?q=a", headers=auth_headers)
        assert client.get("/api/contacts/search?q=a", headers=auth_headers).status_code == 429
        assert client.get("/api/contacts", headers=auth_headers).status_code == 200

    def test_otp_keyed_by_phone_across_addresses(self, app, client):
        auth = MagicMock()
        auth.send_otp = AsyncMock(return_value={"message": "OTP sent successfully", "expires_in": 60})
        limiter = limiter_with(RouteClass.AUTH_SEND, 2)
        app.dependency_overrides[get_auth_service] = lambda: auth
        app.dependency_overrides[get_rate_limiter] = lambda: limiter

        statuses = [
            client.post(
                "/api/auth/send-otp",
                json={"phone": "0123456789"},
                headers={"X-Forwarded-For": f"10.0.0.{i}"},
            ).status_code
            for i in range(3)
        ]
        other_phone = client.post(
            "/api/auth/send-otp", json={"phone": "0129876543"}, headers={"X-Forwarded-For": "10.0.0.9"}
        )

        assert statuses == [200, 200, 429]
        assert other_phone.status_code == 200
        assert auth.send_otp.await_count == 3


class TestGlobalLimit:
    def test_global_window(self, app, client):
        limiter = limiter_with(RouteClass.GLOBAL, 2)
        app.dependency_overrides[get_rate_limiter] = lambda: limiter

        first = client.get("/api/payments/pricing")
        second = client.get("/api/payments/pricing")
        third = client.get("/api/payments/pricing")

        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert second.headers["X-RateLimit-Remaining"] == "0"
        assert third.status_code == 429
        assert third.json()["error"]["details"]["route_class"] == "global"

    def test_exempt_paths(self, app, client):
        limiter = limiter_with(RouteClass.GLOBAL, 1)
        app.dependency_overrides[get_rate_limiter] = lambda: limiter

        for _ in range(3):
            assert client.get("/api/health").status_code == 200

    def test_tenants_have_separate_windows(self, app, client):
        limiter = limiter_with(RouteClass.GLOBAL, 1)
        app.dependency_overrides[get_rate_limiter] = lambda: limiter
        first = {"Authorization": f"Bearer {create_test_token(user_id='tenant-a')}"}
        second = {"Authorization": f"Bearer {create_test_token(user_id='tenant-b')}"}

        assert client.get("/api/payments/pricing", headers=first).status_code == 200
        assert client.get("/api/payments/pricing", headers=second).status_code == 200
        assert client.get("/api/payments/pricing", headers=first).status_code == 429

    def test_spoofed_forwarded_prefix_shares_window(self, app, client):
        limiter = limiter_with(RouteClass.GLOBAL, 1)
        app.dependency_overrides[get_rate_limiter] = lambda: limiter

        first = client.get("/api/payments/pricing", headers={"X-Forwarded-For": "1.1.1.1, 198.51.100.9"})
        second = client.get("/api/payments/pricing", headers={"X-Forwarded-For": "2.2.2.2, 198.51.100.9"})

        assert first.status_code == 200
        assert second.status_code == 429


def request_from(forwarded=None, peer="203.0.113.5") -> Request:
    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded else []
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers, "client": (peer, 4321)})


class TestClientAddress:
    def test_rightmost_hop_behind_one_proxy(self):
        assert client_address(request_from("1.1.1.1, 198.51.100.9")) == "198.51.100.9"

    def test_spoofed_left_entries_ignored(self):
        first = client_address(request_from("1.1.1.1, 198.51.100.9"))
        second = client_address(request_from("2.2.2.2, 198.51.100.9"))
        assert first == second

    def test_no_header_uses_peer(self):
        assert client_address(request_from()) == "203.0.113.5"

    def test_short_header_uses_peer(self, monkeypatch):
        monkeypatch.setenv("TRUSTED_PROXY_COUNT", "2")
        get_settings.cache_clear()
        assert client_address(request_from("198.51.100.9")) == "203.0.113.5"
        assert client_address(request_from("1.1.1.1, 10.0.0.2, 10.0.0.3")) == "10.0.0.2"

    def test_zero_trusted_proxies_ignores_header(self, monkeypatch):
        monkeypatch.setenv("TRUSTED_PROXY_COUNT", "0")
        get_settings.cache_clear()
        assert client_address(request_from("1.1.1.1")) == "203.0.113.5"
