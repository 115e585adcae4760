"""Tests for health check endpoints."""

import pytest
from fastapi.testclient import TestClient

from api.app import create_app


@pytest.fixture
def client():
    return TestClient(create_app())


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client):
        """Health endpoint should return 200 with status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["error"] is None
        assert body["data"]["status"] == "healthy"
        assert body["data"]["version"] == "0.1.0"
        assert body["data"]["environment"] == "test"

    def test_readiness_check(self, client):
        """Readiness endpoint reports each dependency."""
        response = client.get("/api/ready")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data == {
            "status": "ready",
            "database": "memory",
            "redis": "disabled",
            "providers": [],
            "payments": "disabled",
            "notifications": "disabled",
        }

    def test_readiness_lists_configured_providers(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        from shared.config import get_settings
        from api.dependencies import reset_container

        get_settings.cache_clear()
        reset_container()

        data = TestClient(create_app()).get("/api/ready").json()["data"]
        assert data["providers"] == ["openai"]

    def test_health_is_not_rate_limited(self, client):
        response = client.get("/api/health")
        assert "X-RateLimit-Limit" not in response.headers
