"""
Shared test fixtures and utilities.

Every test runs against the in-memory storage back end with a known JWT
secret, and gets fresh settings, clients and service container.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt  # PyJWT
import pytest

from api.dependencies import Tables, get_container, reset_container
from shared.cache import reset_redis_client
from shared.config import get_settings
from shared.database import reset_client_cache

# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"
TEST_USER_ID = "test-user-123"
TEST_PHONE = "+60123456789"


def create_test_token(
    user_id: str = TEST_USER_ID,
    phone: Optional[str] = TEST_PHONE,
    email: Optional[str] = None,
    plan: Optional[str] = None,
    expired: bool = False,
    secret: str = TEST_JWT_SECRET,
) -> str:
    """
    Create a Supabase-style access token for tests.

    Args:
        user_id: Subject claim
        phone: Phone claim (phone logins carry no email)
        email: Optional email claim
        plan: Optional ``app_metadata.plan`` claim
        expired: If True, the token expired an hour ago
        secret: Signing secret

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload: dict[str, Any] = {
        "sub": user_id,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
        "app_metadata": {"plan": plan} if plan else {},
    }
    if phone:
        payload["phone"] = phone
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret, algorithm="HS256")


def _reset_singletons() -> None:
    get_settings.cache_clear()
    reset_container()
    reset_client_cache()
    reset_redis_client()


@pytest.fixture(autouse=True)
def test_environment(monkeypatch):
    """In-memory back end, test secret, and no external services configured."""
    env = {
        "STORAGE_BACKEND": "memory",
        "SUPABASE_JWT_SECRET": TEST_JWT_SECRET,
        "REDIS_URL": "",
        "JOB_STORE_BACKEND": "memory",
        "RATE_LIMIT_ENABLED": "true",
        "ANTHROPIC_API_KEY": "",
        "OPENAI_API_KEY": "",
        "STRIPE_SECRET_KEY": "",
        "STRIPE_WEBHOOK_SECRET": "",
        "ONESIGNAL_APP_ID": "",
        "ONESIGNAL_API_KEY": "",
        "DEBUG": "false",
        "ENVIRONMENT": "test",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    _reset_singletons()
    yield
    _reset_singletons()


@pytest.fixture
def test_user_id() -> str:
    """Provide a consistent test user ID."""
    return TEST_USER_ID


@pytest.fixture
def auth_token(test_user_id: str) -> str:
    """Create a valid auth token for testing."""
    return create_test_token(user_id=test_user_id)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers with a valid token."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def container():
    """The app's service container, wired with in-memory back ends."""
    return get_container()


async def seed_profile(
    container,
    user_id: str = TEST_USER_ID,
    plan: str = "free",
    contact_count: int = 0,
    **fields: Any,
) -> dict[str, Any]:
    """Insert a tenant profile row into the container's profiles table."""
    rows = await container.repository(Tables.PROFILES).insert(
        {
            "id": user_id,
            "subscription_plan": plan,
            "subscription_status": "active" if plan in ("base", "enterprise") else "none",
            "contact_count": contact_count,
            **fields,
        }
    )
    return rows[0]


def seed_profile_sync(container, **kwargs: Any) -> dict[str, Any]:
    """``seed_profile`` for synchronous (TestClient) tests."""
    return asyncio.run(seed_profile(container, **kwargs))
