import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, timezone

from modules.auth.exceptions import (
    ExpiredTokenError,
    InvalidPhoneError,
    InvalidTokenError,
    MissingTokenError,
    OtpSendFailedError,
    VerificationFailedError,
)
from modules.auth.identity import SupabaseIdentityProvider
from modules.auth.models import IdentityResult, Session, UpdateProfileRequest
from modules.auth.service import AuthService, decode_token
from modules.quota.models import PlanType
from shared.repository import InMemoryTableRepository
from tests.conftest import TEST_JWT_SECRET, create_test_token

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


def identity_result(user_id: str = "user-123") -> IdentityResult:
    return IdentityResult(
        user_id=user_id,
        phone="+60123456789",
        session=Session(access_token="access", refresh_token="refresh", expires_in=3600),
    )


class TestDecodeToken:
    def test_valid_token(self):
        """Should decode a valid token into a user."""
        user = decode_token(create_test_token(user_id="user-123", plan="base"), TEST_JWT_SECRET)
        assert user.id == "user-123"
        assert user.phone == "+60123456789"
        assert user.plan == "base"
        assert user.role == "user"

    def test_expired_token(self):
        """Should raise ExpiredTokenError for an expired token."""
        with pytest.raises(ExpiredTokenError):
            decode_token(create_test_token(expired=True), TEST_JWT_SECRET)

    def test_wrong_secret(self):
        """Should raise InvalidTokenError for a token signed with another secret."""
        with pytest.raises(InvalidTokenError):
            decode_token(create_test_token(secret="other-secret"), TEST_JWT_SECRET)

    def test_malformed_token(self):
        """Should raise InvalidTokenError for garbage."""
        with pytest.raises(InvalidTokenError):
            decode_token("not-a-valid-token", TEST_JWT_SECRET)

    def test_missing_token(self):
        """Should raise MissingTokenError for an empty token."""
        with pytest.raises(MissingTokenError):
            decode_token("", TEST_JWT_SECRET)

    def test_server_without_secret(self):
        """Tokens can not be validated without a configured secret."""
        with pytest.raises(InvalidTokenError):
            decode_token(create_test_token(), "")


class TestAuthService:
    @pytest.fixture
    def profiles(self):
        return InMemoryTableRepository("profiles")

    @pytest.fixture
    def identity(self):
        provider = MagicMock()
        provider.send_otp = AsyncMock()
        provider.verify_otp = AsyncMock(return_value=identity_result())
        provider.refresh = AsyncMock(return_value=Session(access_token="a2", refresh_token="r2"))
        provider.sign_out = AsyncMock()
        return provider

    @pytest.fixture
    def service(self, profiles, identity):
        return AuthService(TEST_JWT_SECRET, profiles, identity, clock=lambda: NOW)

    @pytest.mark.asyncio
    async def test_validate_token(self, service):
        """Should validate through the configured secret."""
        user = await service.validate_token(create_test_token(user_id="user-9"))
        assert user.id == "user-9"

    @pytest.mark.asyncio
    async def test_send_otp_normalizes_phone(self, service, identity):
        """Local numbers are sent to the provider in E.164 form."""
        result = await service.send_otp("012-345 6789")
        identity.send_otp.assert_awaited_once_with("+60123456789")
        assert result["phone"] == "+60123456789"
        assert result["expires_in"] == 60

    @pytest.mark.asyncio
    async def test_send_otp_invalid_phone(self, service, identity):
        """Non-Malaysian numbers are rejected before the provider is called."""
        with pytest.raises(InvalidPhoneError):
            await service.send_otp("12345")
        identity.send_otp.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_verify_otp_creates_free_profile(self, service, profiles):
        """First login creates a free profile with no contacts."""
        identity, profile = await service.verify_otp("0123456789", "123456")

        assert identity.user_id == "user-123"
        assert profile.plan == PlanType.FREE
        assert profile.contact_count == 0
        row = await profiles.get("user-123")
        assert row["phone"] == "+60123456789"
        assert row["last_login"] == NOW.isoformat()

    @pytest.mark.asyncio
    async def test_verify_otp_keeps_existing_profile(self, service, profiles):
        """Returning users keep their plan and count."""
        await profiles.insert(
            {"id": "user-123", "subscription_plan": "base", "contact_count": 120, "phone": None}
        )

        _, profile = await service.verify_otp("+60123456789", "123456")

        assert profile.plan == PlanType.BASE
        assert profile.contact_count == 120
        assert profile.phone == "+60123456789"

    @pytest.mark.asyncio
    async def test_verify_otp_failure(self, service, identity, profiles):
        """A rejected code creates no profile."""
        identity.verify_otp = AsyncMock(side_effect=VerificationFailedError())
        with pytest.raises(VerificationFailedError):
            await service.verify_otp("0123456789", "000000")
        assert profiles.rows == []

    @pytest.mark.asyncio
    async def test_update_profile(self, service, profiles):
        """Only writable fields change."""
        await service.ensure_profile("user-123")
        profile = await service.update_profile(
            "user-123", UpdateProfileRequest(name="Aisha", company="Acme")
        )
        assert profile.name == "Aisha"
        assert profile.company == "Acme"
        assert profile.plan == PlanType.FREE

    @pytest.mark.asyncio
    async def test_get_missing_profile(self, service):
        """Unknown users have no profile."""
        assert await service.get_profile("nobody") is None

    @pytest.mark.asyncio
    async def test_sign_out_failure_is_ignored(self, service, identity):
        """Logout succeeds even if the provider refuses."""
        identity.sign_out = AsyncMock(side_effect=RuntimeError("token revoked"))
        await service.sign_out("access")

    @pytest.mark.asyncio
    async def test_refresh(self, service):
        """Refresh returns the provider's new session."""
        session = await service.refresh("r1")
        assert session.access_token == "a2"


class TestSupabaseIdentityProvider:
    @pytest.mark.asyncio
    async def test_send_otp_failure(self):
        """Provider errors become OtpSendFailedError."""
        client = MagicMock()
        client.auth.sign_in_with_otp.side_effect = RuntimeError("SMS quota exceeded")
        provider = SupabaseIdentityProvider(auth_client_factory=lambda: client)

        with pytest.raises(OtpSendFailedError) as exc_info:
            await provider.send_otp("+60123456789")
        assert "SMS quota exceeded" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_verify_otp(self):
        """A verified code returns the user and the session."""
        client = MagicMock()
        response = client.auth.verify_otp.return_value
        response.user.id = "user-123"
        response.user.created_at = NOW
        response.session.access_token = "access"
        response.session.refresh_token = "refresh"
        response.session.expires_at = 1_700_000_000
        response.session.expires_in = 3600
        provider = SupabaseIdentityProvider(auth_client_factory=lambda: client)

        result = await provider.verify_otp("+60123456789", "123456")

        assert result.user_id == "user-123"
        assert result.session.access_token == "access"
        assert result.created_at == NOW.isoformat()
        client.auth.verify_otp.assert_called_once_with(
            {"phone": "+60123456789", "token": "123456", "type": "sms"}
        )

    @pytest.mark.asyncio
    async def test_verify_otp_without_session(self):
        """A response without a session is a failed verification."""
        client = MagicMock()
        client.auth.verify_otp.return_value.session = None
        provider = SupabaseIdentityProvider(auth_client_factory=lambda: client)

        with pytest.raises(VerificationFailedError):
            await provider.verify_otp("+60123456789", "123456")
