import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from modules.auth.models import JWTPayload, UpdateProfileRequest, VerifyOtpRequest
from modules.auth.phone import is_valid_login_phone, normalize_login_phone
from shared.models import AuthenticatedUser


class TestAuthenticatedUser:
    def test_create_user_with_phone(self):
        """Should create a user from a phone login."""
        user = AuthenticatedUser(id="user-123", phone="+60123456789")
        assert user.id == "user-123"
        assert user.phone == "+60123456789"
        assert user.email is None
        assert user.role == "user"

    def test_user_is_immutable(self):
        """AuthenticatedUser should be frozen."""
        user = AuthenticatedUser(id="user-123")
        with pytest.raises(ValidationError):
            user.id = "other"

    def test_ignores_extra_claims(self):
        """Unknown fields should be dropped, not rejected."""
        user = AuthenticatedUser(id="user-123", aal="aal1")
        assert not hasattr(user, "aal")

    def test_last_sign_in(self):
        """Should carry the token issue time."""
        issued = datetime(2024, 1, 1, tzinfo=timezone.utc)
        user = AuthenticatedUser(id="user-123", last_sign_in=issued)
        assert user.last_sign_in == issued


class TestJWTPayload:
    def test_plan_from_app_metadata(self):
        """The plan claim should come from app_metadata."""
        payload = JWTPayload(sub="u", exp=2, iat=1, app_metadata={"plan": "base"})
        assert payload.plan == "base"

    def test_plan_alternate_key(self):
        """subscription_plan should also be accepted."""
        payload = JWTPayload(sub="u", exp=2, iat=1, app_metadata={"subscription_plan": "enterprise"})
        assert payload.plan == "enterprise"

    def test_no_plan(self):
        """Missing metadata should give no plan."""
        assert JWTPayload(sub="u", exp=2, iat=1).plan is None

    def test_requires_subject(self):
        """sub is required."""
        with pytest.raises(ValidationError):
            JWTPayload(exp=2, iat=1)


class TestRequests:
    def test_otp_must_be_six_digits(self):
        """VerifyOtpRequest should reject anything but six digits."""
        assert VerifyOtpRequest(phone="0123456789", code=" 123456 ").code == "123456"
        with pytest.raises(ValidationError):
            VerifyOtpRequest(phone="0123456789", code="12345")
        with pytest.raises(ValidationError):
            VerifyOtpRequest(phone="0123456789", code="abcdef")

    def test_profile_patch_only_writable_fields(self):
        """Plan and quota columns can not be changed through a profile update."""
        request = UpdateProfileRequest.model_validate(
            {"name": "Aisha", "subscription_plan": "enterprise", "contact_count": 0}
        )
        assert request.to_patch() == {"name": "Aisha"}

    def test_profile_email_is_validated(self):
        """Email should be lowercased and validated."""
        assert UpdateProfileRequest(email=" A@B.COM ").email == "a@b.com"
        with pytest.raises(ValidationError):
            UpdateProfileRequest(email="nope")


class TestLoginPhone:
    @pytest.mark.parametrize(
        "phone",
        ["+60123456789", "60123456789", "0123456789", "012-345 6789", "+601123456789"],
    )
    def test_valid(self, phone):
        """Malaysian mobile numbers in local and international forms are accepted."""
        assert is_valid_login_phone(phone)

    @pytest.mark.parametrize("phone", ["12345", "+6512345678", "01234", ""])
    def test_invalid(self, phone):
        """Other numbers are rejected."""
        assert not is_valid_login_phone(phone)

    def test_normalize(self):
        """All accepted forms normalize to E.164."""
        assert normalize_login_phone("012-345 6789") == "+60123456789"
        assert normalize_login_phone("60123456789") == "+60123456789"
        assert normalize_login_phone("+60123456789") == "+60123456789"
