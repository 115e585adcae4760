import pytest

from modules.auth.identity import IIdentityProvider, SupabaseIdentityProvider
from modules.auth.interfaces import IAuthService
from modules.auth.service import AuthService

AUTH_METHODS = [
    "validate_token",
    "get_profile",
    "ensure_profile",
    "update_profile",
    "send_otp",
    "verify_otp",
    "refresh",
    "sign_out",
]


class TestAuthInterface:
    @pytest.mark.parametrize("method", AUTH_METHODS)
    def test_interface_methods_exist(self, method):
        """IAuthService should define the auth flow and profile methods."""
        assert hasattr(IAuthService, method)

    @pytest.mark.parametrize("method", AUTH_METHODS)
    def test_auth_service_has_interface_methods(self, method):
        """AuthService should have all IAuthService methods."""
        assert callable(getattr(AuthService, method))

    def test_interface_is_runtime_checkable(self):
        """IAuthService should be decorated with @runtime_checkable."""
        assert getattr(IAuthService, "_is_runtime_protocol", False)


class TestIdentityInterface:
    def test_supabase_provider_has_methods(self):
        """SupabaseIdentityProvider should implement the identity provider protocol."""
        for method in ("send_otp", "verify_otp", "refresh", "sign_out"):
            assert hasattr(IIdentityProvider, method)
            assert callable(getattr(SupabaseIdentityProvider, method))
