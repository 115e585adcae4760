"""
Authentication module interface.

Other modules should depend on IAuthService, not the concrete implementation.
This enables testing with mocks and future extraction to a microservice.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from modules.quota.models import TenantProfile
from shared.models import AuthenticatedUser

from .models import IdentityResult, Session, UpdateProfileRequest


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface for authentication operations.

    This protocol defines the contract that the auth module exposes
    to other modules. Implementations must provide all these methods.
    """

    async def validate_token(self, token: str) -> AuthenticatedUser:
        """
        Validate a JWT token and return the authenticated user.

        Args:
            token: JWT access token from Supabase Auth

        Returns:
            AuthenticatedUser with user ID, contact details and plan claim

        Raises:
            AuthenticationError: If token is missing, invalid or expired
        """
        ...

    async def get_profile(self, user_id: str) -> Optional[TenantProfile]:
        """
        Get a tenant's profile.

        Returns:
            TenantProfile if found, None otherwise
        """
        ...

    async def ensure_profile(self, user_id: str, phone: Optional[str] = None) -> TenantProfile:
        """Create the profile on first login, or stamp the login on an existing one."""
        ...

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> TenantProfile:
        ...

    async def send_otp(self, phone: str) -> dict[str, Any]:
        """
        Validate and normalize the phone, then send a login code.

        Raises:
            InvalidPhoneError: If the number is not a valid login phone
            OtpSendFailedError: If the identity provider refused
        """
        ...

    async def verify_otp(self, phone: str, code: str) -> tuple[IdentityResult, TenantProfile]:
        ...

    async def refresh(self, refresh_token: str) -> Session:
        ...

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session. Never raises for an already invalid token."""
        ...
