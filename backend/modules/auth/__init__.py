"""
Authentication module.

Handles JWT validation, the phone OTP login flow and tenant profiles.

Public API:
- IAuthService / AuthService: Auth operations
- decode_token: Stateless bearer token decoding
- IIdentityProvider / SupabaseIdentityProvider: OTP, refresh, sign-out
- normalize_login_phone, is_valid_login_phone
- Auth exceptions: InvalidTokenError, ExpiredTokenError, etc.
"""

from .interfaces import IAuthService
from .models import (
    IdentityResult,
    JWTPayload,
    RefreshRequest,
    SendOtpRequest,
    Session,
    UpdateProfileRequest,
    VerifyOtpRequest,
)
from .exceptions import (
    ExpiredTokenError,
    InvalidPhoneError,
    InvalidTokenError,
    MissingTokenError,
    OtpSendFailedError,
    RefreshFailedError,
    VerificationFailedError,
)
from .identity import IIdentityProvider, SupabaseIdentityProvider
from .phone import is_valid_login_phone, normalize_login_phone
from .service import AuthService, decode_token

__all__ = [
    # Interface
    "IAuthService",
    "AuthService",
    "decode_token",
    # Identity provider
    "IIdentityProvider",
    "SupabaseIdentityProvider",
    # Phone helpers
    "is_valid_login_phone",
    "normalize_login_phone",
    # Models
    "IdentityResult",
    "JWTPayload",
    "RefreshRequest",
    "SendOtpRequest",
    "Session",
    "UpdateProfileRequest",
    "VerifyOtpRequest",
    # Exceptions
    "ExpiredTokenError",
    "InvalidPhoneError",
    "InvalidTokenError",
    "MissingTokenError",
    "OtpSendFailedError",
    "RefreshFailedError",
    "VerificationFailedError",
]
