"""
Authentication service implementation.

Validates Supabase JWT tokens, runs the phone OTP login flow through the
identity provider, and manages the tenant profile row.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import jwt

from shared.repository import ITableRepository
from shared.models import AuthenticatedUser

from modules.quota.models import PlanType, SubscriptionStatus, TenantProfile

from .identity import IIdentityProvider
from .interfaces import IAuthService
from .models import IdentityResult, JWTPayload, Session, UpdateProfileRequest
from .exceptions import (
    ExpiredTokenError,
    InvalidPhoneError,
    InvalidTokenError,
    MissingTokenError,
)
from .phone import is_valid_login_phone, normalize_login_phone

logger = logging.getLogger(__name__)

OTP_EXPIRES_IN_SECONDS = 60


def decode_token(token: str, secret: str) -> AuthenticatedUser:
    """
    Decode a Supabase access token without touching the database.

    Raises:
        MissingTokenError: If the token is empty
        ExpiredTokenError: If the token has expired
        InvalidTokenError: If the signature, audience or claims are wrong
    """
    if not token:
        raise MissingTokenError()
    if not secret:
        raise InvalidTokenError("Server authentication not configured")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience="authenticated",
        )
        claims = JWTPayload(**payload)
    except jwt.ExpiredSignatureError:
        raise ExpiredTokenError()
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(str(e))
    except ValueError as e:
        # Signed, but missing the claims we rely on
        raise InvalidTokenError(f"Malformed token claims: {e}")

    return AuthenticatedUser(
        id=claims.sub,
        email=claims.email or None,
        phone=claims.phone or None,
        last_sign_in=datetime.fromtimestamp(claims.iat, tz=timezone.utc),
        role=claims.role if claims.role != "authenticated" else "user",
        plan=claims.plan,
    )


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Uses Supabase JWT tokens for authentication and the ``profiles``
    table for tenant profiles.
    """

    def __init__(
        self,
        jwt_secret: str,
        profiles: ITableRepository,
        identity: IIdentityProvider,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._jwt_secret = jwt_secret
        self._profiles = profiles
        self._identity = identity
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def validate_token(self, token: str) -> AuthenticatedUser:
        return decode_token(token, self._jwt_secret)

    async def get_profile(self, user_id: str) -> Optional[TenantProfile]:
        row = await self._profiles.get(user_id)
        return TenantProfile.from_row(row) if row is not None else None

    async def ensure_profile(self, user_id: str, phone: Optional[str] = None) -> TenantProfile:
        now = self._clock().isoformat()
        existing = await self._profiles.get(user_id)
        if existing is None:
            rows = await self._profiles.insert(
                {
                    "id": user_id,
                    "phone": phone,
                    "subscription_plan": PlanType.FREE.value,
                    "subscription_status": SubscriptionStatus.NONE.value,
                    "contact_count": 0,
                    "preferences": {},
                    "last_login": now,
                }
            )
            logger.info(f"Created profile for {user_id}")
            return TenantProfile.from_row(rows[0])

        patch: dict[str, Any] = {"last_login": now}
        if phone:
            patch["phone"] = phone
        row = await self._profiles.update(user_id, patch)
        return TenantProfile.from_row(row or existing)

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> TenantProfile:
        patch = request.to_patch()
        if await self._profiles.get(user_id) is None:
            await self.ensure_profile(user_id)
        row = await self._profiles.update(user_id, patch) if patch else await self._profiles.get(user_id)
        return TenantProfile.from_row(row)

    async def send_otp(self, phone: str) -> dict[str, Any]:
        if not is_valid_login_phone(phone):
            raise InvalidPhoneError(phone)
        normalized = normalize_login_phone(phone)
        await self._identity.send_otp(normalized)
        return {
            "message": "OTP sent successfully",
            "phone": normalized,
            "expires_in": OTP_EXPIRES_IN_SECONDS,
        }

    async def verify_otp(self, phone: str, code: str) -> tuple[IdentityResult, TenantProfile]:
        normalized = normalize_login_phone(phone)
        identity = await self._identity.verify_otp(normalized, code)
        profile = await self.ensure_profile(identity.user_id, normalized)
        return identity, profile

    async def refresh(self, refresh_token: str) -> Session:
        return await self._identity.refresh(refresh_token)

    async def sign_out(self, access_token: str) -> None:
        try:
            await self._identity.sign_out(access_token)
        except Exception as e:
            # The token may already be revoked or expired; logout still succeeds
            logger.warning(f"Sign out at identity provider failed: {e}")
