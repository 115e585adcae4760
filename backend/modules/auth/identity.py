"""
Identity provider adapter.

Phone OTP sign-in, session refresh and sign-out are delegated to Supabase
Auth. The client calls are blocking, so they run in a worker thread.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from supabase import Client

from shared.database import create_auth_client, get_supabase_client

from .exceptions import OtpSendFailedError, RefreshFailedError, VerificationFailedError
from .models import IdentityResult, Session

logger = logging.getLogger(__name__)


@runtime_checkable
class IIdentityProvider(Protocol):
    """Contract for the external identity provider."""

    async def send_otp(self, phone: str) -> None:
        ...

    async def verify_otp(self, phone: str, code: str) -> IdentityResult:
        ...

    async def refresh(self, refresh_token: str) -> Session:
        ...

    async def sign_out(self, access_token: str) -> None:
        ...


def _session(raw: Any) -> Session:
    return Session(
        access_token=raw.access_token,
        refresh_token=raw.refresh_token,
        expires_at=getattr(raw, "expires_at", None),
        expires_in=getattr(raw, "expires_in", None),
    )


class SupabaseIdentityProvider(IIdentityProvider):
    """IIdentityProvider over Supabase Auth (SMS OTP)."""

    def __init__(
        self,
        auth_client_factory: Callable[[], Client] = create_auth_client,
        admin_client: Optional[Client] = None,
    ):
        self._auth_client_factory = auth_client_factory
        self._admin_client = admin_client

    @property
    def _admin(self) -> Client:
        if self._admin_client is None:
            self._admin_client = get_supabase_client()
        return self._admin_client

    async def send_otp(self, phone: str) -> None:
        client = self._auth_client_factory()
        try:
            await asyncio.to_thread(client.auth.sign_in_with_otp, {"phone": phone})
        except Exception as e:
            logger.warning(f"OTP send failed for {phone}: {e}")
            raise OtpSendFailedError(str(e)) from e

    async def verify_otp(self, phone: str, code: str) -> IdentityResult:
        client = self._auth_client_factory()
        try:
            response = await asyncio.to_thread(
                client.auth.verify_otp, {"phone": phone, "token": code, "type": "sms"}
            )
        except Exception as e:
            logger.info(f"OTP verification failed for {phone}: {e}")
            raise VerificationFailedError() from e

        if response.user is None or response.session is None:
            raise VerificationFailedError()
        created_at = response.user.created_at
        return IdentityResult(
            user_id=response.user.id,
            phone=phone,
            created_at=created_at.isoformat() if hasattr(created_at, "isoformat") else created_at,
            session=_session(response.session),
        )

    async def refresh(self, refresh_token: str) -> Session:
        client = self._auth_client_factory()
        try:
            response = await asyncio.to_thread(client.auth.refresh_session, refresh_token)
        except Exception as e:
            raise RefreshFailedError() from e
        if response.session is None:
            raise RefreshFailedError()
        return _session(response.session)

    async def sign_out(self, access_token: str) -> None:
        await asyncio.to_thread(self._admin.auth.admin.sign_out, access_token)
