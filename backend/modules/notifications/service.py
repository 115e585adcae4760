"""
Push notifications through OneSignal.

Delivery is best effort: callers get a NotificationResult and never an
exception, so a push failure can not undo the work it reports on.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from .models import DeliveryStatus, NotificationPriority, NotificationResult, render

logger = logging.getLogger(__name__)

ONESIGNAL_API_URL = "https://onesignal.com/api/v1"
DEFAULT_TTL_SECONDS = 86400


@runtime_checkable
class INotificationService(Protocol):
    """Interface for push delivery to a tenant's devices."""

    @property
    def configured(self) -> bool:
        ...

    async def send(
        self,
        target_id: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
    ) -> NotificationResult:
        ...

    async def send_template(
        self, target_id: str, template_name: str, data: dict[str, Any]
    ) -> NotificationResult:
        ...


class OneSignalNotificationService(INotificationService):
    """Sends to OneSignal external user ids (the tenant id)."""

    def __init__(
        self,
        app_id: str,
        api_key: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 10.0,
    ):
        self._app_id = app_id
        self._api_key = api_key
        self._client = client
        self._timeout = timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self._app_id and self._api_key)

    def _payload(
        self,
        target_id: str,
        title: str,
        body: str,
        data: dict[str, Any],
        priority: NotificationPriority,
    ) -> dict[str, Any]:
        return {
            "app_id": self._app_id,
            "include_external_user_ids": [target_id],
            "headings": {"en": title},
            "contents": {"en": body},
            "data": {**data, "timestamp": datetime.now(timezone.utc).isoformat()},
            "web_push_topic": data.get("topic", "general"),
            "priority": 10 if priority == NotificationPriority.HIGH else 5,
            "ttl": DEFAULT_TTL_SECONDS,
        }

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Basic {self._api_key}",
            "Content-Type": "application/json",
        }
        url = f"{ONESIGNAL_API_URL}/notifications"
        if self._client is not None:
            return await self._client.post(url, json=payload, headers=headers, timeout=self._timeout)
        async with httpx.AsyncClient() as client:
            return await client.post(url, json=payload, headers=headers, timeout=self._timeout)

    async def send(
        self,
        target_id: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
    ) -> NotificationResult:
        if not self.configured:
            logger.debug("OneSignal not configured, skipping notification")
            return NotificationResult(status=DeliveryStatus.SKIPPED)

        try:
            response = await self._post(self._payload(target_id, title, body, data or {}, priority))
            response.raise_for_status()
            content = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Push notification to {target_id} failed: {e}")
            return NotificationResult(status=DeliveryStatus.FAILED, error=str(e))

        return NotificationResult(
            status=DeliveryStatus.DELIVERED,
            notification_id=content.get("id"),
            recipients=content.get("recipients") or 0,
        )

    async def send_template(
        self, target_id: str, template_name: str, data: dict[str, Any]
    ) -> NotificationResult:
        message = render(template_name, data)
        return await self.send(target_id, message.title, message.body, message.data, message.priority)
