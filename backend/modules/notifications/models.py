"""
Notification models and message templates.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"  # push not configured
    FAILED = "failed"


class NotificationResult(BaseModel):
    status: DeliveryStatus
    notification_id: Optional[str] = None
    recipients: int = 0
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED


class NotificationPriority(str, Enum):
    NORMAL = "normal"
    HIGH = "high"


@dataclass(frozen=True)
class Template:
    title: str
    priority: NotificationPriority
    render: Callable[[dict[str, Any]], str]


def _import_complete(data: dict[str, Any]) -> str:
    message = f"Successfully imported {data.get('count', 0)} contacts"
    if data.get("duplicates"):
        message += f" ({data['duplicates']} duplicates skipped)"
    return message + "."


def _contact_follow_up(data: dict[str, Any]) -> str:
    message = f"Time to follow up with {data.get('contact_name', 'your contact')}"
    if data.get("company"):
        message += f" from {data['company']}"
    return message


TEMPLATES: dict[str, Template] = {
    "import_complete": Template(
        "Import Complete", NotificationPriority.NORMAL, _import_complete
    ),
    "payment_success": Template(
        "Payment Successful",
        NotificationPriority.HIGH,
        lambda data: f"Thank you! Your {data.get('plan', 'subscription')} plan is now active.",
    ),
    "contact_follow_up": Template(
        "Follow-up Reminder", NotificationPriority.HIGH, _contact_follow_up
    ),
}


class RenderedNotification(BaseModel):
    title: str
    body: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: dict[str, Any] = Field(default_factory=dict)


def render(template_name: str, data: dict[str, Any]) -> RenderedNotification:
    """
    Fill a named template.

    Raises:
        KeyError: If there is no template with that name
    """
    template = TEMPLATES[template_name]
    return RenderedNotification(
        title=template.title,
        body=template.render(data),
        priority=template.priority,
        data={"type": template_name, **data},
    )
