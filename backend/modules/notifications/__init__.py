"""
Notifications module.

Public API:
- INotificationService / OneSignalNotificationService: Push delivery
- NotificationResult, DeliveryStatus: Outcome of one send
- TEMPLATES, render: Named message templates
"""

from .models import (
    TEMPLATES,
    DeliveryStatus,
    NotificationPriority,
    NotificationResult,
    RenderedNotification,
    render,
)
from .service import INotificationService, OneSignalNotificationService

__all__ = [
    "TEMPLATES",
    "DeliveryStatus",
    "NotificationPriority",
    "NotificationResult",
    "RenderedNotification",
    "render",
    "INotificationService",
    "OneSignalNotificationService",
]
