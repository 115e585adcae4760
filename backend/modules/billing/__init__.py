"""
Billing module.

Yearly subscriptions through Stripe Checkout, plan changes, the customer
portal, and webhooks that keep the tenant profile's plan current.

Public API:
- IBillingService / BillingService: Subscription operations
- PRICING, Plan: The plans on sale
- WebhookOutcome, WebhookAction: What a webhook event did
- Billing exceptions: InvalidPlanError, PaymentFailedError, etc.
"""

from .interfaces import IBillingService
from .models import (
    CURRENCY,
    PAYMENT_METHODS,
    PRICING,
    CancelRequest,
    ChangePlanRequest,
    CheckoutRequest,
    CheckoutSession,
    Invoice,
    Plan,
    PortalRequest,
    SubscriptionInfo,
    WebhookAction,
    WebhookOutcome,
)
from .exceptions import (
    InvalidPlanError,
    NoCustomerError,
    NoSubscriptionError,
    PaymentFailedError,
    WebhookVerificationError,
)
from .service import BillingService, profile_status

__all__ = [
    # Interface
    "IBillingService",
    "BillingService",
    "profile_status",
    # Models
    "CURRENCY",
    "PAYMENT_METHODS",
    "PRICING",
    "CancelRequest",
    "ChangePlanRequest",
    "CheckoutRequest",
    "CheckoutSession",
    "Invoice",
    "Plan",
    "PortalRequest",
    "SubscriptionInfo",
    "WebhookAction",
    "WebhookOutcome",
    # Exceptions
    "InvalidPlanError",
    "NoCustomerError",
    "NoSubscriptionError",
    "PaymentFailedError",
    "WebhookVerificationError",
]
