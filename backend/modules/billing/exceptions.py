"""
Billing module exceptions.

These exceptions are raised by the billing module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import ExternalServiceError, ValidationError


class InvalidPlanError(ValidationError):
    def __init__(self, plan_id: str):
        super().__init__(
            "Invalid plan selected",
            code="INVALID_PLAN",
            details={"plan_id": plan_id},
        )


class NoSubscriptionError(ValidationError):
    """The tenant has no Stripe subscription to act on."""

    def __init__(self, message: str = "No active subscription found"):
        super().__init__(message, code="NO_SUBSCRIPTION")


class NoCustomerError(ValidationError):
    def __init__(self):
        super().__init__(
            "No Stripe customer found. Please subscribe first.",
            code="NO_CUSTOMER",
        )


class PaymentFailedError(ExternalServiceError):
    """Raised when a call to Stripe fails."""

    default_code = "PAYMENT_FAILED"

    def __init__(self, message: str, stripe_error: Optional[str] = None):
        super().__init__(
            message,
            service="stripe",
            details={"stripe_error": stripe_error} if stripe_error else None,
        )


class WebhookVerificationError(ValidationError):
    """Raised when Stripe webhook signature verification fails."""

    def __init__(self, reason: str = "Webhook signature verification failed"):
        super().__init__(reason, code="INVALID_SIGNATURE")
