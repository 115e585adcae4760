"""
Billing module data models.

These models define the data structures used by the billing module
and exposed to other modules through the interface.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from modules.quota.models import PLAN_CONTACT_LIMITS, PlanType

CURRENCY = "MYR"
PAYMENT_METHODS = ("card", "fpx", "grabpay")


class Plan(BaseModel):
    """A purchasable yearly subscription plan."""

    model_config = {"frozen": True}

    id: str = Field(..., description="Plan id, also stored on the profile")
    name: str = Field(..., description="Display name")
    price: int = Field(..., description="Yearly price in whole ringgit")
    interval: str = Field(default="year")
    contact_limit: int = Field(..., description="Contact ceiling granted by the plan")
    features: list[str] = Field(default_factory=list)

    @property
    def unit_amount(self) -> int:
        """Price in sen, the unit Stripe expects."""
        return self.price * 100


PRICING: dict[str, Plan] = {
    PlanType.BASE.value: Plan(
        id=PlanType.BASE.value,
        name="Base Plan",
        price=299,
        contact_limit=PLAN_CONTACT_LIMITS[PlanType.BASE],
        features=[
            "Up to 250,000 contacts",
            "AI-powered chat assistant",
            "Namecard scanning",
            "Spreadsheet import",
            "Push notifications",
            "Basic analytics",
        ],
    ),
    PlanType.ENTERPRISE.value: Plan(
        id=PlanType.ENTERPRISE.value,
        name="Enterprise Plan",
        price=498,
        contact_limit=PLAN_CONTACT_LIMITS[PlanType.ENTERPRISE],
        features=[
            "Up to 1,000,000 contacts",
            "Everything in Base plan",
            "Priority AI processing",
            "Advanced analytics",
            "Priority support",
        ],
    ),
}


class CheckoutSession(BaseModel):
    session_id: str
    session_url: Optional[str] = None


class SubscriptionInfo(BaseModel):
    """Subscription as seen by the tenant."""

    status: str = Field(default="none")
    plan: Optional[str] = None
    current_period_end: Optional[str] = None
    cancel_at_period_end: bool = False
    cancel_at: Optional[str] = None
    subscription_id: Optional[str] = None
    customer_id: Optional[str] = None
    plan_details: Optional[Plan] = None


class Invoice(BaseModel):
    id: str
    number: Optional[str] = None
    amount_paid: float = 0.0
    currency: str = CURRENCY
    status: Optional[str] = None
    created: Optional[str] = None
    hosted_invoice_url: Optional[str] = None
    invoice_pdf: Optional[str] = None


class WebhookAction(str, Enum):
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    UNHANDLED = "unhandled"


class WebhookOutcome(BaseModel):
    """What a webhook event meant and whether a profile was updated."""

    action: WebhookAction
    data: dict[str, Any] = Field(default_factory=dict)
    profile_id: Optional[str] = None


# -----------------------------------------------------------------------------
# Request models
# -----------------------------------------------------------------------------


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: str = Field(..., alias="planId")
    success_url: Optional[str] = Field(None, alias="successUrl")
    cancel_url: Optional[str] = Field(None, alias="cancelUrl")


class CancelRequest(BaseModel):
    immediately: bool = False


class ChangePlanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: str = Field(..., alias="planId")


class PortalRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    return_url: Optional[str] = Field(None, alias="returnUrl")
