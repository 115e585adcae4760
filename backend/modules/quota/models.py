"""
Quota module data models.

Plans, their contact ceilings, and the per-request quota decision.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PlanType(str, Enum):
    """Subscription plans."""

    FREE = "free"
    TRIAL = "trial"
    BASE = "base"
    ENTERPRISE = "enterprise"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PlanType":
        """Resolve a stored plan name. Unknown or missing plans are treated as free."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.FREE


# Static plan -> ceiling table. Ceilings are derived, never stored.
PLAN_CONTACT_LIMITS: dict[PlanType, int] = {
    PlanType.FREE: 50,
    PlanType.TRIAL: 50,
    PlanType.BASE: 250_000,
    PlanType.ENTERPRISE: 1_000_000,
}


def contact_limit_for(plan: PlanType | str | None) -> int:
    """Contact ceiling for a plan."""
    if not isinstance(plan, PlanType):
        plan = PlanType.parse(plan)
    return PLAN_CONTACT_LIMITS[plan]


class QuotaSnapshot(BaseModel):
    """What the store knows about a tenant's usage."""

    model_config = {"frozen": True}

    plan: PlanType = Field(..., description="Tenant's subscription plan")
    contact_count: int = Field(..., ge=0, description="Contacts currently held")


class Reservation(BaseModel):
    """Outcome of an atomic increment-with-ceiling at the store."""

    model_config = {"frozen": True}

    plan: PlanType
    granted: int = Field(..., ge=0, description="Units added to the counter")
    contact_count: int = Field(..., ge=0, description="Counter value after the update")


class QuotaDecision(BaseModel):
    """
    Ephemeral per-request quota answer.

    ``current`` and ``remaining`` describe the counter before this request;
    ``reserved`` is how much of the request was added to the counter.
    """

    model_config = {"frozen": True}

    allowed: bool = Field(..., description="Whether the write may proceed")
    current: int = Field(..., ge=0, description="Contacts held before this request")
    max: int = Field(..., ge=0, description="Plan ceiling")
    remaining: int = Field(..., ge=0, description="max(0, max - current)")
    requested: int = Field(..., ge=0, description="Units the caller asked for")
    reserved: int = Field(default=0, ge=0, description="Units reserved by this call")
    plan: PlanType = Field(default=PlanType.FREE, description="Plan the ceiling came from")

    @classmethod
    def from_snapshot(cls, snapshot: QuotaSnapshot, requested: int) -> "QuotaDecision":
        ceiling = contact_limit_for(snapshot.plan)
        remaining = max(0, ceiling - snapshot.contact_count)
        return cls(
            allowed=requested <= remaining,
            current=snapshot.contact_count,
            max=ceiling,
            remaining=remaining,
            requested=requested,
            plan=snapshot.plan,
        )


class SubscriptionStatus(str, Enum):
    """Billing state of a tenant's subscription."""

    NONE = "none"
    TRIALING = "trialing"
    ACTIVE = "active"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubscriptionStatus":
        try:
            return cls((value or "none").lower())
        except ValueError:
            return cls.NONE


class TenantProfile(BaseModel):
    """
    A tenant's profile row.

    The contact ceiling is derived from ``plan`` and never stored.
    """

    model_config = {"extra": "ignore", "populate_by_name": True}

    id: str = Field(..., description="Tenant id (matches the auth user id)")
    plan: PlanType = Field(default=PlanType.FREE, validation_alias="subscription_plan")
    subscription_status: SubscriptionStatus = Field(default=SubscriptionStatus.NONE)
    contact_count: int = Field(default=0, ge=0)

    phone: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    avatar_url: Optional[str] = None
    preferences: dict = Field(default_factory=dict)

    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_ends_at: Optional[str] = None
    onesignal_player_id: Optional[str] = None

    @property
    def contact_limit(self) -> int:
        return contact_limit_for(self.plan)

    @classmethod
    def from_row(cls, row: dict) -> "TenantProfile":
        """Build from a ``profiles`` row, tolerating unknown plan/status values."""
        data = dict(row)
        data["subscription_plan"] = PlanType.parse(row.get("subscription_plan"))
        data["subscription_status"] = SubscriptionStatus.parse(row.get("subscription_status"))
        data["contact_count"] = max(0, int(row.get("contact_count") or 0))
        data["preferences"] = row.get("preferences") or {}
        return cls.model_validate(data)
