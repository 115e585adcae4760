"""
Billing module interface.

Other modules should depend on IBillingService, not the concrete implementation.
Routes and tests talk to this protocol; only the service knows about Stripe.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from shared.models import AuthenticatedUser

from modules.quota.models import TenantProfile

from .models import CheckoutSession, Invoice, Plan, SubscriptionInfo, WebhookOutcome


@runtime_checkable
class IBillingService(Protocol):
    """
    Interface for subscription billing.

    Every profile-mutating operation writes the tenant's ``profiles`` row,
    which is where the quota tracker reads the plan from.
    """

    @property
    def configured(self) -> bool:
        """Whether a Stripe secret key is present."""
        ...

    def pricing(self) -> dict[str, Plan]:
        ...

    async def create_checkout(
        self,
        user: AuthenticatedUser,
        profile: Optional[TenantProfile],
        plan_id: str,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Start a hosted checkout for a yearly plan.

        Raises:
            InvalidPlanError: If the plan is not sold
            PaymentFailedError: If Stripe rejects the request
        """
        ...

    async def get_subscription(self, profile: Optional[TenantProfile]) -> SubscriptionInfo:
        ...

    async def cancel(self, profile: Optional[TenantProfile], immediately: bool = False) -> SubscriptionInfo:
        """
        Cancel now or at the end of the current period.

        Raises:
            NoSubscriptionError: If the tenant has no subscription
        """
        ...

    async def resume(self, profile: Optional[TenantProfile]) -> SubscriptionInfo:
        ...

    async def change_plan(self, profile: Optional[TenantProfile], plan_id: str) -> SubscriptionInfo:
        ...

    async def create_portal(self, profile: Optional[TenantProfile], return_url: Optional[str] = None) -> str:
        """
        URL of the Stripe customer portal.

        Raises:
            NoCustomerError: If the tenant never checked out
        """
        ...

    async def list_invoices(self, profile: Optional[TenantProfile], limit: int = 10) -> list[Invoice]:
        ...

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Any:
        """
        Check the ``Stripe-Signature`` header and parse the event.

        Raises:
            WebhookVerificationError: If the signature does not match
        """
        ...

    async def handle_webhook_event(self, event: Any) -> WebhookOutcome:
        """Apply a verified event to the matching tenant profile."""
        ...
