"""
Billing service implementation.

Yearly subscriptions sold through Stripe Checkout. The Stripe SDK is
synchronous, so every call runs in a worker thread. Subscription state
lives on the tenant's ``profiles`` row; webhooks keep it current and the
quota tracker derives the contact ceiling from ``subscription_plan``.
"""

import asyncio
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Optional

import stripe

from shared.models import AuthenticatedUser
from shared.repository import ITableRepository, PageRequest, eq

from modules.notifications.service import INotificationService
from modules.quota.models import PlanType, SubscriptionStatus, TenantProfile

from .exceptions import (
    InvalidPlanError,
    NoCustomerError,
    NoSubscriptionError,
    PaymentFailedError,
    WebhookVerificationError,
)
from .interfaces import IBillingService
from .models import (
    CURRENCY,
    PAYMENT_METHODS,
    PRICING,
    CheckoutSession,
    Invoice,
    Plan,
    SubscriptionInfo,
    WebhookAction,
    WebhookOutcome,
)

logger = logging.getLogger(__name__)

# Stripe subscription status -> profile status
_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELLED,
    "incomplete_expired": SubscriptionStatus.CANCELLED,
}


def _iso(timestamp: Optional[int]) -> Optional[str]:
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _get(obj: Any, key: str, default: Any = None) -> Any:
    """Field of a Stripe object or plain dict."""
    try:
        value = obj[key]
    except (KeyError, TypeError):
        return default
    return default if value is None else value


def _metadata(obj: Any) -> dict[str, Any]:
    metadata = _get(obj, "metadata", {})
    return {k: metadata[k] for k in metadata} if metadata else {}


def profile_status(subscription: Any) -> SubscriptionStatus:
    """Profile status for a Stripe subscription object."""
    status = _STATUS_MAP.get(_get(subscription, "status", ""), SubscriptionStatus.NONE)
    if status == SubscriptionStatus.ACTIVE and _get(subscription, "cancel_at_period_end", False):
        return SubscriptionStatus.CANCELLING
    return status


def _period_end(subscription: Any) -> Optional[int]:
    # Newer API versions moved the period onto the subscription items
    end = _get(subscription, "current_period_end")
    if end:
        return end
    items = _get(_get(subscription, "items", {}), "data", [])
    return _get(items[0], "current_period_end") if items else None


class BillingService(IBillingService):
    """Stripe subscriptions for one tenant at a time."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        profiles: ITableRepository,
        price_ids: Optional[dict[str, str]] = None,
        currency: str = CURRENCY,
        frontend_url: str = "http://localhost:3000",
        notifications: Optional[INotificationService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._profiles = profiles
        self._price_ids = {k: v for k, v in (price_ids or {}).items() if v}
        self._currency = currency.lower()
        self._frontend_url = frontend_url.rstrip("/")
        self._notifications = notifications
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def configured(self) -> bool:
        return bool(self._secret_key)

    def pricing(self) -> dict[str, Plan]:
        return PRICING

    # -------------------------------------------------------------------------
    # Stripe plumbing
    # -------------------------------------------------------------------------

    async def _stripe(self, call: Callable[..., Any], *args: Any, **params: Any) -> Any:
        """Run a Stripe SDK call off the event loop, mapping its errors."""
        if not self.configured:
            raise PaymentFailedError("Payments are not configured")
        try:
            return await asyncio.to_thread(partial(call, *args, api_key=self._secret_key, **params))
        except stripe.StripeError as e:
            logger.error(f"Stripe call {getattr(call, '__qualname__', call)} failed: {e}")
            raise PaymentFailedError(
                getattr(e, "user_message", None) or "Payment provider request failed",
                stripe_error=getattr(e, "code", None),
            ) from e

    @staticmethod
    def _plan(plan_id: str) -> Plan:
        plan = PRICING.get((plan_id or "").lower())
        if plan is None:
            raise InvalidPlanError(plan_id)
        return plan

    def _line_item(self, plan: Plan) -> dict[str, Any]:
        price_id = self._price_ids.get(plan.id)
        if price_id:
            return {"price": price_id, "quantity": 1}
        return {
            "price_data": {
                "currency": self._currency,
                "product_data": {
                    "name": f"Salesdesk {plan.name}",
                    "description": f"Up to {plan.contact_limit:,} contacts",
                },
                "unit_amount": plan.unit_amount,
                "recurring": {"interval": plan.interval},
            },
            "quantity": 1,
        }

    @staticmethod
    def _subscription_id(profile: Optional[TenantProfile]) -> str:
        if profile is None or not profile.stripe_subscription_id:
            raise NoSubscriptionError()
        return profile.stripe_subscription_id

    async def _update_profile(self, profile_id: str, patch: dict[str, Any]) -> Optional[dict[str, Any]]:
        row = await self._profiles.update(profile_id, patch)
        if row is None:
            logger.warning(f"Billing update for unknown profile {profile_id}")
        return row

    def _info(self, subscription: Any, plan_id: Optional[str] = None) -> SubscriptionInfo:
        plan_id = _metadata(subscription).get("planId") or plan_id
        return SubscriptionInfo(
            status=profile_status(subscription).value,
            plan=plan_id,
            current_period_end=_iso(_period_end(subscription)),
            cancel_at_period_end=bool(_get(subscription, "cancel_at_period_end", False)),
            cancel_at=_iso(_get(subscription, "cancel_at")),
            subscription_id=_get(subscription, "id"),
            customer_id=_get(subscription, "customer"),
            plan_details=PRICING.get(plan_id) if plan_id else None,
        )

    # -------------------------------------------------------------------------
    # Checkout and subscription management
    # -------------------------------------------------------------------------

    async def create_checkout(
        self,
        user: AuthenticatedUser,
        profile: Optional[TenantProfile],
        plan_id: str,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> CheckoutSession:
        plan = self._plan(plan_id)
        metadata = {"userId": user.id, "planId": plan.id}

        params: dict[str, Any] = {
            "mode": "subscription",
            "payment_method_types": list(PAYMENT_METHODS),
            "line_items": [self._line_item(plan)],
            "success_url": (success_url or f"{self._frontend_url}/payment/success")
            + "?session_id={CHECKOUT_SESSION_ID}",
            "cancel_url": cancel_url or f"{self._frontend_url}/payment/cancel",
            "client_reference_id": user.id,
            "metadata": metadata,
            "subscription_data": {"metadata": metadata},
        }
        if profile is not None and profile.stripe_customer_id:
            params["customer"] = profile.stripe_customer_id
        elif user.email:
            params["customer_email"] = user.email

        session = await self._stripe(stripe.checkout.Session.create, **params)
        logger.info(f"Checkout session {session['id']} created for {user.id} ({plan.id})")
        return CheckoutSession(session_id=session["id"], session_url=_get(session, "url"))

    async def get_subscription(self, profile: Optional[TenantProfile]) -> SubscriptionInfo:
        if profile is None or not profile.stripe_subscription_id:
            return SubscriptionInfo(
                status=profile.subscription_status.value if profile else SubscriptionStatus.NONE.value,
                plan=profile.plan.value if profile else None,
            )
        subscription = await self._stripe(
            stripe.Subscription.retrieve, profile.stripe_subscription_id
        )
        return self._info(subscription, profile.plan.value)

    async def cancel(self, profile: Optional[TenantProfile], immediately: bool = False) -> SubscriptionInfo:
        subscription_id = self._subscription_id(profile)
        if immediately:
            subscription = await self._stripe(stripe.Subscription.cancel, subscription_id)
            patch = {
                "subscription_status": SubscriptionStatus.CANCELLED.value,
                "subscription_plan": PlanType.FREE.value,
                "subscription_ends_at": self._clock().isoformat(),
            }
        else:
            subscription = await self._stripe(
                stripe.Subscription.modify, subscription_id, cancel_at_period_end=True
            )
            patch = {
                "subscription_status": SubscriptionStatus.CANCELLING.value,
                "subscription_ends_at": _iso(_period_end(subscription)),
            }
        await self._update_profile(profile.id, patch)
        logger.info(f"Subscription {subscription_id} cancelled for {profile.id} (immediately={immediately})")
        return self._info(subscription, profile.plan.value)

    async def resume(self, profile: Optional[TenantProfile]) -> SubscriptionInfo:
        subscription_id = self._subscription_id(profile)
        subscription = await self._stripe(
            stripe.Subscription.modify, subscription_id, cancel_at_period_end=False
        )
        await self._update_profile(
            profile.id,
            {"subscription_status": profile_status(subscription).value, "subscription_ends_at": None},
        )
        return self._info(subscription, profile.plan.value)

    async def change_plan(self, profile: Optional[TenantProfile], plan_id: str) -> SubscriptionInfo:
        plan = self._plan(plan_id)
        subscription_id = self._subscription_id(profile)
        current = await self._stripe(stripe.Subscription.retrieve, subscription_id)
        items = _get(_get(current, "items", {}), "data", [])
        if not items:
            raise NoSubscriptionError("Subscription has no billable items")

        item = {"id": items[0]["id"], **self._line_item(plan)}
        item.pop("quantity")
        subscription = await self._stripe(
            stripe.Subscription.modify,
            subscription_id,
            items=[item],
            proration_behavior="create_prorations",
            metadata={"userId": profile.id, "planId": plan.id},
        )
        await self._update_profile(profile.id, {"subscription_plan": plan.id})
        logger.info(f"Plan for {profile.id} changed to {plan.id}")
        return self._info(subscription, plan.id)

    async def create_portal(self, profile: Optional[TenantProfile], return_url: Optional[str] = None) -> str:
        if profile is None or not profile.stripe_customer_id:
            raise NoCustomerError()
        session = await self._stripe(
            stripe.billing_portal.Session.create,
            customer=profile.stripe_customer_id,
            return_url=return_url or f"{self._frontend_url}/settings",
        )
        return session["url"]

    async def list_invoices(self, profile: Optional[TenantProfile], limit: int = 10) -> list[Invoice]:
        if profile is None or not profile.stripe_customer_id:
            return []
        result = await self._stripe(
            stripe.Invoice.list, customer=profile.stripe_customer_id, limit=limit
        )
        return [
            Invoice(
                id=inv["id"],
                number=_get(inv, "number"),
                amount_paid=_get(inv, "amount_paid", 0) / 100,
                currency=str(_get(inv, "currency", self._currency)).upper(),
                status=_get(inv, "status"),
                created=_iso(_get(inv, "created")),
                hosted_invoice_url=_get(inv, "hosted_invoice_url"),
                invoice_pdf=_get(inv, "invoice_pdf"),
            )
            for inv in _get(result, "data", [])
        ]

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Any:
        if not self._webhook_secret:
            raise WebhookVerificationError("Webhook secret not configured")
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header")
        try:
            return stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(f"Webhook signature verification failed: {e}") from e
        except ValueError as e:
            raise WebhookVerificationError(f"Invalid webhook payload: {e}") from e

    async def _profile_for(self, obj: Any) -> Optional[str]:
        """Tenant a Stripe object belongs to: metadata first, then stored ids."""
        user_id = _metadata(obj).get("userId") or _get(obj, "client_reference_id")
        if user_id:
            return user_id
        for field_name, key in (
            ("stripe_subscription_id", "subscription"),
            ("stripe_subscription_id", "id"),
            ("stripe_customer_id", "customer"),
        ):
            value = _get(obj, key)
            if not isinstance(value, str):
                continue
            page = await self._profiles.find([eq(field_name, value)], page=PageRequest(1, 1), columns="id")
            if page.rows:
                return page.rows[0]["id"]
        return None

    async def handle_webhook_event(self, event: Any) -> WebhookOutcome:
        event_type = _get(event, "type", "")
        obj = _get(_get(event, "data", {}), "object", {})
        logger.info(f"Stripe webhook {_get(event, 'id')}: {event_type}")

        if event_type == "checkout.session.completed":
            return await self._checkout_completed(obj)
        if event_type in ("customer.subscription.created", "customer.subscription.updated"):
            return await self._subscription_changed(obj)
        if event_type == "customer.subscription.deleted":
            return await self._subscription_deleted(obj)
        if event_type in ("invoice.payment_succeeded", "invoice.paid"):
            return await self._invoice_paid(obj)
        if event_type == "invoice.payment_failed":
            return await self._invoice_failed(obj)

        logger.debug(f"Unhandled Stripe event type: {event_type}")
        return WebhookOutcome(action=WebhookAction.UNHANDLED, data={"type": event_type})

    async def _checkout_completed(self, session: Any) -> WebhookOutcome:
        metadata = _metadata(session)
        user_id = metadata.get("userId") or _get(session, "client_reference_id")
        plan_id = PlanType.parse(metadata.get("planId")).value
        data = {
            "user_id": user_id,
            "plan_id": plan_id,
            "customer_id": _get(session, "customer"),
            "subscription_id": _get(session, "subscription"),
        }
        if not user_id:
            logger.warning(f"Checkout session {_get(session, 'id')} has no user reference")
            return WebhookOutcome(action=WebhookAction.SUBSCRIPTION_CREATED, data=data)

        await self._update_profile(
            user_id,
            {
                "subscription_status": SubscriptionStatus.ACTIVE.value,
                "subscription_plan": plan_id,
                "stripe_customer_id": data["customer_id"],
                "stripe_subscription_id": data["subscription_id"],
                "subscription_ends_at": None,
            },
        )
        if self._notifications is not None:
            await self._notifications.send_template(
                user_id, "payment_success", {"plan": PRICING[plan_id].name if plan_id in PRICING else plan_id}
            )
        return WebhookOutcome(action=WebhookAction.SUBSCRIPTION_CREATED, data=data, profile_id=user_id)

    async def _subscription_changed(self, subscription: Any) -> WebhookOutcome:
        status = profile_status(subscription)
        data = {"subscription_id": _get(subscription, "id"), "status": status.value}
        profile_id = await self._profile_for(subscription)
        if profile_id:
            patch: dict[str, Any] = {
                "subscription_status": status.value,
                "stripe_subscription_id": _get(subscription, "id"),
                "subscription_ends_at": _iso(_period_end(subscription))
                if status == SubscriptionStatus.CANCELLING
                else None,
            }
            plan_id = _metadata(subscription).get("planId")
            if plan_id in PRICING:
                patch["subscription_plan"] = plan_id
            await self._update_profile(profile_id, patch)
        return WebhookOutcome(action=WebhookAction.SUBSCRIPTION_UPDATED, data=data, profile_id=profile_id)

    async def _subscription_deleted(self, subscription: Any) -> WebhookOutcome:
        data = {"subscription_id": _get(subscription, "id")}
        profile_id = await self._profile_for(subscription)
        if profile_id:
            await self._update_profile(
                profile_id,
                {
                    "subscription_status": SubscriptionStatus.CANCELLED.value,
                    "subscription_plan": PlanType.FREE.value,
                    "subscription_ends_at": _iso(_get(subscription, "ended_at")) or self._clock().isoformat(),
                },
            )
        return WebhookOutcome(action=WebhookAction.SUBSCRIPTION_CANCELLED, data=data, profile_id=profile_id)

    async def _invoice_paid(self, invoice: Any) -> WebhookOutcome:
        data = {
            "invoice_id": _get(invoice, "id"),
            "amount": _get(invoice, "amount_paid", 0) / 100,
            "currency": str(_get(invoice, "currency", self._currency)).upper(),
        }
        profile_id = await self._profile_for(invoice)
        if profile_id:
            await self._update_profile(profile_id, {"subscription_status": SubscriptionStatus.ACTIVE.value})
        return WebhookOutcome(action=WebhookAction.PAYMENT_SUCCEEDED, data=data, profile_id=profile_id)

    async def _invoice_failed(self, invoice: Any) -> WebhookOutcome:
        data = {"invoice_id": _get(invoice, "id"), "attempt_count": _get(invoice, "attempt_count", 0)}
        profile_id = await self._profile_for(invoice)
        if profile_id:
            await self._update_profile(profile_id, {"subscription_status": SubscriptionStatus.PAST_DUE.value})
        logger.warning(f"Payment failed for invoice {data['invoice_id']} (profile {profile_id})")
        return WebhookOutcome(action=WebhookAction.PAYMENT_FAILED, data=data, profile_id=profile_id)
