"""
Payment API endpoints.

Pricing is public. The webhook authenticates by Stripe signature, not by
bearer token, and answers 200 for every verified event so Stripe does not
retry deliveries whose side effects failed on our end.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request

from api.dependencies import get_billing_service
from api.middleware.gate import GateContext, RequestGate
from api.models.envelope import envelope
from modules.ratelimit.models import RouteClass

from .interfaces import IBillingService
from .models import CURRENCY, CancelRequest, ChangePlanRequest, CheckoutRequest, PortalRequest

logger = logging.getLogger(__name__)

router = APIRouter()

authenticated = RequestGate()
payment_gate = RequestGate(RouteClass.PAYMENT)


@router.get("/pricing")
async def pricing(service: IBillingService = Depends(get_billing_service)):
    return envelope({"plans": service.pricing(), "currency": CURRENCY})


@router.post("/webhook")
async def webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    service: IBillingService = Depends(get_billing_service),
):
    payload = await request.body()
    event = service.verify_webhook(payload, stripe_signature)
    try:
        outcome = await service.handle_webhook_event(event)
    except Exception:
        logger.exception(f"Failed to apply Stripe event {event['id']}")
        return envelope({"received": True, "action": "error"})
    return envelope({"received": True, "action": outcome.action.value})


@router.post("/checkout")
async def checkout(
    request: CheckoutRequest,
    ctx: GateContext = Depends(payment_gate),
    service: IBillingService = Depends(get_billing_service),
):
    session = await service.create_checkout(
        ctx.user, ctx.profile, request.plan_id, request.success_url, request.cancel_url
    )
    return envelope(session)


@router.get("/subscription")
async def subscription(
    ctx: GateContext = Depends(authenticated),
    service: IBillingService = Depends(get_billing_service),
):
    return envelope({"subscription": await service.get_subscription(ctx.profile)})


@router.post("/cancel")
async def cancel(
    request: CancelRequest,
    ctx: GateContext = Depends(payment_gate),
    service: IBillingService = Depends(get_billing_service),
):
    info = await service.cancel(ctx.profile, request.immediately)
    message = (
        "Subscription cancelled"
        if request.immediately
        else "Subscription will be cancelled at the end of the billing period"
    )
    return envelope({"subscription": info, "message": message})


@router.post("/resume")
async def resume(
    ctx: GateContext = Depends(payment_gate),
    service: IBillingService = Depends(get_billing_service),
):
    return envelope({"subscription": await service.resume(ctx.profile), "message": "Subscription resumed"})


@router.post("/upgrade")
async def upgrade(
    request: ChangePlanRequest,
    ctx: GateContext = Depends(payment_gate),
    service: IBillingService = Depends(get_billing_service),
):
    info = await service.change_plan(ctx.profile, request.plan_id)
    return envelope({"subscription": info, "message": f"Plan changed to {request.plan_id}"})


@router.post("/portal")
async def portal(
    request: PortalRequest,
    ctx: GateContext = Depends(payment_gate),
    service: IBillingService = Depends(get_billing_service),
):
    return envelope({"url": await service.create_portal(ctx.profile, request.return_url)})


@router.get("/invoices")
async def invoices(
    limit: int = Query(10, ge=1, le=100),
    ctx: GateContext = Depends(authenticated),
    service: IBillingService = Depends(get_billing_service),
):
    return envelope({"invoices": await service.list_invoices(ctx.profile, limit)})
