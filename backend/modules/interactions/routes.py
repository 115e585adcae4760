"""
Interaction API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_interaction_service
from api.middleware.gate import GateContext, RequestGate
from api.models.envelope import envelope

from .models import CreateInteractionRequest, InteractionType, UpdateInteractionRequest
from .service import InteractionService

router = APIRouter()

authenticated = RequestGate()


@router.get("")
async def list_interactions(
    contact_id: Optional[str] = None,
    type: Optional[InteractionType] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    ctx: GateContext = Depends(authenticated),
    service: InteractionService = Depends(get_interaction_service),
):
    return envelope(await service.list_interactions(ctx.tenant_id, contact_id, type, page, limit))


@router.get("/recent")
async def recent_interactions(
    limit: int = Query(default=10, ge=1, le=50),
    ctx: GateContext = Depends(authenticated),
    service: InteractionService = Depends(get_interaction_service),
):
    return envelope({"interactions": await service.recent(ctx.tenant_id, limit)})


@router.get("/stats")
async def interaction_stats(
    period: int = Query(default=30, ge=1, le=365),
    ctx: GateContext = Depends(authenticated),
    service: InteractionService = Depends(get_interaction_service),
):
    return envelope(await service.stats(ctx.tenant_id, period))


@router.get("/{interaction_id}")
async def get_interaction(
    interaction_id: str,
    ctx: GateContext = Depends(authenticated),
    service: InteractionService = Depends(get_interaction_service),
):
    return envelope({"interaction": await service.get(ctx.tenant_id, interaction_id)})


@router.post("", status_code=201)
async def create_interaction(
    request: CreateInteractionRequest,
    ctx: GateContext = Depends(authenticated),
    service: InteractionService = Depends(get_interaction_service),
):
    return envelope({"interaction": await service.create(ctx.tenant_id, request)})


@router.put("/{interaction_id}")
async def update_interaction(
    interaction_id: str,
    request: UpdateInteractionRequest,
    ctx: GateContext = Depends(authenticated),
    service: InteractionService = Depends(get_interaction_service),
):
    return envelope(
        {"interaction": await service.update(ctx.tenant_id, interaction_id, request)}
    )


@router.delete("/{interaction_id}")
async def delete_interaction(
    interaction_id: str,
    ctx: GateContext = Depends(authenticated),
    service: InteractionService = Depends(get_interaction_service),
):
    await service.delete(ctx.tenant_id, interaction_id)
    return envelope({"message": "Interaction deleted successfully", "id": interaction_id})
