"""
Opportunity API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_opportunity_service
from api.middleware.gate import GateContext, RequestGate
from api.models.envelope import envelope

from .models import (
    CreateOpportunityRequest,
    MoveStageRequest,
    OpportunityStage,
    OpportunityStatus,
    UpdateOpportunityRequest,
)
from .service import OpportunityService

router = APIRouter()

authenticated = RequestGate()


@router.get("")
async def list_opportunities(
    stage: Optional[OpportunityStage] = None,
    status: Optional[OpportunityStatus] = None,
    contact_id: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    ctx: GateContext = Depends(authenticated),
    service: OpportunityService = Depends(get_opportunity_service),
):
    return envelope(
        await service.list_opportunities(ctx.tenant_id, stage, status, contact_id, page, limit)
    )


@router.get("/stats")
async def opportunity_stats(
    ctx: GateContext = Depends(authenticated),
    service: OpportunityService = Depends(get_opportunity_service),
):
    return envelope(await service.stats(ctx.tenant_id))


@router.get("/pipeline")
async def pipeline(
    ctx: GateContext = Depends(authenticated),
    service: OpportunityService = Depends(get_opportunity_service),
):
    """Active deals grouped by stage, with per-stage totals."""
    return envelope(await service.pipeline(ctx.tenant_id))


@router.get("/{opportunity_id}")
async def get_opportunity(
    opportunity_id: str,
    ctx: GateContext = Depends(authenticated),
    service: OpportunityService = Depends(get_opportunity_service),
):
    return envelope({"opportunity": await service.get(ctx.tenant_id, opportunity_id)})


@router.post("", status_code=201)
async def create_opportunity(
    request: CreateOpportunityRequest,
    ctx: GateContext = Depends(authenticated),
    service: OpportunityService = Depends(get_opportunity_service),
):
    return envelope({"opportunity": await service.create(ctx.tenant_id, request)})


@router.put("/{opportunity_id}")
async def update_opportunity(
    opportunity_id: str,
    request: UpdateOpportunityRequest,
    ctx: GateContext = Depends(authenticated),
    service: OpportunityService = Depends(get_opportunity_service),
):
    return envelope(
        {"opportunity": await service.update(ctx.tenant_id, opportunity_id, request)}
    )


@router.put("/{opportunity_id}/stage")
async def move_stage(
    opportunity_id: str,
    request: MoveStageRequest,
    ctx: GateContext = Depends(authenticated),
    service: OpportunityService = Depends(get_opportunity_service),
):
    return envelope(
        {"opportunity": await service.move_stage(ctx.tenant_id, opportunity_id, request.stage)}
    )


@router.delete("/{opportunity_id}")
async def delete_opportunity(
    opportunity_id: str,
    ctx: GateContext = Depends(authenticated),
    service: OpportunityService = Depends(get_opportunity_service),
):
    await service.delete(ctx.tenant_id, opportunity_id)
    return envelope({"message": "Opportunity deleted successfully", "id": opportunity_id})
