"""
Contact API endpoints.
"""

from typing import Optional

import pandas as pd
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from api.dependencies import get_contact_service
from api.middleware.gate import GateContext, RequestGate
from api.models.envelope import envelope
from modules.ratelimit.models import RouteClass

from .interfaces import IContactService
from .models import (
    BulkCreateRequest,
    ContactFilters,
    ContactSearch,
    CreateContactRequest,
    UpdateContactRequest,
)
from .service import EXPORT_COLUMNS

router = APIRouter()

authenticated = RequestGate()


@router.get("")
async def list_contacts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    sort: str = "created_at",
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
    category: Optional[str] = None,
    industry: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    ctx: GateContext = Depends(authenticated),
    service: IContactService = Depends(get_contact_service),
):
    """List contacts. Unknown sort fields fall back to created_at."""
    filters = ContactFilters(category=category, industry=industry, status=status, search=search)
    data = await service.list_contacts(
        ctx.tenant_id, filters, page, limit, sort, ascending=order == "asc"
    )
    return envelope(data)


@router.get("/search")
async def search_contacts(
    q: Optional[str] = None,
    name: Optional[str] = None,
    company: Optional[str] = None,
    industry: Optional[str] = None,
    category: Optional[str] = None,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    has_interaction: Optional[bool] = Query(default=None, alias="hasInteraction"),
    created_after: Optional[str] = Query(default=None, alias="createdAfter"),
    created_before: Optional[str] = Query(default=None, alias="createdBefore"),
    limit: int = Query(default=20, ge=1, le=100),
    ctx: GateContext = Depends(RequestGate(RouteClass.SEARCH)),
    service: IContactService = Depends(get_contact_service),
):
    criteria = ContactSearch(
        q=q,
        name=name,
        company=company,
        industry=industry,
        category=category,
        phone=phone,
        email=email,
        has_interaction=has_interaction,
        created_after=created_after,
        created_before=created_before,
        limit=limit,
    )
    contacts = await service.search(ctx.tenant_id, criteria)
    return envelope({"contacts": contacts, "count": len(contacts)})


@router.get("/count")
async def count_contacts(
    ctx: GateContext = Depends(authenticated),
    service: IContactService = Depends(get_contact_service),
):
    return envelope(await service.count(ctx.tenant_id))


@router.get("/stats")
async def contact_stats(
    ctx: GateContext = Depends(authenticated),
    service: IContactService = Depends(get_contact_service),
):
    return envelope(await service.stats(ctx.tenant_id))


@router.get("/export")
async def export_contacts(
    category: Optional[str] = None,
    ctx: GateContext = Depends(RequestGate(RouteClass.EXPORT)),
    service: IContactService = Depends(get_contact_service),
):
    """Download contacts as CSV."""
    rows = await service.export(ctx.tenant_id, category)
    frame = pd.DataFrame(rows, columns=list(EXPORT_COLUMNS))
    return Response(
        content=frame.to_csv(index=False),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="contacts.csv"'},
    )


@router.get("/{contact_id}")
async def get_contact(
    contact_id: str,
    ctx: GateContext = Depends(authenticated),
    service: IContactService = Depends(get_contact_service),
):
    return envelope({"contact": await service.get(ctx.tenant_id, contact_id)})


@router.post("", status_code=201)
async def create_contact(
    request: CreateContactRequest,
    ctx: GateContext = Depends(RequestGate(RouteClass.CONTACT_CREATE, quota=True)),
    service: IContactService = Depends(get_contact_service),
):
    return envelope({"contact": await service.create(ctx.tenant_id, request)})


@router.post("/bulk", status_code=201)
async def bulk_create_contacts(
    request: BulkCreateRequest,
    ctx: GateContext = Depends(RequestGate(RouteClass.CONTACT_CREATE, quota=True)),
    service: IContactService = Depends(get_contact_service),
):
    """
    Create up to 500 contacts at once.

    The batch is rejected as a whole when it does not fit in the
    remaining quota.
    """
    return envelope(await service.bulk_create(ctx.tenant_id, request))


@router.put("/{contact_id}")
async def update_contact(
    contact_id: str,
    request: UpdateContactRequest,
    ctx: GateContext = Depends(authenticated),
    service: IContactService = Depends(get_contact_service),
):
    return envelope({"contact": await service.update(ctx.tenant_id, contact_id, request)})


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: str,
    ctx: GateContext = Depends(authenticated),
    service: IContactService = Depends(get_contact_service),
):
    await service.delete(ctx.tenant_id, contact_id)
    return envelope({"message": "Contact deleted successfully", "id": contact_id})


@router.get("/{contact_id}/interactions")
async def contact_interactions(
    contact_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    ctx: GateContext = Depends(authenticated),
    service: IContactService = Depends(get_contact_service),
):
    interactions = await service.interactions(ctx.tenant_id, contact_id, limit, offset)
    return envelope({"interactions": interactions})
