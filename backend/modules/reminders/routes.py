"""
Reminder API endpoints.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_reminder_service
from api.middleware.gate import GateContext, RequestGate
from api.models.envelope import envelope

from .models import (
    CompleteReminderRequest,
    CreateReminderRequest,
    ReminderFilters,
    ReminderPriority,
    ReminderStatus,
    ReminderType,
    SnoozeReminderRequest,
    UpdateReminderRequest,
)
from .service import ReminderService

router = APIRouter()

authenticated = RequestGate()


@router.get("")
async def list_reminders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    status: Optional[ReminderStatus] = None,
    type: Optional[ReminderType] = None,
    priority: Optional[ReminderPriority] = None,
    contact_id: Optional[str] = None,
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    overdue: bool = False,
    sort: str = Query(default="due_date", pattern="^(due_date|created_at|priority|title)$"),
    order: str = Query(default="asc", pattern="^(asc|desc)$"),
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    filters = ReminderFilters(
        status=status,
        type=type,
        priority=priority,
        contact_id=contact_id,
        start_date=start_date,
        end_date=end_date,
        overdue=overdue,
    )
    data = await service.list_reminders(
        ctx.tenant_id, filters, page, limit, sort, ascending=order == "asc"
    )
    return envelope(data)


@router.get("/today")
async def today(
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    return envelope(await service.today(ctx.tenant_id))


@router.get("/upcoming")
async def upcoming(
    days: int = Query(default=7, ge=1, le=90),
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    return envelope(await service.upcoming(ctx.tenant_id, days))


@router.get("/overdue")
async def overdue(
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    return envelope(await service.overdue(ctx.tenant_id))


@router.get("/stats")
async def stats(
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    return envelope(await service.stats(ctx.tenant_id))


@router.get("/{reminder_id}")
async def get_reminder(
    reminder_id: str,
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    return envelope({"reminder": await service.get(ctx.tenant_id, reminder_id)})


@router.post("", status_code=201)
async def create_reminder(
    request: CreateReminderRequest,
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    return envelope({"reminder": await service.create(ctx.tenant_id, request)})


@router.put("/{reminder_id}")
async def update_reminder(
    reminder_id: str,
    request: UpdateReminderRequest,
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    return envelope({"reminder": await service.update(ctx.tenant_id, reminder_id, request)})


@router.put("/{reminder_id}/complete")
async def complete_reminder(
    reminder_id: str,
    request: Optional[CompleteReminderRequest] = None,
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    """Complete a reminder. Recurring reminders get their next occurrence created."""
    notes = request.notes if request else None
    return envelope(await service.complete(ctx.tenant_id, reminder_id, notes))


@router.put("/{reminder_id}/snooze")
async def snooze_reminder(
    reminder_id: str,
    request: Optional[SnoozeReminderRequest] = None,
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    return envelope(
        await service.snooze(ctx.tenant_id, reminder_id, request or SnoozeReminderRequest())
    )


@router.delete("/{reminder_id}")
async def delete_reminder(
    reminder_id: str,
    ctx: GateContext = Depends(authenticated),
    service: ReminderService = Depends(get_reminder_service),
):
    await service.delete(ctx.tenant_id, reminder_id)
    return envelope({"message": "Reminder deleted successfully", "id": reminder_id})
