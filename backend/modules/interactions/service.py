"""
Interaction service.

Logging an interaction also stamps the contact's ``last_interaction`` and,
when a follow-up date is given, schedules a follow-up reminder.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from shared.repository import ITableRepository, PageRequest, Sort, eq, gte

from modules.contacts.exceptions import ContactNotFoundError
from modules.reminders.models import ReminderPriority, ReminderStatus, ReminderType, as_utc

from .exceptions import InteractionNotFoundError
from .models import CreateInteractionRequest, InteractionType, UpdateInteractionRequest

logger = logging.getLogger(__name__)


class InteractionService:
    def __init__(
        self,
        interactions: ITableRepository,
        contacts: ITableRepository,
        reminders: ITableRepository,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._interactions = interactions
        self._contacts = contacts
        self._reminders = reminders
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def list_interactions(
        self,
        tenant_id: str,
        contact_id: Optional[str] = None,
        type: Optional[InteractionType] = None,
        page: int = 1,
        limit: int = 50,
    ) -> dict[str, Any]:
        conditions = [eq("user_id", tenant_id)]
        if contact_id:
            conditions.append(eq("contact_id", contact_id))
        if type:
            conditions.append(eq("type", type.value))
        result = await self._interactions.find(
            conditions, sort=Sort("interaction_date"), page=PageRequest(page, limit)
        )
        return {
            "interactions": result.rows,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": result.total_count,
                "total_pages": -(-result.total_count // limit),
            },
        }

    async def recent(self, tenant_id: str, limit: int = 10) -> list[dict[str, Any]]:
        page = await self._interactions.find(
            [eq("user_id", tenant_id)], sort=Sort("interaction_date"), page=PageRequest(1, limit)
        )
        return page.rows

    async def stats(self, tenant_id: str, period_days: int = 30) -> dict[str, Any]:
        since = (self._clock() - timedelta(days=period_days)).isoformat()
        owned = eq("user_id", tenant_id)
        total = await self._interactions.find([owned], page=PageRequest(1, 1), columns="id")
        recent = await self._interactions.find(
            [owned, gte("interaction_date", since)], columns="type,interaction_date"
        )
        by_type = Counter(row["type"] for row in recent.rows)
        by_day = Counter(str(row["interaction_date"])[:10] for row in recent.rows)
        return {
            "total": total.total_count,
            "period": period_days,
            "recent_count": len(recent.rows),
            "by_type": dict(by_type),
            "by_day": dict(sorted(by_day.items())),
            "average_per_day": len(recent.rows) / period_days,
        }

    async def get(self, tenant_id: str, interaction_id: str) -> dict[str, Any]:
        row = await self._interactions.get(interaction_id, [eq("user_id", tenant_id)])
        if row is None:
            raise InteractionNotFoundError(interaction_id)
        return row

    async def create(self, tenant_id: str, request: CreateInteractionRequest) -> dict[str, Any]:
        contact = await self._contacts.get(request.contact_id, [eq("user_id", tenant_id)])
        if contact is None:
            raise ContactNotFoundError(request.contact_id)

        happened_at = as_utc(request.interaction_date) if request.interaction_date else self._clock()
        follow_up = as_utc(request.follow_up_date) if request.follow_up_date else None

        rows = await self._interactions.insert({
            "user_id": tenant_id,
            "contact_id": request.contact_id,
            "type": request.type.value,
            "notes": (request.notes or "").strip() or None,
            "outcome": (request.outcome or "").strip() or None,
            "duration_minutes": request.duration_minutes,
            "interaction_date": happened_at.isoformat(),
            "follow_up_date": follow_up.isoformat() if follow_up else None,
            "metadata": request.metadata,
        })
        interaction = rows[0]

        await self._contacts.update(
            request.contact_id, {"last_interaction": interaction["interaction_date"]}
        )

        if follow_up is not None:
            await self._reminders.insert({
                "user_id": tenant_id,
                "contact_id": request.contact_id,
                "title": f"Follow up with {contact.get('name') or 'contact'}",
                "description": f"Follow up after {request.type.value}: {request.notes or 'No notes'}",
                "due_date": follow_up.isoformat(),
                "type": ReminderType.FOLLOW_UP.value,
                "priority": ReminderPriority.MEDIUM.value,
                "status": ReminderStatus.PENDING.value,
                "notification_minutes": 30,
                "snoozed_count": 0,
            })

        return interaction

    async def update(
        self, tenant_id: str, interaction_id: str, request: UpdateInteractionRequest
    ) -> dict[str, Any]:
        patch = request.to_patch()
        if not patch:
            return await self.get(tenant_id, interaction_id)
        row = await self._interactions.update(interaction_id, patch, [eq("user_id", tenant_id)])
        if row is None:
            raise InteractionNotFoundError(interaction_id)
        return row

    async def delete(self, tenant_id: str, interaction_id: str) -> None:
        if not await self._interactions.delete(interaction_id, [eq("user_id", tenant_id)]):
            raise InteractionNotFoundError(interaction_id)
