"""
Reminder service.

Tenant-scoped CRUD over the ``reminders`` table plus the two stateful
transitions: completion (which may spawn a recurring successor) and snooze.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from shared.repository import (
    ITableRepository,
    PageRequest,
    Sort,
    eq,
    gte,
    lt,
    lte,
    neq,
)

from modules.contacts.exceptions import ContactNotFoundError

from .exceptions import ReminderNotFoundError
from .models import (
    CreateReminderRequest,
    ReminderFilters,
    ReminderStatus,
    SnoozeReminderRequest,
    UpdateReminderRequest,
    as_utc,
)
from .recurrence import build_successor, next_occurrence

logger = logging.getLogger(__name__)


def parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


class ReminderService:
    """Reminders for one tenant at a time; every call takes the tenant id."""

    def __init__(
        self,
        reminders: ITableRepository,
        contacts: ITableRepository,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._reminders = reminders
        self._contacts = contacts
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _require(self, tenant_id: str, reminder_id: str) -> dict[str, Any]:
        row = await self._reminders.get(reminder_id, [eq("user_id", tenant_id)])
        if row is None:
            raise ReminderNotFoundError(reminder_id)
        return row

    async def _pending_between(
        self,
        tenant_id: str,
        start: Optional[datetime],
        end: Optional[datetime],
        end_inclusive: bool = False,
    ) -> list[dict[str, Any]]:
        conditions = [eq("user_id", tenant_id), eq("status", ReminderStatus.PENDING.value)]
        if start is not None:
            conditions.append(gte("due_date", start.isoformat()))
        if end is not None:
            bound = lte if end_inclusive else lt
            conditions.append(bound("due_date", end.isoformat()))
        page = await self._reminders.find(conditions, sort=Sort("due_date", descending=False))
        return page.rows

    async def list_reminders(
        self,
        tenant_id: str,
        filters: ReminderFilters,
        page: int = 1,
        limit: int = 50,
        sort: str = "due_date",
        ascending: bool = True,
    ) -> dict[str, Any]:
        conditions = [eq("user_id", tenant_id)]
        for name in ("status", "type", "priority"):
            value = getattr(filters, name)
            if value is not None:
                conditions.append(eq(name, value.value))
        if filters.contact_id:
            conditions.append(eq("contact_id", filters.contact_id))
        if filters.start_date:
            conditions.append(gte("due_date", as_utc(filters.start_date).isoformat()))
        if filters.end_date:
            conditions.append(lte("due_date", as_utc(filters.end_date).isoformat()))
        if filters.overdue:
            conditions.append(lt("due_date", self._clock().isoformat()))
            conditions.append(eq("status", ReminderStatus.PENDING.value))

        result = await self._reminders.find(
            conditions,
            sort=Sort(sort, descending=not ascending),
            page=PageRequest(page, limit),
        )
        return {
            "reminders": result.rows,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": result.total_count,
                "total_pages": -(-result.total_count // limit),
            },
        }

    async def get(self, tenant_id: str, reminder_id: str) -> dict[str, Any]:
        return await self._require(tenant_id, reminder_id)

    async def create(self, tenant_id: str, request: CreateReminderRequest) -> dict[str, Any]:
        if request.contact_id:
            contact = await self._contacts.get(request.contact_id, [eq("user_id", tenant_id)])
            if contact is None:
                raise ContactNotFoundError(request.contact_id)

        rows = await self._reminders.insert({
            "user_id": tenant_id,
            "title": request.title,
            "description": (request.description or "").strip() or None,
            "contact_id": request.contact_id,
            "due_date": request.resolved_due_date().isoformat(),
            "type": request.type.value,
            "priority": request.priority.value,
            "status": ReminderStatus.PENDING.value,
            "recurrence": request.recurrence.value if request.recurrence else None,
            "notification_minutes": request.notification_minutes,
            "snoozed_count": 0,
        })
        return rows[0]

    async def update(
        self, tenant_id: str, reminder_id: str, request: UpdateReminderRequest
    ) -> dict[str, Any]:
        patch = request.to_patch()
        if not patch:
            return await self._require(tenant_id, reminder_id)
        row = await self._reminders.update(reminder_id, patch, [eq("user_id", tenant_id)])
        if row is None:
            raise ReminderNotFoundError(reminder_id)
        return row

    async def delete(self, tenant_id: str, reminder_id: str) -> None:
        if not await self._reminders.delete(reminder_id, [eq("user_id", tenant_id)]):
            raise ReminderNotFoundError(reminder_id)

    async def today(self, tenant_id: str) -> dict[str, Any]:
        now = self._clock()
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        rows = await self._pending_between(tenant_id, start, start + timedelta(days=1))
        return {"reminders": rows, "count": len(rows), "date": start.date().isoformat()}

    async def upcoming(self, tenant_id: str, days: int = 7) -> dict[str, Any]:
        now = self._clock()
        rows = await self._pending_between(
            tenant_id, now, now + timedelta(days=days), end_inclusive=True
        )
        grouped: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for row in rows:
            grouped[parse_timestamp(row["due_date"]).date().isoformat()].append(row)
        return {"reminders": rows, "grouped": dict(grouped), "count": len(rows), "days": days}

    async def overdue(self, tenant_id: str) -> dict[str, Any]:
        rows = await self._pending_between(tenant_id, None, self._clock())
        return {"reminders": rows, "count": len(rows)}

    async def stats(self, tenant_id: str) -> dict[str, Any]:
        page = await self._reminders.find(
            [eq("user_id", tenant_id)], columns="status,type,priority,due_date"
        )
        now = self._clock()
        by_status: dict[str, int] = defaultdict(int)
        by_type: dict[str, int] = defaultdict(int)
        by_priority: dict[str, int] = defaultdict(int)
        overdue = 0
        for row in page.rows:
            by_status[row["status"]] += 1
            by_type[row["type"]] += 1
            by_priority[row["priority"]] += 1
            if row["status"] == ReminderStatus.PENDING.value and parse_timestamp(row["due_date"]) < now:
                overdue += 1

        total = len(page.rows)
        completed = by_status.get(ReminderStatus.COMPLETED.value, 0)
        return {
            "total": total,
            "pending": by_status.get(ReminderStatus.PENDING.value, 0),
            "completed": completed,
            "overdue": overdue,
            "by_status": dict(by_status),
            "by_type": dict(by_type),
            "by_priority": dict(by_priority),
            "completion_rate": round(completed / total * 100) if total else 0,
        }

    async def complete(
        self, tenant_id: str, reminder_id: str, notes: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Mark a reminder completed.

        A recurring reminder gets exactly one pending successor. Creating the
        successor is best effort: if it fails the completion still stands.
        Completing an already completed reminder returns it unchanged with
        no successor.
        """
        now = self._clock()
        patch: dict[str, Any] = {
            "status": ReminderStatus.COMPLETED.value,
            "completed_at": now.isoformat(),
        }
        if notes:
            patch["completion_notes"] = notes

        # Only the call that moves the status to completed spawns a successor
        completed = await self._reminders.update(
            reminder_id,
            patch,
            [eq("user_id", tenant_id), neq("status", ReminderStatus.COMPLETED.value)],
        )
        if completed is None:
            existing = await self._require(tenant_id, reminder_id)
            return {"reminder": existing, "next_reminder": None}

        next_reminder = None
        next_due = None
        if completed.get("recurrence"):
            next_due = next_occurrence(parse_timestamp(completed["due_date"]), completed["recurrence"])
        if next_due is not None:
            try:
                rows = await self._reminders.insert(build_successor(completed, next_due))
                next_reminder = rows[0]
            except Exception:
                logger.exception(f"Failed to create next occurrence of reminder {reminder_id}")

        return {"reminder": completed, "next_reminder": next_reminder}

    async def snooze(
        self, tenant_id: str, reminder_id: str, request: SnoozeReminderRequest
    ) -> dict[str, Any]:
        """Move the due date forward. Status is left as it is."""
        await self._require(tenant_id, reminder_id)

        now = self._clock()
        new_due = as_utc(request.until) if request.until else now + timedelta(minutes=request.minutes)

        await self._reminders.atomic_increment(reminder_id, "snoozed_count", 1)
        row = await self._reminders.update(
            reminder_id,
            {"due_date": new_due.isoformat(), "last_snoozed_at": now.isoformat()},
            [eq("user_id", tenant_id)],
        )
        if row is None:
            raise ReminderNotFoundError(reminder_id)
        return {"reminder": row, "new_due_date": new_due.isoformat()}
