"""Tests for the reminder service."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from modules.contacts.exceptions import ContactNotFoundError
from modules.reminders.exceptions import ReminderNotFoundError
from modules.reminders.models import (
    CreateReminderRequest,
    ReminderFilters,
    SnoozeReminderRequest,
    UpdateReminderRequest,
)
from modules.reminders.service import ReminderService
from shared.repository import InMemoryTableRepository

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def reminders():
    return InMemoryTableRepository("reminders")


@pytest.fixture
def contacts():
    return InMemoryTableRepository(
        "contacts",
        [
            {"id": "c1", "user_id": "t1", "name": "Aisha"},
            {"id": "c2", "user_id": "t2", "name": "Other tenant"},
        ],
    )


@pytest.fixture
def service(reminders, contacts):
    return ReminderService(reminders, contacts, clock=lambda: NOW)


async def add(service: ReminderService, tenant_id: str = "t1", **fields) -> dict:
    data = {"title": "Follow up", "due_date": NOW + timedelta(hours=2), **fields}
    return await service.create(tenant_id, CreateReminderRequest(**data))


class TestCreate:
    @pytest.mark.asyncio
    async def test_defaults(self, service):
        row = await add(service)
        assert row["status"] == "pending"
        assert row["type"] == "task"
        assert row["priority"] == "medium"
        assert row["snoozed_count"] == 0
        assert row["recurrence"] is None

    @pytest.mark.asyncio
    async def test_due_time_overrides_time_of_day(self, service):
        row = await add(service, due_date=datetime(2024, 6, 12), due_time="15:45")
        assert row["due_date"] == "2024-06-12T15:45:00+00:00"

    @pytest.mark.asyncio
    async def test_contact_must_belong_to_tenant(self, service):
        await add(service, contact_id="c1")
        with pytest.raises(ContactNotFoundError):
            await add(service, contact_id="c2")

    def test_title_is_required(self):
        with pytest.raises(ValueError):
            CreateReminderRequest(title="  a ", due_date=NOW)


class TestQueries:
    @pytest.mark.asyncio
    async def test_today_upcoming_overdue(self, service):
        late = await add(service, title="Late", due_date=NOW - timedelta(hours=3))
        soon = await add(service, title="Soon", due_date=NOW + timedelta(hours=3))
        later = await add(service, title="Later", due_date=NOW + timedelta(days=3))
        await add(service, title="Far", due_date=NOW + timedelta(days=30))

        today = await service.today("t1")
        assert {r["id"] for r in today["reminders"]} == {late["id"], soon["id"]}
        assert today["date"] == "2024-06-10"

        upcoming = await service.upcoming("t1", days=7)
        assert [r["id"] for r in upcoming["reminders"]] == [soon["id"], later["id"]]
        assert set(upcoming["grouped"]) == {"2024-06-10", "2024-06-13"}

        overdue = await service.overdue("t1")
        assert [r["id"] for r in overdue["reminders"]] == [late["id"]]

    @pytest.mark.asyncio
    async def test_list_is_tenant_scoped(self, service):
        await add(service)
        await add(service, tenant_id="t2")
        result = await service.list_reminders("t1", ReminderFilters())
        assert result["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_stats(self, service):
        first = await add(service, due_date=NOW - timedelta(days=1))
        await add(service)
        await service.complete("t1", first["id"])

        stats = await service.stats("t1")

        assert stats["total"] == 2
        assert stats["completed"] == 1
        assert stats["pending"] == 1
        assert stats["overdue"] == 0
        assert stats["completion_rate"] == 50


class TestComplete:
    @pytest.mark.asyncio
    async def test_one_off_has_no_successor(self, service, reminders):
        row = await add(service)
        result = await service.complete("t1", row["id"], notes="Spoke on the phone")

        assert result["reminder"]["status"] == "completed"
        assert result["reminder"]["completion_notes"] == "Spoke on the phone"
        assert result["next_reminder"] is None
        assert len(reminders.rows) == 1

    @pytest.mark.asyncio
    async def test_recurring_spawns_exactly_one_successor(self, service, reminders):
        row = await add(service, recurrence="weekly", priority="high")
        result = await service.complete("t1", row["id"])

        successor = result["next_reminder"]
        assert successor["status"] == "pending"
        assert successor["priority"] == "high"
        assert successor["id"] != row["id"]
        assert datetime.fromisoformat(successor["due_date"]) == (
            datetime.fromisoformat(row["due_date"]) + timedelta(days=7)
        )
        # The original is kept as history
        assert len(reminders.rows) == 2
        assert (await reminders.get(row["id"]))["status"] == "completed"

    @pytest.mark.asyncio
    async def test_repeated_completion_spawns_no_second_successor(self, service, reminders):
        row = await add(service, recurrence="weekly")
        first = await service.complete("t1", row["id"])
        second = await service.complete("t1", row["id"], notes="Pressed twice")

        assert first["next_reminder"] is not None
        assert second["next_reminder"] is None
        assert second["reminder"]["status"] == "completed"
        assert "completion_notes" not in second["reminder"]
        pending = [r for r in reminders.rows if r["status"] == "pending"]
        assert len(pending) == 1

    @pytest.mark.asyncio
    async def test_successor_failure_keeps_completion(self, service, reminders):
        row = await add(service, recurrence="daily")
        reminders.insert = AsyncMock(side_effect=RuntimeError("insert failed"))

        result = await service.complete("t1", row["id"])

        assert result["reminder"]["status"] == "completed"
        assert result["next_reminder"] is None

    @pytest.mark.asyncio
    async def test_other_tenant(self, service):
        row = await add(service)
        with pytest.raises(ReminderNotFoundError):
            await service.complete("t2", row["id"])


class TestSnooze:
    @pytest.mark.asyncio
    async def test_thirty_minutes(self, service):
        row = await add(service)

        result = await service.snooze("t1", row["id"], SnoozeReminderRequest(minutes=30))

        snoozed = result["reminder"]
        assert snoozed["due_date"] == (NOW + timedelta(minutes=30)).isoformat()
        assert snoozed["snoozed_count"] == 1
        assert snoozed["status"] == "pending"
        assert snoozed["last_snoozed_at"] == NOW.isoformat()

    @pytest.mark.asyncio
    async def test_until(self, service):
        row = await add(service)
        until = NOW + timedelta(days=2)
        result = await service.snooze("t1", row["id"], SnoozeReminderRequest(until=until))
        assert result["new_due_date"] == until.isoformat()

    @pytest.mark.asyncio
    async def test_counts_every_snooze(self, service):
        row = await add(service)
        await service.snooze("t1", row["id"], SnoozeReminderRequest())
        result = await service.snooze("t1", row["id"], SnoozeReminderRequest())
        assert result["reminder"]["snoozed_count"] == 2

    @pytest.mark.asyncio
    async def test_unknown_reminder(self, service):
        with pytest.raises(ReminderNotFoundError):
            await service.snooze("t1", "missing", SnoozeReminderRequest())


class TestUpdateDelete:
    @pytest.mark.asyncio
    async def test_update(self, service):
        row = await add(service)
        updated = await service.update("t1", row["id"], UpdateReminderRequest(priority="urgent"))
        assert updated["priority"] == "urgent"

    @pytest.mark.asyncio
    async def test_delete(self, service):
        row = await add(service)
        await service.delete("t1", row["id"])
        with pytest.raises(ReminderNotFoundError):
            await service.get("t1", row["id"])
