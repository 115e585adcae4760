"""
Reminder data models.
"""

from datetime import datetime, time, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .recurrence import RecurrenceRule


class ReminderType(str, Enum):
    FOLLOW_UP = "follow_up"
    CALL = "call"
    MEETING = "meeting"
    EMAIL = "email"
    TASK = "task"
    OTHER = "other"


class ReminderPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ReminderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SNOOZED = "snoozed"
    CANCELLED = "cancelled"


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CreateReminderRequest(BaseModel):
    """Request body for creating a reminder."""

    title: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = None
    contact_id: Optional[str] = None
    due_date: datetime = Field(..., description="When the reminder is due")
    due_time: Optional[time] = Field(
        default=None, description="Overrides the time of day of due_date"
    )
    type: ReminderType = ReminderType.TASK
    priority: ReminderPriority = ReminderPriority.MEDIUM
    recurrence: Optional[RecurrenceRule] = None
    notification_minutes: int = Field(default=30, ge=0)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Title is required (minimum 2 characters)")
        return v

    def resolved_due_date(self) -> datetime:
        due = self.due_date
        if self.due_time is not None:
            due = due.replace(
                hour=self.due_time.hour,
                minute=self.due_time.minute,
                second=0,
                microsecond=0,
            )
        return as_utc(due)


class UpdateReminderRequest(BaseModel):
    """Partial update. Unset fields are left alone."""

    title: Optional[str] = Field(default=None, min_length=2, max_length=200)
    description: Optional[str] = None
    contact_id: Optional[str] = None
    due_date: Optional[datetime] = None
    type: Optional[ReminderType] = None
    priority: Optional[ReminderPriority] = None
    status: Optional[ReminderStatus] = None
    recurrence: Optional[RecurrenceRule] = None
    notification_minutes: Optional[int] = Field(default=None, ge=0)

    def to_patch(self) -> dict[str, Any]:
        patch = self.model_dump(exclude_unset=True, mode="json")
        if self.due_date is not None:
            patch["due_date"] = as_utc(self.due_date).isoformat()
        return patch


class CompleteReminderRequest(BaseModel):
    notes: Optional[str] = None


class SnoozeReminderRequest(BaseModel):
    """Push a reminder back by ``minutes`` or to an explicit ``until``."""

    minutes: int = Field(default=30, ge=1, le=60 * 24 * 30)
    until: Optional[datetime] = None


class ReminderFilters(BaseModel):
    status: Optional[ReminderStatus] = None
    type: Optional[ReminderType] = None
    priority: Optional[ReminderPriority] = None
    contact_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    overdue: bool = False
