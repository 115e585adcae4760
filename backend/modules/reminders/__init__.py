"""
Reminders module.

Public API:
- ReminderService: Tenant-scoped reminders, completion and snooze
- next_occurrence, build_successor, RecurrenceRule: Recurrence scheduling
- ReminderNotFoundError
"""

from .recurrence import RecurrenceRule, build_successor, next_occurrence
from .models import (
    CreateReminderRequest,
    ReminderPriority,
    ReminderStatus,
    ReminderType,
    SnoozeReminderRequest,
    UpdateReminderRequest,
)
from .exceptions import ReminderNotFoundError
from .service import ReminderService

__all__ = [
    "RecurrenceRule",
    "build_successor",
    "next_occurrence",
    "CreateReminderRequest",
    "ReminderPriority",
    "ReminderStatus",
    "ReminderType",
    "SnoozeReminderRequest",
    "UpdateReminderRequest",
    "ReminderNotFoundError",
    "ReminderService",
]
