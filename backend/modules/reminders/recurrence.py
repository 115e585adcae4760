"""
Recurrence scheduling for repeating reminders.

``next_occurrence`` is pure calendar arithmetic. Month-based rules use
``relativedelta``, which clamps an overflowing day to the end of the
target month: Jan 31 + 1 month is Feb 28 (Feb 29 in a leap year). The
clamp carries forward when the rule is applied again to the successor,
so Jan 31 -> Feb 28 -> Mar 28. Twelve monthly steps therefore equal
``d + 1 year`` for any start day up to the 28th, and may land earlier
for the 29th-31st.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from dateutil.relativedelta import relativedelta


class RecurrenceRule(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: Any) -> Optional["RecurrenceRule"]:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower()) if value else None
        except ValueError:
            return None


STEPS: dict[RecurrenceRule, relativedelta] = {
    RecurrenceRule.DAILY: relativedelta(days=1),
    RecurrenceRule.WEEKLY: relativedelta(weeks=1),
    RecurrenceRule.BIWEEKLY: relativedelta(weeks=2),
    RecurrenceRule.MONTHLY: relativedelta(months=1),
    RecurrenceRule.QUARTERLY: relativedelta(months=3),
    RecurrenceRule.YEARLY: relativedelta(years=1),
}

# Columns a successor must not inherit from the reminder it replaces
NON_INHERITED_FIELDS = frozenset({
    "id",
    "status",
    "due_date",
    "created_at",
    "updated_at",
    "completed_at",
    "completion_notes",
    "snoozed_count",
    "last_snoozed_at",
    "notification_sent",
})


def next_occurrence(current_due: datetime, rule: RecurrenceRule | str | None) -> Optional[datetime]:
    """Next due date after ``current_due``, or None for unknown/absent rules."""
    parsed = RecurrenceRule.parse(rule)
    if parsed is None:
        return None
    return current_due + STEPS[parsed]


def build_successor(reminder: dict[str, Any], next_due: datetime) -> dict[str, Any]:
    """
    Row for the pending reminder that follows a completed recurring one.

    Everything is copied except identity, status, the due date and the
    completion/snooze bookkeeping.
    """
    successor = {k: v for k, v in reminder.items() if k not in NON_INHERITED_FIELDS}
    successor["due_date"] = next_due.isoformat()
    successor["status"] = "pending"
    successor["snoozed_count"] = 0
    return successor
