"""
Reminder module exceptions.
"""

from shared.exceptions import NotFoundError


class ReminderNotFoundError(NotFoundError):
    def __init__(self, reminder_id: str):
        super().__init__(
            "Reminder not found",
            details={"reminder_id": reminder_id},
        )
