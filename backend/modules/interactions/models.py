"""
Interaction data models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from modules.reminders.models import as_utc


class InteractionType(str, Enum):
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    WHATSAPP = "whatsapp"
    SMS = "sms"
    SOCIAL = "social"
    NOTE = "note"
    OTHER = "other"


class CreateInteractionRequest(BaseModel):
    contact_id: str = Field(..., min_length=1)
    type: InteractionType
    notes: Optional[str] = None
    outcome: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    interaction_date: Optional[datetime] = None
    follow_up_date: Optional[datetime] = Field(
        default=None, description="Creates a follow-up reminder on this date"
    )
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpdateInteractionRequest(BaseModel):
    type: Optional[InteractionType] = None
    notes: Optional[str] = None
    outcome: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    interaction_date: Optional[datetime] = None
    follow_up_date: Optional[datetime] = None
    metadata: Optional[dict[str, Any]] = None

    def to_patch(self) -> dict[str, Any]:
        patch = self.model_dump(exclude_unset=True, mode="json")
        for name in ("interaction_date", "follow_up_date"):
            value = getattr(self, name)
            if value is not None:
                patch[name] = as_utc(value).isoformat()
        return patch
