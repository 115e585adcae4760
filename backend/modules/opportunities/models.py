"""
Opportunity (sales pipeline) data models.
"""

from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class OpportunityStage(str, Enum):
    LEAD = "lead"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


class OpportunityStatus(str, Enum):
    ACTIVE = "active"
    WON = "won"
    LOST = "lost"
    ON_HOLD = "on_hold"


# Probability applied when a deal moves into an open stage
STAGE_PROBABILITIES: dict[OpportunityStage, int] = {
    OpportunityStage.LEAD: 10,
    OpportunityStage.QUALIFIED: 25,
    OpportunityStage.PROPOSAL: 50,
    OpportunityStage.NEGOTIATION: 75,
}


class CreateOpportunityRequest(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    contact_id: Optional[str] = None
    value: float = Field(default=0, ge=0)
    currency: str = Field(default="MYR", min_length=3, max_length=3)
    stage: OpportunityStage = OpportunityStage.LEAD
    status: OpportunityStatus = OpportunityStatus.ACTIVE
    probability: int = Field(default=0, ge=0, le=100)
    expected_close_date: Optional[date] = None
    description: Optional[str] = None
    products: list[Any] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Title is required (minimum 2 characters)")
        return v


class UpdateOpportunityRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=2, max_length=200)
    contact_id: Optional[str] = None
    value: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    stage: Optional[OpportunityStage] = None
    status: Optional[OpportunityStatus] = None
    probability: Optional[int] = Field(default=None, ge=0, le=100)
    expected_close_date: Optional[date] = None
    description: Optional[str] = None
    products: Optional[list[Any]] = None
    notes: Optional[str] = None

    def to_patch(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, mode="json")


class MoveStageRequest(BaseModel):
    stage: OpportunityStage
