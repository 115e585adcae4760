"""
Opportunities module: the sales pipeline.
"""

from .models import (
    CreateOpportunityRequest,
    MoveStageRequest,
    OpportunityStage,
    OpportunityStatus,
    UpdateOpportunityRequest,
)
from .exceptions import OpportunityNotFoundError
from .service import OpportunityService

__all__ = [
    "CreateOpportunityRequest",
    "MoveStageRequest",
    "OpportunityStage",
    "OpportunityStatus",
    "UpdateOpportunityRequest",
    "OpportunityNotFoundError",
    "OpportunityService",
]
