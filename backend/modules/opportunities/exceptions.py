from shared.exceptions import NotFoundError


class OpportunityNotFoundError(NotFoundError):
    def __init__(self, opportunity_id: str):
        super().__init__("Opportunity not found", details={"opportunity_id": opportunity_id})
