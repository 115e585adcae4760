from shared.exceptions import NotFoundError


class InteractionNotFoundError(NotFoundError):
    def __init__(self, interaction_id: str):
        super().__init__("Interaction not found", details={"interaction_id": interaction_id})
