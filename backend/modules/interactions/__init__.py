"""
Interactions module: calls, meetings, messages and notes logged against contacts.
"""

from .models import CreateInteractionRequest, InteractionType, UpdateInteractionRequest
from .exceptions import InteractionNotFoundError
from .service import InteractionService

__all__ = [
    "CreateInteractionRequest",
    "InteractionType",
    "UpdateInteractionRequest",
    "InteractionNotFoundError",
    "InteractionService",
]
