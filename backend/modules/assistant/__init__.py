"""
Assistant module.

LLM helpers (chat, spreadsheet column analysis, business card reading,
follow-up suggestions, industry categorization) over a provider chain
with fallback, plus stored conversations.

Public API:
- IAssistantService / AssistantService: LLM helpers
- ConversationService: Persisted chat over the tenant's data
- extract_json, message_text: Reply parsing helpers
- Models: ColumnAnalysis, Categorization, FollowUpSuggestion, ...
"""

from .models import (
    AUTO_APPLY_CONFIDENCE,
    INDUSTRY_CATEGORIES,
    Categorization,
    ChatContext,
    ChatRequest,
    ChatRole,
    ChatTurn,
    ColumnAnalysis,
    Completion,
    ContactReference,
    FollowUpSuggestion,
    NamecardData,
)
from .exceptions import (
    AssistantUnavailableError,
    ConversationNotFoundError,
    UnparseableResponseError,
)
from .interfaces import IAssistantService
from .service import AssistantService, extract_json, message_text
from .conversations import ConversationService

__all__ = [
    # Models
    "AUTO_APPLY_CONFIDENCE",
    "INDUSTRY_CATEGORIES",
    "Categorization",
    "ChatContext",
    "ChatRequest",
    "ChatRole",
    "ChatTurn",
    "ColumnAnalysis",
    "Completion",
    "ContactReference",
    "FollowUpSuggestion",
    "NamecardData",
    # Exceptions
    "AssistantUnavailableError",
    "ConversationNotFoundError",
    "UnparseableResponseError",
    # Services
    "IAssistantService",
    "AssistantService",
    "ConversationService",
    "extract_json",
    "message_text",
]
