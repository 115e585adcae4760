"""
Assistant exceptions.
"""

from shared.exceptions import ExternalServiceError, NotFoundError


class AssistantUnavailableError(ExternalServiceError):
    """No LLM provider is configured."""

    default_code = "AI_UNAVAILABLE"

    def __init__(self):
        super().__init__("AI assistant is not configured", service="llm")


class UnparseableResponseError(ExternalServiceError):
    """The model answered, but not with the JSON the prompt asked for."""

    default_code = "AI_PARSE_ERROR"

    def __init__(self, what: str):
        super().__init__(f"Could not parse AI response for {what}", service="llm")


class ConversationNotFoundError(NotFoundError):
    def __init__(self, conversation_id: str):
        super().__init__(
            "Conversation not found",
            code="CONVERSATION_NOT_FOUND",
            details={"conversation_id": conversation_id},
        )
