"""
Assistant module interface.
"""

from typing import Any, Protocol, Sequence, runtime_checkable

from langchain_core.messages import BaseMessage

from .models import (
    Categorization,
    ChatContext,
    ChatTurn,
    ColumnAnalysis,
    Completion,
    FollowUpSuggestion,
)


@runtime_checkable
class IAssistantService(Protocol):
    """
    Interface for LLM-backed helpers.

    Every operation tries the configured providers in order and raises an
    ExternalServiceError (502) only when all of them fail.
    """

    @property
    def available(self) -> bool:
        """Whether at least one provider is configured."""
        ...

    async def complete(self, messages: Sequence[BaseMessage]) -> str:
        ...

    async def analyze_spreadsheet(
        self,
        headers: Sequence[str],
        sample_rows: Sequence[dict[str, Any]],
    ) -> ColumnAnalysis:
        ...

    async def extract_namecard(self, image: bytes, mime_type: str) -> dict[str, Any]:
        """Read a business card photo into a dict of contact fields."""
        ...

    async def chat(
        self,
        message: str,
        history: Sequence[ChatTurn] = (),
        context: ChatContext | None = None,
    ) -> Completion:
        ...

    async def suggest_followups(
        self,
        contact: dict[str, Any],
        interactions: Sequence[dict[str, Any]] = (),
    ) -> list[FollowUpSuggestion]:
        ...

    async def categorize(self, contact: dict[str, Any]) -> Categorization:
        ...
