"""
Assistant service.

Every call walks a provider chain (Anthropic, then OpenAI for text; the
OpenAI vision model first for images) through the fallback combinator.
Structured answers are pulled out of the reply text as the first JSON
object it contains.
"""

import base64
import json
import logging
import re
from functools import partial
from typing import Any, Optional, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import ValidationError as PydanticValidationError

from shared.fallback import Strategy, run_with_fallback

from .exceptions import AssistantUnavailableError, UnparseableResponseError
from .interfaces import IAssistantService
from .models import (
    Categorization,
    ChatContext,
    ChatRole,
    ChatTurn,
    ColumnAnalysis,
    Completion,
    FollowUpSuggestion,
    NamecardData,
)
from .prompts import (
    CRM_SYSTEM_PROMPT,
    NAMECARD_PROMPT,
    categorize_prompt,
    followup_prompt,
    spreadsheet_prompt,
    user_message_with_context,
)

logger = logging.getLogger(__name__)

ModelChain = Sequence[tuple[str, BaseChatModel]]

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def message_text(message: BaseMessage) -> str:
    """Plain text of a reply, whether the content is a string or content blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def extract_json(text: str, what: str = "request") -> dict[str, Any]:
    """
    Parse the first ``{...}`` block in ``text``.

    Raises:
        UnparseableResponseError: If there is no JSON object in the text
    """
    match = _JSON_OBJECT.search(text)
    if match is None:
        raise UnparseableResponseError(what)
    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise UnparseableResponseError(what) from e
    if not isinstance(value, dict):
        raise UnparseableResponseError(what)
    return value


class AssistantService(IAssistantService):
    """LLM helpers over an ordered chain of LangChain chat models."""

    def __init__(self, models: ModelChain, vision_models: Optional[ModelChain] = None):
        self._models = list(models)
        self._vision_models = list(vision_models) if vision_models is not None else self._models

    @property
    def available(self) -> bool:
        return bool(self._models)

    @staticmethod
    async def _call(name: str, model: BaseChatModel, messages: Sequence[BaseMessage]) -> Completion:
        reply = await model.ainvoke(list(messages))
        usage = getattr(reply, "usage_metadata", None) or {}
        return Completion(
            text=message_text(reply),
            model=name,
            usage={
                "input_tokens": usage.get("input_tokens", 0),
                "output_tokens": usage.get("output_tokens", 0),
            },
        )

    async def _run(self, chain: ModelChain, messages: Sequence[BaseMessage]) -> Completion:
        if not chain:
            raise AssistantUnavailableError()
        strategies = [Strategy(name, partial(self._call, name, model, messages)) for name, model in chain]
        return await run_with_fallback(strategies, service="llm")

    async def complete(self, messages: Sequence[BaseMessage]) -> str:
        return (await self._run(self._models, messages)).text

    async def _structured(self, prompt: str, what: str, chain: Optional[ModelChain] = None) -> dict[str, Any]:
        completion = await self._run(self._models if chain is None else chain, [HumanMessage(content=prompt)])
        return extract_json(completion.text, what)

    async def analyze_spreadsheet(
        self,
        headers: Sequence[str],
        sample_rows: Sequence[dict[str, Any]],
    ) -> ColumnAnalysis:
        data = await self._structured(spreadsheet_prompt(headers, sample_rows), "spreadsheet analysis")
        try:
            analysis = ColumnAnalysis.model_validate(data)
        except PydanticValidationError as e:
            raise UnparseableResponseError("spreadsheet analysis") from e

        # Drop mappings to columns that do not exist in the sheet
        known = set(headers)
        analysis.column_mappings = {
            field: column if column in known else None
            for field, column in analysis.column_mappings.items()
        }
        return analysis

    async def extract_namecard(self, image: bytes, mime_type: str) -> dict[str, Any]:
        encoded = base64.b64encode(image).decode("ascii")
        message = HumanMessage(
            content=[
                {"type": "text", "text": NAMECARD_PROMPT},
                {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}},
            ]
        )
        completion = await self._run(self._vision_models, [message])
        try:
            card = NamecardData.model_validate(extract_json(completion.text, "business card"))
        except PydanticValidationError as e:
            raise UnparseableResponseError("business card") from e
        return card.model_dump()

    async def chat(
        self,
        message: str,
        history: Sequence[ChatTurn] = (),
        context: ChatContext | None = None,
    ) -> Completion:
        messages: list[BaseMessage] = [SystemMessage(content=CRM_SYSTEM_PROMPT)]
        for turn in history:
            if turn.role == ChatRole.USER:
                messages.append(HumanMessage(content=turn.content))
            else:
                messages.append(AIMessage(content=turn.content))
        messages.append(HumanMessage(content=user_message_with_context(message, context or ChatContext())))
        return await self._run(self._models, messages)

    async def suggest_followups(
        self,
        contact: dict[str, Any],
        interactions: Sequence[dict[str, Any]] = (),
    ) -> list[FollowUpSuggestion]:
        data = await self._structured(followup_prompt(contact, interactions), "follow-up suggestions")
        raw = data.get("suggestions")
        if not isinstance(raw, list):
            raise UnparseableResponseError("follow-up suggestions")

        suggestions = []
        for item in raw:
            try:
                suggestions.append(FollowUpSuggestion.model_validate(item))
            except PydanticValidationError:
                logger.debug(f"Skipping malformed follow-up suggestion: {item!r}")
        return suggestions

    async def categorize(self, contact: dict[str, Any]) -> Categorization:
        data = await self._structured(categorize_prompt(contact), "categorization")
        try:
            return Categorization.model_validate(data)
        except PydanticValidationError as e:
            raise UnparseableResponseError("categorization") from e
