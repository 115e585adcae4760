"""Tests for the assistant service."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from modules.assistant.exceptions import AssistantUnavailableError, UnparseableResponseError
from modules.assistant.models import ChatContext, ChatRole, ChatTurn
from modules.assistant.service import AssistantService, extract_json, message_text
from shared.exceptions import AllStrategiesFailedError


def fake(*responses: str) -> FakeListChatModel:
    return FakeListChatModel(responses=list(responses))


def broken(message: str = "rate limited") -> MagicMock:
    model = MagicMock()
    model.ainvoke = AsyncMock(side_effect=RuntimeError(message))
    return model


class TestExtractJson:
    def test_finds_object_in_prose(self):
        text = 'Sure! Here you go:\n```json\n{"category": "Education", "confidence": 0.8}\n```'
        assert extract_json(text) == {"category": "Education", "confidence": 0.8}

    def test_no_object(self):
        with pytest.raises(UnparseableResponseError) as exc_info:
            extract_json("I cannot help with that", "categorization")
        assert exc_info.value.code == "AI_PARSE_ERROR"

    def test_invalid_json(self):
        with pytest.raises(UnparseableResponseError):
            extract_json("{not json}")

    def test_message_text_from_blocks(self):
        reply = AIMessage(content=[{"type": "text", "text": "Hello "}, {"type": "text", "text": "there"}])
        assert message_text(reply) == "Hello there"


class TestFallback:
    @pytest.mark.asyncio
    async def test_first_provider_answers(self):
        service = AssistantService([("anthropic", fake("Hi from Claude")), ("openai", fake("Hi from GPT"))])
        completion = await service.chat("Hello")
        assert completion.text == "Hi from Claude"
        assert completion.model == "anthropic"

    @pytest.mark.asyncio
    async def test_falls_back_to_next_provider(self):
        service = AssistantService([("anthropic", broken()), ("openai", fake("Hi from GPT"))])
        completion = await service.chat("Hello")
        assert completion.model == "openai"

    @pytest.mark.asyncio
    async def test_all_providers_fail(self):
        service = AssistantService([("anthropic", broken()), ("openai", broken("quota"))])
        with pytest.raises(AllStrategiesFailedError) as exc_info:
            await service.chat("Hello")
        assert exc_info.value.status_code == 502
        assert exc_info.value.details["attempted"] == ["anthropic", "openai"]

    @pytest.mark.asyncio
    async def test_no_providers(self):
        service = AssistantService([])
        assert service.available is False
        with pytest.raises(AssistantUnavailableError) as exc_info:
            await service.chat("Hello")
        assert exc_info.value.code == "AI_UNAVAILABLE"


class TestChat:
    @pytest.mark.asyncio
    async def test_history_and_context_are_sent(self):
        model = MagicMock()
        model.ainvoke = AsyncMock(return_value=AIMessage(content="You have 3 contacts"))
        service = AssistantService([("anthropic", model)])

        await service.chat(
            "How many contacts?",
            history=[
                ChatTurn(role=ChatRole.USER, content="Hi"),
                ChatTurn(role=ChatRole.ASSISTANT, content="Hello!"),
            ],
            context=ChatContext(stats={"total_contacts": 3}),
        )

        messages = model.ainvoke.call_args.args[0]
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)
        assert isinstance(messages[2], AIMessage)
        assert "How many contacts?" in messages[-1].content
        assert "[Current Statistics]" in messages[-1].content


class TestStructured:
    @pytest.mark.asyncio
    async def test_analyze_spreadsheet_drops_unknown_columns(self):
        reply = json.dumps(
            {
                "columnMappings": {"name": "Nama", "email": "E-mel", "phone": "null"},
                "dataQualityIssues": ["Missing emails"],
                "confidence": 0.9,
            }
        )
        service = AssistantService([("anthropic", fake(reply))])

        analysis = await service.analyze_spreadsheet(["Nama", "Telefon"], [{"Nama": "Ali"}])

        assert analysis.column_mappings == {"name": "Nama", "email": None, "phone": None}
        assert analysis.data_quality_issues == ["Missing emails"]

    @pytest.mark.asyncio
    async def test_categorize_clamps_confidence(self):
        service = AssistantService(
            [("anthropic", fake('{"category": "Education", "confidence": 1.7, "reasoning": "School"}'))]
        )
        result = await service.categorize({"name": "SMK Damansara"})
        assert result.confidence == 1.0
        assert result.applicable is True

    @pytest.mark.asyncio
    async def test_low_confidence_is_not_applicable(self):
        service = AssistantService([("anthropic", fake('{"category": "Other", "confidence": 0.4}'))])
        assert (await service.categorize({"name": "?"})).applicable is False

    @pytest.mark.asyncio
    async def test_followups_skip_malformed_items(self):
        reply = json.dumps(
            {
                "suggestions": [
                    {"action": "Send proposal", "type": "email", "suggestedDate": "2024-06-12"},
                    {"type": "call"},
                ]
            }
        )
        service = AssistantService([("anthropic", fake(reply))])

        suggestions = await service.suggest_followups({"name": "Aisha"}, [])

        assert len(suggestions) == 1
        assert suggestions[0].suggested_date == "2024-06-12"

    @pytest.mark.asyncio
    async def test_followups_without_list(self):
        service = AssistantService([("anthropic", fake('{"ideas": []}'))])
        with pytest.raises(UnparseableResponseError):
            await service.suggest_followups({"name": "Aisha"})


class TestNamecard:
    @pytest.mark.asyncio
    async def test_uses_vision_chain(self):
        text_model = broken("text model should not be used")
        vision = MagicMock()
        vision.ainvoke = AsyncMock(
            return_value=AIMessage(
                content='{"name": "Siti", "rawText": "Siti Acme", "additionalPhones": null, "confidence": "0.85"}'
            )
        )
        service = AssistantService([("anthropic", text_model)], vision_models=[("openai-vision", vision)])

        card = await service.extract_namecard(b"\x89PNG", "image/png")

        assert card["name"] == "Siti"
        assert card["raw_text"] == "Siti Acme"
        assert card["additional_phones"] == []
        assert card["confidence"] == 0.85
        text_model.ainvoke.assert_not_awaited()
        image_block = vision.ainvoke.call_args.args[0][0].content[1]
        assert image_block["image_url"]["url"].startswith("data:image/png;base64,")
