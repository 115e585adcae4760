"""Tests for stored assistant conversations."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from modules.assistant.conversations import ConversationService, conversation_title, search_terms
from modules.assistant.exceptions import ConversationNotFoundError
from modules.assistant.models import Categorization, ChatRequest, Completion, FollowUpSuggestion
from modules.contacts.exceptions import ContactNotFoundError
from shared.repository import InMemoryTableRepository

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


class TickingClock:
    """Advances a second per reading so stored messages keep their order."""

    def __init__(self):
        self.now = NOW

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def assistant():
    mock = MagicMock()
    mock.chat = AsyncMock(
        return_value=Completion(text="Here you go", model="anthropic", usage={"input_tokens": 10})
    )
    return mock


@pytest.fixture
def repos():
    return {
        "conversations": InMemoryTableRepository("chat_conversations"),
        "messages": InMemoryTableRepository("chat_messages"),
        "contacts": InMemoryTableRepository(
            "contacts",
            [
                {"id": "c1", "user_id": "t1", "name": "Aisha Tan", "company": "Acme"},
                {"id": "c2", "user_id": "t1", "name": "Ben Lee", "company": "Globex"},
                {"id": "c3", "user_id": "t2", "name": "Aisha Other", "company": "Acme"},
            ],
        ),
        "interactions": InMemoryTableRepository("interactions"),
        "reminders": InMemoryTableRepository("reminders"),
        "opportunities": InMemoryTableRepository(
            "opportunities",
            [
                {"user_id": "t1", "status": "active", "stage": "lead", "value": 1000},
                {"user_id": "t1", "status": "won", "stage": "closed_won", "value": 9000},
            ],
        ),
    }


@pytest.fixture
def service(assistant, repos):
    return ConversationService(
        assistant,
        repos["conversations"],
        repos["messages"],
        repos["contacts"],
        repos["interactions"],
        repos["reminders"],
        repos["opportunities"],
        clock=TickingClock(),
    )


class TestHelpers:
    def test_search_terms_drop_stop_words(self):
        assert search_terms("Find the contact named Aisha from Acme!") == "aisha acme"
        assert search_terms("find a contact") is None

    def test_title_is_truncated(self):
        assert conversation_title("short") == "short"
        assert conversation_title("x" * 60) == "x" * 50 + "..."


class TestSend:
    @pytest.mark.asyncio
    async def test_new_conversation_stores_both_messages(self, service, repos):
        result = await service.send("t1", ChatRequest(message="Hello there", includeContext=False))

        assert result["response"] == "Here you go"
        assert result["context_used"] == []
        [conversation] = repos["conversations"].rows
        assert conversation["title"] == "Hello there"
        roles = sorted(m["role"] for m in repos["messages"].rows)
        assert roles == ["assistant", "user"]

    @pytest.mark.asyncio
    async def test_continues_conversation_with_history(self, service, assistant):
        first = await service.send("t1", ChatRequest(message="Hello", includeContext=False))
        await service.send(
            "t1",
            ChatRequest(message="And again", conversationId=first["conversation_id"], includeContext=False),
        )

        history = assistant.chat.call_args.args[1]
        assert [turn.content for turn in history] == ["Hello", "Here you go"]

    @pytest.mark.asyncio
    async def test_other_tenants_conversation(self, service):
        first = await service.send("t1", ChatRequest(message="Hello", includeContext=False))
        with pytest.raises(ConversationNotFoundError):
            await service.send(
                "t2", ChatRequest(message="Hi", conversationId=first["conversation_id"])
            )

    @pytest.mark.asyncio
    async def test_provider_failure_stores_nothing(self, service, assistant, repos):
        assistant.chat = AsyncMock(side_effect=RuntimeError("all down"))
        with pytest.raises(RuntimeError):
            await service.send("t1", ChatRequest(message="Hello", includeContext=False))
        assert repos["messages"].rows == []


class TestContext:
    @pytest.mark.asyncio
    async def test_contact_keywords_search_tenant_contacts(self, service):
        context = await service.build_context("t1", "find contact Aisha")
        assert [c["name"] for c in context.contacts] == ["Aisha Tan"]
        assert context.used() == ["contacts"]

    @pytest.mark.asyncio
    async def test_stats_keywords(self, service):
        context = await service.build_context("t1", "give me a summary")
        assert context.stats["total_contacts"] == 2
        assert context.stats["active_opportunities"] == 1
        assert context.stats["pipeline_value"] == 1000

    @pytest.mark.asyncio
    async def test_no_keywords(self, service):
        context = await service.build_context("t1", "tell me a joke")
        assert context.used() == []


class TestConversations:
    @pytest.mark.asyncio
    async def test_list_and_delete(self, service, repos):
        first = await service.send("t1", ChatRequest(message="Hello", includeContext=False))

        listed = await service.list_conversations("t1")
        assert listed["total"] == 1

        await service.delete_conversation("t1", first["conversation_id"])
        assert repos["conversations"].rows == []
        assert repos["messages"].rows == []

    @pytest.mark.asyncio
    async def test_delete_unknown(self, service):
        with pytest.raises(ConversationNotFoundError):
            await service.delete_conversation("t1", "missing")


class TestContactHelpers:
    @pytest.mark.asyncio
    async def test_categorize_applies_confident_result(self, service, assistant, repos):
        assistant.categorize = AsyncMock(return_value=Categorization(category="Technology & IT", confidence=0.9))

        result = await service.categorize("t1", "c1")

        assert result["applied"] is True
        assert (await repos["contacts"].get("c1"))["industry"] == "Technology & IT"

    @pytest.mark.asyncio
    async def test_categorize_leaves_contact_when_unsure(self, service, assistant, repos):
        assistant.categorize = AsyncMock(return_value=Categorization(category="Other", confidence=0.5))

        result = await service.categorize("t1", "c1")

        assert result["applied"] is False
        assert (await repos["contacts"].get("c1")).get("industry") is None

    @pytest.mark.asyncio
    async def test_followups(self, service, assistant):
        assistant.suggest_followups = AsyncMock(return_value=[FollowUpSuggestion(action="Call")])
        result = await service.suggest_followups("t1", "c1")
        assert result["suggestions"][0]["action"] == "Call"

    @pytest.mark.asyncio
    async def test_foreign_contact(self, service):
        with pytest.raises(ContactNotFoundError):
            await service.categorize("t1", "c3")
