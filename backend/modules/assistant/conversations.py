"""
Stored assistant conversations.

Wraps the assistant with the tenant's data: conversations and their
messages are persisted, and chat prompts get a context block built from
the tenant's contacts, statistics and recent interactions, picked by
keywords in the message.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from shared.repository import ITableRepository, PageRequest, Sort, eq, gte, search

from modules.contacts.exceptions import ContactNotFoundError

from .exceptions import ConversationNotFoundError
from .interfaces import IAssistantService
from .models import (
    MAX_CONTEXT_CONTACTS,
    MAX_HISTORY_MESSAGES,
    ChatContext,
    ChatRequest,
    ChatRole,
    ChatTurn,
)

logger = logging.getLogger(__name__)

TITLE_LENGTH = 50

CONTACT_KEYWORDS = ("contact", "client", "customer", "find", "search")
STATS_KEYWORDS = ("stats", "summary", "overview", "how many")
RECENT_KEYWORDS = ("recent", "latest", "last")

STOP_WORDS = frozenset(
    {
        "find", "search", "look", "for", "the", "a", "an", "contact", "client",
        "customer", "named", "called", "from", "at", "in", "who", "where",
    }
)


def search_terms(message: str) -> Optional[str]:
    """Words of the message worth searching contacts for."""
    words = re.sub(r"[^\w\s]", "", message.lower()).split()
    kept = [w for w in words if w not in STOP_WORDS and len(w) > 2]
    return " ".join(kept) or None


def conversation_title(message: str) -> str:
    if len(message) <= TITLE_LENGTH:
        return message
    return message[:TITLE_LENGTH] + "..."


class ConversationService:
    """Chat, history and contact helpers for one tenant at a time."""

    def __init__(
        self,
        assistant: IAssistantService,
        conversations: ITableRepository,
        messages: ITableRepository,
        contacts: ITableRepository,
        interactions: ITableRepository,
        reminders: ITableRepository,
        opportunities: ITableRepository,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._assistant = assistant
        self._conversations = conversations
        self._messages = messages
        self._contacts = contacts
        self._interactions = interactions
        self._reminders = reminders
        self._opportunities = opportunities
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _contact(self, tenant_id: str, contact_id: str) -> dict[str, Any]:
        contact = await self._contacts.get(contact_id, [eq("user_id", tenant_id)])
        if contact is None:
            raise ContactNotFoundError(contact_id)
        return contact

    async def _history(self, conversation_id: str) -> list[ChatTurn]:
        # Latest messages, oldest first
        page = await self._messages.find(
            [eq("conversation_id", conversation_id)],
            sort=Sort("created_at"),
            page=PageRequest(1, MAX_HISTORY_MESSAGES),
            columns="role,content,created_at",
        )
        return [ChatTurn.model_validate(row) for row in reversed(page.rows)]

    async def build_context(self, tenant_id: str, message: str) -> ChatContext:
        context = ChatContext()
        owned = eq("user_id", tenant_id)
        lowered = message.lower()

        if any(k in lowered for k in CONTACT_KEYWORDS):
            terms = search_terms(message)
            if terms:
                page = await self._contacts.find(
                    [owned, search(("name", "company", "email"), terms)],
                    page=PageRequest(1, MAX_CONTEXT_CONTACTS),
                    columns="id,name,company,phone,email,industry,last_interaction",
                )
                context.contacts = page.rows

        if any(k in lowered for k in STATS_KEYWORDS):
            one = PageRequest(1, 1)
            since = (self._clock() - timedelta(days=30)).isoformat()
            contacts = await self._contacts.find([owned], page=one, columns="id")
            interactions = await self._interactions.find(
                [owned, gte("interaction_date", since)], page=one, columns="id"
            )
            pending = await self._reminders.find(
                [owned, eq("status", "pending")], page=one, columns="id"
            )
            active = await self._opportunities.find(
                [owned, eq("status", "active")], columns="value,stage"
            )
            context.stats = {
                "total_contacts": contacts.total_count,
                "recent_interactions": interactions.total_count,
                "pending_reminders": pending.total_count,
                "active_opportunities": len(active.rows),
                "pipeline_value": sum(float(r.get("value") or 0) for r in active.rows),
            }

        if any(k in lowered for k in RECENT_KEYWORDS):
            page = await self._interactions.find(
                [owned], sort=Sort("interaction_date"), page=PageRequest(1, 10)
            )
            names = {}
            for row in page.rows:
                contact_id = row.get("contact_id")
                if contact_id and contact_id not in names:
                    contact = await self._contacts.get(contact_id, [owned])
                    names[contact_id] = contact.get("name") if contact else None
            context.recent_interactions = [
                {**row, "contact_name": names.get(row.get("contact_id"))} for row in page.rows
            ]

        return context

    async def send(self, tenant_id: str, request: ChatRequest) -> dict[str, Any]:
        """
        Answer a chat message and store both sides of the exchange.

        A new conversation is started when the request names none.

        Raises:
            ConversationNotFoundError: If the named conversation is not the tenant's
            ExternalServiceError: If every provider failed
        """
        now = self._clock().isoformat()

        if request.conversation_id:
            conversation = await self._conversations.get(
                request.conversation_id, [eq("user_id", tenant_id)]
            )
            if conversation is None:
                raise ConversationNotFoundError(request.conversation_id)
            history = await self._history(conversation["id"])
        else:
            created = await self._conversations.insert(
                {
                    "user_id": tenant_id,
                    "title": conversation_title(request.message),
                    "last_message_at": now,
                }
            )
            conversation = created[0]
            history = []

        context = (
            await self.build_context(tenant_id, request.message)
            if request.include_context
            else ChatContext()
        )
        completion = await self._assistant.chat(request.message, history, context)

        await self._messages.insert(
            [
                {
                    "conversation_id": conversation["id"],
                    "user_id": tenant_id,
                    "role": ChatRole.USER.value,
                    "content": request.message,
                    "created_at": now,
                },
                {
                    "conversation_id": conversation["id"],
                    "user_id": tenant_id,
                    "role": ChatRole.ASSISTANT.value,
                    "content": completion.text,
                    "created_at": self._clock().isoformat(),
                },
            ]
        )
        await self._conversations.update(conversation["id"], {"last_message_at": now})

        return {
            "response": completion.text,
            "conversation_id": conversation["id"],
            "model": completion.model,
            "usage": completion.usage,
            "context_used": context.used(),
        }

    async def history(
        self, tenant_id: str, conversation_id: Optional[str] = None, limit: int = 50
    ) -> dict[str, Any]:
        conditions = [eq("user_id", tenant_id)]
        if conversation_id:
            conditions.append(eq("conversation_id", conversation_id))
        page = await self._messages.find(
            conditions, sort=Sort("created_at", descending=False), page=PageRequest(1, limit)
        )
        return {"messages": page.rows, "count": len(page.rows)}

    async def list_conversations(self, tenant_id: str, limit: int = 20, offset: int = 0) -> dict[str, Any]:
        page = await self._conversations.find(
            [eq("user_id", tenant_id)],
            sort=Sort("last_message_at"),
            page=PageRequest(offset // limit + 1, limit),
        )
        return {"conversations": page.rows, "total": page.total_count}

    async def delete_conversation(self, tenant_id: str, conversation_id: str) -> None:
        owned = eq("user_id", tenant_id)
        if await self._conversations.get(conversation_id, [owned]) is None:
            raise ConversationNotFoundError(conversation_id)
        await self._messages.delete_where([eq("conversation_id", conversation_id), owned])
        await self._conversations.delete(conversation_id, [owned])

    async def suggest_followups(self, tenant_id: str, contact_id: str) -> dict[str, Any]:
        contact = await self._contact(tenant_id, contact_id)
        recent = await self._interactions.find(
            [eq("contact_id", contact_id)], sort=Sort("interaction_date"), page=PageRequest(1, 10)
        )
        suggestions = await self._assistant.suggest_followups(contact, recent.rows)
        return {
            "contact": {"id": contact["id"], "name": contact.get("name")},
            "suggestions": [s.model_dump() for s in suggestions],
        }

    async def categorize(self, tenant_id: str, contact_id: str) -> dict[str, Any]:
        """Classify the contact's industry and store it when the model is confident."""
        contact = await self._contact(tenant_id, contact_id)
        result = await self._assistant.categorize(contact)
        if result.applicable:
            await self._contacts.update(
                contact_id, {"industry": result.category}, [eq("user_id", tenant_id)]
            )
            logger.info(f"Categorized contact {contact_id} as {result.category}")
        return {
            "contact": {"id": contact["id"], "name": contact.get("name")},
            "category": result.category,
            "confidence": result.confidence,
            "applied": result.applicable,
        }
