"""
Assistant API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_conversation_service
from api.middleware.gate import GateContext, RequestGate
from api.models.envelope import envelope
from modules.ratelimit.models import RouteClass

from .conversations import ConversationService
from .models import ChatRequest, ContactReference

router = APIRouter()

authenticated = RequestGate()
chat_gate = RequestGate(RouteClass.CHAT)


@router.post("")
async def send_message(
    request: ChatRequest,
    ctx: GateContext = Depends(chat_gate),
    service: ConversationService = Depends(get_conversation_service),
):
    """Send a message to the assistant. Starts a conversation when none is given."""
    return envelope(await service.send(ctx.tenant_id, request))


@router.get("/history")
async def chat_history(
    conversation_id: Optional[str] = Query(default=None, alias="conversationId"),
    limit: int = Query(default=50, ge=1, le=200),
    ctx: GateContext = Depends(authenticated),
    service: ConversationService = Depends(get_conversation_service),
):
    return envelope(await service.history(ctx.tenant_id, conversation_id, limit))


@router.get("/conversations")
async def list_conversations(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    ctx: GateContext = Depends(authenticated),
    service: ConversationService = Depends(get_conversation_service),
):
    return envelope(await service.list_conversations(ctx.tenant_id, limit, offset))


@router.delete("/conversations/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    ctx: GateContext = Depends(authenticated),
    service: ConversationService = Depends(get_conversation_service),
):
    await service.delete_conversation(ctx.tenant_id, conversation_id)
    return envelope({"message": "Conversation deleted successfully"})


@router.post("/suggest-followups")
async def suggest_followups(
    request: ContactReference,
    ctx: GateContext = Depends(chat_gate),
    service: ConversationService = Depends(get_conversation_service),
):
    return envelope(await service.suggest_followups(ctx.tenant_id, request.contact_id))


@router.post("/categorize")
async def categorize_contact(
    request: ContactReference,
    ctx: GateContext = Depends(chat_gate),
    service: ConversationService = Depends(get_conversation_service),
):
    """Suggest an industry. It is written to the contact only when confidence is at least 0.7."""
    return envelope(await service.categorize(ctx.tenant_id, request.contact_id))
