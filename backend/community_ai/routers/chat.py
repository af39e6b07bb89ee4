import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from community_ai.api_models import (
    ChatCalendarRequest,
    ChatFeedbackRequest,
    ChatMessageRequest,
    ChatSearchRequest,
    ChatStartRequest,
    ChatSupportRequest,
)
from community_ai.dependencies import require_feature
from community_ai.errors import InvalidParameters
from community_ai.models import ContentSearchResult, FeedbackResult
from community_ai.services.chatbot import ChatbotService, EnhancedChatbotService
from community_ai.services.container import ServiceContainer

router = APIRouter(prefix="/chat", tags=["chat"])
chat_feature = require_feature("chatbot")


def _enhanced_session(services: ServiceContainer, session_id: Optional[str]) -> EnhancedChatbotService:
    if not session_id:
        settings = services.settings
        return EnhancedChatbotService(services.gateway, context_window=settings.enhanced_chat_context_window)
    chatbot = services.sessions.get_or_create(session_id)
    if not isinstance(chatbot, EnhancedChatbotService):
        raise InvalidParameters("This operation needs an enhanced chat session.")
    return chatbot


def _known_session(services: ServiceContainer, session_id: str) -> ChatbotService:
    chatbot = services.sessions.get(session_id)
    if chatbot is None:
        raise HTTPException(status_code=404, detail="Unknown chat session.")
    return chatbot


@router.post("/start")
async def start(request: ChatStartRequest, services: ServiceContainer = Depends(chat_feature)):
    session_id = request.session_id or uuid.uuid4().hex
    chatbot = services.sessions.create(session_id, enhanced=request.mode == "enhanced")
    if isinstance(chatbot, EnhancedChatbotService):
        welcome = await chatbot.start_conversation(request.context)
    else:
        welcome = await chatbot.start_conversation()
    return {"sessionId": session_id, **welcome.model_dump(by_alias=True)}


@router.post("/message")
async def message(request: ChatMessageRequest, services: ServiceContainer = Depends(chat_feature)):
    chatbot = services.sessions.get_or_create(request.session_id)
    reply = await chatbot.process_user_message(request.message, request.preferences, context_tag=request.context)
    return {"sessionId": request.session_id, **reply.model_dump(by_alias=True, exclude_none=True)}


@router.post("/feedback", response_model=FeedbackResult)
async def feedback(request: ChatFeedbackRequest, services: ServiceContainer = Depends(chat_feature)):
    chatbot = _enhanced_session(services, request.session_id)
    return await chatbot.process_feedback(request.feedback, request.current_preferences, request.last_recommendations)


@router.post("/calendar")
async def calendar(request: ChatCalendarRequest, services: ServiceContainer = Depends(chat_feature)):
    chatbot = _enhanced_session(services, request.session_id)
    events = chatbot.get_calendar_events(request.query, request.events)
    return {"events": [event.model_dump(by_alias=True, mode="json") for event in events]}


@router.post("/search", response_model=ContentSearchResult)
async def search(request: ChatSearchRequest, services: ServiceContainer = Depends(chat_feature)):
    chatbot = _enhanced_session(services, request.session_id)
    return chatbot.search_content(
        request.query,
        request.communities,
        request.events,
        request.people,
        filters=request.filters,
    )


@router.post("/support")
async def support(request: ChatSupportRequest, services: ServiceContainer = Depends(chat_feature)):
    chatbot = services.sessions.get(request.session_id) if request.session_id else None
    if chatbot is None:
        chatbot = _enhanced_session(services, None)
    return {"answer": await chatbot.handle_support_query(request.query)}


@router.get("/{session_id}/history")
def history(session_id: str, services: ServiceContainer = Depends(chat_feature)):
    chatbot = _known_session(services, session_id)
    if isinstance(chatbot, EnhancedChatbotService):
        payload = chatbot.export_conversation().model_dump(by_alias=True, mode="json")
    else:
        payload = {"history": [turn.model_dump(mode="json") for turn in chatbot.get_conversation_history()]}
    return {"sessionId": session_id, **payload}


@router.delete("/{session_id}")
def delete_session(session_id: str, services: ServiceContainer = Depends(chat_feature)):
    _known_session(services, session_id).clear_conversation()
    services.sessions.drop(session_id)
    return {"sessionId": session_id, "deleted": True}
