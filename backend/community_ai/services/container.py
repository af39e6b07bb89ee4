import logging
from dataclasses import dataclass
from typing import Dict, Optional

from community_ai.config import Settings
from community_ai.services.chatbot import SessionRegistry
from community_ai.services.content_generator import ContentGenerator
from community_ai.services.model_gateway import ModelBackend, ModelGateway, OpenAIChatBackend
from community_ai.services.moderation import ContentModerationService
from community_ai.services.recommendation_engine import RecommendationEngine
from community_ai.services.smart_search import SmartSearch

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    gateway: ModelGateway
    content: ContentGenerator
    moderation: ContentModerationService
    recommendations: RecommendationEngine
    search: SmartSearch
    sessions: SessionRegistry


def build_services(settings: Settings, backends: Optional[Dict[str, ModelBackend]] = None) -> ServiceContainer:
    if backends is None:
        backends = {
            "primary": OpenAIChatBackend(settings.primary),
            "fallback": OpenAIChatBackend(settings.fallback),
        }
    gateway = ModelGateway(backends, telemetry_enabled=settings.telemetry_enabled)
    logger.info("Model backends configured: %s", ", ".join(gateway.configured_backends) or "none")
    return ServiceContainer(
        settings=settings,
        gateway=gateway,
        content=ContentGenerator(gateway),
        moderation=ContentModerationService(gateway),
        recommendations=RecommendationEngine(gateway),
        search=SmartSearch(gateway),
        sessions=SessionRegistry(
            gateway,
            max_sessions=settings.chat_max_sessions,
            basic_window=settings.chat_context_window,
            enhanced_window=settings.enhanced_chat_context_window,
        ),
    )
