import asyncio
import datetime as dt
import json
import logging
import re
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from community_ai.models import (
    Community,
    ContentSearchResult,
    ConversationExport,
    ConversationStart,
    ConversationTurn,
    Event,
    FeedbackResult,
    Member,
    QuickAction,
    UserPreferenceProfile,
)
from community_ai.schemas import ConversationResponse, FeedbackResponse, SearchFilters
from community_ai.services.model_gateway import ModelGateway
from community_ai.validation import require_text

logger = logging.getLogger(__name__)

Clock = Callable[[], dt.datetime]

APOLOGY = "I'm having trouble processing that right now. Could you try rephrasing your question?"
FEEDBACK_ACK = "I understand your feedback. Let me adjust my suggestions for you."
SUPPORT_UNAVAILABLE = (
    "I'm having trouble processing your request right now. Please try again or contact our support team directly."
)
SUPPORT_DEFAULT = (
    "I'd be happy to help! Could you be more specific about what you need assistance with? You can ask about "
    "joining communities, creating events, privacy settings, or any other platform features."
)

BASIC_WELCOME = ConversationStart(
    message=(
        "Hi there! I'm here to help you discover amazing communities and events that match your interests. "
        "What are you hoping to gain from joining a community?"
    ),
    suggestions=[
        "Learn new skills",
        "Meet like-minded people",
        "Find networking opportunities",
        "Explore hobbies",
        "Get career guidance",
    ],
)

CONTEXT_WELCOMES: Dict[str, ConversationStart] = {
    "dashboard": ConversationStart(
        message=(
            "Hi! I'm here to help you navigate your dashboard and discover new opportunities. "
            "What would you like to explore today?"
        ),
        suggestions=[
            "Show me my upcoming events",
            "Find new communities to join",
            "What's trending in my interests?",
            "Help me plan my week",
        ],
        quick_actions=[
            QuickAction(label="My Calendar", action="show_calendar"),
            QuickAction(label="Recommendations", action="show_recommendations"),
            QuickAction(label="Browse Events", action="navigate_to", target="/events"),
        ],
    ),
    "events": ConversationStart(
        message=(
            "Looking for events? I can help you find the perfect ones based on your interests, location, "
            "and schedule!"
        ),
        suggestions=[
            "Events happening this weekend",
            "Tech meetups near me",
            "Free events tomorrow",
            "Online workshops this week",
        ],
        quick_actions=[
            QuickAction(label="Create Event", action="navigate_to", target="/events/create"),
            QuickAction(label="My Wishlist", action="navigate_to", target="/wishlist"),
        ],
    ),
    "discover": ConversationStart(
        message=(
            "Ready to discover amazing communities? Tell me about your interests and I'll help you find "
            "the perfect match!"
        ),
        suggestions=[
            "I'm interested in technology",
            "Find book clubs in my area",
            "Show me creative communities",
            "I want to learn new skills",
        ],
        quick_actions=[
            QuickAction(label="Browse All", action="navigate_to", target="/discover"),
            QuickAction(label="Create Community", action="navigate_to", target="/create-community"),
        ],
    ),
    "default": ConversationStart(
        message=(
            "Hi there! I'm your community assistant. I can help you discover events, find communities, "
            "answer questions, and much more!"
        ),
        suggestions=[
            "Find events near me",
            "Discover new communities",
            "Help with platform features",
            "Show me recommendations",
        ],
        quick_actions=[
            QuickAction(label="Dashboard", action="navigate_to", target="/dashboard"),
            QuickAction(label="Discover", action="navigate_to", target="/discover"),
        ],
    ),
}

SUPPORT_TOPICS = {
    "join community": (
        "To join a community, visit the community page and click the 'Join' button. You may need to answer a "
        "few questions or wait for approval depending on the community's settings."
    ),
    "create event": (
        "To create an event, go to the Events page and click 'Create Event'. Fill in the details like title, "
        "description, date, time, and location. You can also set it as public or private."
    ),
    "community guidelines": (
        "Our community guidelines promote respectful interaction, authentic engagement, and inclusive "
        "participation. No harassment, spam, or inappropriate content is allowed."
    ),
    "technical issues": (
        "For technical issues, try refreshing the page first. If the problem persists, check your internet "
        "connection and clear your browser cache. Contact support if issues continue."
    ),
    "privacy settings": (
        "You can manage your privacy settings in your profile. Control who can see your activity, send you "
        "messages, and invite you to events."
    ),
    "notifications": (
        "Manage notifications in your settings. You can choose to receive notifications for new events, "
        "community updates, messages, and more."
    ),
}

# Checked in this order; "this week" also covers today and tomorrow.
TIME_PHRASES = ("tomorrow", "this week", "today")
STOP_WORDS = {
    "a", "an", "and", "any", "are", "at", "for", "find", "from", "happening", "i", "in", "is", "look",
    "looking", "me", "my", "near", "of", "on", "or", "show", "some", "the", "there", "this", "to", "want",
    "what", "where", "which", "who", "with", "week", "today", "tomorrow",
}
KIND_WORDS = {
    "community": "communities",
    "communities": "communities",
    "group": "communities",
    "groups": "communities",
    "event": "events",
    "events": "events",
    "meetup": "events",
    "meetups": "events",
    "people": "people",
    "person": "people",
    "member": "people",
    "members": "people",
}
_WORD = re.compile(r"[a-z0-9]+")

BASIC_SYSTEM_PROMPT = (
    "You are a helpful, friendly chatbot that specializes in community discovery and user support. "
    "Always be encouraging and personable."
)
ENHANCED_SYSTEM_PROMPT = (
    "You are a helpful, intelligent community platform assistant. Be friendly, proactive, and solution-oriented."
)
SUPPORT_SYSTEM_PROMPT = (
    "You are a helpful support agent. Be concise, friendly, and solution-oriented. "
    "If you can't help, suggest escalating to human support."
)
FEEDBACK_SYSTEM_PROMPT = "You are helping refine user preferences based on their feedback. Be understanding and adaptive."


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def render_turns(turns: List[ConversationTurn]) -> str:
    return "\n".join(f"{turn.role}: {turn.content}" for turn in turns)


def _preferences_json(preferences: Optional[UserPreferenceProfile]) -> str:
    if preferences is None:
        return "{}"
    return preferences.model_dump_json(by_alias=True)


def build_basic_conversation_prompt(turns: List[ConversationTurn], preferences: Optional[UserPreferenceProfile]) -> str:
    return (
        "You are a friendly, helpful chatbot for a community platform. Your role is to:\n"
        "1. Help users discover relevant communities, events, and people\n"
        "2. Extract user preferences through natural conversation\n"
        "3. Provide personalized recommendations\n"
        "4. Answer questions about the platform\n"
        "5. Provide support and guidance\n\n"
        f"Current conversation:\n{render_turns(turns)}\n\n"
        f"User's current preferences: {_preferences_json(preferences)}\n\n"
        "Based on the user's latest message, provide a natural, helpful response. If the user is asking about "
        'specific content (events, communities, people), set actionType to "search_content". If you have enough '
        'information to make recommendations, set actionType to "show_recommendations". If the user needs '
        'support, set actionType to "provide_info" or "escalate_support".\n\n'
        "Extract any new preferences mentioned in the user's message."
    )


def build_enhanced_conversation_prompt(
    turns: List[ConversationTurn],
    message: str,
    preferences: Optional[UserPreferenceProfile],
    context_tag: Optional[str],
) -> str:
    return (
        "You are an advanced AI assistant for a community platform. Your capabilities include:\n\n"
        "1. CONTENT DISCOVERY: Help users find communities, events, and people\n"
        "2. CALENDAR QUERIES: Answer questions about user's schedule and upcoming events\n"
        "3. PLATFORM SUPPORT: Provide help with features, guidelines, and troubleshooting\n"
        "4. NAVIGATION: Guide users to relevant sections of the platform\n"
        "5. PERSONALIZATION: Learn and adapt to user preferences\n\n"
        f"Current context: {context_tag or 'general'}\n"
        f"Conversation history:\n{render_turns(turns)}\n\n"
        f"User's current preferences: {_preferences_json(preferences)}\n\n"
        f'User message: "{message}"\n\n'
        "ANALYSIS GUIDELINES:\n"
        '- If asking about "my events" or "tomorrow" or specific dates, set actionType to "show_calendar"\n'
        '- If asking about specific content (like "book clubs in Jakarta"), set actionType to "search_content"\n'
        '- If asking for recommendations or "show me", set actionType to "show_recommendations"\n'
        '- If asking about platform features or having issues, set actionType to "provide_info"\n'
        '- If wanting to go somewhere specific, set actionType to "navigate_to"\n'
        "- Extract location mentions, time references, category preferences, and format preferences\n"
        "- Identify any exclusions or negative preferences\n\n"
        "RESPONSE REQUIREMENTS:\n"
        "- Be conversational and helpful\n"
        "- Ask clarifying questions when needed\n"
        "- Provide specific, actionable suggestions\n"
        "- Extract and update user preferences from their message"
    )


def build_feedback_prompt(
    feedback: str,
    current_preferences: UserPreferenceProfile,
    last_recommendations: List[Dict[str, Any]],
) -> str:
    return (
        f'The user provided feedback on recommendations: "{feedback}"\n\n'
        f"Current preferences: {_preferences_json(current_preferences)}\n"
        f"Last recommendations: {json.dumps(last_recommendations, default=str)}\n\n"
        "Based on this feedback, update the user's preferences and provide a response. "
        "Common feedback patterns:\n"
        '- "Too big" -> prefer smaller communities\n'
        '- "Too small" -> prefer larger communities\n'
        '- "Online only" -> format preference to online\n'
        '- "In person only" -> format preference to offline\n'
        '- "Too expensive" -> prefer free events\n'
        '- "Not interested in [topic]" -> add to excluded categories\n'
        '- "More [topic]" -> add to interests\n'
        '- "Closer to me" -> location preference\n\n'
        "Provide updated preferences and a helpful response."
    )


def build_support_prompt(query: str) -> str:
    return (
        "You are a support chatbot for a community platform. Answer this user query helpfully and concisely:\n\n"
        f'"{query}"\n\n'
        "If this is a common question, provide a direct answer. If it requires human support, suggest "
        "escalating to a human agent. Cover topics like:\n"
        "- Account management\n"
        "- Community guidelines\n"
        "- Technical issues\n"
        "- Platform features\n"
        "- Safety and moderation\n"
        "- Event management\n"
        "- Privacy settings"
    )


def merge_preferences(current: UserPreferenceProfile, update: Dict[str, Any]) -> UserPreferenceProfile:
    """Apply model-suggested preference changes one field at a time.

    List fields are unioned with the current values. A value outside its
    enum is skipped and the current value kept.
    """
    merged = current.model_dump()
    for field, value in update.items():
        if isinstance(value, list) and isinstance(merged.get(field), list):
            value = merged[field] + [item for item in value if item not in merged[field]]
        candidate = {**merged, field: value}
        try:
            UserPreferenceProfile.model_validate(candidate)
        except ValidationError:
            logger.info("Ignoring invalid preference update %s=%r", field, value)
            continue
        merged = candidate
    return UserPreferenceProfile.model_validate(merged)


def _as_utc(moment: dt.datetime) -> dt.datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=dt.timezone.utc)
    return moment.astimezone(dt.timezone.utc)


def _time_phrase(text: str) -> Optional[str]:
    lowered = text.lower()
    for phrase in TIME_PHRASES:
        if phrase in lowered:
            return phrase
    return None


def filter_events_by_phrase(events: List[Event], phrase: Optional[str], now: dt.datetime) -> List[Event]:
    now = _as_utc(now)
    today = now.date()
    if phrase == "tomorrow":
        tomorrow = today + dt.timedelta(days=1)
        return [event for event in events if event.date == tomorrow]
    if phrase == "this week":
        horizon = now + dt.timedelta(days=7)
        return [
            event
            for event in events
            if dt.datetime.combine(event.date, dt.time.min, tzinfo=dt.timezone.utc) <= horizon
        ]
    if phrase == "today":
        return [event for event in events if event.date == today]
    return list(events)


def _terms(query: str) -> List[str]:
    terms = []
    for word in _WORD.findall(query.lower()):
        if len(word) < 2 or word in STOP_WORDS or word in KIND_WORDS:
            continue
        if len(word) > 3 and word.endswith("s"):
            word = word[:-1]
        terms.append(word)
    return terms


def _matches(terms: List[str], fields: List[Optional[str]]) -> bool:
    haystack = " ".join(field for field in fields if field).lower()
    return all(term in haystack for term in terms)


def _same(value: Optional[str], expected: Optional[str]) -> bool:
    return expected is None or (value or "").lower() == expected.lower()


def _contains(value: Optional[str], expected: Optional[str]) -> bool:
    return expected is None or expected.lower() in (value or "").lower()


class ChatbotService:
    """Conversational assistant with a per-instance transcript.

    Only the last ``context_window`` turns go into each prompt. Model
    failures are logged and answered with a canned apology.
    """

    system_prompt = BASIC_SYSTEM_PROMPT

    def __init__(self, gateway: ModelGateway, context_window: int = 6, clock: Optional[Clock] = None) -> None:
        self.gateway = gateway
        self.context_window = context_window
        self.clock = clock or utc_now
        self.history: List[ConversationTurn] = []
        self._lock = asyncio.Lock()

    @property
    def active(self) -> bool:
        return bool(self.history)

    def _append(self, role: str, content: str) -> None:
        self.history.append(ConversationTurn(role=role, content=content, timestamp=self.clock()))

    def _recent_turns(self) -> List[ConversationTurn]:
        return self.history[-self.context_window :]

    def _welcome(self, context_tag: Optional[str] = None) -> ConversationStart:
        return BASIC_WELCOME

    async def start_conversation(self) -> ConversationStart:
        async with self._lock:
            welcome = self._welcome()
            self.history = []
            self._append("assistant", welcome.message)
            return welcome.model_copy(deep=True)

    def _conversation_prompt(
        self,
        message: str,
        preferences: Optional[UserPreferenceProfile],
        context_tag: Optional[str],
    ) -> str:
        return build_basic_conversation_prompt(self._recent_turns(), preferences)

    async def process_user_message(
        self,
        message: str,
        preferences: Optional[UserPreferenceProfile] = None,
        context_tag: Optional[str] = None,
    ) -> ConversationResponse:
        message = require_text("message", message)
        async with self._lock:
            self._append("user", message)
            prompt = self._conversation_prompt(message, preferences, context_tag)
            try:
                response = await self.gateway.generate_structured(
                    prompt, ConversationResponse, system_prompt=self.system_prompt
                )
            except Exception:
                logger.exception("Conversation turn failed; replying with apology")
                return ConversationResponse(response=APOLOGY, action_type="continue_conversation")
            self._append("assistant", response.response)
            return response

    async def handle_support_query(self, query: str) -> str:
        query = require_text("query", query)
        try:
            return await self.gateway.generate_text(build_support_prompt(query), system_prompt=SUPPORT_SYSTEM_PROMPT)
        except Exception:
            logger.exception("Support query failed; replying with canned message")
            return SUPPORT_UNAVAILABLE

    def get_conversation_history(self) -> List[ConversationTurn]:
        return list(self.history)

    def clear_conversation(self) -> None:
        self.history = []


class EnhancedChatbotService(ChatbotService):
    """Assistant with page context, calendar lookup, search and feedback handling."""

    system_prompt = ENHANCED_SYSTEM_PROMPT

    def __init__(self, gateway: ModelGateway, context_window: int = 8, clock: Optional[Clock] = None) -> None:
        super().__init__(gateway, context_window=context_window, clock=clock)
        self.user_context: Dict[str, Any] = {}

    def _welcome(self, context_tag: Optional[str] = None) -> ConversationStart:
        return CONTEXT_WELCOMES.get(context_tag or "default", CONTEXT_WELCOMES["default"])

    async def start_conversation(self, context_tag: Optional[str] = "default") -> ConversationStart:
        tag = context_tag if context_tag in CONTEXT_WELCOMES else "default"
        async with self._lock:
            welcome = self._welcome(tag)
            self.history = []
            self.user_context = {"context": tag}
            self._append("assistant", welcome.message)
            return welcome.model_copy(deep=True)

    def _conversation_prompt(
        self,
        message: str,
        preferences: Optional[UserPreferenceProfile],
        context_tag: Optional[str],
    ) -> str:
        tag = context_tag or self.user_context.get("context")
        return build_enhanced_conversation_prompt(self._recent_turns(), message, preferences, tag)

    async def process_feedback(
        self,
        feedback: str,
        current_preferences: Optional[UserPreferenceProfile] = None,
        last_recommendations: Optional[List[Dict[str, Any]]] = None,
    ) -> FeedbackResult:
        feedback = require_text("feedback", feedback)
        current = current_preferences or UserPreferenceProfile()
        prompt = build_feedback_prompt(feedback, current, last_recommendations or [])
        try:
            reply = await self.gateway.generate_structured(
                prompt, FeedbackResponse, system_prompt=FEEDBACK_SYSTEM_PROMPT
            )
        except Exception:
            logger.exception("Feedback processing failed; keeping current preferences")
            return FeedbackResult(preferences=current, response=FEEDBACK_ACK, new_recommendations=True)

        merged = merge_preferences(current, reply.updated_preferences.model_dump(exclude_none=True))
        self.user_context["preferences"] = merged.model_dump(by_alias=True)
        return FeedbackResult(
            preferences=merged,
            response=reply.response,
            new_recommendations=reply.new_recommendations,
        )

    def get_calendar_events(
        self, query: str, events: List[Event], now: Optional[dt.datetime] = None
    ) -> List[Event]:
        return filter_events_by_phrase(events, _time_phrase(query or ""), now or self.clock())

    def search_content(
        self,
        query: str,
        communities: List[Community],
        events: List[Event],
        people: List[Member],
        filters: Optional[SearchFilters] = None,
        now: Optional[dt.datetime] = None,
    ) -> ContentSearchResult:
        query = query or ""
        filters = filters or SearchFilters()
        terms = _terms(query)
        kinds = {KIND_WORDS[word] for word in _WORD.findall(query.lower()) if word in KIND_WORDS}
        wanted = kinds or {"communities", "events", "people"}

        found_communities: List[Community] = []
        if "communities" in wanted:
            found_communities = [
                community
                for community in communities
                if _matches(
                    terms,
                    [community.name, community.description, community.category, community.location, *community.tags],
                )
                and _same(community.category, filters.category)
                and _contains(community.location, filters.location)
                and _same(community.format, filters.format)
            ]

        found_events: List[Event] = []
        if "events" in wanted:
            found_events = [
                event
                for event in events
                if _matches(terms, [event.title, event.description, event.category, event.location, event.community])
                and _same(event.category, filters.category)
                and _contains(event.location, filters.location)
                and _same(event.format, filters.format)
            ]
            phrase = _time_phrase(query) or _time_phrase(filters.timeframe or "")
            if phrase:
                found_events = filter_events_by_phrase(found_events, phrase, now or self.clock())

        found_people: List[Member] = []
        if "people" in wanted and filters.category is None and filters.format is None:
            found_people = [
                member
                for member in people
                if _matches(terms, [member.name, member.bio, member.location, *member.skills])
                and _contains(member.location, filters.location)
            ]

        return ContentSearchResult(
            communities=found_communities,
            events=found_events,
            people=found_people,
            total_results=len(found_communities) + len(found_events) + len(found_people),
        )

    async def handle_support_query(self, query: str) -> str:
        lowered = (query or "").lower()
        for topic, answer in SUPPORT_TOPICS.items():
            if topic in lowered:
                return answer
        return SUPPORT_DEFAULT

    def clear_conversation(self) -> None:
        super().clear_conversation()
        self.user_context = {}

    def export_conversation(self) -> ConversationExport:
        return ConversationExport(
            history=self.get_conversation_history(),
            context=dict(self.user_context),
            exported_at=self.clock().isoformat(),
        )


class SessionRegistry:
    """Chatbot instances keyed by session id, oldest evicted first."""

    def __init__(self, gateway: ModelGateway, max_sessions: int = 500, basic_window: int = 6, enhanced_window: int = 8):
        self.gateway = gateway
        self.max_sessions = max_sessions
        self.basic_window = basic_window
        self.enhanced_window = enhanced_window
        self._sessions: "OrderedDict[str, ChatbotService]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def create(self, session_id: str, enhanced: bool = True) -> ChatbotService:
        if enhanced:
            service: ChatbotService = EnhancedChatbotService(self.gateway, context_window=self.enhanced_window)
        else:
            service = ChatbotService(self.gateway, context_window=self.basic_window)
        self._sessions.pop(session_id, None)
        self._sessions[session_id] = service
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Evicted chat session %s", evicted)
        return service

    def get(self, session_id: str) -> Optional[ChatbotService]:
        service = self._sessions.get(session_id)
        if service is not None:
            self._sessions.move_to_end(session_id)
        return service

    def get_or_create(self, session_id: str, enhanced: bool = True) -> ChatbotService:
        return self.get(session_id) or self.create(session_id, enhanced=enhanced)

    def drop(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None
