"""Request and response bodies for the HTTP routes."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from community_ai.models import (
    CamelModel,
    Community,
    ConnectionType,
    ContentItem,
    EnhancementContext,
    Event,
    EventFormat,
    Member,
    ModerationContext,
    SearchDocument,
    SearchFeedback,
    SearchUserContext,
    SkillLevel,
    SpamContext,
    TimeHorizon,
    Tone,
    UserActivity,
    UserPreferenceProfile,
)
from community_ai.schemas import ModerationResult, Recommendation, RecommendationProfile, SearchFilters


class TextResult(CamelModel):
    text: str


# Content generation


class CommunityPostRequest(CamelModel):
    topic: str
    community_type: str
    tone: Tone = "casual"
    target_audience: Optional[str] = None
    keywords: Optional[List[str]] = None


class EventDescriptionRequest(CamelModel):
    event_type: str
    topic: str
    duration: str
    format: EventFormat
    skill_level: SkillLevel = "all"


class CommunityGuidelinesRequest(CamelModel):
    community_name: str
    community_type: str
    values: List[str] = Field(default_factory=list)
    specific_rules: Optional[List[str]] = None


class DiscussionStartersRequest(CamelModel):
    community_type: str
    recent_topics: Optional[List[str]] = None
    member_interests: Optional[List[str]] = None
    count: int = 5


class HashtagsRequest(CamelModel):
    content: str
    max_count: int = 5


class CommunityDescriptionRequest(CamelModel):
    name: str
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    location: Optional[str] = None


class ImproveContentRequest(CamelModel):
    content: str
    improvement_type: str


class EnhanceContentRequest(CamelModel):
    content: str
    content_type: str = "general"
    enhancement_type: str = "improve"
    tone: str = "friendly"
    context: Optional[EnhancementContext] = None
    custom_prompt: Optional[str] = None


# Analysis and moderation


class AnalyzeContentRequest(CamelModel):
    content: str
    analysis_type: str


class ModerateContentRequest(CamelModel):
    content: str
    context: ModerationContext = Field(default_factory=ModerationContext)


class ContentQualityRequest(CamelModel):
    content: str
    content_type: str = "post"


class DetectSpamRequest(CamelModel):
    content: str
    user_context: SpamContext = Field(default_factory=SpamContext)


class ModerationSummaryRequest(CamelModel):
    results: List[ModerationResult] = Field(default_factory=list)
    timeframe: str = "past week"


class SuggestGuidelinesRequest(CamelModel):
    community_type: str
    existing_issues: List[str] = Field(default_factory=list)


# Search


class SearchIntentRequest(CamelModel):
    query: str
    user_context: Optional[SearchUserContext] = None


class SearchSuggestionsRequest(CamelModel):
    partial_query: str
    user_context: Optional[SearchUserContext] = None


class EnhanceSearchQueryRequest(CamelModel):
    original_query: str
    results: List[SearchDocument] = Field(default_factory=list)
    user_feedback: Optional[SearchFeedback] = None


class SemanticSearchRequest(CamelModel):
    query: str
    documents: List[SearchDocument] = Field(default_factory=list)
    threshold: float = 0.0
    max_results: int = 10


class ExplainSearchResultsRequest(CamelModel):
    query: str
    results: List[SearchDocument] = Field(default_factory=list)


# Recommendations


class UserInterestsRequest(CamelModel):
    activity: UserActivity = Field(default_factory=UserActivity)


class CommunityRecommendationsRequest(CamelModel):
    profile: RecommendationProfile = Field(default_factory=RecommendationProfile)
    communities: List[Community] = Field(default_factory=list)
    max_recommendations: int = 10
    diversity_weight: float = 0.3
    exclude_joined: bool = True
    exclude_ids: Optional[List[str]] = None


class EventRecommendationsRequest(CamelModel):
    profile: RecommendationProfile = Field(default_factory=RecommendationProfile)
    events: List[Event] = Field(default_factory=list)
    max_recommendations: int = 8
    time_horizon: TimeHorizon = "month"
    include_online: bool = True
    exclude_ids: Optional[List[str]] = None


class ContentRecommendationsRequest(CamelModel):
    profile: RecommendationProfile = Field(default_factory=RecommendationProfile)
    content: List[ContentItem] = Field(default_factory=list)
    content_types: Optional[List[str]] = None
    max_recommendations: int = 15
    recency_weight: float = 0.2
    exclude_ids: Optional[List[str]] = None


class PersonRecommendationsRequest(CamelModel):
    profile: RecommendationProfile = Field(default_factory=RecommendationProfile)
    members: List[Member] = Field(default_factory=list)
    connection_type: ConnectionType = "peer"
    max_recommendations: int = 8
    exclude_ids: Optional[List[str]] = None


class ExplainRecommendationRequest(CamelModel):
    recommendation: Recommendation
    profile: RecommendationProfile = Field(default_factory=RecommendationProfile)


# Chat


class ChatStartRequest(CamelModel):
    session_id: Optional[str] = None
    context: Optional[str] = None
    mode: Literal["basic", "enhanced"] = "enhanced"


class ChatMessageRequest(CamelModel):
    session_id: str
    message: str
    preferences: Optional[UserPreferenceProfile] = None
    context: Optional[str] = None


class ChatFeedbackRequest(CamelModel):
    session_id: Optional[str] = None
    feedback: str
    current_preferences: UserPreferenceProfile = Field(default_factory=UserPreferenceProfile)
    last_recommendations: List[Dict[str, Any]] = Field(default_factory=list)


class ChatCalendarRequest(CamelModel):
    session_id: Optional[str] = None
    query: str = ""
    events: List[Event] = Field(default_factory=list)


class ChatSearchRequest(CamelModel):
    session_id: Optional[str] = None
    query: str = ""
    communities: List[Community] = Field(default_factory=list)
    events: List[Event] = Field(default_factory=list)
    people: List[Member] = Field(default_factory=list)
    filters: Optional[SearchFilters] = None


class ChatSupportRequest(CamelModel):
    session_id: Optional[str] = None
    query: str
