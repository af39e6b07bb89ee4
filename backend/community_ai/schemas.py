"""Response schemas the model gateway validates structured output against.

Every schema forbids unknown keys, so a reply with invented fields fails
validation the same way a reply with missing required fields does.
"""
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import ConfigDict, Field, field_validator

from community_ai.models import CamelModel

AnalysisType = Literal["sentiment", "toxicity", "quality"]
ActionType = Literal[
    "continue_conversation",
    "show_recommendations",
    "search_content",
    "provide_info",
    "escalate_support",
    "show_calendar",
    "show_profile",
    "navigate_to",
]
ModerationCategory = Literal[
    "spam",
    "harassment",
    "hate_speech",
    "inappropriate_content",
    "misinformation",
    "off_topic",
    "low_quality",
    "promotional",
]

SCORE_SCALES: Dict[str, Tuple[float, float]] = {
    "sentiment": (-1.0, 1.0),
    "toxicity": (0.0, 1.0),
    "quality": (0.0, 1.0),
}


class StructuredResponse(CamelModel):
    model_config = ConfigDict(extra="forbid")


# Content generation


class CommunityPost(StructuredResponse):
    title: str
    content: str
    tags: List[str]
    category: str
    tone: Literal["professional", "casual", "enthusiastic", "informative"]


class EventDescription(StructuredResponse):
    title: str
    description: str
    agenda: List[str]
    target_audience: str
    expected_outcomes: List[str]


class GuidelineRule(StructuredResponse):
    title: str
    description: str
    examples: List[str]


class CommunityGuidelines(StructuredResponse):
    rules: List[GuidelineRule]
    welcome_message: str
    code_of_conduct: List[str]


class CommunityDescription(StructuredResponse):
    description: str
    alternative_descriptions: List[str] = Field(default_factory=list)
    suggested_tags: List[str] = Field(default_factory=list)
    target_audience: Optional[str] = None

    @field_validator("target_audience", mode="before")
    @classmethod
    def join_audience_list(cls, value: Any) -> Any:
        if isinstance(value, list):
            return ", ".join(str(item) for item in value)
        return value


# Analysis and moderation


class ContentAnalysisScore(StructuredResponse):
    score: float
    reasoning: str
    confidence: float = Field(ge=0, le=1)

    def within_scale(self, analysis_type: str) -> bool:
        low, high = SCORE_SCALES[analysis_type]
        return low <= self.score <= high


class ModerationResult(StructuredResponse):
    decision: Literal["approve", "flag", "reject"]
    confidence: float
    reasons: List[str]
    categories: List[ModerationCategory]
    suggested_actions: List[str]
    severity: Literal["low", "medium", "high", "critical"]
    requires_human_review: bool


class SentimentBreakdown(StructuredResponse):
    score: float
    label: Literal["positive", "neutral", "negative"]
    confidence: float


class ToxicityBreakdown(StructuredResponse):
    score: float
    categories: List[str]
    confidence: float


class TopicSignal(StructuredResponse):
    topic: str
    relevance: float
    category: str


class QualityBreakdown(StructuredResponse):
    score: float
    factors: List[str]
    suggestions: List[str]


class ContentQualityReport(StructuredResponse):
    sentiment: SentimentBreakdown
    toxicity: ToxicityBreakdown
    topics: List[TopicSignal]
    quality: QualityBreakdown


# Recommendations


class Recommendation(StructuredResponse):
    id: str
    type: Literal["community", "event", "person", "content", "skill"]
    title: str
    description: str
    relevance_score: float
    reasoning: str
    category: str
    tags: List[str]
    metadata: Optional[Dict[str, Any]] = None


class RecommendationExplanations(StructuredResponse):
    primary_factors: List[str]
    user_profile: str
    diversity_factors: List[str]


class RecommendationSet(StructuredResponse):
    recommendations: List[Recommendation]
    explanations: RecommendationExplanations


class InterestSignal(StructuredResponse):
    topic: str
    strength: float
    category: str
    keywords: List[str]


class InterestPreferences(StructuredResponse):
    community_size: Literal["small", "medium", "large", "any"]
    activity_level: Literal["low", "moderate", "high", "any"]
    interaction_style: Literal["lurker", "participant", "leader", "mixed"]
    content_types: List[str]


class UserInterestProfile(StructuredResponse):
    interests: List[InterestSignal]
    preferences: InterestPreferences
    goals: List[str]


class RecommendationProfile(CamelModel):
    """Caller-side profile fed to the recommendation prompts.

    A ``UserInterestProfile`` dump validates into this directly; the extra
    fields come from the caller's own records.
    """

    interests: List[InterestSignal] = Field(default_factory=list)
    preferences: Optional[InterestPreferences] = None
    goals: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    experience_level: Optional[str] = None
    joined_communities: List[str] = Field(default_factory=list)
    attended_events: List[str] = Field(default_factory=list)
    engagement_history: Optional[str] = None


# Search


class SearchEntity(StructuredResponse):
    type: Literal["location", "topic", "skill", "time", "person", "organization"]
    value: str
    confidence: float


class SearchIntentFilters(StructuredResponse):
    category: Optional[str] = None
    location: Optional[str] = None
    time_range: Optional[str] = None
    price_range: Optional[str] = None
    skill_level: Optional[str] = None


class SearchIntent(StructuredResponse):
    intent: Literal["find_community", "find_event", "find_person", "get_information", "get_help"]
    entities: List[SearchEntity]
    filters: SearchIntentFilters
    suggested_queries: List[str]


class RankedResult(StructuredResponse):
    id: str
    type: Literal["community", "event", "person", "post", "resource"]
    title: str
    description: str
    relevance_score: float
    matched_terms: List[str]
    category: Optional[str] = None


class SemanticSearchResult(StructuredResponse):
    results: List[RankedResult]
    total_count: int


# Conversation


class PreferenceUpdate(StructuredResponse):
    interests: Optional[List[str]] = None
    community_size: Optional[str] = None
    format: Optional[str] = None
    location: Optional[str] = None
    goals: Optional[List[str]] = None
    price_range: Optional[str] = None
    excluded_categories: Optional[List[str]] = None


class SearchFilters(StructuredResponse):
    category: Optional[str] = None
    location: Optional[str] = None
    timeframe: Optional[str] = None
    format: Optional[str] = None


class ConversationResponse(StructuredResponse):
    response: str
    follow_up_questions: Optional[List[str]] = None
    action_type: ActionType
    extracted_preferences: Optional[PreferenceUpdate] = None
    navigation_target: Optional[str] = None
    calendar_query: Optional[str] = None
    search_filters: Optional[SearchFilters] = None


class FeedbackResponse(StructuredResponse):
    updated_preferences: PreferenceUpdate
    response: str
    new_recommendations: bool
