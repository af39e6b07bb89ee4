import datetime as dt
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

BackendName = Literal["primary", "fallback"]
CommunitySize = Literal["small", "medium", "large", "any"]
EventFormat = Literal["online", "offline", "hybrid"]
FormatPreference = Literal["online", "offline", "hybrid", "any"]
ActivityLevel = Literal["low", "moderate", "high", "any"]
ExperienceLevel = Literal["beginner", "intermediate", "advanced", "any"]
TimeCommitment = Literal["minimal", "moderate", "high", "any"]
PriceRange = Literal["free", "paid", "any"]
MemberRole = Literal["admin", "moderator", "member"]
ModeratedContentType = Literal["post", "comment", "message", "profile"]
ContextTag = Literal["dashboard", "events", "discover", "default"]
Tone = Literal["professional", "casual", "enthusiastic", "informative"]
SkillLevel = Literal["beginner", "intermediate", "advanced", "all"]
TimeHorizon = Literal["week", "month", "quarter"]
ConnectionType = Literal["mentor", "peer", "mentee", "collaborator"]

_TIMESTAMP = TypeAdapter(dt.datetime)


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerationRequest(BaseModel):
    prompt: str
    system_prompt: str
    max_tokens: int = Field(gt=0)
    temperature: float = Field(ge=0, le=2)
    backend: BackendName = "primary"
    json_mode: bool = False


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: dt.datetime


class UserPreferenceProfile(CamelModel):
    interests: List[str] = Field(default_factory=list)
    community_size: CommunitySize = "any"
    format: FormatPreference = "any"
    activity_level: ActivityLevel = "any"
    goals: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    experience: ExperienceLevel = "any"
    time_commitment: TimeCommitment = "any"
    price_range: PriceRange = "any"
    excluded_categories: List[str] = Field(default_factory=list)


class Community(CamelModel):
    id: str
    name: str
    description: str = ""
    category: str = "general"
    member_count: int = Field(default=0, ge=0)
    format: Optional[EventFormat] = None
    location: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    privacy: Literal["public", "private", "invite-only"] = "public"


class Event(CamelModel):
    id: str
    title: str
    description: str = ""
    date: dt.date
    time: Optional[str] = None
    location: Optional[str] = None
    format: EventFormat = "offline"
    category: Optional[str] = None
    price: float = Field(default=0, ge=0)
    community: Optional[str] = None
    status: Optional[Literal["attending", "maybe", "not_attending"]] = None

    @field_validator("date", mode="before")
    @classmethod
    def date_from_timestamp(cls, value: Any) -> Any:
        # Full timestamps keep the calendar date they were written in.
        if isinstance(value, dt.datetime):
            return value.date()
        if isinstance(value, str) and len(value.strip()) > 10:
            return _TIMESTAMP.validate_python(value.strip()).date()
        return value


class Member(CamelModel):
    id: str
    name: str
    bio: str = ""
    skills: List[str] = Field(default_factory=list)
    experience_level: ExperienceLevel = "any"
    location: Optional[str] = None
    role: MemberRole = "member"


class ContentItem(CamelModel):
    id: str
    title: str
    excerpt: str = ""
    type: str = "post"
    category: str = "general"


class SearchDocument(CamelModel):
    id: str
    title: str
    description: str = ""
    type: Literal["community", "event", "person", "post", "resource"] = "resource"
    category: Optional[str] = None


class UserActivity(CamelModel):
    joined_communities: List[Community] = Field(default_factory=list)
    attended_events: List[Event] = Field(default_factory=list)
    posts: List[ContentItem] = Field(default_factory=list)
    search_history: List[str] = Field(default_factory=list)


class UserHistory(CamelModel):
    violations: int = Field(default=0, ge=0)
    account_age: Optional[str] = None
    standing: str = "good"


class ModerationContext(CamelModel):
    type: ModeratedContentType = "post"
    community_guidelines: List[str] = Field(default_factory=list)
    user_history: Optional[UserHistory] = None
    report_count: int = Field(default=0, ge=0)


class SpamContext(CamelModel):
    post_frequency: int = Field(default=0, ge=0)
    link_count: int = Field(default=0, ge=0)
    duplicate_content: bool = False
    new_account: bool = False


class SearchUserContext(CamelModel):
    location: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    recent_searches: List[str] = Field(default_factory=list)
    member_communities: List[str] = Field(default_factory=list)


class SearchFeedback(CamelModel):
    clicked_results: List[str] = Field(default_factory=list)
    ignored_results: List[str] = Field(default_factory=list)
    refined_query: Optional[str] = None


class EnhancementContext(CamelModel):
    name: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None


class QuickAction(CamelModel):
    label: str
    action: str
    target: Optional[str] = None


class ConversationStart(CamelModel):
    message: str
    suggestions: List[str]
    quick_actions: List[QuickAction] = Field(default_factory=list)


class FeedbackResult(CamelModel):
    preferences: UserPreferenceProfile
    response: str
    new_recommendations: bool


class ContentSearchResult(CamelModel):
    communities: List[Community] = Field(default_factory=list)
    events: List[Event] = Field(default_factory=list)
    people: List[Member] = Field(default_factory=list)
    total_results: int = 0


class ConversationExport(CamelModel):
    history: List[ConversationTurn]
    context: Dict[str, Any] = Field(default_factory=dict)
    exported_at: str
