import logging
from typing import Any, Iterable, List, Optional, Set, get_args

from community_ai.models import (
    Community,
    ConnectionType,
    ContentItem,
    Event,
    Member,
    TimeHorizon,
    UserActivity,
)
from community_ai.schemas import Recommendation, RecommendationProfile, RecommendationSet, UserInterestProfile
from community_ai.services.model_gateway import ModelGateway
from community_ai.validation import joined, require_choice, require_range

logger = logging.getLogger(__name__)

TIME_HORIZONS = get_args(TimeHorizon)
CONNECTION_TYPES = get_args(ConnectionType)
DEFAULT_CONTENT_TYPES = ["post", "article", "discussion"]

COMMUNITY_POOL_LIMIT = 20
EVENT_POOL_LIMIT = 20
CONTENT_POOL_LIMIT = 30
MEMBER_POOL_LIMIT = 25
MAX_RECOMMENDATIONS = 50

BEHAVIOR_ANALYST_PROMPT = (
    "You are an expert user behavior analyst who understands what drives user engagement and can "
    "identify patterns in user preferences."
)
MATCHMAKER_PROMPT = (
    "You are an expert community matchmaker who understands what makes communities successful for "
    "different types of users."
)
EVENT_CURATOR_PROMPT = (
    "You are an expert event curator who understands what events will provide the most value to different users."
)
CONTENT_CURATOR_PROMPT = (
    "You are an expert content curator who understands what content will engage and educate users effectively."
)
NETWORKER_PROMPT = (
    "You are an expert networker who understands what makes professional relationships successful "
    "and mutually beneficial."
)
ADVISOR_PROMPT = (
    "You are a helpful advisor who explains recommendations in a personal, actionable way that "
    "motivates users to take action."
)


def _interest_summary(profile: RecommendationProfile) -> str:
    return joined([f"{item.topic} ({item.strength})" for item in profile.interests], "not specified")


def _excluded(ids: Optional[Iterable[str]]) -> Set[str]:
    return {item for item in (ids or []) if item}


def build_interest_analysis_prompt(activity: UserActivity) -> str:
    communities = [f"{c.name} ({c.category})" for c in activity.joined_communities]
    events = [f"{e.title} ({e.category or 'general'})" for e in activity.attended_events]
    return (
        "Analyze this user's activity to understand their interests and preferences:\n\n"
        f"Joined Communities: {joined(communities, 'none')}\n"
        f"Attended Events: {joined(events, 'none')}\n"
        f"Recent Posts: {joined([p.title for p in activity.posts], 'none')}\n"
        f"Search History: {joined(activity.search_history, 'none')}\n\n"
        "Extract:\n"
        "1. Primary interests with strength scores\n"
        "2. Preferred community characteristics\n"
        "3. Interaction patterns\n"
        "4. Likely goals and motivations"
    )


def build_community_recommendation_prompt(
    profile: RecommendationProfile,
    communities: List[Community],
    max_recommendations: int,
    diversity_weight: float,
) -> str:
    preferences = profile.preferences
    pool = "\n".join(
        f"[{c.id}] {c.name}: {c.description} ({c.category}, {c.member_count} members)" for c in communities
    )
    return (
        "Recommend communities for this user based on their profile and interests:\n\n"
        "User Profile:\n"
        f"- Interests: {_interest_summary(profile)}\n"
        f"- Current communities: {joined(profile.joined_communities, 'none')}\n"
        f"- Preferred community size: {preferences.community_size if preferences else 'any'}\n"
        f"- Activity level preference: {preferences.activity_level if preferences else 'any'}\n\n"
        "Available Communities:\n"
        f"{pool or 'none'}\n\n"
        f"Provide up to {max_recommendations} recommendations using the ids above, with:\n"
        "- Relevance scores\n"
        "- Clear reasoning for each recommendation\n"
        f"- Diverse mix of communities (diversity weight: {diversity_weight})\n"
        "- Consider user's growth potential"
    )


def build_event_recommendation_prompt(
    profile: RecommendationProfile,
    events: List[Event],
    max_recommendations: int,
    time_horizon: str,
    include_online: bool,
) -> str:
    pool = "\n".join(
        f"[{e.id}] {e.title}: {e.description} ({e.date.isoformat()}, {e.format})" for e in events
    )
    return (
        "Recommend events for this user:\n\n"
        "User Profile:\n"
        f"- Interests: {_interest_summary(profile)}\n"
        f"- Location: {profile.location or 'not specified'}\n"
        f"- Attended events: {joined(profile.attended_events, 'none')}\n"
        f"- Preferred format: {'online and offline' if include_online else 'offline only'}\n"
        f"- Time horizon: {time_horizon}\n\n"
        "Upcoming Events:\n"
        f"{pool or 'none'}\n\n"
        f"Recommend up to {max_recommendations} events using the ids above, considering:\n"
        "- Interest alignment\n"
        "- Schedule compatibility\n"
        "- Skill level appropriateness\n"
        "- Networking opportunities\n"
        "- Learning potential"
    )


def build_content_recommendation_prompt(
    profile: RecommendationProfile,
    content: List[ContentItem],
    max_recommendations: int,
    recency_weight: float,
) -> str:
    reading = profile.preferences.content_types if profile.preferences else []
    pool = "\n".join(f"[{c.id}] {c.title}: {c.excerpt} ({c.type}, {c.category})" for c in content)
    return (
        "Recommend content for this user:\n\n"
        "User Profile:\n"
        f"- Interests: {_interest_summary(profile)}\n"
        f"- Reading preferences: {joined(reading, 'not specified')}\n"
        f"- Engagement history: {profile.engagement_history or 'limited data'}\n\n"
        "Available Content:\n"
        f"{pool or 'none'}\n\n"
        f"Recommend up to {max_recommendations} pieces of content using the ids above, considering:\n"
        "- Interest relevance\n"
        "- Content quality and engagement\n"
        "- Diversity of perspectives\n"
        "- Learning progression\n"
        f"- Recency (weight: {recency_weight})"
    )


def build_person_recommendation_prompt(
    profile: RecommendationProfile,
    members: List[Member],
    connection_type: str,
    max_recommendations: int,
) -> str:
    pool = "\n".join(
        f"[{m.id}] {m.name}: {m.bio} ({joined(m.skills, 'no listed skills')}, {m.experience_level})"
        for m in members
    )
    return (
        "Recommend people for this user to connect with:\n\n"
        "User Profile:\n"
        f"- Interests: {_interest_summary(profile)}\n"
        f"- Experience level: {profile.experience_level or 'not specified'}\n"
        f"- Goals: {joined(profile.goals, 'not specified')}\n"
        f"- Connection type sought: {connection_type}\n\n"
        "Community Members:\n"
        f"{pool or 'none'}\n\n"
        f"Recommend up to {max_recommendations} people using the ids above, considering:\n"
        "- Complementary skills and interests\n"
        "- Experience level compatibility\n"
        "- Mutual benefit potential\n"
        "- Communication style fit\n"
        "- Shared communities or events"
    )


def build_explanation_prompt(recommendation: Recommendation, profile: RecommendationProfile) -> str:
    top_interests = joined([item.topic for item in profile.interests[:3]], "not specified")
    return (
        "Explain why this recommendation is good for the user:\n\n"
        f"Recommendation: {recommendation.title} ({recommendation.type})\n"
        f"Description: {recommendation.description}\n\n"
        "User Profile Summary:\n"
        f"- Primary interests: {top_interests}\n"
        f"- Goals: {joined(profile.goals, 'not specified')}\n"
        f"- Experience level: {profile.experience_level or 'not specified'}\n\n"
        "Provide a clear, personalized explanation of:\n"
        "1. Why this matches their interests\n"
        "2. How it helps achieve their goals\n"
        "3. What specific benefits they'll get\n"
        "4. Next steps they should take"
    )


class RecommendationEngine:
    """Ranks caller-supplied candidates; it never loads candidates itself."""

    def __init__(self, gateway: ModelGateway) -> None:
        self.gateway = gateway

    async def analyze_user_interests(self, activity: UserActivity) -> UserInterestProfile:
        return await self.gateway.generate_structured(
            build_interest_analysis_prompt(activity),
            UserInterestProfile,
            system_prompt=BEHAVIOR_ANALYST_PROMPT,
        )

    async def generate_community_recommendations(
        self,
        profile: RecommendationProfile,
        communities: List[Community],
        max_recommendations: int = 10,
        diversity_weight: float = 0.3,
        exclude_joined: bool = True,
        exclude_ids: Optional[List[str]] = None,
    ) -> RecommendationSet:
        require_range("max_recommendations", max_recommendations, 1, MAX_RECOMMENDATIONS)
        require_range("diversity_weight", diversity_weight, 0, 1)
        excluded = _excluded(exclude_ids)
        if exclude_joined:
            excluded |= set(profile.joined_communities)
        pool = [c for c in communities if c.id not in excluded and c.name not in excluded][:COMMUNITY_POOL_LIMIT]
        prompt = build_community_recommendation_prompt(profile, pool, max_recommendations, diversity_weight)
        result = await self.gateway.generate_structured(prompt, RecommendationSet, system_prompt=MATCHMAKER_PROMPT)
        return self._select(result, pool, max_recommendations)

    async def generate_event_recommendations(
        self,
        profile: RecommendationProfile,
        events: List[Event],
        max_recommendations: int = 8,
        time_horizon: str = "month",
        include_online: bool = True,
        exclude_ids: Optional[List[str]] = None,
    ) -> RecommendationSet:
        require_range("max_recommendations", max_recommendations, 1, MAX_RECOMMENDATIONS)
        require_choice("time_horizon", time_horizon, TIME_HORIZONS)
        excluded = _excluded(exclude_ids)
        pool = [e for e in events if e.id not in excluded and (include_online or e.format != "online")]
        pool = pool[:EVENT_POOL_LIMIT]
        prompt = build_event_recommendation_prompt(profile, pool, max_recommendations, time_horizon, include_online)
        result = await self.gateway.generate_structured(prompt, RecommendationSet, system_prompt=EVENT_CURATOR_PROMPT)
        return self._select(result, pool, max_recommendations)

    async def generate_content_recommendations(
        self,
        profile: RecommendationProfile,
        content: List[ContentItem],
        content_types: Optional[List[str]] = None,
        max_recommendations: int = 15,
        recency_weight: float = 0.2,
        exclude_ids: Optional[List[str]] = None,
    ) -> RecommendationSet:
        require_range("max_recommendations", max_recommendations, 1, MAX_RECOMMENDATIONS)
        require_range("recency_weight", recency_weight, 0, 1)
        wanted = set(content_types or DEFAULT_CONTENT_TYPES)
        excluded = _excluded(exclude_ids)
        pool = [c for c in content if c.id not in excluded and c.type in wanted][:CONTENT_POOL_LIMIT]
        prompt = build_content_recommendation_prompt(profile, pool, max_recommendations, recency_weight)
        result = await self.gateway.generate_structured(
            prompt, RecommendationSet, system_prompt=CONTENT_CURATOR_PROMPT
        )
        return self._select(result, pool, max_recommendations)

    async def generate_person_recommendations(
        self,
        profile: RecommendationProfile,
        members: List[Member],
        connection_type: str = "peer",
        max_recommendations: int = 8,
        exclude_ids: Optional[List[str]] = None,
    ) -> RecommendationSet:
        require_range("max_recommendations", max_recommendations, 1, MAX_RECOMMENDATIONS)
        require_choice("connection_type", connection_type, CONNECTION_TYPES)
        excluded = _excluded(exclude_ids)
        pool = [m for m in members if m.id not in excluded][:MEMBER_POOL_LIMIT]
        prompt = build_person_recommendation_prompt(profile, pool, connection_type, max_recommendations)
        result = await self.gateway.generate_structured(prompt, RecommendationSet, system_prompt=NETWORKER_PROMPT)
        return self._select(result, pool, max_recommendations)

    async def explain_recommendation(self, recommendation: Recommendation, profile: RecommendationProfile) -> str:
        return await self.gateway.generate_text(
            build_explanation_prompt(recommendation, profile), system_prompt=ADVISOR_PROMPT
        )

    @staticmethod
    def _select(result: RecommendationSet, pool: Iterable[Any], limit: int) -> RecommendationSet:
        """Keep only candidates that were offered in the prompt, then cap the list."""
        offered = {candidate.id for candidate in pool}
        kept = [item for item in result.recommendations if item.id in offered]
        dropped = len(result.recommendations) - len(kept)
        if dropped:
            logger.warning("Dropped %d recommendation(s) outside the candidate pool", dropped)
        if len(kept) > limit:
            logger.info("Trimming %d recommendations to %d", len(kept), limit)
        return result.model_copy(update={"recommendations": kept[:limit]})
