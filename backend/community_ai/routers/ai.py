from fastapi import APIRouter, Depends

from community_ai.api_models import (
    AnalyzeContentRequest,
    CommunityDescriptionRequest,
    CommunityGuidelinesRequest,
    CommunityPostRequest,
    CommunityRecommendationsRequest,
    ContentQualityRequest,
    ContentRecommendationsRequest,
    DetectSpamRequest,
    DiscussionStartersRequest,
    EnhanceContentRequest,
    EnhanceSearchQueryRequest,
    EventDescriptionRequest,
    EventRecommendationsRequest,
    ExplainRecommendationRequest,
    ExplainSearchResultsRequest,
    HashtagsRequest,
    ImproveContentRequest,
    ModerateContentRequest,
    ModerationSummaryRequest,
    PersonRecommendationsRequest,
    SearchIntentRequest,
    SearchSuggestionsRequest,
    SemanticSearchRequest,
    SuggestGuidelinesRequest,
    TextResult,
    UserInterestsRequest,
)
from community_ai.dependencies import require_feature
from community_ai.schemas import (
    CommunityDescription,
    CommunityGuidelines,
    CommunityPost,
    ContentQualityReport,
    EventDescription,
    ModerationResult,
    RecommendationSet,
    SearchIntent,
    SemanticSearchResult,
    UserInterestProfile,
)
from community_ai.services.container import ServiceContainer

router = APIRouter(prefix="/ai", tags=["ai"])

content_feature = require_feature("content_generation")
analysis_feature = require_feature("sentiment_analysis")
moderation_feature = require_feature("auto_moderation")
search_feature = require_feature("smart_search")
recommendation_feature = require_feature("recommendations")


# Content generation


@router.post("/generate/community-post", response_model=CommunityPost)
async def generate_community_post(request: CommunityPostRequest, services: ServiceContainer = Depends(content_feature)):
    return await services.content.generate_community_post(
        topic=request.topic,
        community_type=request.community_type,
        tone=request.tone,
        target_audience=request.target_audience,
        keywords=request.keywords,
    )


@router.post("/generate/event-description", response_model=EventDescription)
async def generate_event_description(
    request: EventDescriptionRequest, services: ServiceContainer = Depends(content_feature)
):
    return await services.content.generate_event_description(
        event_type=request.event_type,
        topic=request.topic,
        duration=request.duration,
        format=request.format,
        skill_level=request.skill_level,
    )


@router.post("/generate/community-guidelines", response_model=CommunityGuidelines)
async def generate_community_guidelines(
    request: CommunityGuidelinesRequest, services: ServiceContainer = Depends(content_feature)
):
    return await services.content.generate_community_guidelines(
        community_name=request.community_name,
        community_type=request.community_type,
        values=request.values,
        specific_rules=request.specific_rules,
    )


@router.post("/generate/discussion-starters", response_model=TextResult)
async def generate_discussion_starters(
    request: DiscussionStartersRequest, services: ServiceContainer = Depends(content_feature)
):
    text = await services.content.generate_discussion_starters(
        community_type=request.community_type,
        recent_topics=request.recent_topics,
        member_interests=request.member_interests,
        count=request.count,
    )
    return TextResult(text=text)


@router.post("/generate/hashtags", response_model=TextResult)
async def generate_hashtags(request: HashtagsRequest, services: ServiceContainer = Depends(content_feature)):
    return TextResult(text=await services.content.generate_hashtags(request.content, request.max_count))


@router.post("/generate/community-description", response_model=CommunityDescription)
async def generate_community_description(
    request: CommunityDescriptionRequest, services: ServiceContainer = Depends(content_feature)
):
    return await services.content.generate_community_description(
        name=request.name,
        category=request.category,
        tags=request.tags,
        location=request.location,
    )


@router.post("/improve-content", response_model=TextResult)
async def improve_content(request: ImproveContentRequest, services: ServiceContainer = Depends(content_feature)):
    return TextResult(text=await services.content.improve_content(request.content, request.improvement_type))


@router.post("/enhance-content", response_model=TextResult)
async def enhance_content(request: EnhanceContentRequest, services: ServiceContainer = Depends(content_feature)):
    text = await services.content.enhance_content(
        content=request.content,
        content_type=request.content_type,
        enhancement_type=request.enhancement_type,
        tone=request.tone,
        context=request.context,
        custom_prompt=request.custom_prompt,
    )
    return TextResult(text=text)


# Analysis and moderation


@router.post("/analyze-content")
async def analyze_content(request: AnalyzeContentRequest, services: ServiceContainer = Depends(analysis_feature)):
    result = await services.gateway.analyze_content(request.content, request.analysis_type)
    payload = result.model_dump(by_alias=True)
    payload["withinScale"] = result.within_scale(request.analysis_type)
    return payload


@router.post("/content-quality", response_model=ContentQualityReport)
async def content_quality(request: ContentQualityRequest, services: ServiceContainer = Depends(analysis_feature)):
    return await services.moderation.analyze_content_quality(request.content, request.content_type)


@router.post("/moderate-content", response_model=ModerationResult)
async def moderate_content(request: ModerateContentRequest, services: ServiceContainer = Depends(moderation_feature)):
    return await services.moderation.moderate_content(request.content, request.context)


@router.post("/detect-spam", response_model=TextResult)
async def detect_spam(request: DetectSpamRequest, services: ServiceContainer = Depends(moderation_feature)):
    return TextResult(text=await services.moderation.detect_spam(request.content, request.user_context))


@router.post("/moderation-summary", response_model=TextResult)
async def moderation_summary(
    request: ModerationSummaryRequest, services: ServiceContainer = Depends(moderation_feature)
):
    return TextResult(text=await services.moderation.generate_moderation_summary(request.results, request.timeframe))


@router.post("/suggest-guidelines", response_model=TextResult)
async def suggest_guidelines(
    request: SuggestGuidelinesRequest, services: ServiceContainer = Depends(moderation_feature)
):
    text = await services.moderation.suggest_community_guidelines(request.community_type, request.existing_issues)
    return TextResult(text=text)


# Search


@router.post("/analyze-search-intent", response_model=SearchIntent)
async def analyze_search_intent(request: SearchIntentRequest, services: ServiceContainer = Depends(search_feature)):
    return await services.search.analyze_search_intent(request.query, request.user_context)


@router.post("/search-suggestions", response_model=TextResult)
async def search_suggestions(
    request: SearchSuggestionsRequest, services: ServiceContainer = Depends(search_feature)
):
    text = await services.search.generate_search_suggestions(request.partial_query, request.user_context)
    return TextResult(text=text)


@router.post("/enhance-search-query", response_model=TextResult)
async def enhance_search_query(
    request: EnhanceSearchQueryRequest, services: ServiceContainer = Depends(search_feature)
):
    text = await services.search.enhance_search_query(request.original_query, request.results, request.user_feedback)
    return TextResult(text=text)


@router.post("/semantic-search", response_model=SemanticSearchResult)
async def semantic_search(request: SemanticSearchRequest, services: ServiceContainer = Depends(search_feature)):
    return await services.search.semantic_search(
        request.query,
        request.documents,
        threshold=request.threshold,
        max_results=request.max_results,
    )


@router.post("/explain-search-results", response_model=TextResult)
async def explain_search_results(
    request: ExplainSearchResultsRequest, services: ServiceContainer = Depends(search_feature)
):
    return TextResult(text=await services.search.explain_search_results(request.query, request.results))


# Recommendations


@router.post("/user-interests", response_model=UserInterestProfile)
async def user_interests(request: UserInterestsRequest, services: ServiceContainer = Depends(recommendation_feature)):
    return await services.recommendations.analyze_user_interests(request.activity)


@router.post("/recommendations/communities", response_model=RecommendationSet)
async def recommend_communities(
    request: CommunityRecommendationsRequest, services: ServiceContainer = Depends(recommendation_feature)
):
    return await services.recommendations.generate_community_recommendations(
        request.profile,
        request.communities,
        max_recommendations=request.max_recommendations,
        diversity_weight=request.diversity_weight,
        exclude_joined=request.exclude_joined,
        exclude_ids=request.exclude_ids,
    )


@router.post("/recommendations/events", response_model=RecommendationSet)
async def recommend_events(
    request: EventRecommendationsRequest, services: ServiceContainer = Depends(recommendation_feature)
):
    return await services.recommendations.generate_event_recommendations(
        request.profile,
        request.events,
        max_recommendations=request.max_recommendations,
        time_horizon=request.time_horizon,
        include_online=request.include_online,
        exclude_ids=request.exclude_ids,
    )


@router.post("/recommendations/content", response_model=RecommendationSet)
async def recommend_content(
    request: ContentRecommendationsRequest, services: ServiceContainer = Depends(recommendation_feature)
):
    return await services.recommendations.generate_content_recommendations(
        request.profile,
        request.content,
        content_types=request.content_types,
        max_recommendations=request.max_recommendations,
        recency_weight=request.recency_weight,
        exclude_ids=request.exclude_ids,
    )


@router.post("/recommendations/people", response_model=RecommendationSet)
async def recommend_people(
    request: PersonRecommendationsRequest, services: ServiceContainer = Depends(recommendation_feature)
):
    return await services.recommendations.generate_person_recommendations(
        request.profile,
        request.members,
        connection_type=request.connection_type,
        max_recommendations=request.max_recommendations,
        exclude_ids=request.exclude_ids,
    )


@router.post("/recommendations/explain", response_model=TextResult)
async def explain_recommendation(
    request: ExplainRecommendationRequest, services: ServiceContainer = Depends(recommendation_feature)
):
    text = await services.recommendations.explain_recommendation(request.recommendation, request.profile)
    return TextResult(text=text)
