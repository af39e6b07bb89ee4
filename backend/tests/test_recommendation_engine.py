import datetime as dt
import json

import pytest

from community_ai.errors import InvalidParameters
from community_ai.models import Community, ContentItem, Event, Member, UserActivity
from community_ai.schemas import InterestSignal, Recommendation, RecommendationProfile
from community_ai.services.recommendation_engine import RecommendationEngine


def _recommendation_reply(ids, kind="community"):
    return json.dumps(
        {
            "recommendations": [
                {
                    "id": item_id,
                    "type": kind,
                    "title": f"Pick {item_id}",
                    "description": "A good fit",
                    "relevanceScore": 0.9 - index * 0.01,
                    "reasoning": "Matches interests",
                    "category": "Technology",
                    "tags": ["tech"],
                }
                for index, item_id in enumerate(ids)
            ],
            "explanations": {
                "primaryFactors": ["interests"],
                "userProfile": "Curious builder",
                "diversityFactors": ["size"],
            },
        }
    )


def _profile():
    return RecommendationProfile(
        interests=[InterestSignal(topic="robotics", strength=0.9, category="tech", keywords=["arduino"])],
        goals=["build a drone"],
        joined_communities=["c1"],
        experience_level="intermediate",
    )


@pytest.mark.asyncio
async def test_community_pool_drops_joined_and_excluded_then_truncates(fake_gateway):
    engine = RecommendationEngine(fake_gateway(primary=[_recommendation_reply(["c0", "c3", "c4"])]))
    communities = [Community(id=f"c{index}", name=f"Club {index}", category="tech") for index in range(30)]

    result = await engine.generate_community_recommendations(_profile(), communities, exclude_ids=["c2"])

    assert [item.id for item in result.recommendations] == ["c0", "c3", "c4"]
    prompt = fake_gateway.primary.requests[0].prompt
    assert "[c1]" not in prompt
    assert "[c2]" not in prompt
    assert "[c0]" in prompt
    assert "[c21]" in prompt
    assert "[c22]" not in prompt
    assert "- Interests: robotics (0.9)" in prompt


@pytest.mark.asyncio
async def test_returned_list_is_capped_at_max_recommendations(fake_gateway):
    ids = [f"id-{index}" for index in range(12)]
    engine = RecommendationEngine(fake_gateway(primary=[_recommendation_reply(ids)]))
    communities = [Community(id=item_id, name=item_id.upper()) for item_id in ids]
    result = await engine.generate_community_recommendations(_profile(), communities, max_recommendations=5)
    assert [item.id for item in result.recommendations] == ids[:5]


@pytest.mark.asyncio
async def test_community_results_outside_pool_are_dropped(fake_gateway):
    reply = _recommendation_reply(["c1", "banned", "invented", "ok"])
    engine = RecommendationEngine(fake_gateway(primary=[reply]))
    communities = [Community(id="c1", name="Joined"), Community(id="banned", name="B"), Community(id="ok", name="Ok")]

    result = await engine.generate_community_recommendations(_profile(), communities, exclude_ids=["banned"])

    assert [item.id for item in result.recommendations] == ["ok"]
    assert result.explanations.user_profile == "Curious builder"


@pytest.mark.asyncio
async def test_joined_communities_returned_when_not_excluded(fake_gateway):
    engine = RecommendationEngine(fake_gateway(primary=[_recommendation_reply(["c1", "ok"])]))
    communities = [Community(id="c1", name="Joined"), Community(id="ok", name="Ok")]

    result = await engine.generate_community_recommendations(_profile(), communities, exclude_joined=False)

    assert [item.id for item in result.recommendations] == ["c1", "ok"]


@pytest.mark.asyncio
async def test_event_pool_can_exclude_online_events(fake_gateway):
    reply = _recommendation_reply(["e2", "e1", "e3", "e9"], "event")
    engine = RecommendationEngine(fake_gateway(primary=[reply]))
    events = [
        Event(id="e1", title="Robot build night", date=dt.date(2024, 2, 1), format="offline"),
        Event(id="e2", title="Webinar", date=dt.date(2024, 2, 2), format="online"),
        Event(id="e3", title="Hybrid demo day", date=dt.date(2024, 2, 3), format="hybrid"),
    ]
    result = await engine.generate_event_recommendations(
        _profile(), events, include_online=False, time_horizon="week"
    )

    assert [item.id for item in result.recommendations] == ["e1", "e3"]
    prompt = fake_gateway.primary.requests[0].prompt
    assert "[e1]" in prompt and "[e3]" in prompt
    assert "[e2]" not in prompt
    assert "- Preferred format: offline only" in prompt
    assert "- Time horizon: week" in prompt


@pytest.mark.asyncio
async def test_event_results_drop_excluded_ids(fake_gateway):
    engine = RecommendationEngine(fake_gateway(primary=[_recommendation_reply(["e1", "e2"], "event")]))
    events = [
        Event(id="e1", title="Meetup", date=dt.date(2024, 2, 1)),
        Event(id="e2", title="Jam", date=dt.date(2024, 2, 2)),
    ]

    result = await engine.generate_event_recommendations(_profile(), events, exclude_ids=["e1"])

    assert [item.id for item in result.recommendations] == ["e2"]


@pytest.mark.asyncio
async def test_content_pool_filters_by_type(fake_gateway):
    engine = RecommendationEngine(fake_gateway(primary=[_recommendation_reply(["p2", "p1"], "content")]))
    content = [
        ContentItem(id="p1", title="Servo basics", type="article"),
        ContentItem(id="p2", title="Meme", type="image"),
    ]
    result = await engine.generate_content_recommendations(_profile(), content, content_types=["article"])

    assert [item.id for item in result.recommendations] == ["p1"]
    prompt = fake_gateway.primary.requests[0].prompt
    assert "[p1]" in prompt
    assert "[p2]" not in prompt
    assert "Recency (weight: 0.2)" in prompt


@pytest.mark.asyncio
async def test_person_recommendations_include_connection_type(fake_gateway):
    reply = _recommendation_reply(["m2", "m1", "ghost"], "person")
    engine = RecommendationEngine(fake_gateway(primary=[reply]))
    members = [
        Member(id="m1", name="Ada", bio="Maker", skills=["CAD", "3D printing"]),
        Member(id="m2", name="Bob", bio="Blocked"),
    ]
    result = await engine.generate_person_recommendations(
        _profile(), members, connection_type="mentor", exclude_ids=["m2"]
    )

    assert [item.id for item in result.recommendations] == ["m1"]
    prompt = fake_gateway.primary.requests[0].prompt
    assert "- Connection type sought: mentor" in prompt
    assert "[m1] Ada: Maker (CAD, 3D printing, any)" in prompt
    assert "[m2]" not in prompt


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "call",
    [
        lambda e, p: e.generate_community_recommendations(p, [], max_recommendations=0),
        lambda e, p: e.generate_community_recommendations(p, [], max_recommendations=51),
        lambda e, p: e.generate_community_recommendations(p, [], diversity_weight=1.5),
        lambda e, p: e.generate_event_recommendations(p, [], time_horizon="year"),
        lambda e, p: e.generate_content_recommendations(p, [], recency_weight=-0.1),
        lambda e, p: e.generate_person_recommendations(p, [], connection_type="rival"),
    ],
)
async def test_invalid_options_rejected_without_calls(fake_gateway, call):
    engine = RecommendationEngine(fake_gateway(primary=["unused"]))
    with pytest.raises(InvalidParameters):
        await call(engine, _profile())
    assert fake_gateway.total_calls == 0


@pytest.mark.asyncio
async def test_analyze_user_interests_summarises_activity(fake_gateway):
    reply = json.dumps(
        {
            "interests": [{"topic": "robotics", "strength": 0.8, "category": "tech", "keywords": ["servo"]}],
            "preferences": {
                "communitySize": "small",
                "activityLevel": "high",
                "interactionStyle": "participant",
                "contentTypes": ["tutorials"],
            },
            "goals": ["ship a robot"],
        }
    )
    engine = RecommendationEngine(fake_gateway(primary=[reply]))
    activity = UserActivity(
        joined_communities=[Community(id="c1", name="Makers", category="tech")],
        search_history=["servo motors"],
    )
    profile = await engine.analyze_user_interests(activity)

    assert profile.preferences.community_size == "small"
    prompt = fake_gateway.primary.requests[0].prompt
    assert "Joined Communities: Makers (tech)" in prompt
    assert "Attended Events: none" in prompt
    assert "Search History: servo motors" in prompt
    assert RecommendationProfile.model_validate(profile.model_dump()).interests[0].topic == "robotics"


@pytest.mark.asyncio
async def test_explain_recommendation_returns_text(fake_gateway):
    engine = RecommendationEngine(fake_gateway(primary=["Because you like robots."]))
    recommendation = Recommendation(
        id="c9",
        type="community",
        title="Drone Club",
        description="Fly things",
        relevance_score=0.9,
        reasoning="robots",
        category="tech",
        tags=[],
    )
    assert await engine.explain_recommendation(recommendation, _profile()) == "Because you like robots."
    assert "Recommendation: Drone Club (community)" in fake_gateway.primary.requests[0].prompt
