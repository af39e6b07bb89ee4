import importlib
import json

from fastapi.testclient import TestClient

from community_ai import config, main
from community_ai.main import create_app
from community_ai.services.container import build_services
from fakes import API_KEY_ENV_VARS, FakeBackend, make_settings


def _client(primary=None, fallback=None, **settings_overrides):
    settings = make_settings(**settings_overrides)
    backends = {"primary": FakeBackend("primary", primary), "fallback": FakeBackend("fallback", fallback)}
    services = build_services(settings, backends=backends)
    return TestClient(create_app(settings=settings, services=services)), backends


def test_health_and_ready():
    client, _ = _client()
    assert client.get("/health").json() == {"status": "ok"}

    ready = client.get("/ready").json()
    assert ready["status"] == "ready"
    assert ready["backends"] == {"primary": True, "fallback": True}
    assert ready["features"]["chatbot"] is True


def test_generate_community_post_uses_camel_case():
    reply = json.dumps(
        {"title": "Hi", "content": "Body", "tags": ["a"], "category": "General", "tone": "casual"}
    )
    client, backends = _client(primary=[reply])
    response = client.post("/ai/generate/community-post", json={"topic": "welcome", "communityType": "tech"})

    assert response.status_code == 200
    assert response.json()["tone"] == "casual"
    assert backends["primary"].calls == 1


def test_event_description_with_camel_case_target_audience():
    reply = json.dumps(
        {
            "title": "Intro to Rust",
            "description": "Learn Rust",
            "agenda": ["Setup"],
            "targetAudience": "Beginners",
            "expectedOutcomes": ["Hello world"],
        }
    )
    client, _ = _client(primary=[reply])
    response = client.post(
        "/ai/generate/event-description",
        json={"eventType": "workshop", "topic": "Rust", "duration": "2h", "format": "online", "skillLevel": "beginner"},
    )
    assert response.status_code == 200
    assert response.json()["targetAudience"] == "Beginners"


def test_invalid_enum_rejected_at_request_boundary():
    client, backends = _client(primary=["unused"])
    response = client.post(
        "/ai/generate/event-description",
        json={"eventType": "workshop", "topic": "AI", "duration": "1h", "format": "telepresence"},
    )
    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"] == ["body", "format"]

    for path, body in [
        ("/ai/generate/community-post", {"topic": "hi", "communityType": "tech", "tone": "sarcastic"}),
        ("/ai/recommendations/people", {"connectionType": "rival"}),
        ("/ai/recommendations/events", {"timeHorizon": "year"}),
    ]:
        assert client.post(path, json=body).status_code == 422
    assert backends["primary"].calls == 0


def test_request_enums_are_published_in_openapi():
    client, _ = _client()
    schemas = client.get("/openapi.json").json()["components"]["schemas"]
    assert schemas["CommunityPostRequest"]["properties"]["tone"]["enum"] == [
        "professional",
        "casual",
        "enthusiastic",
        "informative",
    ]
    assert schemas["EventDescriptionRequest"]["properties"]["skillLevel"]["enum"] == [
        "beginner",
        "intermediate",
        "advanced",
        "all",
    ]


def test_invalid_parameters_map_to_400_without_backend_call():
    client, backends = _client(primary=["unused"])
    response = client.post("/ai/generate/discussion-starters", json={"communityType": "tech", "count": 0})
    assert response.status_code == 400
    assert "count" in response.json()["error"]
    assert backends["primary"].calls == 0


def test_missing_body_field_is_422():
    client, _ = _client()
    assert client.post("/ai/improve-content", json={"content": "text"}).status_code == 422


def test_generation_failure_maps_to_502():
    client, backends = _client(primary=[RuntimeError("a")], fallback=[RuntimeError("b")])
    response = client.post("/ai/generate/hashtags", json={"content": "Pottery night"})

    assert response.status_code == 502
    assert response.json() == {"error": "AI generation failed. Please try again."}
    assert backends["primary"].calls == 1 and backends["fallback"].calls == 1


def test_disabled_feature_is_503():
    features = {name: True for name in ("content_generation", "smart_search", "recommendations",
                                        "sentiment_analysis", "auto_moderation", "chatbot")}
    features["smart_search"] = False
    client, backends = _client(primary=["unused"], features=features)

    response = client.post("/ai/search-suggestions", json={"partialQuery": "yo"})
    assert response.status_code == 503
    assert backends["primary"].calls == 0


def test_analyze_content_reports_within_scale():
    reply = json.dumps({"score": -0.4, "reasoning": "Grumpy", "confidence": 0.8})
    client, _ = _client(primary=[reply])
    response = client.post("/ai/analyze-content", json={"content": "Meh.", "analysisType": "sentiment"})

    assert response.status_code == 200
    assert response.json() == {"score": -0.4, "reasoning": "Grumpy", "confidence": 0.8, "withinScale": True}


def test_text_operations_wrap_result():
    client, _ = _client(primary=["#pottery\n#clay"])
    response = client.post("/ai/generate/hashtags", json={"content": "Pottery night", "maxCount": 2})
    assert response.json() == {"text": "#pottery\n#clay"}


def test_chat_session_flow():
    reply = json.dumps({"response": "Try the Jakarta Book Club!", "actionType": "show_recommendations"})
    client, _ = _client(primary=[reply])

    start = client.post("/chat/start", json={"context": "discover"}).json()
    session_id = start["sessionId"]
    assert start["quickActions"][0]["target"] == "/discover"

    message = client.post("/chat/message", json={"sessionId": session_id, "message": "I like books"}).json()
    assert message["actionType"] == "show_recommendations"
    assert message["sessionId"] == session_id

    history = client.get(f"/chat/{session_id}/history").json()
    assert [turn["role"] for turn in history["history"]] == ["assistant", "user", "assistant"]
    assert history["context"] == {"context": "discover"}

    assert client.delete(f"/chat/{session_id}").json()["deleted"] is True
    assert client.get(f"/chat/{session_id}/history").status_code == 404


def test_chat_message_never_fails_on_backend_errors():
    client, _ = _client(primary=[RuntimeError("a")], fallback=[RuntimeError("b")])
    response = client.post("/chat/message", json={"sessionId": "s1", "message": "hello"})

    assert response.status_code == 200
    assert response.json()["actionType"] == "continue_conversation"


def test_chat_calendar_and_search_are_deterministic():
    client, backends = _client()
    events = [
        {"id": "e1", "title": "Book swap", "date": "2099-01-01", "location": "Jakarta"},
        {"id": "e2", "title": "Run club", "date": "2099-01-02T18:30:00Z", "location": "Bandung"},
    ]
    calendar = client.post("/chat/calendar", json={"query": "all my events", "events": events})
    assert [event["id"] for event in calendar.json()["events"]] == ["e1", "e2"]
    assert calendar.json()["events"][1]["date"] == "2099-01-02"

    search = client.post(
        "/chat/search",
        json={
            "query": "book jakarta",
            "communities": [{"id": "c1", "name": "Jakarta Book Club", "location": "Jakarta"}],
            "events": events,
        },
    ).json()
    assert [c["id"] for c in search["communities"]] == ["c1"]
    assert [e["id"] for e in search["events"]] == ["e1"]
    assert search["totalResults"] == 2
    assert backends["primary"].calls == 0


def test_chat_support_uses_help_table():
    client, _ = _client()
    answer = client.post("/chat/support", json={"query": "Where are my privacy settings?"}).json()["answer"]
    assert "privacy settings" in answer


def test_recommendations_route_caps_results():
    reply = json.dumps(
        {
            "recommendations": [
                {
                    "id": f"c{index}",
                    "type": "community",
                    "title": f"C{index}",
                    "description": "",
                    "relevanceScore": 0.5,
                    "reasoning": "fit",
                    "category": "x",
                    "tags": [],
                }
                for index in range(4)
            ],
            "explanations": {"primaryFactors": [], "userProfile": "", "diversityFactors": []},
        }
    )
    client, _ = _client(primary=[reply])
    response = client.post(
        "/ai/recommendations/communities",
        json={
            "communities": [{"id": f"c{index}", "name": f"C{index}"} for index in range(4)],
            "maxRecommendations": 2,
        },
    )
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["recommendations"]] == ["c0", "c1"]


def test_importing_main_does_not_build_an_app(monkeypatch):
    def refuse():
        raise AssertionError("settings must not load at import time")

    monkeypatch.setattr(config, "load_settings", refuse)
    try:
        module = importlib.reload(main)
        assert not hasattr(module, "app")
    finally:
        monkeypatch.undo()
        importlib.reload(main)


def test_factory_without_arguments_reads_environment(monkeypatch):
    for name in API_KEY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AI_FEATURE_CHATBOT", "false")

    ready = TestClient(create_app()).get("/ready").json()
    assert ready["status"] == "degraded"
    assert ready["backends"] == {"primary": False, "fallback": False}
    assert ready["features"]["chatbot"] is False
