import json
import logging

import pytest

from community_ai.errors import GenerationFailure, InvalidParameters
from community_ai.schemas import ContentAnalysisScore, StructuredResponse
from community_ai.services.model_gateway import parse_json_payload


class Pair(StructuredResponse):
    a: int
    b: int


@pytest.mark.asyncio
async def test_primary_success_makes_single_call(fake_gateway):
    gateway = fake_gateway(primary=["hello"])
    assert await gateway.generate_text("Say hello") == "hello"
    assert fake_gateway.primary.calls == 1
    assert fake_gateway.fallback.calls == 0


@pytest.mark.asyncio
async def test_primary_failure_retries_once_on_fallback_with_same_options(fake_gateway):
    gateway = fake_gateway(primary=[TimeoutError("slow")], fallback=["from fallback"])
    result = await gateway.generate_text("Say hello", max_tokens=321, temperature=0.2)

    assert result == "from fallback"
    assert fake_gateway.primary.calls == 1
    assert fake_gateway.fallback.calls == 1
    first, second = fake_gateway.primary.requests[0], fake_gateway.fallback.requests[0]
    assert first.prompt == second.prompt
    assert first.system_prompt == second.system_prompt
    assert (first.max_tokens, first.temperature) == (second.max_tokens, second.temperature) == (321, 0.2)


@pytest.mark.asyncio
async def test_both_backends_failing_raises_generation_failure(fake_gateway):
    gateway = fake_gateway(primary=[RuntimeError("rate limited")], fallback=[ConnectionError("down")])
    with pytest.raises(GenerationFailure) as excinfo:
        await gateway.generate_text("Say hello")

    assert fake_gateway.total_calls == 2
    assert excinfo.value.attempts == ["primary", "fallback"]
    assert isinstance(excinfo.value.cause, ConnectionError)
    assert excinfo.value.__cause__ is excinfo.value.cause


@pytest.mark.asyncio
async def test_requesting_fallback_never_touches_primary(fake_gateway):
    gateway = fake_gateway(primary=["unused"], fallback=[RuntimeError("down")])
    with pytest.raises(GenerationFailure) as excinfo:
        await gateway.generate_text("Say hello", backend="fallback")

    assert fake_gateway.primary.calls == 0
    assert fake_gateway.fallback.calls == 1
    assert excinfo.value.attempts == ["fallback"]


@pytest.mark.asyncio
async def test_empty_content_counts_as_failed_attempt(fake_gateway):
    gateway = fake_gateway(primary=[ValueError("no content")], fallback=["ok"])
    assert await gateway.generate_text("Say hello") == "ok"


@pytest.mark.asyncio
async def test_structured_missing_field_falls_back(fake_gateway):
    gateway = fake_gateway(primary=['{"a": 1}'], fallback=['{"a": 1, "b": 2}'])
    result = await gateway.generate_structured("Give me a pair", Pair)

    assert result == Pair(a=1, b=2)
    assert fake_gateway.total_calls == 2


@pytest.mark.asyncio
async def test_structured_missing_field_on_both_backends_fails(fake_gateway):
    gateway = fake_gateway(primary=['{"a": 1}'], fallback=['{"a": 2}'])
    with pytest.raises(GenerationFailure):
        await gateway.generate_structured("Give me a pair", Pair)
    assert fake_gateway.total_calls == 2


@pytest.mark.asyncio
async def test_structured_extra_field_is_rejected(fake_gateway):
    reply = '{"a": 1, "b": 2, "c": 3}'
    gateway = fake_gateway(primary=[reply], fallback=[reply])
    with pytest.raises(GenerationFailure):
        await gateway.generate_structured("Give me a pair", Pair)


@pytest.mark.asyncio
async def test_structured_invalid_json_consumes_the_fallback(fake_gateway):
    gateway = fake_gateway(primary=["not json at all"], fallback=['{"a": 3, "b": 4}'])
    assert await gateway.generate_structured("Give me a pair", Pair) == Pair(a=3, b=4)


@pytest.mark.asyncio
async def test_structured_request_asks_for_json_and_embeds_schema(fake_gateway):
    gateway = fake_gateway(primary=['{"a": 1, "b": 2}'])
    await gateway.generate_structured("Give me a pair", Pair)

    request = fake_gateway.primary.requests[0]
    assert request.json_mode is True
    assert request.prompt.startswith("Give me a pair")
    assert "Respond with valid JSON only" in request.prompt
    assert '"required": ["a", "b"]' in request.prompt
    assert (request.max_tokens, request.temperature) == (2000, 0.5)


def test_parse_json_payload_strips_fences_and_nulls():
    raw = '```json\n{"a": 1, "b": null, "items": [{"x": null, "y": 2}]}\n```'
    assert parse_json_payload(raw) == {"a": 1, "items": [{"y": 2}]}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"prompt": ""},
        {"prompt": "   "},
        {"prompt": "hi", "max_tokens": 0},
        {"prompt": "hi", "temperature": 2.5},
        {"prompt": "hi", "temperature": -0.1},
        {"prompt": "hi", "backend": "tertiary"},
    ],
)
async def test_invalid_parameters_rejected_before_any_call(fake_gateway, kwargs):
    gateway = fake_gateway(primary=["unused"])
    with pytest.raises(InvalidParameters):
        await gateway.generate_text(**kwargs)
    assert fake_gateway.total_calls == 0


@pytest.mark.asyncio
async def test_analyze_content_rejects_unknown_type(fake_gateway):
    gateway = fake_gateway(primary=["unused"])
    with pytest.raises(InvalidParameters):
        await gateway.analyze_content("hello", "virality")
    assert fake_gateway.total_calls == 0


@pytest.mark.asyncio
async def test_analyze_content_is_stable_against_deterministic_backend(fake_gateway):
    reply = json.dumps({"score": 0.8, "reasoning": "Warm and upbeat.", "confidence": 0.9})
    gateway = fake_gateway(primary=[reply, reply])

    first = await gateway.analyze_content("What a lovely meetup!", "sentiment")
    second = await gateway.analyze_content("What a lovely meetup!", "sentiment")

    assert first == second
    assert isinstance(first, ContentAnalysisScore)
    assert first.within_scale("sentiment")
    request = fake_gateway.primary.requests[0]
    assert request.temperature == 0.3
    assert "expert content analyst" in request.system_prompt


@pytest.mark.asyncio
async def test_analyze_content_passes_out_of_scale_scores_through(fake_gateway):
    reply = json.dumps({"score": 1.7, "reasoning": "Very toxic.", "confidence": 0.5})
    gateway = fake_gateway(primary=[reply])
    result = await gateway.analyze_content("some text", "toxicity")
    assert result.score == 1.7
    assert not result.within_scale("toxicity")


@pytest.mark.asyncio
async def test_analyze_content_confidence_outside_unit_range_fails(fake_gateway):
    reply = json.dumps({"score": 0.1, "reasoning": "fine", "confidence": 1.5})
    gateway = fake_gateway(primary=[reply], fallback=[reply])
    with pytest.raises(GenerationFailure):
        await gateway.analyze_content("some text", "quality")


@pytest.mark.asyncio
async def test_telemetry_line_is_logged(fake_gateway, caplog):
    gateway = fake_gateway(primary=[RuntimeError("boom")], fallback=["ok"])
    with caplog.at_level(logging.INFO, logger="community_ai.services.model_gateway"):
        await gateway.generate_text("Say hello")

    lines = [record.getMessage() for record in caplog.records if "generation_telemetry=" in record.getMessage()]
    assert len(lines) == 1
    payload = json.loads(lines[0].split("generation_telemetry=", 1)[1])
    assert payload["attempted_backends"] == ["primary", "fallback"]
    assert payload["served_backend"] == "fallback"
    assert payload["success"] is True
