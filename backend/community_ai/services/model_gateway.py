import json
import logging
import re
import time
from typing import Any, Dict, List, Optional, Protocol, Type, TypeVar

from openai import AsyncOpenAI
from pydantic import ValidationError

from community_ai.config import BackendConfig
from community_ai.errors import BackendUnavailable, GenerationFailure, InvalidParameters
from community_ai.models import GenerationRequest
from community_ai.schemas import ContentAnalysisScore, StructuredResponse

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=StructuredResponse)

BACKEND_NAMES = ("primary", "fallback")
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant for a community platform. "
    "Provide accurate, helpful, and engaging responses."
)
JSON_SYSTEM_PROMPT = "You are a helpful AI assistant that responds with valid JSON."
ANALYST_SYSTEM_PROMPT = (
    "You are an expert content analyst. Provide accurate, unbiased analysis in JSON format."
)
_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

ANALYSIS_PROMPTS = {
    "sentiment": (
        "Analyze the sentiment of this content and return a JSON object with:\n"
        "- score: a number from -1 (very negative) to 1 (very positive)\n"
        "- reasoning: a brief explanation\n"
        "- confidence: a number from 0 to 1\n\n"
        'Content: "{content}"'
    ),
    "toxicity": (
        "Analyze this content for toxicity. Return a JSON object with:\n"
        "- score: a number from 0 (safe) to 1 (toxic)\n"
        "- reasoning: a brief explanation\n"
        "- confidence: a number from 0 to 1\n\n"
        'Content: "{content}"'
    ),
    "quality": (
        "Analyze the quality of this content. Return a JSON object with:\n"
        "- score: a number from 0 (poor) to 1 (excellent)\n"
        "- reasoning: a brief explanation\n"
        "- confidence: a number from 0 to 1\n\n"
        'Content: "{content}"'
    ),
}


class ModelBackend(Protocol):
    name: str

    async def complete(self, request: GenerationRequest) -> str:
        ...


class OpenAIChatBackend:
    """Chat-completions backend for any OpenAI-compatible endpoint."""

    def __init__(self, config: BackendConfig) -> None:
        self.name = config.name
        self.config = config
        self._client = None

    @property
    def available(self) -> bool:
        return self.config.configured

    def _get_client(self):
        if self._client is None:
            if not self.available:
                raise BackendUnavailable(f"Model backend '{self.name}' is not configured.")
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
            )
        return self._client

    async def complete(self, request: GenerationRequest) -> str:
        client = self._get_client()
        options: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.prompt},
            ],
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.json_mode:
            options["response_format"] = {"type": "json_object"}
        response = await client.chat.completions.create(**options)
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError(f"Model backend '{self.name}' returned no content.")
        return content


def _drop_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _drop_nulls(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [_drop_nulls(item) for item in value]
    return value


def parse_json_payload(raw: str) -> Any:
    text = raw.strip()
    match = _CODE_FENCE.match(text)
    if match:
        text = match.group(1)
    return _drop_nulls(json.loads(text))


def structured_prompt(prompt: str, schema: Type[StructuredResponse]) -> str:
    return (
        f"{prompt}\n\n"
        "Respond with valid JSON only, no additional text. "
        "The JSON object must match this JSON schema exactly (no extra keys):\n"
        f"{json.dumps(schema.model_json_schema(by_alias=True), sort_keys=True)}"
    )


class ModelGateway:
    """Single entry point for model calls with one fallback retry."""

    def __init__(self, backends: Dict[str, ModelBackend], telemetry_enabled: bool = True) -> None:
        self.backends = backends
        self.telemetry_enabled = telemetry_enabled

    @property
    def configured_backends(self) -> List[str]:
        return [name for name in BACKEND_NAMES if getattr(self.backends.get(name), "available", True)]

    async def generate_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        backend: str = "primary",
    ) -> str:
        request = self._build_request(prompt, system_prompt or DEFAULT_SYSTEM_PROMPT, max_tokens, temperature, backend)
        return await self._run("generate_text", request, lambda raw: raw)

    async def generate_structured(
        self,
        prompt: str,
        schema: Type[T],
        system_prompt: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.5,
        backend: str = "primary",
    ) -> T:
        if not (isinstance(schema, type) and issubclass(schema, StructuredResponse)):
            raise InvalidParameters("schema must be a StructuredResponse subclass")
        self._check_prompt(prompt)
        request = self._build_request(
            structured_prompt(prompt, schema),
            system_prompt or JSON_SYSTEM_PROMPT,
            max_tokens,
            temperature,
            backend,
            json_mode=True,
        )
        return await self._run(
            f"generate_structured:{schema.__name__}",
            request,
            lambda raw: schema.model_validate(parse_json_payload(raw)),
        )

    async def analyze_content(self, content: str, analysis_type: str) -> ContentAnalysisScore:
        if analysis_type not in ANALYSIS_PROMPTS:
            raise InvalidParameters(f"Unsupported analysis type: {analysis_type}")
        if not content or not content.strip():
            raise InvalidParameters("content is required")
        return await self.generate_structured(
            ANALYSIS_PROMPTS[analysis_type].format(content=content),
            ContentAnalysisScore,
            system_prompt=ANALYST_SYSTEM_PROMPT,
            temperature=0.3,
        )

    @staticmethod
    def _check_prompt(prompt: str) -> None:
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidParameters("prompt must be a non-empty string")

    def _build_request(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int,
        temperature: float,
        backend: str,
        json_mode: bool = False,
    ) -> GenerationRequest:
        self._check_prompt(prompt)
        if backend not in BACKEND_NAMES:
            raise InvalidParameters(f"Unknown backend: {backend}")
        try:
            return GenerationRequest(
                prompt=prompt,
                system_prompt=system_prompt,
                max_tokens=max_tokens,
                temperature=temperature,
                backend=backend,
                json_mode=json_mode,
            )
        except ValidationError as exc:
            raise InvalidParameters(str(exc)) from exc

    async def _run(self, operation: str, request: GenerationRequest, parse) -> Any:
        attempts = ["primary", "fallback"] if request.backend == "primary" else ["fallback"]
        attempted: List[str] = []
        last_error: Optional[BaseException] = None
        started = time.perf_counter()

        for name in attempts:
            attempted.append(name)
            backend = self.backends.get(name)
            try:
                if backend is None:
                    raise BackendUnavailable(f"Model backend '{name}' is not registered.")
                raw = await backend.complete(request.model_copy(update={"backend": name}))
                result = parse(raw)
            except Exception as exc:
                last_error = exc
                logger.warning("%s failed on %s backend: %s: %s", operation, name, exc.__class__.__name__, exc)
                continue
            self._emit_telemetry(operation, request.backend, attempted, name, started, None)
            return result

        self._emit_telemetry(operation, request.backend, attempted, None, started, last_error)
        raise GenerationFailure(
            f"{operation} failed after {len(attempted)} attempt(s)",
            cause=last_error,
            attempts=attempted,
        ) from last_error

    def _emit_telemetry(
        self,
        operation: str,
        requested: str,
        attempted: List[str],
        served: Optional[str],
        started: float,
        error: Optional[BaseException],
    ) -> None:
        if not self.telemetry_enabled:
            return
        payload = {
            "operation": operation,
            "requested_backend": requested,
            "attempted_backends": attempted,
            "served_backend": served,
            "success": served is not None,
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
            "error_type": error.__class__.__name__ if error else None,
        }
        logger.info("generation_telemetry=%s", json.dumps(payload, sort_keys=True))
