from typing import List, Optional, Union

from community_ai.config import BackendConfig, Settings
from community_ai.models import GenerationRequest
from community_ai.services.model_gateway import ModelGateway

Reply = Union[str, BaseException]


class FakeBackend:
    """Replays scripted replies and records every request it receives."""

    def __init__(self, name: str, replies: Optional[List[Reply]] = None) -> None:
        self.name = name
        self.replies = list(replies or [])
        self.requests: List[GenerationRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def complete(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if not self.replies:
            raise RuntimeError(f"{self.name} has no scripted reply")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeGatewayFactory:
    def __init__(self) -> None:
        self.primary = FakeBackend("primary")
        self.fallback = FakeBackend("fallback")

    def __call__(self, primary: Optional[List[Reply]] = None, fallback: Optional[List[Reply]] = None) -> ModelGateway:
        self.primary.replies = list(primary or [])
        self.fallback.replies = list(fallback or [])
        return ModelGateway({"primary": self.primary, "fallback": self.fallback}, telemetry_enabled=True)

    @property
    def total_calls(self) -> int:
        return self.primary.calls + self.fallback.calls


def make_settings(**overrides) -> Settings:
    settings = Settings(
        primary=BackendConfig(name="primary", model="test-model", base_url="http://primary.test", api_key="key"),
        fallback=BackendConfig(name="fallback", model="test-mini", base_url="http://fallback.test", api_key="key"),
    )
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


API_KEY_ENV_VARS = (
    "AI_PRIMARY_API_KEY",
    "AI_PRIMARY_API_KEY_FILE",
    "AI_FALLBACK_API_KEY",
    "AI_FALLBACK_API_KEY_FILE",
    "GITHUB_MODELS_API_KEY",
    "GITHUB_PERSONAL_ACCESS_TOKEN",
    "GITHUB_TOKEN",
)
