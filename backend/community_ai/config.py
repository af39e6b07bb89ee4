import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

logger = logging.getLogger(__name__)

GITHUB_MODELS_BASE_URL = "https://models.github.ai/inference"
PLACEHOLDER_KEYS = {"replace-with-api-key", "your-api-key", "your-github-token"}
FEATURES = (
    "content_generation",
    "smart_search",
    "recommendations",
    "sentiment_analysis",
    "auto_moderation",
    "chatbot",
)


@dataclass
class BackendConfig:
    """Connection settings for one OpenAI-compatible model backend."""

    name: str
    model: str
    base_url: str
    api_key: str
    timeout_seconds: float = 60.0

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class Settings:
    primary: BackendConfig
    fallback: BackendConfig
    chat_context_window: int = 6
    enhanced_chat_context_window: int = 8
    chat_max_sessions: int = 500
    features: Dict[str, bool] = field(default_factory=lambda: {name: True for name in FEATURES})
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    trusted_hosts: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    telemetry_enabled: bool = True

    def feature_enabled(self, name: str) -> bool:
        return self.features.get(name, False)


def _normalize_env_value(value: str) -> str:
    normalized = value.strip()
    if len(normalized) >= 2 and normalized[0] == normalized[-1] and normalized[0] in {"'", '"'}:
        normalized = normalized[1:-1].strip()
    return normalized


def _parse_csv_env(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _read_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _read_int_env(name: str, default: int, min_value: int = 1) -> int:
    try:
        parsed = int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= min_value else default


def _read_float_env(name: str, default: float) -> float:
    try:
        parsed = float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _load_api_key(prefix: str, fallback_names: List[str]) -> str:
    api_key = _normalize_env_value(os.getenv(f"{prefix}_API_KEY", ""))
    for name in fallback_names:
        if api_key:
            break
        api_key = _normalize_env_value(os.getenv(name, ""))

    if not api_key:
        key_file = _normalize_env_value(os.getenv(f"{prefix}_API_KEY_FILE", ""))
        if key_file:
            try:
                api_key = _normalize_env_value(Path(key_file).read_text(encoding="utf-8"))
            except OSError:
                logger.warning("%s_API_KEY_FILE is set but unreadable.", prefix)

    if api_key.lower() in PLACEHOLDER_KEYS:
        return ""
    return api_key


def load_settings() -> Settings:
    timeout = _read_float_env("AI_REQUEST_TIMEOUT_SECONDS", 60.0)
    primary_key = _load_api_key(
        "AI_PRIMARY",
        ["GITHUB_MODELS_API_KEY", "GITHUB_PERSONAL_ACCESS_TOKEN", "GITHUB_TOKEN"],
    )
    primary = BackendConfig(
        name="primary",
        model=os.getenv("AI_PRIMARY_MODEL", "openai/gpt-4o"),
        base_url=os.getenv("AI_PRIMARY_BASE_URL", GITHUB_MODELS_BASE_URL),
        api_key=primary_key,
        timeout_seconds=timeout,
    )
    fallback = BackendConfig(
        name="fallback",
        model=os.getenv("AI_FALLBACK_MODEL", "openai/gpt-4o-mini"),
        base_url=os.getenv("AI_FALLBACK_BASE_URL", primary.base_url),
        api_key=_load_api_key("AI_FALLBACK", []) or primary_key,
        timeout_seconds=timeout,
    )
    if not primary.configured:
        logger.warning(
            "Primary model backend disabled: set AI_PRIMARY_API_KEY (or GITHUB_MODELS_API_KEY / GITHUB_TOKEN)."
        )

    return Settings(
        primary=primary,
        fallback=fallback,
        chat_context_window=_read_int_env("CHAT_CONTEXT_WINDOW", 6),
        enhanced_chat_context_window=_read_int_env("CHAT_ENHANCED_CONTEXT_WINDOW", 8),
        chat_max_sessions=_read_int_env("CHAT_MAX_SESSIONS", 500),
        features={name: _read_bool_env(f"AI_FEATURE_{name.upper()}", True) for name in FEATURES},
        cors_origins=_parse_csv_env("CORS_ORIGINS", "*"),
        trusted_hosts=_parse_csv_env("TRUSTED_HOSTS", "*"),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        telemetry_enabled=_read_bool_env("GENERATION_TELEMETRY_ENABLED", True),
    )
