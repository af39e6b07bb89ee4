from typing import Iterable, Optional

from community_ai.errors import InvalidParameters


def require_text(name: str, value: Optional[str]) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidParameters(f"{name} is required")
    return value.strip()


def require_choice(name: str, value: str, allowed: Iterable[str]) -> str:
    allowed = tuple(allowed)
    if value not in allowed:
        raise InvalidParameters(f"{name} must be one of: {', '.join(allowed)}")
    return value


def require_range(name: str, value: float, low: float, high: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not low <= value <= high:
        raise InvalidParameters(f"{name} must be between {low} and {high}")
    return value


def joined(values: Optional[Iterable[str]], default: str) -> str:
    items = [item for item in (values or []) if item]
    return ", ".join(items) if items else default
