from dataclasses import dataclass

from app.ai.types import ProviderKind
from app.core.config import settings


@dataclass(frozen=True)
class AIConfig:
    provider: ProviderKind
    model: str


def resolve_provider_kind(model: str) -> ProviderKind:
    if model.strip().lower().startswith("gemini"):
        return ProviderKind.GEMINI
    return ProviderKind.OPENAI


def load_ai_config(model: str | None = None) -> AIConfig:
    selected = (model or "").strip() or settings.default_model
    return AIConfig(provider=resolve_provider_kind(selected), model=selected)
