from app.ai.config import load_ai_config
from app.ai.types import ModelClient, ProviderKind

from app.ai.providers.gemini_provider import GeminiProvider
from app.ai.providers.openai_provider import OpenAIProvider


def get_model_client(model: str | None = None) -> ModelClient:
    cfg = load_ai_config(model)

    if cfg.provider is ProviderKind.GEMINI:
        return GeminiProvider(model=cfg.model)

    return OpenAIProvider(model=cfg.model)
