from enum import Enum
from typing import Protocol


class ProviderKind(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"


class ModelClient(Protocol):
    model: str

    async def generate(self, system_prompt: str, user_prompt: str, temperature: float = 0.0) -> str: ...
