from __future__ import annotations

import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from app.core.config import settings
from app.pipeline.errors import ProviderError

logger = logging.getLogger(__name__)


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ):
        self.model = model
        key = (api_key or settings.openai_api_key or "").strip()
        if not key:
            raise ProviderError("OPENAI_API_KEY is missing")

        self._client = AsyncOpenAI(
            api_key=key,
            base_url=(base_url or settings.openai_base_url or None),
            timeout=timeout_s if timeout_s is not None else settings.provider_timeout_s,
            max_retries=0,
        )

    async def generate(self, system_prompt: str, user_prompt: str, temperature: float = 0.0) -> str:
        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except OpenAIError as exc:
            logger.warning("openai_generate_failed model=%s: %s", self.model, exc)
            raise ProviderError(f"OpenAI request failed: {exc}") from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ProviderError(f"OpenAI model '{self.model}' returned an empty response.")
        return content
