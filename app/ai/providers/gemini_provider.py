from __future__ import annotations

import logging
from typing import Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from app.core.config import settings
from app.pipeline.errors import ProviderError

logger = logging.getLogger(__name__)


class GeminiProvider:
    def __init__(self, model: str, api_key: Optional[str] = None, timeout_s: Optional[float] = None):
        self.model = model
        key = (api_key or settings.gemini_api_key or "").strip()
        if not key:
            raise ProviderError("GEMINI_API_KEY is missing")

        timeout = timeout_s if timeout_s is not None else settings.provider_timeout_s
        self._client = genai.Client(
            api_key=key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )

    async def generate(self, system_prompt: str, user_prompt: str, temperature: float = 0.0) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=user_prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    temperature=temperature,
                    response_mime_type="application/json",
                ),
            )
        except genai_errors.APIError as exc:
            logger.warning("gemini_generate_failed model=%s: %s", self.model, exc)
            raise ProviderError(f"Gemini request failed: {exc}") from exc
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("gemini_transport_failed model=%s: %s", self.model, exc)
            raise ProviderError(f"Gemini request failed: {exc}") from exc

        text = response.text
        if not text:
            raise ProviderError(f"Gemini model '{self.model}' returned an empty response.")
        return text
