"""
Gemini Provider - Google's GenAI SDK.

Uses the async surface of the client (client.aio) so a slow call can be
cancelled by the dispatcher's per-attempt timeout.
"""

import time
import logging
from typing import Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from device_insights.core.config import settings
from device_insights.ai.providers.base import (
    AIProvider,
    AIResponse,
    ErrorKind,
    ProviderType,
    TokenUsage,
)

logger = logging.getLogger("device_insights.ai.gemini")


def classify_gemini_error(exc: Exception) -> Optional[ErrorKind]:
    """Map a google-genai API error onto the dispatcher's failure taxonomy."""
    if isinstance(exc, genai_errors.APIError):
        if exc.code in (401, 403):
            return ErrorKind.AUTH_ERROR
        if exc.code == 429:
            return ErrorKind.RATE_LIMITED
        if exc.code in (408, 504):
            return ErrorKind.TIMEOUT
        return ErrorKind.TRANSPORT_ERROR
    return None


class GeminiProvider(AIProvider):
    provider_type = ProviderType.GEMINI

    def __init__(self, model: str = None, api_key: str = None):
        self.model = model or settings.GEMINI_MODEL
        self.api_key = api_key or settings.GEMINI_API_KEY

        if self.api_key:
            self._client = genai.Client(api_key=self.api_key)
            logger.info(f"Gemini provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.warning("Gemini API key not configured")

    def is_configured(self) -> bool:
        return self._client is not None

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs
    ) -> AIResponse:
        start_time = time.time()

        if not self._client:
            return self._error("API key missing", start_time, ErrorKind.AUTH_ERROR)

        try:
            config = types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
                system_instruction=system_prompt,
            )

            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )

            latency_ms = self._measure_latency(start_time)
            usage = self._extract_usage(response)

            return AIResponse(
                content=(response.text or "").strip(),
                provider=self.provider_type,
                model=self.model,
                usage=usage,
                latency_ms=latency_ms,
                success=True,
                raw_response=response,
            )

        except Exception as e:
            return self._error(str(e), start_time, classify_gemini_error(e))

    def _extract_usage(self, response):
        # usage_metadata can be None when the API reports nothing
        prompt_t = response.usage_metadata.prompt_token_count if response.usage_metadata else 0
        comp_t = response.usage_metadata.candidates_token_count if response.usage_metadata else 0
        return TokenUsage(prompt_tokens=prompt_t or 0, completion_tokens=comp_t or 0)

    def _error(self, msg, start_time, kind=None):
        return self._create_error_response(
            error=msg, model=self.model, latency_ms=self._measure_latency(start_time), error_kind=kind
        )
