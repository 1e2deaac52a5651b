"""
Anthropic Provider - Claude client.

API Documentation: https://docs.anthropic.com/en/api
"""

import time
import logging
from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

from device_insights.core.config import settings
from device_insights.ai.providers.base import (
    AIProvider,
    AIResponse,
    ErrorKind,
    ProviderType,
    TokenUsage,
)

logger = logging.getLogger("device_insights.ai.anthropic")


def classify_anthropic_error(exc: Exception) -> Optional[ErrorKind]:
    """Map an anthropic SDK exception onto the dispatcher's failure taxonomy."""
    if isinstance(exc, anthropic.APITimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return ErrorKind.AUTH_ERROR
    if isinstance(exc, anthropic.RateLimitError):
        return ErrorKind.RATE_LIMITED
    if isinstance(exc, (anthropic.APIConnectionError, anthropic.APIStatusError)):
        return ErrorKind.TRANSPORT_ERROR
    return None


class AnthropicProvider(AIProvider):
    """
    Anthropic Claude provider implementation.

    Usage:
        provider = AnthropicProvider()
        response = await provider.generate("Analyze this battery report...")
    """

    provider_type = ProviderType.ANTHROPIC

    def __init__(self, model: str = None, api_key: str = None):
        """
        Initialize the Anthropic provider.

        Args:
            model: Model name (default: from settings.ANTHROPIC_MODEL)
            api_key: API key (default: from settings.ANTHROPIC_API_KEY)
        """
        self.model = model or settings.ANTHROPIC_MODEL
        self.api_key = api_key or settings.ANTHROPIC_API_KEY

        if self.api_key:
            self._client = AsyncAnthropic(api_key=self.api_key, timeout=settings.AI_REQUEST_TIMEOUT)
            logger.info(f"Anthropic provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.warning("Anthropic API key not configured - provider unavailable")

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
        """
        Generate a response using Claude.

        Args:
            prompt: The user's message
            system_prompt: Optional system instructions
            temperature: Creativity (0-1)
            max_tokens: Maximum response length

        Returns:
            AIResponse with the generated content
        """
        start_time = time.time()

        if not self._client:
            return self._create_error_response(
                error="Anthropic API key not configured",
                model=self.model,
                latency_ms=self._measure_latency(start_time),
                error_kind=ErrorKind.AUTH_ERROR,
            )

        try:
            request_params = {
                "model": self.model,
                "max_tokens": max_tokens,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": temperature,
            }

            if system_prompt:
                request_params["system"] = system_prompt

            response = await self._client.messages.create(**request_params)

            latency_ms = self._measure_latency(start_time)

            # Claude returns a list of content blocks
            content = ""
            if response.content:
                for block in response.content:
                    if hasattr(block, 'text'):
                        content += block.text

            usage = TokenUsage(
                prompt_tokens=response.usage.input_tokens if response.usage else 0,
                completion_tokens=response.usage.output_tokens if response.usage else 0,
            )

            logger.info(f"Anthropic request completed in {latency_ms:.0f}ms, tokens: {usage.total_tokens}")

            return AIResponse(
                content=content.strip(),
                provider=self.provider_type,
                model=self.model,
                usage=usage,
                latency_ms=latency_ms,
                success=True,
                raw_response=response,
            )

        except Exception as e:
            return self._create_error_response(
                error=str(e),
                model=self.model,
                latency_ms=self._measure_latency(start_time),
                error_kind=classify_anthropic_error(e),
            )
