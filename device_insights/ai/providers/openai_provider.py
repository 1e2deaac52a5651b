"""
OpenAI Provider - GPT client, plus the Azure-hosted variant.

Both share the chat completions API; the Azure flavour only differs in how
the client is built (resource endpoint, deployment name, api-version).

API Documentation: https://platform.openai.com/docs/api-reference
"""

import time
import logging
from typing import Optional

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI

from device_insights.core.config import settings
from device_insights.ai.providers.base import (
    AIProvider,
    AIResponse,
    ErrorKind,
    ProviderType,
    TokenUsage,
    mask_endpoint,
)

logger = logging.getLogger("device_insights.ai.openai")


def classify_openai_error(exc: Exception) -> Optional[ErrorKind]:
    """Map an openai SDK exception onto the dispatcher's failure taxonomy."""
    # APITimeoutError subclasses APIConnectionError, so check it first
    if isinstance(exc, openai.APITimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ErrorKind.AUTH_ERROR
    if isinstance(exc, openai.RateLimitError):
        return ErrorKind.RATE_LIMITED
    if isinstance(exc, openai.APIConnectionError):
        return ErrorKind.TRANSPORT_ERROR
    if isinstance(exc, openai.APIStatusError):
        return ErrorKind.TRANSPORT_ERROR
    return None


class OpenAIProvider(AIProvider):
    """
    OpenAI GPT provider implementation.

    Usage:
        provider = OpenAIProvider()
        response = await provider.generate("Why is my laptop hot?")
    """

    provider_type = ProviderType.OPENAI

    def __init__(self, model: str = None, api_key: str = None):
        """
        Initialize the OpenAI provider.

        Args:
            model: Model name (default: from settings.OPENAI_MODEL)
            api_key: API key (default: from settings.OPENAI_API_KEY)
        """
        self.model = model or settings.OPENAI_MODEL
        self.api_key = api_key or settings.OPENAI_API_KEY

        if self.api_key:
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=settings.AI_REQUEST_TIMEOUT)
            logger.info(f"OpenAI provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.warning("OpenAI API key not configured - provider unavailable")

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
        Generate a response using the chat completions API.

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
                error=f"{self.provider_type.value} API key not configured",
                model=self.model,
                latency_ms=self._measure_latency(start_time),
                error_kind=ErrorKind.AUTH_ERROR,
            )

        try:
            messages = []
            if system_prompt:
                messages.append({"role": "system", "content": system_prompt})
            messages.append({"role": "user", "content": prompt})

            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )

            latency_ms = self._measure_latency(start_time)

            if not response.choices:
                return self._create_error_response(
                    error="Response contained no choices",
                    model=self.model,
                    latency_ms=latency_ms,
                    error_kind=ErrorKind.INVALID_RESPONSE,
                )

            content = (response.choices[0].message.content or "").strip()

            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens if response.usage else 0,
                completion_tokens=response.usage.completion_tokens if response.usage else 0,
            )

            logger.info(
                f"{self.provider_type.value} request completed in {latency_ms:.0f}ms, "
                f"tokens: {usage.total_tokens}"
            )

            return AIResponse(
                content=content,
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
                error_kind=classify_openai_error(e),
            )


class AzureOpenAIProvider(OpenAIProvider):
    """
    Azure OpenAI provider.

    The model name sent on each request is the deployment name; Azure routes
    it to whatever model the deployment was created with.
    """

    provider_type = ProviderType.AZURE_OPENAI

    def __init__(
        self,
        endpoint: str = None,
        api_key: str = None,
        deployment: str = None,
        api_version: str = None,
    ):
        self.endpoint = (endpoint or settings.AZURE_OPENAI_ENDPOINT).rstrip("/")
        self.api_key = api_key or settings.AZURE_OPENAI_API_KEY
        self.model = deployment or settings.AZURE_OPENAI_DEPLOYMENT
        self.api_version = api_version or settings.AZURE_OPENAI_API_VERSION

        if self.api_key and self.endpoint.startswith("https://"):
            self._client = AsyncAzureOpenAI(
                api_key=self.api_key,
                azure_endpoint=self.endpoint,
                api_version=self.api_version,
                timeout=settings.AI_REQUEST_TIMEOUT,
            )
            logger.info(
                f"Azure OpenAI provider initialized: endpoint={mask_endpoint(self.endpoint)} "
                f"deployment={self.model} api_version={self.api_version}"
            )
        else:
            self._client = None
            if self.endpoint and not self.endpoint.startswith("https://"):
                logger.warning("Azure OpenAI endpoint must use HTTPS - provider unavailable")
            else:
                logger.warning("Azure OpenAI key or endpoint not configured - provider unavailable")
