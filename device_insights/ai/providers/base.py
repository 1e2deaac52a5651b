"""
Base AI Provider - Abstract interface for all LLM providers.

This module defines the contract that all AI providers must follow.
It ensures consistent behavior regardless of which provider is used.

Design Pattern: Strategy Pattern
================================
The base class defines the interface, and each provider implements it.
This allows the failover dispatcher to switch between providers without
code changes.

Example:
    provider = OpenAIProvider()  # or AnthropicProvider() or GeminiProvider()
    response = await provider.generate("How is my battery?")
    print(response.content)

Failure Taxonomy:
=================
Providers never raise from generate(). Instead every failed response carries
an ErrorKind so the dispatcher can decide whether to retry the same provider
(Timeout, RateLimited, TransportError, InvalidResponse) or skip straight to
the next one (AuthError).
"""

import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import urlparse
import logging

logger = logging.getLogger("device_insights.ai")


class ProviderType(str, Enum):
    """Enum of supported AI providers."""
    OPENAI = "openai"
    AZURE_OPENAI = "azure-openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class ErrorKind(str, Enum):
    """
    Why a single provider call failed.

    The values are the names surfaced in dispatch attempt logs.
    """
    TIMEOUT = "Timeout"
    AUTH_ERROR = "AuthError"
    RATE_LIMITED = "RateLimited"
    TRANSPORT_ERROR = "TransportError"
    INVALID_RESPONSE = "InvalidResponse"

    @property
    def retryable(self) -> bool:
        """AuthError will not fix itself on a second call to the same provider."""
        return self is not ErrorKind.AUTH_ERROR


@dataclass
class TokenUsage:
    """
    Token usage statistics for an AI request.

    Used for cost tracking and rate limiting awareness.
    """
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        """Calculate total if not provided."""
        if self.total_tokens == 0:
            self.total_tokens = self.prompt_tokens + self.completion_tokens


@dataclass
class AIResponse:
    """
    Standardized response from any AI provider.

    Attributes:
        content: The generated text response
        provider: Which provider generated this response
        model: The specific model used
        usage: Token usage statistics
        latency_ms: How long the request took
        success: Whether the request succeeded
        error: Error message if failed (already sanitized)
        error_kind: Failure classification if failed
        raw_response: Original provider response (for debugging)
        metadata: Additional provider-specific data
        created_at: Timestamp of the response
    """
    content: str
    provider: ProviderType
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    latency_ms: float = 0.0
    success: bool = True
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    raw_response: Optional[Any] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "content": self.content[:100] + "..." if len(self.content) > 100 else self.content,
            "provider": self.provider.value,
            "model": self.model,
            "tokens": {
                "prompt": self.usage.prompt_tokens,
                "completion": self.usage.completion_tokens,
                "total": self.usage.total_tokens,
            },
            "latency_ms": self.latency_ms,
            "success": self.success,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "created_at": self.created_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# CREDENTIAL HYGIENE
# ---------------------------------------------------------------------------

_SECRET_PATTERNS = [
    (re.compile(r"api[-_]key[=:\s]+[^\s&]+", re.IGNORECASE), "api-key=***"),
    (re.compile(r"authorization[=:\s]+bearer\s+[^\s&]+", re.IGNORECASE), "authorization=Bearer ***"),
    (re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}"), "sk-***"),
    (re.compile(r"[a-f0-9]{32,}", re.IGNORECASE), "***"),
]


def sanitize_error(message: str) -> str:
    """Strip anything that looks like a credential from an error message."""
    for pattern, replacement in _SECRET_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


def mask_endpoint(endpoint: str) -> str:
    """
    Mask the resource name of an endpoint for logging.

    https://myresource.openai.azure.com -> https://m********e.openai.azure.com
    """
    parsed = urlparse(endpoint)
    if not parsed.scheme or not parsed.hostname:
        return "https://*****"
    parts = parsed.hostname.split(".")
    if len(parts) > 2 and len(parts[0]) > 2:
        first = parts[0]
        parts[0] = first[0] + "*" * (len(first) - 2) + first[-1]
    return f"{parsed.scheme}://{'.'.join(parts)}"


def classify_error_message(message: str) -> ErrorKind:
    """
    Best-effort classification of an error we only have as text.

    SDK exception types are preferred (see each provider); this is the
    fallback for plain strings and unknown exception classes.
    """
    lowered = message.lower()
    if "timeout" in lowered or "timed out" in lowered:
        return ErrorKind.TIMEOUT
    if "429" in lowered or "rate limit" in lowered or "quota" in lowered:
        return ErrorKind.RATE_LIMITED
    if "401" in lowered or "403" in lowered or "api key" in lowered or "unauthorized" in lowered:
        return ErrorKind.AUTH_ERROR
    return ErrorKind.TRANSPORT_ERROR


class AIProvider(ABC):
    """
    Abstract base class for AI providers.

    All AI providers must implement this interface so they are
    interchangeable inside the failover dispatcher.

    Responsibilities:
    - Generate text responses from prompts
    - Classify failures into an ErrorKind
    - Track token usage and latency
    """

    provider_type: ProviderType
    model: str

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs
    ) -> AIResponse:
        """
        Generate a response from the AI model.

        Args:
            prompt: The user's message/query
            system_prompt: Optional system instructions for the model
            temperature: Creativity level (0=deterministic, 1=creative)
            max_tokens: Maximum tokens in the response
            **kwargs: Provider-specific options

        Returns:
            AIResponse with the generated content

        Raises:
            This method should NOT raise exceptions.
            Errors are captured in AIResponse.error / AIResponse.error_kind
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """True when the provider has a client and credentials to use it."""
        pass

    def _measure_latency(self, start_time: float) -> float:
        """Calculate latency in milliseconds."""
        return (time.time() - start_time) * 1000

    def _create_error_response(
        self,
        error: str,
        model: str,
        latency_ms: float = 0.0,
        error_kind: Optional[ErrorKind] = None,
    ) -> AIResponse:
        """
        Create a standardized error response.

        Used when a provider fails to ensure consistent error handling.
        """
        error = sanitize_error(error)
        kind = error_kind or classify_error_message(error)
        logger.error(f"AI Provider Error [{self.provider_type.value}] {kind.value}: {error}")
        return AIResponse(
            content="",
            provider=self.provider_type,
            model=model,
            latency_ms=latency_ms,
            success=False,
            error=error,
            error_kind=kind,
        )
