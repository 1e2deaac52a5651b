"""
AI Providers Module - Unified clients for multiple LLM providers.

This module provides consistent interfaces to different AI providers:
- OpenAI (and the same API hosted on Azure)
- Anthropic Claude
- Google Gemini

Each provider has the same interface, making them interchangeable:
    response = await provider.generate(prompt, **kwargs)

Why several providers?
======================
1. Reliability: fail over to another provider if one is down or rate limited
2. Cost: callers can prefer cheaper models
3. Availability: users bring whichever API key they have
"""

from device_insights.ai.providers.base import (
    AIProvider,
    AIResponse,
    ErrorKind,
    ProviderType,
    TokenUsage,
)
from device_insights.ai.providers.openai_provider import OpenAIProvider, AzureOpenAIProvider
from device_insights.ai.providers.anthropic_provider import AnthropicProvider
from device_insights.ai.providers.gemini import GeminiProvider

__all__ = [
    "AIProvider",
    "AIResponse",
    "ErrorKind",
    "ProviderType",
    "TokenUsage",
    "OpenAIProvider",
    "AzureOpenAIProvider",
    "AnthropicProvider",
    "GeminiProvider",
]
