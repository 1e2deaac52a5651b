"""
Prompts Module - Prompt templates sent to the AI providers.

Usage:
    from device_insights.ai.prompts import build_insight_prompt, SYSTEM_PROMPT
"""

from device_insights.ai.prompts.insight_prompts import (
    ANALYSIS_MAX_TOKENS,
    QUERY_MAX_TOKENS,
    SYSTEM_PROMPT,
    build_insight_prompt,
    build_query_prompt,
)

__all__ = [
    "ANALYSIS_MAX_TOKENS",
    "QUERY_MAX_TOKENS",
    "SYSTEM_PROMPT",
    "build_insight_prompt",
    "build_query_prompt",
]
