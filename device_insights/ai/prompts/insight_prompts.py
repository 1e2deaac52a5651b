"""
Insight Prompts - Templates for device analysis requests.

Two shapes of request go to the AI providers:
1. Fixed analyses (general insights, battery, performance) that get 3-5 tips
2. Free-text questions that get ONE short sentence

Device data is embedded as indented JSON so every provider sees the same
structure regardless of how it formats chat messages.
"""

import json
from typing import Any, Mapping

from device_insights.orchestration.models import RequestKind

# ---------------------------------------------------------------------------
# SYSTEM PROMPT
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = (
    "You are a helpful device optimization expert. Provide clear, actionable "
    "advice in a friendly tone. Keep responses concise but informative."
)

# ---------------------------------------------------------------------------
# ANALYSIS PROMPTS
# ---------------------------------------------------------------------------

INSIGHT_BASE_PROMPT = """Analyze the following device information and provide helpful insights:

{device_data}

"""

FOCUS_INSTRUCTIONS = {
    RequestKind.BATTERY: (
        "Focus on battery optimization recommendations. "
        "Provide 3-5 actionable tips to improve battery life."
    ),
    RequestKind.PERFORMANCE: (
        "Focus on performance optimization. "
        "Provide 3-5 actionable tips to improve device performance and speed."
    ),
    RequestKind.INSIGHTS: (
        "Provide a comprehensive analysis with general recommendations for device "
        "optimization, including battery, performance, and storage tips."
    ),
}

# ---------------------------------------------------------------------------
# QUERY PROMPT
# ---------------------------------------------------------------------------

QUERY_PROMPT = """User Question: "{question}"

Device Data:
{device_data}

Instructions: Answer the user's question in ONE SHORT SENTENCE (maximum 20 words) using the provided device data. Be direct, factual, and conversational. Focus only on answering what was asked."""

QUERY_MAX_TOKENS = 100
ANALYSIS_MAX_TOKENS = 500


def format_device_data(fields: Mapping[str, Any]) -> str:
    return json.dumps(dict(fields), indent=2, default=str)


def build_insight_prompt(kind: RequestKind, fields: Mapping[str, Any]) -> str:
    """
    Build the analysis prompt for a fixed operation.

    Args:
        kind: INSIGHTS, BATTERY or PERFORMANCE (QUERY falls back to INSIGHTS)
        fields: Snapshot fields relevant to the analysis
    """
    focus = FOCUS_INSTRUCTIONS.get(kind, FOCUS_INSTRUCTIONS[RequestKind.INSIGHTS])
    return INSIGHT_BASE_PROMPT.format(device_data=format_device_data(fields)) + focus


def build_query_prompt(question: str, fields: Mapping[str, Any]) -> str:
    return QUERY_PROMPT.format(
        question=question.strip(),
        device_data=format_device_data(fields),
    )
