"""
Monitoring Module - Unified logging and metrics tracking for AI operations.

This module provides observability for the orchestrator:
- Request/response logging
- Per-attempt failover logging
- Token usage and cost estimation
- Cache hit/miss and template fallback counters

Usage:
======
    from device_insights.ai.monitoring import ai_monitor

    ai_monitor.track_attempt(request_id, "openai", 1, "Timeout", 30000.0)
    stats = ai_monitor.get_stats()
"""

from device_insights.ai.monitoring.monitor import (
    AggregatedMetrics,
    AIMonitor,
    RequestMetrics,
    ai_monitor,
)

__all__ = [
    "AggregatedMetrics",
    "AIMonitor",
    "RequestMetrics",
    "ai_monitor",
]
