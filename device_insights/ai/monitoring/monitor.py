"""
AI Monitor - Unified logging and metrics tracking.

One call tracks everything:
- Structured JSON logs
- In-memory metrics aggregation
- Cost estimation

Usage:
    from device_insights.ai.monitoring import AIMonitor

    monitor = AIMonitor()

    monitor.track_attempt(
        request_id="abc123",
        provider="openai",
        attempt=1,
        outcome="Timeout",
        latency_ms=30000.0,
    )

    monitor.track_response(
        request_id="abc123",
        provider="anthropic",
        model="claude-3-5-haiku-latest",
        content="Your battery is healthy.",
        prompt_tokens=50,
        completion_tokens=20,
        latency_ms=250.5,
        success=True,
    )

    stats = monitor.get_stats()

Prompts and credentials are never logged in full: prompts are truncated to a
short preview and error messages are sanitized before they get here.
"""

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# LOGGING SETUP
# ---------------------------------------------------------------------------
logger = logging.getLogger("device_insights")
logger.setLevel(logging.INFO)

if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# METRICS DATA CLASSES
# ---------------------------------------------------------------------------
@dataclass
class RequestMetrics:
    """Metrics for a single successful or failed provider response."""
    request_id: str
    provider: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    latency_ms: float
    success: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    estimated_cost: float = 0.0


@dataclass
class AggregatedMetrics:
    """Aggregated metrics over the process lifetime."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_tokens: int = 0
    total_prompt_tokens: int = 0
    total_completion_tokens: int = 0
    total_latency_ms: float = 0.0
    estimated_total_cost: float = 0.0
    requests_by_provider: Dict[str, int] = field(default_factory=dict)
    tokens_by_provider: Dict[str, int] = field(default_factory=dict)
    failures_by_kind: Dict[str, int] = field(default_factory=dict)
    total_dispatches: int = 0
    failovers: int = 0
    template_fallbacks: int = 0
    cache_hits: int = 0
    cache_misses: int = 0

    @property
    def avg_latency_ms(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_latency_ms / self.total_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return (self.successful_requests / self.total_requests) * 100

    def to_dict(self) -> Dict:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "success_rate": f"{self.success_rate:.1f}%",
            "total_tokens": self.total_tokens,
            "prompt_tokens": self.total_prompt_tokens,
            "completion_tokens": self.total_completion_tokens,
            "avg_latency_ms": round(self.avg_latency_ms, 2),
            "estimated_total_cost": f"${self.estimated_total_cost:.4f}",
            "requests_by_provider": self.requests_by_provider,
            "tokens_by_provider": self.tokens_by_provider,
            "failures_by_kind": self.failures_by_kind,
            "total_dispatches": self.total_dispatches,
            "failovers": self.failovers,
            "template_fallbacks": self.template_fallbacks,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
        }


# ---------------------------------------------------------------------------
# UNIFIED AI MONITOR
# ---------------------------------------------------------------------------
class AIMonitor:
    """
    Unified AI monitoring: logging + metrics in one call.

    Each track_* method:
    1. Writes a structured JSON log line
    2. Updates in-memory metrics

    Cost Model (per 1M tokens, approximate):
    - GPT-4o mini: ~$0.15 input, ~$0.60 output
    - Claude Haiku: ~$0.80 input, ~$4 output
    - Gemini Flash: ~$0.075 input, ~$0.30 output
    """

    COST_PER_1M_TOKENS = {
        "openai": {"input": 0.15, "output": 0.60},
        "azure-openai": {"input": 0.50, "output": 1.50},
        "anthropic": {"input": 0.80, "output": 4.0},
        "gemini": {"input": 0.075, "output": 0.30},
    }

    def __init__(self, max_history: int = 1000):
        self._logger = logger
        self._history: List[RequestMetrics] = []
        self._max_history = max_history
        self._lock = Lock()
        self._aggregated = AggregatedMetrics()

    # -----------------------------------------------------------------------
    # MAIN TRACKING METHODS
    # -----------------------------------------------------------------------

    def track_request(
        self,
        request_id: str,
        prompt: str,
        kind: str,
        preferred_providers: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Track the start of a dispatch."""
        log_data = {
            "event": "ai_request",
            "request_id": request_id,
            "kind": kind,
            "preferred_providers": preferred_providers or [],
            "prompt_length": len(prompt),
            "prompt_preview": prompt[:100] + "..." if len(prompt) > 100 else prompt,
            "timestamp": _now_iso(),
        }

        if metadata:
            log_data["metadata"] = metadata

        self._logger.info(f"AI Request: {json.dumps(log_data)}")

    def track_response(
        self,
        request_id: str,
        provider: str,
        model: str,
        content: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: float,
        success: bool = True,
        error: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Track an AI response (logs + metrics in one call).

        Called by the provider handlers after every SDK call.
        """
        total_tokens = prompt_tokens + completion_tokens
        cost = self._estimate_cost(provider, prompt_tokens, completion_tokens)

        metrics = RequestMetrics(
            request_id=request_id,
            provider=provider,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
            latency_ms=latency_ms,
            success=success,
            estimated_cost=cost,
        )

        with self._lock:
            self._history.append(metrics)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history:]
            self._update_aggregated(metrics)

        log_data = {
            "event": "ai_response",
            "request_id": request_id,
            "provider": provider,
            "model": model,
            "success": success,
            "latency_ms": round(latency_ms, 2),
            "tokens": {
                "prompt": prompt_tokens,
                "completion": completion_tokens,
                "total": total_tokens,
            },
            "estimated_cost": f"${cost:.6f}",
            "response_length": len(content) if content else 0,
            "timestamp": _now_iso(),
        }

        if error:
            log_data["error"] = error

        if metadata:
            log_data["metadata"] = metadata

        level = logging.INFO if success else logging.WARNING
        self._logger.log(level, f"AI Response: {json.dumps(log_data)}")

    def track_attempt(
        self,
        request_id: str,
        provider: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        message: str = "",
    ) -> None:
        """Track one provider call made by the failover dispatcher."""
        success = outcome == "success"
        if not success:
            with self._lock:
                self._aggregated.failures_by_kind[outcome] = \
                    self._aggregated.failures_by_kind.get(outcome, 0) + 1

        log_data = {
            "event": "dispatch_attempt",
            "request_id": request_id,
            "provider": provider,
            "attempt": attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
            "timestamp": _now_iso(),
        }
        if message and not success:
            log_data["error"] = message

        level = logging.INFO if success else logging.WARNING
        self._logger.log(level, f"Dispatch Attempt: {json.dumps(log_data)}")

    def track_dispatch(
        self,
        request_id: str,
        success: bool,
        provider_used: Optional[str],
        providers_tried: List[str],
        attempts: int,
    ) -> None:
        """Track the end of a dispatch, counting a failover when more than one provider was tried."""
        with self._lock:
            self._aggregated.total_dispatches += 1
            if success and len(providers_tried) > 1:
                self._aggregated.failovers += 1

        log_data = {
            "event": "dispatch_complete",
            "request_id": request_id,
            "success": success,
            "provider_used": provider_used,
            "providers_tried": providers_tried,
            "attempts": attempts,
            "timestamp": _now_iso(),
        }

        level = logging.INFO if success else logging.WARNING
        self._logger.log(level, f"Dispatch: {json.dumps(log_data)}")

    def track_fallback(self, request_id: str, kind: str, reason: str) -> None:
        """Track a response answered from static templates instead of a provider."""
        with self._lock:
            self._aggregated.template_fallbacks += 1

        log_data = {
            "event": "template_fallback",
            "request_id": request_id,
            "kind": kind,
            "reason": reason,
            "timestamp": _now_iso(),
        }
        self._logger.warning(f"Fallback: {json.dumps(log_data)}")

    def track_cache(self, source_name: str, hit: bool, age_ms: Optional[float] = None) -> None:
        """Track a snapshot cache lookup."""
        with self._lock:
            if hit:
                self._aggregated.cache_hits += 1
            else:
                self._aggregated.cache_misses += 1

        log_data = {
            "event": "cache_hit" if hit else "cache_miss",
            "source": source_name,
            "age_ms": round(age_ms, 2) if age_ms is not None else None,
            "timestamp": _now_iso(),
        }
        self._logger.debug(f"Cache: {json.dumps(log_data)}")

    def track_error(
        self,
        request_id: str,
        error: str,
        stage: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Track an error in the pipeline."""
        log_data = {
            "event": "ai_error",
            "request_id": request_id,
            "error": error,
            "stage": stage,
            "timestamp": _now_iso(),
        }

        if metadata:
            log_data["metadata"] = metadata

        self._logger.error(f"AI Error: {json.dumps(log_data)}")

    # -----------------------------------------------------------------------
    # METRICS METHODS
    # -----------------------------------------------------------------------

    def get_stats(self) -> AggregatedMetrics:
        """Get current aggregated statistics."""
        with self._lock:
            return self._aggregated

    def get_recent_requests(self, limit: int = 10) -> List[RequestMetrics]:
        """Get recent requests, newest first."""
        with self._lock:
            return list(reversed(self._history[-limit:]))

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._history = []
            self._aggregated = AggregatedMetrics()

    # -----------------------------------------------------------------------
    # PRIVATE METHODS
    # -----------------------------------------------------------------------

    def _estimate_cost(self, provider: str, prompt_tokens: int, completion_tokens: int) -> float:
        """Estimate cost in USD."""
        costs = self.COST_PER_1M_TOKENS.get(provider.lower(), {"input": 0, "output": 0})
        input_cost = (prompt_tokens / 1_000_000) * costs["input"]
        output_cost = (completion_tokens / 1_000_000) * costs["output"]
        return input_cost + output_cost

    def _update_aggregated(self, metrics: RequestMetrics) -> None:
        """Update aggregated metrics with a new request."""
        self._aggregated.total_requests += 1

        if metrics.success:
            self._aggregated.successful_requests += 1
        else:
            self._aggregated.failed_requests += 1

        self._aggregated.total_tokens += metrics.total_tokens
        self._aggregated.total_prompt_tokens += metrics.prompt_tokens
        self._aggregated.total_completion_tokens += metrics.completion_tokens
        self._aggregated.total_latency_ms += metrics.latency_ms
        self._aggregated.estimated_total_cost += metrics.estimated_cost

        provider = metrics.provider
        self._aggregated.requests_by_provider[provider] = \
            self._aggregated.requests_by_provider.get(provider, 0) + 1
        self._aggregated.tokens_by_provider[provider] = \
            self._aggregated.tokens_by_provider.get(provider, 0) + metrics.total_tokens


# ---------------------------------------------------------------------------
# PROCESS-WIDE INSTANCE
# ---------------------------------------------------------------------------
# The HTTP app shares this one; tests and embedders create their own.
ai_monitor = AIMonitor()
