"""
Insights Router - HTTP surface of the orchestrator.

HTTP handling only; every decision (which provider, which fields, when to
fall back to templates) belongs to OrchestrationFacade.

Endpoints:
=========
    GET  /insights              general device insights
    GET  /insights/battery      battery advice
    GET  /insights/performance  performance tips
    POST /insights/query        one-sentence answer to a question
    POST /insights/data         raw collection from data sources
    GET  /insights/status       providers and cache state
    GET  /insights/stats        AI usage statistics
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from device_insights.ai.monitoring import AIMonitor
from device_insights.deps import get_facade, get_monitor
from device_insights.orchestration.errors import OrchestrationError
from device_insights.orchestration.facade import InsightResult, OrchestrationFacade


# ---------------------------------------------------------------------------
# LOGGER SETUP
# ---------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(prefix="/insights", tags=["insights"])


# ---------------------------------------------------------------------------
# REQUEST/RESPONSE SCHEMAS
# ---------------------------------------------------------------------------

class QueryRequest(BaseModel):
    """
    Request schema for the /insights/query endpoint.

    Example:
    {
        "prompt": "How much battery do I have?",
        "preferred_providers": ["anthropic", "openai"]
    }
    """
    prompt: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Question about the device"
    )
    preferred_providers: Optional[List[str]] = Field(
        default=None,
        description="Provider names to try first, in order"
    )
    freshness_ms: Optional[int] = Field(default=None, gt=0, description="Max snapshot age")
    force_refresh: bool = Field(default=False, description="Ignore any cached snapshot")


class DataRequest(BaseModel):
    """Request schema for the /insights/data endpoint. No sources means all."""
    sources: Optional[List[str]] = Field(default=None, description="Data source names")
    force_refresh: bool = Field(default=False, description="Ignore cached collections")


class AttemptResponse(BaseModel):
    provider_name: str
    attempt: int
    outcome: str
    latency_ms: float
    message: str = ""


class InsightResponse(BaseModel):
    """
    Response schema shared by every insight endpoint.

    Example:
    {
        "success": true,
        "kind": "battery",
        "content": "Your battery is at moderate levels...",
        "provider_used": null,
        "used_fallback": true,
        "stale": false
    }
    """
    success: bool = Field(description="Whether a usable response was produced")
    kind: str = Field(description="insights, battery, performance or query")
    timestamp: str = Field(description="When the result was assembled (ISO 8601)")
    content: Optional[str] = Field(default=None, description="Provider or template text")
    provider_used: Optional[str] = Field(default=None, description="Provider that answered")
    used_fallback: bool = Field(default=False, description="True when templates were used")
    snapshot_excerpt: Dict[str, Any] = Field(default_factory=dict)
    stale: bool = Field(default=False, description="Snapshot served after a failed refresh")
    recommendations: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)
    attempts: List[AttemptResponse] = Field(default_factory=list)


class AIStatsResponse(BaseModel):
    """Response schema for /insights/stats endpoint."""
    total_requests: int
    successful_requests: int
    failed_requests: int
    success_rate: str
    total_tokens: int
    avg_latency_ms: float
    estimated_total_cost: str
    requests_by_provider: Dict[str, int]
    failures_by_kind: Dict[str, int]
    total_dispatches: int
    failovers: int
    template_fallbacks: int
    cache_hits: int
    cache_misses: int


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------

_ERROR_STATUS = {
    "EmptyPromptError": status.HTTP_400_BAD_REQUEST,
    "CollectionError": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _result_to_response(result: InsightResult) -> InsightResponse:
    """Convert InsightResult to InsightResponse, or raise for failed results."""
    if not result.success:
        raise HTTPException(
            status_code=_ERROR_STATUS.get(result.error, status.HTTP_500_INTERNAL_SERVER_ERROR),
            detail={"error": result.error, "message": result.message},
        )
    return InsightResponse(**result.to_dict())


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------

@router.get("", response_model=InsightResponse)
async def get_device_insights(
    providers: Optional[List[str]] = Query(default=None, description="Preferred providers"),
    force_refresh: bool = False,
    facade: OrchestrationFacade = Depends(get_facade),
):
    """
    General analysis of the device with recommendations.

    Always answers: if no AI provider responds, the content comes from
    threshold-based templates and provider_used is null.
    """
    result = await facade.get_device_insights(
        preferred_providers=providers, force_refresh=force_refresh,
    )
    return _result_to_response(result)


@router.get("/battery", response_model=InsightResponse)
async def get_battery_advice(
    providers: Optional[List[str]] = Query(default=None, description="Preferred providers"),
    force_refresh: bool = False,
    facade: OrchestrationFacade = Depends(get_facade),
):
    """Battery optimization advice plus static battery tips."""
    result = await facade.get_battery_advice(
        preferred_providers=providers, force_refresh=force_refresh,
    )
    return _result_to_response(result)


@router.get("/performance", response_model=InsightResponse)
async def get_performance_tips(
    providers: Optional[List[str]] = Query(default=None, description="Preferred providers"),
    force_refresh: bool = False,
    facade: OrchestrationFacade = Depends(get_facade),
):
    """Performance tips plus static performance recommendations."""
    result = await facade.get_performance_tips(
        preferred_providers=providers, force_refresh=force_refresh,
    )
    return _result_to_response(result)


@router.post("/query", response_model=InsightResponse)
async def query_device_info(
    request: QueryRequest,
    facade: OrchestrationFacade = Depends(get_facade),
):
    """
    Answer a question about the device in one short sentence.

    **Examples:**
    - "How much battery do I have?"
    - "Is my disk almost full?"
    - "Which app is using the most CPU?"
    """
    result = await facade.query_device_info(
        request.prompt,
        preferred_providers=request.preferred_providers,
        freshness_ms=request.freshness_ms,
        force_refresh=request.force_refresh,
    )
    return _result_to_response(result)


@router.post("/data")
async def collect_device_data(
    request: DataRequest,
    facade: OrchestrationFacade = Depends(get_facade),
):
    """Raw readings from registered data sources (system, battery, network monitors)."""
    try:
        return await facade.collect_device_data(
            request.sources, force_refresh=request.force_refresh,
        )
    except OrchestrationError as e:
        logger.warning(f"Data collection rejected: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.to_dict())


@router.get("/status")
async def get_status(facade: OrchestrationFacade = Depends(get_facade)):
    """Providers with connection state and health, plus cached snapshot ages."""
    data = facade.get_status()
    data["features"] = facade.get_supported_features()
    return data


@router.get("/stats", response_model=AIStatsResponse)
async def get_ai_stats(monitor: AIMonitor = Depends(get_monitor)):
    """
    Get AI usage statistics.

    Returns aggregated metrics including:
    - Total requests processed
    - Success/failure rates and failure kinds
    - Failovers and template fallbacks
    - Cache hits and misses
    """
    stats = monitor.get_stats()
    return AIStatsResponse(
        total_requests=stats.total_requests,
        successful_requests=stats.successful_requests,
        failed_requests=stats.failed_requests,
        success_rate=f"{stats.success_rate:.1f}%",
        total_tokens=stats.total_tokens,
        avg_latency_ms=round(stats.avg_latency_ms, 2),
        estimated_total_cost=f"${stats.estimated_total_cost:.4f}",
        requests_by_provider=stats.requests_by_provider,
        failures_by_kind=stats.failures_by_kind,
        total_dispatches=stats.total_dispatches,
        failovers=stats.failovers,
        template_fallbacks=stats.template_fallbacks,
        cache_hits=stats.cache_hits,
        cache_misses=stats.cache_misses,
    )
