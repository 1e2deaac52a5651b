"""
Dependencies module - reusable FastAPI dependencies for route handlers.

The orchestrator and the monitor are built once in the app lifespan and kept
on app.state; handlers receive them through these functions so tests can
swap them with app.dependency_overrides.
"""

from fastapi import HTTPException, Request, status

from device_insights.ai.monitoring import AIMonitor, ai_monitor
from device_insights.orchestration.facade import OrchestrationFacade


def get_facade(request: Request) -> OrchestrationFacade:
    """
    Return the application's OrchestrationFacade.

    Raises:
        HTTPException 503: If the lifespan has not built one (app not started)
    """
    facade = getattr(request.app.state, "facade", None)
    if facade is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Orchestrator is not initialized",
        )
    return facade


def get_monitor(request: Request) -> AIMonitor:
    return getattr(request.app.state, "monitor", None) or ai_monitor
