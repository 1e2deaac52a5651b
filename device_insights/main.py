"""
Main application entry point - FastAPI app instance and configuration.
This is where the ASGI application is created and configured.
Run with: uvicorn device_insights.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI  # The FastAPI framework
from fastapi.middleware.cors import CORSMiddleware  # Cross-Origin Resource Sharing

from device_insights.ai.monitoring import ai_monitor  # Shared logging + metrics
from device_insights.core.config import settings  # Application settings
from device_insights.orchestration.facade import OrchestrationFacade
from device_insights.routers import insights  # Insight endpoints

logger = logging.getLogger("device_insights.main")


# ---------------------------------------------------------------------------
# LIFESPAN
# ---------------------------------------------------------------------------
# Startup: build the orchestrator from settings and connect every provider.
# Shutdown: disconnect everything and drop cached snapshots.
@asynccontextmanager
async def lifespan(app: FastAPI):
    facade = OrchestrationFacade.from_settings(settings, monitor=ai_monitor)
    states = await facade.init()
    app.state.facade = facade
    app.state.monitor = ai_monitor
    logger.info(f"{settings.APP_NAME} started with providers: {states}")
    try:
        yield
    finally:
        await facade.cleanup()
        app.state.facade = None


# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
# - docs_url: Swagger UI at http://localhost:8000/docs
# - redoc_url: ReDoc at http://localhost:8000/redoc
app = FastAPI(
    title=settings.APP_NAME,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS MIDDLEWARE
# ---------------------------------------------------------------------------
# Permissive while the API is only consumed by local dashboards
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# insights.router: /insights, /insights/battery, /insights/performance,
#                  /insights/query, /insights/data, /insights/status, /insights/stats
app.include_router(insights.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    """
    Simple health check endpoint.

    Does NOT check provider connectivity (see /insights/status for that).

    Returns:
        {"status": "ok"}
    """
    return {"status": "ok"}
