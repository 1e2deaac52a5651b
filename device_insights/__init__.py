"""
Device Insights - AI-powered diagnostics for the host device.

Collects memory, storage, battery, CPU, network and process data, then asks
one of several interchangeable AI backends to turn it into advice. When no
backend answers, static templates derived from the snapshot thresholds are
returned instead, so callers always get a usable response.

Package layout:
    core/           settings (pydantic-settings)
    ai/             provider clients, prompt templates, monitoring
    orchestration/  registry, failover dispatcher, snapshot cache, query router, facade
    collectors/     psutil-backed device snapshot collection
    routers/        FastAPI endpoints
"""

__version__ = "0.1.0"
