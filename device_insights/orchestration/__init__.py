"""
Orchestration Module - provider registry, failover, snapshot cache and routing.

Module Structure:
================
- models.py: Descriptors, snapshots, dispatch requests and results
- errors.py: OrchestrationError hierarchy
- registry.py: ProviderRegistry (named connections and their state)
- dispatcher.py: FailoverDispatcher (sequential failover with retries)
- cache.py: SnapshotCache (freshness windows, request coalescing)
- query_router.py: QueryRouter (question -> relevant snapshot fields)
- fallback.py: Static templates used when no provider answers
- connectors.py: Bridges AI providers and collectors into the registry
- facade.py: OrchestrationFacade (the public entry point)

Import the facade from its module:
    from device_insights.orchestration.facade import OrchestrationFacade
"""
