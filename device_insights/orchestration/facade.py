"""
Orchestration Facade - the public entry point.

Every operation follows the same pipeline:

    snapshot (cache hit or collect)
        → field selection (fixed subset, or QueryRouter for questions)
        → prompt + DispatchRequest
        → FailoverDispatcher
        → InsightResult  (provider content, or static templates if every provider failed)

Public methods never raise for backend failures. The only results with
success=False are an empty question and a snapshot that could not be
collected with nothing cached to fall back on.

Usage:
    facade = OrchestrationFacade.from_settings(settings, monitor=ai_monitor)
    await facade.init()

    result = await facade.query_device_info("How much battery do I have?")
    print(result.content, result.provider_used)

    await facade.cleanup()
"""

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from device_insights.ai.prompts import (
    ANALYSIS_MAX_TOKENS,
    QUERY_MAX_TOKENS,
    SYSTEM_PROMPT,
    build_insight_prompt,
    build_query_prompt,
)
from device_insights.collectors.system_state import gather_snapshot
from device_insights.core.config import Settings, settings as default_settings
from device_insights.orchestration import fallback
from device_insights.orchestration.cache import SnapshotCache
from device_insights.orchestration.connectors import descriptors_from_settings
from device_insights.orchestration.dispatcher import FailoverDispatcher
from device_insights.orchestration.errors import (
    CollectionError,
    EmptyPromptError,
    InvalidDescriptorError,
)
from device_insights.orchestration.models import (
    DEFAULT_SOURCE,
    AttemptRecord,
    ConnectionState,
    DispatchPayload,
    DispatchRequest,
    DispatchResult,
    ProviderDescriptor,
    ProviderKind,
    RequestKind,
    Snapshot,
    utc_now,
)
from device_insights.orchestration.query_router import QueryRouter
from device_insights.orchestration.registry import ProviderRegistry

logger = logging.getLogger("device_insights.orchestration.facade")

# Fixed field subsets per operation. None means every field.
OPERATION_FIELDS: Dict[RequestKind, Optional[Sequence[str]]] = {
    RequestKind.INSIGHTS: None,
    RequestKind.BATTERY: ("battery", "power", "platform"),
    RequestKind.PERFORMANCE: ("memory", "cpu", "storage", "processes", "platform"),
}

SUPPORTED_FEATURES = [
    "device-insights",
    "battery-advice",
    "performance-tips",
    "natural-language-queries",
    "fallback-mode",
]


@dataclass
class InsightResult:
    """
    Uniform result of every facade operation.

    Attributes:
        success: False only for invalid input or an uncollectable snapshot
        kind: Which operation produced this result
        content: Provider text, or template text when provider_used is None
        provider_used: Name of the provider that answered
        snapshot_excerpt: The snapshot fields the answer was based on
        timestamp: When the result was assembled
        attempts: Every provider call made, in order
        stale: True when the snapshot came from cache after a failed refresh
        recommendations: Threshold-based advice (fixed operations only)
        tips: Static tips for the operation (battery and performance only)
        error: Error code when success is False
        message: Human-readable error detail
    """
    success: bool
    kind: RequestKind
    content: Optional[str] = None
    provider_used: Optional[str] = None
    snapshot_excerpt: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)
    attempts: List[AttemptRecord] = field(default_factory=list)
    stale: bool = False
    recommendations: List[str] = field(default_factory=list)
    tips: List[str] = field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.success and self.provider_used is None

    @classmethod
    def failure(cls, kind: RequestKind, error: str, message: str) -> "InsightResult":
        return cls(success=False, kind=kind, error=error, message=message)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if not self.success:
            data["error"] = self.error
            data["message"] = self.message
            return data

        data.update({
            "content": self.content,
            "provider_used": self.provider_used,
            "used_fallback": self.used_fallback,
            "snapshot_excerpt": self.snapshot_excerpt,
            "stale": self.stale,
            "recommendations": self.recommendations,
            "tips": self.tips,
            "attempts": [record.to_dict() for record in self.attempts],
        })
        return data


class OrchestrationFacade:
    """
    Explicit orchestrator instance with injected collaborators.

    Nothing here is process-global: tests build as many facades as they
    like, each with its own registry, cache and dispatcher.
    """

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        cache: Optional[SnapshotCache] = None,
        dispatcher: Optional[FailoverDispatcher] = None,
        router: Optional[QueryRouter] = None,
        *,
        snapshot_provider: Optional[Callable[[], Any]] = None,
        config: Optional[Settings] = None,
        monitor=None,
    ):
        self.config = config or default_settings
        self.monitor = monitor
        self.registry = registry if registry is not None else ProviderRegistry()
        self.cache = cache if cache is not None else SnapshotCache(monitor=monitor)
        if dispatcher is None:
            dispatcher = FailoverDispatcher(
                self.registry,
                monitor=monitor,
                backoff_base_ms=self.config.DISPATCH_BACKOFF_BASE_MS,
            )
        self.dispatcher = dispatcher
        self.router = router if router is not None else QueryRouter()
        self.snapshot_provider = snapshot_provider or self._collect_host_snapshot
        self._initialized = False

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, monitor=None, **kwargs) -> "OrchestrationFacade":
        """Facade with every configured provider and the local data sources registered."""
        config = config or default_settings
        facade = cls(config=config, monitor=monitor, **kwargs)
        for descriptor in descriptors_from_settings(config, monitor=monitor):
            facade.register_provider(descriptor)
        return facade

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # -----------------------------------------------------------------------
    # LIFECYCLE
    # -----------------------------------------------------------------------

    def register_provider(self, descriptor: ProviderDescriptor, *, overwrite: bool = True) -> None:
        self.registry.register(descriptor, overwrite=overwrite)

    async def connect_provider(self, name: str) -> ConnectionState:
        return await self.registry.connect(name)

    async def init(self) -> Dict[str, str]:
        """
        Connect every registered provider.

        A provider that fails to connect stays registered as FAILED and is
        simply never a dispatch candidate.
        """
        states = {}
        for name in self.registry.names():
            states[name] = (await self.registry.connect(name)).value
        self._initialized = True

        connected = [name for name, state in states.items() if state == ConnectionState.CONNECTED.value]
        logger.info(f"Orchestrator initialized: {len(connected)}/{len(states)} connected {connected}")
        return states

    async def cleanup(self) -> None:
        """Disconnect everything and drop every cached snapshot."""
        await self.registry.disconnect_all()
        self.cache.invalidate()
        self._initialized = False
        logger.info("Orchestrator cleaned up")

    # -----------------------------------------------------------------------
    # PUBLIC OPERATIONS
    # -----------------------------------------------------------------------

    async def get_device_insights(self, **options) -> InsightResult:
        return await self._run_fixed(RequestKind.INSIGHTS, **options)

    async def get_battery_advice(self, **options) -> InsightResult:
        return await self._run_fixed(RequestKind.BATTERY, **options)

    async def get_performance_tips(self, **options) -> InsightResult:
        return await self._run_fixed(RequestKind.PERFORMANCE, **options)

    async def query_device_info(
        self,
        prompt: str,
        *,
        preferred_providers: Optional[Sequence[str]] = None,
        freshness_ms: Optional[float] = None,
        force_refresh: bool = False,
    ) -> InsightResult:
        """Answer a free-text question about the device in one sentence."""
        kind = RequestKind.QUERY
        if not isinstance(prompt, str) or not prompt.strip():
            error = EmptyPromptError()
            return InsightResult.failure(kind, error.code, error.message)

        request_id = str(uuid.uuid4())[:8]
        snapshot = await self._snapshot(kind, freshness_ms, force_refresh, request_id)
        if isinstance(snapshot, InsightResult):
            return snapshot

        fields = copy.deepcopy(self.router.route(prompt, snapshot))
        payload = DispatchPayload(
            kind=kind,
            prompt=build_query_prompt(prompt, fields),
            system_prompt=SYSTEM_PROMPT,
            user_prompt=prompt,
            fields=fields,
            max_tokens=QUERY_MAX_TOKENS,
            request_id=request_id,
        )
        dispatch = await self._dispatch(payload, preferred_providers, request_id)

        if dispatch.success:
            content = dispatch.content
        else:
            content = fallback.fallback_query_response(self.router.match_topics(prompt), fields)
            self._track_fallback(request_id, kind)

        return InsightResult(
            success=True,
            kind=kind,
            content=content,
            provider_used=dispatch.provider_used,
            snapshot_excerpt=fields,
            attempts=list(dispatch.attempts),
            stale=snapshot.stale,
        )

    async def collect_device_data(
        self,
        sources: Optional[Sequence[str]] = None,
        *,
        freshness_ms: Optional[float] = None,
        force_refresh: bool = False,
    ) -> Dict[str, Any]:
        """
        Collect from registered data sources through the cache.

        With no names, every CONNECTED data source is used. Unknown or
        disconnected names are reported as skipped; a failing source is
        reported in errors without stopping the others.
        """
        if sources:
            names = list(dict.fromkeys(sources))
        else:
            names = [d.name for d in self.registry.list_by_kind(ProviderKind.DATA_SOURCE)]
        freshness = freshness_ms if freshness_ms is not None else self.config.DATA_SOURCE_FRESHNESS_MS

        data: Dict[str, Any] = {}
        errors: List[Dict[str, str]] = []
        skipped: List[str] = []
        stale: List[str] = []

        for name in names:
            descriptor = self.registry.find(name)
            if descriptor is None or not descriptor.is_connected or descriptor.handler is None:
                logger.info(f"Data source {name} not available")
                skipped.append(name)
                continue
            if descriptor.kind is not ProviderKind.DATA_SOURCE:
                raise InvalidDescriptorError(f"'{name}' is not a data source", {"provider": name})

            try:
                snapshot = await self.cache.get_or_collect(
                    name, descriptor.handler, freshness, force=force_refresh,
                )
            except CollectionError as e:
                self.registry.record_error(name, e.message)
                errors.append({"source": name, "error": e.message})
                continue

            self.registry.mark_used(name)
            data[name] = snapshot.to_dict()["fields"]
            if snapshot.stale:
                stale.append(name)

        return {
            "success": not errors,
            "data": data,
            "errors": errors,
            "skipped": skipped,
            "stale": stale,
            "sources": names,
        }

    def get_status(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "providers": self.registry.describe(),
            "cache": self.cache.entries(),
        }

    def get_supported_features(self) -> List[str]:
        features = list(SUPPORTED_FEATURES)
        if self.registry.list_by_kind(ProviderKind.DATA_SOURCE):
            features.append("data-source-collection")
        if self.registry.list_by_capability("text-generation", ProviderKind.AI_PROVIDER):
            features.append("ai-powered-insights")
            features.append("multi-provider-failover")
        return features

    # -----------------------------------------------------------------------
    # PIPELINE
    # -----------------------------------------------------------------------

    async def _run_fixed(
        self,
        kind: RequestKind,
        *,
        preferred_providers: Optional[Sequence[str]] = None,
        freshness_ms: Optional[float] = None,
        force_refresh: bool = False,
    ) -> InsightResult:
        request_id = str(uuid.uuid4())[:8]
        snapshot = await self._snapshot(kind, freshness_ms, force_refresh, request_id)
        if isinstance(snapshot, InsightResult):
            return snapshot

        fields = self._select_fields(kind, snapshot)
        payload = DispatchPayload(
            kind=kind,
            prompt=build_insight_prompt(kind, fields),
            system_prompt=SYSTEM_PROMPT,
            fields=fields,
            max_tokens=ANALYSIS_MAX_TOKENS,
            request_id=request_id,
        )
        dispatch = await self._dispatch(payload, preferred_providers, request_id)

        if dispatch.success:
            content = dispatch.content
        else:
            content = self._fallback_content(kind, fields)
            self._track_fallback(request_id, kind)

        all_fields = snapshot.to_dict()["fields"]
        return InsightResult(
            success=True,
            kind=kind,
            content=content,
            provider_used=dispatch.provider_used,
            snapshot_excerpt=fields,
            attempts=list(dispatch.attempts),
            stale=snapshot.stale,
            recommendations=fallback.basic_recommendations(all_fields),
            tips=self._static_tips(kind),
        )

    async def _snapshot(
        self,
        kind: RequestKind,
        freshness_ms: Optional[float],
        force_refresh: bool,
        request_id: str,
    ):
        """The default snapshot, or a failed InsightResult when none can be had."""
        freshness = freshness_ms if freshness_ms is not None else self._freshness_for(kind)
        try:
            return await self.cache.get_or_collect(
                DEFAULT_SOURCE, self.snapshot_provider, freshness, force=force_refresh,
            )
        except CollectionError as e:
            if self.monitor:
                self.monitor.track_error(request_id, e.message, stage="collection")
            logger.error(f"[{request_id}] {kind.value} failed: {e.message}")
            return InsightResult.failure(kind, e.code, e.message)

    async def _dispatch(
        self,
        payload: DispatchPayload,
        preferred_providers: Optional[Sequence[str]],
        request_id: str,
    ) -> DispatchResult:
        preferred = (
            preferred_providers
            if preferred_providers is not None
            else self.config.DEFAULT_PREFERRED_PROVIDERS
        )
        request = DispatchRequest(
            payload=payload,
            preferred_providers=tuple(preferred),
            timeout_ms=self.config.DISPATCH_TIMEOUT_MS,
            retry_attempts=self.config.DISPATCH_RETRY_ATTEMPTS,
        )
        if self.monitor:
            self.monitor.track_request(
                request_id=request_id,
                prompt=payload.user_prompt or payload.kind.value,
                kind=payload.kind.value,
                preferred_providers=list(request.preferred_providers),
            )
        return await self.dispatcher.dispatch(request, request_id=request_id)

    def _freshness_for(self, kind: RequestKind) -> float:
        if kind is RequestKind.BATTERY:
            return self.config.BATTERY_FRESHNESS_MS
        if kind is RequestKind.PERFORMANCE:
            return self.config.PERFORMANCE_FRESHNESS_MS
        return self.config.SNAPSHOT_FRESHNESS_MS

    @staticmethod
    def _select_fields(kind: RequestKind, snapshot: Snapshot) -> Dict[str, Any]:
        wanted = OPERATION_FIELDS.get(kind)
        fields: Mapping[str, Any] = snapshot.to_dict()["fields"]
        if wanted is None:
            return dict(fields)
        return {name: fields[name] for name in wanted if name in fields}

    @staticmethod
    def _fallback_content(kind: RequestKind, fields: Mapping[str, Any]) -> str:
        if kind is RequestKind.BATTERY:
            return fallback.fallback_battery_advice(fields)
        if kind is RequestKind.PERFORMANCE:
            return fallback.fallback_performance_tips(fields)
        return fallback.fallback_insights(fields)

    @staticmethod
    def _static_tips(kind: RequestKind) -> List[str]:
        if kind is RequestKind.BATTERY:
            return list(fallback.BATTERY_TIPS)
        if kind is RequestKind.PERFORMANCE:
            return list(fallback.PERFORMANCE_RECOMMENDATIONS)
        return []

    def _track_fallback(self, request_id: str, kind: RequestKind) -> None:
        logger.warning(f"[{request_id}] No provider answered {kind.value}, using templates")
        if self.monitor:
            self.monitor.track_fallback(request_id, kind.value, reason="all providers failed")

    async def _collect_host_snapshot(self) -> Dict[str, Any]:
        return await asyncio.to_thread(gather_snapshot, self.config.PROCESS_TOP_N)
